"""Tests for the combat HTTP and WebSocket endpoints."""

import os
import random

import pytest
from fastapi.testclient import TestClient

from engine.session import CombatSession
from main import app
from models.actions import Action, DamageSpec
from models.combat_state import CombatState, TurnResources
from models.combatant import Combatant, Faction


@pytest.fixture
def client(tmp_path):
    """Create a test client with a fresh seeded session and a temporary save file."""
    import api.combat
    old_save_file = api.combat.SAVE_FILE
    api.combat.SAVE_FILE = str(tmp_path / "combat_session.json")
    app.state.session = CombatSession(rng=random.Random(11))

    yield TestClient(app)

    api.combat.SAVE_FILE = old_save_file


def _duel(orc_pos, orc_hp: int = 20) -> CombatState:
    """Helper to build a running one-on-one fight with the player up."""
    hero = Combatant(
        id="player", name="Ayla", faction=Faction.PLAYER, hp=50, max_hp=50, x=2, y=4,
        actions=[Action(name="Sword", attack_bonus=99, damage=DamageSpec(dice="1d8"))],
    )
    orc = Combatant(
        id="orc", name="Orc", faction=Faction.ENEMY, hp=orc_hp, max_hp=20, x=orc_pos[0], y=orc_pos[1],
        actions=[Action(name="Club", attack_bonus=0, damage=DamageSpec(dice="1d4"))],
    )
    return CombatState(
        is_active=True, round=1, turn_index=0,
        combatants=[hero, orc], turn_resources=TurnResources(movement_left=6),
    )


def _start(client, creatures=("goblin",)):
    resp = client.post("/combat/start", json={"player": {"name": "Ayla"}, "creatures": list(creatures)})
    assert resp.status_code == 200
    return resp.json()


class TestRoot:
    """Tests for the server info endpoints."""

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Gridfight Server"

    def test_health(self, client):
        assert client.get("/health").json() == {"healthy": True}


class TestEncounter:
    """Tests for starting, inspecting, and ending an encounter."""

    def test_state_before_start(self, client):
        data = client.get("/combat/state").json()
        assert data["phase"] == "inactive"
        assert data["combatants"] == []
        assert data["current_id"] is None

    def test_start_from_bestiary(self, client):
        data = _start(client, ["goblin", "goblin"])
        ids = [c["id"] for c in data["combatants"]]
        assert sorted(ids) == ["goblin_1", "goblin_2", "player"]
        assert data["phase"] in ("active", "decided")
        if data["phase"] == "active":
            assert data["current_id"] == "player"

    def test_start_with_inline_enemy(self, client):
        resp = client.post("/combat/start", json={"enemies": [{"name": "Bandit", "hp": 11, "ac": 12}]})
        assert resp.status_code == 200
        bandit = next(c for c in resp.json()["combatants"] if c["faction"] == "enemy")
        assert bandit["name"] == "Bandit"
        assert bandit["armor_class"] == 12

    def test_start_without_enemies(self, client):
        resp = client.post("/combat/start", json={})
        assert resp.status_code == 400

    def test_start_rejects_negative_hp(self, client):
        resp = client.post("/combat/start", json={"enemies": [{"name": "Ghost", "hp": -5}]})
        assert resp.status_code == 422

    def test_start_caps_player_hp(self, client):
        player = {"name": "Ayla", "stats": {"hp": 50, "maxHp": 20}}
        data = client.post("/combat/start", json={"player": player, "creatures": ["goblin"]}).json()
        hero = next(c for c in data["combatants"] if c["id"] == "player")
        assert (hero["hp"], hero["max_hp"]) == (20, 20)

    def test_start_unknown_creature(self, client):
        resp = client.post("/combat/start", json={"creatures": ["dragon"]})
        assert resp.status_code == 400
        assert "dragon" in resp.json()["detail"]

    def test_log(self, client):
        _start(client)
        log = client.get("/combat/log").json()
        assert log[0].startswith("Combat started!")
        assert client.get("/combat/log", params={"since": len(log)}).json() == []

    def test_end(self, client):
        _start(client)
        data = client.post("/combat/end").json()
        assert data["phase"] == "inactive"
        assert data["combatants"] == []


class TestPlayerTurn:
    """Tests for selecting, clicking, dashing, and ending the turn."""

    def test_requires_active_combat(self, client):
        assert client.post("/combat/select", json={"name": None}).status_code == 409
        assert client.post("/combat/click", json={"x": 1, "y": 1}).status_code == 409
        assert client.post("/combat/dash").status_code == 409
        assert client.post("/combat/end-turn").status_code == 409

    def test_select_spell_by_id(self, client):
        _start(client)
        resp = client.post("/combat/select", json={"name": "fire_bolt"})
        assert resp.status_code == 200
        assert resp.json()["selected_action"]["name"] == "Fire Bolt"
        assert client.get("/combat/state").json()["selected_action"] == "Fire Bolt"

    def test_select_unknown(self, client):
        _start(client)
        assert client.post("/combat/select", json={"name": "wish"}).status_code == 400

    def test_clear_selection(self, client):
        _start(client)
        client.post("/combat/select", json={"name": "fire_bolt"})
        resp = client.post("/combat/select", json={"name": None})
        assert resp.json()["selected_action"] is None

    def test_click_moves_player(self, client):
        _start(client)
        # The square behind the player's spawn is always free
        resp = client.post("/combat/click", json={"x": 1, "y": 4})
        assert resp.status_code == 200
        assert resp.json()["success"]
        player = next(c for c in client.get("/combat/state").json()["combatants"] if c["id"] == "player")
        assert (player["x"], player["y"]) == (1, 4)

    def test_dash(self, client):
        _start(client)
        resp = client.post("/combat/dash")
        assert resp.json()["success"]
        assert client.get("/combat/state").json()["turn_resources"]["has_action"] is False

    def test_end_turn_comes_back_to_player(self, client):
        round_before = _start(client)["round"]
        data = client.post("/combat/end-turn").json()
        if data["phase"] == "active":
            assert data["current_id"] == "player"
            assert data["round"] == round_before + 1


class TestSaveLoad:
    """Tests for persisting an encounter."""

    def test_load_without_save(self, client):
        assert client.post("/combat/load").status_code == 404

    def test_save_and_load(self, client):
        import api.combat
        started = _start(client)
        assert client.post("/combat/save").json() == {"saved": True}
        assert os.path.exists(api.combat.SAVE_FILE)

        client.post("/combat/end")
        data = client.post("/combat/load").json()

        assert data["phase"] == started["phase"]
        assert data["round"] == started["round"]
        assert [c["id"] for c in data["combatants"]] == [c["id"] for c in started["combatants"]]


class TestWebSocket:
    """Tests for the notification socket."""

    def test_connect_greeting(self, client):
        with client.websocket_connect("/combat/ws") as ws:
            msg = ws.receive_json()
            assert msg["type"] == "connected"
            assert msg["phase"] == "inactive"


    def test_end_turn_pushes_new_log_lines(self, client):
        with client, client.websocket_connect("/combat/ws") as ws:
            ws.receive_json()
            app.state.session.restore(_duel(orc_pos=(9, 9)), None)
            client.post("/combat/end-turn")
            msg = ws.receive_json()

        assert msg["type"] == "log"
        assert msg["lines"][0] == "--- Round 1: Orc ---"
        assert "Orc moves." in msg["lines"]

    def test_decisive_click_pushes_the_result(self, client):
        with client, client.websocket_connect("/combat/ws") as ws:
            ws.receive_json()
            app.state.session.restore(_duel(orc_pos=(3, 4), orc_hp=1), None)
            client.post("/combat/select", json={"name": "Sword"})
            assert client.post("/combat/click", json={"x": 3, "y": 4}).json()["success"]
            log_msg = ws.receive_json()
            result_msg = ws.receive_json()

        assert log_msg["type"] == "log"
        assert log_msg["lines"][-1] == "Victory! All enemies are defeated."
        assert result_msg == {"type": "result", "result": "victory", "round": 1}
