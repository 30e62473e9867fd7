"""Tests for saving and loading a combat session."""

import os

from engine.persistence import SessionSnapshot, load_snapshot, save_snapshot
from models.actions import Action, Banish, Effect, EffectType
from models.characters import AbilityScores, CharacterRecord, CharacterStats
from models.combat_state import CombatResult, CombatState, TurnResources
from models.combatant import Combatant, Faction
from models.conditions import Condition, ConditionType, HazardProfile


def _make_state() -> CombatState:
    """Helper to create a mid-fight state with every kind of combatant."""
    banish = Action(name="Banishment", kind="spell", effects=[
        Effect(type=EffectType.SPECIAL, special=Banish(duration=3)),
    ])
    return CombatState(
        is_active=True,
        round=3,
        turn_index=1,
        combatants=[
            Combatant(id="player", name="Hero", faction=Faction.PLAYER, hp=12, max_hp=20,
                      x=2, y=4, actions=[banish]),
            Combatant(id="orc_1", name="Orc", faction=Faction.ENEMY, hp=5, max_hp=15,
                      x=-999, y=-999, is_banished=True, original_position=(6, 4),
                      conditions=[Condition(type=ConditionType.BANISHED, duration=2)]),
            Combatant(id="web", name="Web", faction=Faction.HAZARD, hp=10, max_hp=10,
                      x=5, y=5, hazard_profile=HazardProfile(trigger=["ENTER", "START_TURN"])),
        ],
        log=["Combat started! Hero begins."],
        turn_resources=TurnResources(has_action=False, movement_left=2),
    )


class TestSnapshots:
    """Tests for save_snapshot() / load_snapshot()."""

    def test_missing_file(self, tmp_path):
        assert load_snapshot(str(tmp_path / "none.json")) is None

    def test_state_survives_a_restart(self, tmp_path):
        path = str(tmp_path / "combat_session.json")
        player = CharacterRecord(
            name="Ayla",
            class_key="cleric",
            stats=CharacterStats(abilities=AbilityScores(wis=16), max_hp=24),
        )
        save_snapshot(SessionSnapshot(state=_make_state(), player=player), path)

        loaded = load_snapshot(path)

        assert loaded.state == _make_state()
        assert loaded.player.stats.abilities.wisdom == 16
        assert loaded.player.stats.max_hp == 24
        orc = loaded.state.get("orc_1")
        assert orc.original_position == (6, 4)
        assert isinstance(loaded.state.get("player").actions[0].effects[0].special, Banish)

    def test_decided_result_is_kept(self, tmp_path):
        path = str(tmp_path / "combat_session.json")
        state = _make_state()
        state.result = CombatResult.VICTORY
        save_snapshot(SessionSnapshot(state=state), path)
        loaded = load_snapshot(path)
        assert loaded.state.result == CombatResult.VICTORY
        assert loaded.player is None

    def test_no_temp_file_left_behind(self, tmp_path):
        path = str(tmp_path / "combat_session.json")
        save_snapshot(SessionSnapshot(state=CombatState()), path)
        assert os.listdir(tmp_path) == ["combat_session.json"]
