"""Encounter control, grid input, state retrieval, and save/load endpoints."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from api.ws import notify_log, notify_result
from config import SAVE_FILE
from engine.catalog import CatalogError, resolve_creatures
from engine.persistence import SessionSnapshot, load_snapshot, save_snapshot
from engine.session import CombatSession
from models.actions import ActionResult
from models.characters import CharacterRecord, EnemyTemplate
from models.combatant import Combatant

router = APIRouter()


class StartRequest(BaseModel):
    """Open an encounter: inline templates and/or bestiary ids."""
    player: CharacterRecord = CharacterRecord()
    enemies: list[EnemyTemplate] = []
    creatures: list[str] = []       # Bestiary ids, e.g. ["goblin", "goblin"]
    hazards: list[Combatant] = []


class SelectRequest(BaseModel):
    """Pick an action by name or spell id; null clears the selection."""
    name: str | None = None


class ClickRequest(BaseModel):
    """A click on a grid square."""
    x: int
    y: int


def _get_session(request: Request) -> CombatSession:
    """Get the singleton session from app state."""
    return request.app.state.session


def _require_active(session: CombatSession) -> None:
    if not session.state.is_active:
        raise HTTPException(status_code=409, detail="No combat in progress")


def _state_view(session: CombatSession) -> dict:
    state = session.state
    current = state.current()
    return {
        "phase": state.phase.value,
        "round": state.round,
        "turn_index": state.turn_index,
        "current_id": current.id if current else None,
        "result": state.result.value if state.result else None,
        "turn_resources": state.turn_resources.model_dump(),
        "combatants": [c.model_dump(mode="json") for c in state.combatants],
        "selected_action": session.selected_action.name if session.selected_action else None,
        "log_length": len(state.log),
    }


async def _publish(session: CombatSession, since: int, was_decided: bool) -> None:
    """Broadcast log lines appended after index ``since``."""
    state = session.state
    await notify_log(state.log[since:])
    if state.result is not None and not was_decided:
        await notify_result(state.result.value, state.round)


@router.post("/start")
async def start(body: StartRequest, request: Request) -> dict:
    """Start a new encounter, replacing any running one."""
    session = _get_session(request)
    enemies = list(body.enemies)
    try:
        if body.creatures:
            enemies += resolve_creatures(body.creatures, request.app.state.creatures)
        session.start(body.player, enemies, body.hazards)
    except (ValueError, CatalogError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    await _publish(session, 0, False)
    return _state_view(session)


@router.get("/state")
def get_state(request: Request) -> dict:
    """Get the current encounter state."""
    return _state_view(_get_session(request))


@router.get("/log")
def get_log(request: Request, since: int = 0) -> list[str]:
    """Get combat log lines, optionally only those after index ``since``."""
    return _get_session(request).state.log[max(0, since):]


@router.post("/select")
def select_action(body: SelectRequest, request: Request) -> dict:
    """Select an action of the acting combatant, or a known spell by id."""
    session = _get_session(request)
    _require_active(session)
    try:
        action = session.select_action(body.name)
    except ValueError:
        spell = request.app.state.spells.get(body.name)
        if spell is None:
            raise HTTPException(status_code=400, detail=f"Unknown action '{body.name}'")
        session.selected_action = action = spell
    return {"selected_action": action.model_dump(mode="json") if action else None}


@router.post("/click", response_model=ActionResult)
async def click(body: ClickRequest, request: Request) -> ActionResult:
    """Click a grid square: aim the selected action there, or move there."""
    session = _get_session(request)
    _require_active(session)
    since, was_decided = len(session.state.log), session.state.result is not None
    result = session.click(body.x, body.y)
    await _publish(session, since, was_decided)
    return result


@router.post("/dash", response_model=ActionResult)
async def dash(request: Request) -> ActionResult:
    """Spend the action to gain extra movement this turn."""
    session = _get_session(request)
    _require_active(session)
    since, was_decided = len(session.state.log), session.state.result is not None
    result = session.dash()
    await _publish(session, since, was_decided)
    return result


@router.post("/end-turn")
async def end_turn(request: Request) -> dict:
    """End the player's turn and let the enemies act."""
    session = _get_session(request)
    _require_active(session)
    since, was_decided = len(session.state.log), session.state.result is not None
    session.end_turn()
    await _publish(session, since, was_decided)
    return _state_view(session)


@router.post("/end")
def end(request: Request) -> dict:
    """Close the encounter unconditionally."""
    session = _get_session(request)
    session.end()
    return _state_view(session)


@router.post("/save")
def save(request: Request) -> dict:
    """Persist the current encounter."""
    session = _get_session(request)
    save_snapshot(SessionSnapshot(state=session.state, player=session.player), SAVE_FILE)
    return {"saved": True}


@router.post("/load")
def load(request: Request) -> dict:
    """Restore the last saved encounter."""
    session = _get_session(request)
    snapshot = load_snapshot(SAVE_FILE)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No saved combat")
    session.restore(snapshot.state, snapshot.player)
    return _state_view(session)
