"""Combat state, turn resources, and encounter outcome models."""

from enum import Enum

from pydantic import BaseModel

from config import DEFAULT_MOVE_TILES
from models.combatant import Combatant


class CombatResult(str, Enum):
    """Terminal outcome of an encounter."""
    VICTORY = "victory"
    DEFEAT = "defeat"


class CombatPhase(str, Enum):
    """Lifecycle of an encounter."""
    INACTIVE = "inactive"           # No encounter running
    ACTIVE = "active"               # Turns in progress
    DECIDED = "decided"             # Victory or defeat reached


class TurnResources(BaseModel):
    """Per-turn budget of the acting combatant."""
    has_action: bool = True
    has_bonus_action: bool = True
    movement_left: int = DEFAULT_MOVE_TILES  # Tiles


class CombatState(BaseModel):
    """The encounter's root aggregate."""
    is_active: bool = False
    round: int = 0
    turn_index: int = 0
    combatants: list[Combatant] = []  # Sorted once by initiative
    log: list[str] = []               # Append-only, human-readable
    turn_resources: TurnResources = TurnResources()
    result: CombatResult | None = None

    @property
    def phase(self) -> CombatPhase:
        if self.result is not None:
            return CombatPhase.DECIDED
        if self.is_active:
            return CombatPhase.ACTIVE
        return CombatPhase.INACTIVE

    def get(self, combatant_id: str) -> Combatant | None:
        """Find a combatant by id."""
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def current(self) -> Combatant | None:
        """The combatant whose turn it is, if any."""
        if not self.is_active or not self.combatants:
            return None
        return self.combatants[self.turn_index]

    def replace(self, combatant: Combatant) -> None:
        """Swap in an updated copy of a combatant, keeping its slot."""
        for i, existing in enumerate(self.combatants):
            if existing.id == combatant.id:
                self.combatants[i] = combatant
                return
        raise ValueError(f"Combatant '{combatant.id}' is not in this encounter")
