"""Status condition and hazard profile models."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ConditionType(str, Enum):
    """Status effects a combatant can carry."""
    BLINDED = "BLINDED"
    CHARMED = "CHARMED"
    DEAFENED = "DEAFENED"
    FRIGHTENED = "FRIGHTENED"
    GRAPPLED = "GRAPPLED"
    INCAPACITATED = "INCAPACITATED"
    INVISIBLE = "INVISIBLE"
    PARALYZED = "PARALYZED"
    PETRIFIED = "PETRIFIED"
    POISONED = "POISONED"
    PRONE = "PRONE"
    RESTRAINED = "RESTRAINED"
    STUNNED = "STUNNED"
    UNCONSCIOUS = "UNCONSCIOUS"
    # Spell conditions
    HEX = "HEX"
    HUNTERS_MARK = "HUNTERS_MARK"
    BANE = "BANE"
    BLESS = "BLESS"
    BANISHED = "BANISHED"           # Tracks the remaining time off the map


class Condition(BaseModel):
    """A timed status effect attached to a combatant."""
    type: ConditionType
    duration: int = Field(1, gt=0)  # Remaining rounds


class HazardTrigger(str, Enum):
    """When a hazard fires against a combatant on its square."""
    START_TURN = "START_TURN"
    END_TURN = "END_TURN"
    ENTER = "ENTER"


class HazardDamage(BaseModel):
    """Damage dealt by a hazard: either dice or a flat amount."""
    dice: str | None = None         # e.g. "4d4"
    amount: int = Field(0, ge=0)
    type: str = "force"


class HazardProfile(BaseModel):
    """What a hazard square does and when it does it."""
    trigger: HazardTrigger | list[HazardTrigger]
    damage: HazardDamage | None = None
    apply_condition: Condition | None = None

    @field_validator("damage", mode="before")
    @classmethod
    def _damage_from_number(cls, value: object) -> object:
        # Map data often gives hazard damage as a bare number
        if isinstance(value, int) and not isinstance(value, bool):
            return {"amount": value}
        return value

    def fires_on(self, phase: HazardTrigger) -> bool:
        """Check whether this hazard reacts to the given trigger phase."""
        if isinstance(self.trigger, list):
            return phase in self.trigger
        return self.trigger == phase
