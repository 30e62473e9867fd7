"""Action, effect, and action-result models for the combat engine."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from config import DEFAULT_BANISH_ROUNDS, DEFAULT_DAMAGE_DICE
from models.conditions import Condition, HazardProfile


class ActionKind(str, Enum):
    """Broad category of a declared action."""
    WEAPON = "weapon"
    SPELL = "spell"
    DASH = "dash"


class EffectType(str, Enum):
    """Structured effects a spell or ability can carry."""
    DAMAGE = "DAMAGE"
    HEALING = "HEALING"
    TEMP_HP = "TEMP_HP"
    APPLY_CONDITION = "APPLY_CONDITION"
    SPECIAL = "SPECIAL"             # Only resolves hit/save, then its special effect
    PUSH = "PUSH"
    PULL = "PULL"
    TELEPORT = "TELEPORT"
    SUMMON = "SUMMON"


class SaveOutcome(str, Enum):
    """What happens when the target makes its saving throw."""
    NEGATES_DAMAGE = "NEGATES_DAMAGE"
    HALF_DAMAGE = "HALF_DAMAGE"


class DamageSpec(BaseModel):
    """Dice expression plus a flat bonus and a damage type."""
    dice: str = DEFAULT_DAMAGE_DICE
    type: str = "force"
    bonus: int = 0


class SavingThrow(BaseModel):
    """A saving throw the target rolls against the caster's DC."""
    ability: str                    # "dex", "Dexterity", ...
    effect_on_success: SaveOutcome = SaveOutcome.HALF_DAMAGE


class Scaling(BaseModel):
    """Dice progression keyed by caster level (cantrips)."""
    type: Literal["CANTRIP"] = "CANTRIP"
    dice_at_levels: dict[int, str] = {}


class TargetSpec(BaseModel):
    """How an action picks its targets on the grid."""
    type: str = "CREATURE"          # "CREATURE", "POINT", "SELF"
    shape: str | None = None        # "SPHERE", "CYLINDER", "CONE", "LINE", "CUBE"
    length_m: float | None = None
    width_m: float | None = None
    radius_m: float | None = None


# ---------------------------------------------------------------------------
# Special effects: closed tagged union, validated on the "type" field
# ---------------------------------------------------------------------------


class Disintegrate(BaseModel):
    """A target reduced to exactly 0 HP is destroyed for good."""
    type: Literal["DISINTEGRATE"] = "DISINTEGRATE"


class InstantKillConditional(BaseModel):
    """Kill outright when the target is at or below a HP threshold."""
    type: Literal["INSTANT_KILL_CONDITIONAL"] = "INSTANT_KILL_CONDITIONAL"
    hp_threshold: int = 100


class Banish(BaseModel):
    """Remove the target from the map for a number of rounds."""
    type: Literal["BANISH"] = "BANISH"
    duration: int = Field(DEFAULT_BANISH_ROUNDS, gt=0)


class Lifesteal(BaseModel):
    """Heal the attacker for a fraction of the damage dealt."""
    type: Literal["LIFESTEAL"] = "LIFESTEAL"
    fraction: float = 0.5


SpecialEffect = Annotated[
    Union[Disintegrate, InstantKillConditional, Banish, Lifesteal],
    Field(discriminator="type"),
]


class SummonEntity(BaseModel):
    """A token placed on the grid by a SUMMON effect.

    Allies join the turn order and are steered by their summoner's side;
    hazards never act and only fire their profile.
    """
    name: str = "Summon"
    faction: Literal["ally", "hazard"] = "ally"
    hp: int = Field(10, ge=1)
    max_hp: int = Field(10, ge=1)
    armor_class: int = 10
    speed: str | float = "9m"
    actions: list["Action"] = []
    hazard_profile: HazardProfile | None = None


class Effect(BaseModel):
    """One structured effect of a spell or ability."""
    type: EffectType
    damage: DamageSpec | None = None
    attack_roll: bool = False
    saving_throw: SavingThrow | None = None
    scaling: Scaling | None = None
    add_modifier: bool = False      # Add the caster's spellcasting modifier
    damage_on_miss: bool = False    # Half damage on a missed attack roll
    condition: Condition | None = None
    distance_m: float | None = None  # PUSH / PULL distance
    entity: SummonEntity | None = None
    special: SpecialEffect | None = None

    @field_validator("attack_roll", mode="before")
    @classmethod
    def _auto_is_not_a_roll(cls, value: object) -> object:
        # Rule tables write "auto" for effects that always hit
        if value == "auto":
            return False
        return value


class Action(BaseModel):
    """A combat move a combatant can declare: weapon attack, spell, or dash."""
    name: str = "Attack"
    kind: ActionKind = ActionKind.WEAPON
    attack_bonus: int | None = None   # Weapon attacks; falls back to a default
    damage: DamageSpec | None = None
    range_m: float | None = None      # Explicit range in metres
    range: str | None = None          # "24/96" or "touch"
    reach: str | None = None          # "1,5m", "3m"
    properties: list[str] = []        # e.g. ["Reach", "Finesse"]
    category: str | None = None       # "simple", "martial", ...
    target: TargetSpec | None = None
    effects: list[Effect] = []
    special: SpecialEffect | None = None

    @field_validator("damage", mode="before")
    @classmethod
    def _damage_from_string(cls, value: object) -> object:
        # Creature tables often give damage as a bare dice string
        if isinstance(value, str):
            return {"dice": value}
        return value


# Summons carry their own actions
SummonEntity.model_rebuild()
Effect.model_rebuild()
Action.model_rebuild()


class ActionResult(BaseModel):
    """The engine's response after resolving an action."""
    success: bool
    action_name: str
    log: list[str] = []               # Lines appended to the combat log
    hit: bool | None = None
    damage_dealt: int = 0
    error: str | None = None          # If the action was rejected
