"""Combatant model: any participant in an encounter."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from config import DEFAULT_ENEMY_ATTACK_BONUS, DEFAULT_ENEMY_SAVE_DC
from models.actions import Action
from models.characters import AbilityScores
from models.conditions import Condition, HazardProfile


class Faction(str, Enum):
    """Which side a combatant is on."""
    PLAYER = "player"
    ENEMY = "enemy"
    ALLY = "ally"                   # Summoned, steered by the player
    HAZARD = "hazard"


class Combatant(BaseModel):
    """A character, creature, or hazard token on the battle grid."""
    id: str                         # Unique within the encounter
    name: str
    faction: Faction
    hp: int = Field(ge=0)
    max_hp: int = Field(ge=0)
    temp_hp: int = Field(0, ge=0)
    x: int = 0
    y: int = 0
    armor_class: int = 10
    initiative: int = 0
    speed: str | float = "9m"       # Metres, e.g. "9m"
    abilities: AbilityScores = AbilityScores()
    attack_bonus: int = DEFAULT_ENEMY_ATTACK_BONUS
    save_dc: int = DEFAULT_ENEMY_SAVE_DC
    actions: list[Action] = []
    conditions: list[Condition] = []
    is_permadeath: bool = False
    is_banished: bool = False
    body_destroyed: bool = False
    original_position: tuple[int, int] | None = None
    hazard_profile: HazardProfile | None = None
    controlled_by: str | None = None  # Summoner id for summoned tokens

    @model_validator(mode="after")
    def _hp_within_max(self) -> "Combatant":
        if self.hp > self.max_hp:
            self.hp = self.max_hp
        return self

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def is_alive(self) -> bool:
        return self.hp > 0

    @property
    def is_player_side(self) -> bool:
        """The player and the allies they control."""
        return self.faction in (Faction.PLAYER, Faction.ALLY)

    @property
    def is_hazard(self) -> bool:
        return self.faction == Faction.HAZARD

    @property
    def is_active(self) -> bool:
        """Alive, on the map, and a creature (can act and be targeted)."""
        return self.is_alive and not self.is_banished and not self.is_hazard

    @property
    def blocks_movement(self) -> bool:
        """Hazards are passable; banished and dead combatants occupy nothing."""
        return self.is_active
