"""Character records and creature templates consumed by the combat engine."""

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator

from config import (
    DEFAULT_ENEMY_AC,
    DEFAULT_ENEMY_ATTACK_BONUS,
    DEFAULT_ENEMY_HP,
    DEFAULT_ENEMY_SAVE_DC,
    DEFAULT_ENEMY_SPEED,
    DEFAULT_PLAYER_AC,
    DEFAULT_PLAYER_HP,
)
from models.actions import Action

_ABILITY_KEYS = {
    "str": "strength",
    "dex": "dexterity",
    "con": "constitution",
    "int": "intelligence",
    "wis": "wisdom",
    "cha": "charisma",
}


class AbilityScores(BaseModel):
    """The six core ability scores (accepts 'str'/'dex'/... keys too)."""
    model_config = ConfigDict(populate_by_name=True)

    strength: int = Field(10, alias="str")
    dexterity: int = Field(10, alias="dex")
    constitution: int = Field(10, alias="con")
    intelligence: int = Field(10, alias="int")
    wisdom: int = Field(10, alias="wis")
    charisma: int = Field(10, alias="cha")

    def score(self, ability: str) -> int:
        """Look up a score by short or long name ("dex", "Dexterity")."""
        key = ability.strip().lower()
        key = _ABILITY_KEYS.get(key[:3], key)
        return getattr(self, key, 10)


class CharacterStats(BaseModel):
    """Derived sheet values produced by character creation."""
    abilities: AbilityScores = AbilityScores()
    hp: NonNegativeInt | None = None
    max_hp: int = Field(DEFAULT_PLAYER_HP, alias="maxHp", ge=1)
    armor_class: int = DEFAULT_PLAYER_AC
    speed: str | float = "9m"

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _hp_within_max(self) -> "CharacterStats":
        if self.hp is not None and self.hp > self.max_hp:
            self.hp = self.max_hp
        return self


class CharacterRecord(BaseModel):
    """The finished player character handed over by the creation wizard."""
    id: str = "player"
    name: str = "Hero"
    level: int = 1
    class_key: str | None = None    # "wizard", "cleric", ...
    feats: list[str] = []
    weapon_proficiencies: list[str] = []  # Categories or weapon names
    stats: CharacterStats = CharacterStats()
    actions: list[Action] = []


class HitPoints(BaseModel):
    """Creature HP written as average/max, e.g. {"average": 7, "max": 12}."""
    average: NonNegativeInt | None = None
    max: NonNegativeInt | None = None


class EnemyTemplate(BaseModel):
    """A creature entry from an encounter definition or the bestiary."""
    name: str | None = None
    instance_id: str | None = Field(None, alias="instanceId")
    hp: NonNegativeInt | HitPoints = DEFAULT_ENEMY_HP
    armor_class: int = Field(DEFAULT_ENEMY_AC, alias="ac")
    stats: AbilityScores = AbilityScores()
    speed: str | float = DEFAULT_ENEMY_SPEED
    attack_bonus: int = DEFAULT_ENEMY_ATTACK_BONUS
    save_dc: int = DEFAULT_ENEMY_SAVE_DC
    actions: list[Action] = []

    model_config = ConfigDict(populate_by_name=True)

    def hit_points(self) -> int:
        """Resolve the template's HP to a single starting value."""
        if isinstance(self.hp, int):
            return self.hp
        return self.hp.average or self.hp.max or DEFAULT_ENEMY_HP
