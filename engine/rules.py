"""D&D 5e SRD combat rules: modifiers, proficiency, ranges, attack and save rolls."""

from __future__ import annotations

import math
import random
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel

from config import DEFAULT_MOVE_TILES, DEFAULT_WEAPON_ATTACK_BONUS, METERS_PER_TILE
from engine.dice import roll_d20
from engine.grid import meters_to_tiles

if TYPE_CHECKING:
    from models.actions import Action, Scaling
    from models.characters import CharacterRecord

# Spellcasting ability per class
SPELLCASTING_ABILITY = {
    "cleric": "wis",
    "druid": "wis",
    "ranger": "wis",
    "wizard": "int",
    "fighter": "int",   # Eldritch Knight
    "rogue": "int",     # Arcane Trickster
    "sorcerer": "cha",
    "warlock": "cha",
    "bard": "cha",
    "paladin": "cha",
}

_LEADING_NUMBER_RE = re.compile(r"\d+(?:[.,]\d+)?")


class AttackRoll(BaseModel):
    """Outcome of a d20 attack roll against an armour class."""
    natural: int
    total: int
    hit: bool
    critical: bool


class SaveRoll(BaseModel):
    """Outcome of a saving throw against a DC."""
    natural: int
    total: int
    success: bool


def ability_modifier(score: int) -> int:
    """Calculate ability modifier from a score using the 5e formula.

    Args:
        score: The ability score (e.g. 16).

    Returns:
        The modifier (e.g. +3 for score 16).
    """
    return (score - 10) // 2


def proficiency_bonus(level: int) -> int:
    """Proficiency bonus by character level: +2 at 1, +3 at 5, +4 at 9, +5 at 13."""
    if level >= 13:
        return 5
    if level >= 9:
        return 4
    if level >= 5:
        return 3
    return 2


def spellcasting_ability(class_key: str | None) -> str:
    """The ability a class casts with. Unknown classes fall back to INT."""
    return SPELLCASTING_ABILITY.get((class_key or "").lower(), "int")


def spellcasting_modifier(character: CharacterRecord) -> int:
    """Ability modifier of the character's spellcasting ability."""
    ability = spellcasting_ability(character.class_key)
    return ability_modifier(character.stats.abilities.score(ability))


def spell_attack_bonus(character: CharacterRecord) -> int:
    """Spell attack bonus = proficiency + spellcasting modifier."""
    return proficiency_bonus(character.level) + spellcasting_modifier(character)


def spell_save_dc(character: CharacterRecord) -> int:
    """Spell save DC = 8 + proficiency + spellcasting modifier."""
    return 8 + proficiency_bonus(character.level) + spellcasting_modifier(character)


def is_proficient_with(character: CharacterRecord, action: Action) -> bool:
    """Check weapon proficiency by category ("martial") or weapon name."""
    known = {p.lower() for p in character.weapon_proficiencies}
    if action.name.lower() in known:
        return True
    return bool(action.category) and action.category.lower() in known


def weapon_attack_bonus(action: Action, character: CharacterRecord | None = None) -> int:
    """Attack bonus for a plain weapon attack.

    An explicit bonus on the action wins. With a character record the
    bonus is STR (or DEX for finesse and ranged weapons) plus proficiency
    if proficient. Otherwise the flat default is used.
    """
    if action.attack_bonus is not None:
        return action.attack_bonus
    if character is None:
        return DEFAULT_WEAPON_ATTACK_BONUS

    abilities = character.stats.abilities
    props = {p.lower() for p in action.properties}
    ability = abilities.strength
    if "finesse" in props or "ammunition" in props or action.range:
        ability = max(ability, abilities.dexterity)
    bonus = ability_modifier(ability)
    if is_proficient_with(character, action):
        bonus += proficiency_bonus(character.level)
    return bonus


def initiative_bonus(character: CharacterRecord) -> int:
    """Bonus added on top of the DEX modifier: the Alert feat adds proficiency."""
    feats = {f.lower() for f in character.feats}
    if "alert" in feats:
        return proficiency_bonus(character.level)
    return 0


def roll_initiative(dexterity: int, bonus: int = 0, rng: random.Random | None = None) -> int:
    """Roll initiative: d20 + dexterity modifier + any flat bonus.

    Args:
        dexterity: The combatant's DEX score.
        bonus: Extra initiative bonus (e.g. from feats).
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The initiative roll total.
    """
    return roll_d20(rng=rng) + ability_modifier(dexterity) + bonus


def speed_to_tiles(speed: str | float | None) -> int:
    """Movement budget in squares from a speed like "9m" (falls back to 6)."""
    if isinstance(speed, (int, float)) and not isinstance(speed, bool):
        meters = float(speed)
    else:
        match = re.match(r"\s*(\d+)", str(speed or ""))
        if not match:
            return DEFAULT_MOVE_TILES
        meters = float(match.group(1))
    tiles = math.floor(meters / METERS_PER_TILE)
    return tiles if tiles > 0 else DEFAULT_MOVE_TILES


def weapon_range_tiles(action: Action) -> int:
    """How far an action reaches, in squares.

    Checked in order: an explicit ``range_m``, the "Reach" property (2),
    touch range (1), a "normal/long" range string such as "24/96", a
    reach string such as "1,5m", and finally 1 square.
    """
    if action.range_m is not None:
        return meters_to_tiles(action.range_m)

    if any(p.lower() == "reach" for p in action.properties):
        return 2

    if action.range:
        rng_text = action.range.strip().lower()
        if rng_text in ("touch", "berührung"):
            return 1
        match = _LEADING_NUMBER_RE.search(rng_text)
        if match:
            return meters_to_tiles(float(match.group(0).replace(",", ".")))

    if action.reach:
        match = _LEADING_NUMBER_RE.search(action.reach)
        if match:
            return max(1, meters_to_tiles(float(match.group(0).replace(",", "."))))

    return 1


def cantrip_dice(level: int, scaling: Scaling | None) -> str | None:
    """Pick the dice for the highest scaling step the caster has reached."""
    if scaling is None or not scaling.dice_at_levels:
        return None
    reached = [lvl for lvl in scaling.dice_at_levels if lvl <= level]
    if not reached:
        return None
    return scaling.dice_at_levels[max(reached)]


def resolve_attack_roll(
    attack_bonus: int,
    armor_class: int,
    rng: random.Random | None = None,
) -> AttackRoll:
    """Roll d20 + bonus against AC. A natural 20 always hits and crits."""
    natural = roll_d20(rng=rng)
    total = natural + attack_bonus
    critical = natural == 20
    return AttackRoll(
        natural=natural,
        total=total,
        hit=total >= armor_class or critical,
        critical=critical,
    )


def resolve_saving_throw(
    modifier: int,
    dc: int,
    rng: random.Random | None = None,
) -> SaveRoll:
    """Roll d20 + modifier against a DC. Rolling below the DC is a failure."""
    natural = roll_d20(rng=rng)
    total = natural + modifier
    return SaveRoll(natural=natural, total=total, success=total >= dc)
