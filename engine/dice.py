"""Dice rolling utilities for the combat engine."""

import logging
import random
import re

from pydantic import BaseModel

from config import MAX_DICE_COUNT

logger = logging.getLogger(__name__)

_DICE_RE = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


class DiceResult(BaseModel):
    """Result of a dice roll."""
    total: int
    rolls: list[int]
    modifier: int
    notation: str
    breakdown: str


def roll_die(sides: int, rng: random.Random | None = None) -> int:
    """Roll a single die with the given number of sides.

    Args:
        sides: Number of faces (e.g. 20).
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        A uniformly distributed integer in [1, sides].
    """
    rng = rng or random.Random()
    return rng.randint(1, max(1, sides))


def normalize_notation(notation: str) -> str:
    """Lower-case, strip whitespace, and accept German 'W' dice ("2W6")."""
    return re.sub(r"\s+", "", notation).lower().replace("w", "d").replace(",", ".")


def evaluate_expression(notation: str | None, rng: random.Random | None = None) -> DiceResult:
    """Parse and roll dice notation like '2d6+3', '1d20', '4d6-1'.

    Malformed input never raises: the leading integer of the string is used
    as a flat value ("7" -> 7), otherwise the result is 0. At most
    MAX_DICE_COUNT dice are rolled.

    Args:
        notation: Dice notation string (e.g. "2d6+3").
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        DiceResult with total, individual rolls, modifier, and a breakdown.
    """
    if not notation:
        return DiceResult(total=0, rolls=[], modifier=0, notation="", breakdown="0")

    clean = normalize_notation(str(notation))
    match = _DICE_RE.match(clean)
    if not match:
        logger.warning("Invalid dice notation %r, falling back to a flat value", notation)
        flat = _LEADING_INT_RE.match(clean)
        value = int(flat.group(0)) if flat else 0
        return DiceResult(
            total=value,
            rolls=[],
            modifier=value,
            notation=clean,
            breakdown=str(value),
        )

    num_dice = int(match.group(1))
    die_size = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0
    if num_dice > MAX_DICE_COUNT:
        logger.warning("Dice count in %r capped at %d", notation, MAX_DICE_COUNT)
        num_dice = MAX_DICE_COUNT

    rolls = [roll_die(die_size, rng) for _ in range(num_dice)]
    total = sum(rolls) + modifier

    breakdown = f"[{', '.join(str(r) for r in rolls)}]"
    if modifier:
        breakdown += f" {'+' if modifier > 0 else '-'} {abs(modifier)}"

    return DiceResult(
        total=total,
        rolls=rolls,
        modifier=modifier,
        notation=clean,
        breakdown=breakdown,
    )


def roll_d20(
    advantage: bool = False,
    disadvantage: bool = False,
    rng: random.Random | None = None,
) -> int:
    """Roll a d20, optionally with advantage or disadvantage.

    Args:
        advantage: Roll twice, take the higher.
        disadvantage: Roll twice, take the lower.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The resulting d20 roll.
    """
    rng = rng or random.Random()

    if advantage and disadvantage:
        # They cancel out, straight roll
        return rng.randint(1, 20)

    if advantage:
        return max(rng.randint(1, 20), rng.randint(1, 20))

    if disadvantage:
        return min(rng.randint(1, 20), rng.randint(1, 20))

    return rng.randint(1, 20)
