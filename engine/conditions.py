"""Status conditions, damage, healing, and temporary hit points.

Every function here returns an updated copy of the combatant and leaves
the input untouched, so callers can compare before/after states.
"""

from __future__ import annotations

from models.combatant import Combatant
from models.conditions import Condition, ConditionType


def has_condition(combatant: Combatant, condition_type: ConditionType) -> bool:
    """Check whether a combatant carries a condition of the given type."""
    return any(c.type == condition_type for c in combatant.conditions)


def apply_condition(combatant: Combatant, condition: Condition) -> Combatant:
    """Add a condition, or extend an existing one of the same type.

    A combatant holds at most one condition per type. Re-applying keeps
    the longer of the two durations; a condition with no rounds left is
    ignored.

    Args:
        combatant: The combatant receiving the condition.
        condition: The condition to apply.

    Returns:
        The updated combatant.
    """
    if condition.duration <= 0:
        # Already expired
        return combatant.model_copy()
    conditions = []
    found = False
    for existing in combatant.conditions:
        if existing.type == condition.type:
            found = True
            existing = existing.model_copy(
                update={"duration": max(existing.duration, condition.duration)}
            )
        conditions.append(existing)
    if not found:
        conditions.append(condition.model_copy())
    return combatant.model_copy(update={"conditions": conditions})


def remove_condition(combatant: Combatant, condition_type: ConditionType) -> Combatant:
    """Drop every condition of the given type."""
    conditions = [c for c in combatant.conditions if c.type != condition_type]
    return combatant.model_copy(update={"conditions": conditions})


def tick_conditions(combatant: Combatant) -> Combatant:
    """Count every condition down by one round, dropping the expired ones."""
    conditions = [
        c.model_copy(update={"duration": c.duration - 1})
        for c in combatant.conditions
        if c.duration - 1 > 0
    ]
    return combatant.model_copy(update={"conditions": conditions})


def apply_damage(combatant: Combatant, amount: int) -> Combatant:
    """Apply damage, spending temporary hit points before real ones.

    Args:
        combatant: The combatant taking damage.
        amount: Damage to deal (negative values are treated as 0).

    Returns:
        The updated combatant. HP never drops below 0.
    """
    amount = max(0, amount)
    absorbed = min(combatant.temp_hp, amount)
    remaining = amount - absorbed
    return combatant.model_copy(update={
        "temp_hp": combatant.temp_hp - absorbed,
        "hp": max(0, combatant.hp - remaining),
    })


def apply_temporary_hp(combatant: Combatant, amount: int) -> Combatant:
    """Grant temporary hit points. They don't stack: the higher value wins."""
    return combatant.model_copy(update={"temp_hp": max(combatant.temp_hp, amount)})


def apply_healing(combatant: Combatant, amount: int) -> Combatant:
    """Restore hit points up to the maximum. The dead are not healed."""
    if not combatant.is_alive or amount <= 0:
        return combatant.model_copy()
    return combatant.model_copy(update={"hp": min(combatant.max_hp, combatant.hp + amount)})


# Conditions that take away a creature's whole turn
INCAPACITATING = frozenset({
    ConditionType.INCAPACITATED,
    ConditionType.PARALYZED,
    ConditionType.PETRIFIED,
    ConditionType.STUNNED,
    ConditionType.UNCONSCIOUS,
})

# Conditions that drop a creature's speed to 0
IMMOBILIZING = frozenset({ConditionType.GRAPPLED, ConditionType.RESTRAINED})


def is_incapacitated(combatant: Combatant) -> bool:
    """Incapacitated creatures can't take actions or move."""
    return any(c.type in INCAPACITATING for c in combatant.conditions)


def is_immobilized(combatant: Combatant) -> bool:
    return is_incapacitated(combatant) or any(
        c.type in IMMOBILIZING for c in combatant.conditions
    )
