"""Hazard squares: damage and conditions for whoever stands in them."""

from __future__ import annotations

import logging
import random

from pydantic import BaseModel

from engine.conditions import apply_condition, apply_damage
from engine.dice import evaluate_expression
from models.combatant import Combatant
from models.conditions import HazardTrigger

logger = logging.getLogger(__name__)


class HazardOutcome(BaseModel):
    """The combatant after hazards fired, plus the log lines they produced."""
    combatant: Combatant
    logs: list[str] = []


def check_hazard_interactions(
    combatant: Combatant,
    all_combatants: list[Combatant],
    trigger_phase: HazardTrigger,
    rng: random.Random | None = None,
) -> HazardOutcome:
    """Fire every hazard sharing the combatant's square for this phase.

    Hazards apply in list order. Each one deals its damage (dice, or a
    flat amount) and then applies its condition.

    Args:
        combatant: The creature standing on the square.
        all_combatants: Everyone in the encounter.
        trigger_phase: START_TURN, END_TURN, or ENTER.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        HazardOutcome with the updated combatant and any log lines.
    """
    logs: list[str] = []
    current = combatant

    for hazard in all_combatants:
        if hazard.id == combatant.id or not hazard.is_hazard:
            continue
        if hazard.hazard_profile is None or not hazard.is_alive:
            continue
        if hazard.position != combatant.position:
            continue
        profile = hazard.hazard_profile
        if not profile.fires_on(trigger_phase):
            continue

        logger.debug("Hazard %s fires on %s (%s)", hazard.id, combatant.id, trigger_phase.value)

        if profile.damage is not None:
            if profile.damage.dice:
                amount = evaluate_expression(profile.damage.dice, rng).total
            else:
                amount = profile.damage.amount
            current = apply_damage(current, amount)
            logs.append(
                f"{current.name} takes {amount} {profile.damage.type} damage from {hazard.name}."
            )

        if profile.apply_condition is not None:
            current = apply_condition(current, profile.apply_condition)
            logs.append(
                f"{current.name} is {profile.apply_condition.type.value.lower()} by {hazard.name}."
            )

    return HazardOutcome(combatant=current, logs=logs)
