"""Special effects that run after an action has changed a target's HP."""

from __future__ import annotations

import logging
import math
from typing import assert_never

from pydantic import BaseModel

from config import BANISH_SENTINEL
from engine.conditions import apply_condition, remove_condition
from engine.grid import Tile
from engine.movement import is_occupied
from models.actions import Banish, Disintegrate, InstantKillConditional, Lifesteal, SpecialEffect
from models.combatant import Combatant
from models.conditions import Condition, ConditionType

logger = logging.getLogger(__name__)

# Ring search limit when a banished creature's square has been taken
_MAX_RESTORE_RADIUS = 20


class SpecialEffectOutcome(BaseModel):
    """Updated target, healing owed to the attacker, and log lines."""
    target: Combatant
    attacker_heal: int = 0
    logs: list[str] = []


def process_special_effect(
    effect: SpecialEffect,
    attacker: Combatant,
    target: Combatant,
    all_combatants: list[Combatant],
    damage_dealt: int,
) -> SpecialEffectOutcome:
    """Resolve a special effect against a target whose HP is already updated.

    Args:
        effect: The special effect to apply.
        attacker: The combatant that caused it.
        target: The affected combatant, after damage.
        all_combatants: Everyone in the encounter.
        damage_dealt: Damage the triggering hit actually dealt.

    Returns:
        SpecialEffectOutcome. Lifesteal never touches the attacker here;
        the caller applies ``attacker_heal``.
    """
    if isinstance(effect, Disintegrate):
        if target.hp == 0:
            target = target.model_copy(update={"is_permadeath": True, "body_destroyed": True})
            return SpecialEffectOutcome(
                target=target,
                logs=[f"{target.name} is reduced to a pile of fine grey dust!"],
            )
        return SpecialEffectOutcome(target=target)

    if isinstance(effect, InstantKillConditional):
        if target.is_alive and target.hp <= effect.hp_threshold:
            target = target.model_copy(update={"hp": 0, "is_permadeath": False})
            return SpecialEffectOutcome(
                target=target,
                logs=[f"{target.name} drops dead instantly!"],
            )
        return SpecialEffectOutcome(target=target)

    if isinstance(effect, Banish):
        if not target.is_alive or target.is_banished:
            return SpecialEffectOutcome(target=target)
        original = target.position
        target = target.model_copy(update={
            "original_position": original,
            "x": BANISH_SENTINEL[0],
            "y": BANISH_SENTINEL[1],
            "is_banished": True,
        })
        target = apply_condition(
            target, Condition(type=ConditionType.BANISHED, duration=effect.duration)
        )
        return SpecialEffectOutcome(
            target=target,
            logs=[f"{target.name} is banished to another plane!"],
        )

    if isinstance(effect, Lifesteal):
        heal = math.floor(damage_dealt * effect.fraction)
        logs = [f"{attacker.name} drains {heal} HP from {target.name}."] if heal > 0 else []
        return SpecialEffectOutcome(target=target, attacker_heal=heal, logs=logs)

    assert_never(effect)


def end_banishment(combatant: Combatant, all_combatants: list[Combatant]) -> Combatant:
    """Bring a banished combatant back to its original square.

    If someone has taken that square in the meantime, the nearest free
    square is used instead (searched ring by ring).
    """
    origin = combatant.original_position or (0, 0)
    others = [c for c in all_combatants if c.id != combatant.id]
    spot = _nearest_free_tile(origin, others)
    restored = combatant.model_copy(update={
        "x": spot[0],
        "y": spot[1],
        "is_banished": False,
        "original_position": None,
    })
    logger.debug("%s returns from banishment at %s", combatant.id, spot)
    return remove_condition(restored, ConditionType.BANISHED)


def _nearest_free_tile(origin: Tile, all_combatants: list[Combatant]) -> Tile:
    if not is_occupied(origin, all_combatants):
        return origin
    ox, oy = origin
    for radius in range(1, _MAX_RESTORE_RADIUS + 1):
        for x in range(ox - radius, ox + radius + 1):
            for y in range(oy - radius, oy + radius + 1):
                if max(abs(x - ox), abs(y - oy)) != radius:
                    continue
                if not is_occupied((x, y), all_combatants):
                    return (x, y)
    return origin
