"""Occupancy checks, forced movement (push/pull), and teleport validation."""

from __future__ import annotations

import math
from collections.abc import Iterable

from engine.grid import Tile, meters_to_tiles
from models.combatant import Combatant


def is_occupied(
    coords: Tile,
    all_combatants: Iterable[Combatant],
    ignore_id: str | None = None,
) -> bool:
    """Check whether a square is blocked by a creature.

    Dead, banished, and hazard tokens don't block a square.

    Args:
        coords: (x, y) square to test.
        all_combatants: Everyone in the encounter.
        ignore_id: A combatant to leave out (usually the one moving).

    Returns:
        True if another movement-blocking combatant stands there.
    """
    for c in all_combatants:
        if c.id == ignore_id or not c.blocks_movement:
            continue
        if c.position == tuple(coords):
            return True
    return False


def is_valid_teleport(coords: Tile, all_combatants: Iterable[Combatant]) -> bool:
    """A teleport destination must not hold a living creature."""
    return not is_occupied(coords, all_combatants)


def forced_movement(
    target: Combatant,
    source: Combatant,
    kind: str,
    distance_m: float,
    all_combatants: list[Combatant],
) -> Tile:
    """Work out where a push or pull leaves the target.

    The target moves one square at a time along the rounded direction
    from the source and stops in front of the first occupied square.

    Args:
        target: The combatant being moved.
        source: The combatant doing the pushing or pulling.
        kind: "PUSH" (away from source) or "PULL" (toward it).
        distance_m: How far to move, in metres.
        all_combatants: Everyone in the encounter, for collision.

    Returns:
        The (x, y) square the target ends up on.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    length = math.hypot(dx, dy)
    if length == 0:
        return target.position

    step_x = round(dx / length)
    step_y = round(dy / length)
    if str(kind).upper() == "PULL":
        step_x, step_y = -step_x, -step_y

    x, y = target.position
    for _ in range(meters_to_tiles(distance_m)):
        nxt = (x + step_x, y + step_y)
        if is_occupied(nxt, all_combatants, ignore_id=target.id):
            break
        x, y = nxt
    return (x, y)
