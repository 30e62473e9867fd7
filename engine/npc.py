"""Server-controlled enemy AI: movement planning toward the player."""

from __future__ import annotations

from engine.grid import Tile, distance
from engine.movement import is_occupied
from models.combatant import Combatant

# Neighbour order is fixed so ties resolve the same way every time
_NEIGHBOURS = [
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
]


def plan_ai_move(
    npc: Combatant,
    target: Combatant,
    all_combatants: list[Combatant],
    attack_range: int,
    budget: int,
) -> list[Tile]:
    """Plan a greedy walk toward the target.

    Each step picks the free neighbouring square that brings the NPC
    closest to the target and must strictly reduce the distance. The
    walk ends once the target is within attack range, the budget is
    spent, or no step helps.

    Args:
        npc: The enemy taking its turn.
        target: The combatant to close in on (usually the player).
        all_combatants: Everyone in the encounter, for collision.
        attack_range: Reach of the NPC's default attack, in squares.
        budget: Movement available, in squares.

    Returns:
        The squares visited in order; empty if the NPC stays put.
    """
    path: list[Tile] = []
    pos = npc.position
    goal = target.position

    for _ in range(budget):
        current = distance(pos, goal)
        if current <= attack_range:
            break

        best: Tile | None = None
        best_key = (current, 0)
        for dx, dy in _NEIGHBOURS:
            step = (pos[0] + dx, pos[1] + dy)
            d = distance(step, goal)
            if d >= current or is_occupied(step, all_combatants, ignore_id=npc.id):
                continue
            # Among equally close squares prefer the straighter line
            key = (d, (step[0] - goal[0]) ** 2 + (step[1] - goal[1]) ** 2)
            if best is None or key < best_key:
                best, best_key = step, key

        if best is None:
            break
        path.append(best)
        pos = best

    return path


def pick_target(npc: Combatant, all_combatants: list[Combatant]) -> Combatant | None:
    """The nearest active player-side combatant, or None if all are down."""
    candidates = [
        c for c in all_combatants
        if c.faction.value == "player" and c.is_active
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda c: distance(npc.position, c.position))
