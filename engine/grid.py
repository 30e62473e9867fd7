"""Grid distance, unit conversion, and area-of-effect geometry."""

from __future__ import annotations

import math

from pydantic import BaseModel

from config import METERS_PER_TILE

Tile = tuple[int, int]


class AreaShape(BaseModel):
    """Shape descriptor for an area effect, sizes in metres."""
    type: str | None = None         # "POINT", "SPHERE", "CYLINDER", "CONE", "LINE", "CUBE"
    size_m: float = 0
    radius_m: float | None = None


def meters_to_tiles(meters: float | None) -> int:
    """Convert metres to whole grid squares (1 square = 1.5m, rounded down)."""
    if not meters:
        return 0
    return math.floor(meters / METERS_PER_TILE)


def distance(pos1: Tile, pos2: Tile) -> int:
    """Calculate distance in squares between two grid positions.

    Uses 5e grid rules where diagonal movement costs the same as orthogonal
    movement (Chebyshev distance).

    Args:
        pos1: (x, y) of first position.
        pos2: (x, y) of second position.

    Returns:
        Distance in squares.
    """
    dx = abs(pos1[0] - pos2[0])
    dy = abs(pos1[1] - pos2[1])
    return max(dx, dy)


def is_adjacent(pos1: Tile, pos2: Tile) -> bool:
    """Check if two positions are adjacent (including diagonals)."""
    return distance(pos1, pos2) <= 1


def affected_tiles(origin: Tile, target: Tile, shape: AreaShape | None) -> list[Tile]:
    """Determine the squares covered by an area effect.

    Args:
        origin: (x, y) of the caster.
        target: (x, y) of the clicked point.
        shape: Shape descriptor; None or POINT means the target square only.

    Returns:
        List of (x, y) squares, without duplicates.
    """
    if shape is None or (not shape.type and shape.radius_m is None) or shape.type == "POINT":
        return [target]

    size = meters_to_tiles(shape.size_m)

    if shape.type in ("SPHERE", "CYLINDER") or shape.radius_m is not None:
        radius = meters_to_tiles(shape.radius_m) if shape.radius_m is not None else size
        return _sphere(target, radius)
    if shape.type == "CONE":
        return _cone(origin, target, size)
    if shape.type == "LINE":
        return _line(origin, target, size)
    if shape.type == "CUBE":
        return _cube(target, size)
    return [target]


def _sphere(center: Tile, radius: int) -> list[Tile]:
    """All squares within Chebyshev radius of the centre."""
    cx, cy = center
    return [
        (x, y)
        for x in range(cx - radius, cx + radius + 1)
        for y in range(cy - radius, cy + radius + 1)
    ]


def _cone(origin: Tile, target: Tile, radius: int) -> list[Tile]:
    """A 90 degree cone anchored at the caster, pointing at the target."""
    ox, oy = origin
    if origin == target:
        return []
    aim = math.degrees(math.atan2(target[1] - oy, target[0] - ox))

    tiles: list[Tile] = []
    for x in range(ox - radius, ox + radius + 1):
        for y in range(oy - radius, oy + radius + 1):
            dist = distance(origin, (x, y))
            if dist == 0 or dist > radius:
                continue
            angle = math.degrees(math.atan2(y - oy, x - ox))
            diff = abs(angle - aim)
            if diff > 180:
                diff = 360 - diff
            if diff <= 45:
                tiles.append((x, y))
    return tiles


def _line(origin: Tile, target: Tile, length: int) -> list[Tile]:
    """Ray from the caster through the target, rasterised by rounding."""
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    norm = math.hypot(dx, dy)
    if norm == 0:
        return []
    dir_x, dir_y = dx / norm, dy / norm

    tiles: list[Tile] = []
    for i in range(1, length + 1):
        tile = (_round_half_up(origin[0] + dir_x * i), _round_half_up(origin[1] + dir_y * i))
        if tile not in tiles:
            tiles.append(tile)
    return tiles


def _cube(center: Tile, side: int) -> list[Tile]:
    """Square of the given side length centred on the target."""
    half = side // 2
    cx, cy = center
    return [
        (x, y)
        for x in range(cx - half, cx + half + 1)
        for y in range(cy - half, cy + half + 1)
    ]


def _round_half_up(value: float) -> int:
    # Halves round toward +infinity
    return math.floor(value + 0.5)
