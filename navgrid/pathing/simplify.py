"""String pulling: straighten a tile-by-tile path into fewer waypoints.

Starting from an anchor tile, intermediate tiles are dropped for as long as the
straight line from the anchor to the next tile is unobstructed and runs over
walkable floor the whole way. Adjacency in the raw path does not make a skipped
span legal on its own, so every shortcut is checked again here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Sequence

from ..interfaces import CollisionShape
from ..logging_utils import log_debug
from ..schemas import MovementMode

if TYPE_CHECKING:  # pragma: no cover
    from ..environment.grid import NavGrid
    from ..environment.tiles import NavTile


def _span_over_floor(
    grid: "NavGrid",
    start: "NavTile",
    end: "NavTile",
    modes: FrozenSet[MovementMode],
    max_walk_angle: float,
) -> bool:
    """Every sample along start -> end lies on a walkable floor tile."""
    a, b = start.pawn_location, end.pawn_location
    length = a.distance(b)
    step = grid.tile_size / 4
    samples = max(int(length / step), 1)
    for i in range(1, samples):
        point = a.lerp(b, i / samples)
        tile = grid.find_tile_containing(point)
        if tile is None or not tile.allows_string_pull:
            return False
        if not tile.traversable(max_walk_angle, modes):
            return False
    return True


def can_shortcut(
    grid: "NavGrid",
    tiles: Sequence["NavTile"],
    anchor: int,
    candidate: int,
    modes: FrozenSet[MovementMode],
    shape: Optional[CollisionShape],
    max_walk_angle: float,
) -> bool:
    """Can the pawn go straight from ``tiles[anchor]`` to ``tiles[candidate]``?"""

    span = tiles[anchor:candidate + 1]
    if not all(tile.allows_string_pull for tile in span):
        return False
    if not all(tile.traversable(max_walk_angle, modes) for tile in span):
        return False
    start, end = tiles[anchor], tiles[candidate]
    if grid.obstructed(start.pawn_location, end.pawn_location, shape):
        return False
    return _span_over_floor(grid, start, end, modes, max_walk_angle)


def string_pull(
    grid: "NavGrid",
    tiles: Sequence["NavTile"],
    modes: Iterable[MovementMode],
    *,
    shape: Optional[CollisionShape] = None,
    max_walk_angle: float = 45.0,
) -> List["NavTile"]:
    """Greedy string pulling; keeps the first and last tile exactly."""

    mode_set = frozenset(modes)
    if len(tiles) < 3:
        return list(tiles)

    result = [tiles[0]]
    anchor = 0
    index = 1
    while index < len(tiles) - 1:
        if can_shortcut(grid, tiles, anchor, index + 1, mode_set, shape, max_walk_angle):
            index += 1
            continue
        result.append(tiles[index])
        anchor = index
        index += 1
    result.append(tiles[-1])

    log_debug(f"String pulled {len(tiles)} tiles down to {len(result)} waypoints")
    return result
