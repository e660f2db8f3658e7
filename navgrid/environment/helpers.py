"""Utilities for building grids from text layouts and dumping them for debugging."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..geometry import Vector3
from ..schemas import GridSettings
from .collision import BoxCollisionWorld
from .grid import NavGrid
from .tiles import NavLadderTile, NavTile


_DEFAULT_TILE_SYMBOLS: Dict[str, str] = {
    "floor": ". ",
    "virtual": ", ",
    "ladder": "H ",
    "empty": "  ",
}


def grid_from_ascii(
    rows: Sequence[str],
    *,
    settings: Optional[GridSettings] = None,
    collision: Optional[BoxCollisionWorld] = None,
    height: float = 0.0,
) -> NavGrid:
    """Build a flat grid from a text layout.

    The first row is the northernmost (highest y). Symbols:

    * ``.`` floor tile with entry cost 1
    * ``2``-``9`` floor tile with that entry cost
    * ``#`` wall: no tile, and a blocker box in the collision world
    * anything else: empty

    A ``BoxCollisionWorld`` is created when walls are present and no collision
    world was supplied. Tiles are linked to their 8 surrounding cells.
    """

    settings = settings or GridSettings()
    size = settings.tile_size
    if collision is None and any("#" in row for row in rows):
        collision = BoxCollisionWorld()
    grid = NavGrid(settings=settings, collision=collision)

    top = len(rows) - 1
    for r, row in enumerate(rows):
        y = (top - r) * size
        for x_index, symbol in enumerate(row):
            location = Vector3(x_index * size, y, height)
            if symbol == ".":
                grid.create_tile(location, link=False)
            elif symbol.isdigit() and symbol not in "01":
                grid.create_tile(location, cost=float(symbol), link=False)
            elif symbol == "#" and collision is not None:
                collision.add_box(
                    location + Vector3(0.0, 0.0, size / 2),
                    Vector3(size / 2, size / 2, size / 2),
                    tags={"wall"},
                )
    grid.link_neighbours()
    return grid


def render_ascii_window(
    grid: NavGrid,
    center: Vector3,
    *,
    radius: int,
    marks: Optional[Dict[NavTile, str]] = None,
    symbols: Optional[Dict[str, str]] = None,
) -> str:
    """Render the cells around ``center`` on its floor level.

    ``marks`` overrides the symbol of individual tiles (e.g. reachable tiles or a
    path); unknown tiles fall back to the default symbols.
    """

    if radius <= 0:
        radius = 0

    mapping = {**_DEFAULT_TILE_SYMBOLS}
    if symbols:
        mapping.update(symbols)
    marks = marks or {}

    cx, cy, cz = grid.cell_of(center)
    by_column: Dict[tuple, NavTile] = {}
    for tile in grid.tiles:
        ix, iy, iz = grid.cell_of(tile.location)
        if isinstance(tile, NavLadderTile) or iz == cz:
            by_column.setdefault((ix, iy), tile)

    lines: List[str] = []
    for y in range(cy + radius, cy - radius - 1, -1):
        row_chars: List[str] = []
        for x in range(cx - radius, cx + radius + 1):
            tile = by_column.get((x, y))
            if tile is None:
                row_chars.append(mapping["empty"])
            elif tile in marks:
                row_chars.append(marks[tile])
            elif isinstance(tile, NavLadderTile):
                row_chars.append(mapping["ladder"])
            elif tile.virtual:
                row_chars.append(mapping["virtual"])
            else:
                row_chars.append(mapping["floor"])
        lines.append("".join(row_chars))

    return "\n".join(lines)
