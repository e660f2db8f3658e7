"""Tile graph: tiles, the owning grid and an in-memory collision world."""

from .tiles import NavLadderTile, NavTile, PathLeg, trace_obstructed
from .grid import Cell, NavGrid, NavGridError
from .collision import Box, BoxCollisionWorld
from .helpers import grid_from_ascii, render_ascii_window

__all__ = [
    "NavTile",
    "NavLadderTile",
    "PathLeg",
    "trace_obstructed",
    "Cell",
    "NavGrid",
    "NavGridError",
    "Box",
    "BoxCollisionWorld",
    "grid_from_ascii",
    "render_ascii_window",
]
