"""Cost-bounded reachability and least-cost path search over the tile graph.

Both searches are uniform-cost (Dijkstra) expansions. The cost of an edge is the
entry cost of the tile being entered. Ties in the priority queue are broken by
discovery order, so results depend only on the graph, the budget and the mode
set, never on call order.
"""

from __future__ import annotations

import heapq
import itertools
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..interfaces import CollisionShape
from ..logging_utils import log_debug
from ..schemas import LOCOMOTION_MODES, MovementMode

if TYPE_CHECKING:  # pragma: no cover
    from ..environment.grid import NavGrid
    from ..environment.tiles import NavTile


@dataclass
class Path:
    """Ordered tiles from start to target with cumulative entry costs."""

    tiles: List["NavTile"]
    costs: List[float]

    @property
    def total_cost(self) -> float:
        return self.costs[-1] if self.costs else 0.0

    @property
    def start(self) -> "NavTile":
        return self.tiles[0]

    @property
    def target(self) -> "NavTile":
        return self.tiles[-1]

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles)


@dataclass
class Reachability:
    """Settled costs of a budget-bounded search.

    ``costs``/``previous`` cover every settled tile, including transit-only
    ones such as ladders; ``tiles`` only holds tiles the agent may stop on.
    """

    start: "NavTile"
    budget: float
    costs: Dict["NavTile", float] = field(default_factory=dict)
    previous: Dict["NavTile", Optional["NavTile"]] = field(default_factory=dict)
    tiles: List["NavTile"] = field(default_factory=list)

    def path_to(self, tile: "NavTile") -> Optional[Path]:
        """Rebuild the cheapest path to a settled tile."""
        if tile not in self.costs:
            return None
        return _unwind(self.previous, self.costs, tile)


def _unwind(
    previous: Dict["NavTile", Optional["NavTile"]],
    costs: Dict["NavTile", float],
    target: "NavTile",
) -> Path:
    tiles: List["NavTile"] = []
    current: Optional["NavTile"] = target
    while current is not None:
        tiles.append(current)
        current = previous[current]
    tiles.reverse()
    return Path(tiles=tiles, costs=[costs[t] for t in tiles])


class PathPlanner:
    """Dijkstra searches over a ``NavGrid``'s tiles."""

    def __init__(self, grid: "NavGrid"):
        self.grid = grid

    def _search(
        self,
        start: "NavTile",
        modes: FrozenSet[MovementMode],
        shape: Optional[CollisionShape],
        max_walk_angle: float,
        budget: float,
        target: Optional["NavTile"] = None,
    ) -> Tuple[Dict["NavTile", float], Dict["NavTile", Optional["NavTile"]]]:
        """Run the expansion; returns settled costs and back-pointers."""

        collision = self.grid.collision
        best: Dict["NavTile", float] = {start: 0.0}
        previous: Dict["NavTile", Optional["NavTile"]] = {start: None}
        settled: Dict["NavTile", float] = {}
        counter = itertools.count()
        queue: List[Tuple[float, int, "NavTile"]] = [(0.0, next(counter), start)]

        while queue:
            cost, _, tile = heapq.heappop(queue)
            if tile in settled:
                continue
            if cost > best.get(tile, math.inf):
                continue  # stale entry
            settled[tile] = cost
            if tile is target:
                break
            for neighbour in tile.get_unobstructed_neighbours(shape, collision):
                if neighbour in settled:
                    continue
                if not neighbour.traversable(max_walk_angle, modes):
                    continue
                new_cost = cost + neighbour.cost
                if new_cost > budget:
                    continue
                if new_cost < best.get(neighbour, math.inf):
                    best[neighbour] = new_cost
                    previous[neighbour] = tile
                    heapq.heappush(queue, (new_cost, next(counter), neighbour))

        return settled, {tile: previous[tile] for tile in settled}

    def compute_reachable(
        self,
        start: "NavTile",
        budget: float,
        modes: Iterable[MovementMode],
        *,
        shape: Optional[CollisionShape] = None,
        max_walk_angle: float = 45.0,
    ) -> Reachability:
        """All tiles whose cheapest entry cost from ``start`` is within ``budget``."""

        mode_set = frozenset(modes)
        costs, previous = self._search(start, mode_set, shape, max_walk_angle, max(budget, 0.0))
        stoppable = [
            tile for tile in costs if tile.legal_position_at_end_of_turn(max_walk_angle, mode_set)
        ]
        log_debug(
            f"Reachability from tile {start.tile_id}: {len(costs)} settled, {len(stoppable)} stoppable"
        )
        return Reachability(
            start=start, budget=budget, costs=costs, previous=previous, tiles=stoppable
        )

    def find_path(
        self,
        start: "NavTile",
        target: "NavTile",
        modes: Iterable[MovementMode],
        *,
        shape: Optional[CollisionShape] = None,
        max_walk_angle: float = 45.0,
    ) -> Optional[Path]:
        """Least-cost path from ``start`` to ``target``, or None when there is none."""

        mode_set = frozenset(modes)
        if not mode_set & LOCOMOTION_MODES:
            return None
        if start is target:
            return Path(tiles=[start], costs=[0.0])
        if not target.legal_position_at_end_of_turn(max_walk_angle, mode_set):
            return None

        costs, previous = self._search(start, mode_set, shape, max_walk_angle, math.inf, target)
        if target not in costs:
            log_debug(f"No path from tile {start.tile_id} to tile {target.tile_id}")
            return None
        return _unwind(previous, costs, target)
