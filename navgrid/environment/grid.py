"""The grid: owning collection of tiles.

Tiles are keyed by the grid cell their location falls in. A cell holds at most
one persistent (authored) tile and at most one virtual tile; virtual tiles are
placed on demand on geometry that lacks an authored tile, are capped by
``GridSettings.max_virtual_tiles`` and never go on disallowed cells or geometry
tagged with ``GridSettings.disable_virtual_tiles_tag``.

The grid is passed explicitly to everything that needs it; there is no global
"current grid".
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

from ..geometry import Vector3
from ..interfaces import CollisionService, CollisionShape, TileProvisioner
from ..logging_utils import log_debug, log_warning
from ..pathing.planner import PathPlanner
from ..schemas import GridSettings
from .tiles import NavLadderTile, NavTile, trace_obstructed

if TYPE_CHECKING:  # pragma: no cover
    from ..movement.executor import GridMovementExecutor


Cell = Tuple[int, int, int]


class NavGridError(Exception):
    """Raised when the grid API is misused (e.g. sharing a tile between grids)."""


class NavGrid:
    """A grid that pawns can move around on."""

    def __init__(
        self,
        settings: Optional[GridSettings] = None,
        collision: Optional[CollisionService] = None,
        provisioner: Optional[TileProvisioner] = None,
    ):
        self.settings = settings or GridSettings()
        self.collision = collision
        self.provisioner = provisioner
        self._tiles: Dict[Cell, NavTile] = {}
        self._virtual_tiles: Dict[Cell, NavTile] = {}
        self._disallowed_cells: Set[Cell] = set()
        self._next_tile_id = 0
        # Bumped on every mutation so cached searches can tell they are stale
        self._version = 0
        self._range_cache: Optional[Tuple[tuple, int, List[NavTile]]] = None

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    @property
    def tile_size(self) -> float:
        return self.settings.tile_size

    def cell_of(self, location: Vector3) -> Cell:
        size = self.tile_size
        return (
            math.floor(location.x / size + 0.5),
            math.floor(location.y / size + 0.5),
            math.floor(location.z / size + 0.5),
        )

    def adjust_to_tile_location(self, location: Vector3) -> Vector3:
        """Snap ``location`` onto the grid layout horizontally, keeping its height."""
        size = self.tile_size
        return Vector3(
            math.floor(location.x / size + 0.5) * size,
            math.floor(location.y / size + 0.5) * size,
            location.z,
        )

    def disallow_virtual_tiles(self, cell: Cell) -> None:
        self._disallowed_cells.add(cell)

    # ------------------------------------------------------------------
    # Tile collection
    # ------------------------------------------------------------------

    @property
    def tiles(self) -> List[NavTile]:
        return list(self._tiles.values()) + list(self._virtual_tiles.values())

    @property
    def num_persistent_tiles(self) -> int:
        return len(self._tiles)

    @property
    def num_virtual_tiles(self) -> int:
        return len(self._virtual_tiles)

    def tile_at_cell(self, cell: Cell) -> Optional[NavTile]:
        return self._tiles.get(cell) or self._virtual_tiles.get(cell)

    def _default_extent(self) -> Vector3:
        size = self.tile_size
        return Vector3(size / 2, size / 2, size / 4)

    def create_tile(
        self,
        location: Vector3,
        *,
        cost: float = 1.0,
        slope_angle: float = 0.0,
        owner: Optional[str] = None,
        link: bool = True,
    ) -> Optional[NavTile]:
        tile = NavTile(
            location=location,
            cost=cost,
            extent=self._default_extent(),
            slope_angle=slope_angle,
            owner=owner,
        )
        return tile if self.add_tile(tile, link=link) else None

    def create_ladder(
        self,
        location: Vector3,
        *,
        height: float,
        facing_yaw: float = 0.0,
        cost: float = 1.0,
        owner: Optional[str] = None,
        link: bool = True,
    ) -> Optional[NavLadderTile]:
        size = self.tile_size
        ladder = NavLadderTile(
            location=location,
            cost=cost,
            extent=Vector3(size / 2, size / 2, height / 2),
            owner=owner,
            height=height,
            facing_yaw=facing_yaw,
            tile_size=size,
        )
        return ladder if self.add_tile(ladder, link=link) else None

    def add_tile(self, tile: NavTile, *, link: bool = True) -> bool:
        """Add ``tile`` to the grid. Returns False if its cell is already taken."""

        if tile.grid is not None and tile.grid is not self:
            raise NavGridError(f"Tile {tile.tile_id} already belongs to another grid")
        cell = self.cell_of(tile.location)
        store = self._virtual_tiles if tile.virtual else self._tiles
        if cell in store:
            log_warning(f"Cell {cell} already has a tile, ignoring tile at {tile.location}")
            return False
        tile.tile_id = self._next_tile_id
        self._next_tile_id += 1
        tile.grid = self
        store[cell] = tile
        if link:
            self.link_neighbours([tile])
        self._touch()
        return True

    def remove_tile(self, tile: NavTile) -> None:
        cell = self.cell_of(tile.location)
        store = self._virtual_tiles if tile.virtual else self._tiles
        if store.get(cell) is not tile:
            return
        del store[cell]
        for other in self.tiles:
            other.remove_neighbour(tile)
        tile.neighbours.clear()
        tile.grid = None
        self._touch()

    def connect(self, a: NavTile, b: NavTile, *, bidirectional: bool = True) -> None:
        """Explicitly link two tiles (``a`` -> ``b``, and back unless one-way)."""
        a.add_neighbour(b)
        if bidirectional:
            b.add_neighbour(a)
        self._touch()

    def link_neighbours(self, tiles: Optional[Iterable[NavTile]] = None) -> None:
        """Link tiles whose neighbourhood boxes overlap.

        With no argument every tile is linked against every other tile; otherwise
        only the given tiles are linked against the rest of the grid.
        """
        margin = self.settings.neighbourhood_margin
        everyone = self.tiles
        subjects = everyone if tiles is None else list(tiles)
        for tile in subjects:
            for other in everyone:
                if other is tile:
                    continue
                if tile.overlaps(other, margin):
                    tile.add_neighbour(other)
                    other.add_neighbour(tile)
        self._touch()

    def _touch(self) -> None:
        self._version += 1
        self._range_cache = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def obstructed(
        self, from_pos: Vector3, to_pos: Vector3, shape: Optional[CollisionShape] = None
    ) -> bool:
        """Fail-closed obstruction check between two points."""
        return trace_obstructed(self.collision, from_pos, to_pos, shape)

    def get_tile(
        self,
        world_location: Vector3,
        find_floor: bool = True,
        upward_trace_length: Optional[float] = None,
        downward_trace_length: Optional[float] = None,
    ) -> Optional[NavTile]:
        """Get the tile at ``world_location``, may return None."""

        up = self.settings.upward_trace_length if upward_trace_length is None else upward_trace_length
        down = self.settings.downward_trace_length if downward_trace_length is None else downward_trace_length
        if self.collision is not None:
            start = world_location + Vector3(0.0, 0.0, up) if find_floor else world_location
            end = world_location - Vector3(0.0, 0.0, down) if find_floor else world_location
            result = self.collision.trace(start, end, None)
            if result is not None and result.conclusive and result.tile is not None:
                return result.tile

        return self.find_tile_containing(world_location, max(up, down) if find_floor else 0.0)

    def find_tile_containing(
        self, world_location: Vector3, vertical_slack: float = 0.0
    ) -> Optional[NavTile]:
        """Closest tile whose box contains ``world_location`` (no tracing)."""
        best: Optional[NavTile] = None
        best_distance = math.inf
        for tile in self.tiles:
            if not tile.contains(world_location, vertical_slack):
                continue
            distance = tile.pawn_location.distance(world_location)
            if distance < best_distance:
                best, best_distance = tile, distance
        return best

    def get_tiles_in_range(self, agent: "GridMovementExecutor") -> List[NavTile]:
        """Tiles ``agent`` can end its move on, recomputed only when needed."""

        settings = agent.settings
        key = (
            agent.agent_id,
            self.cell_of(agent.pawn.get_location()),
            settings.movement_range,
            settings.available_movement_modes,
            settings.max_walk_angle,
        )
        if self._range_cache is not None:
            cached_key, version, tiles = self._range_cache
            if cached_key == key and version == self._version:
                return list(tiles)

        self.generate_virtual_tiles(agent)
        start = agent.get_tile()
        if start is None:
            return []
        reach = PathPlanner(self).compute_reachable(
            start,
            settings.movement_range,
            settings.available_movement_modes,
            shape=agent.shape,
            max_walk_angle=settings.max_walk_angle,
        )
        self._range_cache = (key, self._version, reach.tiles)
        return list(reach.tiles)

    def clear_tiles(self) -> None:
        """Drop cached search data."""
        self._range_cache = None

    # ------------------------------------------------------------------
    # Virtual tiles
    # ------------------------------------------------------------------

    def trace_tile_location(self, trace_start: Vector3, trace_end: Vector3) -> Optional[Vector3]:
        """Trace for floor geometry and return the grid-aligned tile location on it."""
        if self.collision is None:
            return None
        result = self.collision.trace(trace_start, trace_end, None)
        if result is None or not result.conclusive or not result.hit or result.location is None:
            return None
        if self.settings.disable_virtual_tiles_tag in result.tags:
            return None
        return self.adjust_to_tile_location(result.location)

    def place_tile(self, location: Vector3, owner: Optional[str] = None) -> Optional[NavTile]:
        """Place a virtual tile at ``location`` if capacity and the cell allow it."""

        if self.num_virtual_tiles >= self.settings.max_virtual_tiles:
            log_debug("Virtual tile capacity reached")
            return None
        cell = self.cell_of(location)
        if cell in self._disallowed_cells or self.tile_at_cell(cell) is not None:
            return None
        tile = NavTile(
            location=location,
            extent=self._default_extent(),
            owner=owner,
            virtual=True,
        )
        if not self.add_tile(tile, link=False):
            return None
        return tile

    def consider_place_tile(
        self, trace_start: Vector3, trace_end: Vector3, owner: Optional[str] = None
    ) -> Optional[NavTile]:
        location = self.trace_tile_location(trace_start, trace_end)
        if location is None:
            return None
        return self.place_tile(location, owner)

    def _candidate_locations(self, origin: Vector3, radius: float) -> Iterable[Vector3]:
        if self.provisioner is not None:
            return self.provisioner.candidate_locations(origin, radius, self.tile_size)
        size = self.tile_size
        steps = int(radius // size)
        center = self.adjust_to_tile_location(origin)
        return [
            center + Vector3(dx * size, dy * size, 0.0)
            for dx in range(-steps, steps + 1)
            for dy in range(-steps, steps + 1)
        ]

    def generate_virtual_tiles(self, agent: "GridMovementExecutor") -> int:
        """Place virtual tiles within the movement range of ``agent``.

        Existing virtual tiles are destroyed first; every planning request starts
        from a fresh set. Returns the number of tiles placed.
        """

        if not self.settings.enable_virtual_tiles:
            return 0
        self.destroy_virtual_tiles()
        origin = agent.pawn.get_location()
        radius = agent.settings.movement_range * self.tile_size
        up = Vector3(0.0, 0.0, self.settings.upward_trace_length)
        down = Vector3(0.0, 0.0, self.settings.downward_trace_length)
        placed: List[NavTile] = []
        for location in self._candidate_locations(origin, radius):
            if self.num_virtual_tiles >= self.settings.max_virtual_tiles:
                break
            tile = self.consider_place_tile(location + up, location - down)
            if tile is not None:
                placed.append(tile)
        if placed:
            self.link_neighbours(placed)
        log_debug(f"Placed {len(placed)} virtual tiles around {origin}")
        return len(placed)

    def generate_virtual_tile(self, agent: "GridMovementExecutor") -> Optional[NavTile]:
        """Place a single virtual tile under ``agent`` if there is no tile there."""
        location = agent.pawn.get_location()
        if self.get_tile(location) is not None:
            return None
        up = Vector3(0.0, 0.0, self.settings.upward_trace_length)
        down = Vector3(0.0, 0.0, self.settings.downward_trace_length)
        tile = self.consider_place_tile(location + up, location - down)
        if tile is not None:
            self.link_neighbours([tile])
        return tile

    def destroy_virtual_tiles(self) -> None:
        for tile in list(self._virtual_tiles.values()):
            self.remove_tile(tile)
