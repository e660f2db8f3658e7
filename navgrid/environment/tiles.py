"""Tiles: the nodes of the movement graph.

A tile knows its neighbours, what it costs to enter, which movement modes can use
it, whether a pawn may end its move on it, and how a path running through it is
laid out (``path_legs``). Tiles are owned by a ``NavGrid``; the ``owner`` field is
only an id for the world object the tile was authored on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..geometry import Rotator, Vector3, normalize_axis
from ..interfaces import CollisionService, CollisionShape
from ..logging_utils import log_warning
from ..schemas import CLIMBING_MODES, MovementMode


WALKING_LEG_MODES: FrozenSet[MovementMode] = frozenset(
    {MovementMode.WALKING, MovementMode.IN_PLACE_TURN}
)


@dataclass(frozen=True)
class PathLeg:
    """A piece of path ending at ``point``.

    ``modes`` are the modes that may be used to get there, ``fallback_modes`` are
    used when the agent has none of ``modes`` (e.g. a climb-only agent stepping
    onto a ladder).
    """

    point: Vector3
    modes: FrozenSet[MovementMode]
    fallback_modes: FrozenSet[MovementMode] = frozenset()
    rotation_hint: Optional[Rotator] = None


def trace_obstructed(
    collision: Optional[CollisionService],
    start: Vector3,
    end: Vector3,
    shape: Optional[CollisionShape],
) -> bool:
    """Return True unless the collision service positively reports a clear line."""

    if collision is None:
        return False
    offset = shape.offset if shape is not None else Vector3()
    result = collision.trace(start + offset, end + offset, shape)
    if result is None or not result.conclusive:
        # Fail closed so pawns never walk through geometry on a bad trace
        log_warning(f"Inconclusive trace {start} -> {end}, treating as obstructed")
        return True
    return result.hit


@dataclass(eq=False)
class NavTile:
    """A regular floor tile."""

    location: Vector3
    cost: float = 1.0
    extent: Vector3 = field(default_factory=lambda: Vector3(100.0, 100.0, 50.0))
    slope_angle: float = 0.0
    owner: Optional[str] = None
    virtual: bool = False
    tile_id: Optional[int] = None
    grid: Optional[object] = field(default=None, repr=False)
    # insertion ordered; values unused
    neighbours: Dict["NavTile", None] = field(default_factory=dict, repr=False)

    # floor tiles may be skipped over by string pulling
    allows_string_pull = True

    def __post_init__(self) -> None:
        if self.cost < 0:
            log_warning(f"Negative tile cost {self.cost} at {self.location}, clamping to 0")
            self.cost = 0.0

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def pawn_location(self) -> Vector3:
        """Where a pawn standing on this tile is placed."""
        return self.location

    def contact_points(self) -> Tuple[Vector3, ...]:
        """Points a pawn enters or leaves this tile through."""
        return (self.pawn_location,)

    def nearest_contact_point(self, position: Vector3) -> Vector3:
        return min(self.contact_points(), key=lambda point: point.distance(position))

    def neighbourhood_extent(self, margin: float) -> Vector3:
        return self.extent + Vector3(margin, margin, margin)

    def overlaps(self, other: "NavTile", margin: float) -> bool:
        mine = self.neighbourhood_extent(margin)
        theirs = other.neighbourhood_extent(margin)
        delta = self.location - other.location
        return (
            abs(delta.x) < mine.x + theirs.x
            and abs(delta.y) < mine.y + theirs.y
            and abs(delta.z) < mine.z + theirs.z
        )

    def contains(self, point: Vector3, vertical_slack: float = 0.0) -> bool:
        delta = point - self.location
        return (
            abs(delta.x) <= self.extent.x
            and abs(delta.y) <= self.extent.y
            and abs(delta.z) <= self.extent.z + vertical_slack
        )

    # ------------------------------------------------------------------
    # Graph queries
    # ------------------------------------------------------------------

    def add_neighbour(self, other: "NavTile") -> None:
        if other is not self:
            self.neighbours[other] = None

    def remove_neighbour(self, other: "NavTile") -> None:
        self.neighbours.pop(other, None)

    def get_neighbours(self) -> List["NavTile"]:
        return list(self.neighbours)

    def obstructed(
        self,
        from_pos: Vector3,
        shape: Optional[CollisionShape],
        collision: Optional[CollisionService],
    ) -> bool:
        """Is the way from ``from_pos`` onto this tile blocked?"""
        return trace_obstructed(collision, from_pos, self.nearest_contact_point(from_pos), shape)

    def get_unobstructed_neighbours(
        self,
        shape: Optional[CollisionShape],
        collision: Optional[CollisionService],
    ) -> List["NavTile"]:
        result: List[NavTile] = []
        for neighbour in self.neighbours:
            trace_point = self.nearest_contact_point(neighbour.pawn_location)
            if not neighbour.obstructed(trace_point, shape, collision):
                result.append(neighbour)
        return result

    def traversable(self, max_walk_angle: float, modes: Iterable[MovementMode]) -> bool:
        return MovementMode.WALKING in set(modes) and self.slope_angle <= max_walk_angle

    def legal_position_at_end_of_turn(
        self, max_walk_angle: float, modes: Iterable[MovementMode]
    ) -> bool:
        return self.traversable(max_walk_angle, modes)

    can_stop_here = legal_position_at_end_of_turn

    # ------------------------------------------------------------------
    # Path layout
    # ------------------------------------------------------------------

    def path_legs(self, from_pos: Vector3, last_tile: bool) -> List[PathLeg]:
        """Legs a path entering this tile from ``from_pos`` is made of."""
        return [PathLeg(self.pawn_location, WALKING_LEG_MODES)]


@dataclass(eq=False)
class NavLadderTile(NavTile):
    """A ladder joining two floor levels.

    ``location`` is the centre of the ladder, ``height`` its full height and
    ``facing_yaw`` the direction the ladder's climbing side faces. A climbing pawn
    stands half a tile in front of the ladder and faces back into it.
    """

    height: float = 300.0
    facing_yaw: float = 0.0
    tile_size: float = 200.0

    allows_string_pull = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.height <= 0:
            raise ValueError(f"Ladder height must be positive (got {self.height})")
        half_height = self.height / 2
        self.extent = Vector3(self.extent.x, self.extent.y, half_height)

    @property
    def bottom_point(self) -> Vector3:
        return self.location + Vector3(self.tile_size / 2, 0.0, 50.0 - self.extent.z).rotated_yaw(self.facing_yaw)

    @property
    def top_point(self) -> Vector3:
        return self.location + Vector3(self.tile_size / 2, 0.0, self.extent.z - 25.0).rotated_yaw(self.facing_yaw)

    @property
    def pawn_location(self) -> Vector3:
        return (self.bottom_point + self.top_point) / 2

    @property
    def climb_rotation(self) -> Rotator:
        return Rotator(yaw=normalize_axis(self.facing_yaw + 180.0))

    def contact_points(self) -> Tuple[Vector3, ...]:
        return (self.bottom_point, self.top_point)

    def neighbourhood_extent(self, margin: float) -> Vector3:
        # Widen the ladder so it overlaps the floor tiles at both ends
        along = max(self.extent.x, self.tile_size)
        across = max(self.extent.y, self.tile_size / 2)
        facing = Vector3(along, 0.0, 0.0).rotated_yaw(self.facing_yaw)
        side = Vector3(0.0, across, 0.0).rotated_yaw(self.facing_yaw)
        return Vector3(
            abs(facing.x) + abs(side.x) + margin,
            abs(facing.y) + abs(side.y) + margin,
            self.extent.z + margin,
        )

    def traversable(self, max_walk_angle: float, modes: Iterable[MovementMode]) -> bool:
        return bool(CLIMBING_MODES & set(modes))

    def legal_position_at_end_of_turn(
        self, max_walk_angle: float, modes: Iterable[MovementMode]
    ) -> bool:
        return False

    can_stop_here = legal_position_at_end_of_turn

    def path_legs(self, from_pos: Vector3, last_tile: bool) -> List[PathLeg]:
        top, bottom = self.top_point, self.bottom_point
        if top.distance(from_pos) > bottom.distance(from_pos):
            entry, exit_point = bottom, top
        else:
            entry, exit_point = top, bottom
        if last_tile:
            exit_point = self.pawn_location
        climb = MovementMode.CLIMBING_UP if exit_point.z >= entry.z else MovementMode.CLIMBING_DOWN
        return [
            PathLeg(entry, WALKING_LEG_MODES, fallback_modes=frozenset({climb})),
            PathLeg(
                exit_point,
                frozenset({climb}),
                fallback_modes=CLIMBING_MODES,
                rotation_hint=self.climb_rotation,
            ),
        ]
