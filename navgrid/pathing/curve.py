"""Turn waypoints into a distance-parameterised curve split into path segments.

The curve is a polyline through the points each tile contributes (a floor tile
contributes its centre, a ladder its entry and exit points). Every piece of the
curve carries the set of movement modes that are legal on it and, where a tile
demands it, a forced facing. Pieces with the same modes and facing are merged
into one ``PathSegment``.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Sequence

from ..geometry import Rotator, Vector3
from ..schemas import LOCOMOTION_MODES, MovementMode

if TYPE_CHECKING:  # pragma: no cover
    from ..environment.tiles import NavTile


@dataclass
class PathCurve:
    """Polyline with cumulative arc length."""

    points: List[Vector3] = field(default_factory=list)
    lengths: List[float] = field(default_factory=list)

    def add_point(self, point: Vector3) -> None:
        if not self.points:
            self.points.append(point)
            self.lengths.append(0.0)
            return
        self.points.append(point)
        self.lengths.append(self.lengths[-1] + self.points[-2].distance(point))

    @property
    def total_length(self) -> float:
        return self.lengths[-1] if self.lengths else 0.0

    def _piece(self, distance: float) -> int:
        """Index ``i`` such that ``distance`` lies on points[i] -> points[i + 1]."""
        index = bisect.bisect_right(self.lengths, distance) - 1
        return max(0, min(index, len(self.points) - 2))

    def location_at(self, distance: float) -> Vector3:
        if not self.points:
            return Vector3()
        if len(self.points) == 1:
            return self.points[0]
        distance = max(0.0, min(distance, self.total_length))
        i = self._piece(distance)
        span = self.lengths[i + 1] - self.lengths[i]
        if span <= 1e-9:
            return self.points[i + 1]
        return self.points[i].lerp(self.points[i + 1], (distance - self.lengths[i]) / span)

    def direction_at(self, distance: float) -> Vector3:
        """Unit tangent at ``distance`` (zero for a degenerate curve)."""
        if len(self.points) < 2:
            return Vector3()
        distance = max(0.0, min(distance, self.total_length))
        i = self._piece(distance)
        # skip zero-length pieces
        while i < len(self.points) - 2 and self.lengths[i + 1] - self.lengths[i] <= 1e-9:
            i += 1
        return (self.points[i + 1] - self.points[i]).normalized()


@dataclass(frozen=True)
class PathSegment:
    """``[start, end)`` along the curve with its legal modes and facing hint."""

    movement_modes: FrozenSet[MovementMode]
    start: float
    end: float
    rotation_hint: Optional[Rotator] = None

    def contains(self, distance: float) -> bool:
        return self.start <= distance < self.end


@dataclass
class Route:
    """Everything the executor needs to follow one path."""

    curve: PathCurve
    segments: List[PathSegment]
    waypoints: List["NavTile"]

    @property
    def total_length(self) -> float:
        return self.curve.total_length

    @property
    def destination(self) -> Optional["NavTile"]:
        return self.waypoints[-1] if self.waypoints else None

    def segment_at(self, distance: float) -> Optional[PathSegment]:
        if not self.segments:
            return None
        starts = [segment.start for segment in self.segments]
        index = bisect.bisect_right(starts, distance) - 1
        return self.segments[max(0, min(index, len(self.segments) - 1))]


def _legal_modes(
    modes: FrozenSet[MovementMode],
    fallback: FrozenSet[MovementMode],
    available: FrozenSet[MovementMode],
) -> FrozenSet[MovementMode]:
    legal = modes & available
    if not legal & LOCOMOTION_MODES:
        legal = (fallback & available) | (legal - LOCOMOTION_MODES)
    return frozenset(legal)


def build_route(
    waypoints: Sequence["NavTile"],
    available_modes: Iterable[MovementMode],
    start_location: Optional[Vector3] = None,
) -> Route:
    """Build the curve and its segments through ``waypoints``.

    With ``start_location`` the curve begins there instead of at the first
    waypoint; when the two differ the route first leads back onto the first
    waypoint, so a pawn standing off its tile centre moves without jumping.
    """

    available = frozenset(available_modes)
    curve = PathCurve()
    segments: List[PathSegment] = []
    if not waypoints:
        return Route(curve=curve, segments=segments, waypoints=[])

    first = waypoints[0].pawn_location
    origin = first if start_location is None else start_location
    curve.add_point(origin)
    lead_in = len(waypoints) > 1 and origin.distance(first) > 1e-6
    last = len(waypoints) - 1
    for index in range(0 if lead_in else 1, len(waypoints)):
        tile = waypoints[index]
        for leg in tile.path_legs(curve.points[-1], last_tile=index == last):
            start = curve.total_length
            curve.add_point(leg.point)
            end = curve.total_length
            if end - start <= 1e-9:
                if segments:
                    tail = segments[-1]
                    segments[-1] = PathSegment(tail.movement_modes, tail.start, end, tail.rotation_hint)
                continue
            modes = _legal_modes(leg.modes, leg.fallback_modes, available)
            previous = segments[-1] if segments else None
            if (
                previous is not None
                and previous.movement_modes == modes
                and previous.rotation_hint == leg.rotation_hint
            ):
                segments[-1] = PathSegment(modes, previous.start, end, previous.rotation_hint)
            else:
                segments.append(PathSegment(modes, start, end, leg.rotation_hint))

    return Route(curve=curve, segments=segments, waypoints=list(waypoints))
