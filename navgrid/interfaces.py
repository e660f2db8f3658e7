"""Narrow collaborator interfaces the core talks to.

The grid and the movement executor never reach into an engine directly. Collision
tracing, animation-driven displacement, transient tile placement and the pawn's
transform all come in through the protocols below, supplied by the embedding
application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, Optional, Protocol

from .geometry import Rotator, Vector3

if TYPE_CHECKING:  # pragma: no cover
    from .environment.tiles import NavTile


@dataclass(frozen=True)
class CollisionShape:
    """Capsule used for obstruction traces.

    ``offset`` is added to both ends of every trace so the line runs through the
    middle of the capsule instead of along the floor.
    """

    radius: float = 34.0
    half_height: float = 88.0
    offset: Vector3 = Vector3(0.0, 0.0, 88.0)


@dataclass(frozen=True)
class TraceResult:
    """Outcome of a single collision trace.

    ``conclusive`` is False when the service could not decide (for instance the
    trace started inside geometry); callers must treat that as a hit.
    """

    hit: bool
    conclusive: bool = True
    location: Optional[Vector3] = None
    tags: FrozenSet[str] = frozenset()
    tile: Optional["NavTile"] = None


@dataclass(frozen=True)
class FrameDisplacement:
    """One frame's worth of externally driven motion (e.g. root motion)."""

    translation: Vector3 = field(default_factory=Vector3)
    rotation: Rotator = field(default_factory=Rotator)

    def is_zero(self) -> bool:
        return self.translation.size() <= 1e-9 and self.rotation.is_zero()


class CollisionService(Protocol):
    def trace(
        self, start: Vector3, end: Vector3, shape: Optional[CollisionShape] = None
    ) -> Optional[TraceResult]:
        """Trace from ``start`` to ``end``; ``None`` means the result is unknown."""


class DisplacementSource(Protocol):
    def consume_frame_displacement(self) -> FrameDisplacement:
        """Drain exactly one frame of displacement; zero when nothing is available."""


class TileProvisioner(Protocol):
    def candidate_locations(
        self, origin: Vector3, radius: float, tile_size: float
    ) -> Iterable[Vector3]:
        """Yield locations near ``origin`` where a virtual tile may be traced for."""


class Positionable(Protocol):
    def get_location(self) -> Vector3: ...

    def set_location(self, location: Vector3) -> None: ...

    def get_rotation(self) -> Rotator: ...

    def set_rotation(self, rotation: Rotator) -> None: ...


@dataclass
class SimplePawn:
    """Plain positionable entity for headless use and tests."""

    location: Vector3 = field(default_factory=Vector3)
    rotation: Rotator = field(default_factory=Rotator)

    def get_location(self) -> Vector3:
        return self.location

    def set_location(self, location: Vector3) -> None:
        self.location = location

    def get_rotation(self) -> Rotator:
        return self.rotation

    def set_rotation(self, rotation: Rotator) -> None:
        self.rotation = rotation
