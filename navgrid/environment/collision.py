"""In-memory collision world made of axis-aligned boxes.

Implements the ``CollisionService`` protocol for headless simulations, examples
and tests. Real games plug their engine's tracer in instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

from ..geometry import Vector3
from ..interfaces import CollisionShape, TraceResult


@dataclass(frozen=True)
class Box:
    """Axis-aligned blocker described by its centre and half extents."""

    center: Vector3
    extent: Vector3
    tags: FrozenSet[str] = frozenset()

    def expanded(self, amount: float) -> "Box":
        return Box(self.center, self.extent + Vector3(amount, amount, amount), self.tags)

    def contains(self, point: Vector3) -> bool:
        delta = point - self.center
        return (
            abs(delta.x) < self.extent.x
            and abs(delta.y) < self.extent.y
            and abs(delta.z) < self.extent.z
        )

    def intersect(self, start: Vector3, end: Vector3) -> Optional[float]:
        """Entry fraction along ``start -> end`` (slab test), None if missed."""
        direction = end - start
        t_min, t_max = 0.0, 1.0
        axes: Tuple[Tuple[float, float, float, float], ...] = (
            (start.x, direction.x, self.center.x, self.extent.x),
            (start.y, direction.y, self.center.y, self.extent.y),
            (start.z, direction.z, self.center.z, self.extent.z),
        )
        for origin, delta, center, half in axes:
            low, high = center - half, center + half
            if abs(delta) < 1e-12:
                if origin < low or origin > high:
                    return None
                continue
            t1 = (low - origin) / delta
            t2 = (high - origin) / delta
            if t1 > t2:
                t1, t2 = t2, t1
            t_min = max(t_min, t1)
            t_max = min(t_max, t2)
            if t_min > t_max:
                return None
        return t_min


@dataclass
class BoxCollisionWorld:
    """A list of boxes that answers line traces."""

    boxes: List[Box] = field(default_factory=list)

    def add_box(
        self, center: Vector3, extent: Vector3, tags: Iterable[str] = ()
    ) -> Box:
        box = Box(center, extent, frozenset(tags))
        self.boxes.append(box)
        return box

    def remove_box(self, box: Box) -> None:
        if box in self.boxes:
            self.boxes.remove(box)

    def trace(
        self, start: Vector3, end: Vector3, shape: Optional[CollisionShape] = None
    ) -> TraceResult:
        radius = shape.radius if shape is not None else 0.0
        nearest: Optional[Tuple[float, Box]] = None
        for box in self.boxes:
            solid = box.expanded(radius) if radius > 0 else box
            if solid.contains(start):
                # Starting inside geometry: the engine can't tell us where we'd exit
                return TraceResult(hit=True, conclusive=False, location=start, tags=box.tags)
            fraction = solid.intersect(start, end)
            if fraction is None:
                continue
            if nearest is None or fraction < nearest[0]:
                nearest = (fraction, box)
        if nearest is None:
            return TraceResult(hit=False)
        fraction, box = nearest
        return TraceResult(hit=True, location=start.lerp(end, fraction), tags=box.tags)
