"""Path search, string pulling and curve building."""

from .planner import Path, PathPlanner, Reachability
from .simplify import can_shortcut, string_pull
from .curve import PathCurve, PathSegment, Route, build_route

__all__ = [
    "Path",
    "PathPlanner",
    "Reachability",
    "can_shortcut",
    "string_pull",
    "PathCurve",
    "PathSegment",
    "Route",
    "build_route",
]
