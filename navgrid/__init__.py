"""
navgrid - tile-based movement for turn-based games.

Plan moves over a graph of tiles (walking, ladders, in-place turns), find what
is in range, string-pull the path and follow it frame by frame.

No engine required. No global grid. Collision tracing, root motion and the
pawn's transform are injected by the user.
"""

__version__ = "0.1.0"

# Configuration and value types
from .schemas import (
    CLIMBING_MODES,
    LOCOMOTION_MODES,
    GridSettings,
    MovementMode,
    MovementSettings,
)
from .geometry import Rotator, Vector3
from .interfaces import (
    CollisionService,
    CollisionShape,
    DisplacementSource,
    FrameDisplacement,
    Positionable,
    SimplePawn,
    TileProvisioner,
    TraceResult,
)

# Tile graph
from .environment import (
    Box,
    BoxCollisionWorld,
    NavGrid,
    NavGridError,
    NavLadderTile,
    NavTile,
    grid_from_ascii,
    render_ascii_window,
)

# Planning
from .pathing import (
    Path,
    PathCurve,
    PathPlanner,
    PathSegment,
    Reachability,
    Route,
    build_route,
    string_pull,
)

# Execution
from .movement import GridMovementExecutor, MovementState, TurnComponent
from .runner import MovementLoop

__all__ = [
    # Configuration
    "GridSettings",
    "MovementSettings",
    "MovementMode",
    "CLIMBING_MODES",
    "LOCOMOTION_MODES",
    # Value types and collaborator interfaces
    "Vector3",
    "Rotator",
    "CollisionService",
    "CollisionShape",
    "DisplacementSource",
    "FrameDisplacement",
    "Positionable",
    "SimplePawn",
    "TileProvisioner",
    "TraceResult",
    # Tile graph
    "NavGrid",
    "NavGridError",
    "NavTile",
    "NavLadderTile",
    "Box",
    "BoxCollisionWorld",
    "grid_from_ascii",
    "render_ascii_window",
    # Planning
    "Path",
    "PathPlanner",
    "Reachability",
    "string_pull",
    "PathCurve",
    "PathSegment",
    "Route",
    "build_route",
    # Execution
    "GridMovementExecutor",
    "MovementState",
    "TurnComponent",
    "MovementLoop",
]
