"""Movement execution along planned routes."""

from .executor import (
    GridMovementExecutor,
    MovementEndListener,
    MovementModeListener,
    MovementState,
)
from .turns import TurnComponent, TurnListener

__all__ = [
    "GridMovementExecutor",
    "MovementEndListener",
    "MovementModeListener",
    "MovementState",
    "TurnComponent",
    "TurnListener",
]
