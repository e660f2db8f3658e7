"""
Pydantic schemas for navgrid configuration.

Movement and grid tuning used to be loose editable fields; here they are
explicit, versioned models with named fields and documented defaults that
are passed in at construction time.

Design Philosophy:
- Every field documents its default and unit
- Inconsistent values are clamped to a safe minimum (with a warning) rather
  than rejected, because they drive real-time motion that must never produce
  NaN or negative durations
- Models are plain data: no references to grids, tiles or pawns
"""

import math
from enum import Enum
from typing import FrozenSet

from pydantic import BaseModel, Field, field_validator

from .logging_utils import log_warning


SCHEMA_VERSION = 1

MIN_TILE_SIZE = 1.0
MIN_SPEED = 1.0
MIN_ROTATION_SPEED = 1.0


class MovementMode(str, Enum):
    """Locomotion modes. Used both as agent capabilities and per-segment legality."""

    STATIONARY = "stationary"
    WALKING = "walking"
    CLIMBING_UP = "climbing_up"
    CLIMBING_DOWN = "climbing_down"
    IN_PLACE_TURN = "in_place_turn"


CLIMBING_MODES: FrozenSet[MovementMode] = frozenset(
    {MovementMode.CLIMBING_UP, MovementMode.CLIMBING_DOWN}
)
# Modes that advance the pawn along the path
LOCOMOTION_MODES: FrozenSet[MovementMode] = frozenset(
    {MovementMode.WALKING, MovementMode.CLIMBING_UP, MovementMode.CLIMBING_DOWN}
)


def _clamp(name: str, value: float, minimum: float) -> float:
    if math.isnan(value) or value < minimum:
        log_warning(f"{name}={value} is not usable, clamping to {minimum}")
        return minimum
    return value


# ============================================================================
# Movement
# ============================================================================


class MovementSettings(BaseModel):
    """Per-agent movement tuning."""

    schema_version: int = Field(SCHEMA_VERSION, description="Version of this settings layout")
    movement_range: float = Field(
        4.0, description="How far (in tile cost) the agent can move in one go"
    )
    max_walk_speed: float = Field(450.0, description="Speed along the path while walking (units/s)")
    max_climb_speed: float = Field(200.0, description="Speed along the path while climbing (units/s)")
    max_rotation_speed: float = Field(720.0, description="Maximum turn rate (degrees/s)")
    available_movement_modes: FrozenSet[MovementMode] = Field(
        default_factory=lambda: frozenset(
            {
                MovementMode.WALKING,
                MovementMode.CLIMBING_UP,
                MovementMode.CLIMBING_DOWN,
                MovementMode.IN_PLACE_TURN,
            }
        ),
        description="Movement modes usable by this agent",
    )
    max_walk_angle: float = Field(45.0, description="Steepest floor slope (degrees) the agent can walk on")
    turn_tolerance: float = Field(
        10.0, description="Facing error (degrees) above which the agent turns in place before moving"
    )
    lock_roll: bool = Field(True, description="Ignore rotation over the X axis")
    lock_pitch: bool = Field(True, description="Ignore rotation over the Y axis")
    lock_yaw: bool = Field(False, description="Ignore rotation over the Z axis")
    use_root_motion: bool = Field(
        True, description="Take speed/rotation from the displacement source while moving"
    )
    always_use_root_motion: bool = Field(
        False, description="Apply the displacement source even when not following a path"
    )
    string_pull_path: bool = Field(True, description="Straighten paths to avoid zigzagging")

    @field_validator("movement_range")
    @classmethod
    def _clamp_range(cls, value: float) -> float:
        return _clamp("movement_range", value, 0.0)

    @field_validator("max_walk_speed", "max_climb_speed")
    @classmethod
    def _clamp_speed(cls, value: float, info) -> float:
        return _clamp(info.field_name, value, MIN_SPEED)

    @field_validator("max_rotation_speed")
    @classmethod
    def _clamp_rotation(cls, value: float) -> float:
        return _clamp("max_rotation_speed", value, MIN_ROTATION_SPEED)

    @field_validator("max_walk_angle", "turn_tolerance")
    @classmethod
    def _clamp_angles(cls, value: float, info) -> float:
        return min(_clamp(info.field_name, value, 0.0), 180.0)

    def speed_for(self, mode: MovementMode) -> float:
        """Path speed for a locomotion mode (zero for modes that do not advance)."""
        if mode == MovementMode.WALKING:
            return self.max_walk_speed
        if mode in CLIMBING_MODES:
            return self.max_climb_speed
        return 0.0


# ============================================================================
# Grid
# ============================================================================


class GridSettings(BaseModel):
    """Settings for a NavGrid instance."""

    schema_version: int = Field(SCHEMA_VERSION, description="Version of this settings layout")
    tile_size: float = Field(200.0, description="Edge length of a grid cell")
    enable_virtual_tiles: bool = Field(
        False, description="Place virtual tiles on geometry that has no authored tile"
    )
    max_virtual_tiles: int = Field(10000, description="Upper bound on simultaneously existing virtual tiles")
    disable_virtual_tiles_tag: str = Field(
        "navgrid.no_virtual_tiles",
        description="Geometry carrying this tag never receives virtual tiles",
    )
    upward_trace_length: float = Field(100.0, description="How far above a location floor lookups start")
    downward_trace_length: float = Field(100.0, description="How far below a location floor lookups reach")
    neighbourhood_margin: float = Field(
        15.0, description="Padding added to tile boxes so adjacent tiles overlap"
    )

    @field_validator("tile_size")
    @classmethod
    def _clamp_tile_size(cls, value: float) -> float:
        return _clamp("tile_size", value, MIN_TILE_SIZE)

    @field_validator("max_virtual_tiles")
    @classmethod
    def _clamp_capacity(cls, value: int) -> int:
        return int(_clamp("max_virtual_tiles", value, 0))

    @field_validator("upward_trace_length", "downward_trace_length", "neighbourhood_margin")
    @classmethod
    def _clamp_lengths(cls, value: float, info) -> float:
        return _clamp(info.field_name, value, 0.0)
