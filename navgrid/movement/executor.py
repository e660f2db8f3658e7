"""
Per-agent movement executor.

Follows a ``Route`` frame by frame:
1. Find the path segment under the current distance
2. Turn in place first if the facing is off and the segment allows it
3. Otherwise pick a legal locomotion mode and advance at that mode's speed,
   never crossing into the next segment within a single step
4. Rotate toward the segment's forced facing (or the travel direction),
   respecting axis locks and the maximum turn rate
5. Fold in externally driven displacement (root motion) when configured
6. Notify listeners on every mode change and once when the route is done

The executor works on any ``Positionable`` pawn and the ``NavGrid`` it is given;
it owns its ``MovementState`` and shares nothing with other executors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ..environment.grid import NavGrid
from ..environment.tiles import NavTile
from ..geometry import Rotator, Vector3
from ..interfaces import (
    CollisionShape,
    DisplacementSource,
    FrameDisplacement,
    Positionable,
)
from ..logging_utils import log_debug, log_error, log_success, log_warning
from ..pathing.curve import PathSegment, Route, build_route
from ..pathing.planner import PathPlanner
from ..pathing.simplify import string_pull
from ..schemas import LOCOMOTION_MODES, MovementMode, MovementSettings


MovementEndListener = Callable[[], None]
MovementModeListener = Callable[[MovementMode, MovementMode], None]

# Preference order when a segment allows more than one locomotion mode
_MODE_PREFERENCE = (
    MovementMode.CLIMBING_UP,
    MovementMode.CLIMBING_DOWN,
    MovementMode.WALKING,
)

# Facing error below which an explicit turn counts as done
_TURN_DONE_TOLERANCE = 1e-3


@dataclass
class MovementState:
    """Mutable per-agent movement state."""

    mode: MovementMode = MovementMode.STATIONARY
    distance: float = 0.0
    facing: Rotator = field(default_factory=Rotator)
    current_tile: Optional[NavTile] = None


@dataclass(frozen=True)
class _ActivePath:
    # Route and segment are swapped together so readers never see one without the other
    route: Route
    segment: Optional[PathSegment]


class GridMovementExecutor:
    """A movement executor that operates on a NavGrid."""

    def __init__(
        self,
        agent_id: str,
        pawn: Positionable,
        grid: NavGrid,
        settings: Optional[MovementSettings] = None,
        shape: Optional[CollisionShape] = None,
        displacement_source: Optional[DisplacementSource] = None,
        movement_end_listeners: Optional[List[MovementEndListener]] = None,
        movement_mode_listeners: Optional[List[MovementModeListener]] = None,
    ):
        """Initialize the executor.

        Args:
            agent_id: Identifier used for logging and reachability caching
            pawn: Entity whose location/rotation the executor drives
            grid: Grid the agent moves on
            settings: Movement tuning (defaults to ``MovementSettings()``)
            shape: Collision shape used for obstruction traces
            displacement_source: Optional root-motion style displacement provider
            movement_end_listeners: Called with no arguments when movement ends
            movement_mode_listeners: Called with (old_mode, new_mode) on mode changes
        """
        self.agent_id = agent_id
        self.pawn = pawn
        self.grid = grid
        self.settings = settings or MovementSettings()
        self.shape = shape or CollisionShape()
        self.displacement_source = displacement_source
        self.movement_end_listeners: List[MovementEndListener] = list(movement_end_listeners or [])
        self.movement_mode_listeners: List[MovementModeListener] = list(movement_mode_listeners or [])

        self.state = MovementState(facing=pawn.get_rotation())
        # Last route built by create_path; only followed once move_to starts it
        self.planned_route: Optional[Route] = None
        self._active: Optional[_ActivePath] = None
        self._desired_rotation: Optional[Rotator] = None
        self._frame = 0
        self._frame_motion: Optional[Tuple[int, FrameDisplacement]] = None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_movement_end(self, listener: MovementEndListener) -> MovementEndListener:
        self.movement_end_listeners.append(listener)
        return listener

    def on_movement_mode_changed(self, listener: MovementModeListener) -> MovementModeListener:
        self.movement_mode_listeners.append(listener)
        return listener

    def _notify_movement_end(self) -> None:
        for listener in list(self.movement_end_listeners):
            listener()

    def _change_mode(self, new_mode: MovementMode) -> None:
        old_mode = self.state.mode
        if new_mode == old_mode:
            return
        self.state.mode = new_mode
        log_debug(f"{self.agent_id}: {old_mode.value} -> {new_mode.value}")
        for listener in list(self.movement_mode_listeners):
            listener(old_mode, new_mode)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def movement_mode(self) -> MovementMode:
        return self.state.mode

    @property
    def route(self) -> Optional[Route]:
        active = self._active
        return active.route if active is not None else None

    @property
    def current_segment(self) -> Optional[PathSegment]:
        active = self._active
        return active.segment if active is not None else None

    @property
    def is_moving(self) -> bool:
        return self._active is not None or self._desired_rotation is not None

    def get_remaining_distance(self) -> float:
        """Remaining distance of the current path (zero when not moving)."""
        active = self._active
        if active is None:
            return 0.0
        return max(active.route.total_length - self.state.distance, 0.0)

    def get_forward_location(self, forward_distance: float) -> Vector3:
        """Point the pawn will reach if it keeps moving for ``forward_distance``."""
        active = self._active
        if active is None:
            return self.pawn.get_location()
        return active.route.curve.location_at(self.state.distance + max(forward_distance, 0.0))

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------

    def get_tile(self) -> Optional[NavTile]:
        """The tile the pawn is on, None if it is not on a tile."""
        return self.grid.get_tile(self.pawn.get_location())

    def consider_update_current_tile(self) -> None:
        self.state.current_tile = self.get_tile()

    def get_tiles_in_range(self) -> List[NavTile]:
        return self.grid.get_tiles_in_range(self)

    def snap_to_grid(self) -> bool:
        """Move the pawn onto the pawn location of the tile it is on."""
        tile = self.get_tile()
        if tile is None:
            return False
        self.pawn.set_location(tile.pawn_location)
        self.state.current_tile = tile
        return True

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _find_path(self, target: NavTile):
        modes = self.settings.available_movement_modes
        if not modes & LOCOMOTION_MODES:
            return None
        if target.grid is not self.grid:
            log_warning(f"{self.agent_id}: target tile is not on this grid")
            return None
        start = self.get_tile()
        if start is None and self.grid.settings.enable_virtual_tiles:
            start = self.grid.generate_virtual_tile(self)
        if start is None:
            log_warning(f"{self.agent_id}: not standing on a tile, cannot plan")
            return None
        return PathPlanner(self.grid).find_path(
            start,
            target,
            modes,
            shape=self.shape,
            max_walk_angle=self.settings.max_walk_angle,
        )

    def can_move_to(self, target: NavTile) -> bool:
        """True if a path to ``target`` exists, regardless of movement range."""
        return self._find_path(target) is not None

    def create_path(self, target: NavTile) -> bool:
        """Create a path to ``target``; return False if no path is found."""

        self.planned_route = None
        path = self._find_path(target)
        if path is None:
            return False
        modes = self.settings.available_movement_modes
        if self.settings.string_pull_path:
            waypoints = string_pull(
                self.grid,
                path.tiles,
                modes,
                shape=self.shape,
                max_walk_angle=self.settings.max_walk_angle,
            )
        else:
            waypoints = list(path.tiles)
        self.planned_route = build_route(waypoints, modes, start_location=self.pawn.get_location())
        log_debug(
            f"{self.agent_id}: path of {len(path)} tiles, {len(waypoints)} waypoints, "
            f"length {self.planned_route.total_length:.1f}"
        )
        return True

    def move_to(self, target: NavTile) -> bool:
        """Create a path and follow it if it exists."""
        if not self.create_path(target):
            return False
        self.follow_route(self.planned_route)
        return True

    def follow_route(self, route: Route) -> None:
        """Start following ``route``, replacing whatever was being followed."""

        if self._active is not None or self._desired_rotation is not None:
            self._active = None
            self._desired_rotation = None
            self._change_mode(MovementMode.STATIONARY)
        self.state.distance = 0.0
        self._active = _ActivePath(route, route.segment_at(0.0))
        if route.total_length <= 0.0 or not route.segments:
            # Already there
            self._finish_movement()

    def turn_to(self, forward: Rotator) -> bool:
        """Turn in place to face ``forward``. Ignored while following a path."""
        if self._active is not None:
            return False
        if MovementMode.IN_PLACE_TURN not in self.settings.available_movement_modes:
            return False
        self._desired_rotation = self.apply_rotation_locks(forward).normalized()
        self._change_mode(MovementMode.IN_PLACE_TURN)
        return True

    def stop_movement_immediately(self) -> None:
        """Drop the current path on the spot. No notifications are sent."""
        self._active = None
        self._desired_rotation = None
        self.state.distance = 0.0
        self.state.mode = MovementMode.STATIONARY

    # ------------------------------------------------------------------
    # Rotation helpers
    # ------------------------------------------------------------------

    def apply_rotation_locks(self, rotation: Rotator) -> Rotator:
        """Use the pawn's rotation for locked axes and ``rotation`` for the rest."""
        current = self.pawn.get_rotation()
        return Rotator(
            pitch=current.pitch if self.settings.lock_pitch else rotation.pitch,
            yaw=current.yaw if self.settings.lock_yaw else rotation.yaw,
            roll=current.roll if self.settings.lock_roll else rotation.roll,
        )

    def limit_rotation(self, old_rotation: Rotator, new_rotation: Rotator, delta_time: float) -> Rotator:
        """Rotation between old and new that is reachable within max rotation speed."""
        max_step = self.settings.max_rotation_speed * max(delta_time, 0.0)
        delta = old_rotation.delta(new_rotation)

        def clamp(value: float) -> float:
            return max(-max_step, min(max_step, value))

        return (old_rotation + Rotator(clamp(delta.pitch), clamp(delta.yaw), clamp(delta.roll))).normalized()

    def _rotate_towards(self, target: Rotator, delta_time: float, root_rotation: Optional[Rotator] = None) -> None:
        current = self.pawn.get_rotation()
        if root_rotation is not None and not root_rotation.is_zero():
            proposed = self.apply_rotation_locks(current + root_rotation)
        else:
            proposed = target
        rotation = self.limit_rotation(current, proposed, delta_time)
        self.pawn.set_rotation(rotation)
        self.state.facing = rotation

    def _facing_error(self, target: Rotator) -> float:
        return self.pawn.get_rotation().delta(target).max_abs_component()

    # ------------------------------------------------------------------
    # Root motion
    # ------------------------------------------------------------------

    def _root_motion_enabled(self) -> bool:
        return self.displacement_source is not None and (
            self.settings.use_root_motion or self.settings.always_use_root_motion
        )

    def consume_root_motion(self) -> FrameDisplacement:
        """This frame's displacement; drained from the source at most once per tick."""
        if self.displacement_source is None:
            return FrameDisplacement()
        if self._frame_motion is not None and self._frame_motion[0] == self._frame:
            return self._frame_motion[1]
        motion = self.displacement_source.consume_frame_displacement()
        self._frame_motion = (self._frame, motion)
        return motion

    def _apply_free_root_motion(self) -> None:
        motion = self.consume_root_motion()
        if motion.is_zero():
            return
        self.pawn.set_location(self.pawn.get_location() + motion.translation)
        rotation = self.apply_rotation_locks(self.pawn.get_rotation() + motion.rotation).normalized()
        self.pawn.set_rotation(rotation)
        self.state.facing = rotation

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, delta_time: float) -> None:
        """Advance the state machine by one frame."""

        delta_time = max(delta_time, 0.0)
        self._frame += 1
        if self._active is not None:
            self._tick_path(delta_time)
            self.consider_update_current_tile()
        elif self._desired_rotation is not None:
            self._tick_turn(delta_time)
        elif self.settings.always_use_root_motion and self.displacement_source is not None:
            self._apply_free_root_motion()
            self.consider_update_current_tile()

    def _tick_turn(self, delta_time: float) -> None:
        target = self._desired_rotation
        motion = self.consume_root_motion() if self._root_motion_enabled() else FrameDisplacement()
        self._rotate_towards(target, delta_time, motion.rotation)
        if self._facing_error(target) <= _TURN_DONE_TOLERANCE:
            self._desired_rotation = None
            self._change_mode(MovementMode.STATIONARY)
            self._notify_movement_end()

    def _enter_segment(self, active: _ActivePath) -> Optional[PathSegment]:
        segment = active.route.segment_at(self.state.distance)
        if segment is not active.segment:
            self._active = _ActivePath(active.route, segment)
        return segment

    def _select_mode(self, segment: PathSegment) -> Optional[MovementMode]:
        legal = segment.movement_modes & LOCOMOTION_MODES
        if not legal:
            return None
        if self.state.mode in legal:
            return self.state.mode
        for mode in _MODE_PREFERENCE:
            if mode in legal:
                return mode
        return None

    def _desired_facing(self, route: Route, segment: PathSegment) -> Rotator:
        if segment.rotation_hint is not None:
            return segment.rotation_hint
        direction = route.curve.direction_at(self.state.distance)
        if direction.size_2d() <= 1e-6:
            return self.pawn.get_rotation()
        return Rotator.from_direction(direction)

    def _tick_path(self, delta_time: float) -> None:
        active = self._active
        segment = self._enter_segment(active)
        if segment is None:
            self._finish_movement()
            return

        target = self.apply_rotation_locks(self._desired_facing(active.route, segment))
        motion = self.consume_root_motion() if self._root_motion_enabled() else FrameDisplacement()

        if (
            MovementMode.IN_PLACE_TURN in segment.movement_modes
            and self._facing_error(target) > self.settings.turn_tolerance
        ):
            self._change_mode(MovementMode.IN_PLACE_TURN)
            self._rotate_towards(target, delta_time, motion.rotation)
            return

        mode = self._select_mode(segment)
        if mode is None:
            log_error(f"{self.agent_id}: no usable movement mode on segment {segment}, stopping")
            self.stop_movement_immediately()
            return
        self._change_mode(mode)

        speed = self.settings.speed_for(mode)
        root_speed = motion.translation.size()
        if root_speed > 0.0 and delta_time > 0.0:
            speed = root_speed / delta_time
        self._rotate_towards(target, delta_time, motion.rotation)
        self._advance_in_segment(speed * delta_time)

    def _advance_in_segment(self, step: float) -> float:
        """Move up to ``step`` along the curve without leaving the current segment."""
        active = self._active
        route = active.route
        segment = self._enter_segment(active)
        end = route.total_length if segment is None else min(segment.end, route.total_length)
        new_distance = min(self.state.distance + max(step, 0.0), end)
        moved = new_distance - self.state.distance
        self.state.distance = new_distance
        self.pawn.set_location(route.curve.location_at(new_distance))
        if new_distance >= route.total_length - 1e-9:
            self._finish_movement()
        return moved

    def advance_along_path(self, distance: float) -> None:
        """Advance ``distance`` along the path, switching modes at segment boundaries."""
        remaining = max(distance, 0.0)
        while remaining > 0.0 and self._active is not None:
            segment = self._enter_segment(self._active)
            if segment is None:
                self._finish_movement()
                return
            mode = self._select_mode(segment)
            if mode is None:
                log_error(f"{self.agent_id}: no usable movement mode on segment {segment}, stopping")
                self.stop_movement_immediately()
                return
            self._change_mode(mode)
            moved = self._advance_in_segment(remaining)
            if moved <= 1e-12:
                break
            remaining -= moved

    def _finish_movement(self) -> None:
        self._active = None
        self.state.distance = 0.0
        self._change_mode(MovementMode.STATIONARY)
        self.consider_update_current_tile()
        log_success(f"{self.agent_id}: movement finished")
        self._notify_movement_end()
