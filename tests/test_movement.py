"""Tests for the movement executor state machine."""

import pytest

from navgrid.environment import NavGrid, grid_from_ascii
from navgrid.geometry import Rotator, Vector3
from navgrid.interfaces import FrameDisplacement, SimplePawn
from navgrid.movement import GridMovementExecutor
from navgrid.schemas import GridSettings, MovementMode, MovementSettings


S = MovementMode.STATIONARY
W = MovementMode.WALKING
UP = MovementMode.CLIMBING_UP
TURN = MovementMode.IN_PLACE_TURN


class _Recorder:
    """Collects executor notifications."""

    def __init__(self, executor):
        self.modes = []
        self.finished = 0
        executor.on_movement_mode_changed(lambda old, new: self.modes.append((old, new)))
        executor.on_movement_end(self._finished)

    def _finished(self):
        self.finished += 1


class _FixedDisplacement:
    """Displacement source returning the same motion every frame."""

    def __init__(self, translation=Vector3(), rotation=Rotator()):
        self.motion = FrameDisplacement(translation, rotation)
        self.calls = 0

    def consume_frame_displacement(self):
        self.calls += 1
        return self.motion


def _ladder_yard():
    grid = NavGrid(GridSettings(tile_size=200))
    grid.create_tile(Vector3(0, 0, 0))
    grid.create_tile(Vector3(200, 0, 0))
    ladder = grid.create_ladder(Vector3(400, 0, 150), height=300, facing_yaw=180)
    upper = grid.create_tile(Vector3(600, 0, 300))
    return grid, ladder, upper


def _climber(grid, **settings):
    options = {"available_movement_modes": {W, UP, MovementMode.CLIMBING_DOWN}}
    options.update(settings)
    return GridMovementExecutor("climber", SimplePawn(Vector3(0, 0, 0)), grid, MovementSettings(**options))


def _walker(grid, location, **settings):
    return GridMovementExecutor("walker", SimplePawn(location), grid, MovementSettings(**settings))


def _run(executor, delta_time=0.1, max_frames=500):
    frames = 0
    while executor.is_moving and frames < max_frames:
        executor.tick(delta_time)
        frames += 1
        segment = executor.current_segment
        if segment is not None and executor.movement_mode != S:
            assert executor.movement_mode in segment.movement_modes
    return frames


def test_walk_climb_walk_notifications():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    events = _Recorder(executor)

    assert executor.move_to(upper)
    assert [segment.movement_modes for segment in executor.route.segments] == [
        frozenset({W}),
        frozenset({UP}),
        frozenset({W}),
    ]
    _run(executor)

    assert events.modes == [(S, W), (W, UP), (UP, W), (W, S)]
    assert events.finished == 1
    assert executor.pawn.get_location() == upper.pawn_location
    assert executor.state.current_tile is upper
    assert executor.get_remaining_distance() == 0


def test_overshoot_deferred_to_next_segment():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    executor.move_to(upper)
    total = executor.route.total_length
    walk, climb, _ = executor.route.segments

    executor.tick(10.0)
    assert executor.movement_mode == W
    assert executor.get_remaining_distance() == pytest.approx(total - walk.end)

    executor.tick(10.0)
    assert executor.movement_mode == UP
    assert executor.get_remaining_distance() == pytest.approx(total - climb.end)

    executor.tick(10.0)
    assert executor.movement_mode == S
    assert not executor.is_moving


def test_advance_along_path_crosses_segments():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    events = _Recorder(executor)
    executor.move_to(upper)
    total = executor.route.total_length

    executor.advance_along_path(400)

    assert executor.movement_mode == UP
    assert executor.get_remaining_distance() == pytest.approx(total - 400)
    assert events.modes == [(S, W), (W, UP)]


def test_forward_location_follows_curve():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    assert executor.get_forward_location(100) == Vector3(0, 0, 0)

    executor.move_to(upper)
    assert executor.get_forward_location(100) == Vector3(100, 0, 0)


def test_stop_movement_immediately_is_silent():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    events = _Recorder(executor)
    executor.move_to(upper)
    executor.tick(0.1)
    executor.tick(0.1)
    seen = list(events.modes)
    where = executor.pawn.get_location()

    executor.stop_movement_immediately()
    for _ in range(5):
        executor.tick(0.1)

    assert executor.movement_mode == S
    assert executor.get_remaining_distance() == 0
    assert not executor.is_moving
    assert events.modes == seen
    assert events.finished == 0
    assert executor.pawn.get_location() == where


def test_move_to_current_tile_finishes_at_once():
    grid = grid_from_ascii(["...", "...", "..."])
    center = grid.tile_at_cell((1, 1, 0))
    executor = _walker(grid, Vector3(200, 200, 0))
    events = _Recorder(executor)

    assert executor.move_to(center)

    assert events.finished == 1
    assert events.modes == []
    assert not executor.is_moving
    assert executor.get_remaining_distance() == 0


def test_unreachable_targets_are_rejected():
    grid, ladder, upper = _ladder_yard()
    walker = _walker(grid, Vector3(0, 0, 0), available_movement_modes={W})
    assert not walker.can_move_to(upper)
    assert not walker.move_to(upper)
    assert walker.movement_mode == S

    climber = _climber(grid)
    assert not climber.move_to(ladder)

    frozen = _walker(grid, Vector3(0, 0, 0), available_movement_modes=set())
    assert not frozen.can_move_to(upper)
    assert not frozen.create_path(upper)

    other = NavGrid().create_tile(Vector3(0, 0, 0))
    assert not climber.move_to(other)


def test_can_move_to_ignores_movement_range():
    grid = grid_from_ascii(["......"])
    executor = _walker(grid, Vector3(0, 0, 0), movement_range=1)
    far = grid.tile_at_cell((5, 0, 0))

    assert far not in executor.get_tiles_in_range()
    assert executor.can_move_to(far)


def test_turns_in_place_before_walking():
    grid = grid_from_ascii(["...", "...", "..."])
    executor = _walker(grid, Vector3(200, 200, 0), max_rotation_speed=90)
    events = _Recorder(executor)
    west = grid.tile_at_cell((0, 1, 0))

    executor.move_to(west)
    executor.tick(0.5)

    assert executor.movement_mode == TURN
    assert executor.pawn.get_location() == Vector3(200, 200, 0)
    assert executor.pawn.get_rotation().yaw == pytest.approx(45)
    assert executor.get_remaining_distance() == pytest.approx(200)

    _run(executor, delta_time=0.5)

    assert events.modes == [(S, TURN), (TURN, W), (W, S)]
    assert events.finished == 1
    assert executor.pawn.get_location() == west.pawn_location


def test_turn_to_and_rotation_locks():
    grid = grid_from_ascii(["."])
    executor = _walker(grid, Vector3(0, 0, 0), max_rotation_speed=90)
    events = _Recorder(executor)

    assert executor.turn_to(Rotator(pitch=30, yaw=90, roll=10))
    assert executor.movement_mode == TURN
    executor.tick(0.5)
    assert executor.pawn.get_rotation() == Rotator(0, 45, 0)
    executor.tick(0.5)

    assert executor.pawn.get_rotation() == Rotator(0, 90, 0)
    assert executor.movement_mode == S
    assert events.modes == [(S, TURN), (TURN, S)]
    assert events.finished == 1


def test_turn_to_needs_in_place_turn_and_no_path():
    grid, _, upper = _ladder_yard()
    executor = _climber(grid)
    assert not executor.turn_to(Rotator(yaw=90))

    turner = _climber(grid, available_movement_modes={W, UP, TURN})
    turner.move_to(upper)
    assert not turner.turn_to(Rotator(yaw=90))


def test_limit_rotation_takes_short_way():
    grid = grid_from_ascii(["."])
    executor = _walker(grid, Vector3(0, 0, 0), max_rotation_speed=720)

    limited = executor.limit_rotation(Rotator(yaw=170), Rotator(yaw=-170), 0.01)

    assert limited.yaw == pytest.approx(177.2)


def test_apply_rotation_locks():
    grid = grid_from_ascii(["."])
    pawn = SimplePawn(Vector3(), Rotator(0, 5, 0))
    locked = GridMovementExecutor("a", pawn, grid, MovementSettings(lock_yaw=True))
    free = GridMovementExecutor(
        "b", pawn, grid, MovementSettings(lock_pitch=False, lock_roll=False, lock_yaw=False)
    )

    assert locked.apply_rotation_locks(Rotator(10, 20, 30)) == Rotator(0, 5, 0)
    assert free.apply_rotation_locks(Rotator(10, 20, 30)) == Rotator(10, 20, 30)


def test_root_motion_consumed_once_per_frame():
    grid = grid_from_ascii(["...", "...", "..."])
    source = _FixedDisplacement(Vector3(30, 0, 0))
    executor = GridMovementExecutor(
        "dancer", SimplePawn(Vector3(200, 200, 0)), grid, MovementSettings(), displacement_source=source
    )
    executor.move_to(grid.tile_at_cell((2, 1, 0)))

    executor.tick(0.1)
    first = executor.consume_root_motion()
    second = executor.consume_root_motion()

    assert source.calls == 1
    assert first is second
    assert executor.get_remaining_distance() == pytest.approx(170)


def test_always_use_root_motion_when_idle():
    grid = grid_from_ascii(["..."])
    source = _FixedDisplacement(Vector3(10, 0, 0), Rotator(yaw=5))
    executor = GridMovementExecutor(
        "drifter",
        SimplePawn(Vector3(0, 0, 0)),
        grid,
        MovementSettings(always_use_root_motion=True),
        displacement_source=source,
    )

    executor.tick(0.1)

    assert executor.pawn.get_location() == Vector3(10, 0, 0)
    assert executor.pawn.get_rotation().yaw == pytest.approx(5)
    assert executor.movement_mode == S


def test_new_path_replaces_live_one():
    grid = grid_from_ascii(["....."])
    executor = _walker(grid, Vector3(400, 0, 0))
    events = _Recorder(executor)
    executor.move_to(grid.tile_at_cell((4, 0, 0)))
    executor.tick(0.1)

    executor.move_to(grid.tile_at_cell((0, 0, 0)))

    assert events.modes[:2] == [(S, W), (W, S)]
    assert executor.movement_mode == S
    assert executor.route.destination is grid.tile_at_cell((0, 0, 0))


def test_replanned_path_starts_at_pawn():
    grid = grid_from_ascii(["....."])
    executor = _walker(grid, Vector3(0, 0, 0), available_movement_modes={W})
    target = grid.tile_at_cell((4, 0, 0))
    executor.move_to(target)
    executor.tick(0.1)
    before = executor.pawn.get_location()
    assert before.x == pytest.approx(45)

    assert executor.move_to(target)
    assert executor.get_forward_location(0) == before
    executor.tick(0.01)

    assert executor.pawn.get_location().distance(before) <= 450 * 0.01 + 1e-6


def test_path_after_stop_starts_at_pawn():
    grid = grid_from_ascii(["....."])
    executor = _walker(grid, Vector3(0, 0, 0), available_movement_modes={W})
    target = grid.tile_at_cell((4, 0, 0))
    executor.move_to(target)
    executor.tick(0.25)
    executor.stop_movement_immediately()
    before = executor.pawn.get_location()
    assert before.x == pytest.approx(112.5)

    assert executor.move_to(target)
    executor.tick(0.01)

    after = executor.pawn.get_location()
    assert after.distance(before) <= 450 * 0.01 + 1e-6
    assert after.x > before.x

    _run(executor)
    assert executor.pawn.get_location() == target.pawn_location


def test_snap_to_grid():
    grid = grid_from_ascii(["...", "...", "..."])
    executor = _walker(grid, Vector3(210, 190, 0))

    assert executor.snap_to_grid()
    assert executor.pawn.get_location() == Vector3(200, 200, 0)
    assert executor.state.current_tile is grid.tile_at_cell((1, 1, 0))

    stray = _walker(grid, Vector3(5000, 0, 0))
    assert not stray.snap_to_grid()
