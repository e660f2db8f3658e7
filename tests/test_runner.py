"""Tests for the multi-agent frame loop and turn notifications."""

import pytest

from navgrid.environment import grid_from_ascii
from navgrid.geometry import Vector3
from navgrid.interfaces import SimplePawn
from navgrid.movement import GridMovementExecutor, TurnComponent
from navgrid.runner import MovementLoop


def _two_walkers():
    grid = grid_from_ascii([".....", ".....", "....."])
    north = GridMovementExecutor("north", SimplePawn(Vector3(0, 400, 0)), grid)
    south = GridMovementExecutor("south", SimplePawn(Vector3(0, 0, 0)), grid)
    return grid, north, south


def test_loop_runs_every_agent_to_completion():
    grid, north, south = _two_walkers()
    frames_seen = []
    loop = MovementLoop(
        [north, south],
        frame_listeners=[lambda frame, dt, moving: frames_seen.append((frame, list(moving)))],
    )

    north.move_to(grid.tile_at_cell((4, 2, 0)))
    south.move_to(grid.tile_at_cell((1, 0, 0)))
    assert set(loop.moving_agents()) == {"north", "south"}

    frames = loop.run_until_idle(0.1)

    assert frames == len(frames_seen)
    assert frames_seen[0][0] == 1
    assert frames_seen[-1][1] == []
    assert "south" not in frames_seen[-2][1]
    assert north.pawn.get_location() == Vector3(800, 400, 0)
    assert south.pawn.get_location() == Vector3(200, 0, 0)


def test_loop_rejects_duplicate_ids():
    grid, north, _ = _two_walkers()
    loop = MovementLoop([north])
    with pytest.raises(ValueError):
        loop.add(GridMovementExecutor("north", SimplePawn(), grid))

    loop.remove("north")
    assert loop.executors == {}
    assert loop.run_until_idle(0.1) == 0


def test_turn_component_broadcasts_in_order():
    calls = []
    turns = TurnComponent(owner="knight")
    turns.turn_start_listeners.append(lambda: calls.append("start-a"))
    turns.turn_start_listeners.append(lambda: calls.append("start-b"))
    turns.turn_end_listeners.append(lambda: calls.append("end"))
    turns.round_start_listeners.append(lambda: calls.append("round"))

    turns.round_start()
    turns.turn_start()
    assert turns.in_turn
    turns.turn_end()

    assert calls == ["round", "start-a", "start-b", "end"]
    assert not turns.in_turn
