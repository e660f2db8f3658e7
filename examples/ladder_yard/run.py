"""
Ladder Yard

A knight walks across a walled yard, climbs a ladder onto a rampart and walks
along it. Prints the reachable tiles, the string-pulled route and every
movement mode change while the frame loop runs.

Run: NAVGRID_LOG_LEVEL=INFO python examples/ladder_yard/run.py
"""

from navgrid import (
    CLIMBING_MODES,
    GridMovementExecutor,
    MovementLoop,
    MovementSettings,
    SimplePawn,
    Vector3,
    grid_from_ascii,
    render_ascii_window,
)
from navgrid.config import Config

YARD = [
    ".....",
    ".#...",
    ".#...",
    ".....",
]
RAMPART_HEIGHT = 300.0


def build_yard():
    """Yard floor from ASCII, plus a ladder and a two-tile rampart to the east."""
    settings = Config.grid_settings()
    grid = grid_from_ascii(YARD, settings=settings)
    size = settings.tile_size

    # Climbing side faces west, back towards the yard
    ladder = grid.create_ladder(
        Vector3(5 * size, 0, RAMPART_HEIGHT / 2), height=RAMPART_HEIGHT, facing_yaw=180
    )
    rampart = [
        grid.create_tile(Vector3(6 * size, 0, RAMPART_HEIGHT)),
        grid.create_tile(Vector3(6 * size, size, RAMPART_HEIGHT)),
    ]
    return grid, ladder, rampart


def main():
    Config.validate()
    print(Config.display())
    grid, ladder, rampart = build_yard()
    size = grid.tile_size

    knight = GridMovementExecutor(
        "knight",
        SimplePawn(Vector3(0, 3 * size, 0)),
        grid,
        MovementSettings(movement_range=8),
    )
    knight.on_movement_mode_changed(
        lambda old, new: print(f"  mode: {old.value} -> {new.value}")
    )
    knight.on_movement_end(lambda: print("  movement finished"))

    in_range = knight.get_tiles_in_range()
    print(f"\n{len(in_range)} tiles in range (ladder at {ladder.location}):")
    marks = {tile: "o " for tile in in_range}
    print(render_ascii_window(grid, Vector3(3 * size, 2 * size, 0), radius=3, marks=marks))

    target = rampart[-1]
    if not knight.move_to(target):
        print("No path to the rampart")
        return

    route = knight.route
    print(f"\nRoute: {len(route.waypoints)} waypoints, length {route.total_length:.0f}")
    for segment in route.segments:
        modes = ", ".join(sorted(mode.value for mode in segment.movement_modes))
        climbing = " (climb)" if segment.movement_modes & CLIMBING_MODES else ""
        print(f"  [{segment.start:7.1f}, {segment.end:7.1f}) {modes}{climbing}")

    loop = MovementLoop([knight])
    frames = loop.run_until_idle(1 / 30)
    print(f"\nArrived at {knight.pawn.get_location()} after {frames} frames")


if __name__ == "__main__":
    main()
