"""Unit tests for settings models and environment configuration."""

from navgrid.config import Config
from navgrid.schemas import (
    MIN_SPEED,
    MIN_TILE_SIZE,
    GridSettings,
    MovementMode,
    MovementSettings,
)


def test_movement_settings_defaults():
    settings = MovementSettings()
    assert settings.schema_version == 1
    assert settings.movement_range == 4.0
    assert settings.max_walk_speed == 450.0
    assert settings.max_climb_speed == 200.0
    assert settings.lock_roll is True and settings.lock_pitch is True
    assert settings.lock_yaw is False
    assert MovementMode.WALKING in settings.available_movement_modes
    assert MovementMode.STATIONARY not in settings.available_movement_modes


def test_movement_settings_clamp_inconsistent_values():
    settings = MovementSettings(
        movement_range=-3,
        max_walk_speed=-10,
        max_climb_speed=0,
        max_rotation_speed=-1,
        turn_tolerance=400,
    )
    assert settings.movement_range == 0.0
    assert settings.max_walk_speed == MIN_SPEED
    assert settings.max_climb_speed == MIN_SPEED
    assert settings.max_rotation_speed > 0
    assert settings.turn_tolerance == 180.0


def test_movement_settings_accepts_mode_lists():
    settings = MovementSettings(available_movement_modes=["walking", "climbing_up"])
    assert settings.available_movement_modes == frozenset(
        {MovementMode.WALKING, MovementMode.CLIMBING_UP}
    )


def test_speed_for_modes():
    settings = MovementSettings(max_walk_speed=300, max_climb_speed=120)
    assert settings.speed_for(MovementMode.WALKING) == 300
    assert settings.speed_for(MovementMode.CLIMBING_UP) == 120
    assert settings.speed_for(MovementMode.CLIMBING_DOWN) == 120
    assert settings.speed_for(MovementMode.IN_PLACE_TURN) == 0.0
    assert settings.speed_for(MovementMode.STATIONARY) == 0.0


def test_grid_settings_clamp():
    settings = GridSettings(tile_size=0, max_virtual_tiles=-5, neighbourhood_margin=-1)
    assert settings.tile_size == MIN_TILE_SIZE
    assert settings.max_virtual_tiles == 0
    assert settings.neighbourhood_margin == 0.0


def test_config_builds_grid_settings_and_display():
    settings = Config.grid_settings()
    assert isinstance(settings, GridSettings)
    assert settings.tile_size == max(Config.TILE_SIZE, MIN_TILE_SIZE)

    text = Config.display()
    assert "navgrid Configuration" in text
    assert "Tile Size" in text

    Config.validate()


def test_logging_reads_environment_not_config(monkeypatch, capsys):
    from navgrid.logging_utils import log_info

    monkeypatch.setattr(Config, "LOG_LEVEL", "ERROR")
    monkeypatch.setenv("NAVGRID_LOG_LEVEL", "INFO")
    monkeypatch.setenv("NAVGRID_NO_COLOR", "1")

    log_info("frame loop idle")

    assert "frame loop idle" in capsys.readouterr().out
    assert "Log Level: ERROR" in Config.display()
