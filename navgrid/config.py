"""
navgrid Configuration

Loads configuration from environment variables with sensible defaults.
Only process-wide knobs live here; per-agent movement tuning is passed
explicitly through ``MovementSettings``.
"""

import os
from dotenv import load_dotenv

from .schemas import GridSettings

# Load .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables.

    Values are read once, at import. ``LOG_LEVEL`` and ``NO_COLOR`` are only
    reported here (``validate``/``display``); ``navgrid.logging_utils`` reads
    ``NAVGRID_LOG_LEVEL`` and ``NAVGRID_NO_COLOR`` on every call, so changing
    them at runtime takes effect without reloading this class.
    """

    # Logging (reported only, see above)
    LOG_LEVEL: str = os.getenv("NAVGRID_LOG_LEVEL", "WARNING")
    NO_COLOR: bool = _env_flag("NAVGRID_NO_COLOR")

    # Grid defaults
    TILE_SIZE: float = float(os.getenv("NAVGRID_TILE_SIZE", "200"))
    ENABLE_VIRTUAL_TILES: bool = _env_flag("NAVGRID_ENABLE_VIRTUAL_TILES")
    MAX_VIRTUAL_TILES: int = int(os.getenv("NAVGRID_MAX_VIRTUAL_TILES", "10000"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for unusable values."""
        if cls.LOG_LEVEL.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(
                f"NAVGRID_LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR (got {cls.LOG_LEVEL!r})"
            )

    @classmethod
    def grid_settings(cls) -> GridSettings:
        """Build grid settings from the environment (values are clamped by the model)."""
        return GridSettings(
            tile_size=cls.TILE_SIZE,
            enable_virtual_tiles=cls.ENABLE_VIRTUAL_TILES,
            max_virtual_tiles=cls.MAX_VIRTUAL_TILES,
        )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "navgrid Configuration:",
            f"  Log Level: {cls.LOG_LEVEL}",
            f"  Colors: {'off' if cls.NO_COLOR else 'on'}",
            f"  Tile Size: {cls.TILE_SIZE}",
            f"  Virtual Tiles: {'on' if cls.ENABLE_VIRTUAL_TILES else 'off'} (max {cls.MAX_VIRTUAL_TILES})",
        ]
        return "\n".join(lines)
