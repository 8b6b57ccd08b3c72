"""Configuration management for the spreadsheet engine.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
SHEET_ prefix, or via a .env file in the project root.

Environment Variables:
    SHEET_HISTORY_LIMIT: Maximum retained undo/redo entries (default: 100)
    SHEET_DEFAULT_COLUMN_WIDTH_PX: Width of a column with no explicit width (default: 144)
    SHEET_MIN_COLUMN_WIDTH_PX: Smallest width a column can be resized to (default: 15)
    SHEET_DEFAULT_ROW_HEIGHT_PX: Height of a row with no explicit height (default: 24)
    SHEET_MIN_ROW_HEIGHT_PX: Smallest height a row can be resized to (default: 24)
    SHEET_AUTOFIT_PADDING_PX: Padding added to measured text on auto-fit (default: 16)
    SHEET_AUTOFIT_FONT_SIZE: Font size used to measure text on auto-fit (default: 14)
    SHEET_LOG_LEVEL: Logging level (default: INFO)
    SHEET_DEBUG: Enable debug mode (default: false)
"""

import logging
from typing import Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Example .env file:
        SHEET_HISTORY_LIMIT=250
        SHEET_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # History Settings
    # =========================================================================

    history_limit: int = 100
    """Maximum number of undo/redo entries kept; the oldest is evicted first."""

    # =========================================================================
    # Geometry Settings
    # =========================================================================

    default_column_width_px: float = 144.0
    """Width used for columns that have never been resized."""

    min_column_width_px: float = 15.0
    """Lower clamp for column resize and auto-fit."""

    default_row_height_px: float = 24.0
    """Height used for rows that have never been resized."""

    min_row_height_px: float = 24.0
    """Lower clamp for row resize."""

    # =========================================================================
    # Auto-fit Settings
    # =========================================================================

    autofit_padding_px: float = 16.0
    """Horizontal padding added to the widest measured text."""

    autofit_font_size: int = 14
    """Font size in points used when measuring cell text."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("history_limit")
    @classmethod
    def validate_history_limit(cls, v: int) -> int:
        """Validate the history cap is positive and reasonable."""
        if not 1 <= v <= 10000:
            raise ValueError(f"history_limit must be between 1 and 10000, got {v}")
        return v

    @field_validator(
        "default_column_width_px",
        "min_column_width_px",
        "default_row_height_px",
        "min_row_height_px",
    )
    @classmethod
    def validate_dimension(cls, v: float) -> float:
        """Validate pixel dimensions are positive."""
        if v <= 0:
            raise ValueError(f"Pixel dimensions must be positive, got {v}")
        return v

    @field_validator("autofit_padding_px")
    @classmethod
    def validate_padding(cls, v: float) -> float:
        """Validate auto-fit padding is not negative."""
        if v < 0:
            raise ValueError(f"autofit_padding_px must not be negative, got {v}")
        return v

    @field_validator("autofit_font_size")
    @classmethod
    def validate_font_size(cls, v: int) -> int:
        """Validate the measuring font size."""
        if not 1 <= v <= 200:
            raise ValueError(f"autofit_font_size must be between 1 and 200, got {v}")
        return v

    @model_validator(mode="after")
    def validate_defaults_above_minimums(self) -> "Settings":
        """Validate default sizes are not below their clamps."""
        if self.default_column_width_px < self.min_column_width_px:
            raise ValueError(
                f"default_column_width_px ({self.default_column_width_px}) must be "
                f"at least min_column_width_px ({self.min_column_width_px})"
            )
        if self.default_row_height_px < self.min_row_height_px:
            raise ValueError(
                f"default_row_height_px ({self.default_row_height_px}) must be "
                f"at least min_row_height_px ({self.min_row_height_px})"
            )
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary for logging.

        Returns:
            Dictionary representation of all settings.
        """
        return {
            "history_limit": self.history_limit,
            "default_column_width_px": self.default_column_width_px,
            "min_column_width_px": self.min_column_width_px,
            "default_row_height_px": self.default_row_height_px,
            "min_row_height_px": self.min_row_height_px,
            "autofit_padding_px": self.autofit_padding_px,
            "autofit_font_size": self.autofit_font_size,
            "log_level": self.log_level,
            "debug": self.debug,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings when an engine is created.

    Emits warnings for settings that are valid but likely unintended.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if s.history_limit < 10:
        logger.warning(
            f"history_limit is {s.history_limit}; most edits will fall out of "
            "undo range quickly."
        )

    if s.debug and s.log_level != "DEBUG":
        logger.warning(
            "Debug mode is enabled but log_level is not DEBUG; "
            "command traces will not be visible."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"history_limit={s.history_limit}"
    )


# Create the global settings instance
settings = Settings()
