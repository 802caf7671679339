"""
Configuration management using pydantic-settings.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from txflow.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_CHILD_OFFSET,
    DEFAULT_CHILD_SPACING,
    DEFAULT_SLOT_WIDTH,
    THROTTLE_WINDOW,
    ZOOM_MAX,
    ZOOM_MIN,
)
from txflow.layout import LayoutConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    esplora_url: str = "https://blockstream.info/api"
    request_timeout: float = 30.0
    max_concurrent_requests: int = Field(default=5, ge=1)

    log_level: str = "INFO"

    # Layout defaults
    thickness_ratio: float = Field(default=1.0, ge=0.5, le=2.0)
    line_spacing: float = Field(default=10.0, ge=0.0, le=50.0)
    line_length: float = Field(default=400.0, ge=200.0, le=1500.0)
    min_line_thickness: float = Field(default=0.1, ge=0.1, le=5.0)

    # Spend tree placement
    slot_width: float = DEFAULT_SLOT_WIDTH
    child_offset: float = DEFAULT_CHILD_OFFSET
    child_spacing: float = DEFAULT_CHILD_SPACING
    shrink_max_on_collapse: bool = False

    # Viewport
    canvas_width: int = DEFAULT_CANVAS_WIDTH
    canvas_height: int = DEFAULT_CANVAS_HEIGHT
    zoom_min: float = ZOOM_MIN
    zoom_max: float = ZOOM_MAX

    throttle_window: float = THROTTLE_WINDOW  # seconds

    def layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            thickness_ratio=self.thickness_ratio,
            line_spacing=self.line_spacing,
            line_length=self.line_length,
            min_line_thickness=self.min_line_thickness,
        )


def get_settings() -> Settings:
    return Settings()
