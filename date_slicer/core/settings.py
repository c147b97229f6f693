"""Configuration models: per-widget host settings and process-wide app settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from date_slicer.core.presets import PresetId, coerce_preset

SETTINGS_ENV_PREFIX = "DATE_SLICER_"


class SlicerSettings(BaseModel):
    """
    The key/value settings object the host supplies with every update.

    Unknown keys are ignored so hosts can carry formatting options this widget
    does not read.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    preset: PresetId = PresetId.NONE
    selection_style: Literal["slider", "calendar"] = Field(default="slider", alias="selectionStyle")
    popup_mode: bool = Field(default=False, alias="popupMode")
    show_header: bool = Field(default=True, alias="showHeader")
    header_text: str = Field(default="Date Slicer", alias="headerText")

    card_color: str = Field(default="#ffffff", alias="cardColor")
    date_box_color: str = Field(default="#ffffff", alias="dateBoxColor")
    font_color: str = Field(default="#000000", alias="fontColor")
    font_size: int = Field(default=12, ge=6, le=48, alias="fontSize")

    @field_validator("preset", mode="before")
    @classmethod
    def _coerce_preset(cls, v: Any) -> PresetId:
        return coerce_preset(v)

    @field_validator("selection_style", mode="before")
    @classmethod
    def _style_alias(cls, v: Any) -> Any:
        # Older report files spell it "calender".
        if isinstance(v, str) and v.strip().lower() in ("calender", "calendar"):
            return "calendar"
        return v


class EngineTiming(BaseModel):
    """Safety deadlines (milliseconds) after which a mode flag is dropped even without a tick."""

    local_change_timeout_ms: int = Field(default=100, ge=1)
    preset_write_timeout_ms: int = Field(default=500, ge=1)
    restore_timeout_ms: int = Field(default=300, ge=1)
    clear_all_timeout_ms: int = Field(default=150, ge=1)


class LoggingConfig(BaseModel):
    app_name: str = "date_slicer"
    log_dir: Path = Path("./logs")
    level: str = "INFO"
    file_level: str = "DEBUG"


class DemoConfig(BaseModel):
    """Sample data used by the demo dashboard."""

    rows: int = Field(default=2_000, ge=1)
    days: int = Field(default=120, ge=1)
    seed: int = 7


class AppSettings(BaseSettings):
    """Top-level application settings (env vars `DATE_SLICER_*`, nested with `__`)."""

    timing: EngineTiming = Field(default_factory=EngineTiming)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    demo: DemoConfig = Field(default_factory=DemoConfig)
    bookmarks_path: Path = Path("./bookmarks.json")

    model_config = SettingsConfigDict(
        env_prefix=SETTINGS_ENV_PREFIX,
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    """Load and cache application settings from env / .env."""
    return AppSettings()
