"""Configuration management for chartcore.

Rules:
- YAML provides defaults for drawing, indicator, storage and API settings.
- Environment variables (CHARTCORE__...) and .env override YAML.
- A missing YAML file is not an error: built-in defaults apply.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chartcore.exceptions import ConfigurationError
from chartcore.infrastructure.logging.logging import LOG_FORMATS


class EraserTolerancesConfig(BaseModel):
    """Pixel tolerances used by the eraser, per drawing type."""

    line: float = Field(default=15.0, ge=0, le=100)
    freehand: float = Field(default=15.0, ge=0, le=100)
    rectangle: float = Field(default=10.0, ge=0, le=100)
    circle: float = Field(default=10.0, ge=0, le=100)


class DrawingConfig(BaseModel):
    default_color: str = Field(default="#FFFFFF")
    default_line_width: int = Field(default=2, ge=1, le=10)
    eraser: EraserTolerancesConfig = Field(default_factory=EraserTolerancesConfig)
    viewport_debounce_ms: int = Field(default=50, ge=50, le=150)
    storage_key: str = Field(default="drawings")


class IndicatorsConfig(BaseModel):
    moving_average_storage_key: str = Field(default="movingAverageConfigs")
    rsi_storage_key: str = Field(default="rsi-configs")
    default_rsi_period: int = Field(default=14, ge=2, le=500)


class StorageConfig(BaseModel):
    type: str = Field(default="file")
    path: str = Field(default="data/client_storage.json")

    @field_validator("type")
    @classmethod
    def validate_storage_type(cls, v: str) -> str:
        if str(v).lower() not in {"file", "memory"}:
            raise ValueError("Storage type must be 'file' or 'memory'")
        return str(v).lower()


class APIConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])


class ChartCoreSettings(BaseSettings):
    """Root settings object.

    YAML is parsed as the base config; environment variables are then
    re-applied on top through pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARTCORE__",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    drawing: DrawingConfig = Field(default_factory=DrawingConfig)
    indicators: IndicatorsConfig = Field(default_factory=IndicatorsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid:
            raise ValueError(f"Log level must be one of: {sorted(valid)}")
        return str(v).upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if str(v).lower() not in LOG_FORMATS:
            raise ValueError(f"Log format must be one of: {list(LOG_FORMATS)}")
        return str(v).lower()

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ChartCoreSettings":
        """Load settings from YAML, letting the environment win."""
        if not yaml_path.exists():
            raise ConfigurationError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        try:
            # init kwargs take precedence over env in pydantic-settings, so the
            # env overrides are merged in explicitly afterwards
            base = cls(**data)
            overrides = cls().model_dump(exclude_unset=True)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation error: {e}") from e

        if overrides:
            merged = _deep_merge(base.model_dump(), overrides)
            try:
                base = cls(**merged)
            except ValidationError as e:
                raise ConfigurationError(f"Configuration validation error: {e}") from e
        return base


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_config(config_path: Optional[Path] = None) -> ChartCoreSettings:
    """Load settings from YAML + .env (env wins)."""

    load_dotenv(dotenv_path=Path(".env"))

    if config_path is None:
        env_path = os.getenv("CHARTCORE_CONFIG")
        possible_paths = [Path(env_path)] if env_path else []
        possible_paths += [Path("config/default.yaml"), Path("config/config.yaml"), Path("config.yaml")]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            return ChartCoreSettings()

    return ChartCoreSettings.from_yaml(config_path)


# Global config instance
_config: Optional[ChartCoreSettings] = None


def get_config() -> ChartCoreSettings:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[Path] = None) -> ChartCoreSettings:
    global _config
    _config = load_config(config_path)
    return _config
