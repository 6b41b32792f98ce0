"""Indicator configuration models (moving averages, RSI)."""

from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_extra_types.color import Color

MovingAverageType = Literal["sma", "ema", "wma", "vwma"]
PriceSource = Literal["close", "open", "high", "low", "hl2", "hlc3", "ohlc4"]

MIN_PERIOD = 2
MAX_PERIOD = 500


def _check_color(v: str) -> str:
    # Color() accepts named CSS colors, hex, rgb()/rgba() and hsl()/hsla()
    try:
        Color(v)
    except ValueError as e:
        raise ValueError("Invalid color format") from e
    return v


class MovingAverageConfig(BaseModel):
    """One moving-average overlay.

    Series identity is `series_key` = (type, period, price_source); two
    configs sharing it render as the same overlay.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    period: int = Field(..., ge=MIN_PERIOD, le=MAX_PERIOD)
    color: str
    line_width: Literal[1, 2, 3, 4] = Field(default=2, alias="lineWidth")
    type: MovingAverageType = "sma"
    price_source: PriceSource = Field(default="close", alias="priceSource")
    visible: bool = True
    id: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return _check_color(v)

    @property
    def series_key(self) -> Tuple[str, int, str]:
        return (self.type, self.period, self.price_source)

    def label(self) -> str:
        suffix = "" if self.price_source == "close" else f" {self.price_source}"
        return f"{self.type.upper()}({self.period}){suffix}"


class RSIConfig(BaseModel):
    """One RSI pane.

    `id` stays None until the registry stores the config; a draft from the
    config dialog validates without one.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = Field(default=None, min_length=1)
    period: int = Field(default=14, ge=MIN_PERIOD, le=MAX_PERIOD)
    visible: bool = True
    color: str = "#7E57C2"
    line_width: int = Field(default=2, ge=1, le=10, alias="lineWidth")
    overbought: int = Field(default=70, ge=50, le=90)
    oversold: int = Field(default=30, ge=10, le=50)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return _check_color(v)
