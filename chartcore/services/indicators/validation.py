"""Indicator config validation that reports every problem at once.

pydantic does the checking; its errors are turned into the short,
human-readable messages the configuration dialogs display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from chartcore.models.indicator_models import MAX_PERIOD, MIN_PERIOD, MovingAverageConfig, RSIConfig

_PERIOD_MSG = f"Period must be between {MIN_PERIOD} and {MAX_PERIOD}"

_MA_MESSAGES: Dict[str, str] = {
    "period": _PERIOD_MSG,
    "type": "Invalid moving average type",
    "price_source": "Invalid price source",
    "priceSource": "Invalid price source",
    "color": "Invalid color format",
    "line_width": "Line width must be 1, 2, 3, or 4",
    "lineWidth": "Line width must be 1, 2, 3, or 4",
    "visible": "Visible must be true or false",
}

_RSI_MESSAGES: Dict[str, str] = {
    "id": "RSI id must be a non-empty string",
    "period": _PERIOD_MSG,
    "color": "Invalid color format",
    "line_width": "Line width must be between 1 and 10",
    "lineWidth": "Line width must be between 1 and 10",
    "overbought": "Overbought level must be between 50 and 90",
    "oversold": "Oversold level must be between 10 and 50",
    "visible": "Visible must be true or false",
}


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    config: Optional[BaseModel] = None


def _messages(exc: ValidationError, table: Mapping[str, str]) -> List[str]:
    out: List[str] = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        name = str(loc[0]) if loc else ""
        if err.get("type") == "missing":
            msg = f"{name} is required"
        elif name in table:
            msg = table[name]
        else:
            msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        if msg not in out:
            out.append(msg)
    return out


def _as_dict(data: Union[Mapping[str, Any], BaseModel]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def validate_moving_average_config(data: Union[Mapping[str, Any], BaseModel]) -> ValidationResult:
    try:
        config = MovingAverageConfig.model_validate(_as_dict(data))
    except ValidationError as e:
        return ValidationResult(is_valid=False, errors=_messages(e, _MA_MESSAGES))
    return ValidationResult(is_valid=True, config=config)


def validate_rsi_config(data: Union[Mapping[str, Any], BaseModel]) -> ValidationResult:
    try:
        config = RSIConfig.model_validate(_as_dict(data))
    except ValidationError as e:
        return ValidationResult(is_valid=False, errors=_messages(e, _RSI_MESSAGES))
    return ValidationResult(is_valid=True, config=config)


def validate_indicator_config(data: Mapping[str, Any]) -> ValidationResult:
    """Dispatch on `type`: "rsi" or one of the moving-average kinds."""
    if str(data.get("type", "")).lower() == "rsi":
        payload = {k: v for k, v in data.items() if k != "type"}
        return validate_rsi_config(payload)
    return validate_moving_average_config(data)
