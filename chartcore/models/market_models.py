"""Market domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Candle:
    time: int  # ms since epoch
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Candle":
        volume = data.get("volume")
        return Candle(
            time=int(data["time"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=float(volume) if volume is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IndicatorPoint:
    time: int  # canonical seconds
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "value": self.value}


IndicatorSeries = List[IndicatorPoint]
