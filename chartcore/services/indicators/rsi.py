"""RSI (Wilder smoothing) over candle closes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

from chartcore.infrastructure.utils.timeutils import normalize_time
from chartcore.models.indicator_models import RSIConfig
from chartcore.models.market_models import Candle, IndicatorPoint, IndicatorSeries


@dataclass(frozen=True)
class RSIResult:
    config: RSIConfig
    data: IndicatorSeries

    def to_dict(self) -> Dict[str, object]:
        return {
            "config": self.config.model_dump(by_alias=True),
            "data": [p.to_dict() for p in self.data],
        }


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return min(max(100.0 - (100.0 / (1.0 + rs)), 0.0), 100.0)


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> IndicatorSeries:
    """First value at candle index `period`; needs `period + 1` candles.

    Initial averages are simple means of the first `period` close-to-close
    changes, later ones use avg = (prev * (period - 1) + value) / period.
    Candles with a non-finite close are ignored.
    """
    if period < 1:
        return []
    valid = [c for c in candles if math.isfinite(c.close)]
    if len(valid) < period + 1:
        return []

    gains: List[float] = []
    losses: List[float] = []
    for prev, cur in zip(valid, valid[1:]):
        change = cur.close - prev.close
        gains.append(max(change, 0.0))
        losses.append(max(-change, 0.0))

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    out: IndicatorSeries = [IndicatorPoint(time=normalize_time(valid[period].time), value=_rsi(avg_gain, avg_loss))]
    # gains[i - 1] is the change into candle i
    for i in range(period + 1, len(valid)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out.append(IndicatorPoint(time=normalize_time(valid[i].time), value=_rsi(avg_gain, avg_loss)))
    return out


def calculate_rsi_for_config(candles: Sequence[Candle], config: RSIConfig) -> RSIResult:
    return RSIResult(config=config, data=calculate_rsi(candles, config.period))
