"""Moving averages (SMA, EMA, WMA, VWMA) in batch and real-time modes.

Every series starts at candle index `period - 1`; fewer candles than
`period` yields an empty series, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from chartcore.infrastructure.utils.timeutils import normalize_time
from chartcore.models.indicator_models import MovingAverageConfig
from chartcore.models.market_models import Candle, IndicatorPoint, IndicatorSeries


@dataclass(frozen=True)
class MovingAverageResult:
    config: MovingAverageConfig
    data: IndicatorSeries

    def to_dict(self) -> Dict[str, object]:
        return {
            "label": self.config.label(),
            "config": self.config.model_dump(by_alias=True),
            "data": [p.to_dict() for p in self.data],
        }


_PRICE_SOURCES: Dict[str, Callable[[Candle], float]] = {
    "close": lambda c: c.close,
    "open": lambda c: c.open,
    "high": lambda c: c.high,
    "low": lambda c: c.low,
    "hl2": lambda c: (c.high + c.low) / 2,
    "hlc3": lambda c: (c.high + c.low + c.close) / 3,
    "ohlc4": lambda c: (c.open + c.high + c.low + c.close) / 4,
}


def price_of(candle: Candle, price_source: str = "close") -> float:
    try:
        return _PRICE_SOURCES[price_source](candle)
    except KeyError as e:
        raise ValueError(f"Unknown price source: {price_source}") from e


def price_series(candles: Sequence[Candle], price_source: str = "close") -> List[float]:
    return [price_of(c, price_source) for c in candles]


def _point(candle: Candle, value: float) -> IndicatorPoint:
    return IndicatorPoint(time=normalize_time(candle.time), value=value)


def ema_step(previous_ema: float, new_price: float, period: int) -> float:
    """One EMA update; pure so callers can keep the previous value themselves."""
    multiplier = 2.0 / (period + 1.0)
    return (new_price - previous_ema) * multiplier + previous_ema


def calculate_sma(candles: Sequence[Candle], period: int, price_source: str = "close") -> IndicatorSeries:
    if period < 1 or len(candles) < period:
        return []
    prices = price_series(candles, price_source)
    out: IndicatorSeries = []
    for i in range(period - 1, len(prices)):
        window = prices[i - period + 1 : i + 1]
        out.append(_point(candles[i], sum(window) / period))
    return out


def calculate_ema(candles: Sequence[Candle], period: int, price_source: str = "close") -> IndicatorSeries:
    if period < 1 or len(candles) < period:
        return []
    prices = price_series(candles, price_source)
    ema = sum(prices[:period]) / period
    out: IndicatorSeries = [_point(candles[period - 1], ema)]
    for i in range(period, len(prices)):
        ema = ema_step(ema, prices[i], period)
        out.append(_point(candles[i], ema))
    return out


def calculate_wma(candles: Sequence[Candle], period: int, price_source: str = "close") -> IndicatorSeries:
    if period < 1 or len(candles) < period:
        return []
    prices = price_series(candles, price_source)
    weight_sum = period * (period + 1) / 2
    out: IndicatorSeries = []
    for i in range(period - 1, len(prices)):
        # newest price gets weight `period`, oldest gets 1
        total = sum(prices[i - j] * (period - j) for j in range(period))
        out.append(_point(candles[i], total / weight_sum))
    return out


def calculate_vwma(candles: Sequence[Candle], period: int, price_source: str = "close") -> IndicatorSeries:
    if period < 1 or len(candles) < period:
        return []
    prices = price_series(candles, price_source)
    # missing (or zero) volume counts as 1
    volumes = [c.volume or 1.0 for c in candles]
    out: IndicatorSeries = []
    for i in range(period - 1, len(prices)):
        lo = i - period + 1
        vol_sum = sum(volumes[lo : i + 1])
        pv_sum = sum(prices[k] * volumes[k] for k in range(lo, i + 1))
        out.append(_point(candles[i], pv_sum / vol_sum))
    return out


_CALCULATORS: Dict[str, Callable[[Sequence[Candle], int, str], IndicatorSeries]] = {
    "sma": calculate_sma,
    "ema": calculate_ema,
    "wma": calculate_wma,
    "vwma": calculate_vwma,
}


def calculate_moving_average(candles: Sequence[Candle], config: MovingAverageConfig) -> MovingAverageResult:
    calc = _CALCULATORS.get(config.type, calculate_sma)
    return MovingAverageResult(config=config, data=calc(candles, config.period, config.price_source))


def calculate_multiple_moving_averages(
    candles: Sequence[Candle], configs: Sequence[MovingAverageConfig]
) -> List[MovingAverageResult]:
    return [calculate_moving_average(candles, c) for c in configs]


def min_data_points_required(configs: Sequence[MovingAverageConfig]) -> int:
    return max((c.period for c in configs), default=0)


def has_enough_data(candles: Sequence[Candle], configs: Sequence[MovingAverageConfig]) -> bool:
    return len(candles) >= min_data_points_required(configs)


def required_data_for_realtime(history: Sequence[Candle], period: int) -> List[Candle]:
    """The trailing `period - 1` candles a real-time update needs."""
    if period <= 1:
        return []
    return list(history[-(period - 1) :])


def realtime_moving_average(
    history: Sequence[Candle],
    new_candle: Candle,
    config: MovingAverageConfig,
    previous_ema: Optional[float] = None,
) -> Optional[IndicatorPoint]:
    """Newest value only, from the trailing history plus one new candle.

    EMA uses `ema_step` when the previous EMA value is supplied; without it
    the window is seeded as in batch mode, which only matches the batch
    series right at warm-up. Returns None when history is too short.
    """
    if config.type == "ema" and previous_ema is not None:
        value = ema_step(previous_ema, price_of(new_candle, config.price_source), config.period)
        return _point(new_candle, value)

    if len(history) < config.period - 1:
        return None

    window = required_data_for_realtime(history, config.period) + [new_candle]
    result = calculate_moving_average(window, config).data
    return result[-1] if result else None
