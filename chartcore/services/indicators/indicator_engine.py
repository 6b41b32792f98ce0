"""Indicator engine: candle buffer + active configs -> indicator series.

- Full replace (`set_candles`) and config changes recompute every series
  in batch; batch output is the source of truth.
- Real-time ticks (`apply_candle`) touch only the newest value: a tick with
  the same time as the last candle updates that bar in place, a later time
  appends a bar, an older time is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.utils.timeutils import normalize_time
from chartcore.models.indicator_models import MovingAverageConfig, RSIConfig
from chartcore.models.market_models import Candle, IndicatorPoint
from chartcore.services.indicators.config_registry import MovingAverageRegistry, RSIRegistry
from chartcore.services.indicators.moving_averages import (
    MovingAverageResult,
    calculate_moving_average,
    ema_step,
    price_of,
    realtime_moving_average,
)
from chartcore.services.indicators.rsi import RSIResult, calculate_rsi_for_config


@dataclass(frozen=True)
class IndicatorSnapshot:
    moving_averages: List[MovingAverageResult] = field(default_factory=list)
    rsi: List[RSIResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "movingAverages": [r.to_dict() for r in self.moving_averages],
            "rsi": [r.to_dict() for r in self.rsi],
        }


SnapshotListener = Callable[[IndicatorSnapshot], None]


class IndicatorEngine:
    def __init__(
        self,
        ma_registry: Optional[MovingAverageRegistry] = None,
        rsi_registry: Optional[RSIRegistry] = None,
        max_candles: Optional[int] = None,
    ) -> None:
        self._ma_registry = ma_registry
        self._rsi_registry = rsi_registry
        self._max_candles = max_candles

        self._candles: List[Candle] = []
        self._ma_configs: List[MovingAverageConfig] = []
        self._rsi_configs: List[RSIConfig] = []
        self._snapshot = IndicatorSnapshot()
        self._listeners: List[SnapshotListener] = []
        self._unsubscribers: List[Callable[[], None]] = []
        self._log = get_logger("indicator_engine")

    # --------- Wiring ---------
    def attach(self) -> None:
        """Follow the registries; each subscription replays the current list."""
        if self._unsubscribers:
            return
        if self._ma_registry is not None:
            self._unsubscribers.append(self._ma_registry.subscribe(self._on_ma_configs))
        if self._rsi_registry is not None:
            self._unsubscribers.append(self._rsi_registry.subscribe(self._on_rsi_configs))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --------- Read ---------
    @property
    def candles(self) -> List[Candle]:
        return list(self._candles)

    @property
    def snapshot(self) -> IndicatorSnapshot:
        return self._snapshot

    # --------- Config changes ---------
    def _on_ma_configs(self, configs: List[MovingAverageConfig]) -> None:
        self._ma_configs = list(configs)
        self.recompute()

    def _on_rsi_configs(self, configs: List[RSIConfig]) -> None:
        self._rsi_configs = list(configs)
        self.recompute()

    def set_configs(
        self,
        moving_averages: Optional[Sequence[MovingAverageConfig]] = None,
        rsi: Optional[Sequence[RSIConfig]] = None,
    ) -> IndicatorSnapshot:
        """Use explicit configs instead of (or on top of) the registries."""
        if moving_averages is not None:
            self._ma_configs = list(moving_averages)
        if rsi is not None:
            self._rsi_configs = list(rsi)
        return self.recompute()

    # --------- Candles ---------
    def set_candles(self, candles: Sequence[Candle]) -> IndicatorSnapshot:
        """Full replace (initial load, timeframe change)."""
        ordered = sorted({c.time: c for c in candles}.values(), key=lambda c: c.time)
        if len(ordered) != len(candles):
            self._log.warning("candles_deduplicated", received=len(candles), kept=len(ordered))
        self._candles = self._trim(ordered)
        return self.recompute()

    def apply_candle(self, candle: Candle) -> str:
        """Apply one real-time candle. Returns "updated", "appended" or "ignored"."""
        if not self._candles:
            self._candles = [candle]
            self.recompute()
            return "appended"

        last = self._candles[-1]
        if candle.time < last.time:
            self._log.debug("candle_out_of_order", time=candle.time, last_time=last.time)
            return "ignored"

        if candle.time == last.time:
            history = self._candles[:-1]
            self._candles = history + [candle]
            self._apply_incremental(history, candle, appended=False)
            return "updated"

        history = self._candles
        self._candles = self._trim(history + [candle])
        self._apply_incremental(history, candle, appended=True)
        return "appended"

    def recompute(self) -> IndicatorSnapshot:
        mas = [calculate_moving_average(self._candles, c) for c in self._ma_configs]
        rsis = [calculate_rsi_for_config(self._candles, c) for c in self._rsi_configs]
        self._publish(IndicatorSnapshot(moving_averages=mas, rsi=rsis))
        self._log.debug(
            "indicators_recomputed",
            candles=len(self._candles),
            moving_averages=len(mas),
            rsi=len(rsis),
        )
        return self._snapshot

    # --------- Internals ---------
    def _trim(self, candles: List[Candle]) -> List[Candle]:
        if self._max_candles is not None and len(candles) > self._max_candles:
            return candles[-self._max_candles :]
        return candles

    def _apply_incremental(self, history: List[Candle], candle: Candle, *, appended: bool) -> None:
        mas: List[MovingAverageResult] = []
        for result in self._snapshot.moving_averages:
            mas.append(self._next_ma(result, history, candle, appended))
        # RSI is cheap enough to recompute in full on every tick
        rsis = [calculate_rsi_for_config(self._candles, r.config) for r in self._snapshot.rsi]
        self._publish(IndicatorSnapshot(moving_averages=mas, rsi=rsis))

    def _next_ma(
        self,
        result: MovingAverageResult,
        history: List[Candle],
        candle: Candle,
        appended: bool,
    ) -> MovingAverageResult:
        config = result.config
        data = result.data
        # drop the value for the bar being replaced
        base = data if appended else data[:-1]

        point: Optional[IndicatorPoint]
        if config.type == "ema":
            if not base:
                # warm-up bar: the EMA seed is an SMA, only batch gets it right
                return calculate_moving_average(self._candles, config)
            value = ema_step(base[-1].value, price_of(candle, config.price_source), config.period)
            point = IndicatorPoint(time=normalize_time(candle.time), value=value)
        else:
            point = realtime_moving_average(history, candle, config)

        if point is None:
            return MovingAverageResult(config=config, data=list(base))

        data = list(base) + [point]
        if self._max_candles is not None:
            limit = max(self._max_candles - config.period + 1, 0)
            data = data[-limit:] if limit else []
        return MovingAverageResult(config=config, data=data)

    def _publish(self, snapshot: IndicatorSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
