from __future__ import annotations

import pytest

from chartcore.models.indicator_models import MovingAverageConfig
from chartcore.services.indicators.moving_averages import (
    calculate_ema,
    calculate_moving_average,
    calculate_multiple_moving_averages,
    calculate_sma,
    calculate_vwma,
    calculate_wma,
    ema_step,
    has_enough_data,
    min_data_points_required,
    price_of,
    realtime_moving_average,
    required_data_for_realtime,
)
from conftest import ORIGIN, make_candles


def _values(series):
    return [p.value for p in series]


def test_sma_values_and_alignment():
    candles = make_candles([10, 11, 12, 11, 10])
    series = calculate_sma(candles, 3)
    assert _values(series) == pytest.approx([11.0, 34 / 3, 11.0])
    assert [p.time for p in series] == [ORIGIN + 120, ORIGIN + 180, ORIGIN + 240]


@pytest.mark.parametrize("kind", ["sma", "ema", "wma", "vwma"])
@pytest.mark.parametrize("n,period", [(5, 3), (3, 3), (2, 3), (20, 7)])
def test_series_length(kind, n, period):
    candles = make_candles(list(range(1, n + 1)))
    config = MovingAverageConfig(period=period, color="#2962FF", type=kind)
    assert len(calculate_moving_average(candles, config).data) == max(0, n - period + 1)


def test_ema_seed_and_recurrence():
    candles = make_candles([10, 11, 12, 11, 10])
    series = calculate_ema(candles, 3)
    assert _values(series) == pytest.approx([11.0, 11.0, 10.5])
    for prev, cur, close in zip(series, series[1:], [11, 10]):
        assert cur.value == pytest.approx((close - prev.value) * 0.5 + prev.value)


def test_wma_weights_newest_most():
    series = calculate_wma(make_candles([1, 2, 3]), 3)
    assert _values(series) == pytest.approx([14 / 6])


def test_vwma_missing_volume_counts_as_one():
    assert _values(calculate_vwma(make_candles([10, 20], volumes=[1, None]), 2)) == pytest.approx([15.0])
    assert _values(calculate_vwma(make_candles([10, 20], volumes=[1, 3]), 2)) == pytest.approx([17.5])


def test_price_sources():
    candle = make_candles([10])[0]  # open 10, high 11, low 9, close 10
    assert price_of(candle, "high") == 11
    assert price_of(candle, "hl2") == 10
    assert price_of(candle, "hlc3") == pytest.approx(10)
    assert price_of(candle, "ohlc4") == pytest.approx(10)
    with pytest.raises(ValueError):
        price_of(candle, "median")


def test_price_source_feeds_calculation():
    candles = make_candles([10, 11, 12])
    config = MovingAverageConfig(period=3, color="red", price_source="high")
    assert _values(calculate_moving_average(candles, config).data) == pytest.approx([12.0])


def test_multiple_and_requirements():
    configs = [
        MovingAverageConfig(period=3, color="red"),
        MovingAverageConfig(period=5, color="blue", type="ema"),
    ]
    candles = make_candles([1, 2, 3, 4])
    results = calculate_multiple_moving_averages(candles, configs)
    assert [len(r.data) for r in results] == [2, 0]
    assert min_data_points_required(configs) == 5
    assert not has_enough_data(candles, configs)
    assert has_enough_data(candles, [])


def test_ema_step():
    assert ema_step(10.0, 12.0, 3) == pytest.approx(11.0)


def test_required_data_for_realtime():
    candles = make_candles([1, 2, 3, 4, 5])
    assert [c.close for c in required_data_for_realtime(candles, 3)] == [4, 5]
    assert required_data_for_realtime(candles, 1) == []


@pytest.mark.parametrize("kind", ["sma", "wma", "vwma"])
def test_realtime_matches_batch(kind):
    closes = [10, 11, 12, 11, 10, 13, 15, 14]
    candles = make_candles(closes, volumes=[1, 2, 3, 4, 5, 6, 7, 8])
    config = MovingAverageConfig(period=4, color="red", type=kind)
    point = realtime_moving_average(candles[:-1], candles[-1], config)
    assert point == calculate_moving_average(candles, config).data[-1]


def test_realtime_ema_with_previous_value_matches_batch():
    candles = make_candles([10, 11, 12, 11, 10, 13])
    config = MovingAverageConfig(period=3, color="red", type="ema")
    batch = calculate_moving_average(candles, config).data
    point = realtime_moving_average(candles[:-1], candles[-1], config, previous_ema=batch[-2].value)
    assert point.time == batch[-1].time
    assert point.value == pytest.approx(batch[-1].value)


def test_realtime_needs_history():
    candles = make_candles([10, 11])
    config = MovingAverageConfig(period=5, color="red")
    assert realtime_moving_average(candles[:-1], candles[-1], config) is None


def test_too_short_is_empty_not_error():
    assert calculate_sma([], 3) == []
    assert calculate_ema(make_candles([1, 2]), 3) == []


def test_result_to_dict_uses_aliases():
    config = MovingAverageConfig(period=3, color="red", id="ma-1")
    payload = calculate_moving_average(make_candles([1, 2, 3]), config).to_dict()
    assert payload["label"] == "SMA(3)"
    assert payload["config"]["lineWidth"] == 2
    assert payload["config"]["priceSource"] == "close"
    assert payload["data"] == [{"time": ORIGIN + 120, "value": 2.0}]


def test_label():
    assert MovingAverageConfig(period=20, color="red", type="ema").label() == "EMA(20)"
    assert MovingAverageConfig(period=9, color="red", price_source="hl2").label() == "SMA(9) hl2"
