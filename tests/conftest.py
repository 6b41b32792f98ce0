from __future__ import annotations

from typing import Optional

import pytest

from chartcore.infrastructure.storage.json_storage import MemoryStorage
from chartcore.models.market_models import Candle
from chartcore.services.drawing.coordinate_mapper import CoordinateMapper
from chartcore.services.drawing.drawing_store import DrawingStore
from chartcore.services.drawing.tool_state import ToolStateMachine

ORIGIN = 1_700_000_000  # seconds


class FakeViewport:
    """Linear chart: 1px = 60s on x, 1px = 0.5 price units on y.

    Pixels outside [0, width] x [0, height] do not resolve, like a chart
    that only maps the rendered area.
    """

    def __init__(self, width: int = 800, height: int = 600, top_price: float = 300.0) -> None:
        self.width = width
        self.height = height
        self.top_price = top_price
        self.seconds_per_px = 60
        self.price_per_px = 0.5
        self.ready = True

    def time_to_coordinate(self, time: int) -> Optional[float]:
        if not self.ready:
            return None
        x = (time - ORIGIN) / self.seconds_per_px
        if x < 0 or x > self.width:
            return None
        return x

    def coordinate_to_time(self, x: float) -> Optional[float]:
        if not self.ready or x < 0 or x > self.width:
            return None
        return ORIGIN + x * self.seconds_per_px

    def price_to_coordinate(self, price: float) -> Optional[float]:
        if not self.ready:
            return None
        return (self.top_price - price) / self.price_per_px

    def coordinate_to_price(self, y: float) -> Optional[float]:
        if not self.ready or y < 0 or y > self.height:
            return None
        return self.top_price - y * self.price_per_px


def make_candles(closes, start_ms: int = ORIGIN * 1000, step_ms: int = 60_000, volumes=None):
    out = []
    for i, close in enumerate(closes):
        volume = volumes[i] if volumes is not None else None
        out.append(
            Candle(
                time=start_ms + i * step_ms,
                open=close,
                high=close + 1,
                low=close - 1,
                close=close,
                volume=volume,
            )
        )
    return out


@pytest.fixture
def viewport() -> FakeViewport:
    return FakeViewport()


@pytest.fixture
def mapper(viewport: FakeViewport) -> CoordinateMapper:
    return CoordinateMapper(viewport)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> DrawingStore:
    return DrawingStore(storage)


@pytest.fixture
def machine(store: DrawingStore, mapper: CoordinateMapper) -> ToolStateMachine:
    return ToolStateMachine(store, mapper)
