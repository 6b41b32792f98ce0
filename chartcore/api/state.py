# chartcore/api/state.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.storage.json_storage import ClientStorage, build_storage
from chartcore.infrastructure.utils.config import ChartCoreSettings
from chartcore.services.drawing.coordinate_mapper import ChartViewport, CoordinateMapper
from chartcore.services.drawing.drawing_store import DrawingStore
from chartcore.services.drawing.hit_testing import EraserTolerances
from chartcore.services.drawing.projection import ProjectedDrawing, ViewportProjector
from chartcore.services.drawing.tool_state import ToolStateMachine
from chartcore.services.indicators.config_registry import MovingAverageRegistry, RSIRegistry
from chartcore.services.indicators.indicator_engine import IndicatorEngine


@dataclass
class AppState:
    """One chart: drawings, tools, indicator configs and the engine."""

    settings: ChartCoreSettings
    storage: ClientStorage
    mapper: CoordinateMapper
    drawings: DrawingStore
    tools: ToolStateMachine
    moving_averages: MovingAverageRegistry
    rsi: RSIRegistry
    indicators: IndicatorEngine

    def viewport_projector(
        self,
        on_projected: Callable[[List[ProjectedDrawing]], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> ViewportProjector:
        return ViewportProjector(
            self.mapper,
            lambda: self.drawings.drawings,
            on_projected,
            debounce_ms=self.settings.drawing.viewport_debounce_ms,
            loop=loop,
        )

    def close(self) -> None:
        self.indicators.detach()


def build_state(
    settings: ChartCoreSettings,
    viewport: Optional[ChartViewport] = None,
    storage: Optional[ClientStorage] = None,
) -> AppState:
    log = get_logger("state")
    if storage is None:
        storage = build_storage(settings.storage.type, settings.storage.path)

    mapper = CoordinateMapper(viewport)

    drawings = DrawingStore(storage, storage_key=settings.drawing.storage_key)
    drawings.load()

    eraser = settings.drawing.eraser
    tools = ToolStateMachine(
        drawings,
        mapper,
        tolerances=EraserTolerances(
            line=eraser.line,
            freehand=eraser.freehand,
            rectangle=eraser.rectangle,
            circle=eraser.circle,
        ),
        color=settings.drawing.default_color,
        line_width=settings.drawing.default_line_width,
    )

    ma_registry = MovingAverageRegistry(storage, settings.indicators.moving_average_storage_key)
    rsi_registry = RSIRegistry(
        storage,
        settings.indicators.rsi_storage_key,
        default_period=settings.indicators.default_rsi_period,
    )
    engine = IndicatorEngine(ma_registry, rsi_registry)
    engine.attach()

    log.info(
        "state_built",
        storage=settings.storage.type,
        storage_path=Path(settings.storage.path).as_posix(),
        drawings=len(drawings),
    )
    return AppState(
        settings=settings,
        storage=storage,
        mapper=mapper,
        drawings=drawings,
        tools=tools,
        moving_averages=ma_registry,
        rsi=rsi_registry,
        indicators=engine,
    )


_state: Optional[AppState] = None


def set_state(state: AppState) -> None:
    global _state
    _state = state


def get_state() -> AppState:
    if _state is None:
        raise RuntimeError("API state not initialized. Build it with build_state() and set_state() first.")
    return _state
