# chartcore/api/server.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from chartcore.api.state import get_state
from chartcore.exceptions import InvalidIndicatorConfig
from chartcore.infrastructure.logging.logging import get_logger, log_context
from chartcore.infrastructure.utils.config import get_config
from chartcore.models.market_models import Candle
from chartcore.services.indicators.indicator_engine import IndicatorEngine
from chartcore.services.indicators.validation import (
    validate_indicator_config,
    validate_moving_average_config,
    validate_rsi_config,
)

JsonDict = Dict[str, Any]

app = FastAPI(title="chartcore API", version="0.1.0")

# CORS (frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

log = get_logger("api")


@app.middleware("http")
async def _request_context(request: Request, call_next):
    with log_context(method=request.method, path=request.url.path):
        response = await call_next(request)
        if response.status_code >= 400:
            log.info("request_failed", status=response.status_code)
        return response


@app.exception_handler(InvalidIndicatorConfig)
async def _invalid_config_handler(request: Request, exc: InvalidIndicatorConfig) -> JSONResponse:
    return JSONResponse(status_code=422, content={"isValid": False, "errors": exc.errors})


# --------- Schemas ---------
class CandlePayload(BaseModel):
    time: int = Field(..., description="Bar open time, ms since epoch")
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    def to_candle(self) -> Candle:
        return Candle(
            time=self.time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )


class CalculatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candles: List[CandlePayload]
    moving_averages: Optional[List[JsonDict]] = Field(default=None, alias="movingAverages")
    rsi: Optional[List[JsonDict]] = None


# --------- Health ---------
@app.get("/health")
def health():
    return {"ok": True}


# --------- Drawings ---------
@app.get("/drawings")
def list_drawings():
    s = get_state()
    return [d.to_dict() for d in s.drawings.drawings]


@app.delete("/drawings")
def clear_drawings():
    s = get_state()
    s.drawings.clear()
    return {"count": 0}


@app.get("/drawings/{drawing_id}")
def get_drawing(drawing_id: str):
    s = get_state()
    drawing = s.drawings.get(drawing_id)
    if drawing is None:
        raise HTTPException(status_code=404, detail="drawing not found")
    return drawing.to_dict()


@app.delete("/drawings/{drawing_id}")
def delete_drawing(drawing_id: str):
    s = get_state()
    if not s.drawings.remove(drawing_id):
        raise HTTPException(status_code=404, detail="drawing not found")
    return {"deleted": drawing_id}


# --------- Moving averages ---------
@app.get("/indicators/moving-averages")
def list_moving_averages():
    s = get_state()
    return [c.model_dump(by_alias=True) for c in s.moving_averages.get_all()]


@app.post("/indicators/moving-averages", status_code=201)
def add_moving_average(payload: JsonDict):
    s = get_state()
    return s.moving_averages.add(payload).model_dump(by_alias=True)


@app.post("/indicators/moving-averages/validate")
def validate_moving_average(payload: JsonDict):
    result = validate_moving_average_config(payload)
    return {"isValid": result.is_valid, "errors": result.errors}


@app.put("/indicators/moving-averages/{index}")
def update_moving_average(index: int, payload: JsonDict):
    s = get_state()
    updated = s.moving_averages.update(index, payload)
    if updated is None:
        raise HTTPException(status_code=404, detail="moving average not found")
    return updated.model_dump(by_alias=True)


@app.delete("/indicators/moving-averages/{index}")
def delete_moving_average(index: int):
    s = get_state()
    if not s.moving_averages.remove(index):
        raise HTTPException(status_code=404, detail="moving average not found")
    return {"deleted": index}


# --------- RSI ---------
@app.get("/indicators/rsi")
def list_rsi():
    s = get_state()
    return [c.model_dump(by_alias=True) for c in s.rsi.get_all()]


@app.post("/indicators/rsi", status_code=201)
def add_rsi(payload: JsonDict):
    s = get_state()
    return s.rsi.add(payload).model_dump(by_alias=True)


@app.put("/indicators/rsi/{config_id}")
def update_rsi(config_id: str, payload: JsonDict):
    s = get_state()
    updated = s.rsi.update(config_id, payload)
    if updated is None:
        raise HTTPException(status_code=404, detail="rsi config not found")
    return updated.model_dump(by_alias=True)


@app.delete("/indicators/rsi/{config_id}")
def delete_rsi(config_id: str):
    s = get_state()
    if not s.rsi.remove(config_id):
        raise HTTPException(status_code=404, detail="rsi config not found")
    return {"deleted": config_id}


# --------- Calculation ---------
@app.post("/indicators/validate")
def validate_indicator(payload: JsonDict):
    result = validate_indicator_config(payload)
    return {"isValid": result.is_valid, "errors": result.errors}


@app.post("/indicators/calculate")
def calculate(payload: CalculatePayload):
    """Series for the given candles.

    Configs default to the registries' active ones; explicit configs in the
    body are validated first and never stored.
    """
    s = get_state()
    errors: List[str] = []

    mas = s.moving_averages.get_all()
    if payload.moving_averages is not None:
        mas = []
        for i, raw in enumerate(payload.moving_averages):
            result = validate_moving_average_config(raw)
            if result.is_valid:
                mas.append(result.config)
            else:
                errors.extend(f"movingAverages#{i}: {e}" for e in result.errors)

    rsis = s.rsi.get_all()
    if payload.rsi is not None:
        rsis = []
        for i, raw in enumerate(payload.rsi):
            result = validate_rsi_config({"id": f"rsi-{i}", **raw})
            if result.is_valid:
                rsis.append(result.config)
            else:
                errors.extend(f"rsi#{i}: {e}" for e in result.errors)

    if errors:
        raise InvalidIndicatorConfig(errors)

    engine = IndicatorEngine()
    engine.set_configs(moving_averages=mas, rsi=rsis)
    snapshot = engine.set_candles([c.to_candle() for c in payload.candles])
    return snapshot.to_dict()


# --------- Live candles ---------
@app.put("/candles")
def replace_candles(candles: List[CandlePayload]):
    s = get_state()
    snapshot = s.indicators.set_candles([c.to_candle() for c in candles])
    return snapshot.to_dict()


@app.post("/candles")
def apply_candle(candle: CandlePayload):
    s = get_state()
    outcome = s.indicators.apply_candle(candle.to_candle())
    return {"outcome": outcome, **s.indicators.snapshot.to_dict()}


@app.get("/indicators")
def current_indicators():
    s = get_state()
    return s.indicators.snapshot.to_dict()
