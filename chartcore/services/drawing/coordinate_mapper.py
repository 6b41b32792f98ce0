"""Pixel <-> domain coordinate mapping on top of the chart viewport.

Every failure (chart not laid out yet, time outside the rendered range,
NaN from the chart library, exceptions thrown by it) comes back as None.
Those are routine while the viewport animates, so callers treat None as
"skip this event" rather than as an error.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Protocol

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.utils.timeutils import MS_THRESHOLD, RawTime, normalize_time
from chartcore.models.drawing_models import PixelPoint, Point

__all__ = ["ChartViewport", "CoordinateMapper", "MS_THRESHOLD", "RawTime", "normalize_time"]

log = get_logger("coordinate_mapper")


class ChartViewport(Protocol):
    """The four mapping functions the chart library exposes.

    Any of them may return None (or NaN) when it cannot resolve a value.
    """

    def time_to_coordinate(self, time: int) -> Optional[float]: ...

    def coordinate_to_time(self, x: float) -> Optional[Any]: ...

    def price_to_coordinate(self, price: float) -> Optional[float]: ...

    def coordinate_to_price(self, y: float) -> Optional[float]: ...


def _finite(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


class CoordinateMapper:
    """Thin, non-caching wrapper around a ChartViewport.

    Pan and zoom invalidate every previous mapping, so the viewport is asked
    again on every call.
    """

    def __init__(self, viewport: Optional[ChartViewport] = None) -> None:
        self._viewport = viewport

    @property
    def ready(self) -> bool:
        return self._viewport is not None

    def attach(self, viewport: Optional[ChartViewport]) -> None:
        self._viewport = viewport

    def time_to_pixel_x(self, time: int) -> Optional[float]:
        if self._viewport is None:
            return None
        try:
            coord = _finite(self._viewport.time_to_coordinate(time))
        except Exception as e:
            log.debug("time_to_coordinate_failed", time=time, error=str(e))
            return None
        return None if coord is None else float(round(coord))

    def pixel_x_to_time(self, x: float) -> Optional[int]:
        if self._viewport is None:
            return None
        try:
            raw = self._viewport.coordinate_to_time(x)
        except Exception as e:
            log.debug("coordinate_to_time_failed", x=x, error=str(e))
            return None
        if raw is None:
            return None
        if isinstance(raw, (int, float)) and _finite(raw) is None:
            return None
        try:
            return normalize_time(raw)
        except (TypeError, ValueError, OverflowError):
            return None

    def price_to_pixel_y(self, price: float) -> Optional[float]:
        if self._viewport is None:
            return None
        try:
            coord = _finite(self._viewport.price_to_coordinate(price))
        except Exception as e:
            log.debug("price_to_coordinate_failed", price=price, error=str(e))
            return None
        return None if coord is None else float(round(coord))

    def pixel_y_to_price(self, y: float) -> Optional[float]:
        if self._viewport is None:
            return None
        try:
            return _finite(self._viewport.coordinate_to_price(y))
        except Exception as e:
            log.debug("coordinate_to_price_failed", y=y, error=str(e))
            return None

    def resolve_point(self, x: float, y: float) -> Optional[Point]:
        """Pixel position -> domain Point, or None if either axis fails."""
        time = self.pixel_x_to_time(x)
        if time is None:
            return None
        price = self.pixel_y_to_price(y)
        if price is None:
            return None
        return Point(time=time, price=price)

    def project_point(self, point: Point) -> Optional[PixelPoint]:
        x = self.time_to_pixel_x(point.time)
        if x is None:
            return None
        y = self.price_to_pixel_y(point.price)
        if y is None:
            return None
        return PixelPoint(x=x, y=y)
