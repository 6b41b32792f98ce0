"""Project persisted drawings into pixel space and keep them fresh on pan/zoom."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.utils.debounce import Debouncer, current_loop
from chartcore.models.drawing_models import Drawing, PixelPoint
from chartcore.services.drawing.coordinate_mapper import CoordinateMapper


@dataclass(frozen=True)
class ProjectedDrawing:
    drawing: Drawing
    coordinates: Tuple[PixelPoint, ...]

    def svg_points(self) -> str:
        return " ".join(f"{c.x:g},{c.y:g}" for c in self.coordinates)


def project_drawing(drawing: Drawing, mapper: CoordinateMapper) -> Optional[Tuple[PixelPoint, ...]]:
    """Pixel coordinates of the drawing's points, or None if it cannot be drawn.

    Points that fail to resolve are skipped. Two-point shapes need both
    points resolved; a freehand path needs at least one.
    """
    if not drawing.points:
        return None

    coords: List[PixelPoint] = []
    for point in drawing.points:
        pixel = mapper.project_point(point)
        if pixel is not None:
            coords.append(pixel)

    if drawing.type.is_two_point and len(coords) < 2:
        return None
    if not coords:
        return None
    return tuple(coords)


def project_drawings(drawings: Sequence[Drawing], mapper: CoordinateMapper) -> List[ProjectedDrawing]:
    out: List[ProjectedDrawing] = []
    for d in drawings:
        coords = project_drawing(d, mapper)
        if coords is not None:
            out.append(ProjectedDrawing(drawing=d, coordinates=coords))
    return out


ProjectionListener = Callable[[List[ProjectedDrawing]], None]


class ViewportProjector:
    """Recomputes drawing projections after the viewport settles.

    Pan, zoom and crosshair events arrive in bursts; `on_viewport_change`
    debounces them so only the last event of a burst triggers a recompute.
    """

    def __init__(
        self,
        mapper: CoordinateMapper,
        get_drawings: Callable[[], Sequence[Drawing]],
        on_projected: ProjectionListener,
        debounce_ms: int = 50,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._mapper = mapper
        self._get_drawings = get_drawings
        self._on_projected = on_projected
        # bind to the loop the projector is built on; viewport callbacks may be synchronous
        self._debouncer = Debouncer(self.recompute, delay_ms=debounce_ms, loop=loop or current_loop())
        self._version = 0
        self._log = get_logger("viewport_projector")

    @property
    def version(self) -> int:
        """Number of recomputes applied so far."""
        return self._version

    def on_viewport_change(self, *_: object) -> None:
        self._debouncer.trigger()

    def recompute(self) -> List[ProjectedDrawing]:
        projected = project_drawings(self._get_drawings(), self._mapper)
        self._version += 1
        self._log.debug("drawings_projected", count=len(projected), version=self._version)
        self._on_projected(projected)
        return projected

    def close(self) -> None:
        self._debouncer.cancel()
