"""Hit-testing in pixel space: is a pointer position touching a shape?"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from chartcore.models.drawing_models import Drawing, DrawingType, PixelPoint


@dataclass(frozen=True)
class EraserTolerances:
    line: float = 15.0
    freehand: float = 15.0
    rectangle: float = 10.0
    circle: float = 10.0

    def for_type(self, kind: DrawingType) -> float:
        return float(getattr(self, kind.value))


def near_line(px: float, py: float, x1: float, y1: float, x2: float, y2: float, tol: float) -> bool:
    """Euclidean distance from the point to the segment is within tol."""
    dx = x2 - x1
    dy = y2 - y1
    len_sq = dx * dx + dy * dy

    if len_sq == 0:
        # degenerate segment
        return math.hypot(px - x1, py - y1) <= tol

    t = ((px - x1) * dx + (py - y1) * dy) / len_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (x1 + t * dx), py - (y1 + t * dy)) <= tol


def near_rectangle(px: float, py: float, x1: float, y1: float, x2: float, y2: float, tol: float) -> bool:
    """Containment in the corners' bounding box grown by tol on every side.

    Points deep inside the rectangle match too; this is not a border test.
    """
    min_x, max_x = min(x1, x2), max(x1, x2)
    min_y, max_y = min(y1, y2), max(y1, y2)
    return (min_x - tol) <= px <= (max_x + tol) and (min_y - tol) <= py <= (max_y + tol)


def near_circle(px: float, py: float, cx: float, cy: float, radius: float, tol: float) -> bool:
    """Distance from the center is within tol of the radius (circumference)."""
    return abs(math.hypot(px - cx, py - cy) - radius) <= tol


def near_freehand_path(px: float, py: float, points: Sequence[PixelPoint], tol: float) -> bool:
    """Box distance to any sampled vertex is below tol."""
    return any(abs(p.x - px) < tol and abs(p.y - py) < tol for p in points)


def hits_drawing(
    drawing: Drawing,
    coordinates: Sequence[PixelPoint],
    px: float,
    py: float,
    tolerances: EraserTolerances = EraserTolerances(),
) -> bool:
    """Dispatch to the type-specific predicate.

    `coordinates` are the drawing's points already projected to pixels.
    Two-point shapes need both projected; freehand uses whatever resolved.
    """
    tol = tolerances.for_type(drawing.type)

    if drawing.type is DrawingType.FREEHAND:
        return near_freehand_path(px, py, coordinates, tol)

    if len(coordinates) != 2:
        return False

    a, b = coordinates
    if drawing.type is DrawingType.LINE:
        return near_line(px, py, a.x, a.y, b.x, b.y, tol)
    if drawing.type is DrawingType.RECTANGLE:
        return near_rectangle(px, py, a.x, a.y, b.x, b.y, tol)
    if drawing.type is DrawingType.CIRCLE:
        radius = math.hypot(b.x - a.x, b.y - a.y)
        return near_circle(px, py, a.x, a.y, radius, tol)
    return False
