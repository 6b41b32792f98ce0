"""Drawing (annotation) domain models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from chartcore.infrastructure.utils.timeutils import now_ms, now_seconds


class DrawingType(str, Enum):
    LINE = "line"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    FREEHAND = "freehand"

    @property
    def is_two_point(self) -> bool:
        return self is not DrawingType.FREEHAND


@dataclass(frozen=True)
class Point:
    """Domain-space anchor: time in canonical seconds, price in quote units."""

    time: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "price": self.price}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Point":
        return Point(time=int(data["time"]), price=float(data["price"]))


@dataclass(frozen=True)
class PixelPoint:
    x: float
    y: float


def new_drawing_id() -> str:
    return f"drawing-{now_ms()}-{uuid.uuid4().hex[:9]}"


@dataclass(frozen=True)
class Drawing:
    id: str
    type: DrawingType
    points: Tuple[Point, ...]
    color: str
    width: float
    created_at: int = field(default_factory=now_seconds)
    updated_at: Optional[int] = None

    @staticmethod
    def start(type: DrawingType, point: Point, color: str, width: float) -> "Drawing":
        """New in-progress drawing anchored at a single point."""
        return Drawing(
            id=new_drawing_id(),
            type=DrawingType(type),
            points=(point,),
            color=color,
            width=width,
        )

    def with_point(self, point: Point) -> "Drawing":
        """Freehand appends; two-point shapes replace their second point."""
        if self.type is DrawingType.FREEHAND:
            points = self.points + (point,)
        else:
            points = (self.points[0], point)
        return replace(self, points=points)

    def is_complete(self) -> bool:
        if self.type.is_two_point:
            return len(self.points) == 2
        return len(self.points) >= 2

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "points": [p.to_dict() for p in self.points],
            "color": self.color,
            "width": self.width,
            "createdAt": self.created_at,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Drawing":
        updated_at = data.get("updatedAt")
        return Drawing(
            id=str(data["id"]),
            type=DrawingType(data["type"]),
            points=tuple(Point.from_dict(p) for p in data["points"]),
            color=str(data["color"]),
            width=float(data["width"]),
            created_at=int(data.get("createdAt") or now_seconds()),
            updated_at=int(updated_at) if updated_at is not None else None,
        )
