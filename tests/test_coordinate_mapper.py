from __future__ import annotations

import math

import pytest

from chartcore.models.drawing_models import Point
from chartcore.services.drawing.coordinate_mapper import CoordinateMapper, normalize_time
from conftest import ORIGIN


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1_700_000_000, 1_700_000_000),
        (1_700_000_000_123, 1_700_000_000),
        (10_000_000_000, 10_000_000_000),
        (1_700_000_000.9, 1_700_000_000),
        ("2023-11-14T22:13:20Z", 1_700_000_000),
        ("2023-11-14T22:13:20", 1_700_000_000),
        ("2023-11-14T23:13:20+01:00", 1_700_000_000),
        ("2024/01/02", 1_704_153_600),
        ("2024/01/02 00:00:10", 1_704_153_610),
        ("Tue, 14 Nov 2023 22:13:20 GMT", 1_700_000_000),
        ("1700000000000", 1_700_000_000),
        (" 1700000000 ", 1_700_000_000),
    ],
)
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected


@pytest.mark.parametrize("raw", [0, 59, 1_700_000_000, 1_700_000_000_999, "2024-01-01T00:00:00Z"])
def test_normalize_time_is_idempotent(raw):
    once = normalize_time(raw)
    assert normalize_time(once) == once


def test_normalize_time_defaults_to_now():
    import time

    before = int(time.time())
    value = normalize_time(None)
    assert before <= value <= int(time.time()) + 1


def test_normalize_time_rejects_bool():
    with pytest.raises(TypeError):
        normalize_time(True)


def test_round_trip_through_viewport(mapper: CoordinateMapper):
    point = mapper.resolve_point(100, 40)
    assert point == Point(time=ORIGIN + 6000, price=280.0)

    pixel = mapper.project_point(point)
    assert (pixel.x, pixel.y) == (100.0, 40.0)


def test_pixels_are_rounded(viewport):
    viewport.seconds_per_px = 7
    mapper = CoordinateMapper(viewport)
    x = mapper.time_to_pixel_x(ORIGIN + 10)
    assert x == 1.0
    assert mapper.price_to_pixel_y(299.6) == 1.0


def test_unresolvable_coordinates_return_none(mapper: CoordinateMapper, viewport):
    assert mapper.pixel_x_to_time(-5) is None
    assert mapper.pixel_y_to_price(10_000) is None
    assert mapper.resolve_point(-5, 10) is None
    assert mapper.time_to_pixel_x(ORIGIN - 3600) is None

    viewport.ready = False
    assert mapper.time_to_pixel_x(ORIGIN) is None
    assert mapper.price_to_pixel_y(100.0) is None


def test_mapper_without_viewport():
    mapper = CoordinateMapper()
    assert not mapper.ready
    assert mapper.resolve_point(1, 1) is None
    assert mapper.project_point(Point(time=ORIGIN, price=1.0)) is None


class _BrokenViewport:
    def time_to_coordinate(self, time):
        raise RuntimeError("chart disposed")

    def coordinate_to_time(self, x):
        return float("nan")

    def price_to_coordinate(self, price):
        return math.inf

    def coordinate_to_price(self, y):
        raise RuntimeError("chart disposed")


def test_viewport_failures_are_absorbed():
    mapper = CoordinateMapper(_BrokenViewport())
    assert mapper.time_to_pixel_x(ORIGIN) is None
    assert mapper.pixel_x_to_time(10) is None
    assert mapper.price_to_pixel_y(1.0) is None
    assert mapper.pixel_y_to_price(1.0) is None


def test_viewport_is_asked_every_time(viewport):
    mapper = CoordinateMapper(viewport)
    assert mapper.time_to_pixel_x(ORIGIN + 600) == 10.0
    viewport.seconds_per_px = 30  # zoom in
    assert mapper.time_to_pixel_x(ORIGIN + 600) == 20.0


@pytest.mark.parametrize("raw", ["not a date", "nan", math.inf, float("nan")])
def test_normalize_time_rejects_garbage(raw):
    with pytest.raises(ValueError):
        normalize_time(raw)
