from __future__ import annotations

import json

import pytest

from chartcore.exceptions import InvalidIndicatorConfig
from chartcore.infrastructure.storage.json_storage import MemoryStorage
from chartcore.services.indicators.config_registry import MovingAverageRegistry, RSIRegistry


def test_subscribe_gets_current_snapshot_immediately(storage):
    registry = MovingAverageRegistry(storage)
    seen = []
    registry.subscribe(seen.append)
    assert seen == [[]]

    registry.add({"period": 20, "color": "#2962FF"})
    assert len(seen) == 2
    assert seen[1][0].period == 20


def test_add_assigns_id_and_persists(storage):
    registry = MovingAverageRegistry(storage)
    config = registry.add({"period": 20, "color": "#2962FF", "lineWidth": 3, "priceSource": "hl2"})
    assert config.id.startswith("ma-")
    assert config.line_width == 3

    stored = json.loads(storage.get_item("movingAverageConfigs"))
    assert stored[0]["lineWidth"] == 3
    assert stored[0]["priceSource"] == "hl2"

    reloaded = MovingAverageRegistry(storage)
    assert reloaded.get_all() == registry.get_all()


def test_lazy_initialization_reads_storage_on_first_use():
    storage = MemoryStorage()
    registry = MovingAverageRegistry(storage)
    storage.set_item("movingAverageConfigs", json.dumps([{"period": 9, "color": "red", "type": "ema"}]))
    configs = registry.get_all()
    assert [c.series_key for c in configs] == [("ema", 9, "close")]
    assert configs[0].id


def test_corrupt_storage_falls_back_to_defaults():
    assert MovingAverageRegistry(MemoryStorage({"movingAverageConfigs": "{{"})).get_all() == []
    assert RSIRegistry(MemoryStorage({"rsi-configs": '{"period": 14}'})).get_all() == []


def test_invalid_stored_entries_are_skipped():
    raw = json.dumps([{"period": 1, "color": "red"}, {"period": 5, "color": "red"}, "junk"])
    configs = MovingAverageRegistry(MemoryStorage({"movingAverageConfigs": raw})).get_all()
    assert [c.period for c in configs] == [5]


def test_invalid_add_leaves_registry_untouched(storage):
    registry = MovingAverageRegistry(storage)
    registry.add({"period": 20, "color": "red"})
    seen = []
    registry.subscribe(seen.append)

    with pytest.raises(InvalidIndicatorConfig) as exc:
        registry.add({"period": 1, "color": "red"})

    assert "Period must be between 2 and 500" in exc.value.errors
    assert len(registry) == 1
    assert len(seen) == 1


def test_moving_average_update_replaces_but_keeps_id(storage):
    registry = MovingAverageRegistry(storage)
    original = registry.add({"period": 20, "color": "red", "type": "ema"})

    updated = registry.update(0, {"period": 50, "color": "blue"})
    assert updated.id == original.id
    assert updated.period == 50
    assert updated.type == "sma"
    assert registry.update(3, {"period": 50, "color": "blue"}) is None


def test_toggle_visibility_keeps_other_fields(storage):
    registry = MovingAverageRegistry(storage)
    registry.add({"period": 20, "color": "red", "type": "wma"})
    toggled = registry.toggle_visibility(0)
    assert toggled.visible is False
    assert toggled.type == "wma"
    assert registry.toggle_visibility(0).visible is True
    assert registry.toggle_visibility(9) is None


def test_remove_by_index(storage):
    registry = MovingAverageRegistry(storage)
    registry.add({"period": 10, "color": "red"})
    registry.add({"period": 20, "color": "red"})
    assert registry.remove(0)
    assert [c.period for c in registry.get_all()] == [20]
    assert not registry.remove(5)
    assert not registry.remove(True)


def test_replace_all_is_all_or_nothing(storage):
    registry = MovingAverageRegistry(storage)
    registry.add({"period": 10, "color": "red"})
    with pytest.raises(InvalidIndicatorConfig) as exc:
        registry.replace_all([{"period": 5, "color": "red"}, {"period": 1000, "color": "red"}])
    assert exc.value.errors == ["#1: Period must be between 2 and 500"]
    assert [c.period for c in registry.get_all()] == [10]

    registry.replace_all([{"period": 5, "color": "red"}])
    assert [c.period for c in registry.get_all()] == [5]


def test_rsi_add_always_assigns_fresh_id(storage):
    registry = RSIRegistry(storage)
    config = registry.add({"id": "custom", "period": 10})
    assert config.id.startswith("rsi-")
    assert config.overbought == 70


def test_rsi_update_merges_partial_fields(storage):
    registry = RSIRegistry(storage)
    config = registry.add({"period": 10})

    updated = registry.update(config.id, {"overbought": 80, "lineWidth": 4})
    assert updated.id == config.id
    assert updated.period == 10
    assert updated.overbought == 80
    assert updated.line_width == 4

    assert registry.update("missing", {"period": 5}) is None

    with pytest.raises(InvalidIndicatorConfig):
        registry.update(config.id, {"oversold": 45, "overbought": 40})
    assert registry.get_all()[0].overbought == 80


def test_rsi_toggle_and_remove_by_id(storage):
    registry = RSIRegistry(storage)
    first = registry.add({"period": 14})
    second = registry.add({"period": 7})

    assert registry.toggle_visibility(first.id).visible is False
    assert registry.remove(first.id)
    assert [c.id for c in registry.get_all()] == [second.id]
    assert not registry.remove(first.id)

    stored = json.loads(storage.get_item("rsi-configs"))
    assert [c["id"] for c in stored] == [second.id]


def test_unsubscribe_stops_notifications(storage):
    registry = RSIRegistry(storage)
    seen = []
    unsubscribe = registry.subscribe(seen.append)
    unsubscribe()
    registry.add({"period": 14})
    assert seen == [[]]


def test_rsi_default_period_applies_when_missing(storage):
    registry = RSIRegistry(storage, default_period=21)
    assert registry.add({}).period == 21
    assert registry.add({"period": 7}).period == 7
