from __future__ import annotations

import json

from chartcore.infrastructure.storage.json_storage import MemoryStorage
from chartcore.models.drawing_models import Drawing, DrawingType, Point
from chartcore.services.drawing.drawing_store import DrawingStore, deserialize_drawings

A = Point(time=1_700_000_000, price=100.0)
B = Point(time=1_700_000_600, price=110.0)


def _line(drawing_id: str = "d-1", points=(A, B)) -> Drawing:
    return Drawing(id=drawing_id, type=DrawingType.LINE, points=tuple(points), color="#ff0000", width=2)


def test_add_persists_and_notifies_with_full_list(store: DrawingStore, storage: MemoryStorage):
    seen = []
    store.subscribe(seen.append)

    assert store.add(_line("a"))
    assert store.add(_line("b"))

    assert [d.id for d in store.drawings] == ["a", "b"]
    assert [[d.id for d in snapshot] for snapshot in seen] == [["a"], ["a", "b"]]
    assert json.loads(storage.get_item("drawings"))[1]["id"] == "b"


def test_incomplete_drawings_are_discarded(store: DrawingStore):
    assert not store.add(_line("one-point", points=(A,)))
    freehand = Drawing(id="f", type=DrawingType.FREEHAND, points=(A,), color="#fff", width=1)
    assert not store.add(freehand)
    assert len(store) == 0


def test_duplicate_ids_are_rejected(store: DrawingStore):
    assert store.add(_line("same"))
    assert not store.add(_line("same"))
    assert len(store) == 1


def test_listeners_never_see_a_mutated_snapshot(store: DrawingStore):
    seen = []
    store.subscribe(seen.append)
    store.add(_line("a"))
    first = seen[0]
    store.add(_line("b"))
    assert [d.id for d in first] == ["a"]


def test_remove_many_and_clear(store: DrawingStore):
    for i in range(3):
        store.add(_line(f"d{i}"))
    assert store.remove_many(["d0", "d2", "missing"]) == ["d0", "d2"]
    assert [d.id for d in store.drawings] == ["d1"]
    assert store.remove_many(["missing"]) == []

    store.clear()
    assert store.drawings == []


def test_unsubscribe(store: DrawingStore):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    store.add(_line())
    assert seen == []


def test_serialize_round_trip_keeps_fields(store: DrawingStore):
    store.add(_line("a"))
    restored = store.deserialize(store.serialize())
    assert restored == store.drawings
    payload = json.loads(store.serialize())[0]
    assert payload["type"] == "line"
    assert payload["points"][0] == {"time": A.time, "price": A.price}
    assert "createdAt" in payload


def test_load_from_storage(storage: MemoryStorage):
    DrawingStore(storage).add(_line("persisted"))
    reloaded = DrawingStore(storage)
    reloaded.load()
    assert [d.id for d in reloaded.drawings] == ["persisted"]


def test_corrupt_state_falls_back_to_empty():
    assert deserialize_drawings("{not json") == []
    assert deserialize_drawings('{"a": 1}') == []
    assert deserialize_drawings(None) == []

    store = DrawingStore(MemoryStorage({"drawings": "%%%"}))
    store.load()
    assert store.drawings == []


def test_invalid_entries_are_dropped_on_load():
    raw = json.dumps(
        [
            _line("ok").to_dict(),
            {"id": "broken"},
            {**_line("short").to_dict(), "points": [A.to_dict()]},
            {**_line("bad-type").to_dict(), "type": "triangle"},
            _line("ok").to_dict(),
        ]
    )
    assert [d.id for d in deserialize_drawings(raw)] == ["ok"]


def test_replace_all_filters_incomplete(store: DrawingStore):
    store.replace_all([_line("a"), _line("b", points=(A,))])
    assert [d.id for d in store.drawings] == ["a"]


def test_on_change_callback(storage: MemoryStorage):
    seen = []
    store = DrawingStore(storage, on_change=seen.append)
    store.add(_line("a"))
    store.remove("a")
    assert [len(s) for s in seen] == [1, 0]


def test_store_without_storage_keeps_memory_only():
    store = DrawingStore()
    assert store.add(_line("a"))
    store.load()
    assert store.get("a") is not None
    assert store.get("b") is None
