"""Drawing store: the persisted list of finalized annotations."""

from __future__ import annotations

import json
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.storage.json_storage import ClientStorage
from chartcore.models.drawing_models import Drawing

DrawingsListener = Callable[[List[Drawing]], None]


def serialize_drawings(drawings: Iterable[Drawing]) -> str:
    return json.dumps([d.to_dict() for d in drawings], separators=(",", ":"))


def deserialize_drawings(raw: Optional[str]) -> List[Drawing]:
    """Parse serialized drawings.

    Corrupt input yields an empty list; individual entries that are
    malformed or break the point-count rule are dropped. Both are logged.
    """
    log = get_logger("drawing_store")
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning("drawings_corrupt", error=str(e))
        return []
    if not isinstance(data, list):
        log.warning("drawings_not_a_list", kind=type(data).__name__)
        return []

    out: List[Drawing] = []
    seen = set()
    for item in data:
        try:
            drawing = Drawing.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("drawing_skipped", reason="malformed", error=str(e))
            continue
        if not drawing.is_complete():
            log.warning("drawing_skipped", reason="incomplete", drawing_id=drawing.id)
            continue
        if drawing.id in seen:
            log.warning("drawing_skipped", reason="duplicate_id", drawing_id=drawing.id)
            continue
        seen.add(drawing.id)
        out.append(drawing)
    return out


class DrawingStore:
    """Owns the finalized drawings.

    - Only complete drawings are ever stored.
    - Every mutation builds a new tuple, persists it and then hands the full
      list to every listener.
    """

    def __init__(
        self,
        storage: Optional[ClientStorage] = None,
        storage_key: str = "drawings",
        on_change: Optional[DrawingsListener] = None,
    ) -> None:
        self._storage = storage
        self._key = storage_key
        self._drawings: Tuple[Drawing, ...] = ()
        self._listeners: List[DrawingsListener] = []
        if on_change is not None:
            self._listeners.append(on_change)
        self._log = get_logger("drawing_store", key=storage_key)

    @property
    def drawings(self) -> List[Drawing]:
        return list(self._drawings)

    def __len__(self) -> int:
        return len(self._drawings)

    def get(self, drawing_id: str) -> Optional[Drawing]:
        for d in self._drawings:
            if d.id == drawing_id:
                return d
        return None

    def subscribe(self, listener: DrawingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add(self, drawing: Drawing) -> bool:
        """Append a finalized drawing; incomplete ones are discarded."""
        if not drawing.is_complete():
            self._log.debug("drawing_discarded", drawing_id=drawing.id, points=len(drawing.points))
            return False
        if self.get(drawing.id) is not None:
            self._log.warning("drawing_duplicate_id", drawing_id=drawing.id)
            return False
        self._commit(self._drawings + (drawing,))
        self._log.info("drawing_added", drawing_id=drawing.id, type=drawing.type.value)
        return True

    def remove_many(self, drawing_ids: Iterable[str]) -> List[str]:
        ids = set(drawing_ids)
        if not ids:
            return []
        kept = tuple(d for d in self._drawings if d.id not in ids)
        removed = [d.id for d in self._drawings if d.id in ids]
        if removed:
            self._commit(kept)
            self._log.info("drawings_removed", drawing_ids=removed)
        return removed

    def remove(self, drawing_id: str) -> bool:
        return bool(self.remove_many([drawing_id]))

    def clear(self) -> None:
        if not self._drawings:
            return
        count = len(self._drawings)
        self._commit(())
        self._log.info("drawings_cleared", count=count)

    def replace_all(self, drawings: Sequence[Drawing]) -> None:
        valid = tuple(d for d in drawings if d.is_complete())
        if len(valid) != len(drawings):
            self._log.warning("drawings_dropped_on_replace", dropped=len(drawings) - len(valid))
        self._commit(valid)

    # --------- Persistence ---------
    def serialize(self) -> str:
        return serialize_drawings(self._drawings)

    def deserialize(self, raw: Optional[str]) -> List[Drawing]:
        return deserialize_drawings(raw)

    def load(self) -> None:
        """Replace the in-memory list with what storage holds (no notify)."""
        if self._storage is None:
            return
        self._drawings = tuple(deserialize_drawings(self._storage.get_item(self._key)))
        self._log.info("drawings_loaded", count=len(self._drawings))

    def save(self) -> None:
        if self._storage is None:
            return
        self._storage.set_item(self._key, self.serialize())

    def _commit(self, drawings: Tuple[Drawing, ...]) -> None:
        self._drawings = drawings
        self.save()
        snapshot = list(drawings)
        for listener in list(self._listeners):
            listener(list(snapshot))
