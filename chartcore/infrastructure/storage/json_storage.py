"""Client-side key/value storage for serialized chart state.

Values are opaque strings (serialized drawings, indicator configs); the
storage never interprets them. Mirrors what a browser keeps in cookies or
localStorage.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol

from chartcore.infrastructure.logging.logging import get_logger


class ClientStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage (tests, ephemeral sessions)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """All keys in one JSON object on disk, written with an atomic replace."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._log = get_logger("json_storage", path=path.as_posix())

    def _read_all(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            self._log.warning("storage_unreadable", error=str(e))
            return {}
        if not isinstance(data, dict):
            self._log.warning("storage_not_a_mapping", kind=type(data).__name__)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(items, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self._path)  # atomic replace

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


def build_storage(kind: str, path: str) -> ClientStorage:
    if kind == "memory":
        return MemoryStorage()
    return JsonFileStorage(Path(path))
