"""Indicator configuration registries (moving averages, RSI).

Each registry is an explicitly constructed object holding the active
configs, persisted to client storage on every mutation and broadcast
synchronously to subscribers. Registries load lazily from storage on first
use; unreadable data falls back to the defaults (an empty list).
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel

from chartcore.exceptions import InvalidIndicatorConfig
from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.storage.json_storage import ClientStorage, MemoryStorage
from chartcore.infrastructure.utils.timeutils import now_ms
from chartcore.models.indicator_models import MovingAverageConfig, RSIConfig
from chartcore.services.indicators.validation import (
    ValidationResult,
    validate_moving_average_config,
    validate_rsi_config,
)

C = TypeVar("C", bound=BaseModel)
ConfigInput = Union[Mapping[str, Any], BaseModel]
Listener = Callable[[List[C]], None]


def new_config_id(prefix: str) -> str:
    return f"{prefix}-{now_ms()}-{uuid.uuid4().hex[:6]}"


def _as_dict(data: ConfigInput, model: Optional[Type[BaseModel]] = None) -> dict:
    """Plain dict keyed by field name (camelCase aliases are mapped back)."""
    if isinstance(data, BaseModel):
        return data.model_dump()
    payload = dict(data)
    if model is not None:
        for name, info in model.model_fields.items():
            if info.alias and info.alias in payload:
                payload[name] = payload.pop(info.alias)
    return payload


class _ConfigRegistry(Generic[C]):
    model: Type[C]
    id_prefix: str

    def __init__(self, storage: Optional[ClientStorage] = None, storage_key: str = "") -> None:
        self._storage = storage if storage is not None else MemoryStorage()
        self._key = storage_key
        self._configs: List[C] = []
        self._listeners: List[Listener] = []
        self._initialized = False
        self._log = get_logger(type(self).__name__, key=storage_key)

    # --------- Validation hook ---------
    def _validate(self, data: ConfigInput) -> ValidationResult:
        raise NotImplementedError

    def _checked(self, data: ConfigInput) -> C:
        result = self._validate(data)
        if not result.is_valid or result.config is None:
            self._log.info("config_rejected", errors=result.errors)
            raise InvalidIndicatorConfig(result.errors)
        return result.config  # type: ignore[return-value]

    def _with_id(self, data: ConfigInput) -> dict:
        payload = _as_dict(data, self.model)
        if not payload.get("id"):
            payload["id"] = new_config_id(self.id_prefix)
        return payload

    # --------- Persistence ---------
    def initialize(self) -> None:
        if self._initialized:
            return
        self._configs = self.deserialize(self._storage.get_item(self._key))
        self._initialized = True
        self._log.info("configs_loaded", count=len(self._configs))

    def serialize(self) -> str:
        self.initialize()
        return json.dumps([c.model_dump(by_alias=True) for c in self._configs])

    def deserialize(self, raw: Optional[str]) -> List[C]:
        if not raw:
            return self.default_configs()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            self._log.warning("configs_corrupt", error=str(e))
            return self.default_configs()
        if not isinstance(data, list):
            self._log.warning("configs_not_a_list", kind=type(data).__name__)
            return self.default_configs()

        out: List[C] = []
        for item in data:
            if not isinstance(item, dict):
                self._log.warning("config_skipped", reason="not_a_mapping")
                continue
            result = self._validate(self._with_id(item))
            if not result.is_valid:
                self._log.warning("config_skipped", reason="invalid", errors=result.errors)
                continue
            out.append(result.config)  # type: ignore[arg-type]
        return out

    def default_configs(self) -> List[C]:
        return []

    # --------- Read ---------
    def get_all(self) -> List[C]:
        self.initialize()
        return list(self._configs)

    def __len__(self) -> int:
        self.initialize()
        return len(self._configs)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; it gets the current snapshot right away."""
        self.initialize()
        self._listeners.append(listener)
        listener(list(self._configs))

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --------- Write ---------
    def replace_all(self, configs: Sequence[ConfigInput]) -> List[C]:
        self.initialize()
        checked: List[C] = []
        errors: List[str] = []
        for i, item in enumerate(configs):
            result = self._validate(self._with_id(item))
            if result.is_valid and result.config is not None:
                checked.append(result.config)  # type: ignore[arg-type]
            else:
                errors.extend(f"#{i}: {msg}" for msg in result.errors)
        if errors:
            raise InvalidIndicatorConfig(errors)
        self._commit(checked)
        return list(checked)

    def add(self, config: ConfigInput) -> C:
        self.initialize()
        checked = self._checked(self._with_id(config))
        self._commit(self._configs + [checked])
        self._log.info("config_added", config_id=getattr(checked, "id", None))
        return checked

    def update(self, key: Union[int, str], config: ConfigInput) -> Optional[C]:
        """Replace (moving averages) or merge (RSI) the config at `key`.

        Unknown keys are a no-op and return None.
        """
        self.initialize()
        index = self._index_of(key)
        if index is None:
            self._log.debug("config_update_missing", key=key)
            return None
        checked = self._checked(self._merged(self._configs[index], config))
        configs = list(self._configs)
        configs[index] = checked
        self._commit(configs)
        return checked

    def remove(self, key: Union[int, str]) -> bool:
        self.initialize()
        index = self._index_of(key)
        if index is None:
            return False
        self._commit(self._configs[:index] + self._configs[index + 1 :])
        return True

    def toggle_visibility(self, key: Union[int, str]) -> Optional[C]:
        self.initialize()
        index = self._index_of(key)
        if index is None:
            return None
        current = self._configs[index]
        return self.update(index, {"visible": not getattr(current, "visible", True)})

    # --------- Internals ---------
    def _merged(self, current: C, config: ConfigInput) -> dict:
        return _as_dict(config, self.model)

    def _index_of(self, key: Union[int, str]) -> Optional[int]:
        if isinstance(key, bool):
            return None
        if isinstance(key, int):
            return key if 0 <= key < len(self._configs) else None
        for i, c in enumerate(self._configs):
            if getattr(c, "id", None) == key:
                return i
        return None

    def _commit(self, configs: List[C]) -> None:
        self._configs = configs
        self._storage.set_item(self._key, json.dumps([c.model_dump(by_alias=True) for c in configs]))
        for listener in list(self._listeners):
            listener(list(configs))


class MovingAverageRegistry(_ConfigRegistry[MovingAverageConfig]):
    """Moving-average overlays, addressed by list index (or by id)."""

    model = MovingAverageConfig
    id_prefix = "ma"

    def __init__(self, storage: Optional[ClientStorage] = None, storage_key: str = "movingAverageConfigs") -> None:
        super().__init__(storage, storage_key)

    def _validate(self, data: ConfigInput) -> ValidationResult:
        return validate_moving_average_config(data)

    def _merged(self, current: MovingAverageConfig, config: ConfigInput) -> dict:
        payload = _as_dict(config, self.model)
        if set(payload) <= {"visible"}:
            # visibility toggles keep everything else
            return {**current.model_dump(), **payload}
        payload.setdefault("id", current.id)
        return payload


class RSIRegistry(_ConfigRegistry[RSIConfig]):
    """RSI panes, addressed by explicit id. Updates merge partial fields."""

    model = RSIConfig
    id_prefix = "rsi"

    def __init__(
        self,
        storage: Optional[ClientStorage] = None,
        storage_key: str = "rsi-configs",
        default_period: int = 14,
    ) -> None:
        super().__init__(storage, storage_key)
        self._default_period = default_period

    def _validate(self, data: ConfigInput) -> ValidationResult:
        return validate_rsi_config(data)

    def add(self, config: ConfigInput) -> RSIConfig:
        # a fresh id is always assigned on add
        payload = {k: v for k, v in _as_dict(config, self.model).items() if k != "id"}
        payload.setdefault("period", self._default_period)
        return super().add(payload)

    def _merged(self, current: RSIConfig, config: ConfigInput) -> dict:
        payload = {k: v for k, v in _as_dict(config, self.model).items() if k != "id"}
        return {**current.model_dump(), **payload}
