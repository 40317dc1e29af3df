"""
ObjectStore - API объектного хранилища хоста.

Дерево адресуемых узлов (channel / state) и их текущие значения.
Плагины работают ТОЛЬКО через этот API, никакого прямого доступа к адаптеру.

Раскладка в адаптере (namespace + key + JSON value):
- "objects": _id -> объект {_id, type, common, native}
- "states":  _id -> значение {val, ack, lc, ts}

Запись значения в подписанный id публикует событие `store.state_changed`
в EventBus; ack=False означает локальное намерение записи.
"""

import fnmatch
import time
from typing import Any, Optional

from adapters.storage_adapter import StorageAdapter

OBJECTS_NAMESPACE = "objects"
STATES_NAMESPACE = "states"
STATE_CHANGED_EVENT = "store.state_changed"


def _check_id(obj_id: Any) -> None:
    if not isinstance(obj_id, str) or not obj_id:
        raise ValueError(
            f"id must be non-empty string, got {type(obj_id).__name__}: {obj_id!r}"
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


class ObjectStore:
    """
    API хранилища объектов и состояний.

    "foreign" методы принимают полный id, set_state() - id относительно
    собственного namespace (как у адаптеров хоста).
    """

    def __init__(self, adapter: StorageAdapter, namespace: str, event_bus: Optional[Any] = None):
        """
        Args:
            adapter: адаптер хранения (персистентность - забота хоста)
            namespace: собственный namespace, например "hass.0"
            event_bus: шина для публикации store.state_changed
        """
        self._adapter = adapter
        self.namespace = namespace
        self._event_bus = event_bus
        self._patterns: list[str] = []

    async def get_foreign_object(self, obj_id: str) -> Optional[dict[str, Any]]:
        """
        Получить объект по полному id.

        Returns:
            Объект или None, если не найден

        Raises:
            ValueError: если id пустой или не строка
        """
        _check_id(obj_id)
        return await self._adapter.get(OBJECTS_NAMESPACE, obj_id)

    async def set_foreign_object(self, obj_id: str, obj: dict[str, Any]) -> None:
        """
        Создать или перезаписать объект.

        Raises:
            ValueError: если id пустой или не строка
            TypeError: если obj не dict
        """
        _check_id(obj_id)
        if not isinstance(obj, dict):
            raise TypeError(f"object must be dict, got {type(obj).__name__}: {obj!r}")
        stored = dict(obj)
        stored["_id"] = obj_id
        await self._adapter.set(OBJECTS_NAMESPACE, obj_id, stored)

    async def del_object(self, obj_id: str) -> bool:
        """
        Удалить объект вместе с его значением.

        Returns:
            True если объект существовал
        """
        _check_id(obj_id)
        existed = await self._adapter.delete(OBJECTS_NAMESPACE, obj_id)
        await self._adapter.delete(STATES_NAMESPACE, obj_id)
        return existed

    async def get_foreign_state(self, obj_id: str) -> Optional[dict[str, Any]]:
        """Текущее значение по полному id или None."""
        _check_id(obj_id)
        return await self._adapter.get(STATES_NAMESPACE, obj_id)

    async def set_foreign_state(self, obj_id: str, state: Any, ack: bool = False) -> None:
        """
        Записать значение по полному id.

        Args:
            obj_id: полный id
            state: dict {val, ack, lc, ts} или "голое" значение
            ack: флаг подтверждения, если state передан "голым" значением
        """
        _check_id(obj_id)
        if not isinstance(state, dict):
            state = {"val": state, "ack": ack}

        stored = {
            "val": state.get("val"),
            "ack": bool(state.get("ack", False)),
        }
        stored["ts"] = state.get("ts") if state.get("ts") is not None else _now_ms()
        stored["lc"] = state.get("lc") if state.get("lc") is not None else stored["ts"]

        await self._adapter.set(STATES_NAMESPACE, obj_id, stored)

        if self._event_bus is not None and self._is_subscribed(obj_id):
            await self._event_bus.publish(STATE_CHANGED_EVENT, {"id": obj_id, "state": dict(stored)})

    async def set_state(self, obj_id: str, state: Any, ack: bool = False) -> None:
        """Записать значение по id относительно собственного namespace."""
        _check_id(obj_id)
        await self.set_foreign_state(f"{self.namespace}.{obj_id}", state, ack=ack)

    def subscribe_states(self, pattern: str) -> None:
        """
        Подписаться на изменения значений собственного namespace.

        Args:
            pattern: glob относительно namespace, например "*" или "entities.light.*"
        """
        full = f"{self.namespace}.{pattern}"
        if full not in self._patterns:
            self._patterns.append(full)

    def unsubscribe_states(self, pattern: str) -> None:
        full = f"{self.namespace}.{pattern}"
        if full in self._patterns:
            self._patterns.remove(full)

    def _is_subscribed(self, obj_id: str) -> bool:
        return any(fnmatch.fnmatchcase(obj_id, p) for p in self._patterns)

    async def close(self) -> None:
        """Закрыть адаптер."""
        await self._adapter.close()
