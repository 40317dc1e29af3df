"""
Модели данных моста: обновления значений, результат маппинга, статистика.

Объекты хранилища (channel/state) остаются обычными dict - именно в таком
виде они уходят в ObjectStore.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

ENTITIES_PREFIX = "entities"
STATE_SUFFIX = "state"
STATE_BOOLEAN_SUFFIX = "state_boolean"

# Атрибуты-метаданные, которые не становятся отдельными объектами
SKIPPED_ATTRIBUTES = ("friendly_name", "unit_of_measurement", "icon")

MappedObject = Dict[str, Any]


def channel_id(namespace: str, entity_id: str) -> str:
    """<namespace>.entities.<entity_id>"""
    return f"{namespace}.{ENTITIES_PREFIX}.{entity_id}"


def object_id(namespace: str, entity_id: str, suffix: Optional[str] = None) -> str:
    """Детерминированный id объекта: channel или channel + суффикс."""
    base = channel_id(namespace, entity_id)
    return f"{base}.{suffix}" if suffix else base


def entities_root(namespace: str) -> str:
    return f"{namespace}.{ENTITIES_PREFIX}."


def entity_id_from_object_id(namespace: str, obj_id: str) -> Optional[str]:
    """
    Восстановить entity_id (domain.object_id) из id объекта.

    Нужен для объектов, у которых в хранилище потерялся native.
    """
    root = entities_root(namespace)
    if not obj_id.startswith(root):
        return None
    parts = obj_id[len(root):].split(".")
    if len(parts) < 2:
        return None
    return f"{parts[0]}.{parts[1]}"


def to_timestamp_ms(value: Any) -> Optional[int]:
    """ISO-8601 строка хаба -> epoch миллисекунды (None если не распарсилось)."""
    if not value or not isinstance(value, str):
        return None
    try:
        # "Z" понимает fromisoformat только начиная с Python 3.11
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


@dataclass
class StateUpdate:
    """Одно значение для записи в хранилище."""
    id: str
    val: Any
    lc: Optional[int] = None
    ts: Optional[int] = None
    ack: bool = True

    def to_state(self) -> Dict[str, Any]:
        state: Dict[str, Any] = {"val": self.val, "ack": self.ack}
        if self.lc is not None:
            state["lc"] = self.lc
        if self.ts is not None:
            state["ts"] = self.ts
        return state


@dataclass
class MappingResult:
    """Желаемое состояние дерева для одной или нескольких сущностей."""
    objects: List[MappedObject] = field(default_factory=list)
    states: List[StateUpdate] = field(default_factory=list)
    expected_ids: Set[str] = field(default_factory=set)

    def extend(self, other: "MappingResult") -> None:
        self.objects.extend(other.objects)
        self.states.extend(other.states)
        self.expected_ids.update(other.expected_ids)


@dataclass
class ReconcileStats:
    """Счётчики одного прохода reconciliation."""
    created: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def summary(self) -> str:
        changes = []
        if self.created:
            changes.append(f"{self.created} created")
        if self.updated:
            changes.append(f"{self.updated} updated")
        if self.deleted:
            changes.append(f"{self.deleted} deleted")
        return ", ".join(changes)
