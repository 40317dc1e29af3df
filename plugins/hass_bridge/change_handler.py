"""
Обработка событий state_changed от хаба.

Дешёвый путь: если целевой объект уже известен теневому дереву, пишется
только значение (state, state_boolean, атрибуты). Дорогой путь: если
объекта нет, он не создаётся на месте - запрашивается отложенный resync.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .entity_mapper import boolean_state, iter_attributes, serialize_value
from .log import plugin_log
from .models import (
    STATE_BOOLEAN_SUFFIX,
    STATE_SUFFIX,
    StateUpdate,
    object_id,
    to_timestamp_ms,
)
from .resync_scheduler import ResyncScheduler
from .roles import sanitize_id
from .shadow_tree import ShadowTree


class ChangeHandler:
    """Применяет изменения одной сущности к известным объектам."""

    def __init__(
        self,
        runtime: Any,
        plugin_name: str,
        shadow: ShadowTree,
        scheduler: ResyncScheduler,
        is_stopped: Optional[Callable[[], bool]] = None,
    ):
        self.runtime = runtime
        self.plugin_name = plugin_name
        self.shadow = shadow
        self.scheduler = scheduler
        self._is_stopped = is_stopped or (lambda: False)

    async def handle(self, entity: Dict[str, Any]) -> bool:
        """
        Обработать изменение сущности.

        Returns:
            True если обнаружен дрейф и запрошен resync
        """
        if self._is_stopped():
            return False
        if not entity or not isinstance(entity.get("entity_id"), str):
            return False

        entity_id = entity["entity_id"]
        namespace = self.shadow.namespace
        lc = to_timestamp_ms(entity.get("last_changed"))
        ts = to_timestamp_ms(entity.get("last_updated"))

        updates: List[StateUpdate] = []
        unknown: List[str] = []

        def target(suffix: str, val: Any) -> None:
            full_id = object_id(namespace, entity_id, suffix)
            if full_id in self.shadow:
                updates.append(StateUpdate(full_id, val, lc, ts))
            else:
                unknown.append(full_id)

        if "state" in entity:
            state = entity["state"]
            target(STATE_SUFFIX, serialize_value(state))
            mirror = boolean_state(state)
            mirror_id = object_id(namespace, entity_id, STATE_BOOLEAN_SUFFIX)
            if mirror_id in self.shadow:
                # зеркало есть, а state уже не on/off - пишем None до ближайшего resync
                updates.append(StateUpdate(mirror_id, mirror, lc, ts))
            elif mirror is not None:
                unknown.append(mirror_id)

        for attr, value in iter_attributes(entity.get("attributes")):
            target(sanitize_id(attr), serialize_value(value))

        for update in updates:
            # остановка могла случиться между записями
            if self._is_stopped():
                return False
            await self._write(update)

        if unknown and not self._is_stopped():
            await plugin_log(
                self.runtime, self.plugin_name, "info",
                f"State changed for unknown object {unknown[0]}. Triggering synchronization to resync the objects.",
                unknown=len(unknown),
            )
            self.scheduler.request()
            return True
        return False

    async def _write(self, update: StateUpdate) -> None:
        # set_state принимает id относительно собственного namespace
        relative_id = update.id[len(self.shadow.namespace) + 1:]
        try:
            await self.runtime.store.set_state(relative_id, update.to_state())
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot set state {update.id}: {e}")
