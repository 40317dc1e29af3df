"""
Запись значений в хранилище по одному.

Ошибка одного значения логируется и не останавливает пакет.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from .log import plugin_log
from .models import StateUpdate


class StateApplier:
    """Последовательно записывает значения через set_foreign_state."""

    def __init__(self, runtime: Any, plugin_name: str, is_stopped: Optional[Callable[[], bool]] = None):
        self.runtime = runtime
        self.plugin_name = plugin_name
        self._is_stopped = is_stopped or (lambda: False)

    async def apply(self, updates: Iterable[StateUpdate]) -> int:
        """
        Записать значения в порядке следования.

        Returns:
            количество успешно записанных значений
        """
        applied = 0
        for update in updates:
            if self._is_stopped():
                break
            try:
                await self.runtime.store.set_foreign_state(update.id, update.to_state())
            except Exception as e:
                await plugin_log(
                    self.runtime, self.plugin_name, "error",
                    f"Cannot set state {update.id}: {e}",
                )
                continue
            applied += 1
        return applied
