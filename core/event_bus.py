"""
EventBus - простой механизм pub/sub для событий.

Через шину проходят:
- события хаба от транспорта (hass.connected, hass.state_changed, ...)
- локальные намерения записи из хранилища (store.state_changed)

Публикующий и подписчики НЕ знают друг о друге.
"""

import asyncio
from collections import defaultdict
from typing import Any, Callable, Awaitable, Optional

from core import logger_helper


# Тип для обработчика событий
EventHandler = Callable[[str, dict[str, Any]], Awaitable[None]]


class EventBus:
    """
    Простая шина событий.

    Принцип работы:
    - источники публикуют события с типом и данными
    - подписчики регистрируются на типы событий
    - publish() дожидается всех обработчиков, поэтому события одного
      источника обрабатываются строго по очереди
    """

    def __init__(self, runtime: Optional[Any] = None):
        # Словарь: event_type -> list[handler]
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        # runtime нужен только для логирования ошибок обработчиков
        self._runtime = runtime

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Подписаться на событие.

        Args:
            event_type: тип события (например, "hass.state_changed")
            handler: async функция-обработчик

        Пример:
            async def on_state_changed(event_type: str, data: dict):
                print(f"Entity changed: {data['entity']}")

            event_bus.subscribe("hass.state_changed", on_state_changed)
        """
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Отписаться от события.

        Args:
            event_type: тип события
            handler: обработчик для удаления
        """
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
            except ValueError:
                pass

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        """
        Опубликовать событие и дождаться обработчиков.

        Ошибка одного обработчика не мешает остальным, она логируется.

        Args:
            event_type: тип события
            data: данные события
        """
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        results = await asyncio.gather(
            *(handler(event_type, data) for handler in handlers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                await logger_helper.error(
                    self._runtime,
                    f"Event handler for '{event_type}' failed: {result}",
                    module="event_bus",
                )

    def get_subscribers_count(self, event_type: str) -> int:
        """Количество подписчиков на событие."""
        return len(self._handlers.get(event_type, []))

    def clear(self) -> None:
        """Очистить все подписки."""
        self._handlers.clear()
