"""
Логирование компонентов моста через публичный сервис logger.log.
"""
from __future__ import annotations

from typing import Any


async def plugin_log(runtime: Any, plugin_name: str, level: str, message: str, **context: Any) -> None:
    """Записать лог от имени плагина; ошибка логирования никогда не пробрасывается."""
    try:
        await runtime.service_registry.call(
            "logger.log",
            level=level,
            message=message,
            plugin=plugin_name,
            **context,
        )
    except Exception:
        pass


async def record_metric(runtime: Any, event: str, **values: Any) -> None:
    """Сообщить событие в monitoring.record (если модуль мониторинга есть)."""
    try:
        await runtime.service_registry.call("monitoring.record", event, **values)
    except Exception:
        pass
