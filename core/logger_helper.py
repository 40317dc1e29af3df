"""
Logger Helper - простой wrapper для логирования в core компонентах.

ВАЖНО: Этот helper ТОЛЬКО для core компонентов (runtime, event_bus, storage).
Плагины логируют напрямую через публичный сервис:
    await runtime.service_registry.call("logger.log", level="info", message="...", plugin="...")

LoggerModule регистрируется первым при старте runtime, поэтому fallback на
stderr нужен только до инициализации (или в тестах без runtime).

Реальная логика логирования находится в modules/logger/module.py.
"""

import sys
from typing import Optional, Any

LEVELS = ("debug", "info", "warning", "error")


async def log(runtime: Optional[Any], level: str, message: str, **context: Any) -> None:
    """
    Записать лог сообщение через LoggerModule.

    Args:
        runtime: экземпляр CoreRuntime (если None - используется stderr)
        level: уровень логирования (debug, info, warning, error)
        message: сообщение
        **context: дополнительный контекст
    """
    level = (level or "info").lower()
    if level not in LEVELS:
        level = "info"

    if runtime is not None:
        try:
            await runtime.service_registry.call(
                "logger.log",
                level=level,
                message=message,
                **context
            )
            return
        except Exception:
            # logger.log ещё не зарегистрирован - уходим в fallback
            pass

    log_message = f"[{level.upper()}] {message}"
    if context:
        log_message += f" {context}"
    print(log_message, file=sys.stderr)


async def debug(runtime: Optional[Any], message: str, **context: Any) -> None:
    """Логировать debug сообщение."""
    await log(runtime, "debug", message, **context)


async def info(runtime: Optional[Any], message: str, **context: Any) -> None:
    """Логировать info сообщение."""
    await log(runtime, "info", message, **context)


async def warning(runtime: Optional[Any], message: str, **context: Any) -> None:
    """Логировать warning сообщение."""
    await log(runtime, "warning", message, **context)


async def error(runtime: Optional[Any], message: str, **context: Any) -> None:
    """Логировать error сообщение."""
    await log(runtime, "error", message, **context)
