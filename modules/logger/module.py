"""
LoggerModule - встроенный модуль логирования.

Обязательный инфраструктурный модуль, регистрируется первым при старте
CoreRuntime.

Предоставляет сервис `logger.log` для централизованного логирования.
Использует стандартный модуль `logging` (уровни), выводит в stdout.
Формат логов:
- text: [LEVEL] [plugin] message (context)
- json: одна JSON-строка на событие
"""

import os
import sys
import json
import logging
from typing import Any

from core.runtime_module import RuntimeModule

LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LoggerModule(RuntimeModule):
    """
    Модуль логирования.

    Не меняет глобальное состояние logging (не трогает root logger).
    """

    @property
    def name(self) -> str:
        return "logger"

    async def register(self) -> None:
        """Определяет уровень/формат и регистрирует сервис logger.log."""
        # LOG_LEVEL=DEBUG для отладки, LOG_LEVEL=WARNING для тихих логов
        log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
        self._log_level = getattr(logging, log_level_str, logging.INFO)

        cfg = getattr(self.runtime, "config", None)
        cfg_fmt = getattr(cfg, "log_format", None) if cfg is not None else None
        self._log_format = (cfg_fmt or os.getenv("LOG_FORMAT") or "text").lower()
        if self._log_format not in ("text", "json"):
            self._log_format = "text"

        if not await self.runtime.service_registry.has_service("logger.log"):
            await self.runtime.service_registry.register("logger.log", self._log_service)

    async def start(self) -> None:
        try:
            await self._log_service(level="debug", message="Logger module started", module="logger")
        except Exception:
            pass

    async def stop(self) -> None:
        try:
            await self._log_service(level="debug", message="Logger module stopped", module="logger")
        except Exception:
            pass

    async def _log_service(self, level: str, message: str, **context: Any) -> None:
        """
        Сервис логирования.

        Args:
            level: уровень логирования (debug, info, warning, error)
            message: сообщение для логирования
            **context: дополнительный контекст (plugin, module и др.)
        """
        lvl = (level or "").lower()
        if lvl not in LEVEL_MAP:
            lvl = "info"

        if LEVEL_MAP[lvl] < self._log_level:
            return

        plugin = context.pop("plugin", None)
        module = context.pop("module", None)

        if self._log_format == "json":
            event: dict[str, Any] = {"level": lvl.upper(), "message": message}
            if plugin:
                event["plugin"] = plugin
            if module:
                event["module"] = module
            safe_ctx: dict[str, Any] = {}
            for k, v in context.items():
                if isinstance(v, (str, int, float, bool, type(None), dict, list)):
                    safe_ctx[k] = v
                else:
                    safe_ctx[k] = str(v)
            if safe_ctx:
                event["context"] = safe_ctx
            print(json.dumps(event, ensure_ascii=False, default=str), file=sys.stdout, flush=True)
            return

        parts = [f"[{lvl.upper()}]"]
        if plugin:
            parts.append(f"[{plugin}]")
        elif module:
            parts.append(f"[{module}]")
        parts.append(message)
        important_context = {
            k: v for k, v in context.items()
            if isinstance(v, (str, int, float, bool, type(None)))
        }
        if important_context:
            parts.append("(" + " ".join(f"{k}={v}" for k, v in important_context.items()) + ")")
        print(" ".join(parts), file=sys.stdout, flush=True)
