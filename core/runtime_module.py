"""
Базовый класс для встроенных модулей Runtime (RuntimeModule).

RuntimeModule - инфраструктурные домены (logger, monitoring), которые:
- регистрируются напрямую в CoreRuntime, до плагинов
- не зависят от PluginManager
- используют только Core API (event_bus, service_registry, store)

LIFECYCLE:
    __init__ → register() → start() → stop()
    register() вызывается ровно один раз; повторный вызов должен быть безопасен.
"""

from abc import ABC, abstractmethod
from typing import Any


class RuntimeModule(ABC):
    """Базовый класс для встроенных модулей Runtime."""

    def __init__(self, runtime: Any):
        """
        Args:
            runtime: экземпляр CoreRuntime
        """
        self.runtime = runtime

    @property
    @abstractmethod
    def name(self) -> str:
        """Уникальное имя модуля (например, "logger")."""

    async def register(self) -> None:
        """Регистрация сервисов модуля в service_registry."""

    async def start(self) -> None:
        """Запуск модуля."""

    async def stop(self) -> None:
        """Остановка модуля и отмена регистрации сервисов."""
