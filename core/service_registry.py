"""
ServiceRegistry - реестр сервисов runtime.

Модули и плагины регистрируют сервисы по имени (logger.log,
monitoring.record, hass_bridge.resync, ...), остальные вызывают их через
registry, не импортируя друг друга.
"""

import asyncio
from typing import Any, Callable, Awaitable, Optional


# Тип для сервисной функции
ServiceFunc = Callable[..., Awaitable[Any]]


class ServiceRegistry:
    """
    Реестр сервисов.

    - сервисы регистрируются под уникальным именем
    - call() маршрутизирует вызов; если задан default_timeout, вызов
      ограничен по времени
    """

    def __init__(self, default_timeout: Optional[float] = None):
        self._services: dict[str, ServiceFunc] = {}
        self._lock = asyncio.Lock()
        self._default_timeout: Optional[float] = default_timeout

    async def register(self, service_name: str, func: ServiceFunc) -> None:
        """
        Зарегистрировать сервис.

        Raises:
            ValueError: если сервис с таким именем уже зарегистрирован
        """
        async with self._lock:
            if service_name in self._services:
                raise ValueError(f"Сервис '{service_name}' уже зарегистрирован")
            self._services[service_name] = func

    async def unregister(self, service_name: str) -> None:
        """Удалить сервис из реестра (отсутствующий сервис игнорируется)."""
        async with self._lock:
            self._services.pop(service_name, None)

    async def call(self, service_name: str, *args, **kwargs) -> Any:
        """
        Вызвать сервис.

        Raises:
            ValueError: если сервис не найден
            asyncio.TimeoutError: если вызов превысил default_timeout
        """
        async with self._lock:
            func = self._services.get(service_name)
            if func is None:
                raise ValueError(f"Сервис '{service_name}' не найден")

        # Вызываем вне lock, чтобы сервис мог сам обращаться к registry
        if self._default_timeout is not None:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=self._default_timeout)
        return await func(*args, **kwargs)

    async def has_service(self, service_name: str) -> bool:
        """Проверить, существует ли сервис."""
        async with self._lock:
            return service_name in self._services

    async def list_services(self) -> list[str]:
        """Список имён зарегистрированных сервисов."""
        async with self._lock:
            return list(self._services.keys())

    async def clear(self) -> None:
        """Очистить все сервисы."""
        async with self._lock:
            self._services.clear()
