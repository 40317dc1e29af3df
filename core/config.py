"""
Конфигурация Core Runtime.

Минимальные настройки: namespace хранилища, логирование, тайминги синхронизации.
"""

import os
from dataclasses import dataclass

@dataclass
class Config:
    """Конфигурация Core Runtime."""
    # Namespace, под которым плагин создаёт объекты в хранилище хоста
    namespace: str = "hass.0"

    # Сколько ждать фоновые задачи плагинов при остановке (секунды)
    shutdown_timeout: int = 10

    # Задержка debounce для полной пересинхронизации (секунды)
    resync_delay: float = 3.0
    # Пауза между шагами начальной синхронизации (секунды)
    settle_delay: float = 0.1

    # Logging
    # "text" | "json"
    log_format: str = "text"

    def validate(self) -> None:
        """
        Валидировать конфигурацию.

        Raises:
            ValueError: если конфигурация невалидна
        """
        if not isinstance(self.namespace, str) or not self.namespace:
            raise ValueError(f"namespace must be non-empty string, got: {self.namespace!r}")
        if self.namespace.startswith(".") or self.namespace.endswith("."):
            raise ValueError(f"namespace must not start or end with '.', got: {self.namespace!r}")

        if not isinstance(self.shutdown_timeout, int) or self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive integer, got: {self.shutdown_timeout}"
            )

        if self.resync_delay < 0:
            raise ValueError(f"resync_delay must be >= 0, got: {self.resync_delay}")
        if self.settle_delay < 0:
            raise ValueError(f"settle_delay must be >= 0, got: {self.settle_delay}")

        # log_format
        if self.log_format not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")

    @classmethod
    def from_env(cls) -> "Config":
        """
        Создать конфигурацию из переменных окружения.

        Raises:
            ValueError: если конфигурация невалидна
        """
        config = cls(
            namespace=os.getenv("RUNTIME_NAMESPACE", "hass.0"),
            shutdown_timeout=int(os.getenv("RUNTIME_SHUTDOWN_TIMEOUT", "10")),
            resync_delay=float(os.getenv("HASS_RESYNC_DELAY", "3.0")),
            settle_delay=float(os.getenv("HASS_SETTLE_DELAY", "0.1")),
            log_format=os.getenv("RUNTIME_LOG_FORMAT", "text").lower(),
        )
        config.validate()
        return config
