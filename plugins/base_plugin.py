"""
Базовый класс и интерфейс для плагинов.

Все плагины должны наследоваться от BasePlugin.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from core.runtime import CoreRuntime


@dataclass
class PluginMetadata:
    """Метаданные плагина."""

    name: str
    version: str
    description: str = ""
    author: str = ""
    dependencies: list[str] = field(default_factory=list)  # имена плагинов-зависимостей


class BasePlugin(ABC):
    """
    Базовый класс для всех плагинов.

    Lifecycle методы вызываются в следующем порядке:
    1. __init__() - конструктор
    2. on_load() - загрузка плагина
    3. on_start() - запуск плагина
    4. on_stop() - остановка плагина
    5. on_unload() - выгрузка плагина
    """

    _runtime: Optional["CoreRuntime"] = None

    @property
    def runtime(self) -> "CoreRuntime":
        # runtime гарантирован PluginManager'ом при вызове lifecycle-методов
        assert self._runtime is not None
        return self._runtime

    @runtime.setter
    def runtime(self, value: Optional["CoreRuntime"]) -> None:
        self._runtime = value

    def __init__(self, runtime: Optional["CoreRuntime"] = None) -> None:
        self._runtime = runtime
        self._loaded = False
        self._started = False

    def get_env_config(self, key: str, default: Optional[str] = None, prefix: Optional[str] = None) -> Optional[str]:
        """
        Получить значение конфигурации из переменных окружения.

        Ищет переменную в следующем порядке:
        1. {prefix}_{key} (prefix по умолчанию - имя плагина в верхнем регистре)
        2. {key}

        Пример:
            # Ищет HASS_BRIDGE_RESYNC_DELAY, затем RESYNC_DELAY
            delay = self.get_env_config("RESYNC_DELAY")
        """
        if prefix is None:
            try:
                prefix = self.metadata.name.upper().replace("-", "_")
            except Exception:
                prefix = self.__class__.__name__.upper()

        for env_key in (f"{prefix}_{key}", key):
            value = os.getenv(env_key)
            if value is not None:
                return value

        return default

    def get_env_config_float(self, key: str, default: Optional[float] = None, prefix: Optional[str] = None) -> Optional[float]:
        """Число с плавающей точкой или default, если не удалось распарсить."""
        value = self.get_env_config(key, default=None, prefix=prefix)
        if value is None:
            return default
        try:
            return float(value)
        except (ValueError, TypeError):
            return default

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Метаданные плагина."""

    @property
    def is_loaded(self) -> bool:
        """Загружен ли плагин."""
        return self._loaded

    @property
    def is_started(self) -> bool:
        """Запущен ли плагин."""
        return self._started

    async def on_load(self) -> None:
        """
        Вызывается при загрузке плагина.

        Здесь можно:
        - инициализировать ресурсы
        - регистрировать сервисы
        """
        self._loaded = True

    async def on_start(self) -> None:
        """
        Вызывается при запуске плагина.

        Здесь можно:
        - подписаться на события
        - запустить фоновые задачи
        """
        self._started = True

    async def on_stop(self) -> None:
        """
        Вызывается при остановке плагина.

        Здесь нужно:
        - остановить фоновые задачи
        - освободить ресурсы
        """
        self._started = False

    async def on_unload(self) -> None:
        """
        Вызывается при выгрузке плагина.

        Здесь нужно:
        - удалить сервисы
        """
        self._loaded = False
