"""
PluginManager - управление lifecycle плагинов.

Загружает, запускает, останавливает и выгружает плагины.
Зависимости проверяются по metadata.dependencies при загрузке.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

from plugins.base_plugin import BasePlugin

if TYPE_CHECKING:
    from core.runtime import CoreRuntime


class PluginState(Enum):
    """Состояния плагина."""
    UNLOADED = "unloaded"
    LOADED = "loaded"
    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"


class PluginManager:
    """
    Менеджер для управления lifecycle плагинов.

    Отвечает за:
    - загрузку плагинов
    - запуск и остановку
    - отслеживание состояния
    """

    def __init__(self, runtime: Optional["CoreRuntime"] = None):
        # runtime может отсутствовать (тесты создают PluginManager() без runtime)
        self._runtime = runtime
        self._plugins: dict[str, BasePlugin] = {}
        self._states: dict[str, PluginState] = {}

    async def load_plugin(self, plugin: BasePlugin) -> None:
        """
        Загрузить плагин.

        Raises:
            ValueError: если плагин уже загружен или не хватает зависимостей
        """
        metadata = plugin.metadata
        plugin_name = metadata.name

        if plugin_name in self._plugins:
            raise ValueError(f"Плагин '{plugin_name}' уже загружен")

        for dep_name in metadata.dependencies or []:
            if dep_name not in self._plugins:
                raise ValueError(
                    f"Плагин '{plugin_name}' требует плагин '{dep_name}', "
                    f"но он не загружен"
                )

        if self._runtime is not None:
            plugin.runtime = self._runtime

        try:
            await plugin.on_load()
        except Exception:
            self._states[plugin_name] = PluginState.ERROR
            raise

        self._plugins[plugin_name] = plugin
        self._states[plugin_name] = PluginState.LOADED

    async def start_plugin(self, plugin_name: str) -> None:
        """
        Запустить плагин.

        Raises:
            ValueError: если плагин не найден
            RuntimeError: если on_start() упал
        """
        plugin = self._plugins.get(plugin_name)
        if plugin is None:
            raise ValueError(f"Плагин '{plugin_name}' не найден")

        if self._states[plugin_name] == PluginState.STARTED:
            return

        try:
            await plugin.on_start()
            self._states[plugin_name] = PluginState.STARTED
        except Exception as e:
            self._states[plugin_name] = PluginState.ERROR
            raise RuntimeError(f"Ошибка запуска плагина '{plugin_name}': {e}") from e

    async def stop_plugin(self, plugin_name: str) -> None:
        """
        Остановить плагин.

        Raises:
            ValueError: если плагин не найден
            RuntimeError: если on_stop() упал
        """
        plugin = self._plugins.get(plugin_name)
        if plugin is None:
            raise ValueError(f"Плагин '{plugin_name}' не найден")

        if self._states[plugin_name] != PluginState.STARTED:
            return

        try:
            await plugin.on_stop()
            self._states[plugin_name] = PluginState.STOPPED
        except Exception as e:
            self._states[plugin_name] = PluginState.ERROR
            raise RuntimeError(f"Ошибка остановки плагина '{plugin_name}': {e}") from e

    async def unload_plugin(self, plugin_name: str) -> None:
        """
        Выгрузить плагин (с остановкой, если запущен).

        Raises:
            ValueError: если плагин не найден
        """
        plugin = self._plugins.get(plugin_name)
        if plugin is None:
            raise ValueError(f"Плагин '{plugin_name}' не найден")

        if self._states[plugin_name] == PluginState.STARTED:
            await self.stop_plugin(plugin_name)

        try:
            await plugin.on_unload()
        except Exception as e:
            self._states[plugin_name] = PluginState.ERROR
            raise RuntimeError(f"Ошибка выгрузки плагина '{plugin_name}': {e}") from e

        del self._plugins[plugin_name]
        self._states[plugin_name] = PluginState.UNLOADED

    def get_plugin(self, plugin_name: str) -> Optional[BasePlugin]:
        """Экземпляр плагина или None."""
        return self._plugins.get(plugin_name)

    def get_plugin_state(self, plugin_name: str) -> Optional[PluginState]:
        """Состояние плагина или None."""
        return self._states.get(plugin_name)

    def list_plugins(self) -> list[str]:
        """Имена загруженных плагинов."""
        return list(self._plugins.keys())

    async def start_all(self) -> None:
        """Запустить все загруженные плагины (в порядке загрузки)."""
        for plugin_name in list(self._plugins.keys()):
            if self._states[plugin_name] in (PluginState.LOADED, PluginState.STOPPED):
                await self.start_plugin(plugin_name)

    async def stop_all(self) -> None:
        """Остановить все запущенные плагины (в обратном порядке)."""
        for plugin_name in reversed(list(self._plugins.keys())):
            if self._states[plugin_name] == PluginState.STARTED:
                await self.stop_plugin(plugin_name)
