"""
CoreRuntime - главный класс Core Runtime.

Объединяет все компоненты:
- Config
- EventBus
- ServiceRegistry
- ObjectStore (хранилище хоста поверх StorageAdapter)
- встроенные модули (logger, monitoring)
- PluginManager

Это kernel/runtime, а не backend-приложение.
"""

from typing import Any, Optional

from core.config import Config
from core.event_bus import EventBus
from core.plugin_manager import PluginManager
from core.runtime_module import RuntimeModule
from core.service_registry import ServiceRegistry
from core.storage import ObjectStore
from core import logger_helper


class CoreRuntime:
    """
    Главный класс Core Runtime.

    Координирует работу всех компонентов.
    Предоставляет единую точку доступа для плагинов.
    """

    def __init__(self, storage_adapter: Any, config: Optional[Config] = None):
        """
        Args:
            storage_adapter: адаптер хранилища хоста
            config: конфигурация (по умолчанию - значения Config())
        """
        self.config = config or Config()
        self.config.validate()

        self.event_bus = EventBus(self)
        self.service_registry = ServiceRegistry()
        self.store = ObjectStore(storage_adapter, self.config.namespace, self.event_bus)
        self.plugin_manager = PluginManager(self)

        # Встроенные модули регистрируются до плагинов; logger - первым
        from modules.logger import LoggerModule
        from modules.monitoring import MonitoringModule

        self.modules: list[RuntimeModule] = [LoggerModule(self), MonitoringModule(self)]
        self._modules_registered = False
        self._running = False

    @property
    def is_running(self) -> bool:
        """Запущен ли runtime."""
        return self._running

    def get_module(self, name: str) -> Optional[RuntimeModule]:
        """Встроенный модуль по имени."""
        for module in self.modules:
            if module.name == name:
                return module
        return None

    async def start(self) -> None:
        """
        Запустить Core Runtime.

        - регистрирует и запускает встроенные модули
        - запускает все загруженные плагины
        """
        if self._running:
            return

        if not self._modules_registered:
            for module in self.modules:
                await module.register()
            self._modules_registered = True

        for module in self.modules:
            await module.start()

        await self.plugin_manager.start_all()
        self._running = True
        await logger_helper.info(self, "Core Runtime started", module="runtime")

    async def stop(self) -> None:
        """
        Остановить Core Runtime.

        - останавливает плагины (они отменяют свои таймеры)
        - останавливает модули
        - закрывает хранилище
        """
        if not self._running:
            return

        await self.plugin_manager.stop_all()

        for module in reversed(self.modules):
            try:
                await module.stop()
            except Exception as e:
                await logger_helper.error(self, f"Module '{module.name}' stop failed: {e}", module="runtime")

        await self.store.close()
        self._running = False

    async def shutdown(self) -> None:
        """
        Полное завершение работы Runtime.

        - останавливает runtime
        - выгружает плагины и очищает реестры
        """
        await self.stop()
        for plugin_name in reversed(self.plugin_manager.list_plugins()):
            try:
                await self.plugin_manager.unload_plugin(plugin_name)
            except Exception as e:
                await logger_helper.error(self, f"Plugin '{plugin_name}' unload failed: {e}", module="runtime")

        self.event_bus.clear()
        await self.service_registry.clear()
