"""
Плагин `hass_bridge` - мост между хабом автоматизации и хранилищем хоста.

Назначение:
- при подключении к хабу построить дерево объектов хранилища по сущностям
  и сервисам хаба (channel / state / state_boolean / атрибуты / команды)
- держать значения в актуальном состоянии по событиям state_changed
- при дрейфе (событие про неизвестный объект) выполнить отложенный resync
- превращать локальные записи (ack=False) в вызовы сервисов хаба

Взаимодействует только через:
- event_bus (события хаба и хранилища)
- store (объекты и значения)
- service_registry (логирование, метрики, собственные сервисы)

Транспорт хаба передаётся готовым объектом HubClient.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

from plugins.base_plugin import BasePlugin, PluginMetadata
from core.storage import STATE_CHANGED_EVENT
from .change_handler import ChangeHandler
from .command_handler import CommandHandler
from .entity_mapper import EntityMapper
from .entity_sync import EntitySync
from .hub_client import (
    HUB_CONNECTED,
    HUB_DISCONNECTED,
    HUB_ERROR,
    HUB_STATE_CHANGED,
    HubClient,
    describe_hub_error,
)
from .log import plugin_log
from .reconciler import Reconciler
from .resync_scheduler import ResyncScheduler
from .shadow_tree import ShadowTree
from .state_applier import StateApplier

CONNECTION_STATE = "info.connection"


class HassBridgePlugin(BasePlugin):
    """Синхронизирует сущности хаба с деревом объектов хранилища."""

    def __init__(self, runtime: Optional[Any] = None, hub: Optional[HubClient] = None):
        super().__init__(runtime)
        self.hub = hub
        self.connected = False
        self._stopped = True
        self._tasks: Set[asyncio.Task] = set()
        self._handlers: Dict[str, Any] = {}

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            name="hass_bridge",
            version="0.1.0",
            description="Синхронизация сущностей хаба с деревом объектов хранилища",
            author="Home Console",
        )

    def is_stopped(self) -> bool:
        return self._stopped

    def is_connected(self) -> bool:
        return self.connected

    async def on_load(self) -> None:
        """Загрузка: собираем компоненты и регистрируем сервисы."""
        await super().on_load()
        if self.hub is None:
            raise ValueError("hass_bridge requires a HubClient instance")

        config = self.runtime.config
        name = self.metadata.name
        namespace = config.namespace

        # общий lock: полный прогон и live-обновления не пересекаются
        self.sync_lock = asyncio.Lock()
        self.shadow = ShadowTree(namespace)
        self.mapper = EntityMapper(namespace)
        self.reconciler = Reconciler(self.runtime, name, self.shadow, self.is_stopped)
        self.applier = StateApplier(self.runtime, name, self.is_stopped)
        self.entity_sync = EntitySync(
            self.runtime, name, self.hub, self.mapper, self.reconciler, self.applier,
            self.sync_lock, self.is_stopped,
            settle_delay=self.get_env_config_float("SETTLE_DELAY", config.settle_delay),
        )
        self.scheduler = ResyncScheduler(
            self.runtime, name, self.entity_sync.resync,
            delay=self.get_env_config_float("RESYNC_DELAY", config.resync_delay),
        )
        self.change_handler = ChangeHandler(self.runtime, name, self.shadow, self.scheduler, self.is_stopped)
        self.command_handler = CommandHandler(self.runtime, name, self.shadow, self.hub, self.is_connected)

        async def _resync():
            """Запросить отложенную полную пересинхронизацию."""
            self.scheduler.request()
            return {"state": self.scheduler.state}

        async def _status():
            """Состояние моста для health check."""
            return {
                "connected": self.connected,
                "objects": len(self.shadow),
                "resync": self.scheduler.state,
                "resync_running": self.scheduler.is_running,
            }

        await self.runtime.service_registry.register("hass_bridge.resync", _resync)
        await self.runtime.service_registry.register("hass_bridge.status", _status)

    async def on_start(self) -> None:
        """Запуск: подписки на события и подключение к хабу."""
        await super().on_start()
        self._stopped = False
        self.connected = False
        self.scheduler.resume()

        await self._ensure_connection_object()
        await self._set_connection(False)

        self._handlers = {
            HUB_CONNECTED: self._on_connected,
            HUB_DISCONNECTED: self._on_disconnected,
            HUB_ERROR: self._on_error,
            HUB_STATE_CHANGED: self._on_state_changed,
            STATE_CHANGED_EVENT: self._on_store_state_changed,
        }
        for event_type, handler in self._handlers.items():
            self.runtime.event_bus.subscribe(event_type, handler)

        await plugin_log(self.runtime, self.metadata.name, "info", "hass_bridge запущен")
        await self.hub.connect()

    async def on_stop(self) -> None:
        """Остановка: отменяем таймеры, отписываемся, закрываем хаб."""
        await super().on_stop()
        self._stopped = True
        self.scheduler.cancel()
        self.entity_sync.cancel_pending()

        for event_type, handler in self._handlers.items():
            self.runtime.event_bus.unsubscribe(event_type, handler)
        self._handlers = {}
        self.runtime.store.unsubscribe_states("*")

        try:
            await self.hub.close()
        except Exception as e:
            await plugin_log(self.runtime, self.metadata.name, "error", f"Cannot close hub connection: {e}")
        self.connected = False

        # операции, уже начатые задачами, могут завершиться; дальше задачи не пойдут
        if self._tasks:
            done, pending = await asyncio.wait(list(self._tasks), timeout=self.runtime.config.shutdown_timeout)
            for t in pending:
                t.cancel()
            self._tasks.clear()

        await plugin_log(self.runtime, self.metadata.name, "info", "hass_bridge остановлен")

    async def on_unload(self) -> None:
        """Выгрузка: удаляем сервисы."""
        await super().on_unload()
        for service in ("hass_bridge.resync", "hass_bridge.status"):
            await self.runtime.service_registry.unregister(service)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _ensure_connection_object(self) -> None:
        obj_id = f"{self.runtime.config.namespace}.{CONNECTION_STATE}"
        try:
            if await self.runtime.store.get_foreign_object(obj_id) is None:
                await self.runtime.store.set_foreign_object(obj_id, {
                    "type": "state",
                    "common": {
                        "name": "Device or service connected",
                        "role": "indicator.connected",
                        "type": "boolean",
                        "read": True,
                        "write": False,
                        "def": False,
                    },
                    "native": {},
                })
        except Exception as e:
            await plugin_log(self.runtime, self.metadata.name, "error", f"Cannot create {obj_id}: {e}")

    async def _set_connection(self, value: bool) -> None:
        try:
            await self.runtime.store.set_state(CONNECTION_STATE, value, ack=True)
        except Exception as e:
            await plugin_log(self.runtime, self.metadata.name, "error", f"Cannot set {CONNECTION_STATE}: {e}")

    async def _on_connected(self, event_type: str, data: dict) -> None:
        if self.connected or self._stopped:
            return
        self.connected = True
        await plugin_log(self.runtime, self.metadata.name, "debug", "Connected")
        await self._set_connection(True)
        self._spawn(self.entity_sync.initial_sync())

    async def _on_disconnected(self, event_type: str, data: dict) -> None:
        if not self.connected:
            return
        self.connected = False
        await plugin_log(self.runtime, self.metadata.name, "debug", "Disconnected")
        if not self._stopped:
            await self._set_connection(False)

    async def _on_error(self, event_type: str, data: dict) -> None:
        await plugin_log(self.runtime, self.metadata.name, "error", describe_hub_error(data or {}))

    async def _on_state_changed(self, event_type: str, data: dict) -> None:
        if self._stopped:
            return
        entity = (data or {}).get("entity")
        await plugin_log(self.runtime, self.metadata.name, "debug", "Hub message: state changed",
                         entity_id=(entity or {}).get("entity_id"))
        async with self.sync_lock:
            # stop мог пройти, пока ждали lock
            if self._stopped:
                return
            await self.change_handler.handle(entity)

    async def _on_store_state_changed(self, event_type: str, data: dict) -> None:
        if self._stopped:
            return
        await self.command_handler.handle_state_change(data.get("id"), data.get("state"))
