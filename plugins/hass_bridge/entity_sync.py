"""
Модуль для синхронизации сущностей хаба с деревом объектов хранилища.

Пайплайн: запрос состояний и сервисов -> маппинг -> reconciliation ->
запись значений. Начальная синхронизация дополнительно читает конфиг хаба,
делает короткие паузы между шагами и в конце включает подписку на
локальные записи.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional

from .entity_mapper import EntityMapper
from .hub_client import HubClient
from .log import plugin_log, record_metric
from .models import ReconcileStats
from .reconciler import Reconciler
from .state_applier import StateApplier


class EntitySync:
    """Полный прогон синхронизации сущностей."""

    def __init__(
        self,
        runtime: Any,
        plugin_name: str,
        hub: HubClient,
        mapper: EntityMapper,
        reconciler: Reconciler,
        applier: StateApplier,
        lock: asyncio.Lock,
        is_stopped: Callable[[], bool],
        settle_delay: float = 0.1,
    ):
        """
        Args:
            runtime: экземпляр CoreRuntime
            plugin_name: имя плагина для логирования
            hub: клиент хаба
            mapper, reconciler, applier: шаги пайплайна
            lock: общий с обработчиком событий lock - прогоны и live-обновления не пересекаются
            is_stopped: флаг остановки плагина
            settle_delay: пауза между шагами начальной синхронизации (секунды)
        """
        self.runtime = runtime
        self.plugin_name = plugin_name
        self.hub = hub
        self.mapper = mapper
        self.reconciler = reconciler
        self.applier = applier
        self.lock = lock
        self._is_stopped = is_stopped
        self.settle_delay = settle_delay
        self.hub_config: Optional[Dict[str, Any]] = None
        self._settle_task: Optional[asyncio.Task] = None

    async def initial_sync(self) -> bool:
        """
        Начальная синхронизация после подключения.

        Returns:
            True если синхронизация дошла до конца и подписка включена
        """
        try:
            self.hub_config = await self.hub.get_config()
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read config: {e}")
            return False

        if not await self._settle():
            return False
        try:
            states = await self.hub.get_states()
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read states: {e}")
            return False

        if not await self._settle():
            return False
        try:
            services = await self.hub.get_services()
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read services: {e}")
            return False
        if self._is_stopped():
            return False

        async with self.lock:
            await self._sync(states, services)
        if self._is_stopped():
            return False

        self.runtime.store.subscribe_states("*")
        await plugin_log(self.runtime, self.plugin_name, "info", "Initialization completed")
        return True

    async def resync(self) -> Optional[ReconcileStats]:
        """Полная пересинхронизация (вызывается планировщиком resync)."""
        if self._is_stopped():
            return None
        try:
            states = await self.hub.get_states()
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read states during resync: {e}")
            return None
        try:
            services = await self.hub.get_services()
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read services during resync: {e}")
            return None
        if self._is_stopped():
            return None

        async with self.lock:
            stats = await self._sync(states, services)
        await record_metric(self.runtime, "resync")
        return stats

    async def _sync(self, states: Any, services: Any) -> ReconcileStats:
        desired = self.mapper.map_entities(states or [], services or {})
        stats = await self.reconciler.reconcile(desired)
        await self.applier.apply(desired.states)
        return stats

    async def _settle(self) -> bool:
        """Пауза между шагами; False если пауза отменена остановкой."""
        if self._is_stopped():
            return False
        self._settle_task = asyncio.ensure_future(asyncio.sleep(self.settle_delay))
        try:
            await self._settle_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return False
        finally:
            self._settle_task = None
        return not self._is_stopped()

    def cancel_pending(self) -> None:
        """Отменить текущую паузу между шагами (при остановке)."""
        if self._settle_task is not None:
            self._settle_task.cancel()
