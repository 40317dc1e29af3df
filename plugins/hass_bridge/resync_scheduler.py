"""
Debounce для полной пересинхронизации.

Автомат из двух состояний:
- idle: таймер не взведён
- pending: таймер взведён; каждый новый запрос перезапускает его

По истечении таймера автомат возвращается в idle и запускает пайплайн.
Пока пайплайн выполняется, новые запросы не взводят таймер: они
запоминаются, и таймер взводится один раз после завершения прогона.
"""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, List, Optional

from .log import plugin_log

IDLE = "idle"
PENDING = "pending"

Callback = Callable[[], Any]


class ResyncScheduler:
    """Схлопывает всплески запросов на resync в один отложенный прогон."""

    def __init__(
        self,
        runtime: Any,
        plugin_name: str,
        runner: Callable[[], Awaitable[Any]],
        delay: float = 3.0,
    ):
        """
        Args:
            runtime: экземпляр CoreRuntime (для логирования)
            plugin_name: имя плагина
            runner: полный пайплайн resync
            delay: задержка debounce в секундах
        """
        self.runtime = runtime
        self.plugin_name = plugin_name
        self._runner = runner
        self.delay = delay
        self._timer: Optional[asyncio.Task] = None
        self._task: Optional[asyncio.Task] = None
        self._callbacks: List[Callback] = []
        self._running = False
        self._deferred = False
        self._cancelled = False
        self.runs = 0

    @property
    def state(self) -> str:
        return PENDING if self._timer is not None else IDLE

    @property
    def is_running(self) -> bool:
        return self._running

    def request(self, callback: Optional[Callback] = None) -> None:
        """Запросить resync; callback вызывается после ближайшего прогона."""
        if self._cancelled:
            return
        if callback is not None:
            self._callbacks.append(callback)
        if self._running:
            self._deferred = True
            return
        self._arm()

    def _arm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire())
        self._task = self._timer

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        # таймер истёк: с этого момента cancel() не должен прерывать прогон
        self._timer = None
        if self._cancelled:
            return
        await self._run()

    async def _run(self) -> None:
        callbacks, self._callbacks = self._callbacks, []
        self._running = True
        try:
            await self._runner()
            self.runs += 1
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Resync failed: {e}")
        finally:
            self._running = False

        for callback in callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                await plugin_log(self.runtime, self.plugin_name, "error", f"Resync callback failed: {e}")

        if self._deferred and not self._cancelled:
            self._deferred = False
            self._arm()

    def cancel(self) -> None:
        """Отменить взведённый таймер и больше не принимать запросы."""
        self._cancelled = True
        self._deferred = False
        self._callbacks.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def resume(self) -> None:
        """Снова принимать запросы после cancel() (повторный запуск плагина)."""
        self._cancelled = False

    async def wait(self) -> None:
        """Дождаться, пока не останется взведённых таймеров и прогонов."""
        while self._task is not None and not self._task.done():
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                # отменили таймер (перезапуск); если отменили нас самих - пробрасываем
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
