import asyncio

import pytest

from plugins.hass_bridge.resync_scheduler import IDLE, PENDING, ResyncScheduler


@pytest.mark.asyncio
async def test_burst_of_requests_runs_once():
    calls = []

    async def runner():
        calls.append(1)

    scheduler = ResyncScheduler(None, "hass_bridge", runner, delay=0.05)
    for _ in range(10):
        scheduler.request()
        await asyncio.sleep(0.001)

    assert scheduler.state == PENDING
    await scheduler.wait()

    assert len(calls) == 1
    assert scheduler.runs == 1
    assert scheduler.state == IDLE


@pytest.mark.asyncio
async def test_request_during_run_is_deferred_once():
    calls = []
    started = asyncio.Event()
    release = asyncio.Event()

    async def runner():
        calls.append(1)
        if len(calls) == 1:
            started.set()
            await release.wait()

    scheduler = ResyncScheduler(None, "hass_bridge", runner, delay=0.01)
    scheduler.request()
    await started.wait()

    assert scheduler.is_running
    scheduler.request()
    scheduler.request()
    # во время прогона таймер не взводится
    assert scheduler.state == IDLE

    release.set()
    await scheduler.wait()

    assert len(calls) == 2
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_callbacks_called_after_run():
    order = []

    async def runner():
        order.append("run")

    async def async_cb():
        order.append("async")

    scheduler = ResyncScheduler(None, "hass_bridge", runner, delay=0.01)
    scheduler.request(lambda: order.append("sync"))
    scheduler.request(async_cb)
    await scheduler.wait()

    assert order == ["run", "sync", "async"]


@pytest.mark.asyncio
async def test_cancel_prevents_run():
    calls = []

    async def runner():
        calls.append(1)

    scheduler = ResyncScheduler(None, "hass_bridge", runner, delay=0.02)
    scheduler.request()
    scheduler.cancel()
    await asyncio.sleep(0.05)

    assert calls == []
    assert scheduler.state == IDLE

    # после cancel() запросы игнорируются, пока не вызван resume()
    scheduler.request()
    assert scheduler.state == IDLE
    scheduler.resume()
    scheduler.request()
    await scheduler.wait()
    assert calls == [1]


@pytest.mark.asyncio
async def test_runner_error_returns_to_idle():
    async def runner():
        raise RuntimeError("hub gone")

    scheduler = ResyncScheduler(None, "hass_bridge", runner, delay=0.01)
    scheduler.request()
    await scheduler.wait()

    assert scheduler.runs == 0
    assert scheduler.state == IDLE
    assert not scheduler.is_running
