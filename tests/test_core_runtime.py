import pytest

from core.config import Config
from core.runtime import CoreRuntime


@pytest.mark.asyncio
async def test_core_start_stop_shutdown(memory_adapter):
    runtime = CoreRuntime(memory_adapter)
    assert runtime.is_running is False

    await runtime.start()
    assert runtime.is_running is True
    assert await runtime.service_registry.has_service("logger.log")
    assert await runtime.service_registry.has_service("monitoring.record")

    await runtime.stop()
    assert runtime.is_running is False
    assert memory_adapter.closed is True

    # shutdown очищает реестры
    await runtime.shutdown()
    assert await runtime.service_registry.list_services() == []


@pytest.mark.asyncio
async def test_builtin_modules(memory_adapter):
    runtime = CoreRuntime(memory_adapter)

    assert runtime.get_module("logger") is not None
    assert runtime.get_module("monitoring") is not None
    assert runtime.get_module("missing") is None


def test_invalid_config_rejected(memory_adapter):
    with pytest.raises(ValueError):
        CoreRuntime(memory_adapter, Config(namespace=""))


@pytest.mark.asyncio
async def test_store_uses_configured_namespace(memory_adapter):
    runtime = CoreRuntime(memory_adapter, Config(namespace="hass.1"))

    await runtime.store.set_state("info.connection", False, ack=True)

    assert await runtime.store.get_foreign_state("hass.1.info.connection") is not None
