import pytest

from core.event_bus import EventBus
from core.storage import ObjectStore, STATE_CHANGED_EVENT


@pytest.mark.asyncio
async def test_object_crud(memory_adapter):
    store = ObjectStore(memory_adapter, "hass.0")

    await store.set_foreign_object("hass.0.entities.light.a", {"type": "channel", "common": {}, "native": {}})
    obj = await store.get_foreign_object("hass.0.entities.light.a")
    assert obj["_id"] == "hass.0.entities.light.a"
    assert obj["type"] == "channel"

    await store.set_foreign_state("hass.0.entities.light.a", "x", ack=True)
    assert await store.del_object("hass.0.entities.light.a") is True
    assert await store.get_foreign_object("hass.0.entities.light.a") is None
    # значение удаляется вместе с объектом
    assert await store.get_foreign_state("hass.0.entities.light.a") is None
    assert await store.del_object("hass.0.entities.light.a") is False

    await store.close()
    assert memory_adapter.closed is True


@pytest.mark.asyncio
async def test_invalid_arguments(memory_adapter):
    store = ObjectStore(memory_adapter, "hass.0")

    with pytest.raises(ValueError):
        await store.get_foreign_object("")
    with pytest.raises(ValueError):
        await store.set_foreign_state(None, 1)
    with pytest.raises(TypeError):
        await store.set_foreign_object("hass.0.x", ["not", "a", "dict"])


@pytest.mark.asyncio
async def test_state_defaults_and_relative_ids(memory_adapter):
    store = ObjectStore(memory_adapter, "hass.0")

    await store.set_state("info.connection", True, ack=True)
    state = await store.get_foreign_state("hass.0.info.connection")
    assert state["val"] is True
    assert state["ack"] is True
    assert isinstance(state["ts"], int)
    assert state["lc"] == state["ts"]

    await store.set_foreign_state("hass.0.x", {"val": 1, "ack": True, "lc": 5, "ts": 6})
    assert await store.get_foreign_state("hass.0.x") == {"val": 1, "ack": True, "lc": 5, "ts": 6}


@pytest.mark.asyncio
async def test_subscribed_writes_are_published(memory_adapter):
    bus = EventBus()
    store = ObjectStore(memory_adapter, "hass.0", bus)
    received = []

    async def handler(event_type, data):
        received.append(data)

    bus.subscribe(STATE_CHANGED_EVENT, handler)

    # до подписки ничего не публикуется
    await store.set_foreign_state("hass.0.entities.light.a.turn_on", "{}", ack=False)
    assert received == []

    store.subscribe_states("*")
    await store.set_foreign_state("hass.0.entities.light.a.turn_on", "{}", ack=False)
    await store.set_foreign_state("other.0.foo", 1)

    assert len(received) == 1
    assert received[0]["id"] == "hass.0.entities.light.a.turn_on"
    assert received[0]["state"]["ack"] is False

    store.unsubscribe_states("*")
    await store.set_foreign_state("hass.0.entities.light.a.turn_on", "{}", ack=False)
    assert len(received) == 1
