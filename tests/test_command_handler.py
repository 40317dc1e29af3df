"""
Тесты для CommandHandler: локальная запись (ack=False) -> вызов сервиса хаба.
"""

import copy

import pytest

from conftest import LIGHT, SERVICES, FakeHub
from plugins.hass_bridge.command_handler import (
    CommandHandler,
    build_service_data,
    parse_request_fields,
    to_bool,
)
from plugins.hass_bridge.entity_mapper import EntityMapper
from plugins.hass_bridge.reconciler import Reconciler
from plugins.hass_bridge.shadow_tree import ShadowTree

BASE = "hass.0.entities.light.kitchen"
NUMBER = {"entity_id": "input_number.level", "state": "3", "attributes": {}}


async def _handler(runtime, hub, connected=True):
    shadow = ShadowTree("hass.0")
    desired = EntityMapper("hass.0").map_entities([copy.deepcopy(LIGHT), copy.deepcopy(NUMBER)], SERVICES)
    await Reconciler(runtime, "hass_bridge", shadow).reconcile(desired)
    return CommandHandler(runtime, "hass_bridge", shadow, hub, lambda: connected)


def test_parse_request_fields():
    assert parse_request_fields('{"brightness": 128}') == ({"brightness": 128}, None)
    assert parse_request_fields("42") == ({}, None)
    assert parse_request_fields(42) == ({}, None)
    fields, error = parse_request_fields("{broken}")
    assert fields == {}
    assert error


def test_build_service_data_single_field_shortcut():
    assert build_service_data({"value": {}}, 42, {}) == {"value": 42}
    assert build_service_data({"entity_id": {}, "value": {}}, 42, {}) == {"value": 42}
    assert build_service_data({"a": {}, "b": {}}, 42, {}) == {}
    assert build_service_data({"a": {}, "b": {}}, None, {"a": 1, "c": 2}) == {"a": 1}
    assert build_service_data(None, 42, {"a": 1}) == {}


def test_to_bool():
    assert to_bool(True) is True
    assert to_bool(0) is False
    assert to_bool("on") is True
    assert to_bool("false") is False
    assert to_bool("maybe") is None


@pytest.mark.asyncio
async def test_json_payload_becomes_service_call(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    called = await handler.handle_state_change(
        f"{BASE}.turn_on", {"val": ' {"brightness": 128} ', "ack": False},
    )

    assert called is True
    assert hub.calls == [(
        "turn_on",
        "light",
        {"brightness": 128, "entity_id": "light.kitchen"},
        {"entity_id": "light.kitchen"},
    )]


@pytest.mark.asyncio
async def test_plain_value_fills_single_field(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    await handler.handle_state_change("hass.0.entities.input_number.level.set_value", {"val": 42, "ack": False})

    service, domain, data, _ = hub.calls[0]
    assert (service, domain) == ("set_value", "input_number")
    assert data == {"value": 42, "entity_id": "input_number.level"}


@pytest.mark.asyncio
async def test_invalid_json_sends_entity_only(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    await handler.handle_state_change(f"{BASE}.turn_on", {"val": "{brightness: 1}", "ack": False})

    assert hub.calls[0][2] == {"entity_id": "light.kitchen"}


@pytest.mark.asyncio
async def test_boolean_mirror_switches_entity(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    await handler.handle_state_change(f"{BASE}.state_boolean", {"val": False, "ack": False})
    await handler.handle_state_change(f"{BASE}.state_boolean", {"val": True, "ack": False})

    assert [(c[0], c[1], c[2]) for c in hub.calls] == [
        ("turn_off", "light", {"entity_id": "light.kitchen"}),
        ("turn_on", "light", {"entity_id": "light.kitchen"}),
    ]


@pytest.mark.asyncio
async def test_acknowledged_write_is_not_a_command(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    assert await handler.handle_state_change(f"{BASE}.turn_on", {"val": "{}", "ack": True}) is False
    assert await handler.handle_state_change(f"{BASE}.turn_on", None) is False
    assert hub.calls == []


@pytest.mark.asyncio
async def test_not_connected_rejects_command(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub, connected=False)

    assert await handler.handle_state_change(f"{BASE}.turn_on", {"val": "{}", "ack": False}) is False
    assert hub.calls == []


@pytest.mark.asyncio
async def test_unknown_and_readonly_objects_are_rejected(runtime):
    hub = FakeHub()
    handler = await _handler(runtime, hub)

    assert await handler.handle_state_change("hass.0.entities.light.nope.turn_on", {"val": 1, "ack": False}) is False
    assert await handler.handle_state_change(f"{BASE}.state", {"val": "off", "ack": False}) is False
    assert hub.calls == []


@pytest.mark.asyncio
async def test_hub_error_is_logged_not_raised(runtime):
    hub = FakeHub()
    hub.fail_calls = True
    handler = await _handler(runtime, hub)

    called = await handler.handle_state_change(f"{BASE}.turn_on", {"val": "7", "ack": False})

    assert called is True
    assert len(hub.calls) == 1
