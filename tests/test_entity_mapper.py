import copy

from conftest import LIGHT, SENSOR, SERVICES
from plugins.hass_bridge.entity_mapper import EntityMapper, serialize_value

NS = "hass.0"
BASE = "hass.0.entities.light.kitchen"


def _by_id(result):
    return {obj["_id"]: obj for obj in result.objects}


def test_map_light_builds_complete_tree():
    result = EntityMapper(NS).map_entity(copy.deepcopy(LIGHT), SERVICES)
    objects = _by_id(result)

    assert set(objects) == {
        BASE,
        f"{BASE}.state",
        f"{BASE}.state_boolean",
        f"{BASE}.brightness",
        f"{BASE}.rgb_color",
        f"{BASE}.turn_on",
        f"{BASE}.turn_off",
    }
    assert result.expected_ids == set(objects)

    channel = objects[BASE]
    assert channel["type"] == "channel"
    assert channel["common"]["name"] == "Kitchen"
    assert channel["native"] == {"object_id": "kitchen", "entity_id": "light.kitchen"}

    state = objects[f"{BASE}.state"]
    assert state["common"]["role"] == "switch"
    assert state["common"]["write"] is False
    assert state["native"]["domain"] == "light"

    mirror = objects[f"{BASE}.state_boolean"]
    assert mirror["common"]["role"] == "switch"
    assert mirror["common"]["type"] == "boolean"
    assert mirror["common"]["write"] is True

    brightness = objects[f"{BASE}.brightness"]
    assert brightness["common"]["role"] == "level.dimmer"
    assert brightness["native"]["attr"] == "brightness"


def test_map_light_values():
    result = EntityMapper(NS).map_entity(copy.deepcopy(LIGHT), SERVICES)
    values = {u.id: u for u in result.states}

    assert values[f"{BASE}.state"].val == "on"
    assert values[f"{BASE}.state_boolean"].val is True
    assert values[f"{BASE}.brightness"].val == 128
    assert values[f"{BASE}.rgb_color"].val == "[255, 0, 0]"
    # ack=True, lc/ts из ISO-времени хаба
    assert values[f"{BASE}.state"].ack is True
    assert values[f"{BASE}.state"].lc == 1704103200000
    assert values[f"{BASE}.state"].ts == 1704103205000
    # команды значений не получают
    assert f"{BASE}.turn_on" not in values


def test_command_objects_follow_service_catalog():
    result = EntityMapper(NS).map_entity(copy.deepcopy(LIGHT), SERVICES)
    turn_on = _by_id(result)[f"{BASE}.turn_on"]

    assert turn_on["common"]["role"] == "button"
    assert turn_on["common"]["read"] is False
    assert turn_on["common"]["write"] is True
    assert turn_on["common"]["desc"] == "Turn a light on"
    assert turn_on["native"]["attr"] == "turn_on"
    assert turn_on["native"]["type"] == "light"
    assert set(turn_on["native"]["fields"]) == {"brightness", "transition"}
    assert f"{BASE}.reload" not in _by_id(result)


def test_non_boolean_state_has_no_mirror():
    sensor = copy.deepcopy(SENSOR)
    result = EntityMapper(NS).map_entity(sensor, SERVICES)
    objects = _by_id(result)

    assert "hass.0.entities.sensor.outside.state_boolean" not in objects
    state = objects["hass.0.entities.sensor.outside.state"]
    assert state["common"]["role"] == "value.temperature"
    assert state["common"]["unit"] == "°C"
    # unit_of_measurement и friendly_name - метаданные, не объекты
    assert "hass.0.entities.sensor.outside.unit_of_measurement" not in objects


def test_administrative_domain_gets_no_commands():
    entity = {"entity_id": "persistent_notification.config", "state": "notifying", "attributes": {}}
    result = EntityMapper(NS).map_entity(entity, SERVICES)
    assert all(not obj["_id"].endswith(".dismiss") for obj in result.objects)


def test_attribute_key_is_sanitized():
    entity = {"entity_id": "sensor.odd", "state": "1", "attributes": {"foo*bar": 5}}
    objects = _by_id(EntityMapper(NS).map_entity(entity, {}))

    obj = objects["hass.0.entities.sensor.odd.foo_bar"]
    assert obj["native"]["attr"] == "foo*bar"


def test_id_collision_last_object_wins():
    # атрибут с именем сервиса: командный объект строится позже и побеждает
    entity = {"entity_id": "input_number.level", "state": "3", "attributes": {"set_value": 7}}
    result = EntityMapper(NS).map_entity(entity, SERVICES)
    objects = _by_id(result)

    obj_id = "hass.0.entities.input_number.level.set_value"
    assert [o["_id"] for o in result.objects].count(obj_id) == 1
    assert objects[obj_id]["common"]["role"] == "button"


def test_mapping_is_deterministic_and_skips_invalid_entities():
    mapper = EntityMapper(NS)
    entities = [copy.deepcopy(LIGHT), {"state": "on"}, None, copy.deepcopy(SENSOR)]

    first = mapper.map_entities(entities, SERVICES)
    second = mapper.map_entities(copy.deepcopy(entities), SERVICES)

    assert first.objects == second.objects
    assert [u.id for u in first.states] == [u.id for u in second.states]
    assert {o["native"]["entity_id"] for o in first.objects} == {"light.kitchen", "sensor.outside"}


def test_serialize_value_is_stable():
    assert serialize_value({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
    assert serialize_value("x") == "x"
    assert serialize_value(None) is None
