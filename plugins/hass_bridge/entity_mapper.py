"""
Маппинг сущностей хаба в объекты хранилища хоста.

Для одной сущности строится полный желаемый набор объектов:
- channel (ровно один)
- основной state (если у сущности есть state)
- state_boolean (если state ровно "on"/"off")
- по объекту на каждый атрибут (кроме метаданных)
- по командному объекту на каждый сервис домена сущности

Маппинг чистый: одинаковый вход всегда даёт одинаковый выход, на этом
держится идемпотентность reconciliation.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from .models import (
    MappedObject,
    MappingResult,
    SKIPPED_ATTRIBUTES,
    STATE_BOOLEAN_SUFFIX,
    STATE_SUFFIX,
    StateUpdate,
    object_id,
    to_timestamp_ms,
)
from .roles import (
    KNOWN_ATTRIBUTES,
    infer_attribute_role,
    infer_attribute_unit,
    infer_state_role,
    sanitize_id,
    type_tag,
)

# Административные домены и сервисы, для которых не создаются команды
SKIP_SERVICE_DOMAINS = frozenset({"persistent_notification"})
SKIP_SERVICES = frozenset({"reload"})


def serialize_value(value: Any) -> Any:
    """Структурные значения (dict/list) хранятся как JSON-текст."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return value


def boolean_state(state: Any) -> Optional[bool]:
    """True/False для "on"/"off", иначе None."""
    if state == "on":
        return True
    if state == "off":
        return False
    return None


def entity_domain(entity: Dict[str, Any]) -> str:
    return entity.get("domain") or entity["entity_id"].split(".", 1)[0]


def entity_object_id(entity: Dict[str, Any]) -> Optional[str]:
    if entity.get("object_id"):
        return entity["object_id"]
    parts = entity["entity_id"].split(".", 1)
    return parts[1] if len(parts) == 2 else None


def display_name(entity: Dict[str, Any]) -> str:
    attributes = entity.get("attributes") or {}
    return entity.get("name") or attributes.get("friendly_name") or entity["entity_id"]


def iter_attributes(attributes: Optional[Dict[str, Any]]) -> Iterable[tuple[str, Any]]:
    """Атрибуты, которые становятся объектами (без метаданных и пустых ключей)."""
    for key, value in (attributes or {}).items():
        if not key or key in SKIPPED_ATTRIBUTES:
            continue
        yield key, value


class EntityMapper:
    """Строит желаемые объекты и значения для сущностей хаба."""

    def __init__(self, namespace: str):
        """
        Args:
            namespace: namespace плагина в хранилище, например "hass.0"
        """
        self.namespace = namespace

    def map_entities(self, entities: Iterable[Dict[str, Any]], services: Dict[str, Any]) -> MappingResult:
        """Маппинг всего снимка хаба."""
        result = MappingResult()
        for entity in entities:
            if not entity or not isinstance(entity.get("entity_id"), str):
                continue
            result.extend(self.map_entity(entity, services))
        return result

    def map_entity(self, entity: Dict[str, Any], services: Optional[Dict[str, Any]] = None) -> MappingResult:
        """Маппинг одной сущности."""
        entity_id = entity["entity_id"]
        domain = entity_domain(entity)
        attributes = entity.get("attributes") or {}
        name = display_name(entity)
        native = {
            "object_id": entity_object_id(entity),
            "domain": domain,
            "entity_id": entity_id,
        }
        lc = to_timestamp_ms(entity.get("last_changed"))
        ts = to_timestamp_ms(entity.get("last_updated"))

        # id -> объект: при коллизии id побеждает последний
        objects: Dict[str, MappedObject] = {}
        states = []

        channel: MappedObject = {
            "_id": object_id(self.namespace, entity_id),
            "type": "channel",
            "common": {"name": name},
            "native": {"object_id": native["object_id"], "entity_id": entity_id},
        }
        if attributes.get("attribution"):
            channel["common"]["desc"] = attributes["attribution"]
        objects[channel["_id"]] = channel

        if "state" in entity:
            state = entity["state"]
            unit = attributes.get("unit_of_measurement")
            state_obj: MappedObject = {
                "_id": object_id(self.namespace, entity_id, STATE_SUFFIX),
                "type": "state",
                "common": {
                    "name": f"{name} STATE",
                    "role": infer_state_role(domain, state, unit),
                    "type": type_tag(state),
                    "read": True,
                    "write": False,
                },
                "native": dict(native),
            }
            if unit:
                state_obj["common"]["unit"] = unit
            objects[state_obj["_id"]] = state_obj
            states.append(StateUpdate(state_obj["_id"], serialize_value(state), lc, ts))

            mirror = boolean_state(state)
            if mirror is not None:
                bool_obj: MappedObject = {
                    "_id": object_id(self.namespace, entity_id, STATE_BOOLEAN_SUFFIX),
                    "type": "state",
                    "common": {
                        "name": f"{name} STATE boolean",
                        "role": "switch",
                        "type": "boolean",
                        "read": True,
                        "write": True,
                    },
                    "native": dict(native),
                }
                objects[bool_obj["_id"]] = bool_obj
                states.append(StateUpdate(bool_obj["_id"], mirror, lc, ts))

        for attr, value in iter_attributes(attributes):
            attr_obj = self._attribute_object(entity_id, name, native, attr, value)
            objects[attr_obj["_id"]] = attr_obj
            states.append(StateUpdate(attr_obj["_id"], serialize_value(value), lc, ts))

        for cmd_obj in self._command_objects(entity_id, name, native, domain, services or {}):
            objects[cmd_obj["_id"]] = cmd_obj

        return MappingResult(
            objects=list(objects.values()),
            states=states,
            expected_ids=set(objects.keys()),
        )

    def _attribute_object(self, entity_id: str, name: str, native: Dict[str, Any], attr: str, value: Any) -> MappedObject:
        common: Dict[str, Any] = dict(KNOWN_ATTRIBUTES.get(attr, {}))
        common.setdefault("name", f"{name} {attr.replace('_', ' ')}")
        common.setdefault("role", infer_attribute_role(attr, value))
        common.setdefault("type", type_tag(value))
        common.setdefault("read", True)
        common.setdefault("write", False)
        if "unit" not in common:
            unit = infer_attribute_unit(attr, value)
            if unit:
                common["unit"] = unit

        return {
            "_id": object_id(self.namespace, entity_id, sanitize_id(attr)),
            "type": "state",
            "common": common,
            "native": {**native, "attr": attr},
        }

    def _command_objects(self, entity_id: str, name: str, native: Dict[str, Any], domain: str, services: Dict[str, Any]):
        if domain in SKIP_SERVICE_DOMAINS:
            return
        domain_services = services.get(domain) or {}
        for service_name, service in domain_services.items():
            if service_name in SKIP_SERVICES:
                continue
            service = service or {}
            common: Dict[str, Any] = {
                "name": f"{name} {service_name.replace('_', ' ')}",
                "role": "button",
                "type": "mixed",
                "read": False,
                "write": True,
            }
            if service.get("description"):
                common["desc"] = service["description"]
            yield {
                "_id": object_id(self.namespace, entity_id, service_name),
                "type": "state",
                "common": common,
                "native": {
                    **native,
                    "fields": service.get("fields"),
                    "attr": service_name,
                    "type": domain,
                },
            }
