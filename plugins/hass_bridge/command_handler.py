"""
Модуль для обработки локальных команд: запись с ack=False в объект
хранилища превращается в вызов сервиса хаба.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, Optional

from .hub_client import HubClient
from .log import plugin_log, record_metric
from .models import STATE_BOOLEAN_SUFFIX
from .shadow_tree import ShadowTree


def to_bool(value: Any) -> Optional[bool]:
    """Значение записи в state_boolean -> True/False (None если не распознано)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "on"):
            return True
        if lowered in ("false", "0", "off"):
            return False
    return None


def parse_request_fields(raw: Any) -> tuple[Dict[str, Any], Optional[str]]:
    """
    Разобрать JSON-объект из строкового значения.

    Returns:
        (поля, текст ошибки разбора или None)
    """
    if not isinstance(raw, str):
        return {}, None
    text = raw.strip()
    if not (text.startswith("{") and text.endswith("}")):
        return {}, None
    try:
        parsed = json.loads(text)
    except ValueError as e:
        return {}, str(e)
    return (parsed if isinstance(parsed, dict) else {}), None


def build_service_data(fields: Optional[Dict[str, Any]], raw: Any, request_fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Собрать данные вызова по схеме полей сервиса (без entity_id).

    Если JSON не передан, а у сервиса ровно одно "настоящее" поле,
    значение записи целиком уходит в это поле.
    """
    if not fields:
        return {}

    request_fields = dict(request_fields)
    if not request_fields:
        names = list(fields)
        if len(names) == 1 and names[0] != "entity_id":
            request_fields[names[0]] = raw
        elif len(names) == 2 and "entity_id" in fields:
            other = names[1] if names[0] == "entity_id" else names[0]
            request_fields[other] = raw

    return {
        name: request_fields[name]
        for name in fields
        if name != "entity_id" and name in request_fields
    }


class CommandHandler:
    """Класс для обработки команд управления сущностями хаба."""

    def __init__(
        self,
        runtime: Any,
        plugin_name: str,
        shadow: ShadowTree,
        hub: HubClient,
        is_connected: Callable[[], bool],
    ):
        """
        Args:
            runtime: экземпляр CoreRuntime
            plugin_name: имя плагина для логирования
            shadow: теневое дерево (проверка существования и записываемости)
            hub: клиент хаба
            is_connected: текущее состояние подключения к хабу
        """
        self.runtime = runtime
        self.plugin_name = plugin_name
        self.shadow = shadow
        self.hub = hub
        self._is_connected = is_connected

    async def handle_state_change(self, obj_id: str, state: Optional[Dict[str, Any]]) -> bool:
        """
        Обработать изменение значения в хранилище.

        Returns:
            True если был выполнен вызов сервиса хаба
        """
        # ack=True - это подтверждённое значение, а не команда
        if not state or state.get("ack") is not False:
            return False

        if not self._is_connected():
            await plugin_log(
                self.runtime, self.plugin_name, "warning",
                f'Cannot send command to "{obj_id}", because not connected',
            )
            return False

        obj = self.shadow.get(obj_id)
        if obj is None:
            return False
        if not self.shadow.is_writable(obj_id):
            await plugin_log(self.runtime, self.plugin_name, "warning", f"Object {obj_id} is not writable!")
            return False

        native = obj.get("native") or {}
        entity_id = native.get("entity_id")
        domain = native.get("domain") or native.get("type")

        if obj_id.endswith(f".{STATE_BOOLEAN_SUFFIX}"):
            return await self._switch(obj_id, domain, entity_id, state.get("val"))

        service = native.get("attr")
        if not service or not domain:
            await plugin_log(self.runtime, self.plugin_name, "warning", f"Object {obj_id} has no service mapping")
            return False

        raw = state.get("val")
        if isinstance(raw, str):
            raw = raw.strip()
        request_fields, parse_error = parse_request_fields(raw)
        if parse_error:
            await plugin_log(
                self.runtime, self.plugin_name, "info",
                f"Ignore data for service call {obj_id} is no valid JSON: {parse_error}",
            )

        fields = native.get("fields")
        service_data = build_service_data(fields, raw, request_fields)
        no_fields = not service_data
        service_data["entity_id"] = entity_id

        await plugin_log(
            self.runtime, self.plugin_name, "debug",
            f"Send to hub service {service} with {domain} and data {json.dumps(service_data, default=str)}",
        )
        return await self._call(obj_id, service, domain, service_data, fields, no_fields)

    async def _switch(self, obj_id: str, domain: Optional[str], entity_id: Optional[str], value: Any) -> bool:
        on = to_bool(value)
        if on is None or not domain:
            await plugin_log(
                self.runtime, self.plugin_name, "warning",
                f"Cannot switch {obj_id}: unsupported value {value!r}",
            )
            return False
        service = "turn_on" if on else "turn_off"
        return await self._call(obj_id, service, domain, {"entity_id": entity_id}, None, False)

    async def _call(
        self,
        obj_id: str,
        service: str,
        domain: str,
        service_data: Dict[str, Any],
        fields: Optional[Dict[str, Any]],
        no_fields: bool,
    ) -> bool:
        target = {"entity_id": service_data["entity_id"]}
        try:
            await self.hub.call_service(service, domain, service_data, target)
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot control {obj_id}: {e}")
            if fields and no_fields:
                await plugin_log(
                    self.runtime, self.plugin_name, "warning",
                    "Please make sure to provide a stringified JSON as value to set relevant fields!",
                )
                await plugin_log(
                    self.runtime, self.plugin_name, "warning",
                    f"Allowed field keys are: {', '.join(fields)}",
                )
            await record_metric(self.runtime, "command", status="error")
            return True
        await record_metric(self.runtime, "command", status="ok")
        return True
