"""
Вывод роли и единиц измерения для объектов хранилища.

Чистые функции без состояния и I/O. Правила заданы таблицами
(предикат, роль), которые проверяются строго по порядку: первая
сработавшая строка определяет результат.
"""
from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

# Символы, запрещённые хостом в id (всё, кроме букв, цифр и безопасной пунктуации)
FORBIDDEN_CHARS = re.compile(r"[^._\-/ :!#$%&()+=@^{}|~\w]+")
TRAILING_DOTS = re.compile(r"\.+$")

Predicate = Callable[[Any], bool]


def sanitize_id(key: str) -> str:
    """Сделать ключ атрибута пригодным для id объекта."""
    return TRAILING_DOTS.sub("_", FORBIDDEN_CHARS.sub("_", key))


def is_number(value: Any) -> bool:
    # bool - подкласс int, но числом для нас не является
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_numeric_state(value: Any) -> bool:
    """Число или строка, которая парсится в конечное число ("21.5")."""
    if is_number(value):
        return True
    if isinstance(value, str):
        try:
            return math.isfinite(float(value))
        except ValueError:
            return False
    return False


def type_tag(value: Any) -> str:
    """Тип значения в терминах common.type хоста."""
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "mixed"


# --- роль основного state ---------------------------------------------------

DOMAIN_ROLES: Dict[str, str] = {
    "climate": "thermostat",
    "cover": "blind",
    "lock": "state",
}

SENSOR_UNIT_ROLES: List[Tuple[Tuple[str, ...], str]] = [
    (("°C", "°F", "K"), "value.temperature"),
    (("%",), "value.humidity"),
    (("hPa", "mbar", "bar", "Pa", "kPa", "inHg", "mmHg", "psi"), "value.pressure"),
    (("W", "kW"), "value.power"),
    (("V", "mV"), "value.voltage"),
    (("A", "mA"), "value.current"),
    (("km/h", "m/s", "mph", "kn", "kmh"), "value.speed"),
]

STATE_FALLBACK_ROLES: List[Tuple[Predicate, str]] = [
    (lambda s: s in ("on", "off"), "switch"),
    (is_numeric_state, "value"),
    (lambda s: isinstance(s, bool), "indicator"),
]


def infer_sensor_role(state: Any, unit: Optional[str]) -> str:
    if not is_numeric_state(state):
        return "text"
    for units, role in SENSOR_UNIT_ROLES:
        if unit in units:
            return role
    return "value"


def infer_state_role(domain: str, state: Any, unit: Optional[str] = None) -> str:
    """
    Роль основного state объекта сущности.

    Порядок: роль домена -> таблица единиц для sensor -> общий fallback.
    """
    if domain in DOMAIN_ROLES:
        return DOMAIN_ROLES[domain]
    if domain == "sensor":
        return infer_sensor_role(state, unit)
    for predicate, role in STATE_FALLBACK_ROLES:
        if predicate(state):
            return role
    return "state"


# --- роль атрибута ----------------------------------------------------------

# Известные атрибуты с фиксированными role/unit/read/write
KNOWN_ATTRIBUTES: Dict[str, Dict[str, Any]] = {
    "azimuth": {"role": "value.direction", "unit": "°", "read": True, "write": False},
    "elevation": {"role": "value.elevation", "unit": "°", "read": True, "write": False},
    "latitude": {"role": "value.gps.latitude", "unit": "°", "read": True, "write": False},
    "longitude": {"role": "value.gps.longitude", "unit": "°", "read": True, "write": False},
    "gps_accuracy": {"role": "value", "unit": "m", "read": True, "write": False},
}

ATTRIBUTE_NAME_ROLES: List[Tuple[Predicate, str]] = [
    (lambda n: "temperature" in n, "value.temperature"),
    (lambda n: "humidity" in n, "value.humidity"),
    (lambda n: "pressure" in n, "value.pressure"),
    (lambda n: "brightness" in n or "current_position" in n, "level.dimmer"),
    (lambda n: "rgb" in n or n == "xy_color", "level.color.rgb"),
    (lambda n: "color_temp" in n, "level.color.temperature"),
    (lambda n: n.startswith("battery"), "value.battery"),
    (lambda n: "locked" in n, "indicator"),
    (lambda n: n == "volume_level", "level.volume"),
    (lambda n: "position" in n or "speed" in n or "percentage" in n, "level"),
    (lambda n: n == "mode" or n.endswith("_mode"), "text"),
]

ATTRIBUTE_TYPE_ROLES: List[Tuple[Predicate, str]] = [
    (is_number, "value"),
    (lambda v: isinstance(v, bool), "indicator"),
    (lambda v: isinstance(v, str), "text"),
    (lambda v: isinstance(v, (dict, list)), "json"),
]

ATTRIBUTE_NAME_UNITS: List[Tuple[str, str]] = [
    ("temperature", "°C"),
    ("humidity", "%"),
    ("pressure", "hPa"),
    ("degrees", "°"),
]


def infer_attribute_role(name: str, value: Any) -> str:
    """Роль атрибута: по имени, затем по типу значения."""
    lowered = name.lower()
    for predicate, role in ATTRIBUTE_NAME_ROLES:
        if predicate(lowered):
            return role
    for predicate, role in ATTRIBUTE_TYPE_ROLES:
        if predicate(value):
            return role
    return "state"


def infer_attribute_unit(name: str, value: Any) -> Optional[str]:
    """Единица по имени атрибута; только для числовых значений."""
    if not is_number(value):
        return None
    lowered = name.lower()
    for fragment, unit in ATTRIBUTE_NAME_UNITS:
        if fragment in lowered:
            return unit
    return None
