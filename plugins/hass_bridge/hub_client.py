"""
Интерфейс клиента хаба.

Транспорт (подключение, авторизация, подписка на события) реализуется
вне ядра. Он обязан:
- реализовать HubClient
- публиковать события хаба в runtime.event_bus:
    hass.connected      {}
    hass.disconnected   {}
    hass.error          {"message": "..."} или {"code": 1..3}
    hass.state_changed  {"entity": {...}}
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

HUB_CONNECTED = "hass.connected"
HUB_DISCONNECTED = "hass.disconnected"
HUB_ERROR = "hass.error"
HUB_STATE_CHANGED = "hass.state_changed"

HUB_ERRORS = {
    1: "ERR_CANNOT_CONNECT",
    2: "ERR_INVALID_AUTH",
    3: "ERR_CONNECTION_LOST",
}


class HubError(RuntimeError):
    """Ошибка запроса к хабу."""


def describe_hub_error(data: Dict[str, Any]) -> str:
    """Текст ошибки из события hass.error."""
    if data.get("message"):
        return str(data["message"])
    code = data.get("code")
    return HUB_ERRORS.get(code, f"Unknown hub error {code!r}")


class HubClient(ABC):
    """Запрос/ответ методы хаба. Ошибки поднимаются как HubError."""

    @abstractmethod
    async def connect(self) -> None:
        """Начать подключение; результат приходит событием hass.connected."""

    @abstractmethod
    async def close(self) -> None:
        """Закрыть соединение."""

    @abstractmethod
    async def get_config(self) -> Dict[str, Any]:
        """Конфигурация хаба."""

    @abstractmethod
    async def get_states(self) -> List[Dict[str, Any]]:
        """Снимок всех сущностей."""

    @abstractmethod
    async def get_services(self) -> Dict[str, Dict[str, Any]]:
        """Каталог сервисов: домен -> имя сервиса -> {description, fields}."""

    @abstractmethod
    async def call_service(
        self,
        service: str,
        domain: str,
        service_data: Dict[str, Any],
        target: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Вызвать сервис хаба."""
