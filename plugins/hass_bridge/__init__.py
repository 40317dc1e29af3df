"""
Плагин моста к хабу автоматизации.

Экспортирует HassBridgePlugin и интерфейс HubClient для транспорта.
"""

from .hub_client import HubClient, HubError
from .plugin import HassBridgePlugin

__all__ = ["HassBridgePlugin", "HubClient", "HubError"]
