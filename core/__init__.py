"""
Core Runtime - минимальное ядро для plugin-first моста к хабу умного дома.
"""

from .config import Config
from .event_bus import EventBus
from .plugin_manager import PluginManager
from .runtime import CoreRuntime
from .runtime_module import RuntimeModule
from .service_registry import ServiceRegistry
from .storage import ObjectStore
from .logger_helper import info, warning, error
from plugins.base_plugin import BasePlugin, PluginMetadata

__all__ = [
    "Config",
    "CoreRuntime",
    "EventBus",
    "ServiceRegistry",
    "ObjectStore",
    "info",
    "warning",
    "error",
    "PluginManager",
    "RuntimeModule",
    "BasePlugin",
    "PluginMetadata",
]
