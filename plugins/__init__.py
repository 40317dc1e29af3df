"""
Плагины runtime.

Базовые классы плагинов (BasePlugin, PluginMetadata).
"""

from .base_plugin import BasePlugin, PluginMetadata

__all__ = [
    "BasePlugin",
    "PluginMetadata",
]
