"""
Адаптеры для работы с внешними системами (storage хоста).
"""

from .storage_adapter import StorageAdapter

__all__ = [
    "StorageAdapter",
]
