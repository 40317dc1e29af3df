"""
Абстрактный интерфейс для storage адаптеров.

Storage работает по принципу namespace + key + JSON value.
Персистентность предоставляет хост-платформа; ядро транзакций не требует:
каждая операция - отдельный запрос/ответ.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageAdapter(ABC):
    """Абстрактный адаптер для хранения данных."""

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Optional[dict[str, Any]]:
        """
        Получить значение по ключу из namespace.

        Args:
            namespace: пространство имён ("objects" или "states")
            key: ключ записи (полный id объекта)

        Returns:
            JSON-данные или None, если не найдено
        """

    @abstractmethod
    async def set(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        """Сохранить значение по ключу в namespace."""

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> bool:
        """
        Удалить значение по ключу из namespace.

        Returns:
            True если запись была удалена, False если не существовала
        """

    @abstractmethod
    async def list_keys(self, namespace: str) -> list[str]:
        """Получить список всех ключей в namespace."""

    @abstractmethod
    async def close(self) -> None:
        """Закрыть соединение с хранилищем."""
