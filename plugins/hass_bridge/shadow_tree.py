"""
Теневое дерево - локальная копия объектов, которые считаются существующими
в хранилище хоста.

Единственный источник ответа на вопрос "есть ли уже такой узел": по нему
решается create/update/no-op, что удалять и можно ли писать в объект.
"""
from __future__ import annotations

import copy
from typing import Dict, Iterator, List, Optional

from .models import MappedObject, entity_id_from_object_id


class ShadowTree:
    """id -> последняя известная версия объекта (глубокая копия)."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        self._objects: Dict[str, MappedObject] = {}

    def __contains__(self, obj_id: object) -> bool:
        return obj_id in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._objects))

    def get(self, obj_id: str) -> Optional[MappedObject]:
        return self._objects.get(obj_id)

    def put(self, obj: MappedObject) -> None:
        # копия: изменения снаружи не должны менять то, что "знает" дерево
        self._objects[obj["_id"]] = copy.deepcopy(obj)

    def remove(self, obj_id: str) -> None:
        self._objects.pop(obj_id, None)

    def clear(self) -> None:
        self._objects.clear()

    def ids_with_prefix(self, prefix: str) -> List[str]:
        return [obj_id for obj_id in self._objects if obj_id.startswith(prefix)]

    def entity_of(self, obj_id: str) -> Optional[str]:
        """entity_id владельца: из native, либо из самого id."""
        obj = self._objects.get(obj_id)
        native = (obj or {}).get("native") or {}
        return native.get("entity_id") or entity_id_from_object_id(self.namespace, obj_id)

    def is_writable(self, obj_id: str) -> bool:
        obj = self._objects.get(obj_id)
        return bool(obj and (obj.get("common") or {}).get("write"))
