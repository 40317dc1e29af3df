"""
Reconciler - приведение дерева объектов хранилища к желаемому набору.

Проход reconciliation:
1. удалить известные объекты под `<ns>.entities.`, которых нет в желаемом наборе
2. по каждой сущности: новые объекты, затем изменённые (native отличается)
3. неизменённые объекты хранилище не трогают

Всё строго последовательно: в хранилище в каждый момент не больше одного
запроса, между единицами работы управление отдаётся циклу событий.
"""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Callable, Dict, List, Optional

from .log import plugin_log, record_metric
from .models import MappedObject, MappingResult, ReconcileStats, entities_root
from .shadow_tree import ShadowTree


class Reconciler:
    """Синхронизирует дерево объектов хранилища с результатом маппинга."""

    def __init__(
        self,
        runtime: Any,
        plugin_name: str,
        shadow: ShadowTree,
        is_stopped: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            runtime: экземпляр CoreRuntime (store, service_registry)
            plugin_name: имя плагина для логирования
            shadow: теневое дерево, которым владеет плагин
            is_stopped: флаг остановки; проверяется перед каждым запросом к хранилищу
        """
        self.runtime = runtime
        self.plugin_name = plugin_name
        self.shadow = shadow
        self._is_stopped = is_stopped or (lambda: False)

    @property
    def store(self):
        return self.runtime.store

    async def reconcile(self, desired: MappingResult) -> ReconcileStats:
        """Выполнить один проход reconciliation и вернуть счётчики."""
        stats = ReconcileStats()

        await self._delete_stale(desired, stats)
        await self._apply_desired(desired.objects, stats)

        if stats.changed:
            await plugin_log(
                self.runtime, self.plugin_name, "info",
                f"Synchronization completed: {stats.summary()}",
            )
        await record_metric(
            self.runtime, "reconcile",
            created=stats.created, updated=stats.updated, deleted=stats.deleted,
            shadow_size=len(self.shadow),
        )
        return stats

    def _group_by_entity(self, ids: List[str]) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for obj_id in ids:
            entity_id = self.shadow.entity_of(obj_id) or ""
            grouped.setdefault(entity_id, []).append(obj_id)
        return grouped

    async def _delete_stale(self, desired: MappingResult, stats: ReconcileStats) -> None:
        prefix = entities_root(self.shadow.namespace)
        stale = [
            obj_id for obj_id in self.shadow.ids_with_prefix(prefix)
            if obj_id not in desired.expected_ids
        ]
        if not stale:
            return

        for entity_id, ids in self._group_by_entity(stale).items():
            for obj_id in ids:
                if self._is_stopped():
                    return
                try:
                    await self.store.del_object(obj_id)
                except Exception as e:
                    await plugin_log(
                        self.runtime, self.plugin_name, "error",
                        f"Error deleting object {obj_id}: {e}",
                    )
                    continue
                self.shadow.remove(obj_id)
                stats.deleted += 1
            await asyncio.sleep(0)

    async def _apply_desired(self, objects: List[MappedObject], stats: ReconcileStats) -> None:
        grouped: Dict[str, Dict[str, List[MappedObject]]] = {}
        for obj in objects:
            entity_id = obj["native"]["entity_id"]
            bucket = grouped.setdefault(entity_id, {"new": [], "updated": []})
            known = self.shadow.get(obj["_id"])
            if known is None:
                bucket["new"].append(obj)
            elif known.get("native") != obj["native"]:
                bucket["updated"].append(obj)

        for entity_id, bucket in grouped.items():
            for obj in bucket["new"] + bucket["updated"]:
                if self._is_stopped():
                    return
                await self._commit(obj, stats)
            await asyncio.sleep(0)

    async def _commit(self, obj: MappedObject, stats: ReconcileStats) -> None:
        """Read-before-write одного объекта."""
        obj_id = obj["_id"]
        try:
            existing = await self.store.get_foreign_object(obj_id)
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot read object {obj_id}: {e}")
            return

        if existing is None:
            try:
                await self.store.set_foreign_object(obj_id, obj)
            except Exception as e:
                await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot create object {obj_id}: {e}")
                return
            await plugin_log(self.runtime, self.plugin_name, "debug", f'Create "{obj_id}"', common=str(obj["common"]))
            self.shadow.put(obj)
            stats.created += 1
            return

        if existing.get("native") == obj["native"]:
            # узел уже такой, как нужно (например, после рестарта процесса)
            self.shadow.put(existing)
            return

        # common хранилища сохраняем: его могли поменять другие локальные акторы
        merged = dict(existing)
        merged["native"] = copy.deepcopy(obj["native"])
        try:
            await self.store.set_foreign_object(obj_id, merged)
        except Exception as e:
            await plugin_log(self.runtime, self.plugin_name, "error", f"Cannot update object {obj_id}: {e}")
            return
        await plugin_log(self.runtime, self.plugin_name, "debug", f'Update "{obj_id}"')
        self.shadow.put(merged)
        stats.updated += 1
