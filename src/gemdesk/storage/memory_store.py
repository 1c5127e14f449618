# src/gemdesk/storage/memory_store.py

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any

from ..core.errors import NotFoundError
from ..core.ports import Record, SnapshotCallback
from .subscriptions import SubscriptionHandle, SubscriptionHub

logger = logging.getLogger(__name__)


class MemoryRecordStore:
    """
    In-process RecordStore.

    Used for demos and tests. Writes are applied immediately and every
    subscriber of the collection receives the new snapshot before the write
    returns.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Record]] = {}
        self._hub = SubscriptionHub()

    def _snapshot(self, collection: str) -> list[Record]:
        return [copy.deepcopy(r) for r in self._data.get(collection, {}).values()]

    def _publish(self, collection: str) -> None:
        self._hub.publish(collection, self._snapshot(collection))

    # ---- RecordStore ----

    def subscribe(
            self,
            collection: str,
            callback: SnapshotCallback,
            *,
            where: dict[str, Any] | None = None,
    ) -> SubscriptionHandle:
        handle, listener = self._hub.add(collection, callback, where)
        self._hub.deliver(listener, self._snapshot(collection))
        return handle

    async def create(self, collection: str, record: Record) -> str:
        record_id = str(record.get("id") or uuid.uuid4().hex)
        stored = copy.deepcopy(record)
        stored["id"] = record_id
        self._data.setdefault(collection, {})[record_id] = stored
        logger.debug("Record created collection=%s id=%s", collection, record_id)
        self._publish(collection)
        return record_id

    async def update(self, collection: str, record_id: str, patch: Record) -> None:
        current = self._data.get(collection, {}).get(record_id)
        if current is None:
            raise NotFoundError(collection, record_id)
        current.update(copy.deepcopy({k: v for k, v in patch.items() if k != "id"}))
        self._publish(collection)

    async def delete(self, collection: str, record_id: str) -> None:
        if self._data.get(collection, {}).pop(record_id, None) is None:
            raise NotFoundError(collection, record_id)
        logger.debug("Record deleted collection=%s id=%s", collection, record_id)
        self._publish(collection)

    # ---- helpers ----

    def get(self, collection: str, record_id: str) -> Record | None:
        rec = self._data.get(collection, {}).get(record_id)
        return copy.deepcopy(rec) if rec is not None else None

    def count(self, collection: str) -> int:
        return len(self._data.get(collection, {}))
