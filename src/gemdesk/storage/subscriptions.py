# src/gemdesk/storage/subscriptions.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..core.ports import Record, SnapshotCallback

logger = logging.getLogger(__name__)


def matches(record: Record, where: dict[str, Any] | None) -> bool:
    if not where:
        return True
    return all(record.get(k) == v for k, v in where.items())


@dataclass(slots=True, eq=False)
class _Listener:
    collection: str
    callback: SnapshotCallback
    where: dict[str, Any] | None
    active: bool = True


class SubscriptionHandle:
    def __init__(self, hub: SubscriptionHub, listener: _Listener) -> None:
        self._hub = hub
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._listener.active

    def cancel(self) -> None:
        self._listener.active = False
        self._hub.discard(self._listener)


class SubscriptionHub:
    """
    Fan-out of collection snapshots to live subscribers.

    A misbehaving callback is logged and skipped; it never blocks delivery to
    the other subscribers or fails the write that triggered the publish.
    """

    def __init__(self) -> None:
        self._listeners: list[_Listener] = []

    def add(
            self,
            collection: str,
            callback: SnapshotCallback,
            where: dict[str, Any] | None,
    ) -> tuple[SubscriptionHandle, _Listener]:
        listener = _Listener(collection=collection, callback=callback, where=dict(where) if where else None)
        self._listeners.append(listener)
        return SubscriptionHandle(self, listener), listener

    def discard(self, listener: _Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def listener_count(self, collection: str | None = None) -> int:
        return sum(1 for lst in self._listeners if collection is None or lst.collection == collection)

    def deliver(self, listener: _Listener, records: list[Record]) -> None:
        if not listener.active:
            return
        view = [dict(r) for r in records if matches(r, listener.where)]
        try:
            listener.callback(view)
        except Exception:
            logger.exception("Snapshot callback failed collection=%s", listener.collection)

    def publish(self, collection: str, records: list[Record]) -> None:
        for listener in list(self._listeners):
            if listener.collection == collection:
                self.deliver(listener, records)
