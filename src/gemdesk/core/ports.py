# src/gemdesk/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The services depend on Protocols instead of concrete implementations.
This keeps storage/auth swappable and makes testing easier.
"""

from typing import Any, Callable, Protocol

Record = dict[str, Any]
# Plain JSON-compatible dict; always carries "id" when coming out of a store.

SnapshotCallback = Callable[[list[Record]], None]


class Subscription(Protocol):
    """Handle returned by RecordStore.subscribe(); cancel() stops deliveries."""

    def cancel(self) -> None: ...


class RecordStore(Protocol):
    """
    Document-style record store with a push-based live view.

    subscribe():
    - delivers the full current snapshot immediately, then again after every
      change to the collection
    - `where` is an equality filter on top-level fields (e.g. {"gem_id": "g1"})

    Writes are async; update() merges the patch into the stored record and
    raises NotFoundError when the id is unknown.
    """

    def subscribe(
            self,
            collection: str,
            callback: SnapshotCallback,
            *,
            where: dict[str, Any] | None = None,
    ) -> Subscription: ...

    async def create(self, collection: str, record: Record) -> str: ...
    async def update(self, collection: str, record_id: str, patch: Record) -> None: ...
    async def delete(self, collection: str, record_id: str) -> None: ...


class AccountProvisioner(Protocol):
    """
    Auth-side port: create a login for a new gem.

    Returns the account/user id assigned by the auth service.
    """

    async def create_account(self, *, email: str, secret: str) -> str: ...
