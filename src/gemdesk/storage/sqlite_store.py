# src/gemdesk/storage/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import threading
import time
import uuid
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError
from ..core.ports import Record, SnapshotCallback
from .subscriptions import SubscriptionHandle, SubscriptionHub

logger = logging.getLogger(__name__)


class SQLiteRecordStore:
    """
    SQLite-backed RecordStore.

    Records are JSON documents keyed by (collection, id). The schema is
    intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - async writes run in a worker thread; snapshots are published back on
      the caller's event loop after the write commits
    - snapshot reads are numbered under a lock and an older snapshot is never
      delivered after a newer one
    """

    def __init__(self, db_path: str | Path = "gemdesk.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._hub = SubscriptionHub()
        self._snapshot_lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._snapshot_seq = 0
        self._published: dict[str, int] = {}
        self._ensure_schema()
        try:
            total = self.count_records()
        except Exception:
            total = -1
        logger.info("SQLiteRecordStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )

            cur.execute("PRAGMA table_info(records)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE records ADD COLUMN {name} {decl}")
                logger.info("SQLiteRecordStore migration: added column %s", name)

            add_col("data", "TEXT NOT NULL DEFAULT '{}'")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection, created_at)"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _encode(record: Record) -> str:
        return json.dumps({k: v for k, v in record.items() if k != "id"}, ensure_ascii=False)

    @staticmethod
    def _decode(record_id: str, raw: str | None) -> Record:
        try:
            val = json.loads(raw) if raw else {}
        except ValueError:
            logger.warning("Corrupt record data id=%s; treating as empty", record_id)
            val = {}
        if not isinstance(val, dict):
            val = {}
        val["id"] = record_id
        return val

    # ---- sync API (also used from worker threads) ----

    def count_records(self, collection: str | None = None) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if collection is None:
                cur.execute("SELECT COUNT(*) FROM records")
            else:
                cur.execute("SELECT COUNT(*) FROM records WHERE collection = ?", (collection,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def list_records(self, collection: str) -> list[Record]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT id, data
                FROM records
                WHERE collection = ?
                ORDER BY created_at ASC, id ASC
                """,
                (collection,),
            )
            return [self._decode(row["id"], row["data"]) for row in cur.fetchall()]
        finally:
            conn.close()

    def get(self, collection: str, record_id: str) -> Record | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT id, data FROM records WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            row = cur.fetchone()
            return self._decode(row["id"], row["data"]) if row else None
        finally:
            conn.close()

    def _insert(self, collection: str, record: Record) -> str:
        record_id = str(record.get("id") or uuid.uuid4().hex)
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO records(collection, id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (collection, record_id, self._encode(record), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Record created collection=%s id=%s", collection, record_id)
        return record_id

    def _merge(self, collection: str, record_id: str, patch: Record) -> None:
        conn = self._get_conn()
        try:
            # Read-merge-write inside one transaction so the document update is atomic.
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.cursor()
            cur.execute(
                "SELECT data FROM records WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            row = cur.fetchone()
            if row is None:
                conn.rollback()
                raise NotFoundError(collection, str(record_id))

            current = self._decode(str(record_id), row["data"])
            current.update({k: v for k, v in patch.items() if k != "id"})
            cur.execute(
                "UPDATE records SET data = ?, updated_at = ? WHERE collection = ? AND id = ?",
                (self._encode(current), time.time(), collection, str(record_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def _remove(self, collection: str, record_id: str) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM records WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise NotFoundError(collection, str(record_id))
        finally:
            conn.close()
        logger.debug("Record deleted collection=%s id=%s", collection, record_id)

    def _snapshot(self, collection: str) -> tuple[int, list[Record]]:
        with self._snapshot_lock:
            self._snapshot_seq += 1
            return self._snapshot_seq, self.list_records(collection)

    async def _publish(self, collection: str) -> None:
        try:
            seq, records = await asyncio.to_thread(self._snapshot, collection)
        except Exception:
            # The write itself succeeded; subscribers catch up on the next change.
            logger.exception("Snapshot reload failed collection=%s", collection)
            return
        with self._publish_lock:
            if seq <= self._published.get(collection, 0):
                logger.debug("Dropping stale snapshot collection=%s seq=%d", collection, seq)
                return
            self._published[collection] = seq
            self._hub.publish(collection, records)

    # ---- RecordStore ----

    def subscribe(
            self,
            collection: str,
            callback: SnapshotCallback,
            *,
            where: dict[str, Any] | None = None,
    ) -> SubscriptionHandle:
        handle, listener = self._hub.add(collection, callback, where)
        self._hub.deliver(listener, self.list_records(collection))
        return handle

    async def create(self, collection: str, record: Record) -> str:
        record_id = await asyncio.to_thread(self._insert, collection, dict(record))
        await self._publish(collection)
        return record_id

    async def update(self, collection: str, record_id: str, patch: Record) -> None:
        await asyncio.to_thread(self._merge, collection, record_id, dict(patch))
        await self._publish(collection)

    async def delete(self, collection: str, record_id: str) -> None:
        await asyncio.to_thread(self._remove, collection, record_id)
        await self._publish(collection)
