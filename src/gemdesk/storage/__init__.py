"""
Record stores behind the RecordStore port.

- memory_store.py: in-process store (tests, demos)
- sqlite_store.py: SQLite-backed store with JSON documents
- subscriptions.py: snapshot fan-out shared by both
"""
