# gts/local_store.py
"""Durable key/value store holding the canonical local copies.

Each collection ("users", "parcels") is one JSON array under one key;
scalar state (the reference counter, per-driver profiles) sits under its own
key. Storage failures are logged and never raised: reads fall back to an
empty result and writes report False.

Writes are serialized by one lock per store, shared by request workers and
the auto-sync thread; SQLite ignores FOR UPDATE.
"""
import json
import logging
import threading

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db import LocalBase, init_db, make_engine, make_session_factory
from .models import KeyValue

logger = logging.getLogger(__name__)

USERS = "users"
PARCELS = "parcels"
COUNTER = "parcel_counter"


def driver_profile_key(driver_id: str) -> str:
    return f"driver_profile_id_{driver_id}"


def _put(db, key: str, row, payload: str):
    if row is None:
        db.add(KeyValue(key=key, value=payload))
    else:
        row.value = payload


class LocalStore:

    def __init__(self, url: str):
        self.url = url
        self.engine = make_engine(url)
        self.SessionLocal = make_session_factory(self.engine)
        self._write_lock = threading.Lock()
        try:
            init_db(self.engine, LocalBase)
        except SQLAlchemyError:
            logger.error("Local store schema could not be created at %s", url, exc_info=True)

    def _locked_row(self, db, key: str):
        return (db.query(KeyValue)
                .filter(KeyValue.key == key)
                .with_for_update()
                .one_or_none())

    def _write(self, what: str, fn, failed=False):
        """Run fn(db) in one serialized transaction and return its result.

        A first insert that loses a race with another writer (another store
        on the same file) is retried once against the now existing row.
        """
        with self._write_lock:
            for attempt in range(2):
                db = None
                try:
                    db = self.SessionLocal()
                    with db.begin():
                        result = fn(db)
                    return result
                except IntegrityError:
                    if attempt:
                        logger.error("Error %s: key created concurrently", what, exc_info=True)
                        return failed
                    logger.warning("Concurrent insert while %s - retrying", what)
                except (SQLAlchemyError, TypeError, ValueError):
                    logger.error("Error %s", what, exc_info=True)
                    return failed
                finally:
                    if db is not None:
                        db.close()
        return failed

    # ---------------------------
    # raw key access
    # ---------------------------
    def read_value(self, key: str, default=None):
        db = None
        try:
            db = self.SessionLocal()
            row = db.get(KeyValue, key)
            if row is None:
                return default
            return json.loads(row.value)
        except (SQLAlchemyError, ValueError):
            logger.error("Error reading %r from local store", key, exc_info=True)
            return default
        finally:
            if db is not None:
                db.close()

    def write_value(self, key: str, value) -> bool:
        def op(db):
            payload = json.dumps(value, ensure_ascii=False)
            _put(db, key, db.get(KeyValue, key), payload)
            return True
        return self._write(f"writing {key!r} to local store", op)

    def increment(self, key: str, start: int = 0) -> int | None:
        """Atomically bump an integer counter and return the new value.

        A missing counter is treated as holding ``start``. Returns None if the
        new value could not be persisted.
        """
        def op(db):
            row = self._locked_row(db, key)
            value = start + 1 if row is None else int(json.loads(row.value)) + 1
            _put(db, key, row, json.dumps(value))
            return value
        return self._write(f"incrementing counter {key!r}", op, failed=None)

    # ---------------------------
    # collections
    # ---------------------------
    def read_all(self, collection: str) -> list[dict]:
        records = self.read_value(collection, default=[])
        if not isinstance(records, list):
            logger.error("Local collection %r is corrupt (expected a list)", collection)
            return []
        return records

    def write_all(self, collection: str, records: list[dict]) -> bool:
        """Replace the whole collection."""
        return self.write_value(collection, list(records))

    def find_by_field(self, collection: str, field: str, value) -> list[dict]:
        return [r for r in self.read_all(collection) if r.get(field) == value]

    def find_one(self, collection: str, field: str, value) -> dict | None:
        for record in self.read_all(collection):
            if record.get(field) == value:
                return record
        return None

    def upsert(self, collection: str, record: dict, key: str = "id") -> bool:
        """Insert or replace one record, matched on ``key``.

        The read and the write happen in one serialized transaction, so two
        upserts on the same collection cannot drop each other's record.
        """
        def op(db):
            row = self._locked_row(db, collection)
            records = json.loads(row.value) if row is not None else []
            if not isinstance(records, list):
                logger.error("Local collection %r is corrupt; rebuilding it", collection)
                records = []
            for index, existing in enumerate(records):
                if existing.get(key) == record.get(key):
                    records[index] = record
                    break
            else:
                records.append(record)
            _put(db, collection, row, json.dumps(records, ensure_ascii=False))
            return True
        return self._write(f"upserting into {collection!r}", op)
