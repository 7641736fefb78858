# Overview: Key-value store over the kv_entries table; the persistence layer for every entity.

"""
Key-Value Store

WHY: All records are JSON values under "<kind>:<identifier>" keys. Point
get/set/delete plus prefix scan are the only access paths.

GUARANTEES:
- Every operation is atomic for one key and commits on its own.
- No cross-key transactions. Callers writing several keys must tolerate
  partial completion.
- Conditional writes (insert, compare_and_set) give optimistic concurrency:
  a stale writer gets ConflictError instead of silently overwriting.
- Database failures surface as StorageError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from flask import current_app
from sqlalchemy import delete as sa_delete, insert as sa_insert, select, update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import KvEntry
from ..validation import ConflictError, NotFoundError, PosError, StorageError
from .concurrency import run_with_retry


@dataclass(frozen=True)
class Entry:
    key: str
    value: Any
    version: int
    # Populated on reads; writes return what they wrote
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _execute(op):
    cfg = current_app.config
    try:
        return run_with_retry(
            op,
            attempts=cfg.get("STORE_RETRY_ATTEMPTS", 3),
            backoff_base=cfg.get("STORE_RETRY_BACKOFF", 0.1),
        )
    except PosError:
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Key-value store failure: %s", exc)
        raise StorageError(f"Storage failure ({exc.__class__.__name__})") from exc


def _validate_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("Key must be a non-empty string")


def _to_entry(row) -> Entry:
    return Entry(
        key=row.key,
        value=row.value,
        version=row.version_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _select_entry(key: str) -> Entry | None:
    # Column select bypasses the session identity map, so versions are fresh
    row = db.session.execute(
        select(KvEntry.key, KvEntry.value, KvEntry.version_id, KvEntry.created_at, KvEntry.updated_at)
        .where(KvEntry.key == key)
    ).first()
    if row is None:
        return None
    return _to_entry(row)


# =============================================================================
# READS
# =============================================================================

def get_entry(key: str) -> Entry | None:
    _validate_key(key)
    return _execute(lambda: _select_entry(key))


def get(key: str) -> Any | None:
    entry = get_entry(key)
    return entry.value if entry else None


def get_entries_by_prefix(prefix: str) -> list[Entry]:
    """
    All entries whose key starts with `prefix` ("order:", "payment:", ...).

    '_' and '%' in the prefix match literally.
    """
    _validate_key(prefix)

    def _op():
        rows = db.session.execute(
            select(KvEntry.key, KvEntry.value, KvEntry.version_id, KvEntry.created_at, KvEntry.updated_at)
            .where(KvEntry.key.startswith(prefix, autoescape=True))
            .order_by(KvEntry.key)
        ).all()
        return [_to_entry(r) for r in rows]

    return _execute(_op)


def get_by_prefix(prefix: str) -> list[Any]:
    return [entry.value for entry in get_entries_by_prefix(prefix)]


# =============================================================================
# WRITES
# =============================================================================

def set(key: str, value: Any) -> Entry:
    """Unconditional upsert (last writer wins)."""
    _validate_key(key)

    def _op():
        result = db.session.execute(
            sa_update(KvEntry)
            .where(KvEntry.key == key)
            .values(value=value, version_id=KvEntry.version_id + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            try:
                db.session.execute(sa_insert(KvEntry).values(key=key, value=value, version_id=1))
            except IntegrityError:
                # Lost an insert race; fall back to overwriting the winner
                db.session.rollback()
                db.session.execute(
                    sa_update(KvEntry)
                    .where(KvEntry.key == key)
                    .values(value=value, version_id=KvEntry.version_id + 1)
                    .execution_options(synchronize_session=False)
                )
        db.session.commit()
        return _select_entry(key)

    return _execute(_op)


def insert(key: str, value: Any) -> Entry:
    """Create-only write. Raises ConflictError if the key already exists."""
    _validate_key(key)

    def _op():
        try:
            db.session.execute(sa_insert(KvEntry).values(key=key, value=value, version_id=1))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"Key {key} already exists")
        return Entry(key=key, value=value, version=1)

    return _execute(_op)


def compare_and_set(key: str, value: Any, expected_version: int) -> Entry:
    """
    Replace the value only if the stored version is `expected_version`.

    Raises:
        NotFoundError: key no longer exists
        ConflictError: key was written by someone else since it was read
    """
    _validate_key(key)

    def _op():
        result = db.session.execute(
            sa_update(KvEntry)
            .where(KvEntry.key == key, KvEntry.version_id == expected_version)
            .values(value=value, version_id=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            current = _select_entry(key)
            if current is None:
                raise NotFoundError(f"Key {key} not found")
            raise ConflictError(
                f"{key} was modified concurrently (expected version {expected_version}, found {current.version})"
            )
        db.session.commit()
        return Entry(key=key, value=value, version=expected_version + 1)

    return _execute(_op)


def delete(key: str) -> bool:
    """Remove a key. Returns False if it did not exist."""
    _validate_key(key)

    def _op():
        result = db.session.execute(sa_delete(KvEntry).where(KvEntry.key == key).execution_options(synchronize_session=False))
        db.session.commit()
        return result.rowcount > 0

    return _execute(_op)
