# Overview: Typed repositories over the key-value store, one per entity kind.

"""
Entity Repository

WHY: Centralizes the "<kind>:<identifier>" key convention, identifier
generation, and createdAt/updatedAt/updatedBy stamping so services never
build keys or timestamps by hand.

DESIGN:
- A record's `id` IS its store key ("order:17000000000000000a1b2c3d4").
- Records returned from the repository carry `version`, the store's
  optimistic-concurrency counter. It is stripped before every write.
- update() is read -> NotFound check -> shallow merge -> re-stamp ->
  compare-and-set against the version just read (or a caller-supplied
  expected_version). A concurrent writer in between yields ConflictError.
"""

from __future__ import annotations

import secrets
import threading
import time

from tablepos.time_utils import now_z
from ..validation import ConflictError, NotFoundError, ValidationError
from . import kv_store
from .kv_store import Entry


# Fields the repository owns; callers cannot overwrite them through update()
SERVER_FIELDS = ("id", "version", "createdAt", "createdBy")


class IdentifierGenerator:
    """
    Time-ordered identifiers: 13-digit epoch ms + 4-digit sequence + 8 hex.

    Lexicographic order follows creation order within a process. The
    sequence disambiguates same-millisecond calls and the random suffix
    makes cross-process collisions negligible. The clock never runs
    backwards from the generator's point of view.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_ms = 0
        self._sequence = 0

    def next(self) -> str:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms <= self._last_ms:
                now_ms = self._last_ms
                self._sequence += 1
                if self._sequence > 9999:
                    now_ms += 1
                    self._sequence = 0
            else:
                self._sequence = 0
            self._last_ms = now_ms
            sequence = self._sequence
        return f"{now_ms:013d}{sequence:04d}{secrets.token_hex(4)}"


_identifiers = IdentifierGenerator()


def new_identifier() -> str:
    return _identifiers.next()


def _record(entry: Entry) -> dict:
    record = dict(entry.value)
    record["version"] = entry.version
    return record


def _strip(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k != "version"}


class EntityRepository:
    """Key construction and stamping for one entity kind."""

    def __init__(self, kind: str, label: str | None = None):
        self.kind = kind
        self.prefix = f"{kind}:"
        self.label = label or kind.replace("_", " ").capitalize()

    def key_for(self, record_id: str) -> str:
        """Accept a bare identifier or a full key."""
        if not isinstance(record_id, str) or not record_id:
            raise ValidationError(f"{self.label} id is required")
        if record_id.startswith(self.prefix):
            return record_id
        return f"{self.prefix}{record_id}"

    def get(self, record_id: str) -> dict | None:
        entry = kv_store.get_entry(self.key_for(record_id))
        return _record(entry) if entry else None

    def require(self, record_id: str) -> dict:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(f"{self.label} {record_id} not found")
        return record

    def list(self) -> list[dict]:
        return [_record(e) for e in kv_store.get_entries_by_prefix(self.prefix)]

    def exists_any(self) -> bool:
        return bool(kv_store.get_entries_by_prefix(self.prefix))

    def create(self, fields: dict, *, actor: str | None = None, identifier: str | None = None) -> dict:
        """
        Persist a new record under a fresh key.

        Raises ConflictError if the key is already taken (identifier
        collision or a fixed identifier that was seeded before).
        """
        key = self.key_for(identifier or new_identifier())
        record = _strip(fields)
        record["id"] = key
        record["createdAt"] = now_z()
        if actor is not None:
            record["createdBy"] = actor
        return _record(kv_store.insert(key, record))

    def update(
        self,
        record_id: str,
        fields: dict,
        *,
        actor: str | None = None,
        expected_version: int | None = None,
    ) -> dict:
        key = self.key_for(record_id)
        entry = kv_store.get_entry(key)
        if entry is None:
            raise NotFoundError(f"{self.label} {record_id} not found")

        supplied_id = fields.get("id")
        if supplied_id is not None and supplied_id != key:
            raise ValidationError(f"{self.label} id cannot be changed")

        if expected_version is not None and expected_version != entry.version:
            raise ConflictError(
                f"{self.label} {key} changed since it was read "
                f"(expected version {expected_version}, found {entry.version})"
            )

        merged = dict(entry.value)
        merged.update({k: v for k, v in fields.items() if k not in SERVER_FIELDS})
        merged["id"] = key
        merged["updatedAt"] = now_z()
        if actor is not None:
            merged["updatedBy"] = actor

        return _record(kv_store.compare_and_set(key, merged, entry.version))

    def delete(self, record_id: str) -> None:
        key = self.key_for(record_id)
        if not kv_store.delete(key):
            raise NotFoundError(f"{self.label} {record_id} not found")


orders = EntityRepository("order", "Order")
payments = EntityRepository("payment", "Payment")
tables = EntityRepository("table", "Table")
products = EntityRepository("product", "Product")
alerts = EntityRepository("alert", "Alert")
cash_closings = EntityRepository("cash_closing", "Cash closing")
user_profiles = EntityRepository("user_profile", "User")
