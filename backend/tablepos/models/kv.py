from __future__ import annotations

from ..extensions import db


class KvEntry(db.Model):
    """
    One key-value record.

    WHY: Every entity (orders, payments, alerts, closings, reference data)
    lives under a "<kind>:<identifier>" key. The key is the only index;
    bulk reads are prefix scans over it.

    DESIGN: version_id is the optimistic-concurrency counter. Conditional
    writes compare it and bump it by one; a mismatch means someone else
    wrote the key since it was read.
    """
    __tablename__ = "kv_entries"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

