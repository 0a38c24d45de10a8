"""
SQLAlchemy ORM models for database tables.

The scan pipeline keeps exactly two kinds of durable state:

Models:
    base: Declarative base, the ``Source`` enum and the sweep order
    ingested_record: One row per (source, external_id), latest metrics
    snapshot: Append-only metric history, cascade-deleted with its record

Scan progress (which source, which cursor) is never stored here; it travels
inside the continuation requests.

Usage:
    from models import IngestedRecord, RecordSnapshot, Source
"""

from models.base import Base, Source, SOURCE_SEQUENCE, TRACKED_METRICS
from models.ingested_record import IngestedRecord
from models.snapshot import RecordSnapshot

__all__ = [
    "Base",
    "Source",
    "SOURCE_SEQUENCE",
    "TRACKED_METRICS",
    "IngestedRecord",
    "RecordSnapshot",
]
