"""
Sales per period derived from snapshot history.

A snapshot holds the quantity a record had *before* the change stamped
``captured_at``. The quantity live at a boundary is therefore the one in
the earliest snapshot captured after it, or the live quantity when
nothing changed since.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models.base import utcnow
from models.snapshot import RecordSnapshot

PERIODS = ("sales_today", "sales_this_week", "sales_last_30_days")


def period_boundaries(now: Optional[datetime] = None) -> Dict[str, datetime]:
    """UTC midnight today, 7 days before it and 30 days before it"""
    now = now or utcnow()
    today = datetime(now.year, now.month, now.day)
    return {
        "sales_today": today,
        "sales_this_week": today - timedelta(days=7),
        "sales_last_30_days": today - timedelta(days=30),
    }


def sales_since(live_quantity: float, history: Sequence[Tuple[datetime, float]], boundary: datetime) -> float:
    """
    Quantity sold after ``boundary``.

    Args:
        live_quantity: Current ``quantity_sold`` of the record
        history: ``(captured_at, quantity_sold)`` of its snapshots, oldest first
        boundary: Start of the period
    """
    for captured_at, quantity in history:
        if captured_at > boundary:
            return max(0.0, live_quantity - quantity)
    return 0.0


def period_sales(
    live_quantity: float,
    history: Sequence[Tuple[datetime, float]],
    boundaries: Dict[str, datetime]
) -> Dict[str, float]:
    return {name: sales_since(live_quantity, history, boundary) for name, boundary in boundaries.items()}


async def load_histories(
    db: AsyncSession,
    since: datetime,
    record_ids: Optional[Iterable[int]] = None
) -> Dict[int, List[Tuple[datetime, float]]]:
    """Snapshots captured after ``since`` per record id, oldest first"""
    query = (
        select(RecordSnapshot.record_id, RecordSnapshot.captured_at, RecordSnapshot.quantity_sold)
        .where(RecordSnapshot.captured_at > since)
        .order_by(RecordSnapshot.record_id, RecordSnapshot.captured_at, RecordSnapshot.id)
    )
    if record_ids is not None:
        record_ids = list(record_ids)
        if not record_ids:
            return {}
        query = query.where(RecordSnapshot.record_id.in_(record_ids))

    histories: Dict[int, List[Tuple[datetime, float]]] = {}
    for record_id, captured_at, quantity in (await db.execute(query)).all():
        histories.setdefault(record_id, []).append((captured_at, quantity))
    return histories


async def sales_for_records(db: AsyncSession, records: Sequence, now: Optional[datetime] = None) -> Dict[int, Dict[str, float]]:
    """Period figures keyed by record id"""
    boundaries = period_boundaries(now)
    histories = await load_histories(db, min(boundaries.values()), [r.id for r in records])
    return {
        r.id: period_sales(r.quantity_sold, histories.get(r.id, []), boundaries)
        for r in records
    }
