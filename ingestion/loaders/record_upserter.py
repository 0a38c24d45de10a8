"""
Change-tracked upsert of canonical records (idempotent, snapshot-on-change)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from models.base import TRACKED_METRICS, utcnow
from models.ingested_record import IngestedRecord
from models.snapshot import RecordSnapshot
from schemas.records import IngestedRecordCreate, UpsertOutcome, UpsertResult
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)


class ChangeTrackedUpserter:
    """
    Create-or-update-if-changed keyed by ``(source, external_id)``.

    Each call is one transaction:
    - absent: insert, ``created``
    - any tracked metric differs (exact equality): write a snapshot holding
      the *previous* values, overwrite the metrics, ``updated``
    - otherwise: touch ``last_seen_at`` only, ``unchanged``

    Because change detection compares values instead of applying deltas,
    replaying the same input after a crash or from an overlapping chunk
    degrades to ``unchanged``.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def upsert(self, record: IngestedRecordCreate) -> UpsertResult:
        """
        Upsert one record and commit.

        Raises:
            UpsertError: the store rejected the write; the transaction is rolled back
        """
        context = {"source": record.source.value, "external_id": record.external_id}

        for attempt in range(2):
            try:
                result = await self._upsert_once(record)
                await self.db.commit()
                return result
            except IntegrityError as e:
                await self.db.rollback()
                # A concurrent chunk inserted the same identity first; the
                # second pass finds its row and compares against it.
                if attempt == 0:
                    logger.info(f"Insert race on {record.source.value}/{record.external_id}, retrying")
                    continue
                raise UpsertError("Upsert failed after insert race", context=context, original_exception=e)
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise UpsertError("Upsert failed", context=context, original_exception=e)

    async def _upsert_once(self, record: IngestedRecordCreate) -> UpsertResult:
        now = utcnow()
        existing = await self._find(record)

        if existing is None:
            row = IngestedRecord(
                source=record.source,
                external_id=record.external_id,
                name=record.name,
                url=record.url,
                start_at=record.start_at,
                end_at=record.end_at,
                extra_metadata=record.extra_metadata or None,
                first_seen_at=now,
                last_seen_at=now,
                created_at=now,
                updated_at=now,
                **record.metrics.as_columns()
            )
            self.db.add(row)
            await self.db.flush()
            logger.debug(f"Created {record.source.value}/{record.external_id} as id={row.id}")
            return UpsertResult(outcome=UpsertOutcome.CREATED, id=row.id)

        incoming = record.metrics.as_columns()
        changed = [name for name in TRACKED_METRICS if getattr(existing, name) != incoming[name]]

        if changed:
            self.db.add(RecordSnapshot(
                record_id=existing.id,
                captured_at=now,
                **{name: getattr(existing, name) for name in TRACKED_METRICS}
            ))
            for name in TRACKED_METRICS:
                setattr(existing, name, incoming[name])
            existing.last_seen_at = now
            existing.updated_at = now
            await self.db.flush()
            logger.debug(f"Updated {record.source.value}/{record.external_id}: {', '.join(changed)}")
            return UpsertResult(outcome=UpsertOutcome.UPDATED, id=existing.id)

        existing.last_seen_at = now
        await self.db.flush()
        return UpsertResult(outcome=UpsertOutcome.UNCHANGED, id=existing.id)

    async def _find(self, record: IngestedRecordCreate):
        stmt = (
            select(IngestedRecord)
            .where(
                IngestedRecord.source == record.source,
                IngestedRecord.external_id == record.external_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
