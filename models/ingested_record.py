from sqlalchemy import Column, String, BigInteger, Integer, Enum, Float, DateTime, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from models.base import Base, Source, TRACKED_METRICS, utcnow


class IngestedRecord(Base):
    """
    Canonical record for one item seen at an external source.

    Identity is ``(source, external_id)``. The ingestion path creates a row
    on first sighting and afterwards only rewrites the metric columns and
    ``last_seen_at``. It never deletes rows or changes their identity.

    Field Mapping Strategy:

    Competitor listings (oferta24, rantanofertas):
    - id / slug / sourceUrl -> external_id
    - dealTitle -> name
    - totalSold -> quantity_sold
    - offerPrice -> offer_price
    - originalPrice -> original_price
    - merchantName, imageUrl, tag -> metadata

    Partner metrics:
    - deal_id -> external_id
    - deal_name -> name
    - quantity_sold, net_revenue, margin -> same
    - run_at -> start_at
    - end_at -> end_at
    """
    __tablename__ = "ingested_records"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Identity
    source = Column(
        Enum(Source, name="scan_source", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    external_id = Column(String(255), nullable=False)

    # Descriptive fields
    name = Column(String(500), nullable=False, default="")
    url = Column(String(2048), nullable=True)
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)

    # Tracked metrics
    quantity_sold = Column(Float, nullable=False, default=0)
    net_revenue = Column(Float, nullable=False, default=0)
    margin = Column(Float, nullable=False, default=0)
    offer_price = Column(Float, nullable=False, default=0)
    original_price = Column(Float, nullable=False, default=0)

    # Source-specific extras
    extra_metadata = Column("metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True)

    # Timestamps
    first_seen_at = Column(DateTime, nullable=False, default=utcnow)
    last_seen_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)  # last metric change

    snapshots = relationship(
        "RecordSnapshot",
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[RecordSnapshot.captured_at, RecordSnapshot.id]",
    )

    __table_args__ = (
        Index("idx_records_source_external", "source", "external_id", unique=True),
        Index("idx_records_source_seen", "source", "last_seen_at"),
    )

    def metrics(self) -> dict:
        return {name: getattr(self, name) for name in TRACKED_METRICS}

    def __repr__(self):
        return f"<IngestedRecord(id={self.id}, source={self.source}, external_id={self.external_id})>"
