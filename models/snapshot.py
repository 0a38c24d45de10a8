from sqlalchemy import Column, BigInteger, Integer, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from models.base import Base, utcnow


class RecordSnapshot(Base):
    """
    Append-only history of a record's metrics.

    A snapshot is written in the same transaction as the record update it
    precedes and holds the values the record had *before* that update.
    Reading snapshots by ``captured_at`` and then the live record gives the
    full before/after series. Rows are never updated.
    """
    __tablename__ = "record_snapshots"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    record_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("ingested_records.id", ondelete="CASCADE"),
        nullable=False,
    )

    quantity_sold = Column(Float, nullable=False, default=0)
    net_revenue = Column(Float, nullable=False, default=0)
    margin = Column(Float, nullable=False, default=0)
    offer_price = Column(Float, nullable=False, default=0)
    original_price = Column(Float, nullable=False, default=0)

    captured_at = Column(DateTime, nullable=False, default=utcnow)

    record = relationship("IngestedRecord", back_populates="snapshots")

    __table_args__ = (
        Index("idx_snapshots_record_captured", "record_id", "captured_at"),
    )

    def __repr__(self):
        return f"<RecordSnapshot(id={self.id}, record_id={self.record_id}, captured_at={self.captured_at})>"
