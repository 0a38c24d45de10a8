"""
Pydantic schemas for canonical ingested records and upsert outcomes
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum
from models.base import Source, TRACKED_METRICS


class RecordMetrics(BaseModel):
    """
    Tracked business metrics for one record.

    Values are discrete business figures. Change detection compares them
    with exact equality.
    """
    quantity_sold: float = 0
    net_revenue: float = 0
    margin: float = 0
    offer_price: float = 0
    original_price: float = 0

    def as_columns(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in TRACKED_METRICS}


class IngestedRecordCreate(BaseModel):
    """
    Canonical shape produced by the normalizer and consumed by the upserter.

    Identity is ``(source, external_id)``.
    """

    source: Source
    external_id: str = Field(..., min_length=1, max_length=255)

    name: str = Field(default="", max_length=500)
    url: Optional[str] = Field(None, max_length=2048)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None

    metrics: RecordMetrics = Field(default_factory=RecordMetrics)
    extra_metadata: Dict[str, Any] = Field(default_factory=dict)

    @validator("external_id", pre=True)
    def clean_external_id(cls, v):
        """Accept numeric ids and strip whitespace"""
        if v is None:
            raise ValueError("external_id is required")
        v = str(v).strip()
        if not v:
            raise ValueError("external_id cannot be empty")
        return v

    @validator("name", pre=True)
    def clean_name(cls, v):
        if v is None:
            return ""
        return str(v).strip()[:500]

    @property
    def has_sales(self) -> bool:
        return self.metrics.quantity_sold != 0


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class UpsertResult(BaseModel):
    """Per-record result of a change-tracked upsert"""
    outcome: UpsertOutcome
    id: int


# ============================================================================
# Read Schemas
# ============================================================================

class SnapshotResponse(BaseModel):
    """One historical metric value set"""
    id: int
    quantity_sold: float
    net_revenue: float
    margin: float
    offer_price: float
    original_price: float
    captured_at: datetime

    class Config:
        from_attributes = True


class IngestedRecordResponse(BaseModel):
    """Response model for a stored record"""
    id: int
    source: Source
    external_id: str
    name: str
    url: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None

    quantity_sold: float
    net_revenue: float
    margin: float
    offer_price: float
    original_price: float

    extra_metadata: Optional[Dict[str, Any]] = None

    first_seen_at: datetime
    last_seen_at: datetime
    updated_at: datetime

    # Derived from snapshot history, not stored
    sales_today: float = 0
    sales_this_week: float = 0
    sales_last_30_days: float = 0

    class Config:
        from_attributes = True
        use_enum_values = True


class RecordHistoryResponse(IngestedRecordResponse):
    """A record with its snapshots in chronological order"""
    snapshots: List[SnapshotResponse] = Field(default_factory=list)
