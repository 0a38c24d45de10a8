"""
Pydantic schemas for the read-side API (health, data, stats)
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import Source, utcnow
from schemas.records import IngestedRecordResponse


# ============================================================================
# Health Check Schemas
# ============================================================================

class SourceFreshness(BaseModel):
    """When a source was last seen by any chunk"""
    source: Source
    records: int = 0
    last_seen_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    scheduler_enabled: bool = False
    continuation_configured: bool = False
    sources: List[SourceFreshness] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "scheduler_enabled": False,
                "continuation_configured": True,
                "sources": [
                    {"source": "oferta24", "records": 87, "last_seen_at": "2024-01-15T05:00:12Z"}
                ]
            }
        }


# ============================================================================
# Data Query Schemas
# ============================================================================

class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class DataResponse(BaseModel):
    """Paginated data response"""
    items: List[IngestedRecordResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Statistics Schemas
# ============================================================================

class SourceStatistics(BaseModel):
    """Statistics for a single source"""
    source: Source
    total_records: int = 0
    records_with_sales: int = 0
    total_snapshots: int = 0
    total_quantity_sold: float = 0
    sales_today: float = 0
    sales_this_week: float = 0
    sales_last_30_days: float = 0
    last_seen_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


class StatsResponse(BaseModel):
    """Statistics response model"""
    timestamp: datetime = Field(default_factory=utcnow)
    total_records: int
    total_snapshots: int
    records_with_sales: int
    sales_today: float = 0
    sales_this_week: float = 0
    sales_last_30_days: float = 0
    source_statistics: List[SourceStatistics]
    request_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "timestamp": "2024-01-15T10:30:00Z",
                "total_records": 412,
                "total_snapshots": 1290,
                "records_with_sales": 198,
                "sales_today": 42,
                "sales_this_week": 310,
                "sales_last_30_days": 1275,
                "source_statistics": [
                    {
                        "source": "partner_metrics",
                        "total_records": 225,
                        "records_with_sales": 140,
                        "total_snapshots": 980,
                        "total_quantity_sold": 15320,
                        "sales_today": 30,
                        "sales_this_week": 214,
                        "sales_last_30_days": 890,
                        "last_seen_at": "2024-01-15T05:02:40Z"
                    }
                ]
            }
        }

