from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# ENUMS
# ============================================================================

class Source(str, enum.Enum):
    """External origins of ingestible listings"""
    OFERTA24 = "oferta24"
    PARTNER_METRICS = "partner_metrics"
    RANTANOFERTAS = "rantanofertas"


# Sweep order for a full scan: fast/small sources first
SOURCE_SEQUENCE = (
    Source.OFERTA24,
    Source.PARTNER_METRICS,
    Source.RANTANOFERTAS,
)


# Metric columns compared on every sighting and copied into snapshots
TRACKED_METRICS = (
    "quantity_sold",
    "net_revenue",
    "margin",
    "offer_price",
    "original_price",
)
