"""
Map source-specific fetched items into the canonical record shape
"""

from typing import Dict, Any, Optional
from datetime import datetime, timezone
import math
from pydantic import ValidationError
from schemas.records import IngestedRecordCreate, RecordMetrics
from models.base import Source
from core.exceptions import NormalizationError
import logging

logger = logging.getLogger(__name__)


COMPETITOR_SOURCES = (Source.OFERTA24, Source.RANTANOFERTAS)


class RecordNormalizer:
    """
    Normalize items from one source into ``IngestedRecordCreate``.

    Pure: no I/O. Numeric fields that are missing or malformed become 0
    so one bad field never costs the item. An item with no extractable
    external id raises ``NormalizationError``.
    """

    def __init__(self, source: Source):
        self.source = Source(source)

    def normalize(self, item: Any) -> IngestedRecordCreate:
        """
        Normalize a fetched item.

        Raises:
            NormalizationError: item is not a mapping or has no identity
        """
        if not isinstance(item, dict):
            raise NormalizationError(
                f"Expected an object, got {type(item).__name__}",
                context={"source": self.source.value}
            )

        if self.source == Source.PARTNER_METRICS:
            fields = self._normalize_partner(item)
        elif self.source in COMPETITOR_SOURCES:
            fields = self._normalize_competitor(item)
        else:
            raise NormalizationError(
                f"No field map for source {self.source.value}",
                context={"source": self.source.value}
            )

        if fields["external_id"] is None:
            raise NormalizationError(
                "Item has no external id",
                context={"source": self.source.value, "keys": sorted(item.keys())[:10]}
            )

        try:
            return IngestedRecordCreate(source=self.source, **fields)
        except ValidationError as e:
            raise NormalizationError(
                "Item failed validation",
                context={"source": self.source.value, "external_id": fields["external_id"]},
                original_exception=e
            )

    def _normalize_competitor(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize a scraped competitor deal"""
        return {
            "external_id": self._first_id(item, "id", "slug", "sourceUrl", "url"),
            "name": item.get("dealTitle") or item.get("title") or item.get("name") or "",
            "url": item.get("sourceUrl") or item.get("url"),
            "start_at": self._parse_datetime(item.get("scannedAt")),
            "end_at": self._parse_datetime(item.get("expiresAt")),
            "metrics": RecordMetrics(
                quantity_sold=self._parse_number(item.get("totalSold")),
                offer_price=self._parse_number(item.get("offerPrice")),
                original_price=self._parse_number(item.get("originalPrice")),
            ),
            "extra_metadata": {
                k: item[k] for k in ("merchantName", "imageUrl", "tag", "discountPercent")
                if item.get(k) is not None
            },
        }

    def _normalize_partner(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize a partner platform deal metric"""
        return {
            "external_id": self._first_id(item, "deal_id", "id"),
            "name": item.get("deal_name") or "",
            "url": item.get("url"),
            "start_at": self._parse_datetime(item.get("run_at")),
            "end_at": self._parse_datetime(item.get("end_at")),
            "metrics": RecordMetrics(
                quantity_sold=self._parse_number(item.get("quantity_sold")),
                net_revenue=self._parse_number(item.get("net_revenue")),
                margin=self._parse_number(item.get("margin")),
                offer_price=self._parse_number(item.get("price")),
            ),
            "extra_metadata": {
                k: item[k] for k in ("vendor_id", "vendor_name", "category")
                if item.get(k) is not None
            },
        }

    @staticmethod
    def _first_id(item: Dict[str, Any], *keys: str) -> Optional[str]:
        for key in keys:
            value = item.get(key)
            # 0 is a valid partner id
            if value is None or isinstance(value, bool):
                continue
            value = str(value).strip()
            if value:
                return value
        return None

    @staticmethod
    def _parse_number(value: Any) -> float:
        """Parse a metric, coercing anything unusable to 0"""
        if value is None or value == "" or isinstance(value, bool):
            return 0.0
        if isinstance(value, str):
            value = value.replace("$", "").replace(",", "").strip()
        try:
            number = float(value)
        except (ValueError, TypeError):
            return 0.0
        if math.isnan(number) or math.isinf(number):
            return 0.0
        return number

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        """Parse to naive UTC, or None"""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
