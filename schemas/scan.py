"""
Scan value objects: chunk results, progress events and run summaries.

None of these are persisted. API renderings use camelCase aliases
(``model_dump(by_alias=True)``); Python code uses field names.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum
from models.base import Source


class ScanPhase(str, Enum):
    SCANNING = "scanning"
    COMPLETE = "complete"
    ERROR = "error"


class ScanRequest(BaseModel):
    """Body of POST /scan. No source means every source in sweep order."""
    source: Optional[Source] = None


class ScanChunkResult(BaseModel):
    """Outcome of processing one ``[cursor, cursor + size)`` slice of a source"""

    source: Source
    cursor: int = 0
    items_processed: int = Field(0, alias="itemsProcessed")
    items_with_sales_count: int = Field(0, alias="itemsWithSalesCount")
    new_records: int = Field(0, alias="newRecords")
    updated_records: int = Field(0, alias="updatedRecords")
    unchanged_records: int = Field(0, alias="unchangedRecords")
    errors: List[str] = Field(default_factory=list)
    duration_ms: int = Field(0, alias="duration")
    total_available: int = Field(0, alias="totalAvailable")
    is_source_complete: bool = Field(False, alias="isSourceComplete")
    next_cursor: Optional[int] = Field(None, alias="nextCursor")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_payload(self) -> Dict[str, Any]:
        """camelCase rendering; ``errors`` and ``nextCursor`` only when present"""
        payload = self.model_dump(by_alias=True)
        if not self.errors:
            payload.pop("errors")
        if self.next_cursor is None:
            payload.pop("nextCursor")
        return payload


class ScanSummary(BaseModel):
    """Aggregate over every chunk of an interactive run"""

    total_deals_found: int = Field(0, alias="totalDealsFound")
    total_deals_with_sales: int = Field(0, alias="totalDealsWithSales")
    new_deals: int = Field(0, alias="newDeals")
    updated_deals: int = Field(0, alias="updatedDeals")
    unchanged_deals: int = Field(0, alias="unchangedDeals")
    duration_ms: int = Field(0, alias="duration")
    chunks: int = 0
    sources_completed: List[Source] = Field(default_factory=list, alias="sourcesCompleted")
    truncated: bool = False
    errors: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        use_enum_values = True

    @property
    def success(self) -> bool:
        return not self.errors

    def add(self, chunk: ScanChunkResult) -> None:
        self.chunks += 1
        self.total_deals_found += chunk.items_processed
        self.total_deals_with_sales += chunk.items_with_sales_count
        self.new_deals += chunk.new_records
        self.updated_deals += chunk.updated_records
        self.unchanged_deals += chunk.unchanged_records
        self.errors.extend(f"{Source(chunk.source).value}: {e}" for e in chunk.errors)
        if chunk.is_source_complete and chunk.source not in self.sources_completed:
            self.sources_completed.append(chunk.source)

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        payload["success"] = self.success
        if not self.errors:
            payload.pop("errors")
        return payload


class ScanProgressEvent(BaseModel):
    """One frame of an interactive stream: the chunk plus a phase tag"""

    phase: ScanPhase = ScanPhase.SCANNING
    chunk: ScanChunkResult
    sources_remaining: List[Source] = Field(default_factory=list, alias="sourcesRemaining")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_payload(self) -> Dict[str, Any]:
        payload = {"phase": ScanPhase(self.phase).value}
        payload.update(self.chunk.to_payload())
        payload["sourcesRemaining"] = list(self.sources_remaining)
        return payload
