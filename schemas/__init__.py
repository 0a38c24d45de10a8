"""
Pydantic schemas for validation and serialization.

Schemas:
    records: Canonical ingested record, metrics and upsert outcomes
    scan: Chunk results, progress events and interactive run summaries
    api: Health, data and stats response models

Usage:
    from schemas.records import IngestedRecordCreate, RecordMetrics
    from schemas.scan import ScanChunkResult, ScanSummary

Example:
    record = IngestedRecordCreate(
        source=Source.PARTNER_METRICS,
        external_id=42,
        name="Spa day for two",
        metrics=RecordMetrics(quantity_sold=10),
    )

    # Numeric ids are coerced to strings
    assert record.external_id == "42"
"""

__all__ = [
    "IngestedRecordCreate",
    "RecordMetrics",
    "UpsertOutcome",
    "UpsertResult",
    "ScanChunkResult",
    "ScanSummary",
    "ScanProgressEvent",
    "HealthCheckResponse",
    "DataResponse",
    "StatsResponse",
]
