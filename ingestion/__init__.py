"""
Chunked, resumable ingestion of deal metrics.

Modules:
    orchestrator: Chunk sequencing for the cron and interactive protocols
    chunk_processor: Fetch, normalize and upsert one slice of one source
    continuation: How a finished chunk requests the next one
    progress: SSE frames and JSON bodies for scan results
    scheduler: APScheduler job that starts a sweep on a cron expression

Subpackages:
    fetchers: Per-source page fetchers (listing feeds, partner API)
    transformers: Source item to canonical record mapping
    loaders: Change-tracked upsert with snapshot history

Architecture:
    A sweep visits oferta24, partner_metrics and rantanofertas in that
    order, ``SCAN_CHUNK_SIZE`` items per request. Each chunk is
    independent: it commits record by record and reports how far it got.
    The only sweep state is the ``(source, cursor)`` pair carried by the
    next continuation request.

    Item errors are collected in the chunk result. Fetch and store errors
    abort the chunk and stop the chain until the next trigger.

Usage:
    from ingestion.chunk_processor import ChunkProcessor
    from ingestion.fetchers.registry import FetcherRegistry
    from ingestion.orchestrator import ScanOrchestrator

Example:
    processor = ChunkProcessor(session, FetcherRegistry.from_settings())
    summary = await ScanOrchestrator(processor).run_interactive()

    print(f"{summary.new_deals} new, {summary.updated_deals} updated")
"""

__all__ = [
    "ScanOrchestrator",
    "ChunkProcessor",
    "Continuation",
    "HttpContinuation",
    "RecordingContinuation",
    "ScanScheduler",
    "FetcherRegistry",
    "RecordNormalizer",
    "ChangeTrackedUpserter",
]
