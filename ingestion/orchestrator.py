"""
Scan Orchestrator - drives chunks for the two entry protocols.

Cron/continuation (GET): run exactly one chunk, then hand the next
``(source, cursor)`` to the injected ``Continuation``. Where the sweep is
lives only in that pair; nothing about it is stored.

Interactive (POST): loop over chunks inside one request, advancing the
cursor locally, and yield a progress event per chunk. Never schedules a
continuation.
"""

import time
from typing import AsyncIterator, Callable, Optional, Sequence, Tuple
import logging

from ingestion.chunk_processor import ChunkProcessor
from ingestion.continuation import Continuation
from models.base import Source, SOURCE_SEQUENCE
from schemas.scan import ScanChunkResult, ScanPhase, ScanProgressEvent, ScanSummary
from core.config import settings

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """
    Chunk sequencing across sources.

    States per invocation: Idle -> ChunkInFlight -> one of
    Continuing (same source, next cursor), AdvancingSource (next source at 0),
    Done (sequence exhausted) or Failed (chunk raised, nothing scheduled).
    """

    def __init__(
        self,
        processor: ChunkProcessor,
        continuation: Optional[Continuation] = None,
        sequence: Sequence[Source] = SOURCE_SEQUENCE,
        max_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        if not sequence:
            raise ValueError("sequence must name at least one source")
        self.processor = processor
        self.continuation = continuation
        self.sequence = tuple(Source(s) for s in sequence)
        self.max_seconds = max_seconds if max_seconds is not None else settings.INTERACTIVE_MAX_SECONDS
        self.clock = clock

    # --------------------------------------------------
    # Cron / continuation protocol
    # --------------------------------------------------

    def next_step(self, chunk: ScanChunkResult) -> Optional[Tuple[Source, int]]:
        """Where the sweep goes after ``chunk``, or None when it is done"""
        source = Source(chunk.source)
        if not chunk.is_source_complete and chunk.next_cursor is not None:
            return source, chunk.next_cursor

        if source not in self.sequence:
            return None
        position = self.sequence.index(source)
        if position + 1 < len(self.sequence):
            return self.sequence[position + 1], 0
        return None

    async def run_chunk(self, source: Optional[Source] = None, cursor: int = 0) -> ScanChunkResult:
        """
        Process one chunk and schedule the next step.

        With no ``source`` this starts a full sweep at the first source.
        If the chunk raises, the error propagates and nothing is scheduled.
        """
        if source is None:
            source = self.sequence[0]
            cursor = 0
            logger.info(f"Starting sweep with {source.value}")

        chunk = await self.processor.process_chunk(source, cursor)

        step = self.next_step(chunk)
        if step is None:
            logger.info(f"Sweep complete after {Source(chunk.source).value}")
        elif self.continuation is None:
            logger.warning(f"No continuation configured; sweep stops before {step[0].value}@{step[1]}")
        else:
            self.continuation.schedule(*step)

        return chunk

    # --------------------------------------------------
    # Interactive protocol
    # --------------------------------------------------

    async def iter_chunks(
        self,
        source: Optional[Source] = None,
        summary: Optional[ScanSummary] = None
    ) -> AsyncIterator[ScanProgressEvent]:
        """
        Run every chunk of one source (or of the whole sequence) in-process.

        Each completed chunk is folded into ``summary`` and yielded as a
        progress event. A chunk is not started when elapsed time plus the
        duration of the previous chunk would pass ``max_seconds``; the run
        then ends with ``summary.truncated`` set. Errors propagate.
        """
        summary = summary if summary is not None else ScanSummary()
        sources = [Source(source)] if source is not None else list(self.sequence)
        started = self.clock()
        last_duration = 0.0

        try:
            for position, current in enumerate(sources):
                cursor = 0
                while True:
                    chunk_started = self.clock()
                    # The next chunk is assumed to take as long as the last one
                    if chunk_started - started + last_duration >= self.max_seconds:
                        logger.warning(
                            f"Interactive scan stopped at {current.value}@{cursor} "
                            f"after {chunk_started - started:.1f}s of {self.max_seconds}s"
                        )
                        summary.truncated = True
                        return

                    chunk = await self.processor.process_chunk(current, cursor)
                    last_duration = max(self.clock() - chunk_started, chunk.duration_ms / 1000)
                    summary.add(chunk)

                    yield ScanProgressEvent(
                        phase=ScanPhase.SCANNING,
                        chunk=chunk,
                        sources_remaining=sources[position + 1:],
                    )

                    if chunk.is_source_complete or chunk.next_cursor is None:
                        break
                    cursor = chunk.next_cursor
        finally:
            summary.duration_ms = int((self.clock() - started) * 1000)

    async def run_interactive(self, source: Optional[Source] = None) -> ScanSummary:
        """Same loop as ``iter_chunks`` without per-chunk emission"""
        summary = ScanSummary()
        async for _ in self.iter_chunks(source, summary):
            pass
        logger.info(
            f"Interactive scan finished: {summary.total_deals_found} deals, "
            f"{summary.new_deals} new, {summary.updated_deals} updated"
        )
        return summary
