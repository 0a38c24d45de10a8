"""
Run an interactive scan from the command line.

    python -m scripts.run_scan                 # every source, in sweep order
    python -m scripts.run_scan partner_metrics # one source

Chunks run in-process against the configured database; no continuation
calls are made.
"""

import argparse
import asyncio
import json
import logging
import sys

from core.database import async_session_maker, engine
from core.exceptions import IngestionException
from core.logging import setup_logging
from ingestion.chunk_processor import ChunkProcessor
from ingestion.fetchers.registry import FetcherRegistry
from ingestion.orchestrator import ScanOrchestrator
from models.base import Source

logger = logging.getLogger(__name__)


async def run_scan(source=None) -> int:
    """Scan and print the aggregate. Returns a process exit code."""
    fetchers = FetcherRegistry.from_settings()

    try:
        async with async_session_maker() as session:
            orchestrator = ScanOrchestrator(ChunkProcessor(session, fetchers), max_seconds=float("inf"))
            summary = await orchestrator.run_interactive(source)
    except IngestionException as e:
        logger.error(f"Scan failed: {json.dumps(e.to_dict(), default=str)}")
        return 1
    finally:
        await engine.dispose()

    print(json.dumps(summary.to_payload(), indent=2, default=str))
    return 0 if summary.success else 2


def main():
    parser = argparse.ArgumentParser(description="Run a deal scan in-process")
    parser.add_argument("source", nargs="?", choices=[s.value for s in Source], help="Scan only this source")
    args = parser.parse_args()

    setup_logging()
    source = Source(args.source) if args.source else None
    sys.exit(asyncio.run(run_scan(source)))


if __name__ == "__main__":
    main()
