"""
Progress Reporter - SSE frames and JSON bodies for scan results.

Every string that leaves through here passes ``redact`` so the
continuation secret cannot appear in a response.
"""

import json
from typing import Any, AsyncIterator, Dict, Iterable, Optional
import logging

from models.base import Source
from schemas.scan import ScanChunkResult, ScanPhase, ScanProgressEvent, ScanSummary
from core.security import redact

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

__all__ = [
    "SSE_HEADERS",
    "format_sse",
    "error_payload",
    "sse_stream",
    "chunk_response",
    "summary_response",
    "failure_response",
]


def _scrub(value: Any, secrets: Iterable[Optional[str]]) -> Any:
    if isinstance(value, str):
        return redact(value, secrets)
    if isinstance(value, dict):
        return {k: _scrub(v, secrets) for k, v in value.items()}
    if isinstance(value, list):
        return [_scrub(v, secrets) for v in value]
    return value


def format_sse(event: str, payload: Dict[str, Any], secrets: Iterable[Optional[str]] = ()) -> str:
    """One ``event: <name>`` / ``data: <json>`` frame"""
    secrets = list(secrets)
    data = json.dumps(_scrub(payload, secrets), default=str)
    return f"event: {event}\ndata: {data}\n\n"


def error_payload(error: Exception, secrets: Iterable[Optional[str]] = ()) -> Dict[str, Any]:
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return {
        "phase": ScanPhase.ERROR.value,
        "message": redact(message, secrets),
        "errorType": type(error).__name__,
    }


async def sse_stream(
    events: AsyncIterator[ScanProgressEvent],
    summary: ScanSummary,
    secrets: Iterable[Optional[str]] = ()
) -> AsyncIterator[str]:
    """
    Render an interactive run as SSE.

    ``progress`` per chunk, then exactly one of ``complete`` (aggregate of
    ``summary``) or ``error``.
    """
    secrets = list(secrets)
    try:
        async for event in events:
            yield format_sse("progress", event.to_payload(), secrets)
    except Exception as e:
        logger.exception("Interactive scan failed")
        yield format_sse("error", error_payload(e, secrets), secrets)
        return

    payload = summary.to_payload()
    payload["phase"] = ScanPhase.COMPLETE.value
    yield format_sse("complete", payload, secrets)


# ============================================================================
# JSON renderings
# ============================================================================

def chunk_response(
    chunk: ScanChunkResult,
    sweep_started: bool = False,
    secrets: Iterable[Optional[str]] = ()
) -> Dict[str, Any]:
    """Body for GET /scan"""
    if sweep_started:
        message = "Scan started"
    elif chunk.is_source_complete:
        message = f"{Source(chunk.source).value} scan complete"
    else:
        message = f"{Source(chunk.source).value} chunk processed"

    return _scrub({
        "success": not chunk.errors,
        "message": message,
        "data": chunk.to_payload(),
    }, list(secrets))


def summary_response(summary: ScanSummary, secrets: Iterable[Optional[str]] = ()) -> Dict[str, Any]:
    """Body for non-streaming POST /scan"""
    if summary.truncated:
        message = "Scan stopped at the time limit"
    elif summary.success:
        message = "Scan completed successfully"
    else:
        message = "Scan completed with errors"

    data = summary.to_payload()
    data.pop("success")
    return _scrub({
        "success": summary.success,
        "message": message,
        "data": data,
    }, list(secrets))


def failure_response(error: Exception, headline: str, secrets: Iterable[Optional[str]] = ()) -> Dict[str, Any]:
    """Body for a 500 from either protocol"""
    secrets = list(secrets)
    payload = error_payload(error, secrets)
    return {
        "success": False,
        "error": headline,
        "details": payload["message"],
        "errorType": payload["errorType"],
    }
