"""
Unit tests for SSE frames and scan response bodies
"""

import json
import pytest
from ingestion.progress import (
    chunk_response,
    failure_response,
    format_sse,
    sse_stream,
    summary_response,
)
from models.base import Source
from schemas.scan import ScanChunkResult, ScanPhase, ScanProgressEvent, ScanSummary
from core.exceptions import NetworkError
from core.security import REDACTED, redact

SECRET = "s3cret-cron-token"


def parse_frames(body):
    """Split an SSE body into (event, data) pairs"""
    frames = []
    for block in body.strip().split("\n\n"):
        event_line, data_line = block.split("\n")
        assert event_line.startswith("event: ")
        assert data_line.startswith("data: ")
        frames.append((event_line[len("event: "):], json.loads(data_line[len("data: "):])))
    return frames


async def events_from(chunks, summary, fail_with=None):
    for chunk in chunks:
        summary.add(chunk)
        yield ScanProgressEvent(phase=ScanPhase.SCANNING, chunk=chunk)
    if fail_with is not None:
        raise fail_with


def make_chunk(**overrides):
    values = dict(
        source=Source.OFERTA24,
        cursor=0,
        items_processed=3,
        items_with_sales_count=2,
        new_records=3,
        total_available=7,
        is_source_complete=False,
        next_cursor=3,
    )
    values.update(overrides)
    return ScanChunkResult(**values)


class TestFormatting:
    """Frame and payload shapes"""

    def test_sse_frame_shape(self):
        frame = format_sse("progress", {"phase": "scanning", "itemsProcessed": 3})

        assert frame == 'event: progress\ndata: {"phase": "scanning", "itemsProcessed": 3}\n\n'

    def test_chunk_payload_uses_camel_case(self):
        payload = make_chunk().to_payload()

        assert payload["itemsProcessed"] == 3
        assert payload["nextCursor"] == 3
        assert payload["isSourceComplete"] is False
        assert payload["source"] == "oferta24"
        assert "errors" not in payload

    def test_complete_chunk_omits_next_cursor(self):
        payload = make_chunk(is_source_complete=True, next_cursor=None).to_payload()

        assert "nextCursor" not in payload

    def test_redact_replaces_every_secret(self):
        text = f"GET /scan?token={SECRET} failed, token {SECRET}"

        assert SECRET not in redact(text, [SECRET, None, ""])
        assert redact(text, [SECRET]).count(REDACTED) == 2

    def test_nested_payload_is_redacted(self):
        frame = format_sse("error", {"message": "boom", "details": [f"bearer {SECRET}"]}, [SECRET])

        assert SECRET not in frame
        assert REDACTED in frame


class TestSseStream:
    """Interactive stream rendering"""

    @pytest.mark.asyncio
    async def test_progress_then_complete(self):
        """Test one progress frame per chunk then a single complete frame"""
        summary = ScanSummary()
        chunks = [make_chunk(), make_chunk(cursor=3, next_cursor=6), make_chunk(cursor=6, next_cursor=None,
                                                                                  is_source_complete=True,
                                                                                  items_processed=1)]

        body = "".join([f async for f in sse_stream(events_from(chunks, summary), summary)])
        frames = parse_frames(body)

        assert [name for name, _ in frames] == ["progress", "progress", "progress", "complete"]
        assert frames[0][1]["phase"] == "scanning"
        assert frames[0][1]["cursor"] == 0

        complete = frames[-1][1]
        assert complete["phase"] == "complete"
        assert complete["totalDealsFound"] == 7
        assert complete["newDeals"] == 9
        assert complete["success"] is True
        assert complete["sourcesCompleted"] == ["oferta24"]

    @pytest.mark.asyncio
    async def test_error_ends_stream_without_complete(self):
        """Test a failing chunk emits one error frame and nothing after it"""
        summary = ScanSummary()
        error = NetworkError(f"partner API down (token {SECRET})")

        body = "".join([
            f async for f in sse_stream(events_from([make_chunk()], summary, fail_with=error), summary, [SECRET])
        ])
        frames = parse_frames(body)

        assert [name for name, _ in frames] == ["progress", "error"]
        assert frames[-1][1]["phase"] == "error"
        assert frames[-1][1]["errorType"] == "NetworkError"
        assert SECRET not in body


class TestJsonBodies:
    """Non-streaming response bodies"""

    def test_chunk_response_messages(self):
        assert chunk_response(make_chunk(), sweep_started=True)["message"] == "Scan started"
        assert chunk_response(make_chunk())["message"] == "oferta24 chunk processed"
        done = make_chunk(is_source_complete=True, next_cursor=None)
        assert chunk_response(done)["message"] == "oferta24 scan complete"

    def test_chunk_response_reports_item_errors(self):
        body = chunk_response(make_chunk(errors=["item 2: Item has no external id"]))

        assert body["success"] is False
        assert body["data"]["errors"] == ["item 2: Item has no external id"]

    def test_summary_response(self):
        summary = ScanSummary()
        summary.add(make_chunk(is_source_complete=True, next_cursor=None))

        body = summary_response(summary)

        assert body["success"] is True
        assert body["message"] == "Scan completed successfully"
        assert body["data"]["totalDealsFound"] == 3
        assert "success" not in body["data"]

    def test_summary_response_with_errors_and_truncation(self):
        summary = ScanSummary()
        summary.add(make_chunk(errors=["item 0: bad"]))
        assert summary_response(summary)["message"] == "Scan completed with errors"
        assert summary.errors == ["oferta24: item 0: bad"]

        summary.truncated = True
        body = summary_response(summary)
        assert body["message"] == "Scan stopped at the time limit"
        assert body["data"]["truncated"] is True

    def test_failure_response_is_redacted(self):
        body = failure_response(RuntimeError(f"connect to {SECRET}"), "Failed to run scan", [SECRET])

        assert body == {
            "success": False,
            "error": "Failed to run scan",
            "details": f"connect to {REDACTED}",
            "errorType": "RuntimeError",
        }

    def test_exports_only_its_own_renderers(self):
        import ingestion.progress as progress

        assert "redact" not in progress.__all__
        assert "REDACTED" not in progress.__all__
        for name in progress.__all__:
            value = getattr(progress, name)
            if callable(value):
                assert value.__module__ == "ingestion.progress"
