import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Correlates a request across the continuation chain.

    A continuation call forwards nothing but ``source``/``cursor``, so the
    access line names the scan step; the request id ties it to the chunk
    log lines emitted while it ran.

    Response headers: X-Request-ID (reused from the caller when present),
    X-API-Latency-ms.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        # For streamed bodies this is time to first byte
        latency_ms = int((time.perf_counter() - started) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        if request.url.path == "/scan":
            params = request.query_params
            step = f"{params.get('source', 'start')}@{params.get('cursor', '0')}"
            origin = "continuation" if params.get("internal") == "true" else request.method
            logger.info(f"[{request_id}] /scan {origin} {step} -> {response.status_code} ({latency_ms}ms)")
        else:
            logger.debug(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")

        return response
