"""
API Middleware.

Request correlation IDs with one audit line per request, and a rate
limit on the endpoints that call the LLM.
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.logging_config import generate_trace_id, get_logger, trace_id_var

logger = get_logger(__name__)

RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = 60     # LLM-backed requests per window per client IP
LLM_BACKED_PATHS = ("/api/recruiter/chat", "/api/recruiter/generate")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind X-Request-ID (or a fresh one) as the trace ID for the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_trace_id()
        token = trace_id_var.set(request_id)
        started = time.monotonic()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.monotonic() - started) * 1000, 1)
            logger.info(
                "api_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                elapsed_ms=elapsed_ms,
            )
        finally:
            trace_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limit per client IP on LLM-backed paths.

    Counts live in this process only; with several instances behind a
    load balancer each one enforces its own window.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = RATE_LIMIT_MAX,
        window_seconds: int = RATE_LIMIT_WINDOW,
        paths: tuple[str, ...] = LLM_BACKED_PATHS,
    ) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.paths = paths
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    def sweep(self, now: float) -> None:
        """Forget clients with no hits inside the current window."""
        idle = [ip for ip, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for ip in idle:
            del self._hits[ip]
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        if now - self._last_sweep >= self.window_seconds:
            self.sweep(now)

        hits = self._hits[client_ip]
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            logger.warning("rate_limit_exceeded", client_ip=client_ip, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded"},
                headers={"Retry-After": str(self.window_seconds)},
            )

        hits.append(now)
        return await call_next(request)
