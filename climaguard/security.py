"""
climaguard.security — HTTP middleware for the ClimaGuard API.

Provides:
    - RequestIdMiddleware: X-Request-ID on every response plus one
      structured http_request log line
    - SecurityHeadersMiddleware: OWASP response headers and per-path
      Cache-Control
    - RequestSizeLimitMiddleware: 413 for large bodies, 431 for large
      headers, 400 for a malformed Content-Length
    - ETagMiddleware: weak ETag on 200 GET responses, 304 on match
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("climaguard.security")


# ---------------------------------------------------------------------------
# Cache policy
# ---------------------------------------------------------------------------

NO_STORE_PATHS = frozenset(("/health", "/ready", "/alerts/active"))
NO_STORE_PREFIXES = ("/pollution/",)

# Slow-moving products: daily SST series, reef thermal stress, tiles.
DAILY_PATHS = frozenset((
    "/bleaching",
    "/reef-health",
    "/coral-reef-health",
    "/ocean-history",
    "/ocean-health/sdg14",
    "/satellite/tiles",
))


def cache_policy(path: str) -> str:
    """Cache-Control value for a response path.

      - /health, /ready, alerts, pollution → no-store (live or mutable)
      - /                                  → public, one hour
      - daily marine products              → public, 15 min, CDN 1 h
      - everything else (hourly forecasts) → public, 1 min, CDN 5 min
    """
    if path in NO_STORE_PATHS or path.startswith(NO_STORE_PREFIXES):
        return "no-store"
    if path == "/":
        return "public, max-age=3600"
    if path in DAILY_PATHS:
        return "public, max-age=900, s-maxage=3600, stale-while-revalidate=600"
    return "public, max-age=60, s-maxage=300, stale-while-revalidate=120"


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID (client-supplied or generated) and log the request."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        t0 = time.monotonic()
        response = await call_next(request)
        latency_ms = round((time.monotonic() - t0) * 1000, 1)
        response.headers["X-Request-ID"] = request_id
        _log_request(request, response.status_code, latency_ms, request_id)
        return response


# ---------------------------------------------------------------------------
# Security headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    OWASP security headers on every response. HSTS only when enabled
    (prod, TLS terminated upstream). Cache-Control from cache_policy().
    """

    def __init__(self, app: Any, *, enable_hsts: bool = False) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        # geolocation stays blocked: clients send lat/lng explicitly
        response.headers["Permissions-Policy"] = (
            "accelerometer=(), camera=(), geolocation=(), "
            "gyroscope=(), magnetometer=(), microphone=(), "
            "payment=(), usb=()"
        )
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"

        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        if request.method == "GET":
            response.headers["Cache-Control"] = cache_policy(request.url.path)
        else:
            response.headers["Cache-Control"] = "no-store"
        return response


# ---------------------------------------------------------------------------
# Request size limit middleware
# ---------------------------------------------------------------------------

MAX_BODY_BYTES = 16_384     # pollution events carry a spread polygon
MAX_HEADER_BYTES = 16_384


def _json_error(status_code: int, detail: str) -> Response:
    return Response(
        content=json.dumps({"detail": detail}),
        status_code=status_code,
        media_type="application/json",
    )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized bodies (413), oversized headers (431) and a
    non-integer Content-Length (400)."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        header_size = sum(len(k) + len(v) for k, v in request.headers.raw)
        if header_size > MAX_HEADER_BYTES:
            return _json_error(431, "Request headers too large")

        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                length = int(content_length)
            except ValueError:
                return _json_error(400, "Invalid Content-Length")
            if length > MAX_BODY_BYTES:
                return _json_error(413, "Request body too large")

        return await call_next(request)


# ---------------------------------------------------------------------------
# ETag / conditional-GET middleware
# ---------------------------------------------------------------------------

def _etag_exempt(path: str) -> bool:
    return path in NO_STORE_PATHS or path.startswith(NO_STORE_PREFIXES)


class ETagMiddleware(BaseHTTPMiddleware):
    """Weak ETag for 200 GET responses; 304 when If-None-Match matches.

    Skips no-store paths. MD5 is a change detector here, not a security
    hash.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.method != "GET" or _etag_exempt(request.url.path):
            return await call_next(request)

        response = await call_next(request)
        if response.status_code != 200:
            return response

        body_chunks: list[bytes] = []
        async for chunk in response.body_iterator:  # type: ignore[union-attr]
            body_chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode())
        body = b"".join(body_chunks)

        headers = dict(response.headers)
        headers.pop("content-length", None)
        if not body:
            return Response(content=body, status_code=200, headers=headers, media_type=response.media_type)

        digest = hashlib.md5(body, usedforsecurity=False).hexdigest()  # noqa: S324
        etag = f'W/"{digest}"'

        if_none_match = request.headers.get("if-none-match", "")
        if etag in {t.strip() for t in if_none_match.split(",")}:
            return Response(status_code=304, headers={"ETag": etag})

        return Response(
            content=body,
            status_code=200,
            headers={**headers, "ETag": etag},
            media_type=response.media_type,
        )


# ---------------------------------------------------------------------------
# Structured request logging
# ---------------------------------------------------------------------------

def mask_ip(ip: str | None) -> str:
    """First two IPv4 octets, or the first four IPv6 groups."""
    if not ip:
        return "unknown"
    if ":" in ip:
        return ":".join(ip.split(":")[:4]) + "::*"
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.*.*"
    return "unknown"


def _log_request(request: Request, status_code: int, latency_ms: float, request_id: str) -> None:
    log_data = {
        "event": "http_request",
        "method": request.method,
        "path": request.url.path,
        "query": bool(request.url.query),
        "status": status_code,
        "latency_ms": latency_ms,
        "client_ip": mask_ip(request.client.host if request.client else None),
        "request_id": request_id,
    }
    if status_code >= 500:
        logger.error(json.dumps(log_data))
    elif status_code >= 400:
        logger.warning(json.dumps(log_data))
    else:
        logger.info(json.dumps(log_data))
