"""
climaguard.fetching — Outbound HTTP for every integration client.

One coroutine, fetch_json(), wraps httpx.AsyncClient with a fixed
timeout, the ClimaGuard User-Agent and an optional fixed-delay retry.
Any transport failure, timeout or non-2xx status surfaces as
UpstreamError so route handlers can choose between a fallback value
and a 500.

Tests swap the transport with use_transport(httpx.MockTransport(...));
nothing else in the codebase touches it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from climaguard.cache import make_key, response_cache
from climaguard.constants import DEFAULT_TIMEOUT, USER_AGENT

logger = logging.getLogger("climaguard.fetch")

_transport: httpx.AsyncBaseTransport | None = None


class UpstreamError(RuntimeError):
    """A third-party data provider could not be reached or answered badly."""

    def __init__(self, source: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.status_code = status_code


def use_transport(transport: httpx.AsyncBaseTransport | None) -> None:
    """Route all outbound requests through *transport* (None restores the network)."""
    global _transport
    _transport = transport


async def fetch_json(
    url: str,
    *,
    source: str,
    params: dict[str, Any] | None = None,
    method: str = "GET",
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 0,
    retry_delay: float = 1.0,
    cache: bool = True,
) -> Any:
    """Fetch *url* and return the decoded JSON object.

    Successful GET responses are kept in the process-wide response cache
    unless *cache* is False. Authenticated requests are never cached.

    Raises:
        UpstreamError: after the last attempt fails, including when a 2xx
            body is valid JSON but not an object.
    """
    cacheable = cache and method == "GET" and not headers
    key = make_key(source, url, params) if cacheable else None
    if key is not None:
        hit = response_cache.get(key)
        if hit is not None:
            return hit

    request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    last_error: UpstreamError | None = None
    for attempt in range(retries + 1):
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                headers=request_headers,
                transport=_transport,
            ) as client:
                response = await client.request(method, url, params=params, json=json_body)
            if response.status_code >= 400:
                raise UpstreamError(
                    source,
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            data = response.json()
            if not isinstance(data, dict):
                raise UpstreamError(source, "expected a JSON object")
            if key is not None:
                response_cache.put(key, data)
            return data
        except UpstreamError as exc:
            last_error = exc
        except httpx.TimeoutException:
            last_error = UpstreamError(source, f"timed out after {timeout}s")
        except httpx.HTTPError as exc:
            last_error = UpstreamError(source, type(exc).__name__)
        except ValueError:
            last_error = UpstreamError(source, "response was not valid JSON")

        logger.warning(json.dumps({
            "event": "upstream_error",
            "source": source,
            "attempt": attempt + 1,
            "error": last_error.message,
        }))
        if attempt < retries:
            await asyncio.sleep(retry_delay)

    assert last_error is not None
    raise last_error
