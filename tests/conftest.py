"""
tests/conftest.py — Shared upstream mock.

Every outbound request goes through one httpx.MockTransport that
dispatches on (host, path). Unrouted requests answer 404, which the
fetch layer reports as UpstreamError.
"""

from __future__ import annotations

from typing import Any, Callable, Union

import httpx
import pytest

from climaguard import fetching
from climaguard.cache import response_cache
from climaguard.pollution_store import pollution_store

OPEN_METEO = ("api.open-meteo.com", "/v1/forecast")
MARINE = ("marine-api.open-meteo.com", "/v1/marine")
NOAA = ("www.nhc.noaa.gov", "/CurrentStorms.json")
STAC = ("planetarycomputer.microsoft.com", "/api/stac/v1/search")
ONECALL = ("api.openweathermap.org", "/data/3.0/onecall")
OW_CURRENT = ("api.openweathermap.org", "/data/2.5/weather")
GFW = ("gateway.api.globalfishingwatch.org", "/v2/vessels/search")

Route = Union[dict, list, int, Callable[[httpx.Request], httpx.Response]]


class UpstreamRouter:
    """Route table for the mock transport, with a call log."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []

    def add(self, target: tuple[str, str], route: Route) -> None:
        """Register a JSON body, a bare status code, or a handler."""
        self.routes[target] = route

    def calls_to(self, target: tuple[str, str]) -> list[httpx.Request]:
        return [r for r in self.calls if (r.url.host, r.url.path) == target]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "unrouted"})
        if callable(route):
            return route(request)
        if isinstance(route, int):
            return httpx.Response(route)
        return httpx.Response(200, json=route)


@pytest.fixture()
def upstream() -> Any:
    """Install a fresh router; restore the network and clear state afterwards."""
    router = UpstreamRouter()
    response_cache.clear()
    fetching.use_transport(httpx.MockTransport(router))
    yield router
    fetching.use_transport(None)
    response_cache.clear()
    pollution_store.reset()


def sst_history(values: list[float]) -> dict:
    return {"daily": {"time": [f"d{i}" for i in range(len(values))], "sea_surface_temperature_mean": values}}
