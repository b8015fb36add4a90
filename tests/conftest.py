"""pytest fixtures for COLCA backend tests.

Provides:
- test_environment: Autouse fixture marking the process as a test environment
- settings: Settings with dummy credentials for every external service
- png_bytes / png_asset: A tiny image payload
- route_recorder: Builds an httpx MockTransport from a URL -> response table
"""

import base64
import os

import httpx
import pytest

# Must be set before any Settings() is built so startup validation is skipped
os.environ["APP_ENV"] = "test"

from colca.core.config import Settings  # noqa: E402
from colca.models.asset import InlineAsset  # noqa: E402

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Keep APP_ENV=test and drop real credentials that may be exported in the shell."""
    monkeypatch.setenv("APP_ENV", "test")
    for key in ("BFL_API_KEY", "GEMINI_API_KEY", "UPLOAD_ENDPOINT", "BFL_CACHE_READY_ASSETS"):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def settings() -> Settings:
    """Settings with dummy credentials for all three services."""
    return Settings(
        APP_ENV="test",
        BFL_API_KEY="bfl-test-key",
        BFL_CREATE_URL="https://api.bfl.test/v1/flux-kontext-pro",
        GEMINI_API_KEY="gemini-test-key",
        UPLOAD_ENDPOINT="https://storage.test/upload",
        HTTP_TIMEOUT_SECONDS=5,
        GALLERY_DIR="does-not-exist",
    )  # type: ignore[call-arg]


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_asset() -> InlineAsset:
    return InlineAsset(data=PNG_BYTES, mime_type="image/png")


class RouteRecorder:
    """Serves canned responses by URL and records every request it sees."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        response = self.routes.get(url) or self.routes.get(url.split("?")[0])
        if response is None:
            return httpx.Response(404, text=f"no route for {url}")
        if callable(response):
            return response(request)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, list):
            # Sequential responses for repeated calls to the same URL
            return response.pop(0)
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def route_recorder():
    """Factory: route_recorder({url: httpx.Response | list | callable | Exception})."""
    return RouteRecorder
