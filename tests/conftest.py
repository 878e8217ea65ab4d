"""Shared test fixtures."""

from pathlib import Path

import pytest
from aiohttp import web
from frontdoor.config import Config, ProxyConfig, StaticConfig
from multidict import CIMultiDictProxy
from yarl import URL

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


class RecordingRenderer:
    """Stand-in rendering engine that records what it was handed."""

    def __init__(self) -> None:
        self.requests: list[web.Request] = []
        self.urls: list[URL] = []

    @property
    def headers(self) -> CIMultiDictProxy[str]:
        return self.requests[-1].headers

    async def __call__(self, request: web.Request, url: URL) -> web.StreamResponse:
        self.requests.append(request)
        self.urls.append(url)
        return web.Response(text=f"rendered {url.path}")


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """Create a working directory with public and build-output assets."""
    root = tmp_path / "site"

    img = root / "public" / "img"
    img.mkdir(parents=True)
    (img / "logo.png").write_bytes(PNG_BYTES)

    css = root / "public" / "css"
    css.mkdir()
    (css / "site.css").write_text("body { margin: 0; }")

    js = root / "public" / "js"
    js.mkdir()
    (js / "vendor.js").write_text("window.vendor = true;")
    (js / "blob.bin").write_bytes(b"\x00\x01\x02")

    build = root / ".next" / "static"
    build.mkdir(parents=True)
    (build / "chunk123.js").write_text("self.__chunk = 123;")

    return root.resolve()


@pytest.fixture
def test_config(site_root: Path) -> Config:
    """Development-mode configuration rooted at site_root."""
    return Config(static=StaticConfig(root=site_root))


@pytest.fixture
def secure_config(site_root: Path) -> Config:
    """Production-mode configuration rooted at site_root."""
    return Config(
        proxy=ProxyConfig(mode="production", public_host="shop.example.com"),
        static=StaticConfig(root=site_root),
    )


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
