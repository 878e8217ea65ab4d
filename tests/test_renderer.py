"""Tests for renderer module."""

from pathlib import Path

import pytest
from aiohttp import web
from frontdoor.config import Config, ProxyConfig
from frontdoor.renderer import not_found_handler, resolve_handler
from yarl import URL

HANDLER_MODULE = '''
from aiohttp import web


async def handler(request, url):
    return web.Response(text="default")


async def pages(request, url):
    return web.Response(text="pages")


def create_handler(config):
    async def render(request, url):
        return web.Response(text=config.proxy.public_host)

    return render


settings = {"debug": False}
'''


@pytest.fixture
def handler_module(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Write an importable module exposing render handlers."""
    name = f"render_module_{tmp_path.name.replace('-', '_')}"
    (tmp_path / f"{name}.py").write_text(HANDLER_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return name


class TestResolveHandler:
    """Tests for resolve_handler()."""

    def test__module_only__resolves_default_attribute(self, handler_module: str) -> None:
        handler = resolve_handler(handler_module, Config())

        assert handler.__name__ == "handler"

    def test__explicit_attribute__resolved(self, handler_module: str) -> None:
        handler = resolve_handler(f"{handler_module}:pages", Config())

        assert handler.__name__ == "pages"

    @pytest.mark.asyncio
    async def test__factory__called_with_config(self, handler_module: str) -> None:
        """create_* attributes are factories receiving the loaded config."""
        config = Config(proxy=ProxyConfig(public_host="shop.example.com"))

        handler = resolve_handler(f"{handler_module}:create_handler", config)
        response = await handler(None, URL("/"))  # type: ignore[arg-type]

        assert isinstance(response, web.Response)
        assert response.text == "shop.example.com"

    def test__not_callable__raises_type_error(self, handler_module: str) -> None:
        with pytest.raises(TypeError, match="not a callable handler"):
            resolve_handler(f"{handler_module}:settings", Config())

    def test__missing_attribute__raises_attribute_error(self, handler_module: str) -> None:
        with pytest.raises(AttributeError):
            resolve_handler(f"{handler_module}:nope", Config())

    def test__missing_module__raises_module_not_found(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_handler("frontdoor_no_such_module:handler", Config())


class TestNotFoundHandler:
    """Tests for not_found_handler()."""

    @pytest.mark.asyncio
    async def test__any_request__returns_404(self) -> None:
        response = await not_found_handler(None, URL("/page"))  # type: ignore[arg-type]

        assert response.status == 404
