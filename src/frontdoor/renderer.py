"""Rendering engine interface.

The rendering engine is whatever produces page responses for requests that
are not static assets. Frontdoor only awaits it; once a request has been
handed over, Frontdoor never writes to that response itself.
"""

import importlib
from collections.abc import Awaitable
from typing import Protocol

from aiohttp import web
from yarl import URL

from frontdoor.config import Config


class RenderHandler(Protocol):
    """Request handler of the rendering engine.

    Receives the normalized request and its parsed target URL and resolves
    once the response is complete.
    """

    def __call__(self, request: web.Request, url: URL) -> Awaitable[web.StreamResponse]: ...


async def not_found_handler(request: web.Request, url: URL) -> web.StreamResponse:
    """Fallback used when no rendering engine is configured."""
    return web.Response(status=404, text="Not found")


def resolve_handler(import_string: str, config: Config) -> RenderHandler:
    """Resolve a ``"module:attribute"`` string to a render handler.

    When the attribute is omitted it defaults to ``handler``. An attribute
    named like a factory (``create_handler``) is called with the loaded
    configuration and must return the handler.

    Args:
        import_string: Dotted module path with optional ``:attribute`` suffix
        config: Loaded configuration, passed to factories

    Returns:
        The render handler

    Raises:
        ModuleNotFoundError: If the module cannot be imported
        AttributeError: If the attribute does not exist on the module
        TypeError: If the resolved object is not callable
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "handler"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if attr_name.startswith("create_") and callable(obj):
        obj = obj(config)

    if not callable(obj):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a callable handler"
        raise TypeError(msg)

    return obj
