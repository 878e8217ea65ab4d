"""aiohttp server for Frontdoor.

Application factory, the catch-all request handler, and the startup sequence
the process supervisor depends on.
"""

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable

from aiohttp import web
from aiohttp.web_runner import GracefulExit
from yarl import URL

from frontdoor.app_keys import forwarded_key, render_handler_key, static_rules_key
from frontdoor.assets import build_rules, find_static_file, serve_static_file
from frontdoor.config import Config
from frontdoor.forwarded import ForwardedSettings, apply_forwarded
from frontdoor.renderer import RenderHandler, not_found_handler

logger = logging.getLogger(__name__)

READY_MESSAGE = "ready"


class StartupError(Exception):
    """The server could not start listening."""


@web.middleware
async def error_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Turn any unhandled error into a 500 so one request can't take the process down.

    When part of a response is already on the wire no second response can be
    sent; the connection is closed instead so the client sees a truncated body.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception(f"Error occurred handling {request.raw_path}")
        if request.writer.output_size > 0:
            if request.transport is not None:
                request.transport.close()
            # Never reaches the client: writing to the closed transport fails
            # and aiohttp drops the connection.
            return web.StreamResponse(status=500)
        return web.Response(status=500, text="Internal server error")


async def frontend_handler(request: web.Request) -> web.StreamResponse:
    """Normalize headers, serve a static asset if one matches, else render."""
    request = apply_forwarded(request, request.app[forwarded_key])
    url = URL(request.raw_path)

    file_path = await find_static_file(url.path, request.app[static_rules_key])
    if file_path is not None:
        return await serve_static_file(request, file_path)

    render = request.app[render_handler_key]
    return await render(request, url)


def create_app(config: Config, handler: RenderHandler | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        handler: Rendering engine request handler (default: answers 404)

    Returns:
        Configured aiohttp application

    Raises:
        ValueError: If a static directory resolves outside the root
    """
    app = web.Application(middlewares=[error_middleware])

    app[forwarded_key] = ForwardedSettings.from_config(config.proxy)
    app[static_rules_key] = build_rules(config.static)
    app[render_handler_key] = handler if handler is not None else not_found_handler

    app.router.add_route("*", "/{path:.*}", frontend_handler)

    return app


def signal_ready() -> None:
    """Tell the supervisor the listener is bound.

    When started by a Node-based process manager the IPC channel fd is in
    ``NODE_CHANNEL_FD``; the channel speaks newline-delimited JSON.
    """
    channel_fd = os.environ.get("NODE_CHANNEL_FD")
    if not channel_fd:
        return
    try:
        os.write(int(channel_fd), (json.dumps(READY_MESSAGE) + "\n").encode())
    except (ValueError, OSError) as e:
        logger.warning(f"Could not send ready signal: {e}")


async def serve(app: web.Application, host: str, port: int) -> None:
    """Bind, announce readiness, and serve until cancelled.

    Raises:
        StartupError: If the listening socket cannot be bound
    """
    runner = web.AppRunner(app, handle_signals=True)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        try:
            await site.start()
        except OSError as e:
            raise StartupError(f"Cannot listen on {host}:{port}: {e}") from e

        logger.info(f"> Ready on http://{host}:{port}")
        signal_ready()

        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def run_server(config: Config, handler: RenderHandler | None = None) -> None:
    """Run the server until interrupted.

    Args:
        config: Application configuration
        handler: Rendering engine request handler

    Raises:
        StartupError: If the listening socket cannot be bound
    """
    app = create_app(config, handler)
    try:
        asyncio.run(serve(app, config.server.host, config.server.port))
    except (GracefulExit, KeyboardInterrupt):
        logger.info("Server stopped")
