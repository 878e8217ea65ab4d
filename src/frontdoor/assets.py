"""Static asset serving.

Serves files under a few fixed URL prefixes straight from disk, bypassing
the rendering engine. Files are streamed in chunks so memory use stays
bounded regardless of file size.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO

from aiohttp import hdrs, web

from frontdoor.config import StaticConfig

logger = logging.getLogger(__name__)

CONTENT_TYPES = MappingProxyType(
    {
        ".html": "text/html",
        ".js": "application/javascript",
        ".css": "text/css",
        ".json": "application/json",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".gif": "image/gif",
        ".svg": "image/svg+xml",
        ".ico": "image/x-icon",
        ".woff": "font/woff",
        ".woff2": "font/woff2",
        ".ttf": "font/ttf",
        ".eot": "application/vnd.ms-fontobject",
    }
)
DEFAULT_CONTENT_TYPE = "application/octet-stream"
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"

CHUNK_SIZE = 256 * 1024


def content_type_for(path: Path) -> str:
    """Return the MIME type for a file based on its extension."""
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


@dataclass(frozen=True)
class StaticRule:
    """Map a URL prefix onto a directory.

    With ``strip_prefix`` the prefix is removed before joining, so
    ``/_next/static/a.js`` maps to ``<directory>/a.js``. Without it the whole
    URL path is joined, so ``/img/a.png`` maps to ``<directory>/img/a.png``.
    """

    prefix: str
    directory: Path
    strip_prefix: bool = False

    def candidate(self, path: str) -> Path | None:
        """Return the file-system path for a URL path, or None if unmatched.

        Paths that would escape the rule's directory do not match.
        """
        if not path.startswith(self.prefix):
            return None

        relative = path[len(self.prefix) :] if self.strip_prefix else path
        joined = os.path.normpath(os.path.join(self.directory, relative.lstrip("/")))
        if os.path.commonpath([joined, self.directory]) != str(self.directory):
            return None
        return Path(joined)


def build_rules(config: StaticConfig) -> tuple[StaticRule, ...]:
    """Build the ordered rule set from configuration.

    Raises:
        ValueError: If a directory resolves outside the configured root
    """
    root = config.root.resolve()
    public_dir = _resolve_under(root, config.public_dir)
    build_dir = _resolve_under(root, config.build_dir)

    rules = [StaticRule(prefix, public_dir) for prefix in config.public_prefixes]
    rules.append(StaticRule(config.build_prefix, build_dir, strip_prefix=True))
    return tuple(rules)


def _resolve_under(root: Path, directory: str) -> Path:
    resolved = (root / directory).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Static directory {directory!r} resolves outside {root}")
    return resolved


def _first_existing(path: str, rules: tuple[StaticRule, ...]) -> Path | None:
    for rule in rules:
        candidate = rule.candidate(path)
        if candidate is not None and candidate.is_file():
            return candidate
    return None


async def find_static_file(path: str, rules: tuple[StaticRule, ...]) -> Path | None:
    """Return the first regular file a rule maps the URL path to.

    The file system is only consulted when at least one prefix matches.
    """
    if not any(path.startswith(rule.prefix) for rule in rules):
        return None
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _first_existing, path, rules)


def _open_file(path: Path) -> tuple[BinaryIO, int]:
    fobj = path.open("rb")
    try:
        size = os.fstat(fobj.fileno()).st_size
    except OSError:
        fobj.close()
        raise
    return fobj, size


async def serve_static_file(request: web.Request, path: Path) -> web.StreamResponse:
    """Stream a file to the client with long-lived caching headers.

    Errors never propagate: a failure to open the file answers 500, a read
    failure before anything was sent answers 404, and a read failure after
    the headers went out aborts the connection.
    """
    loop = asyncio.get_running_loop()

    try:
        fobj, size = await loop.run_in_executor(None, _open_file, path)
    except OSError as e:
        logger.error(f"Error opening static file {path}: {e}")
        return web.Response(status=500, text="Internal server error")

    try:
        try:
            chunk = await loop.run_in_executor(None, fobj.read, CHUNK_SIZE)
        except OSError as e:
            logger.error(f"Error serving static file {path}: {e}")
            return web.Response(status=404, text="File not found")

        response = web.StreamResponse(
            headers={
                hdrs.CONTENT_TYPE: content_type_for(path),
                hdrs.CACHE_CONTROL: IMMUTABLE_CACHE_CONTROL,
            },
        )
        response.content_length = size
        await response.prepare(request)

        if request.method == hdrs.METH_HEAD:
            await response.write_eof()
            return response

        while chunk:
            await response.write(chunk)
            try:
                chunk = await loop.run_in_executor(None, fobj.read, CHUNK_SIZE)
            except OSError as e:
                logger.error(f"Error serving static file {path}: {e}")
                _abort(request, response)
                return response

        await response.write_eof()
        return response
    finally:
        fobj.close()


def _abort(request: web.Request, response: web.StreamResponse) -> None:
    # Headers are already on the wire; dropping the connection is the only
    # way left to tell the client the body is incomplete.
    response.force_close()
    if request.transport is not None:
        request.transport.close()
