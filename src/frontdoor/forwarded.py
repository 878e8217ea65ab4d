"""Reverse-proxy header normalization.

The listener only ever sees plaintext traffic from the TLS-terminating proxy.
In secure deployments the forwarded headers are rewritten so the rendering
engine builds absolute URLs for the externally visible ``https`` origin.
"""

from __future__ import annotations

from dataclasses import dataclass

from aiohttp import hdrs, web
from multidict import CIMultiDict
from yarl import URL

from frontdoor.config import DEFAULT_INTERNAL_HOST_MARKERS, ProxyConfig

SECURE_SCHEME = "https"
SECURE_PORT = "443"
X_FORWARDED_PORT = "X-Forwarded-Port"

_INSECURE_PREFIX = "http://"
_SECURE_PREFIX = "https://"


@dataclass(frozen=True)
class ForwardedSettings:
    """Inputs to header normalization, derived once at startup."""

    secure: bool = False
    canonical_host: str = "localhost"
    internal_host_markers: tuple[str, ...] = DEFAULT_INTERNAL_HOST_MARKERS

    @classmethod
    def from_config(cls, config: ProxyConfig) -> ForwardedSettings:
        return cls(
            secure=config.secure,
            canonical_host=config.public_host,
            internal_host_markers=config.internal_host_markers,
        )

    def is_internal_host(self, host: str) -> bool:
        """Return True if the host header names the internal listener.

        Matching is by substring, so ``localhost-staging.example.com`` also
        counts as internal.
        """
        return any(marker in host for marker in self.internal_host_markers)


@dataclass
class RequestContext:
    """Mutable view of one request's method, target and headers."""

    method: str
    url: str
    headers: CIMultiDict[str]

    @classmethod
    def from_request(cls, request: web.BaseRequest) -> RequestContext:
        return cls(
            method=request.method,
            url=request.raw_path,
            headers=CIMultiDict(request.headers),
        )


def normalize_forwarded(context: RequestContext, settings: ForwardedSettings) -> None:
    """Rewrite forwarded headers in place for a secure deployment.

    Does nothing unless ``settings.secure`` is set. Missing headers are
    substituted, never reported.
    """
    if not settings.secure:
        return

    headers = context.headers
    host = headers.get(hdrs.HOST)

    headers[hdrs.X_FORWARDED_PROTO] = SECURE_SCHEME
    headers[X_FORWARDED_PORT] = SECURE_PORT
    headers[hdrs.X_FORWARDED_HOST] = host or settings.canonical_host

    if not host or settings.is_internal_host(host):
        headers[hdrs.HOST] = settings.canonical_host

    if context.url.startswith(_INSECURE_PREFIX):
        context.url = _SECURE_PREFIX + context.url[len(_INSECURE_PREFIX) :]


def apply_forwarded(request: web.Request, settings: ForwardedSettings) -> web.Request:
    """Return the request as the rendering engine should see it.

    In secure deployments this is a clone carrying the rewritten headers,
    the ``https`` scheme and the external host, so ``request.url`` is the
    client-facing URL. Otherwise the request is returned untouched.
    """
    if not settings.secure:
        return request

    context = RequestContext.from_request(request)
    normalize_forwarded(context, settings)

    target = URL(context.url)
    if target.is_absolute():
        # The absolute target already names the authority; a Host with a port
        # can't be passed through clone(host=...).
        return request.clone(
            rel_url=_external_url(target, context.headers[hdrs.HOST]),
            headers=context.headers,
        )
    return request.clone(
        headers=context.headers,
        scheme=SECURE_SCHEME,
        host=context.headers[hdrs.HOST],
    )


def _external_url(target: URL, host: str) -> URL:
    """Return an absolute-form target re-rooted at the external https origin."""
    return URL.build(
        scheme=SECURE_SCHEME,
        authority=host,
        path=target.raw_path,
        query_string=target.raw_query_string,
        fragment=target.raw_fragment,
        encoded=True,
    )
