"""Tests for forwarded header normalization."""

import pytest
from frontdoor.config import ProxyConfig
from frontdoor.forwarded import ForwardedSettings, RequestContext, normalize_forwarded
from multidict import CIMultiDict

SECURE = ForwardedSettings(secure=True, canonical_host="shop.example.com")


def _context(url: str = "/", **headers: str) -> RequestContext:
    return RequestContext(method="GET", url=url, headers=CIMultiDict(headers))


class TestNormalizeForwardedInsecure:
    """Tests for normalize_forwarded() outside secure deployments."""

    def test__not_secure__leaves_request_unchanged(self) -> None:
        """Development mode is a no-op."""
        context = _context("http://0.0.0.0:3000/page", Host="0.0.0.0:3000")

        normalize_forwarded(context, ForwardedSettings(secure=False))

        assert context.url == "http://0.0.0.0:3000/page"
        assert dict(context.headers) == {"Host": "0.0.0.0:3000"}

    def test__not_secure__keeps_existing_forwarded_headers(self) -> None:
        context = _context(Host="a.example", **{"X-Forwarded-Proto": "http"})

        normalize_forwarded(context, ForwardedSettings(secure=False))

        assert context.headers["X-Forwarded-Proto"] == "http"
        assert "X-Forwarded-Port" not in context.headers


class TestNormalizeForwardedSecure:
    """Tests for normalize_forwarded() in secure deployments."""

    def test__public_host__forwarded_headers_set(self) -> None:
        """A legitimate Host is kept and echoed into X-Forwarded-Host."""
        context = _context(Host="shop.example.com")

        normalize_forwarded(context, SECURE)

        assert context.headers["X-Forwarded-Proto"] == "https"
        assert context.headers["X-Forwarded-Port"] == "443"
        assert context.headers["X-Forwarded-Host"] == "shop.example.com"
        assert context.headers["Host"] == "shop.example.com"

    def test__wildcard_bind_host__replaced_with_canonical(self) -> None:
        context = _context(Host="0.0.0.0:3000")

        normalize_forwarded(context, SECURE)

        assert context.headers["Host"] == "shop.example.com"
        assert context.headers["X-Forwarded-Host"] == "0.0.0.0:3000"

    @pytest.mark.parametrize("host", ["localhost", "localhost:3000", "127.0.0.1:3000"])
    def test__loopback_host__replaced_with_canonical(self, host: str) -> None:
        context = _context(Host=host)

        normalize_forwarded(context, SECURE)

        assert context.headers["Host"] == "shop.example.com"

    def test__missing_host__canonical_used_everywhere(self) -> None:
        """Absent Host is substituted, never an error."""
        context = _context()

        normalize_forwarded(context, SECURE)

        assert context.headers["Host"] == "shop.example.com"
        assert context.headers["X-Forwarded-Host"] == "shop.example.com"

    def test__empty_host__treated_as_missing(self) -> None:
        context = _context(Host="")

        normalize_forwarded(context, SECURE)

        assert context.headers["Host"] == "shop.example.com"
        assert context.headers["X-Forwarded-Host"] == "shop.example.com"

    def test__host_containing_marker__also_replaced(self) -> None:
        """Markers match anywhere in the Host value."""
        context = _context(Host="localhost-staging.example.com")

        normalize_forwarded(context, SECURE)

        assert context.headers["Host"] == "shop.example.com"

    def test__custom_markers__only_those_match(self) -> None:
        settings = ForwardedSettings(
            secure=True,
            canonical_host="shop.example.com",
            internal_host_markers=("internal.lan",),
        )
        kept = _context(Host="localhost:3000")
        replaced = _context(Host="web-1.internal.lan")

        normalize_forwarded(kept, settings)
        normalize_forwarded(replaced, settings)

        assert kept.headers["Host"] == "localhost:3000"
        assert replaced.headers["Host"] == "shop.example.com"

    def test__existing_forwarded_headers__overwritten(self) -> None:
        context = _context(
            Host="shop.example.com",
            **{"X-Forwarded-Proto": "http", "X-Forwarded-Port": "80"},
        )

        normalize_forwarded(context, SECURE)

        assert context.headers.getall("X-Forwarded-Proto") == ["https"]
        assert context.headers.getall("X-Forwarded-Port") == ["443"]

    def test__absolute_http_url__rewritten_to_https(self) -> None:
        context = _context("http://shop.example.com/cart?step=2", Host="shop.example.com")

        normalize_forwarded(context, SECURE)

        assert context.url == "https://shop.example.com/cart?step=2"

    @pytest.mark.parametrize("url", ["/cart", "https://shop.example.com/", "/redirect?to=http://x"])
    def test__other_urls__left_alone(self, url: str) -> None:
        context = _context(url, Host="shop.example.com")

        normalize_forwarded(context, SECURE)

        assert context.url == url

    def test__other_headers__untouched(self) -> None:
        context = _context(Host="shop.example.com", Cookie="session=abc")

        normalize_forwarded(context, SECURE)

        assert context.headers["Cookie"] == "session=abc"


class TestForwardedSettings:
    """Tests for ForwardedSettings.from_config()."""

    def test__production_mode__secure(self) -> None:
        settings = ForwardedSettings.from_config(
            ProxyConfig(mode="production", public_host="shop.example.com"),
        )

        assert settings.secure is True
        assert settings.canonical_host == "shop.example.com"
        assert settings.internal_host_markers == ("0.0.0.0", "localhost", "127.0.0.1")

    @pytest.mark.parametrize("mode", ["development", "test", "Production"])
    def test__other_modes__not_secure(self, mode: str) -> None:
        settings = ForwardedSettings.from_config(ProxyConfig(mode=mode))

        assert settings.secure is False
