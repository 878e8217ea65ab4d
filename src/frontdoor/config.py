"""Configuration management for Frontdoor.

Supports TOML configuration format with auto-discovery, environment
variables, and command-line overrides (lowest to highest precedence).
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import dotenv_values

CONFIG_FILENAME = "frontdoor.toml"
DOTENV_FILENAME = ".env"

PRODUCTION_MODE = "production"
DEFAULT_INTERNAL_HOST_MARKERS = ("0.0.0.0", "localhost", "127.0.0.1")
DEFAULT_PUBLIC_PREFIXES = ("/css/", "/js/", "/img/")

_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ServerConfig:
    """Listener configuration."""

    host: str = "localhost"
    port: int = 3000


@dataclass(frozen=True)
class ProxyConfig:
    """Reverse-proxy and deployment configuration."""

    mode: str = "development"
    public_host: str = "localhost"
    internal_host_markers: tuple[str, ...] = DEFAULT_INTERNAL_HOST_MARKERS
    backend_url: str | None = None

    @property
    def secure(self) -> bool:
        """Whether a TLS-terminating proxy sits in front of the process."""
        return self.mode == PRODUCTION_MODE


@dataclass(frozen=True)
class StaticConfig:
    """Static asset directories, relative to the trusted root."""

    root: Path = field(default_factory=Path.cwd)
    public_dir: str = "public"
    public_prefixes: tuple[str, ...] = DEFAULT_PUBLIC_PREFIXES
    build_dir: str = ".next/static"
    build_prefix: str = "/_next/static/"


@dataclass(frozen=True)
class RendererConfig:
    """Rendering engine configuration."""

    handler: str | None = None


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    static: StaticConfig = field(default_factory=StaticConfig)
    renderer: RendererConfig = field(default_factory=RendererConfig)
    config_path: Path | None = None

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """Load configuration from file and environment.

        If config_path is provided, loads from that file. Otherwise, searches
        for frontdoor.toml in current directory and parents. Environment
        variables are applied on top of whatever the file provides. When no
        environ is given, a .env file in the current directory fills in
        variables the process environment doesn't set.

        Args:
            config_path: Optional explicit path to config file
            environ: Environment mapping (default: .env plus os.environ)

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            config = cls._load_from_file(config_path)
        else:
            discovered_path = cls._discover_config()
            config = cls() if discovered_path is None else cls._load_from_file(discovered_path)

        if environ is None:
            environ = _process_environment()
        return config._with_environment(environ)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents."""
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _load_from_file(cls, path: Path) -> Config:
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        return cls(
            server=cls._parse_server(data.get("server")),
            proxy=cls._parse_proxy(data.get("proxy")),
            static=cls._parse_static(data.get("static"), path.parent),
            renderer=cls._parse_renderer(data.get("renderer")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "localhost")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 3000)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_proxy(cls, data: object) -> ProxyConfig:
        """Parse proxy configuration section.

        Args:
            data: Raw proxy section data

        Returns:
            ProxyConfig instance
        """
        if data is None:
            return ProxyConfig()

        if not isinstance(data, dict):
            raise ValueError("proxy section must be a dictionary")

        mode = data.get("mode", "development")
        if not isinstance(mode, str):
            raise ValueError("proxy.mode must be a string")

        public_host = data.get("public_host", "localhost")
        if not isinstance(public_host, str) or not public_host:
            raise ValueError("proxy.public_host must be a non-empty string")

        markers = _parse_string_list(
            data.get("internal_hosts", list(DEFAULT_INTERNAL_HOST_MARKERS)),
            "proxy.internal_hosts",
        )

        backend_url = data.get("backend_url")
        if backend_url is not None and not isinstance(backend_url, str):
            raise ValueError("proxy.backend_url must be a string")

        return ProxyConfig(
            mode=mode,
            public_host=public_host,
            internal_host_markers=markers,
            backend_url=backend_url,
        )

    @classmethod
    def _parse_static(cls, data: object, config_dir: Path) -> StaticConfig:
        """Parse static configuration section.

        Args:
            data: Raw static section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            StaticConfig instance
        """
        if data is None:
            return StaticConfig(root=config_dir)

        if not isinstance(data, dict):
            raise ValueError("static section must be a dictionary")

        root = data.get("root", ".")
        if not isinstance(root, str):
            raise ValueError("static.root must be a string")

        public_dir = data.get("public_dir", "public")
        if not isinstance(public_dir, str):
            raise ValueError("static.public_dir must be a string")

        public_prefixes = _parse_string_list(
            data.get("public_prefixes", list(DEFAULT_PUBLIC_PREFIXES)),
            "static.public_prefixes",
        )

        build_dir = data.get("build_dir", ".next/static")
        if not isinstance(build_dir, str):
            raise ValueError("static.build_dir must be a string")

        build_prefix = data.get("build_prefix", "/_next/static/")
        if not isinstance(build_prefix, str):
            raise ValueError("static.build_prefix must be a string")

        return StaticConfig(
            root=(config_dir / root).resolve(),
            public_dir=public_dir,
            public_prefixes=public_prefixes,
            build_dir=build_dir,
            build_prefix=build_prefix,
        )

    @classmethod
    def _parse_renderer(cls, data: object) -> RendererConfig:
        if data is None:
            return RendererConfig()

        if not isinstance(data, dict):
            raise ValueError("renderer section must be a dictionary")

        handler = data.get("handler")
        if handler is not None and not isinstance(handler, str):
            raise ValueError("renderer.handler must be a string")

        return RendererConfig(handler=handler)

    def _with_environment(self, environ: Mapping[str, str]) -> Config:
        """Apply recognized environment variables.

        PORT is read by its leading integer, so ``8080abc`` is 8080. A PORT
        with no leading integer, or one that isn't positive, falls back to
        the default port rather than failing.
        """
        raw_port = environ.get("PORT")
        port = _parse_port(raw_port) if raw_port else None

        root = environ.get("FRONTDOOR_ROOT")

        return self.with_overrides(
            host=environ.get("HOST") or None,
            port=port,
            mode=environ.get("APP_ENV") or None,
            public_host=environ.get("PUBLIC_HOST") or None,
            backend_url=environ.get("BACKEND_URL") or None,
            root=Path(root) if root else None,
            handler=environ.get("FRONTDOOR_HANDLER") or None,
        )

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        mode: str | None = None,
        public_host: str | None = None,
        backend_url: str | None = None,
        root: Path | None = None,
        handler: str | None = None,
    ) -> Config:
        """Create a new Config with overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            host: Override server.host
            port: Override server.port
            mode: Override proxy.mode
            public_host: Override proxy.public_host
            backend_url: Override proxy.backend_url
            root: Override static.root
            handler: Override renderer.handler

        Returns:
            New Config instance with overrides applied
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        proxy = self.proxy
        if mode is not None:
            proxy = replace(proxy, mode=mode)
        if public_host is not None:
            proxy = replace(proxy, public_host=public_host)
        if backend_url is not None:
            proxy = replace(proxy, backend_url=backend_url)

        static = self.static
        if root is not None:
            static = replace(self.static, root=root.resolve())

        renderer = self.renderer
        if handler is not None:
            renderer = replace(self.renderer, handler=handler)

        return replace(
            self,
            server=server,
            proxy=proxy,
            static=static,
            renderer=renderer,
        )


def _parse_string_list(value: object, name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{name} items must be strings")
        items.append(item)
    return tuple(items)


def _parse_port(value: str) -> int:
    match = _LEADING_INTEGER.match(value)
    if match is None:
        return ServerConfig.port
    port = int(match.group(1))
    return port if port > 0 else ServerConfig.port


def _process_environment() -> dict[str, str]:
    """Return os.environ with defaults from a .env file in the current directory.

    Variables already set in the process environment win over the file.
    """
    environ = {
        key: value
        for key, value in dotenv_values(Path.cwd() / DOTENV_FILENAME).items()
        if value is not None
    }
    environ.update(os.environ)
    return environ
