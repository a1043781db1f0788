"""Outbound proxy resolution for the gateway process.

The gateway talks to model providers and chat channels over the internet, so
on machines behind a proxy it needs ``HTTP_PROXY`` and friends. Desktop
launchers usually do not inherit the user's shell environment, so when the
variables are missing we fall back to the GNOME proxy settings.

The result is delivered as an explicit overlay that is handed to
``subprocess.Popen(env=...)``; nothing is ever interpolated into shell text.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

DEFAULT_NO_PROXY = "localhost,127.0.0.1,192.168.0.0/16,10.0.0.0/8,172.16.0.0/12,::1"

_SCHEMA_PROXY = "org.gnome.system.proxy"
_SCHEMA_HTTP = "org.gnome.system.proxy.http"
_SCHEMA_SOCKS = "org.gnome.system.proxy.socks"

# Node's global-agent only reads its own prefixed variables.
_NODE_HTTP_PROXY = "GLOBAL_AGENT_HTTP_PROXY"
_NODE_HTTPS_PROXY = "GLOBAL_AGENT_HTTPS_PROXY"
_NODE_NO_PROXY = "GLOBAL_AGENT_NO_PROXY"

GsettingsGetter = Callable[[str, str], str | None]


class ProxySource(StrEnum):
    """Where a proxy setting came from."""

    ENV = "env"
    GSETTINGS = "gsettings"
    NONE = "none"


@dataclass(frozen=True)
class ProxySettings:
    """Resolved proxy settings for one supervisor start."""

    http_proxy: str | None = None
    socks_proxy: str | None = None
    no_proxy: str = DEFAULT_NO_PROXY
    source: ProxySource = ProxySource.NONE

    @property
    def detected(self) -> bool:
        return bool(self.http_proxy or self.socks_proxy)


def gsettings_get(schema: str, key: str) -> str | None:
    """Read one GNOME setting via the ``gsettings`` CLI.

    Returns the value with GVariant string quotes stripped, or *None* when
    ``gsettings`` is missing or the key cannot be read.
    """
    try:
        result = subprocess.run(
            ["gsettings", "get", schema, key],
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip().strip("'")


def _first_env(environ: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def _host_port_url(scheme: str, host: str | None, port: str | None) -> str | None:
    """Build ``scheme://host:port/`` unless the host is empty or the port is unset."""
    if not host or not port or port == "0":
        return None
    return f"{scheme}://{host}:{port}/"


def _from_gsettings(get: GsettingsGetter) -> ProxySettings:
    if get(_SCHEMA_PROXY, "mode") != "manual":
        return ProxySettings()

    http = _host_port_url("http", get(_SCHEMA_HTTP, "host"), get(_SCHEMA_HTTP, "port"))
    socks = _host_port_url("socks", get(_SCHEMA_SOCKS, "host"), get(_SCHEMA_SOCKS, "port"))
    if http is None and socks is None:
        return ProxySettings()
    return ProxySettings(http_proxy=http, socks_proxy=socks, source=ProxySource.GSETTINGS)


def resolve_proxy(
    environ: Mapping[str, str] | None = None,
    get: GsettingsGetter | None = None,
) -> ProxySettings:
    """Resolve proxy settings, environment first, GNOME settings second.

    Args:
        environ: Environment to inspect (defaults to ``os.environ``).
        get: ``(schema, key) -> value`` reader (defaults to :func:`gsettings_get`).
    """
    if environ is None:
        environ = os.environ
    if get is None:
        get = gsettings_get

    http = _first_env(environ, "HTTP_PROXY", "http_proxy", "HTTPS_PROXY", "https_proxy")
    if http:
        socks = _first_env(environ, "ALL_PROXY", "all_proxy")
        return ProxySettings(http_proxy=http, socks_proxy=socks, source=ProxySource.ENV)

    return _from_gsettings(get)


def detect_proxy() -> ProxySettings:
    """Resolve proxy settings for display, without touching the environment."""
    return resolve_proxy()


def build_overlay(settings: ProxySettings) -> dict[str, str]:
    """Turn *settings* into environment assignments for the gateway process.

    Every variable is emitted in both upper- and lower-case form. The
    no-proxy list is always included so traffic to the local gateway is
    never proxied.
    """
    overlay: dict[str, str] = {}

    if settings.http_proxy:
        for name in ("HTTP_PROXY", "HTTPS_PROXY"):
            overlay[name] = settings.http_proxy
            overlay[name.lower()] = settings.http_proxy
        overlay[_NODE_HTTP_PROXY] = settings.http_proxy
        overlay[_NODE_HTTPS_PROXY] = settings.http_proxy
        overlay[_NODE_NO_PROXY] = settings.no_proxy

    if settings.socks_proxy:
        overlay["ALL_PROXY"] = settings.socks_proxy
        overlay["all_proxy"] = settings.socks_proxy

    overlay["NO_PROXY"] = settings.no_proxy
    overlay["no_proxy"] = settings.no_proxy
    return overlay


def apply_to_environ(
    overlay: Mapping[str, str],
    environ: MutableMapping[str, str] | None = None,
) -> None:
    """Export *overlay* into the current process so all descendants inherit it."""
    target = os.environ if environ is None else environ
    target.update(overlay)


def redact(url: str) -> str:
    """Mask the password part of a proxy URL."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


def describe(settings: ProxySettings) -> str:
    """One-line summary suitable for logs."""
    if not settings.detected:
        return "no proxy"
    parts = []
    if settings.http_proxy:
        parts.append(f"http={redact(settings.http_proxy)}")
    if settings.socks_proxy:
        parts.append(f"socks={redact(settings.socks_proxy)}")
    return f"{' '.join(parts)} (from {settings.source})"
