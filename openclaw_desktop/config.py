"""Gateway and supervisor configuration.

Two sources feed the supervisor:

- ``~/.openclaw/openclaw.json`` — the OpenClaw config file, read for the
  ``gateway`` section only (port, bind mode, auth token).
- Environment variables (optionally from a ``.env`` file) for the
  supervisor's own knobs, see :func:`load_settings`.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_PORT = 18789


class ConfigError(Exception):
    """Raised when the OpenClaw config file cannot be located, read or parsed."""


class BindMode(StrEnum):
    """Where the gateway listens."""

    LOOPBACK = "loopback"
    OTHER = "other"


class StartPolicy(StrEnum):
    """How the supervisor treats a gateway that is already running."""

    REUSE = "reuse"
    FRESH_RESTART = "fresh-restart"


@dataclass(frozen=True)
class GatewayConfig:
    """The ``gateway`` section of ``openclaw.json``."""

    port: int = DEFAULT_GATEWAY_PORT
    bind: str = "loopback"
    auth_mode: str = ""
    auth_token: str = ""

    @property
    def bind_mode(self) -> BindMode:
        return BindMode.LOOPBACK if self.bind == BindMode.LOOPBACK else BindMode.OTHER

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    @property
    def full_url(self) -> str:
        """Base URL with the auth token appended as a fragment, if there is one."""
        if not self.auth_token:
            return self.base_url
        return f"{self.base_url}/#token={self.auth_token}"


@dataclass(frozen=True)
class SupervisorSettings:
    """Immutable supervisor settings."""

    config_path: Path | None = None
    start_policy: StartPolicy = StartPolicy.REUSE
    ready_timeout: float = 10.0
    health_interval: float = 15.0
    health_first_interval: float = 5.0
    log_level: str = "INFO"


def config_path() -> Path:
    """Return the default config location, ``~/.openclaw/openclaw.json``.

    Raises:
        ConfigError: If the home directory cannot be determined.
    """
    try:
        home = Path.home()
    except (KeyError, RuntimeError) as exc:
        raise ConfigError("Could not determine home directory") from exc
    return home / ".openclaw" / "openclaw.json"


def openclaw_dir() -> Path:
    """Return ``~/.openclaw``."""
    return config_path().parent


def _resolve_path(path: Path | None) -> Path:
    return path if path is not None else config_path()


def is_first_run(path: Path | None = None) -> bool:
    """True when no config file exists yet (the setup wizard has not run)."""
    try:
        return not _resolve_path(path).exists()
    except ConfigError:
        return True


def load_config(path: Path | None = None) -> GatewayConfig:
    """Read the ``gateway`` section of ``openclaw.json``.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or has no
            usable ``gateway.port``.
    """
    path = _resolve_path(path)

    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse config: {exc}") from exc

    gw = data.get("gateway") if isinstance(data, dict) else None
    if not isinstance(gw, dict):
        raise ConfigError("Failed to parse config: missing 'gateway' section")

    port = gw.get("port")
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"Failed to parse config: invalid gateway.port {port!r}")

    auth = gw.get("auth") or {}
    if not isinstance(auth, dict):
        raise ConfigError("Failed to parse config: 'gateway.auth' must be an object")

    return GatewayConfig(
        port=port,
        bind=str(gw.get("bind") or "loopback"),
        auth_mode=str(auth.get("mode") or ""),
        auth_token=str(auth.get("token") or ""),
    )


def _parse_float_env(name: str, default: str) -> float:
    """Parse a numeric environment variable with a clear error on bad values."""
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from exc


def load_settings() -> SupervisorSettings:
    """Load supervisor settings from environment variables.

    Reads a ``.env`` file if present, then builds :class:`SupervisorSettings` from:

    - ``OPENCLAW_CONFIG_PATH`` (default ``~/.openclaw/openclaw.json``)
    - ``OPENCLAW_START_POLICY`` (``reuse`` or ``fresh-restart``, default ``reuse``)
    - ``OPENCLAW_READY_TIMEOUT`` (default ``10.0`` seconds)
    - ``OPENCLAW_HEALTH_INTERVAL`` (default ``15.0`` seconds)
    - ``OPENCLAW_HEALTH_FIRST_INTERVAL`` (default ``5.0`` seconds)
    - ``OPENCLAW_LOG_LEVEL`` (default ``INFO``)
    """
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    raw_path = os.environ.get("OPENCLAW_CONFIG_PATH")
    raw_policy = os.environ.get("OPENCLAW_START_POLICY", StartPolicy.REUSE.value)
    try:
        policy = StartPolicy(raw_policy.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in StartPolicy)
        raise ValueError(
            f"Environment variable OPENCLAW_START_POLICY must be one of {choices}, "
            f"got {raw_policy!r}"
        ) from exc

    settings = SupervisorSettings(
        config_path=Path(raw_path).expanduser() if raw_path else None,
        start_policy=policy,
        ready_timeout=_parse_float_env("OPENCLAW_READY_TIMEOUT", "10.0"),
        health_interval=_parse_float_env("OPENCLAW_HEALTH_INTERVAL", "15.0"),
        health_first_interval=_parse_float_env("OPENCLAW_HEALTH_FIRST_INTERVAL", "5.0"),
        log_level=os.environ.get("OPENCLAW_LOG_LEVEL", "INFO").upper(),
    )

    if settings.health_interval <= 0:
        raise ValueError("OPENCLAW_HEALTH_INTERVAL must be positive")
    if settings.start_policy is StartPolicy.FRESH_RESTART:
        logger.info("Start policy is fresh-restart: running gateways will be killed on start")

    return settings
