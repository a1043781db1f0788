"""Queries the UI layer runs against the gateway."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from openclaw_desktop.config import load_config
from openclaw_desktop.health import check_health
from openclaw_desktop.supervisor import GatewaySupervisor, StartResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayInfo:
    """Connection details for the gateway's web UI."""

    url: str
    token: str
    port: int
    full_url: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_gateway_info(config_path: Path | None = None) -> GatewayInfo:
    """Raises :class:`~openclaw_desktop.config.ConfigError` if config is unavailable."""
    cfg = load_config(config_path)
    return GatewayInfo(
        url=cfg.base_url,
        token=cfg.auth_token,
        port=cfg.port,
        full_url=cfg.full_url,
    )


def check_gateway_status(config_path: Path | None = None) -> bool:
    cfg = load_config(config_path)
    return check_health(cfg.base_url)


def get_gateway_url(config_path: Path | None = None) -> str:
    return load_config(config_path).full_url


def start_gateway(supervisor: GatewaySupervisor) -> StartResult:
    """Start the gateway on request, e.g. right after the setup wizard finishes."""
    result = supervisor.ensure_started()
    logger.info("Start requested from UI: %s", result)
    return result
