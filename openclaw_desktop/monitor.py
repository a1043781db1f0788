"""Background gateway status reporting for the tray and UI."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from enum import StrEnum
from pathlib import Path

from openclaw_desktop.config import ConfigError, load_config
from openclaw_desktop.health import check_health

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 15.0
DEFAULT_FIRST_INTERVAL = 5.0


class GatewayStatus(StrEnum):
    """Gateway status as published to observers."""

    ONLINE = "online"
    OFFLINE = "offline"
    NO_CONFIG = "no config"

    @property
    def label(self) -> str:
        """Tray menu text, e.g. ``Status: Online``."""
        return f"Status: {self.value.title()}"


StatusObserver = Callable[[GatewayStatus], None]


def probe_status(config_path: Path | None = None) -> GatewayStatus:
    """Load the config and run one health check."""
    try:
        cfg = load_config(config_path)
    except ConfigError:
        return GatewayStatus.NO_CONFIG
    return GatewayStatus.ONLINE if check_health(cfg.base_url) else GatewayStatus.OFFLINE


class StatusMonitor:
    """Periodically probes the gateway and publishes its status.

    Runs on a daemon thread. The first check happens after *first_interval*
    for quick feedback, then every *interval* seconds until :meth:`stop`.
    """

    def __init__(
        self,
        observers: Iterable[StatusObserver] = (),
        *,
        interval: float = DEFAULT_INTERVAL,
        first_interval: float = DEFAULT_FIRST_INTERVAL,
        config_path: Path | None = None,
    ) -> None:
        self._observers: list[StatusObserver] = list(observers)
        self._interval = interval
        self._first_interval = first_interval
        self._config_path = config_path
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last: GatewayStatus | None = None

    @property
    def last_status(self) -> GatewayStatus | None:
        return self._last

    def subscribe(self, observer: StatusObserver) -> None:
        self._observers.append(observer)

    def check_once(self) -> GatewayStatus:
        """Probe, publish to every observer, and return the status."""
        status = probe_status(self._config_path)
        if status != self._last:
            logger.info("Gateway status: %s", status)
        self._last = status
        for observer in list(self._observers):
            try:
                observer(status)
            except Exception:
                logger.warning("Status observer %r failed", observer, exc_info=True)
        return status

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="gateway-status-monitor", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the thread to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        delay = self._first_interval
        while not self._stop.wait(delay):
            self.check_once()
            delay = self._interval
