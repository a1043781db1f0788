"""Application wiring: one supervisor and one status monitor per process."""

from __future__ import annotations

import logging
from types import TracebackType

from openclaw_desktop.config import SupervisorSettings, is_first_run
from openclaw_desktop.monitor import StatusMonitor, StatusObserver
from openclaw_desktop.supervisor import GatewaySupervisor, StartResult

logger = logging.getLogger(__name__)


class DesktopApp:
    """Starts the gateway at launch and guarantees it is gone at exit.

    On first run (no config yet) the gateway is not started; the setup
    wizard calls :func:`openclaw_desktop.commands.start_gateway` once it has
    written the config.
    """

    def __init__(
        self,
        settings: SupervisorSettings | None = None,
        *,
        supervisor: GatewaySupervisor | None = None,
        observers: list[StatusObserver] | None = None,
    ) -> None:
        self.settings = settings or SupervisorSettings()
        self.supervisor = supervisor or GatewaySupervisor(self.settings)
        self.monitor = StatusMonitor(
            observers or [],
            interval=self.settings.health_interval,
            first_interval=self.settings.health_first_interval,
            config_path=self.settings.config_path,
        )

    def start(self) -> StartResult | None:
        """Start the gateway (unless first run) and the status monitor.

        Returns the start result, or None on first run.
        """
        result: StartResult | None = None
        if is_first_run(self.settings.config_path):
            logger.info("First run: waiting for setup before starting the gateway")
        else:
            result = self.supervisor.ensure_started()
        self.monitor.start()
        return result

    def close(self) -> None:
        self.monitor.stop(timeout=1.0)
        self.supervisor.shutdown()

    def __enter__(self) -> DesktopApp:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
