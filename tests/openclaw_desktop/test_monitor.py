"""Tests for openclaw_desktop.monitor."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from openclaw_desktop.monitor import GatewayStatus, StatusMonitor, probe_status

if TYPE_CHECKING:
    from conftest import FakeGateway


class TestGatewayStatus:
    def test_published_strings(self) -> None:
        assert GatewayStatus.ONLINE == "online"
        assert GatewayStatus.OFFLINE == "offline"
        assert GatewayStatus.NO_CONFIG == "no config"

    def test_tray_labels(self) -> None:
        assert GatewayStatus.ONLINE.label == "Status: Online"
        assert GatewayStatus.OFFLINE.label == "Status: Offline"
        assert GatewayStatus.NO_CONFIG.label == "Status: No Config"


class TestProbeStatus:
    """probe_status maps config + health to the tri-state status."""

    def test_online(
        self, http_gateway: FakeGateway, write_config: Callable[..., Path]
    ) -> None:
        http_gateway.routes["/health"] = 200
        assert probe_status(write_config(port=http_gateway.port)) is GatewayStatus.ONLINE

    def test_offline(self, free_port: int, write_config: Callable[..., Path]) -> None:
        assert probe_status(write_config(port=free_port)) is GatewayStatus.OFFLINE

    def test_no_config(self, tmp_path: Path) -> None:
        assert probe_status(tmp_path / "missing.json") is GatewayStatus.NO_CONFIG


class TestCheckOnce:
    """check_once publishes to every observer."""

    def test_publishes_to_all_observers(self, tmp_path: Path) -> None:
        seen_a: list[GatewayStatus] = []
        seen_b: list[GatewayStatus] = []
        monitor = StatusMonitor([seen_a.append], config_path=tmp_path / "missing.json")
        monitor.subscribe(seen_b.append)

        status = monitor.check_once()

        assert status is GatewayStatus.NO_CONFIG
        assert seen_a == seen_b == [GatewayStatus.NO_CONFIG]
        assert monitor.last_status is GatewayStatus.NO_CONFIG

    def test_failing_observer_does_not_stop_others(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        seen: list[GatewayStatus] = []

        def broken(status: GatewayStatus) -> None:
            raise RuntimeError("tray gone")

        monitor = StatusMonitor([broken, seen.append], config_path=tmp_path / "missing.json")
        with caplog.at_level(logging.WARNING):
            monitor.check_once()

        assert seen == [GatewayStatus.NO_CONFIG]
        assert "observer" in caplog.text

    def test_transitions_logged_once(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        monitor = StatusMonitor(config_path=tmp_path / "missing.json")
        with caplog.at_level(logging.INFO):
            monitor.check_once()
            monitor.check_once()
        assert caplog.text.count("Gateway status: no config") == 1


class TestBackgroundLoop:
    """The monitor thread ticks on its interval until stopped."""

    def test_ticks_and_stops(self, tmp_path: Path) -> None:
        ticks: list[GatewayStatus] = []
        got_two = threading.Event()

        def observer(status: GatewayStatus) -> None:
            ticks.append(status)
            if len(ticks) >= 2:
                got_two.set()

        monitor = StatusMonitor(
            [observer],
            interval=0.05,
            first_interval=0.01,
            config_path=tmp_path / "missing.json",
        )
        monitor.start()
        try:
            assert got_two.wait(5)
        finally:
            monitor.stop(timeout=5)

        count = len(ticks)
        time.sleep(0.2)
        assert len(ticks) == count

    def test_stop_interrupts_long_first_interval(self, tmp_path: Path) -> None:
        monitor = StatusMonitor(first_interval=60, config_path=tmp_path / "missing.json")
        monitor.start()
        start = time.monotonic()
        monitor.stop(timeout=5)
        assert time.monotonic() - start < 1
        assert monitor.last_status is None

    def test_stop_without_start(self) -> None:
        StatusMonitor().stop()
