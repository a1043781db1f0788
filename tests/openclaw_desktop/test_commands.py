"""Tests for openclaw_desktop.commands."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from openclaw_desktop.commands import (
    GatewayInfo,
    check_gateway_status,
    get_gateway_info,
    get_gateway_url,
    start_gateway,
)
from openclaw_desktop.config import ConfigError
from openclaw_desktop.supervisor import StartResult

if TYPE_CHECKING:
    from conftest import FakeGateway


class TestGatewayInfo:
    def test_with_token(self, write_config: Callable[..., Path]) -> None:
        info = get_gateway_info(write_config(port=19000, token="tok"))
        assert info == GatewayInfo(
            url="http://127.0.0.1:19000",
            token="tok",
            port=19000,
            full_url="http://127.0.0.1:19000/#token=tok",
        )
        assert info.to_dict()["full_url"] == "http://127.0.0.1:19000/#token=tok"

    def test_missing_config_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            get_gateway_info(tmp_path / "missing.json")


class TestGatewayUrl:
    def test_without_token(self, write_config: Callable[..., Path]) -> None:
        assert get_gateway_url(write_config(port=18789)) == "http://127.0.0.1:18789"


class TestCheckGatewayStatus:
    def test_online(self, http_gateway: FakeGateway, write_config: Callable[..., Path]) -> None:
        http_gateway.routes["/"] = 200
        assert check_gateway_status(write_config(port=http_gateway.port)) is True

    def test_offline(self, free_port: int, write_config: Callable[..., Path]) -> None:
        assert check_gateway_status(write_config(port=free_port)) is False

    def test_missing_config_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            check_gateway_status(tmp_path / "missing.json")


class TestStartGateway:
    def test_delegates_to_supervisor(self) -> None:
        supervisor = MagicMock()
        supervisor.ensure_started.return_value = StartResult.SPAWNED
        assert start_gateway(supervisor) is StartResult.SPAWNED
        supervisor.ensure_started.assert_called_once_with()
