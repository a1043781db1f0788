"""Shared fixtures for openclaw_desktop tests."""

from __future__ import annotations

import json
import os
import socket
import stat
import sys
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest


@dataclass
class FakeGateway:
    """A local HTTP server standing in for the gateway's web endpoint."""

    port: int
    routes: dict[str, int] = field(default_factory=dict)
    hits: list[str] = field(default_factory=list)

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"


class _GatewayHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        gw: FakeGateway = self.server.gateway  # type: ignore[attr-defined]
        gw.hits.append(self.path)
        self.send_response(gw.routes.get(self.path, 404))
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture(autouse=True)
def _restore_environ() -> Iterator[None]:
    """The supervisor exports proxy variables into os.environ; undo that."""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def http_gateway() -> Iterator[FakeGateway]:
    """Serve on an ephemeral port; tests fill in ``routes`` (path -> status)."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _GatewayHandler)
    gw = FakeGateway(port=server.server_address[1])
    server.gateway = gw  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield gw
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def free_port() -> int:
    """A port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port: int = s.getsockname()[1]
    return port


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write an ``openclaw.json`` and return its path."""

    def _write(port: int = 18789, token: str = "", bind: str = "loopback") -> Path:
        path = tmp_path / "openclaw.json"
        data = {
            "gateway": {
                "port": port,
                "bind": bind,
                "auth": {"mode": "token" if token else "none", "token": token},
            }
        }
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_binary(tmp_path: Path) -> Path:
    """An ``openclaw`` stand-in that records its argv and NO_PROXY, then sleeps."""
    if sys.platform == "win32":
        pytest.skip("shell-script gateway stand-in needs POSIX")
    record = tmp_path / "invocation.txt"
    script = tmp_path / "bin" / "openclaw"
    script.parent.mkdir()
    script.write_text(
        "#!/bin/sh\n"
        f"printf '%s\\n' \"$*\" \"$NO_PROXY\" > '{record}'\n"
        "exec sleep 60\n",
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
