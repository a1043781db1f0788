"""Lifecycle of the OpenClaw gateway child process."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
import time
from enum import StrEnum
from pathlib import Path
from typing import IO

from openclaw_desktop.config import (
    ConfigError,
    StartPolicy,
    SupervisorSettings,
    load_config,
    openclaw_dir,
)
from openclaw_desktop.health import check_health, wait_until_healthy
from openclaw_desktop.proxy import apply_to_environ, build_overlay, describe, resolve_proxy

logger = logging.getLogger(__name__)

GATEWAY_COMMAND = "openclaw"
# Foreground subcommand; ``gateway start`` hands the process to systemd instead.
GATEWAY_ARGS = ("gateway", "run")

_KILL_TIMEOUT = 5.0
_STRAGGLER_POLL = 0.1
_GATEWAY_LOG_MAX_BYTES = 1024 * 1024


class StartResult(StrEnum):
    """Outcome of :meth:`GatewaySupervisor.ensure_started`."""

    NO_CONFIG = "no-config"
    REUSED = "reused"
    SPAWNED = "spawned"
    SPAWN_FAILED = "spawn-failed"


def find_gateway_binary(home: Path | None = None) -> str | None:
    """Locate the ``openclaw`` executable.

    Checks the per-user npm and ``~/.local`` install locations first, then
    ``PATH``. Returns *None* if nothing is found.
    """
    if home is None:
        try:
            home = Path.home()
        except (KeyError, RuntimeError):
            home = None
    if home is not None:
        for candidate in (
            home / ".npm-global" / "bin" / GATEWAY_COMMAND,
            home / ".local" / "bin" / GATEWAY_COMMAND,
        ):
            if candidate.exists():
                return str(candidate)
    return shutil.which(GATEWAY_COMMAND)


def straggler_pattern(binary: str) -> str:
    """``pkill -f`` regex for gateway command lines started from *binary*.

    Matches both a direct launch (``openclaw gateway run``) and the npm shim's
    ``node .../openclaw/openclaw.mjs gateway run``.
    """
    return f"{Path(binary).name}.* {' '.join(GATEWAY_ARGS)}"


def _any_matching(pattern: str) -> bool:
    try:
        result = subprocess.run(["pgrep", "-f", pattern], capture_output=True)
    except OSError:
        return False
    return result.returncode == 0


def kill_stragglers(binary: str, grace: float = _KILL_TIMEOUT) -> None:
    """Best-effort kill of any gateway process, including ones we did not spawn.

    Sends SIGTERM and waits up to *grace* seconds for every match to exit.
    Whatever is still running after that gets SIGKILL. On return no old
    gateway holds the port any more.
    """
    pattern = straggler_pattern(binary)
    try:
        result = subprocess.run(["pkill", "-f", pattern], capture_output=True)
    except OSError as exc:
        logger.debug("pkill unavailable: %s", exc)
        return
    if result.returncode != 0:
        return
    logger.info("Stopping running gateway processes matching %r", pattern)

    deadline = time.monotonic() + grace
    while _any_matching(pattern):
        if time.monotonic() >= deadline:
            logger.warning("Gateway processes matching %r ignored SIGTERM, killing", pattern)
            subprocess.run(["pkill", "-9", "-f", pattern], capture_output=True)
            return
        time.sleep(_STRAGGLER_POLL)


class GatewaySupervisor:
    """Owns the single gateway child process of this application.

    Construct one at startup and pass it to whatever needs to start or stop
    the gateway. All access to the process handle goes through ``_lock``;
    the lock is never held while waiting for readiness.
    """

    def __init__(
        self,
        settings: SupervisorSettings | None = None,
        *,
        binary: str | None = None,
        log_dir: Path | None = None,
    ) -> None:
        self._settings = settings or SupervisorSettings()
        self._binary = binary
        self._log_dir = log_dir
        self._lock = threading.Lock()
        self._proc: subprocess.Popen[bytes] | None = None

    @property
    def settings(self) -> SupervisorSettings:
        return self._settings

    @property
    def pid(self) -> int | None:
        """PID of the tracked gateway process, or None if there is none."""
        with self._lock:
            self._reap_locked()
            return self._proc.pid if self._proc is not None else None

    @property
    def is_running(self) -> bool:
        return self.pid is not None

    def ensure_started(self) -> StartResult:
        """Start the gateway unless that is impossible or unnecessary.

        Never raises: every failure is logged and the application carries on
        without a gateway.
        """
        try:
            cfg = load_config(self._settings.config_path)
        except ConfigError as exc:
            logger.error("Cannot read config to start gateway: %s", exc)
            return StartResult.NO_CONFIG

        policy = self._settings.start_policy
        if policy is StartPolicy.REUSE and check_health(cfg.base_url):
            logger.info("Gateway already running at %s, reusing", cfg.base_url)
            return StartResult.REUSED

        proxy = resolve_proxy()
        logger.info("Proxy: %s", describe(proxy))
        overlay = build_overlay(proxy)
        apply_to_environ(overlay)
        env = {**os.environ, **overlay}

        binary = self._binary or find_gateway_binary() or GATEWAY_COMMAND

        with self._lock:
            self._kill_locked()
            if policy is StartPolicy.FRESH_RESTART:
                kill_stragglers(binary)

            stderr = self._open_gateway_log()
            try:
                proc = subprocess.Popen(
                    [binary, *GATEWAY_ARGS],
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr if stderr is not None else subprocess.DEVNULL,
                    env=env,
                    start_new_session=True,
                )
            except OSError as exc:
                logger.error("Failed to start gateway via %s: %s", binary, exc)
                return StartResult.SPAWN_FAILED
            finally:
                # The child keeps its own descriptor.
                if stderr is not None:
                    stderr.close()
            self._proc = proc

        logger.info("Gateway spawned (pid %d) via %s", proc.pid, binary)
        wait_until_healthy(cfg.base_url, self._settings.ready_timeout)
        return StartResult.SPAWNED

    def shutdown(self) -> None:
        """Kill the gateway process, if any, and wait for it to exit."""
        with self._lock:
            self._kill_locked()

    def _reap_locked(self) -> None:
        if self._proc is not None and self._proc.poll() is not None:
            logger.info(
                "Gateway process exited (pid %d, code %s)",
                self._proc.pid,
                self._proc.returncode,
            )
            self._proc = None

    def _kill_locked(self) -> None:
        proc = self._proc
        if proc is None:
            return
        self._proc = None
        try:
            if proc.poll() is None:
                proc.kill()
            proc.wait(timeout=_KILL_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("Could not stop gateway (pid %d): %s", proc.pid, exc)
            return
        logger.info("Gateway process stopped (pid %d)", proc.pid)

    def _open_gateway_log(self) -> IO[bytes] | None:
        """Open ``gateway.log`` for the child's stderr, rotating it if it grew too big."""
        try:
            log_dir = self._log_dir or openclaw_dir() / "logs"
            log_dir.mkdir(parents=True, exist_ok=True)
            path = log_dir / "gateway.log"
            if path.exists() and path.stat().st_size > _GATEWAY_LOG_MAX_BYTES:
                path.replace(path.with_name("gateway.log.1"))
            return path.open("ab")
        except (ConfigError, OSError) as exc:
            logger.warning("Gateway stderr will be discarded: %s", exc)
            return None
