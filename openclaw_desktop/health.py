"""HTTP liveness checks against a running gateway."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0
POLL_INTERVAL = 0.5

# Shortest per-request timeout handed to requests near the end of a wait budget.
_MIN_PROBE_TIMEOUT = 0.05


def _get_ok(url: str, timeout: float) -> bool:
    # The gateway is on loopback: never route through HTTP(S)_PROXY.
    with requests.Session() as session:
        session.trust_env = False
        try:
            with session.get(url, timeout=timeout) as resp:
                return 200 <= resp.status_code < 300
        except requests.RequestException:
            return False


def check_health(base_url: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Return True if the gateway at *base_url* answers with a 2xx.

    Tries ``/health`` first and falls back to the root page, since some
    gateway builds do not serve a dedicated health path. Never raises.
    """
    base_url = base_url.rstrip("/")
    if _get_ok(f"{base_url}/health", timeout):
        return True
    return _get_ok(base_url, timeout)


def wait_until_healthy(
    base_url: str,
    max_seconds: float = 10.0,
    interval: float = POLL_INTERVAL,
    *,
    probe: Callable[[str, float], bool] = check_health,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll the gateway until it is healthy or *max_seconds* have elapsed.

    A timeout is not an error: the UI runs its own periodic checks.

    Returns:
        True if the gateway became healthy within the budget.
    """
    start = clock()
    deadline = start + max_seconds
    while True:
        sleep(interval)
        remaining = deadline - clock()
        # Both probe requests must fit inside what is left of the budget.
        timeout = max(min(DEFAULT_TIMEOUT, remaining / 2), _MIN_PROBE_TIMEOUT)
        if probe(base_url, timeout):
            elapsed_ms = int((clock() - start) * 1000)
            logger.info("Gateway ready after ~%dms", elapsed_ms)
            return True
        if clock() >= deadline:
            logger.warning("Gateway not ready after %gs, UI will retry", max_seconds)
            return False
