"""CLI for the OpenClaw Desktop gateway supervisor.

Provides ``python -m openclaw_desktop run`` to supervise the gateway in the
foreground, plus one-shot ``status``, ``info`` and ``proxy`` queries.
"""

from __future__ import annotations

import dataclasses
import signal
import threading
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from openclaw_desktop.app import DesktopApp
from openclaw_desktop.commands import get_gateway_info
from openclaw_desktop.config import ConfigError, StartPolicy, SupervisorSettings, load_settings
from openclaw_desktop.logs import configure_logging, default_log_file
from openclaw_desktop.monitor import GatewayStatus, probe_status
from openclaw_desktop.proxy import build_overlay, detect_proxy, redact

app = typer.Typer(help="OpenClaw Desktop gateway supervisor.", no_args_is_help=True)
console = Console()

_STATUS_STYLE = {
    GatewayStatus.ONLINE: "bold green",
    GatewayStatus.OFFLINE: "bold red",
    GatewayStatus.NO_CONFIG: "bold yellow",
}

_config_option = typer.Option(
    None,
    "--config",
    help="Path to openclaw.json (default: ~/.openclaw/openclaw.json).",
)
_policy_option = typer.Option(
    None,
    "--policy",
    help="reuse: keep a healthy gateway; fresh-restart: always kill and respawn.",
)


def _settings(
    config: Path | None = None, policy: StartPolicy | None = None
) -> SupervisorSettings:
    """Environment settings with any command-line overrides applied."""
    settings = load_settings()
    overrides: dict[str, object] = {}
    if config is not None:
        overrides["config_path"] = config
    if policy is not None:
        overrides["start_policy"] = policy
    return dataclasses.replace(settings, **overrides)


def _print_status(status: GatewayStatus) -> None:
    console.print(f"[{_STATUS_STYLE[status]}]{status.label}[/{_STATUS_STYLE[status]}]")


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@app.command()
def run(
    config: Path | None = _config_option,
    policy: StartPolicy | None = _policy_option,
) -> None:
    """Start the gateway and report its status until interrupted."""
    settings = _settings(config, policy)
    configure_logging(settings.log_level, default_log_file())

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    with DesktopApp(settings, observers=[_print_status]) as desktop:
        result = desktop.start()
        if result is None:
            console.print("[bold yellow]No config yet; run the setup wizard first.[/bold yellow]")
        else:
            console.print(f"[bold]Gateway start:[/bold] {result}")
        try:
            while not stop.wait(0.5):
                pass
        except KeyboardInterrupt:
            pass
        console.print("[dim]Shutting down gateway…[/dim]")


# ---------------------------------------------------------------------------
# One-shot queries
# ---------------------------------------------------------------------------


@app.command()
def status(config: Path | None = _config_option) -> None:
    """Check gateway health once."""
    result = probe_status(_settings(config).config_path)
    _print_status(result)
    if result is GatewayStatus.NO_CONFIG:
        raise typer.Exit(code=1)


@app.command()
def info(config: Path | None = _config_option) -> None:
    """Show the gateway URL and port from openclaw.json."""
    try:
        gw = get_gateway_info(_settings(config).config_path)
    except ConfigError as exc:
        console.print(f"[bold red]✘[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    rows = [
        f"[bold]URL:[/bold]    {gw.url}",
        f"[bold]Port:[/bold]   {gw.port}",
        f"[bold]Token:[/bold]  {'(set)' if gw.token else '(not set)'}",
    ]
    console.print(Panel("\n".join(rows), title="gateway", border_style="blue"))


@app.command()
def proxy() -> None:
    """Show the proxy settings the gateway would be started with."""
    settings = detect_proxy()
    overlay = build_overlay(settings)
    rows = [f"[bold]Source:[/bold] {settings.source}"]
    rows.extend(f"{name}={redact(value)}" for name, value in sorted(overlay.items()))
    console.print(Panel("\n".join(rows), title="proxy overlay", border_style="cyan"))
