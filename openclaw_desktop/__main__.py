"""Allow running with ``python -m openclaw_desktop``.

Subcommands
-----------
- ``python -m openclaw_desktop run``     → supervise the gateway in the foreground
- ``python -m openclaw_desktop status``  → one health check
- ``python -m openclaw_desktop info``    → gateway URL and port
- ``python -m openclaw_desktop proxy``   → resolved proxy overlay
"""

from openclaw_desktop.cli import app

app(prog_name="openclaw-desktop")
