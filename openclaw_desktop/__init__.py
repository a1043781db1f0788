"""OpenClaw Desktop: supervisor for the local OpenClaw gateway process."""
