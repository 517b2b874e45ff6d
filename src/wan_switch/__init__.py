"""wan-switch: per-host WAN egress selection through Linux policy routing."""

__version__ = "1.0.0"
