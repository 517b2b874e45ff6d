"""Startup configuration: interface bindings, listen address, timeouts."""
from .settings import (
    RouterConfig,
    WanBinding,
    ConfigError,
    load_config,
    LAN_SUBNET,
)

__all__ = ["RouterConfig", "WanBinding", "ConfigError", "load_config", "LAN_SUBNET"]
