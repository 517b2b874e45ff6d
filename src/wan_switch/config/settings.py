"""Router configuration resolved once at startup.

Sources, lowest precedence first:
- Built-in defaults (wan0=eth0, wan1=eth1, lan=eth2)
- Optional YAML file (``--config`` or WAN_SWITCH_CONFIG)
- Environment variables (WAN0, WAN1, ... WANn, LAN, WAN_SWITCH_*)

Example YAML:

```yaml
wans:
  wan0: eth0
  wan1:
    interface: eth1
    gateway: 192.0.2.1
  wan2: ppp0
lan: eth2
listen:
  host: 127.0.0.1
  port: 32599
command_timeout: 10
```
"""
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

# Fixed, not configurable
LAN_SUBNET = "10.40.0.0/20"

DEFAULT_WANS = {"wan0": "eth0", "wan1": "eth1"}
DEFAULT_LAN = "eth2"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 32599
DEFAULT_COMMAND_TIMEOUT = 10.0
DEFAULT_IP_BINARY = "ip"

# Routing table ids: wan0 -> 100, wan1 -> 200, ...
TABLE_ID_STEP = 100

WAN_NAME_PATTERN = re.compile(r"^wan(\d+)$")
WAN_ENV_PATTERN = re.compile(r"^WAN(\d+)$")


class ConfigError(Exception):
    """Invalid router configuration."""
    pass


@dataclass(frozen=True)
class WanBinding:
    """A logical WAN slot bound to a physical interface."""
    name: str
    interface: str
    table: int
    gateway: Optional[str] = None


@dataclass(frozen=True)
class RouterConfig:
    """Immutable process-wide configuration."""
    wans: tuple[WanBinding, ...]
    lan: str
    lan_subnet: str = LAN_SUBNET
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    ip_binary: str = DEFAULT_IP_BINARY

    @property
    def primary_wan(self) -> WanBinding:
        return self.wans[0]

    @property
    def wan_names(self) -> list[str]:
        return [wan.name for wan in self.wans]

    def get_wan(self, name: str) -> WanBinding:
        """Look up a WAN slot by logical name.

        Raises:
            KeyError: If no WAN with that name is configured
        """
        for wan in self.wans:
            if wan.name == name:
                return wan
        raise KeyError(f"Unknown WAN: {name}")

    def interface_map(self) -> dict[str, str]:
        """Logical name -> physical interface, WANs first then lan."""
        result = {wan.name: wan.interface for wan in self.wans}
        result["lan"] = self.lan
        return result


def wan_index(name: str) -> int:
    match = WAN_NAME_PATTERN.match(name)
    if not match:
        raise ConfigError(f"Invalid WAN name '{name}': expected wan<N>")
    return int(match.group(1))


def _parse_wan_entry(name: str, entry: Any) -> tuple[str, Optional[str]]:
    """Accept ``wanN: eth0`` or ``wanN: {interface: eth0, gateway: ...}``."""
    if isinstance(entry, str):
        return entry, None
    if isinstance(entry, dict):
        interface = entry.get("interface")
        if not interface:
            raise ConfigError(f"WAN '{name}' is missing 'interface'")
        gateway = entry.get("gateway")
        return str(interface), str(gateway) if gateway is not None else None
    raise ConfigError(f"Invalid definition for WAN '{name}': {entry!r}")


def _first_set(*values: Any) -> Any:
    """First value that is set; empty strings (unset env vars) are skipped."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _section(data: dict, key: str) -> dict:
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(section).__name__}")
    return section


def _load_yaml(config_path: Path) -> dict:
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{config_path}: invalid YAML: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")
    return data


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RouterConfig:
    """
    Build the router configuration.

    Args:
        config_path: Optional YAML file; falls back to WAN_SWITCH_CONFIG
        environ: Environment mapping (defaults to os.environ)

    Returns:
        RouterConfig

    Raises:
        ConfigError: If any value is invalid
    """
    env = os.environ if environ is None else environ
    config_path = config_path or env.get("WAN_SWITCH_CONFIG")

    data: dict = {}
    if config_path:
        logger.info(f"Loading configuration from {config_path}")
        data = _load_yaml(Path(config_path))

    # name -> (interface, gateway)
    wans: dict[str, tuple[str, Optional[str]]] = {
        name: (iface, None) for name, iface in DEFAULT_WANS.items()
    }

    for name, entry in _section(data, "wans").items():
        canonical = f"wan{wan_index(str(name))}"
        wans[canonical] = _parse_wan_entry(canonical, entry)

    for key, value in env.items():
        match = WAN_ENV_PATTERN.match(key)
        if match and value:
            name = f"wan{int(match.group(1))}"
            gateway = wans.get(name, (None, None))[1]
            wans[name] = (value, gateway)

    lan = _first_set(env.get("LAN"), data.get("lan"), DEFAULT_LAN)

    listen = _section(data, "listen")
    host = _first_set(env.get("WAN_SWITCH_HOST"), listen.get("host"), DEFAULT_HOST)

    try:
        port = int(_first_set(env.get("WAN_SWITCH_PORT"), listen.get("port"), DEFAULT_PORT))
        command_timeout = float(_first_set(
            env.get("WAN_SWITCH_COMMAND_TIMEOUT"),
            data.get("command_timeout"),
            DEFAULT_COMMAND_TIMEOUT,
        ))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}")

    if not 0 < port < 65536:
        raise ConfigError(f"Invalid listen port {port}")
    if command_timeout <= 0:
        raise ConfigError(f"command_timeout must be positive, got {command_timeout}")

    ip_binary = _first_set(
        env.get("WAN_SWITCH_IP_BINARY"), data.get("ip_binary"), DEFAULT_IP_BINARY
    )

    bindings = tuple(
        WanBinding(
            name=name,
            interface=iface,
            table=TABLE_ID_STEP * (wan_index(name) + 1),
            gateway=gateway,
        )
        for name, (iface, gateway) in sorted(wans.items(), key=lambda item: wan_index(item[0]))
    )

    return RouterConfig(
        wans=bindings,
        lan=str(lan),
        host=str(host),
        port=port,
        command_timeout=command_timeout,
        ip_binary=str(ip_binary),
    )
