"""Routing command ports (the OS boundary)."""
from .base import RoutingCommandPort
from .iproute import IpRouteCommandPort

__all__ = ["RoutingCommandPort", "IpRouteCommandPort"]
