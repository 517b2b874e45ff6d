"""Routing engine - per-host WAN selection via policy routing.

Translates a desired host -> WAN assignment into ordered routing directives,
applies them through a command port, and records confirmed overrides:

    from wan_switch.routing_engine import ReconciliationEngine, AddressSpec

    engine = ReconciliationEngine(config, port, store)
    result = await engine.apply(AddressSpec.parse("10.40.0.3/20"), "wan1")
    result.message  # "Switched 10.40.0.3/32 to wan1(eth1)"
"""

from .address import AddressSpec
from .errors import (
    RoutingError,
    InvalidAddress,
    OutOfSubnet,
    UnknownInterface,
    CommandFailed,
    CommandTimeout,
    TargetNotFound,
    BootstrapError,
)
from .schema import (
    Directive,
    DirectiveAction,
    DirectivePlan,
    RouteAssignment,
    SwitchResult,
)
from .generator import DirectiveGenerator, HOST_RULE_PRIORITY, SUBNET_RULE_PRIORITY
from .engine import ReconciliationEngine
from .bootstrap import Bootstrapper

__all__ = [
    "ReconciliationEngine",
    "Bootstrapper",
    "AddressSpec",
    # Errors
    "RoutingError",
    "InvalidAddress",
    "OutOfSubnet",
    "UnknownInterface",
    "CommandFailed",
    "CommandTimeout",
    "TargetNotFound",
    "BootstrapError",
    # Schema
    "Directive",
    "DirectiveAction",
    "DirectivePlan",
    "RouteAssignment",
    "SwitchResult",
    # Generator
    "DirectiveGenerator",
    "HOST_RULE_PRIORITY",
    "SUBNET_RULE_PRIORITY",
]
