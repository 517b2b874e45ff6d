"""Schema definitions for the routing engine.

Defines routing directives, directive plans and switch results.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .address import AddressSpec


class DirectiveAction(str, Enum):
    """Capability the routing command port must provide."""
    ADD_RULE = "add_rule"
    DELETE_RULE = "delete_rule"
    REPLACE_DEFAULT_ROUTE = "replace_default_route"
    REPLACE_LINK_ROUTE = "replace_link_route"
    SHOW_DEFAULT_ROUTES = "show_default_routes"
    SHOW_LINK_ROUTES = "show_link_routes"
    DELETE_ADDRESS = "delete_address"
    DELETE_PRIORITY_RULE = "delete_priority_rule"


@dataclass(frozen=True)
class Directive:
    """A single routing directive for the command port."""
    action: DirectiveAction
    source: Optional[str] = None      # CIDR the rule matches on
    table: Optional[int] = None
    priority: Optional[int] = None
    interface: Optional[str] = None
    gateway: Optional[str] = None
    prefix: Optional[str] = None      # destination for link routes / addresses
    missing_ok: bool = False          # deleting something absent is success

    def describe(self) -> str:
        """Human-readable one-liner for logs and audit records."""
        parts = [self.action.value]
        if self.source:
            parts.append(f"from {self.source}")
        if self.prefix:
            parts.append(self.prefix)
        if self.gateway:
            parts.append(f"via {self.gateway}")
        if self.interface:
            parts.append(f"dev {self.interface}")
        if self.table is not None:
            parts.append(f"table {self.table}")
        if self.priority is not None:
            parts.append(f"priority {self.priority}")
        return " ".join(parts)


@dataclass
class DirectivePlan:
    """Ordered directives for one reconciliation."""
    removals: list[Directive] = field(default_factory=list)
    installs: list[Directive] = field(default_factory=list)

    @property
    def directives(self) -> list[Directive]:
        """All directives in execution order (removals first)."""
        return self.removals + self.installs

    @property
    def total_directives(self) -> int:
        return len(self.removals) + len(self.installs)


@dataclass(frozen=True)
class RouteAssignment:
    """An override believed to be active in the kernel."""
    address: AddressSpec
    wan: str


@dataclass
class SwitchResult:
    """Outcome of a successful switch."""
    address: AddressSpec
    wan: str
    applied_to: str
    message: str
    directives_applied: list[str] = field(default_factory=list)
    previous_wan: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": str(self.address),
            "wan": self.wan,
            "applied_to": self.applied_to,
            "message": self.message,
            "directives_applied": self.directives_applied,
            "previous_wan": self.previous_wan,
        }
