"""Directive generator: turns desired assignments into ordered directives.

Policy rules are evaluated in ascending priority, first match wins. Host
overrides therefore sit below the subnet-wide default rule.
"""
from typing import Sequence

from ..config.settings import WanBinding
from .address import AddressSpec, HOST_PREFIX
from .schema import Directive, DirectiveAction, DirectivePlan

HOST_RULE_PRIORITY = 1000
SUBNET_RULE_PRIORITY = 2000


class DirectiveGenerator:
    """Generate directive plans for host switches and bootstrap steps."""

    def generate_switch(
        self,
        host: AddressSpec,
        target: WanBinding,
        wans: Sequence[WanBinding],
    ) -> DirectivePlan:
        """
        Plan moving one host onto ``target``.

        Removes any host rule for this /32 from every WAN table (rules left
        behind by earlier switches or changed out of band), then installs the
        new host rule. Removals tolerate rules that do not exist.

        Args:
            host: Address to move; must already be normalized to /32
            target: WAN the host should egress through
            wans: All configured WANs

        Returns:
            DirectivePlan with removals and installs
        """
        if host.prefix_length != HOST_PREFIX:
            raise ValueError(f"Host overrides must be /32, got {host}")

        source = str(host)
        plan = DirectivePlan()

        # Remove first so re-switching never stacks rules
        for wan in wans:
            plan.removals.append(Directive(
                action=DirectiveAction.DELETE_RULE,
                source=source,
                table=wan.table,
                missing_ok=True,
            ))

        plan.installs.append(Directive(
            action=DirectiveAction.ADD_RULE,
            source=source,
            table=target.table,
            priority=HOST_RULE_PRIORITY,
        ))

        return plan

    def generate_subnet_binding(
        self,
        subnet: AddressSpec,
        primary: WanBinding,
        wans: Sequence[WanBinding],
    ) -> DirectivePlan:
        """Plan the coarse subnet-wide rule sending the LAN to ``primary``."""
        source = str(subnet.network())
        plan = DirectivePlan()

        for wan in wans:
            plan.removals.append(Directive(
                action=DirectiveAction.DELETE_RULE,
                source=source,
                table=wan.table,
                missing_ok=True,
            ))

        plan.installs.append(Directive(
            action=DirectiveAction.ADD_RULE,
            source=source,
            table=primary.table,
            priority=SUBNET_RULE_PRIORITY,
        ))

        return plan

    def host_rule_flush(self) -> Directive:
        """One deletion of any rule at host-override priority.

        Repeated until the kernel reports none left.
        """
        return Directive(
            action=DirectiveAction.DELETE_PRIORITY_RULE,
            priority=HOST_RULE_PRIORITY,
        )

    def table_default_route(self, wan: WanBinding, gateway: str) -> Directive:
        return Directive(
            action=DirectiveAction.REPLACE_DEFAULT_ROUTE,
            gateway=gateway,
            interface=wan.interface,
            table=wan.table,
        )

    def link_route(self, wan: WanBinding, prefix: str) -> Directive:
        return Directive(
            action=DirectiveAction.REPLACE_LINK_ROUTE,
            prefix=prefix,
            interface=wan.interface,
            table=wan.table,
        )

    def stale_address_cleanup(
        self,
        subnet: AddressSpec,
        wans: Sequence[WanBinding],
    ) -> list[Directive]:
        """Directives removing the LAN subnet if it was assigned to a WAN interface."""
        return [
            Directive(
                action=DirectiveAction.DELETE_ADDRESS,
                prefix=str(subnet.network()),
                interface=wan.interface,
                missing_ok=True,
            )
            for wan in wans
        ]
