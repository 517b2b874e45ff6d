"""Reconciliation engine - moves LAN hosts between WAN egress paths.

Provides a single entry point for:
1. Validating the host against the LAN subnet
2. Resolving the target WAN binding
3. Generating the ordered directive plan
4. Applying directives through the command port
5. Committing the override to the route state store
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from ..config.settings import RouterConfig, WanBinding
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed
from .address import AddressSpec
from .errors import CommandFailed, OutOfSubnet, UnknownInterface
from .generator import DirectiveGenerator
from .schema import DirectivePlan, RouteAssignment, SwitchResult

if TYPE_CHECKING:
    from ..ports.base import RoutingCommandPort
    from ..route_store.store import RouteStateStore

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Applies host -> WAN assignments to the kernel and records them.

    The store is only advanced after every directive succeeded, so it never
    claims an assignment the kernel does not have.

    Usage:
        engine = ReconciliationEngine(config, port, store)
        result = await engine.apply(AddressSpec.parse("10.40.0.3"), "wan1")
    """

    def __init__(
        self,
        config: RouterConfig,
        port: "RoutingCommandPort",
        store: "RouteStateStore",
        tracker: Optional[ChangeTracker] = None,
    ):
        self.config = config
        self.port = port
        self.store = store
        self.generator = DirectiveGenerator()
        self.tracker = tracker or ChangeTracker()
        self.lan_subnet = AddressSpec.parse(config.lan_subnet)
        # One lock per host address; same-host switches run end-to-end serially
        self._host_locks: dict[int, asyncio.Lock] = {}

    def resolve_wan(self, name: str) -> WanBinding:
        """
        Look up a configured WAN.

        Raises:
            UnknownInterface: If ``name`` is not a configured WAN
        """
        try:
            return self.config.get_wan(name)
        except KeyError:
            raise UnknownInterface(
                f"nic must be one of {', '.join(self.config.wan_names)}, got '{name}'"
            )

    def validate_host(self, address: AddressSpec) -> AddressSpec:
        """
        Normalize to /32 and check subnet membership.

        Raises:
            OutOfSubnet: If the host is outside the LAN subnet
        """
        host = address.host()
        if not host.contained_in(self.lan_subnet):
            raise OutOfSubnet(
                f"{host.ip} is not within LAN subnet {self.lan_subnet}"
            )
        return host

    @timed("switch")
    async def apply(self, address: AddressSpec, target_wan: str) -> SwitchResult:
        """
        Move a single LAN host onto ``target_wan``.

        Re-switching to the current WAN re-applies the directives so the
        kernel matches even after out-of-band changes.

        Args:
            address: Host address; any prefix is narrowed to /32
            target_wan: Logical WAN name (wan0, wan1, ...)

        Returns:
            SwitchResult naming the resolved interface

        Raises:
            OutOfSubnet: Host outside the LAN subnet
            UnknownInterface: target_wan not configured
            CommandFailed: A directive failed; the store is left untouched
        """
        try:
            host = self.validate_host(address)
            wan = self.resolve_wan(target_wan)
        except (OutOfSubnet, UnknownInterface) as e:
            logger.warning(f"Rejected switch of {address} to {target_wan}: {e}")
            self.tracker.log_change(
                operation="switch",
                parameters={"ip": str(address), "nic": target_wan},
                success=False,
                error=str(e),
            )
            raise

        lock = self._host_locks.setdefault(host.address, asyncio.Lock())
        async with lock:
            previous = await self.store.get(host)
            plan = self.generator.generate_switch(host, wan, self.config.wans)

            logger.info(
                f"Switching {host} to {wan.name}({wan.interface}) "
                f"with {plan.total_directives} directives"
            )

            try:
                applied = await self._execute(plan)
            except CommandFailed as e:
                logger.error(f"Switch of {host} to {wan.name} failed: {e}")
                self.tracker.log_change(
                    operation="switch",
                    parameters={"ip": str(host), "nic": wan.name},
                    success=False,
                    error=str(e),
                    before_state={"wan": previous.wan} if previous else None,
                )
                raise

            await self.store.put(host, RouteAssignment(address=host, wan=wan.name))

        result = SwitchResult(
            address=host,
            wan=wan.name,
            applied_to=wan.interface,
            message=f"Switched {host} to {wan.name}({wan.interface})",
            directives_applied=applied,
            previous_wan=previous.wan if previous else None,
        )

        self.tracker.log_change(
            operation="switch",
            parameters={"ip": str(host), "nic": wan.name},
            success=True,
            before_state={"wan": previous.wan} if previous else None,
            after_state=result.to_dict(),
            directives=applied,
        )
        logger.info(result.message)
        return result

    async def _execute(self, plan: DirectivePlan) -> list[str]:
        """Apply directives in order, stopping at the first failure."""
        applied = []
        for directive in plan.directives:
            await self.port.apply(directive)
            applied.append(directive.describe())
        return applied
