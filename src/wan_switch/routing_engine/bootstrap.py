"""Startup provisioning of policy routing.

Runs once before the HTTP server accepts requests:
1. Remove the LAN subnet from WAN interfaces if it was assigned there (best effort)
2. Flush host override rules left by a previous run
3. Resolve each WAN's gateway
4. Point every WAN's routing table at its gateway
5. Mirror each WAN's link-scope routes into its table (for gateway resolution)
6. Bind the whole LAN subnet to the primary WAN table

Any failure in steps 2, 3, 4 or 6 is fatal: without them the daemon has no
useful default path.
"""
import logging
import re
from typing import TYPE_CHECKING, Optional

from ..config.settings import RouterConfig, WanBinding
from ..utils.audit_log import ChangeTracker
from ..utils.connection import with_retry
from .address import AddressSpec
from .errors import BootstrapError, CommandFailed, TargetNotFound
from .generator import DirectiveGenerator
from .schema import Directive, DirectiveAction

if TYPE_CHECKING:
    from ..ports.base import RoutingCommandPort

logger = logging.getLogger(__name__)

GATEWAY_PATTERN = re.compile(r"via\s+([0-9]+\.[0-9]+\.[0-9]+\.[0-9]+)")
LINK_ROUTE_PATTERN = re.compile(r"^([0-9]+\.[0-9]+\.[0-9]+\.[0-9]+(?:/[0-9]+)?)\b")


class GatewayNotFound(Exception):
    """No default route found for a WAN interface (yet)."""
    pass


class Bootstrapper:
    """Establish the default routing state on process start. Not re-entrant."""

    def __init__(
        self,
        config: RouterConfig,
        port: "RoutingCommandPort",
        tracker: Optional[ChangeTracker] = None,
        retry_attempts: int = 5,
        retry_wait: float = 1.0,
    ):
        """
        Args:
            config: Router configuration
            port: Command port used for every directive
            tracker: Audit tracker
            retry_attempts: Attempts for gateway discovery per WAN
            retry_wait: Initial backoff between discovery attempts (seconds)
        """
        self.config = config
        self.port = port
        self.tracker = tracker or ChangeTracker()
        self.generator = DirectiveGenerator()
        self.lan_subnet = AddressSpec.parse(config.lan_subnet)
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

    async def run(self) -> dict[str, str]:
        """
        Provision routing tables and the subnet default rule.

        Returns:
            Mapping of WAN name -> gateway in use

        Raises:
            BootstrapError: If the default path could not be established
        """
        primary = self.config.primary_wan
        logger.info(
            f"Initializing policy routing: {self.lan_subnet} -> "
            f"{primary.name} ({primary.interface})"
        )

        try:
            await self._cleanup_stale_addresses()
            flushed = await self._flush_host_rules()

            gateways = {}
            for wan in self.config.wans:
                gateway = await self._resolve_gateway(wan)
                gateways[wan.name] = gateway
                await self.port.apply(self.generator.table_default_route(wan, gateway))
                logger.info(
                    f"Table {wan.table}: default via {gateway} dev {wan.interface}"
                )

            for wan in self.config.wans:
                await self._mirror_link_routes(wan)

            plan = self.generator.generate_subnet_binding(
                self.lan_subnet, primary, self.config.wans
            )
            for directive in plan.directives:
                await self.port.apply(directive)

        except (CommandFailed, GatewayNotFound) as e:
            self.tracker.log_change(
                operation="bootstrap",
                parameters={"subnet": str(self.lan_subnet), "wan": primary.name},
                success=False,
                error=str(e),
            )
            raise BootstrapError(f"Failed to initialize policy routing: {e}") from e

        self.tracker.log_change(
            operation="bootstrap",
            parameters={"subnet": str(self.lan_subnet), "wan": primary.name},
            success=True,
            after_state={"gateways": gateways, "flushed_host_rules": flushed},
        )
        logger.info(
            f"Policy ready: {self.lan_subnet} uses table {primary.table}, "
            f"hosts can be overridden to tables "
            f"{', '.join(str(w.table) for w in self.config.wans)}"
        )
        return gateways

    async def _cleanup_stale_addresses(self) -> None:
        for directive in self.generator.stale_address_cleanup(
            self.lan_subnet, self.config.wans
        ):
            try:
                await self.port.apply(directive)
            except CommandFailed as e:
                logger.warning(f"Ignoring failed cleanup '{directive.describe()}': {e}")

    async def _flush_host_rules(self) -> int:
        """Delete host override rules surviving from a previous process.

        The store starts empty, so every host must start on the primary WAN.
        """
        directive = self.generator.host_rule_flush()
        # At most one rule per LAN host per WAN table
        limit = (1 << (32 - self.lan_subnet.prefix_length)) * len(self.config.wans)

        for removed in range(limit + 1):
            try:
                await self.port.apply(directive)
            except TargetNotFound:
                if removed:
                    logger.info(f"Flushed {removed} stale host override rules")
                return removed

        raise CommandFailed(
            f"More than {limit} rules at priority {directive.priority}; refusing to continue"
        )

    async def _resolve_gateway(self, wan: WanBinding) -> str:
        if wan.gateway:
            logger.debug(f"{wan.name}: using configured gateway {wan.gateway}")
            return wan.gateway

        discover = with_retry(
            max_attempts=self.retry_attempts,
            min_wait=self.retry_wait,
            max_wait=max(self.retry_wait * 8, self.retry_wait),
            exceptions=(GatewayNotFound,),
        )(self._discover_gateway)
        return await discover(wan)

    async def _discover_gateway(self, wan: WanBinding) -> str:
        """Read the gateway from the interface's default route."""
        output = await self.port.apply(Directive(
            action=DirectiveAction.SHOW_DEFAULT_ROUTES,
            interface=wan.interface,
        ))
        match = GATEWAY_PATTERN.search(output)
        if match:
            return match.group(1)

        # Fallback: scan all defaults and pick the one for this interface
        output = await self.port.apply(Directive(action=DirectiveAction.SHOW_DEFAULT_ROUTES))
        for line in output.splitlines():
            if re.search(rf"\bdev {re.escape(wan.interface)}(\s|$)", line):
                match = GATEWAY_PATTERN.search(line)
                if match:
                    return match.group(1)

        raise GatewayNotFound(
            f"Could not determine default gateway for {wan.name} ({wan.interface})"
        )

    async def _mirror_link_routes(self, wan: WanBinding) -> None:
        """Copy link-scope routes of the WAN interface into its table."""
        output = await self.port.apply(Directive(
            action=DirectiveAction.SHOW_LINK_ROUTES,
            interface=wan.interface,
        ))
        for line in output.splitlines():
            match = LINK_ROUTE_PATTERN.match(line.strip())
            if not match:
                continue
            directive = self.generator.link_route(wan, match.group(1))
            try:
                await self.port.apply(directive)
            except CommandFailed as e:
                logger.warning(f"Could not mirror {match.group(1)} into table {wan.table}: {e}")
