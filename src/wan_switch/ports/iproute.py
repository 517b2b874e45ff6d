"""iproute2 implementation of the routing command port.

Renders directives to ``ip`` argument vectors:

    add_rule               ip rule add from <src> lookup <table> priority <prio>
    delete_rule            ip rule del from <src> lookup <table>
    replace_default_route  ip route replace default via <gw> dev <if> table <table>
    replace_link_route     ip route replace <prefix> dev <if> scope link table <table>
    show_default_routes    ip route show default [dev <if>]
    show_link_routes       ip -4 route show dev <if> scope link
    delete_address         ip addr del <prefix> dev <if>
    delete_priority_rule   ip rule del priority <prio>
"""
import asyncio
import logging
import subprocess

from ..routing_engine.errors import CommandFailed, CommandTimeout, TargetNotFound
from ..routing_engine.schema import Directive, DirectiveAction
from ..utils.logging_config import timed
from .base import RoutingCommandPort

logger = logging.getLogger(__name__)

# iproute2 reports a missing rule/route/address as ENOENT or EADDRNOTAVAIL
MISSING_MARKERS = (
    "No such file or directory",
    "No such process",
    "Cannot assign requested address",
)

DELETE_ACTIONS = (
    DirectiveAction.DELETE_RULE,
    DirectiveAction.DELETE_PRIORITY_RULE,
    DirectiveAction.DELETE_ADDRESS,
)


class IpRouteCommandPort(RoutingCommandPort):
    """Run directives through the ``ip`` command."""

    def __init__(self, ip_binary: str = "ip", timeout: float = 10.0):
        """
        Args:
            ip_binary: Path or name of the iproute2 ``ip`` binary
            timeout: Seconds before a single invocation is abandoned
        """
        self.ip_binary = ip_binary
        self.timeout = timeout
        self._lock = asyncio.Lock()

    def build_argv(self, directive: Directive) -> list[str]:
        """Render a directive to the full ``ip`` command line."""
        action = directive.action
        ip = self.ip_binary

        if action == DirectiveAction.ADD_RULE:
            return [
                ip, "rule", "add", "from", directive.source,
                "lookup", str(directive.table),
                "priority", str(directive.priority),
            ]
        if action == DirectiveAction.DELETE_RULE:
            return [
                ip, "rule", "del", "from", directive.source,
                "lookup", str(directive.table),
            ]
        if action == DirectiveAction.REPLACE_DEFAULT_ROUTE:
            return [
                ip, "route", "replace", "default", "via", directive.gateway,
                "dev", directive.interface, "table", str(directive.table),
            ]
        if action == DirectiveAction.REPLACE_LINK_ROUTE:
            return [
                ip, "route", "replace", directive.prefix,
                "dev", directive.interface, "scope", "link",
                "table", str(directive.table),
            ]
        if action == DirectiveAction.SHOW_DEFAULT_ROUTES:
            argv = [ip, "route", "show", "default"]
            if directive.interface:
                argv += ["dev", directive.interface]
            return argv
        if action == DirectiveAction.SHOW_LINK_ROUTES:
            return [
                ip, "-4", "route", "show", "dev", directive.interface,
                "scope", "link",
            ]
        if action == DirectiveAction.DELETE_ADDRESS:
            return [ip, "addr", "del", directive.prefix, "dev", directive.interface]
        if action == DirectiveAction.DELETE_PRIORITY_RULE:
            return [ip, "rule", "del", "priority", str(directive.priority)]

        raise ValueError(f"Unsupported directive: {action}")

    @timed("ip_command")
    async def apply(self, directive: Directive) -> str:
        argv = self.build_argv(directive)
        loop = asyncio.get_running_loop()

        def _exec() -> subprocess.CompletedProcess:
            return subprocess.run(
                argv,
                capture_output=True,
                text=True,
                check=False,  # Exit status handled below
                timeout=self.timeout,
            )

        async with self._lock:
            logger.debug(f"Running: {' '.join(argv)}")
            try:
                result = await loop.run_in_executor(None, _exec)
            except subprocess.TimeoutExpired:
                raise CommandTimeout(
                    f"{' '.join(argv)} timed out after {self.timeout}s"
                )
            except OSError as e:
                raise CommandFailed(f"failed to run {' '.join(argv)}: {e}", stderr=str(e))

        if result.returncode != 0:
            stderr = result.stderr.strip()
            missing = any(m in stderr for m in MISSING_MARKERS)
            if missing and directive.missing_ok:
                logger.debug(f"Nothing to remove: {directive.describe()}")
                return ""
            if missing and directive.action in DELETE_ACTIONS:
                raise TargetNotFound(
                    f"{' '.join(argv)}: {stderr}",
                    exit_code=result.returncode,
                    stderr=stderr,
                )
            logger.error(f"{' '.join(argv)} failed ({result.returncode}): {stderr}")
            raise CommandFailed(
                f"{' '.join(argv)} failed: {stderr}",
                exit_code=result.returncode,
                stderr=stderr,
            )

        return result.stdout
