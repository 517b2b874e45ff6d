"""Shared fixtures: a recording command port instead of the real ``ip``."""
import asyncio
from typing import Callable, Optional

import pytest

from wan_switch.config import load_config
from wan_switch.ports import RoutingCommandPort
from wan_switch.route_store import RouteStateStore
from wan_switch.routing_engine import (
    CommandFailed,
    Directive,
    DirectiveAction,
    ReconciliationEngine,
    TargetNotFound,
)


class RecordingCommandPort(RoutingCommandPort):
    """Records directives instead of touching kernel state.

    Show directives return canned iproute2 output. ``fail_when`` makes
    matching directives raise CommandFailed. ``stale_host_rules`` is the
    number of priority deletions that succeed before the kernel runs out.
    """

    def __init__(
        self,
        fail_when: Optional[Callable[[Directive], bool]] = None,
        delay: float = 0.0,
    ):
        self.directives: list[Directive] = []
        self.fail_when = fail_when
        self.delay = delay
        self.stale_host_rules = 0
        self.default_routes = {
            "eth0": "default via 192.0.2.1 dev eth0 proto dhcp metric 100",
            "eth1": "default via 198.51.100.1 dev eth1 proto dhcp metric 200",
        }
        self.link_routes = {
            "eth0": "192.0.2.0/24 proto kernel scope link src 192.0.2.10",
            "eth1": "198.51.100.0/24 proto kernel scope link src 198.51.100.10",
        }

    async def apply(self, directive: Directive) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.directives.append(directive)
        if self.fail_when and self.fail_when(directive):
            raise CommandFailed(
                f"{directive.describe()} failed: RTNETLINK answers: Operation not permitted",
                exit_code=2,
                stderr="RTNETLINK answers: Operation not permitted",
            )
        if directive.action == DirectiveAction.DELETE_PRIORITY_RULE:
            if not self.stale_host_rules:
                raise TargetNotFound(
                    f"{directive.describe()}: RTNETLINK answers: No such file or directory",
                    exit_code=2,
                    stderr="RTNETLINK answers: No such file or directory",
                )
            self.stale_host_rules -= 1
            return ""
        if directive.action == DirectiveAction.SHOW_DEFAULT_ROUTES:
            if directive.interface:
                return self.default_routes.get(directive.interface, "")
            return "\n".join(self.default_routes.values())
        if directive.action == DirectiveAction.SHOW_LINK_ROUTES:
            return self.link_routes.get(directive.interface, "")
        return ""

    def of(self, action: DirectiveAction) -> list[Directive]:
        return [d for d in self.directives if d.action == action]


@pytest.fixture
def config():
    """Default configuration (no env overrides)."""
    return load_config(environ={})


@pytest.fixture
def port():
    return RecordingCommandPort()


@pytest.fixture
def store():
    return RouteStateStore()


@pytest.fixture
def engine(config, port, store):
    return ReconciliationEngine(config, port, store)
