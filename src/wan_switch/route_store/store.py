"""Route state store: the authoritative record of host overrides.

Holds host address -> RouteAssignment for every override confirmed applied
in the kernel. The subnet-wide default binding is never stored here.
Nothing is persisted; the mapping starts empty on every process start.
"""
import asyncio
import logging
from types import MappingProxyType
from typing import Mapping, Optional

from ..routing_engine.address import AddressSpec
from ..routing_engine.schema import RouteAssignment

logger = logging.getLogger(__name__)


class RouteStateStore:
    """Lock-guarded override mapping.

    All operations take the same lock, so readers never observe a partially
    updated entry.
    """

    def __init__(self):
        self._assignments: dict[int, RouteAssignment] = {}
        self._lock = asyncio.Lock()

    async def get(self, address: AddressSpec) -> Optional[RouteAssignment]:
        """Current override for a host, or None when it uses the default."""
        async with self._lock:
            return self._assignments.get(address.address)

    async def put(self, address: AddressSpec, assignment: RouteAssignment) -> None:
        """Insert or overwrite the override for a host."""
        async with self._lock:
            previous = self._assignments.get(address.address)
            self._assignments[address.address] = assignment
        if previous and previous.wan != assignment.wan:
            logger.debug(f"{address.ip}: {previous.wan} -> {assignment.wan}")
        else:
            logger.debug(f"{address.ip}: {assignment.wan}")

    async def snapshot(self) -> Mapping[str, RouteAssignment]:
        """Read-only copy of all overrides, ordered by numeric address."""
        async with self._lock:
            ordered = {
                assignment.address.ip: assignment
                for _, assignment in sorted(self._assignments.items())
            }
        return MappingProxyType(ordered)

    def __len__(self) -> int:
        return len(self._assignments)
