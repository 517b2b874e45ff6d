"""IPv4 address value type used for overrides and the LAN subnet.

Addresses are kept as plain 32-bit integers so containment is a mask compare.
"""
import re
from dataclasses import dataclass

from .errors import InvalidAddress

ADDRESS_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)\.([0-9]+)(?:/([0-9]+))?")

HOST_PREFIX = 32


def prefix_mask(prefix_length: int) -> int:
    """Return the 32-bit netmask for a prefix length."""
    if prefix_length == 0:
        return 0
    return (0xFFFFFFFF << (32 - prefix_length)) & 0xFFFFFFFF


def format_ip(address: int) -> str:
    """Render a 32-bit integer as a dotted quad."""
    return ".".join(
        str((address >> shift) & 0xFF) for shift in (24, 16, 8, 0)
    )


@dataclass(frozen=True)
class AddressSpec:
    """An IPv4 address plus prefix length."""
    address: int
    prefix_length: int = HOST_PREFIX

    def __post_init__(self):
        if not 0 <= self.address <= 0xFFFFFFFF:
            raise InvalidAddress(f"Address out of range: {self.address}")
        if not 0 <= self.prefix_length <= 32:
            raise InvalidAddress(
                f"Invalid prefix length {self.prefix_length}: must be between 0 and 32"
            )

    @classmethod
    def parse(cls, text: str) -> "AddressSpec":
        """
        Parse ``a.b.c.d`` or ``a.b.c.d/prefix``.

        The prefix defaults to 32 when omitted.

        Raises:
            InvalidAddress: On wrong octet count, octet > 255, prefix > 32
                or non-numeric input
        """
        match = ADDRESS_PATTERN.fullmatch(text or "")
        if not match:
            raise InvalidAddress(
                f"Invalid IP format '{text}'. Expected: IP or IP/prefix "
                f"(e.g., 10.40.0.3 or 10.40.0.3/20)"
            )

        octets = [int(part) for part in match.group(1, 2, 3, 4)]
        for octet in octets:
            if octet > 255:
                raise InvalidAddress(f"Invalid octet {octet} in '{text}'")

        prefix = match.group(5)
        prefix_length = int(prefix) if prefix is not None else HOST_PREFIX
        if prefix_length > 32:
            raise InvalidAddress(f"Invalid prefix /{prefix_length} in '{text}'")

        address = 0
        for octet in octets:
            address = (address << 8) | octet

        return cls(address=address, prefix_length=prefix_length)

    @property
    def ip(self) -> str:
        return format_ip(self.address)

    @property
    def mask(self) -> int:
        return prefix_mask(self.prefix_length)

    def contained_in(self, subnet: "AddressSpec") -> bool:
        """Check whether this address lies within ``subnet``."""
        mask = subnet.mask
        return (self.address & mask) == (subnet.address & mask)

    def host(self) -> "AddressSpec":
        """Same address narrowed to a single host (/32)."""
        return AddressSpec(self.address, HOST_PREFIX)

    def network(self) -> "AddressSpec":
        """Network address for this prefix (host bits cleared)."""
        return AddressSpec(self.address & self.mask, self.prefix_length)

    def __str__(self) -> str:
        return f"{self.ip}/{self.prefix_length}"
