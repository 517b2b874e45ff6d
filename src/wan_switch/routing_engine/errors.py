"""Error types raised by the routing engine and its collaborators."""
from typing import Optional


class RoutingError(Exception):
    """Base class for all routing errors."""
    pass


class InvalidAddress(RoutingError):
    """Malformed address input."""
    pass


class OutOfSubnet(RoutingError):
    """Address does not lie within the configured LAN subnet."""
    pass


class UnknownInterface(RoutingError):
    """Logical name does not match any configured WAN."""
    pass


class CommandFailed(RoutingError):
    """External routing command returned nonzero or could not be executed."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class CommandTimeout(CommandFailed):
    """External routing command did not finish within the configured timeout."""
    pass


class TargetNotFound(CommandFailed):
    """A delete named a rule, route or address the kernel does not have."""
    pass


class BootstrapError(RoutingError):
    """Initial policy routing could not be established."""
    pass
