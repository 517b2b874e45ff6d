"""Base abstraction for the privileged routing command."""
from abc import ABC, abstractmethod

from ..routing_engine.schema import Directive


class RoutingCommandPort(ABC):
    """Executes routing directives against the operating system.

    The only component that touches kernel routing state. Implementations
    serialize their own invocations.
    """

    @abstractmethod
    async def apply(self, directive: Directive) -> str:
        """Execute one directive.

        Returns:
            Command output (used by the show directives)

        Raises:
            CommandFailed: If the command exits nonzero or cannot be run
            CommandTimeout: If the command does not finish in time
            TargetNotFound: If a delete without ``missing_ok`` finds nothing
        """
        pass
