"""
Executor: Abstract interface for resolving deferred values.

An executor takes the root values of a run and drives them, and
everything they depend on, to a terminal state.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from strata.core.deferred import DeferredValue


class Executor(ABC):
    """
    Abstract executor interface.

    The executor is responsible for:
    1. Resolving values in dependency order
    2. Running independent values concurrently where it can
    3. Propagating failures to consumers
    4. Stopping cleanly on cancellation
    """

    @abstractmethod
    def execute(self, roots: Iterable['DeferredValue']) -> None:
        """
        Resolve the roots and everything they transitively depend on.

        Failures are recorded on the values; this method does not raise
        ``ResolutionError``.

        Args:
            roots: Values the run needs
        """
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop scheduling new values. Values already running finish."""
        pass

    @abstractmethod
    def get_status(self) -> dict[str, Any]:
        """
        Get execution status.

        Returns:
            Dictionary with execution status information
        """
        pass
