"""
Error taxonomy for the Strata engine.

Graph construction errors are raised immediately and are fatal. Resolution
errors are recorded on the failed value and handed to every consumer that
depends on it, directly or transitively.
"""

from typing import Iterable

from strata.secrets.tracker import DEFAULT_PLACEHOLDER


class StrataError(Exception):
    """Base class for all engine errors."""
    pass


class CyclicDependencyError(StrataError):
    """Raised when a dependency edge would close a cycle in the graph."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Dependency cycle detected: " + " -> ".join(self.cycle)
        )


class DuplicateExportError(StrataError):
    """Raised when an export name is registered twice in one run."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Export '{name}' is already registered")


class ContextClosedError(StrataError):
    """Raised when a context is used after its run has been materialized."""
    pass


class InvalidStateError(StrataError):
    """Raised when an operation is not allowed in a value's current state."""
    pass


class ResolutionError(StrataError):
    """
    A deferred value could not be resolved.

    Either the value's own thunk raised (``cause`` is set and is also the
    ``__cause__`` of this error), or one or more of its dependencies failed
    (``upstream`` holds their errors, in dependency declaration order).

    When the failing value is secret, the message and ``failure_chain()``
    only name the exception type; the exception itself stays reachable
    through ``cause``.
    """

    def __init__(
        self,
        name: str,
        cause: BaseException | None = None,
        upstream: Iterable["ResolutionError"] = (),
        *,
        secret: bool = False,
    ):
        self.name = name
        self.upstream: tuple[ResolutionError, ...] = tuple(upstream)
        self.secret = secret
        self._cause = cause

        if cause is not None:
            message = f"'{name}' failed: {self._describe_cause()}"
        else:
            failed = ", ".join(f"'{err.name}'" for err in self.upstream)
            message = f"'{name}' not resolved: dependency {failed} failed"
        super().__init__(message)

        if cause is not None:
            self.__cause__ = cause
        elif self.upstream:
            self.__cause__ = self.upstream[0]

    def _describe_cause(self, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
        detail = placeholder if self.secret else str(self._cause)
        return f"{type(self._cause).__name__}: {detail}"

    @property
    def is_origin(self) -> bool:
        """True if this value's own thunk raised."""
        return self._cause is not None

    @property
    def root_causes(self) -> list["ResolutionError"]:
        """The errors of the values whose thunks actually raised."""
        if self.is_origin:
            return [self]

        roots: list[ResolutionError] = []
        for err in self.upstream:
            for root in err.root_causes:
                if root not in roots:
                    roots.append(root)
        return roots

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception (the first one, if several branches failed)."""
        if self._cause is not None:
            return self._cause
        roots = self.root_causes
        return roots[0]._cause if roots else None

    def failure_chain(self, placeholder: str = DEFAULT_PLACEHOLDER) -> list[str]:
        """
        Describe how this failure was reached.

        Returns one line per failed origin, from this value back to the value
        whose thunk raised, e.g. ``kubeconfig <- credentials <- cluster: boom``.
        Details of secret failures are replaced by ``placeholder``.
        """
        if self.is_origin:
            return [f"{self.name}: {self._describe_cause(placeholder)}"]

        lines = []
        for err in self.upstream:
            for line in err.failure_chain(placeholder):
                lines.append(f"{self.name} <- {line}")
        return lines
