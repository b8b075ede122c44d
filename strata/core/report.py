"""
Run report: the materialized exports of an orchestration run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from strata.core.deferred import DeferredValue, ResolutionState
from strata.core.errors import ResolutionError
from strata.secrets.tracker import DEFAULT_PLACEHOLDER, SecretValue


class ExportStatus(Enum):
    """Outcome of a single export."""

    RESOLVED = "resolved"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(repr=False)
class ExportResult:
    """
    The outcome of one export.

    Secret values are held in a ``SecretValue`` and only come out through
    ``unwrap()``.
    """

    name: str
    status: ExportStatus
    secret: bool = False
    error: ResolutionError | None = None
    placeholder: str = DEFAULT_PLACEHOLDER
    _value: Any = None

    @classmethod
    def from_value(cls, name: str, value: DeferredValue, placeholder: str = DEFAULT_PLACEHOLDER) -> "ExportResult":
        """Materialize a deferred value after a run."""
        secret = value.is_secret
        if value.state is ResolutionState.RESOLVED:
            resolved = value.resolve()
            if secret:
                resolved = SecretValue(resolved, placeholder)
            return cls(
                name=name, status=ExportStatus.RESOLVED, secret=secret, placeholder=placeholder, _value=resolved
            )
        if value.state is ResolutionState.FAILED:
            return cls(
                name=name, status=ExportStatus.FAILED, secret=secret, error=value.error, placeholder=placeholder
            )
        return cls(name=name, status=ExportStatus.CANCELLED, secret=secret, placeholder=placeholder)

    @property
    def ok(self) -> bool:
        return self.status is ExportStatus.RESOLVED

    @property
    def display_value(self) -> Any:
        """The value as it may be shown to a human (redacted if secret)."""
        if isinstance(self._value, SecretValue):
            return str(self._value)
        return self._value

    def unwrap(self) -> Any:
        """
        Return the real value, secret or not.

        Raises:
            ResolutionError: If the export failed
            LookupError: If the export was never resolved (cancelled run)
        """
        if self.status is ExportStatus.FAILED:
            raise self.error
        if self.status is ExportStatus.CANCELLED:
            raise LookupError(f"Export '{self.name}' was not resolved (run cancelled)")
        if isinstance(self._value, SecretValue):
            return self._value.unwrap()
        return self._value

    def failure_chain(self) -> list[str]:
        """Failure lines with secret details replaced by the placeholder."""
        return self.error.failure_chain(self.placeholder) if self.error else []

    def render(self) -> str:
        if self.status is ExportStatus.RESOLVED:
            shown = self.display_value if self.secret else repr(self.display_value)
            return f"{self.name}: {shown}"
        if self.status is ExportStatus.CANCELLED:
            return f"{self.name}: <cancelled>"
        lines = [f"{self.name}: <failed>"]
        lines.extend(f"    {line}" for line in self.failure_chain())
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ExportResult(name={self.name!r}, status={self.status.value}, value={self.display_value!r})"


@dataclass
class RunReport:
    """
    Per-export results of a run.

    Behaves like a read-only mapping from export name to ``ExportResult``.
    One failed export does not affect the others.

    Example:
        report = ctx.run()
        print(report.render())
        kubeconfig = report.unwrap("kubeconfig")
    """

    name: str
    results: dict[str, ExportResult] = field(default_factory=dict)
    cancelled: bool = False

    def __getitem__(self, name: str) -> ExportResult:
        return self.results[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def __contains__(self, name: object) -> bool:
        return name in self.results

    @property
    def ok(self) -> bool:
        """True if every export resolved."""
        return all(result.ok for result in self.results.values())

    @property
    def succeeded(self) -> list[str]:
        return [name for name, result in self.results.items() if result.ok]

    @property
    def failed(self) -> list[str]:
        return [
            name for name, result in self.results.items()
            if result.status is ExportStatus.FAILED
        ]

    def unwrap(self, name: str) -> Any:
        """Return the real value of an export."""
        return self.results[name].unwrap()

    def to_dict(self) -> dict[str, Any]:
        """Redacted, serializable view of the report."""
        return {
            "name": self.name,
            "cancelled": self.cancelled,
            "exports": {
                name: {
                    "status": result.status.value,
                    "secret": result.secret,
                    "value": result.display_value,
                    "failure_chain": result.failure_chain(),
                }
                for name, result in self.results.items()
            },
        }

    def render(self) -> str:
        """Human-readable report with secrets redacted."""
        lines = [f"Outputs ({self.name}):"]
        for result in self.results.values():
            for line in result.render().splitlines():
                lines.append(f"  {line}")
        if self.cancelled:
            lines.append("  (run cancelled)")
        return "\n".join(lines)
