"""
Orchestration context: owns the values of one run and its exports.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from strata.config.engine import EngineConfig
from strata.core.dag import DependencyGraph
from strata.core.deferred import DeferredValue
from strata.core.errors import ContextClosedError, DuplicateExportError
from strata.core.report import ExportResult, RunReport
from strata.execution.executor import Executor
from strata.execution.scheduler import ResolutionScheduler
from strata.logging import bind_context
from strata.resources.handle import ResourceHandle


class OrchestrationContext:
    """
    Top-level object of an orchestration run.

    Every DeferredValue created while the context is active is registered
    in its dependency graph. ``run()`` resolves the exports plus every
    resource handle, then materializes the exports into a ``RunReport``.
    A context runs once.

    Example:
        with OrchestrationContext("infra") as ctx:
            store = ctx.provision("config-store-1", create_store, {"sku": "standard"})
            ctx.export("connectionString", store.output("connection_string").mark_secret())

        report = ctx.run()
        print(report.render())
    """

    def __init__(self, name: str = "stack", config: EngineConfig | None = None):
        self.name = name
        self.config = config or EngineConfig()
        self.graph = DependencyGraph()
        self._exports: Dict[str, Any] = {}
        self._closed = False
        self._executor: Optional[Executor] = None
        self._previous: Optional["OrchestrationContext"] = None

    def __enter__(self) -> "OrchestrationContext":
        self._previous = _context
        set_context(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        set_context(self._previous)
        self._previous = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def exports(self) -> Dict[str, Any]:
        """Registered exports, in registration order."""
        return dict(self._exports)

    def export(self, name: str, value: Any) -> Any:
        """
        Register a named result.

        Plain values are wrapped so they show up in the report like any
        other export.

        Raises:
            DuplicateExportError: If the name was already registered
            ContextClosedError: If the context has already run
        """
        if self._closed:
            raise ContextClosedError(f"Context '{self.name}' has already run")
        if name in self._exports:
            raise DuplicateExportError(name)
        if not isinstance(value, DeferredValue):
            value = DeferredValue.of(value, name=name, graph=self.graph)
        elif value.graph is not self.graph:
            raise ValueError(f"Export '{name}' belongs to another orchestration context")

        self._exports[name] = value
        return value

    def provision(
        self,
        name: str,
        provision: Callable[..., Any],
        args: Optional[Mapping[str, Any]] = None,
        depends_on: Iterable[DeferredValue] = (),
        secret: bool = False,
    ) -> ResourceHandle:
        """
        Create a resource handle in this context.

        Args:
            name: Resource name, used in logs, plans and failure chains
            provision: Callable invoked once with the resolved ``args``
            args: Keyword arguments for ``provision``; may hold DeferredValues
            depends_on: Extra values that must resolve first
            secret: Mark the provisioned result as secret
        """
        return ResourceHandle(
            name,
            provision,
            args,
            depends_on=depends_on,
            secret=secret,
            graph=self.graph,
        )

    def _roots(self) -> List[DeferredValue]:
        roots = list(self._exports.values())
        for handle in self.graph.resource_handles():
            if handle not in roots:
                roots.append(handle)
        return roots

    def plan(self) -> List[List[str]]:
        """
        Dry run: the order ``run()`` would resolve values in.

        Returns a list of levels; values in the same level do not depend on
        each other. No thunk is executed.
        """
        roots = self._roots()
        if not roots:
            return []
        levels = self.graph.get_execution_levels(self.graph.reachable(roots))
        return [[value.name for value in level] for level in levels]

    def run(self, executor: Optional[Executor] = None) -> RunReport:
        """
        Resolve all exports and resource handles and materialize the exports.

        Args:
            executor: Executor to use (default: ResolutionScheduler sized by config)

        Raises:
            ContextClosedError: If the context has already run
        """
        if self._closed:
            raise ContextClosedError(f"Context '{self.name}' has already run")
        self._closed = True

        log = bind_context(stack=self.name)
        self._executor = executor or ResolutionScheduler(max_workers=self.config.max_workers)
        log.debug("run_plan", levels=self.plan())

        self._executor.execute(self._roots())

        cancelled = bool(self._executor.get_status().get("cancelled"))
        report = RunReport(name=self.name, cancelled=cancelled)
        for name, value in self._exports.items():
            report.results[name] = ExportResult.from_value(
                name, value, placeholder=self.config.redaction_placeholder
            )

        log.info("exports_materialized", succeeded=report.succeeded, failed=report.failed)
        return report

    def cancel(self) -> None:
        """Stop the current run from scheduling new values."""
        if self._executor is not None:
            self._executor.cancel()

    def __repr__(self) -> str:
        return f"OrchestrationContext(name={self.name!r}, exports={len(self._exports)}, closed={self._closed})"


# Ambient context instance
_context: Optional[OrchestrationContext] = None


def get_context() -> OrchestrationContext:
    """Get the current orchestration context."""
    global _context
    if _context is None:
        _context = OrchestrationContext()
    return _context


def set_context(context: Optional[OrchestrationContext]) -> None:
    """Set the ambient orchestration context."""
    global _context
    _context = context


def reset_context() -> OrchestrationContext:
    """Replace the ambient context with a fresh one."""
    global _context
    _context = OrchestrationContext()
    return _context


def export(name: str, value: Any) -> Any:
    """Register an export on the ambient context."""
    return get_context().export(name, value)
