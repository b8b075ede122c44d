"""
DeferredValue: a value that is not known yet.

A DeferredValue carries a thunk (the computation that produces it), the
values it depends on, and a secrecy flag. Values are chained with
``transform`` and ``combine`` so orchestration code reads top to bottom
while the engine orders the real work by data dependencies.

Example:
    name = DeferredValue.create(lambda: "cluster-1")
    creds = name.transform(fetch_credentials).mark_secret()
    kubeconfig = creds["kubeconfig"].transform(decode)

    kubeconfig.is_secret  # True, inherited from creds
    kubeconfig.resolve()  # runs fetch_credentials once, then decode
"""

import itertools
import threading
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar, TYPE_CHECKING

import structlog

from strata.core.errors import InvalidStateError, ResolutionError
from strata.secrets.tracker import DEFAULT_PLACEHOLDER

if TYPE_CHECKING:
    from strata.core.dag import DependencyGraph

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")

logger = structlog.get_logger(__name__)

_UNSET = object()
_ids = itertools.count(1)


class ResolutionState(Enum):
    """Lifecycle of a deferred value."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionState.RESOLVED, ResolutionState.FAILED)


def _callable_name(fn: Callable) -> str:
    return getattr(fn, "__name__", type(fn).__name__)


def _select_graph(graph: Optional["DependencyGraph"], dependencies: tuple) -> "DependencyGraph":
    graphs = {id(dep._graph): dep._graph for dep in dependencies}
    if graph is not None:
        graphs.setdefault(id(graph), graph)
    if len(graphs) > 1:
        raise ValueError("Deferred values from different orchestration contexts cannot be mixed")
    if graphs:
        return next(iter(graphs.values()))

    from strata.core.context import get_context

    return get_context().graph


class DeferredValue(Generic[T]):
    """
    A value of type T computed later, at most once.

    The first call to ``resolve()`` claims the value: it resolves every
    dependency, then runs the thunk. Concurrent callers wait for that single
    run and get the same result or the same ``ResolutionError``.
    """

    has_side_effect = False

    def __init__(
        self,
        thunk: Callable[[], T],
        dependencies: Iterable["DeferredValue[Any]"] = (),
        *,
        name: str | None = None,
        secret: bool = False,
        graph: Optional["DependencyGraph"] = None,
    ):
        dependencies = tuple(dependencies)
        for dep in dependencies:
            if not isinstance(dep, DeferredValue):
                raise TypeError(
                    f"Dependencies must be DeferredValue instances, got {type(dep).__name__}"
                )
        if not callable(thunk):
            raise TypeError("thunk must be callable")

        self._id = next(_ids)
        self._thunk = thunk
        self._name = name or f"value-{self._id}"
        self._secret = bool(secret)
        self._state = ResolutionState.UNRESOLVED
        self._claimed_by: int | None = None
        self._value: Any = _UNSET
        self._error: ResolutionError | None = None
        self._lock = threading.Lock()
        self._done = threading.Event()

        self._graph = _select_graph(graph, dependencies)
        self._graph.add_node(self, dependencies, metadata={"kind": self.kind})

    # Construction

    @classmethod
    def create(
        cls,
        thunk: Callable[[], T],
        dependencies: Iterable["DeferredValue[Any]"] = (),
        *,
        name: str | None = None,
        secret: bool = False,
        graph: Optional["DependencyGraph"] = None,
    ) -> "DeferredValue[T]":
        """
        Create an unresolved value.

        Raises:
            CyclicDependencyError: If the new edges would close a cycle
        """
        return cls(thunk, dependencies, name=name, secret=secret, graph=graph)

    @classmethod
    def of(
        cls,
        value: T,
        *,
        name: str | None = None,
        secret: bool = False,
        graph: Optional["DependencyGraph"] = None,
    ) -> "DeferredValue[T]":
        """Wrap a value that is already known."""
        return cls(lambda: value, (), name=name, secret=secret, graph=graph)

    # Operators

    def transform(self, fn: Callable[[T], U], *, name: str | None = None) -> "DeferredValue[U]":
        """
        Derive a new value by applying ``fn`` to this one.

        If ``fn`` returns a DeferredValue it is resolved in turn and its
        secrecy carries over to the result.
        """
        source = self
        return DeferredValue(
            lambda: fn(source.resolve()),
            (self,),
            name=name or f"{self.name}.{_callable_name(fn)}",
            graph=self._graph,
        )

    def combine(
        self,
        other: "DeferredValue[U] | U",
        fn: Callable[[T, U], V],
        *,
        name: str | None = None,
    ) -> "DeferredValue[V]":
        """Derive a new value from this one and ``other``."""
        if not isinstance(other, DeferredValue):
            other = DeferredValue.of(other, graph=self._graph)
        first, second = self, other
        return DeferredValue(
            lambda: fn(first.resolve(), second.resolve()),
            (first, second),
            name=name or f"{self.name}+{other.name}",
            graph=self._graph,
        )

    def mark_secret(self) -> "DeferredValue[T]":
        """
        Return a secret view of this value.

        The original value is left as it was. The view depends on it, so
        the original thunk still runs at most once.
        """
        return DeferredValue(
            self.resolve,
            (self,),
            name=f"{self.name}.secret",
            secret=True,
            graph=self._graph,
        )

    def depends_on(self, *values: "DeferredValue[Any]") -> "DeferredValue[T]":
        """
        Add ordering-only dependencies.

        Raises:
            CyclicDependencyError: If an edge would close a cycle (nothing is added)
            InvalidStateError: If this value has already started resolving
        """
        for value in values:
            if not isinstance(value, DeferredValue):
                raise TypeError(
                    f"Dependencies must be DeferredValue instances, got {type(value).__name__}"
                )
        with self._lock:
            if self._claimed_by is not None or self._state.is_terminal:
                raise InvalidStateError(
                    f"Cannot add dependencies to '{self.name}' after resolution started"
                )
            self._graph.add_edges(self, values)
        return self

    def __getitem__(self, key: Any) -> "DeferredValue[Any]":
        return self.transform(lambda value: value[key], name=f"{self.name}[{key!r}]")

    def __iter__(self):
        raise TypeError(
            "DeferredValue is not iterable; use transform() to work with the resolved value"
        )

    # Resolution

    def resolve(self) -> T:
        """
        Block until the value is computed and return it.

        Raises:
            ResolutionError: If the thunk or any dependency failed. The same
                error object is raised on every later call.
        """
        me = threading.get_ident()
        with self._lock:
            if self._claimed_by is None and not self._state.is_terminal:
                self._claimed_by = me
                owner = True
            else:
                owner = False
                if self._claimed_by == me and not self._done.is_set():
                    raise InvalidStateError(f"'{self.name}' depends on its own value")

        if owner:
            try:
                self._run()
            finally:
                if not self._state.is_terminal:
                    self._set_failed(
                        ResolutionError(
                            self.name,
                            cause=InvalidStateError("resolution interrupted"),
                            secret=self.is_secret,
                        )
                    )
                self._done.set()
        else:
            self._done.wait()

        return self._outcome()

    def _run(self) -> None:
        failures = []
        for dep in self.dependencies:
            try:
                dep.resolve()
            except ResolutionError as err:
                failures.append(err)

        if failures:
            self._set_failed(ResolutionError(self.name, upstream=failures))
            logger.debug("value_skipped", value=self.name, failed_dependencies=[e.name for e in failures])
            return

        with self._lock:
            self._state = ResolutionState.RESOLVING

        try:
            result = self._thunk()
            if isinstance(result, DeferredValue):
                if result.is_secret:
                    self._secret = True
                result = result.resolve()
        except ResolutionError as err:
            self._set_failed(ResolutionError(self.name, upstream=[err]))
            logger.debug("value_skipped", value=self.name, failed_dependencies=[err.name])
        except Exception as exc:
            self._set_failed(ResolutionError(self.name, cause=exc, secret=self.is_secret))
            logger.warning("value_failed", value=self.name, error=type(exc).__name__)
        else:
            with self._lock:
                self._value = result
                self._state = ResolutionState.RESOLVED
            logger.debug("value_resolved", value=self.name, secret=self.is_secret)

    def _set_failed(self, error: ResolutionError) -> None:
        with self._lock:
            self._error = error
            self._state = ResolutionState.FAILED

    def _outcome(self) -> T:
        if self._state is ResolutionState.FAILED:
            raise self._error
        return self._value

    # Introspection

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> str:
        return "value"

    @property
    def graph(self) -> "DependencyGraph":
        return self._graph

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def is_resolved(self) -> bool:
        return self._state is ResolutionState.RESOLVED

    @property
    def error(self) -> ResolutionError | None:
        """The cached failure, if this value failed."""
        return self._error

    @property
    def dependencies(self) -> list["DeferredValue[Any]"]:
        return self._graph.get_dependencies(self)

    @property
    def is_secret(self) -> bool:
        """True if this value or anything it was derived from is secret."""
        if self._secret:
            return True
        if any(ancestor._secret for ancestor in self._graph.ancestors(self)):
            self._secret = True
        return self._secret

    def __repr__(self) -> str:
        cls = type(self).__name__
        if self.is_resolved:
            shown = DEFAULT_PLACEHOLDER if self.is_secret else repr(self._value)
            return f"{cls}(name={self.name!r}, state=resolved, value={shown})"
        return f"{cls}(name={self.name!r}, state={self._state.value})"
