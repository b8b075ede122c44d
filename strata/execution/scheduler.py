"""
Thread-pool scheduler that resolves a dependency graph leaves first.
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Set

import structlog

from strata.core.deferred import DeferredValue, ResolutionState
from strata.core.errors import ResolutionError
from strata.execution.executor import Executor

logger = structlog.get_logger(__name__)


class ResolutionScheduler(Executor):
    """
    Resolves the subgraph reachable from a set of roots.

    A value is submitted to the pool only once every one of its
    dependencies inside the subgraph is terminal, so its thunk never starts
    early. Independent branches run in parallel up to ``max_workers``.
    A value whose dependency failed fails too, without running its thunk.
    """

    def __init__(self, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._cancelled = threading.Event()
        self._values: List[DeferredValue] = []
        self._unscheduled: Set[DeferredValue] = set()
        self._elapsed: float | None = None

    def execute(self, roots: Iterable[DeferredValue]) -> None:
        """
        Resolve the roots and their transitive dependencies.

        Raises:
            Exception: Anything other than a ResolutionError escaping a value.
                No new values are submitted after it; running ones finish.
        """
        roots = list(roots)
        if not roots:
            return

        graph = roots[0].graph
        subgraph = graph.reachable(roots)
        self._values = graph.topological_sort(subgraph)
        self._unscheduled = set(self._values)

        waiting: Dict[DeferredValue, Set[DeferredValue]] = {
            value: {
                dep for dep in value.dependencies
                if dep in subgraph and not dep.state.is_terminal
            }
            for value in self._values
        }
        ready = [v for v in self._values if not waiting[v]]
        running: Dict[Future, DeferredValue] = {}
        crashed: List[BaseException] = []

        logger.info("run_started", values=len(self._values), max_workers=self.max_workers)
        start_time = time.time()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="strata") as pool:
            while ready or running:
                if not self._cancelled.is_set() and not crashed:
                    for value in ready:
                        self._unscheduled.discard(value)
                        running[pool.submit(self._resolve_one, value)] = value
                ready = []

                if not running:
                    break

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    value = running.pop(future)
                    error = future.exception()
                    if error is not None:
                        logger.error("value_crashed", value=value.name, error=type(error).__name__)
                        crashed.append(error)
                        continue
                    for dependent in graph.get_dependents(value):
                        if dependent not in waiting:
                            continue
                        pending = waiting[dependent]
                        if value in pending:
                            pending.discard(value)
                            if not pending and dependent in self._unscheduled:
                                ready.append(dependent)

        self._elapsed = time.time() - start_time

        if self._cancelled.is_set():
            logger.warning("run_cancelled", unscheduled=len(self._unscheduled))
        logger.info("run_finished", elapsed=round(self._elapsed, 3), **self._counts())

        if crashed:
            raise crashed[0]

    def _resolve_one(self, value: DeferredValue) -> None:
        if value.state.is_terminal:
            return
        try:
            value.resolve()
        except ResolutionError:
            # Recorded on the value; consumers pick it up through resolve().
            pass

    def cancel(self) -> None:
        """Stop submitting new values; running thunks complete."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _counts(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in ResolutionState}
        for value in self._values:
            counts[value.state.value] += 1
        return counts

    def get_status(self) -> Dict[str, Any]:
        """Counts of values by state for the last run."""
        return {
            "total": len(self._values),
            "states": self._counts(),
            "unscheduled": sorted(v.name for v in self._unscheduled),
            "cancelled": self.cancelled,
            "elapsed": self._elapsed,
        }
