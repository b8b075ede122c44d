"""
Execution interfaces for resolving deferred values.

The default executor is a thread-pool scheduler; other executors can be
injected into ``OrchestrationContext.run``.
"""

from strata.execution.executor import Executor
from strata.execution.scheduler import ResolutionScheduler

__all__ = [
    "Executor",
    "ResolutionScheduler",
]
