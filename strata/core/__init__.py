"""
Core Strata functionality.

- DeferredValue: a value computed later, with explicit dependencies
- DependencyGraph: the acyclic graph those dependencies form
- OrchestrationContext: owns a run's values and exports
"""

from strata.core.deferred import DeferredValue, ResolutionState
from strata.core.dag import DependencyGraph, DAGNode
from strata.core.errors import (
    StrataError,
    CyclicDependencyError,
    ResolutionError,
    DuplicateExportError,
    ContextClosedError,
    InvalidStateError,
)
from strata.core.operators import as_deferred, combine_all, all_of, concat, format_value
from strata.core.report import ExportResult, ExportStatus, RunReport
from strata.core.context import (
    OrchestrationContext,
    get_context,
    set_context,
    reset_context,
    export,
)

__all__ = [
    "DeferredValue",
    "ResolutionState",
    "DependencyGraph",
    "DAGNode",
    "StrataError",
    "CyclicDependencyError",
    "ResolutionError",
    "DuplicateExportError",
    "ContextClosedError",
    "InvalidStateError",
    "as_deferred",
    "combine_all",
    "all_of",
    "concat",
    "format_value",
    "ExportResult",
    "ExportStatus",
    "RunReport",
    "OrchestrationContext",
    "get_context",
    "set_context",
    "reset_context",
    "export",
]
