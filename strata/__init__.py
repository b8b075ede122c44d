"""
Strata: deferred-value orchestration for infrastructure programs.

Strata lets an orchestration program be written top to bottom while the
values it wires together (a cluster's credentials, a config store's
connection string) are only known once the resources exist.

Core concepts:
- DeferredValue: a value computed later, at most once
- transform / combine: derive new deferred values from existing ones
- mark_secret: secrecy that every derived value inherits
- ResourceHandle: a deferred value that provisions something
- OrchestrationContext: resolves exports in dependency order

Example:
    from strata import OrchestrationContext

    with OrchestrationContext("infra") as ctx:
        cluster = ctx.provision("cluster-1", create_cluster, {"dns_prefix": "demo"})
        kubeconfig = cluster.output("kubeconfig").mark_secret()
        ctx.provision("dev-ns", create_namespace, {"kubeconfig": kubeconfig})
        ctx.export("kubeconfig", kubeconfig)

    report = ctx.run()
    print(report.render())           # kubeconfig: [secret]
    report.unwrap("kubeconfig")      # the real value
"""

from strata.core.deferred import DeferredValue, ResolutionState
from strata.core.dag import DependencyGraph
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
from strata.resources import ResourceHandle
from strata.secrets import SecretValue
from strata.execution import Executor, ResolutionScheduler
from strata.config import EngineConfig, load_config
from strata.logging import configure_logging

__version__ = "0.1.0"
__all__ = [
    "DeferredValue",
    "ResolutionState",
    "DependencyGraph",
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
    "ResourceHandle",
    "SecretValue",
    "Executor",
    "ResolutionScheduler",
    "EngineConfig",
    "load_config",
    "configure_logging",
]
