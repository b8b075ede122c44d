"""
ResourceHandle: a deferred value whose resolution provisions something.

The provisioning callable is an external collaborator (a cloud SDK call, a
Kubernetes client, an in-memory fake in tests). The handle only guarantees
it is invoked once, after every deferred argument is resolved.
"""

from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional, TypeVar, TYPE_CHECKING

import structlog

from strata.core.deferred import DeferredValue

if TYPE_CHECKING:
    from strata.core.dag import DependencyGraph

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _collect_deferred(value: Any, found: list) -> None:
    if isinstance(value, DeferredValue):
        if value not in found:
            found.append(value)
    elif isinstance(value, Mapping):
        for item in value.values():
            _collect_deferred(item, found)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_deferred(item, found)


def _resolve_nested(value: Any) -> Any:
    """Replace DeferredValues inside dicts, lists and tuples by their results."""
    if isinstance(value, DeferredValue):
        return value.resolve()
    if isinstance(value, Mapping):
        return {key: _resolve_nested(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_nested(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_resolve_nested(item) for item in value)
    return value


class ResourceHandle(DeferredValue[T]):
    """
    "This resource, once it exists."

    Arguments may be plain values or DeferredValues, also nested inside
    dicts, lists and tuples. Deferred arguments become dependencies and are
    passed to ``provision`` as plain values.
    Handles are always resolved by a run, even if nothing exports them.

    Example:
        cluster = ResourceHandle(
            "cluster-1",
            create_cluster,
            args={"resource_group": "mspulumi", "dns_prefix": "demo"},
        )
        namespace = ResourceHandle(
            "dev-ns",
            create_namespace,
            args={"kubeconfig": cluster.output("kubeconfig"), "name": "apps"},
        )
    """

    has_side_effect = True

    def __init__(
        self,
        name: str,
        provision: Callable[..., T],
        args: Mapping[str, Any] | None = None,
        *,
        depends_on: Iterable[DeferredValue[Any]] = (),
        secret: bool = False,
        graph: Optional["DependencyGraph"] = None,
    ):
        self._args = dict(args or {})
        self._provision = provision

        dependencies: list[DeferredValue[Any]] = []
        _collect_deferred(list(self._args.values()), dependencies)
        for value in depends_on:
            if not isinstance(value, DeferredValue):
                raise TypeError(
                    f"Dependencies must be DeferredValue instances, got {type(value).__name__}"
                )
            if value not in dependencies:
                dependencies.append(value)

        super().__init__(
            self._provision_once,
            dependencies,
            name=name,
            secret=secret,
            graph=graph,
        )

    @property
    def kind(self) -> str:
        return "resource"

    def _provision_once(self) -> T:
        resolved = {key: _resolve_nested(value) for key, value in self._args.items()}
        logger.info("resource_provisioning", resource=self.name)
        result = self._provision(**resolved)
        logger.info("resource_provisioned", resource=self.name)
        return result

    def output(self, key: str) -> DeferredValue[Any]:
        """
        A property of the provisioned resource.

        Reads ``result[key]`` for mapping results and ``result.key`` otherwise.
        """
        def read(result: Any) -> Any:
            if isinstance(result, Mapping):
                return result[key]
            return getattr(result, key)

        return self.transform(read, name=f"{self.name}.{key}")
