"""
Operators that lift plain functions over several deferred values.

Every operator accepts plain values as well as DeferredValues, and the
result is secret if any input is.
"""

from typing import Any, Callable, Iterable, Optional, TYPE_CHECKING

from strata.core.deferred import DeferredValue

if TYPE_CHECKING:
    from strata.core.dag import DependencyGraph


def as_deferred(value: Any, graph: Optional["DependencyGraph"] = None) -> DeferredValue:
    """Lift a plain value into a DeferredValue; DeferredValues pass through."""
    if isinstance(value, DeferredValue):
        return value
    return DeferredValue.of(value, graph=graph)


def _lift_all(values: Iterable[Any]) -> list[DeferredValue]:
    values = list(values)
    graph = next((v.graph for v in values if isinstance(v, DeferredValue)), None)
    return [as_deferred(v, graph) for v in values]


def combine_all(
    values: Iterable[Any],
    fn: Callable[..., Any],
    name: str | None = None,
) -> DeferredValue:
    """
    Derive one value from many.

    ``fn`` receives the resolved inputs positionally, in the order given.
    """
    inputs = _lift_all(values)
    if not inputs:
        return DeferredValue.create(fn, (), name=name)
    return DeferredValue.create(
        lambda: fn(*(value.resolve() for value in inputs)),
        inputs,
        name=name or "combine(" + ", ".join(v.name for v in inputs) + ")",
    )


def all_of(*values: Any) -> DeferredValue:
    """
    Wait for every input and produce a tuple of their resolved values.

    Example:
        pair = all_of(cluster_name, resource_group)
        pair.transform(lambda p: f"{p[1]}/{p[0]}")
    """
    return combine_all(values, lambda *resolved: tuple(resolved), name=None)


def concat(*parts: Any) -> DeferredValue:
    """Concatenate the string forms of the resolved parts."""
    return combine_all(
        parts,
        lambda *resolved: "".join(str(part) for part in resolved),
        name="concat(" + ", ".join(_label(p) for p in parts) + ")",
    )


def format_value(template: str, *args: Any, **kwargs: Any) -> DeferredValue:
    """
    ``str.format`` over resolved arguments.

    Example:
        url = format_value("https://{host}:{port}", host=endpoint, port=443)
    """
    keys = list(kwargs)
    count = len(args)

    def render(*resolved):
        return template.format(*resolved[:count], **dict(zip(keys, resolved[count:])))

    return combine_all(
        list(args) + [kwargs[key] for key in keys],
        render,
        name=f"format({template!r})",
    )


def _label(value: Any) -> str:
    return value.name if isinstance(value, DeferredValue) else repr(value)
