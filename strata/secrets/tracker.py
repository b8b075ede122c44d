"""
Secret tracking: keep sensitive values out of logs and reports.

Secrecy travels with the DeferredValue itself. When a run materializes its
exports, secret results are wrapped in ``SecretValue`` so the real value is
only reachable through an explicit ``unwrap()``.
"""

from collections.abc import Mapping
from typing import Any, Generic, MutableMapping, TypeVar

T = TypeVar("T")

DEFAULT_PLACEHOLDER = "[secret]"


class SecretValue(Generic[T]):
    """
    A resolved value that must never be rendered in plaintext.

    ``str()`` and ``repr()`` show the placeholder. Consumers with a
    legitimate need call ``unwrap()``.

    Example:
        password = SecretValue("hunter2")
        print(password)      # [secret]
        password.unwrap()    # "hunter2"
    """

    __slots__ = ("_value", "_placeholder")

    def __init__(self, value: T, placeholder: str = DEFAULT_PLACEHOLDER):
        self._value = value
        self._placeholder = placeholder

    def unwrap(self) -> T:
        """Return the real value."""
        return self._value

    @property
    def placeholder(self) -> str:
        return self._placeholder

    def __str__(self) -> str:
        return self._placeholder

    def __repr__(self) -> str:
        return f"SecretValue({self._placeholder})"

    def __format__(self, format_spec: str) -> str:
        return format(self._placeholder, format_spec)

    def __reduce__(self):
        raise TypeError("SecretValue cannot be serialized")


def is_secret(obj: Any) -> bool:
    """Check whether an object is a secret value or a secret deferred value."""
    if isinstance(obj, SecretValue):
        return True

    from strata.core.deferred import DeferredValue

    return isinstance(obj, DeferredValue) and obj.is_secret


def redact(value: Any, secret: bool, placeholder: str = DEFAULT_PLACEHOLDER) -> Any:
    """Return the placeholder for secret values, the value otherwise."""
    if secret or isinstance(value, SecretValue):
        return placeholder
    return value


def redact_nested(value: Any, placeholder: str = DEFAULT_PLACEHOLDER) -> Any:
    """
    Replace secrets anywhere inside dicts, lists and tuples.

    Containers are copied; the originals are not modified.
    """
    if is_secret(value):
        return placeholder
    if isinstance(value, Mapping):
        return {key: redact_nested(item, placeholder) for key, item in value.items()}
    if isinstance(value, list):
        return [redact_nested(item, placeholder) for item in value]
    if isinstance(value, tuple):
        return tuple(redact_nested(item, placeholder) for item in value)
    return value


class SecretRedactor:
    """
    structlog processor that replaces secret values in log events.

    Secrets are found at any depth of dict, list and tuple values.
    Installed by ``strata.logging.configure_logging``.
    """

    def __init__(self, placeholder: str = DEFAULT_PLACEHOLDER):
        self.placeholder = placeholder

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for key, value in list(event_dict.items()):
            event_dict[key] = redact_nested(value, self.placeholder)
        return event_dict


redact_secret_values = SecretRedactor()
