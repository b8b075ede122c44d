"""
Secret tracking for deferred values.

Secrecy is a flag on each DeferredValue, inherited by everything derived
from it. These helpers enforce it when values leave the engine.
"""

from strata.secrets.tracker import (
    DEFAULT_PLACEHOLDER,
    SecretRedactor,
    SecretValue,
    is_secret,
    redact,
    redact_nested,
    redact_secret_values,
)

__all__ = [
    "DEFAULT_PLACEHOLDER",
    "SecretRedactor",
    "SecretValue",
    "is_secret",
    "redact",
    "redact_nested",
    "redact_secret_values",
]
