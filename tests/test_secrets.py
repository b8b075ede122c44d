"""
Tests for secret wrapping and log redaction.
"""

import pickle

import pytest
from strata.core.deferred import DeferredValue
from strata.secrets import (
    DEFAULT_PLACEHOLDER,
    SecretRedactor,
    SecretValue,
    is_secret,
    redact,
    redact_nested,
    redact_secret_values,
)


class TestSecretValue:
    """SecretValue hides its content unless unwrapped."""

    def test_rendering_is_redacted(self):
        secret = SecretValue("hunter2")

        assert str(secret) == DEFAULT_PLACEHOLDER
        assert "hunter2" not in repr(secret)
        assert f"{secret}" == DEFAULT_PLACEHOLDER
        assert "hunter2" not in "password=%s" % secret

    def test_unwrap(self):
        assert SecretValue({"key": "value"}).unwrap() == {"key": "value"}

    def test_custom_placeholder(self):
        assert str(SecretValue("x", placeholder="***")) == "***"

    def test_cannot_be_pickled(self):
        with pytest.raises(TypeError):
            pickle.dumps(SecretValue("hunter2"))


class TestRedaction:
    """Helpers used when values leave the engine."""

    def test_redact(self):
        assert redact("value", secret=False) == "value"
        assert redact("value", secret=True) == DEFAULT_PLACEHOLDER
        assert redact(SecretValue("value"), secret=False) == DEFAULT_PLACEHOLDER

    def test_is_secret(self):
        assert is_secret(SecretValue(1))
        assert is_secret(DeferredValue.of(1, secret=True))
        assert not is_secret(DeferredValue.of(1))
        assert not is_secret("plain")

    def test_log_processor_redacts_secrets(self):
        event = {
            "event": "connected",
            "password": SecretValue("hunter2"),
            "token": DeferredValue.of("abc").mark_secret(),
            "host": "db.internal",
        }

        result = redact_secret_values(None, "info", event)

        assert result["password"] == DEFAULT_PLACEHOLDER
        assert result["token"] == DEFAULT_PLACEHOLDER
        assert result["host"] == "db.internal"

    def test_log_processor_redacts_nested_secrets(self):
        secret = DeferredValue.of("apiVersion: v1", secret=True)
        event = {
            "event": "provisioning",
            "args": {"kubeconfig": secret, "metadata": {"name": "apps"}},
            "tokens": [SecretValue("a"), "public"],
            "pair": ("user", SecretValue("b")),
        }

        result = redact_secret_values(None, "info", event)

        assert result["args"] == {"kubeconfig": "[secret]", "metadata": {"name": "apps"}}
        assert result["tokens"] == ["[secret]", "public"]
        assert result["pair"] == ("user", "[secret]")

    def test_redactor_uses_its_placeholder(self):
        redactor = SecretRedactor("***")

        result = redactor(None, "info", {"config": {"password": SecretValue("hunter2")}})

        assert result["config"] == {"password": "***"}

    def test_redact_nested_leaves_public_values(self):
        value = {"name": "cluster-1", "ports": [80, 443]}

        assert redact_nested(value) == value
        public = DeferredValue.of("x")
        assert redact_nested(public) is public
