"""
Tests for logging configuration.
"""

import json
import logging

import pytest
import structlog
from strata.core.deferred import DeferredValue
from strata.logging import bind_context, configure_logging
from strata.secrets import SecretValue

LOGGER_NAME = "strata.tests.logging"


@pytest.fixture
def restore_structlog():
    """Put the test suite's structlog configuration back afterwards."""
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


class TestConfigureLogging:
    """configure_logging installs secret redaction in front of the renderer."""

    def test_json_output_redacts_secrets(self, restore_structlog, caplog):
        configure_logging(logging.INFO, "json")
        log = structlog.get_logger(LOGGER_NAME)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log.info(
                "provider_configured",
                kubeconfig=DeferredValue.of("apiVersion: v1", secret=True),
                args={"password": SecretValue("hunter2"), "region": "westeurope"},
            )

        rendered = caplog.records[-1].getMessage()
        data = json.loads(rendered)

        assert data["event"] == "provider_configured"
        assert data["level"] == "info"
        assert data["kubeconfig"] == "[secret]"
        assert data["args"] == {"password": "[secret]", "region": "westeurope"}
        assert "hunter2" not in rendered

    def test_custom_placeholder(self, restore_structlog, caplog):
        configure_logging(logging.INFO, "json", placeholder="***")
        log = structlog.get_logger(LOGGER_NAME)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log.info("connected", password=SecretValue("hunter2"))

        data = json.loads(caplog.records[-1].getMessage())

        assert data["password"] == "***"

    def test_console_output_redacts_secrets(self, restore_structlog, caplog):
        configure_logging(logging.INFO, "console")
        log = structlog.get_logger(LOGGER_NAME)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log.info("connected", password=SecretValue("hunter2"))

        rendered = caplog.records[-1].getMessage()

        assert "connected" in rendered
        assert "hunter2" not in rendered

    def test_bind_context(self, restore_structlog, caplog):
        configure_logging(logging.INFO, "json")
        log = bind_context(stack="infra-dev")

        with caplog.at_level(logging.INFO):
            log.info("exports_materialized")

        data = json.loads(caplog.records[-1].getMessage())

        assert data["stack"] == "infra-dev"
