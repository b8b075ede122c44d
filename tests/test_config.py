"""
Tests for engine configuration loading.
"""

import pytest
from pydantic import ValidationError
from strata.config import EngineConfig, load_config


class TestEngineConfig:
    """Defaults, YAML files and environment overrides."""

    def test_defaults(self):
        config = load_config(env={})

        assert config == EngineConfig()
        assert config.max_workers == 4
        assert config.redaction_placeholder == "[secret]"
        assert config.log_format == "console"

    def test_yaml_file_under_strata_key(self, tmp_path):
        path = tmp_path / "strata.yaml"
        path.write_text("strata:\n  max_workers: 8\n  log_level: DEBUG\n")

        config = load_config(path, env={})

        assert config.max_workers == 8
        assert config.log_level == "DEBUG"

    def test_yaml_file_top_level(self, tmp_path):
        path = tmp_path / "strata.yaml"
        path.write_text("redaction_placeholder: '***'\n")

        assert load_config(path, env={}).redaction_placeholder == "***"

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "strata.yaml"
        path.write_text("")

        assert load_config(path, env={}) == EngineConfig()

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "strata.yaml"
        path.write_text("max_workers: 8\n")

        config = load_config(path, env={"STRATA_MAX_WORKERS": "2", "STRATA_LOG_FORMAT": "json"})

        assert config.max_workers == 2
        assert config.log_format == "json"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            load_config(env={"STRATA_MAX_WORKERS": "0"})
        with pytest.raises(ValidationError):
            EngineConfig(log_format="xml")

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "strata.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_config(path, env={})
