"""
Engine configuration.

Settings come from an optional YAML file and are then overridden by
``STRATA_*`` environment variables.
"""

import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field

from strata.secrets.tracker import DEFAULT_PLACEHOLDER

ENV_PREFIX = "STRATA_"


class EngineConfig(BaseModel):
    """
    Strata engine configuration.

    Example:
        config = EngineConfig(
            max_workers=8,
            redaction_placeholder="***",
            log_format="json",
        )

        ctx = OrchestrationContext("infra", config=config)

    Or in YAML:
        strata:
          max_workers: 8
          log_level: DEBUG
    """

    max_workers: int = Field(
        default=4, ge=1, description="Thread pool size for resolving independent values"
    )
    redaction_placeholder: str = Field(
        default=DEFAULT_PLACEHOLDER, description="Text shown in place of secret values"
    )
    log_level: str = Field(default="INFO", description="Standard logging level name")
    log_format: Literal["console", "json"] = Field(
        default="console", description="structlog renderer"
    )


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> EngineConfig:
    """
    Load engine configuration.

    Args:
        path: Optional YAML file. Settings may sit at the top level or under
            a ``strata:`` key.
        env: Environment to read overrides from (default: ``os.environ``)

    Returns:
        Validated EngineConfig

    Raises:
        pydantic.ValidationError: If a setting has an invalid value
        ValueError: If the YAML document is not a mapping
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    if path is not None:
        with open(path) as f:
            document = yaml.safe_load(f) or {}
        if not isinstance(document, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        data.update(document.get("strata", document))

    for field_name in EngineConfig.model_fields:
        raw = env.get(ENV_PREFIX + field_name.upper())
        if raw is not None:
            data[field_name] = raw

    return EngineConfig(**data)
