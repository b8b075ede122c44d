"""
Configuration for the Strata engine.
"""

from strata.config.engine import EngineConfig, load_config

__all__ = [
    "EngineConfig",
    "load_config",
]
