"""
Resource handles: deferred values with a provisioning side effect.
"""

from strata.resources.handle import ResourceHandle

__all__ = ["ResourceHandle"]
