"""Adapters — bindings for package managers, repositories and installers.

Public re-exports for convenient access.
"""

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.adapters.mock import MockAdapter
from aphadon.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
