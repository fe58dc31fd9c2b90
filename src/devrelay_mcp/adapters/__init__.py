"""Debug adapters - launch strategies for each supported runtime.

This package provides:
- DebugAdapter: Abstract base class for runtime adapters
- create_adapter: Factory for creating the adapter of a runtime kind
- Runtime adapters (node, python, go, java, csharp, php, ruby, rust)
"""

from devrelay_mcp.adapters import runtimes  # noqa: F401  (registers adapters)
from devrelay_mcp.adapters.base import DebugAdapter, LaunchSpec, RuntimeKind, StepMode
from devrelay_mcp.adapters.factory import (
    AdapterFactory,
    create_adapter,
    get_supported_runtimes,
    is_runtime_supported,
    register_adapter,
)

__all__ = [
    # Base classes
    "DebugAdapter",
    "LaunchSpec",
    "RuntimeKind",
    "StepMode",
    # Factory
    "AdapterFactory",
    "create_adapter",
    "register_adapter",
    "get_supported_runtimes",
    "is_runtime_supported",
]
