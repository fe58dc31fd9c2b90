"""Debug adapter factory.

Runtime adapters register themselves with ``@register_adapter``; adding a
runtime is a new registered class, not a new branch at each call site.
"""

from collections.abc import Callable

from devrelay_mcp.adapters.base import DebugAdapter, RuntimeKind
from devrelay_mcp.core.exceptions import UnsupportedRuntimeError

# Registry of adapter classes by runtime kind
_ADAPTER_REGISTRY: dict[RuntimeKind, type[DebugAdapter]] = {}

AdapterFactory = Callable[[str], DebugAdapter]


def register_adapter(kind: RuntimeKind) -> Callable[[type[DebugAdapter]], type[DebugAdapter]]:
    """Decorator to register an adapter class for a runtime.

    Usage:
        @register_adapter(RuntimeKind.PYTHON)
        class PythonAdapter(DebugAdapter):
            ...
    """

    def decorator(cls: type[DebugAdapter]) -> type[DebugAdapter]:
        _ADAPTER_REGISTRY[kind] = cls
        return cls

    return decorator


def create_adapter(kind: str | RuntimeKind, step_delay: float = 0.1) -> DebugAdapter:
    """Create the debug adapter for a runtime kind.

    Raises:
        UnsupportedRuntimeError: Unknown kind, or a kind with no adapter
    """
    if isinstance(kind, str):
        try:
            runtime = RuntimeKind(kind.lower())
        except ValueError:
            raise UnsupportedRuntimeError(kind, get_supported_runtimes())
    else:
        runtime = kind

    adapter_class = _ADAPTER_REGISTRY.get(runtime)
    if adapter_class is None:
        raise UnsupportedRuntimeError(runtime.value, get_supported_runtimes())

    return adapter_class(step_delay=step_delay)


def get_supported_runtimes() -> list[str]:
    """Runtime kinds that have a registered adapter."""
    return [kind.value for kind in _ADAPTER_REGISTRY]


def is_runtime_supported(kind: str) -> bool:
    try:
        return RuntimeKind(kind.lower()) in _ADAPTER_REGISTRY
    except ValueError:
        return False
