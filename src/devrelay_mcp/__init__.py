"""DevRelay MCP - sandboxed process orchestration for remote agents."""

__version__ = "0.1.0"
