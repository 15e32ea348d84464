"""
Core API for the Codebase Memory system.

This package provides a clean, interface-agnostic API that can be used
by the CLI, the web server, agent tools or any other interface.
"""
from .codebase_memory import CodebaseMemory
from .schemas import TOOLS, ToolParams, ToolSpec

__all__ = ["CodebaseMemory", "TOOLS", "ToolParams", "ToolSpec"]
