"""
Core Module - Codebase Memory & Intelligence

This is a pure library module with NO CLI or server code.
Import this in your CLI, server, or any other application.

Usage:
    from core import CodebaseMemory, Settings

    memory = CodebaseMemory.from_settings(Settings.from_env())
    # call_tool() is async
    # await memory.call_tool("analyze_codebase_structure", {"depth": "shallow"})
"""

from core.api import CodebaseMemory
from core.config import Settings

__all__ = ["CodebaseMemory", "Settings"]
