"""Tools package exposing the codebase memory operations to agents.

Each tool module exposes a `build_<name>_tools(host)` function returning
LangChain tools that dispatch through the host's `call_tool`.
Factory functions in `factory.py` assemble the toolset.
"""

from .get_tools import get_tools

__all__ = ["get_tools"]
