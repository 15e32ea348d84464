from typing import List

from .codebase_tools import build_codebase_tools
from core.models import ToolBuilder, ToolCallable, ToolHostProtocol


def get_local_tools(host: ToolHostProtocol) -> List[ToolCallable]:
    """Return the default list of tool callables backed by the given host."""
    builders: List[ToolBuilder] = [
        build_codebase_tools
    ]
    tools = [tool for builder in builders for tool in builder(host)]
    return tools
