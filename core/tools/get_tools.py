import logging
from typing import List

from core.models import ToolCallable, ToolHostProtocol
from .factory import get_local_tools

logger = logging.getLogger(__name__)


def get_tools(host: ToolHostProtocol) -> List[ToolCallable]:
    tools = get_local_tools(host)
    logger.info("✅ Loaded total %d codebase memory tools.", len(tools))
    return tools
