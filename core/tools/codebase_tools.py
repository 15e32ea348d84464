import logging
from typing import Annotated, Any, Dict, List, Type

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, create_model

from core.api.schemas import TOOLS, ToolParams, ToolSpec
from core.errors import CodebaseMemoryError
from core.models import ToolCallable, ToolHostProtocol
from core.utils.response_formatter import format_response_text

logger = logging.getLogger(__name__)


def tool_args_schema(params: Type[ToolParams]) -> Type[BaseModel]:
    """Twin of `params` addressed by Python field names only.

    The tool forwards its arguments to `host.call_tool`, which validates them
    again against `params`, so defaults resolve the same whether or not
    LangChain filled them in.
    """
    fields: Dict[str, Any] = {}
    for name, info in params.model_fields.items():
        annotation = Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
        if info.is_required():
            default = Field(..., description=info.description)
        elif info.default_factory is not None:
            default = Field(default_factory=info.default_factory, description=info.description)
        else:
            default = Field(info.default, description=info.description)
        fields[name] = (annotation, default)
    return create_model(f"{params.__name__}Args", __config__=ConfigDict(extra='forbid'), **fields)


def _build_tool(host: ToolHostProtocol, spec: ToolSpec) -> StructuredTool:
    async def run(**kwargs: Any) -> str:
        logger.info("🔎 Tool '%s' called with %s", spec.name, sorted(kwargs))
        try:
            result = await host.call_tool(spec.name, kwargs)
        except CodebaseMemoryError as e:
            logger.warning("⚠️ Tool '%s' failed: %s", spec.name, e)
            return f"❌ {e}"
        return format_response_text(result)

    return StructuredTool.from_function(
        coroutine=run,
        name=spec.name,
        description=spec.description,
        args_schema=tool_args_schema(spec.params),
    )


def build_codebase_tools(host: ToolHostProtocol) -> List[ToolCallable]:
    """One agent tool per operation in the catalog, each dispatching through `host.call_tool`."""
    return [_build_tool(host, spec) for spec in TOOLS.values()]
