import json

import pytest

from core.api import TOOLS
from core.api.schemas import GetRelatedFilesParams
from core.errors import ProjectFileNotFoundError
from core.tools import get_tools
from core.tools.codebase_tools import tool_args_schema


class FakeHost:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        if self.error is not None:
            raise self.error
        return {"tool": name, "arguments": arguments}

    def list_tools(self):
        return []


def test_one_tool_per_operation():
    tools = get_tools(FakeHost())

    assert [t.name for t in tools] == list(TOOLS)
    assert all(t.description for t in tools)


def test_args_schema_uses_python_field_names():
    schema = tool_args_schema(GetRelatedFilesParams)

    assert set(schema.model_fields) == {"file_path", "relationship_types", "max_results"}
    assert schema.model_fields["file_path"].is_required()
    assert schema.model_validate({"file_path": "a.ts"}).max_results == 10
    with pytest.raises(ValueError):
        schema.model_validate({"file_path": "a.ts", "max_results": 0})


@pytest.mark.asyncio
async def test_tool_dispatches_through_the_host():
    host = FakeHost()
    tool = {t.name: t for t in get_tools(host)}["get_related_files"]

    output = await tool.ainvoke({"file_path": "src/app.ts", "max_results": 3})

    [(name, arguments)] = host.calls
    assert name == "get_related_files"
    assert GetRelatedFilesParams.model_validate(arguments) == GetRelatedFilesParams(file_path="src/app.ts", max_results=3)
    assert json.loads(output)["tool"] == "get_related_files"


@pytest.mark.asyncio
async def test_tool_reports_engine_errors_as_text():
    host = FakeHost(error=ProjectFileNotFoundError("src/missing.ts"))
    tool = {t.name: t for t in get_tools(host)}["get_related_files"]

    output = await tool.ainvoke({"file_path": "src/missing.ts"})

    assert output == "❌ File not found in project: src/missing.ts"
