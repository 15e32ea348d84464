import threading
from datetime import timedelta

import pytest

from core import CodebaseMemory, Settings
from core.api import TOOLS
from core.errors import ProjectFileNotFoundError, ToolNotFoundError, ToolValidationError


@pytest.fixture
def memory(ts_project, memory_dir, clock) -> CodebaseMemory:
    return CodebaseMemory(str(ts_project), str(memory_dir), clock=clock)


def test_list_tools_exposes_camel_case_schemas(memory):
    tools = {t["name"]: t for t in memory.list_tools()}

    assert set(tools) == set(TOOLS)
    schema = tools["get_related_files"]["inputSchema"]
    assert schema["required"] == ["filePath"]
    assert "maxResults" in schema["properties"]


def test_arguments_accept_camel_and_snake_case():
    camel = CodebaseMemory.validate_arguments("get_related_files", {"filePath": "a.ts", "maxResults": 5})
    snake = CodebaseMemory.validate_arguments("get_related_files", {"file_path": "a.ts", "max_results": 5})

    assert camel == snake
    assert camel.relationship_types == ["imports", "exports", "tests"]


def test_missing_required_field_is_reported():
    with pytest.raises(ToolValidationError) as exc_info:
        CodebaseMemory.validate_arguments("generate_context_aware_code", {"intent": "create user"})

    assert exc_info.value.tool == "generate_context_aware_code"
    assert [e["field"] for e in exc_info.value.errors] == ["fileType"]


def test_unknown_and_out_of_range_fields_are_rejected():
    with pytest.raises(ToolValidationError) as exc_info:
        CodebaseMemory.validate_arguments("get_related_files", {"filePath": "a.ts", "maxResults": 100, "bogus": 1})

    fields = {e["field"] for e in exc_info.value.errors}
    assert "bogus" in fields
    assert len(exc_info.value.errors) == 2


def test_empty_intent_is_rejected():
    with pytest.raises(ToolValidationError):
        CodebaseMemory.validate_arguments("generate_context_aware_code", {"intent": "", "fileType": "service"})


def test_unknown_tool():
    with pytest.raises(ToolNotFoundError) as exc_info:
        CodebaseMemory.validate_arguments("delete_everything", {})

    assert exc_info.value.name == "delete_everything"


@pytest.mark.asyncio
async def test_call_tool_records_the_result_in_memory(memory):
    result = await memory.call_tool("analyze_codebase_structure", {"depth": "shallow", "focusAreas": ["patterns"]})

    assert result["architecture_pattern"] == "Service Layer Architecture"
    [entry] = memory.query_memory(type="analysis")
    assert entry.data == result
    assert entry.metadata["fileCount"] == 5
    assert "patterns" in entry.metadata["tags"]
    assert memory.memory_stats()["entries_by_type"] == {"analysis": 1}


@pytest.mark.asyncio
async def test_each_tool_records_its_own_memory_type(memory):
    await memory.call_tool("get_related_files", {"filePath": "src/services/user.service.ts"})
    await memory.call_tool("suggest_refactoring_opportunities", {"priority": "low"})
    await memory.call_tool("validate_coding_patterns", {"patterns": ["service-layer"], "strictMode": True})
    await memory.call_tool("generate_context_aware_code", {"intent": "create order", "fileType": "service"})
    await memory.call_tool("track_technical_debt", {})
    await memory.call_tool("optimize_dependencies", {"analysisType": "security"})

    by_type = memory.memory_stats()["entries_by_type"]
    assert by_type == {
        "relationship": 1,
        "refactoring": 1,
        "pattern": 1,
        "generation": 1,
        "debt": 1,
        "dependency": 1,
    }
    [relationship] = memory.query_memory(type="relationship")
    assert relationship.metadata["file"] == "src/services/user.service.ts"
    [pattern] = memory.query_memory(type="pattern")
    assert pattern.metadata["strictMode"] is True


@pytest.mark.asyncio
async def test_failed_tool_call_records_nothing(memory):
    with pytest.raises(ProjectFileNotFoundError):
        await memory.call_tool("get_related_files", {"filePath": "src/missing.ts"})

    assert memory.memory_stats()["total_entries"] == 0


@pytest.mark.asyncio
async def test_dependency_history_feeds_recommendations(memory):
    await memory.call_tool("optimize_dependencies", {"analysisType": "security"})

    recommendations = await memory.get_contextual_recommendations()

    titles = [r["title"] for r in recommendations]
    assert "Historical data suggests prioritizing dependency updates" in titles


@pytest.mark.asyncio
async def test_cleanup_memory(memory, clock):
    await memory.call_tool("track_technical_debt", {})
    clock.now = clock.now + timedelta(days=45)
    await memory.call_tool("track_technical_debt", {})

    removed = await memory.cleanup_memory(clock.now - timedelta(days=30))

    assert removed == 1
    assert len(memory.query_memory()) == 1


@pytest.mark.asyncio
async def test_evolution_tracks_repeated_analyses(memory, clock):
    await memory.call_tool("analyze_codebase_structure", {})
    clock.now = clock.now + timedelta(days=1)
    await memory.call_tool("analyze_codebase_structure", {})

    evolution = memory.analyze_evolution("7d")

    assert evolution["analyses"] == 2
    assert {t["metric"] for t in evolution["trends"]} >= {"Complexity", "Test Coverage"}


@pytest.mark.asyncio
async def test_context_operations(memory):
    context = await memory.refresh_context()
    assert await memory.get_context() is context

    analysis = await memory.analyze_code_context("src/routes/user.routes.ts")
    assert analysis["dependencies"] == ["src/services/user.service.ts"]


def test_from_settings(ts_project, memory_dir):
    settings = Settings(project_root=str(ts_project), memory_dir=str(memory_dir), include_extensions=["ts"])

    memory = CodebaseMemory.from_settings(settings)

    assert memory.project_root == str(ts_project)
    assert memory.dependency_stats()["total"] == 5


@pytest.mark.asyncio
async def test_memory_writes_run_off_the_event_loop(memory, clock, monkeypatch):
    loop_thread = threading.get_ident()
    threads = []
    store, cleanup = memory.memory_store.store, memory.memory_store.cleanup

    def recording(method):
        def wrapper(*args, **kwargs):
            threads.append(threading.get_ident())
            return method(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(memory.memory_store, "store", recording(store))
    monkeypatch.setattr(memory.memory_store, "cleanup", recording(cleanup))

    await memory.call_tool("track_technical_debt", {})
    await memory.cleanup_memory(clock.now - timedelta(days=1))

    assert len(threads) == 2
    assert loop_thread not in threads
