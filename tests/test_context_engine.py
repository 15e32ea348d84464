from dataclasses import replace

import pytest

from core.analysis import CodebaseAnalyzer, PatternDetector
from core.context import ContextEngine, sort_recommendations
from core.errors import ProjectFileNotFoundError
from core.memory import MemoryStore
from core.models import Recommendation, priority_rank

from conftest import write_tree


def make_engine(project, memory_dir, clock=None) -> ContextEngine:
    analyzer = CodebaseAnalyzer(str(project))
    return ContextEngine(analyzer, MemoryStore(str(memory_dir), clock=clock), PatternDetector(str(project)))


def _rec(title, priority, source):
    return Recommendation(type=source, priority=priority, title=title, description="", implementation="", source=source)


def test_sort_recommendations_breaks_ties_by_title_then_source():
    recs = [
        _rec("Beta", "medium", "architecture"),
        _rec("Alpha", "medium", "refactoring"),
        _rec("Alpha", "medium", "pattern"),
        _rec("Zulu", "critical", "memory"),
        _rec("Omega", "low", "pattern"),
    ]

    ordered = sort_recommendations(recs)

    assert [(r.title, r.source) for r in ordered] == [
        ("Zulu", "memory"),
        ("Alpha", "pattern"),
        ("Alpha", "refactoring"),
        ("Beta", "architecture"),
        ("Omega", "pattern"),
    ]
    assert sort_recommendations(list(reversed(recs))) == ordered


def test_build_context_for_typescript_project(ts_project, memory_dir):
    context = make_engine(ts_project, memory_dir).build_context()

    assert context.architecture == "Service Layer Architecture"
    assert context.language == "typescript"
    assert context.testing_framework == "jest"
    assert context.dependencies == ["express", "lodash", "moment"]
    assert "Service Layer Pattern" in context.patterns
    assert context.conventions.structure.error_handling == "try-catch"


def test_build_context_for_python_project(py_project, memory_dir):
    context = make_engine(py_project, memory_dir).build_context()

    assert context.language == "python"
    assert context.testing_framework == "pytest"
    assert context.conventions.naming.files == "snake_case"
    assert context.conventions.naming.functions == "snake_case"
    assert context.conventions.structure.error_handling == "try-except"
    assert context.code_style.indentation == "4 spaces"
    assert context.code_style.semicolons is False


def test_context_is_cached_until_refreshed(ts_project, memory_dir):
    engine = make_engine(ts_project, memory_dir)

    first = engine.get_context()
    assert engine.get_context() is first

    write_tree(ts_project, {"src/controllers/user.controller.ts": "export class UserController {}\n"})
    assert engine.get_context() is first

    refreshed = engine.refresh_context()
    assert refreshed is not first
    assert engine.get_context() is refreshed


def test_generate_typescript_controller(ts_project, memory_dir):
    result = make_engine(ts_project, memory_dir).generate_code("create user", "controller")

    assert result.language == "typescript"
    assert result.implementation.startswith("import { Request, Response, NextFunction } from 'express';")
    assert "export class CreateUserController" in result.implementation
    assert "CreateUserController" in result.tests
    assert "describe(" in result.tests
    assert result.follows_patterns is True
    assert [u.path for u in result.related_files_to_update] == ["src/routes/index.ts"]
    assert "Remember to register route in main router" in result.integration_notes
    assert 0 <= result.architecture_compliance <= 100
    assert 0 <= result.style_consistency <= 100


def test_generate_python_route_uses_fastapi(py_project, memory_dir):
    result = make_engine(py_project, memory_dir).generate_code(
        "list orders", "route", related_files=["app/models/user.py"]
    )

    assert result.language == "python"
    assert "from fastapi import APIRouter, HTTPException" in result.implementation
    assert "import app.models.user" in result.implementation
    assert "list_orders" in result.implementation
    assert "def test_list_orders" in result.tests
    assert [u.path for u in result.related_files_to_update] == ["app.py"]


def test_generate_without_patterns_uses_the_generic_template(py_project, memory_dir):
    result = make_engine(py_project, memory_dir).generate_code(
        "list orders", "route", related_files=["app/models/user.py"], follow_patterns=False
    )

    assert "fastapi" not in result.implementation
    assert "import app.models.user" not in result.implementation
    assert result.follows_patterns is False


def test_generate_test_file_has_no_companion_test(ts_project, memory_dir):
    result = make_engine(ts_project, memory_dir).generate_code("user service", "test")

    assert result.tests == ""
    assert result.implementation


def test_generate_unknown_file_type_falls_back(ts_project, memory_dir):
    result = make_engine(ts_project, memory_dir).generate_code("parse csv", "widget")

    assert "parse csv" in result.implementation
    assert result.related_files_to_update == []


def test_generate_with_an_explicit_context(ts_project, memory_dir):
    engine = make_engine(ts_project, memory_dir)
    context = replace(engine.build_context(), architecture="Hexagonal Architecture")

    result = engine.generate_code("create user", "service", context=context)

    assert "Hexagonal Architecture" in result.implementation
    assert "Follows Hexagonal Architecture architectural pattern" in result.integration_notes


def test_recommendations_for_service_layer_project(ts_project, memory_dir):
    recs = make_engine(ts_project, memory_dir).get_contextual_recommendations()

    titles = [r.title for r in recs]
    assert "Implement Repository Pattern" in titles
    assert "Add Automated Tests" not in titles
    ranks = [priority_rank(r.priority) for r in recs]
    assert ranks == sorted(ranks, reverse=True)


def test_recommendations_for_project_without_structure(tmp_path, memory_dir):
    root = write_tree(tmp_path / "bare", {"lib/index.js": "module.exports = function add(a, b) { return a + b; };\n"})

    recs = make_engine(root, memory_dir).get_contextual_recommendations()

    by_title = {r.title: r for r in recs}
    assert by_title["Add Automated Tests"].priority == "high"
    assert by_title["Improve Architecture Consistency"].source == "architecture"
    assert recs[0].priority == "high"


def test_recommendations_include_memory_history(ts_project, memory_dir, clock):
    engine = make_engine(ts_project, memory_dir, clock)
    engine.memory_store.store("analysis", {"test_coverage": 20}, {})

    recs = engine.get_contextual_recommendations()

    historical = [r for r in recs if r.source == "memory"]
    assert [r.title for r in historical] == ["Based on similar past analysis, consider focusing on test coverage"]
    assert historical[0].type == "historical"


def test_analyze_code_context_for_a_service(ts_project, memory_dir):
    analysis = make_engine(ts_project, memory_dir).analyze_code_context("src/services/user.service.ts")

    assert analysis.file == "src/services/user.service.ts"
    assert analysis.architecture == "Service Layer Architecture"
    assert analysis.dependencies == ["src/models/user.model.ts"]
    assert "src/routes/user.routes.ts" in analysis.dependents
    assert analysis.test_coverage > 0
    assert "Add JSDoc comments to public functions and classes" in analysis.suggestions


def test_analyze_code_context_for_a_python_module(py_project, memory_dir):
    analysis = make_engine(py_project, memory_dir).analyze_code_context("app/models/user.py")

    assert analysis.dependencies == []
    assert "app/services/user_service.py" in analysis.dependents
    assert not any("docstrings" in s for s in analysis.suggestions)


def test_analyze_code_context_for_unknown_file(ts_project, memory_dir):
    with pytest.raises(ProjectFileNotFoundError):
        make_engine(ts_project, memory_dir).analyze_code_context("src/nope.ts")
