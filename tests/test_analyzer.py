import pytest

from core.analysis import CodebaseAnalyzer, detect_architecture
from core.analysis.analyzer import module_stem, primary_language
from core.analysis.debt import find_debt_issues
from core.models import SourceFile
from core.errors import ProjectFileNotFoundError

from conftest import write_tree


def test_detect_architecture_from_directory_names():
    assert detect_architecture({"controllers", "models", "views"}) == "MVC (Model-View-Controller)"
    assert detect_architecture({"services", "routes", "models"}) == "Service Layer Architecture"
    assert detect_architecture({"apis", "middleware"}) == "API-First Architecture"
    assert detect_architecture({"lib"}) == "Custom Architecture"


def test_module_stem_strips_test_affixes():
    assert module_stem("tests/user.service.test.ts") == "user.service"
    assert module_stem("src/models/user.model.ts") == "user.model"
    assert module_stem("src/api.spec.js") == "api"
    assert module_stem("tests/test_user_service.py") == "user_service"
    assert module_stem("pkg/user_service_test.py") == "user_service"


def test_primary_language_ignores_json():
    assert primary_language(["package.json", "a.json", "b.ts"]) == "TypeScript"
    assert primary_language(["app.py", "models.py", "index.ts"]) == "Python"


def test_analyze_codebase_structure(ts_project):
    analysis = CodebaseAnalyzer(str(ts_project)).analyze_codebase(depth="shallow")

    assert analysis.total_files == 5
    assert analysis.architecture_pattern == "Service Layer Architecture"
    assert [d.name for d in analysis.key_dependencies] == ["express", "lodash", "moment"]
    assert analysis.key_dependencies[0].usage == "Web framework"
    assert "TypeScript" in analysis.languages
    assert analysis.depth == "shallow"
    assert 0 <= analysis.test_coverage <= 100
    assert "Good testing practices with 1 test files" in analysis.insights


def test_analyze_codebase_without_tests(ts_project):
    analysis = CodebaseAnalyzer(str(ts_project)).analyze_codebase(include_tests=False)

    assert analysis.total_files == 4
    assert not any(d.path == "tests" for d in analysis.directory_structure)


def test_focus_areas_add_insights(py_project):
    analysis = CodebaseAnalyzer(str(py_project)).analyze_codebase(focus_areas=["dependencies", "security"])

    assert "Dependencies: 3 production and 1 development packages declared" in analysis.insights
    assert "Security: 0 potential issues found in scanned files" in analysis.insights


def test_related_files_for_a_service(ts_project):
    related = CodebaseAnalyzer(str(ts_project)).get_related_files("src/services/user.service.ts")

    assert [r.path for r in related.imports] == ["src/models/user.model.ts"]
    assert [r.path for r in related.dependents] == ["src/routes/user.routes.ts", "tests/user.service.test.ts"]
    assert [t.path for t in related.tests] == ["tests/user.service.test.ts"]
    assert related.tests[0].coverage > 0
    assert related.suggestions == []


def test_related_files_accepts_absolute_paths(py_project):
    analyzer = CodebaseAnalyzer(str(py_project))

    related = analyzer.get_related_files(str(py_project / "app" / "services" / "user_service.py"), ["imports", "exports"])

    assert related.file == "app/services/user_service.py"
    assert [r.path for r in related.imports] == ["app/models/user.py"]
    assert [r.path for r in related.dependents] == ["app/routes/users.py", "tests/test_user_service.py"]
    assert related.tests == []


def test_related_files_respects_max_results(ts_project):
    related = CodebaseAnalyzer(str(ts_project)).get_related_files("src/services/user.service.ts", max_results=1)

    assert len(related.dependents) == 1


def test_related_files_for_unknown_file(ts_project):
    with pytest.raises(ProjectFileNotFoundError):
        CodebaseAnalyzer(str(ts_project)).get_related_files("src/missing.ts")


def test_refactoring_filters_by_minimum_priority(tmp_path):
    root = write_tree(tmp_path / "proj", {
        "src/loader.py": "import os\nimport json\n\n\ndef load(path):\n    data = json.loads(path)\n    return data\n",
    })
    analyzer = CodebaseAnalyzer(str(root))

    medium = analyzer.suggest_refactoring(priority="medium")
    low = analyzer.suggest_refactoring("src/loader.py", priority="low")

    assert [(s.type, s.line) for s in medium.medium] == [("optimize-imports", 1)]
    assert medium.high == []
    assert {s.type for s in low.medium} == {"optimize-imports", "improve-naming"}
    assert "Add comprehensive docstrings" in low.code_quality


def test_refactoring_type_filter(tmp_path):
    root = write_tree(tmp_path / "proj", {
        "src/loader.py": "import os\n\n\ndef load():\n    tmp = 1\n    return tmp\n",
    })

    suggestions = CodebaseAnalyzer(str(root)).suggest_refactoring(refactoring_types=["improve-naming"], priority="low")

    assert [s.type for s in suggestions.medium] == ["improve-naming"]


def test_technical_debt_scan(tmp_path):
    root = write_tree(tmp_path / "proj", {
        "src/settings.py": 'API_KEY = "abcd1234"\n\n\ndef run(expr):\n    # TODO: validate input\n    return eval(expr)\n',
    })
    analyzer = CodebaseAnalyzer(str(root))

    debt = analyzer.analyze_technical_debt()

    assert debt.total_hours == 8.5
    assert debt.payback_priority == "critical"
    assert debt.monthly_interest == 1.1
    assert [c.name for c in debt.categories] == ["security", "maintainability"]
    assert {i.description for i in debt.critical} == {"Hard-coded credential", "Use of eval() on dynamic input"}
    assert 0 <= debt.overall_score <= 100

    assert analyzer.analyze_technical_debt(severity="high").total_hours == 8.0
    assert analyzer.analyze_technical_debt(category="maintainability").total_hours == 0.5
    assert analyzer.analyze_technical_debt(include_metrics=False).categories == []


def test_clean_project_scores_full_marks(tmp_path):
    root = write_tree(tmp_path / "proj", {"src/add.py": "def add(a, b):\n    return a + b\n"})

    debt = CodebaseAnalyzer(str(root)).analyze_technical_debt()

    assert debt.overall_score == 100
    assert debt.total_hours == 0
    assert debt.payback_priority == "low"


def test_sibling_modules_do_not_share_tests(ts_project):
    related = CodebaseAnalyzer(str(ts_project)).get_related_files("src/models/user.model.ts", ["tests"])

    assert related.tests == []
    assert related.suggestions == ["Consider adding unit tests for this file"]


def test_untested_sibling_module_counts_as_testing_debt():
    body = "\n".join(f"export const value{i} = {i};" for i in range(25))
    files = [
        SourceFile("src/user.model.ts", body),
        SourceFile("src/user.service.ts", body),
        SourceFile("tests/user.service.test.ts", "describe('user service', () => {});\n"),
    ]

    untested = [i.file for i in find_debt_issues(files) if i.category == "testing"]

    assert untested == ["src/user.model.ts"]
