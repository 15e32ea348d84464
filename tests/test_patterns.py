from core.analysis import PATTERN_CATALOG, PatternDetector

from conftest import write_tree


def test_missing_service_directory_lowers_compliance(tmp_path):
    root = write_tree(tmp_path / "flat", {
        "src/routes/user.routes.ts": "export const routes = [];\n",
        "src/models/user.model.ts": "export interface User { id: string; }\n",
    })

    result = PatternDetector(str(root)).validate_patterns(["service-layer"])

    [compliance] = result.patterns
    assert compliance.name == "Service Layer"
    assert compliance.compliance <= 80
    assert any("services" in v.description for v in result.violations)
    assert all(v.pattern == "Service Layer" for v in result.violations)


def test_unknown_pattern_keys_are_skipped(ts_project):
    result = PatternDetector(str(ts_project)).validate_patterns(["service-layer", "does-not-exist"])

    assert [p.key for p in result.patterns] == ["service-layer"]


def test_overall_score_is_the_mean_of_pattern_scores(ts_project):
    result = PatternDetector(str(ts_project)).validate_patterns()

    scores = [p.compliance for p in result.patterns]
    assert len(scores) == len(PATTERN_CATALOG)
    assert result.overall_score == round(sum(scores) / len(scores))
    assert all(0 <= s <= 100 for s in scores)


def test_report_detail_is_optional(ts_project):
    detector = PatternDetector(str(ts_project))

    assert detector.validate_patterns(["testing"]).rule_results
    assert detector.validate_patterns(["testing"], generate_report=False).rule_results == []


def test_strict_mode_adds_rules(ts_project):
    detector = PatternDetector(str(ts_project))

    relaxed = detector.validate_patterns(["service-layer"])
    strict = detector.validate_patterns(["service-layer"], strict_mode=True)

    assert len(strict.rule_results) > len(relaxed.rule_results)


def test_detect_patterns_in_service_layer_project(ts_project):
    detected = {p.name: p for p in PatternDetector(str(ts_project)).detect_patterns()}

    assert detected["Service Layer Pattern"].confidence == 0.8
    assert "src/services/user.service.ts" in detected["Service Layer Pattern"].files
    assert detected["Testing Patterns"].files == ["tests/user.service.test.ts"]
    assert "MVC Pattern" not in detected


def test_best_practices_in_service_layer_project(ts_project):
    result = PatternDetector(str(ts_project)).validate_patterns(["service-layer"])

    assert "Consistent use of TypeScript interfaces" in result.best_practices
    assert "Separation of concerns in service layer" in result.best_practices


def test_style_consistency_reports_every_dimension(py_project):
    style = PatternDetector(str(py_project)).analyze_style_consistency()

    assert set(style.metrics) == {"indentation", "naming", "imports", "functions"}
    assert 0 <= style.overall_consistency <= 100
    assert len(style.recommendations) == len(style.metrics)
