import json

import pytest

from core.analysis import DependencyMapper
from core.analysis.dependencies import format_size, parse_version, severity_to_risk, version_lt

from conftest import write_tree


def test_unused_dependencies_skip_tooling(ts_project):
    mapper = DependencyMapper(str(ts_project))

    assert mapper.find_unused_dependencies() == ["moment"]


def test_unused_python_dependencies_use_import_names(py_project):
    mapper = DependencyMapper(str(py_project))

    assert mapper.find_unused_dependencies() == ["requests"]
    assert mapper.dependency_graph["pytest"].type == "development"


def test_security_analysis_reports_known_advisories(ts_project):
    report = DependencyMapper(str(ts_project)).analyze_dependencies("security")

    by_package = {issue.package: issue for issue in report.critical}
    assert set(by_package) == {"lodash", "moment"}
    assert by_package["lodash"].cve == "CVE-2021-23337"
    assert by_package["lodash"].risk == "high"
    assert report.issues_found == 2
    assert report.recommendations[0] == "Address critical security vulnerabilities immediately"


def test_bundle_size_analysis(ts_project):
    report = DependencyMapper(str(ts_project)).analyze_dependencies("bundle-size")

    assert [o.package for o in report.optimizations] == ["moment", "lodash"]
    assert report.potential_savings == "~40kB"
    assert report.critical == [] and report.warnings == []


def test_outdated_analysis_uses_bundled_versions(ts_project):
    report = DependencyMapper(str(ts_project)).analyze_dependencies("outdated", suggest_alternatives=False)

    outdated = {w.package: w.description for w in report.warnings}
    assert outdated["lodash"] == "Outdated version (latest: 4.17.21)"
    assert report.alternatives == []


def test_excluding_dev_dependencies(ts_project):
    report = DependencyMapper(str(ts_project)).analyze_dependencies("unused", include_dev_dependencies=False)

    assert report.total_dependencies == 3
    assert all(node.type == "production" for node in report.dependency_graph)


def test_conflicts_come_from_the_lockfile(tmp_path):
    root = write_tree(tmp_path / "locked", {
        "package.json": json.dumps({"dependencies": {"debug": "^4.3.0"}}),
        "package-lock.json": json.dumps({
            "lockfileVersion": 3,
            "packages": {
                "": {"name": "locked"},
                "node_modules/debug": {"version": "4.3.4", "dependencies": {"ms": "2.1.2"}},
                "node_modules/ms": {"version": "2.1.2"},
                "node_modules/send/node_modules/ms": {"version": "2.0.0"},
            },
        }),
    })

    report = DependencyMapper(str(root)).analyze_dependencies("conflicts")

    assert [w.package for w in report.warnings] == ["ms"]
    assert report.warnings[0].description == "Multiple versions detected: 2.0.0, 2.1.2"


def test_unknown_analysis_type_is_rejected(ts_project):
    with pytest.raises(ValueError):
        DependencyMapper(str(ts_project)).analyze_dependencies("licenses")


def test_missing_manifest_gives_an_empty_graph(tmp_path):
    mapper = DependencyMapper(str(tmp_path))

    assert mapper.dependency_graph == {}
    assert mapper.analyze_dependencies("unused").total_dependencies == 0


def test_dependency_stats(ts_project):
    stats = DependencyMapper(str(ts_project)).get_dependency_stats()

    assert (stats.total, stats.production, stats.development) == (5, 3, 2)
    assert stats.with_vulnerabilities == 2


def test_version_helpers():
    assert parse_version("^4.17.0") == (4, 17, 0)
    assert parse_version(">=2.0,<3") == (2, 0, 0)
    assert parse_version("latest") is None
    assert version_lt("4.17.15", "4.17.21")
    assert not version_lt("*", "1.0.0")
    assert severity_to_risk(9.8) == "critical"
    assert severity_to_risk(5.9) == "medium"
    assert format_size(67.9) == "67.9kB"
