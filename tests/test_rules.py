from core.analysis.rules import (
    FILE_RULE_WEIGHT,
    FileRule,
    RuleResult,
    compliance_score,
    empty_catch_blocks,
    evaluate_rules,
    handlers_bypassing_services,
    matches_glob,
    per_line,
    vague_test_names,
    ENV_ACCESS_RE,
)
from core.models import SourceFile


def test_compliance_score_is_a_pure_function_of_results():
    results = [RuleResult("a", True, 20), RuleResult("b", False, 20), RuleResult("c", False, 5)]

    assert compliance_score(results) == 75
    assert compliance_score(results) == 75
    assert compliance_score([]) == 100


def test_compliance_score_never_increases_when_a_rule_fails():
    passing = [RuleResult("a", True, 20), RuleResult("b", True, 15)]
    failing = [RuleResult("a", True, 20), RuleResult("b", False, 15)]

    assert compliance_score(failing) <= compliance_score(passing)


def test_compliance_score_is_clamped():
    results = [RuleResult(str(i), False, 20) for i in range(10)]

    assert compliance_score(results) == 0


def test_matches_glob_uses_path_suffix_or_file_name():
    assert matches_glob("src/services/user.service.ts", "*.service.ts")
    assert matches_glob("app/services/user_service.py", "services/*.py")
    assert matches_glob("services/user.py", "services/*")
    assert not matches_glob("src/models/user.model.ts", "*.service.ts")


def test_file_rule_reports_each_finding_with_its_location():
    rule = FileRule("Services should not read the environment", ["*_service.py"],
                    per_line(ENV_ACCESS_RE, "reads the environment"), "low", "Inject configuration")
    files = [
        SourceFile("app/user_service.py", "import os\n\nTOKEN = os.environ['TOKEN']\n"),
        SourceFile("app/user.py", "import os\nos.getenv('X')\n"),
    ]

    results = rule.evaluate("Service Layer", files)

    assert len(results) == 1
    assert results[0].passed is False
    assert (results[0].file, results[0].line) == ("app/user_service.py", 3)
    assert results[0].weight == FILE_RULE_WEIGHT
    assert results[0].fix == "Inject configuration"


def test_strict_only_rules_are_skipped_outside_strict_mode():
    rule = FileRule("strict", ["*"], lambda files: [(f.path, 1, "x") for f in files], strict_only=True)
    files = [SourceFile("a.py", "")]

    assert evaluate_rules("P", [rule], files, strict_mode=False) == []
    assert len(evaluate_rules("P", [rule], files, strict_mode=True)) == 1


def test_empty_catch_blocks_in_both_languages():
    files = [
        SourceFile("a.ts", "try {\n  run();\n} catch (e) {}\n"),
        SourceFile("b.py", "try:\n    run()\nexcept ValueError:\n    pass\n"),
    ]

    assert [(path, line) for path, line, _ in empty_catch_blocks(files)] == [("a.ts", 3), ("b.py", 3)]


def test_handlers_that_import_a_service_are_not_flagged():
    delegating = SourceFile("routes/users.ts", "import { svc } from '../services/user.service';\ndb.query('x');\n")
    direct = SourceFile("routes/orders.ts", "export const list = () => db.query('SELECT * FROM orders');\n")

    findings = handlers_bypassing_services([delegating, direct])

    assert [path for path, _, _ in findings] == ["routes/orders.ts"]


def test_vague_test_names():
    files = [SourceFile("tests/test_a.py", "def test_it():\n    assert True\n\ndef test_adds_two_numbers():\n    assert True\n")]

    findings = vague_test_names(files)

    assert [line for _, line, _ in findings] == [1]
