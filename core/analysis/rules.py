"""Rule-evaluation pipeline behind pattern compliance.

A pattern is checked by a list of rules. Every evaluation yields a
`RuleResult`; the compliance of a pattern is a pure function of those
results (`compliance_score`), so it can be tested without touching disk.
"""

import re
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Sequence, Tuple

from core.ingestion.parser import CodeParser
from core.models import SourceFile

DIRECTORY_RULE_WEIGHT = 20
SIGNATURE_RULE_WEIGHT = 15
FILE_RULE_WEIGHT = 5

# (path, line, detail) for one offending location
Finding = Tuple[str, int, str]


@dataclass
class RuleResult:
    rule: str
    passed: bool
    weight: int
    pattern: str = ""
    file: str = ""
    line: int = 0
    severity: str = "low"
    fix: str = ""


def compliance_score(results: Iterable[RuleResult]) -> int:
    """100 minus the weight of every failed rule, clamped to [0, 100]."""
    penalty = sum(r.weight for r in results if not r.passed)
    return max(0, min(100, 100 - penalty))


def matches_glob(path: str, pattern: str) -> bool:
    """Match a repo-relative path against a signature glob.

    Globs containing a slash match the end of the path (`services/*.py`),
    plain globs match the file name (`*.service.ts`).
    """
    if '/' in pattern:
        return fnmatch(path, pattern) or fnmatch(path, f'*/{pattern}')
    return fnmatch(PurePosixPath(path).name, pattern)


@dataclass
class FileRule:
    """An executable rule applied to the files matching `targets`."""

    description: str
    targets: Sequence[str]
    check: Callable[[List[SourceFile]], List[Finding]]
    severity: str = "medium"
    fix: str = ""
    strict_only: bool = False

    def select(self, files: Sequence[SourceFile]) -> List[SourceFile]:
        return [f for f in files if any(matches_glob(f.path, t) for t in self.targets)]

    def evaluate(self, pattern: str, files: Sequence[SourceFile]) -> List[RuleResult]:
        findings = self.check(self.select(files))
        if not findings:
            return [RuleResult(self.description, True, FILE_RULE_WEIGHT, pattern)]
        return [
            RuleResult(f"{self.description}: {detail}", False, FILE_RULE_WEIGHT, pattern, path, line, self.severity, self.fix)
            for path, line, detail in findings
        ]


def per_line(regex: re.Pattern, detail: str) -> Callable[[List[SourceFile]], List[Finding]]:
    """Build a check that flags every line matching `regex`."""

    def check(files: List[SourceFile]) -> List[Finding]:
        return [
            (f.path, i, detail)
            for f in files
            for i, line in enumerate(f.lines, start=1)
            if regex.search(line) and not line.lstrip().startswith(('#', '//', '*'))
        ]

    return check


def per_file(predicate: Callable[[SourceFile], bool], detail: str) -> Callable[[List[SourceFile]], List[Finding]]:
    """Build a check that flags (at line 1) every file for which `predicate` is true."""

    def check(files: List[SourceFile]) -> List[Finding]:
        return [(f.path, 1, detail) for f in files if predicate(f)]

    return check


def importing(fragments: Sequence[str], detail: str) -> Callable[[List[SourceFile]], List[Finding]]:
    """Build a check that flags imports whose specifier contains one of `fragments`."""

    def check(files: List[SourceFile]) -> List[Finding]:
        findings = []
        for f in files:
            for ref in CodeParser.extract_imports(f.path, f.text):
                segments = set(re.split(r'[/.]', ref.specifier.lower()))
                if segments & set(fragments):
                    findings.append((f.path, ref.line, f"{detail} ({ref.specifier})"))
        return findings

    return check


# --- Concrete checks used by the pattern catalog -----------------------------

DATA_ACCESS_RE = re.compile(
    r'\b(?:db|knex|prisma|mongoose|session|cursor|connection|pool)\.(?:query|execute|find\w*|insert\w*|update\w*|delete\w*|save|commit|raw)\s*\('
    r'|\b(?:SELECT|INSERT\s+INTO|UPDATE|DELETE\s+FROM)\b\s+[\w*]'
)
NETWORK_CALL_RE = re.compile(r'\bfetch\s*\(|\baxios[.(]|\brequests\.(?:get|post|put|patch|delete|request)\s*\(|\bhttpx\.|\b(?:client|session)\.(?:get|post|put|patch|delete)\s*\(')
ERROR_HANDLING_RE = re.compile(r'\btry\b|\.catch\s*\(|\bexcept\b')
EMPTY_CATCH_RE = re.compile(r'catch\s*(?:\([^)]*\))?\s*\{\s*\}|except[^:]*:\s*pass\b')
FOCUSED_TEST_RE = re.compile(r'\b(?:it|test|describe)\.only\s*\(|\bf(?:it|describe)\s*\(')
ASSERTION_RE = re.compile(r'\bexpect\s*\(|\bassert\b|\bassert\w+\s*\(|\bshould\.')
VALIDATION_RE = re.compile(r'@Is[A-Z]\w*|\bz\.object\s*\(|\bJoi\.|\bBaseModel\b|\bField\s*\(|\b(?:field_)?validator\b|\byup\.')
ENV_ACCESS_RE = re.compile(r'\bprocess\.env\b|\bos\.environ\b|\bos\.getenv\s*\(')
_CLASS_RE = re.compile(r'^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)(.*)$')
_ERROR_CLASS_RE = re.compile(r'class\s+\w+\s*(?:extends\s+\w*(?:Error|Exception)\b|\(\s*[\w.]*(?:Error|Exception)\s*[,)])')
_ERROR_MIDDLEWARE_RE = re.compile(r'\(\s*err\w*\s*(?::\s*\w+)?\s*,\s*req\w*.*,\s*res\w*.*,\s*next\b|exception_handler|errorhandler|ExceptionMiddleware|app\.use\(\s*\w*[Ee]rror')
_TEST_TITLE_RE = re.compile(r'''\b(?:it|test)\s*\(\s*['"`]([^'"`]*)['"`]''')
_PY_TEST_NAME_RE = re.compile(r'^\s*(?:async\s+)?def\s+(test\w*)\s*\(')
_UNANNOTATED_DEF_RE = re.compile(r'^\s*(?:async\s+)?def\s+(?!_)\w+\s*\([^)]*\)\s*:')


def empty_catch_blocks(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        lines = f.lines
        for i, line in enumerate(lines, start=1):
            if EMPTY_CATCH_RE.search(line):
                findings.append((f.path, i, 'error is swallowed'))
            elif re.match(r'^\s*except\b[^:]*:\s*$', line) and i < len(lines) and lines[i].strip() == 'pass':
                findings.append((f.path, i, 'error is swallowed'))
    return findings


def missing_error_class(source: SourceFile) -> bool:
    return not _ERROR_CLASS_RE.search(source.text)


def error_middleware_missing(files: List[SourceFile]) -> List[Finding]:
    if not files or any(_ERROR_MIDDLEWARE_RE.search(f.text) for f in files):
        return []
    return [(files[0].path, 1, 'no error-handling middleware found')]


def unhandled_network_calls(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        if ERROR_HANDLING_RE.search(f.text):
            continue
        for i, line in enumerate(f.lines, start=1):
            if NETWORK_CALL_RE.search(line):
                findings.append((f.path, i, 'network call without error handling'))
                break
    return findings


def untyped_client_code(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        if f.extension in ('js', 'jsx', 'mjs', 'cjs'):
            findings.append((f.path, 1, 'client written in untyped JavaScript'))
        elif f.extension == 'py':
            for i, line in enumerate(f.lines, start=1):
                if _UNANNOTATED_DEF_RE.match(line) and '->' not in line:
                    findings.append((f.path, i, 'public function without return annotation'))
    return findings


def classes_without_contract(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        for i, line in enumerate(f.lines, start=1):
            m = _CLASS_RE.match(line)
            if not m:
                continue
            rest = m.group(2)
            if f.extension == 'py':
                bases = rest.strip().lstrip('(').split(')')[0].strip()
                if not bases or bases == 'object':
                    findings.append((f.path, i, f"class '{m.group(1)}' has no abstract base"))
            elif 'implements' not in rest and 'extends' not in rest:
                findings.append((f.path, i, f"class '{m.group(1)}' implements no interface"))
    return findings


def unclear_dto_names(files: List[SourceFile]) -> List[Finding]:
    suffixes = ('Dto', 'DTO', 'Schema', 'Model', 'Request', 'Response', 'Payload', 'Input', 'Output')
    findings = []
    for f in files:
        for i, line in enumerate(f.lines, start=1):
            m = _CLASS_RE.match(line)
            if m and not m.group(1).endswith(suffixes):
                findings.append((f.path, i, f"class '{m.group(1)}' does not say what it carries"))
    return findings


def dto_behaviour(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        for i, line in enumerate(f.lines, start=1):
            if re.search(r'\basync\s+(?:def|function)\b|\basync\s+\w+\s*\(', line) or NETWORK_CALL_RE.search(line) or re.search(r'\bopen\s*\(', line):
                findings.append((f.path, i, 'performs I/O'))
    return findings


def services_without_logic(source: SourceFile) -> bool:
    return not CodeParser.function_spans(source.path, source.text)


def handlers_bypassing_services(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        refs = CodeParser.extract_imports(f.path, f.text)
        if any('service' in r.specifier.lower() for r in refs):
            continue
        for i, line in enumerate(f.lines, start=1):
            if DATA_ACCESS_RE.search(line):
                findings.append((f.path, i, 'handler accesses data without a service'))
                break
    return findings


def focused_tests(files: List[SourceFile]) -> List[Finding]:
    return per_line(FOCUSED_TEST_RE, 'focused test disables the rest of the suite')(files)


def vague_test_names(files: List[SourceFile]) -> List[Finding]:
    findings = []
    for f in files:
        for i, line in enumerate(f.lines, start=1):
            m = _TEST_TITLE_RE.search(line)
            if m and len(m.group(1).split()) < 2:
                findings.append((f.path, i, f"test title '{m.group(1)}' is not descriptive"))
                continue
            m = _PY_TEST_NAME_RE.match(line)
            if m and len(m.group(1).split('_')) < 3:
                findings.append((f.path, i, f"test name '{m.group(1)}' is not descriptive"))
    return findings


def tests_without_assertions(source: SourceFile) -> bool:
    return not ASSERTION_RE.search(source.text)


def evaluate_rules(pattern: str, rules: Sequence[FileRule], files: Sequence[SourceFile], strict_mode: bool) -> List[RuleResult]:
    results: List[RuleResult] = []
    for rule in rules:
        if rule.strict_only and not strict_mode:
            continue
        results.extend(rule.evaluate(pattern, files))
    return results

