"""Technical-debt issue detection.

Each detector scans one source file and yields `DebtIssue` records with a
category, a severity and an estimated fix effort in hours.
"""

import re
from pathlib import PurePosixPath
from typing import Iterator, List, Optional, Sequence

from core.analysis.metrics import (
    COMMENT_RE,
    COMPLEX_FUNCTION_DECISIONS,
    LONG_FILE_LINES,
    LONG_FUNCTION_LINES,
    code_files,
    function_decisions,
)
from core.ingestion.loader import is_test_path, module_stem
from core.models import SourceFile
from core.models.reports import DebtIssue

DEBT_CATEGORIES = ['code-smells', 'security', 'performance', 'maintainability', 'documentation', 'testing']

_MARKER_RE = re.compile(r'(?:#|//|/\*|\*)\s*(TODO|FIXME|HACK|XXX)\b')
_SECRET_RE = re.compile(r'''(?i)\b(?:password|passwd|secret|api_?key|access_?token|private_?key)\b\s*[:=]\s*['"][^'"\s]{4,}['"]''')
_SECURITY_RES = [
    (re.compile(r'\beval\s*\('), 'Use of eval() on dynamic input', 'critical'),
    (re.compile(r'(?<![\w.])exec\s*\('), 'Use of exec() on dynamic input', 'critical'),
    (re.compile(r'shell\s*=\s*True'), 'Subprocess call with shell=True', 'high'),
    (re.compile(r'\.innerHTML\s*='), 'Direct innerHTML assignment (XSS risk)', 'high'),
    (re.compile(r'\bpickle\.loads?\s*\('), 'Unpickling data that may be untrusted', 'high'),
    (re.compile(r'verify\s*=\s*False'), 'TLS certificate verification disabled', 'high'),
]
_PERFORMANCE_RES = [
    (re.compile(r'\b(?:readFileSync|writeFileSync|existsSync)\s*\('), 'Synchronous file system call blocks the event loop'),
    (re.compile(r'JSON\.parse\(\s*JSON\.stringify\('), 'Deep clone through JSON serialization'),
    (re.compile(r'\btime\.sleep\s*\('), 'Blocking sleep call'),
    (re.compile(r'\bfor\b.*\bawait\b|\bawait\b.*\bfor\b'), 'Sequential awaits inside a loop'),
]
_DEBUG_RE = re.compile(r'^\s*(?:console\.log\(|print\()')

_SEVERITY_HOURS = {'critical': 4.0, 'high': 3.0, 'medium': 2.0, 'low': 0.5}


def _issue(source: SourceFile, line: int, description: str, impact: str, category: str, severity: str, hours: Optional[float] = None) -> DebtIssue:
    hours = _SEVERITY_HOURS[severity] if hours is None else hours
    effort = 'low' if hours <= 1 else 'medium' if hours <= 3 else 'high'
    return DebtIssue(source.path, description, impact, effort, category, severity, hours, line)


def _markers(source: SourceFile) -> Iterator[DebtIssue]:
    for i, line in enumerate(source.lines, start=1):
        m = _MARKER_RE.search(line)
        if m:
            severity = 'medium' if m.group(1) in ('FIXME', 'HACK') else 'low'
            yield _issue(source, i, f"{m.group(1)} marker left in code", 'Unfinished work accumulates interest', 'maintainability', severity, 1.0 if severity == 'medium' else 0.5)


def _security(source: SourceFile) -> Iterator[DebtIssue]:
    for i, line in enumerate(source.lines, start=1):
        if COMMENT_RE.match(line):
            continue
        if _SECRET_RE.search(line):
            yield _issue(source, i, 'Hard-coded credential', 'Secrets leak through version control', 'security', 'critical')
        for regex, description, severity in _SECURITY_RES:
            if regex.search(line):
                yield _issue(source, i, description, 'Potential security vulnerability', 'security', severity)


def _performance(source: SourceFile) -> Iterator[DebtIssue]:
    for i, line in enumerate(source.lines, start=1):
        if COMMENT_RE.match(line):
            continue
        for regex, description in _PERFORMANCE_RES:
            if regex.search(line):
                yield _issue(source, i, description, 'Slower response times under load', 'performance', 'medium')


def _code_smells(source: SourceFile) -> Iterator[DebtIssue]:
    total = len(source.lines)
    if total > LONG_FILE_LINES:
        yield _issue(source, 1, f"File has {total} lines", 'Large files are hard to navigate and review', 'code-smells', 'medium', 4.0)
    for name, start, length, decisions in function_decisions(source):
        if length > LONG_FUNCTION_LINES:
            yield _issue(source, start, f"Function '{name}' is {length} lines long", 'Long functions hide multiple responsibilities', 'code-smells', 'medium')
        if decisions > COMPLEX_FUNCTION_DECISIONS:
            yield _issue(source, start, f"Function '{name}' has {decisions} decision points", 'Complex branching is error-prone', 'maintainability', 'high')
    if not is_test_path(source.path):
        debug_lines = [i for i, line in enumerate(source.lines, start=1) if _DEBUG_RE.match(line)]
        if debug_lines:
            yield _issue(source, debug_lines[0], f"{len(debug_lines)} debug print statement(s)", 'Noisy output instead of structured logging', 'code-smells', 'low', 0.25 * len(debug_lines))


def _documentation(source: SourceFile) -> Iterator[DebtIssue]:
    lines = source.lines
    if len(lines) > 100 and not any(COMMENT_RE.match(line) for line in lines):
        yield _issue(source, 1, 'Large file without any comments or docstrings', 'Slows down onboarding', 'documentation', 'low', 1.0)


_DETECTORS = (_markers, _security, _performance, _code_smells, _documentation)


def find_debt_issues(files: Sequence[SourceFile]) -> List[DebtIssue]:
    """Scan every code file for debt; untested source files count as testing debt.

    Testing debt is only reported when the file set contains at least one test
    file, so a scan restricted to production code does not flag everything.
    """
    sources = code_files(files)
    issues: List[DebtIssue] = []
    for source in sources:
        for detector in _DETECTORS:
            issues.extend(detector(source))

    test_paths = [s.path for s in sources if is_test_path(s.path)]
    if test_paths:
        stems = {module_stem(p) for p in test_paths}
        for source in sources:
            if is_test_path(source.path) or PurePosixPath(source.path).name.startswith('__init__.'):
                continue
            if module_stem(source.path) not in stems and len(source.lines) > 20:
                issues.append(_issue(source, 0, 'No test file found for this module', 'Changes ship without a safety net', 'testing', 'medium', 1.5))
    return issues
