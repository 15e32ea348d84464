"""Pluggable scoring strategies.

Every score the engine reports comes from a strategy with a fixed contract:
it takes a sequence of `SourceFile` records and returns a number inside the
documented range. Swap a strategy on the analyzer (or context engine) to
plug in a real static-analysis tool without touching callers.

    strategy          range      meaning
    ----------------  ---------  ---------------------------------------
    complexity        1 - 10     average cyclomatic complexity per function
    maintainability   0 - 100    higher is easier to maintain
    test_coverage     0 - 100    test files relative to source files
    technical_debt    0 - inf    estimated remediation hours
    style dimensions  0 - 100    share of lines/names/files that conform
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, List, Protocol, Sequence, Tuple

from core.analysis.debt import find_debt_issues
from core.analysis.metrics import COMMENT_RE, LONG_FUNCTION_LINES, clamp, code_files, count_decisions, function_decisions
from core.ingestion.loader import is_test_path
from core.ingestion.parser import CodeParser
from core.models import CodebaseContext, SourceFile
from core.models.reports import StyleMetric, StyleViolation

MAX_VIOLATIONS_PER_FILE = 5


class ScoringStrategy(Protocol):
    name: str
    minimum: float
    maximum: float

    def score(self, files: Sequence[SourceFile]) -> float: ...


class ComplexityStrategy:
    """Average cyclomatic complexity per function, clamped to 1-10."""

    name = "complexity"
    minimum = 1.0
    maximum = 10.0

    def score(self, files: Sequence[SourceFile]) -> float:
        totals = []
        for source in code_files(files):
            complexities = function_decisions(source)
            if complexities:
                totals.extend(1 + d for _, _, _, d in complexities)
            elif source.text.strip():
                totals.append(1 + count_decisions(source))
        if not totals:
            return self.minimum
        return round(clamp(sum(totals) / len(totals), self.minimum, self.maximum), 1)


class MaintainabilityStrategy:
    """Per-file penalty model averaged over code files (0-100)."""

    name = "maintainability"
    minimum = 0.0
    maximum = 100.0

    def file_score(self, source: SourceFile) -> float:
        lines = source.lines
        total = max(1, len(lines))
        score = 100.0
        if total > 300:
            score -= min(25.0, (total - 300) / 20)
        long_lines = sum(1 for line in lines if len(line) > 120)
        score -= min(15.0, long_lines / total * 50)
        spans = CodeParser.function_spans(source.path, source.text)
        if spans:
            avg_len = sum(s.length for s in spans) / len(spans)
            if avg_len > 30:
                score -= min(20.0, (avg_len - 30) / 2)
        comments = sum(1 for line in lines if COMMENT_RE.match(line))
        if total > 20 and comments / total < 0.05:
            score -= 10.0
        density = count_decisions(source) / total * 100
        if density > 15:
            score -= min(20.0, density - 15)
        return clamp(score, self.minimum, self.maximum)

    def score(self, files: Sequence[SourceFile]) -> float:
        scored = [self.file_score(f) for f in code_files(files)]
        if not scored:
            return self.maximum
        return round(sum(scored) / len(scored), 1)


class TestCoverageStrategy:
    """Ratio of test files to non-test source files, as a capped percentage."""

    __test__ = False  # keep pytest from collecting this class

    name = "test_coverage"
    minimum = 0.0
    maximum = 100.0

    def score(self, files: Sequence[SourceFile]) -> float:
        paths = [f.path for f in code_files(files)]
        tests = [p for p in paths if is_test_path(p)]
        sources = [p for p in paths if not is_test_path(p)]
        if not sources:
            return self.minimum
        return float(round(clamp(len(tests) / len(sources) * 100, self.minimum, self.maximum)))


class TechnicalDebtStrategy:
    """Sum of estimated remediation hours for every detected debt issue."""

    name = "technical_debt"
    minimum = 0.0
    maximum = float("inf")

    def score(self, files: Sequence[SourceFile]) -> float:
        return round(sum(issue.hours for issue in find_debt_issues(files)), 1)


# --- Style dimensions --------------------------------------------------------


class StyleDimension(Protocol):
    name: str

    def evaluate(self, files: Sequence[SourceFile]) -> Tuple[StyleMetric, List[StyleViolation]]: ...


def _ratio(ok: int, total: int) -> int:
    return 100 if total == 0 else round(ok / total * 100)


class IndentationDimension:
    name = "indentation"

    def evaluate(self, files):
        units: Counter = Counter()
        samples = []
        for source in code_files(files):
            for i, line in enumerate(source.lines, start=1):
                stripped = line.lstrip(' \t')
                if not stripped or line == stripped or COMMENT_RE.match(line):
                    continue
                indent = line[:len(line) - len(stripped)]
                if '\t' in indent:
                    kind = 'tab'
                elif len(indent) % 4 == 0:
                    kind = '4'
                elif len(indent) % 2 == 0:
                    kind = '2'
                else:
                    kind = 'odd'
                samples.append((source.path, i, kind))
                units[kind] += 1
        if not samples:
            return StyleMetric(100, 0, 'Use consistent indentation'), []

        # 4-space indents are also valid 2-space indents
        two_space = units['2'] + units['4']
        if units['tab'] > max(units['4'], two_space):
            dominant, accepted = 'tab', {'tab'}
        elif units['2'] > 0 and two_space >= units['tab']:
            dominant, accepted = '2', {'2', '4'}
        else:
            dominant, accepted = '4', {'4'}

        violations = []
        per_file: Counter = Counter()
        for path, line, kind in samples:
            if kind in accepted:
                continue
            per_file[path] += 1
            if per_file[path] <= MAX_VIOLATIONS_PER_FILE:
                violations.append(StyleViolation(path, line, self.name, 'Indentation differs from the dominant style'))
        bad = sum(1 for _, _, kind in samples if kind not in accepted)
        advice = 'Use tabs for indentation consistently' if dominant == 'tab' else f'Use consistent {dominant}-space indentation'
        return StyleMetric(_ratio(len(samples) - bad, len(samples)), bad, advice), violations


_PY_NAME_RES = [re.compile(r'^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)'), re.compile(r'^\s*([A-Za-z_]\w*)\s*(?::[^=]+)?=(?!=)')]
_JS_NAME_RES = [re.compile(r'\bfunction\s+([A-Za-z_$][\w$]*)'), re.compile(r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)')]


def naming_style(name: str) -> str:
    """Classify a multi-word identifier as snake_case or camelCase ('single' otherwise)."""
    core = name.strip('_')
    if not core or core.isupper():
        return 'constant'
    if '_' in core and core.lower() == core:
        return 'snake_case'
    if core[0].islower() and any(ch.isupper() for ch in core[1:]) and '_' not in core:
        return 'camelCase'
    if core[0].isupper():
        return 'PascalCase'
    return 'single'


class NamingDimension:
    name = "naming"

    def evaluate(self, files):
        declared = []
        for source in code_files(files):
            regexes = _PY_NAME_RES if source.extension == 'py' else _JS_NAME_RES
            for i, line in enumerate(source.lines, start=1):
                for regex in regexes:
                    for m in regex.finditer(line):
                        style = naming_style(m.group(1))
                        if style in ('snake_case', 'camelCase'):
                            declared.append((source.path, i, m.group(1), style, source.extension == 'py'))
        if not declared:
            return StyleMetric(100, 0, 'Use one naming convention for variables and functions'), []

        # Python and JS/TS are judged against their own dominant convention
        dominant: Dict[bool, str] = {}
        for is_py in (True, False):
            counts = Counter(style for *_, style, py in declared if py == is_py)
            if counts:
                dominant[is_py] = counts.most_common(1)[0][0]

        violations = []
        per_file: Counter = Counter()
        bad = 0
        for path, line, name, style, is_py in declared:
            if style == dominant[is_py]:
                continue
            bad += 1
            per_file[path] += 1
            if per_file[path] <= MAX_VIOLATIONS_PER_FILE:
                violations.append(StyleViolation(path, line, self.name, f"'{name}' should be {dominant[is_py]}"))
        advice = ' and '.join(
            f"Use {style} for {'Python' if is_py else 'JS/TS'} variables and functions" for is_py, style in dominant.items()
        )
        return StyleMetric(_ratio(len(declared) - bad, len(declared)), bad, advice), violations


class ImportGroupingDimension:
    name = "imports"

    @staticmethod
    def _misplaced_import(source: SourceFile) -> int:
        refs = CodeParser.extract_imports(source.path, source.text)
        if not refs:
            return -1
        lines = source.lines
        # imports must form the leading block; external before relative
        seen_relative = False
        last_import = 0
        for ref in refs:
            between = lines[last_import:ref.line - 1] if last_import else []
            if any(l.strip() and not COMMENT_RE.match(l) and not l.strip().startswith(('import', 'from', '}', 'export', 'const', ')')) for l in between):
                return ref.line
            if ref.is_relative:
                seen_relative = True
            elif seen_relative:
                return ref.line
            last_import = ref.line
        return 0

    def evaluate(self, files):
        checked = 0
        bad = 0
        violations = []
        for source in code_files(files):
            line = self._misplaced_import(source)
            if line < 0:
                continue
            checked += 1
            if line > 0:
                bad += 1
                violations.append(StyleViolation(source.path, line, self.name, 'Import is not grouped with the leading import block'))
        return StyleMetric(_ratio(checked - bad, checked), bad, 'Group imports by type (external, internal, relative)'), violations


class FunctionSizeDimension:
    name = "functions"

    def evaluate(self, files):
        total = 0
        violations = []
        for source in code_files(files):
            for span in CodeParser.function_spans(source.path, source.text):
                total += 1
                if span.length > LONG_FUNCTION_LINES:
                    violations.append(StyleViolation(
                        source.path, span.start_line, self.name,
                        f"Function '{span.name}' is {span.length} lines long", 'medium',
                    ))
        return StyleMetric(_ratio(total - len(violations), total), len(violations), f'Keep functions under {LONG_FUNCTION_LINES} lines'), violations


DEFAULT_STYLE_DIMENSIONS = (IndentationDimension, NamingDimension, ImportGroupingDimension, FunctionSizeDimension)


# --- Generated code ----------------------------------------------------------


class GeneratedCodeScorer(Protocol):
    name: str

    def score(self, code: str, context: CodebaseContext) -> int: ...


class ArchitectureComplianceScorer:
    """How well a generated file follows the conventions in the context (0-100)."""

    name = "architecture_compliance"

    def score(self, code: str, context: CodebaseContext) -> int:
        result = 100
        if not re.search(r'\btry\b', code):
            result -= 25
        if not re.search(r'("""|/\*\*)', code):
            result -= 15
        if context.architecture not in code:
            result -= 10
        classes = re.findall(r'\bclass\s+([A-Za-z_$][\w$]*)', code)
        if any(not c[0].isupper() for c in classes):
            result -= 20
        if context.dependencies and not re.search(r'^\s*(import|from)\s', code, re.MULTILINE):
            result -= 10
        return int(clamp(result, 0, 100))


class StyleConformanceScorer:
    """Share of style checks (indentation, quotes, line length, semicolons) a generated file passes."""

    name = "style_consistency"

    def score(self, code: str, context: CodebaseContext) -> int:
        style = context.code_style
        lines = [l for l in code.split('\n') if l.strip()]
        if not lines:
            return 100
        unit = 4 if style.indentation.startswith('4') else 2
        indented = [l for l in lines if l[0] in ' \t']
        checks = [
            _ratio(sum(1 for l in indented if '\t' not in l and (len(l) - len(l.lstrip(' '))) % unit == 0), len(indented)),
            _ratio(sum(1 for l in lines if len(l) <= style.line_length), len(lines)),
        ]
        if context.language != 'python':
            singles, doubles = code.count("'"), code.count('"')
            wanted, other = (singles, doubles) if style.quotes == 'single' else (doubles, singles)
            checks.append(_ratio(wanted, wanted + other))
            statements = [l for l in lines if re.match(r'^\s*(import|const|let|return|throw)\b', l)]
            if style.semicolons:
                checks.append(_ratio(sum(1 for l in statements if l.rstrip().endswith((';', '{', '(', ','))), len(statements)))
        return round(sum(checks) / len(checks))
