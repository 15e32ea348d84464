"""Small text metrics shared by the scoring strategies and the debt/refactoring scans."""

import re
from typing import List, Optional, Sequence, Tuple

from core.ingestion.loader import CODE_EXTENSIONS
from core.ingestion.parser import CodeParser
from core.models import SourceFile

LONG_FUNCTION_LINES = 50
LONG_FILE_LINES = 400
COMPLEX_FUNCTION_DECISIONS = 10

COMMENT_RE = re.compile(r'^\s*(?:#|//|/\*|\*|"""|\'\'\')')
_PY_DECISIONS = re.compile(r'\b(?:if|elif|for|while|except|and|or|case)\b')
_JS_DECISIONS = re.compile(r'\b(?:if|for|while|case|catch)\b|&&|\|\|')


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def code_files(files: Sequence[SourceFile]) -> List[SourceFile]:
    return [f for f in files if f.extension in CODE_EXTENSIONS]


def count_decisions(source: SourceFile, text: Optional[str] = None) -> int:
    """Count branch points (conditionals, loops, boolean operators, handlers) in a file or a slice of it."""
    body = source.text if text is None else text
    code = '\n'.join(line for line in body.split('\n') if not COMMENT_RE.match(line))
    regex = _PY_DECISIONS if source.extension == 'py' else _JS_DECISIONS
    return len(regex.findall(code))


def function_decisions(source: SourceFile) -> List[Tuple[str, int, int, int]]:
    """(name, start_line, length, decision points) for each function in the file."""
    lines = source.lines
    result = []
    for span in CodeParser.function_spans(source.path, source.text):
        body = '\n'.join(lines[span.start_line - 1:span.end_line])
        result.append((span.name, span.start_line, span.length, count_decisions(source, body)))
    return result
