import ast
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional, Set

logger = logging.getLogger(__name__)

JS_EXTENSIONS = ('js', 'jsx', 'ts', 'tsx', 'mjs', 'cjs')


@dataclass
class ImportRef:
    """One import statement: the raw specifier and the line it appears on (1-based)."""

    specifier: str
    line: int
    names: tuple = ()

    @property
    def is_relative(self) -> bool:
        return self.specifier.startswith('.')


@dataclass
class FunctionSpan:
    name: str
    start_line: int  # 1-based, inclusive
    end_line: int  # 1-based, inclusive

    @property
    def length(self) -> int:
        return self.end_line - self.start_line + 1


class CodeParser:
    """Extract imports, top-level symbols and function spans from source text.

    Python is parsed with `ast`; JS/TS use lightweight regex heuristics with
    brace matching. Other file types yield empty results.
    """

    _js_import_res = [
        re.compile(r'''^\s*import\s+(?:type\s+)?(?:[\w*{}\s,$]+\s+from\s+)?['"]([^'"]+)['"]'''),
        re.compile(r'''^\s*export\s+(?:type\s+)?[\w*{}\s,$]+\s+from\s+['"]([^'"]+)['"]'''),
        re.compile(r'''require\(\s*['"]([^'"]+)['"]\s*\)'''),
        re.compile(r'''import\(\s*['"]([^'"]+)['"]\s*\)'''),
    ]
    _fn_re = re.compile(r'^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z0-9_$]+)\s*\(')
    _arrow_re = re.compile(r'^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z0-9_$]+)\s*(?::[^=]+)?=\s*(?:async\s*)?(?:\([^)]*\)|[A-Za-z0-9_$]+)\s*(?::[^=]+)?=>')
    _class_re = re.compile(r'^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z0-9_$]+)')
    _method_re = re.compile(r'^\s+(?:public\s+|private\s+|protected\s+|static\s+|async\s+)*([A-Za-z0-9_$]+)\s*\([^)]*\)\s*(?::\s*[^{]+)?\{')
    _identifier_re = re.compile(r'[A-Za-z_$][A-Za-z0-9_$]{2,}')

    @staticmethod
    def _extension(file_path: str) -> str:
        return PurePosixPath(file_path).suffix.lower().lstrip('.')

    @staticmethod
    def _find_block_bounds(lines: List[str], start_line: int, open_char: str = '{', close_char: str = '}') -> int:
        """Find the closing line index for a brace-delimited block starting at start_line.

        Returns the index (exclusive) of the line after the closing brace; if not
        found, returns the length of lines.
        """
        depth = 0
        started = False
        for i in range(start_line, len(lines)):
            line = lines[i]
            for ch in line:
                if ch == open_char:
                    depth += 1
                    started = True
                elif ch == close_char:
                    depth -= 1
            if started and depth <= 0:
                return i + 1
        return len(lines)

    @staticmethod
    def _parse_python(content: str) -> Optional[ast.Module]:
        try:
            return ast.parse(content)
        except (SyntaxError, ValueError):
            return None

    @staticmethod
    def extract_imports(file_path: str, content: str) -> List[ImportRef]:
        ext = CodeParser._extension(file_path)
        if ext == 'py':
            tree = CodeParser._parse_python(content)
            if tree is None:
                logger.debug("Could not parse %s; no imports extracted", file_path)
                return []
            refs: List[ImportRef] = []
            for node in ast.walk(tree):
                if isinstance(node, ast.Import):
                    for alias in node.names:
                        refs.append(ImportRef(alias.name, node.lineno))
                elif isinstance(node, ast.ImportFrom):
                    spec = '.' * node.level + (node.module or '')
                    refs.append(ImportRef(spec, node.lineno, tuple(a.name for a in node.names)))
            refs.sort(key=lambda r: r.line)
            return refs
        if ext in JS_EXTENSIONS:
            refs = []
            for i, line in enumerate(content.split('\n'), start=1):
                for regex in CodeParser._js_import_res:
                    for m in regex.finditer(line):
                        refs.append(ImportRef(m.group(1), i))
            return refs
        return []

    @staticmethod
    def extract_symbols(file_path: str, content: str) -> List[str]:
        """Top-level function and class names declared by the file."""
        ext = CodeParser._extension(file_path)
        if ext == 'py':
            tree = CodeParser._parse_python(content)
            if tree is None:
                return []
            return [
                node.name for node in tree.body
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
            ]
        if ext in JS_EXTENSIONS:
            names = []
            for line in content.split('\n'):
                if line[:1].isspace():
                    continue
                for regex in (CodeParser._fn_re, CodeParser._arrow_re, CodeParser._class_re):
                    m = regex.match(line)
                    if m:
                        names.append(m.group(1))
                        break
            return names
        return []

    @staticmethod
    def function_spans(file_path: str, content: str) -> List[FunctionSpan]:
        """Every function/method with its line span."""
        ext = CodeParser._extension(file_path)
        if ext == 'py':
            tree = CodeParser._parse_python(content)
            if tree is None:
                return []
            spans = [
                FunctionSpan(node.name, node.lineno, node.end_lineno or node.lineno)
                for node in ast.walk(tree)
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
            ]
            spans.sort(key=lambda s: s.start_line)
            return spans
        if ext in JS_EXTENSIONS:
            lines = content.split('\n')
            spans = []
            for i, line in enumerate(lines):
                m = CodeParser._fn_re.match(line) or CodeParser._method_re.match(line)
                if not m:
                    m = CodeParser._arrow_re.match(line)
                    if m and '{' not in line:
                        spans.append(FunctionSpan(m.group(1), i + 1, i + 1))
                        continue
                if m and m.group(1) not in ('if', 'for', 'while', 'switch', 'catch', 'return'):
                    end = CodeParser._find_block_bounds(lines, i)
                    spans.append(FunctionSpan(m.group(1), i + 1, end))
            return spans
        return []

    @staticmethod
    def identifiers(content: str) -> Set[str]:
        """Identifier-like tokens (3+ chars) used for similarity comparisons."""
        return set(CodeParser._identifier_re.findall(content))
