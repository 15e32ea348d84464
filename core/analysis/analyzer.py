import hashlib
import logging
import posixpath
import re
import time
from collections import Counter
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Sequence, Set

from core.analysis.debt import DEBT_CATEGORIES, find_debt_issues
from core.analysis.metrics import COMPLEX_FUNCTION_DECISIONS, LONG_FILE_LINES, LONG_FUNCTION_LINES, clamp, function_decisions
from core.analysis.rules import matches_glob
from core.analysis.scoring import (
    ComplexityStrategy,
    MaintainabilityStrategy,
    ScoringStrategy,
    TechnicalDebtStrategy,
    TestCoverageStrategy,
)
from core.errors import ProjectFileNotFoundError
from core.ingestion.loader import CodebaseLoader, FileInventory, is_test_path, module_stem
from core.ingestion.manifest import DependencyManifest, load_manifest
from core.ingestion.parser import JS_EXTENSIONS, CodeParser, ImportRef
from core.models import SourceFile, priority_rank
from core.models.reports import (
    AnalysisRecommendation,
    CodebaseAnalysis,
    DebtCategory,
    DebtIssue,
    DebtRecommendation,
    DependencyInfo,
    DirectoryInfo,
    RefactoringSuggestion,
    RefactoringSuggestions,
    RelatedFile,
    RelatedFilesResult,
    SimilarFile,
    TechnicalDebtAnalysis,
    TestFile,
)

logger = logging.getLogger(__name__)

DEPTH_SAMPLE_SIZES = {'shallow': 50, 'deep': 200, 'comprehensive': None}
LOC_FILE_LIMIT = 50
SIMILARITY_THRESHOLD = 0.3
SPLIT_IMPORT_THRESHOLD = 10
DUPLICATE_BLOCK_LINES = 6
MONTHLY_INTEREST_RATE = 0.133

DIRECTORY_PURPOSES = {
    'src': 'Source code',
    'tests': 'Test files',
    'test': 'Test files',
    '__tests__': 'Test files',
    'routes': 'API routes',
    'routers': 'API routes',
    'api': 'API routes',
    'services': 'Business logic',
    'models': 'Data models',
    'schemas': 'Data models',
    'middleware': 'Express middleware',
    'apis': 'API clients',
    'clients': 'API clients',
    'utils': 'Utility functions',
    'helpers': 'Utility functions',
    'types': 'Type definitions',
    'controllers': 'Request handlers',
    'repositories': 'Data access',
    'config': 'Configuration',
}

DEPENDENCY_USAGES = {
    'express': 'Web framework',
    'axios': 'HTTP client',
    'cors': 'CORS middleware',
    'helmet': 'Security middleware',
    'dotenv': 'Environment variables',
    'winston': 'Logging',
    'jest': 'Testing framework',
    'typescript': 'Type checking',
    'fastapi': 'Web framework',
    'flask': 'Web framework',
    'django': 'Web framework',
    'requests': 'HTTP client',
    'httpx': 'HTTP client',
    'pydantic': 'Data validation',
    'python-dotenv': 'Environment variables',
    'pytest': 'Testing framework',
    'uvicorn': 'ASGI server',
    'sqlalchemy': 'Database ORM',
}

LANGUAGE_NAMES = {
    'py': 'Python', 'ts': 'TypeScript', 'tsx': 'TypeScript', 'js': 'JavaScript', 'jsx': 'JavaScript',
    'mjs': 'JavaScript', 'cjs': 'JavaScript', 'json': 'JSON', 'md': 'Markdown', 'yaml': 'YAML', 'yml': 'YAML',
}

_ROUTE_GLOBS = ['routes/*', 'routers/*', '*.routes.*', '*.route.*', '*.controller.*', 'controllers/*']
_GENERIC_NAMES = {'data', 'temp', 'tmp', 'foo', 'bar', 'obj', 'val', 'stuff', 'thing', 'info', 'res2', 'data2'}
_DECL_RE = re.compile(r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=|^\s*([A-Za-z_]\w*)\s*=(?!=)')
_SHORT_OK = {'i', 'j', 'k', 'x', 'y', 'z', '_', 'e', 'n', 'f', 'T'}
_JS_NAMED_IMPORT_RE = re.compile(r'^\s*import\s+(?:type\s+)?(?:(\w+)\s*,?\s*)?(?:\{([^}]*)\})?\s*from\s')
_PY_IMPORT_NAMES_RE = re.compile(r'^\s*(?:from\s+\S+\s+)?import\s+(.+)$')


def detect_architecture(directory_names: Set[str]) -> str:
    if {'controllers', 'models', 'views'} <= directory_names:
        return 'MVC (Model-View-Controller)'
    if {'services', 'routes'} <= directory_names or {'services', 'routers'} <= directory_names:
        return 'Service Layer Architecture'
    if {'apis', 'middleware'} <= directory_names:
        return 'API-First Architecture'
    return 'Custom Architecture'


def directory_purpose(path: str) -> str:
    return DIRECTORY_PURPOSES.get(PurePosixPath(path).name, 'General purpose')


def dependency_usage(name: str) -> str:
    return DEPENDENCY_USAGES.get(name, 'Utility library')


def primary_language(files: Sequence[str]) -> str:
    counts = Counter(LANGUAGE_NAMES.get(f.rsplit('.', 1)[-1].lower()) for f in files)
    counts.pop('JSON', None)
    counts.pop(None, None)
    if not counts:
        return 'TypeScript'
    return counts.most_common(1)[0][0]


class ImportResolver:
    """Resolve import specifiers to files inside a FileInventory."""

    def __init__(self, inventory: FileInventory):
        self.files = set(inventory.files)

    def _first_existing(self, candidates: Sequence[str]) -> Optional[str]:
        for c in candidates:
            c = posixpath.normpath(c)
            if c in self.files:
                return c
        return None

    def _js_candidates(self, base: str) -> List[str]:
        return [base] + [f'{base}.{ext}' for ext in JS_EXTENSIONS] + [f'{base}/index.{ext}' for ext in JS_EXTENSIONS]

    def _py_candidates(self, module_path: str) -> List[str]:
        return [f'{module_path}.py', f'{module_path}/__init__.py', f'src/{module_path}.py', f'src/{module_path}/__init__.py']

    def resolve(self, from_path: str, ref: ImportRef) -> List[str]:
        spec = ref.specifier
        directory = posixpath.dirname(from_path)
        if from_path.endswith('.py'):
            level = len(spec) - len(spec.lstrip('.'))
            module = spec.lstrip('.').replace('.', '/')
            if level:
                base = directory
                for _ in range(level - 1):
                    base = posixpath.dirname(base)
                module_path = posixpath.join(base, module) if module else base
                candidates = [f'{module_path}.py', f'{module_path}/__init__.py']
            else:
                module_path = module
                candidates = self._py_candidates(module)
            resolved = []
            target = self._first_existing(candidates) if module else None
            if target:
                resolved.append(target)
            for name in ref.names:
                sub = self._first_existing([f'{module_path}/{name}.py', f'{module_path}/{name}/__init__.py'])
                if sub:
                    resolved.append(sub)
            return resolved
        if not ref.is_relative:
            return []
        target = self._first_existing(self._js_candidates(posixpath.join(directory, spec)))
        return [target] if target else []

    def imports_of(self, source: SourceFile) -> List[str]:
        targets: List[str] = []
        for ref in CodeParser.extract_imports(source.path, source.text):
            for t in self.resolve(source.path, ref):
                if t != source.path and t not in targets:
                    targets.append(t)
        return targets


class CodebaseAnalyzer:
    """Structural and quality analysis of a project tree.

    Scores come from pluggable strategies; pass `strategies` to replace any
    of `complexity`, `maintainability`, `test_coverage` or `technical_debt`.
    """

    def __init__(self, project_root: str, include_extensions: Optional[List[str]] = None,
                 manifest: Optional[DependencyManifest] = None,
                 strategies: Optional[Dict[str, ScoringStrategy]] = None):
        self.project_root = project_root
        self.loader = CodebaseLoader(project_root, include_extensions)
        self._manifest = manifest
        self.strategies: Dict[str, ScoringStrategy] = {
            'complexity': ComplexityStrategy(),
            'maintainability': MaintainabilityStrategy(),
            'test_coverage': TestCoverageStrategy(),
            'technical_debt': TechnicalDebtStrategy(),
        }
        if strategies:
            self.strategies.update(strategies)

    @property
    def manifest(self) -> DependencyManifest:
        if self._manifest is None:
            self._manifest = load_manifest(self.project_root)
        return self._manifest

    def normalize_path(self, file_path: str) -> str:
        path = Path(file_path)
        if path.is_absolute():
            try:
                return path.resolve().relative_to(Path(self.project_root).resolve()).as_posix()
            except ValueError:
                return path.as_posix()
        return posixpath.normpath(file_path.replace('\\', '/'))

    # --- structure ------------------------------------------------------------

    def analyze_codebase(self, depth: str = 'deep', include_tests: bool = True,
                         include_node_modules: bool = False,
                         focus_areas: Optional[List[str]] = None) -> CodebaseAnalysis:
        logger.info("🔍 Analyzing codebase at %s (depth=%s)", self.project_root, depth)
        started = time.perf_counter()
        inventory = self.loader.load_inventory(include_tests, include_node_modules)

        limit = DEPTH_SAMPLE_SIZES.get(depth, DEPTH_SAMPLE_SIZES['deep'])
        code = inventory.code_files()
        sources = inventory.load(code if limit is None else code[:limit])

        # line count is capped to the first files for speed
        loc = sum(len(s.lines) for s in inventory.load(inventory.files[:LOC_FILE_LIMIT]))
        languages = sorted({LANGUAGE_NAMES.get(f.rsplit('.', 1)[-1].lower(), f.rsplit('.', 1)[-1]) for f in inventory.files})
        structure = self._directory_structure(inventory)
        architecture = detect_architecture(inventory.directory_names())
        key_dependencies = [
            DependencyInfo(name, str(version), dependency_usage(name))
            for name, version in list(self.manifest.production.items())[:10]
        ]

        complexity = self.strategies['complexity'].score(sources)
        maintainability = self.strategies['maintainability'].score(sources)
        coverage = self.strategies['test_coverage'].score(sources)
        debt_hours = self.strategies['technical_debt'].score(sources)

        insights = self._insights(inventory, languages, structure, architecture, sources, focus_areas or [])
        recommendations = []
        if complexity > 8:
            recommendations.append(AnalysisRecommendation('high', 'Reduce code complexity by breaking down large functions'))
        if maintainability < 80:
            recommendations.append(AnalysisRecommendation('medium', 'Improve code maintainability through refactoring'))
        if coverage < 70:
            recommendations.append(AnalysisRecommendation('high', 'Increase test coverage to at least 70%'))

        elapsed = round(time.perf_counter() - started, 3)
        logger.info("✅ Analysis finished in %.3fs (%d files)", elapsed, len(inventory.files))
        return CodebaseAnalysis(
            total_files=len(inventory.files),
            total_lines_of_code=loc,
            languages=languages,
            architecture_pattern=architecture,
            directory_structure=structure,
            key_dependencies=key_dependencies,
            complexity_score=complexity,
            maintainability_index=maintainability,
            test_coverage=coverage,
            technical_debt_hours=debt_hours,
            insights=insights,
            recommendations=recommendations,
            depth=depth,
            analysis_time=elapsed,
        )

    @staticmethod
    def _directory_structure(inventory: FileInventory) -> List[DirectoryInfo]:
        counts = Counter(posixpath.dirname(f) or '.' for f in inventory.files)
        return [DirectoryInfo(path, count, directory_purpose(path)) for path, count in sorted(counts.items())]

    def _insights(self, inventory, languages, structure, architecture, sources, focus_areas) -> List[str]:
        insights = []
        if languages:
            insights.append(f"Project uses {', '.join(languages)} as primary languages")
        top_level = {d.split('/')[0] for d in inventory.directories}
        insights.append(f"Well-organized directory structure with {len(top_level)} main directories")
        if self.manifest.scripts:
            insights.append(f"Comprehensive build pipeline with {len(self.manifest.scripts)} scripts")
        tests = inventory.test_files()
        if tests:
            insights.append(f"Good testing practices with {len(tests)} test files")

        for area in focus_areas:
            if area == 'structure':
                insights.append(f"Structure: {len(structure)} directories hold source files")
            elif area == 'patterns':
                insights.append(f"Patterns: directory layout indicates {architecture}")
            elif area == 'dependencies':
                insights.append(
                    f"Dependencies: {len(self.manifest.production)} production and "
                    f"{len(self.manifest.development)} development packages declared"
                )
            elif area in ('performance', 'security'):
                found = [i for i in find_debt_issues(sources) if i.category == area]
                insights.append(f"{area.capitalize()}: {len(found)} potential issues found in scanned files")
        return insights

    # --- relationships --------------------------------------------------------

    def get_related_files(self, file_path: str, relationship_types: Optional[List[str]] = None,
                          max_results: int = 10) -> RelatedFilesResult:
        path = self.normalize_path(file_path)
        logger.info("🔗 Finding related files for: %s", path)
        inventory = self.loader.load_inventory(include_tests=True)
        if not inventory.contains(path):
            raise ProjectFileNotFoundError(file_path)

        kinds = set(relationship_types or ['imports', 'exports', 'tests'])
        source = inventory.load([path])
        source = source[0] if source else SourceFile(path, '')
        resolver = ImportResolver(inventory)

        imports: List[RelatedFile] = []
        dependents: List[RelatedFile] = []
        tests: List[TestFile] = []
        similar: List[SimilarFile] = []
        import_targets = resolver.imports_of(source)

        if 'imports' in kinds:
            imports = [RelatedFile(t, 'imports') for t in sorted(import_targets)]
        if kinds & {'exports', 'dependent'}:
            for other in inventory.load(f for f in inventory.code_files() if f != path):
                if path in resolver.imports_of(other):
                    dependents.append(RelatedFile(other.path, 'imported by'))
        if 'tests' in kinds:
            tests = self._find_tests(source, inventory)
        if 'similar' in kinds:
            similar = self._find_similar(source, inventory)

        suggestions = []
        if 'tests' in kinds and not tests and not is_test_path(path):
            suggestions.append('Consider adding unit tests for this file')
        if len(import_targets) > SPLIT_IMPORT_THRESHOLD or len(CodeParser.extract_imports(path, source.text)) > SPLIT_IMPORT_THRESHOLD:
            suggestions.append('Consider breaking down this file - it has many dependencies')
        if kinds & {'exports', 'dependent'} and not dependents:
            suggestions.append('This file might be unused - consider removing if not needed')

        return RelatedFilesResult(
            file=path,
            imports=imports[:max_results],
            dependents=sorted(dependents, key=lambda r: r.path)[:max_results],
            tests=tests[:max_results],
            similar=similar[:max_results],
            suggestions=suggestions,
        )

    @staticmethod
    def _find_tests(source: SourceFile, inventory: FileInventory) -> List[TestFile]:
        stem = module_stem(source.path)
        symbols = CodeParser.extract_symbols(source.path, source.text)
        found = []
        for test in inventory.load(t for t in inventory.test_files() if t != source.path and module_stem(t) == stem):
            if symbols:
                mentioned = sum(1 for s in symbols if re.search(rf'\b{re.escape(s)}\b', test.text))
                coverage = round(mentioned / len(symbols) * 100)
            else:
                coverage = 100 if stem in test.text.lower() else 0
            found.append(TestFile(test.path, coverage))
        return sorted(found, key=lambda t: (-t.coverage, t.path))

    @staticmethod
    def _find_similar(source: SourceFile, inventory: FileInventory) -> List[SimilarFile]:
        is_py = source.extension == 'py'
        mine = CodeParser.identifiers(source.text)
        if not mine:
            return []
        candidates = [f for f in inventory.code_files() if f != source.path and f.endswith('.py') == is_py]
        found = []
        for other in inventory.load(candidates):
            theirs = CodeParser.identifiers(other.text)
            union = mine | theirs
            score = len(mine & theirs) / len(union) if union else 0.0
            if score >= SIMILARITY_THRESHOLD:
                found.append(SimilarFile(other.path, round(score * 100)))
        return sorted(found, key=lambda s: (-s.similarity, s.path))

    # --- refactoring ----------------------------------------------------------

    def _target_sources(self, inventory: FileInventory, file_path: Optional[str]) -> List[SourceFile]:
        if file_path:
            path = self.normalize_path(file_path)
            if not inventory.contains(path):
                raise ProjectFileNotFoundError(file_path)
            return inventory.load([path])
        return inventory.load(inventory.code_files(include_tests=False))

    def suggest_refactoring(self, file_path: Optional[str] = None, refactoring_types: Optional[List[str]] = None,
                            priority: str = 'medium') -> RefactoringSuggestions:
        logger.info("🔧 Analyzing refactoring opportunities...")
        inventory = self.loader.load_inventory(include_tests=True)
        sources = self._target_sources(inventory, file_path)

        suggestions: List[RefactoringSuggestion] = []
        for source in sources:
            suggestions.extend(self._file_refactorings(source))
        suggestions.extend(self._duplicated_blocks(sources))

        minimum = priority_rank(priority)
        kept = [
            s for s in suggestions
            if (not refactoring_types or s.type in refactoring_types) and priority_rank(s.priority) >= minimum
        ]
        kept.sort(key=lambda s: (-priority_rank(s.priority), s.file, s.line))

        docs = 'docstrings' if primary_language(inventory.files) == 'Python' else 'JSDoc documentation'
        return RefactoringSuggestions(
            high=[s for s in kept if priority_rank(s.priority) >= priority_rank('high')],
            medium=[s for s in kept if priority_rank(s.priority) < priority_rank('high')],
            code_quality=[
                'Consider extracting common utility functions',
                'Implement consistent error handling patterns',
                f'Add comprehensive {docs}',
                'Optimize import statements and remove unused imports',
            ],
            implementation_steps=[
                'Start with high-priority refactoring suggestions',
                'Run tests after each refactoring step',
                'Update documentation and comments',
                'Review code with team members',
            ],
        )

    def _file_refactorings(self, source: SourceFile) -> Iterator[RefactoringSuggestion]:
        path = source.path
        total = len(source.lines)
        if total > LONG_FILE_LINES:
            yield RefactoringSuggestion(
                'extract-class', path, f'File has {total} lines; split it into focused modules or classes',
                'Smaller units that are easier to navigate', 'high', 'high' if total > 2 * LONG_FILE_LINES else 'medium', 1,
            )
        is_route = any(matches_glob(path, g) for g in _ROUTE_GLOBS)
        for name, start, length, decisions in function_decisions(source):
            if length > LONG_FUNCTION_LINES:
                yield RefactoringSuggestion(
                    'extract-function', path, f"Function '{name}' is {length} lines long; extract smaller helpers",
                    'Improved readability and testability', 'medium', 'high' if length > 2 * LONG_FUNCTION_LINES else 'medium', start,
                )
            elif is_route and (length > 30 or decisions > 5):
                yield RefactoringSuggestion(
                    'extract-function', path, f"Route handler '{name}' holds business logic; move it into a service",
                    'Thin handlers and reusable business rules', 'medium', 'medium', start,
                )
            if decisions > COMPLEX_FUNCTION_DECISIONS:
                yield RefactoringSuggestion(
                    'reduce-complexity', path, f"Function '{name}' has {decisions} decision points",
                    'Fewer bugs and simpler tests', 'medium', 'high' if decisions > 2 * COMPLEX_FUNCTION_DECISIONS else 'medium', start,
                )
        yield from self._import_refactorings(source)
        yield from self._naming_refactorings(source)

    @staticmethod
    def _import_refactorings(source: SourceFile) -> Iterator[RefactoringSuggestion]:
        refs = CodeParser.extract_imports(source.path, source.text)
        if len(refs) > 15:
            yield RefactoringSuggestion(
                'optimize-imports', source.path, f'File has {len(refs)} imports; consider splitting responsibilities',
                'Lower coupling', 'low', 'medium', refs[0].line,
            )
        lines = source.lines
        for i, line in enumerate(lines, start=1):
            names: List[str] = []
            if source.extension == 'py':
                m = _PY_IMPORT_NAMES_RE.match(line)
                if m and '(' not in m.group(1) and '*' not in m.group(1) and '__future__' not in line:
                    for part in m.group(1).split(','):
                        bound = part.split(' as ')[-1].strip().split('.')[0]
                        if bound:
                            names.append(bound)
            elif source.extension in JS_EXTENSIONS:
                m = _JS_NAMED_IMPORT_RE.match(line)
                if m:
                    if m.group(1):
                        names.append(m.group(1))
                    for part in (m.group(2) or '').split(','):
                        bound = part.split(' as ')[-1].strip()
                        if bound:
                            names.append(bound)
            if not names:
                continue
            rest = '\n'.join(lines[:i - 1] + lines[i:])
            for name in names:
                if not re.search(rf'(?<![\w$]){re.escape(name)}(?![\w$])', rest):
                    yield RefactoringSuggestion(
                        'optimize-imports', source.path, f"Import '{name}' is never used",
                        'Cleaner dependencies and faster loading', 'low', 'medium', i,
                    )

    @staticmethod
    def _naming_refactorings(source: SourceFile) -> Iterator[RefactoringSuggestion]:
        for i, line in enumerate(source.lines, start=1):
            m = _DECL_RE.search(line)
            if not m:
                continue
            name = m.group(1) or m.group(2)
            if (len(name) == 1 and name not in _SHORT_OK) or name.lower() in _GENERIC_NAMES:
                yield RefactoringSuggestion(
                    'improve-naming', source.path, f"Name '{name}' does not describe its value",
                    'Self-documenting code', 'low', 'low', i,
                )

    @staticmethod
    def _duplicated_blocks(sources: Sequence[SourceFile]) -> List[RefactoringSuggestion]:
        seen: Dict[str, tuple] = {}
        reported: Set[tuple] = set()
        suggestions = []
        for source in sources:
            lines = [l.strip() for l in source.lines]
            for start in range(0, max(0, len(lines) - DUPLICATE_BLOCK_LINES + 1)):
                block = lines[start:start + DUPLICATE_BLOCK_LINES]
                meaningful = [l for l in block if len(l) > 3 and not l.startswith(('import', 'from', '#', '//', '*'))]
                if len(meaningful) < DUPLICATE_BLOCK_LINES - 1:
                    continue
                digest = hashlib.sha1('\n'.join(block).encode('utf-8')).hexdigest()
                first = seen.setdefault(digest, (source.path, start + 1))
                if first == (source.path, start + 1):
                    continue
                pair = (first[0], source.path)
                if pair in reported:
                    continue
                reported.add(pair)
                suggestions.append(RefactoringSuggestion(
                    'remove-duplication', source.path,
                    f'Lines {start + 1}-{start + DUPLICATE_BLOCK_LINES} duplicate {first[0]}:{first[1]}',
                    'Single place to fix bugs', 'medium', 'medium', start + 1,
                ))
        return suggestions

    # --- technical debt -------------------------------------------------------

    def analyze_technical_debt(self, category: Optional[str] = None, severity: Optional[str] = None,
                               include_metrics: bool = True) -> TechnicalDebtAnalysis:
        logger.info("📊 Analyzing technical debt...")
        inventory = self.loader.load_inventory(include_tests=True)
        sources = inventory.load(inventory.code_files())
        issues = find_debt_issues(sources)
        if category:
            issues = [i for i in issues if i.category == category]
        if severity:
            issues = [i for i in issues if priority_rank(i.severity) >= priority_rank(severity)]

        total = round(sum(i.hours for i in issues), 1)
        per_file = total / max(1, len(sources))
        overall = int(round(clamp(100 - per_file * 20, 0, 100)))

        categories: List[DebtCategory] = []
        if include_metrics and total > 0:
            for name in DEBT_CATEGORIES:
                hours = round(sum(i.hours for i in issues if i.category == name), 1)
                if hours > 0:
                    categories.append(DebtCategory(name, hours, round(hours / total * 100)))

        critical = [i for i in issues if i.severity == 'critical']
        high = [i for i in issues if i.severity == 'high']
        if critical:
            payback = 'critical'
        elif high or total > 40:
            payback = 'high'
        elif total > 10:
            payback = 'medium'
        else:
            payback = 'low'

        return TechnicalDebtAnalysis(
            overall_score=overall,
            total_hours=total,
            monthly_interest=round(total * MONTHLY_INTEREST_RATE, 1),
            payback_priority=payback,
            categories=categories,
            critical=critical,
            high=high,
            recommendations=self._debt_recommendations(issues),
        )

    @staticmethod
    def _debt_recommendations(issues: List[DebtIssue]) -> List[DebtRecommendation]:
        by_category = Counter()
        for issue in issues:
            by_category[issue.category] += issue.hours
        recs = []
        if by_category['security']:
            recs.append(DebtRecommendation('Move secrets to environment variables and remove unsafe calls', 'Eliminates security risk'))
        if by_category['code-smells'] or by_category['maintainability']:
            recs.append(DebtRecommendation('Break down complex functions', 'Improves code readability'))
        if by_category['testing']:
            recs.append(DebtRecommendation('Add comprehensive test coverage', 'Reduces regression risk'))
        if by_category['performance']:
            recs.append(DebtRecommendation('Replace blocking calls on hot paths', 'Faster responses under load'))
        if by_category['documentation']:
            recs.append(DebtRecommendation('Document large modules', 'Faster onboarding'))
        if issues:
            top = by_category.most_common(1)[0][0]
            recs.append(DebtRecommendation(f'Reserve time each iteration for {top} debt', 'Keeps interest from compounding'))
        return recs
