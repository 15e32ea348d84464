"""
Context engine.

Combines the analyzer, the pattern detector and the memory store into an
explicit `CodebaseContext` value, and uses that value to scaffold code,
rank recommendations and describe single files.
"""
import logging
import posixpath
import re
from typing import Dict, List, Optional

from core.analysis import CodebaseAnalyzer, PatternDetector
from core.analysis.analyzer import module_stem, primary_language
from core.analysis.scoring import ArchitectureComplianceScorer, GeneratedCodeScorer, StyleConformanceScorer
from core.context.templates import (
    FILE_TYPES,
    FRAMEWORK_IMPORTS,
    TEST_SUBJECTS,
    class_name,
    companion_test_template,
    function_name,
    implementation_template,
    module_name,
    render,
)
from core.memory import MemoryStore
from core.models import CodebaseContext, CodeConventions, CodeStyle, Recommendation, priority_rank
from core.models.models import NamingConventions, StructureConventions
from core.models.reports import ContextAnalysis, GeneratedCodeResult, RelatedFileUpdate

logger = logging.getLogger(__name__)

SOURCE_ORDER = ('pattern', 'memory', 'architecture', 'refactoring')
TESTING_FRAMEWORKS = ('vitest', 'jest', 'mocha', 'pytest')
LOW_COMPLIANCE = 70
MAX_REFACTORING_RECOMMENDATIONS = 3

_INDENT_RE = re.compile(r'(\d)-space')
_DOC_RE = re.compile(r'("""|\'\'\'|/\*\*)')

# where a new file of each type has to be wired in: (typescript path, python path, reason, change)
_SIBLING_UPDATES: Dict[str, tuple] = {
    'controller': ('src/routes/index.ts', 'routes/__init__.py',
                   'Register new controller routes', 'Add route definitions for {cls}Controller'),
    'service': ('src/services/index.ts', 'services/__init__.py',
                'Export new service', 'Export {cls}Service from {module}'),
    'model': ('src/models/index.ts', 'models/__init__.py',
              'Export new model', 'Export {cls} from {module}'),
    'route': ('src/app.ts', 'app.py',
              'Mount new router', 'Mount {function} on the application'),
    'middleware': ('src/app.ts', 'app.py',
                   'Register new middleware', 'Add {function} to the middleware chain'),
}


def sort_recommendations(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Priority first (critical > high > medium > low), then title, then source."""
    def key(rec: Recommendation):
        source = SOURCE_ORDER.index(rec.source) if rec.source in SOURCE_ORDER else len(SOURCE_ORDER)
        return (-priority_rank(rec.priority), rec.title, source)

    return sorted(recommendations, key=key)


class ContextEngine:
    """Context-aware generation and recommendations over one project.

    The context is built on first use and cached; `refresh_context()` is the
    only way to rebuild it. Every public operation also accepts an explicit
    `context`, which bypasses the cache entirely.
    """

    def __init__(self, analyzer: CodebaseAnalyzer, memory_store: MemoryStore, pattern_detector: PatternDetector,
                 compliance_scorer: Optional[GeneratedCodeScorer] = None,
                 style_scorer: Optional[GeneratedCodeScorer] = None):
        self.analyzer = analyzer
        self.memory_store = memory_store
        self.pattern_detector = pattern_detector
        self.compliance_scorer = compliance_scorer or ArchitectureComplianceScorer()
        self.style_scorer = style_scorer or StyleConformanceScorer()
        self._context: Optional[CodebaseContext] = None

    # --- context --------------------------------------------------------------

    def build_context(self) -> CodebaseContext:
        logger.info("🧠 Building codebase context...")
        analysis = self.analyzer.analyze_codebase(depth='shallow')
        patterns = [p.name for p in self.pattern_detector.detect_patterns()]
        style = self.pattern_detector.analyze_style_consistency()
        inventory = self.analyzer.loader.load_inventory(include_tests=True)
        language = primary_language(inventory.files).lower()
        is_python = language == 'python'

        naming = NamingConventions(variables='snake_case', functions='snake_case', files='snake_case') \
            if is_python else NamingConventions()
        observed = self._observed_naming(style.metrics.get('naming'), is_python)
        if observed:
            naming.variables = naming.functions = observed

        code_style = CodeStyle(indentation='4 spaces', quotes='double', semicolons=False, line_length=100) \
            if is_python else CodeStyle()
        indentation = self._observed_indentation(style.metrics.get('indentation'))
        if indentation:
            code_style.indentation = indentation

        context = CodebaseContext(
            architecture=analysis.architecture_pattern,
            patterns=patterns,
            conventions=CodeConventions(
                naming=naming,
                structure=StructureConventions(error_handling='try-except' if is_python else 'try-catch'),
            ),
            dependencies=[d.name for d in analysis.key_dependencies],
            language=language,
            testing_framework=self._testing_framework(is_python),
            code_style=code_style,
        )
        logger.info("✅ Context built: %s, %d patterns, language=%s",
                    context.architecture, len(context.patterns), context.language)
        return context

    @staticmethod
    def _observed_naming(metric, is_python: bool) -> Optional[str]:
        if metric is None or not metric.recommendation:
            return None
        label = 'Python' if is_python else 'JS/TS'
        match = re.search(rf'Use (snake_case|camelCase) for {re.escape(label)}', metric.recommendation)
        return match.group(1) if match else None

    @staticmethod
    def _observed_indentation(metric) -> Optional[str]:
        if metric is None or not metric.recommendation:
            return None
        if 'tabs' in metric.recommendation:
            return 'tabs'
        match = _INDENT_RE.search(metric.recommendation)
        return f'{match.group(1)} spaces' if match else None

    def _testing_framework(self, is_python: bool) -> str:
        declared = self.analyzer.manifest.declared()
        for framework in TESTING_FRAMEWORKS:
            if framework in declared:
                return framework
        return 'pytest' if is_python else 'jest'

    def get_context(self) -> CodebaseContext:
        if self._context is None:
            self._context = self.build_context()
        return self._context

    def refresh_context(self) -> CodebaseContext:
        self._context = self.build_context()
        return self._context

    # --- generation -----------------------------------------------------------

    def generate_code(self, intent: str, file_type: str, related_files: Optional[List[str]] = None,
                      follow_patterns: bool = True,
                      context: Optional[CodebaseContext] = None) -> GeneratedCodeResult:
        """Scaffold a file of `file_type` for `intent` plus a companion test.

        Unknown file types fall back to the generic template. With
        `follow_patterns` off the generic template is used and no
        context-derived imports are added.
        """
        ctx = context or self.get_context()
        logger.info("🛠️ Generating %s for intent: %s", file_type, intent)
        if file_type not in FILE_TYPES:
            logger.warning("⚠️ Unknown file type '%s', using the generic template", file_type)
        is_python = ctx.language == 'python'
        language = 'python' if is_python else 'typescript'

        values = {
            'INTENT': intent,
            'ARCHITECTURE': ctx.architecture,
            'NAMING_CONVENTION': ctx.conventions.naming.functions,
            'CLASS_NAME': class_name(intent),
            'FUNCTION_NAME': function_name(intent, ctx.conventions.naming.functions),
            'MODULE_NAME': module_name(intent, ctx.conventions.naming.files),
        }

        framework = self._framework_for(language, file_type, ctx) if follow_patterns else None
        template = implementation_template(language, file_type if follow_patterns else 'default', framework)
        body = render(template, values)

        imports: List[str] = []
        if follow_patterns:
            imports.extend(FRAMEWORK_IMPORTS.get((language, framework, file_type), []))
            imports.extend(self._related_imports(related_files or [], is_python))
        implementation = '\n'.join(imports) + '\n\n' + body if imports else body

        tests = ''
        if file_type != 'test':
            subject = render(TEST_SUBJECTS.get(file_type, '{{CLASS_NAME}}'), values)
            tests = render(companion_test_template(ctx.testing_framework, language), dict(values, CLASS_NAME=subject))

        return GeneratedCodeResult(
            implementation=implementation,
            tests=tests,
            integration_notes=self._integration_notes(file_type, ctx),
            related_files_to_update=self._files_to_update(file_type, values, is_python),
            follows_patterns=follow_patterns and bool(ctx.patterns),
            architecture_compliance=self.compliance_scorer.score(implementation, ctx),
            style_consistency=self.style_scorer.score(implementation, ctx),
            recommendations=[
                'Add comprehensive error handling',
                'Include input validation',
                'Add logging for debugging',
                'Consider adding performance monitoring',
            ],
            language=language,
        )

    @staticmethod
    def _framework_for(language: str, file_type: str, ctx: CodebaseContext) -> Optional[str]:
        if language == 'typescript':
            # the TypeScript request-handling templates are written against express types
            return 'express'
        if file_type == 'route' and 'fastapi' in ctx.dependencies:
            return 'fastapi'
        if file_type == 'model' and 'pydantic' in ctx.dependencies:
            return 'pydantic'
        return None

    @staticmethod
    def _related_imports(related_files: List[str], is_python: bool) -> List[str]:
        lines = []
        for path in related_files:
            clean = posixpath.normpath(path.replace('\\', '/'))
            base = clean.rsplit('.', 1)[0] if '.' in posixpath.basename(clean) else clean
            if is_python:
                lines.append(f"import {base.replace('/', '.')}")
            else:
                alias = function_name(module_stem(clean), 'camelCase')
                lines.append(f"import * as {alias} from './{base}';")
        return lines

    @staticmethod
    def _integration_notes(file_type: str, ctx: CodebaseContext) -> List[str]:
        notes = [
            f'Follows {ctx.architecture} architectural pattern',
            f'Uses {ctx.testing_framework} for testing',
            f'Implements {ctx.conventions.structure.error_handling} error handling',
        ]
        if file_type == 'controller':
            notes.append('Remember to register route in main router')
            notes.append('Add appropriate middleware for authentication/validation')
        elif file_type == 'service':
            notes.append('Consider dependency injection for better testability')
            notes.append('Implement proper error handling and logging')
        elif file_type == 'middleware':
            notes.append('Register the middleware before the routes it should guard')
        elif file_type == 'model':
            notes.append('Keep validation rules next to the model definition')
        return notes

    @staticmethod
    def _files_to_update(file_type: str, values: Dict[str, str], is_python: bool) -> List[RelatedFileUpdate]:
        entry = _SIBLING_UPDATES.get(file_type)
        if entry is None:
            return []
        ts_path, py_path, reason, change = entry
        return [RelatedFileUpdate(
            path=py_path if is_python else ts_path,
            reason=reason,
            suggested_changes=change.format(cls=values['CLASS_NAME'], module=values['MODULE_NAME'],
                                            function=values['FUNCTION_NAME']),
        )]

    # --- recommendations ------------------------------------------------------

    def get_contextual_recommendations(self, context: Optional[CodebaseContext] = None) -> List[Recommendation]:
        ctx = context or self.get_context()
        logger.info("💡 Collecting contextual recommendations...")
        recommendations = [
            *self._pattern_recommendations(ctx),
            *self._memory_recommendations(),
            *self._architecture_recommendations(ctx),
            *self._refactoring_recommendations(),
        ]
        return sort_recommendations(recommendations)

    def _pattern_recommendations(self, ctx: CodebaseContext) -> List[Recommendation]:
        validation = self.pattern_detector.validate_patterns(generate_report=False)
        recs = []
        for compliance in validation.patterns:
            # patterns with zero compliance are simply not adopted
            if not 0 < compliance.compliance < LOW_COMPLIANCE:
                continue
            files = sorted({v.file for v in validation.violations if v.pattern == compliance.name and v.file})
            recs.append(Recommendation(
                type='pattern',
                priority='high' if compliance.compliance < 50 else 'medium',
                title=f'Improve {compliance.name} Compliance',
                description=f'{compliance.name} is {compliance.compliance}% compliant with {compliance.violations} violations',
                implementation='Address the reported violations for this pattern',
                benefits=['More consistent structure', 'Easier onboarding'],
                effort='high' if compliance.violations > 10 else 'medium',
                related_files=files[:10],
                source='pattern',
            ))
        if 'Service Layer Pattern' in ctx.patterns and 'Repository Pattern' not in ctx.patterns:
            recs.append(Recommendation(
                type='pattern',
                priority='medium',
                title='Implement Repository Pattern',
                description='Add repository layer to abstract data access logic',
                implementation='Create repository interfaces and implementations for data entities',
                benefits=['Better testability', 'Cleaner separation of concerns', 'Easier database migration'],
                effort='medium',
                source='pattern',
            ))
        return recs

    def _memory_recommendations(self) -> List[Recommendation]:
        return [
            Recommendation(
                type='historical',
                priority='medium',
                title=text,
                description=text,
                implementation='Review the related entries in codebase memory',
                benefits=['Builds on project history'],
                effort='low',
                source='memory',
            )
            for text in self.memory_store.get_contextual_recommendations()
        ]

    @staticmethod
    def _architecture_recommendations(ctx: CodebaseContext) -> List[Recommendation]:
        recs = []
        if ctx.architecture == 'Custom Architecture':
            recs.append(Recommendation(
                type='architecture',
                priority='medium',
                title='Improve Architecture Consistency',
                description='Consider adopting a more standardized architectural pattern',
                implementation='Refactor towards MVC, Service Layer, or Clean Architecture',
                benefits=['Better maintainability', 'Easier onboarding', 'Clearer code organization'],
                effort='high',
                source='architecture',
            ))
        if 'Testing Patterns' not in ctx.patterns:
            recs.append(Recommendation(
                type='testing',
                priority='high',
                title='Add Automated Tests',
                description='No test files were detected in the project',
                implementation=f'Set up {ctx.testing_framework} and cover the core modules first',
                benefits=['Safer refactoring', 'Regression protection'],
                effort='medium',
                source='architecture',
            ))
        return recs

    def _refactoring_recommendations(self) -> List[Recommendation]:
        suggestions = self.analyzer.suggest_refactoring(priority='high').high
        return [
            Recommendation(
                type='refactoring',
                priority=s.priority,
                title=f'Refactor {s.file}: {s.type}',
                description=s.description,
                implementation=s.impact,
                benefits=['Lower complexity'],
                effort=s.effort,
                related_files=[s.file],
                source='refactoring',
            )
            for s in suggestions[:MAX_REFACTORING_RECOMMENDATIONS]
        ]

    # --- single file ----------------------------------------------------------

    def analyze_code_context(self, file_path: str, context: Optional[CodebaseContext] = None) -> ContextAnalysis:
        ctx = context or self.get_context()
        related = self.analyzer.get_related_files(file_path, ['imports', 'exports', 'tests'])
        inventory = self.analyzer.loader.load_inventory(include_tests=True)
        sources = inventory.load([related.file])

        complexity = self.analyzer.strategies['complexity'].score(sources)
        maintainability = self.analyzer.strategies['maintainability'].score(sources)
        coverage = max((t.coverage for t in related.tests), default=0)

        suggestions = list(related.suggestions)
        if related.tests and coverage < 50:
            suggestions.append('Consider adding more comprehensive tests')
        if sources and not _DOC_RE.search(sources[0].text):
            docs = 'docstrings' if sources[0].extension == 'py' else 'JSDoc comments'
            suggestions.append(f'Add {docs} to public functions and classes')
        if complexity > 5:
            suggestions.append('Consider breaking down complex functions')

        return ContextAnalysis(
            file=related.file,
            architecture=ctx.architecture,
            patterns=list(ctx.patterns),
            complexity=complexity,
            maintainability=maintainability,
            test_coverage=coverage,
            dependencies=[r.path for r in related.imports],
            dependents=[r.path for r in related.dependents],
            suggestions=suggestions,
        )
