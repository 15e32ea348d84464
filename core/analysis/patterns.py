"""Architectural pattern catalog, compliance validation and style analysis."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from core.analysis.rules import (
    DATA_ACCESS_RE,
    DIRECTORY_RULE_WEIGHT,
    ENV_ACCESS_RE,
    SIGNATURE_RULE_WEIGHT,
    VALIDATION_RE,
    FileRule,
    RuleResult,
    classes_without_contract,
    compliance_score,
    dto_behaviour,
    empty_catch_blocks,
    error_middleware_missing,
    evaluate_rules,
    focused_tests,
    handlers_bypassing_services,
    importing,
    matches_glob,
    missing_error_class,
    per_file,
    per_line,
    services_without_logic,
    tests_without_assertions,
    unclear_dto_names,
    unhandled_network_calls,
    untyped_client_code,
    vague_test_names,
)
from core.analysis.scoring import DEFAULT_STYLE_DIMENSIONS
from core.ingestion.loader import CodebaseLoader, FileInventory
from core.models.reports import (
    DetectedPattern,
    PatternCompliance,
    PatternValidationResult,
    PatternViolation,
    StyleAnalysis,
)

logger = logging.getLogger(__name__)

MAX_STYLE_VIOLATIONS = 50

_CONTROLLERS = ['*.controller.*', 'controllers/*', '*_controller.py']
_ROUTES = ['routes/*', '*.routes.*', '*.route.*', 'routers/*', 'api/routes/*']
_MODELS = ['*.model.*', 'models/*', '*_model.py']
_VIEWS = ['*.view.*', 'views/*']
_SERVICES = ['*.service.*', 'services/*', '*_service.py']
_REPOSITORIES = ['*.repository.*', 'repositories/*', '*_repository.py']
_DTOS = ['*.dto.*', 'dtos/*', 'schemas/*', '*_dto.py', '*_schema.py']
_API_CLIENTS = ['*.api.*', 'apis/*', 'clients/*', '*_client.py', '*.client.*']
_ERRORS = ['*error*', '*exception*']
_MIDDLEWARE = ['middleware/*', 'middlewares/*', '*.middleware.*']
_TESTS = ['*.test.*', '*.spec.*', 'test_*.py', '*_test.py', 'tests/*', '__tests__/*']
_ALL = ['*']


@dataclass
class PatternDefinition:
    """One catalog entry.

    `required_directories` holds alternative groups: a group is satisfied
    when any of its directory names exists in the project.
    """

    key: str
    name: str
    description: str
    required_directories: List[Tuple[str, ...]]
    file_patterns: List[str]
    rules: List[str]
    file_rules: List[FileRule] = field(default_factory=list)


PATTERN_CATALOG: Dict[str, PatternDefinition] = {
    'mvc': PatternDefinition(
        key='mvc',
        name='MVC (Model-View-Controller)',
        description='Separation of concerns with models, views, and controllers',
        required_directories=[('models',), ('views', 'templates'), ('controllers',)],
        file_patterns=['*.model.ts', '*.controller.ts', '*.view.ts', 'models/*.py', 'views/*.py', 'controllers/*.py'],
        rules=[
            'Controllers should not contain business logic',
            'Models should be pure data structures',
            'Views should not directly access models',
        ],
        file_rules=[
            FileRule('Controllers should not contain business logic', _CONTROLLERS,
                     per_line(DATA_ACCESS_RE, 'controller queries the data store directly'),
                     'medium', 'Move data access and business rules into a service or model'),
            FileRule('Models should be pure data structures', _MODELS,
                     importing(['axios', 'requests', 'httpx', 'express', 'fastapi', 'flask', 'fetch'], 'model depends on transport code'),
                     'medium', 'Keep models free of HTTP and framework imports'),
            FileRule('Views should not directly access models', _VIEWS,
                     importing(['models', 'model'], 'view imports a model'),
                     'medium', 'Pass data to views through the controller'),
        ],
    ),
    'service-layer': PatternDefinition(
        key='service-layer',
        name='Service Layer',
        description='Business logic encapsulated in service classes',
        required_directories=[('services',)],
        file_patterns=['*.service.ts', '*.service.js', 'services/*.py', '*_service.py'],
        rules=[
            'Services should contain business logic',
            'Controllers should delegate to services',
            'Services should be testable in isolation',
        ],
        file_rules=[
            FileRule('Services should contain business logic', _SERVICES,
                     per_file(services_without_logic, 'service declares no functions'),
                     'low', 'Move the business rules for this domain into the service'),
            FileRule('Controllers should delegate to services', _CONTROLLERS + _ROUTES,
                     handlers_bypassing_services,
                     'medium', 'Call a service instead of touching the data store from the handler'),
            FileRule('Services should be testable in isolation', _SERVICES,
                     per_line(ENV_ACCESS_RE, 'service reads configuration from the environment'),
                     'low', 'Inject configuration through the constructor', strict_only=True),
        ],
    ),
    'repository': PatternDefinition(
        key='repository',
        name='Repository Pattern',
        description='Data access abstraction layer',
        required_directories=[('repositories',)],
        file_patterns=['*.repository.ts', 'repositories/*.py', '*_repository.py'],
        rules=[
            'Repositories should abstract data access',
            'Business logic should not be in repositories',
            'Repositories should implement interfaces',
        ],
        file_rules=[
            FileRule('Repositories should abstract data access', _REPOSITORIES,
                     importing(['express', 'fastapi', 'flask', 'request', 'response'], 'repository depends on the HTTP layer'),
                     'medium', 'Return domain objects and keep request handling in controllers'),
            FileRule('Business logic should not be in repositories', _REPOSITORIES,
                     importing(['services', 'service'], 'repository calls into the service layer'),
                     'high', 'Invert the dependency so services call repositories'),
            FileRule('Repositories should implement interfaces', _REPOSITORIES,
                     classes_without_contract,
                     'low', 'Declare an interface or abstract base for the repository', strict_only=True),
        ],
    ),
    'dto': PatternDefinition(
        key='dto',
        name='Data Transfer Object',
        description='Objects for transferring data between layers',
        required_directories=[('dtos', 'models', 'schemas')],
        file_patterns=['*.dto.ts', '*.model.ts', '*_dto.py', 'schemas/*.py'],
        rules=[
            'DTOs should be simple data containers',
            'DTOs should have clear naming',
            'DTOs should be validated',
        ],
        file_rules=[
            FileRule('DTOs should be simple data containers', _DTOS,
                     dto_behaviour, 'medium', 'Move I/O out of the transfer object'),
            FileRule('DTOs should have clear naming', _DTOS,
                     unclear_dto_names, 'low', 'Suffix transfer objects with Dto, Schema, Request or Response'),
            FileRule('DTOs should be validated', _DTOS,
                     per_file(lambda f: not VALIDATION_RE.search(f.text), 'no validation declared'),
                     'medium', 'Validate DTO fields with a schema library', strict_only=True),
        ],
    ),
    'api-client': PatternDefinition(
        key='api-client',
        name='API Client Pattern',
        description='Structured API client implementation',
        required_directories=[('apis', 'clients')],
        file_patterns=['*.api.ts', '*/index.ts', '*_client.py', 'clients/*.py'],
        rules=[
            'API clients should be generated from specs',
            'API clients should handle errors consistently',
            'API clients should be typed',
        ],
        file_rules=[
            FileRule('API clients should handle errors consistently', _API_CLIENTS,
                     unhandled_network_calls, 'high', 'Wrap network calls and map failures to client errors'),
            FileRule('API clients should be typed', _API_CLIENTS,
                     untyped_client_code, 'low', 'Add type annotations to the client surface', strict_only=True),
        ],
    ),
    'error-handling': PatternDefinition(
        key='error-handling',
        name='Error Handling',
        description='Consistent error handling throughout the application',
        required_directories=[('middleware', 'middlewares')],
        file_patterns=['*error*.ts', '*exception*.ts', '*error*.py', '*exception*.py'],
        rules=[
            'Errors should be handled consistently',
            'Custom error types should be used',
            'Error middleware should be implemented',
        ],
        file_rules=[
            FileRule('Errors should be handled consistently', _ALL,
                     empty_catch_blocks, 'high', 'Log or re-raise the error instead of ignoring it'),
            FileRule('Custom error types should be used', _ERRORS,
                     per_file(missing_error_class, 'no custom error class declared'),
                     'medium', 'Declare error classes that extend Error/Exception'),
            FileRule('Error middleware should be implemented', _MIDDLEWARE,
                     error_middleware_missing, 'medium', 'Add a central error-handling middleware'),
        ],
    ),
    'testing': PatternDefinition(
        key='testing',
        name='Testing Patterns',
        description='Comprehensive testing strategy',
        required_directories=[('tests', '__tests__', 'test')],
        file_patterns=['*.test.ts', '*.spec.ts', '*.test.js', 'test_*.py', '*_test.py'],
        rules=[
            'Tests should follow AAA pattern',
            'Tests should be isolated',
            'Tests should have descriptive names',
        ],
        file_rules=[
            FileRule('Tests should follow AAA pattern', _TESTS,
                     per_file(tests_without_assertions, 'test file has no assertions'),
                     'medium', 'Arrange, act, then assert on the outcome', strict_only=True),
            FileRule('Tests should be isolated', _TESTS,
                     focused_tests, 'medium', 'Remove .only/fit so the whole suite runs'),
            FileRule('Tests should have descriptive names', _TESTS,
                     vague_test_names, 'low', 'Describe the behaviour under test in the name'),
        ],
    ),
}


class PatternDetector:
    """Check a project tree against the pattern catalog."""

    def __init__(self, project_root: str, include_extensions: Optional[List[str]] = None,
                 style_dimensions: Optional[Sequence] = None):
        self.project_root = project_root
        self.loader = CodebaseLoader(project_root, include_extensions)
        self.style_dimensions = [d() for d in (style_dimensions or DEFAULT_STYLE_DIMENSIONS)]

    def _inventory(self) -> FileInventory:
        return self.loader.load_inventory(include_tests=True)

    def check_pattern(self, pattern: PatternDefinition, inventory: FileInventory, strict_mode: bool = False) -> List[RuleResult]:
        """Run the rule pipeline for one pattern."""
        results: List[RuleResult] = []
        for group in pattern.required_directories:
            present = any(inventory.has_directory(d) for d in group)
            results.append(RuleResult(
                rule=f"Required directory '{group[0]}' is missing" if not present else f"Directory '{group[0]}' exists",
                passed=present,
                weight=DIRECTORY_RULE_WEIGHT,
                pattern=pattern.name,
                file=f"src/{group[0]}",
                severity='high',
                fix=f"Create directory 'src/{group[0]}'",
            ))

        matched = [f for f in inventory.files if any(matches_glob(f, p) for p in pattern.file_patterns)]
        results.append(RuleResult(
            rule=f"No files matching pattern found: {', '.join(pattern.file_patterns)}" if not matched else 'Files matching pattern found',
            passed=bool(matched),
            weight=SIGNATURE_RULE_WEIGHT,
            pattern=pattern.name,
            file='src/',
            severity='medium',
            fix=f"Create files following the pattern: {pattern.file_patterns[0]}",
        ))

        sources = inventory.load(inventory.code_files())
        results.extend(evaluate_rules(pattern.name, pattern.file_rules, sources, strict_mode))
        return results

    def validate_patterns(self, patterns: Optional[List[str]] = None, strict_mode: bool = False,
                          generate_report: bool = True) -> PatternValidationResult:
        logger.info("✅ Validating patterns: %s", ', '.join(patterns) if patterns else 'all')
        inventory = self._inventory()
        keys = patterns or list(PATTERN_CATALOG.keys())

        compliances: List[PatternCompliance] = []
        violations: List[PatternViolation] = []
        all_results: List[RuleResult] = []
        for key in keys:
            pattern = PATTERN_CATALOG.get(key)
            if pattern is None:
                logger.warning("⚠️ Skipping unknown pattern '%s'", key)
                continue
            results = self.check_pattern(pattern, inventory, strict_mode)
            failed = [r for r in results if not r.passed]
            compliances.append(PatternCompliance(
                key=key,
                name=pattern.name,
                compliance=compliance_score(results),
                violations=len(failed),
                description=pattern.description,
            ))
            violations.extend(
                PatternViolation(r.pattern, r.file, r.line, r.rule, r.severity, r.fix) for r in failed
            )
            all_results.extend(results)

        overall = round(sum(c.compliance for c in compliances) / len(compliances)) if compliances else 0
        return PatternValidationResult(
            overall_score=overall,
            patterns=compliances,
            violations=violations,
            best_practices=self.detect_best_practices(inventory),
            recommendations=self._recommendations(compliances, violations),
            rule_results=[asdict(r) for r in all_results] if generate_report else [],
        )

    @staticmethod
    def _recommendations(compliances: List[PatternCompliance], violations: List[PatternViolation]) -> List[str]:
        recs = []
        if any(v.severity == 'critical' for v in violations):
            recs.append('Address critical pattern violations immediately')
        low = [c.name for c in compliances if c.compliance < 70]
        if low:
            recs.append(f"Improve compliance for: {', '.join(low)}")
        recs.append('Consider implementing automated pattern validation in CI/CD')
        recs.append('Document architectural decisions and patterns')
        return recs

    def detect_best_practices(self, inventory: FileInventory) -> List[str]:
        sources = inventory.load(inventory.code_files())
        practices = []
        ts_files = [s for s in sources if s.extension in ('ts', 'tsx')]
        if ts_files and any('interface ' in s.text for s in ts_files):
            practices.append('Consistent use of TypeScript interfaces')
        py_files = [s for s in sources if s.extension == 'py']
        if py_files and sum(1 for s in py_files if '->' in s.text) * 2 >= len(py_files):
            practices.append('Type hints used across Python modules')
        middleware = PATTERN_CATALOG['error-handling'].file_rules[2].select(sources)
        if middleware and not error_middleware_missing(middleware):
            practices.append('Proper error handling middleware implementation')
        known = {'src', 'routes', 'services', 'models', 'middleware', 'utils', 'types', 'apis', 'tests', 'controllers'}
        if len(known & inventory.directory_names()) >= 3:
            practices.append('Well-structured directory organization')
        if inventory.has_directory('services') and not handlers_bypassing_services(
                [s for s in sources if any(matches_glob(s.path, g) for g in _ROUTES + _CONTROLLERS)]):
            practices.append('Separation of concerns in service layer')
        if inventory.test_files():
            practices.append('Automated tests live alongside the code')
        return practices

    def detect_patterns(self) -> List[DetectedPattern]:
        """Signature-only detection with a fixed confidence per pattern."""
        logger.info("🔍 Auto-detecting patterns in codebase...")
        inventory = self._inventory()
        has = inventory.has_directory
        detected: List[DetectedPattern] = []

        def dir_paths(*names: str) -> List[str]:
            return sorted(d for d in inventory.directories if d.rsplit('/', 1)[-1] in names)

        def matching(globs: List[str]) -> List[str]:
            return [f for f in inventory.files if any(matches_glob(f, g) for g in globs)]

        if has('controllers') and has('models'):
            views = has('views')
            detected.append(DetectedPattern('mvc', 'MVC Pattern', 0.9 if views else 0.7,
                                            dir_paths('controllers', 'models', 'views'),
                                            'Model-View-Controller architectural pattern detected'))
        if has('services'):
            detected.append(DetectedPattern('service-layer', 'Service Layer Pattern', 0.8, matching(_SERVICES),
                                            'Service layer for business logic encapsulation'))
        if has('repositories'):
            detected.append(DetectedPattern('repository', 'Repository Pattern', 0.8, dir_paths('repositories'),
                                            'Repository pattern for data access abstraction'))
        dto_files = [f for f in inventory.code_files() if '.dto.' in f or '/models/' in f or f.startswith('models/') or matches_glob(f, '*_dto.py')]
        if dto_files:
            detected.append(DetectedPattern('dto', 'DTO Pattern', 0.7, dto_files,
                                            'Data Transfer Objects for structured data exchange'))
        if has('middleware'):
            detected.append(DetectedPattern('middleware', 'Middleware Pattern', 0.9, dir_paths('middleware'),
                                            'Middleware pattern for request processing'))
        client_files = matching(_API_CLIENTS)
        if has('apis') or client_files:
            detected.append(DetectedPattern('api-client', 'API Client Pattern', 0.8, client_files or dir_paths('apis'),
                                            'Dedicated clients wrap external APIs'))
        tests = inventory.test_files()
        if tests:
            detected.append(DetectedPattern('testing', 'Testing Patterns', 0.85, tests,
                                            'Automated test suite alongside the code'))
        return detected

    def analyze_style_consistency(self) -> StyleAnalysis:
        logger.info("🎨 Analyzing code style consistency...")
        inventory = self._inventory()
        sources = inventory.load(inventory.code_files())
        metrics = {}
        violations = []
        for dimension in self.style_dimensions:
            metric, found = dimension.evaluate(sources)
            metrics[dimension.name] = metric
            violations.extend(found)
        overall = round(sum(m.consistency for m in metrics.values()) / len(metrics)) if metrics else 100
        return StyleAnalysis(
            overall_consistency=overall,
            metrics=metrics,
            violations=violations[:MAX_STYLE_VIOLATIONS],
            recommendations=[m.recommendation for m in metrics.values()],
        )
