"""Dependency graph and dependency analyses.

Registry data (latest versions, sizes, advisories) comes from a bundled
snapshot; no network lookups are made.
"""

import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from core.ingestion.loader import CodebaseLoader
from core.ingestion.manifest import DependencyManifest, load_manifest, normalize_python_name
from core.ingestion.parser import CodeParser
from core.models import DependencyNode
from core.models.reports import (
    DependencyAlternative,
    DependencyAnalysisResult,
    DependencyIssue,
    DependencyOptimization,
    DependencyStats,
    DependencyWarning,
)

logger = logging.getLogger(__name__)

ANALYSIS_TYPES = ('unused', 'outdated', 'security', 'bundle-size', 'conflicts')

KNOWN_VULNERABILITIES = [
    {'package': 'lodash', 'below': '4.17.21', 'cve': 'CVE-2021-23337', 'severity': 7.2,
     'description': 'Command injection vulnerability'},
    {'package': 'minimist', 'below': '1.2.6', 'cve': 'CVE-2021-44906', 'severity': 9.8,
     'description': 'Prototype pollution'},
    {'package': 'axios', 'below': '0.21.1', 'cve': 'CVE-2020-28168', 'severity': 5.9,
     'description': 'Server-side request forgery through redirects'},
    {'package': 'moment', 'below': '2.29.4', 'cve': 'CVE-2022-31129', 'severity': 7.5,
     'description': 'Inefficient parsing algorithm (ReDoS)'},
    {'package': 'jsonwebtoken', 'below': '9.0.0', 'cve': 'CVE-2022-23529', 'severity': 7.6,
     'description': 'Insecure handling of secret or public key input'},
    {'package': 'requests', 'below': '2.31.0', 'cve': 'CVE-2023-32681', 'severity': 6.1,
     'description': 'Proxy-Authorization header leaked on redirect'},
    {'package': 'pyyaml', 'below': '5.4', 'cve': 'CVE-2020-14343', 'severity': 9.8,
     'description': 'Arbitrary code execution through full_load'},
    {'package': 'jinja2', 'below': '3.1.3', 'cve': 'CVE-2024-22195', 'severity': 5.4,
     'description': 'Cross-site scripting in the xmlattr filter'},
]

LATEST_VERSIONS = {
    'express': '4.21.2', 'axios': '1.7.9', 'lodash': '4.17.21', 'moment': '2.30.1', 'cors': '2.8.5',
    'helmet': '8.0.0', 'dotenv': '16.4.7', 'winston': '3.17.0', 'jest': '29.7.0', 'typescript': '5.7.2',
    'jsonwebtoken': '9.0.2', 'minimist': '1.2.8',
    'fastapi': '0.115.6', 'pydantic': '2.10.4', 'requests': '2.32.3', 'uvicorn': '0.34.0',
    'pytest': '8.3.4', 'pyyaml': '6.0.2', 'jinja2': '3.1.5', 'python-dotenv': '1.0.1',
}

PACKAGE_SIZES_KB = {'express': 209.0, 'axios': 13.3, 'lodash': 24.3, 'moment': 67.9}
DEFAULT_SIZE_KB = 5.0

HEAVY_PACKAGES = {
    'moment': ('67.9kB', 'date-fns'),
    'lodash': ('24.3kB', 'individual functions'),
}

ALTERNATIVES = {
    'moment': DependencyAlternative(
        current='moment',
        suggested='date-fns',
        reason='Smaller bundle size and better tree-shaking',
        benefits=['Reduced bundle size', 'Better performance', 'Modular imports'],
        migration_effort='medium',
    ),
    'lodash': DependencyAlternative(
        current='lodash',
        suggested='individual lodash functions',
        reason='Import only needed functions to reduce bundle size',
        benefits=['Smaller bundle size', 'Better tree-shaking'],
        migration_effort='low',
    ),
    'request': DependencyAlternative(
        current='request',
        suggested='axios',
        reason='request is deprecated and no longer maintained',
        benefits=['Maintained package', 'Promise-based API'],
        migration_effort='medium',
    ),
}

# distribution name -> import name where they differ
IMPORT_ALIASES = {
    'python-dotenv': 'dotenv',
    'pyyaml': 'yaml',
    'beautifulsoup4': 'bs4',
    'scikit-learn': 'sklearn',
    'pillow': 'PIL',
    'langchain-core': 'langchain_core',
}

# packages used through the toolchain rather than imports
TOOLING_PACKAGES = {
    'typescript', 'eslint', 'prettier', 'jest', 'ts-node', 'ts-jest', 'nodemon', 'vitest', 'mocha',
    'pytest', 'pytest-asyncio', 'pytest-cov', 'ruff', 'mypy', 'black', 'flake8', 'isort', 'uvicorn',
}

_VERSION_RE = re.compile(r'(\d+)(?:\.(\d+))?(?:\.(\d+))?')


def parse_version(spec: str) -> Optional[Tuple[int, int, int]]:
    """Base version of a specifier (`^4.17.0`, `>=2.0,<3`, `~=1.2`) as a tuple."""
    if not spec:
        return None
    m = _VERSION_RE.search(spec.split('||')[0])
    if not m:
        return None
    return tuple(int(part or 0) for part in m.groups())


def version_lt(current: str, other: str) -> bool:
    a, b = parse_version(current), parse_version(other)
    return a is not None and b is not None and a < b


def severity_to_risk(severity: float) -> str:
    if severity >= 9:
        return 'critical'
    if severity >= 7:
        return 'high'
    if severity >= 4:
        return 'medium'
    return 'low'


def format_size(kb: float) -> str:
    if kb >= 1024:
        return f"{kb / 1024:.1f}MB"
    return f"{round(kb, 1):g}kB"


class DependencyMapper:
    """Builds the dependency graph once from a manifest and runs analyses over it."""

    def __init__(self, project_root: str, manifest: Optional[DependencyManifest] = None,
                 include_extensions: Optional[List[str]] = None):
        self.project_root = project_root
        self.manifest = manifest if manifest is not None else load_manifest(project_root)
        self.loader = CodebaseLoader(project_root, include_extensions)
        self.dependency_graph: Dict[str, DependencyNode] = {}
        self._build_dependency_graph()

    def _build_dependency_graph(self) -> None:
        if self.manifest.is_empty:
            logger.warning("⚠️ No declared dependencies; dependency graph is empty")
        for name, version in self.manifest.declared().items():
            locked = self.manifest.locked.get(name)
            self.dependency_graph[name] = DependencyNode(
                name=name,
                version=version,
                type=self._dependency_type(name),
                dependencies=list(locked.dependencies) if locked else [],
                size=format_size(PACKAGE_SIZES_KB.get(name, DEFAULT_SIZE_KB)),
                license=(locked.license if locked and locked.license else 'unknown'),
                vulnerabilities=len(self._vulnerabilities_for(name)),
            )
        for name, node in self.dependency_graph.items():
            node.dependents = sorted(
                other for other, locked in self.manifest.locked.items() if name in locked.dependencies and other != name
            )
        logger.info("📦 Dependency graph built with %d nodes", len(self.dependency_graph))

    def _dependency_type(self, name: str) -> str:
        if name in self.manifest.production:
            return 'production'
        if name in self.manifest.development:
            return 'development'
        return 'peer'

    def _installed_version(self, name: str) -> str:
        locked = self.manifest.locked.get(name)
        if locked and locked.version:
            return locked.version
        node = self.dependency_graph.get(name)
        return node.version if node else self.manifest.declared().get(name, '')

    def _vulnerabilities_for(self, name: str) -> List[dict]:
        current = self._installed_version(name)
        return [v for v in KNOWN_VULNERABILITIES if v['package'] == name and version_lt(current, v['below'])]

    def _nodes(self, include_dev: bool = True) -> List[DependencyNode]:
        return [n for n in self.dependency_graph.values() if include_dev or n.type != 'development']

    # --- analyses ---------------------------------------------------------------

    def _used_packages(self) -> Set[str]:
        inventory = self.loader.load_inventory(include_tests=True)
        used: Set[str] = set()
        for source in inventory.load(inventory.code_files()):
            for ref in CodeParser.extract_imports(source.path, source.text):
                spec = ref.specifier
                if ref.is_relative or spec.startswith(('/', 'node:')):
                    continue
                if source.extension == 'py':
                    used.add(spec.split('.')[0].lower())
                else:
                    parts = spec.split('/')
                    used.add('/'.join(parts[:2]) if spec.startswith('@') else parts[0])
        return used

    def _is_used(self, name: str, used: Set[str]) -> bool:
        if name in used:
            return True
        if self.manifest.source != 'package.json':
            import_name = IMPORT_ALIASES.get(name, normalize_python_name(name).replace('-', '_'))
            if import_name.lower() in used:
                return True
        return any(re.search(rf'(?<![\w-]){re.escape(name)}(?![\w-])', script) for script in self.manifest.scripts.values())

    def find_unused_dependencies(self, include_dev: bool = True) -> List[str]:
        """Declared packages that no scanned source file imports."""
        logger.info("🔍 Scanning for unused dependencies...")
        used = self._used_packages()
        return [
            node.name for node in self._nodes(include_dev)
            if node.type != 'peer'
            and node.name not in TOOLING_PACKAGES
            and not node.name.startswith('@types/')
            and not self._is_used(node.name, used)
        ]

    def check_security_vulnerabilities(self, include_dev: bool = True) -> List[DependencyIssue]:
        logger.info("🔒 Checking for security vulnerabilities...")
        issues = []
        for node in self._nodes(include_dev):
            for vuln in self._vulnerabilities_for(node.name):
                issues.append(DependencyIssue(
                    package=node.name,
                    version=self._installed_version(node.name),
                    description=vuln['description'],
                    risk=severity_to_risk(vuln['severity']),
                    recommended_action=f"Update to {vuln['below']} or later",
                    cve=vuln['cve'],
                    severity=vuln['severity'],
                ))
        return issues

    def analyze_bundle_size(self, include_dev: bool = True) -> List[DependencyOptimization]:
        logger.info("📊 Analyzing bundle size impact...")
        present = {n.name for n in self._nodes(include_dev)}
        return [
            DependencyOptimization(
                package=name,
                current_size=size,
                suggestion=f"Replace with {alternative}",
                benefit=f"Reduce bundle size by ~{size}",
            )
            for name, (size, alternative) in HEAVY_PACKAGES.items()
            if name in present
        ]

    def detect_version_conflicts(self, include_dev: bool = True) -> List[DependencyWarning]:
        """Packages seen with more than one version across manifest sections and the lockfile."""
        logger.info("⚠️ Detecting version conflicts...")
        considered = {n.name for n in self._nodes(include_dev)}
        names = sorted(set(self.manifest.observed_versions) | set(self.manifest.locked_versions))
        conflicts = []
        for name in names:
            if name in self.dependency_graph and name not in considered:
                continue
            versions = self.manifest.locked_versions.get(name) or self.manifest.observed_versions.get(name) or set()
            if len(versions) > 1:
                listed = ', '.join(sorted(versions))
                conflicts.append(DependencyWarning(
                    package=name,
                    version=listed,
                    description=f"Multiple versions detected: {listed}",
                    impact='May cause runtime issues or increased bundle size',
                ))
        return conflicts

    def find_outdated_dependencies(self, include_dev: bool = True) -> List[Tuple[str, str, str]]:
        """(name, current, latest) for packages behind the bundled latest-version snapshot."""
        outdated = []
        for node in self._nodes(include_dev):
            latest = LATEST_VERSIONS.get(node.name)
            current = self._installed_version(node.name)
            if latest and version_lt(current, latest):
                outdated.append((node.name, current, latest))
        return outdated

    def suggest_alternatives(self, include_dev: bool = True) -> List[DependencyAlternative]:
        present = {n.name for n in self._nodes(include_dev)}
        return [alt for name, alt in ALTERNATIVES.items() if name in present]

    def analyze_dependencies(self, analysis_type: str = 'unused', include_dev_dependencies: bool = True,
                             suggest_alternatives: bool = True) -> DependencyAnalysisResult:
        """Run exactly one analysis and merge it into a single report."""
        logger.info("📦 Analyzing dependencies: %s", analysis_type)
        include_dev = include_dev_dependencies
        critical: List[DependencyIssue] = []
        warnings: List[DependencyWarning] = []
        optimizations: List[DependencyOptimization] = []

        if analysis_type == 'unused':
            for name in self.find_unused_dependencies(include_dev):
                warnings.append(DependencyWarning(
                    package=name,
                    version=self.dependency_graph[name].version,
                    description='Package appears to be unused',
                    impact='Unnecessary bundle size and maintenance overhead',
                ))
        elif analysis_type == 'security':
            critical.extend(self.check_security_vulnerabilities(include_dev))
        elif analysis_type == 'bundle-size':
            optimizations.extend(self.analyze_bundle_size(include_dev))
        elif analysis_type == 'conflicts':
            warnings.extend(self.detect_version_conflicts(include_dev))
        elif analysis_type == 'outdated':
            for name, current, latest in self.find_outdated_dependencies(include_dev):
                warnings.append(DependencyWarning(
                    package=name,
                    version=current,
                    description=f"Outdated version (latest: {latest})",
                    impact='Missing security fixes and features',
                ))
        else:
            raise ValueError(f"Unknown analysis type: {analysis_type}")

        nodes = self._nodes(include_dev)
        return DependencyAnalysisResult(
            analysis_type=analysis_type,
            total_dependencies=len(nodes),
            issues_found=len(critical) + len(warnings),
            potential_savings=f"~{len(optimizations) * 20}kB" if optimizations else '0kB',
            critical=critical,
            warnings=warnings,
            optimizations=optimizations,
            alternatives=self.suggest_alternatives(include_dev) if suggest_alternatives else [],
            dependency_graph=nodes,
            recommendations=self._recommendations(critical, warnings, optimizations),
        )

    @staticmethod
    def _recommendations(critical, warnings, optimizations) -> List[str]:
        recs = []
        if critical:
            recs.append('Address critical security vulnerabilities immediately')
        if len(warnings) > 5:
            recs.append('Consider regular dependency maintenance schedule')
        if optimizations:
            recs.append('Implement bundle size optimizations for better performance')
        recs.append('Set up automated dependency scanning in CI/CD pipeline')
        recs.append('Consider using dependency update tools like Renovate or Dependabot')
        return recs

    def get_dependency_stats(self) -> DependencyStats:
        nodes = list(self.dependency_graph.values())
        outdated = {name for name, _, _ in self.find_outdated_dependencies()}
        return DependencyStats(
            total=len(nodes),
            production=sum(1 for n in nodes if n.type == 'production'),
            development=sum(1 for n in nodes if n.type == 'development'),
            peer=sum(1 for n in nodes if n.type == 'peer'),
            with_vulnerabilities=sum(1 for n in nodes if n.vulnerabilities > 0),
            outdated=len(outdated),
            total_size=format_size(sum(PACKAGE_SIZES_KB.get(n.name, DEFAULT_SIZE_KB) for n in nodes)),
        )
