"""Result records returned by the engine components.

Every record is a plain dataclass; `core.utils.response_formatter.format_response`
turns any of them into JSON-ready dicts for the facade, server and tools.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.models.models import DependencyNode


# --- Codebase analysis -------------------------------------------------------


@dataclass
class DirectoryInfo:
    path: str
    file_count: int
    purpose: str


@dataclass
class DependencyInfo:
    name: str
    version: str
    usage: str


@dataclass
class AnalysisRecommendation:
    priority: str
    description: str


@dataclass
class CodebaseAnalysis:
    total_files: int
    total_lines_of_code: int
    languages: List[str]
    architecture_pattern: str
    directory_structure: List[DirectoryInfo]
    key_dependencies: List[DependencyInfo]
    complexity_score: float
    maintainability_index: float
    test_coverage: float
    technical_debt_hours: float
    insights: List[str]
    recommendations: List[AnalysisRecommendation]
    depth: str = "deep"
    analysis_time: float = 0.0


@dataclass
class RelatedFile:
    path: str
    relationship: str


@dataclass
class TestFile:
    path: str
    coverage: int


@dataclass
class SimilarFile:
    path: str
    similarity: int


@dataclass
class RelatedFilesResult:
    file: str
    imports: List[RelatedFile]
    dependents: List[RelatedFile]
    tests: List[TestFile]
    similar: List[SimilarFile]
    suggestions: List[str]


@dataclass
class RefactoringSuggestion:
    type: str
    file: str
    description: str
    impact: str
    effort: str
    priority: str = "medium"
    line: int = 0


@dataclass
class RefactoringSuggestions:
    high: List[RefactoringSuggestion]
    medium: List[RefactoringSuggestion]
    code_quality: List[str]
    implementation_steps: List[str]


@dataclass
class DebtCategory:
    name: str
    hours: float
    percentage: int


@dataclass
class DebtIssue:
    file: str
    description: str
    impact: str
    effort: str
    category: str
    severity: str
    hours: float
    line: int = 0


@dataclass
class DebtRecommendation:
    action: str
    impact: str


@dataclass
class TechnicalDebtAnalysis:
    overall_score: int
    total_hours: float
    monthly_interest: float
    payback_priority: str
    categories: List[DebtCategory]
    critical: List[DebtIssue]
    high: List[DebtIssue]
    recommendations: List[DebtRecommendation]


# --- Patterns and style ------------------------------------------------------


@dataclass
class PatternViolation:
    pattern: str
    file: str
    line: int
    description: str
    severity: str
    suggested_fix: str


@dataclass
class PatternCompliance:
    key: str
    name: str
    compliance: int
    violations: int
    description: str


@dataclass
class PatternValidationResult:
    overall_score: int
    patterns: List[PatternCompliance]
    violations: List[PatternViolation]
    best_practices: List[str]
    recommendations: List[str]
    rule_results: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DetectedPattern:
    key: str
    name: str
    confidence: float
    files: List[str]
    description: str


@dataclass
class StyleMetric:
    consistency: int
    violations: int
    recommendation: str


@dataclass
class StyleViolation:
    file: str
    line: int
    type: str
    description: str
    severity: str = "low"


@dataclass
class StyleAnalysis:
    overall_consistency: int
    metrics: Dict[str, StyleMetric]
    violations: List[StyleViolation]
    recommendations: List[str]


# --- Dependencies ------------------------------------------------------------


@dataclass
class DependencyIssue:
    package: str
    version: str
    description: str
    risk: str
    recommended_action: str
    cve: Optional[str] = None
    severity: Optional[float] = None


@dataclass
class DependencyWarning:
    package: str
    version: str
    description: str
    impact: str


@dataclass
class DependencyOptimization:
    package: str
    current_size: str
    suggestion: str
    benefit: str
    effort: str = "medium"


@dataclass
class DependencyAlternative:
    current: str
    suggested: str
    reason: str
    benefits: List[str]
    migration_effort: str


@dataclass
class DependencyAnalysisResult:
    analysis_type: str
    total_dependencies: int
    issues_found: int
    potential_savings: str
    critical: List[DependencyIssue]
    warnings: List[DependencyWarning]
    optimizations: List[DependencyOptimization]
    alternatives: List[DependencyAlternative]
    dependency_graph: List[DependencyNode]
    recommendations: List[str]


@dataclass
class DependencyStats:
    total: int
    production: int
    development: int
    peer: int
    with_vulnerabilities: int
    outdated: int
    total_size: str


# --- Memory ------------------------------------------------------------------


@dataclass
class MemoryStats:
    total_entries: int
    entries_by_type: Dict[str, int]
    oldest_entry: Optional[datetime]
    newest_entry: Optional[datetime]
    average_analysis_time: float
    trends_detected: List[str]


@dataclass
class EvolutionChange:
    date: datetime
    type: str  # improvement | regression | addition | removal
    metric: str
    description: str
    impact: str
    files: List[str] = field(default_factory=list)


@dataclass
class EvolutionTrend:
    metric: str
    direction: str  # improving | declining | stable
    confidence: float
    description: str


@dataclass
class CodebaseEvolution:
    timespan: str
    since: datetime
    analyses: int
    changes: List[EvolutionChange]
    trends: List[EvolutionTrend]
    recommendations: List[str]


# --- Context engine ----------------------------------------------------------


@dataclass
class RelatedFileUpdate:
    path: str
    reason: str
    suggested_changes: str


@dataclass
class GeneratedCodeResult:
    implementation: str
    tests: str
    integration_notes: List[str]
    related_files_to_update: List[RelatedFileUpdate]
    follows_patterns: bool
    architecture_compliance: int
    style_consistency: int
    recommendations: List[str]
    language: str = "typescript"


@dataclass
class ContextAnalysis:
    file: str
    architecture: str
    patterns: List[str]
    complexity: float
    maintainability: float
    test_coverage: int
    dependencies: List[str]
    dependents: List[str]
    suggestions: List[str]
