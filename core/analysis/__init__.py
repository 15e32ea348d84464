"""Analysis engines: structure, patterns, dependencies and scoring."""
from .analyzer import CodebaseAnalyzer, detect_architecture
from .dependencies import DependencyMapper
from .patterns import PATTERN_CATALOG, PatternDefinition, PatternDetector
from .rules import RuleResult, compliance_score
from .scoring import ScoringStrategy

__all__ = [
    "CodebaseAnalyzer",
    "detect_architecture",
    "DependencyMapper",
    "PATTERN_CATALOG",
    "PatternDefinition",
    "PatternDetector",
    "RuleResult",
    "compliance_score",
    "ScoringStrategy",
]
