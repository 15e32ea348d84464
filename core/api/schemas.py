"""
Parameter schemas for the tool catalog.

Fields accept both camelCase (as tool clients send them) and snake_case
names. Unknown fields are rejected.
"""
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Priority = Literal['low', 'medium', 'high', 'critical']


class ToolParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')


class AnalyzeCodebaseParams(ToolParams):
    depth: Literal['shallow', 'deep', 'comprehensive'] = Field('deep', description="Analysis depth level")
    include_tests: bool = Field(True, description="Include test files in analysis")
    include_node_modules: bool = Field(False, description="Include node_modules in analysis")
    focus_areas: Optional[List[Literal['structure', 'patterns', 'dependencies', 'performance', 'security']]] = Field(
        None, description="Specific areas to focus analysis on"
    )


class GetRelatedFilesParams(ToolParams):
    file_path: str = Field(..., description="Path to the file to find related files for")
    relationship_types: List[Literal['imports', 'exports', 'tests', 'similar', 'dependent']] = Field(
        default_factory=lambda: ['imports', 'exports', 'tests'],
        description="Types of relationships to consider",
    )
    max_results: int = Field(10, ge=1, le=50, description="Maximum number of related files to return")


class SuggestRefactoringParams(ToolParams):
    file_path: Optional[str] = Field(
        None, description="Specific file to analyze for refactoring (if not provided, analyzes entire codebase)"
    )
    refactoring_types: Optional[List[Literal[
        'extract-function', 'extract-class', 'remove-duplication',
        'optimize-imports', 'improve-naming', 'reduce-complexity',
    ]]] = Field(None, description="Types of refactoring to suggest")
    priority: Priority = Field('medium', description="Minimum priority level for suggestions")


class ValidatePatternsParams(ToolParams):
    patterns: Optional[List[Literal[
        'mvc', 'repository', 'service-layer', 'dto', 'api-client', 'error-handling', 'testing',
    ]]] = Field(None, description="Specific patterns to validate")
    strict_mode: bool = Field(False, description="Enable strict pattern validation")
    generate_report: bool = Field(True, description="Generate detailed validation report")


class GenerateCodeParams(ToolParams):
    intent: str = Field(..., min_length=1, description="Description of what code needs to be generated")
    file_type: Literal['controller', 'service', 'model', 'test', 'middleware', 'route', 'utility'] = Field(
        ..., description="Type of file to generate"
    )
    related_files: Optional[List[str]] = Field(None, description="Related files to consider for context")
    follow_patterns: bool = Field(True, description="Follow existing codebase patterns")


class TrackTechnicalDebtParams(ToolParams):
    category: Optional[Literal[
        'code-smells', 'security', 'performance', 'maintainability', 'documentation', 'testing',
    ]] = Field(None, description="Specific category of technical debt to track")
    severity: Optional[Priority] = Field(None, description="Minimum severity level to report")
    include_metrics: bool = Field(True, description="Include quantitative metrics in the report")


class OptimizeDependenciesParams(ToolParams):
    analysis_type: Literal['unused', 'outdated', 'security', 'bundle-size', 'conflicts'] = Field(
        'unused', description="Type of dependency analysis to perform"
    )
    include_dev_dependencies: bool = Field(True, description="Include dev dependencies in analysis")
    suggest_alternatives: bool = Field(True, description="Suggest alternative packages when applicable")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: Type[ToolParams]
    memory_type: str


TOOLS: Dict[str, ToolSpec] = {spec.name: spec for spec in (
    ToolSpec('analyze_codebase_structure',
             'Perform comprehensive analysis of codebase structure, patterns, and architecture',
             AnalyzeCodebaseParams, 'analysis'),
    ToolSpec('get_related_files',
             'Find files related to a given file through imports, exports, tests, or similarity',
             GetRelatedFilesParams, 'relationship'),
    ToolSpec('suggest_refactoring_opportunities',
             'Identify and suggest refactoring opportunities to improve code quality',
             SuggestRefactoringParams, 'refactoring'),
    ToolSpec('validate_coding_patterns',
             'Validate adherence to established coding patterns and architectural principles',
             ValidatePatternsParams, 'pattern'),
    ToolSpec('generate_context_aware_code',
             'Generate code that follows existing patterns and integrates seamlessly with the codebase',
             GenerateCodeParams, 'generation'),
    ToolSpec('track_technical_debt',
             'Identify, categorize, and track technical debt across the codebase',
             TrackTechnicalDebtParams, 'debt'),
    ToolSpec('optimize_dependencies',
             'Analyze and optimize project dependencies for security, performance, and maintainability',
             OptimizeDependenciesParams, 'dependency'),
)}
