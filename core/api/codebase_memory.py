"""
Core API for the Codebase Memory system.

This is the interface-agnostic entry point used by the CLI, the HTTP server
and the agent tools.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from core.analysis import CodebaseAnalyzer, DependencyMapper, PatternDetector
from core.api.schemas import (
    TOOLS,
    AnalyzeCodebaseParams,
    GenerateCodeParams,
    GetRelatedFilesParams,
    OptimizeDependenciesParams,
    SuggestRefactoringParams,
    ToolParams,
    TrackTechnicalDebtParams,
    ValidatePatternsParams,
)
from core.config import Settings
from core.context import ContextEngine
from core.errors import ToolNotFoundError, ToolValidationError
from core.memory import MemoryStore
from core.models import CodebaseContext, MemoryEntry
from core.utils.response_formatter import format_response

logger = logging.getLogger(__name__)

# handler result plus the metadata recorded with it
HandlerResult = Tuple[Any, Dict[str, Any]]


class CodebaseMemory:
    """
    Tool-dispatch facade over the analysis engines and the memory store.

    Every operation in the tool catalog is reachable through `call_tool`,
    which validates the arguments, runs the operation and records the
    result in memory. Calls are serialized: only one runs at a time.

    Usage:
        memory = CodebaseMemory.from_settings(Settings.from_env())
        report = await memory.call_tool("analyze_codebase_structure", {"depth": "shallow"})
        stats = memory.memory_stats()
    """

    def __init__(
        self,
        project_root: str,
        memory_dir: str,
        include_extensions: Optional[List[str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Wire the engines for one project.

        Args:
            project_root: Directory of the project to analyze
            memory_dir: Directory holding the persisted memory artifacts
            include_extensions: File extensions to scan (e.g. ['py', 'ts'])
            clock: Optional time source for memory timestamps
        """
        self.project_root = project_root
        self.memory_dir = memory_dir
        self.analyzer = CodebaseAnalyzer(project_root, include_extensions)
        self.pattern_detector = PatternDetector(project_root, include_extensions)
        self.dependency_mapper = DependencyMapper(project_root, self.analyzer.manifest, include_extensions)
        self.memory_store = MemoryStore(memory_dir, clock=clock)
        self.context_engine = ContextEngine(self.analyzer, self.memory_store, self.pattern_detector)
        self._lock = asyncio.Lock()
        self._handlers: Dict[str, Callable[[Any], HandlerResult]] = {
            'analyze_codebase_structure': self._analyze_codebase,
            'get_related_files': self._get_related_files,
            'suggest_refactoring_opportunities': self._suggest_refactoring,
            'validate_coding_patterns': self._validate_patterns,
            'generate_context_aware_code': self._generate_code,
            'track_technical_debt': self._track_technical_debt,
            'optimize_dependencies': self._optimize_dependencies,
        }
        logger.info("🧠 Codebase memory ready for %s", project_root)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CodebaseMemory":
        return cls(settings.project_root, settings.memory_dir, settings.include_extensions)

    # --- tool catalog ---------------------------------------------------------

    def list_tools(self) -> List[Dict[str, Any]]:
        """Name, description and JSON schema of every operation."""
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "inputSchema": spec.params.model_json_schema(by_alias=True),
            }
            for spec in TOOLS.values()
        ]

    @staticmethod
    def validate_arguments(name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolParams:
        """
        Parse tool arguments against the operation's schema.

        Raises:
            ToolNotFoundError: If no operation is registered under `name`
            ToolValidationError: If any field is missing, unknown or invalid
        """
        spec = TOOLS.get(name)
        if spec is None:
            raise ToolNotFoundError(name)
        try:
            return spec.params.model_validate(arguments or {})
        except ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(part) for part in err["loc"]) or "(root)",
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            raise ToolValidationError(name, errors) from e

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run one operation from the tool catalog.

        Args:
            name: Operation name (see `list_tools`)
            arguments: Parameters in camelCase or snake_case

        Returns:
            The operation's report as a JSON-ready dict

        Raises:
            ToolNotFoundError: If the operation is unknown
            ToolValidationError: If the arguments do not match the schema
            MemoryPersistenceError: If the result cannot be recorded
        """
        params = self.validate_arguments(name, arguments)
        spec = TOOLS[name]
        async with self._lock:
            logger.info("🔧 Tool '%s' called", name)
            result, metadata = await asyncio.to_thread(self._handlers[name], params)
            payload = format_response(result)
            await asyncio.to_thread(self.memory_store.store, spec.memory_type, payload, metadata)
        return payload

    # --- operation handlers ---------------------------------------------------

    def _analyze_codebase(self, params: AnalyzeCodebaseParams) -> HandlerResult:
        analysis = self.analyzer.analyze_codebase(
            depth=params.depth,
            include_tests=params.include_tests,
            include_node_modules=params.include_node_modules,
            focus_areas=params.focus_areas,
        )
        return analysis, {
            "fileCount": analysis.total_files,
            "linesOfCode": analysis.total_lines_of_code,
            "analysisTime": analysis.analysis_time,
            "tags": ["structure", params.depth, *(params.focus_areas or [])],
        }

    def _get_related_files(self, params: GetRelatedFilesParams) -> HandlerResult:
        related = self.analyzer.get_related_files(params.file_path, params.relationship_types, params.max_results)
        return related, {"file": related.file, "tags": ["related-files", *params.relationship_types]}

    def _suggest_refactoring(self, params: SuggestRefactoringParams) -> HandlerResult:
        suggestions = self.analyzer.suggest_refactoring(params.file_path, params.refactoring_types, params.priority)
        metadata: Dict[str, Any] = {"tags": ["refactoring", params.priority]}
        if params.file_path:
            metadata["file"] = self.analyzer.normalize_path(params.file_path)
        else:
            metadata["files"] = sorted({s.file for s in suggestions.high + suggestions.medium})
        return suggestions, metadata

    def _validate_patterns(self, params: ValidatePatternsParams) -> HandlerResult:
        validation = self.pattern_detector.validate_patterns(
            params.patterns, params.strict_mode, params.generate_report
        )
        return validation, {"tags": ["patterns", *(params.patterns or [])], "strictMode": params.strict_mode}

    def _generate_code(self, params: GenerateCodeParams) -> HandlerResult:
        generated = self.context_engine.generate_code(
            params.intent, params.file_type, params.related_files, params.follow_patterns
        )
        return generated, {
            "intent": params.intent,
            "linesOfCode": generated.implementation.count("\n") + 1,
            "tags": ["generation", params.file_type],
        }

    def _track_technical_debt(self, params: TrackTechnicalDebtParams) -> HandlerResult:
        debt = self.analyzer.analyze_technical_debt(params.category, params.severity, params.include_metrics)
        files = sorted({issue.file for issue in debt.critical + debt.high})
        tags = ["debt", *(t for t in (params.category, params.severity) if t)]
        return debt, {"files": files, "tags": tags}

    def _optimize_dependencies(self, params: OptimizeDependenciesParams) -> HandlerResult:
        report = self.dependency_mapper.analyze_dependencies(
            params.analysis_type, params.include_dev_dependencies, params.suggest_alternatives
        )
        return report, {"tags": ["dependencies", params.analysis_type]}

    # --- context --------------------------------------------------------------

    async def refresh_context(self) -> CodebaseContext:
        async with self._lock:
            return await asyncio.to_thread(self.context_engine.refresh_context)

    async def get_context(self) -> CodebaseContext:
        async with self._lock:
            return await asyncio.to_thread(self.context_engine.get_context)

    async def get_contextual_recommendations(self) -> List[Dict[str, Any]]:
        async with self._lock:
            recommendations = await asyncio.to_thread(self.context_engine.get_contextual_recommendations)
        return format_response(recommendations)

    async def analyze_code_context(self, file_path: str) -> Dict[str, Any]:
        async with self._lock:
            analysis = await asyncio.to_thread(self.context_engine.analyze_code_context, file_path)
        return format_response(analysis)

    # --- memory ---------------------------------------------------------------

    def memory_stats(self) -> Dict[str, Any]:
        return format_response(self.memory_store.get_stats())

    def query_memory(
        self,
        type: Optional[str] = None,
        since: Optional[datetime] = None,
        tags: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[MemoryEntry]:
        return self.memory_store.query(type=type, since=since, tags=tags, limit=limit)

    def analyze_evolution(self, timespan: str = "30d") -> Dict[str, Any]:
        return format_response(self.memory_store.analyze_evolution(timespan))

    async def cleanup_memory(self, older_than: datetime) -> int:
        async with self._lock:
            removed = await asyncio.to_thread(self.memory_store.cleanup, older_than)
        logger.info("🧹 Removed %d memory entries older than %s", removed, older_than.isoformat())
        return removed

    def dependency_stats(self) -> Dict[str, Any]:
        return format_response(self.dependency_mapper.get_dependency_stats())
