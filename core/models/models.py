from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.tools import BaseTool

PRIORITY_ORDER: Dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}


def priority_rank(priority: str) -> int:
    """Return the sort rank of a priority/severity label (unknown labels rank lowest)."""
    return PRIORITY_ORDER.get(priority, 0)


@dataclass
class SourceFile:
    """A scanned project file: repo-relative POSIX path plus its text."""

    path: str
    text: str

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n")

    @property
    def extension(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[-1].lower() if "." in name else ""


@dataclass
class MemoryEntry:
    id: str
    timestamp: datetime
    type: str
    data: Any
    metadata: Dict[str, Any]

    @property
    def tags(self) -> List[str]:
        return list(self.metadata.get("tags") or [])

    def to_serializable(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload

    @classmethod
    def from_serializable(cls, payload: Dict[str, Any]) -> "MemoryEntry":
        return cls(
            id=str(payload["id"]),
            timestamp=datetime.fromisoformat(payload["timestamp"]),
            type=str(payload["type"]),
            data=payload.get("data"),
            metadata=dict(payload.get("metadata") or {}),
        )


@dataclass
class Recommendation:
    type: str
    priority: str
    title: str
    description: str
    implementation: str
    benefits: List[str] = field(default_factory=list)
    effort: str = "medium"
    related_files: List[str] = field(default_factory=list)
    source: str = "pattern"


@dataclass
class NamingConventions:
    variables: str = "camelCase"
    functions: str = "camelCase"
    classes: str = "PascalCase"
    files: str = "kebab-case"


@dataclass
class StructureConventions:
    imports: str = "grouped"
    exports: str = "named"
    error_handling: str = "try-catch"


@dataclass
class DocumentationConventions:
    functions: bool = True
    classes: bool = True
    modules: bool = True


@dataclass
class CodeConventions:
    naming: NamingConventions = field(default_factory=NamingConventions)
    structure: StructureConventions = field(default_factory=StructureConventions)
    documentation: DocumentationConventions = field(default_factory=DocumentationConventions)


@dataclass
class CodeStyle:
    indentation: str = "2 spaces"
    quotes: str = "single"
    semicolons: bool = True
    trailing_commas: bool = True
    line_length: int = 100


@dataclass
class CodebaseContext:
    architecture: str
    patterns: List[str]
    conventions: CodeConventions
    dependencies: List[str]
    language: str
    testing_framework: str
    code_style: CodeStyle
    built_at: datetime = field(default_factory=datetime.now)


@dataclass
class DependencyNode:
    name: str
    version: str
    type: str  # production | development | peer
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)
    size: str = "~5kB"
    last_updated: str = "unknown"
    license: str = "unknown"
    vulnerabilities: int = 0


# Minimal protocol describing the parts of the facade used by tool builders
class ToolHostProtocol(Protocol):
    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...
    def list_tools(self) -> List[Dict[str, Any]]: ...


# Tools may be plain callables or langchain BaseTool objects
ToolCallable = Union[Callable[..., Any], "BaseTool"]
ToolBuilder = Callable[[ToolHostProtocol], List[ToolCallable]]
