"""Data models and schemas"""
from .models import (
    CodebaseContext,
    CodeConventions,
    CodeStyle,
    DependencyNode,
    MemoryEntry,
    Recommendation,
    SourceFile,
    ToolBuilder,
    ToolCallable,
    ToolHostProtocol,
    priority_rank,
)

__all__ = [
    "CodebaseContext",
    "CodeConventions",
    "CodeStyle",
    "DependencyNode",
    "MemoryEntry",
    "Recommendation",
    "SourceFile",
    "ToolBuilder",
    "ToolCallable",
    "ToolHostProtocol",
    "priority_rank",
]
