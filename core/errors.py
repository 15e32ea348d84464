"""Exception hierarchy shared by the engine, the tool facade and the server."""

from __future__ import annotations

from typing import Any, Dict, List


class CodebaseMemoryError(Exception):
    """Base class for all errors raised by the codebase memory engine."""


class ToolNotFoundError(CodebaseMemoryError):
    """Raised when a tool call names an operation that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ToolValidationError(CodebaseMemoryError):
    """Raised when tool arguments do not match the operation's schema.

    `errors` holds one dict per offending field with `field` (dotted path),
    `message` and `type` keys.
    """

    def __init__(self, tool: str, errors: List[Dict[str, Any]]):
        self.tool = tool
        self.errors = errors
        details = ", ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid parameters for {tool}: {details}")


class MemoryPersistenceError(CodebaseMemoryError):
    """Raised when the memory store cannot write its snapshot to disk."""


class ProjectFileNotFoundError(CodebaseMemoryError):
    """Raised when an operation targets a file that is not part of the scanned project."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        super().__init__(f"File not found in project: {file_path}")
