from pathlib import Path
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)

MEMORY_DIR_NAME = ".mcp-memory"


def project_root_directory(explicit: Optional[str] = None) -> str:
    """Return the project root to analyze.

    Resolution order: explicit argument, CODEBASE_MEMORY_PROJECT_ROOT, current
    working directory.
    """
    candidate = explicit or os.getenv("CODEBASE_MEMORY_PROJECT_ROOT") or os.getcwd()
    root = Path(candidate).resolve()
    if not root.exists():
        logger.warning("⚠️ Project root %s does not exist; analyses will be empty", root)
    return str(root)


def memory_directory(project_root: str, explicit: Optional[str] = None) -> str:
    """Return the directory holding the persisted memory artifacts."""
    candidate = explicit or os.getenv("CODEBASE_MEMORY_DIR")
    if candidate:
        return str(Path(candidate).resolve())
    return str(Path(project_root) / MEMORY_DIR_NAME)


def relative_posix(path: Path, root: Path) -> str:
    """Return `path` relative to `root` with forward slashes."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
