"""Runtime settings read from the environment.

Entry points call `load_dotenv()` first, so values may also come from a
`.env` file in the working directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from core.utils.fs import memory_directory, project_root_directory


def _split_extensions(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    exts = [e.strip().lstrip(".").lower() for e in raw.split(",")]
    return [e for e in exts if e] or None


@dataclass
class Settings:
    project_root: str
    memory_dir: str
    include_extensions: Optional[List[str]] = None
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    log_level: int = logging.INFO

    @classmethod
    def from_env(
        cls,
        project_root: Optional[str] = None,
        memory_dir: Optional[str] = None,
    ) -> "Settings":
        root = project_root_directory(project_root)
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        return cls(
            project_root=root,
            memory_dir=memory_directory(root, memory_dir),
            include_extensions=_split_extensions(os.getenv("CODEBASE_MEMORY_EXTENSIONS")),
            server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
            server_port=int(os.getenv("SERVER_PORT", "8000")),
            log_level=getattr(logging, level_name, logging.INFO),
        )
