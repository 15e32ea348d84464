import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from core.models import SourceFile
from core.utils.fs import MEMORY_DIR_NAME, relative_posix

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ['py', 'ts', 'tsx', 'js', 'jsx', 'mjs', 'cjs', 'json']
CODE_EXTENSIONS = {'py', 'ts', 'tsx', 'js', 'jsx', 'mjs', 'cjs'}
TEST_DIRECTORIES = {'tests', 'test', '__tests__', 'spec'}


def is_test_path(path: str) -> bool:
    """Return True when a repo-relative path looks like a test file."""
    parts = path.lower().split('/')
    name = parts[-1]
    if '.test.' in name or '.spec.' in name:
        return True
    if name.endswith('.py') and (name.startswith('test_') or name.endswith('_test.py') or name == 'conftest.py'):
        return True
    return any(p in TEST_DIRECTORIES for p in parts[:-1])


def module_stem(path: str) -> str:
    """File name without extension and test affixes (`test_x.py`, `x.y.test.ts` -> `x`, `x.y`)."""
    name = path.rsplit('/', 1)[-1].lower()
    stem = name.rsplit('.', 1)[0] if '.' in name else name
    for suffix in ('.test', '.spec'):
        if stem.endswith(suffix):
            stem = stem[:-len(suffix)]
            break
    if stem.startswith('test_'):
        stem = stem[5:]
    elif stem.endswith('_test'):
        stem = stem[:-5]
    return stem


@dataclass
class FileInventory:
    """Snapshot of the files and directories found under a project root."""

    root: Path
    files: List[str]
    directories: Set[str]
    _cache: Dict[str, Optional[str]] = field(default_factory=dict, repr=False)

    def directory_names(self) -> Set[str]:
        """Base names of every directory that holds scanned files (at any depth)."""
        return {d.rsplit('/', 1)[-1] for d in self.directories if d}

    def has_directory(self, name: str) -> bool:
        return name in self.directory_names()

    def contains(self, path: str) -> bool:
        return path in self.files

    def code_files(self, include_tests: bool = True) -> List[str]:
        return [
            f for f in self.files
            if f.rsplit('.', 1)[-1].lower() in CODE_EXTENSIONS and (include_tests or not is_test_path(f))
        ]

    def test_files(self) -> List[str]:
        return [f for f in self.code_files() if is_test_path(f)]

    def read(self, path: str) -> Optional[str]:
        """Return the text of a scanned file, or None when it cannot be read."""
        if path in self._cache:
            return self._cache[path]
        full = self.root / path
        text: Optional[str]
        try:
            text = full.read_text(encoding='utf-8')
        except UnicodeDecodeError:
            try:
                text = full.read_text(encoding='latin-1')
            except OSError as e:
                logger.warning("⚠️  Skipping unreadable file %s: %s", path, e)
                text = None
        except OSError as e:
            logger.warning("⚠️  Skipping unreadable file %s: %s", path, e)
            text = None
        self._cache[path] = text
        return text

    def load(self, paths: Iterable[str]) -> List[SourceFile]:
        """Read `paths` into SourceFile records, skipping unreadable files."""
        loaded = []
        for p in paths:
            text = self.read(p)
            if text is not None:
                loaded.append(SourceFile(path=p, text=text))
        return loaded


class CodebaseLoader:
    """Walk a project tree into a FileInventory."""

    def __init__(self, repo_path: str, include_extensions: Optional[List[str]] = None):
        self.repo_path = Path(repo_path)
        self.include_extensions = include_extensions or list(DEFAULT_EXTENSIONS)
        self.exclude_dirs = {'.git', '__pycache__', 'node_modules', '.venv', 'venv', 'dist', 'build',
                             '.mypy_cache', '.pytest_cache', MEMORY_DIR_NAME}
        self._binary_exts = {'.png', '.jpg', '.jpeg', '.gif', '.exe', '.dll', '.so', '.pyc', '.class', '.jar', '.zip', '.tar', '.gz'}

    def _is_excluded(self, rel_parts: Iterable[str], include_node_modules: bool) -> bool:
        excluded = set(self.exclude_dirs)
        if include_node_modules:
            excluded.discard('node_modules')
        return bool({p.lower() for p in rel_parts} & excluded)

    def _is_text_file(self, path: Path) -> bool:
        ext = path.suffix.lower()
        if ext in self._binary_exts:
            return False
        try:
            with open(path, 'rb') as f:
                chunk = f.read(2048)
                if b'\x00' in chunk:
                    return False
        except OSError:
            return False
        return True

    def load_inventory(self, include_tests: bool = True, include_node_modules: bool = False) -> FileInventory:
        """Scan the repository and return the matching files.

        Files are filtered by extension, by the test-file flag, and by the
        excluded directory set. Binary files are skipped.
        """
        logger.info("🔄 Scanning repository: %s", self.repo_path)
        if not self.repo_path.exists():
            logger.error("❌ Repository path not found: %s", self.repo_path)
            return FileInventory(root=self.repo_path, files=[], directories=set())

        files: List[str] = []
        directories: Set[str] = set()
        for path in self.repo_path.rglob('*'):
            if not path.is_file():
                continue
            rel = relative_posix(path, self.repo_path)
            rel_parts = rel.split('/')
            if self._is_excluded(rel_parts[:-1], include_node_modules):
                continue
            ext = path.suffix.lower().lstrip('.')
            if ext not in self.include_extensions:
                continue
            if not include_tests and is_test_path(rel):
                continue
            if not self._is_text_file(path):
                continue

            files.append(rel)
            for i in range(1, len(rel_parts)):
                directories.add('/'.join(rel_parts[:i]))

        files.sort()
        logger.info("✅ Found %d files in %d directories", len(files), len(directories))
        return FileInventory(root=self.repo_path, files=files, directories=directories)
