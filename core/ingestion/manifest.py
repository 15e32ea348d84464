"""Dependency manifest loading.

Reads the first manifest found under a project root: `package.json` (with an
optional `package-lock.json`), `pyproject.toml`, or `requirements*.txt`.
Any failure degrades to an empty manifest so dependency analyses still run.
"""

import json
import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

_PEP508_RE = re.compile(r'^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(\[[^\]]*\])?\s*([^;]*)')


@dataclass
class LockedPackage:
    name: str
    version: str
    dependencies: List[str] = field(default_factory=list)
    license: Optional[str] = None


@dataclass
class DependencyManifest:
    source: str = "none"
    production: Dict[str, str] = field(default_factory=dict)
    development: Dict[str, str] = field(default_factory=dict)
    peer: Dict[str, str] = field(default_factory=dict)
    locked: Dict[str, LockedPackage] = field(default_factory=dict)
    # every version declared per package name across manifest sections
    observed_versions: Dict[str, Set[str]] = field(default_factory=dict)
    # versions actually installed according to the lockfile
    locked_versions: Dict[str, Set[str]] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.production or self.development or self.peer)

    def declared(self) -> Dict[str, str]:
        """All declared packages; production wins over development over peer."""
        merged: Dict[str, str] = {}
        for section in (self.peer, self.development, self.production):
            merged.update(section)
        return merged

    def observe(self, name: str, version: str) -> None:
        if version:
            self.observed_versions.setdefault(name, set()).add(version)

    def observe_locked(self, name: str, version: str) -> None:
        if version:
            self.locked_versions.setdefault(name, set()).add(version)


def normalize_python_name(name: str) -> str:
    return re.sub(r'[-_.]+', '-', name).lower()


def _parse_requirement(line: str) -> Optional[tuple]:
    line = line.split('#', 1)[0].strip()
    if not line or line.startswith(('-', 'git+', 'http')):
        return None
    m = _PEP508_RE.match(line)
    if not m:
        return None
    return normalize_python_name(m.group(1)), m.group(3).strip() or '*'


def _load_package_json(root: Path) -> DependencyManifest:
    data = json.loads((root / 'package.json').read_text(encoding='utf-8'))
    manifest = DependencyManifest(
        source='package.json',
        production=dict(data.get('dependencies') or {}),
        development=dict(data.get('devDependencies') or {}),
        peer=dict(data.get('peerDependencies') or {}),
        scripts=dict(data.get('scripts') or {}),
    )
    for section in (manifest.production, manifest.development, manifest.peer):
        for name, version in section.items():
            manifest.observe(name, str(version))

    lock_path = root / 'package-lock.json'
    if lock_path.exists():
        try:
            _merge_package_lock(manifest, json.loads(lock_path.read_text(encoding='utf-8')))
        except (OSError, ValueError) as e:
            logger.warning("⚠️ Ignoring unreadable package-lock.json: %s", e)
    return manifest


def _merge_package_lock(manifest: DependencyManifest, lock: Dict[str, Any]) -> None:
    packages = lock.get('packages')
    if isinstance(packages, dict):
        # lockfile v2/v3: keys like "node_modules/a/node_modules/b"
        for key, info in packages.items():
            if not key or 'node_modules/' not in key or not isinstance(info, dict):
                continue
            name = key.rsplit('node_modules/', 1)[-1]
            version = str(info.get('version', ''))
            manifest.observe_locked(name, version)
            if key == f'node_modules/{name}':
                manifest.locked[name] = LockedPackage(
                    name=name,
                    version=version,
                    dependencies=sorted((info.get('dependencies') or {}).keys()),
                    license=info.get('license'),
                )
        return

    def walk(deps: Dict[str, Any], top_level: bool) -> None:
        for name, info in deps.items():
            if not isinstance(info, dict):
                continue
            version = str(info.get('version', ''))
            manifest.observe_locked(name, version)
            if top_level:
                manifest.locked[name] = LockedPackage(
                    name=name, version=version, dependencies=sorted((info.get('requires') or {}).keys())
                )
            walk(info.get('dependencies') or {}, False)

    walk(lock.get('dependencies') or {}, True)


def _load_pyproject(root: Path) -> DependencyManifest:
    data = tomllib.loads((root / 'pyproject.toml').read_text(encoding='utf-8'))
    manifest = DependencyManifest(source='pyproject.toml')
    project = data.get('project') or {}
    for req in project.get('dependencies') or []:
        parsed = _parse_requirement(req)
        if parsed:
            manifest.production[parsed[0]] = parsed[1]
    for reqs in (project.get('optional-dependencies') or {}).values():
        for req in reqs:
            parsed = _parse_requirement(req)
            if parsed:
                manifest.development.setdefault(parsed[0], parsed[1])

    poetry = (data.get('tool') or {}).get('poetry') or {}
    for name, spec in (poetry.get('dependencies') or {}).items():
        if name.lower() == 'python':
            continue
        manifest.production[normalize_python_name(name)] = spec if isinstance(spec, str) else str(spec.get('version', '*'))
    for group in (poetry.get('group') or {}).values():
        for name, spec in (group.get('dependencies') or {}).items():
            manifest.development[normalize_python_name(name)] = spec if isinstance(spec, str) else str(spec.get('version', '*'))

    manifest.scripts = {k: str(v) for k, v in (project.get('scripts') or {}).items()}
    for section in (manifest.production, manifest.development):
        for name, version in section.items():
            manifest.observe(name, version)
    return manifest


def _load_requirements(root: Path, files: List[Path]) -> DependencyManifest:
    manifest = DependencyManifest(source=files[0].name)
    for path in files:
        target = manifest.development if 'dev' in path.name or 'test' in path.name else manifest.production
        for line in path.read_text(encoding='utf-8').splitlines():
            parsed = _parse_requirement(line)
            if parsed:
                target[parsed[0]] = parsed[1]
                manifest.observe(parsed[0], parsed[1])
    return manifest


def load_manifest(project_root: str) -> DependencyManifest:
    """Load the project's dependency manifest, or an empty one on any failure."""
    root = Path(project_root)
    try:
        if (root / 'package.json').exists():
            manifest = _load_package_json(root)
        elif (root / 'pyproject.toml').exists():
            manifest = _load_pyproject(root)
        else:
            req_files = sorted(root.glob('requirements*.txt'))
            if not req_files:
                logger.info("📦 No dependency manifest found in %s", root)
                return DependencyManifest()
            manifest = _load_requirements(root, req_files)
    except (OSError, ValueError, tomllib.TOMLDecodeError, AttributeError, TypeError) as e:
        logger.error("❌ Failed to load dependency manifest: %s", e)
        return DependencyManifest()

    logger.info(
        "📦 Loaded %s: %d production, %d development, %d peer dependencies",
        manifest.source, len(manifest.production), len(manifest.development), len(manifest.peer),
    )
    return manifest
