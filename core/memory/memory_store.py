"""Durable, queryable log of past analysis results.

State lives in two JSON artifacts inside the memory directory:

    entries.json   list of entry records (id, timestamp, type, data, metadata)
    index.json     type -> ordered list of entry ids

Both are rewritten in full after every mutation. Each write goes to a
temporary file first and is moved into place with `os.replace`, so readers
never see a torn file. Two processes sharing one directory can still lose
each other's updates.
"""

import copy
import itertools
import json
import logging
import os
import re
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.errors import MemoryPersistenceError
from core.models import MemoryEntry
from core.models.reports import CodebaseEvolution, EvolutionChange, EvolutionTrend, MemoryStats
from core.utils.response_formatter import format_response

logger = logging.getLogger(__name__)

ENTRIES_FILE = "entries.json"
INDEX_FILE = "index.json"
DEFAULT_RETRY_DELAYS = (0.05, 0.2, 0.5)

_TIMESPAN_RE = re.compile(r'^(\d+)([dwmy])$')
_TIMESPAN_DAYS = {'d': 1, 'w': 7, 'm': 30, 'y': 365}

# metric name, payload keys (first match wins), True when higher is better (None: neutral)
EVOLUTION_METRICS: List[Tuple[str, Tuple[str, ...], Optional[bool]]] = [
    ('Complexity', ('complexity_score', 'complexityScore', 'complexity'), False),
    ('Maintainability', ('maintainability_index', 'maintainabilityIndex', 'maintainability'), True),
    ('Test Coverage', ('test_coverage', 'testCoverage', 'coverage'), True),
    ('Technical Debt', ('technical_debt_hours', 'technicalDebtHours', 'debt_hours', 'hours'), False),
    ('Lines of Code', ('total_lines_of_code', 'totalLinesOfCode', 'loc', 'linesOfCode'), None),
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def parse_timespan(timespan: str, now: datetime) -> datetime:
    """Cutoff for `<N><d|w|m|y>`; anything unparseable means 30 days."""
    m = _TIMESPAN_RE.match((timespan or '').strip())
    if not m:
        return now - timedelta(days=30)
    return now - timedelta(days=int(m.group(1)) * _TIMESPAN_DAYS[m.group(2)])


def _metric_value(data: Any, keys: Sequence[str]) -> Optional[float]:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


class MemoryStore:
    def __init__(self, memory_dir: str, clock: Optional[Callable[[], datetime]] = None,
                 retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS):
        self.memory_dir = Path(memory_dir)
        self.entries_file = self.memory_dir / ENTRIES_FILE
        self.index_file = self.memory_dir / INDEX_FILE
        self.clock = clock or utc_now
        self.retry_delays = tuple(retry_delays)
        self.entries: Dict[str, MemoryEntry] = {}
        self.index: Dict[str, List[str]] = {}
        self._lock = threading.RLock()
        self._sequence = itertools.count()

        try:
            self.memory_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("⚠️ Could not create memory directory %s: %s", self.memory_dir, e)
        self._load()

    def _now(self) -> datetime:
        return as_utc(self.clock())

    # --- persistence ------------------------------------------------------------

    def _load(self) -> None:
        self.entries = self._load_entries()
        raw_index = self._read_json(self.index_file)
        self.index = self._repair_index(raw_index if isinstance(raw_index, dict) else {})
        logger.info("💾 Loaded %d memory entries from %s", len(self.entries), self.memory_dir)

    def _read_json(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.warning("⚠️ Ignoring unreadable memory file %s: %s", path, e)
            return None

    def _load_entries(self) -> Dict[str, MemoryEntry]:
        payload = self._read_json(self.entries_file)
        if payload is None:
            return {}
        if not isinstance(payload, list):
            logger.warning("⚠️ %s does not hold a list of entries; starting empty", self.entries_file)
            return {}
        entries: Dict[str, MemoryEntry] = {}
        for record in payload:
            try:
                entry = MemoryEntry.from_serializable(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("⚠️ Skipping malformed memory entry: %s", e)
                continue
            entry.timestamp = as_utc(entry.timestamp)
            entries[entry.id] = entry
        return entries

    def _repair_index(self, raw: Dict[str, Any]) -> Dict[str, List[str]]:
        """Rebuild the type index so every entry appears exactly once in its own bucket."""
        index: Dict[str, List[str]] = {}
        placed = set()
        dropped = 0
        for type_, ids in raw.items():
            bucket = index.setdefault(str(type_), [])
            for entry_id in ids if isinstance(ids, list) else []:
                entry = self.entries.get(entry_id)
                if entry is None or entry.type != type_ or entry_id in placed:
                    dropped += 1
                    continue
                bucket.append(entry_id)
                placed.add(entry_id)

        missing = sorted((e for e in self.entries.values() if e.id not in placed), key=lambda e: (e.timestamp, e.id))
        for entry in missing:
            index.setdefault(entry.type, []).append(entry.id)
        index = {t: ids for t, ids in index.items() if ids}

        if dropped or missing:
            logger.warning("🔧 Repaired memory index: dropped %d dangling ids, added %d missing ids", dropped, len(missing))
        return index

    @staticmethod
    def _write_tmp(path: Path, payload: Any) -> Path:
        tmp = path.with_name(path.name + '.tmp')
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        return tmp

    def _persist_once(self) -> None:
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        entries_tmp = self._write_tmp(self.entries_file, [e.to_serializable() for e in self.entries.values()])
        index_tmp = self._write_tmp(self.index_file, self.index)
        os.replace(entries_tmp, self.entries_file)
        os.replace(index_tmp, self.index_file)

    def _persist(self) -> None:
        attempts = len(self.retry_delays) + 1
        for attempt in range(attempts):
            try:
                self._persist_once()
                return
            except OSError as e:
                if attempt == attempts - 1:
                    raise MemoryPersistenceError(f"Failed to persist memory to {self.memory_dir}: {e}") from e
                delay = self.retry_delays[attempt]
                logger.warning("⚠️ Persisting memory failed (%s); retrying in %.2fs", e, delay)
                time.sleep(delay)

    def _commit(self, mutate: Callable[[], Any]) -> Any:
        """Apply `mutate` and persist; restore the previous state if persisting fails."""
        with self._lock:
            entries_before = dict(self.entries)
            index_before = copy.deepcopy(self.index)
            result = mutate()
            try:
                self._persist()
            except MemoryPersistenceError:
                self.entries = entries_before
                self.index = index_before
                logger.error("❌ Memory mutation rolled back; on-disk state unchanged")
                raise
            return result

    # --- public API ---------------------------------------------------------------

    def _generate_id(self, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        return f"mem_{millis:013d}_{next(self._sequence):06d}_{uuid.uuid4().hex[:8]}"

    def store(self, type: str, data: Any, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Append one entry and persist it. Returns the new entry id."""
        now = self._now()
        metadata = format_response(metadata or {})
        if isinstance(metadata.get('tags'), str):
            metadata['tags'] = [metadata['tags']]
        entry = MemoryEntry(
            id=self._generate_id(now),
            timestamp=now,
            type=type,
            data=format_response(data),
            metadata={'version': '1.0.0', 'fileCount': 0, 'linesOfCode': 0, **metadata},
        )

        def mutate():
            self.entries[entry.id] = entry
            self.index.setdefault(type, []).append(entry.id)

        self._commit(mutate)
        logger.info("💾 Stored memory entry: %s (%s)", type, entry.id)
        return entry.id

    def query(self, type: Optional[str] = None, since: Optional[datetime] = None,
              tags: Optional[List[str]] = None, limit: Optional[int] = None) -> List[MemoryEntry]:
        """Entries matching every given filter, newest first (ties: id descending)."""
        with self._lock:
            if type is not None:
                results = [self.entries[i] for i in self.index.get(type, []) if i in self.entries]
            else:
                results = list(self.entries.values())
        if since is not None:
            cutoff = as_utc(since)
            results = [e for e in results if e.timestamp >= cutoff]
        if tags:
            wanted = set(tags)
            results = [e for e in results if wanted & set(e.tags)]
        results.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        if limit is not None:
            results = results[:max(0, limit)]
        return results

    def get_stats(self) -> MemoryStats:
        with self._lock:
            entries = list(self.entries.values())
        by_type: Dict[str, int] = {}
        for entry in entries:
            by_type[entry.type] = by_type.get(entry.type, 0) + 1
        timestamps = [e.timestamp for e in entries]
        analysis_times = [
            float(e.metadata.get('analysisTime') or 0) for e in entries if e.type == 'analysis'
        ]
        return MemoryStats(
            total_entries=len(entries),
            entries_by_type=by_type,
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
            average_analysis_time=sum(analysis_times) / len(analysis_times) if analysis_times else 0.0,
            trends_detected=self._detect_trends(),
        )

    def _detect_trends(self) -> List[str]:
        recent = self.query(since=self._now() - timedelta(days=7))
        trends = []
        if len(recent) > 5:
            trends.append('Increased analysis activity detected')
        if sum(1 for e in recent if e.type == 'debt') > 2:
            trends.append('Technical debt tracking is active')
        return trends

    def analyze_evolution(self, timespan: str = '30d') -> CodebaseEvolution:
        since = parse_timespan(timespan, self._now())
        analyses = list(reversed(self.query(type='analysis', since=since)))  # oldest first
        changes = self._extract_changes(analyses)
        trends = self._analyze_trends(analyses)
        return CodebaseEvolution(
            timespan=timespan,
            since=since,
            analyses=len(analyses),
            changes=changes,
            trends=trends,
            recommendations=self._evolution_recommendations(analyses, changes, trends),
        )

    @staticmethod
    def _extract_changes(analyses: List[MemoryEntry]) -> List[EvolutionChange]:
        changes = []
        for previous, current in zip(analyses, analyses[1:]):
            for metric, keys, higher_is_better in EVOLUTION_METRICS:
                before, after = _metric_value(previous.data, keys), _metric_value(current.data, keys)
                if before is None or after is None or before == after:
                    continue
                went_up = after > before
                if higher_is_better is None:
                    kind = 'addition' if went_up else 'removal'
                else:
                    kind = 'improvement' if went_up == higher_is_better else 'regression'
                relative = abs(after - before) / abs(before) if before else 1.0
                impact = 'high' if relative > 0.2 else 'medium' if relative > 0.05 else 'low'
                files = current.metadata.get('files') or ([current.metadata['file']] if current.metadata.get('file') else [])
                changes.append(EvolutionChange(
                    date=current.timestamp,
                    type=kind,
                    metric=metric,
                    description=f"{metric} {'increased' if went_up else 'decreased'} from {before:g} to {after:g}",
                    impact=impact,
                    files=list(files),
                ))
        return changes

    @staticmethod
    def _analyze_trends(analyses: List[MemoryEntry]) -> List[EvolutionTrend]:
        trends = []
        for metric, keys, higher_is_better in EVOLUTION_METRICS:
            values = [v for v in (_metric_value(e.data, keys) for e in analyses) if v is not None]
            if len(values) < 2:
                continue
            overall = values[-1] - values[0]
            steps = [b - a for a, b in zip(values, values[1:])]
            if overall == 0:
                direction = 'stable'
                agreeing = sum(1 for s in steps if s == 0)
            else:
                if higher_is_better is None:
                    direction = 'growing' if overall > 0 else 'shrinking'
                else:
                    direction = 'improving' if (overall > 0) == higher_is_better else 'declining'
                agreeing = sum(1 for s in steps if s * overall > 0)
            confidence = round(agreeing / len(steps), 2)
            trends.append(EvolutionTrend(
                metric=metric,
                direction=direction,
                confidence=confidence,
                description=f"{metric} is {direction} across {len(values)} analyses ({values[0]:g} -> {values[-1]:g})",
            ))
        return trends

    @staticmethod
    def _evolution_recommendations(analyses, changes, trends) -> List[str]:
        recs = []
        if len(analyses) < 2:
            recs.append('Run more analyses to establish trends')
        if any(t.metric == 'Test Coverage' and t.direction == 'improving' for t in trends):
            recs.append('Continue the positive trend in test coverage')
        if any(c.type == 'improvement' for c in changes):
            recs.append('Build on recent code quality improvements')
        for trend in trends:
            if trend.direction == 'declining':
                recs.append(f"Investigate the decline in {trend.metric.lower()}")
        return recs

    def get_contextual_recommendations(self) -> List[str]:
        """Recommendations derived from stored history."""
        recs: List[str] = []
        latest = self.query(type='analysis', limit=1)
        if latest:
            coverage = _metric_value(latest[0].data, EVOLUTION_METRICS[2][1])
            if coverage is not None and coverage < 70:
                recs.append('Based on similar past analysis, consider focusing on test coverage')
        for entry in self.query(type='dependency', limit=5):
            data = entry.data if isinstance(entry.data, dict) else {}
            if data.get('critical') or data.get('warnings'):
                recs.append('Historical data suggests prioritizing dependency updates')
                break

        month_ago = self._now() - timedelta(days=30)
        recent = self.query(since=month_ago)
        by_type: Dict[str, int] = {}
        by_file: Dict[str, int] = {}
        for entry in recent:
            by_type[entry.type] = by_type.get(entry.type, 0) + 1
            if entry.type == 'refactoring' and entry.metadata.get('file'):
                by_file[entry.metadata['file']] = by_file.get(entry.metadata['file'], 0) + 1
        for type_, count in sorted(by_type.items()):
            if count >= 3:
                recs.append(f"Recurring pattern detected: frequent {type_} activity ({count} entries in 30 days)")
        for path, count in sorted(by_file.items()):
            if count >= 2:
                recs.append(f"Recurring pattern detected: refactoring keeps returning to {path}")

        debt = [_metric_value(e.data, EVOLUTION_METRICS[3][1]) for e in reversed(self.query(type='analysis', since=month_ago))]
        debt = [d for d in debt if d is not None]
        if len(debt) >= 2 and debt[-1] > debt[0]:
            recs.append('Technical debt is growing between analyses')
        return recs

    def cleanup(self, older_than: datetime) -> int:
        """Remove every entry with timestamp < older_than. Returns the number removed."""
        cutoff = as_utc(older_than)

        def mutate():
            doomed = [e for e in self.entries.values() if e.timestamp < cutoff]
            for entry in doomed:
                del self.entries[entry.id]
                bucket = self.index.get(entry.type, [])
                if entry.id in bucket:
                    bucket.remove(entry.id)
                if not bucket:
                    self.index.pop(entry.type, None)
            return len(doomed)

        removed = self._commit(mutate)
        logger.info("🧹 Cleaned up %d old memory entries", removed)
        return removed
