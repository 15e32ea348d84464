import json
from datetime import timedelta

import pytest

from core.errors import MemoryPersistenceError
from core.memory import MemoryStore
from core.memory.memory_store import ENTRIES_FILE, INDEX_FILE, parse_timespan


def test_store_and_query_by_type(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    first = store.store("analysis", {"loc": 1200}, {})
    store.store("debt", {"hours": 10}, {})

    analyses = store.query(type="analysis")
    assert [e.id for e in analyses] == [first]
    assert analyses[0].data == {"loc": 1200}

    stats = store.get_stats()
    assert stats.total_entries == 2
    assert stats.entries_by_type == {"analysis": 1, "debt": 1}


def test_cleanup_removes_only_older_entries(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    now = clock.now
    clock.now = now - timedelta(days=40)
    old = store.store("analysis", {"loc": 1}, {})
    clock.now = now - timedelta(days=2)
    recent = store.store("analysis", {"loc": 2}, {})
    clock.now = now

    removed = store.cleanup(now - timedelta(days=30))

    assert removed == 1
    assert [e.id for e in store.query()] == [recent]
    assert old not in store.index["analysis"]


def test_entries_survive_reload(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    entry_id = store.store("pattern", {"overall_score": 80}, {"tags": ["patterns"]})

    reloaded = MemoryStore(str(memory_dir), clock=clock)

    entries = reloaded.query(type="pattern")
    assert [e.id for e in entries] == [entry_id]
    assert entries[0].timestamp == clock.now
    assert entries[0].metadata["tags"] == ["patterns"]
    assert entries[0].metadata["version"] == "1.0.0"


def test_query_orders_newest_first_and_applies_limit(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    ids = []
    for day in range(3):
        clock.now = clock.now + timedelta(days=1)
        ids.append(store.store("analysis", {"step": day}, {}))

    assert [e.id for e in store.query()] == list(reversed(ids))
    assert [e.id for e in store.query(limit=2)] == [ids[2], ids[1]]
    assert store.query(limit=0) == []


def test_entries_stored_in_the_same_instant_have_distinct_ids(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    a = store.store("analysis", {}, {})
    b = store.store("analysis", {}, {})

    assert a != b
    assert [e.id for e in store.query()] == [b, a]


def test_query_filters_by_since_and_tags(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    start = clock.now
    store.store("debt", {}, {"tags": ["security"]})
    clock.now = start + timedelta(days=5)
    tagged = store.store("debt", {}, {"tags": ["performance", "security"]})
    store.store("debt", {}, {"tags": ["maintainability"]})

    recent_security = store.query(since=start + timedelta(days=1), tags=["security"])

    assert [e.id for e in recent_security] == [tagged]
    assert store.query(type="missing") == []


def test_single_tag_string_is_treated_as_one_tag(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    entry_id = store.store("debt", {}, {"tags": "security"})

    assert [e.id for e in store.query(tags=["security"])] == [entry_id]
    assert store.query()[0].tags == ["security"]


def test_cleanup_keeps_the_index_consistent(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    store.store("analysis", {}, {})
    store.store("debt", {}, {})
    clock.now = clock.now + timedelta(days=10)
    kept = store.store("debt", {}, {})

    store.cleanup(clock.now - timedelta(days=1))

    assert store.index == {"debt": [kept]}
    on_disk = json.loads((memory_dir / INDEX_FILE).read_text(encoding="utf-8"))
    assert on_disk == {"debt": [kept]}


def test_corrupt_entries_file_starts_empty(memory_dir, clock):
    memory_dir.mkdir(parents=True)
    (memory_dir / ENTRIES_FILE).write_text("{not json", encoding="utf-8")

    store = MemoryStore(str(memory_dir), clock=clock)

    assert store.query() == []
    assert store.get_stats().total_entries == 0


def test_index_is_rebuilt_from_entries(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    entry_id = store.store("analysis", {}, {})
    (memory_dir / INDEX_FILE).write_text(json.dumps({"analysis": ["ghost"], "debt": [entry_id]}), encoding="utf-8")

    reloaded = MemoryStore(str(memory_dir), clock=clock)

    assert reloaded.index == {"analysis": [entry_id]}


def test_failed_persist_rolls_back(memory_dir, clock, monkeypatch):
    store = MemoryStore(str(memory_dir), clock=clock, retry_delays=())
    existing = store.store("analysis", {}, {})

    def broken_persist():
        raise OSError("disk full")

    monkeypatch.setattr(store, "_persist_once", broken_persist)

    with pytest.raises(MemoryPersistenceError):
        store.store("analysis", {"loc": 5}, {})

    assert [e.id for e in store.query()] == [existing]
    assert store.index == {"analysis": [existing]}


def test_persist_retries_transient_failures(memory_dir, clock, monkeypatch):
    store = MemoryStore(str(memory_dir), clock=clock, retry_delays=(0, 0))
    real_persist = store._persist_once
    calls = []

    def flaky_persist():
        calls.append(1)
        if len(calls) < 2:
            raise OSError("busy")
        real_persist()

    monkeypatch.setattr(store, "_persist_once", flaky_persist)

    entry_id = store.store("analysis", {}, {})

    assert len(calls) == 2
    assert [e.id for e in MemoryStore(str(memory_dir), clock=clock).query()] == [entry_id]


def test_stats_average_analysis_time_and_trends(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    store.store("analysis", {}, {"analysisTime": 2.0})
    store.store("analysis", {}, {"analysisTime": 4.0})
    for _ in range(3):
        store.store("debt", {}, {})
    store.store("pattern", {}, {})

    stats = store.get_stats()

    assert stats.average_analysis_time == 3.0
    assert stats.oldest_entry == clock.now
    assert "Increased analysis activity detected" in stats.trends_detected
    assert "Technical debt tracking is active" in stats.trends_detected


def test_evolution_reports_changes_and_trends(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    start = clock.now
    for day, coverage in enumerate([40, 50, 65]):
        clock.now = start + timedelta(days=day)
        store.store("analysis", {"test_coverage": coverage, "complexity_score": 5}, {})

    evolution = store.analyze_evolution("7d")

    assert evolution.analyses == 3
    coverage_changes = [c for c in evolution.changes if c.metric == "Test Coverage"]
    assert [c.type for c in coverage_changes] == ["improvement", "improvement"]
    trend = next(t for t in evolution.trends if t.metric == "Test Coverage")
    assert trend.direction == "improving"
    assert trend.confidence == 1.0
    assert "Continue the positive trend in test coverage" in evolution.recommendations


def test_parse_timespan_falls_back_to_thirty_days(clock):
    assert parse_timespan("2w", clock.now) == clock.now - timedelta(days=14)
    assert parse_timespan("soon", clock.now) == clock.now - timedelta(days=30)


def test_contextual_recommendations_from_history(memory_dir, clock):
    store = MemoryStore(str(memory_dir), clock=clock)
    store.store("analysis", {"test_coverage": 30}, {})
    store.store("dependency", {"critical": [{"package": "lodash"}]}, {})

    recommendations = store.get_contextual_recommendations()

    assert "Based on similar past analysis, consider focusing on test coverage" in recommendations
    assert "Historical data suggests prioritizing dependency updates" in recommendations
