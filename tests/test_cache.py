import json

import pytest

from ghost_note.app.cache import (
    AnalysisCache,
    CacheError,
    MemoryCacheStore,
    NullCacheStore,
    SQLiteCacheStore,
    create_store,
)
from ghost_note.core.models import MelodySuggestions, MetaInfo, PoemAnalysis


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FailingStore:
    def get(self, key):
        raise CacheError("read failed")

    def set(self, key, value):
        raise CacheError("write failed")

    def remove(self, key):
        raise CacheError("remove failed")

    def enumerate_keys(self, prefix):
        raise CacheError("listing failed")


def _analysis(line_count=2):
    return PoemAnalysis(
        meta=MetaInfo(line_count=line_count, stanza_count=1, word_count=6, syllable_count=8),
        melody_suggestions=MelodySuggestions(tempo=90, phrase_breaks=[1]),
    )


def test_round_trip_through_memory_store():
    clock = FakeClock()
    cache = AnalysisCache(MemoryCacheStore(), clock=clock)
    analysis = _analysis()

    assert cache.set("abc", analysis)
    restored = cache.get("abc")

    assert restored == analysis
    assert restored.emotion.suggested_music_params.tempo_range == (80, 120)
    assert cache.get("missing") is None


def test_entries_expire_after_ttl():
    clock = FakeClock()
    store = MemoryCacheStore()
    cache = AnalysisCache(store, ttl=60, clock=clock)
    cache.set("abc", _analysis())

    clock.advance(59)
    assert cache.get("abc") is not None
    assert cache.get("abc", ttl=30) is None
    assert len(store) == 0


def test_expired_entry_is_removed_on_read():
    clock = FakeClock()
    store = MemoryCacheStore()
    cache = AnalysisCache(store, ttl=60, clock=clock)
    cache.set("abc", _analysis())

    clock.advance(61)
    assert cache.get("abc") is None
    assert store.get(cache.key_for("abc")) is None


def test_unreadable_entry_is_discarded():
    store = MemoryCacheStore()
    cache = AnalysisCache(store)
    store.set(cache.key_for("abc"), "not json")

    assert cache.get("abc") is None
    assert len(store) == 0


def test_failed_write_sweeps_expired_entries():
    clock = FakeClock()
    store = MemoryCacheStore(max_entries=1)
    cache = AnalysisCache(store, ttl=60, clock=clock)
    assert cache.set("old", _analysis())

    clock.advance(120)
    assert cache.set("new", _analysis()) is False
    assert len(store) == 0
    assert cache.set("new", _analysis())
    assert cache.get("new") == _analysis()


def test_clear_only_touches_prefixed_keys():
    store = MemoryCacheStore()
    cache = AnalysisCache(store)
    store.set("unrelated", "keep me")
    cache.set("a", _analysis())
    cache.set("b", _analysis())

    assert cache.clear() == 2
    assert store.enumerate_keys("") == ["unrelated"]


def test_clear_expired_counts_corrupt_and_stale_entries():
    clock = FakeClock()
    store = MemoryCacheStore()
    cache = AnalysisCache(store, ttl=60, clock=clock)
    cache.set("stale", _analysis())
    clock.advance(61)
    cache.set("fresh", _analysis())
    store.set(cache.key_for("broken"), "{")

    assert cache.clear_expired() == 2
    assert store.enumerate_keys(cache.prefix) == [cache.key_for("fresh")]


def test_store_failures_become_misses():
    cache = AnalysisCache(FailingStore())

    assert cache.get("abc") is None
    assert cache.set("abc", _analysis()) is False
    assert cache.clear_expired() == 0
    assert cache.clear() == 0


def test_null_store_keeps_nothing():
    cache = AnalysisCache(NullCacheStore())

    assert cache.set("abc", _analysis())
    assert cache.get("abc") is None


def test_sqlite_store_persists_between_instances(tmp_path):
    path = str(tmp_path / "nested" / "cache.db")
    clock = FakeClock()
    AnalysisCache(SQLiteCacheStore(path), clock=clock).set("abc", _analysis(3))

    reopened = AnalysisCache(SQLiteCacheStore(path), clock=clock)
    assert reopened.get("abc") == _analysis(3)


def test_sqlite_store_key_operations(tmp_path):
    store = SQLiteCacheStore(str(tmp_path / "cache.db"))
    store.set("p%1", "one")
    store.set("px2", "two")
    store.set("p%1", "uno")

    assert store.get("p%1") == "uno"
    assert store.enumerate_keys("p%") == ["p%1"]
    store.remove("p%1")
    assert store.get("p%1") is None


def test_sqlite_store_rejects_bad_table_names(tmp_path):
    with pytest.raises(ValueError):
        SQLiteCacheStore(str(tmp_path / "cache.db"), table="drop table;")


def test_create_store(tmp_path):
    assert isinstance(create_store(None), MemoryCacheStore)
    assert isinstance(create_store(str(tmp_path / "cache.db")), SQLiteCacheStore)


def _valid_record(content_hash, timestamp):
    return {"hash": content_hash, "timestamp": timestamp, "analysis": _analysis().to_dict()}


@pytest.mark.parametrize(
    "overrides",
    [
        {"timestamp": "yesterday"},
        {"timestamp": None},
        {"timestamp": True},
        {"hash": 7},
        {"hash": "another-poem"},
        {"analysis": "garbage"},
        {"analysis": ["meta", "prosody"]},
        {"analysis": {}},
        {"analysis": {"meta": {"lineCount": 1}}},
        {"analysis": {"meta": [], "prosody": {}}},
    ],
)
def test_malformed_records_are_misses_and_removed(overrides):
    clock = FakeClock()
    store = MemoryCacheStore()
    cache = AnalysisCache(store, clock=clock)
    record = _valid_record("abc", clock() * 1000.0)
    record.update(overrides)
    store.set(cache.key_for("abc"), json.dumps(record))

    assert cache.get("abc") is None
    assert len(store) == 0


def test_clear_expired_removes_malformed_records():
    clock = FakeClock()
    store = MemoryCacheStore()
    cache = AnalysisCache(store, clock=clock)
    store.set(cache.key_for("a"), json.dumps({"hash": "a", "timestamp": "soon", "analysis": {}}))
    store.set(cache.key_for("b"), json.dumps(_valid_record("b", clock() * 1000.0)))

    assert cache.clear_expired() == 1
    assert cache.get("b") == _analysis()


def test_record_from_dict_rejects_non_mappings():
    with pytest.raises(TypeError):
        PoemAnalysis.from_dict("garbage")
    with pytest.raises(TypeError):
        MetaInfo.from_dict([1, 2])
