import json

import pytest

from fakes import FakeClock
from nms_glyph_generator.cache_store import (
    FINAL_CACHE_KEY,
    OFFSET_CACHE_KEY,
    PARTIAL_CACHE_KEY,
    CacheStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)


@pytest.fixture(params=['memory', 'sqlite'])
def store(request, tmp_path):
    if request.param == 'memory':
        return MemoryKeyValueStore()
    return SqliteKeyValueStore(tmp_path / 'cache.db')


@pytest.fixture
def clock():
    return FakeClock(start=1_700_000_000.0)


def test_write_and_read_envelope(store, clock):
    cache = CacheStore(store, clock=clock.time)
    cache.write(FINAL_CACHE_KEY, {'galaxies': ['Euclid']})

    assert cache.read(FINAL_CACHE_KEY) == {'galaxies': ['Euclid']}
    raw = json.loads(store.get(FINAL_CACHE_KEY))
    assert raw == {'data': {'galaxies': ['Euclid']}, 'timestamp': 1_700_000_000_000}

    envelope = cache.get_envelope(FINAL_CACHE_KEY)
    assert envelope.timestamp == 1_700_000_000_000


def test_missing_key_is_a_miss(store):
    assert CacheStore(store).read(FINAL_CACHE_KEY) is None
    assert CacheStore(store).read_offset() is None


def test_offset_envelope(store, clock):
    cache = CacheStore(store, clock=clock.time)
    cache.write_offset(1500)

    assert cache.read_offset() == 1500
    assert json.loads(store.get(OFFSET_CACHE_KEY)) == {'offset': 1500, 'timestamp': 1_700_000_000_000}


@pytest.mark.parametrize("raw", [
    "not json",
    json.dumps({'timestamp': 1}),
    json.dumps({'data': [], 'timestamp': 'yesterday'}),
    json.dumps(["data"]),
])
def test_corrupt_envelope_is_removed(store, raw):
    store.set(PARTIAL_CACHE_KEY, raw)
    cache = CacheStore(store)

    assert cache.read(PARTIAL_CACHE_KEY) is None
    assert store.get(PARTIAL_CACHE_KEY) is None


def test_non_numeric_offset_is_removed(store):
    store.set(OFFSET_CACHE_KEY, json.dumps({'offset': 'abc', 'timestamp': 1}))
    assert CacheStore(store).read_offset() is None
    assert store.get(OFFSET_CACHE_KEY) is None


def test_entries_never_expire_by_default(store, clock):
    cache = CacheStore(store, clock=clock.time)
    cache.write(FINAL_CACHE_KEY, [1])
    clock.advance(10 * 365 * 86400)
    assert cache.read(FINAL_CACHE_KEY) == [1]


def test_ttl_expires_entries(store, clock):
    cache = CacheStore(store, ttl_seconds=3600, clock=clock.time)
    cache.write(FINAL_CACHE_KEY, [1])

    clock.advance(3599)
    assert cache.read(FINAL_CACHE_KEY) == [1]

    clock.advance(2)
    assert cache.read(FINAL_CACHE_KEY) is None
    assert store.get(FINAL_CACHE_KEY) is None


def test_clear_progress_keeps_final_cache(store):
    cache = CacheStore(store)
    cache.write(FINAL_CACHE_KEY, {'galaxies': []})
    cache.write(PARTIAL_CACHE_KEY, [{'pageName': 'A'}])
    cache.write_offset(500)

    cache.clear_progress()

    assert cache.read(PARTIAL_CACHE_KEY) is None
    assert cache.read_offset() is None
    assert cache.read(FINAL_CACHE_KEY) == {'galaxies': []}


def test_sqlite_store_persists_between_instances(tmp_path):
    path = tmp_path / 'nested' / 'cache.db'
    SqliteKeyValueStore(path).set('key', 'one')
    store = SqliteKeyValueStore(path)
    store.set('key', 'two')

    assert store.get('key') == 'two'
    assert store.keys() == ['key']
    store.delete('key')
    assert store.get('key') is None
