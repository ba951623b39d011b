import json

import pytest

from fakes import FakeCargoClient, FakeClock, failing, make_page
from nms_glyph_generator.cache_store import CacheStore, MemoryKeyValueStore
from nms_glyph_generator.config import DEFAULT_CONFIG
from nms_glyph_generator.pipeline import DirectoryPipeline
from nms_glyph_generator.scheduler import RequestScheduler
from nms_glyph_generator.snapshot import build_snapshot, build_snapshot_pipeline
from nms_glyph_generator.wiki_client import FetchError


def _pipeline(pages):
    clock = FakeClock()
    return DirectoryPipeline(
        client=FakeCargoClient(pages, clock=clock),
        cache=CacheStore(MemoryKeyValueStore(), clock=clock.time),
        scheduler=RequestScheduler(clock=clock.monotonic, sleep=clock.sleep),
    )


def test_snapshot_writes_default_dataset(tmp_path):
    output = tmp_path / 'public' / 'assets' / 'defaultData' / 'defaultData.json'
    pipeline = _pipeline({0: make_page(500), 500: make_page(5, start=500, galaxy='Calypso')})

    directory = build_snapshot(output, pipeline=pipeline)

    written = json.loads(output.read_text(encoding='utf-8'))
    assert written == directory.to_dict()
    assert written['galaxies'] == ['Calypso', 'Euclid']
    assert len(written['data']['Euclid']['regions']['Galactic Hub']) == 500
    assert not pipeline.scheduler.is_running()


def test_incomplete_crawl_is_not_written(tmp_path):
    output = tmp_path / 'defaultData.json'
    pipeline = _pipeline({0: make_page(500), 500: failing()})

    with pytest.raises(FetchError, match='stopped early'):
        build_snapshot(output, pipeline=pipeline)
    assert not output.exists()


def test_no_data_is_an_error(tmp_path):
    output = tmp_path / 'defaultData.json'
    with pytest.raises(FetchError):
        build_snapshot(output, pipeline=_pipeline({}))
    assert not output.exists()


def test_snapshot_pipeline_uses_memory_cache():
    pipeline = build_snapshot_pipeline(DEFAULT_CONFIG)
    assert isinstance(pipeline.cache.store, MemoryKeyValueStore)
    assert pipeline.scheduler.min_interval == 35
    assert pipeline.page_size == 500
