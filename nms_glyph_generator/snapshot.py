"""
Offline snapshot builder.

Crawls the whole Regions table with the same pipeline the generator uses
(without a persistent cache) and writes the default dataset file shipped
with the package.
"""

import logging
from pathlib import Path
from typing import Optional

from .cache_store import CacheStore, MemoryKeyValueStore
from .config import DEFAULT_CONFIG, get_default_data_path
from .directory import Directory, save_directory
from .pipeline import DirectoryPipeline
from .scheduler import MIN_REQUEST_INTERVAL, RequestScheduler
from .wiki_client import DEFAULT_API_URL, DEFAULT_PAGE_SIZE, CargoClient, FetchError

logger = logging.getLogger('nms_glyphs.snapshot')


def build_snapshot_pipeline(config: dict) -> DirectoryPipeline:
    """Pipeline backed by a throwaway in-memory cache."""
    wiki_config = config.get('wiki', {})
    client = CargoClient(
        api_url=wiki_config.get('api_url', DEFAULT_API_URL),
        timeout=wiki_config.get('timeout', 30),
        retries=wiki_config.get('retries', 0),
        user_agent=wiki_config.get('user_agent', 'NMS-Glyph-Generator/1.0')
    )
    return DirectoryPipeline(
        client=client,
        cache=CacheStore(MemoryKeyValueStore()),
        scheduler=RequestScheduler(
            min_interval=wiki_config.get('request_interval', MIN_REQUEST_INTERVAL)
        ),
        page_size=wiki_config.get('page_size', DEFAULT_PAGE_SIZE),
        min_page_rows=wiki_config.get('min_page_size', 50)
    )


def build_snapshot(output_path: Optional[Path] = None, config: Optional[dict] = None,
                   pipeline: Optional[DirectoryPipeline] = None) -> Directory:
    """
    Fetch the full directory and write it as the default dataset.

    Args:
        output_path: Destination file (default: the bundled defaultData.json)
        config: Configuration dict (default: DEFAULT_CONFIG)
        pipeline: Pipeline to crawl with (default: built from config)

    Returns:
        The directory that was written

    Raises:
        FetchError: if the crawl did not finish or produced no rows
    """
    config = config or DEFAULT_CONFIG
    output_path = Path(output_path) if output_path else get_default_data_path(config)
    pipeline = pipeline or build_snapshot_pipeline(config)

    logger.info("=== Starting defaultData.json update ===")
    try:
        result = pipeline.crawl(force_refresh=True)
    finally:
        pipeline.scheduler.stop()

    if not result.complete:
        raise FetchError(f"Crawl stopped early after {result.items} items, snapshot not written")
    if result.directory.is_empty():
        raise FetchError('No valid data could be fetched')

    save_directory(result.directory, output_path)

    logger.info(f"=== Data successfully saved to {output_path} ===")
    logger.info(f"Total galaxies: {len(result.directory.galaxies)}")
    logger.info(f"Total civilizations: {result.directory.civilization_count()}")
    return result.directory
