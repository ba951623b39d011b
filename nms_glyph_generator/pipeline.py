"""
Directory fetch pipeline.

Crawls the wiki's Regions table page by page through a RequestScheduler,
persisting progress after each page so an interrupted crawl resumes where it
stopped, and caches the finished directory.
"""

import logging
import time
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .cache_store import (
    FINAL_CACHE_KEY,
    PARTIAL_CACHE_KEY,
    CacheStore,
    SqliteKeyValueStore,
)
from .config import get_cache_path
from .directory import Directory, build_directory, load_directory, merge_directories
from .scheduler import MIN_REQUEST_INTERVAL, RequestScheduler
from .wiki_client import DEFAULT_API_URL, DEFAULT_PAGE_SIZE, CargoClient, FetchError, filter_valid_rows

logger = logging.getLogger('nms_glyphs.pipeline')

# A page with fewer raw rows than this is the last one
MIN_PAGE_ROWS = 50

# Rough number of claimed regions on the wiki, for progress display only
ESTIMATED_TOTAL = 4500

ProgressCallback = Callable[[int, int, float], None]


@dataclass
class CrawlResult:
    """Outcome of a crawl."""
    directory: Directory
    complete: bool
    items: int
    pages: int = 0
    from_cache: bool = False


class DirectoryPipeline:
    """Cache-first, resumable, rate-limited crawler for the region directory."""

    def __init__(self, client: Optional[CargoClient] = None,
                 cache: Optional[CacheStore] = None,
                 scheduler: Optional[RequestScheduler] = None,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 min_page_rows: int = MIN_PAGE_ROWS,
                 estimated_total: int = ESTIMATED_TOTAL,
                 on_progress: Optional[ProgressCallback] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the pipeline.

        Args:
            client: Cargo API client
            cache: Envelope cache (in-memory if omitted)
            scheduler: Request scheduler shared by all fetches of this pipeline
            page_size: Rows requested per page
            min_page_rows: Raw row count under which a page ends the crawl
            estimated_total: Total reported to the progress callback
            on_progress: Called with (items_so_far, estimated_total, start_time)
            clock: Wall clock used for the progress start time
        """
        self.client = client or CargoClient()
        self.cache = cache or CacheStore()
        self.scheduler = scheduler or RequestScheduler()
        self.page_size = page_size
        self.min_page_rows = min_page_rows
        self.estimated_total = estimated_total
        self.on_progress = on_progress
        self._clock = clock

        self.last_progress: Optional[Tuple[int, int, float]] = None
        self.crawling = False

    @classmethod
    def from_config(cls, config: dict, on_progress: Optional[ProgressCallback] = None) -> 'DirectoryPipeline':
        """Build a pipeline with a SQLite cache from a configuration dict."""
        wiki_config = config.get('wiki', {})
        cache_config = config.get('cache', {})

        client = CargoClient(
            api_url=wiki_config.get('api_url', DEFAULT_API_URL),
            timeout=wiki_config.get('timeout', 30),
            retries=wiki_config.get('retries', 0),
            user_agent=wiki_config.get('user_agent', 'NMS-Glyph-Generator/1.0')
        )
        store = SqliteKeyValueStore(get_cache_path(config))
        cache = CacheStore(store, ttl_seconds=cache_config.get('ttl_seconds'))
        scheduler = RequestScheduler(
            min_interval=wiki_config.get('request_interval', MIN_REQUEST_INTERVAL)
        )

        return cls(
            client=client,
            cache=cache,
            scheduler=scheduler,
            page_size=wiki_config.get('page_size', DEFAULT_PAGE_SIZE),
            min_page_rows=wiki_config.get('min_page_size', MIN_PAGE_ROWS),
            on_progress=on_progress
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def fetch_directory(self, force_refresh: bool = False) -> Directory:
        """
        Return the region directory, fetching it if it is not cached.

        Args:
            force_refresh: Skip the final-result cache

        Returns:
            Directory of every valid row collected so far

        Raises:
            FetchError: if no rows could be collected and nothing is cached
        """
        return self.crawl(force_refresh).directory

    def fetch_directory_async(self, force_refresh: bool = False) -> Future:
        """Queue a fetch and return a future resolving to the Directory."""
        return self.scheduler.submit(lambda: self._crawl(force_refresh).directory)

    def crawl(self, force_refresh: bool = False) -> CrawlResult:
        """Run a crawl on the scheduler and return its full result."""
        return self.scheduler.run(self._crawl, force_refresh)

    def refresh(self, base: Directory) -> Directory:
        """Fetch fresh data and merge it into ``base`` without losing entries."""
        fresh = self.fetch_directory(force_refresh=True)
        merged = merge_directories(base, fresh)
        logger.info(f"Refreshed directory: {len(merged.galaxies)} galaxies, "
                    f"{merged.region_count()} regions")
        return merged

    def load_seed(self, default_path: Path) -> Directory:
        """
        Load the initial directory without touching the network.

        The default dataset file is merged with the cached result of a
        previous crawl, if there is one.
        """
        seed = load_directory(default_path)
        cached = self._read_cached_directory()
        if cached is not None:
            seed = merge_directories(seed, cached)
        return seed

    # =========================================================================
    # Crawl
    # =========================================================================

    def _read_cached_directory(self) -> Optional[Directory]:
        raw = self.cache.read(FINAL_CACHE_KEY)
        if raw is None:
            return None
        try:
            return Directory.from_dict(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable directory cache: {e}")
            self.cache.remove(FINAL_CACHE_KEY)
            return None

    def _resume_state(self) -> Tuple[List[dict], int]:
        items = self.cache.read(PARTIAL_CACHE_KEY)
        offset = self.cache.read_offset()

        well_formed = isinstance(items, list) and all(isinstance(row, dict) for row in items)
        if items is not None and not well_formed:
            logger.warning("Discarding malformed partial rows")
        elif items is not None and offset is not None and offset >= 0:
            logger.info(f"Resuming crawl at offset {offset} with {len(items)} items")
            return items, offset
        elif items is not None or offset is not None:
            logger.warning("Incomplete resumption state, restarting crawl from offset 0")

        self.cache.clear_progress()
        return [], 0

    def _report_progress(self, items: int, start_time: float):
        self.last_progress = (items, self.estimated_total, start_time)
        if self.on_progress:
            try:
                self.on_progress(items, self.estimated_total, start_time)
            except Exception as e:
                logger.error(f"Progress callback error: {e}")

    def _crawl(self, force_refresh: bool = False) -> CrawlResult:
        if not force_refresh:
            cached = self._read_cached_directory()
            if cached is not None:
                logger.info("Using cached directory")
                return CrawlResult(directory=cached, complete=True,
                                   items=cached.region_count(), from_cache=True)

        items, offset = self._resume_state()
        start_time = self._clock()
        complete = False
        pages = 0

        self.crawling = True
        try:
            while True:
                try:
                    with self.scheduler.request_slot():
                        page = self.client.fetch_page(offset, self.page_size)
                except FetchError as e:
                    logger.error(f"Error fetching page at offset {offset}: {e}")
                    break

                pages += 1
                if not page:
                    logger.info("No more data available")
                    self._report_progress(len(items), start_time)
                    complete = True
                    break

                valid = filter_valid_rows(page)
                items.extend(valid)
                offset += self.page_size
                logger.info(f"Page {pages}: {len(page)} raw items, {len(valid)} valid items "
                            f"({len(items)} total)")

                if len(page) < self.min_page_rows:
                    logger.info("Last page reached")
                    complete = True
                    self._report_progress(len(items), start_time)
                    break

                self.cache.write(PARTIAL_CACHE_KEY, items)
                self.cache.write_offset(offset)
                self._report_progress(len(items), start_time)
        finally:
            self.crawling = False

        return self._finish(items, complete, pages)

    def _finish(self, items: List[dict], complete: bool, pages: int) -> CrawlResult:
        if complete:
            self.cache.clear_progress()

        if items:
            directory = build_directory(items)
            if complete:
                self.cache.write(FINAL_CACHE_KEY, directory.to_dict())
                logger.info(f"Crawl complete: {len(items)} items, {len(directory.galaxies)} galaxies")
            else:
                logger.warning(f"Crawl stopped early with {len(items)} items; progress kept for resume")
            return CrawlResult(directory=directory, complete=complete, items=len(items), pages=pages)

        cached = self._read_cached_directory()
        if cached is not None:
            logger.warning("No new data fetched, falling back to cached directory")
            return CrawlResult(directory=cached, complete=complete,
                               items=cached.region_count(), pages=pages, from_cache=True)

        raise FetchError('No valid data could be fetched')
