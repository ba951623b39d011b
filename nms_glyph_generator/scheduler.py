"""
Single-flight request scheduler.

All directory fetches are queued on one worker thread and executed in
submission order. Outbound page requests additionally go through
``request_slot()``, which keeps a minimum interval between the end of one
request and the start of the next.
"""

import logging
import queue
import time
from concurrent.futures import Future
from contextlib import contextmanager
from threading import Event, Lock, Thread, get_ident
from typing import Callable, Optional

logger = logging.getLogger('nms_glyphs.scheduler')

MIN_REQUEST_INTERVAL = 35.0  # seconds between fetches


class RequestScheduler:
    """FIFO job queue with one worker and a request rate limit."""

    def __init__(self, min_interval: float = MIN_REQUEST_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the scheduler.

        Args:
            min_interval: Seconds between the end of a request and the next one
            clock: Monotonic clock in seconds
            sleep: Blocking sleep used for rate-limit waits
        """
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep

        self._queue: "queue.Queue" = queue.Queue()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._thread_lock = Lock()
        self._worker_ident: Optional[int] = None
        self._last_request_end: Optional[float] = None

    # =========================================================================
    # Job queue
    # =========================================================================

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """Queue ``fn`` behind any pending jobs and return its future."""
        future: Future = Future()
        self._queue.put((future, fn, args, kwargs))
        self._ensure_worker()
        return future

    def run(self, fn: Callable, *args, **kwargs):
        """Queue ``fn`` and block until it has run."""
        if get_ident() == self._worker_ident:
            # Already on the worker; queuing would deadlock
            return fn(*args, **kwargs)
        return self.submit(fn, *args, **kwargs).result()

    def pending(self) -> int:
        """Number of jobs waiting behind the running one."""
        return self._queue.qsize()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_worker(self):
        with self._thread_lock:
            # A worker that was asked to stop but is still finishing a job
            # keeps serving, so there is never more than one worker
            self._stop_event.clear()
            if self.is_running():
                return
            self._thread = Thread(target=self._work_loop, name='nms-glyphs-scheduler', daemon=True)
            self._thread.start()

    def _should_exit(self) -> bool:
        if not self._stop_event.is_set():
            return False
        with self._thread_lock:
            if not self._stop_event.is_set():
                return False
            self._thread = None
            self._worker_ident = None
            return True

    def _work_loop(self):
        """Main worker loop (runs in background thread)."""
        self._worker_ident = get_ident()
        while not self._should_exit():
            try:
                job = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            future, fn, args, kwargs = job
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                logger.error(f"Scheduled job failed: {e}")
                future.set_exception(e)
            else:
                future.set_result(result)

    def stop(self, timeout: float = 5.0):
        """
        Stop the worker and cancel jobs that have not started.

        A job that is already running is allowed to finish; the worker
        exits afterwards unless new work is submitted in the meantime.
        """
        self._stop_event.set()
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                break
            job[0].cancel()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Scheduler worker still busy after stop()")

    # =========================================================================
    # Rate limiting
    # =========================================================================

    def seconds_until_ready(self) -> float:
        """Seconds left before the next request may start."""
        if self._last_request_end is None:
            return 0.0
        elapsed = self._clock() - self._last_request_end
        return max(0.0, self.min_interval - elapsed)

    def wait_for_slot(self):
        delay = self.seconds_until_ready()
        if delay > 0:
            logger.info(f"Waiting {delay:.1f}s before next request...")
            self._sleep(delay)

    @contextmanager
    def request_slot(self):
        """Wait for the rate limit, then record when the request ended."""
        self.wait_for_slot()
        try:
            yield
        finally:
            self._last_request_end = self._clock()
