"""On-demand scrape orchestration: one scrape in flight, polled to completion.

State machine::

    idle ──start──▶ started ──count──▶ completed
                       │
                       └──error──▶ failed

``completed`` and ``failed`` go back to ``started`` on the next start. A start
while ``started`` is rejected with :class:`ScrapeInProgressError`.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, TypeVar

from jobmerge.errors import ScrapeFailedError, ScrapeInProgressError, ScrapeTimeoutError
from jobmerge.log import get_logger
from jobmerge.models import ScrapeState, ScrapingStatus

log = get_logger(__name__)

T = TypeVar("T")

Scraper = Callable[[str, int], int]

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_WAIT = 120.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def poll_until_terminal(
    fetch_status: Callable[[], ScrapingStatus],
    max_wait: float = DEFAULT_MAX_WAIT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ScrapingStatus:
    """Poll *fetch_status* every *poll_interval* seconds until a terminal state.

    Returns the first ``completed``/``failed`` status. Raises
    :class:`ScrapeTimeoutError` once *max_wait* seconds have passed; the
    deadline is re-checked before every sleep and the last sleep is cut short
    to land on it, so no poll happens after the timeout.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be positive")
    if max_wait < 0:
        raise ValueError("max_wait must not be negative")

    deadline = clock() + max_wait
    polls = 0
    while True:
        status = fetch_status()
        polls += 1
        if status.is_terminal:
            log.debug("Scrape reached %s after %d poll(s)", status.status.value, polls)
            return status
        remaining = deadline - clock()
        if remaining <= 0:
            log.warning("Gave up waiting for scrape after %.1fs (%d polls)", max_wait, polls)
            raise ScrapeTimeoutError()
        sleep(min(poll_interval, remaining))


class ScrapeOrchestrator:
    """Owns the scrape status and the single scrape worker.

    *scraper* is the collaborator doing the actual scrape; it takes
    ``(query, max_jobs)`` and returns the number of jobs found, or raises.
    Status reads return immutable snapshots, so pollers never see a
    half-written status.
    """

    def __init__(
        self,
        scraper: Scraper,
        *,
        site: str | None = None,
        background: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _utcnow,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: float = DEFAULT_MAX_WAIT,
    ) -> None:
        self._scraper = scraper
        self._site = site
        self._background = background
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._status = ScrapingStatus()
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def status(self) -> ScrapingStatus:
        with self._lock:
            return self._status

    def start(self, query: str, max_jobs: int = 10, site: str | None = None) -> ScrapingStatus:
        """Move to ``started`` and launch the scrape.

        In background mode (the default) this returns straight away with the
        ``started`` snapshot; otherwise it returns once the scrape finished.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Search query is required")
        if max_jobs < 1:
            raise ValueError("max_jobs must be >= 1")

        with self._lock:
            if self._status.status is ScrapeState.STARTED:
                log.warning(
                    "Rejected scrape for %r: %r still running", query, self._status.search_query
                )
                raise ScrapeInProgressError(
                    f"A scrape for {self._status.search_query!r} is already in progress"
                )
            self._status = ScrapingStatus(
                status=ScrapeState.STARTED,
                site=site or self._site,
                search_query=query,
                started_at=self._now(),
            )
            started = self._status

        log.info("Starting on-demand scrape for %r (max %d jobs)", query, max_jobs)
        if self._background:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scrape")
            self._executor.submit(self._run, query, max_jobs)
            return started
        self._run(query, max_jobs)
        return self.status

    def _run(self, query: str, max_jobs: int) -> None:
        try:
            count = self._scraper(query, max_jobs)
            if count is None or isinstance(count, bool):
                raise ScrapeFailedError("Scraper returned no job count")
            jobs_found = int(count)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log.error("On-demand scrape for %r failed: %s", query, message)
            self._finish(ScrapeState.FAILED, error=message)
            return
        log.info("On-demand scrape for %r completed: %d jobs found", query, jobs_found)
        self._finish(ScrapeState.COMPLETED, jobs_found=jobs_found)

    def _finish(self, state: ScrapeState, *, jobs_found: int | None = None, error: str | None = None) -> None:
        with self._lock:
            self._status = replace(
                self._status,
                status=state,
                jobs_found=jobs_found,
                completed_at=self._now(),
                error=error,
            )

    def acknowledge(self) -> ScrapingStatus:
        """Return a finished scrape to ``idle``."""
        with self._lock:
            if self._status.status is ScrapeState.STARTED:
                raise ScrapeInProgressError("Cannot reset while a scrape is in progress")
            self._status = ScrapingStatus()
            return self._status

    def wait_for_completion(
        self,
        max_wait: float | None = None,
        poll_interval: float | None = None,
    ) -> ScrapingStatus:
        return poll_until_terminal(
            lambda: self.status,
            max_wait=self.max_wait if max_wait is None else max_wait,
            poll_interval=self.poll_interval if poll_interval is None else poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    def scrape_and_search(
        self,
        query: str,
        search: Callable[[str], T],
        max_jobs: int = 10,
        max_wait: float | None = None,
        poll_interval: float | None = None,
    ) -> tuple[ScrapingStatus, T]:
        """Start a scrape, wait for it, then run *search* over the fresh data."""
        self.start(query, max_jobs)
        status = self.wait_for_completion(max_wait, poll_interval)
        if status.status is ScrapeState.FAILED:
            raise ScrapeFailedError(status.error or "Scraping failed")
        return status, search(query.strip())

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
