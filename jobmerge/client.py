"""HTTP client for a jobmerge server: start scrapes, poll status, search."""
from __future__ import annotations

import time
from typing import Any, Callable

import requests

from jobmerge.config import load_settings
from jobmerge.errors import (
    ScrapeFailedError,
    ScrapeInProgressError,
    ServerOfflineError,
    UpstreamError,
)
from jobmerge.log import get_logger
from jobmerge.models import ScrapeState, ScrapingStatus
from jobmerge.retry import retry
from jobmerge.scraping import poll_until_terminal

log = get_logger(__name__)


def _is_transient(exc: BaseException) -> bool:
    # timeouts and 5xx replies; 4xx will not change on a retry
    return not isinstance(exc, UpstreamError) or exc.is_transient


class ScrapingClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings = load_settings()
        api = settings["api"]
        self.base_url = (base_url or api["base_url"]).rstrip("/")
        self.timeout = float(timeout if timeout is not None else api["timeout"])
        self.health_timeout = float(api["health_timeout"])
        self.poll_interval = float(settings["scraping"]["poll_interval"])
        self.max_wait = float(settings["scraping"]["max_wait"])
        self.session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep

    # ── Transport ────────────────────────────────────────────────────────

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.ConnectionError as exc:
            log.error("%s %s unreachable: %s", method, url, exc)
            raise ServerOfflineError() from exc

        if not r.ok:
            try:
                data = r.json()
            except ValueError:
                data = {}
            message = (data.get("message") or data.get("error")) if isinstance(data, dict) else None
            message = message or f"HTTP error! status: {r.status_code}"
            log.warning("%s %s -> %d: %s", method, url, r.status_code, message)
            if r.status_code == 409:
                raise ScrapeInProgressError(message)
            raise UpstreamError(message, r.status_code)
        return r.json()

    @retry(
        max_attempts=3,
        base_delay=1.0,
        retryable=(requests.Timeout, UpstreamError),
        retry_if=_is_transient,
    )
    def _get_with_retry(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("GET", endpoint, params=params)

    def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            return self._get_with_retry(endpoint, params)
        except requests.Timeout as exc:
            raise ServerOfflineError("Backend server did not respond in time.") from exc

    # ── API ──────────────────────────────────────────────────────────────

    def check_server(self) -> bool:
        root = self.base_url.replace("/api/v1", "")
        try:
            r = self.session.get(f"{root}/health", timeout=self.health_timeout)
        except requests.RequestException as exc:
            log.debug("Health check failed: %s", exc)
            return False
        return r.ok

    def start_scraping(self, search_query: str, max_jobs: int = 10) -> dict[str, Any]:
        try:
            return self._request(
                "POST",
                "/scraping/scrape-on-demand",
                json={"searchQuery": search_query, "maxJobs": max_jobs},
            )
        except requests.Timeout as exc:
            raise ServerOfflineError("Backend server did not respond in time.") from exc

    def get_status(self) -> ScrapingStatus:
        return ScrapingStatus.from_dict(self._get("/scraping/scraping-status"))

    def search_jobs(self, search_query: str, page: int = 1, limit: int = 20) -> dict[str, Any]:
        return self._get(
            "/scraping/jobs/search",
            params={"q": search_query, "page": page, "limit": limit},
        )

    def wait_for_completion(
        self,
        max_wait: float | None = None,
        poll_interval: float | None = None,
    ) -> ScrapingStatus:
        return poll_until_terminal(
            self.get_status,
            max_wait=self.max_wait if max_wait is None else max_wait,
            poll_interval=self.poll_interval if poll_interval is None else poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    def scrape_and_search(
        self,
        search_query: str,
        max_jobs: int = 10,
        max_wait: float | None = None,
    ) -> dict[str, Any]:
        """Start a scrape, wait for it to finish, then search the fresh corpus."""
        if not self.check_server():
            raise ServerOfflineError()

        self.start_scraping(search_query, max_jobs)
        status = self.wait_for_completion(max_wait)
        if status.status is ScrapeState.FAILED:
            raise ScrapeFailedError(status.error or "Scraping failed")

        result = self.search_jobs(search_query)
        return {
            "scrapingResult": status.to_dict(),
            "jobs": result.get("jobs", []),
            "searchQuery": search_query,
        }
