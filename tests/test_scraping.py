"""Tests for the scrape state machine and the polling loop."""
from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from jobmerge.errors import ScrapeFailedError, ScrapeInProgressError, ScrapeTimeoutError
from jobmerge.models import ScrapeState, ScrapingStatus
from jobmerge.scraping import ScrapeOrchestrator, poll_until_terminal

from conftest import FakeClock

FIXED_NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def _sync(scraper, **kwargs) -> ScrapeOrchestrator:
    return ScrapeOrchestrator(scraper, background=False, now=lambda: FIXED_NOW, **kwargs)


def test_timeout_lands_on_deadline_without_late_polls(fake_clock: FakeClock) -> None:
    polled_at: list[float] = []

    def fetch() -> ScrapingStatus:
        polled_at.append(fake_clock())
        return ScrapingStatus(status=ScrapeState.STARTED)

    with pytest.raises(ScrapeTimeoutError, match="maximum wait time exceeded"):
        poll_until_terminal(fetch, max_wait=120, poll_interval=2, clock=fake_clock, sleep=fake_clock.sleep)

    assert fake_clock.now == 120
    assert max(polled_at) <= 120
    assert polled_at[:3] == [0, 2, 4]
    assert len(polled_at) == 61


def test_last_sleep_is_cut_to_deadline(fake_clock: FakeClock) -> None:
    polled_at: list[float] = []

    def fetch() -> ScrapingStatus:
        polled_at.append(fake_clock())
        return ScrapingStatus(status=ScrapeState.STARTED)

    with pytest.raises(ScrapeTimeoutError):
        poll_until_terminal(fetch, max_wait=5, poll_interval=2, clock=fake_clock, sleep=fake_clock.sleep)

    assert polled_at == [0, 2, 4, 5]
    assert fake_clock.sleeps == [2, 2, 1]


def test_polling_returns_first_terminal_status(fake_clock: FakeClock) -> None:
    def fetch() -> ScrapingStatus:
        if fake_clock() >= 10:
            return ScrapingStatus(status=ScrapeState.COMPLETED, jobs_found=7)
        return ScrapingStatus(status=ScrapeState.STARTED)

    status = poll_until_terminal(fetch, max_wait=120, poll_interval=2, clock=fake_clock, sleep=fake_clock.sleep)

    assert status.jobs_found == 7
    assert fake_clock.now == 10


def test_polling_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError):
        poll_until_terminal(ScrapingStatus, poll_interval=0)
    with pytest.raises(ValueError):
        poll_until_terminal(ScrapingStatus, max_wait=-1)


def test_successful_scrape_completes() -> None:
    orch = _sync(lambda query, max_jobs: 3, site="Seek")

    assert orch.status.status is ScrapeState.IDLE
    status = orch.start("python", max_jobs=5)

    assert status.status is ScrapeState.COMPLETED
    assert status.jobs_found == 3
    assert status.search_query == "python"
    assert status.to_dict() == {
        "status": "completed",
        "site": "Seek",
        "searchQuery": "python",
        "jobsFound": 3,
        "startedAt": FIXED_NOW.isoformat(),
        "completedAt": FIXED_NOW.isoformat(),
    }


def test_collaborator_error_moves_to_failed() -> None:
    calls: list[str] = []

    def scraper(query: str, max_jobs: int) -> int:
        calls.append(query)
        if len(calls) == 1:
            raise RuntimeError("site blocked us")
        return 1

    orch = _sync(scraper)
    status = orch.start("python")

    assert status.status is ScrapeState.FAILED
    assert status.error == "site blocked us"
    assert status.jobs_found is None

    # orchestrator survives and can run again
    assert orch.start("python").status is ScrapeState.COMPLETED


@pytest.mark.parametrize("bad_count", [None, "lots", True])
def test_scraper_without_count_moves_to_failed(bad_count) -> None:
    orch = ScrapeOrchestrator(lambda q, n: bad_count)
    try:
        orch.start("python")
        orch.shutdown(wait=True)

        status = orch.status
        assert status.status is ScrapeState.FAILED
        assert status.error
        assert status.jobs_found is None
        assert orch.acknowledge().status is ScrapeState.IDLE
    finally:
        orch.shutdown()


def test_start_while_running_is_rejected() -> None:
    release = threading.Event()

    def scraper(query: str, max_jobs: int) -> int:
        release.wait(5)
        return 2

    orch = ScrapeOrchestrator(scraper)
    try:
        assert orch.start("python").status is ScrapeState.STARTED
        with pytest.raises(ScrapeInProgressError):
            orch.start("java")
        with pytest.raises(ScrapeInProgressError):
            orch.acknowledge()

        release.set()
        status = orch.wait_for_completion(max_wait=5, poll_interval=0.01)
        assert status.status is ScrapeState.COMPLETED
        assert status.search_query == "python"
        assert orch.start("java").search_query == "java"
    finally:
        release.set()
        orch.shutdown()


def test_wait_times_out_while_scrape_keeps_running(fake_clock: FakeClock) -> None:
    release = threading.Event()
    orch = ScrapeOrchestrator(
        lambda query, max_jobs: release.wait(5) and 4,
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )
    try:
        orch.start("python")
        with pytest.raises(ScrapeTimeoutError):
            orch.wait_for_completion()
        assert fake_clock.now == 120

        # completion after the caller gave up still lands in the status
        release.set()
        orch.shutdown(wait=True)
        assert orch.status.status is ScrapeState.COMPLETED
        assert orch.status.jobs_found == 4
    finally:
        release.set()
        orch.shutdown()


def test_acknowledge_returns_to_idle() -> None:
    orch = _sync(lambda query, max_jobs: 0)
    orch.start("python")

    assert orch.acknowledge().status is ScrapeState.IDLE
    assert orch.status.to_dict() == {"status": "idle"}


@pytest.mark.parametrize("query, max_jobs", [("", 10), ("   ", 10), ("python", 0)])
def test_start_validates_input(query: str, max_jobs: int) -> None:
    orch = _sync(lambda q, n: 0)
    with pytest.raises(ValueError):
        orch.start(query, max_jobs)
    assert orch.status.status is ScrapeState.IDLE


def test_scrape_and_search_runs_search_on_fresh_data() -> None:
    corpus: list[str] = []

    def scraper(query: str, max_jobs: int) -> int:
        corpus.extend([f"{query}-1", f"{query}-2"])
        return 2

    orch = _sync(scraper)
    status, hits = orch.scrape_and_search(" python ", lambda q: [c for c in corpus if c.startswith(q)])

    assert status.jobs_found == 2
    assert hits == ["python-1", "python-2"]


def test_scrape_and_search_surfaces_failure() -> None:
    def scraper(query: str, max_jobs: int) -> int:
        raise RuntimeError("boom")

    orch = _sync(scraper)
    with pytest.raises(ScrapeFailedError, match="boom"):
        orch.scrape_and_search("python", lambda q: [])
