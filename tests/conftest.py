"""Shared fixtures: job/résumé factories and a fake clock for polling loops."""
from __future__ import annotations

import os

# keep test runs from writing dated log files
os.environ.setdefault("JOBMERGE_LOG_FILE", "0")

from typing import Any

import pytest

from jobmerge.models import ExperienceLevel, Job, ParsedResume, Source
from jobmerge.sources.base import JobSource

DEFAULT_DESCRIPTION = "We need Python, React and SQL. Agile team, strong communication."


def make_job(
    job_id: str = "job-1",
    title: str = "Software Engineer",
    company: str = "Acme",
    sites: tuple[str, ...] = ("Seek",),
    posted_at: str | None = "2024-01-10T00:00:00Z",
    description: str | None = DEFAULT_DESCRIPTION,
    **kwargs: Any,
) -> Job:
    return Job(
        id=job_id,
        title=title,
        company=company,
        sources=tuple(
            Source(site=s, url=f"https://{s.lower()}.example/{job_id}", posted_at=posted_at)
            for s in sites
        ),
        description_full=description,
        posted_at=posted_at,
        **kwargs,
    )


class FakeClock:
    """Monotonic clock advanced only by its own ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StaticSource(JobSource):
    """Returns the same jobs for every query."""

    site = "Seek"

    def __init__(self, jobs: list[Job]) -> None:
        self.jobs = jobs
        self.queries: list[str] = []

    def search(self, query: str, limit: int = 20) -> list[Job]:
        self.queries.append(query)
        return self.jobs[:limit]


class BrokenSource(JobSource):
    def search(self, query: str, limit: int = 20) -> list[Job]:
        raise ConnectionError("site unreachable")


@pytest.fixture
def job_factory():
    return make_job


@pytest.fixture
def resume() -> ParsedResume:
    return ParsedResume(
        skills=("SQL", "Agile"),
        technologies=("Python", "React"),
        experience_level=ExperienceLevel.MID,
        years_of_experience=3,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
