"""In-memory job store shared by scrapes, search and matching."""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Iterable

from jobmerge.errors import MalformedJobError
from jobmerge.log import get_logger
from jobmerge.models import Job

log = get_logger(__name__)


def _urls(job: Job) -> list[str]:
    return [s.url.strip() for s in job.sources if s.url and s.url.strip()]


def _recency(job: Job) -> float:
    posted = job.posted_datetime()
    return posted.timestamp() if posted is not None else float("-inf")


class JobStore:
    """Jobs keyed by id, in insertion order.

    A posting URL belongs to one stored job. When a new job shares a URL with
    a stored one, the more recently posted of the two is kept; on a tie the
    stored job stays. Writers take the lock; readers get a list copy, so a
    search running while a scrape adds jobs sees either the old or the new
    corpus.
    """

    def __init__(self, jobs: Iterable[Job] = ()) -> None:
        self._jobs: dict[str, Job] = {}
        self._by_url: dict[str, str] = {}
        self._lock = threading.Lock()
        self.add_many(jobs)

    def add(self, job: Job) -> bool:
        """Store *job*; False when its id is present or an equally recent job has its URL."""
        with self._lock:
            return self._put(job)

    def add_many(self, jobs: Iterable[Job]) -> int:
        with self._lock:
            return sum(1 for job in jobs if self._put(job))

    def _put(self, job: Job) -> bool:
        # caller holds the lock
        if job.id in self._jobs:
            return False
        clashes = {self._by_url[u] for u in _urls(job) if u in self._by_url}
        if clashes:
            newest = max((self._jobs[i] for i in clashes), key=_recency)
            if _recency(job) <= _recency(newest):
                log.debug("Skipping %s: URL already stored under %s", job.id, newest.id)
                return False
            for old_id in clashes:
                self._drop(old_id)
                log.debug("Replaced %s with newer posting %s", old_id, job.id)
        self._jobs[job.id] = job
        for url in _urls(job):
            self._by_url[url] = job.id
        return True

    def _drop(self, job_id: str) -> None:
        old = self._jobs.pop(job_id)
        for url in _urls(old):
            if self._by_url.get(url) == job_id:
                del self._by_url[url]

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def all(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()
            self._by_url.clear()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    @classmethod
    def from_file(cls, path: Path) -> "JobStore":
        """Load a JSON array of job payloads; malformed entries are skipped."""
        with open(path, "r", encoding="utf-8") as f:
            rows: Any = json.load(f)
        if isinstance(rows, dict):
            rows = rows.get("jobs", [])
        if not isinstance(rows, list):
            raise ValueError(f"{path.name} must contain a JSON array of jobs")
        store = cls()
        skipped = 0
        for row in rows:
            try:
                store.add(Job.from_dict(row))
            except MalformedJobError as exc:
                skipped += 1
                log.warning("Skipping job from %s: %s", path.name, exc)
        log.info("Loaded %d jobs from %s (%d skipped)", len(store), path.name, skipped)
        return store
