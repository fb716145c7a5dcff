"""Run a scrape: search every source for every expanded term, store new jobs."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

from jobmerge.log import get_logger
from jobmerge.models import Job
from jobmerge.roles import scraping_terms
from jobmerge.sources.base import JobSource
from jobmerge.store import JobStore

log = get_logger(__name__)


def collect(sources: Sequence[JobSource], store: JobStore, query: str, max_jobs: int = 10) -> int:
    """Scrape *query* across *sources* into *store*; return the number of new jobs.

    One failing source does not fail the scrape. It only fails when every
    source raised and nothing came back.
    """
    if not sources:
        raise RuntimeError("No job sources configured")
    terms = scraping_terms(query)
    if not terms:
        raise ValueError("Search query is required")

    log.info("Scraping %d term(s) across %d source(s): %s", len(terms), len(sources), ", ".join(terms))
    found: list[Job] = []
    seen: set[str] = set()
    failures = 0
    with ThreadPoolExecutor(max_workers=min(8, len(sources) * len(terms))) as pool:
        futures = {
            pool.submit(source.search, term, max_jobs): (source, term)
            for source in sources
            for term in terms
        }
        for future in as_completed(futures):
            source, term = futures[future]
            try:
                batch = future.result()
            except Exception as exc:
                failures += 1
                log.error("[%s] %r FAILED: %s", source.__class__.__name__, term, exc)
                continue
            log.info("[%s] %r returned %d jobs", source.__class__.__name__, term, len(batch))
            for job in batch:
                if job.id not in seen:
                    seen.add(job.id)
                    found.append(job)

    if failures == len(futures):
        raise RuntimeError(f"All {failures} source searches failed for {query!r}")

    added = store.add_many(found[:max_jobs])
    log.info("Scrape for %r complete: %d found, %d new", query, len(found), added)
    return added


def make_scraper(sources: Sequence[JobSource], store: JobStore) -> Callable[[str, int], int]:
    """Bind *sources* and *store* into the ``(query, max_jobs) -> count`` callable
    the orchestrator expects."""

    def _scrape(query: str, max_jobs: int) -> int:
        return collect(sources, store, query, max_jobs)

    return _scrape
