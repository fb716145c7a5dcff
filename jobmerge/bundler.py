"""Collapse site-specific listings of the same role into job bundles."""
from __future__ import annotations

from typing import Iterable

from jobmerge.log import get_logger
from jobmerge.models import Job, JobBundle

log = get_logger(__name__)

PREFERRED_SITES: tuple[str, ...] = ("Company", "LinkedIn")


def _canonical_key(job: Job) -> tuple:
    """Sort key: employer listing, then LinkedIn, then earliest valid timestamp.

    Jobs without a parseable timestamp sort after every dated job, so they
    never win the timestamp rule.
    """
    site_rank = tuple(0 if job.has_source(site) else 1 for site in PREFERRED_SITES)
    posted = job.posted_datetime()
    if posted is None:
        return (*site_rank, 1, float("inf"))
    return (*site_rank, 0, posted.timestamp())


def _canonical_index(group: list[Job]) -> int:
    # min() keeps the first of equal keys, so ties fall back to input order
    return min(range(len(group)), key=lambda i: _canonical_key(group[i]))


def choose_canonical(group: list[Job]) -> Job:
    return group[_canonical_index(group)]


def bundle(jobs: Iterable[Job]) -> list[JobBundle]:
    """Group *jobs* into bundles keyed on case-insensitive (title, company).

    Single pass in input order: the first unconsumed job of a key opens a
    group that takes every later job with the same key. Bundles come out in
    first-seen order and every input job lands in exactly one bundle.
    """
    jobs = list(jobs)
    groups: dict[tuple[str, str], list[Job]] = {}
    for job in jobs:
        groups.setdefault(job.identity_key, []).append(job)

    bundles: list[JobBundle] = []
    for group in groups.values():
        index = _canonical_index(group)
        canonical = group[index]
        duplicates = group[:index] + group[index + 1 :]
        bundles.append(
            JobBundle(
                bundle_id=f"bundle-{canonical.id}",
                canonical_job=canonical,
                duplicates=tuple(duplicates),
            )
        )

    merged = len(jobs) - len(bundles)
    if merged:
        log.debug("Bundled %d jobs into %d bundles (%d duplicates)", len(jobs), len(bundles), merged)
    return bundles


def flatten(bundles: Iterable[JobBundle]) -> list[Job]:
    """Every job of every bundle, canonical first within each bundle."""
    return [job for b in bundles for job in b.jobs]


def canonical_jobs(bundles: Iterable[JobBundle]) -> list[Job]:
    return [b.canonical_job for b in bundles]
