"""Keyword search over the job corpus, bundled and paginated."""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from jobmerge.bundler import bundle
from jobmerge.log import get_logger
from jobmerge.models import ExperienceLevel, Job, JobBundle, WorkMode
from jobmerge.roles import scraping_terms

log = get_logger(__name__)

POSTED_WITHIN_DAYS: dict[str, int] = {"24h": 1, "3d": 3, "7d": 7, "14d": 14}

# Per-term relevance multipliers by field
_TITLE_WEIGHT = 10
_COMPANY_WEIGHT = 5
_SNIPPET_WEIGHT = 2


@dataclass(frozen=True)
class SearchFilters:
    location: str = ""
    category: str = ""
    work_modes: tuple[WorkMode, ...] = ()
    experience: tuple[ExperienceLevel, ...] = ()
    company: str = ""
    salary_min: float | None = None
    salary_max: float | None = None
    posted_within: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchFilters":
        def _list(value: Any) -> list[str]:
            if not value:
                return []
            if isinstance(value, str):
                return [v for v in value.split(",") if v.strip()]
            return [str(v) for v in value]

        levels = tuple(
            lvl for lvl in (ExperienceLevel.parse(v) for v in _list(data.get("experience"))) if lvl
        )
        return cls(
            location=str(data.get("location") or ""),
            category=str(data.get("category") or ""),
            work_modes=tuple(WorkMode.parse(v) for v in _list(data.get("workMode"))),
            experience=levels,
            company=str(data.get("company") or ""),
            salary_min=float(data["salaryMin"]) if data.get("salaryMin") else None,
            salary_max=float(data["salaryMax"]) if data.get("salaryMax") else None,
            posted_within=str(data.get("postedWithin") or ""),
        )

    def accepts(self, job: Job, now: datetime) -> bool:
        if self.location and self.location.lower() not in job.location.lower():
            return False
        if self.category and self.category != "all" and job.category != self.category:
            return False
        if self.work_modes and job.work_mode not in self.work_modes:
            return False
        if self.experience and job.experience not in self.experience:
            return False
        if self.company and self.company.lower() not in job.company.lower():
            return False
        if self.salary_min is not None and (job.salary_min is None or job.salary_min < self.salary_min):
            return False
        if self.salary_max is not None and (job.salary_max is None or job.salary_max > self.salary_max):
            return False
        days = POSTED_WITHIN_DAYS.get(self.posted_within)
        if days:
            posted = job.posted_datetime()
            if posted is None or posted < now - timedelta(days=days):
                return False
        return True


@dataclass
class SearchPage:
    bundles: list[JobBundle] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0
    total_pages: int = 0
    search_query: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobs": [b.to_dict() for b in self.bundles],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "totalPages": self.total_pages,
            },
            "searchQuery": self.search_query,
        }


def _matches(job: Job, terms: list[str]) -> bool:
    haystack = " ".join(
        (job.title, job.company, job.description_snippet or "", job.description_full or "")
    ).lower()
    return any(t.lower() in haystack for t in terms)


def relevance(job: Job, terms: list[str]) -> int:
    """Earlier terms weigh more; title hits beat company hits beat snippet hits."""
    title = job.title.lower()
    company = job.company.lower()
    snippet = (job.description_snippet or "").lower()
    total = 0
    for idx, term in enumerate(terms):
        weight = len(terms) - idx
        t = term.lower()
        if t in title:
            total += weight * _TITLE_WEIGHT
        if t in company:
            total += weight * _COMPANY_WEIGHT
        if t in snippet:
            total += weight * _SNIPPET_WEIGHT
    return total


def _newest_first(job: Job) -> float:
    posted = job.posted_datetime()
    return -posted.timestamp() if posted else math.inf


def search_jobs(
    jobs: Iterable[Job],
    query: str = "",
    page: int = 1,
    limit: int = 20,
    filters: SearchFilters | None = None,
    now: datetime | None = None,
) -> SearchPage:
    """Find jobs for *query*, bundle them and return one page of bundles.

    The query is widened with role synonyms; a job matches when any term
    appears in its title, company or description. Results are ordered by
    relevance then recency before bundling, so ``total`` counts bundles.
    A page past the end is empty rather than an error.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")

    filters = filters or SearchFilters()
    now = now or datetime.now(timezone.utc)
    terms = scraping_terms(query) if query and query.strip() else []

    hits = [j for j in jobs if filters.accepts(j, now) and (not terms or _matches(j, terms))]
    if terms:
        hits.sort(key=lambda j: (-relevance(j, terms), _newest_first(j)))
    else:
        hits.sort(key=_newest_first)

    bundles = bundle(hits)
    total = len(bundles)
    start = (page - 1) * limit
    log.debug("Search %r: %d jobs, %d bundles, page %d", query, len(hits), total, page)
    return SearchPage(
        bundles=bundles[start:start + limit],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
        search_query=query,
    )


def job_stats(jobs: Iterable[Job]) -> dict[str, Any]:
    jobs = list(jobs)
    salary_min = [j.salary_min for j in jobs if j.salary_min is not None]
    salary_max = [j.salary_max for j in jobs if j.salary_max is not None]
    categories = Counter(j.category for j in jobs)
    sites = Counter(s.site for j in jobs for s in j.sources)
    return {
        "total_jobs": len(jobs),
        "unique_companies": len({j.company for j in jobs}),
        "unique_categories": len({j.category for j in jobs}),
        "unique_locations": len({j.location for j in jobs}),
        "avg_salary_min": sum(salary_min) / len(salary_min) if salary_min else None,
        "avg_salary_max": sum(salary_max) / len(salary_max) if salary_max else None,
        "categoryBreakdown": [{"category": c, "count": n} for c, n in categories.most_common()],
        "sourceBreakdown": [{"site": s, "count": n} for s, n in sites.most_common()],
    }


def list_companies(jobs: Iterable[Job]) -> list[dict[str, Any]]:
    counts = Counter(j.company for j in jobs)
    return [{"name": name, "jobCount": counts[name]} for name in sorted(counts)]


def list_categories(jobs: Iterable[Job]) -> list[dict[str, Any]]:
    counts = Counter(j.category for j in jobs if j.category)
    return [{"name": name, "jobCount": counts[name]} for name in sorted(counts)]
