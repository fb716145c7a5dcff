"""Request/response operations exposed to a server or UI.

Each method takes the decoded request body (a dict with camelCase keys) and
returns the response body. Input errors raise ``ValueError`` (including the
``Malformed*`` errors); scrape errors raise the kinds in
:mod:`jobmerge.errors`.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from jobmerge.bundler import bundle, canonical_jobs
from jobmerge.collect import make_scraper
from jobmerge.config import load_settings
from jobmerge.errors import JobNotFoundError, MalformedResumeError
from jobmerge.log import get_logger
from jobmerge.matcher import ProgressCallback, coerce_job, match_all, relevant
from jobmerge.models import Job, ParsedResume
from jobmerge.scorer import score
from jobmerge.scraping import ScrapeOrchestrator
from jobmerge.search import SearchFilters, job_stats, list_categories, list_companies, search_jobs
from jobmerge.sources import JobSource, MockSource
from jobmerge.store import JobStore
from jobmerge.vocabulary import DEFAULT_VOCABULARY, TokenSource

log = get_logger(__name__)


def _int_param(value: Any, default: int, name: str, minimum: int = 1) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return number


def _resume_from(request: Mapping[str, Any]) -> ParsedResume:
    payload = request.get("parsedResume")
    if payload is None:
        raise MalformedResumeError("No parsed resume data provided")
    if isinstance(payload, ParsedResume):
        return payload
    return ParsedResume.from_dict(payload)


def _resume_summary(resume: ParsedResume, limit: int = 10) -> dict[str, Any]:
    return {
        "skills": list(resume.skills[:limit]),
        "technologies": list(resume.technologies[:limit]),
        "experienceLevel": resume.experience_level.value if resume.experience_level else None,
        "yearsOfExperience": resume.years_of_experience,
    }


def _newest_first(job: Job) -> float:
    posted = job.posted_datetime()
    return -posted.timestamp() if posted is not None else float("inf")


class JobService:
    def __init__(
        self,
        store: JobStore | None = None,
        sources: Iterable[JobSource] | None = None,
        settings: dict[str, Any] | None = None,
        vocabulary: TokenSource | None = None,
        orchestrator: ScrapeOrchestrator | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.store = store if store is not None else JobStore()
        self.sources = list(sources) if sources is not None else [MockSource()]
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        scraping = self.settings["scraping"]
        self.orchestrator = orchestrator or ScrapeOrchestrator(
            make_scraper(self.sources, self.store),
            poll_interval=float(scraping["poll_interval"]),
            max_wait=float(scraping["max_wait"]),
        )

    @property
    def _weights(self) -> Mapping[str, float]:
        return self.settings["matching"]["weights"]

    @property
    def _threshold(self) -> float:
        return float(self.settings["matching"]["relevance_threshold"])

    # ── Search ───────────────────────────────────────────────────────────

    def search(self, request: Mapping[str, Any]) -> dict[str, Any]:
        query = str(request.get("query") or request.get("q") or "").strip()
        if not query:
            raise ValueError("Search query is required")
        search_cfg = self.settings["search"]
        page = _int_param(request.get("page"), 1, "page")
        limit = min(
            _int_param(request.get("limit"), int(search_cfg["default_limit"]), "limit"),
            int(search_cfg["max_limit"]),
        )
        filters = SearchFilters.from_dict(dict(request))
        return search_jobs(self.store.all(), query, page, limit, filters).to_dict()

    def stats(self) -> dict[str, Any]:
        return job_stats(self.store.all())

    def companies(self) -> dict[str, Any]:
        return {"companies": list_companies(self.store.all())}

    def categories(self) -> dict[str, Any]:
        return {"categories": list_categories(self.store.all())}

    def job(self, job_id: str) -> dict[str, Any]:
        job = self.store.get(str(job_id or "").strip())
        if job is None:
            raise JobNotFoundError(f"Job {job_id!r} not found")
        return job.to_dict()

    # ── Scraping ─────────────────────────────────────────────────────────

    def start_scrape(self, request: Mapping[str, Any]) -> dict[str, Any]:
        query = str(request.get("searchQuery") or "").strip()
        if not query:
            raise ValueError("Search query is required")
        scraping = self.settings["scraping"]
        max_jobs = _int_param(request.get("maxJobs"), int(scraping["default_max_jobs"]), "maxJobs")
        log.info("Scrape requested for %r (max %d jobs)", query, max_jobs)
        status = self.orchestrator.start(query, max_jobs)
        return {
            "message": "Scraping started",
            "searchQuery": query,
            "status": status.status.value,
            "estimatedTime": scraping["estimated_time"],
        }

    def scrape_status(self) -> dict[str, Any]:
        return self.orchestrator.status.to_dict()

    def scrape_and_search(self, request: Mapping[str, Any]) -> dict[str, Any]:
        query = str(request.get("searchQuery") or "").strip()
        if not query:
            raise ValueError("Search query is required")
        scraping = self.settings["scraping"]
        max_jobs = _int_param(request.get("maxJobs"), int(scraping["default_max_jobs"]), "maxJobs")
        max_wait = request.get("maxWaitTime")
        limit = int(self.settings["search"]["default_limit"])

        status, page = self.orchestrator.scrape_and_search(
            query,
            lambda q: search_jobs(self.store.all(), q, 1, limit),
            max_jobs=max_jobs,
            max_wait=float(max_wait) if max_wait is not None else None,
        )
        return {
            "scrapingResult": status.to_dict(),
            "jobs": page.to_dict()["jobs"],
            "searchQuery": query,
        }

    # ── Matching ─────────────────────────────────────────────────────────

    def match_job(self, request: Mapping[str, Any]) -> dict[str, Any]:
        resume = _resume_from(request)
        payload = request.get("job")
        if payload is None:
            raise ValueError("Missing parsedResume or job data")
        details = score(resume, coerce_job(payload), vocabulary=self.vocabulary, weights=self._weights)
        return {"success": True, "matchDetails": details.to_dict()}

    def match_corpus(
        self,
        request: Mapping[str, Any],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Match the résumé against the stored corpus, or ``request["jobs"]``.

        ``canonicalOnly`` scores one posting per bundle instead of every
        site's copy.
        """
        resume = _resume_from(request)
        corpus: list[Any] = list(request["jobs"]) if request.get("jobs") is not None else self.store.all()
        if request.get("canonicalOnly"):
            jobs, rejects = [], []
            for item in corpus:
                try:
                    jobs.append(coerce_job(item))
                except (TypeError, ValueError):
                    rejects.append(item)
            # rejects still go through match_all so they show up as failures
            corpus = [*canonical_jobs(bundle(jobs)), *rejects]
            log.info("Matching %d canonical jobs (%d unreadable rows)", len(corpus) - len(rejects), len(rejects))

        result = match_all(
            resume,
            corpus,
            on_progress,
            threshold=self._threshold,
            vocabulary=self.vocabulary,
            weights=self._weights,
        )
        return {
            "success": True,
            "totalJobs": result.total_count,
            "matchedJobs": result.matched_count,
            "matches": [{"jobId": job_id, "matchDetails": d.to_dict()} for job_id, d in result.matches],
            "failures": [f.to_dict() for f in result.failures],
        }

    def match_jobs(
        self,
        request: Mapping[str, Any],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Stored jobs relevant to the résumé, with full payloads, best first.

        Only the ``max_corpus`` most recent stored jobs are scored. A job is
        relevant when it scores above the relevance threshold.
        """
        resume = _resume_from(request)
        cap = int(self.settings["matching"]["max_corpus"])
        jobs = sorted(self.store.all(), key=_newest_first)[:cap]
        result = match_all(
            resume,
            jobs,
            on_progress,
            threshold=self._threshold,
            vocabulary=self.vocabulary,
            weights=self._weights,
        )
        by_id = {job.id: job for job in jobs}
        hits = [
            {**by_id[job_id].to_dict(), "resumeMatch": details.to_dict()}
            for job_id, details in relevant(result, self._threshold)
        ]
        log.info("Found %d relevant jobs of %d", len(hits), result.total_count)
        return {
            "success": True,
            "totalJobs": result.total_count,
            "relevantJobs": len(hits),
            "matchedJobs": hits,
            "resumeSummary": _resume_summary(resume),
        }
