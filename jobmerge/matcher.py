"""Score a résumé against a whole job corpus and rank the results."""
from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from jobmerge.log import get_logger
from jobmerge.models import (
    BatchResult,
    Job,
    JobBundle,
    MatchFailure,
    MatchProgress,
    ParsedResume,
    ResumeMatchDetails,
)
from jobmerge.scorer import score
from jobmerge.vocabulary import TokenSource

log = get_logger(__name__)

# A job counts as matched when its overall score is strictly above this.
DEFAULT_RELEVANCE_THRESHOLD = 40.0

ProgressCallback = Callable[[MatchProgress], None]

_LOG_EVERY = 50


def coerce_job(item: Job | JobBundle | Mapping[str, Any]) -> Job:
    """Job to score for one corpus item: bundles are scored by their canonical."""
    if isinstance(item, Job):
        return item
    if isinstance(item, JobBundle):
        return item.canonical_job
    if isinstance(item, Mapping):
        return Job.from_dict(item)
    raise TypeError(f"Cannot match against {type(item).__name__}")


def _item_id(item: Any) -> str | None:
    if isinstance(item, (Job, JobBundle)):
        return item.id
    if isinstance(item, Mapping) and item.get("id") is not None:
        return str(item["id"])
    return None


def match_all(
    resume: ParsedResume,
    jobs: Iterable[Job | JobBundle | Mapping[str, Any]],
    on_progress: ProgressCallback | None = None,
    *,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
    vocabulary: TokenSource | None = None,
    weights: Mapping[str, float] | None = None,
) -> BatchResult:
    """Score every item of *jobs* once, in input order.

    *on_progress* runs synchronously after each item with running
    ``current/total/matched`` counts. An item that fails to score is logged,
    recorded in ``failures`` and left out of ``matches``. Matches come back
    best first; equal scores keep input order.
    """
    items = list(jobs)
    total = len(items)
    result = BatchResult(total_count=total)
    scored: list[tuple[str, ResumeMatchDetails]] = []

    log.info("Matching resume against %d jobs (threshold %.0f)", total, threshold)
    for index, item in enumerate(items):
        try:
            job = coerce_job(item)
            details = score(resume, job, vocabulary=vocabulary, weights=weights)
        except Exception as exc:
            job_id = _item_id(item)
            log.warning("Skipping job %s (#%d): %s", job_id or "?", index, exc)
            result.failures.append(MatchFailure(index=index, job_id=job_id, error=str(exc)))
        else:
            scored.append((job.id, details))
            if details.overall_score > threshold:
                result.matched_count += 1

        current = index + 1
        if on_progress is not None:
            on_progress(MatchProgress(current=current, total=total, matched=result.matched_count))
        if current % _LOG_EVERY == 0 or current == total:
            log.info(
                "Progress: %d/%d jobs (%.1f%%) - %d matches so far",
                current, total, current / total * 100, result.matched_count,
            )

    # sorted() is stable, so ties keep input order
    result.matches = sorted(scored, key=lambda pair: -pair[1].overall_score)
    if result.matches:
        log.info(
            "Matching complete: %d above threshold of %d scored, top %d%%",
            result.matched_count, len(result.matches), result.matches[0][1].match_percentage,
        )
    return result


def relevant(result: BatchResult, threshold: float = DEFAULT_RELEVANCE_THRESHOLD) -> list[tuple[str, ResumeMatchDetails]]:
    """Matches scoring strictly above *threshold*, best first."""
    return [(job_id, d) for job_id, d in result.matches if d.overall_score > threshold]
