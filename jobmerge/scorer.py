"""Score a parsed résumé against a job posting with itemized match details."""
from __future__ import annotations

from typing import Mapping

from jobmerge.errors import MalformedJobError
from jobmerge.models import ExperienceLevel, Job, ParsedResume, ResumeMatchDetails
from jobmerge.vocabulary import (
    DEFAULT_VOCABULARY,
    JobTokens,
    TokenSource,
    contains_term,
    normalize_term,
)

MAX_SCORE = 100.0

# Share of MAX_SCORE each factor can contribute. Normalized by their sum, so
# custom weights only need to be proportional.
DEFAULT_WEIGHTS: dict[str, float] = {
    "skills": 0.45,
    "technologies": 0.30,
    "experience": 0.25,
}

# Level a job gets when the posting does not state one.
DEFAULT_JOB_LEVEL = ExperienceLevel.MID

# How many matched terms a reason line lists
_REASON_PREVIEW = 5


def _matched(resume_terms: tuple[str, ...], job_terms: frozenset[str], tokens: JobTokens) -> list[str]:
    """Résumé terms present in the job, in résumé order."""
    normalized = dict.fromkeys(t for t in (normalize_term(r) for r in resume_terms) if t)
    return [t for t in normalized if t in job_terms or tokens.contains(t)]


def _missing(job_terms: frozenset[str], covered: list[str]) -> list[str]:
    """Sorted job terms the résumé lacks.

    *covered* holds every term the résumé matched, whichever list it came
    from, so "sql" filed as a technology still covers the job's "sql" skill.
    A job term inside a matched phrase ("react" within "react native") is
    covered too.
    """
    seen = set(covered)
    return sorted(
        t for t in job_terms
        if t not in seen and not any(_is_within(t, m) for m in covered)
    )


def _is_within(term: str, phrase: str) -> bool:
    return term != phrase and contains_term(phrase, term)


def _ratio(matched: list[str], missing: list[str]) -> float:
    required = len(matched) + len(missing)
    if not required:
        return 0.0
    return len(matched) / required


def experience_matches(resume_level: ExperienceLevel, job_level: ExperienceLevel) -> bool:
    """Same level, or the résumé is exactly one step above the job."""
    return resume_level.rank - job_level.rank in (0, 1)


def _preview(terms: list[str]) -> str:
    shown = ", ".join(terms[:_REASON_PREVIEW])
    if len(terms) > _REASON_PREVIEW:
        shown += f" (+{len(terms) - _REASON_PREVIEW} more)"
    return shown


def _normalized_weights(weights: Mapping[str, float] | None) -> dict[str, float]:
    merged = dict(DEFAULT_WEIGHTS)
    if weights:
        merged.update({k: float(v) for k, v in weights.items() if k in DEFAULT_WEIGHTS})
    total = sum(merged.values())
    if total <= 0:
        raise ValueError("Score weights must sum to a positive number")
    return {k: v / total for k, v in merged.items()}


def score(
    resume: ParsedResume,
    job: Job,
    vocabulary: TokenSource | None = None,
    weights: Mapping[str, float] | None = None,
) -> ResumeMatchDetails:
    """Compare *resume* with *job*.

    Pure for a given vocabulary: the same inputs always produce the same
    details, reasons included. Empty skill or technology lists contribute 0;
    only a job without any description text is rejected as malformed.
    """
    if resume is None or job is None:
        raise ValueError("score() requires both a resume and a job")
    if not job.has_description:
        raise MalformedJobError(f"Job {job.id!r} has no description")

    vocabulary = vocabulary or DEFAULT_VOCABULARY
    w = _normalized_weights(weights)
    tokens = vocabulary.tokens_for(job)

    skills_matched = _matched(resume.skills, tokens.skills, tokens)
    tech_matched = _matched(resume.technologies, tokens.technologies, tokens)
    covered = skills_matched + tech_matched
    skills_missing = _missing(tokens.skills, covered)
    tech_missing = _missing(tokens.technologies, covered)

    resume_level = resume.experience_level or ExperienceLevel.from_years(resume.years_of_experience)
    job_level = job.experience or DEFAULT_JOB_LEVEL
    level_match = experience_matches(resume_level, job_level)

    # --- Composite score ---
    raw = 0.0
    raw += w["skills"] * _ratio(skills_matched, skills_missing)
    raw += w["technologies"] * _ratio(tech_matched, tech_missing)
    if level_match:
        raw += w["experience"]
    overall = round(min(max(raw, 0.0), 1.0) * MAX_SCORE, 2)

    # --- Reasons, one per factor, fixed order ---
    reasons: list[str] = []
    skills_required = len(skills_matched) + len(skills_missing)
    if skills_matched:
        reasons.append(
            f"Matches {len(skills_matched)} of {skills_required} required skills: "
            f"{_preview(skills_matched)}"
        )
    elif skills_required:
        reasons.append(f"Matches 0 of {skills_required} required skills")

    tech_required = len(tech_matched) + len(tech_missing)
    if tech_matched:
        reasons.append(
            f"Uses {len(tech_matched)} of {tech_required} listed technologies: "
            f"{_preview(tech_matched)}"
        )
    elif tech_required:
        reasons.append(f"Uses 0 of {tech_required} listed technologies")

    if level_match:
        reasons.append(f"Experience level aligned ({resume_level.value} for a {job_level.value} role)")
    else:
        reasons.append(f"Experience level differs ({resume_level.value} vs {job_level.value} role)")

    return ResumeMatchDetails(
        overall_score=overall,
        skills_matched=tuple(skills_matched),
        skills_missing=tuple(skills_missing),
        technologies_matched=tuple(tech_matched),
        technologies_missing=tuple(tech_missing),
        experience_level_match=level_match,
        experience_level=resume_level.value,
        job_experience_level=job_level.value,
        match_reasons=tuple(reasons),
        match_percentage=to_percentage(overall),
    )


def to_percentage(overall_score: float) -> int:
    """Whole-number percentage; non-decreasing in *overall_score*."""
    return int(min(max(overall_score, 0.0), MAX_SCORE) + 0.5)
