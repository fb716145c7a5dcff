"""Data models for jobs, bundles, résumés, match results and scrape status."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from jobmerge.errors import MalformedJobError, MalformedResumeError

KNOWN_SITES: tuple[str, ...] = (
    "Company", "LinkedIn", "Seek", "Indeed", "Glassdoor", "Jora", "Other",
)
_SITE_LOOKUP: dict[str, str] = {s.lower(): s for s in KNOWN_SITES}


class WorkMode(str, Enum):
    ON_SITE = "On-site"
    HYBRID = "Hybrid"
    REMOTE = "Remote"

    @classmethod
    def parse(cls, value: Any) -> "WorkMode":
        if isinstance(value, cls):
            return value
        key = str(value or "").lower().replace("_", "-").replace(" ", "-")
        if key in ("remote", "wfh", "work-from-home"):
            return cls.REMOTE
        if key == "hybrid":
            return cls.HYBRID
        return cls.ON_SITE


class ExperienceLevel(str, Enum):
    """Seniority ladder; declaration order is the ordering used for matching."""

    INTERNSHIP = "Internship"
    JUNIOR = "Junior"
    MID = "Mid"
    SENIOR = "Senior"
    LEAD = "Lead"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    @classmethod
    def parse(cls, value: Any, default: "ExperienceLevel | None" = None) -> "ExperienceLevel | None":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        if not key:
            return default
        return _LEVEL_ALIASES.get(key, default)

    @classmethod
    def from_years(cls, years: float) -> "ExperienceLevel":
        if years <= 0:
            return cls.INTERNSHIP
        if years < 2:
            return cls.JUNIOR
        if years < 5:
            return cls.MID
        if years < 8:
            return cls.SENIOR
        return cls.LEAD


_LEVEL_ALIASES: dict[str, ExperienceLevel] = {
    "internship": ExperienceLevel.INTERNSHIP,
    "intern": ExperienceLevel.INTERNSHIP,
    "junior": ExperienceLevel.JUNIOR,
    "entry": ExperienceLevel.JUNIOR,
    "entry level": ExperienceLevel.JUNIOR,
    "entry-level": ExperienceLevel.JUNIOR,
    "graduate": ExperienceLevel.JUNIOR,
    "mid": ExperienceLevel.MID,
    "mid-level": ExperienceLevel.MID,
    "mid level": ExperienceLevel.MID,
    "intermediate": ExperienceLevel.MID,
    "senior": ExperienceLevel.SENIOR,
    "lead": ExperienceLevel.LEAD,
    "principal": ExperienceLevel.LEAD,
    "staff": ExperienceLevel.LEAD,
}


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort timestamp parsing; ``None`` for anything unparseable.

    Accepts datetimes, epoch seconds and ISO-8601 strings (with or without a
    trailing ``Z``). Naive values are taken as UTC so every result compares.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present in *data* (camelCase or snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Source:
    site: str
    url: str = ""
    posted_at: str | None = None
    external_id: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Source":
        site = str(_first(data, "site", default="Other")).strip()
        return cls(
            site=_SITE_LOOKUP.get(site.lower(), site),
            url=str(_first(data, "url", "source_url", default="")),
            posted_at=_first(data, "postedAt", "posted_at"),
            external_id=str(_first(data, "externalId", "external_id", default="")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "site": self.site,
            "url": self.url,
            "postedAt": self.posted_at,
            "externalId": self.external_id,
        }


@dataclass(frozen=True)
class Job:
    id: str
    title: str
    company: str
    sources: tuple[Source, ...]
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    work_mode: WorkMode = WorkMode.ON_SITE
    category: str = ""
    experience: ExperienceLevel | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    description_snippet: str | None = None
    description_full: str | None = None
    posted_at: str | None = None
    logo_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sources", tuple(self.sources))
        if not self.sources:
            raise MalformedJobError(f"Job {self.id!r} must have at least one source")

    @property
    def identity_key(self) -> tuple[str, str]:
        """Grouping key for bundling: case-insensitive (title, company)."""
        return (self.title.casefold(), self.company.casefold())

    @property
    def description(self) -> str:
        parts = [p for p in (self.description_snippet, self.description_full) if p]
        return " ".join(parts)

    @property
    def has_description(self) -> bool:
        return self.description_snippet is not None or self.description_full is not None

    def has_source(self, site: str) -> bool:
        return any(s.site == site for s in self.sources)

    def posted_datetime(self) -> datetime | None:
        return parse_timestamp(self.posted_at)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Job":
        """Build a job from an API/database row.

        Accepts the camelCase wire format and the snake_case row format,
        including sources packed into a ``sources_json`` string.
        """
        if not isinstance(data, Mapping):
            raise MalformedJobError(f"Job payload must be a mapping, got {type(data).__name__}")
        missing = [k for k in ("id", "title", "company") if _first(data, k) in (None, "")]
        if missing:
            raise MalformedJobError(f"Job payload missing required field(s): {', '.join(missing)}")
        job_id = str(data["id"])

        snippet = _first(data, "descriptionSnippet", "description_snippet")
        full = _first(data, "descriptionFull", "description_full", "description")
        if snippet is None and full is None:
            raise MalformedJobError(f"Job {job_id!r} has no description")

        sources = _sources_from_payload(data)
        if not sources:
            raise MalformedJobError(f"Job {job_id!r} has no sources")

        salary_min = _opt_float(_first(data, "salaryMin", "salary_min"))
        salary_max = _opt_float(_first(data, "salaryMax", "salary_max"))
        return cls(
            id=job_id,
            title=str(data["title"]),
            company=str(data["company"]),
            sources=tuple(sources),
            location=str(_first(data, "location", default="")),
            latitude=_opt_float(_first(data, "latitude")),
            longitude=_opt_float(_first(data, "longitude")),
            work_mode=WorkMode.parse(_first(data, "workMode", "work_mode")),
            category=str(_first(data, "category", default="")),
            experience=ExperienceLevel.parse(_first(data, "experience")),
            salary_min=salary_min,
            salary_max=salary_max,
            description_snippet=None if snippet is None else str(snippet),
            description_full=None if full is None else str(full),
            posted_at=_first(data, "postedAt", "posted_at"),
            logo_url=_first(data, "logoUrl", "logo_url"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "workMode": self.work_mode.value,
            "category": self.category,
            "experience": self.experience.value if self.experience else None,
            "salaryMin": self.salary_min,
            "salaryMax": self.salary_max,
            "descriptionSnippet": self.description_snippet,
            "descriptionFull": self.description_full,
            "postedAt": self.posted_at,
            "logoUrl": self.logo_url,
            "sources": [s.to_dict() for s in self.sources],
        }


def _sources_from_payload(data: Mapping[str, Any]) -> list[Source]:
    raw = data.get("sources")
    if raw is None and isinstance(data.get("sources_json"), str):
        try:
            raw = json.loads(f"[{data['sources_json']}]")
        except json.JSONDecodeError as exc:
            raise MalformedJobError(f"Job {data.get('id')!r} has unreadable sources_json: {exc}") from exc
    if raw is None and data.get("site"):
        # single joined source row
        raw = [data]
    if not raw:
        return []
    if not isinstance(raw, list):
        raise MalformedJobError(f"Job {data.get('id')!r} sources must be a list")
    sources: list[Source] = []
    for entry in raw:
        if isinstance(entry, Source):
            sources.append(entry)
        elif isinstance(entry, Mapping):
            sources.append(Source.from_dict(entry))
        else:
            raise MalformedJobError(f"Job {data.get('id')!r} has an invalid source entry: {entry!r}")
    return sources


@dataclass(frozen=True)
class JobBundle:
    bundle_id: str
    canonical_job: Job
    duplicates: tuple[Job, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "duplicates", tuple(self.duplicates))

    @property
    def id(self) -> str:
        return self.canonical_job.id

    @property
    def jobs(self) -> tuple[Job, ...]:
        return (self.canonical_job, *self.duplicates)

    @property
    def sites(self) -> list[str]:
        """Every site carrying this role, canonical first, without repeats."""
        return list(dict.fromkeys(s.site for j in self.jobs for s in j.sources))

    def to_dict(self) -> dict[str, Any]:
        return {
            "bundleId": self.bundle_id,
            "canonicalJob": self.canonical_job.to_dict(),
            "duplicates": [d.to_dict() for d in self.duplicates],
        }


@dataclass(frozen=True)
class WorkEntry:
    title: str
    company: str | None = None
    duration: str | None = None
    description: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkEntry":
        desc = data.get("description") or ()
        if isinstance(desc, str):
            desc = (desc,)
        return cls(
            title=str(data.get("title") or ""),
            company=data.get("company"),
            duration=data.get("duration"),
            description=tuple(str(d) for d in desc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "company": self.company,
            "duration": self.duration,
            "description": list(self.description),
        }


@dataclass(frozen=True)
class ParsedResume:
    skills: tuple[str, ...] = ()
    technologies: tuple[str, ...] = ()
    experience_level: ExperienceLevel | None = None
    years_of_experience: float = 0.0
    experience: tuple[WorkEntry, ...] = ()
    education: tuple[str, ...] = ()
    summary: str = ""
    raw_text: str = ""

    def __post_init__(self) -> None:
        for name in ("skills", "technologies", "experience", "education"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        if self.experience_level is None:
            object.__setattr__(
                self, "experience_level", ExperienceLevel.from_years(self.years_of_experience)
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParsedResume":
        if not isinstance(data, Mapping):
            raise MalformedResumeError(
                f"Parsed resume must be a mapping, got {type(data).__name__}"
            )
        skills = _string_list(data, "skills")
        technologies = _string_list(data, "technologies")
        try:
            years = float(_first(data, "yearsOfExperience", "years_of_experience", default=0) or 0)
        except (TypeError, ValueError) as exc:
            raise MalformedResumeError(f"yearsOfExperience is not a number: {exc}") from exc

        history = data.get("experience") or []
        if not isinstance(history, list):
            raise MalformedResumeError("experience must be a list of work entries")
        entries = tuple(
            WorkEntry.from_dict(e) if isinstance(e, Mapping) else WorkEntry(title=str(e))
            for e in history
        )
        education = tuple(
            " ".join(str(v) for v in e.values() if v) if isinstance(e, Mapping) else str(e)
            for e in (data.get("education") or [])
        )
        return cls(
            skills=skills,
            technologies=technologies,
            experience_level=ExperienceLevel.parse(
                _first(data, "experienceLevel", "experience_level")
            ),
            years_of_experience=years,
            experience=entries,
            education=education,
            summary=str(data.get("summary") or ""),
            raw_text=str(_first(data, "rawText", "raw_text", default="")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "skills": list(self.skills),
            "technologies": list(self.technologies),
            "experienceLevel": self.experience_level.value if self.experience_level else None,
            "yearsOfExperience": self.years_of_experience,
            "experience": [e.to_dict() for e in self.experience],
            "education": list(self.education),
            "summary": self.summary,
            "rawText": self.raw_text,
        }


def _string_list(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise MalformedResumeError(f"{key} must be a list of strings")
    return tuple(str(v).strip() for v in value if str(v).strip())


@dataclass(frozen=True)
class ResumeMatchDetails:
    overall_score: float
    skills_matched: tuple[str, ...] = ()
    skills_missing: tuple[str, ...] = ()
    technologies_matched: tuple[str, ...] = ()
    technologies_missing: tuple[str, ...] = ()
    experience_level_match: bool = False
    experience_level: str | None = None
    job_experience_level: str | None = None
    match_reasons: tuple[str, ...] = ()
    match_percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "skillsMatched": list(self.skills_matched),
            "skillsMissing": list(self.skills_missing),
            "technologiesMatched": list(self.technologies_matched),
            "technologiesMissing": list(self.technologies_missing),
            "experienceLevelMatch": self.experience_level_match,
            "experienceLevel": self.experience_level,
            "jobExperienceLevel": self.job_experience_level,
            "matchReasons": list(self.match_reasons),
            "matchPercentage": self.match_percentage,
        }


class ScrapeState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScrapingStatus:
    status: ScrapeState = ScrapeState.IDLE
    site: str | None = None
    search_query: str | None = None
    jobs_found: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ScrapeState.COMPLETED, ScrapeState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status.value}
        if self.site is not None:
            out["site"] = self.site
        if self.search_query is not None:
            out["searchQuery"] = self.search_query
        if self.jobs_found is not None:
            out["jobsFound"] = self.jobs_found
        if self.started_at is not None:
            out["startedAt"] = self.started_at.isoformat()
        if self.completed_at is not None:
            out["completedAt"] = self.completed_at.isoformat()
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScrapingStatus":
        try:
            state = ScrapeState(str(data.get("status", "idle")).lower())
        except ValueError:
            state = ScrapeState.IDLE
        found = data.get("jobsFound")
        return cls(
            status=state,
            site=data.get("site"),
            search_query=data.get("searchQuery"),
            jobs_found=int(found) if found is not None else None,
            started_at=parse_timestamp(data.get("startedAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class MatchProgress:
    current: int
    total: int
    matched: int


@dataclass(frozen=True)
class MatchFailure:
    index: int
    job_id: str | None
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "jobId": self.job_id, "error": self.error}


@dataclass
class BatchResult:
    matches: list[tuple[str, ResumeMatchDetails]] = field(default_factory=list)
    matched_count: int = 0
    total_count: int = 0
    failures: list[MatchFailure] = field(default_factory=list)
