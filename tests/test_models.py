"""Tests for payload coercion and wire formats of the data models."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jobmerge.errors import MalformedJobError, MalformedResumeError
from jobmerge.models import (
    ExperienceLevel,
    Job,
    ParsedResume,
    ScrapeState,
    ScrapingStatus,
    WorkMode,
    parse_timestamp,
)


def test_job_from_camel_case_payload() -> None:
    job = Job.from_dict({
        "id": 7,
        "title": "Backend Engineer",
        "company": "Acme",
        "workMode": "Remote",
        "experience": "senior",
        "salaryMin": "120000",
        "descriptionSnippet": "Go and Postgres",
        "postedAt": "2024-01-10T00:00:00Z",
        "sources": [{"site": "linkedin", "url": "https://linkedin.example/7", "externalId": "li-7"}],
    })

    assert job.id == "7"
    assert job.work_mode is WorkMode.REMOTE
    assert job.experience is ExperienceLevel.SENIOR
    assert job.salary_min == 120000.0
    assert job.description_full is None
    assert job.sources[0].site == "LinkedIn"
    assert job.sources[0].external_id == "li-7"
    assert job.to_dict()["sources"][0]["site"] == "LinkedIn"


def test_job_from_database_row_with_sources_json() -> None:
    job = Job.from_dict({
        "id": "42",
        "title": "Data Engineer",
        "company": "Beta",
        "work_mode": "hybrid",
        "description_full": "Spark pipelines",
        "sources_json": '{"site": "seek", "url": "u1"},{"site": "COMPANY", "url": "u2"}',
    })

    assert [s.site for s in job.sources] == ["Seek", "Company"]
    assert job.work_mode is WorkMode.HYBRID
    assert job.has_source("Company")


def test_job_from_flat_source_row() -> None:
    job = Job.from_dict({
        "id": "1", "title": "Engineer", "company": "Acme",
        "description": "text", "site": "Indeed", "url": "https://indeed.example/1",
    })

    assert [s.site for s in job.sources] == ["Indeed"]
    assert job.description_full == "text"


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "Engineer", "company": "Acme", "description": "x", "site": "Seek"},
        {"id": "1", "company": "Acme", "description": "x", "site": "Seek"},
        {"id": "1", "title": "Engineer", "company": "Acme", "site": "Seek"},
        {"id": "1", "title": "Engineer", "company": "Acme", "description": "x"},
        {"id": "1", "title": "Engineer", "company": "Acme", "description": "x", "sources": "Seek"},
        {"id": "1", "title": "Engineer", "company": "Acme", "description": "x", "sources_json": "{bad"},
        ["not", "a", "mapping"],
    ],
)
def test_malformed_job_payloads(payload) -> None:
    with pytest.raises(MalformedJobError):
        Job.from_dict(payload)


def test_empty_description_is_still_a_description() -> None:
    job = Job.from_dict({"id": "1", "title": "T", "company": "C", "descriptionFull": "", "site": "Seek"})

    assert job.has_description
    assert job.description == ""


def test_job_requires_a_source() -> None:
    with pytest.raises(MalformedJobError):
        Job(id="1", title="T", company="C", sources=())


def test_resume_level_derived_from_years() -> None:
    resume = ParsedResume.from_dict({
        "skills": ["Python", " ", "SQL"],
        "yearsOfExperience": "3",
        "experience": [{"title": "Engineer", "description": "Built APIs"}],
        "education": [{"degree": "BSc", "institution": "UNSW"}],
    })

    assert resume.skills == ("Python", "SQL")
    assert resume.experience_level is ExperienceLevel.MID
    assert resume.experience[0].description == ("Built APIs",)
    assert resume.education == ("BSc UNSW",)
    assert resume.to_dict()["experienceLevel"] == "Mid"


def test_resume_explicit_level_wins() -> None:
    resume = ParsedResume.from_dict({"experienceLevel": "Entry Level", "yearsOfExperience": 9})
    assert resume.experience_level is ExperienceLevel.JUNIOR


@pytest.mark.parametrize(
    "payload",
    [
        "resume text",
        {"skills": "python, sql"},
        {"yearsOfExperience": "lots"},
        {"experience": "five years"},
    ],
)
def test_malformed_resume_payloads(payload) -> None:
    with pytest.raises(MalformedResumeError):
        ParsedResume.from_dict(payload)


@pytest.mark.parametrize(
    "years, level",
    [(0, "Internship"), (1.5, "Junior"), (2, "Mid"), (5, "Senior"), (8, "Lead")],
)
def test_level_from_years(years: float, level: str) -> None:
    assert ExperienceLevel.from_years(years).value == level


def test_parse_timestamp() -> None:
    utc = datetime(2024, 1, 10, tzinfo=timezone.utc)

    assert parse_timestamp("2024-01-10T00:00:00Z") == utc
    assert parse_timestamp("2024-01-10T00:00:00") == utc
    assert parse_timestamp(utc.timestamp()) == utc
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(True) is None


def test_scraping_status_round_trip_from_wire() -> None:
    status = ScrapingStatus.from_dict({
        "status": "COMPLETED",
        "searchQuery": "python",
        "jobsFound": "12",
        "completedAt": "2024-01-10T00:00:00Z",
    })

    assert status.status is ScrapeState.COMPLETED
    assert status.is_terminal
    assert status.jobs_found == 12
    assert status.to_dict()["completedAt"] == "2024-01-10T00:00:00+00:00"
    assert ScrapingStatus.from_dict({"status": "weird"}).status is ScrapeState.IDLE
