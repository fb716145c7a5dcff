"""Mock job source for testing and for running without live scrapers."""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

from jobmerge.log import get_logger
from jobmerge.models import ExperienceLevel, Job, Source, WorkMode
from jobmerge.sources.base import JobSource

log = get_logger(__name__)

# (company, location, work mode, level, salary range, description)
_TEMPLATES: list[tuple[str, str, WorkMode, ExperienceLevel, tuple[int, int], str]] = [
    ("Atlassian", "Sydney, NSW", WorkMode.HYBRID, ExperienceLevel.JUNIOR, (90000, 110000),
     "Build collaboration features used by millions with JavaScript, React and TypeScript. "
     "Strong communication and teamwork expected."),
    ("Google", "Sydney, NSW", WorkMode.ON_SITE, ExperienceLevel.MID, (130000, 160000),
     "Work on large scale systems in Python, Java and Go on GCP. Agile teams, "
     "code review and problem-solving every day."),
    ("Canva", "Sydney, NSW", WorkMode.REMOTE, ExperienceLevel.MID, (100000, 130000),
     "Ship product features end to end with React, Node.js and PostgreSQL on AWS. "
     "CI/CD, testing and mentoring are part of the role."),
    ("Uber", "Melbourne, VIC", WorkMode.HYBRID, ExperienceLevel.SENIOR, (140000, 180000),
     "Own data pipelines with Python, Spark and Kafka. SQL, machine learning and "
     "stakeholder management experience required."),
]

# Sites each template is "listed" on; the first gets its own record, the rest
# are copies under the same title and company.
_SITE_SETS: list[tuple[str, ...]] = [
    ("LinkedIn", "Seek", "Indeed"),
    ("Company", "LinkedIn"),
    ("Seek",),
    ("Glassdoor", "Company"),
]


def _mock_id(*parts: str) -> str:
    return "mock-" + hashlib.sha256("|".join(parts).encode()).hexdigest()[:12]


class MockSource(JobSource):
    site = "Other"

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now

    def search(self, query: str, limit: int = 20) -> list[Job]:
        now = self.now or datetime.now(timezone.utc)
        title = (query.strip() or "Software Engineer").title()
        log.info("MockSource generating sample jobs for %r", title)

        jobs: list[Job] = []
        for i, (company, location, mode, level, salary, desc) in enumerate(_TEMPLATES):
            for j, site in enumerate(_SITE_SETS[i % len(_SITE_SETS)]):
                posted = (now - timedelta(days=i + 1, hours=j)).isoformat()
                job_id = _mock_id(title, company, site)
                jobs.append(
                    Job(
                        id=job_id,
                        title=title,
                        company=company,
                        location=f"{location}, Australia",
                        work_mode=mode,
                        category="Software Engineering",
                        experience=level,
                        salary_min=salary[0],
                        salary_max=salary[1],
                        description_snippet=desc.split(". ")[0] + ".",
                        description_full=desc,
                        posted_at=posted,
                        sources=(
                            Source(
                                site=site,
                                url=f"https://example.com/{site.lower()}/{job_id}",
                                posted_at=posted,
                                external_id=job_id,
                            ),
                        ),
                    )
                )
        return jobs[:limit]
