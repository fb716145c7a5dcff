"""Skill and technology vocabulary used to tokenize job postings.

The scorer only needs an object with ``tokens_for(job) -> JobTokens``; the
:class:`Vocabulary` here does exact, case-insensitive phrase lookup and can be
swapped for a stemming or fuzzy implementation without touching the scorer.
"""
from __future__ import annotations

import functools
import re
import threading
from dataclasses import dataclass
from typing import Iterable, Protocol

from jobmerge.log import get_logger
from jobmerge.models import Job

log = get_logger(__name__)

SKILL_TERMS: tuple[str, ...] = (
    "agile", "scrum", "kanban", "rest api", "api", "graphql", "grpc", "microservices",
    "ci/cd", "websocket", "html", "css", "sql", "nosql", "linux", "bash",
    "powershell", "git", "machine learning", "deep learning", "nlp",
    "data science", "data analysis", "etl", "testing", "unit testing",
    "tdd", "devops", "security", "leadership", "communication",
    "problem-solving", "teamwork", "collaboration", "time management",
    "project management", "stakeholder management", "mentoring", "analytical",
    "ui/ux", "accessibility", "incident response", "root cause analysis",
)

TECHNOLOGY_TERMS: tuple[str, ...] = (
    "javascript", "typescript", "python", "java", "c#", "c++", "golang", "rust",
    "php", "ruby", "swift", "kotlin", "scala",
    "react", "vue", "angular", "svelte", "jquery", "next.js", "nuxt",
    "node", "node.js", "express", "fastapi", "django", "flask",
    "spring", ".net", "rails", "tailwind", "sass", "redux",
    "mongodb", "postgresql", "mysql", "mariadb", "sqlite", "redis",
    "elasticsearch", "dynamodb", "cassandra", "snowflake", "kafka", "rabbitmq",
    "aws", "azure", "gcp", "heroku", "vercel", "docker", "kubernetes",
    "terraform", "ansible", "jenkins", "github actions", "gitlab ci",
    "circleci", "pandas", "numpy", "spark", "hadoop", "tensorflow", "pytorch",
    "tableau", "power bi", "figma",
)


def normalize_term(term: str) -> str:
    return " ".join((term or "").lower().split())


@functools.lru_cache(maxsize=4096)
def _term_pattern(term: str) -> re.Pattern[str]:
    # alphanumeric boundaries instead of \b so "c++", "c#" and ".net" match
    return re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])")


def contains_term(text: str, term: str) -> bool:
    term = normalize_term(term)
    return bool(term) and _term_pattern(term).search(text) is not None


@dataclass(frozen=True)
class JobTokens:
    skills: frozenset[str]
    technologies: frozenset[str]
    text: str

    def contains(self, term: str) -> bool:
        return contains_term(self.text, term)


class TokenSource(Protocol):
    def tokens_for(self, job: Job) -> JobTokens:
        ...


class Vocabulary:
    """Vocabulary lookup with a per-job token cache.

    Tokens are cached by job id and text fingerprint, so scoring one corpus
    against many résumés tokenizes each posting once. Cache writes are
    locked; lookups are safe from concurrent callers.
    """

    def __init__(
        self,
        skills: Iterable[str] = SKILL_TERMS,
        technologies: Iterable[str] = TECHNOLOGY_TERMS,
        max_cache: int = 20000,
    ) -> None:
        self.skills = tuple(dict.fromkeys(normalize_term(s) for s in skills if s))
        self.technologies = tuple(dict.fromkeys(normalize_term(t) for t in technologies if t))
        self.max_cache = max_cache
        self._cache: dict[tuple[str, int], JobTokens] = {}
        self._lock = threading.Lock()

    def extract(self, text: str) -> JobTokens:
        norm = " ".join((text or "").lower().split())
        return JobTokens(
            skills=frozenset(t for t in self.skills if contains_term(norm, t)),
            technologies=frozenset(t for t in self.technologies if contains_term(norm, t)),
            text=norm,
        )

    def tokens_for(self, job: Job) -> JobTokens:
        text = f"{job.title} {job.description}"
        key = (job.id, hash(text))
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        tokens = self.extract(text)
        with self._lock:
            if len(self._cache) >= self.max_cache:
                log.debug("Token cache full (%d entries), clearing", len(self._cache))
                self._cache.clear()
            self._cache[key] = tokens
        return tokens

    def cache_size(self) -> int:
        return len(self._cache)


DEFAULT_VOCABULARY = Vocabulary()
