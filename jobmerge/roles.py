"""Role synonyms used to widen search and scrape queries."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RoleMapping:
    primary: str
    synonyms: tuple[str, ...]
    related: tuple[str, ...]
    categories: tuple[str, ...]

    def terms(self) -> tuple[str, ...]:
        return (self.primary, *self.synonyms, *self.related)


ROLE_MAPPINGS: tuple[RoleMapping, ...] = (
    RoleMapping(
        "developer",
        ("dev", "programmer", "coder", "software developer", "software engineer"),
        ("frontend developer", "backend developer", "full stack developer", "web developer",
         "mobile developer", "game developer", "devops engineer", "software architect"),
        ("Software Engineering", "Technology"),
    ),
    RoleMapping(
        "frontend developer",
        ("front-end developer", "frontend dev", "front-end dev", "web developer", "ui developer"),
        ("ui designer", "ux designer", "web designer", "react developer", "vue developer",
         "angular developer", "javascript developer", "css developer"),
        ("Software Engineering", "Design"),
    ),
    RoleMapping(
        "backend developer",
        ("back-end developer", "backend dev", "back-end dev", "server developer", "api developer"),
        ("full stack developer", "devops engineer", "database developer", "python developer",
         "java developer", "node.js developer", "php developer"),
        ("Software Engineering",),
    ),
    RoleMapping(
        "full stack developer",
        ("fullstack developer", "full-stack developer", "fullstack dev", "full-stack dev"),
        ("frontend developer", "backend developer", "web developer", "software engineer",
         "devops engineer"),
        ("Software Engineering",),
    ),
    RoleMapping(
        "data scientist",
        ("data analyst", "data engineer", "ml engineer", "machine learning engineer", "ai engineer"),
        ("business analyst", "statistician", "research scientist", "data architect",
         "analytics engineer", "bi engineer"),
        ("Data", "Software Engineering"),
    ),
    RoleMapping(
        "ui designer",
        ("user interface designer", "ui/ux designer", "interface designer", "visual designer"),
        ("ux designer", "web designer", "graphic designer", "frontend developer",
         "product designer", "interaction designer"),
        ("Design",),
    ),
    RoleMapping(
        "ux designer",
        ("user experience designer", "ux/ui designer", "experience designer", "usability designer"),
        ("ui designer", "product designer", "interaction designer", "service designer",
         "user researcher", "information architect"),
        ("Design",),
    ),
    RoleMapping(
        "product manager",
        ("pm", "product owner", "product lead", "product director"),
        ("project manager", "program manager", "business analyst", "product marketing manager",
         "technical product manager"),
        ("Product", "Management"),
    ),
    RoleMapping(
        "devops engineer",
        ("devops", "site reliability engineer", "sre", "platform engineer", "infrastructure engineer"),
        ("cloud engineer", "system administrator", "backend developer", "full stack developer",
         "security engineer"),
        ("Software Engineering", "Operations"),
    ),
    RoleMapping(
        "marketing manager",
        ("marketing lead", "marketing director", "brand manager", "digital marketing manager"),
        ("content manager", "social media manager", "seo specialist", "growth hacker",
         "marketing analyst", "product marketing manager"),
        ("Marketing",),
    ),
    RoleMapping(
        "sales manager",
        ("sales lead", "sales director", "account manager", "business development manager"),
        ("account executive", "sales representative", "customer success manager",
         "partnership manager", "sales engineer"),
        ("Sales",),
    ),
)


@dataclass(frozen=True)
class QueryExpansion:
    search_terms: tuple[str, ...]
    categories: tuple[str, ...]
    related_roles: tuple[str, ...]


def expand_query(query: str) -> QueryExpansion:
    """Synonyms and related roles for *query*.

    An exact hit on any mapping wins; otherwise every mapping with a term
    containing the query is merged; otherwise the query stands alone.
    """
    q = " ".join(query.lower().split())
    if not q:
        return QueryExpansion((), (), ())

    for role in ROLE_MAPPINGS:
        if q in role.terms():
            return QueryExpansion(
                search_terms=role.terms(),
                categories=role.categories,
                related_roles=role.related,
            )

    partial = [r for r in ROLE_MAPPINGS if any(q in t for t in r.terms())]
    if partial:
        terms: dict[str, None] = {}
        categories: dict[str, None] = {}
        related: dict[str, None] = {}
        for role in partial:
            terms[role.primary] = None
            terms.update(dict.fromkeys(role.synonyms))
            related.update(dict.fromkeys(role.related))
            categories.update(dict.fromkeys(role.categories))
        return QueryExpansion(tuple(terms), tuple(categories), tuple(related))

    return QueryExpansion((query.strip(),), (), ())


def scraping_terms(query: str, limit: int = 5) -> list[str]:
    """The query itself plus its top three expansions, de-duplicated."""
    query = query.strip()
    if not query:
        return []
    expansion = expand_query(query)
    return list(dict.fromkeys([query, *expansion.search_terms[:3]]))[:limit]


def related_roles(query: str, limit: int = 5) -> list[str]:
    return list(expand_query(query).related_roles[:limit])
