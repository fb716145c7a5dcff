"""Tests for grouping site listings into bundles and picking the canonical job."""
from __future__ import annotations

import itertools

from jobmerge.bundler import bundle, canonical_jobs, choose_canonical, flatten

from conftest import make_job


def test_company_listing_is_canonical() -> None:
    seek = make_job("seek-1", sites=("Seek",), posted_at="2024-01-01T00:00:00Z")
    linkedin = make_job("li-1", sites=("LinkedIn",), posted_at="2024-01-02T00:00:00Z")
    company = make_job("co-1", sites=("Company",), posted_at="2024-01-05T00:00:00Z")

    bundles = bundle([seek, linkedin, company])

    assert len(bundles) == 1
    assert bundles[0].canonical_job is company
    assert bundles[0].duplicates == (seek, linkedin)
    assert bundles[0].bundle_id == "bundle-co-1"


def test_case_differences_are_one_bundle() -> None:
    a = make_job("a", title="Software Engineer", company="ACME", sites=("Indeed",))
    b = make_job("b", title="software engineer", company="acme", sites=("Jora",))

    bundles = bundle([a, b])

    assert len(bundles) == 1
    assert bundles[0].canonical_job is a
    assert bundles[0].duplicates == (b,)


def test_linkedin_wins_without_company_listing() -> None:
    seek = make_job("seek", sites=("Seek",), posted_at="2023-12-01T00:00:00Z")
    linkedin = make_job("li", sites=("LinkedIn",), posted_at="2024-02-01T00:00:00Z")

    assert choose_canonical([seek, linkedin]) is linkedin


def test_earliest_timestamp_breaks_site_ties() -> None:
    later = make_job("later", sites=("Seek",), posted_at="2024-03-01T00:00:00Z")
    earlier = make_job("earlier", sites=("Indeed",), posted_at="2024-01-01T00:00:00+00:00")

    assert choose_canonical([later, earlier]) is earlier


def test_invalid_timestamp_never_wins_timestamp_rule() -> None:
    broken = make_job("broken", sites=("Seek",), posted_at="not a date")
    dated = make_job("dated", sites=("Indeed",), posted_at="2030-01-01T00:00:00Z")

    assert choose_canonical([broken, dated]) is dated


def test_full_ties_fall_back_to_input_order() -> None:
    first = make_job("first", sites=("Seek",), posted_at=None)
    second = make_job("second", sites=("Indeed",), posted_at="garbage")

    assert choose_canonical([first, second]) is first
    assert choose_canonical([second, first]) is second


def test_company_canonical_for_every_input_order() -> None:
    jobs = [
        make_job("seek", sites=("Seek",), posted_at="2024-01-01T00:00:00Z"),
        make_job("li", sites=("LinkedIn",), posted_at="2024-01-02T00:00:00Z"),
        make_job("co", sites=("Company",), posted_at="2024-01-03T00:00:00Z"),
        make_job("indeed", sites=("Indeed",), posted_at="2023-01-01T00:00:00Z"),
    ]
    for order in itertools.permutations(jobs):
        assert bundle(order)[0].canonical_job.id == "co"


def test_different_roles_are_not_merged() -> None:
    jobs = [
        make_job("1", title="Software Engineer", company="Acme"),
        make_job("2", title="Senior Software Engineer", company="Acme"),
        make_job("3", title="Software Engineer", company="Globex"),
    ]

    bundles = bundle(jobs)

    assert [b.id for b in bundles] == ["1", "2", "3"]
    assert all(not b.duplicates for b in bundles)


def test_every_job_lands_in_exactly_one_bundle() -> None:
    jobs = [
        make_job(str(i), title=f"Role {i % 3}", company=f"Co {i % 2}", sites=(site,))
        for i, site in zip(range(12), itertools.cycle(["Seek", "LinkedIn", "Company", "Indeed"]))
    ]

    bundles = bundle(jobs)
    ids = [j.id for j in flatten(bundles)]

    assert sorted(ids) == sorted(j.id for j in jobs)
    assert len(ids) == len(set(ids))
    assert len(bundles) == len({j.identity_key for j in jobs})


def test_bundling_is_idempotent() -> None:
    jobs = [
        make_job("a", sites=("Seek",), posted_at="2024-01-03T00:00:00Z"),
        make_job("b", sites=("LinkedIn",)),
        make_job("c", title="Data Engineer", sites=("Indeed",)),
        make_job("d", title="data engineer", sites=("Company",)),
    ]
    first = bundle(jobs)

    again = bundle(flatten(first))
    assert [b.canonical_job.id for b in again] == [b.canonical_job.id for b in first]
    assert [tuple(d.id for d in b.duplicates) for b in again] == [
        tuple(d.id for d in b.duplicates) for b in first
    ]

    only_canonicals = bundle(canonical_jobs(first))
    assert [b.canonical_job.id for b in only_canonicals] == ["b", "d"]
    assert all(not b.duplicates for b in only_canonicals)


def test_empty_input() -> None:
    assert bundle([]) == []


def test_same_job_passed_twice_is_kept_twice() -> None:
    seek = make_job("seek", sites=("Seek",))
    company = make_job("co", sites=("Company",))

    bundles = bundle([seek, company, company])

    assert len(bundles) == 1
    assert bundles[0].canonical_job is company
    assert bundles[0].duplicates == (seek, company)
    assert len(flatten(bundles)) == 3


def test_bundle_sites_and_wire_format() -> None:
    company = make_job("co", sites=("Company",))
    seek = make_job("seek", sites=("Seek", "Company"), posted_at="2024-02-01T00:00:00Z")

    b = bundle([seek, company])[0]

    assert b.sites == ["Company", "Seek"]
    data = b.to_dict()
    assert data["bundleId"] == "bundle-co"
    assert data["canonicalJob"]["id"] == "co"
    assert [d["id"] for d in data["duplicates"]] == ["seek"]
