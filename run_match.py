#!/usr/bin/env python3
"""Rank stored jobs against a parsed résumé.

    python run_match.py --jobs data/jobs.json --resume data/resume.json
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobmerge.bundler import bundle, canonical_jobs
from jobmerge.config import load_settings
from jobmerge.errors import JobMergeError
from jobmerge.log import get_logger, set_level
from jobmerge.matcher import match_all
from jobmerge.models import ParsedResume
from jobmerge.store import JobStore

log = get_logger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Match a parsed résumé against a job corpus")
    parser.add_argument("--jobs", "-j", type=Path, required=True, help="JSON file with job payloads")
    parser.add_argument("--resume", "-r", type=Path, required=True, help="JSON file with a parsed résumé")
    parser.add_argument("--top", "-n", type=int, default=10, help="How many matches to show (default: 10)")
    parser.add_argument(
        "--all-sites",
        action="store_true",
        help="Score every site's copy instead of one posting per bundle",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL for this run",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    if args.log_level:
        set_level(args.log_level)
    settings = load_settings()

    try:
        store = JobStore.from_file(args.jobs)
        with open(args.resume, "r", encoding="utf-8") as f:
            resume = ParsedResume.from_dict(json.load(f))
    except (OSError, ValueError) as exc:
        log.error("Could not load input: %s", exc)
        return 1

    jobs = store.all()
    bundles = bundle(jobs)
    corpus = jobs if args.all_sites else canonical_jobs(bundles)
    log.info("%d jobs in %d bundles; scoring %d", len(jobs), len(bundles), len(corpus))

    try:
        result = match_all(
            resume,
            corpus,
            threshold=float(settings["matching"]["relevance_threshold"]),
            weights=settings["matching"]["weights"],
        )
    except JobMergeError as exc:
        log.error("Matching failed: %s", exc)
        return 1

    sites = {b.id: b.sites for b in bundles}
    log.info("=" * 60)
    log.info("Matched %d of %d jobs", result.matched_count, result.total_count)
    for rank, (job_id, details) in enumerate(result.matches[: args.top], 1):
        job = store.get(job_id)
        log.info(
            "%2d. %3d%%  %s @ %s  [%s]",
            rank,
            details.match_percentage,
            job.title if job else job_id,
            job.company if job else "?",
            ", ".join(sites.get(job_id, [])),
        )
        for reason in details.match_reasons:
            log.info("        - %s", reason)
    if result.failures:
        log.warning("%d job(s) could not be scored", len(result.failures))
    return 0


if __name__ == "__main__":
    sys.exit(main())
