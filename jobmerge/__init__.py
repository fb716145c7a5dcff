"""Aggregate job postings across sites, bundle duplicates and match résumés."""

__version__ = "0.1.0"
