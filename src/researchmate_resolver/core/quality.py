"""
Quality predicates deciding whether a provider response is good enough.

Each predicate judges one normalized record in isolation. They are the only
place that encodes acceptance rules; resolvers receive them by injection.
"""

from __future__ import annotations

from typing import Any, Callable

from .models import UNKNOWN_YEAR, is_placeholder_name, is_unknown_value

QualityPredicate = Callable[[Any], bool]


def has_authors(record: Any) -> bool:
    """Accept bibliographic records that list at least one author."""

    return len(getattr(record, "authors", ()) or ()) > 0


def has_named_authors(record: Any) -> bool:
    """Accept records whose author list is non-empty and free of placeholder names."""

    authors = getattr(record, "authors", ()) or ()
    return bool(authors) and not any(is_placeholder_name(author) for author in authors)


def non_empty_text(output: Any) -> bool:
    """Accept generated text when it contains anything besides whitespace."""

    return isinstance(output, str) and bool(output.strip())


def has_doi(record: Any) -> bool:
    """Accept identifier lookups that produced a DOI to resolve."""

    return bool(str(getattr(record, "doi", "") or "").strip())


def has_publish_date(record: Any) -> bool:
    """Accept video records whose publication year is known."""

    return not is_unknown_value(getattr(record, "year", UNKNOWN_YEAR), UNKNOWN_YEAR)
