"""
Helpers for turning loosely-typed provider payloads into record fields.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ...core.models import UNKNOWN_YEAR, Author

UNKNOWN_AUTHOR = "Unknown Author"
_YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")


def as_text(value: Any) -> str:
    """Coerce a scalar to a stripped string; ``None`` and containers become ``""``."""

    if value is None or isinstance(value, (Mapping, list, tuple)):
        return ""
    return str(value).strip()


def first_text(value: Any) -> str:
    """Return the first string of a list-valued field, or the field itself when it is a string."""

    if isinstance(value, (list, tuple)):
        for item in value:
            text = as_text(item)
            if text:
                return text
        return ""
    return as_text(value)


def nested(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def date_parts(value: Any) -> Tuple[str, str, str]:
    """
    Extract ``(year, month, day)`` from a Crossref ``{"date-parts": [[y, m, d]]}`` object.

    Month and day are zero-padded. A missing year yields ``"n.d."``.
    """

    parts = nested(value, "date-parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], (list, tuple)):
        return UNKNOWN_YEAR, "", ""
    first = [part for part in parts[0] if part is not None]
    year = as_text(first[0]) if first else ""
    month = as_text(first[1]).zfill(2) if len(first) > 1 else ""
    day = as_text(first[2]).zfill(2) if len(first) > 2 else ""
    return year or UNKNOWN_YEAR, month, day


def split_iso_date(value: Any) -> Tuple[str, str, str]:
    """Split ``"YYYY-MM-DD"`` (any prefix of it) into its parts."""

    text = as_text(value)
    if not text:
        return "", "", ""
    pieces = text.split("-")
    pieces += [""] * (3 - len(pieces))
    return pieces[0], pieces[1], pieces[2]


def extract_year(value: Any) -> str:
    """Return the first plausible four-digit year in ``value``, or the raw text when none is found."""

    text = as_text(value)
    if not text:
        return UNKNOWN_YEAR
    match = _YEAR_PATTERN.search(text)
    return match.group(0) if match else text


def structured_author(given: Any, family: Any, name: Any = None) -> Author:
    given_text, family_text = as_text(given), as_text(family)
    full = " ".join(part for part in (given_text, family_text) if part) or as_text(name)
    if not full:
        return Author(full_name=UNKNOWN_AUTHOR)
    if not given_text and not family_text:
        return Author.from_display_name(full)
    return Author(full_name=full, first_name=given_text, last_name=family_text)


def display_name_authors(names: Iterable[Any]) -> Tuple[Author, ...]:
    authors: List[Author] = []
    for name in names:
        text = as_text(name)
        authors.append(Author.from_display_name(text) if text else Author(full_name=UNKNOWN_AUTHOR))
    return tuple(authors)


def string_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(text for text in (as_text(item) for item in value) if text)


def positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def doi_url(doi: str) -> str:
    return f"https://doi.org/{doi}"
