"""
Identifier normalization for DOIs, ISBNs, and YouTube video ids, and DOI
extraction from publisher URLs.

Some publishers put their own document number in the URL instead of a DOI
(IEEE Xplore, PubMed). Those URLs yield a lookup request naming the
capability that can translate the number into a DOI.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import unquote

from .errors import InvalidIdentifierError

_DOI_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
_DOI_SHAPE = re.compile(r"^10\.\d{4,}/\S+$")
_ISBN_SHAPE = re.compile(r"^(?:\d{9}[\dX]|\d{13})$")
_VIDEO_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")
_VIDEO_URL_PATTERNS = (
    re.compile(r"youtube\.com/watch\?(?:[^#]*&)?v=([A-Za-z0-9_-]{11})"),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([A-Za-z0-9_-]{11})"),
)


def clean_doi(value: str) -> str:
    """Strip resolver prefixes (``https://doi.org/``, ``doi:``) and surrounding whitespace."""

    return _DOI_PREFIX.sub("", value.strip()).strip()


def is_valid_doi(value: str) -> bool:
    return bool(_DOI_SHAPE.match(value))


def normalize_doi(value: Optional[str]) -> str:
    """Return a cleaned DOI or raise :class:`InvalidIdentifierError`."""

    if not value or not value.strip():
        raise InvalidIdentifierError("DOI is required.")
    cleaned = clean_doi(value)
    if not is_valid_doi(cleaned):
        raise InvalidIdentifierError(f"Invalid DOI '{value}'. A DOI starts with '10.' (e.g. 10.1038/nature12373).")
    return cleaned


def clean_isbn(value: str) -> str:
    return re.sub(r"[-\s]", "", value.strip()).upper()


def is_valid_isbn(value: str) -> bool:
    return bool(_ISBN_SHAPE.match(clean_isbn(value)))


def normalize_isbn(value: Optional[str]) -> str:
    """Return a cleaned 10- or 13-character ISBN or raise :class:`InvalidIdentifierError`."""

    if not value or not value.strip():
        raise InvalidIdentifierError("ISBN is required.")
    cleaned = clean_isbn(value)
    if not is_valid_isbn(cleaned):
        raise InvalidIdentifierError(f"Invalid ISBN '{value}'. Expected a 10 or 13 digit ISBN.")
    return cleaned


def normalize_video_id(value: Optional[str]) -> str:
    """
    Return the 11-character video id from a YouTube URL or a bare id.

    Accepts ``watch?v=``, ``youtu.be``, ``embed`` and ``shorts`` links. Raises
    :class:`InvalidIdentifierError` for anything else.
    """

    if not value or not value.strip():
        raise InvalidIdentifierError("YouTube URL is required.")
    text = value.strip()
    for pattern in _VIDEO_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    if _VIDEO_ID.match(text):
        return text
    raise InvalidIdentifierError(f"Invalid YouTube URL '{value}'. Provide a youtube.com or youtu.be video link.")


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True, slots=True)
class IdentifierLookup:
    """A publisher document number that another capability can translate into a DOI."""

    capability: str
    identifier: str


@dataclass(frozen=True, slots=True)
class DoiExtraction:
    """Outcome of matching a URL against known publisher patterns."""

    doi: Optional[str]
    source: str
    lookup: Optional[IdentifierLookup] = None


def _decoded(match: re.Match[str]) -> str:
    return unquote(match.group(1))


def _mdpi(match: re.Match[str]) -> str:
    journal, volume, issue, article = match.groups()
    return f"10.3390/{journal.lower()}{volume}{issue.zfill(2)}{article.zfill(4)}"


# Checked before the DOI patterns; capability names match core.registry.Capability.
_LOOKUP_PATTERNS: List[Tuple[str, re.Pattern[str], str]] = [
    ("IEEE", re.compile(r"ieeexplore\.ieee\.org/(?:abstract/)?document/(\d+)", re.I), "ieee"),
    ("PubMed", re.compile(r"pubmed\.ncbi\.nlm\.nih\.gov/(\d+)", re.I), "pmid"),
]

_URL_PATTERNS: List[Tuple[str, re.Pattern[str], Callable[[re.Match[str]], str]]] = [
    ("Springer URL", re.compile(r"link\.springer\.com/(?:article|chapter)/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("Nature URL", re.compile(r"nature\.com/articles/([a-z0-9-]+)", re.I), lambda m: f"10.1038/{m.group(1)}"),
    ("ACM URL", re.compile(r"dl\.acm\.org/doi/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("Wiley URL", re.compile(r"onlinelibrary\.wiley\.com/doi/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("T&F URL", re.compile(r"tandfonline\.com/doi/(?:abs|full)/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("SAGE URL", re.compile(r"journals\.sagepub\.com/doi/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("arXiv URL", re.compile(r"arxiv\.org/abs/(\d+\.\d+)", re.I), lambda m: f"10.48550/arXiv.{m.group(1)}"),
    ("PLOS URL", re.compile(r"journals\.plos\.org/\w+/article\?id=(10\.\d+/[^&]+)", re.I), _decoded),
    ("Frontiers URL", re.compile(r"frontiersin\.org/(?:articles|journals/[^/]+/articles)/(10\.\d+/[^?#]+)", re.I), _decoded),
    ("MDPI URL", re.compile(r"mdpi\.com/(\d+-\d+)/(\d+)/(\d+)/(\d+)", re.I), _mdpi),
    ("DOI URL", re.compile(r"doi\.org/(10\.\d+/[^?#\s]+)", re.I), _decoded),
    ("URL embedded", re.compile(r"[?&/](10\.\d{4,}/[^\s?&#]+)", re.I), _decoded),
]


def extract_doi_from_url(url: str) -> DoiExtraction:
    """
    Derive a DOI from a publisher or resolver URL without fetching it.

    Patterns are checked in order; the first match wins. IEEE Xplore and
    PubMed links return ``doi=None`` with a :class:`IdentifierLookup`. Returns
    ``doi=None`` and ``source="none"`` when nothing matches.
    """

    for source, pattern, capability in _LOOKUP_PATTERNS:
        match = pattern.search(url)
        if match:
            return DoiExtraction(doi=None, source=source, lookup=IdentifierLookup(capability=capability, identifier=match.group(1)))
    for source, pattern, build in _URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return DoiExtraction(doi=build(match), source=source)
    return DoiExtraction(doi=None, source="none")
