"""
Value types shared by resolvers, adapters, and the service layer.

Records use explicit "unknown" sentinels rather than ``None`` so the merger
can tell a missing value apart from a genuinely present one:

* strings default to ``""``
* publication years default to :data:`UNKNOWN_YEAR` (``"n.d."``)
* author lists default to an empty tuple
* page counts default to ``None``

Each dataclass field carries its sentinel in ``metadata["unknown"]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

UNKNOWN_YEAR = "n.d."
PLACEHOLDER_VALUES = frozenset({"unknown", "unknown title", "unknown author", "unknown publisher", "unknown channel", UNKNOWN_YEAR})


class AttemptStatus(str, Enum):
    """Outcome of a single provider invocation."""

    ACCEPTED = "accepted"
    REJECTED_BY_QUALITY = "rejected-by-quality"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"
    PARSE_ERROR = "parse-error"
    EMPTY = "empty"
    CONFIGURATION_ERROR = "configuration-error"


class CredentialSource(str, Enum):
    """Where the credential used for an attempt came from."""

    POOL = "pool"
    USER_SUPPLIED = "user-supplied"
    ANONYMOUS = "anonymous"


def _text(default: str = "") -> Any:
    return field(default=default, metadata={"unknown": default})


def _year() -> Any:
    return field(default=UNKNOWN_YEAR, metadata={"unknown": UNKNOWN_YEAR})


@dataclass(frozen=True, slots=True)
class Author:
    """A single contributor on a bibliographic record."""

    full_name: str
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_display_name(cls, name: str) -> "Author":
        """Split ``"Jane Q. Doe"`` into given names and a trailing family name."""

        parts = name.split()
        if not parts:
            return cls(full_name=name)
        return cls(full_name=name, first_name=" ".join(parts[:-1]), last_name=parts[-1])

    def to_dict(self) -> Dict[str, str]:
        return {"firstName": self.first_name, "lastName": self.last_name, "fullName": self.full_name}


@dataclass(frozen=True, slots=True)
class BibliographicRecord:
    """Normalized metadata for a journal article, preprint, or dataset resolved by DOI."""

    title: str = _text()
    authors: Tuple[Author, ...] = field(default=(), metadata={"unknown": ()})
    journal: str = _text()
    publisher: str = _text()
    year: str = _year()
    month: str = _text()
    day: str = _text()
    volume: str = _text()
    issue: str = _text()
    pages: str = _text()
    doi: str = _text()
    url: str = _text()
    abstract: str = _text()
    type: str = _text()
    venue: str = _text()

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation consumed by citation formatters."""

        return {
            "title": self.title,
            "authors": [author.to_dict() for author in self.authors],
            "journal": self.journal,
            "publisher": self.publisher,
            "publishYear": self.year,
            "publishMonth": self.month,
            "publishDay": self.day,
            "volume": self.volume,
            "issue": self.issue,
            "pages": self.pages,
            "doi": self.doi,
            "url": self.url,
            "abstract": self.abstract,
            "type": self.type,
            "venue": self.venue,
        }


@dataclass(frozen=True, slots=True)
class BookRecord:
    """Normalized metadata for a book resolved by ISBN."""

    title: str = _text()
    authors: Tuple[str, ...] = field(default=(), metadata={"unknown": ()})
    publisher: str = _text()
    year: str = _year()
    place: str = _text()
    page_count: Optional[int] = field(default=None, metadata={"unknown": None})
    isbn: str = _text()
    isbn13: str = _text()
    cover_url: str = _text()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "authors": list(self.authors),
            "publisher": self.publisher,
            "publishYear": self.year,
            "publishPlace": self.place,
            "pages": self.page_count,
            "isbn": self.isbn,
            "isbn13": self.isbn13,
            "coverUrl": self.cover_url or None,
        }


@dataclass(frozen=True, slots=True)
class VideoRecord:
    """Normalized metadata for an online video resolved by its YouTube id."""

    title: str = _text()
    channel_title: str = _text()
    channel_url: str = _text()
    publish_date: str = _text()
    year: str = _year()
    month: str = _text()
    day: str = _text()
    description: str = _text()
    duration: str = _text()
    duration_formatted: str = _text()
    thumbnail_url: str = _text()
    url: str = _text()
    video_id: str = _text()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "channelTitle": self.channel_title,
            "channelUrl": self.channel_url,
            "publishDate": self.publish_date,
            "publishYear": self.year,
            "publishMonth": self.month,
            "publishDay": self.day,
            "description": self.description,
            "duration": self.duration,
            "durationFormatted": self.duration_formatted,
            "thumbnailUrl": self.thumbnail_url,
            "url": self.url,
            "videoId": self.video_id,
        }


NormalizedRecord = Union[BibliographicRecord, BookRecord, VideoRecord, str]


def author_name(author: Union[Author, str]) -> str:
    return author.full_name if isinstance(author, Author) else str(author)


def is_placeholder_name(author: Union[Author, str]) -> bool:
    """Return ``True`` for blank names and names such as ``"Unknown Author"``."""

    name = author_name(author).strip().lower()
    return not name or "unknown" in name


def is_unknown_value(value: Any, sentinel: Any = "") -> bool:
    """Return ``True`` when ``value`` is the field's sentinel or an upstream placeholder string."""

    if value is None:
        return True
    if isinstance(value, str):
        lowered = value.strip().lower()
        if not lowered:
            return True
        if isinstance(sentinel, str) and lowered == sentinel.lower():
            return True
        return lowered in PLACEHOLDER_VALUES
    if isinstance(value, (tuple, list)):
        return not value or all(is_placeholder_name(item) for item in value)
    return value == sentinel


def record_field_names(record: Any) -> List[str]:
    return [item.name for item in fields(record)]


@dataclass(frozen=True, slots=True)
class Rejected:
    """Returned by adapters instead of raising when a provider yields nothing usable."""

    status: AttemptStatus
    detail: str = ""


@dataclass(frozen=True, slots=True)
class Attempt:
    """
    Immutable log entry describing one provider invocation.

    Attributes
    ----------
    provider:
        Provider identifier from the registry.
    status:
        Outcome classification.
    latency_ms:
        Wall-clock time spent in the provider call. Zero when no call was made.
    error_detail:
        Human-readable reason for non-accepted outcomes.
    credential_source:
        Origin of the credential used for the call, if one was selected.
    """

    provider: str
    status: AttemptStatus
    latency_ms: float = 0.0
    error_detail: Optional[str] = None
    credential_source: Optional[CredentialSource] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "provider": self.provider,
            "status": self.status.value,
            "latencyMs": round(self.latency_ms, 1),
        }
        if self.error_detail:
            payload["error"] = self.error_detail
        if self.credential_source is not None:
            payload["credentialSource"] = self.credential_source.value
        return payload


@dataclass(frozen=True, slots=True)
class ResolutionReport:
    """
    Result of one resolution call.

    ``partial`` is set when no provider passed the quality predicate and the
    result was assembled from quality-rejected records. ``cached`` is set when
    the result was served from the summary cache without invoking providers.
    """

    capability: str
    result: Optional[NormalizedRecord]
    winning_provider: Optional[str]
    attempts: Tuple[Attempt, ...] = ()
    field_sources: Mapping[str, str] = field(default_factory=dict)
    partial: bool = False
    cached: bool = False

    @property
    def found(self) -> bool:
        return self.result is not None

    @property
    def tried_providers(self) -> List[str]:
        return [attempt.provider for attempt in self.attempts]

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to ``{success, data, source, triedProviders}`` or ``{error, triedProviders}``."""

        tried = [attempt.to_dict() for attempt in self.attempts]
        if self.result is None:
            return {"error": f"No provider could resolve the {self.capability} request.", "triedProviders": tried}

        data: Any = self.result if isinstance(self.result, str) else self.result.to_dict()
        payload: Dict[str, Any] = {
            "success": True,
            "data": data,
            "source": self.winning_provider,
            "triedProviders": tried,
        }
        if self.field_sources:
            payload["fieldSources"] = dict(self.field_sources)
        if self.partial:
            payload["partial"] = True
        if self.cached:
            payload["cached"] = True
        return payload
