"""
Semantic Scholar Graph API client.

API reference: https://api.semanticscholar.org/api-docs/graph
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from ...core.credentials import Credential
from ...core.models import UNKNOWN_YEAR, BibliographicRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import as_text, display_name_authors, doi_url, nested, split_iso_date

DEFAULT_BASE_URL = "https://api.semanticscholar.org/graph/v1"
PAPER_FIELDS: Sequence[str] = (
    "title",
    "authors",
    "year",
    "venue",
    "publicationDate",
    "abstract",
    "externalIds",
    "publicationVenue",
)


class SemanticScholarClient(BaseAPIClient):
    """Minimal Semantic Scholar client covering paper lookup by external id."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            default_headers={"User-Agent": USER_AGENT},
            retries=retries,
            transport=transport,
        )

    async def get_paper(
        self,
        paper_id: str,
        *,
        fields: Optional[Sequence[str]] = None,
        api_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"fields": ",".join(fields)} if fields else None
        headers = {"x-api-key": api_key} if api_key else None
        data = await self._get_json(f"/paper/{quote(paper_id, safe=':')}", params=params, headers=headers)
        if not isinstance(data, dict):
            raise APIDecodeError("Unexpected payload for Semantic Scholar paper lookup.")
        return data


class SemanticScholarAdapter(HTTPProviderAdapter):
    """DOI fallback strong on computer science and machine learning venues. Keys are optional."""

    provider_id = "semantic_scholar"

    def __init__(self, client: Optional[SemanticScholarClient] = None) -> None:
        super().__init__()
        self.client = client or SemanticScholarClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BibliographicRecord]:
        paper = await self.client.get_paper(
            f"DOI:{query}",
            fields=PAPER_FIELDS,
            api_key=None if credential.is_anonymous else credential.secret,
        )
        return parse_paper(paper, query)


def parse_paper(paper: Mapping[str, Any], doi: str) -> Optional[BibliographicRecord]:
    title = as_text(paper.get("title"))
    if not title:
        return None

    raw_authors: List[Any] = paper.get("authors") if isinstance(paper.get("authors"), list) else []
    year = as_text(paper.get("year")) or UNKNOWN_YEAR
    date_year, month, day = split_iso_date(paper.get("publicationDate"))
    venue = as_text(paper.get("venue"))
    return BibliographicRecord(
        title=title,
        authors=display_name_authors(item.get("name") for item in raw_authors if isinstance(item, Mapping)),
        journal=venue or as_text(nested(paper, "publicationVenue", "name")),
        publisher=as_text(nested(paper, "publicationVenue", "publisher")),
        year=date_year or year,
        month=month,
        day=day,
        doi=as_text(nested(paper, "externalIds", "DOI")) or doi,
        url=doi_url(doi),
        abstract=as_text(paper.get("abstract")),
        type="article",
        venue=venue,
    )
