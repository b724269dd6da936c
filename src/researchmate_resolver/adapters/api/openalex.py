"""
OpenAlex Works API client, the DOI adapter, and the IEEE document lookup.

Reference: https://docs.openalex.org/api-entities/works
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from ...core.credentials import Credential
from ...core.models import UNKNOWN_YEAR, BibliographicRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import as_text, display_name_authors, doi_url, nested, split_iso_date

DEFAULT_BASE_URL = "https://api.openalex.org"
IEEE_DOI_PREFIX = "10.1109/"


class OpenAlexClient(BaseAPIClient):
    """Minimal OpenAlex client for single-work lookups."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        mailto: Optional[str] = None,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        user_agent = f"{USER_AGENT} (mailto:{mailto})" if mailto else USER_AGENT
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            default_headers={"User-Agent": user_agent},
            retries=retries,
            transport=transport,
        )
        self.mailto = mailto

    async def get_work_by_doi(self, doi: str) -> Dict[str, Any]:
        params = {"mailto": self.mailto} if self.mailto else None
        payload = await self._get_json(f"/works/doi:{quote(doi, safe='/')}", params=params)
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from OpenAlex work lookup.")
        return payload

    async def search_doi_suffix(self, suffix: str, *, per_page: int = 5) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"filter": f"doi:*{suffix}", "per_page": per_page}
        if self.mailto:
            params["mailto"] = self.mailto
        payload = await self._get_json("/works", params=params)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise APIDecodeError("OpenAlex works search payload missing 'results'.")
        return [item for item in results if isinstance(item, dict)]


class OpenAlexAdapter(HTTPProviderAdapter):
    provider_id = "openalex"

    def __init__(self, client: Optional[OpenAlexClient] = None) -> None:
        super().__init__()
        self.client = client or OpenAlexClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BibliographicRecord]:
        work = await self.client.get_work_by_doi(query)
        return parse_work(work, query)


class OpenAlexIeeeAdapter(HTTPProviderAdapter):
    """Second IEEE lookup: an OpenAlex DOI-suffix search limited to IEEE DOIs."""

    provider_id = "openalex_ieee"

    def __init__(self, client: Optional[OpenAlexClient] = None) -> None:
        super().__init__()
        self.client = client or OpenAlexClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BibliographicRecord]:
        for work in await self.client.search_doi_suffix(query):
            doi = as_text(work.get("doi")).replace("https://doi.org/", "")
            if doi.startswith(IEEE_DOI_PREFIX):
                return parse_work(work, doi)
        return None


def _pages(biblio: Any) -> str:
    first = as_text(nested(biblio, "first_page"))
    last = as_text(nested(biblio, "last_page"))
    if first and last:
        return f"{first}-{last}"
    return first


def parse_work(work: Mapping[str, Any], doi: str) -> Optional[BibliographicRecord]:
    title = as_text(work.get("title")) or as_text(work.get("display_name"))
    if not title:
        return None

    authorships: List[Any] = work.get("authorships") if isinstance(work.get("authorships"), list) else []
    year, month, day = split_iso_date(work.get("publication_date"))
    source_name = as_text(nested(work, "primary_location", "source", "display_name"))
    work_doi = as_text(work.get("doi"))
    return BibliographicRecord(
        title=title,
        authors=display_name_authors(nested(item, "author", "display_name") for item in authorships),
        journal=source_name,
        publisher=as_text(nested(work, "primary_location", "source", "host_organization_name")),
        year=year or as_text(work.get("publication_year")) or UNKNOWN_YEAR,
        month=month,
        day=day,
        volume=as_text(nested(work, "biblio", "volume")),
        issue=as_text(nested(work, "biblio", "issue")),
        pages=_pages(work.get("biblio")),
        doi=work_doi.replace("https://doi.org/", "") or doi,
        url=work_doi or doi_url(doi),
        type=as_text(work.get("type")) or "article",
        venue=source_name,
    )
