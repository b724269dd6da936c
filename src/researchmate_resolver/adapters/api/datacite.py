"""
DataCite REST API client, used for dataset and repository DOIs.

Reference: https://support.datacite.org/docs/api
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from ...core.credentials import Credential
from ...core.models import UNKNOWN_YEAR, BibliographicRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import as_text, doi_url, nested, structured_author

DEFAULT_BASE_URL = "https://api.datacite.org"


class DataCiteClient(BaseAPIClient):
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

    async def get_doi(self, doi: str) -> Dict[str, Any]:
        payload = await self._get_json(f"/dois/{quote(doi, safe='')}")
        attributes = nested(payload, "data", "attributes")
        if not isinstance(attributes, dict):
            raise APIDecodeError("DataCite payload missing 'data.attributes' object.")
        return attributes


class DataCiteAdapter(HTTPProviderAdapter):
    """Last DOI fallback; covers datasets and DOIs minted outside Crossref."""

    provider_id = "datacite"

    def __init__(self, client: Optional[DataCiteClient] = None) -> None:
        super().__init__()
        self.client = client or DataCiteClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BibliographicRecord]:
        attributes = await self.client.get_doi(query)
        return parse_attributes(attributes, query)


def _publisher(value: Any) -> str:
    # API v2 may return publisher as an object when `publisher=true` is requested.
    if isinstance(value, Mapping):
        return as_text(value.get("name"))
    return as_text(value)


def parse_attributes(attributes: Mapping[str, Any], doi: str) -> BibliographicRecord:
    titles = attributes.get("titles")
    if isinstance(titles, list):
        title = as_text(nested(titles[0], "title")) if titles else ""
    else:
        title = as_text(titles)
    creators: List[Any] = attributes.get("creators") if isinstance(attributes.get("creators"), list) else []
    descriptions = attributes.get("descriptions")
    abstract = as_text(nested(descriptions[0], "description")) if isinstance(descriptions, list) and descriptions else ""
    return BibliographicRecord(
        title=title,
        authors=tuple(
            structured_author(item.get("givenName"), item.get("familyName"), item.get("name"))
            for item in creators
            if isinstance(item, Mapping)
        ),
        journal=as_text(nested(attributes, "container", "title")),
        publisher=_publisher(attributes.get("publisher")),
        year=as_text(attributes.get("publicationYear")) or UNKNOWN_YEAR,
        doi=as_text(attributes.get("doi")) or doi,
        url=doi_url(doi),
        abstract=abstract,
        type=as_text(nested(attributes, "types", "resourceTypeGeneral")) or "dataset",
    )
