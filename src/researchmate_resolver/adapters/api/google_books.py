"""
Google Books volumes API client and ISBN adapter.

Reference: https://developers.google.com/books/docs/v1/using
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from ...core.credentials import Credential
from ...core.models import UNKNOWN_YEAR, BookRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import as_text, extract_year, positive_int, string_list

DEFAULT_BASE_URL = "https://www.googleapis.com/books/v1"


class GoogleBooksClient(BaseAPIClient):
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

    async def search_volumes(self, query: str) -> List[Dict[str, Any]]:
        payload = await self._get_json("/volumes", params={"q": query})
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from Google Books volumes search.")
        items = payload.get("items") or []
        return [item for item in items if isinstance(item, dict)]


class GoogleBooksAdapter(HTTPProviderAdapter):
    provider_id = "google_books"

    def __init__(self, client: Optional[GoogleBooksClient] = None) -> None:
        super().__init__()
        self.client = client or GoogleBooksClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BookRecord]:
        items = await self.client.search_volumes(f"isbn:{query}")
        if not items:
            return None
        info = items[0].get("volumeInfo")
        if not isinstance(info, Mapping):
            return None
        return parse_volume_info(info, query)


def _isbn13(identifiers: Any) -> str:
    if not isinstance(identifiers, list):
        return ""
    for entry in identifiers:
        if isinstance(entry, Mapping) and entry.get("type") == "ISBN_13":
            return as_text(entry.get("identifier"))
    return ""


def parse_volume_info(info: Mapping[str, Any], isbn: str) -> BookRecord:
    published = as_text(info.get("publishedDate"))
    image_links = info.get("imageLinks") if isinstance(info.get("imageLinks"), Mapping) else {}
    return BookRecord(
        title=as_text(info.get("title")),
        authors=string_list(info.get("authors")),
        publisher=as_text(info.get("publisher")),
        year=extract_year(published) if published else UNKNOWN_YEAR,
        page_count=positive_int(info.get("pageCount")),
        isbn=isbn,
        isbn13=_isbn13(info.get("industryIdentifiers")),
        cover_url=as_text(image_links.get("thumbnail")),
    )
