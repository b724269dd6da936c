"""
Open Library client and ISBN adapter.

The edition route (``/isbn/{isbn}.json``) is authoritative but references
authors by key, so up to :data:`MAX_AUTHOR_LOOKUPS` follow-up requests resolve
their names. When the edition route has no record the search index is queried
instead.

Reference: https://openlibrary.org/developers/api
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from ...core.credentials import Credential
from ...core.models import UNKNOWN_YEAR, BookRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, APIError, APIStatusError, BaseAPIClient, HTTPProviderAdapter
from .parsing import UNKNOWN_AUTHOR, as_text, extract_year, first_text, positive_int, string_list

DEFAULT_BASE_URL = "https://openlibrary.org"
COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-M.jpg"
MAX_AUTHOR_LOOKUPS = 5


class OpenLibraryClient(BaseAPIClient):
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

    async def get_edition(self, isbn: str) -> Dict[str, Any]:
        payload = await self._get_json(f"/isbn/{isbn}.json")
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from Open Library edition lookup.")
        return payload

    async def get_author(self, key: str) -> Dict[str, Any]:
        payload = await self._get_json(f"{key}.json")
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from Open Library author lookup.")
        return payload

    async def search_isbn(self, isbn: str) -> List[Dict[str, Any]]:
        payload = await self._get_json("/search.json", params={"isbn": isbn, "limit": 1})
        docs = payload.get("docs") if isinstance(payload, dict) else None
        if not isinstance(docs, list):
            raise APIDecodeError("Open Library search payload missing 'docs' list.")
        return [doc for doc in docs if isinstance(doc, dict)]


class OpenLibraryAdapter(HTTPProviderAdapter):
    """Primary ISBN provider."""

    provider_id = "open_library"

    def __init__(self, client: Optional[OpenLibraryClient] = None) -> None:
        super().__init__()
        self.client = client or OpenLibraryClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BookRecord]:
        try:
            edition = await self.client.get_edition(query)
        except APIStatusError as exc:
            if exc.status_code != 404:
                raise
            self.logger.debug("Edition not found, searching index", extra={"isbn": query})
            docs = await self.client.search_isbn(query)
            return parse_search_doc(docs[0], query) if docs else None

        names = await self._author_names(edition.get("authors"))
        return parse_edition(edition, query, names)

    async def _author_names(self, authors: Any) -> List[str]:
        if not isinstance(authors, list):
            return []
        names: List[str] = []
        for entry in authors[:MAX_AUTHOR_LOOKUPS]:
            key = as_text(entry.get("key")) if isinstance(entry, Mapping) else ""
            if not key:
                names.append(UNKNOWN_AUTHOR)
                continue
            try:
                author = await self.client.get_author(key)
            except APIError as exc:
                self.logger.debug("Author lookup failed", extra={"key": key, "error": str(exc)})
                names.append(UNKNOWN_AUTHOR)
                continue
            names.append(as_text(author.get("name")) or as_text(author.get("personal_name")) or UNKNOWN_AUTHOR)
        return names


def _cover_url(cover_id: Any) -> str:
    return COVER_URL_TEMPLATE.format(cover_id=cover_id) if cover_id else ""


def parse_edition(edition: Mapping[str, Any], isbn: str, author_names: List[str]) -> BookRecord:
    covers = edition.get("covers")
    publish_date = as_text(edition.get("publish_date"))
    return BookRecord(
        title=as_text(edition.get("title")),
        authors=tuple(author_names),
        publisher=first_text(edition.get("publishers")),
        year=extract_year(publish_date) if publish_date else UNKNOWN_YEAR,
        place=first_text(edition.get("publish_places")),
        page_count=positive_int(edition.get("number_of_pages")),
        isbn=first_text(edition.get("isbn_10")) or isbn,
        isbn13=first_text(edition.get("isbn_13")) or (isbn if len(isbn) == 13 else ""),
        cover_url=_cover_url(covers[0] if isinstance(covers, list) and covers else None),
    )


def parse_search_doc(doc: Mapping[str, Any], isbn: str) -> BookRecord:
    isbns = string_list(doc.get("isbn"))
    return BookRecord(
        title=as_text(doc.get("title")),
        authors=string_list(doc.get("author_name")),
        publisher=first_text(doc.get("publisher")),
        year=as_text(doc.get("first_publish_year")) or UNKNOWN_YEAR,
        place=first_text(doc.get("publish_place")),
        page_count=positive_int(doc.get("number_of_pages_median")),
        isbn=isbns[0] if isbns else isbn,
        isbn13=next((value for value in isbns if len(value) == 13), ""),
        cover_url=_cover_url(doc.get("cover_i")),
    )
