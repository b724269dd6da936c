"""
NCBI E-utilities client for PubMed id lookups.

``esummary`` returns the article's bibliographic summary together with its
other identifiers; the DOI, when PubMed knows it, sits in ``articleids``.

Reference: https://www.ncbi.nlm.nih.gov/books/NBK25499/
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from ...core.credentials import Credential
from ...core.models import Author, BibliographicRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import UNKNOWN_AUTHOR, as_text, doi_url, extract_year

DEFAULT_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"


class PubMedClient(BaseAPIClient):
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

    async def summary(self, pmid: str) -> Dict[str, Any]:
        payload = await self._get_json("/esummary.fcgi", params={"db": "pubmed", "id": pmid, "retmode": "json"})
        if not isinstance(payload, dict) or not isinstance(payload.get("result"), dict):
            raise APIDecodeError("PubMed esummary payload missing 'result' object.")
        return payload["result"]


class PubMedAdapter(HTTPProviderAdapter):
    """Translate a PubMed id into article metadata and, when available, its DOI."""

    provider_id = "pubmed"

    def __init__(self, client: Optional[PubMedClient] = None) -> None:
        super().__init__()
        self.client = client or PubMedClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[BibliographicRecord]:
        result = await self.client.summary(query)
        article = result.get(query)
        if not isinstance(article, Mapping) or "error" in article:
            return None
        return parse_summary(article, query)


def _pubmed_author(name: Any) -> Author:
    # PubMed lists authors as "Family Initials", e.g. "Doe JA".
    text = as_text(name)
    if not text:
        return Author(full_name=UNKNOWN_AUTHOR)
    family, _, initials = text.partition(" ")
    return Author(full_name=text, first_name=initials, last_name=family)


def article_doi(article: Mapping[str, Any]) -> str:
    ids = article.get("articleids")
    if not isinstance(ids, list):
        return ""
    for item in ids:
        if isinstance(item, Mapping) and as_text(item.get("idtype")).lower() == "doi":
            return as_text(item.get("value"))
    return ""


def parse_summary(article: Mapping[str, Any], pmid: str) -> BibliographicRecord:
    authors = article.get("authors") if isinstance(article.get("authors"), list) else []
    journal = as_text(article.get("fulljournalname")) or as_text(article.get("source"))
    doi = article_doi(article)
    return BibliographicRecord(
        title=as_text(article.get("title")).rstrip("."),
        authors=tuple(_pubmed_author(item.get("name")) for item in authors if isinstance(item, Mapping)),
        journal=journal,
        year=extract_year(article.get("pubdate")),
        volume=as_text(article.get("volume")),
        issue=as_text(article.get("issue")),
        pages=as_text(article.get("pages")),
        doi=doi,
        url=doi_url(doi) if doi else f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
        type="journal-article",
        venue=journal,
    )
