"""
Map registry descriptors to concrete adapter instances.
"""

from __future__ import annotations

from typing import Optional

import httpx

from ..adapters.api import (
    CrossrefAdapter,
    CrossrefClient,
    CrossrefIeeeAdapter,
    DataCiteAdapter,
    DataCiteClient,
    GoogleBooksAdapter,
    GoogleBooksClient,
    OpenAlexAdapter,
    OpenAlexClient,
    OpenAlexIeeeAdapter,
    OpenLibraryAdapter,
    OpenLibraryClient,
    PubMedAdapter,
    PubMedClient,
    SemanticScholarAdapter,
    SemanticScholarClient,
    YouTubeDataAdapter,
    YouTubeDataClient,
    YouTubeOEmbedAdapter,
    YouTubeOEmbedClient,
)
from ..adapters.api.crossref import DEFAULT_MAILTO
from ..config import ResolverSettings
from ..core.registry import ProviderDescriptor
from ..core.resolver import ProviderAdapter
from ..llm import (
    AnthropicClient,
    AnthropicSummaryAdapter,
    GeminiClient,
    GeminiIsbnAdapter,
    GeminiSummaryAdapter,
    GeminiVideoAdapter,
    groq_adapter,
    openrouter_adapter,
)


def resolve_adapter(
    descriptor: ProviderDescriptor,
    settings: ResolverSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[ProviderAdapter]:
    """
    Locate a concrete adapter implementation for a registry provider.

    Returns ``None`` for provider ids without an implementation so a catalogue
    can list providers ahead of their adapters.
    """

    provider_id = descriptor.provider_id
    metadata = {"timeout": settings.metadata_timeout, "retries": settings.http_retries, "transport": transport}
    llm = {"timeout": settings.llm_timeout, "retries": settings.http_retries, "transport": transport}
    if descriptor.base_url:
        metadata["base_url"] = descriptor.base_url
        llm["base_url"] = descriptor.base_url

    if provider_id == "crossref":
        return CrossrefAdapter(CrossrefClient(mailto=settings.crossref_mailto or DEFAULT_MAILTO, **metadata))
    if provider_id == "semantic_scholar":
        return SemanticScholarAdapter(SemanticScholarClient(**metadata))
    if provider_id == "openalex":
        return OpenAlexAdapter(OpenAlexClient(mailto=settings.crossref_mailto, **metadata))
    if provider_id == "datacite":
        return DataCiteAdapter(DataCiteClient(**metadata))
    if provider_id == "open_library":
        return OpenLibraryAdapter(OpenLibraryClient(**metadata))
    if provider_id == "google_books":
        return GoogleBooksAdapter(GoogleBooksClient(**metadata))
    if provider_id == "pubmed":
        return PubMedAdapter(PubMedClient(**metadata))
    if provider_id == "crossref_ieee":
        return CrossrefIeeeAdapter(CrossrefClient(mailto=settings.crossref_mailto or DEFAULT_MAILTO, **metadata))
    if provider_id == "openalex_ieee":
        return OpenAlexIeeeAdapter(OpenAlexClient(mailto=settings.crossref_mailto, **metadata))
    if provider_id == "youtube_data":
        return YouTubeDataAdapter(YouTubeDataClient(**metadata))
    if provider_id == "youtube_oembed":
        return YouTubeOEmbedAdapter(YouTubeOEmbedClient(**metadata))

    model_kwargs = {"model": descriptor.model} if descriptor.model else {}
    if provider_id == "gemini":
        return GeminiSummaryAdapter(GeminiClient(**llm), **model_kwargs)
    if provider_id == "gemini_isbn":
        return GeminiIsbnAdapter(GeminiClient(**llm), **model_kwargs)
    if provider_id == "gemini_video":
        return GeminiVideoAdapter(GeminiClient(**llm), **model_kwargs)
    if provider_id == "groq":
        return groq_adapter(**llm, **model_kwargs)
    if provider_id == "openrouter":
        return openrouter_adapter(**llm, **model_kwargs)
    if provider_id == "anthropic":
        return AnthropicSummaryAdapter(AnthropicClient(**llm), **model_kwargs)
    return None
