"""
HTTP API clients and adapters for bibliographic metadata providers.

Each submodule exposes two layers:

* ``Client`` classes wrap low-level HTTP calls with retry logic.
* ``Adapter`` classes implement the provider contract consumed by
  :class:`~researchmate_resolver.core.resolver.SequentialResolver`.
"""

from .base import (
    APIDecodeError,
    APIError,
    APIStatusError,
    APITransportError,
    BaseAPIClient,
    HTTPProviderAdapter,
)
from .crossref import CrossrefAdapter, CrossrefClient, CrossrefIeeeAdapter
from .datacite import DataCiteAdapter, DataCiteClient
from .google_books import GoogleBooksAdapter, GoogleBooksClient
from .open_library import OpenLibraryAdapter, OpenLibraryClient
from .openalex import OpenAlexAdapter, OpenAlexClient, OpenAlexIeeeAdapter
from .pubmed import PubMedAdapter, PubMedClient
from .semantic_scholar import SemanticScholarAdapter, SemanticScholarClient
from .youtube import YouTubeDataAdapter, YouTubeDataClient, YouTubeOEmbedAdapter, YouTubeOEmbedClient

__all__ = [
    "APIDecodeError",
    "APIError",
    "APIStatusError",
    "APITransportError",
    "BaseAPIClient",
    "CrossrefAdapter",
    "CrossrefClient",
    "CrossrefIeeeAdapter",
    "DataCiteAdapter",
    "DataCiteClient",
    "GoogleBooksAdapter",
    "GoogleBooksClient",
    "HTTPProviderAdapter",
    "OpenAlexAdapter",
    "OpenAlexClient",
    "OpenAlexIeeeAdapter",
    "OpenLibraryAdapter",
    "OpenLibraryClient",
    "PubMedAdapter",
    "PubMedClient",
    "SemanticScholarAdapter",
    "SemanticScholarClient",
    "YouTubeDataAdapter",
    "YouTubeDataClient",
    "YouTubeOEmbedAdapter",
    "YouTubeOEmbedClient",
]
