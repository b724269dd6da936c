"""
Core primitives of the resolution engine.

This package stays free of network code: it holds the provider registry,
credential pools, record types, quality predicates, the merger, and the
sequential resolver that ties them together. Adapters and services build on
top of it.
"""

from .cache import SummaryCache, summary_cache_key
from .credentials import ConfigurationError, Credential, CredentialPool
from .errors import InvalidIdentifierError, ResolverConfigurationError, ResolverError
from .logging import bind_tags, configure_logging, get_logger, log_progress
from .merge import MergeResult, ResultMerger
from .models import (
    Attempt,
    AttemptStatus,
    Author,
    BibliographicRecord,
    BookRecord,
    CredentialSource,
    Rejected,
    ResolutionReport,
    VideoRecord,
)
from .quality import has_authors, has_doi, has_named_authors, has_publish_date, non_empty_text
from .registry import Capability, ProviderDescriptor, ProviderRegistry, ProviderStatus, RegistryLoadError
from .resolver import MERGE_BASE_ACCEPTED, MERGE_BASE_PRIORITY, ProviderAdapter, ResolverStep, SequentialResolver

__all__ = [
    "MERGE_BASE_ACCEPTED",
    "MERGE_BASE_PRIORITY",
    "Attempt",
    "AttemptStatus",
    "Author",
    "BibliographicRecord",
    "BookRecord",
    "Capability",
    "ConfigurationError",
    "Credential",
    "CredentialPool",
    "CredentialSource",
    "InvalidIdentifierError",
    "MergeResult",
    "ProviderAdapter",
    "ProviderDescriptor",
    "ProviderRegistry",
    "ProviderStatus",
    "RegistryLoadError",
    "Rejected",
    "ResolutionReport",
    "ResolverConfigurationError",
    "ResolverError",
    "ResolverStep",
    "ResultMerger",
    "SequentialResolver",
    "SummaryCache",
    "VideoRecord",
    "bind_tags",
    "configure_logging",
    "get_logger",
    "has_authors",
    "has_doi",
    "has_named_authors",
    "has_publish_date",
    "log_progress",
    "non_empty_text",
    "summary_cache_key",
]
