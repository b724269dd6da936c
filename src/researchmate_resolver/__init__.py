"""
Multi-provider resolution engine for citation metadata and text summaries.

:class:`~researchmate_resolver.services.ResolutionService` is the main entry
point: it resolves DOIs, ISBNs, and publisher URLs against ordered provider
chains and summarizes text through an LLM fallback chain. The building blocks
(registry, credential pools, quality predicates, merger, resolver) live in
:mod:`researchmate_resolver.core`.
"""

from .config import ResolverSettings, load_settings
from .core import ResolutionReport, SequentialResolver
from .services import ResolutionService

__all__ = [
    "ResolutionReport",
    "ResolutionService",
    "ResolverSettings",
    "SequentialResolver",
    "load_settings",
]
