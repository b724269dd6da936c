"""
Base types for provider adapters.

Adapters are intentionally narrow: each one shapes a request for a single
upstream provider and parses the response into a normalized record. They never
raise past :meth:`attempt`; ordering, acceptance, and merging are handled by
:class:`~researchmate_resolver.core.resolver.SequentialResolver`.
"""

from __future__ import annotations

from ..core.resolver import ProviderAdapter


class AdapterError(RuntimeError):
    """Raised inside adapters when a provider response cannot be turned into a record."""


__all__ = ["AdapterError", "ProviderAdapter"]
