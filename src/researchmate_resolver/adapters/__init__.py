"""
Adapter interfaces for external metadata providers.

Concrete HTTP adapters live in :mod:`.api`; LLM-backed adapters live in
:mod:`researchmate_resolver.llm`. Each adapter covers a single provider and
never raises out of ``attempt``.
"""

from .base import AdapterError, ProviderAdapter

__all__ = ["AdapterError", "ProviderAdapter"]
