"""
Service-layer helpers orchestrating registries, credential pools, and adapters.
"""

from .adapters import resolve_adapter
from .resolution import ResolutionService

__all__ = ["ResolutionService", "resolve_adapter"]
