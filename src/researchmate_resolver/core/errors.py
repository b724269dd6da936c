"""Exception hierarchy raised by the resolution engine itself.

Provider failures never surface through these types; they are recorded as
attempts on the returned report. Only conditions that make a resolution
impossible before or regardless of any provider call are raised.
"""

from __future__ import annotations


class ResolverError(RuntimeError):
    """Base exception for resolution engine errors."""


class ResolverConfigurationError(ResolverError):
    """Raised when a capability cannot be resolved at all because its only provider lacks credentials."""


class InvalidIdentifierError(ResolverError, ValueError):
    """Raised when a DOI, ISBN, URL, or text input is malformed or blank."""
