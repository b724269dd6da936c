"""
Credential pools for provider families.

A pool is an immutable value: selection picks uniformly at random and keeps no
counters, so concurrent resolutions can share one pool without locking.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from .models import CredentialSource


@dataclass(frozen=True, slots=True)
class Credential:
    """An opaque secret plus the place it came from."""

    family: str
    secret: str = field(repr=False)
    source: CredentialSource = CredentialSource.POOL

    @property
    def is_anonymous(self) -> bool:
        return self.source == CredentialSource.ANONYMOUS

    def __str__(self) -> str:
        if not self.secret:
            return f"{self.family}:<none>"
        return f"{self.family}:…{self.secret[-4:]}"


@dataclass(frozen=True, slots=True)
class ConfigurationError:
    """Returned by :meth:`CredentialPool.select` when a family has no usable secret."""

    family: str
    message: str


SelectionResult = Union[Credential, ConfigurationError]


def split_secrets(raw: Optional[str | Iterable[str]]) -> tuple[str, ...]:
    """Parse a comma-separated secret string (or iterable) into a de-duplicated tuple."""

    if raw is None:
        return ()
    items: Iterable[str] = raw.split(",") if isinstance(raw, str) else raw
    cleaned = (str(item).strip() for item in items)
    return tuple(dict.fromkeys(item for item in cleaned if item))


@dataclass(frozen=True, slots=True)
class CredentialPool:
    """
    Interchangeable secrets for one provider family.

    Parameters
    ----------
    family:
        Provider family name, e.g. ``gemini``.
    secrets:
        Configured secrets. Order is irrelevant to selection.
    pattern:
        Regular expression a caller-supplied override must match. Families
        without a pattern never accept overrides.
    required:
        When ``False`` an empty pool yields an anonymous credential instead of
        a configuration error.
    """

    family: str
    secrets: Sequence[str] = ()
    pattern: Optional[str] = None
    required: bool = True
    rng: random.Random = field(default_factory=random.SystemRandom, repr=False, compare=False)

    @classmethod
    def from_env_value(
        cls,
        family: str,
        raw: Optional[str | Iterable[str]],
        *,
        pattern: Optional[str] = None,
        required: bool = True,
    ) -> "CredentialPool":
        return cls(family=family, secrets=split_secrets(raw), pattern=pattern, required=required)

    @classmethod
    def fixed(cls, family: str, secret: Optional[str], *, pattern: Optional[str] = None) -> "CredentialPool":
        """A pool holding at most one secret, used for rarely-invoked fallback providers."""

        return cls(family=family, secrets=split_secrets([secret] if secret else None)[:1], pattern=pattern)

    @classmethod
    def anonymous(cls, family: str) -> "CredentialPool":
        """A pool for providers that need no secret at all."""

        return cls(family=family, required=False)

    def __len__(self) -> int:
        return len(self.secrets)

    def accepts(self, candidate: Optional[str]) -> bool:
        """Return ``True`` when ``candidate`` has the credential shape expected by this family."""

        if not candidate or not self.pattern:
            return False
        return re.fullmatch(self.pattern, candidate.strip()) is not None

    def select(self, override: Optional[str] = None) -> SelectionResult:
        """
        Pick a credential for one call.

        A well-formed ``override`` short-circuits the pool and is tagged
        ``user-supplied``. Otherwise a secret is drawn uniformly at random.
        """

        if override and self.accepts(override):
            return Credential(family=self.family, secret=override.strip(), source=CredentialSource.USER_SUPPLIED)
        if self.secrets:
            return Credential(family=self.family, secret=self.rng.choice(list(self.secrets)), source=CredentialSource.POOL)
        if not self.required:
            return Credential(family=self.family, secret="", source=CredentialSource.ANONYMOUS)
        return ConfigurationError(family=self.family, message=f"No credentials configured for provider family '{self.family}'.")
