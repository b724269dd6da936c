"""
Runtime settings and credential pools.

Settings are read from environment variables. A TOML secrets file may seed
the same values; the lookup order for it is:

1. Explicit ``RESEARCHMATE_SECRETS_PATH`` environment variable.
2. ``.secrets/secret.toml`` (then ``.secrets/secrets.toml``) relative to the
   working directory and the project root.

Environment variables always win over the secrets file. Expected TOML layout::

    [gemini]
    api_keys = ["AIza...", "AIza..."]

    [groq]
    api_key = "gsk_..."

    [crossref]
    mailto = "you@example.org"

Call :func:`load_settings` to obtain a frozen :class:`ResolverSettings` and
:meth:`ResolverSettings.build_pools` for the per-family credential pools.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .core.credentials import CredentialPool, split_secrets
from .core.errors import ResolverConfigurationError

DEFAULT_METADATA_TIMEOUT = 10.0
DEFAULT_LLM_TIMEOUT = 30.0
DEFAULT_HTTP_RETRIES = 1
DEFAULT_SUMMARY_CACHE_TTL = 3600.0

CREDENTIAL_PATTERNS: Mapping[str, str] = {
    "gemini": r"^AIza[0-9A-Za-z_\-]{30,}$",
    "groq": r"^gsk_[0-9A-Za-z]{20,}$",
    "openrouter": r"^sk-or-[0-9A-Za-z\-_]{20,}$",
    "anthropic": r"^sk-ant-[0-9A-Za-z\-_]{20,}$",
    "semantic_scholar": r"^[0-9A-Za-z]{20,}$",
    "youtube": r"^AIza[0-9A-Za-z_\-]{30,}$",
}

ANONYMOUS_FAMILIES: Tuple[str, ...] = ("crossref", "openalex", "datacite", "open_library", "google_books", "pubmed")


@dataclass(frozen=True, slots=True)
class ResolverSettings:
    """
    Immutable runtime configuration.

    Attributes
    ----------
    gemini_keys:
        Pooled Gemini keys. ``GEMINI_API_KEYS`` (comma separated) wins over the
        single ``GEMINI_API_KEY``.
    groq_key / openrouter_key / anthropic_key:
        Single fixed keys for the summarization fallbacks.
    semantic_scholar_keys:
        Optional pool; Semantic Scholar also works anonymously at a lower rate.
    youtube_keys:
        YouTube Data API keys. Without one the ``youtube`` chain starts at oEmbed.
    crossref_mailto:
        Contact address placed in the polite-pool ``User-Agent``.
    metadata_timeout / llm_timeout:
        Per-attempt ceilings in seconds for catalogue and LLM providers.
    http_retries:
        Total HTTP attempts per provider call on transport errors.
    summary_cache_ttl:
        Lifetime of cached summaries in seconds.
    source_path:
        Secrets file that seeded these settings, if any.
    """

    gemini_keys: Tuple[str, ...] = ()
    groq_key: Optional[str] = field(default=None, repr=False)
    openrouter_key: Optional[str] = field(default=None, repr=False)
    anthropic_key: Optional[str] = field(default=None, repr=False)
    semantic_scholar_keys: Tuple[str, ...] = field(default=(), repr=False)
    youtube_keys: Tuple[str, ...] = field(default=(), repr=False)
    crossref_mailto: Optional[str] = None
    metadata_timeout: float = DEFAULT_METADATA_TIMEOUT
    llm_timeout: float = DEFAULT_LLM_TIMEOUT
    http_retries: int = DEFAULT_HTTP_RETRIES
    summary_cache_ttl: float = DEFAULT_SUMMARY_CACHE_TTL
    source_path: Optional[Path] = None

    def __repr__(self) -> str:
        return (
            f"ResolverSettings(gemini_keys={len(self.gemini_keys)}, groq={bool(self.groq_key)}, "
            f"openrouter={bool(self.openrouter_key)}, anthropic={bool(self.anthropic_key)}, "
            f"semantic_scholar_keys={len(self.semantic_scholar_keys)}, youtube_keys={len(self.youtube_keys)}, "
            f"source_path={self.source_path})"
        )

    def build_pools(self) -> Dict[str, CredentialPool]:
        """Return one credential pool per provider family."""

        pools: Dict[str, CredentialPool] = {
            "gemini": CredentialPool(family="gemini", secrets=self.gemini_keys, pattern=CREDENTIAL_PATTERNS["gemini"]),
            "groq": CredentialPool.fixed("groq", self.groq_key, pattern=CREDENTIAL_PATTERNS["groq"]),
            "openrouter": CredentialPool.fixed("openrouter", self.openrouter_key, pattern=CREDENTIAL_PATTERNS["openrouter"]),
            "anthropic": CredentialPool.fixed("anthropic", self.anthropic_key, pattern=CREDENTIAL_PATTERNS["anthropic"]),
            "semantic_scholar": CredentialPool(
                family="semantic_scholar",
                secrets=self.semantic_scholar_keys,
                pattern=CREDENTIAL_PATTERNS["semantic_scholar"],
                required=False,
            ),
            "youtube": CredentialPool(family="youtube", secrets=self.youtube_keys, pattern=CREDENTIAL_PATTERNS["youtube"]),
        }
        for family in ANONYMOUS_FAMILIES:
            pools[family] = CredentialPool.anonymous(family)
        return pools


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv("RESEARCHMATE_SECRETS_PATH")
    if env_override:
        yield Path(env_override).expanduser()
        return

    roots = [Path.cwd()]
    project_root = _discover_project_root()
    if project_root and project_root not in roots:
        roots.append(project_root)
    for root in roots:
        for filename in ("secret.toml", "secrets.toml"):
            yield root / ".secrets" / filename


def load_secrets_file(path: Optional[Path] = None) -> Tuple[Optional[Path], Dict[str, Any]]:
    """
    Locate and parse the secrets file.

    Returns ``(None, {})`` when no file exists. A file that exists but cannot
    be parsed raises :class:`ResolverConfigurationError`.
    """

    candidates = [path] if path is not None else list(_candidate_paths())
    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            with candidate.open("rb") as handle:
                return candidate, tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ResolverConfigurationError(f"Failed to read secrets file {candidate}: {exc}") from exc
    return None, {}


def _section_value(raw: Mapping[str, Any], section: str, key: str) -> Any:
    block = raw.get(section)
    if not isinstance(block, Mapping):
        return None
    return block.get(key)


def _text(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _number(env: Mapping[str, str], name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ResolverConfigurationError(f"{name} must be a number, got '{raw}'.") from exc
    if value <= minimum:
        raise ResolverConfigurationError(f"{name} must be greater than {minimum:g}, got '{raw}'.")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None, secrets_path: Optional[Path] = None) -> ResolverSettings:
    """
    Build :class:`ResolverSettings` from ``env`` (defaults to :data:`os.environ`).

    Parameters
    ----------
    env:
        Mapping to read variables from; tests pass a plain dict.
    secrets_path:
        Explicit secrets file. When omitted the default lookup order applies.
    """

    env = os.environ if env is None else env
    source_path, raw = load_secrets_file(secrets_path)

    gemini_keys = split_secrets(env.get("GEMINI_API_KEYS"))
    if not gemini_keys:
        gemini_keys = split_secrets(env.get("GEMINI_API_KEY"))
    if not gemini_keys:
        gemini_keys = split_secrets(_section_value(raw, "gemini", "api_keys")) or split_secrets(_text(_section_value(raw, "gemini", "api_key")))

    semantic_keys = split_secrets(env.get("SEMANTIC_SCHOLAR_API_KEYS")) or split_secrets(_section_value(raw, "semantic_scholar", "api_keys"))
    youtube_keys = (
        split_secrets(env.get("YOUTUBE_API_KEYS"))
        or split_secrets(env.get("YOUTUBE_API_KEY"))
        or split_secrets(_section_value(raw, "youtube", "api_keys"))
        or split_secrets(_text(_section_value(raw, "youtube", "api_key")))
    )

    return ResolverSettings(
        gemini_keys=gemini_keys,
        groq_key=_text(env.get("GROQ_API_KEY")) or _text(_section_value(raw, "groq", "api_key")),
        openrouter_key=_text(env.get("OPENROUTER_API_KEY")) or _text(_section_value(raw, "openrouter", "api_key")),
        anthropic_key=_text(env.get("ANTHROPIC_API_KEY")) or _text(_section_value(raw, "anthropic", "api_key")),
        semantic_scholar_keys=semantic_keys,
        youtube_keys=youtube_keys,
        crossref_mailto=_text(env.get("CROSSREF_MAILTO")) or _text(_section_value(raw, "crossref", "mailto")),
        metadata_timeout=_number(env, "RESEARCHMATE_METADATA_TIMEOUT", DEFAULT_METADATA_TIMEOUT),
        llm_timeout=_number(env, "RESEARCHMATE_LLM_TIMEOUT", DEFAULT_LLM_TIMEOUT),
        http_retries=int(_number(env, "RESEARCHMATE_HTTP_RETRIES", DEFAULT_HTTP_RETRIES)),
        summary_cache_ttl=_number(env, "RESEARCHMATE_SUMMARY_CACHE_TTL", DEFAULT_SUMMARY_CACHE_TTL),
        source_path=source_path,
    )


__all__ = [
    "CREDENTIAL_PATTERNS",
    "ResolverSettings",
    "load_secrets_file",
    "load_settings",
]
