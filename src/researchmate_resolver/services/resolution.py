"""
Resolution service façade wiring registry, settings, pools, and adapters.

The service builds one :class:`SequentialResolver` per capability at
construction time and exposes a coroutine per public operation. It is shared
by the CLI and by any embedding application; concurrent calls on one instance
are safe because resolvers, pools, and adapters hold no per-call state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import LoggerAdapter
from typing import Dict, List, Mapping, Optional, Union

import httpx

from ..config import ResolverSettings, load_settings
from ..core import (
    MERGE_BASE_ACCEPTED,
    MERGE_BASE_PRIORITY,
    Attempt,
    AttemptStatus,
    BibliographicRecord,
    Capability,
    CredentialPool,
    ProviderAdapter,
    ProviderDescriptor,
    ProviderRegistry,
    ResolutionReport,
    ResolverConfigurationError,
    ResolverStep,
    ResultMerger,
    SequentialResolver,
    SummaryCache,
    bind_tags,
    get_logger,
    has_authors,
    has_doi,
    has_named_authors,
    has_publish_date,
    log_progress,
    non_empty_text,
    summary_cache_key,
)
from ..core.errors import InvalidIdentifierError
from ..core.identifiers import IdentifierLookup, extract_doi_from_url, is_valid_doi, normalize_doi, normalize_isbn, normalize_video_id
from ..core.quality import QualityPredicate
from ..llm.prompts import SummaryRequest, SummaryStyle
from .adapters import resolve_adapter


@dataclass(slots=True)
class ResolutionService:
    """
    High-level entry point for DOI, ISBN, URL, YouTube, and summarization requests.

    Parameters
    ----------
    settings:
        Runtime settings. Loaded from the environment when omitted.
    registry:
        Provider catalogue. The bundled catalogue is used when omitted.
    pools:
        Credential pools keyed by family. Built from ``settings`` when omitted.
    adapters:
        Adapter overrides keyed by provider id, mainly for tests. Providers
        without an override are resolved through :func:`resolve_adapter`.
    transport:
        Optional HTTPX transport shared by every HTTP client.
    cache:
        Summary cache. A fresh one honouring ``settings.summary_cache_ttl`` is
        created when omitted.
    """

    settings: Optional[ResolverSettings] = None
    registry: Optional[ProviderRegistry] = None
    pools: Optional[Mapping[str, CredentialPool]] = None
    adapters: Mapping[str, ProviderAdapter] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    cache: Optional[SummaryCache] = None
    logger: LoggerAdapter = field(init=False, repr=False)
    _resolvers: Dict[Capability, SequentialResolver] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(self.__class__.__name__)
        if self.settings is None:
            self.settings = load_settings()
        if self.registry is None:
            self.registry = ProviderRegistry.default()
        if self.pools is None:
            self.pools = self.settings.build_pools()
        if self.cache is None:
            self.cache = SummaryCache(ttl=self.settings.summary_cache_ttl)

        metadata_timeout = self.settings.metadata_timeout
        llm_timeout = self.settings.llm_timeout
        self._resolvers = {
            Capability.DOI: self._build_resolver(Capability.DOI, has_authors, merger=ResultMerger(), timeout=metadata_timeout),
            # Catalogue title and publisher stay authoritative; later providers only patch authors and gaps.
            Capability.ISBN: self._build_resolver(
                Capability.ISBN,
                has_named_authors,
                merger=ResultMerger(),
                timeout=max(metadata_timeout, llm_timeout),
                merge_base=MERGE_BASE_PRIORITY,
            ),
            Capability.SUMMARIZE: self._build_resolver(
                Capability.SUMMARIZE,
                non_empty_text,
                merger=None,
                timeout=llm_timeout,
                allow_partial=False,
            ),
            Capability.PMID: self._build_resolver(Capability.PMID, has_doi, merger=ResultMerger(), timeout=metadata_timeout),
            Capability.IEEE: self._build_resolver(Capability.IEEE, has_doi, merger=ResultMerger(), timeout=metadata_timeout),
            Capability.YOUTUBE: self._build_resolver(Capability.YOUTUBE, has_publish_date, merger=ResultMerger(), timeout=metadata_timeout),
            Capability.VIDEO_ENRICH: self._build_resolver(Capability.VIDEO_ENRICH, has_publish_date, merger=None, timeout=llm_timeout),
        }

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _pool_for(self, descriptor: ProviderDescriptor) -> CredentialPool:
        family = descriptor.credential_family
        if not family:
            return CredentialPool.anonymous(descriptor.provider_id)
        pool = (self.pools or {}).get(family)
        return pool if pool is not None else CredentialPool(family=family)

    def _build_resolver(
        self,
        capability: Capability,
        predicate: QualityPredicate,
        *,
        merger: Optional[ResultMerger],
        timeout: float,
        allow_partial: bool = True,
        merge_base: str = MERGE_BASE_ACCEPTED,
    ) -> SequentialResolver:
        steps: List[ResolverStep] = []
        for descriptor in self.registry.chain(capability):
            adapter = self.adapters.get(descriptor.provider_id) or resolve_adapter(descriptor, self.settings, transport=self.transport)
            if adapter is None:
                self.logger.warning("No adapter implementation; provider skipped", extra={"provider": descriptor.provider_id})
                continue
            steps.append(ResolverStep(descriptor=descriptor, adapter=adapter, pool=self._pool_for(descriptor)))

        logger = bind_tags(get_logger("SequentialResolver", extra={"capability": capability.value}), [capability.value])
        return SequentialResolver(
            capability.value,
            steps,
            predicate,
            merger=merger,
            timeout=timeout,
            allow_partial=allow_partial,
            merge_base=merge_base,
            logger=logger,
        )

    def resolver(self, capability: Capability) -> SequentialResolver:
        return self._resolvers[capability]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def cite_doi(self, doi: str, *, override: Optional[str] = None) -> ResolutionReport:
        """Resolve citation metadata for ``doi``. Raises :class:`InvalidIdentifierError` for malformed input."""

        cleaned = normalize_doi(doi)
        return await self._resolvers[Capability.DOI].resolve(cleaned, override=override)

    async def cite_isbn(self, isbn: str, *, override: Optional[str] = None) -> ResolutionReport:
        cleaned = normalize_isbn(isbn)
        return await self._resolvers[Capability.ISBN].resolve(cleaned, override=override)

    async def cite_url(self, url: str, *, override: Optional[str] = None) -> ResolutionReport:
        """
        Derive a DOI from a publisher URL and resolve it.

        IEEE Xplore and PubMed links carry a document number instead of a DOI;
        it is first translated through the ``ieee`` or ``pmid`` chain. When no
        DOI can be derived, a not-found report with no attempts is returned
        and no provider is contacted.
        """

        if not url or not url.strip():
            raise InvalidIdentifierError("URL is required.")
        extraction = extract_doi_from_url(url.strip())
        if extraction.lookup is not None:
            return await self._cite_via_lookup(extraction.lookup, override=override)
        if extraction.doi is None:
            log_progress(self.logger, "No DOI pattern matched", phase="url", status="not-found", extra={"url": url})
            return ResolutionReport(capability=Capability.DOI.value, result=None, winning_provider=None)

        log_progress(self.logger, "DOI extracted from URL", phase="url", status="extracted", result=extraction.doi, extra={"pattern": extraction.source})
        return await self.cite_doi(extraction.doi, override=override)

    async def _cite_via_lookup(self, lookup: IdentifierLookup, *, override: Optional[str]) -> ResolutionReport:
        # Full DOI metadata wins; the lookup record is the fallback when it names authors.
        lookup_report = await self._resolvers[Capability(lookup.capability)].resolve(lookup.identifier)
        attempts = lookup_report.attempts
        record = lookup_report.result
        doi = record.doi if isinstance(record, BibliographicRecord) else ""

        doi_report: Optional[ResolutionReport] = None
        if doi and is_valid_doi(doi):
            log_progress(self.logger, "DOI found by identifier lookup", phase="url", step=lookup.capability, status="extracted", result=doi)
            doi_report = await self._resolvers[Capability.DOI].resolve(doi, override=override)
            attempts = attempts + doi_report.attempts
            if doi_report.found and not doi_report.partial:
                return replace(doi_report, attempts=attempts)

        if record is not None and has_authors(record):
            return replace(lookup_report, attempts=attempts)
        if doi_report is not None and doi_report.found:
            return replace(doi_report, attempts=attempts)
        return ResolutionReport(capability=Capability.DOI.value, result=None, winning_provider=None, attempts=attempts)

    async def cite_youtube(self, url: str, *, override: Optional[str] = None) -> ResolutionReport:
        """
        Resolve video metadata for a YouTube link or bare video id.

        When the catalogue chain only produced a partial record (no
        publication date, the usual oEmbed case), the ``video_enrich`` chain
        estimates the missing date and description and the result is merged
        into the catalogue record without overwriting it.
        """

        video_id = normalize_video_id(url)
        report = await self._resolvers[Capability.YOUTUBE].resolve(video_id, override=override)
        if not report.found or not report.partial:
            return report

        enricher = self._resolvers[Capability.VIDEO_ENRICH]
        try:
            enrichment = await enricher.resolve(report.result, override=override)
        except ResolverConfigurationError as exc:
            log_progress(self.logger, "Video enrichment skipped", phase=Capability.VIDEO_ENRICH.value, status="configuration-error")
            skipped = Attempt(provider=enricher.provider_ids[0], status=AttemptStatus.CONFIGURATION_ERROR, error_detail=str(exc))
            return replace(report, attempts=report.attempts + (skipped,))

        attempts = report.attempts + enrichment.attempts
        if not enrichment.found or enrichment.winning_provider is None:
            return replace(report, attempts=attempts)

        merged = ResultMerger().merge(report.result, report.winning_provider or "", [(enrichment.winning_provider, enrichment.result)])
        field_sources = dict(report.field_sources)
        field_sources.update({name: source for name, source in merged.field_sources.items() if source == enrichment.winning_provider})
        return replace(
            report,
            result=merged.record,
            attempts=attempts,
            field_sources=field_sources,
            partial=not has_publish_date(merged.record),
        )

    async def summarize(
        self,
        text: str,
        *,
        style: Union[SummaryStyle, str] = SummaryStyle.RESEARCH,
        override: Optional[str] = None,
    ) -> ResolutionReport:
        """
        Summarize ``text`` through the LLM chain.

        Successful results are cached per ``(style, text)``; a cache hit
        returns ``cached=True`` with no attempts.
        """

        if not text or not text.strip():
            raise InvalidIdentifierError("Text is required.")
        try:
            resolved_style = SummaryStyle(style)
        except ValueError as exc:
            raise InvalidIdentifierError(f"Unknown summary style '{style}'. Expected one of: research, document.") from exc

        cleaned = text.strip()
        key = summary_cache_key(cleaned, resolved_style.value)
        hit = self.cache.get(key)
        if hit is not None:
            summary, provider = hit
            log_progress(self.logger, "Summary served from cache", phase=Capability.SUMMARIZE.value, status="cached", result=provider, extra={"cache": "hit"})
            return ResolutionReport(
                capability=Capability.SUMMARIZE.value,
                result=summary,
                winning_provider=provider,
                cached=True,
            )

        report = await self._resolvers[Capability.SUMMARIZE].resolve(SummaryRequest(cleaned, resolved_style), override=override)
        if report.found and not report.partial and report.winning_provider:
            self.cache.put(key, str(report.result), report.winning_provider)
        return report


__all__ = ["ResolutionService"]
