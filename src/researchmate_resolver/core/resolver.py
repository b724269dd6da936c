"""
Sequential multi-provider resolution.

A :class:`SequentialResolver` tries the providers configured for one
capability strictly in priority order, awaiting each call before deciding
whether to move on. The first record accepted by the capability's quality
predicate stops the loop. Records rejected on quality are kept and merged
into the final result so partial answers are patched rather than discarded.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from logging import LoggerAdapter
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from .credentials import ConfigurationError, Credential, CredentialPool
from .errors import ResolverConfigurationError
from .logging import get_logger, log_progress
from .merge import ResultMerger
from .models import Attempt, AttemptStatus, Rejected, ResolutionReport
from .quality import QualityPredicate
from .registry import ProviderDescriptor

DEFAULT_ATTEMPT_TIMEOUT = 10.0

# Which record the merger builds on.
MERGE_BASE_ACCEPTED = "accepted"
MERGE_BASE_PRIORITY = "priority"


class ProviderAdapter(Protocol):
    """Contract implemented by every provider adapter. Implementations must not raise."""

    async def attempt(self, query: Any, credential: Credential) -> Any:
        """Return a normalized record, or a :class:`Rejected` describing why none was produced."""


@dataclass(frozen=True, slots=True)
class ResolverStep:
    """A provider descriptor bound to its adapter and credential pool."""

    descriptor: ProviderDescriptor
    adapter: ProviderAdapter
    pool: CredentialPool

    @property
    def provider_id(self) -> str:
        return self.descriptor.provider_id


class SequentialResolver:
    """
    Orchestrate an ordered provider chain for a single capability.

    Parameters
    ----------
    capability:
        Capability label used in reports and logs.
    steps:
        Bound providers. They are sorted by descriptor priority on construction.
    predicate:
        Quality rule applied to each successfully parsed record.
    merger:
        Gap-filling merger for structured records. ``None`` disables merging,
        which is the right choice for scalar outputs such as generated text.
    timeout:
        Ceiling in seconds for each provider call. Exceeding it counts as a
        network error.
    allow_partial:
        When ``True`` and nothing is accepted, the best quality-rejected
        record is still returned, flagged as partial.
    merge_base:
        ``"accepted"`` builds the result on the accepted record and lets
        quality-rejected records fill its gaps. ``"priority"`` builds on the
        highest-priority record instead, so a catalogue entry keeps its
        title and publisher while a later source supplies missing authors.
    """

    def __init__(
        self,
        capability: str,
        steps: Sequence[ResolverStep],
        predicate: QualityPredicate,
        *,
        merger: Optional[ResultMerger] = None,
        timeout: float = DEFAULT_ATTEMPT_TIMEOUT,
        allow_partial: bool = True,
        merge_base: str = MERGE_BASE_ACCEPTED,
        logger: Optional[LoggerAdapter] = None,
    ) -> None:
        self.capability = capability
        self.steps: Tuple[ResolverStep, ...] = tuple(sorted(steps, key=lambda step: step.descriptor.priority))
        self.predicate = predicate
        self.merger = merger
        self.timeout = timeout
        if merge_base not in (MERGE_BASE_ACCEPTED, MERGE_BASE_PRIORITY):
            raise ValueError(f"Unknown merge base '{merge_base}'")
        self.allow_partial = allow_partial
        self.merge_base = merge_base
        self.logger = logger or get_logger(self.__class__.__name__, extra={"capability": capability})

    @property
    def provider_ids(self) -> List[str]:
        return [step.provider_id for step in self.steps]

    async def resolve(self, query: Any, *, override: Optional[str] = None) -> ResolutionReport:
        """
        Run the chain for ``query``.

        Provider failures are recorded as attempts and never raised. The only
        exception is :class:`ResolverConfigurationError`, raised when the chain
        has a single provider and that provider has no credential.
        """

        attempts: List[Attempt] = []
        candidates: List[Tuple[str, Any]] = []
        winner: Optional[Tuple[str, Any]] = None

        for step in self.steps:
            credential = step.pool.select(override)
            if isinstance(credential, ConfigurationError):
                attempts.append(Attempt(provider=step.provider_id, status=AttemptStatus.CONFIGURATION_ERROR, error_detail=credential.message))
                self._log_attempt(attempts[-1])
                continue

            started = time.perf_counter()
            try:
                outcome = await asyncio.wait_for(step.adapter.attempt(query, credential), timeout=self.timeout)
            except asyncio.TimeoutError:
                outcome = Rejected(AttemptStatus.NETWORK_ERROR, f"Timed out after {self.timeout:g}s")
            except Exception as exc:
                self.logger.exception("Adapter raised", extra={"provider": step.provider_id})
                outcome = Rejected(AttemptStatus.PARSE_ERROR, f"{step.provider_id}: {exc.__class__.__name__}: {exc}")
            latency_ms = (time.perf_counter() - started) * 1000.0

            if isinstance(outcome, Rejected):
                status, detail = outcome.status, outcome.detail or None
            elif self.predicate(outcome):
                status, detail = AttemptStatus.ACCEPTED, None
                winner = (step.provider_id, outcome)
            else:
                status, detail = AttemptStatus.REJECTED_BY_QUALITY, "Response did not meet the quality threshold"
                candidates.append((step.provider_id, outcome))

            attempts.append(
                Attempt(
                    provider=step.provider_id,
                    status=status,
                    latency_ms=latency_ms,
                    error_detail=detail,
                    credential_source=credential.source,
                )
            )
            self._log_attempt(attempts[-1])
            if winner is not None:
                break

        if len(self.steps) == 1 and attempts and attempts[0].status == AttemptStatus.CONFIGURATION_ERROR:
            raise ResolverConfigurationError(attempts[0].error_detail or f"No credentials configured for '{self.capability}'.")

        return self._finalize(winner, candidates, attempts)

    def _finalize(
        self,
        winner: Optional[Tuple[str, Any]],
        candidates: Sequence[Tuple[str, Any]],
        attempts: Sequence[Attempt],
    ) -> ResolutionReport:
        if winner is None and not (candidates and self.allow_partial):
            log_progress(self.logger, "Resolution exhausted", phase=self.capability, status="not-found", extra={"attempts": len(attempts)})
            return ResolutionReport(capability=self.capability, result=None, winning_provider=None, attempts=tuple(attempts))

        if winner is not None and self.merger is None:
            provider, record = winner
            return ResolutionReport(capability=self.capability, result=record, winning_provider=provider, attempts=tuple(attempts))

        ordered = self._merge_order(winner, candidates)
        base_provider, base_record = ordered[0]
        if self.merger is not None:
            merged = self.merger.merge(base_record, base_provider, ordered[1:])
            record, field_sources = merged.record, merged.field_sources
        else:
            record, field_sources = base_record, {}

        partial = winner is None
        winning_provider = winner[0] if winner is not None else base_provider
        log_progress(
            self.logger,
            "Resolution complete",
            phase=self.capability,
            status="partial" if partial else "resolved",
            result=winning_provider,
        )
        return ResolutionReport(
            capability=self.capability,
            result=record,
            winning_provider=winning_provider,
            attempts=tuple(attempts),
            field_sources=field_sources,
            partial=partial,
        )

    def _merge_order(
        self,
        winner: Optional[Tuple[str, Any]],
        candidates: Sequence[Tuple[str, Any]],
    ) -> List[Tuple[str, Any]]:
        # The first entry is the merge base; the rest fill its gaps in priority order.
        if winner is None:
            return list(candidates)
        if self.merge_base == MERGE_BASE_PRIORITY:
            return [*candidates, winner]
        return [winner, *candidates]

    def _log_attempt(self, attempt: Attempt) -> None:
        log_progress(
            self.logger,
            "Provider attempt finished",
            phase=self.capability,
            step=attempt.provider,
            status=attempt.status.value,
            extra={
                "duration": round(attempt.latency_ms, 1),
                "credential_source": attempt.credential_source.value if attempt.credential_source else None,
                "error": attempt.error_detail,
            },
        )
