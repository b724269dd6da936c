from __future__ import annotations

import pytest

from researchmate_resolver.core.credentials import CredentialPool
from researchmate_resolver.core.errors import ResolverConfigurationError
from researchmate_resolver.core.merge import ResultMerger
from researchmate_resolver.core.models import AttemptStatus, Author, BibliographicRecord, CredentialSource, Rejected
from researchmate_resolver.core.quality import has_authors, non_empty_text
from researchmate_resolver.core.registry import Capability
from researchmate_resolver.core.resolver import MERGE_BASE_PRIORITY, ResolverStep, SequentialResolver

GEMINI_PATTERN = r"^AIza[0-9A-Za-z_\-]{30,}$"


def _record(*authors: str, **fields) -> BibliographicRecord:
    return BibliographicRecord(authors=tuple(Author.from_display_name(name) for name in authors), **fields)


@pytest.mark.asyncio
async def test_first_acceptable_result_wins(make_step):
    steps = [
        make_step("p1", _record(title="No authors"), priority=1),
        make_step("p2", _record("Ada Lovelace", title="Found"), priority=2),
        make_step("p3", _record("Never Called"), priority=3),
    ]
    resolver = SequentialResolver("doi", steps, has_authors)

    report = await resolver.resolve("10.1000/x")

    assert report.winning_provider == "p2"
    assert [attempt.provider for attempt in report.attempts] == ["p1", "p2"]
    assert [attempt.status for attempt in report.attempts] == [AttemptStatus.REJECTED_BY_QUALITY, AttemptStatus.ACCEPTED]
    assert steps[2].adapter.calls == []
    assert report.partial is False


@pytest.mark.asyncio
async def test_steps_run_in_priority_order(make_step):
    late = make_step("late", _record("B"), priority=5)
    early = make_step("early", _record("A"), priority=1)
    resolver = SequentialResolver("doi", [late, early], has_authors)

    report = await resolver.resolve("10.1000/x")

    assert resolver.provider_ids == ["early", "late"]
    assert report.winning_provider == "early"
    assert late.adapter.calls == []


@pytest.mark.asyncio
async def test_exhaustion_records_every_attempt(make_step):
    steps = [
        make_step("p1", Rejected(AttemptStatus.EMPTY), priority=1),
        make_step("p2", Rejected(AttemptStatus.HTTP_ERROR, "HTTP 503"), priority=2),
        make_step("p3", Rejected(AttemptStatus.NETWORK_ERROR, "timed out"), priority=3),
    ]
    resolver = SequentialResolver("doi", steps, has_authors, merger=ResultMerger())

    report = await resolver.resolve("10.1000/x")

    assert report.result is None
    assert report.found is False
    assert report.winning_provider is None
    assert report.tried_providers == ["p1", "p2", "p3"]
    assert [attempt.status for attempt in report.attempts] == [
        AttemptStatus.EMPTY,
        AttemptStatus.HTTP_ERROR,
        AttemptStatus.NETWORK_ERROR,
    ]
    assert report.attempts[1].error_detail == "HTTP 503"
    assert report.to_payload()["triedProviders"][1]["status"] == "http-error"


@pytest.mark.asyncio
async def test_override_bypasses_pool_and_is_tagged(make_step):
    override = "AIza" + "o" * 35
    pool = CredentialPool(family="gemini", secrets=("AIza" + "p" * 35,), pattern=GEMINI_PATTERN)
    step = make_step("gemini", "A summary.", capability=Capability.SUMMARIZE, pool=pool)
    resolver = SequentialResolver("summarize", [step], non_empty_text, allow_partial=False)

    report = await resolver.resolve("text", override=override)

    (query, credential), = step.adapter.calls
    assert credential.secret == override
    assert report.attempts[0].credential_source == CredentialSource.USER_SUPPLIED


@pytest.mark.asyncio
async def test_configuration_error_is_recorded_and_chain_continues(make_step):
    missing = make_step("groq", "unused", priority=1, pool=CredentialPool(family="groq"))
    fallback = make_step("openrouter", "A summary.", priority=2, pool=CredentialPool.fixed("openrouter", "sk-or-" + "k" * 24))
    resolver = SequentialResolver("summarize", [missing, fallback], non_empty_text, allow_partial=False)

    report = await resolver.resolve("text")

    assert report.winning_provider == "openrouter"
    assert report.attempts[0].status == AttemptStatus.CONFIGURATION_ERROR
    assert report.attempts[0].latency_ms == 0.0
    assert missing.adapter.calls == []


@pytest.mark.asyncio
async def test_configuration_error_on_only_provider_raises(make_step):
    step = make_step("anthropic", "unused", pool=CredentialPool(family="anthropic"))
    resolver = SequentialResolver("summarize", [step], non_empty_text)

    with pytest.raises(ResolverConfigurationError):
        await resolver.resolve("text")


@pytest.mark.asyncio
async def test_slow_provider_counts_as_network_error(make_step):
    slow = make_step("slow", _record("A"), priority=1, delay=0.5)
    fast = make_step("fast", _record("B"), priority=2)
    resolver = SequentialResolver("doi", [slow, fast], has_authors, timeout=0.05)

    report = await resolver.resolve("10.1000/x")

    assert report.attempts[0].status == AttemptStatus.NETWORK_ERROR
    assert "Timed out" in report.attempts[0].error_detail
    assert report.winning_provider == "fast"


@pytest.mark.asyncio
async def test_rejected_records_fill_gaps_in_accepted_record(make_step):
    steps = [
        make_step("crossref", _record(title="Primary Title", volume="12"), priority=1),
        make_step("semantic_scholar", _record("A One", "B Two", title="Other Title", abstract="Abstract text"), priority=2),
    ]
    resolver = SequentialResolver("doi", steps, has_authors, merger=ResultMerger())

    report = await resolver.resolve("10.1000/x")

    assert report.winning_provider == "semantic_scholar"
    assert report.result.title == "Other Title"
    assert report.result.volume == "12"
    assert len(report.result.authors) == 2
    assert report.result.abstract == "Abstract text"
    assert report.field_sources["title"] == "semantic_scholar"
    assert report.field_sources["volume"] == "crossref"
    assert report.field_sources["authors"] == "semantic_scholar"


@pytest.mark.asyncio
async def test_accepted_title_is_not_overwritten_by_rejected_record(make_step):
    steps = [
        make_step("p1", _record(title="Rejected Title", journal="Rejected Journal"), priority=1),
        make_step("p2", _record("Jane Doe", title="Accepted Title"), priority=2),
    ]
    resolver = SequentialResolver("doi", steps, has_authors, merger=ResultMerger())

    report = await resolver.resolve("10.1000/x")

    assert report.winning_provider == "p2"
    assert report.result.title == "Accepted Title"
    assert report.result.journal == "Rejected Journal"
    assert report.field_sources["title"] == "p2"
    assert report.field_sources["journal"] == "p1"


@pytest.mark.asyncio
async def test_priority_merge_base_keeps_first_record_fields(make_step):
    steps = [
        make_step("open_library", _record(title="Catalogue Title", publisher="Catalogue Press"), priority=1),
        make_step("google_books", _record("Jane Doe", title="Retail Title"), priority=2),
    ]
    resolver = SequentialResolver("isbn", steps, has_authors, merger=ResultMerger(), merge_base=MERGE_BASE_PRIORITY)

    report = await resolver.resolve("9780132350884")

    assert report.winning_provider == "google_books"
    assert not report.partial
    assert report.result.title == "Catalogue Title"
    assert report.result.publisher == "Catalogue Press"
    assert [author.full_name for author in report.result.authors] == ["Jane Doe"]
    assert report.field_sources["title"] == "open_library"
    assert report.field_sources["authors"] == "google_books"


def test_unknown_merge_base_is_rejected(make_step):
    with pytest.raises(ValueError):
        SequentialResolver("doi", [make_step("p1")], has_authors, merge_base="newest")


class _RaisingAdapter:
    async def attempt(self, query, credential):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_adapter_exception_is_recorded_and_chain_continues(make_step):
    broken = make_step("broken", priority=1)
    broken = ResolverStep(descriptor=broken.descriptor, adapter=_RaisingAdapter(), pool=broken.pool)
    steps = [broken, make_step("openalex", _record("A B"), priority=2)]

    report = await SequentialResolver("doi", steps, has_authors).resolve("10.1000/x")

    assert report.attempts[0].status == AttemptStatus.PARSE_ERROR
    assert "RuntimeError: boom" in report.attempts[0].error_detail
    assert report.winning_provider == "openalex"


@pytest.mark.asyncio
async def test_partial_result_when_nothing_accepted(make_step):
    steps = [
        make_step("p1", _record(title="Only Title"), priority=1),
        make_step("p2", Rejected(AttemptStatus.EMPTY), priority=2),
    ]
    resolver = SequentialResolver("doi", steps, has_authors, merger=ResultMerger())

    report = await resolver.resolve("10.1000/x")

    assert report.partial is True
    assert report.result.title == "Only Title"
    assert report.winning_provider == "p1"
    assert report.to_payload()["partial"] is True


@pytest.mark.asyncio
async def test_partial_disabled_returns_not_found(make_step):
    step = make_step("gemini", "   ", capability=Capability.SUMMARIZE)
    resolver = SequentialResolver("summarize", [step], non_empty_text, allow_partial=False)

    report = await resolver.resolve("text")

    assert report.result is None
    assert report.attempts[0].status == AttemptStatus.REJECTED_BY_QUALITY
