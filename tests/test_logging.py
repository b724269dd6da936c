from __future__ import annotations

import logging

import pytest

from researchmate_resolver.core.logging import ContextLogger, StructuredLogFormatter, bind_tags, configure_logging, get_logger, log_progress
from researchmate_resolver.core.models import AttemptStatus, Author, BibliographicRecord, Rejected
from researchmate_resolver.core.quality import has_authors
from researchmate_resolver.core.resolver import SequentialResolver


@pytest.fixture
def collector():
    root = logging.getLogger()
    existing_handlers = list(root.handlers)
    configure_logging("DEBUG", force=True)
    handler = _ListHandler(root.handlers[0].formatter)
    root.addHandler(handler)
    yield handler
    root.handlers = existing_handlers


class _ListHandler(logging.Handler):
    def __init__(self, formatter: logging.Formatter):
        super().__init__()
        self.records: list[logging.LogRecord] = []
        self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - trivial
        self.records.append(record)


def test_structured_formatter_orders_extras():
    formatter = StructuredLogFormatter()
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg="Provider attempt finished",
        args=(),
        exc_info=None,
    )
    record.capability = "doi"
    record.status = "accepted"
    record.step = "crossref"
    record.duration = 12.3456
    record.tags = ("doi",)

    formatted = formatter.format(record)

    assert "Provider attempt finished" in formatted
    assert formatted.index("capability=doi") < formatted.index("step=crossref") < formatted.index("status=accepted") < formatted.index("duration=12.3ms")
    assert formatted.endswith("tags=doi")


def test_configure_logging_installs_structured_formatter():
    root = logging.getLogger()
    existing_handlers = list(root.handlers)
    try:
        configure_logging(force=True)
        assert root.handlers, "expected at least one handler configured"
        assert isinstance(root.handlers[0].formatter, StructuredLogFormatter)
    finally:
        root.handlers = existing_handlers


def test_log_progress_merges_adapter_and_call_extras(collector):
    logger = bind_tags(get_logger("test.progress", extra={"capability": "isbn"}), ["isbn"])

    log_progress(logger, "Resolution complete", phase="isbn", status="resolved", result="open_library", extra={"attempts": 1})

    record = collector.records[-1]
    assert getattr(record, "capability") == "isbn"
    assert getattr(record, "tags") == ("isbn",)
    assert getattr(record, "status") == "resolved"
    assert getattr(record, "attempts") == 1
    assert "result=open_library" in collector.format(record)


def test_bind_tags_leaves_original_untouched():
    base = get_logger("test.tags", tags=["core"])

    child = bind_tags(base, ["doi", "core"])

    assert base.extra["tags"] == ("core",)
    assert child.extra["tags"] == ("core", "doi")


@pytest.mark.asyncio
async def test_resolver_logs_each_attempt(collector, make_step):
    steps = [
        make_step("crossref", Rejected(AttemptStatus.HTTP_ERROR, "HTTP 503"), priority=1),
        make_step("openalex", BibliographicRecord(authors=(Author("A B"),)), priority=2),
    ]

    await SequentialResolver("doi", steps, has_authors).resolve("10.1000/x")

    attempts = [record for record in collector.records if record.getMessage() == "Provider attempt finished"]
    assert [(record.step, record.status) for record in attempts] == [("crossref", "http-error"), ("openalex", "accepted")]
    assert attempts[0].error == "HTTP 503"
    assert attempts[1].credential_source == "anonymous"


def test_call_extras_are_merged_with_bound_context(collector):
    logger = get_logger("test.context", extra={"capability": "isbn"})

    logger.warning("No adapter implementation; provider skipped", extra={"provider": "worldcat"})

    record = collector.records[-1]
    assert isinstance(logger, ContextLogger)
    assert record.capability == "isbn"
    assert record.provider == "worldcat"
    assert "capability=isbn provider=worldcat" in collector.format(record)


def test_call_extras_override_bound_context(collector):
    logger = get_logger("test.override", extra={"status": "pending"}).bind(step="crossref")

    logger.info("Provider attempt finished", extra={"status": "accepted"})

    record = collector.records[-1]
    assert record.status == "accepted"
    assert record.step == "crossref"


def test_log_progress_accepts_plain_logger_adapter(collector):
    plain = logging.LoggerAdapter(logging.getLogger("test.plain"), {"capability": "doi"})

    log_progress(plain, "Resolution exhausted", phase="doi", status="not-found", extra={"attempts": 4})

    record = collector.records[-1]
    assert (record.capability, record.status, record.attempts) == ("doi", "not-found", 4)
