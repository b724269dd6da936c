"""
Logging helpers for the ResearchMate resolution engine.

Every module logs through :func:`get_logger`, which returns a
:class:`ContextLogger`: a ``LoggerAdapter`` whose bound context (capability,
tags, base URL) is merged with the ``extra=`` of each call instead of
replacing it. The root handler writes one line per record to stderr::

    2024-05-01 12:00:00 | INFO | SequentialResolver | Provider attempt finished | capability=doi step=crossref status=accepted duration=84.2ms

Resolution fields come first in a fixed order; any other extras follow
alphabetically.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging import Logger, LoggerAdapter
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Sequence, Tuple

LINE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVEL_ENV = "RESEARCHMATE_LOG_LEVEL"

_LEADING_FIELDS: Sequence[str] = (
    "capability",
    "phase",
    "step",
    "provider",
    "status",
    "result",
    "duration",
    "credential_source",
    "error",
)

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _level(value: Optional[int | str]) -> int:
    if isinstance(value, int):
        return value
    name = (value or os.getenv(LEVEL_ENV) or "INFO").upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def _context_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    fields = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS and not key.startswith("_") and value is not None}
    for key in _LEADING_FIELDS:
        if key in fields:
            yield key, fields.pop(key)
    yield from sorted(fields.items())


def _render(key: str, value: Any) -> str:
    if key == "duration" and isinstance(value, (int, float)):
        return f"{value:.1f}ms"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(str(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str, sort_keys=True)
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Render the standard line, then the record's context fields as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__(LINE_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(f"{key}={_render(key, value)}" for key, value in _context_fields(record))
        return f"{line} | {context}" if context else line


class ContextLogger(LoggerAdapter):
    """``LoggerAdapter`` that merges its bound context into each call's ``extra``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        call_extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**(self.extra or {}), **call_extra}
        return msg, kwargs

    def bind(self, **fields: object) -> "ContextLogger":
        """Return a new logger with ``fields`` added to the bound context."""

        context = dict(self.extra or {})
        context.update({key: value for key, value in fields.items() if value is not None})
        return ContextLogger(self.logger, context)


def _has_engine_handler(root: Logger) -> bool:
    return any(isinstance(handler.formatter, StructuredLogFormatter) for handler in root.handlers)


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install the stderr handler on the root logger.

    Parameters
    ----------
    level:
        Level name or number. Falls back to ``RESEARCHMATE_LOG_LEVEL``, then ``INFO``.
    force:
        Replace existing root handlers even when the engine handler is already installed.
    """

    root = logging.getLogger()
    if not force and _has_engine_handler(root):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(StructuredLogFormatter())
    logging.basicConfig(level=_level(level), handlers=[handler], force=force)


def get_logger(
    name: str,
    *,
    level: Optional[int | str] = None,
    tags: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> ContextLogger:
    """
    Return a :class:`ContextLogger` for ``name``.

    Parameters
    ----------
    name:
        Logger namespace, typically a module path or class name.
    level:
        Optional per-logger level.
    tags:
        Labels recorded under ``tags`` on every entry.
    extra:
        Context fields recorded on every entry; ``None`` values are dropped.
    """

    configure_logging(level)
    base = logging.getLogger(name)
    if level is not None:
        base.setLevel(_level(level))
    context: MutableMapping[str, object] = {}
    if tags:
        context["tags"] = tuple(tags)
    if extra:
        context.update({key: value for key, value in extra.items() if value is not None})
    return ContextLogger(base, context)


def bind_tags(logger: LoggerAdapter, tags: Sequence[str]) -> ContextLogger:
    """Return a copy of ``logger`` with ``tags`` appended; the original is unchanged."""

    context = dict(logger.extra or {})
    context["tags"] = tuple(dict.fromkeys((*context.get("tags", ()), *tags)))
    return ContextLogger(logger.logger, context)


def log_progress(
    logger: LoggerAdapter | Logger,
    message: str,
    *,
    phase: Optional[str] = None,
    step: Optional[str] = None,
    status: Optional[str] = None,
    result: Optional[str] = None,
    level: int = logging.INFO,
    extra: Optional[Mapping[str, object]] = None,
) -> None:
    """Log one step of a resolution with its phase, provider step, status, and result."""

    fields = {key: value for key, value in (extra or {}).items() if value is not None}
    fields.update({key: value for key, value in (("phase", phase), ("step", step), ("status", status), ("result", result)) if value})
    if isinstance(logger, LoggerAdapter) and not isinstance(logger, ContextLogger):
        logger = ContextLogger(logger.logger, dict(logger.extra or {}))
    logger.log(level, message, extra=fields)
