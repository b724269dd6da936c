"""
Gap-filling merge of provider records.

Enrichment is additive: a field is only replaced while it still holds its
"unknown" sentinel, and only by a value that is not itself unknown. Author
lists are swapped wholesale rather than merged element by element.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Sequence, Tuple

from .models import is_placeholder_name, is_unknown_value

_LIST_FIELDS = frozenset({"authors"})


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Merged record plus the provider that supplied each known field."""

    record: Any
    field_sources: Mapping[str, str] = field(default_factory=dict)


def _authors_replaceable(value: Sequence[Any]) -> bool:
    return not value or all(is_placeholder_name(item) for item in value)


def _authors_usable(value: Sequence[Any]) -> bool:
    return bool(value) and not any(is_placeholder_name(item) for item in value)


class ResultMerger:
    """Fill sentinel fields of a base record from lower-priority records."""

    def merge(self, base: Any, base_provider: str, enrichments: Sequence[Tuple[str, Any]] = ()) -> MergeResult:
        """
        Parameters
        ----------
        base:
            The record whose real data must be preserved.
        base_provider:
            Provider identifier credited for the base record's known fields.
        enrichments:
            ``(provider, record)`` pairs consulted in order. Records of a
            different type than ``base`` are ignored.
        """

        updates: Dict[str, Any] = {}
        sources: Dict[str, str] = {}
        usable = [(provider, record) for provider, record in enrichments if type(record) is type(base)]

        for spec in fields(base):
            name = spec.name
            sentinel = spec.metadata.get("unknown", "")
            value = getattr(base, name)
            if not is_unknown_value(value, sentinel):
                sources[name] = base_provider
                continue

            for provider, record in usable:
                candidate = getattr(record, name)
                if name in _LIST_FIELDS:
                    if _authors_replaceable(value) and _authors_usable(candidate):
                        updates[name] = tuple(candidate)
                        sources[name] = provider
                        break
                elif not is_unknown_value(candidate, sentinel):
                    updates[name] = candidate
                    sources[name] = provider
                    break

        merged = replace(base, **updates) if updates else base
        return MergeResult(record=merged, field_sources=sources)
