"""
Provider registry declarations and helpers.

The registry is the authoritative catalogue of external providers the engine
can call, grouped by capability and ordered by priority. Descriptors are
loaded from YAML so the chains can be reordered or extended without touching
code; the default catalogue ships as package data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Iterator, List, MutableMapping, Optional

import yaml

from .errors import ResolverError

_DEFAULT_RESOURCE = "providers.yaml"


class RegistryLoadError(ResolverError):
    """Raised when a registry YAML file cannot be parsed or validated."""


class Capability(str, Enum):
    """Categories of resolution task, each with its own chain and quality rule."""

    DOI = "doi"
    ISBN = "isbn"
    SUMMARIZE = "summarize"
    PMID = "pmid"
    IEEE = "ieee"
    YOUTUBE = "youtube"
    VIDEO_ENRICH = "video_enrich"


class ProviderStatus(str, Enum):
    """Lifecycle state for individual providers."""

    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """
    Metadata for a single provider.

    Parameters
    ----------
    provider_id:
        Unique identifier, also used to pick the adapter implementation.
    name:
        Human-friendly display name.
    capability:
        The capability this provider answers.
    priority:
        Ordinal position within the capability chain. Lower runs first.
    credential_family:
        Name of the credential pool the provider draws from. ``None`` means
        the provider needs no secret.
    base_url:
        Root endpoint for the upstream API.
    model:
        Model identifier for generative providers.
    status:
        ``disabled`` providers are skipped when chains are built.
    description:
        Short summary of what the provider contributes.
    """

    provider_id: str
    name: str
    capability: Capability
    priority: int
    credential_family: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    status: ProviderStatus = ProviderStatus.ACTIVE
    description: str = ""

    def validate(self) -> None:
        if not self.provider_id or not self.provider_id.isidentifier():
            raise RegistryLoadError(f"Provider '{self.provider_id}' must be a valid identifier (letters, digits, underscore).")
        if self.priority < 1:
            raise RegistryLoadError(f"Provider '{self.provider_id}' must have a priority of at least 1.")

    def to_json(self) -> str:
        payload = {
            "id": self.provider_id,
            "name": self.name,
            "capability": self.capability.value,
            "priority": self.priority,
            "credential_family": self.credential_family,
            "base_url": self.base_url,
            "model": self.model,
            "status": self.status.value,
            "description": self.description,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)


class ProviderRegistry:
    """In-memory catalogue of :class:`ProviderDescriptor` entries."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, ProviderDescriptor] = {}

    def register(self, descriptor: ProviderDescriptor) -> None:
        """Register or overwrite a descriptor in the catalogue."""

        descriptor.validate()
        self._entries[descriptor.provider_id] = descriptor

    def get(self, provider_id: str) -> Optional[ProviderDescriptor]:
        return self._entries.get(provider_id)

    def require(self, provider_id: str) -> ProviderDescriptor:
        descriptor = self.get(provider_id)
        if descriptor is None:
            raise KeyError(f"Provider '{provider_id}' is not registered.")
        return descriptor

    def list(self, *, capability: Optional[Capability] = None) -> List[ProviderDescriptor]:
        """Return descriptors ordered by capability then priority."""

        items = [item for item in self._entries.values() if capability is None or item.capability == capability]
        return sorted(items, key=lambda item: (item.capability.value, item.priority, item.provider_id))

    def chain(self, capability: Capability) -> List[ProviderDescriptor]:
        """Active providers for ``capability`` in the order they should be tried."""

        return [item for item in self.list(capability=capability) if item.status == ProviderStatus.ACTIVE]

    def __iter__(self) -> Iterator[ProviderDescriptor]:
        return iter(self.list())

    @classmethod
    def default(cls) -> "ProviderRegistry":
        """Load the catalogue bundled with the package."""

        with resources.as_file(resources.files("researchmate_resolver.resources") / _DEFAULT_RESOURCE) as resolved:
            return cls.from_yaml(resolved)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ProviderRegistry":
        location = Path(path)
        if not location.exists():
            raise RegistryLoadError(f"Registry file '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:  # pragma: no cover - depends on PyYAML
            raise RegistryLoadError(f"Failed to parse '{location}': {exc}") from exc

        entries = payload.get("providers") if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            raise RegistryLoadError(f"Registry file '{location}' must contain a list of providers.")

        registry = cls()
        for entry in entries:
            descriptor = _descriptor_from_payload(entry, origin=location)
            if registry.get(descriptor.provider_id) is not None:
                raise RegistryLoadError(f"Duplicate provider id '{descriptor.provider_id}' in '{location}'.")
            registry.register(descriptor)
        return registry


def _descriptor_from_payload(entry: object, *, origin: Path) -> ProviderDescriptor:
    if not isinstance(entry, dict):
        raise RegistryLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

    try:
        descriptor = ProviderDescriptor(
            provider_id=str(entry["id"]),
            name=str(entry.get("name", entry["id"])),
            capability=Capability(str(entry["capability"])),
            priority=int(entry["priority"]),
            credential_family=_optional_str(entry.get("credential_family")),
            base_url=_optional_str(entry.get("base_url")),
            model=_optional_str(entry.get("model")),
            status=ProviderStatus(str(entry.get("status", ProviderStatus.ACTIVE.value))),
            description=str(entry.get("description", "")).strip(),
        )
    except KeyError as exc:
        raise RegistryLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc
    except (TypeError, ValueError) as exc:
        raise RegistryLoadError(f"Invalid field in '{origin}': {exc}") from exc

    descriptor.validate()
    return descriptor


def _optional_str(value: object | None) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
