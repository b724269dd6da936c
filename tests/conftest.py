from __future__ import annotations

import asyncio
from importlib import resources
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import pytest
from typer.testing import CliRunner

from researchmate_resolver.config import ResolverSettings
from researchmate_resolver.core.credentials import Credential, CredentialPool
from researchmate_resolver.core.registry import Capability, ProviderDescriptor
from researchmate_resolver.core.resolver import ResolverStep

GEMINI_KEY = "AIza" + "A" * 35
GROQ_KEY = "gsk_" + "b" * 24


class StubAdapter:
    """Adapter returning a fixed outcome and recording every call."""

    def __init__(self, outcome: Any = None, *, delay: float = 0.0) -> None:
        self.outcome = outcome
        self.delay = delay
        self.calls: List[Tuple[Any, Credential]] = []

    async def attempt(self, query: Any, credential: Credential) -> Any:
        self.calls.append((query, credential))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.outcome


@pytest.fixture(scope="session")
def registry_file() -> Path:
    with resources.as_file(resources.files("researchmate_resolver.resources") / "providers.yaml") as ref:
        return Path(ref)


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def settings() -> ResolverSettings:
    return ResolverSettings(gemini_keys=(GEMINI_KEY,), groq_key=GROQ_KEY)


@pytest.fixture()
def make_step() -> Callable[..., ResolverStep]:
    def factory(
        provider_id: str,
        outcome: Any = None,
        *,
        priority: int = 1,
        capability: Capability = Capability.DOI,
        pool: Optional[CredentialPool] = None,
        delay: float = 0.0,
    ) -> ResolverStep:
        descriptor = ProviderDescriptor(provider_id=provider_id, name=provider_id, capability=capability, priority=priority)
        return ResolverStep(descriptor=descriptor, adapter=StubAdapter(outcome, delay=delay), pool=pool if pool is not None else CredentialPool.anonymous(provider_id))

    return factory


@pytest.fixture()
def stub_adapter() -> Callable[..., StubAdapter]:
    return StubAdapter
