"""
OpenAI-compatible chat completions for the Groq and OpenRouter fallbacks.

Both providers speak the OpenAI wire format, so requests go through the
official ``openai`` SDK pointed at each provider's base URL. Instances differ
only in provider id, base URL, model, and extra headers. SDK exceptions are
translated into the shared :mod:`~researchmate_resolver.adapters.api.base`
error types so the adapter reports them like any other HTTP provider.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx
from openai import APIConnectionError, AsyncOpenAI, OpenAIError
from openai import APIStatusError as OpenAIStatusError

from ..adapters.api.base import APIDecodeError, APIStatusError, APITransportError, HTTPProviderAdapter
from ..adapters.api.parsing import as_text
from ..core.credentials import Credential
from ..core.logging import get_logger
from .gemini import DEFAULT_LLM_TIMEOUT
from .prompts import SummaryRequest

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_MODEL = "llama-3.1-8b-instant"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_MODEL = "meta-llama/llama-3.2-3b-instruct:free"
OPENROUTER_HEADERS: Mapping[str, str] = {
    "HTTP-Referer": "https://researchmate.vercel.app",
    "X-Title": "ResearchMate",
}


class ChatCompletionsClient:
    """
    Thin wrapper over :class:`openai.AsyncOpenAI` for one compatible endpoint.

    A fresh SDK client is built per call because the key comes from the
    credential selected for that attempt.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        extra_headers: Optional[Mapping[str, str]] = None,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.extra_headers = dict(extra_headers or {})
        self.retries = retries
        self.transport = transport
        self.logger = get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}", extra={"base_url": base_url})

    def _build_client(self, api_key: str) -> AsyncOpenAI:
        client_kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": self.base_url,
            "timeout": self.timeout,
            # The SDK counts retries, not attempts.
            "max_retries": max(0, self.retries - 1),
            "default_headers": self.extra_headers,
        }
        if self.transport is not None:
            client_kwargs["http_client"] = httpx.AsyncClient(transport=self.transport, timeout=self.timeout)
        return AsyncOpenAI(**client_kwargs)

    async def complete(
        self,
        *,
        model: str,
        system: str,
        user: str,
        api_key: str,
        temperature: Optional[float] = 0.3,
        max_tokens: int = 200,
    ) -> str:
        options: Dict[str, Any] = {}
        if temperature is not None:
            options["temperature"] = temperature

        self.logger.debug("Chat completion request", extra={"model": model})
        try:
            async with self._build_client(api_key) as client:
                completion = await client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    max_tokens=max_tokens,
                    **options,
                )
        except APIConnectionError as exc:
            raise APITransportError(f"Connection error calling {self.base_url}: {exc}") from exc
        except OpenAIStatusError as exc:
            raise APIStatusError(exc.status_code, f"HTTP {exc.status_code} from {self.base_url}: {exc.message}") from exc
        except OpenAIError as exc:
            raise APIDecodeError(f"Unexpected response from {self.base_url}: {exc}") from exc

        if not completion.choices:
            return ""
        return as_text(completion.choices[0].message.content)


class ChatCompletionsSummaryAdapter(HTTPProviderAdapter):
    """
    Summarize through an OpenAI-compatible chat endpoint.

    Parameters
    ----------
    provider_id:
        Registry id reported in attempts (``groq``, ``openrouter``).
    client:
        Configured :class:`ChatCompletionsClient`.
    model:
        Model name sent in the request body.
    temperature:
        Sampling temperature, or ``None`` to use the provider default.
    """

    def __init__(
        self,
        provider_id: str,
        client: ChatCompletionsClient,
        *,
        model: str,
        temperature: Optional[float] = 0.3,
    ) -> None:
        super().__init__()
        self.provider_id = provider_id
        self.client = client
        self.model = model
        self.temperature = temperature

    async def fetch(self, query: SummaryRequest, credential: Credential) -> Optional[str]:
        text = await self.client.complete(
            model=self.model,
            system=query.system_prompt(),
            user=query.user_prompt(),
            api_key=credential.secret,
            temperature=self.temperature,
        )
        return text or None


def groq_adapter(
    *,
    base_url: str = GROQ_BASE_URL,
    model: str = GROQ_MODEL,
    timeout: float = DEFAULT_LLM_TIMEOUT,
    retries: int = 1,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChatCompletionsSummaryAdapter:
    client = ChatCompletionsClient(base_url=base_url, timeout=timeout, retries=retries, transport=transport)
    return ChatCompletionsSummaryAdapter("groq", client, model=model)


def openrouter_adapter(
    *,
    base_url: str = OPENROUTER_BASE_URL,
    model: str = OPENROUTER_MODEL,
    timeout: float = DEFAULT_LLM_TIMEOUT,
    retries: int = 1,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChatCompletionsSummaryAdapter:
    client = ChatCompletionsClient(
        base_url=base_url,
        timeout=timeout,
        extra_headers=OPENROUTER_HEADERS,
        retries=retries,
        transport=transport,
    )
    return ChatCompletionsSummaryAdapter("openrouter", client, model=model, temperature=None)
