"""
Anthropic Messages API client, the last ``summarize`` fallback.

Reference: https://docs.anthropic.com/en/api/messages
"""

from __future__ import annotations

from typing import Any, MutableMapping, Optional

import httpx

from ..adapters.api.base import APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from ..adapters.api.parsing import as_text
from ..core.credentials import Credential
from .gemini import DEFAULT_LLM_TIMEOUT
from .prompts import SummaryRequest

DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient(BaseAPIClient):
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            default_headers={"Content-Type": "application/json", "anthropic-version": ANTHROPIC_VERSION},
            retries=retries,
            transport=transport,
        )

    async def create_message(self, *, model: str, prompt: str, api_key: str, max_tokens: int = 200) -> str:
        """Send a single user turn and return the concatenated text blocks of the reply."""

        body: MutableMapping[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        payload = await self._post_json("/messages", json_body=body, headers={"x-api-key": api_key})
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from Anthropic messages endpoint.")
        blocks = payload.get("content")
        if not isinstance(blocks, list):
            return ""
        texts = [as_text(block.get("text")) for block in blocks if isinstance(block, dict) and block.get("type") == "text"]
        return "\n".join(text for text in texts if text)


class AnthropicSummaryAdapter(HTTPProviderAdapter):
    provider_id = "anthropic"

    def __init__(self, client: Optional[AnthropicClient] = None, *, model: str = DEFAULT_MODEL) -> None:
        super().__init__()
        self.client = client or AnthropicClient()
        self.model = model

    async def fetch(self, query: SummaryRequest, credential: Credential) -> Optional[str]:
        text = await self.client.create_message(model=self.model, prompt=query.prompt(), api_key=credential.secret)
        return text or None
