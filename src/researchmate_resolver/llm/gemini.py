"""
Gemini ``generateContent`` client plus the two adapters built on it.

:class:`GeminiSummaryAdapter` is the primary ``summarize`` provider and draws
keys from the pooled ``gemini`` family. :class:`GeminiIsbnAdapter` is the last
``isbn`` provider: it asks the model to identify a book from its own knowledge,
so its output only matters when the catalogue providers came back without
usable authors. :class:`GeminiVideoAdapter` estimates the publication date and
a description for a video record that only carries a title and channel.

The key travels in the ``x-goog-api-key`` header so it never appears in logged
URLs.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, MutableMapping, Optional

import httpx

from ..adapters.api.base import APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from ..adapters.api.parsing import as_text, nested, positive_int, string_list
from ..adapters.base import AdapterError
from ..core.credentials import Credential
from ..core.models import UNKNOWN_YEAR, BookRecord, VideoRecord
from .prompts import SummaryRequest, isbn_prompt, video_prompt

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_SUMMARY_MODEL = "gemini-2.0-flash"
DEFAULT_ISBN_MODEL = "gemini-1.5-flash"
DEFAULT_VIDEO_MODEL = "gemini-2.0-flash"
DEFAULT_LLM_TIMEOUT = 30.0

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class GeminiClient(BaseAPIClient):
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
            default_headers={"Content-Type": "application/json"},
            retries=retries,
            transport=transport,
        )

    async def generate_text(
        self,
        *,
        model: str,
        prompt: str,
        api_key: str,
        temperature: float = 0.3,
        max_output_tokens: int = 200,
    ) -> str:
        """Return the first candidate's text, or ``""`` when the model produced none."""

        body: MutableMapping[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_output_tokens},
        }
        payload = await self._post_json(
            f"/models/{model}:generateContent",
            json_body=body,
            headers={"x-goog-api-key": api_key},
        )
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from Gemini generateContent.")
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ""
        parts = nested(candidates[0], "content", "parts")
        if not isinstance(parts, list) or not parts:
            return ""
        return as_text(nested(parts[0], "text"))


class GeminiSummaryAdapter(HTTPProviderAdapter):
    provider_id = "gemini"

    def __init__(self, client: Optional[GeminiClient] = None, *, model: str = DEFAULT_SUMMARY_MODEL) -> None:
        super().__init__()
        self.client = client or GeminiClient()
        self.model = model

    async def fetch(self, query: SummaryRequest, credential: Credential) -> Optional[str]:
        text = await self.client.generate_text(model=self.model, prompt=query.prompt(), api_key=credential.secret)
        return text or None


class GeminiIsbnAdapter(HTTPProviderAdapter):
    provider_id = "gemini_isbn"

    def __init__(self, client: Optional[GeminiClient] = None, *, model: str = DEFAULT_ISBN_MODEL) -> None:
        super().__init__()
        self.client = client or GeminiClient()
        self.model = model

    async def fetch(self, query: str, credential: Credential) -> Optional[BookRecord]:
        text = await self.client.generate_text(
            model=self.model,
            prompt=isbn_prompt(query),
            api_key=credential.secret,
            temperature=0.1,
            max_output_tokens=150,
        )
        return parse_isbn_answer(text, query)


def parse_isbn_answer(text: str, isbn: str) -> Optional[BookRecord]:
    """
    Interpret the model's reply to the ISBN prompt.

    Returns ``None`` when the model declined (``null``, no JSON object, or an
    ``"Unknown"`` title). Raises :class:`AdapterError` when the reply contains
    a malformed JSON object.
    """

    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AdapterError(f"gemini_isbn: model returned malformed JSON ({exc.msg})") from exc
    if not isinstance(payload, Mapping):
        return None

    title = as_text(payload.get("title"))
    if not title or title.lower() == "unknown":
        return None
    return BookRecord(
        title=title,
        authors=string_list(payload.get("authors")),
        publisher=as_text(payload.get("publisher")),
        year=as_text(payload.get("publishYear")) or UNKNOWN_YEAR,
        page_count=positive_int(payload.get("pages")),
        isbn=isbn,
        isbn13=isbn if len(isbn) == 13 else "",
    )


class GeminiVideoAdapter(HTTPProviderAdapter):
    """
    Fill the publication date and description of a partial video record.

    The query is the :class:`VideoRecord` produced by the catalogue chain. The
    returned record carries only the estimated fields; everything else keeps
    its sentinel so the merger leaves the catalogue values alone.
    """

    provider_id = "gemini_video"

    def __init__(self, client: Optional[GeminiClient] = None, *, model: str = DEFAULT_VIDEO_MODEL) -> None:
        super().__init__()
        self.client = client or GeminiClient()
        self.model = model

    async def fetch(self, query: VideoRecord, credential: Credential) -> Optional[VideoRecord]:
        text = await self.client.generate_text(
            model=self.model,
            prompt=video_prompt(query.title, query.channel_title, query.url),
            api_key=credential.secret,
            temperature=0.3,
            max_output_tokens=150,
        )
        return parse_video_answer(text)


def parse_video_answer(text: str) -> Optional[VideoRecord]:
    """Interpret the model's reply to the video prompt; ``None`` when it has no JSON object."""

    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AdapterError(f"gemini_video: model returned malformed JSON ({exc.msg})") from exc
    if not isinstance(payload, Mapping):
        return None

    year = as_text(payload.get("publishYear"))
    publish_date = ""
    month = day = ""
    if year and year != UNKNOWN_YEAR:
        publish_date = as_text(payload.get("publishDate")) or f"{year}-01-01"
        _, month, day = (publish_date.split("-") + ["", "", ""])[:3]
    else:
        year = UNKNOWN_YEAR
    return VideoRecord(
        publish_date=publish_date,
        year=year,
        month=month,
        day=day,
        description=as_text(payload.get("description")),
    )
