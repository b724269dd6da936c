"""
YouTube video metadata: the Data API v3 and the keyless oEmbed endpoint.

The Data API returns the full snippet (publication date, description,
duration) but needs a key from the ``youtube`` credential family. oEmbed
needs no key and only knows the title, channel, and thumbnail, so its
records fail the publication-date check and go on to AI enrichment.

References:
https://developers.google.com/youtube/v3/docs/videos/list
https://oembed.com/
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import httpx

from ...core.credentials import Credential
from ...core.identifiers import video_url
from ...core.models import UNKNOWN_YEAR, VideoRecord
from .base import DEFAULT_TIMEOUT, USER_AGENT, APIDecodeError, BaseAPIClient, HTTPProviderAdapter
from .parsing import as_text, nested

DATA_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
OEMBED_BASE_URL = "https://www.youtube.com"
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_CHANNEL = "Unknown Channel"

_ISO_DURATION = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def format_duration(iso_duration: str) -> str:
    """Render an ISO 8601 duration (``PT1H2M3S``) as ``1:02:03`` or ``2:03``."""

    match = _ISO_DURATION.match(iso_duration or "")
    if not match:
        return ""
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _date_parts(published_at: str) -> Tuple[str, str, str]:
    try:
        parsed = datetime.fromisoformat(published_at.replace("Z", "+00:00"))
    except ValueError:
        return UNKNOWN_YEAR, "", ""
    return str(parsed.year), f"{parsed.month:02d}", f"{parsed.day:02d}"


class YouTubeDataClient(BaseAPIClient):
    def __init__(
        self,
        *,
        base_url: str = DATA_API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            default_headers={"User-Agent": USER_AGENT},
            retries=retries,
            transport=transport,
        )

    async def get_video(self, video_id: str, *, api_key: str) -> Optional[Dict[str, Any]]:
        """Return the first ``items`` entry, or ``None`` when the id is unknown."""

        payload = await self._get_json(
            "/videos",
            params={"id": video_id, "part": "snippet,contentDetails"},
            headers={"x-goog-api-key": api_key},
        )
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from YouTube videos.list.")
        items = payload.get("items")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        return items[0]


class YouTubeDataAdapter(HTTPProviderAdapter):
    provider_id = "youtube_data"

    def __init__(self, client: Optional[YouTubeDataClient] = None) -> None:
        super().__init__()
        self.client = client or YouTubeDataClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[VideoRecord]:
        video = await self.client.get_video(query, api_key=credential.secret)
        if video is None:
            return None
        return parse_video(video, query)


def parse_video(video: Dict[str, Any], video_id: str) -> VideoRecord:
    snippet = video.get("snippet") if isinstance(video.get("snippet"), dict) else {}
    published_at = as_text(snippet.get("publishedAt"))
    year, month, day = _date_parts(published_at) if published_at else (UNKNOWN_YEAR, "", "")
    duration = as_text(nested(video, "contentDetails", "duration"))
    channel_id = as_text(snippet.get("channelId"))
    return VideoRecord(
        title=as_text(snippet.get("title")) or UNKNOWN_TITLE,
        channel_title=as_text(snippet.get("channelTitle")) or UNKNOWN_CHANNEL,
        channel_url=f"https://www.youtube.com/channel/{channel_id}" if channel_id else "",
        publish_date=published_at,
        year=year,
        month=month,
        day=day,
        description=as_text(snippet.get("description")),
        duration=duration,
        duration_formatted=format_duration(duration),
        thumbnail_url=as_text(nested(snippet, "thumbnails", "high", "url")) or as_text(nested(snippet, "thumbnails", "default", "url")),
        url=video_url(video_id),
        video_id=video_id,
    )


class YouTubeOEmbedClient(BaseAPIClient):
    def __init__(
        self,
        *,
        base_url: str = OEMBED_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            default_headers={"User-Agent": USER_AGENT},
            retries=retries,
            transport=transport,
        )

    async def oembed(self, video_id: str) -> Dict[str, Any]:
        payload = await self._get_json("/oembed", params={"url": video_url(video_id), "format": "json"})
        if not isinstance(payload, dict):
            raise APIDecodeError("Unexpected payload from YouTube oEmbed.")
        return payload


class YouTubeOEmbedAdapter(HTTPProviderAdapter):
    """Keyless fallback; private or removed videos answer 401/404."""

    provider_id = "youtube_oembed"

    def __init__(self, client: Optional[YouTubeOEmbedClient] = None) -> None:
        super().__init__()
        self.client = client or YouTubeOEmbedClient()

    async def fetch(self, query: str, credential: Credential) -> Optional[VideoRecord]:
        payload = await self.client.oembed(query)
        return VideoRecord(
            title=as_text(payload.get("title")) or UNKNOWN_TITLE,
            channel_title=as_text(payload.get("author_name")) or UNKNOWN_CHANNEL,
            channel_url=as_text(payload.get("author_url")),
            thumbnail_url=as_text(payload.get("thumbnail_url")),
            url=video_url(query),
            video_id=query,
        )
