"""
Shared HTTP utilities for provider adapters.

:class:`BaseAPIClient` is a thin asynchronous HTTPX wrapper that avoids global
state, classifies failures (transport, status, decoding), and extracts the
provider's own error message when one is present. Retries go through tenacity
and are bounded by ``retries``; the default of one attempt means a failing
provider is skipped rather than retried.

:class:`HTTPProviderAdapter` turns those failures into ``Rejected`` values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Mapping, MutableMapping, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...core.credentials import Credential
from ...core.logging import get_logger
from ...core.models import AttemptStatus, Rejected
from ..base import AdapterError

DEFAULT_TIMEOUT = 10.0
USER_AGENT = "ResearchMate/1.0"


class APIError(AdapterError):
    """Raised when an HTTP API call fails."""


class APITransportError(APIError):
    """DNS, connection, or timeout failure before a response was received."""


class APIStatusError(APIError):
    """The provider answered with a non-success status code."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class APIDecodeError(APIError):
    """The request could not be encoded, or the response was not the JSON document the provider documents."""


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort provider error message, falling back to the status code."""

    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    return f"HTTP {response.status_code}"


@dataclass(slots=True)
class BaseAPIClient:
    """
    Base asynchronous HTTP client.

    Parameters
    ----------
    base_url:
        Root URL for the upstream service.
    timeout:
        Request timeout in seconds.
    default_headers:
        Headers automatically attached to every request.
    retries:
        Total attempts per request on transport errors.
    transport:
        Optional HTTPX transport, mainly for tests.
    """

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    default_headers: MutableMapping[str, str] = field(default_factory=dict)
    retries: int = 1
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"base_url": self.base_url},
        )

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=dict(self.default_headers),
            follow_redirects=True,
            transport=self.transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise APIStatusError(response.status_code, f"HTTP {response.status_code} from {response.request.url}: {extract_error_message(response)}")

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.logger.debug("HTTP request", extra={"method": method, "url": url, "params": kwargs.get("params")})

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                stop=stop_after_attempt(max(1, self.retries)),
                reraise=True,
            ):
                with attempt:
                    async with self._build_client() as client:
                        response = await client.request(method, url, **kwargs)
        except httpx.InvalidURL as exc:
            raise APIDecodeError(f"Invalid URL for {method} {url}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise APITransportError(f"Timed out calling {method} {url}: {exc}") from exc
        except httpx.HTTPError as exc:
            self.logger.warning("HTTP error during request", extra={"method": method, "url": url, "error": str(exc)})
            raise APITransportError(f"HTTP error while calling {method} {url}: {exc}") from exc

        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": str(response.url)})
        self._raise_for_status(response)
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content.strip():
            raise APIDecodeError(f"Empty response body from {response.url}")
        try:
            return response.json()
        except ValueError as exc:
            raise APIDecodeError(f"Failed to decode JSON from {response.url}: {exc}") from exc

    async def _get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = await self._request("GET", url, params=params, headers=dict(headers or {}))
        return self._decode(response)

    async def _post_json(
        self,
        url: str,
        *,
        json_body: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = await self._request("POST", url, json=json_body, headers=dict(headers or {}))
        return self._decode(response)


class HTTPProviderAdapter(ABC):
    """
    Shared ``attempt`` implementation for HTTP-backed providers.

    Subclasses implement :meth:`fetch`, returning a normalized record or
    ``None`` when the provider has nothing for the query. A 404 is read as
    "no matching record" and reported as ``empty``.
    """

    provider_id: str = "provider"

    def __init__(self) -> None:
        self.logger = get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    async def fetch(self, query: Any, credential: Credential) -> Optional[Any]:
        """Return a normalized record, or ``None`` when the provider has nothing."""

    async def attempt(self, query: Any, credential: Credential) -> Any:
        try:
            record = await self.fetch(query, credential)
        except APITransportError as exc:
            return Rejected(AttemptStatus.NETWORK_ERROR, str(exc))
        except APIStatusError as exc:
            if exc.status_code == 404:
                return Rejected(AttemptStatus.EMPTY, f"{self.provider_id}: no record found")
            return Rejected(AttemptStatus.HTTP_ERROR, str(exc))
        except AdapterError as exc:
            return Rejected(AttemptStatus.PARSE_ERROR, str(exc))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            self.logger.warning("Unexpected payload shape", extra={"provider": self.provider_id, "error": str(exc)})
            return Rejected(AttemptStatus.PARSE_ERROR, f"{self.provider_id}: unexpected payload ({exc})")
        except Exception as exc:
            self.logger.exception("Provider call failed", extra={"provider": self.provider_id})
            return Rejected(AttemptStatus.PARSE_ERROR, f"{self.provider_id}: {exc.__class__.__name__}: {exc}")

        if record is None:
            return Rejected(AttemptStatus.EMPTY, f"{self.provider_id}: no usable payload")
        return record
