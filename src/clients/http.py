"""Shared aiohttp plumbing for the inference backends.

AsyncHTTPClient owns (or borrows) one aiohttp.ClientSession and turns every
network-level problem into a TransportError. Subclasses add the endpoint
contracts. No retries and no caching at this layer.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import aiohttp

from src.models.errors import TransportError
from src.utils.logger import logger


@dataclass
class HTTPResponse:
    """Fully read response: status, headers and raw body."""

    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", self.headers.get("content-type", ""))

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            TransportError: If the body is not valid JSON.
        """
        try:
            return json.loads(self.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransportError(
                f"Malformed response envelope: {e}", status=self.status, body=self.text()[:500]
            ) from e


class AsyncHTTPClient:
    """Base class managing an aiohttp session and timeouts."""

    def __init__(self, timeout_seconds: float = 60, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> HTTPResponse:
        """POST `payload` as JSON and read the whole response.

        Raises:
            TransportError: On connection failure or timeout. HTTP status
                handling is left to the caller.
        """
        session = self._get_session()
        start = time.perf_counter()
        try:
            async with session.post(
                url,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                body = await response.read()
                result = HTTPResponse(status=response.status, body=body, headers=dict(response.headers))
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {url} timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error calling {url}: {e}") from e

        elapsed_ms = round((time.perf_counter() - start) * 1000)
        logger.debug(f"POST {url} -> {result.status} in {elapsed_ms}ms")
        return result

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
