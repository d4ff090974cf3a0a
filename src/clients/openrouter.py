"""OpenRouter inference client: chat completions and URL-style image generation.

This is the leaf of the pipeline and knows nothing about recipes. Both calls
fail with TransportError on non-2xx responses, network failures or malformed
envelopes; retry and fallback policy belongs to the callers.
"""

import time
from typing import List, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from src.clients.http import AsyncHTTPClient, HTTPResponse
from src.models.errors import TransportError
from src.utils.cancellation import CancellationToken, guarded
from src.utils.logger import logger


class ChatMessage(BaseModel):
    role: str
    content: Optional[str] = None


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: ChatMessage


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class ChatCompletion(BaseModel):
    """Chat completion envelope: {choices: [{message: {content}}], usage?}."""

    model_config = ConfigDict(extra="ignore")

    model: Optional[str] = None
    choices: List[ChatChoice]
    usage: Optional[Usage] = None

    @property
    def content(self) -> str:
        """Text of the first candidate, "" when there is none."""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class ImageData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str


class ImageResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: List[ImageData]


class OpenRouterClient(AsyncHTTPClient):
    """Async client for an OpenRouter-compatible model-serving API."""

    def __init__(
        self,
        api_key: str,
        app_url: str,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout_seconds: float = 60,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.api_key = api_key
        self.app_url = app_url
        self.base_url = base_url.rstrip("/")
        logger.info(f"OpenRouter client configured: base_url={self.base_url}, has_api_key={bool(api_key)}")

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.app_url,
        }

    async def _make_request(self, endpoint: str, payload: dict) -> HTTPResponse:
        url = f"{self.base_url}{endpoint}"
        response = await self._post(url, payload, self._headers())
        if not response.ok:
            body = response.text()
            logger.error(f"OpenRouter API error: endpoint={endpoint}, status={response.status}, body={body[:500]}")
            raise TransportError(f"API request failed: {endpoint}", status=response.status, body=body)
        return response

    async def chat(
        self,
        model: str,
        messages: list[dict],
        temperature: float = 0.7,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChatCompletion:
        """Run one chat completion.

        Args:
            model: Model identifier, e.g. "openai/gpt-4o-mini".
            messages: Ordered [{"role": ..., "content": ...}] list.
            temperature: Sampling temperature.
            cancel_token: Optional cancellation signal.

        Returns:
            Parsed ChatCompletion (content may still be empty).

        Raises:
            TransportError: Non-2xx, network failure or malformed envelope.
            PipelineCancelledError: If cancel_token fires during the call.
        """
        logger.debug(f"Chat request: model={model}, messages={len(messages)}, temperature={temperature}")
        start = time.perf_counter()
        response = await guarded(
            self._make_request("/chat/completions", {"model": model, "messages": messages, "temperature": temperature}),
            cancel_token,
        )
        try:
            completion = ChatCompletion.model_validate(response.json())
        except PydanticValidationError as e:
            raise TransportError(
                f"Malformed chat completion envelope: {e.error_count()} error(s)",
                status=response.status,
                body=response.text()[:500],
            ) from e

        elapsed_ms = round((time.perf_counter() - start) * 1000)
        usage = completion.usage or Usage()
        logger.info(
            f"Chat completion from {model} in {elapsed_ms}ms "
            f"(prompt_tokens={usage.prompt_tokens}, completion_tokens={usage.completion_tokens})"
        )
        return completion

    async def generate_image(
        self,
        model: str,
        prompt: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Generate one 1024x1024 image and return its URL.

        Raises:
            TransportError: Non-2xx, network failure or envelope without a URL.
            PipelineCancelledError: If cancel_token fires during the call.
        """
        logger.debug(f"Image request: model={model}, prompt_length={len(prompt)}")
        start = time.perf_counter()
        response = await guarded(
            self._make_request("/images/generate", {"model": model, "prompt": prompt, "n": 1, "size": "1024x1024"}),
            cancel_token,
        )
        try:
            images = ImageResponse.model_validate(response.json())
        except PydanticValidationError as e:
            raise TransportError(
                "Malformed image generation envelope", status=response.status, body=response.text()[:500]
            ) from e
        if not images.data:
            raise TransportError("Image generation returned no data", status=response.status, body=response.text()[:500])

        elapsed_ms = round((time.perf_counter() - start) * 1000)
        logger.info(f"OpenRouter image generation took {elapsed_ms}ms")
        return images.data[0].url
