"""Hugging Face inference client for binary text-to-image models.

The endpoint returns raw image bytes; generate_image() converts them to a
base64 data URI. FLUX models get tuned generation parameters. FLUX.1-schnell
rejects some of them, so a 400 from that model is retried once with the bare
prompt before the error is surfaced.
"""

import base64
from typing import Any, Optional

import aiohttp
import filetype

from src.clients.http import AsyncHTTPClient, HTTPResponse
from src.models.errors import TransportError
from src.utils.cancellation import CancellationToken, guarded
from src.utils.logger import logger


NEGATIVE_PROMPT = "low quality, blurry, distorted, deformed, ugly, bad anatomy, watermark, signature, text, logo"
SCHNELL_MODEL = "FLUX.1-schnell"


def is_flux_model(model: str) -> bool:
    return "flux" in model.lower()


def build_payload(model: str, prompt: str) -> dict[str, Any]:
    """Request body for `model`; non-FLUX models only get the prompt."""
    if not is_flux_model(model):
        return {"inputs": prompt}

    parameters: dict[str, Any] = {
        "guidance_scale": 7.5,
        "num_inference_steps": 30,
        "width": 512,
        "height": 512,
    }
    # schnell does not accept negative_prompt
    if SCHNELL_MODEL not in model:
        parameters["negative_prompt"] = NEGATIVE_PROMPT
    return {"inputs": prompt, "parameters": parameters}


def to_data_uri(image_bytes: bytes, content_type: str = "") -> str:
    """Encode image bytes as a data URI, sniffing the MIME type from magic bytes."""
    kind = filetype.guess(image_bytes)
    if kind is not None:
        mime_type = kind.mime
    elif content_type.startswith("image/"):
        mime_type = content_type.split(";")[0].strip()
    else:
        mime_type = "image/png"
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


class HuggingFaceImageClient(AsyncHTTPClient):
    """Async client for the Hugging Face inference API (image models)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api-inference.huggingface.co/models",
        timeout_seconds: float = 60,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def _request(self, model: str, payload: dict[str, Any]) -> HTTPResponse:
        url = f"{self.base_url}/{model}"
        response = await self._post(url, payload, self._headers())

        if response.status == 400 and SCHNELL_MODEL in model and "parameters" in payload:
            logger.warning(f"Hugging Face returned 400 for {model}, retrying with prompt only: {response.text()[:200]}")
            response = await self._post(url, {"inputs": payload["inputs"]}, self._headers())

        if not response.ok:
            raise self._error_for(model, response)
        return response

    @staticmethod
    def _error_for(model: str, response: HTTPResponse) -> TransportError:
        body = response.text()
        logger.error(f"Hugging Face API error: model={model}, status={response.status}, body={body[:500]}")
        if response.status in (401, 403):
            message = "Authentication failed with Hugging Face API. Please check your API key."
        elif response.status == 404:
            message = f"Model '{model}' not found on Hugging Face."
        elif response.status == 503:
            message = "Hugging Face service is currently unavailable. Please try again later."
        else:
            message = f"Hugging Face API request failed: {body[:200] or response.status}"
        return TransportError(message, status=response.status, body=body)

    async def generate_image(
        self,
        model: str,
        prompt: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Generate an image and return it as a data URI.

        Raises:
            TransportError: Non-2xx (after the schnell retry), network failure
                or an empty body.
            PipelineCancelledError: If cancel_token fires during the call.
        """
        model = model.replace("huggingface/", "", 1)
        logger.debug(f"Hugging Face image request: model={model}, prompt_length={len(prompt)}")
        response = await guarded(self._request(model, build_payload(model, prompt)), cancel_token)
        if not response.body:
            raise TransportError("Hugging Face returned an empty image", status=response.status)

        logger.info(f"Hugging Face image received: {round(len(response.body) / 1024)}KB")
        return to_data_uri(response.body, response.content_type)
