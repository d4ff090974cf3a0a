"""Recipe illustration with a three-tier prompt fallback.

Tiers:
1. PRIMARY: the prompt model writes an image prompt tailored to the image
   backend (terse keywords for FLUX, a descriptive paragraph otherwise).
2. FALLBACK: a template prompt built from name, cuisine and the first three
   ingredients. Used when prompt authoring fails or the primary image
   request fails.
3. MINIMAL: "<name>, food photography, high quality", attempted once.

If the minimal attempt fails too, ImageGenerationError is raised; the recipe
pipeline treats that as non-fatal.

Backend routing: with a Hugging Face key configured and an image model id
that looks like a Hugging Face model (huggingface/ prefix, a namespaced id or
a FLUX model), images come from the binary Hugging Face endpoint as data
URIs; otherwise from OpenRouter's URL-style endpoint.
"""

import re
from typing import Optional

from src.clients.huggingface import HuggingFaceImageClient, is_flux_model
from src.clients.openrouter import OpenRouterClient
from src.models.errors import ImageGenerationError, TransportError
from src.models.models import Recipe
from src.prompts.prompts import build_image_prompt_messages, fallback_image_prompt, minimal_image_prompt
from src.services.events import AIEvent, EventBus
from src.utils.cancellation import CancellationToken
from src.utils.logger import logger, pipeline_logger


PROMPT_PREAMBLE = re.compile(r"^(Here's|Here is|This prompt|I've created|The prompt|For the FLUX).+?:\s*", re.IGNORECASE)
WRAPPING_QUOTES = re.compile(r'^"(.+)"$', re.DOTALL)

TIER_PRIMARY = "primary"
TIER_FALLBACK = "fallback"
TIER_MINIMAL = "minimal"


def clean_flux_prompt(prompt: str) -> str:
    """Strip model preambles and wrapping quotes, then add quality boosters."""
    prompt = PROMPT_PREAMBLE.sub("", prompt.strip())
    prompt = WRAPPING_QUOTES.sub(r"\1", prompt).strip()

    lowered = prompt.lower()
    if "professional" not in lowered:
        prompt += ", professional food photography"
    if "lighting" not in lowered:
        prompt += ", perfect lighting"
    if "high quality" not in lowered and "high-quality" not in lowered:
        prompt += ", high quality"
    return prompt


class ImageGenerator:
    """Produces an image URI for a validated recipe."""

    def __init__(
        self,
        client: OpenRouterClient,
        events: EventBus,
        image_model: str,
        prompt_model: str,
        huggingface: Optional[HuggingFaceImageClient] = None,
        temperature: float = 0.7,
    ) -> None:
        self.client = client
        self.events = events
        self.image_model = image_model
        self.prompt_model = prompt_model
        self.huggingface = huggingface
        self.temperature = temperature
        self.log = pipeline_logger(stage="image", model=image_model)
        logger.info(
            f"ImageGenerator initialized: prompt_model={prompt_model}, image_model={image_model}, "
            f"backend={'huggingface' if self.uses_huggingface else 'openrouter'}"
        )

    @property
    def is_flux(self) -> bool:
        return is_flux_model(self.image_model)

    @property
    def uses_huggingface(self) -> bool:
        if self.huggingface is None:
            return False
        model = self.image_model
        return "huggingface/" in model or "/" in model or self.is_flux

    async def generate_image_prompt(self, recipe: Recipe, cancel_token: Optional[CancellationToken] = None) -> str:
        """Ask the prompt model for an image prompt.

        Raises:
            TransportError: If the chat call fails.
            ImageGenerationError: If the model returns an empty prompt.
        """
        completion = await self.client.chat(
            self.prompt_model,
            build_image_prompt_messages(recipe, self.is_flux),
            self.temperature,
            cancel_token=cancel_token,
        )
        prompt = completion.content.strip()
        if not prompt:
            raise ImageGenerationError("Failed to generate image prompt")
        if self.is_flux:
            prompt = clean_flux_prompt(prompt)
        logger.debug(f"Generated image prompt: {prompt}")
        return prompt

    async def request_image(self, prompt: str, cancel_token: Optional[CancellationToken] = None) -> str:
        """Send `prompt` to the selected image backend.

        Raises:
            TransportError: If the backend call fails.
        """
        if self.uses_huggingface:
            return await self.huggingface.generate_image(self.image_model, prompt, cancel_token=cancel_token)
        return await self.client.generate_image(self.image_model, prompt, cancel_token=cancel_token)

    async def generate_recipe_image(self, recipe: Recipe, cancel_token: Optional[CancellationToken] = None) -> str:
        """Generate an illustration for `recipe`, degrading through the tiers.

        Args:
            recipe: Validated recipe.
            cancel_token: Optional cancellation signal.

        Returns:
            Image URL (OpenRouter) or data URI (Hugging Face).

        Raises:
            ImageGenerationError: If all three tiers fail.
            PipelineCancelledError: If cancel_token fires.
        """
        logger.info(f"Starting recipe image generation for: {recipe.name}")

        self.events.emit(AIEvent.IMAGE_PROMPT_START)
        try:
            prompt = await self.generate_image_prompt(recipe, cancel_token)
        except (TransportError, ImageGenerationError) as e:
            self.log.warning(
                f"Image prompt generation failed, using template prompt: {e}", extra={"model": self.prompt_model}
            )
            self.events.emit(AIEvent.IMAGE_PROMPT_COMPLETE, {"used_fallback": True})
        else:
            self.events.emit(AIEvent.IMAGE_PROMPT_COMPLETE)
            self.events.emit(AIEvent.IMAGE_GENERATION_START)
            try:
                return await self._acquire(prompt, TIER_PRIMARY, cancel_token)
            except TransportError as e:
                self.log.warning(f"Image generation with authored prompt failed: {e}", extra={"tier": TIER_PRIMARY})

        self.events.emit(AIEvent.IMAGE_GENERATION_START, {"used_fallback": True})
        try:
            return await self._acquire(fallback_image_prompt(recipe, self.is_flux), TIER_FALLBACK, cancel_token)
        except TransportError as e:
            self.log.warning(f"Image generation with template prompt failed: {e}", extra={"tier": TIER_FALLBACK})

        self.events.emit(AIEvent.IMAGE_GENERATION_START, {"used_minimal_fallback": True})
        try:
            return await self._acquire(minimal_image_prompt(recipe), TIER_MINIMAL, cancel_token)
        except TransportError as e:
            self.log.error(f"All image generation attempts failed: {e}", extra={"tier": TIER_MINIMAL})
            raise ImageGenerationError("Failed to generate recipe image after multiple attempts") from e

    async def _acquire(self, prompt: str, tier: str, cancel_token: Optional[CancellationToken]) -> str:
        uri = await self.request_image(prompt, cancel_token)
        payload = {"tier": tier}
        if tier == TIER_FALLBACK:
            payload["used_fallback"] = True
        elif tier == TIER_MINIMAL:
            payload["used_minimal_fallback"] = True
        self.events.emit(AIEvent.IMAGE_GENERATION_COMPLETE, payload)
        self.log.info("Recipe image acquired", extra={"tier": tier})
        return uri
