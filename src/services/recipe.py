"""Recipe generation orchestrator.

generate_recipe() runs the stages in order, each bracketed by events:

1. Prompt construction (deterministic template).
2. One chat completion with the recipe model.
3. JSON recovery cascade over the raw completion.
4. Reconciliation of the parsed tree against the request.
5. Strict schema validation (no repair after this point).
6. Image attachment. Image failures are non-fatal: the recipe is returned
   without an image.

Fatal failures in stages 2, 3 and 5 emit AIEvent.ERROR and raise. Nothing is
persisted here; saving is the caller's decision (see RecipeStore).
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from src.clients.openrouter import OpenRouterClient
from src.models.errors import GenerationError, ImageGenerationError, TransportError, ValidationError
from src.models.models import GenerationRequest, Recipe
from src.prompts.prompts import RECIPE_USER_INSTRUCTION, build_recipe_prompt
from src.services.events import AIEvent, EventBus
from src.services.image import ImageGenerator
from src.services.json_recovery import recover_json
from src.services.reconcile import reconcile_recipe_data
from src.utils.cancellation import CancellationToken
from src.utils.logger import logger, pipeline_logger


def validation_errors(error: PydanticValidationError) -> list[tuple[str, str]]:
    """(field_path, reason) pairs from a pydantic ValidationError."""
    return [(".".join(str(part) for part in item["loc"]), item["msg"]) for item in error.errors()]


class RecipeGenerator:
    """Turns a GenerationRequest into a validated, illustrated Recipe."""

    def __init__(
        self,
        client: OpenRouterClient,
        image_generator: ImageGenerator,
        events: EventBus,
        model: str,
        temperature: float = 0.7,
    ) -> None:
        self.client = client
        self.image_generator = image_generator
        self.events = events
        self.model = model
        self.temperature = temperature
        self.log = pipeline_logger(model=model)
        logger.info(f"RecipeGenerator initialized: model={model}")

    def _fail(self, stage: str, error: Exception) -> None:
        self.log.error(f"Recipe {stage} failed: {error}", extra={"stage": stage})
        self.events.emit(AIEvent.ERROR, {"message": str(error), "stage": stage})

    async def generate_completion(
        self, request: GenerationRequest, cancel_token: Optional[CancellationToken] = None
    ) -> str:
        """Stages 1 and 2: build the prompt and get the raw completion text.

        Raises:
            GenerationError: On transport failure or empty content.
        """
        self.events.emit(AIEvent.RECIPE_PROMPT_START)
        system_prompt = build_recipe_prompt(request)
        self.events.emit(AIEvent.RECIPE_PROMPT_COMPLETE)

        self.events.emit(AIEvent.RECIPE_GENERATION_START)
        try:
            completion = await self.client.chat(
                self.model,
                [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": RECIPE_USER_INSTRUCTION},
                ],
                self.temperature,
                cancel_token=cancel_token,
            )
        except TransportError as e:
            error = GenerationError(f"Recipe generation request failed: {e}")
            self._fail("generation", error)
            raise error from e

        content = completion.content
        if not content.strip():
            error = GenerationError("Failed to generate recipe: empty response")
            self._fail("generation", error)
            raise error

        self.events.emit(AIEvent.RECIPE_GENERATION_COMPLETE)
        return content

    def build_recipe(self, content: str, request: GenerationRequest) -> Recipe:
        """Stages 3 to 5: recover JSON, reconcile, validate.

        Raises:
            GenerationError: If no strategy can parse `content`.
            ValidationError: If the reconciled tree fails the Recipe schema.
        """
        try:
            data = recover_json(content)
        except GenerationError as e:
            self._fail("parsing", e)
            raise

        reconciled = reconcile_recipe_data(data, request)
        try:
            return Recipe.model_validate(reconciled)
        except PydanticValidationError as e:
            error = ValidationError(validation_errors(e))
            self._fail("validation", error)
            raise error from e

    async def generate_recipe(
        self, request: GenerationRequest, cancel_token: Optional[CancellationToken] = None
    ) -> Recipe:
        """Generate a complete recipe for `request`.

        Args:
            request: Ingredients, constraints and mode.
            cancel_token: Optional cancellation signal checked at every await.

        Returns:
            Recipe: Validated recipe, with an image when one could be produced.

        Raises:
            GenerationError: Chat failure, empty completion or unparseable output.
            ValidationError: Reconciled data does not fit the Recipe schema.
            PipelineCancelledError: cancel_token fired.
        """
        logger.info(
            f"Generating recipe: {len(request.ingredients)} ingredient(s), mode={request.mode.value}, "
            f"max_time={request.max_time_minutes}m"
        )
        content = await self.generate_completion(request, cancel_token)
        recipe = self.build_recipe(content, request)
        logger.info(f"Recipe validated: {recipe.name}")

        try:
            image_uri = await self.image_generator.generate_recipe_image(recipe, cancel_token)
        except (ImageGenerationError, TransportError) as e:
            self.log.error(f"Image generation failed, returning recipe without image: {e}", extra={"stage": "image"})
            self.events.emit(AIEvent.ERROR, {"message": str(e), "stage": "image"})
        else:
            recipe = recipe.with_image(image_uri)

        self.events.emit(AIEvent.PROCESS_COMPLETE)
        return recipe
