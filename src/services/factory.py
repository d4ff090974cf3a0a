"""Service construction.

initialize_services() builds every pipeline service exactly once from a
validated Config and wires dependencies explicitly:

1. OpenRouter client (chat + URL-style images)
2. Hugging Face image client (only when a key is configured)
3. IngredientParser
4. ImageGenerator
5. RecipeGenerator
6. RecipeStore
"""

from dataclasses import dataclass
from typing import Optional

from src.clients.huggingface import HuggingFaceImageClient
from src.clients.openrouter import OpenRouterClient
from src.services.events import EventBus, event_bus
from src.services.image import ImageGenerator
from src.services.ingredients import IngredientParser
from src.services.recipe import RecipeGenerator
from src.services.store import RecipeStore
from src.utils.config import Config
from src.utils.logger import logger


@dataclass
class Services:
    """Container for the wired services of one process."""

    events: EventBus
    openrouter: OpenRouterClient
    huggingface: Optional[HuggingFaceImageClient]
    ingredient_parser: IngredientParser
    image_generator: ImageGenerator
    recipe_generator: RecipeGenerator
    store: RecipeStore

    async def close(self) -> None:
        """Release HTTP sessions held by the clients."""
        await self.openrouter.close()
        if self.huggingface is not None:
            await self.huggingface.close()


def initialize_services(config: Config, events: Optional[EventBus] = None) -> Services:
    """Build all services from `config`.

    Args:
        config: Application configuration (validated here).
        events: Event bus to share; defaults to the process-wide bus.

    Returns:
        Services container.

    Raises:
        ValueError: If the configuration is invalid.
    """
    config.validate()
    events = events if events is not None else event_bus
    logger.info("=== Initializing recipe pipeline services ===")

    openrouter = OpenRouterClient(
        api_key=config.OPENROUTER_API_KEY,
        app_url=config.APP_URL,
        base_url=config.OPENROUTER_BASE_URL,
        timeout_seconds=config.REQUEST_TIMEOUT_SECONDS,
    )

    huggingface = None
    if config.uses_huggingface_key:
        huggingface = HuggingFaceImageClient(
            api_key=config.HUGGINGFACE_API_KEY,
            base_url=config.HUGGINGFACE_BASE_URL,
            timeout_seconds=config.REQUEST_TIMEOUT_SECONDS,
        )
    else:
        logger.info("No Hugging Face key configured, images will use the OpenRouter endpoint")

    ingredient_parser = IngredientParser(
        openrouter, model=config.INGREDIENTS_MODEL, temperature=config.INGREDIENT_TEMPERATURE
    )
    image_generator = ImageGenerator(
        openrouter,
        events,
        image_model=config.IMAGE_MODEL,
        prompt_model=config.PROMPT_MODEL,
        huggingface=huggingface,
        temperature=config.RECIPE_TEMPERATURE,
    )
    recipe_generator = RecipeGenerator(
        openrouter,
        image_generator,
        events,
        model=config.RECIPE_MODEL,
        temperature=config.RECIPE_TEMPERATURE,
    )
    store = RecipeStore(config.STORAGE_DIR)

    logger.info("=== Service initialization complete ===")
    return Services(
        events=events,
        openrouter=openrouter,
        huggingface=huggingface,
        ingredient_parser=ingredient_parser,
        image_generator=image_generator,
        recipe_generator=recipe_generator,
        store=store,
    )
