"""Configuration management for the recipe generation pipeline.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults

The Config object is built once at process start and handed to
src.services.factory.initialize_services(); services never read the
environment themselves.
"""

import os
from typing import Optional

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # OpenRouter API key used for chat completions and URL-style image generation
        self.OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
        # App URL sent as HTTP-Referer so OpenRouter can attribute requests
        self.APP_URL: str = os.getenv("APP_URL", "http://localhost")
        self.OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
        # Recipe Model: generates the recipe JSON
        self.RECIPE_MODEL: str = os.getenv("RECIPE_MODEL", "openai/gpt-4o-mini")
        # Prompt Model: writes the image prompt. Falls back to RECIPE_MODEL
        self.PROMPT_MODEL: str = os.getenv("PROMPT_MODEL") or self.RECIPE_MODEL
        # Ingredients Model: parses free-text ingredient input. Falls back to RECIPE_MODEL
        self.INGREDIENTS_MODEL: str = os.getenv("INGREDIENTS_MODEL") or self.RECIPE_MODEL
        # Image Model: FLUX / namespaced ids route to Hugging Face when a key is set
        self.IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "black-forest-labs/FLUX.1-schnell")
        # Hugging Face API key: optional, absence forces the OpenRouter image endpoint
        self.HUGGINGFACE_API_KEY: Optional[str] = os.getenv("HUGGINGFACE_API_KEY") or None
        self.HUGGINGFACE_BASE_URL: str = os.getenv(
            "HUGGINGFACE_BASE_URL", "https://api-inference.huggingface.co/models"
        )
        # Total timeout for a single HTTP request, in seconds. Default: 60
        self.REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))
        # Temperature for recipe generation and image prompt authoring
        self.RECIPE_TEMPERATURE: float = float(os.getenv("RECIPE_TEMPERATURE", "0.7"))
        # Temperature for ingredient extraction: low for deterministic parsing
        self.INGREDIENT_TEMPERATURE: float = float(os.getenv("INGREDIENT_TEMPERATURE", "0.2"))
        # Directory holding the saved-recipes collection
        self.STORAGE_DIR: str = os.getenv("STORAGE_DIR", ".recipe_data")

    def validate(self) -> None:
        """Validate required configuration.

        Raises:
            ValueError: If required API keys are missing or invalid values provided.
        """
        if not self.OPENROUTER_API_KEY:
            raise ValueError("OPENROUTER_API_KEY environment variable is required")
        if not self.RECIPE_MODEL:
            raise ValueError("RECIPE_MODEL environment variable is required")
        if not self.IMAGE_MODEL:
            raise ValueError("IMAGE_MODEL environment variable is required")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"REQUEST_TIMEOUT_SECONDS must be positive, got: {self.REQUEST_TIMEOUT_SECONDS}"
            )
        for name in ("RECIPE_TEMPERATURE", "INGREDIENT_TEMPERATURE"):
            value = getattr(self, name)
            if not (0.0 <= value <= 2.0):
                raise ValueError(f"{name} must be between 0.0 and 2.0, got: {value}")

    @property
    def uses_huggingface_key(self) -> bool:
        """True when a Hugging Face key is configured."""
        return bool(self.HUGGINGFACE_API_KEY)
