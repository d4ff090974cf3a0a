"""Free-text ingredient parsing for the ingredient entry flow.

IngredientParser.parse() turns input like "2 cups flour, 1,000 g sugar" into
ParsedIngredient records:

1. Split on commas not followed by a digit ("1,000" stays whole).
2. FAST PATH: a single word needs no model call.
3. Otherwise ask the ingredients model for a JSON array of
   {name, quantity, unit}, one input line per candidate, at low temperature.
4. On any failure fall back to one bare-name record per candidate.

Parsing must never block recipe creation, so inference problems (including
TransportError) are absorbed here. Cancellation still propagates.
"""

import json
import re
from typing import Any, Optional

from src.clients.openrouter import OpenRouterClient
from src.models.errors import ParseFailure, PipelineCancelledError, RecipePipelineError
from src.models.models import ParsedIngredient
from src.prompts.prompts import INGREDIENT_PARSER_PROMPT
from src.services.json_recovery import extract_balanced, strip_code_fence
from src.utils.cancellation import CancellationToken
from src.utils.logger import logger


INGREDIENT_SEPARATOR = re.compile(r",(?![0-9])")


def split_ingredients(text: str) -> list[str]:
    """Split on commas not followed by a digit; trim and drop empties."""
    return [item.strip() for item in INGREDIENT_SEPARATOR.split(text) if item.strip()]


def bare_ingredients(candidates: list[str]) -> list[ParsedIngredient]:
    return [ParsedIngredient(name=candidate) for candidate in candidates]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if not text or text.lower() in ("null", "none"):
        return None
    return text


def parse_ingredient_response(content: str) -> list[ParsedIngredient]:
    """Parse the model's JSON array into ParsedIngredient records.

    Tolerates a markdown fence and prose around the array.

    Raises:
        ParseFailure: If no array is found, it is not valid JSON, or an
            element lacks a name.
    """
    body = strip_code_fence(content)
    array_text = extract_balanced(body, "[", "]") or body
    try:
        parsed = json.loads(array_text)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Invalid ingredient JSON: {e}") from e
    if not isinstance(parsed, list) or not parsed:
        raise ParseFailure("Invalid response format: expected a non-empty array")

    results = []
    for item in parsed:
        if not isinstance(item, dict):
            raise ParseFailure(f"Expected an object per ingredient, got {type(item).__name__}")
        name = _optional_text(item.get("name"))
        if not name:
            raise ParseFailure("Ingredient without a name")
        results.append(
            ParsedIngredient(
                name=name,
                quantity=_optional_text(item.get("quantity")),
                unit=_optional_text(item.get("unit")),
            )
        )
    return results


class IngredientParser:
    """Turns raw ingredient text into structured records."""

    def __init__(self, client: OpenRouterClient, model: str, temperature: float = 0.2) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        logger.info(f"IngredientParser initialized: model={model}")

    async def parse(
        self, raw_text: str, cancel_token: Optional[CancellationToken] = None
    ) -> list[ParsedIngredient]:
        """Parse free text into ingredients.

        Args:
            raw_text: User input, possibly several comma-separated ingredients.
            cancel_token: Optional cancellation signal.

        Returns:
            One ParsedIngredient per ingredient, each with a fresh id.

        Raises:
            PipelineCancelledError: If cancel_token fires during the model call.
        """
        candidates = split_ingredients(raw_text)
        logger.debug(f"Split ingredients: {candidates}")

        if not candidates:
            return []

        if len(candidates) == 1 and not any(char.isspace() for char in candidates[0]):
            logger.debug(f"Simple single ingredient, no parsing needed: {candidates[0]}")
            return bare_ingredients(candidates)

        try:
            completion = await self.client.chat(
                self.model,
                [
                    {"role": "system", "content": INGREDIENT_PARSER_PROMPT},
                    {"role": "user", "content": "\n".join(candidates)},
                ],
                self.temperature,
                cancel_token=cancel_token,
            )
            if not completion.content:
                raise ParseFailure("Empty response from ingredients model")
            results = parse_ingredient_response(completion.content)
        except PipelineCancelledError:
            raise
        except RecipePipelineError as e:
            logger.warning(f"Ingredient parsing failed, falling back to bare names: {e}")
            return bare_ingredients(candidates)

        logger.info(f"Parsed {len(results)} ingredient(s) with {self.model}")
        return results
