"""Data models and schemas for the recipe generation pipeline.

Defines Pydantic models for generation requests, parsed ingredients and the
strict schema.org-style Recipe record the pipeline produces.
All models use Pydantic v2. Wire names follow schema.org camelCase (with the
`@context` / `@type` discriminators); Python attributes are snake_case and
either name is accepted on input.
"""

import random
import string
import time
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DURATION_PATTERN = r"^PT\d+M$"


def generate_ingredient_id() -> str:
    """Opaque id: epoch milliseconds plus nine random base36 characters."""
    alphabet = string.digits + string.ascii_lowercase
    suffix = "".join(random.choices(alphabet, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


class GenerationMode(str, Enum):
    """How strictly the recipe must stick to the provided ingredients."""

    USE_WHAT_I_HAVE = "use-what-i-have"
    SUGGEST = "suggest"


class GenerationRequest(BaseModel):
    """Input to RecipeGenerator.generate_recipe().

    Immutable once constructed. Under USE_WHAT_I_HAVE the prompt tells the
    model that `ingredients` is a closed set; under SUGGEST it may add more.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, populate_by_name=True)

    ingredients: Annotated[List[str], Field(description="Ordered ingredient names")]
    servings: Annotated[str, Field(min_length=1, description="Serving count (numeric string)")]
    cuisines: Annotated[List[str], Field(default_factory=list, description="Cuisine tags, possibly empty")]
    max_time_minutes: Annotated[int, Field(gt=0, alias="maxTime", description="Total time budget in minutes")]
    hint: Annotated[str, Field("", description="Free-text requirements, possibly empty")]
    mode: Annotated[GenerationMode, Field(GenerationMode.SUGGEST)]

    @field_validator("servings", mode="before")
    @classmethod
    def stringify_servings(cls, v):
        """Accept a numeric serving count and keep it as a string."""
        if isinstance(v, bool):
            raise ValueError("servings must be a number or numeric string")
        if isinstance(v, (int, float)):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v

    @field_validator("ingredients", mode="before")
    @classmethod
    def drop_blank_ingredients(cls, v):
        if isinstance(v, list):
            return [item.strip() for item in v if isinstance(item, str) and item.strip()]
        return v


class ParsedIngredient(BaseModel):
    """One ingredient as entered by the user, after IngredientParser."""

    id: str = Field(default_factory=generate_ingredient_id)
    name: Annotated[str, Field(min_length=1)]
    quantity: Optional[str] = None
    unit: Optional[str] = None


class _RecipeModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Ingredient(_RecipeModel):
    """Schema-level ingredient. Unit is "" when not applicable, never None."""

    name: str
    quantity: float
    unit: str
    note: Optional[str] = None


class RequiredQuantity(_RecipeModel):
    amount: float
    unit: str


class ShoppingListItem(_RecipeModel):
    name: str
    required_quantity: Annotated[RequiredQuantity, Field(alias="requiredQuantity")]
    purchase_quantity: Annotated[float, Field(alias="purchaseQuantity")]
    purchase_unit: Annotated[str, Field(alias="purchaseUnit")]
    purchase_note: Annotated[Optional[str], Field(None, alias="purchaseNote")]


class ShoppingList(_RecipeModel):
    items: List[ShoppingListItem]
    total_items: Annotated[int, Field(ge=0, alias="totalItems")]


class RecipeInstruction(_RecipeModel):
    """A HowToStep. List order is authoritative; `step` is only a display hint."""

    type: Annotated[Literal["HowToStep"], Field(alias="@type")]
    text: str
    name: Optional[str] = None
    url: Optional[str] = None
    duration_minutes: Annotated[Optional[float], Field(None, alias="durationMinutes")]
    timer: Optional[bool] = None
    step: Optional[int] = None


class Nutrition(_RecipeModel):
    type: Annotated[Literal["NutritionInformation"], Field(alias="@type")]
    calories: Optional[str] = None
    protein_content: Annotated[Optional[str], Field(None, alias="proteinContent")]
    carbohydrate_content: Annotated[Optional[str], Field(None, alias="carbohydrateContent")]
    fat_content: Annotated[Optional[str], Field(None, alias="fatContent")]
    fiber_content: Annotated[Optional[str], Field(None, alias="fiberContent")]


class UserFeedback(_RecipeModel):
    liked: Optional[bool] = None
    notes: Optional[str] = None


class RecipeIngredients(_RecipeModel):
    used: List[Ingredient]
    missing: Optional[List[Ingredient]] = None
    suggested: Optional[List[Ingredient]] = None


class Recipe(_RecipeModel):
    """Validated recipe record.

    Immutable once validated. The only later changes are attaching an image
    (with_image) and, when saved, an id (with_id); both return copies.
    totalTime always comes from the request, never from the model.
    """

    context: Annotated[Literal["https://schema.org"], Field(alias="@context")]
    type: Annotated[Literal["Recipe"], Field(alias="@type")]
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    image: Optional[List[str]] = None
    recipe_cuisine: Annotated[Optional[str], Field(None, alias="recipeCuisine")]
    recipe_category: Annotated[Optional[str], Field(None, alias="recipeCategory")]
    keywords: Optional[str] = None
    recipe_yield: Annotated[str, Field(alias="recipeYield")]
    prep_time: Annotated[str, Field(alias="prepTime", pattern=DURATION_PATTERN)]
    cook_time: Annotated[str, Field(alias="cookTime", pattern=DURATION_PATTERN)]
    total_time: Annotated[str, Field(alias="totalTime", pattern=DURATION_PATTERN)]
    recipe_ingredient: Annotated[List[str], Field(alias="recipeIngredient")]
    ingredients: RecipeIngredients
    shopping_list: Annotated[ShoppingList, Field(alias="shoppingList")]
    recipe_instructions: Annotated[List[RecipeInstruction], Field(alias="recipeInstructions")]
    nutrition: Optional[Nutrition] = None
    user_feedback: Annotated[Optional[UserFeedback], Field(None, alias="userFeedback")]
    diet: Optional[List[str]] = None

    @field_validator("image")
    @classmethod
    def validate_image_uris(cls, images: Optional[List[str]]) -> Optional[List[str]]:
        """Each image must be an http(s) URL or a data URI."""
        if images is None:
            return None
        for uri in images:
            if not uri.startswith(("http://", "https://", "data:")):
                raise ValueError(f"Invalid image URI: {uri[:50]}")
        return images

    def with_image(self, uri: str) -> "Recipe":
        return self.model_copy(update={"image": [uri]})

    def with_id(self, recipe_id: str) -> "Recipe":
        return self.model_copy(update={"id": recipe_id})

    def to_json_dict(self) -> dict:
        """Serialize with schema.org field names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
