"""Prompts for recipe generation, ingredient parsing and image prompting.

Every builder here is a deterministic template: the same input always
produces the same text. The recipe prompt encodes the mode constraint and the
exact JSON shape the reconciliation pass expects.
"""

from src.models.models import GenerationMode, GenerationRequest, Recipe


RECIPE_USER_INSTRUCTION = (
    "Generate a recipe based on the given requirements. Make sure the steps are detailed "
    "instructions and are atomic and easy to follow."
)

INGREDIENT_PARSER_PROMPT = """You are a helpful assistant that parses ingredient text into structured data.
Given one or more ingredient descriptions, one per line, extract the name, quantity, and unit if present for each ingredient.
Respond with ONLY a JSON array of objects in this format:
[
  {
    "name": "ingredient name",
    "quantity": "numeric amount or null",
    "unit": "measurement unit or null"
  }
]"""

IMAGE_PROMPT_SYSTEM = """You are an expert at creating detailed image prompts for AI image generators.
Given a recipe, create a vivid, detailed prompt that will result in a beautiful, appetizing
image of the dish. Focus on the visual aspects, plating, colors, and setting."""

FLUX_SYSTEM_SUFFIX = "The prompt will be used with the FLUX.1 model which is specialized for food photography."


def _get_mode_section(request: GenerationRequest) -> tuple[str, str]:
    """Opening constraint and closing reminder for the request's mode."""
    ingredient_list = ", ".join(request.ingredients)
    if request.mode == GenerationMode.USE_WHAT_I_HAVE:
        return (
            "CRITICAL: You MUST create a recipe that uses ONLY the following ingredients. "
            f"DO NOT add any other ingredients: {ingredient_list}",
            "IMPORTANT: The recipe MUST NOT include ANY ingredients that are not in the provided list. "
            "This is a strict requirement.",
        )
    return (
        f"Create a recipe that PRIMARILY uses these ingredients, but you can suggest additional ones: {ingredient_list}",
        "You may suggest additional ingredients that complement the provided ones.",
    )


def _get_requirements_section(request: GenerationRequest) -> str:
    lines = [
        f"- Serve {request.servings} people",
        f"- Maximum preparation and cooking time: {request.max_time_minutes} minutes",
    ]
    if request.cuisines:
        lines.append(f"- Cuisine style: {', '.join(request.cuisines)}")
    if request.hint:
        lines.append(f"- Additional requirements: {request.hint}")
    return "\n".join(lines)


def _get_output_format_section(request: GenerationRequest) -> str:
    cuisine = request.cuisines[0] if request.cuisines else "International"
    return f"""The response MUST be a valid JSON object with the following structure:

{{
  "name": "Recipe Name",
  "description": "Brief description of the recipe",
  "recipeIngredient": ["ingredient 1", "ingredient 2", ...],
  "recipeInstructions": [
    {{
      "@type": "HowToStep",
      "text": "Step 1 instructions",
      "step": 1
    }},
    {{
      "@type": "HowToStep",
      "text": "Step 2 instructions",
      "step": 2
    }}
  ],
  "ingredients": {{
    "used": [
      {{ "name": "ingredient name", "quantity": 1, "unit": "cup" }}
    ],
    "missing": [],
    "suggested": []
  }},
  "shoppingList": {{
    "items": [
      {{
        "name": "ingredient name",
        "requiredQuantity": {{
          "amount": 1,
          "unit": "cup"
        }},
        "purchaseQuantity": 1,
        "purchaseUnit": "cup"
      }}
    ],
    "totalItems": 1
  }},
  "recipeCuisine": "{cuisine}"
}}

Ensure all required fields are present and properly formatted. Return ONLY the JSON object with no additional text.

IMPORTANT: All numeric fields must use actual numbers, not strings. For example:
- Use quantity: 1 (not "1")
- Use quantity: 0.5 (not "1/2")
- Use amount: 2.5 (not "2.5")

If you must use fractions, convert them to decimal numbers (e.g., 1/2 → 0.5, 1/4 → 0.25, etc.).

NEVER use null for unit fields. Always use an empty string "" instead of null when a unit is not applicable."""


def build_recipe_prompt(request: GenerationRequest) -> str:
    """System prompt for one recipe generation call.

    Args:
        request: Validated generation request.

    Returns:
        str: Complete system prompt (deterministic for a given request).
    """
    opening, reminder = _get_mode_section(request)
    return f"""You are a professional chef and recipe creator. Create a recipe that matches these requirements and try to use existing recipes as a starting point:

{opening}

Requirements:
{_get_requirements_section(request)}

{reminder}

The description of the recipe should be a short description of the finished meal not focused on the ingredients alone.

{_get_output_format_section(request)}"""


def build_image_prompt_messages(recipe: Recipe, flux: bool) -> list[dict]:
    """Chat messages asking the prompt model to write an image prompt.

    FLUX models get a terse keyword-style request (under ~75 words); other
    models get a fuller descriptive paragraph.
    """
    system = IMAGE_PROMPT_SYSTEM + (f"\n{FLUX_SYSTEM_SUFFIX}" if flux else "")
    header = (
        f"Create an image prompt for this recipe: {recipe.name}\n\n"
        f"Cuisine: {recipe.recipe_cuisine or 'International'}\n"
        f"Main ingredients: {', '.join(recipe.recipe_ingredient[:5])}\n\n"
    )
    if flux:
        guidance = (
            "Create a prompt for the FLUX.1 model which is specialized for food photography. "
            "Focus on describing the prepared meal, plating, and styling. Keep the prompt concise (under 75 words). "
            "Make sure the prompt states to not include ingredients that are not in the recipe. "
            "Do not include any negative prompts or technical parameters."
        )
    else:
        guidance = (
            "The prompt should describe how the finished dish looks, the plating style, background, lighting, etc. "
            "Make it detailed enough for an AI image generator to create a beautiful food photograph. "
            "Make sure the meal is centered toward the top of the shot and not a closeup."
        )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": header + guidance},
    ]


def fallback_image_prompt(recipe: Recipe, flux: bool) -> str:
    """Template prompt from name, cuisine and the first three ingredients."""
    cuisine = recipe.recipe_cuisine or "delicious"
    ingredients = ", ".join(recipe.recipe_ingredient[:3])
    if flux:
        return (
            f"{recipe.name} with {ingredients}, {cuisine} cuisine, professional food photography, "
            "perfect lighting, high quality, styled plating, appetizing, vibrant colors"
        )
    return (
        f"Depict {recipe.name}, a {cuisine} dish featuring {ingredients}.\n\n"
        "Style: Professional food photography, overhead shot, natural lighting, styled on a rustic wooden "
        "table with complementary props and garnishes. The image should be appetizing and Instagram-worthy."
    )


def minimal_image_prompt(recipe: Recipe) -> str:
    return f"{recipe.name}, food photography, high quality"
