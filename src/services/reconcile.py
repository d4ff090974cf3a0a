"""Reconciliation: normalize untrusted recipe JSON before schema validation.

This is the one place where model output is treated as untrusted. It works
on a plain JSON tree (dicts, lists, scalars) and returns a new tree that the
strict Recipe model can validate:

- Required fields get safe defaults.
- Server-owned fields (@context, @type, recipeYield, prep/cook/total time)
  always come from the request. prepTime is floor(40%) and cookTime
  floor(60%) of max_time_minutes; totalTime is max_time_minutes exactly.
- recipeIngredient and ingredients.used are derived from each other when
  only one of them is populated.
- String quantities become numbers ("1/2" -> 0.5, unreadable -> 0) and null
  units become "".
- Shopping items given as bare strings are expanded, borrowing quantity and
  unit from a matching ingredient (1 / "item" otherwise). A missing shopping
  list is built from ingredients.used.
- Instructions given as bare strings become HowToStep records.

Running the pass on its own output changes nothing.
"""

import copy
import re
from typing import Any, Optional

from src.models.models import GenerationRequest
from src.utils.fractions import parse_quantity


NUMERIC_TOKEN = re.compile(r"^(\d+(\.\d+)?|\.\d+)(/\d+)?$")
DEFAULT_UNIT = "item"
INGREDIENT_GROUPS = ("used", "missing", "suggested")

# Fields only the pipeline may set: image is attached after validation and
# id only when a recipe is saved.
MODEL_EXCLUDED_FIELDS = ("image", "id")


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_duration(minutes: int) -> str:
    return f"PT{minutes}M"


def server_fields(request: GenerationRequest) -> dict[str, Any]:
    """Fields that are always taken from the request, never from the model."""
    return {
        "@context": "https://schema.org",
        "@type": "Recipe",
        "recipeYield": request.servings,
        "prepTime": format_duration(request.max_time_minutes * 4 // 10),
        "cookTime": format_duration(request.max_time_minutes * 6 // 10),
        "totalTime": format_duration(request.max_time_minutes),
    }


def _defaults() -> dict[str, Any]:
    return {
        "name": "Recipe",
        "recipeIngredient": [],
        "recipeInstructions": [],
        "ingredients": {"used": [], "missing": [], "suggested": []},
        "shoppingList": {"items": [], "totalItems": 0},
    }


def coerce_quantity(value: Any, default: Any = 0) -> Any:
    """String -> number via parse_quantity(); None -> `default`."""
    if value is None:
        return default
    return parse_quantity(value)


def coerce_unit(value: Any) -> Any:
    return "" if value is None else value


def ingredient_from_display(text: str) -> dict[str, Any]:
    """Naive split of "2 cups flour" into quantity / unit / name.

    A leading numeric token is the quantity. When anything follows it, the
    next token is the unit and the rest is the name, so "2 eggs" reads as unit
    "eggs" with an empty name. Without a leading number the whole string is
    the name with quantity 1.
    """
    parts = text.split()
    if parts and NUMERIC_TOKEN.match(parts[0]):
        unit = parts[1] if len(parts) > 1 else ""
        return {"name": " ".join(parts[2:]), "quantity": parse_quantity(parts[0]), "unit": unit}
    return {"name": text.strip(), "quantity": 1, "unit": ""}


def display_from_ingredient(ingredient: dict[str, Any]) -> str:
    """Inverse of ingredient_from_display: "quantity unit name"."""
    quantity = ingredient.get("quantity")
    parts = [
        format_number(quantity) if quantity else "",
        ingredient.get("unit") or "",
        str(ingredient.get("name") or ""),
    ]
    return " ".join(part for part in parts if part).strip()


def reconcile_ingredient(entry: Any) -> Any:
    """Normalize one ingredient entry; strings are split naively."""
    if isinstance(entry, str):
        return ingredient_from_display(entry)
    if not isinstance(entry, dict):
        return entry
    fixed = dict(entry)
    fixed["quantity"] = coerce_quantity(fixed.get("quantity"))
    fixed["unit"] = coerce_unit(fixed.get("unit"))
    return fixed


def _reconcile_ingredients(raw: Any) -> dict[str, Any]:
    if isinstance(raw, list):
        raw = {"used": raw}
    if not isinstance(raw, dict):
        raw = {}
    fixed = dict(raw)
    for group in INGREDIENT_GROUPS:
        entries = fixed.get(group)
        if entries is None:
            if group == "used":
                fixed[group] = []
            continue
        if isinstance(entries, list):
            fixed[group] = [reconcile_ingredient(entry) for entry in entries]
    return fixed


def find_matching_ingredient(name: str, used: list[Any]) -> Optional[dict[str, Any]]:
    """Case-insensitive substring match in either direction."""
    needle = name.lower()
    for ingredient in used:
        if not isinstance(ingredient, dict) or not isinstance(ingredient.get("name"), str):
            continue
        candidate = ingredient["name"].lower()
        if candidate and (needle in candidate or candidate in needle):
            return ingredient
    return None


def shopping_item_from_ingredient(name: str, ingredient: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Build a shopping item, defaulting to 1 / "item" when nothing is known."""
    quantity = (ingredient or {}).get("quantity") or 1
    unit = (ingredient or {}).get("unit") or DEFAULT_UNIT
    return {
        "name": name,
        "requiredQuantity": {"amount": quantity, "unit": unit},
        "purchaseQuantity": quantity,
        "purchaseUnit": unit,
    }


def reconcile_shopping_item(item: Any, used: list[Any]) -> Any:
    if isinstance(item, str):
        return shopping_item_from_ingredient(item, find_matching_ingredient(item, used))
    if not isinstance(item, dict):
        return item

    fixed = dict(item)
    required = fixed.get("requiredQuantity")
    required = dict(required) if isinstance(required, dict) else {}

    amount = coerce_quantity(required.get("amount"), default=None)
    purchase = coerce_quantity(fixed.get("purchaseQuantity"), default=None)
    if amount is None:
        amount = purchase if purchase is not None else 1
    if purchase is None:
        purchase = amount

    required["amount"] = amount
    required["unit"] = coerce_unit(required.get("unit"))
    fixed["requiredQuantity"] = required
    fixed["purchaseQuantity"] = purchase
    fixed["purchaseUnit"] = coerce_unit(fixed.get("purchaseUnit"))
    return fixed


def _reconcile_shopping_list(raw: Any, used: list[Any]) -> dict[str, Any]:
    if isinstance(raw, list):
        raw = {"items": raw}
    fixed = dict(raw) if isinstance(raw, dict) else {}
    items = fixed.get("items")
    items = items if isinstance(items, list) else []

    if not items and used:
        items = [
            shopping_item_from_ingredient(ingredient["name"], ingredient)
            for ingredient in used
            if isinstance(ingredient, dict) and ingredient.get("name")
        ]
    else:
        items = [reconcile_shopping_item(item, used) for item in items]

    fixed["items"] = items
    fixed["totalItems"] = len(items)
    return fixed


def _reconcile_instructions(raw: Any) -> list[Any]:
    if isinstance(raw, str):
        raw = [line.strip() for line in raw.splitlines() if line.strip()]
    if not isinstance(raw, list):
        return []
    steps = []
    for index, entry in enumerate(raw):
        if isinstance(entry, str):
            steps.append({"@type": "HowToStep", "text": entry, "step": index + 1})
        elif isinstance(entry, dict):
            step = dict(entry)
            step.setdefault("@type", "HowToStep")
            steps.append(step)
        else:
            steps.append(entry)
    return steps


def reconcile_recipe_data(data: Any, request: GenerationRequest) -> dict[str, Any]:
    """Normalize parsed model output into a tree the Recipe schema accepts.

    Args:
        data: Output of the JSON recovery cascade (never mutated).
        request: The originating request; owns servings and timing.

    Returns:
        A new dict ready for Recipe.model_validate().
    """
    source = copy.deepcopy(data) if isinstance(data, dict) else {}
    for field in MODEL_EXCLUDED_FIELDS:
        source.pop(field, None)

    recipe: dict[str, Any] = {**_defaults(), **source, **server_fields(request)}
    for field, default in _defaults().items():
        if recipe.get(field) is None:
            recipe[field] = default

    recipe["ingredients"] = _reconcile_ingredients(recipe["ingredients"])
    used = recipe["ingredients"]["used"]

    display = recipe["recipeIngredient"]
    if isinstance(display, str):
        display = [display]
    if not isinstance(display, list):
        display = []
    display = [display_from_ingredient(entry) if isinstance(entry, dict) else entry for entry in display]

    if used and not display:
        display = [display_from_ingredient(ingredient) for ingredient in used if isinstance(ingredient, dict)]
    elif display and not used:
        used = [ingredient_from_display(entry) for entry in display if isinstance(entry, str)]
        recipe["ingredients"] = {**recipe["ingredients"], "used": used}
    recipe["recipeIngredient"] = display

    recipe["shoppingList"] = _reconcile_shopping_list(recipe["shoppingList"], used)
    recipe["recipeInstructions"] = _reconcile_instructions(recipe["recipeInstructions"])

    if isinstance(recipe.get("diet"), str):
        recipe["diet"] = [recipe["diet"]]

    return recipe
