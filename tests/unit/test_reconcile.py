"""Unit tests for recipe reconciliation."""

import copy

import pytest

from src.models.models import GenerationRequest, Recipe
from src.services.reconcile import (
    display_from_ingredient,
    find_matching_ingredient,
    ingredient_from_display,
    reconcile_recipe_data,
    server_fields,
)


@pytest.fixture
def request_45():
    return GenerationRequest(ingredients=["tomato", "basil"], servings="2", max_time_minutes=45)


class TestServerFields:
    """Test request-owned fields."""

    @pytest.mark.parametrize(
        "minutes,prep,cook",
        [(30, "PT12M", "PT18M"), (45, "PT18M", "PT27M"), (1, "PT0M", "PT0M"), (7, "PT2M", "PT4M")],
    )
    def test_time_split(self, minutes, prep, cook):
        request = GenerationRequest(ingredients=["x"], servings="1", max_time_minutes=minutes)
        fields = server_fields(request)

        assert fields["prepTime"] == prep
        assert fields["cookTime"] == cook
        assert fields["totalTime"] == f"PT{minutes}M"

    def test_model_cannot_override_server_fields(self, request_45):
        data = {
            "name": "Soup",
            "@context": "http://evil.example",
            "recipeYield": "100",
            "totalTime": "PT999M",
            "prepTime": "PT1M",
        }

        result = reconcile_recipe_data(data, request_45)

        assert result["@context"] == "https://schema.org"
        assert result["@type"] == "Recipe"
        assert result["recipeYield"] == "2"
        assert result["totalTime"] == "PT45M"
        assert result["prepTime"] == "PT18M"

    def test_model_image_and_id_ignored(self, request_45):
        result = reconcile_recipe_data({"name": "Soup", "image": ["not a url"], "id": "abc"}, request_45)

        assert "image" not in result
        assert "id" not in result


class TestIngredientDerivation:
    """Test recipeIngredient <-> ingredients.used cross-derivation."""

    def test_display_from_structured(self, request_45):
        data = {"ingredients": {"used": [{"name": "tomato", "quantity": 2, "unit": ""}]}}

        result = reconcile_recipe_data(data, request_45)

        assert result["recipeIngredient"] == ["2 tomato"]

    def test_structured_from_display(self, request_45):
        data = {"recipeIngredient": ["2 cups basil leaves", "1/2 tsp salt", "olive oil"]}

        result = reconcile_recipe_data(data, request_45)

        assert result["ingredients"]["used"] == [
            {"name": "basil leaves", "quantity": 2.0, "unit": "cups"},
            {"name": "salt", "quantity": 0.5, "unit": "tsp"},
            {"name": "olive oil", "quantity": 1, "unit": ""},
        ]

    def test_derivation_keeps_missing_and_suggested(self, request_45):
        data = {
            "recipeIngredient": ["2 tomatoes"],
            "ingredients": {"used": [], "suggested": [{"name": "garlic", "quantity": "1", "unit": None}]},
        }

        result = reconcile_recipe_data(data, request_45)

        assert result["ingredients"]["suggested"] == [{"name": "garlic", "quantity": 1.0, "unit": ""}]

    def test_ingredient_list_treated_as_used(self, request_45):
        data = {"ingredients": [{"name": "tomato", "quantity": 1, "unit": ""}]}

        result = reconcile_recipe_data(data, request_45)

        assert result["ingredients"]["used"][0]["name"] == "tomato"

    def test_display_helpers(self):
        assert display_from_ingredient({"name": "flour", "quantity": 1.5, "unit": "cups"}) == "1.5 cups flour"
        assert display_from_ingredient({"name": "salt", "quantity": 0, "unit": ""}) == "salt"

    def test_token_after_number_is_unit(self):
        """The token after a leading number is the unit even when nothing follows it."""
        assert ingredient_from_display("2 eggs") == {"name": "", "quantity": 2.0, "unit": "eggs"}
        assert ingredient_from_display("3 large eggs") == {"name": "eggs", "quantity": 3.0, "unit": "large"}
        assert ingredient_from_display("2") == {"name": "", "quantity": 2.0, "unit": ""}
        assert ingredient_from_display("fresh basil") == {"name": "fresh basil", "quantity": 1, "unit": ""}


class TestQuantityCoercion:
    """Test numeric and unit coercion."""

    def test_fraction_strings_become_numbers(self, request_45):
        data = {"ingredients": {"used": [{"name": "a", "quantity": "1/2", "unit": "cup"}]}}

        result = reconcile_recipe_data(data, request_45)

        assert abs(result["ingredients"]["used"][0]["quantity"] - 0.5) < 1e-9

    def test_unreadable_quantity_becomes_zero(self, request_45):
        data = {"ingredients": {"used": [{"name": "salt", "quantity": "a pinch", "unit": None}]}}

        used = reconcile_recipe_data(data, request_45)["ingredients"]["used"][0]

        assert used["quantity"] == 0
        assert used["unit"] == ""

    def test_missing_quantity_becomes_zero(self, request_45):
        data = {"ingredients": {"used": [{"name": "pepper", "unit": ""}]}}

        assert reconcile_recipe_data(data, request_45)["ingredients"]["used"][0]["quantity"] == 0

    def test_null_units_become_empty_strings(self, request_45):
        data = {
            "ingredients": {"used": [{"name": "egg", "quantity": 2, "unit": None}]},
            "shoppingList": {
                "items": [
                    {
                        "name": "egg",
                        "requiredQuantity": {"amount": 2, "unit": None},
                        "purchaseQuantity": 6,
                        "purchaseUnit": None,
                    }
                ]
            },
        }

        result = reconcile_recipe_data(data, request_45)
        item = result["shoppingList"]["items"][0]

        assert result["ingredients"]["used"][0]["unit"] == ""
        assert item["requiredQuantity"]["unit"] == ""
        assert item["purchaseUnit"] == ""


class TestShoppingList:
    """Test shopping list synthesis and normalization."""

    def test_string_item_matches_ingredient(self, request_45):
        data = {
            "ingredients": {"used": [{"name": "Cherry Tomatoes", "quantity": 2, "unit": "cups"}]},
            "shoppingList": {"items": ["tomatoes"]},
        }

        item = reconcile_recipe_data(data, request_45)["shoppingList"]["items"][0]

        assert item["name"] == "tomatoes"
        assert item["requiredQuantity"] == {"amount": 2, "unit": "cups"}
        assert item["purchaseQuantity"] == 2
        assert item["purchaseUnit"] == "cups"

    def test_string_item_without_match_uses_defaults(self, request_45):
        data = {"ingredients": {"used": [{"name": "rice", "quantity": 1, "unit": "cup"}]}, "shoppingList": ["saffron"]}

        item = reconcile_recipe_data(data, request_45)["shoppingList"]["items"][0]

        assert item["requiredQuantity"] == {"amount": 1, "unit": "item"}
        assert item["purchaseUnit"] == "item"

    def test_missing_shopping_list_built_from_used(self, request_45):
        data = {"ingredients": {"used": [{"name": "rice", "quantity": 1, "unit": "cup"}]}}

        shopping = reconcile_recipe_data(data, request_45)["shoppingList"]

        assert [item["name"] for item in shopping["items"]] == ["rice"]
        assert shopping["totalItems"] == 1

    def test_total_items_matches_count(self, request_45):
        data = {
            "ingredients": {"used": [{"name": "rice", "quantity": 1, "unit": "cup"}]},
            "shoppingList": {"items": ["rice", "salt"], "totalItems": 10},
        }

        assert reconcile_recipe_data(data, request_45)["shoppingList"]["totalItems"] == 2

    def test_purchase_quantity_cross_filled(self, request_45):
        data = {
            "ingredients": {"used": [{"name": "rice", "quantity": 1, "unit": "cup"}]},
            "shoppingList": {"items": [{"name": "rice", "requiredQuantity": {"amount": "1/2", "unit": "cup"}, "purchaseUnit": "bag"}]},
        }

        item = reconcile_recipe_data(data, request_45)["shoppingList"]["items"][0]

        assert item["purchaseQuantity"] == 0.5

    def test_find_matching_ingredient_either_direction(self):
        used = [{"name": "basil"}, {"name": "tomato"}]

        assert find_matching_ingredient("Fresh Basil", used) == {"name": "basil"}
        assert find_matching_ingredient("tom", used) == {"name": "tomato"}
        assert find_matching_ingredient("garlic", used) is None


class TestInstructions:
    """Test instruction normalization."""

    def test_string_instructions_become_steps(self, request_45):
        result = reconcile_recipe_data({"recipeInstructions": ["Chop.", "Simmer."]}, request_45)

        assert result["recipeInstructions"] == [
            {"@type": "HowToStep", "text": "Chop.", "step": 1},
            {"@type": "HowToStep", "text": "Simmer.", "step": 2},
        ]

    def test_missing_type_added(self, request_45):
        result = reconcile_recipe_data({"recipeInstructions": [{"text": "Chop."}]}, request_45)
        assert result["recipeInstructions"][0]["@type"] == "HowToStep"


class TestReconcileProperties:
    """Test whole-pass properties."""

    def test_input_not_mutated(self, recipe_payload, sample_request):
        original = copy.deepcopy(recipe_payload)
        reconcile_recipe_data(recipe_payload, sample_request)
        assert recipe_payload == original

    def test_idempotent(self, recipe_payload, sample_request):
        once = reconcile_recipe_data(recipe_payload, sample_request)
        assert reconcile_recipe_data(once, sample_request) == once

    def test_idempotent_on_messy_input(self, request_45):
        data = {
            "recipeIngredient": ["1/2 cup rice", "salt"],
            "shoppingList": ["rice"],
            "recipeInstructions": ["Boil."],
            "diet": "vegan",
        }

        once = reconcile_recipe_data(data, request_45)
        assert reconcile_recipe_data(once, request_45) == once

    def test_empty_object_validates(self, request_45):
        """An empty model answer still reconciles into a schema-valid recipe."""
        recipe = Recipe.model_validate(reconcile_recipe_data({}, request_45))

        assert recipe.name == "Recipe"
        assert recipe.total_time == "PT45M"

    def test_diet_string_wrapped(self, request_45):
        assert reconcile_recipe_data({"diet": "vegan"}, request_45)["diet"] == ["vegan"]
