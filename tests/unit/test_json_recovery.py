"""Unit tests for the JSON recovery cascade."""

import json

import pytest

from src.models.errors import GenerationError, ParseFailure
from src.services.json_recovery import (
    MINIMAL_RECIPE,
    candidate_object,
    extract_balanced,
    parse_extracted,
    parse_onto_skeleton,
    parse_with_fractions,
    parse_with_repairs,
    quote_fractions,
    recover_json,
    repair_syntax,
    strip_code_fence,
)


class TestTextHelpers:
    """Test fence stripping and balanced extraction."""

    def test_strip_code_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_code_fence_without_fence(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'

    def test_extract_balanced_ignores_braces_in_strings(self):
        text = 'Sure! {"name": "Curly {brace} soup", "n": {"x": 1}} trailing }'
        assert extract_balanced(text) == '{"name": "Curly {brace} soup", "n": {"x": 1}}'

    def test_extract_balanced_unclosed(self):
        assert extract_balanced('{"a": 1') is None

    def test_candidate_object_strips_prose(self):
        assert candidate_object('Here you go:\n{"a": 1}\nEnjoy!') == '{"a": 1}'

    def test_quote_fractions_only_in_value_position(self):
        text = '{"quantity": 1/2, "note": "cut 1/2 inch"}'
        assert quote_fractions(text) == '{"quantity": "1/2", "note": "cut 1/2 inch"}'

    def test_repair_syntax(self):
        text = "{name: 'Soup', tags: ['hot', 'easy',], vegan: True, extra: None,}"
        assert json.loads(repair_syntax(text)) == {
            "name": "Soup",
            "tags": ["hot", "easy"],
            "vegan": True,
            "extra": None,
        }

    def test_repair_syntax_leaves_string_contents(self):
        text = '{"text": "Don\'t stir, True story"}'
        assert json.loads(repair_syntax(text)) == {"text": "Don't stir, True story"}


class TestStrategies:
    """Test each recovery strategy on its own."""

    def test_parse_extracted_well_formed(self):
        assert parse_extracted('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_parse_extracted_rejects_fraction(self):
        with pytest.raises(ParseFailure):
            parse_extracted('{"quantity": 1/2}')

    def test_parse_with_fractions(self):
        assert parse_with_fractions('{"quantity": 1/2}') == {"quantity": "1/2"}

    def test_parse_with_repairs(self):
        assert parse_with_repairs("{quantity: 1/2, unit: 'cup',}") == {"quantity": "1/2", "unit": "cup"}

    def test_parse_onto_skeleton_merges_minimal_recipe(self):
        result = parse_onto_skeleton('{"name": "Toast", "quantity": 3/4}')

        assert result["name"] == "Toast"
        assert result["quantity"] == 0.75
        assert result["recipeInstructions"] == []
        assert result["shoppingList"] == {"items": [], "totalItems": 0}

    def test_parse_onto_skeleton_does_not_share_skeleton(self):
        result = parse_onto_skeleton('{"name": "Toast"}')
        result["recipeIngredient"].append("bread")

        assert MINIMAL_RECIPE["recipeIngredient"] == []

    def test_non_object_rejected(self):
        with pytest.raises(ParseFailure):
            parse_extracted("[1, 2, 3]")


class TestRecoverJson:
    """Test the full cascade."""

    def test_well_formed_matches_json_loads(self, recipe_text):
        assert recover_json(recipe_text) == json.loads(recipe_text)

    def test_fenced_output_with_fraction(self):
        """A fenced body with a bare fraction recovers the quoted fraction."""
        text = '```json\n{"name":"X","ingredients":{"used":[{"name":"a","quantity":1/2,"unit":"cup"}]}}\n```'

        result = recover_json(text)

        assert result["ingredients"]["used"][0]["quantity"] == "1/2"

    def test_prose_wrapped_output(self, recipe_payload):
        text = f"Here is your recipe!\n\n{json.dumps(recipe_payload)}\n\nBon appetit."
        assert recover_json(text) == recipe_payload

    def test_total_failure_raises_generation_error(self):
        with pytest.raises(GenerationError, match="could not parse model output"):
            recover_json("I'm sorry, I can't help with that.")

    def test_custom_strategy_order(self):
        calls = []

        def failing(text):
            calls.append("failing")
            raise ParseFailure("nope")

        def succeeding(text):
            calls.append("succeeding")
            return {"ok": True}

        assert recover_json("anything", strategies=[failing, succeeding]) == {"ok": True}
        assert calls == ["failing", "succeeding"]
