"""Shared fixtures for the recipe pipeline tests."""

import json

import pytest

from src.clients.openrouter import ChatCompletion
from src.models.models import GenerationMode, GenerationRequest, Recipe
from src.services.events import AIEvent, EventBus
from src.services.reconcile import reconcile_recipe_data


@pytest.fixture
def make_completion():
    """Build a ChatCompletion whose first choice carries `content`."""

    def _make(content):
        return ChatCompletion.model_validate(
            {
                "model": "test/model",
                "choices": [{"message": {"role": "assistant", "content": content}}],
                "usage": {"prompt_tokens": 10, "completion_tokens": 20},
            }
        )

    return _make


@pytest.fixture
def sample_request():
    return GenerationRequest(
        ingredients=["chicken", "rice"],
        servings="4",
        cuisines=["Japanese"],
        max_time_minutes=30,
        hint="",
        mode=GenerationMode.SUGGEST,
    )


@pytest.fixture
def recipe_payload():
    """A well-formed model answer for chicken and rice."""
    return {
        "name": "Teriyaki Chicken Rice Bowl",
        "description": "Glossy chicken over fluffy rice.",
        "recipeIngredient": ["1 lb chicken", "2 cups rice"],
        "recipeInstructions": [
            {"@type": "HowToStep", "text": "Cook the rice.", "step": 1},
            {"@type": "HowToStep", "text": "Sear the chicken.", "step": 2},
        ],
        "ingredients": {
            "used": [
                {"name": "chicken", "quantity": 1, "unit": "lb"},
                {"name": "rice", "quantity": 2, "unit": "cups"},
            ],
            "missing": [],
            "suggested": [],
        },
        "shoppingList": {
            "items": [
                {
                    "name": "chicken",
                    "requiredQuantity": {"amount": 1, "unit": "lb"},
                    "purchaseQuantity": 1,
                    "purchaseUnit": "lb",
                }
            ],
            "totalItems": 1,
        },
        "recipeCuisine": "Japanese",
    }


@pytest.fixture
def recipe_text(recipe_payload):
    return json.dumps(recipe_payload)


@pytest.fixture
def sample_recipe(recipe_payload, sample_request):
    return Recipe.model_validate(reconcile_recipe_data(recipe_payload, sample_request))


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def recorded_events(events):
    """List of (event, payload) tuples for everything emitted on `events`."""
    received = []
    for event in AIEvent:
        events.subscribe(event, lambda payload, event=event: received.append((event, payload)))
    return received
