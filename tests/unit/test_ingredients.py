"""Unit tests for free-text ingredient parsing."""

from unittest.mock import AsyncMock, Mock

import pytest

from src.models.errors import ParseFailure, PipelineCancelledError, TransportError
from src.services.ingredients import IngredientParser, parse_ingredient_response, split_ingredients


@pytest.fixture
def client():
    return Mock(chat=AsyncMock())


@pytest.fixture
def parser(client):
    return IngredientParser(client, model="test/parser-model", temperature=0.2)


class TestSplitIngredients:
    """Test the comma splitting rule."""

    def test_split_on_commas(self):
        assert split_ingredients("eggs, milk ,flour") == ["eggs", "milk", "flour"]

    def test_comma_before_digit_kept(self):
        assert split_ingredients("1,000 g sugar, salt") == ["1,000 g sugar", "salt"]

    def test_empty_segments_dropped(self):
        assert split_ingredients(" , eggs,, ") == ["eggs"]


class TestParseIngredientResponse:
    """Test decoding of the model's JSON array."""

    def test_plain_array(self):
        result = parse_ingredient_response('[{"name": "flour", "quantity": "2", "unit": "cups"}]')

        assert result[0].name == "flour"
        assert result[0].quantity == "2"
        assert result[0].unit == "cups"

    def test_fenced_array_with_prose(self):
        content = 'Here you go:\n```json\n[{"name": "salt", "quantity": null, "unit": null}]\n```'

        result = parse_ingredient_response(content)

        assert result[0].name == "salt"
        assert result[0].quantity is None
        assert result[0].unit is None

    def test_numeric_quantity_stringified(self):
        result = parse_ingredient_response('[{"name": "eggs", "quantity": 3, "unit": null}]')
        assert result[0].quantity == "3"

    @pytest.mark.parametrize("content", ["not json", '{"name": "x"}', "[]", '[{"quantity": "1"}]'])
    def test_invalid_responses(self, content):
        with pytest.raises(ParseFailure):
            parse_ingredient_response(content)


class TestIngredientParser:
    """Test IngredientParser.parse() paths."""

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self, parser, client):
        assert await parser.parse("   ") == []
        client.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_single_word_fast_path(self, parser, client):
        """A single bare word is returned without an inference call."""
        result = await parser.parse("eggs")

        assert len(result) == 1
        assert result[0].name == "eggs"
        assert result[0].quantity is None
        assert result[0].unit is None
        assert result[0].id
        client.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_model_parse(self, parser, client, make_completion):
        """Two quantified ingredients go through the model, one per line."""
        client.chat.return_value = make_completion(
            '[{"name":"flour","quantity":"2","unit":"cups"},{"name":"sugar","quantity":"1000","unit":"g"}]'
        )

        result = await parser.parse("2 cups flour, 1,000 g sugar")

        assert [(item.name, item.quantity, item.unit) for item in result] == [
            ("flour", "2", "cups"),
            ("sugar", "1000", "g"),
        ]
        assert len({item.id for item in result}) == 2

        args, kwargs = client.chat.call_args
        assert args[0] == "test/parser-model"
        assert args[1][1]["content"] == "2 cups flour\n1,000 g sugar"
        assert args[2] == 0.2

    @pytest.mark.asyncio
    async def test_single_phrase_uses_model(self, parser, client, make_completion):
        """A single ingredient containing whitespace bypasses the fast path."""
        client.chat.return_value = make_completion('[{"name":"flour","quantity":"2","unit":"cups"}]')

        result = await parser.parse("2 cups flour")

        assert [(item.name, item.quantity, item.unit) for item in result] == [("flour", "2", "cups")]
        client.chat.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transport_error_falls_back_to_bare_names(self, parser, client):
        client.chat.side_effect = TransportError("API request failed: /chat/completions", status=500)

        result = await parser.parse("2 cups flour, salt")

        assert [(item.name, item.quantity, item.unit) for item in result] == [
            ("2 cups flour", None, None),
            ("salt", None, None),
        ]

    @pytest.mark.asyncio
    async def test_garbage_response_falls_back(self, parser, client, make_completion):
        client.chat.return_value = make_completion("Sorry, I cannot parse that.")

        result = await parser.parse("2 cups flour, salt")

        assert [item.name for item in result] == ["2 cups flour", "salt"]

    @pytest.mark.asyncio
    async def test_empty_response_falls_back(self, parser, client, make_completion):
        client.chat.return_value = make_completion("")

        result = await parser.parse("fresh basil")

        assert [item.name for item in result] == ["fresh basil"]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, parser, client):
        client.chat.side_effect = PipelineCancelledError("Operation cancelled")

        with pytest.raises(PipelineCancelledError):
            await parser.parse("2 cups flour, salt")
