from __future__ import annotations

import pytest

from kitchen_ai.services.errors import ResponseParseError
from kitchen_ai.services.parsing import extract_json, extract_json_text, is_no_recipe


class TestExtractJsonText:
    def test_json_fence(self) -> None:
        text = 'Sure! Here it is:\n```json\n{"title": "Soup"}\n```\nEnjoy.'
        assert extract_json_text(text) == '{"title": "Soup"}'

    def test_plain_fence(self) -> None:
        assert extract_json_text("```\n[1, 2]\n```") == "[1, 2]"

    def test_bare_json(self) -> None:
        assert extract_json_text('  {"title": "Soup"}\n') == '{"title": "Soup"}'


class TestExtractJson:
    def test_fenced_and_bare_agree(self) -> None:
        assert extract_json('```json\n{"a": 1}\n```') == extract_json('{"a": 1}') == {"a": 1}

    def test_invalid_json_raises_with_raw_text(self) -> None:
        with pytest.raises(ResponseParseError) as exc_info:
            extract_json("I could not find a recipe, sorry!")

        assert exc_info.value.raw_text == "I could not find a recipe, sorry!"


class TestIsNoRecipe:
    def test_error_payload(self) -> None:
        assert is_no_recipe({"error": "No food visible", "confidence": 0}) is True

    def test_recipe_payload(self) -> None:
        assert is_no_recipe({"title": "Soup"}) is False

    def test_empty_error_is_not_a_refusal(self) -> None:
        assert is_no_recipe({"error": "", "title": "Soup"}) is False

    def test_non_dict(self) -> None:
        assert is_no_recipe(["error"]) is False
