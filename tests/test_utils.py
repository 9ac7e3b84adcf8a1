"""Tests for JSON extraction and keyword helpers."""

from __future__ import annotations

from lexground.utils.keywords import extract_keywords
from lexground.utils.tags import extract_json_object, extract_json_value


def test_extract_json_value_from_fenced_block() -> None:
    """It should read JSON inside a markdown fence."""

    raw = 'Here you go:\n```json\n[{"url": "https://kenyalaw.org"}]\n```'
    assert extract_json_value(raw) == [{"url": "https://kenyalaw.org"}]


def test_extract_json_value_from_surrounding_prose() -> None:
    """It should fall back to the outermost bracketed span."""

    assert extract_json_value('Sure! {"passages": []} Hope this helps.') == {"passages": []}
    assert extract_json_value("no json here") is None
    assert extract_json_value("") is None


def test_extract_json_object_ignores_arrays() -> None:
    """It should only return objects."""

    assert extract_json_object('{"a": 1}') == {"a": 1}
    assert extract_json_object("[1, 2]") is None


def test_extract_keywords_drops_stop_words_and_short_words() -> None:
    """It should keep meaningful words in order without duplicates."""

    assert extract_keywords("The doctrine of res judicata in the Doctrine of appeals") == [
        "doctrine",
        "judicata",
        "appeals",
    ]
    assert extract_keywords("hearsay exception!") == ["hearsay", "exception"]
    assert extract_keywords("a an the") == []
