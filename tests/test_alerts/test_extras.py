"""Tests for src/alerts/extras.py — well-known extras to annotations."""

from __future__ import annotations

from src.alerts.extras import (
    ANNOTATION_BIG_IMAGE_URL,
    ANNOTATION_CLICK_URL,
    ANNOTATION_CONTENT_TYPE,
    ANNOTATION_ON_RECEIVE_INTENT_URL,
    extras_annotations,
    string_at_path,
)


def _full_extras() -> dict[str, object]:
    return {
        "client::display": {"contentType": "text/markdown"},
        "client::notification": {
            "click": {"url": "https://example.com/run/1"},
            "bigImageUrl": "https://example.com/img.png",
        },
        "android::action": {"onReceive": {"intentUrl": "app://open"}},
        "vendor::other": {"ignored": True},
    }


class TestStringAtPath:
    def test_nested_string(self) -> None:
        tree = {"a": {"b": {"c": " value "}}}
        assert string_at_path(tree, ("a", "b", "c")) == "value"

    def test_missing_node(self) -> None:
        assert string_at_path({"a": {}}, ("a", "b")) is None

    def test_intermediate_not_mapping(self) -> None:
        assert string_at_path({"a": "flat"}, ("a", "b")) is None

    def test_leaf_not_string(self) -> None:
        assert string_at_path({"a": {"b": 42}}, ("a", "b")) is None
        assert string_at_path({"a": {"b": {"c": "x"}}}, ("a", "b")) is None

    def test_blank_leaf(self) -> None:
        assert string_at_path({"a": "   "}, ("a",)) is None

    def test_empty_inputs(self) -> None:
        assert string_at_path(None, ("a",)) is None
        assert string_at_path({"a": "x"}, ()) is None


class TestExtrasAnnotations:
    def test_all_known_paths(self) -> None:
        assert extras_annotations(_full_extras()) == {
            ANNOTATION_CONTENT_TYPE: "text/markdown",
            ANNOTATION_CLICK_URL: "https://example.com/run/1",
            ANNOTATION_BIG_IMAGE_URL: "https://example.com/img.png",
            ANNOTATION_ON_RECEIVE_INTENT_URL: "app://open",
        }

    def test_partial(self) -> None:
        extras = {"client::notification": {"click": {"url": "https://x"}}}
        assert extras_annotations(extras) == {ANNOTATION_CLICK_URL: "https://x"}

    def test_wrong_types_skipped(self) -> None:
        extras = {
            "client::display": {"contentType": 7},
            "client::notification": "not a mapping",
        }
        assert extras_annotations(extras) == {}

    def test_none_and_empty(self) -> None:
        assert extras_annotations(None) == {}
        assert extras_annotations({}) == {}
