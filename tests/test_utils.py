"""Tests for the text helpers in mermaid_describe/utils.py."""
from __future__ import annotations

import pytest

from mermaid_describe.utils import (
    capitalize,
    clean_node_text,
    escape,
    format_count_noun,
    format_list,
    format_numbers_in_text,
    format_step_number,
    pluralize,
    unique_sorted,
)


# ─────────────────────────────────────────────────────────
# Lists and counts
# ─────────────────────────────────────────────────────────


class TestFormatList:
    @pytest.mark.parametrize("items, expected", [
        ([], ""),
        (["a"], "a"),
        (["a", "b"], "a and b"),
        (["a", "b", "c"], "a, b, and c"),
    ])
    def test_joining(self, items, expected):
        assert format_list(items) == expected


class TestFormatStepNumber:
    def test_single_digits_are_words(self):
        assert format_step_number(1) == "one"
        assert format_step_number(9) == "nine"

    def test_ten_and_above_are_numerals(self):
        assert format_step_number(10) == "10"
        assert format_step_number(42) == "42"


class TestCounts:
    def test_pluralize_rules(self):
        assert pluralize("step") == "steps"
        assert pluralize("box") == "boxes"
        assert pluralize("entity") == "entities"
        assert pluralize("day") == "days"

    def test_format_count_noun(self):
        assert format_count_noun(1, "actor") == "1 actor"
        assert format_count_noun(2, "actor") == "2 actors"
        assert format_count_noun(0, "task") == "0 tasks"
        assert format_count_noun(None, "task") == "0 tasks"
        assert format_count_noun(1200, "entry") == "1,200 entries"

    def test_explicit_plural(self):
        assert format_count_noun(3, "person", "people") == "3 people"

    def test_unique_sorted(self):
        assert unique_sorted([3, 1, 3, 2]) == [1, 2, 3]


# ─────────────────────────────────────────────────────────
# Text cleanup
# ─────────────────────────────────────────────────────────


class TestTextCleanup:
    def test_escape(self):
        assert escape('<a & "b">') == "&lt;a &amp; &quot;b&quot;&gt;"
        assert escape(None) == ""

    def test_capitalize(self):
        assert capitalize("otherwise") == "Otherwise"
        assert capitalize("") == ""

    def test_clean_node_text_strips_emphasis(self):
        assert clean_node_text("**Bold** step") == "Bold step"

    def test_clean_node_text_strips_class_suffix(self):
        assert clean_node_text("Task:::highlight") == "Task"

    def test_clean_node_text_empty(self):
        assert clean_node_text("") == ""
        assert clean_node_text(None) == ""


class TestFormatNumbersInText:
    def test_single_digit_spelled_out(self):
        assert format_numbers_in_text("There are 3 steps") == "There are three steps"

    def test_step_prefix(self):
        assert format_numbers_in_text("Step 4 of the flow") == "Step four of the flow"

    def test_multi_digit_untouched(self):
        assert format_numbers_in_text("10 items") == "10 items"

    def test_decimal_preserved(self):
        assert format_numbers_in_text("Version 2.5 ships") == "Version 2.5 ships"

    def test_markup_untouched(self):
        assert format_numbers_in_text("<b>3</b>") == "<b>3</b>"

    def test_inside_parentheses(self):
        assert format_numbers_in_text("(1 actor and 2 systems)") == "(one actor and two systems)"
