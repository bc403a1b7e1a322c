"""
tests/test_directives.py

accTitle / accDescr extraction and substitution.
"""
from __future__ import annotations

from mermaid_describe.directives import Directives, apply_directives, directive_lines, parse_directives
from mermaid_describe.models import Description

GENERATED = Description(short="gen short", short_html="<span>gen</span>", detailed="<p>gen</p>")


class TestParseDirectives:
    def test_single_line_forms(self):
        d = parse_directives("flowchart TD\n    accTitle: My title\n    accDescr: My description\n")
        assert (d.title, d.description) == ("My title", "My description")
        assert d.present

    def test_block_description(self):
        d = parse_directives("flowchart TD\n    accDescr {\n        line one\n        line two\n    }\n")
        assert d.description.startswith("line one")
        assert d.description.endswith("line two")

    def test_single_line_wins_over_block(self):
        d = parse_directives("accDescr: inline\naccDescr {\nblock\n}")
        assert d.description == "inline"

    def test_empty_values_ignored(self):
        d = parse_directives("accTitle:   \nflowchart TD")
        assert d.title is None
        assert not d.present

    def test_no_source(self):
        assert parse_directives(None) == Directives()


class TestApplyDirectives:
    def test_title_replaces_short_forms(self):
        result = apply_directives(GENERATED, "accTitle: Fish & Chips")
        assert result.short == "Fish & Chips"
        assert result.short_html == "Fish &amp; Chips"
        assert result.detailed == "<p>gen</p>"

    def test_description_replaces_detailed_verbatim(self):
        result = apply_directives(GENERATED, "accDescr: <em>custom</em>")
        assert result.detailed == "<em>custom</em>"
        assert result.short == "gen short"

    def test_without_directives_unchanged(self):
        assert apply_directives(GENERATED, "flowchart TD\n    A --> B") is GENERATED


class TestDirectiveLines:
    def test_single_line_and_block_indexes(self):
        code = "timeline\n    accTitle: T\n    accDescr {\n        body\n    }\n    2002 : LinkedIn"
        assert directive_lines(code) == {1, 2, 3, 4}

    def test_inline_block_closes_on_same_line(self):
        assert directive_lines("journey\n    accDescr { short }\n    section A") == {1}

    def test_no_source(self):
        assert directive_lines(None) == set()
