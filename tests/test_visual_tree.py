"""
tests/test_visual_tree.py

Queries over the rendered SVG tree.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from mermaid_describe.visual_tree import (
    count_nodes,
    detect_role,
    extract_actor_names,
    extract_timeline,
    extract_title,
    find_by_class,
    load_visual_tree,
    text_of,
)


def _svg(body: str, **attrs) -> ET.Element:
    extra = "".join(f' {k.replace("_", "-")}="{v}"' for k, v in attrs.items())
    return load_visual_tree(f'<svg xmlns="http://www.w3.org/2000/svg"{extra}>{body}</svg>')


class TestLoading:
    @pytest.mark.parametrize("value", [None, "", "   ", "<svg><g></svg>"])
    def test_empty_or_invalid_is_none(self, value):
        assert load_visual_tree(value) is None

    def test_bytes_and_elements(self):
        root = load_visual_tree(b"<svg><g class='node'/></svg>")
        assert count_nodes(root) == 1
        assert load_visual_tree(root) is root

    def test_queries_accept_none(self):
        assert count_nodes(None) == 0
        assert extract_title(None) is None
        assert extract_actor_names(None) == []
        assert detect_role(None) is None
        assert extract_timeline(None) == ("", [], [])


class TestDetectRole:
    def test_aria_role(self):
        assert detect_role(_svg("", aria_roledescription="flowchart-v2")) == "flowchart"
        assert detect_role(_svg("", aria_roledescription="sequence")) == "sequenceDiagram"

    def test_class_heuristic(self):
        assert detect_role(_svg('<g class="journey-section"/>')) == "userJourney"

    def test_unknown(self):
        assert detect_role(_svg('<g class="mystery"/>')) is None


class TestQueries:
    def test_find_by_class_matches_tokens(self):
        root = _svg('<g class="node default"/><g class="nodes"/><rect class="node"/>')
        assert len(find_by_class(root, "node")) == 2
        assert len(find_by_class(root, "node", tag="g")) == 1

    def test_text_of_normalises_whitespace(self):
        root = _svg("<text>  Hello <tspan>World</tspan> </text>")
        assert text_of(root) == "Hello World"
        assert text_of(None) == ""

    def test_title_element(self):
        assert extract_title(_svg("<title>Approval</title><text y='1'>Other</text>")) == "Approval"

    def test_topmost_text(self):
        assert extract_title(_svg("<text y='50'>Lower</text><text y='10'>Upper</text>")) == "Upper"

    def test_actor_names_limited(self):
        body = "".join(f'<text class="actor">P{i}</text>' for i in range(7))
        body += '<text class="actor">P0</text>'
        assert extract_actor_names(_svg(body)) == ["P0", "P1", "P2", "P3", "P4", "and others"]

    def test_timeline_without_sections(self):
        root = _svg(
            '<g class="timeline-time-period"><text class="time-period-label">1999</text>'
            '<text class="timeline-event">Party</text></g>'
            '<g class="timeline-time-period"><text class="timeline-event">Mystery</text></g>'
        )
        title, sections, periods = extract_timeline(root)
        assert (title, sections) == ("", [])
        assert [(p.time, p.events) for p in periods] == [("1999", ["Party"]), ("Unknown Period", ["Mystery"])]
