"""
tests/test_registry.py

Generator registry, template fallback and the describe_diagram entry point.
"""
from __future__ import annotations

import pytest

from mermaid_describe.registry import (
    DescriptionGenerator,
    GeneratorRegistry,
    build_default_registry,
    describe_diagram,
    fallback_detailed,
    fallback_short,
)
from mermaid_describe.settings import DescribeSettings
from mermaid_describe.visual_tree import load_visual_tree


def _fixed(text):
    return lambda code, tree, settings: text


def _boom(code, tree, settings):
    raise RuntimeError("generator bug")


@pytest.fixture
def settings():
    return DescribeSettings()


# ─────────────────────────────────────────────────────────
# Fallback
# ─────────────────────────────────────────────────────────


class TestFallback:
    def test_short_names_tag(self):
        assert fallback_short("gantt") == "Gantt diagram"

    def test_known_template(self):
        html = fallback_detailed("classDiagram")
        assert 'data-diagram-type="classDiagram"' in html
        assert "Class diagram showing relationships between classes." in html

    def test_placeholder_defaults(self):
        assert "Pie chart showing distribution of diagram." in fallback_detailed("pieChart")

    def test_placeholders_from_rendered_tree(self):
        tree = load_visual_tree(
            '<svg xmlns="http://www.w3.org/2000/svg">'
            '<text class="actor">Alice</text><text class="actor">Bob</text></svg>'
        )
        assert "interaction between Alice and Bob." in fallback_detailed("sequenceDiagram", tree)

    def test_unknown_tag(self):
        html = fallback_detailed("weird")
        assert html.startswith("<p>This is a weird diagram.</p>")
        assert "accDescr" in html

    def test_unregistered_type_uses_fallback(self, settings):
        description = describe_diagram("classDiagram\n    Animal <|-- Duck", settings=settings)
        assert description.short == "ClassDiagram diagram"
        assert description.short_html == "ClassDiagram diagram"
        assert "classDiagram" in description.detailed


# ─────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────


class TestRegistration:
    def test_register_and_describe(self, settings):
        registry = GeneratorRegistry()
        assert registry.register("custom", DescriptionGenerator(_fixed("short"), _fixed("<p>long</p>"), _fixed("<b>short</b>")))
        description = registry.describe("x", "custom", settings=settings)
        assert description.to_dict() == {"short": "short", "shortHTML": "<b>short</b>", "detailed": "<p>long</p>"}

    def test_reregistering_replaces(self, settings):
        registry = GeneratorRegistry()
        registry.register("custom", DescriptionGenerator(_fixed("first"), _fixed("")))
        registry.register("custom", DescriptionGenerator(_fixed("second"), _fixed("")))
        assert registry.describe("x", "custom", settings=settings).short == "second"
        assert registry.tags() == ["custom"]

    def test_rejects_non_callable(self):
        registry = GeneratorRegistry()
        assert not registry.register("custom", DescriptionGenerator(None, _fixed("")))
        assert not registry.register("custom", object())
        assert registry.get("custom") is None

    def test_missing_short_html_uses_escaped_short(self, settings):
        registry = GeneratorRegistry()
        registry.register("custom", DescriptionGenerator(_fixed("A & B"), _fixed("")))
        assert registry.describe("x", "custom", settings=settings).short_html == "A &amp; B"

    def test_failing_field_falls_back_alone(self, settings):
        registry = GeneratorRegistry()
        registry.register("custom", DescriptionGenerator(_boom, _fixed("<p>fine</p>")))
        description = registry.describe("x", "custom", settings=settings)
        assert description.short == "Custom diagram"
        assert description.detailed == "<p>fine</p>"

    def test_failing_detailed_uses_template(self, settings):
        registry = GeneratorRegistry()
        registry.register("timeline", DescriptionGenerator(_fixed("ok"), _boom))
        description = registry.describe("x", "timeline", settings=settings)
        assert description.short == "ok"
        assert "Timeline showing events in chronological order." in description.detailed

    def test_default_tags(self):
        assert build_default_registry().tags() == [
            "flowchart", "flowchartComplex", "sequenceDiagram", "timeline", "userJourney",
        ]


# ─────────────────────────────────────────────────────────
# describe_diagram
# ─────────────────────────────────────────────────────────


class TestDescribeDiagram:
    def test_detects_type_from_source(self, settings):
        description = describe_diagram("flowchart LR\n    A --> B", settings=settings)
        assert description.short == "A flowchart flowing left to right."

    def test_type_alias_resolved(self, settings):
        registry = GeneratorRegistry()
        registry.register("userJourney", DescriptionGenerator(_fixed("journey!"), _fixed("")))
        assert describe_diagram("anything", diagram_type="journey", registry=registry, settings=settings).short == "journey!"

    def test_unknown_explicit_type(self, settings):
        assert describe_diagram("x", diagram_type="fancy", settings=settings).short == "Fancy diagram"

    def test_empty_source_detects_from_tree(self, settings):
        svg = '<svg xmlns="http://www.w3.org/2000/svg" aria-roledescription="sequence"></svg>'
        assert describe_diagram("", svg=svg, settings=settings).short.startswith("A sequence diagram")

    def test_empty_source_without_tree(self, settings):
        assert describe_diagram("", settings=settings).short == "A flowchart."

    def test_directives_override_last(self, settings):
        code = "flowchart TD\n    accTitle: Build pipeline\n    accDescr: Three stages\n    A --> B"
        description = describe_diagram(code, settings=settings)
        assert description.short == "Build pipeline"
        assert description.short_html == "Build pipeline"
        assert description.detailed == "Three stages"

    def test_directive_overrides_fallback_too(self, settings):
        description = describe_diagram("gantt\n    accTitle: Plan", settings=settings)
        assert description.short == "Plan"
        assert 'data-diagram-type="gantt"' in description.detailed

    def test_repeatable(self, settings):
        code = "sequenceDiagram\n    A->>B: hi\n    B-->>A: hello"
        assert describe_diagram(code, settings=settings) == describe_diagram(code, settings=settings)

    def test_settings_default_to_user_settings(self):
        assert describe_diagram("flowchart TD\n    A --> B").short == "A flowchart flowing top to bottom."
