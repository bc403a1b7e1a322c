"""
mermaid_describe/registry.py

Generator registry and the ``describe_diagram`` entry point.

A ``GeneratorRegistry`` maps a diagram-type tag to a ``DescriptionGenerator``.
Registering a tag again replaces the earlier generator.  A tag with no
generator, or a generator that raises, never fails the request: the
affected fields fall back to a template sentence for the tag.

Usage:
    registry = build_default_registry()
    description = describe_diagram(code, registry=registry)
    print(description.short)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from mermaid_describe.detection import DEFAULT_DIAGRAM_TYPE, detect_diagram_type
from mermaid_describe.directives import apply_directives
from mermaid_describe.generators import flowchart, journey, sequence, timeline
from mermaid_describe.models import Description, resolve_diagram_type
from mermaid_describe.settings import DescribeSettings, current_settings
from mermaid_describe.utils import capitalize, escape, format_list
from mermaid_describe.visual_tree import (
    VisualTree,
    detect_role,
    extract_actor_names,
    extract_title,
    load_visual_tree,
)

log = logging.getLogger(__name__)

# (code, tree, settings) -> text
GenerateFn = Callable[[str, VisualTree, DescribeSettings], str]


@dataclass
class DescriptionGenerator:
    """The callables that describe one diagram type.

    Attributes:
        generate_short: Plain-text summary.
        generate_detailed: Sectioned HTML fragment.
        generate_short_html: Summary with inline spans.  When omitted the
            escaped plain summary is used.
    """
    generate_short: GenerateFn
    generate_detailed: GenerateFn
    generate_short_html: Optional[GenerateFn] = None


# ─────────────────────────────────────────────────────────
# Fallback templates
# ─────────────────────────────────────────────────────────

FALLBACK_TEMPLATES: Dict[str, str] = {
    "flowchart": "Flowchart showing {title}.",
    "sequenceDiagram": "Sequence diagram showing interaction between {actors}.",
    "classDiagram": "Class diagram showing relationships between classes.",
    "stateDiagram": "State diagram showing possible states and transitions.",
    "entityRelationshipDiagram": "Entity relationship diagram showing database structure.",
    "userJourney": "User journey showing steps a user takes to accomplish a task.",
    "gantt": "Gantt chart showing project timeline and tasks.",
    "pieChart": "Pie chart showing distribution of {title}.",
    "mindmap": "Mind map showing hierarchical relationships for {title}.",
    "timeline": "Timeline showing events in chronological order.",
    "gitGraph": "Git graph showing commit history and branching strategy.",
    "sankey": "Sankey diagram showing flow between nodes, with width representing quantity.",
    "quadrantChart": "Quadrant chart showing items plotted across two dimensions.",
}

_PLACEHOLDER_DEFAULT = "diagram"


def fallback_short(diagram_type: str) -> str:
    return f"{capitalize(diagram_type)} diagram"


def fallback_detailed(diagram_type: str, tree: VisualTree = None) -> str:
    """Template paragraph for *diagram_type*, naming the tag when unknown."""
    template = FALLBACK_TEMPLATES.get(diagram_type)
    if template is None:
        return (
            f"<p>This is a {escape(diagram_type)} diagram.</p>"
            '<p>For more specific details, please add an "accDescr" directive to your Mermaid code.</p>'
        )
    title = extract_title(tree) or _PLACEHOLDER_DEFAULT
    actors = format_list(extract_actor_names(tree)) or _PLACEHOLDER_DEFAULT
    text = escape(template.format(title=title, actors=actors))
    return f'<p class="mermaid-fallback" data-diagram-type="{escape(diagram_type)}">{text}</p>'


def fallback_description(diagram_type: str, tree: VisualTree = None) -> Description:
    short = fallback_short(diagram_type)
    return Description(short=short, short_html=escape(short), detailed=fallback_detailed(diagram_type, tree))


# ─────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────


class GeneratorRegistry:
    """Tag → ``DescriptionGenerator`` map with template fallback."""

    def __init__(self):
        self._generators: Dict[str, DescriptionGenerator] = {}

    def register(self, tag: str, generator: DescriptionGenerator) -> bool:
        """Register *generator* for *tag*, replacing any earlier one.

        Returns:
            False (and nothing registered) when the generator lacks
            callable ``generate_short`` / ``generate_detailed``.
        """
        short_fn = getattr(generator, "generate_short", None)
        detailed_fn = getattr(generator, "generate_detailed", None)
        if not tag or not callable(short_fn) or not callable(detailed_fn):
            log.error("Rejected generator for %r: generate_short and generate_detailed must be callable", tag)
            return False
        if tag in self._generators:
            log.debug("Replacing generator for %s", tag)
        self._generators[tag] = generator
        return True

    def get(self, tag: str) -> Optional[DescriptionGenerator]:
        return self._generators.get(tag)

    def tags(self) -> List[str]:
        return sorted(self._generators)

    def describe(
        self,
        code: Optional[str],
        diagram_type: str,
        tree: VisualTree = None,
        settings: Optional[DescribeSettings] = None,
    ) -> Description:
        """Run the generator for *diagram_type*.

        Each field is produced independently; a field whose generator
        raises is logged and replaced by the fallback text.
        """
        generator = self.get(diagram_type)
        if generator is None:
            log.debug("No generator registered for %s, using fallback", diagram_type)
            return fallback_description(diagram_type, tree)

        if settings is None:
            settings = current_settings()
        code = code or ""

        short = self._call(generator.generate_short, code, tree, settings, diagram_type, "short")
        if short is None:
            short = fallback_short(diagram_type)

        short_html = None
        html_fn = getattr(generator, "generate_short_html", None)
        if callable(html_fn):
            short_html = self._call(html_fn, code, tree, settings, diagram_type, "shortHTML")
        if short_html is None:
            short_html = escape(short)

        detailed = self._call(generator.generate_detailed, code, tree, settings, diagram_type, "detailed")
        if detailed is None:
            detailed = fallback_detailed(diagram_type, tree)

        return Description(short=short, short_html=short_html, detailed=detailed)

    @staticmethod
    def _call(fn: GenerateFn, code: str, tree: VisualTree, settings: DescribeSettings, tag: str, field_name: str) -> Optional[str]:
        try:
            return fn(code, tree, settings)
        except Exception:
            log.exception("%s generator failed for %s; using fallback", field_name, tag)
            return None


def build_default_registry() -> GeneratorRegistry:
    """Registry with the built-in flowchart, sequence, timeline and journey generators."""
    registry = GeneratorRegistry()
    registry.register("flowchart", DescriptionGenerator(
        generate_short=flowchart.generate_short,
        generate_detailed=flowchart.generate_detailed,
        generate_short_html=flowchart.generate_short_html,
    ))
    registry.register("flowchartComplex", DescriptionGenerator(
        generate_short=flowchart.generate_complex_short,
        generate_detailed=flowchart.generate_complex_detailed,
        generate_short_html=flowchart.generate_complex_short_html,
    ))
    registry.register("sequenceDiagram", DescriptionGenerator(
        generate_short=sequence.generate_short,
        generate_detailed=sequence.generate_detailed,
        generate_short_html=sequence.generate_short_html,
    ))
    registry.register("timeline", DescriptionGenerator(
        generate_short=timeline.generate_short,
        generate_detailed=timeline.generate_detailed,
        generate_short_html=timeline.generate_short_html,
    ))
    registry.register("userJourney", DescriptionGenerator(
        generate_short=journey.generate_short,
        generate_detailed=journey.generate_detailed,
        generate_short_html=journey.generate_short_html,
    ))
    return registry


# Built on first use by describe_diagram
_default_registry: Optional[GeneratorRegistry] = None


def default_registry() -> GeneratorRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = build_default_registry()
    return _default_registry


def describe_diagram(
    code: Optional[str],
    diagram_type: Optional[str] = None,
    svg=None,
    registry: Optional[GeneratorRegistry] = None,
    settings: Optional[DescribeSettings] = None,
) -> Description:
    """Describe a Mermaid diagram.

    Args:
        code: Diagram source text.
        diagram_type: Registry tag or an alias such as ``journey`` or
            ``flowchart-v2``.  Detected from the source when omitted, or
            from the rendered tree when the source is empty.
        svg: Optional rendered SVG markup or parsed element.
        registry: Generator registry; the built-in one when omitted.
        settings: Engine settings; the user's settings file when omitted.

    Returns:
        The description, with any ``accTitle`` / ``accDescr`` directive
        in the source substituted last.
    """
    tree = load_visual_tree(svg)
    if diagram_type is None:
        if (code or "").strip():
            diagram_type = detect_diagram_type(code)
        else:
            diagram_type = detect_role(tree) or DEFAULT_DIAGRAM_TYPE
    else:
        diagram_type = resolve_diagram_type(diagram_type, diagram_type)

    if registry is None:
        registry = default_registry()
    description = registry.describe(code, diagram_type, tree, settings)
    return apply_directives(description, code)
