"""
mermaid_describe/generators/flowchart.py

Descriptions for flowcharts and for flowcharts with subgraphs.

The detailed form narrates every node once, in the order produced by
``linearize_flowchart``, as an ordered list of steps.  Decision nodes
list where each answer leads; other nodes name the step(s) that follow.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from mermaid_describe.detection import (
    count_subgraphs,
    is_decision_diagram,
    orientation_phrase,
    subgraph_titles,
)
from mermaid_describe.generators.common import ShortBuilder, create_section, legend_list
from mermaid_describe.linearize import FlowOrder, linearize_flowchart
from mermaid_describe.models import DiagramModel, Entity, Relation
from mermaid_describe.parsers.flowchart import (
    count_source_nodes,
    find_potential_targets,
    has_connections_in_code,
    parse_flowchart,
)
from mermaid_describe.settings import DescribeSettings
from mermaid_describe.utils import (
    escape,
    format_count_noun,
    format_list,
    format_step_number,
    unique_sorted,
)
from mermaid_describe.visual_tree import VisualTree, count_nodes, extract_title

log = logging.getLogger(__name__)

DIAGRAM_TYPE = "flowchart"


def _node_count(code: str, tree: VisualTree) -> int:
    """Rendered ``.node`` count when available, else shapes in the source."""
    rendered = count_nodes(tree)
    if rendered:
        return rendered
    return count_source_nodes(code)


def _title(model: DiagramModel, tree: VisualTree) -> Optional[str]:
    return extract_title(tree) or model.title or None


def _complexity(count: int, settings: DescribeSettings) -> str:
    if count > settings.flowchart.complex_threshold:
        return "complex "
    if count > settings.flowchart.moderate_threshold:
        return "moderate "
    return ""


# ─────────────────────────────────────────────────────────
# Short form
# ─────────────────────────────────────────────────────────


def _short(code: str, tree: VisualTree, settings: DescribeSettings) -> Tuple[str, str]:
    model = parse_flowchart(code)
    count = _node_count(code, tree)
    kind = "decision flowchart" if is_decision_diagram(code) else "flowchart"

    b = ShortBuilder(f"A {_complexity(count, settings)}{kind}")
    direction = orientation_phrase(model.orientation)
    if direction:
        b.text(f" flowing {direction}")
    title = _title(model, tree)
    if title:
        b.text(" showing ").span("diagram-title", title)
    if count:
        b.text(" with ").span("diagram-count", str(count)).text(" steps")
    b.text(".")
    return b.build()


def generate_short(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, tree, settings)[0]


def generate_short_html(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, tree, settings)[1]


# ─────────────────────────────────────────────────────────
# Detailed form
# ─────────────────────────────────────────────────────────


def _decision_sort_key(relation: Relation) -> Tuple[int, str]:
    if relation.label == "Yes":
        return 0, ""
    if relation.label == "No":
        return 1, ""
    return 2, relation.label


def _step_word(order: FlowOrder, node_id: str) -> Optional[str]:
    number = order.step_of.get(node_id)
    return format_step_number(number) if number is not None else None


def _decision_step(entity: Entity, order: FlowOrder) -> str:
    paths = []
    for rel in sorted(entity.outgoing, key=_decision_sort_key):
        word = _step_word(order, rel.target)
        if word is None:
            continue
        condition = escape(rel.label or "Otherwise")
        paths.append(f"<li>If {condition}, go to step {word}.</li>")
    text = f'<span class="diagram-decision">{escape(entity.display_name)}</span>'
    if not paths:
        return f"<li>{text}</li>"
    return f"<li>{text}<ul class='decision-paths'>{''.join(paths)}</ul></li>"


def _action_step(entity: Entity, order: FlowOrder) -> str:
    text = f'<span class="diagram-action">{escape(entity.display_name)}</span>'
    steps = unique_sorted(order.step_of[r.target] for r in entity.outgoing if r.target in order.step_of)
    if not steps:
        return f"<li>{text}</li>"
    if len(steps) == 1:
        return f"<li>{text}. Proceed to step {format_step_number(steps[0])}.</li>"
    words = [format_step_number(s) for s in steps]
    return f"<li>{text}. Proceed to steps {format_list(words)}.</li>"


def _unmapped_step(entity: Entity, order: FlowOrder, code: str) -> Tuple[str, bool]:
    """Step for a node without recorded edges.

    Returns:
        ``(html, is_terminal)``.
    """
    if has_connections_in_code(code, entity.id):
        for target in find_potential_targets(code, entity.id):
            word = _step_word(order, target)
            if word is not None:
                text = f'<span class="diagram-action">{escape(entity.display_name)}</span>'
                return f"<li>{text} then to step {word}</li>", False
        log.debug("Node %s has arrows in the source but no resolvable target", entity.id)
    return f'<li class="terminal-node"><span class="diagram-node">{escape(entity.display_name)}</span></li>', True


def _has_loop_back(model: DiagramModel, order: FlowOrder) -> bool:
    for rel in model.relations:
        source, target = order.step_of.get(rel.source), order.step_of.get(rel.target)
        if source is not None and target is not None and target <= source:
            return True
    return False


def generate_detailed(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    """Overview, numbered Process Flow and a legend for the features used."""
    model = parse_flowchart(code)
    order = linearize_flowchart(model, settings.traversal.iteration_cap)

    items: List[str] = []
    decisions = terminals = 0
    for node_id in order.order:
        entity = model.entities[node_id]
        if entity.is_decision and entity.outgoing:
            decisions += 1
            items.append(_decision_step(entity, order))
        elif entity.outgoing:
            items.append(_action_step(entity, order))
        else:
            html, terminal = _unmapped_step(entity, order, code)
            terminals += terminal
            items.append(html)

    overview = f"This flowchart contains {format_count_noun(len(order.order), 'step')}"
    direction = orientation_phrase(model.orientation)
    if direction:
        overview += f" and flows {direction}"
    overview += "."
    title = _title(model, tree)
    if title:
        overview += f" It shows {escape(title)}."
    if decisions:
        overview += f" It includes {format_count_noun(decisions, 'decision point')}."
    if order.truncated:
        overview += " Some paths could not be followed and are listed at the end."

    sections = [create_section("overview", DIAGRAM_TYPE, "Overview", f"<p>{overview}</p>")]
    if items:
        flow = "<ol class='flowchart-steps'>" + "".join(items) + "</ol>"
    else:
        flow = "<p>No steps could be identified in this flowchart.</p>"
    sections.append(create_section("flow", DIAGRAM_TYPE, "Process Flow", flow))

    legend = legend_list([
        (bool(items), "Steps are numbered in the order they are reached from the start of the flowchart."),
        (decisions > 0, '<span class="diagram-decision">Decision points</span> list the step each answer leads to.'),
        (terminals > 0, "Steps with no onward connection mark an end of the process."),
        (_has_loop_back(model, order), "Some paths return to an earlier step, so part of the process can repeat."),
    ])
    if legend:
        sections.append(create_section("explanation", DIAGRAM_TYPE, "Explanation", legend))
    return "".join(sections)


# ─────────────────────────────────────────────────────────
# Flowcharts with subgraphs
# ─────────────────────────────────────────────────────────


def _complex_title(code: str, tree: VisualTree) -> str:
    return extract_title(tree) or parse_flowchart(code).title or "flowchart"


def generate_complex_short(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _complex_short(code, tree)[0]


def generate_complex_short_html(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _complex_short(code, tree)[1]


def _complex_short(code: str, tree: VisualTree) -> Tuple[str, str]:
    b = ShortBuilder("A complex flowchart titled \"")
    b.span("diagram-title", _complex_title(code, tree))
    b.text("\" containing ").span("diagram-count", str(count_subgraphs(code))).text(" subgraphs. ")
    b.text("This diagram includes nested process groups, making it too complex to automatically describe in detail.")
    return b.build()


def generate_complex_detailed(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    title = escape(_complex_title(code, tree))
    count = count_subgraphs(code)
    parts = [
        '<div class="flowchart-complex-description">',
        f'<p>This is a complex flowchart titled "{title}" containing {count} process groups or subgraphs.</p>',
        "<p>Due to the complexity of this diagram, an automated description cannot fully capture its structure. "
        "Consider one of the following:</p>",
        "<ul>",
        '<li>Adding an "accDescr" directive to the Mermaid code with a custom description</li>',
        "<li>Splitting the diagram into smaller, simpler diagrams</li>",
        "<li>Providing a text alternative alongside the diagram</li>",
        "</ul>",
    ]
    titles = subgraph_titles(code)
    if titles:
        parts.append("<p>The diagram contains the following process groups:</p><ul>")
        parts.extend(f"<li>{escape(t)}</li>" for t in titles)
        parts.append("</ul>")
    parts.append("</div>")
    return "".join(parts)
