"""
mermaid_describe/generators/timeline.py

Descriptions for timeline diagrams.
"""

from __future__ import annotations

from typing import List, Tuple

from mermaid_describe.generators.common import ShortBuilder
from mermaid_describe.linearize import chronological_periods
from mermaid_describe.models import DiagramModel, TimePeriod
from mermaid_describe.parsers.timeline import parse_timeline
from mermaid_describe.settings import DescribeSettings
from mermaid_describe.utils import escape, format_count_noun
from mermaid_describe.visual_tree import VisualTree

DIAGRAM_TYPE = "timeline"
_DEFAULT_TITLE = "Timeline"


def _event_count(model: DiagramModel) -> int:
    return sum(len(p.events) for p in chronological_periods(model))


def _span(model: DiagramModel) -> Tuple[str, str]:
    periods = chronological_periods(model)
    if not periods:
        return "", ""
    return periods[0].time, periods[-1].time


def _short(code: str, tree: VisualTree) -> Tuple[str, str]:
    model = parse_timeline(code, tree)
    start, end = _span(model)

    b = ShortBuilder("A timeline diagram")
    if model.title and model.title != _DEFAULT_TITLE:
        b.text(" titled \"").span("diagram-title", model.title).text("\"")
    if start and end:
        b.text(" spanning from ").span("timeline-start", start)
        b.text(" to ").span("timeline-end", end)
    if model.sections:
        b.text(" organised into ").span("timeline-sections", str(len(model.sections)))
        b.text(" sections" if len(model.sections) != 1 else " section")
    events = _event_count(model)
    b.text(" with ").span("timeline-events", str(events))
    b.text(" events." if events != 1 else " event.")
    return b.build()


def generate_short(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, tree)[0]


def generate_short_html(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, tree)[1]


def _section(kind: str, title: str, content: str) -> str:
    return (
        f'<section class="timeline-section timeline-{kind}">'
        f'<h4 class="timeline-section-heading">{title}</h4>'
        f"{content}</section>"
    )


def _period_items(periods: List[TimePeriod]) -> str:
    items = []
    for period in periods:
        events = "".join(f"<li>{escape(e)}</li>" for e in period.events)
        nested = f"<ul>{events}</ul>" if events else ""
        items.append(f'<li class="timeline-time-period"><strong>{escape(period.time)}</strong>{nested}</li>')
    return "<ul>" + "".join(items) + "</ul>"


def generate_detailed(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    """Overview, Structure, Content and Chronological Progression sections."""
    model = parse_timeline(code, tree)
    start, end = _span(model)
    total = _event_count(model)

    overview = "This is a timeline diagram"
    if model.title and model.title != _DEFAULT_TITLE:
        overview += f' titled "{escape(model.title)}"'
    if start and end:
        overview += f" spanning from {escape(start)} to {escape(end)}"
    overview += f" with {format_count_noun(total, 'total event')}."
    parts = [_section("overview", "Timeline Overview", f"<p>{overview}</p>")]

    if model.sections:
        items = "".join(
            f"<li>{escape(s.name)} (with {format_count_noun(sum(len(p.events) for p in s.periods), 'event')})</li>"
            for s in model.sections
        )
        structure = f"<p>The timeline is divided into the following sections:</p><ul>{items}</ul>"
    else:
        structure = "<p>The timeline is presented as a sequential list of events without sections.</p>"
    parts.append(_section("structure", "Timeline Structure", structure))

    content: List[str] = []
    if model.periods:
        content.append(_period_items(model.periods))
    for section in model.sections:
        content.append(f"<h5>{escape(section.name)}</h5>")
        content.append(_period_items(section.periods))
    if not content:
        content.append("<p>No events are listed in this timeline.</p>")
    parts.append(_section("content", "Timeline Content", "".join(content)))

    progression = (
        f"<p>The timeline progresses chronologically from {escape(start) or 'the beginning'} "
        f"to {escape(end) or 'the end'}, displaying how events develop over time.</p>"
    )
    parts.append(_section("progression", "Chronological Progression", progression))
    return "".join(parts)
