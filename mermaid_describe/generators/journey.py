"""
mermaid_describe/generators/journey.py

Descriptions for user journey diagrams.

Satisfaction levels are relative to the highest score in the diagram:
Very High at 80% and above, then High, Medium and Low in 20% steps,
Very Low below 20%.
"""

from __future__ import annotations

from collections import Counter
from typing import List, Tuple

from mermaid_describe.generators.common import ShortBuilder, create_section
from mermaid_describe.linearize import chronological_tasks
from mermaid_describe.models import DiagramModel, JourneyTask, KIND_ACTOR, Section
from mermaid_describe.parsers.journey import parse_journey
from mermaid_describe.settings import DescribeSettings
from mermaid_describe.utils import escape, format_count_noun, format_list
from mermaid_describe.visual_tree import VisualTree

DIAGRAM_TYPE = "journey"
_DEFAULT_TITLE = "User Journey"

SATISFACTION_LEVELS: List[Tuple[float, str]] = [
    (80, "Very High"),
    (60, "High"),
    (40, "Medium"),
    (20, "Low"),
]


def satisfaction_level(score: int, max_score: int) -> str:
    """Label for *score* as a share of *max_score*."""
    if max_score <= 0:
        return "Very Low"
    percent = score / max_score * 100
    for floor, label in SATISFACTION_LEVELS:
        if percent >= floor:
            return label
    return "Very Low"


def _task_count(model: DiagramModel) -> int:
    return sum(len(s.tasks) for s in model.sections)


def _actor_phrase(actors: List[str], limit: int) -> str:
    if len(actors) > limit:
        return f"{len(actors)} different actors"
    return format_list(actors)


# ─────────────────────────────────────────────────────────
# Short form
# ─────────────────────────────────────────────────────────


def _short(code: str, settings: DescribeSettings) -> Tuple[str, str]:
    model = parse_journey(code)
    tasks = _task_count(model)
    actors = model.names_of_kind(KIND_ACTOR)
    low, high = model.extras["min_score"], model.extras["max_score"]

    b = ShortBuilder("A user journey diagram titled \"")
    b.span("diagram-title", model.title or _DEFAULT_TITLE).text("\" showing ")
    b.span("journey-tasks", format_count_noun(tasks, "task"))
    b.text(" across ").span("journey-sections", format_count_noun(len(model.sections), "section"))
    if actors:
        b.text(" involving ").span("journey-actors", _actor_phrase(actors, settings.journey.max_listed_actors))
    if tasks:
        if low != high:
            b.text(" with satisfaction scores ranging from ").span("journey-score", str(low))
            b.text(" to ").span("journey-score", str(high))
        else:
            b.text(" with a satisfaction score of ").span("journey-score", str(low))
    b.text(".")
    return b.build()


def generate_short(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, settings)[0]


def generate_short_html(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code, settings)[1]


# ─────────────────────────────────────────────────────────
# Detailed form
# ─────────────────────────────────────────────────────────


def _overview(model: DiagramModel, settings: DescribeSettings) -> str:
    tasks = _task_count(model)
    low, high = model.extras["min_score"], model.extras["max_score"]
    text = (
        f'This user journey diagram titled "{escape(model.title or _DEFAULT_TITLE)}" shows the steps taken '
        f"to complete a process with {format_count_noun(tasks, 'task')} organised into "
        f"{format_count_noun(len(model.sections), 'section')}."
    )
    if tasks:
        if low != high:
            text += f" Tasks are rated on a satisfaction scale from {low} (lowest) to {high} (highest)."
        else:
            text += f" All tasks have a satisfaction rating of {high}."
    actors = model.names_of_kind(KIND_ACTOR)
    if actors:
        text += f" The journey involves {escape(_actor_phrase(actors, settings.journey.max_listed_actors))}."
    return f"<p>{text}</p>"


def _task_item(task: JourneyTask, max_score: int) -> str:
    level = satisfaction_level(task.score, max_score)
    details = [f"<li>Satisfaction: {task.score} ({level})</li>"]
    if task.actors:
        details.append(f"<li>Actors: {escape(', '.join(task.actors))}</li>")
    return f"<li><strong>{escape(task.name)}</strong><ul>{''.join(details)}</ul></li>"


def _details(model: DiagramModel) -> str:
    max_score = model.extras["max_score"]
    parts = []
    for index, section in enumerate(model.sections, start=1):
        parts.append(f"<h5>Section {index}: {escape(section.name)}</h5>")
        if section.tasks:
            parts.append("<ol>" + "".join(_task_item(t, max_score) for t in section.tasks) + "</ol>")
        else:
            parts.append("<p>This section has no tasks.</p>")
    return "".join(parts) or "<p>No sections are defined in this journey.</p>"


def _task_refs(pairs: List[Tuple[Section, JourneyTask]]) -> str:
    return "<ul>" + "".join(
        f'<li>"{escape(task.name)}" in {escape(section.name)}</li>' for section, task in pairs
    ) + "</ul>"


def _analysis(model: DiagramModel) -> str:
    pairs = chronological_tasks(model)
    if not pairs:
        return ""
    low, high = model.extras["min_score"], model.extras["max_score"]
    parts = []

    best = [(s, t) for s, t in pairs if t.score == high]
    parts.append(
        f"<h5>High Satisfaction</h5><p>{format_count_noun(len(best), 'task')} received the highest score ({high}):</p>"
        + _task_refs(best)
    )
    if low != high:
        worst = [(s, t) for s, t in pairs if t.score == low]
        parts.append(
            f"<h5>Areas for Improvement</h5><p>{format_count_noun(len(worst), 'task')} received the lowest score ({low}):</p>"
            + _task_refs(worst)
        )

    frequency = Counter(actor for _, task in pairs for actor in task.actors)
    if frequency:
        actor, count = frequency.most_common(1)[0]
        if count > 1:
            share = round(count / len(pairs) * 100)
            parts.append(
                f'<h5>Key Participant</h5><p>"{escape(actor)}" is involved in '
                f"{format_count_noun(count, 'task')} ({share}% of the journey).</p>"
            )

    busiest = max(model.sections, key=lambda s: len(s.tasks))
    parts.append(
        f'<h5>Most Complex Stage</h5><p>The "{escape(busiest.name)}" section has the most steps '
        f"with {format_count_noun(len(busiest.tasks), 'task')}.</p>"
    )
    return "".join(parts)


_VISUAL_NOTE = (
    "<p>In the diagram, each task is represented as a step within its section. "
    "Tasks are colour-coded according to their satisfaction score, with higher scores "
    "typically shown in deeper/brighter colours. The actors involved in each task are "
    "listed alongside the task name.</p>"
)


def generate_detailed(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    model = parse_journey(code)
    sections = [
        create_section("overview", DIAGRAM_TYPE, "Journey Overview", _overview(model, settings)),
        create_section("details", DIAGRAM_TYPE, "Journey Details", _details(model)),
    ]
    analysis = _analysis(model)
    if analysis:
        sections.append(create_section("analysis", DIAGRAM_TYPE, "Journey Analysis", analysis))
    sections.append(create_section("visual", DIAGRAM_TYPE, "Visual Representation", _VISUAL_NOTE))
    return "".join(sections)
