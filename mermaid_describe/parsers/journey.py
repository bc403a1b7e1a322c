"""
mermaid_describe/parsers/journey.py

Parse Mermaid user journey source into a ``DiagramModel``.

Tasks (``name: score: actor, actor``) count only inside a ``section``.
Actors become ``actor`` entities in first-mention order; the score range
is stored in ``model.extras`` as ``min_score`` / ``max_score`` (0 when
there are no tasks).
"""

from __future__ import annotations

import re
from typing import Optional

from mermaid_describe.debug_trace import trace, trace_call
from mermaid_describe.directives import directive_lines
from mermaid_describe.models import DiagramModel, Entity, JourneyTask, KIND_ACTOR, Section

_TITLE_RE = re.compile(r"^title\s+(.+)$", re.IGNORECASE)
_SECTION_RE = re.compile(r"^section\s+(.+)$", re.IGNORECASE)
_TASK_RE = re.compile(r"^(.+?):\s*(\d+)\s*:\s*(.+)$")


@trace_call("PARSE")
def parse_journey(code: Optional[str]) -> DiagramModel:
    """Parse ``journey`` source into sections of scored tasks."""
    model = DiagramModel(diagram_type="userJourney")
    current: Optional[Section] = None
    scores = []
    skipped = directive_lines(code)

    for idx, raw in enumerate((code or "").split("\n")):
        line = raw.strip()
        if not line or line.startswith("%%") or idx in skipped:
            continue

        m = _TITLE_RE.match(line)
        if m:
            model.title = m.group(1).strip()
            continue

        m = _SECTION_RE.match(line)
        if m:
            current = Section(name=m.group(1).strip(), line=idx)
            model.sections.append(current)
            continue

        if current is None:
            continue
        m = _TASK_RE.match(line)
        if not m:
            continue

        actors = [a.strip() for a in m.group(3).split(",") if a.strip()]
        task = JourneyTask(name=m.group(1).strip(), score=int(m.group(2)), actors=actors, line=idx)
        current.tasks.append(task)
        scores.append(task.score)
        for actor in actors:
            if actor not in model.entities:
                model.entities[actor] = Entity(id=actor, kind=KIND_ACTOR)

    model.extras["min_score"] = min(scores) if scores else 0
    model.extras["max_score"] = max(scores) if scores else 0
    trace(f"journey: {len(model.sections)} sections, {len(scores)} tasks", "PARSE")
    return model
