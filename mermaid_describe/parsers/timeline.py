"""
mermaid_describe/parsers/timeline.py

Parse Mermaid timeline source into a ``DiagramModel``.

    timeline
        title History of Social Media
        section Early days
            2002 : LinkedIn
            2004 : Facebook : Google
                 : Orkut

A ``time : event`` line opens a period; a line starting with ``:`` adds
another event to the previous period.  Periods outside any section are
kept on ``model.periods``.  ``accTitle`` / ``accDescr`` lines are not
events.
"""

from __future__ import annotations

import re
from typing import Optional

from mermaid_describe.debug_trace import trace, trace_call
from mermaid_describe.directives import directive_lines
from mermaid_describe.linearize import chronological_periods
from mermaid_describe.models import DiagramModel, Section, TimePeriod
from mermaid_describe.visual_tree import VisualTree, extract_timeline

_INIT_RE = re.compile(r"%%\{init:[\s\S]*?\}%%")
_EVENT_RE = re.compile(r"^([^:]+)?:(.*)$")


@trace_call("PARSE")
def parse_timeline(code: Optional[str], tree: VisualTree = None) -> DiagramModel:
    """Parse timeline source, falling back to the rendered tree when the
    source is empty.

    Args:
        code: Mermaid ``timeline`` source.
        tree: Optional rendered SVG root.

    Returns:
        Model with ``title``, ``sections`` and top-level ``periods``.
    """
    model = DiagramModel(diagram_type="timeline")

    if not code or not code.strip():
        title, sections, periods = extract_timeline(tree)
        model.title, model.sections, model.periods = title, sections, periods
        return model

    clean = _INIT_RE.sub("", code)
    skipped = directive_lines(clean)
    current: Optional[Section] = None
    for idx, raw in enumerate(clean.split("\n")):
        line = raw.strip()
        if not line or line.startswith("%%") or idx in skipped:
            continue
        lowered = line.lower()
        if lowered == "timeline":
            continue
        if lowered.startswith("title "):
            model.title = line[6:].strip()
            continue
        if lowered.startswith("section "):
            current = Section(name=line[8:].strip(), line=idx)
            model.sections.append(current)
            continue

        m = _EVENT_RE.match(line)
        if not m:
            continue
        time = (m.group(1) or "").strip()
        events = [e.strip() for e in m.group(2).split(":") if e.strip()]

        bucket = current.periods if current is not None else model.periods
        if time:
            bucket.append(TimePeriod(time=time, events=events, line=idx))
        elif bucket:
            bucket[-1].events.extend(events)
        elif current is not None and model.periods:
            model.periods[-1].events.extend(events)

    trace(f"timeline: {len(model.sections)} sections, {len(chronological_periods(model))} periods", "PARSE")
    return model
