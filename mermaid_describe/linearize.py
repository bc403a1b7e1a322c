"""
mermaid_describe/linearize.py

Ordering of diagram content for narration.

- ``linearize_flowchart`` -- breadth-first walk from inferred start nodes
  with a fixed edge tie-break, an iteration cap, and unreached nodes
  appended at the end.
- ``build_sequence_timeline`` / ``linearize_sequence`` -- merge messages,
  lifecycle events, activations and notes by source line, collapsing each
  block into one composite step.
- ``chronological_periods`` / ``chronological_tasks`` -- source-order
  walks for timelines and user journeys.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from mermaid_describe.debug_trace import trace
from mermaid_describe.models import (
    Block,
    DiagramModel,
    JourneyTask,
    Relation,
    Section,
    TimePeriod,
)
from mermaid_describe.settings import DEFAULT_ITERATION_CAP

log = logging.getLogger(__name__)

# Conventional first node id in hand-written flowcharts
START_SENTINEL = "A"

_START_KEYWORDS = ("start", "begin", "appointment")


# ─────────────────────────────────────────────────────────
# Flowchart
# ─────────────────────────────────────────────────────────


@dataclass
class FlowOrder:
    """Result of the flowchart walk.

    Attributes:
        order: Entity ids in narration order, each exactly once.
        step_of: Entity id → 1-based step number.
        start_nodes: Start ids in the order they seeded the queue.
        iterations: Queue pops performed.
        truncated: True when the iteration cap stopped the walk.
    """
    order: List[str] = field(default_factory=list)
    step_of: Dict[str, int] = field(default_factory=dict)
    start_nodes: List[str] = field(default_factory=list)
    iterations: int = 0
    truncated: bool = False


def _start_sort_key(entity_id: str) -> Tuple[int, str]:
    if entity_id == START_SENTINEL:
        return 0, entity_id
    if entity_id.startswith(START_SENTINEL):
        return 1, entity_id
    return 2, entity_id


def find_start_nodes(model: DiagramModel) -> List[str]:
    """Ordered start ids for the walk.

    Entities with no incoming relation are candidates, with the sentinel
    id always included when present.  Without candidates, the first node
    whose text mentions starting, else the sentinel, else the smallest id.
    """
    if not model.entities:
        return []

    incoming: Set[str] = {rel.target for rel in model.relations}
    candidates = [eid for eid in model.entities if eid not in incoming]
    if START_SENTINEL in model.entities and START_SENTINEL not in candidates:
        candidates.append(START_SENTINEL)
    if candidates:
        return sorted(candidates, key=_start_sort_key)

    for eid, entity in model.entities.items():
        text = entity.display_name.lower()
        if any(word in text for word in _START_KEYWORDS):
            return [eid]
    if START_SENTINEL in model.entities:
        return [START_SENTINEL]
    return [min(model.entities)]


def edge_sort_key(relation: Relation) -> Tuple[int, str, str]:
    """Unlabelled, then ``No``, then ``Yes``, then other labels alphabetically."""
    label = relation.label
    if not label:
        rank = 0
    elif label == "No":
        rank = 1
    elif label == "Yes":
        rank = 2
    else:
        rank = 3
    return rank, label, relation.target


def linearize_flowchart(model: DiagramModel, iteration_cap: Optional[int] = None) -> FlowOrder:
    """Deterministic narration order for a flowchart.

    Args:
        model: Parsed flowchart.
        iteration_cap: Maximum queue pops; ``DEFAULT_ITERATION_CAP`` when
            omitted.  Hitting the cap truncates the walk, it never raises.

    Returns:
        A ``FlowOrder`` covering every entity exactly once.
    """
    cap = DEFAULT_ITERATION_CAP if iteration_cap is None else iteration_cap
    result = FlowOrder(start_nodes=find_start_nodes(model))

    visited: Set[str] = set()
    queue = deque(result.start_nodes)
    while queue and result.iterations < cap:
        result.iterations += 1
        node_id = queue.popleft()
        if node_id in visited:
            continue
        entity = model.entities.get(node_id)
        if entity is None:
            log.warning("Flowchart walk reached unknown node %s", node_id)
            continue

        visited.add(node_id)
        result.order.append(node_id)
        for rel in sorted(entity.outgoing, key=edge_sort_key):
            if rel.target not in visited:
                queue.append(rel.target)

    if queue and result.iterations >= cap:
        result.truncated = True
        log.debug("Flowchart walk stopped at iteration cap %d", cap)

    unreached = sorted(eid for eid in model.entities if eid not in visited)
    if unreached:
        trace(f"appending unreached nodes {unreached}", "ORDER")
    result.order.extend(unreached)

    result.step_of = {eid: i + 1 for i, eid in enumerate(result.order)}
    trace(f"flowchart order {result.order}", "ORDER")
    return result


# ─────────────────────────────────────────────────────────
# Sequence diagram
# ─────────────────────────────────────────────────────────

EVENT_MESSAGE = "message"
EVENT_CREATE = "create"
EVENT_DESTROY = "destroy"
EVENT_ACTIVATE = "activate"
EVENT_DEACTIVATE = "deactivate"
EVENT_NOTE = "note"
STEP_BLOCK = "block"


@dataclass
class TimelineEvent:
    """One dated item on the sequence timeline."""
    line: int
    kind: str
    item: Any


@dataclass
class TimelineStep:
    """One numbered narration step.

    ``block`` is set for composite steps; ``event`` otherwise.
    """
    number: int
    kind: str
    event: Optional[TimelineEvent] = None
    block: Optional[Block] = None


def build_sequence_timeline(
    model: DiagramModel,
    relations: Optional[Sequence[Relation]] = None,
    window: int = 3,
) -> List[TimelineEvent]:
    """Merge messages with lifecycle, activation and note events.

    Args:
        model: Parsed sequence diagram.
        relations: Messages of one flow; all messages when omitted.
        window: Lines outside the flow's message range within which
            non-message events still belong to the flow.

    Returns:
        Events stably sorted by source line (a message precedes the
        activation its arrow suffix produced on the same line).
    """
    if relations is None:
        relations = model.relations
    relations = list(relations)

    if relations:
        low = min(r.source_line for r in relations) - window
        high = max(r.source_line for r in relations) + window
    else:
        low, high = float("-inf"), float("inf")

    def _in_window(line: int) -> bool:
        return low <= line <= high

    events = [TimelineEvent(r.source_line, EVENT_MESSAGE, r) for r in relations]
    for lc in model.lifecycle:
        if _in_window(lc.line):
            events.append(TimelineEvent(lc.line, lc.event, lc))
    for act in model.activations:
        if _in_window(act.line):
            events.append(TimelineEvent(act.line, act.event, act))
    for note in model.notes:
        if _in_window(note.line):
            events.append(TimelineEvent(note.line, EVENT_NOTE, note))

    events.sort(key=lambda e: e.line)
    return events


def owning_block(model: DiagramModel, relation: Relation) -> Optional[Block]:
    """The outermost block around *relation*, if any.

    A message inside nested blocks belongs to the step of the block that
    encloses all of them.
    """
    return model.top_level_block(relation)


def linearize_sequence(
    model: DiagramModel,
    events: Sequence[TimelineEvent],
    rendered: Optional[Set[int]] = None,
) -> List[TimelineStep]:
    """Number the timeline, rendering each top-level block once as a composite step.

    The first message inside a top-level block yields a ``block`` step;
    every later message of that block, nested blocks included, is skipped.

    Args:
        model: Parsed sequence diagram.
        events: Output of ``build_sequence_timeline``.
        rendered: Ids of blocks already narrated.  Updated in place, so one
            set shared across logical flows narrates each block once.
    """
    steps: List[TimelineStep] = []
    if rendered is None:
        rendered = set()

    for event in events:
        if event.kind == EVENT_MESSAGE:
            block = owning_block(model, event.item)
            if block is not None:
                if block.block_id in rendered:
                    continue
                rendered.add(block.block_id)
                steps.append(TimelineStep(len(steps) + 1, STEP_BLOCK, block=block))
                continue
        steps.append(TimelineStep(len(steps) + 1, event.kind, event=event))

    trace(f"sequence timeline: {len(events)} events -> {len(steps)} steps", "ORDER")
    return steps


# ─────────────────────────────────────────────────────────
# Timeline and user journey
# ─────────────────────────────────────────────────────────


def chronological_periods(model: DiagramModel) -> List[TimePeriod]:
    """Every period in source order, sections flattened."""
    periods = list(model.periods)
    for section in model.sections:
        periods.extend(section.periods)
    periods.sort(key=lambda p: p.line)
    return periods


def chronological_tasks(model: DiagramModel) -> List[Tuple[Section, JourneyTask]]:
    """``(section, task)`` pairs in source order."""
    pairs = [(section, task) for section in model.sections for task in section.tasks]
    pairs.sort(key=lambda pair: pair[1].line)
    return pairs
