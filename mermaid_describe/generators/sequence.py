"""
mermaid_describe/generators/sequence.py

Descriptions for sequence diagrams.

The detailed form is built from four sections:

- Diagram Overview: title, who takes part, feature summary, notes
- Actors / Participants / Groups
- Process Flows: each logical flow narrated as numbered steps, with every
  top-level block rendered once as a composite step that carries its
  nested blocks
- Understanding the Diagram: key paths, a notation legend limited to the
  features present, developer comments and reading guidance
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set, Tuple

from mermaid_describe.debug_trace import trace
from mermaid_describe.generators.common import ShortBuilder, create_section, legend_list
from mermaid_describe.heuristics import (
    LogicalFlow,
    determine_branch_outcome,
    extract_logical_flows,
    format_message_type,
    infer_title_from_content,
    organise_comments,
)
from mermaid_describe.linearize import (
    EVENT_ACTIVATE,
    EVENT_CREATE,
    EVENT_DEACTIVATE,
    EVENT_DESTROY,
    EVENT_MESSAGE,
    EVENT_NOTE,
    STEP_BLOCK,
    TimelineStep,
    build_sequence_timeline,
    linearize_sequence,
)
from mermaid_describe.models import (
    BLOCK_CONDITIONAL,
    BLOCK_CRITICAL,
    BLOCK_EARLY_EXIT,
    BLOCK_LOOP,
    BLOCK_OPTIONAL,
    BLOCK_PARALLEL,
    Block,
    Comment,
    DiagramModel,
    KIND_ACTOR,
    KIND_PARTICIPANT,
    Note,
    Relation,
)
from mermaid_describe.parsers.blocks import PARALLEL_DEFAULT_LABEL
from mermaid_describe.parsers.sequence import parse_sequence
from mermaid_describe.settings import DescribeSettings
from mermaid_describe.utils import (
    capitalize,
    escape,
    format_count_noun,
    format_list,
    format_numbers_in_text,
)
from mermaid_describe.visual_tree import VisualTree

log = logging.getLogger(__name__)

DIAGRAM_TYPE = "sequence"


def _has_activations(model: DiagramModel) -> bool:
    return bool(model.activations)


def _entity_breakdown(model: DiagramModel) -> str:
    """``"3 entities (1 actor and 2 systems)"``, or the single-kind count."""
    actors = len(model.names_of_kind(KIND_ACTOR))
    systems = len(model.names_of_kind(KIND_PARTICIPANT))
    if actors and systems:
        return (
            f"{format_count_noun(actors + systems, 'entity', 'entities')} "
            f"({format_count_noun(actors, 'actor')} and {format_count_noun(systems, 'system')})"
        )
    if actors:
        return format_count_noun(actors, "actor")
    if systems:
        return format_count_noun(systems, "participant")
    return "its participants"


# ─────────────────────────────────────────────────────────
# Short form
# ─────────────────────────────────────────────────────────


def short_features(model: DiagramModel) -> List[str]:
    """Feature phrases for the short form, in a fixed order."""
    checks = [
        (model.has_block(BLOCK_LOOP), "loops"),
        (model.has_block(BLOCK_CONDITIONAL), "conditional branches"),
        (model.has_block(BLOCK_OPTIONAL), "optional paths"),
        (bool(model.notes), "explanatory notes"),
        (_has_activations(model), "component activations"),
        (model.has_block(BLOCK_PARALLEL), "parallel actions"),
        (model.has_block(BLOCK_CRITICAL), "critical actions"),
        (model.has_block(BLOCK_EARLY_EXIT), "break conditions"),
        (any(r.style.is_bidirectional for r in model.relations), "bidirectional messaging"),
        (any(lc.event == EVENT_CREATE for lc in model.lifecycle), "participant creation"),
        (any(lc.event == EVENT_DESTROY for lc in model.lifecycle), "participant destruction"),
    ]
    return [phrase for present, phrase in checks if present]


def _short(code: str) -> Tuple[str, str]:
    model = parse_sequence(code)
    b = ShortBuilder("A sequence diagram showing a ", transform=format_numbers_in_text)
    if model.title:
        b.span("diagram-title", model.title, verbatim=True)
    else:
        b.text("message exchange")
    b.text(" process illustrating the interaction between ")
    b.span("diagram-count", _entity_breakdown(model))
    if model.groups:
        b.text(" in ").span("diagram-groups", format_count_noun(len(model.groups), "group"))
    b.text(". The diagram contains ").span("diagram-messages", format_count_noun(len(model.relations), "message"))
    features = short_features(model)
    if features:
        b.text(" with ").span("diagram-features", format_list(features))
    b.text(".")
    return b.build()


def generate_short(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code)[0]


def generate_short_html(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    return _short(code)[1]


# ─────────────────────────────────────────────────────────
# Overview and participants
# ─────────────────────────────────────────────────────────


def _note_suffix(model: DiagramModel, note: Note) -> str:
    names = [escape(model.display_name(p)) for p in note.participants]
    if note.is_spanning:
        return f" (spanning {names[0]} and {names[1]})"
    if not names:
        return ""
    if note.position == "right":
        return f" (right of {names[0]})"
    if note.position == "left":
        return f" (left of {names[0]})"
    return f" (over {names[0]})"


def _overview(model: DiagramModel) -> str:
    title = infer_title_from_content(model)
    parts = [
        f"<p>This sequence diagram, <strong>{escape(title)}</strong>, illustrates the interaction "
        f"between {escape(_entity_breakdown(model))}.</p>"
    ]

    features = []
    if model.has_block(BLOCK_LOOP):
        features.append("repeated message loops")
    if model.has_block(BLOCK_CONDITIONAL):
        features.append("conditional paths")
    if model.has_block(BLOCK_OPTIONAL):
        features.append("optional sequences")
    if model.notes:
        features.append("explanatory notes")
    if _has_activations(model):
        features.append("component activations")
    if model.has_block(BLOCK_PARALLEL):
        features.append("parallel actions")
    if model.has_block(BLOCK_CRITICAL):
        features.append("critical actions")
    if model.comments:
        features.append("developer comments")

    summary = f"The diagram contains {format_count_noun(len(model.relations), 'message')}"
    if features:
        summary += f" and includes {format_list(features)}"
    parts.append(f"<p>{summary}.</p>")

    if model.notes:
        items = "".join(
            f'<li>"{escape(note.content)}"{_note_suffix(model, note)}</li>' for note in model.notes
        )
        parts.append(f"<p>Notes in the diagram:</p><ul class='sequence-notes'>{items}</ul>")
    return "".join(parts)


def _entity_list(model: DiagramModel, kind: str) -> str:
    items = []
    for entity in model.entities_of_kind(kind):
        text = escape(entity.display_name)
        if entity.group:
            text += f" (in group {escape(entity.group)})"
        items.append(f"<li>{text}</li>")
    return "<ul>" + "".join(items) + "</ul>"


def _group_list(model: DiagramModel) -> str:
    items = []
    for group in model.groups:
        names = [model.display_name(m) for m in group.members]
        text = f"<strong>{escape(group.name)}</strong> contains {format_count_noun(len(names), 'participant')}"
        if names:
            text += f": {escape(format_list(names))}"
        items.append(f"<li>{text}</li>")
    return "<ul>" + "".join(items) + "</ul>"


# ─────────────────────────────────────────────────────────
# Process flows
# ─────────────────────────────────────────────────────────


def _message_text(model: DiagramModel, rel: Relation) -> str:
    text = (
        f"{escape(model.display_name(rel.source))} {format_message_type(rel.style.arrow)} "
        f"{escape(model.display_name(rel.target))}"
    )
    if rel.label:
        text += f": {escape(rel.label)}"
    return text


def _inline_comments(comments: Sequence[Comment], rel: Relation) -> str:
    notes = [c for c in comments if c.is_inline and c.line == rel.source_line]
    return "".join(
        f'<div class="developer-comment">Developer comment: {escape(c.content)}</div>' for c in notes
    )


def _message_list(
    model: DiagramModel,
    relations: Sequence[Relation],
    settings: DescribeSettings,
    children: Sequence[Block] = (),
) -> str:
    """Messages and nested blocks of one block segment, in source order."""
    entries = [
        (rel.source_line, f"<li>{_message_text(model, rel)}{_inline_comments(model.comments, rel)}</li>")
        for rel in relations
    ]
    entries.extend((child.open_line, _nested_block(model, child, settings)) for child in children)
    if not entries:
        return ""
    entries.sort(key=lambda entry: entry[0])
    return "<ul class='block-messages'>" + "".join(html for _, html in entries) + "</ul>"


def _children_between(children: Sequence[Block], start: int, stop: float) -> List[Block]:
    return [child for child in children if start <= child.open_line < stop]


def _segment_children(block: Block, children: Sequence[Block]) -> Tuple[List[Block], List[List[Block]]]:
    """Split nested blocks between the base list and each branch by opening line."""
    if not block.branches:
        return list(children), []
    starts = [branch.open_line for branch in block.branches]
    base = [] if block.kind != BLOCK_CRITICAL else _children_between(children, block.open_line, starts[0])
    per_branch = [
        _children_between(children, start, starts[i + 1] if i + 1 < len(starts) else float("inf"))
        for i, start in enumerate(starts)
    ]
    return base, per_branch


def _outcome(relations: Sequence[Relation], settings: DescribeSettings) -> str:
    outcome = determine_branch_outcome(relations, settings.sequence.branch_outcome_window)
    return f'<p class="branch-outcome">{escape(outcome)}</p>' if outcome else ""


def _block_body(model: DiagramModel, block: Block, settings: DescribeSettings) -> Tuple[str, str, str]:
    """``(context, title, body)`` for a composite block step, nested blocks included."""
    label = block.label
    base_children, branch_children = _segment_children(block, model.child_blocks(block))

    if block.kind == BLOCK_EARLY_EXIT:
        context = f"Exit Condition: {escape(label or 'Break condition')}"
        body = (
            "<p>If this condition occurs, the following action will execute and the sequence "
            "will terminate immediately:</p>"
            + _message_list(model, block.relations, settings, base_children)
            + "<p>All subsequent messages in the diagram will not be executed if this condition occurs.</p>"
        )
        return context, "", body

    if block.kind == BLOCK_CONDITIONAL:
        condition = label or (block.branches[0].condition if block.branches else "")
        context = f"This step branches based on {escape(condition)}."
        items = []
        for branch, children in zip(block.branches, branch_children):
            heading = escape(capitalize(branch.condition) or "Otherwise")
            items.append(
                f"<li><strong>{heading}</strong>{_message_list(model, branch.relations, settings, children)}"
                f"{_outcome(branch.relations, settings)}</li>"
            )
        return context, "Conditional paths", f"<ul class='block-branches'>{''.join(items)}</ul>"

    if block.kind == BLOCK_OPTIONAL:
        context = f"This step only executes when {escape(label)}."
        body = _message_list(model, block.relations, settings, base_children)
        return context, f"Optional path: {escape(label)}", body

    if block.kind == BLOCK_LOOP:
        context = f"This step repeats for {escape(label)}." if label else "This step repeats multiple times."
        body = _message_list(model, block.relations, settings, base_children)
        return context, f"Loop: {escape(label or 'Repeated sequence')}", body

    if block.kind == BLOCK_CRITICAL:
        context = f"This is a critical action that must be performed: {escape(label)}."
        body = _message_list(model, block.relations, settings, base_children)
        if block.branches:
            options = "".join(
                f"<li><strong>Option: {escape(option.condition)}</strong>"
                f"{_message_list(model, option.relations, settings, children)}</li>"
                for option, children in zip(block.branches, branch_children)
            )
            body += f"<ul class='block-branches'>{options}</ul>"
        return context, f"Critical action: {escape(label)}", body

    # parallel
    title = "Parallel actions"
    if label and label != PARALLEL_DEFAULT_LABEL:
        title += f": {escape(label)}"
    lanes = []
    for index, (lane, children) in enumerate(zip(block.branches, branch_children), start=1):
        name = lane.condition if lane.condition and lane.condition != PARALLEL_DEFAULT_LABEL else f"Parallel path {index}"
        lanes.append(f"<li><strong>{escape(name)}</strong>{_message_list(model, lane.relations, settings, children)}</li>")
    body = f"<ul class='block-branches'>{''.join(lanes)}</ul>"
    return "This step contains actions that happen in parallel.", title, body


def _block_div(block: Block, title: str, body: str) -> str:
    heading = f'<p class="block-title">{title}</p>' if title else ""
    return f'<div class="sequence-block sequence-block-{block.kind}">{heading}{body}</div>'


def _nested_block(model: DiagramModel, block: Block, settings: DescribeSettings) -> str:
    context, title, body = _block_body(model, block, settings)
    return f'<li><span class="block-context">{context}</span>{_block_div(block, title, body)}</li>'


def _block_step(model: DiagramModel, step: TimelineStep, settings: DescribeSettings) -> str:
    block = step.block
    context, title, body = _block_body(model, block, settings)
    return (
        f"<li><strong>Step {step.number}:</strong> <span class=\"block-context\">{context}</span>"
        f"{_block_div(block, title, body)}</li>"
    )


def _kind_word(model: DiagramModel, entity_id: str) -> str:
    entity = model.entity(entity_id)
    return entity.kind if entity is not None else KIND_PARTICIPANT


def _note_text(model: DiagramModel, note: Note) -> str:
    names = [escape(model.display_name(p)) for p in note.participants]
    if note.is_spanning:
        where = f"spanning {names[0]} and {names[1]}"
    elif not names:
        where = "regarding the diagram"
    elif note.position == "left":
        where = f"to the left of {names[0]}"
    elif note.position == "right":
        where = f"to the right of {names[0]}"
    else:
        where = f"regarding {names[0]}"
    return f'Note {where}: "{escape(note.content)}"'


def _event_step(model: DiagramModel, step: TimelineStep) -> str:
    event = step.event
    prefix = f"<strong>Step {step.number}:</strong>"
    if event.kind == EVENT_MESSAGE:
        rel = event.item
        if rel.style.message_number is not None:
            prefix = f"<strong>Message {rel.style.message_number} (Step {step.number}):</strong>"
        return f"<li>{prefix} {_message_text(model, rel)}{_inline_comments(model.comments, rel)}</li>"
    if event.kind == EVENT_CREATE:
        lc = event.item
        return f"<li>{prefix} New {lc.kind} {escape(lc.display_name)} is created</li>"
    if event.kind == EVENT_DESTROY:
        lc = event.item
        return f"<li>{prefix} {capitalize(lc.kind)} {escape(lc.display_name)} is removed from the interaction</li>"
    if event.kind == EVENT_NOTE:
        return f"<li>{prefix} {_note_text(model, event.item)}</li>"
    if event.kind in (EVENT_ACTIVATE, EVENT_DEACTIVATE):
        act = event.item
        kind = capitalize(_kind_word(model, act.participant))
        verb = "activated" if event.kind == EVENT_ACTIVATE else "deactivated"
        return f"<li>{prefix} {kind} {escape(model.display_name(act.participant))} is {verb}</li>"
    log.debug("Skipping unknown timeline event %s", event.kind)
    return ""


def _standalone_comments(model: DiagramModel, relations: Sequence[Relation], window: int) -> List[Comment]:
    standalone = [c for c in model.comments if not c.is_inline]
    if not relations:
        return standalone
    low = min(r.source_line for r in relations) - window
    high = max(r.source_line for r in relations) + window
    return [c for c in standalone if low <= c.line <= high]


def _flow_html(model: DiagramModel, flow: LogicalFlow, settings: DescribeSettings, rendered: Set[int]) -> str:
    window = settings.sequence.flow_event_window
    events = build_sequence_timeline(model, flow.relations, window)
    steps = linearize_sequence(model, events, rendered)

    items = []
    for step in steps:
        if step.kind == STEP_BLOCK:
            items.append(_block_step(model, step, settings))
        else:
            items.append(_event_step(model, step))

    parts = [
        f'<h5 class="flow-heading">{escape(flow.name)}</h5>',
        f'<p class="flow-description">{escape(flow.description)}</p>',
        "<ol class='sequence-steps'>" + "".join(items) + "</ol>",
    ]
    extra = _standalone_comments(model, flow.relations, window)
    if extra:
        notes = "".join(f"<li>{escape(c.content)}</li>" for c in extra)
        parts.append(f"<p>Additional notes:</p><ul class='flow-comments'>{notes}</ul>")
    return "".join(parts)


def _process_flows(model: DiagramModel, flows: List[LogicalFlow], settings: DescribeSettings) -> str:
    if not flows:
        return '<h5 class="flow-heading">Message Sequence</h5><p>No detailed sequence information available.</p>'
    rendered: Set[int] = set()
    return "".join(_flow_html(model, flow, settings, rendered) for flow in flows)


# ─────────────────────────────────────────────────────────
# Understanding the diagram
# ─────────────────────────────────────────────────────────


def _alternative_paths(model: DiagramModel) -> Tuple[int, List[str]]:
    count = 0
    entries: List[str] = []
    for block in model.blocks:
        if block.kind == BLOCK_CONDITIONAL:
            count += len(block.branches)
            entries.extend(
                f"<li>{escape(capitalize(b.condition) or 'Otherwise')} - Leading to different paths based on the outcome</li>"
                for b in block.branches
            )
        elif block.kind == BLOCK_OPTIONAL:
            count += 1
            entries.append(f"<li>{escape(block.label)} - Only executed under specific conditions</li>")
        elif block.kind == BLOCK_CRITICAL:
            count += 1 + len(block.branches)
            entries.append(
                f"<li>{escape(block.label)} - A critical action that must be performed "
                f"with handling for possible circumstances</li>"
            )
            entries.extend(
                f"<li>{escape(option.condition)} - An alternative flow for the critical action</li>"
                for option in block.branches
            )
    return count, entries


def _key_paths(model: DiagramModel) -> str:
    items = []
    if model.relations:
        items.append(
            "<li><strong>Happy Path:</strong> The main successful flow through the system "
            "where all validations pass</li>"
        )
    count, entries = _alternative_paths(model)
    if count:
        items.append(
            f"<li><strong>Alternative Paths:</strong> The diagram shows {count} different conditional "
            f"branches where the flow changes based on:<ul>{''.join(entries)}</ul></li>"
        )
    breaks = list(model.iter_blocks(BLOCK_EARLY_EXIT))
    if breaks:
        conditions = "".join(
            f"<li>{escape(b.label or 'Break condition')} - When this condition occurs, execution stops "
            f"at this point and subsequent messages are not processed</li>"
            for b in breaks
        )
        items.append(
            f"<li><strong>Break Path:</strong> The diagram shows "
            f"{format_count_noun(len(breaks), 'break condition')} where the sequence will stop early:"
            f"<ul>{conditions}</ul></li>"
        )
    if not items:
        return ""
    return "<h5>Key Paths Through the System</h5><ul>" + "".join(items) + "</ul>"


def _notation(model: DiagramModel) -> str:
    rels = model.relations
    legend = legend_list([
        (True, "<strong>Solid arrows</strong> represent requests or messages sent between participants"),
        (True, "<strong>Dashed arrows</strong> represent responses or return messages"),
        (any(r.style.is_async for r in rels), "<strong>Open arrowheads</strong> represent asynchronous messages"),
        (any(r.style.is_error for r in rels), "<strong>Cross arrowheads</strong> represent error messages or failed requests"),
        (model.has_block(BLOCK_EARLY_EXIT), "<strong>Break blocks</strong> mark conditions that end the sequence early"),
        (any(r.style.is_bidirectional for r in rels), "<strong>Bidirectional arrows</strong> represent two-way communication"),
        (_has_activations(model), "<strong>Activation boxes</strong> show when a participant is actively processing"),
        (model.has_block(BLOCK_CONDITIONAL), "<strong>Alternative paths (alt/else)</strong> show conditional branches"),
        (model.has_block(BLOCK_OPTIONAL), "<strong>Optional paths (opt)</strong> show steps that happen only under certain conditions"),
        (model.has_block(BLOCK_CRITICAL), "<strong>Critical blocks</strong> show actions that must be performed, with alternative handling"),
        (model.has_block(BLOCK_LOOP), "<strong>Loops</strong> show repeated sequences of messages"),
        (model.has_block(BLOCK_PARALLEL), "<strong>Parallel blocks (par/and)</strong> show actions that happen at the same time"),
        (bool(model.notes), "<strong>Notes</strong> provide additional explanatory information"),
        (bool(model.comments), "<strong>Developer comments</strong> provide context about the implementation"),
    ])
    return "<h5>Diagram Notation</h5>" + legend


_COMMENT_HEADINGS: Dict[str, str] = {
    "structure": "Diagram Structure",
    "flow": "Flow Control",
    "functionality": "Participant Lifecycle",
    "other": "Other Notes",
}


def _comment_item(comment: Comment) -> str:
    text = escape(comment.content)
    if comment.is_inline:
        text += f' (associated with message: "{escape(comment.message_content)}")'
    return f"<li>{text}</li>"


def _developer_comments(model: DiagramModel) -> str:
    if not model.comments:
        return ""
    parts = [
        "<h5>Developer Comments</h5>",
        f"<p>This diagram contains {format_count_noun(len(model.comments), 'developer comment')} "
        f"that provide additional context about implementation and design decisions.</p>",
    ]
    for category, comments in organise_comments(model.comments).items():
        if comments:
            parts.append(f"<h6>{_COMMENT_HEADINGS[category]}</h6>")
            parts.append("<ul>" + "".join(_comment_item(c) for c in comments) + "</ul>")
    return "".join(parts)


_HOW_TO_READ = (
    "<h5>How to Read This Diagram</h5>"
    "<p>Sequence diagrams are read from top to bottom, with time flowing downward. "
    "Each vertical line represents a participant's timeline, and horizontal arrows show "
    "messages passed between participants. The diagram shows both the chronological order "
    "of interactions and the organisational relationships between components.</p>"
)


def _understanding(model: DiagramModel, flows: List[LogicalFlow]) -> str:
    parts = []
    if len(flows) > 1:
        names = "".join(f"<li>{escape(f.name)}</li>" for f in flows)
        parts.append(f"<p>This sequence diagram depicts {len(flows)} main processes:</p><ol>{names}</ol>")
    elif flows:
        parts.append(f"<p>This sequence diagram depicts a single process: <strong>{escape(flows[0].name)}</strong>.</p>")
    parts.append(_key_paths(model))
    parts.append(_notation(model))
    parts.append(_developer_comments(model))
    parts.append(_HOW_TO_READ)
    return "".join(parts)


def generate_detailed(code: str, tree: VisualTree, settings: DescribeSettings) -> str:
    model = parse_sequence(code)
    flows = extract_logical_flows(model, settings.sequence.logical_flow_threshold)
    trace(f"sequence detail: {len(flows)} flows", "SYNTH")

    sections = [create_section("overview", DIAGRAM_TYPE, "Diagram Overview", _overview(model))]
    if model.entities_of_kind(KIND_ACTOR):
        sections.append(create_section("actors", DIAGRAM_TYPE, "Actors", _entity_list(model, KIND_ACTOR)))
    if model.entities_of_kind(KIND_PARTICIPANT):
        sections.append(create_section("participants", DIAGRAM_TYPE, "Participants", _entity_list(model, KIND_PARTICIPANT)))
    if model.groups:
        sections.append(create_section("groups", DIAGRAM_TYPE, "Groups", _group_list(model)))
    sections.append(create_section("flow", DIAGRAM_TYPE, "Process Flows", _process_flows(model, flows, settings)))
    sections.append(create_section("explanation", DIAGRAM_TYPE, "Understanding the Diagram", _understanding(model, flows)))
    return "".join(sections)
