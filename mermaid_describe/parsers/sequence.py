"""
mermaid_describe/parsers/sequence.py

Parse Mermaid sequence diagram source into a ``DiagramModel``.

Extraction runs line by line over the source with ``%%`` comments split
off first.  Declarations, lifecycle events, notes, activations and box
groups are recorded as they are met; messages become ``Relation`` objects
tagged with their physical line.  Block structure is then built by
``parsers.blocks.structure_blocks`` from the same lines.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from mermaid_describe.debug_trace import trace, trace_call
from mermaid_describe.models import (
    Activation,
    Comment,
    DiagramModel,
    Entity,
    Group,
    KIND_ACTOR,
    KIND_PARTICIPANT,
    LifecycleEvent,
    Note,
    Relation,
    RelationStyle,
    resolve_kind_alias,
)
from mermaid_describe.parsers.blocks import structure_blocks

log = logging.getLogger(__name__)

# Ids may contain inner hyphens but never end in one, so ``A-->>B`` splits
# cleanly into id and arrow.
_ID = r"[A-Za-z0-9_]+(?:-[A-Za-z0-9_]+)*"

# Longest arrows first
ARROWS = ("<<-->>", "<<->>", "-->>", "->>", "--x", "-x", "--)", "-)", "-->", "->")
_ARROW = "|".join(re.escape(a) for a in ARROWS)

_MESSAGE_RE = re.compile(
    rf"^(?P<src>{_ID})\s*(?P<arrow>{_ARROW})(?P<act>[+-])?\s*(?P<dst>{_ID})\s*(?::\s*(?P<text>.*))?$"
)
_DECLARATION_RE = re.compile(rf"^(participant|actor)\s+({_ID})(?:\s+as\s+(.+))?$", re.IGNORECASE)
_CREATE_RE = re.compile(rf"^create\s+(participant|actor)\s+({_ID})(?:\s+as\s+(.+))?$", re.IGNORECASE)
_DESTROY_RE = re.compile(rf"^destroy\s+({_ID})\s*$", re.IGNORECASE)
_NOTE_RE = re.compile(
    rf"^Note\s+(right|left|over)\s+(?:of\s+)?(?:({_ID})(?:\s*,\s*({_ID}))?)?\s*:\s*(.+)$",
    re.IGNORECASE,
)
_ACTIVATE_RE = re.compile(rf"^(activate|deactivate)\s+({_ID})", re.IGNORECASE)
_BOX_RE = re.compile(r"^box(?:\s+(.*))?$", re.IGNORECASE)
_BLOCK_OPEN_RE = re.compile(r"^(?:alt|opt|loop|critical|par|break|rect)(?:\s+.*)?$", re.IGNORECASE)
_END_RE = re.compile(r"^end\s*$", re.IGNORECASE)
_TITLE_RE = re.compile(r"^\s*title\s*:?\s+(.+)$", re.IGNORECASE | re.MULTILINE)
_MESSAGE_NUMBER_RE = re.compile(r"^(\d+)\.?\s+(.+)$")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)

_RGB_PREFIX_RE = re.compile(
    r"^(?:rgb\s*\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*\)|rgba\s*\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*,\s*[\d.]+\s*\))\s+(.+)$",
    re.IGNORECASE,
)
_BOX_COLOURS = (
    "transparent", "aqua", "black", "blue", "fuchsia", "gray", "green", "lime",
    "maroon", "navy", "olive", "orange", "purple", "red", "silver", "teal",
    "white", "yellow",
)

# Undeclared ids that read as people rather than systems
_ACTOR_NAMES = {"user", "alice", "bob", "john"}
_ACTOR_FRAGMENTS = ("customer", "client")


# ─────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────


@trace_call("PARSE")
def parse_sequence(code: Optional[str]) -> DiagramModel:
    """Parse sequence diagram source into a ``DiagramModel``.

    Args:
        code: Mermaid ``sequenceDiagram`` source.

    Returns:
        Model whose ``relations`` hold every message in source order and
        whose ``blocks`` hold the alt/opt/loop/critical/par/break
        structure with messages attributed by line.
    """
    model = DiagramModel(diagram_type="sequenceDiagram")
    code = code or ""

    m = _TITLE_RE.search(code)
    if m:
        model.title = m.group(1).strip()

    lines = _split_comments(model, code)

    open_groups: List[Optional[Group]] = []
    for idx, line in lines:
        _parse_line(model, idx, line, open_groups)

    model.blocks = structure_blocks(lines, model.relations)
    model.extras["message_count"] = len(model.relations)

    trace(
        f"sequence: {len(model.entities)} entities, {len(model.relations)} messages, "
        f"{len(model.blocks)} blocks",
        "PARSE",
    )
    return model


def classify_undeclared(entity_id: str) -> str:
    """Kind for an id that only appears as a message endpoint."""
    lowered = entity_id.lower()
    if lowered in _ACTOR_NAMES or any(frag in lowered for frag in _ACTOR_FRAGMENTS):
        return KIND_ACTOR
    return KIND_PARTICIPANT


def strip_box_colour(content: str) -> str:
    """Group name from ``box`` text with any leading colour removed."""
    content = content.strip()
    m = _RGB_PREFIX_RE.match(content)
    if m:
        return m.group(1).strip()
    lowered = content.lower()
    for colour in _BOX_COLOURS:
        if lowered.startswith(colour + " "):
            return content[len(colour):].strip()
    return content


def parse_message(text: str) -> Optional[Tuple[str, str, str, str, str]]:
    """Split a message line into ``(source, arrow, activation, target, text)``."""
    m = _MESSAGE_RE.match(text)
    if not m:
        return None
    return m.group("src"), m.group("arrow"), m.group("act") or "", m.group("dst"), (m.group("text") or "").strip()


def arrow_style(arrow: str, activation: str = "", message_number: Optional[int] = None) -> RelationStyle:
    """Derive the message flags carried by *arrow*."""
    bidirectional = arrow.startswith("<<")
    return RelationStyle(
        arrow=arrow,
        is_response="--" in arrow and not bidirectional,
        is_async=")" in arrow,
        is_error="x" in arrow,
        is_bidirectional=bidirectional,
        activation=activation,
        message_number=message_number,
    )


# ─────────────────────────────────────────────────────────
# Line handling
# ─────────────────────────────────────────────────────────


def _split_comments(model: DiagramModel, code: str) -> List[Tuple[int, str]]:
    """Record ``%%`` comments and return the remaining non-empty lines."""
    lines: List[Tuple[int, str]] = []
    for idx, raw in enumerate(code.split("\n")):
        line = raw.strip()
        if not line:
            continue
        if "%%{init:" in line or "%{init:" in line:
            continue
        pos = line.find("%%")
        if pos != -1:
            before = line[:pos].strip()
            content = line[pos + 2:].strip()
            if content:
                model.comments.append(Comment(line=idx, content=content, message_content=before or None))
            line = before
            if not line:
                continue
        lines.append((idx, line))
    return lines


def _ensure_entity(model: DiagramModel, entity_id: str) -> Entity:
    entity = model.entities.get(entity_id)
    if entity is None:
        entity = Entity(id=entity_id, kind=classify_undeclared(entity_id), declared=False)
        model.entities[entity_id] = entity
        trace(f"synthesized {entity.kind} {entity_id}", "PARSE")
    return entity


def _declare(model: DiagramModel, keyword: str, entity_id: str, alias: Optional[str]) -> Entity:
    display = _BR_RE.sub(" ", alias.strip()) if alias else entity_id
    kind = resolve_kind_alias(keyword, KIND_PARTICIPANT)
    entity = model.entities.get(entity_id)
    if entity is None:
        entity = Entity(id=entity_id, display_name=display, kind=kind)
        model.entities[entity_id] = entity
    else:
        entity.display_name = display
        entity.kind = kind
        entity.declared = True
    return entity


def _parse_line(model: DiagramModel, idx: int, line: str, open_groups: List[Optional[Group]]) -> None:
    m = _BOX_RE.match(line)
    if m:
        group = Group(name=strip_box_colour(m.group(1) or ""), open_line=idx)
        open_groups.append(group)
        return

    if _BLOCK_OPEN_RE.match(line):
        # Blocks also close with ``end``; keep box bookkeeping aligned
        open_groups.append(None)
        return

    if _END_RE.match(line):
        if open_groups:
            group = open_groups.pop()
            if group is not None:
                model.groups.append(group)
                for member in group.members:
                    if member in model.entities:
                        model.entities[member].group = group.name
        return

    m = _CREATE_RE.match(line)
    if m:
        keyword, entity_id, alias = m.group(1), m.group(2), m.group(3)
        entity = _declare(model, keyword, entity_id, alias)
        model.lifecycle.append(LifecycleEvent(
            line=idx, entity_id=entity_id, display_name=entity.display_name,
            event="create", kind=entity.kind,
        ))
        return

    m = _DESTROY_RE.match(line)
    if m:
        entity_id = m.group(1)
        entity = _ensure_entity(model, entity_id)
        model.lifecycle.append(LifecycleEvent(
            line=idx, entity_id=entity_id, display_name=entity.display_name,
            event="destroy", kind=entity.kind,
        ))
        return

    m = _DECLARATION_RE.match(line)
    if m:
        entity = _declare(model, m.group(1), m.group(2), m.group(3))
        current = _current_group(open_groups)
        if current is not None and entity.id not in current.members:
            current.members.append(entity.id)
        return

    m = _NOTE_RE.match(line)
    if m:
        participants = [p for p in (m.group(2), m.group(3)) if p]
        content = _BR_RE.sub(" ", m.group(4).strip())
        model.notes.append(Note(line=idx, position=m.group(1).lower(), participants=participants, content=content))
        return

    m = _ACTIVATE_RE.match(line)
    if m:
        model.activations.append(Activation(line=idx, participant=m.group(2), event=m.group(1).lower()))
        return

    parsed = parse_message(line)
    if parsed:
        _add_message(model, idx, *parsed)


def _current_group(open_groups: List[Optional[Group]]) -> Optional[Group]:
    for group in reversed(open_groups):
        if group is not None:
            return group
    return None


def _add_message(model: DiagramModel, idx: int, source: str, arrow: str, activation: str, target: str, text: str) -> None:
    number = None
    m = _MESSAGE_NUMBER_RE.match(text)
    if m:
        number = int(m.group(1))
        text = m.group(2).strip()

    _ensure_entity(model, source)
    _ensure_entity(model, target)

    relation = Relation(
        source=source, target=target, label=text, source_line=idx,
        style=arrow_style(arrow, activation, number),
    )
    model.relations.append(relation)
    model.entities[source].outgoing.append(relation)

    if activation == "+":
        model.activations.append(Activation(line=idx, participant=target, event="activate"))
    elif activation == "-":
        model.activations.append(Activation(line=idx, participant=source, event="deactivate"))

    trace(f"message {source} {arrow}{activation} {target}: {text!r}", "PARSE")
