"""
mermaid_describe/parsers/flowchart.py

Parse Mermaid flowchart source into a ``DiagramModel``.

Source lines are split into statements on ``;`` (outside shape text and
pipe labels), then three passes run over the statements:

1. Node pass -- every ``id[text]`` / ``id{text}`` / ``id([text])`` /
   ``id[[text]]`` shape declares or updates an entity.
2. Relation pass -- a chain such as ``A --> B -- yes --> C`` is walked
   link by link; at each endpoint an ordered rule list (pipe label, dash
   label, unlabelled) is tried and the first rule that matches wins.
3. Connection-map pass -- bracket-tolerant patterns re-scan the
   statements to recover edges the relation pass missed, merged without
   duplicating an edge already captured.

Nodes with more than one outgoing edge, all labelled, are then
reclassified as decisions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from mermaid_describe.debug_trace import trace, trace_call
from mermaid_describe.detection import detect_orientation, subgraph_titles
from mermaid_describe.directives import directive_lines
from mermaid_describe.models import (
    DiagramModel,
    Entity,
    KIND_NODE,
    Relation,
    RelationStyle,
)
from mermaid_describe.utils import clean_node_text

log = logging.getLogger(__name__)

# Ids may contain hyphens but never end with one, so ``A-->B`` splits at the arrow
_ID = r"[A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?"

# id followed by one of: [[sub]], [text] / [/io/], ([stadium]), {decision}
_NODE_RE = re.compile(
    rf"\s*({_ID})(?:\[\[([^\]]+)\]\]|\[/?([^/\]]+)/?\]|\(\[([^\]]+)\]\)|\{{([^}}]+)\}})"
)

# Endpoint ids that are really branch labels captured by a loose pattern
_LABEL_TOKENS = {"Yes", "No"}
_INVALID_MAP_IDS = {"Yes", "No", "Otherwise", "true", "false"}

# Optional shape text and ``:::class`` suffix after an id
_SHAPE = r"(?:\[\[[^\]]*\]\]|\(\([^)]*\)\)|\{\{[^}]*\}\}|\[[^\]]*\]|\([^)]*\)|\{[^}]*\})?(?::::\w+)?"
_SHAPE_SHORT = r"(?:\[[^\]]*\]|\([^)]*\)|\{[^}]*\})?"

_ARROW = r"-->|==>|-\.->"
# Dash label text: no leading dash/arrow, no ``--`` or ``->`` inside
_DASH_LABEL = r"[^\s>-](?:[^->]|-(?![->]))*?"

_TOKEN_RE = re.compile(r"\s*\S+")
# A link opener whose text no rule accepted, e.g. ``== text ==>``
_LABEL_OPEN_RE = re.compile(r"\s*(?:--|==|-\.)(?=\s)")
_CLOSING_ARROW_RE = re.compile(r"-->|==>|\.->")
_TITLE_RE = re.compile(r"^\s*title\s*:?\s*(.+)$", re.IGNORECASE | re.MULTILINE)

_SKIP_PREFIXES = ("%%", "accTitle", "accDescr", "classDef ", "class ", "style ", "linkStyle ", "click ")
_OPENERS = {"[": "]", "(": ")", "{": "}"}


@dataclass(frozen=True)
class RelationRule:
    """One link pattern, anchored at a source endpoint.

    Attributes:
        name: Rule name used in trace output.
        pattern: Compiled regex with named groups ``src``, ``arrow``,
            ``dst`` and, when ``labelled``, ``label``.
        labelled: Whether the pattern carries a label group.
    """
    name: str
    pattern: re.Pattern
    labelled: bool

    def match(self, statement: str, pos: int = 0) -> Optional[re.Match]:
        """Match the link starting at *pos*, or None."""
        return self.pattern.match(statement, pos)

    def edge(self, m: re.Match) -> Tuple[str, str, str, str]:
        """``(source, target, label, arrow)`` of a match."""
        label = m.group("label").strip() if self.labelled else ""
        return m.group("src"), m.group("dst"), label, m.group("arrow")


# Most specific first.
RELATION_RULES: List[RelationRule] = [
    RelationRule(
        "pipe-label",
        re.compile(rf"\s*(?P<src>{_ID})\s*{_SHAPE}\s*(?P<arrow>{_ARROW})\s*\|(?P<label>[^|]+)\|\s*(?P<dst>{_ID})"),
        True,
    ),
    RelationRule(
        "dash-label",
        re.compile(rf"\s*(?P<src>{_ID})\s*{_SHAPE}\s*--\s*(?P<label>{_DASH_LABEL})\s*(?P<arrow>-->)\s*(?P<dst>{_ID})"),
        True,
    ),
    RelationRule(
        "plain",
        re.compile(rf"\s*(?P<src>{_ID})\s*{_SHAPE}\s*(?P<arrow>{_ARROW})\s*(?P<dst>{_ID})"),
        False,
    ),
]

# Connection-map patterns tolerate shape text after either endpoint
_MAP_PLAIN_RE = re.compile(rf"\s*({_ID}){_SHAPE}\s*(-->)\s*({_ID}){_SHAPE}")
_MAP_DASH_RE = re.compile(rf"\s*({_ID}){_SHAPE_SHORT}\s*--\s*({_DASH_LABEL})\s*(-->)\s*({_ID}){_SHAPE_SHORT}")
_MAP_PIPE_RE = re.compile(rf"\s*({_ID}){_SHAPE_SHORT}\s*(-->|==>|-\.->)\|([^|]+)\|\s*({_ID}){_SHAPE_SHORT}")


# ─────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────


@trace_call("PARSE")
def parse_flowchart(code: Optional[str]) -> DiagramModel:
    """Parse flowchart source into a ``DiagramModel``.

    Never raises for malformed lines; an unrecognised line contributes
    nothing.

    Args:
        code: Mermaid flowchart source.

    Returns:
        Model with entities in first-declaration order and relations in
        source order (recovered connection-map edges follow the line
        they came from).
    """
    model = DiagramModel(diagram_type="flowchart")
    code = code or ""
    lines = _source_lines(code)

    _extract_nodes(model, lines)
    _extract_relations(model, lines)
    _merge_connection_map(model, lines)
    reclassify_decisions(model)

    model.orientation = detect_orientation(code)
    model.subgraphs = subgraph_titles(code)
    m = _TITLE_RE.search(code)
    if m:
        model.title = m.group(1).strip()

    trace(f"flowchart: {len(model.entities)} nodes, {len(model.relations)} edges", "PARSE")
    return model


def reclassify_decisions(model: DiagramModel) -> List[str]:
    """Mark nodes with more than one outgoing edge, all labelled, as decisions.

    Returns:
        Ids of the entities that were reclassified.
    """
    changed = []
    for entity in model.entities.values():
        if entity.is_decision or len(entity.outgoing) <= 1:
            continue
        if all(rel.label for rel in entity.outgoing):
            entity.is_decision = True
            changed.append(entity.id)
            trace(f"{entity.id} reclassified as decision", "PARSE")
    return changed


# ─────────────────────────────────────────────────────────
# Passes
# ─────────────────────────────────────────────────────────


def _source_lines(code: str) -> List[Tuple[int, str]]:
    """Non-empty statements paired with the 0-based physical line they sit on.

    A line holding several ``;``-separated statements yields one entry per
    statement, all carrying the same line index.  Directive lines, the
    body of an ``accDescr { ... }`` block included, are left out.
    """
    result = []
    skipped = directive_lines(code)
    for idx, raw in enumerate(code.split("\n")):
        line = raw.strip()
        if not line or idx in skipped or line.startswith(_SKIP_PREFIXES):
            continue
        for statement in split_statements(line):
            if not statement.startswith(_SKIP_PREFIXES):
                result.append((idx, statement))
    return result


def split_statements(line: str) -> List[str]:
    """Split *line* on ``;`` outside shape text, pipe labels and quotes."""
    statements = []
    closers: List[str] = []
    in_pipe = in_quote = False
    start = 0
    for pos, ch in enumerate(line):
        if in_quote:
            in_quote = ch != '"'
        elif ch == '"':
            in_quote = True
        elif closers:
            if ch == closers[-1]:
                closers.pop()
            elif ch in _OPENERS:
                closers.append(_OPENERS[ch])
        elif ch in _OPENERS:
            closers.append(_OPENERS[ch])
        elif ch == "|":
            in_pipe = not in_pipe
        elif ch == ";" and not in_pipe:
            statements.append(line[start:pos])
            start = pos + 1
    statements.append(line[start:])
    return [s.strip() for s in statements if s.strip()]


def _extract_nodes(model: DiagramModel, lines: List[Tuple[int, str]]) -> None:
    for _idx, line in lines:
        for m in _NODE_RE.finditer(line):
            node_id = m.group(1)
            raw_text = m.group(2) or m.group(3) or m.group(4) or m.group(5) or node_id
            text = clean_node_text(raw_text).strip() or node_id
            is_decision = f"{node_id}{{" in line or "?" in text

            existing = model.entities.get(node_id)
            if existing is not None:
                existing.display_name = text
                existing.is_decision = is_decision
            else:
                model.entities[node_id] = Entity(
                    id=node_id, display_name=text, kind=KIND_NODE, is_decision=is_decision,
                )
            trace(f"node {node_id} {text!r} decision={is_decision}", "PARSE")


def _extract_relations(model: DiagramModel, lines: List[Tuple[int, str]]) -> None:
    for idx, statement in lines:
        for rule, m in iter_links(statement):
            source, target, label, arrow = rule.edge(m)
            _add_relation(model, source, target, label, arrow, idx)
            trace(f"edge[{rule.name}] {source} -> {target} {label!r}", "PARSE")


def iter_links(statement: str):
    """Yield ``(rule, match)`` for every link of every chain in *statement*.

    After a link matches, scanning resumes at its target so that
    ``A --> B --> C`` yields A→B then B→C.  Where no rule matches, one
    token is skipped.
    """
    pos = 0
    while pos < len(statement):
        for rule in RELATION_RULES:
            m = rule.match(statement, pos)
            if m is not None:
                yield rule, m
                pos = m.start("dst")
                break
        else:
            opener = _LABEL_OPEN_RE.match(statement, pos)
            if opener is not None:
                # Label text is never an endpoint; resume after its arrow
                closing = _CLOSING_ARROW_RE.search(statement, opener.end())
                pos = closing.end() if closing else len(statement)
                continue
            skipped = _TOKEN_RE.match(statement, pos)
            if skipped is None:
                return
            pos = skipped.end()


def _add_relation(
    model: DiagramModel, source: str, target: str, label: str, arrow: str, line: int,
) -> Optional[Relation]:
    if source in _LABEL_TOKENS or target in _LABEL_TOKENS:
        log.debug("Skipping edge label captured as node: %s -> %s", source, target)
        return None
    if not source.strip() or not target.strip():
        return None

    for node_id in (source, target):
        if node_id not in model.entities:
            model.entities[node_id] = Entity(id=node_id, kind=KIND_NODE, declared=False)

    relation = Relation(
        source=source, target=target, label=label, source_line=line,
        style=RelationStyle(arrow=arrow),
    )
    model.relations.append(relation)
    model.entities[source].outgoing.append(relation)
    return relation


def _merge_connection_map(model: DiagramModel, lines: List[Tuple[int, str]]) -> None:
    """Recover edges the relation pass missed and merge them in."""
    recovered = 0
    for idx, line in lines:
        if "--" not in line:
            continue
        labelled = "--|" in line or "-- " in line or "-->|" in line

        candidates: List[Tuple[str, str, str, str]] = []
        if not labelled:
            m = _MAP_PLAIN_RE.search(line)
            if m:
                candidates.append((m.group(1), m.group(3), "", m.group(2)))
        else:
            m = _MAP_DASH_RE.search(line)
            if m:
                candidates.append((m.group(1), m.group(4), m.group(2).strip(), m.group(3)))
            m = _MAP_PIPE_RE.search(line)
            if m:
                candidates.append((m.group(1), m.group(4), m.group(3).strip(), m.group(2)))

        for source, target, label, arrow in candidates:
            if source in _INVALID_MAP_IDS or target in _INVALID_MAP_IDS:
                continue
            existing = model.entities.get(source)
            if existing is not None and any(rel.target == target for rel in existing.outgoing):
                continue
            _add_relation(model, source, target, label, arrow, idx)
            recovered += 1
            trace(f"recovered edge {source} -> {target} {label!r}", "PARSE")

    if recovered:
        model.relations.sort(key=lambda rel: rel.source_line)
        for entity in model.entities.values():
            entity.outgoing.sort(key=lambda rel: rel.source_line)


# ─────────────────────────────────────────────────────────
# Source lookups used when the edge map has no entry
# ─────────────────────────────────────────────────────────


def has_connections_in_code(code: str, node_id: str) -> bool:
    """True if *code* shows *node_id* as the source of any arrow form."""
    nid = re.escape(node_id)
    patterns = [
        rf"{nid}\s*-->",
        rf"{nid}\[.*?\]\s*-->",
        rf"{nid}\(.*?\)\s*-->",
        rf"{nid}\{{.*?\}}\s*-->",
        rf"{nid}\s*--\s+.*?\s*-->",
        rf"{nid}\[.*?\]\s*--\s+.*?\s*-->",
        rf"{nid}\s*-->\|",
        rf"{nid}\[.*?\]\s*-->\|",
    ]
    return any(re.search(p, code, re.IGNORECASE) for p in patterns)


def find_potential_targets(code: str, node_id: str) -> List[str]:
    """Target ids reachable from *node_id* by a loose scan of *code*."""
    nid = re.escape(node_id)
    flat = code.replace("\n", " ")
    patterns = [
        rf"{nid}\s*-->\s*({_ID})",
        rf"{nid}\[.*?\]\s*-->\s*({_ID})(?:\[|$)",
        rf"{nid}(?:\[.*?\])?\s*--\s+.*?\s*-->\s*({_ID})",
        rf"{nid}(?:\[.*?\])?\s*-->\|.*?\|\s*({_ID})",
    ]
    targets: List[str] = []
    for p in patterns:
        for m in re.finditer(p, flat):
            if m.group(1) and m.group(1) not in targets:
                targets.append(m.group(1))
    return targets


def count_source_nodes(code: Optional[str]) -> int:
    """Node count from source shapes (``id[``, ``id(``, ``id{``)."""
    if not code:
        return 0
    return len(re.findall(rf"\s*{_ID}\s*(?:\[|\(|\{{)", code))
