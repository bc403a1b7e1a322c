"""
mermaid_describe/models.py

Data models and constants shared by the parsers, linearizers and
description generators.

A parse produces one ``DiagramModel``: entities keyed by id in insertion
order, relations in source order, the block structure for sequence
diagrams and the section structure for timelines and journeys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


# ----------------------------
# Entity kinds
# ----------------------------

KIND_NODE = "node"
KIND_ACTOR = "actor"
KIND_PARTICIPANT = "participant"

# Declaration keyword → entity kind.  Parsers call ``resolve_kind_alias()``
# instead of comparing keywords ad hoc.
KIND_ALIAS_MAP: Dict[str, str] = {
    # ── Sequence declarations ──
    "actor":        KIND_ACTOR,
    "participant":  KIND_PARTICIPANT,
    # ── Flowchart node shapes ──
    "node":         KIND_NODE,
    "decision":     KIND_NODE,
    "subroutine":   KIND_NODE,
    "stadium":      KIND_NODE,
    "io":           KIND_NODE,
}


def resolve_kind_alias(keyword: str, fallback: Optional[str] = None) -> Optional[str]:
    """Resolve a declaration keyword to an entity kind.

    Args:
        keyword: The DSL keyword (e.g. ``'actor'``, ``'participant'``).
        fallback: Kind to return if no alias match.  Defaults to ``None``.

    Returns:
        The entity kind string, or *fallback* if no mapping exists.
    """
    return KIND_ALIAS_MAP.get((keyword or "").lower(), fallback)


# ----------------------------
# Diagram type tags
# ----------------------------

# External names (rendered-tree roles, header keywords) → registry tag.
DIAGRAM_TYPE_ALIAS_MAP: Dict[str, str] = {
    # ── Flowchart ──
    "flowchart":        "flowchart",
    "flowchart-v2":     "flowchart",
    "graph":            "flowchart",
    "flowchartComplex": "flowchartComplex",
    # ── Sequence ──
    "sequence":         "sequenceDiagram",
    "sequenceDiagram":  "sequenceDiagram",
    # ── Timeline / journey ──
    "timeline":         "timeline",
    "journey":          "userJourney",
    "userJourney":      "userJourney",
    # ── Types without a dedicated generator ──
    "class":            "classDiagram",
    "classDiagram":     "classDiagram",
    "stateDiagram":     "stateDiagram",
    "stateDiagram-v2":  "stateDiagram",
    "er":               "entityRelationshipDiagram",
    "erDiagram":        "entityRelationshipDiagram",
    "gantt":            "gantt",
    "pie":              "pieChart",
    "mindmap":          "mindmap",
    "gitGraph":         "gitGraph",
    "sankey":           "sankey",
    "sankey-beta":      "sankey",
    "quadrantChart":    "quadrantChart",
    "architecture":     "architecture-beta",
    "architecture-beta": "architecture-beta",
}


def resolve_diagram_type(external_type: str, fallback: Optional[str] = None) -> Optional[str]:
    """Resolve an external diagram type name to a registry tag.

    Args:
        external_type: A rendered-tree ``aria-roledescription`` value or a
            source header keyword (e.g. ``'flowchart-v2'``, ``'journey'``).
        fallback: Tag to return if no alias match.  Defaults to ``None``.

    Returns:
        The registry tag, or *fallback* if no mapping exists.
    """
    return DIAGRAM_TYPE_ALIAS_MAP.get(external_type, fallback)


# ----------------------------
# Relations
# ----------------------------

@dataclass(frozen=True)
class RelationStyle:
    """Arrow attributes of a relation.

    Attributes:
        arrow: The raw arrow token (``-->``, ``->>``, ``--x`` ...).
        is_response: Dashed return arrow.
        is_async: Open (half) arrowhead.
        is_error: Cross arrowhead.
        is_bidirectional: Arrowheads at both ends.
        activation: ``+`` / ``-`` activation suffix, or ``""``.
        message_number: Explicit ``N.`` prefix on the message text.
    """
    arrow: str = ""
    is_response: bool = False
    is_async: bool = False
    is_error: bool = False
    is_bidirectional: bool = False
    activation: str = ""
    message_number: Optional[int] = None


@dataclass(frozen=True)
class Relation:
    """A directed, optionally labelled edge or message.

    Immutable once created.  ``source_line`` is the 0-based physical line
    in the source text and drives block attribution and chronology.
    """
    source: str
    target: str
    label: str = ""
    source_line: int = 0
    style: RelationStyle = field(default_factory=RelationStyle)


# ----------------------------
# Entities
# ----------------------------

@dataclass
class Entity:
    """A node, participant or actor.

    Attributes:
        id: DSL identifier, unique within a diagram.
        display_name: Presentation name (alias or node text).
        kind: ``node`` | ``actor`` | ``participant``.
        is_decision: Decision node (explicit shape or reclassified).
        outgoing: Relations leaving this entity, in source order.
        declared: False when synthesized from a relation endpoint.
        group: Enclosing box name (sequence diagrams).
    """
    id: str
    display_name: str = ""
    kind: str = KIND_NODE
    is_decision: bool = False
    outgoing: List[Relation] = field(default_factory=list)
    declared: bool = True
    group: Optional[str] = None

    def __post_init__(self):
        if not self.display_name:
            self.display_name = self.id


# ----------------------------
# Blocks
# ----------------------------

BLOCK_CONDITIONAL = "conditional"     # alt / else
BLOCK_OPTIONAL = "optional"           # opt
BLOCK_LOOP = "loop"                   # loop
BLOCK_CRITICAL = "critical"           # critical / option
BLOCK_PARALLEL = "parallel"           # par / and
BLOCK_EARLY_EXIT = "early_exit"       # break

# Opening keyword → block kind
BLOCK_KEYWORDS: Dict[str, str] = {
    "alt":      BLOCK_CONDITIONAL,
    "opt":      BLOCK_OPTIONAL,
    "loop":     BLOCK_LOOP,
    "critical": BLOCK_CRITICAL,
    "par":      BLOCK_PARALLEL,
    "break":    BLOCK_EARLY_EXIT,
}

# Branch separator keyword → the block kind it belongs to
BRANCH_KEYWORDS: Dict[str, str] = {
    "else":   BLOCK_CONDITIONAL,
    "option": BLOCK_CRITICAL,
    "and":    BLOCK_PARALLEL,
}


@dataclass
class Branch:
    """One branch of a conditional, one option of a critical block, or one
    lane of a parallel block."""
    condition: str = ""
    relations: List[Relation] = field(default_factory=list)
    open_line: int = 0


@dataclass
class Block:
    """A nested annotation region.

    ``kind`` selects the variant.  Conditional and parallel blocks keep
    their relations in ``branches``; critical blocks use ``relations`` as
    the base list and ``branches`` as options; optional, loop and
    early-exit blocks use ``relations`` only.

    Attributes:
        kind: One of the ``BLOCK_*`` constants.
        label: Condition or label text after the opening keyword.
        open_line: Source line of the opening marker.
        close_line: Source line of the matching ``end`` (end of input if
            the block was never closed).
        relations: Base relation list.
        branches: Ordered branches/options/lanes.
        current_branch: Index of the branch receiving relations, -1 for
            the base list.
        parent: Enclosing parallel block for nested ``par``.
        block_id: Sequential id, unique within a diagram.
    """
    kind: str
    label: str = ""
    open_line: int = 0
    close_line: Optional[int] = None
    relations: List[Relation] = field(default_factory=list)
    branches: List[Branch] = field(default_factory=list)
    current_branch: int = -1
    parent: Optional["Block"] = field(default=None, repr=False)
    block_id: int = 0

    def all_relations(self) -> List[Relation]:
        """Base relations followed by every branch's relations."""
        result = list(self.relations)
        for branch in self.branches:
            result.extend(branch.relations)
        return result

    def contains(self, relation: Relation) -> bool:
        return any(r is relation for r in self.all_relations())

    def relation_count(self) -> int:
        return len(self.relations) + sum(len(b.relations) for b in self.branches)

    def covers_line(self, line: int) -> bool:
        """True if *line* lies within the open/close marker range."""
        end = self.close_line if self.close_line is not None else float("inf")
        return self.open_line <= line <= end

    def encloses(self, other: Block) -> bool:
        """True if *other* opens after this block and closes no later."""
        if other is self:
            return False
        end = self.close_line if self.close_line is not None else float("inf")
        other_end = other.close_line if other.close_line is not None else float("inf")
        return self.open_line < other.open_line and other_end <= end


# ----------------------------
# Sequence diagram records
# ----------------------------

@dataclass
class Note:
    """A ``Note left of|right of|over`` annotation."""
    line: int
    position: str
    participants: List[str] = field(default_factory=list)
    content: str = ""

    @property
    def is_spanning(self) -> bool:
        return self.position == "over" and len(self.participants) > 1


@dataclass
class LifecycleEvent:
    """A ``create`` or ``destroy`` event."""
    line: int
    entity_id: str
    display_name: str
    event: str            # create | destroy
    kind: str = KIND_PARTICIPANT


@dataclass
class Activation:
    """An activation or deactivation of a participant."""
    line: int
    participant: str
    event: str            # activate | deactivate


@dataclass
class Comment:
    """A ``%%`` developer comment."""
    line: int
    content: str
    message_content: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return bool(self.message_content)


@dataclass
class Group:
    """A ``box`` grouping of participants."""
    name: str
    members: List[str] = field(default_factory=list)
    open_line: int = 0


# ----------------------------
# Timeline / journey records
# ----------------------------

@dataclass
class TimePeriod:
    """A timeline period and the events listed under it."""
    time: str
    events: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class JourneyTask:
    """A scored user-journey task."""
    name: str
    score: int
    actors: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class Section:
    """A ``section`` of a timeline or user journey."""
    name: str
    periods: List[TimePeriod] = field(default_factory=list)
    tasks: List[JourneyTask] = field(default_factory=list)
    line: int = 0


# ----------------------------
# Diagram model
# ----------------------------

@dataclass
class DiagramModel:
    """Complete structured representation of one diagram.

    Built once per description request by a parser and treated as
    read-only by the linearizers and generators.
    """
    diagram_type: str
    title: str = ""
    entities: Dict[str, Entity] = field(default_factory=dict)
    relations: List[Relation] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    # Sequence diagrams
    groups: List[Group] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    lifecycle: List[LifecycleEvent] = field(default_factory=list)
    activations: List[Activation] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    # Flowcharts
    orientation: Optional[str] = None
    subgraphs: List[str] = field(default_factory=list)
    # Timelines and journeys
    sections: List[Section] = field(default_factory=list)
    periods: List[TimePeriod] = field(default_factory=list)
    # Free-form extras (directives, counts)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def entity(self, entity_id: str) -> Optional[Entity]:
        return self.entities.get(entity_id)

    def display_name(self, entity_id: str) -> str:
        """Presentation name for *entity_id*, stripping activation markers."""
        if not entity_id:
            return ""
        clean = entity_id.rstrip("+-") or entity_id
        ent = self.entities.get(clean)
        return ent.display_name if ent else clean

    def entities_of_kind(self, kind: str) -> List[Entity]:
        return [e for e in self.entities.values() if e.kind == kind]

    def names_of_kind(self, kind: str) -> List[str]:
        """Distinct display names of entities of *kind*, in insertion order."""
        names: List[str] = []
        for ent in self.entities.values():
            if ent.kind == kind and ent.display_name not in names:
                names.append(ent.display_name)
        return names

    def iter_blocks(self, kind: Optional[str] = None) -> Iterator[Block]:
        for block in self.blocks:
            if kind is None or block.kind == kind:
                yield block

    def block_for(self, relation: Relation) -> Optional[Block]:
        """The non-parallel block owning *relation*, if any."""
        for block in self.blocks:
            if block.kind != BLOCK_PARALLEL and block.contains(relation):
                return block
        return None

    def parallel_block_for(self, relation: Relation) -> Optional[Block]:
        for block in self.blocks:
            if block.kind == BLOCK_PARALLEL and block.contains(relation):
                return block
        return None

    def has_block(self, kind: str) -> bool:
        return any(b.kind == kind for b in self.blocks)

    def enclosing_block(self, block: Block) -> Optional[Block]:
        """The innermost block that encloses *block*, if any."""
        parent = None
        for candidate in self.blocks:
            if candidate.encloses(block) and (parent is None or parent.encloses(candidate)):
                parent = candidate
        return parent

    def child_blocks(self, block: Block) -> List[Block]:
        """Blocks directly nested in *block*, in opening order."""
        return [b for b in self.blocks if b is not block and self.enclosing_block(b) is block]

    def top_level_block(self, relation: Relation) -> Optional[Block]:
        """The outermost block around the block owning *relation*."""
        block = next((b for b in self.blocks if b.contains(relation)), None)
        while block is not None:
            parent = self.enclosing_block(block)
            if parent is None:
                return block
            block = parent
        return None


# ----------------------------
# Description output
# ----------------------------

@dataclass
class Description:
    """The description pair handed to the presentation layer.

    Attributes:
        short: Plain-text one or two sentence summary.
        short_html: The same summary with inline emphasis spans.
        detailed: Sectioned HTML fragment.
    """
    short: str = ""
    short_html: str = ""
    detailed: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Return the ``{short, shortHTML, detailed}`` mapping."""
        return {
            "short": self.short,
            "shortHTML": self.short_html,
            "detailed": self.detailed,
        }
