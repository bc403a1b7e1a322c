"""
mermaid_describe/parsers/blocks.py

Block structurer for sequence diagrams.

A fold over source lines with an explicit ``BlockState``.  Opening markers
(``alt``, ``opt``, ``loop``, ``critical``, ``par``, ``break``) push a block,
branch markers (``else``, ``option``, ``and``) add a branch to the innermost
open block of the matching kind, and ``end`` closes whatever construct
was opened most recently.  ``box`` and ``rect`` regions also end with
``end`` so they sit on the same stack without producing blocks.

Relations are attributed by source line: when the fold reaches a line
that produced a relation, the relation goes to the innermost open block.
``reattribute_early_exits`` then re-homes everything strictly inside each
``break`` block's line range.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from mermaid_describe.debug_trace import trace
from mermaid_describe.models import (
    BLOCK_CONDITIONAL,
    BLOCK_CRITICAL,
    BLOCK_EARLY_EXIT,
    BLOCK_KEYWORDS,
    BLOCK_PARALLEL,
    BRANCH_KEYWORDS,
    Block,
    Branch,
    Relation,
)

log = logging.getLogger(__name__)

_OPEN_RE = re.compile(r"^(alt|opt|loop|critical|par|break)(?:\s+(.*))?$", re.IGNORECASE)
_BRANCH_RE = re.compile(r"^(else|option|and)(?:\s+(.*))?$", re.IGNORECASE)
_REGION_RE = re.compile(r"^(box|rect)(?:\s+.*)?$", re.IGNORECASE)
_END_RE = re.compile(r"^end\s*$", re.IGNORECASE)
_DECLARATION_RE = re.compile(r"^(?:participant|actor)\s+", re.IGNORECASE)

PARALLEL_DEFAULT_LABEL = "Parallel actions"
ELSE_DEFAULT_CONDITION = "otherwise"

# Open constructs: a Block, or the keyword of a box/rect region
Construct = Union[Block, str]


@dataclass
class BlockState:
    """Parser state threaded through the line fold.

    Attributes:
        blocks: Every block in opening order.
        open_stack: Open constructs, most recent last.
        parallel_stack: Open parallel blocks, most recent last.
        next_id: Counter for ``Block.block_id``.
        last_line: Highest line index seen.
    """
    blocks: List[Block] = field(default_factory=list)
    open_stack: List[Construct] = field(default_factory=list)
    parallel_stack: List[Block] = field(default_factory=list)
    next_id: int = 0
    last_line: int = 0

    def innermost_block(self) -> Optional[Block]:
        for item in reversed(self.open_stack):
            if isinstance(item, Block):
                return item
        return None

    def innermost_of_kind(self, kind: str) -> Optional[Block]:
        for item in reversed(self.open_stack):
            if isinstance(item, Block) and item.kind == kind:
                return item
        return None


# ─────────────────────────────────────────────────────────
# Transitions
# ─────────────────────────────────────────────────────────


def open_block(state: BlockState, keyword: str, label: str, line: int) -> Block:
    """Push a new block for the opening *keyword* at *line*."""
    kind = BLOCK_KEYWORDS[keyword.lower()]
    label = (label or "").strip()
    state.next_id += 1
    block = Block(kind=kind, label=label, open_line=line, block_id=state.next_id)

    if kind == BLOCK_CONDITIONAL:
        block.branches.append(Branch(condition=label, open_line=line))
        block.current_branch = 0
    elif kind == BLOCK_PARALLEL:
        if not label or _DECLARATION_RE.match(label):
            label = PARALLEL_DEFAULT_LABEL
            block.label = label
        block.branches.append(Branch(condition=label, open_line=line))
        block.current_branch = 0
        block.parent = state.parallel_stack[-1] if state.parallel_stack else None
        state.parallel_stack.append(block)

    state.blocks.append(block)
    state.open_stack.append(block)
    trace(f"open {kind} #{block.block_id} {label!r} at line {line}", "BLOCK")
    return block


def add_branch(state: BlockState, keyword: str, label: str, line: int) -> Optional[Block]:
    """Start a new branch on the innermost open block that accepts *keyword*.

    Returns:
        The block that received the branch, or None when no open block
        accepts the keyword (the line is then ignored).
    """
    kind = BRANCH_KEYWORDS[keyword.lower()]
    block = state.innermost_of_kind(kind)
    if block is None:
        log.debug("'%s' at line %d outside any %s block", keyword, line, kind)
        return None

    label = (label or "").strip()
    if kind == BLOCK_CONDITIONAL and not label:
        label = ELSE_DEFAULT_CONDITION
    block.branches.append(Branch(condition=label, open_line=line))
    block.current_branch = len(block.branches) - 1
    trace(f"branch {keyword} {label!r} on #{block.block_id}", "BLOCK")
    return block


def open_region(state: BlockState, keyword: str) -> None:
    state.open_stack.append(keyword.lower())


def close_construct(state: BlockState, line: int) -> Optional[Construct]:
    """Close the most recently opened construct at *line*."""
    if not state.open_stack:
        log.debug("Unmatched 'end' at line %d", line)
        return None
    item = state.open_stack.pop()
    if isinstance(item, Block):
        item.close_line = line
        if item.kind == BLOCK_PARALLEL and state.parallel_stack and state.parallel_stack[-1] is item:
            state.parallel_stack.pop()
        trace(f"close {item.kind} #{item.block_id} at line {line}", "BLOCK")
    return item


def attribute(state: BlockState, relation: Relation) -> Optional[Block]:
    """Append *relation* to the innermost open block.

    Conditional and parallel blocks take it on the current branch; a
    critical block on its current option if one is open, else its base
    list; other blocks on their base list.

    Returns:
        The receiving block, or None for a top-level relation.
    """
    block = state.innermost_block()
    if block is None:
        return None
    if block.kind in (BLOCK_CONDITIONAL, BLOCK_PARALLEL):
        block.branches[block.current_branch].relations.append(relation)
    elif block.kind == BLOCK_CRITICAL and block.current_branch >= 0:
        block.branches[block.current_branch].relations.append(relation)
    else:
        block.relations.append(relation)
    return block


def step(state: BlockState, line_index: int, line: str, relations: Iterable[Relation] = ()) -> None:
    """Process one stripped source line and the relations it produced."""
    state.last_line = max(state.last_line, line_index)

    m = _OPEN_RE.match(line)
    if m:
        open_block(state, m.group(1), m.group(2) or "", line_index)
        return
    m = _BRANCH_RE.match(line)
    if m:
        add_branch(state, m.group(1), m.group(2) or "", line_index)
        return
    m = _REGION_RE.match(line)
    if m:
        open_region(state, m.group(1))
        return
    if _END_RE.match(line):
        close_construct(state, line_index)
        return
    for relation in relations:
        attribute(state, relation)


def finish(state: BlockState) -> List[Block]:
    """Close anything still open at the last line and return all blocks."""
    for item in state.open_stack:
        if isinstance(item, Block) and item.close_line is None:
            item.close_line = state.last_line
            log.debug("Block #%d (%s) never closed; ends at line %d", item.block_id, item.kind, state.last_line)
    state.open_stack.clear()
    state.parallel_stack.clear()
    return state.blocks


# ─────────────────────────────────────────────────────────
# Driver and post-pass
# ─────────────────────────────────────────────────────────


def structure_blocks(lines: Iterable[Tuple[int, str]], relations: Iterable[Relation]) -> List[Block]:
    """Build the block list for pre-extracted *relations*.

    Args:
        lines: ``(line_index, stripped_line)`` pairs in source order.
        relations: Relations carrying the line they were parsed from.

    Returns:
        Blocks in opening order, early-exit re-attribution applied.
    """
    by_line: Dict[int, List[Relation]] = {}
    all_relations = list(relations)
    for rel in all_relations:
        by_line.setdefault(rel.source_line, []).append(rel)

    state = BlockState()
    for line_index, line in lines:
        step(state, line_index, line, by_line.get(line_index, ()))
    blocks = finish(state)
    reattribute_early_exits(blocks, all_relations)
    return blocks


def _remove_relation(block: Block, relation: Relation) -> None:
    block.relations = [r for r in block.relations if r is not relation]
    for branch in block.branches:
        branch.relations = [r for r in branch.relations if r is not relation]


def reattribute_early_exits(blocks: List[Block], relations: List[Relation]) -> None:
    """Re-home every relation strictly inside each early-exit block's range.

    Relations owned by a block nested inside the early-exit block stay
    where they are.  Each re-homed relation is removed from every other
    block so it belongs to exactly one.
    """
    for block in blocks:
        if block.kind != BLOCK_EARLY_EXIT or block.close_line is None:
            continue
        nested = [b for b in blocks if block.encloses(b)]
        inside = []
        for rel in relations:
            if not block.open_line < rel.source_line < block.close_line:
                continue
            if any(n.contains(rel) for n in nested):
                continue
            inside.append(rel)

        for other in blocks:
            if other is block:
                continue
            for rel in inside:
                if other.contains(rel):
                    _remove_relation(other, rel)
        block.relations = inside
        trace(f"break #{block.block_id} holds {len(inside)} relations", "BLOCK")
