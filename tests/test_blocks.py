"""
tests/test_blocks.py

Block structurer: opening, branching and closing constructs, innermost
attribution, nesting of parallel blocks, and the early-exit post-pass.
"""
from __future__ import annotations

from mermaid_describe.models import (
    BLOCK_CONDITIONAL,
    BLOCK_CRITICAL,
    BLOCK_EARLY_EXIT,
    BLOCK_LOOP,
    BLOCK_OPTIONAL,
    BLOCK_PARALLEL,
    Relation,
)
from mermaid_describe.parsers.blocks import (
    PARALLEL_DEFAULT_LABEL,
    BlockState,
    add_branch,
    attribute,
    close_construct,
    open_block,
    structure_blocks,
)


def _structure(lines):
    """Build blocks from ``lines`` where ``A->>B: text`` lines become relations."""
    numbered = list(enumerate(lines))
    relations = []
    for idx, line in numbered:
        if "->>" in line:
            relations.append(Relation("A", "B", line.split(":", 1)[1].strip(), source_line=idx))
    return structure_blocks(numbered, relations), relations


def _labels(relations):
    return [r.label for r in relations]


# ─────────────────────────────────────────────────────────
# Single constructs
# ─────────────────────────────────────────────────────────


class TestSingleBlocks:
    def test_alt_with_else(self):
        blocks, _ = _structure(["alt ok", "A->>B: hi", "else", "A->>B: bye", "end"])
        (alt,) = blocks
        assert alt.kind == BLOCK_CONDITIONAL
        assert [b.condition for b in alt.branches] == ["ok", "otherwise"]
        assert _labels(alt.branches[0].relations) == ["hi"]
        assert _labels(alt.branches[1].relations) == ["bye"]
        assert alt.relations == []
        assert (alt.open_line, alt.close_line) == (0, 4)

    def test_opt_and_loop_use_base_list(self):
        blocks, _ = _structure(["opt maybe", "A->>B: one", "end", "loop every minute", "A->>B: two", "end"])
        opt, loop = blocks
        assert (opt.kind, opt.label, _labels(opt.relations)) == (BLOCK_OPTIONAL, "maybe", ["one"])
        assert (loop.kind, loop.label, _labels(loop.relations)) == (BLOCK_LOOP, "every minute", ["two"])

    def test_critical_with_options(self):
        blocks, _ = _structure(["critical Lock", "A->>B: acquire", "option Timeout", "A->>B: abort", "end"])
        (crit,) = blocks
        assert crit.kind == BLOCK_CRITICAL
        assert _labels(crit.relations) == ["acquire"]
        assert [o.condition for o in crit.branches] == ["Timeout"]
        assert _labels(crit.branches[0].relations) == ["abort"]

    def test_par_without_label(self):
        blocks, _ = _structure(["par", "A->>B: one", "and", "A->>B: two", "end"])
        (par,) = blocks
        assert par.kind == BLOCK_PARALLEL
        assert par.label == PARALLEL_DEFAULT_LABEL
        assert [_labels(lane.relations) for lane in par.branches] == [["one"], ["two"]]

    def test_block_ids_are_sequential(self):
        blocks, _ = _structure(["loop a", "end", "loop b", "end"])
        assert [b.block_id for b in blocks] == [1, 2]

    def test_top_level_relation_not_attributed(self):
        blocks, relations = _structure(["A->>B: outside", "loop x", "A->>B: inside", "end"])
        (loop,) = blocks
        assert not loop.contains(relations[0])
        assert loop.contains(relations[1])


# ─────────────────────────────────────────────────────────
# Nesting
# ─────────────────────────────────────────────────────────


class TestNesting:
    def test_innermost_block_wins(self):
        blocks, relations = _structure(["loop outer", "alt inner", "A->>B: deep", "end", "A->>B: shallow", "end"])
        loop, alt = blocks
        assert _labels(alt.branches[0].relations) == ["deep"]
        assert _labels(loop.relations) == ["shallow"]
        owners = [b for b in blocks if b.contains(relations[0])]
        assert owners == [alt]

    def test_alt_inside_par_does_not_close_par(self):
        blocks, _ = _structure([
            "par first",
            "A->>B: one",
            "and second",
            "alt check",
            "A->>B: two",
            "end",
            "A->>B: three",
            "end",
        ])
        par, alt = blocks
        assert (alt.close_line, par.close_line) == (5, 7)
        assert [_labels(lane.relations) for lane in par.branches] == [["one"], ["three"]]
        assert _labels(alt.branches[0].relations) == ["two"]

    def test_nested_par_records_parent(self):
        blocks, _ = _structure(["par outer", "par inner", "A->>B: x", "end", "end"])
        outer, inner = blocks
        assert inner.parent is outer
        assert outer.parent is None

    def test_region_end_does_not_close_block(self):
        blocks, _ = _structure(["loop x", "rect rgb(0,0,0)", "A->>B: inside", "end", "A->>B: after", "end"])
        (loop,) = blocks
        assert _labels(loop.relations) == ["inside", "after"]
        assert loop.close_line == 5


# ─────────────────────────────────────────────────────────
# Malformed input
# ─────────────────────────────────────────────────────────


class TestMalformed:
    def test_unclosed_block_ends_at_last_line(self):
        blocks, _ = _structure(["loop forever", "A->>B: tick", "A->>B: tock"])
        assert blocks[0].close_line == 2

    def test_unmatched_end_ignored(self):
        blocks, relations = _structure(["end", "A->>B: hi"])
        assert blocks == []

    def test_else_outside_alt_ignored(self):
        state = BlockState()
        assert add_branch(state, "else", "", 0) is None

    def test_close_with_empty_stack(self):
        assert close_construct(BlockState(), 3) is None

    def test_attribute_without_open_block(self):
        assert attribute(BlockState(), Relation("A", "B")) is None

    def test_option_goes_to_innermost_critical(self):
        state = BlockState()
        crit = open_block(state, "critical", "outer", 0)
        open_block(state, "loop", "inner", 1)
        assert add_branch(state, "option", "fallback", 2) is crit


# ─────────────────────────────────────────────────────────
# Early-exit post-pass
# ─────────────────────────────────────────────────────────


class TestEarlyExit:
    def test_break_holds_its_messages(self):
        blocks, _ = _structure(["break when failed", "A->>B: error", "end"])
        (brk,) = blocks
        assert brk.kind == BLOCK_EARLY_EXIT
        assert _labels(brk.relations) == ["error"]

    def test_break_inside_alt_owns_message_exclusively(self):
        blocks, relations = _structure([
            "alt ok",
            "A->>B: fine",
            "else bad",
            "break stop",
            "A->>B: halt",
            "end",
            "end",
        ])
        alt, brk = blocks
        assert _labels(brk.relations) == ["halt"]
        assert alt.branches[1].relations == []
        assert [b for b in blocks if b.contains(relations[1])] == [brk]

    def test_block_nested_in_break_keeps_its_messages(self):
        blocks, _ = _structure(["break stop", "loop retry", "A->>B: again", "end", "A->>B: give up", "end"])
        brk, loop = blocks
        assert _labels(loop.relations) == ["again"]
        assert _labels(brk.relations) == ["give up"]


class TestContainmentInvariant:
    def test_every_attributed_relation_lies_within_its_block(self):
        blocks, _ = _structure([
            "loop poll",
            "A->>B: ask",
            "alt ready",
            "A->>B: take",
            "else",
            "break none",
            "A->>B: stop",
            "end",
            "end",
            "end",
            "par",
            "A->>B: x",
            "and",
            "A->>B: y",
            "end",
        ])
        for block in blocks:
            for rel in block.all_relations():
                assert block.covers_line(rel.source_line), (block.kind, rel.label)

    def test_each_relation_has_at_most_one_owner(self):
        blocks, relations = _structure([
            "alt a", "loop b", "A->>B: one", "end", "else", "A->>B: two", "end",
        ])
        for rel in relations:
            assert len([b for b in blocks if b.contains(rel)]) <= 1
