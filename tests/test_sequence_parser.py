"""
tests/test_sequence_parser.py

Sequence diagram parser: declarations, message arrows, activations, notes,
box groups, lifecycle events, comments and block attribution.
"""
from __future__ import annotations

import pytest

from mermaid_describe.models import BLOCK_CONDITIONAL, KIND_ACTOR, KIND_PARTICIPANT
from mermaid_describe.parsers.sequence import (
    arrow_style,
    classify_undeclared,
    parse_message,
    parse_sequence,
    strip_box_colour,
)

SCENARIO = "\n".join([
    "sequenceDiagram",
    "participant X",
    "actor Y",
    "Y->>X: Hello",
    "alt ok",
    "Y->>X: Bye",
    "end",
])


# ─────────────────────────────────────────────────────────
# Declarations
# ─────────────────────────────────────────────────────────


class TestDeclarations:
    def test_declared_kinds_and_aliases(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    actor U as End User\n"
            "    participant API as Order<br/>Service\n"
        )
        assert model.entities["U"].kind == KIND_ACTOR
        assert model.entities["U"].display_name == "End User"
        assert model.entities["API"].kind == KIND_PARTICIPANT
        assert model.entities["API"].display_name == "Order Service"

    def test_undeclared_endpoints_are_synthesized(self):
        model = parse_sequence("sequenceDiagram\n    user->>Server: hi")
        assert model.entities["user"].kind == KIND_ACTOR
        assert model.entities["Server"].kind == KIND_PARTICIPANT
        assert not model.entities["Server"].declared

    def test_later_declaration_updates_synthesized_entity(self):
        model = parse_sequence("sequenceDiagram\n    A->>B: hi\n    actor B as Bea")
        assert model.entities["B"].kind == KIND_ACTOR
        assert model.entities["B"].display_name == "Bea"
        assert model.entities["B"].declared

    @pytest.mark.parametrize("name,kind", [
        ("user", KIND_ACTOR),
        ("Alice", KIND_ACTOR),
        ("WebClient", KIND_ACTOR),
        ("CustomerPortal", KIND_ACTOR),
        ("Database", KIND_PARTICIPANT),
    ])
    def test_classify_undeclared(self, name, kind):
        assert classify_undeclared(name) == kind

    def test_title(self):
        model = parse_sequence("sequenceDiagram\n    title Login flow\n    A->>B: hi")
        assert model.title == "Login flow"


# ─────────────────────────────────────────────────────────
# Messages
# ─────────────────────────────────────────────────────────


class TestMessages:
    def test_parse_message_splits_parts(self):
        assert parse_message("A->>B: hello") == ("A", "->>", "", "B", "hello")
        assert parse_message("A-->>-B") == ("A", "-->>", "-", "B", "")
        assert parse_message("not a message") is None

    def test_hyphenated_ids(self):
        assert parse_message("web-app->>auth-svc: login") == ("web-app", "->>", "", "auth-svc", "login")

    def test_error_arrow(self):
        model = parse_sequence("sequenceDiagram\n    A--xB: failed")
        style = model.relations[0].style
        assert style.arrow == "--x"
        assert style.is_error and style.is_response

    def test_bidirectional_arrow(self):
        model = parse_sequence("sequenceDiagram\n    A<<->>B: sync")
        style = model.relations[0].style
        assert style.is_bidirectional
        assert not style.is_response

    def test_async_arrow(self):
        assert arrow_style("-)").is_async
        assert not arrow_style("->>").is_async

    def test_activation_shorthand_and_numbering(self):
        model = parse_sequence("sequenceDiagram\n    A->>+B: 1. Start\n    B-->>-A: Done")
        first, second = model.relations
        assert first.label == "Start"
        assert first.style.message_number == 1
        assert first.style.activation == "+"
        assert [(a.participant, a.event) for a in model.activations] == [("B", "activate"), ("B", "deactivate")]
        assert second.style.is_response

    def test_explicit_activation_lines(self):
        model = parse_sequence("sequenceDiagram\n    activate A\n    A->>B: go\n    deactivate A")
        assert [(a.line, a.event) for a in model.activations] == [(1, "activate"), (3, "deactivate")]

    def test_message_lines_and_outgoing(self):
        model = parse_sequence("sequenceDiagram\n\n    A->>B: one\n    A->>C: two")
        assert [r.source_line for r in model.relations] == [2, 3]
        assert [r.target for r in model.entities["A"].outgoing] == ["B", "C"]
        assert model.extras["message_count"] == 2


# ─────────────────────────────────────────────────────────
# Notes, groups, lifecycle and comments
# ─────────────────────────────────────────────────────────


class TestAnnotations:
    def test_notes(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    Note right of A: solo\n"
            "    Note over A,B: shared\n"
        )
        solo, shared = model.notes
        assert (solo.position, solo.participants, solo.content) == ("right", ["A"], "solo")
        assert not solo.is_spanning
        assert shared.participants == ["A", "B"]
        assert shared.is_spanning

    def test_box_group_membership(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    box Aqua Frontend\n"
            "    participant A\n"
            "    end\n"
            "    participant B\n"
        )
        (group,) = model.groups
        assert group.name == "Frontend"
        assert group.members == ["A"]
        assert model.entities["A"].group == "Frontend"
        assert model.entities["B"].group is None

    def test_box_inside_does_not_confuse_block_end(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    box Backend\n"
            "    participant S\n"
            "    end\n"
            "    loop poll\n"
            "    C->>S: ping\n"
            "    end\n"
        )
        assert [g.name for g in model.groups] == ["Backend"]
        assert model.blocks[0].relations[0].label == "ping"

    @pytest.mark.parametrize("content,name", [
        ("Aqua Frontend", "Frontend"),
        ("rgb(10, 20, 30) Backend", "Backend"),
        ("rgba(0,0,0,0.5) Storage", "Storage"),
        ("Purple", "Purple"),
        ("Services", "Services"),
    ])
    def test_strip_box_colour(self, content, name):
        assert strip_box_colour(content) == name

    def test_create_and_destroy(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    A->>B: start\n"
            "    create participant C as Cache\n"
            "    B->>C: fill\n"
            "    destroy C\n"
        )
        assert [(e.event, e.display_name, e.line) for e in model.lifecycle] == [
            ("create", "Cache", 2),
            ("destroy", "Cache", 4),
        ]

    def test_comments_standalone_and_inline(self):
        model = parse_sequence(
            "sequenceDiagram\n"
            "    %% setup phase\n"
            "    A->>B: hi %% check this\n"
        )
        standalone, inline = model.comments
        assert standalone.content == "setup phase"
        assert not standalone.is_inline
        assert inline.content == "check this"
        assert inline.message_content == "A->>B: hi"
        assert model.relations[0].label == "hi"

    def test_init_directive_ignored(self):
        model = parse_sequence('%%{init: {"theme": "dark"}}%%\nsequenceDiagram\n    A->>B: hi')
        assert model.comments == []
        assert len(model.relations) == 1


# ─────────────────────────────────────────────────────────
# Block attribution
# ─────────────────────────────────────────────────────────


class TestBlocks:
    def test_message_in_alt_is_attributed(self):
        model = parse_sequence(SCENARIO)
        hello, bye = model.relations
        (alt,) = model.blocks
        assert alt.kind == BLOCK_CONDITIONAL
        assert alt.branches[0].relations == [bye]
        assert model.block_for(hello) is None
        assert model.block_for(bye) is alt

    def test_block_lines(self):
        (alt,) = parse_sequence(SCENARIO).blocks
        assert (alt.open_line, alt.close_line) == (4, 6)

    def test_empty_source(self):
        model = parse_sequence("")
        assert model.relations == []
        assert model.blocks == []
