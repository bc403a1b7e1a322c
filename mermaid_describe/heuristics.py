"""
mermaid_describe/heuristics.py

Keyword heuristics used by the sequence narration.

Every function here is a pure function of its inputs so it can be tested
and swapped on its own:

- ``determine_branch_outcome`` -- success / error wording for a branch
- ``format_message_type``      -- verb phrase for an arrow
- ``infer_title_from_content`` / ``infer_flow_name`` -- names for untitled diagrams
- ``generate_flow_description`` -- one-paragraph summary of a flow
- ``organise_comments``        -- developer comment categories
- ``extract_logical_flows``    -- keyword phases for long diagrams
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from mermaid_describe.debug_trace import trace
from mermaid_describe.models import (
    BLOCK_CONDITIONAL,
    BLOCK_CRITICAL,
    BLOCK_EARLY_EXIT,
    BLOCK_OPTIONAL,
    Comment,
    DiagramModel,
    KIND_ACTOR,
    KIND_PARTICIPANT,
    Relation,
)
from mermaid_describe.utils import format_list

DEFAULT_FLOW_NAME = "Message Exchange Process"
INITIAL_FLOW_NAME = "Initial Setup"


def _mentions(relations: Iterable[Relation], keywords: Sequence[str]) -> bool:
    for rel in relations:
        text = rel.label.lower()
        if text and any(k in text for k in keywords):
            return True
    return False


# ─────────────────────────────────────────────────────────
# Branch outcome
# ─────────────────────────────────────────────────────────

SUCCESS_KEYWORDS = ("success", "dashboard", "complete", "display", "show ")
ERROR_KEYWORDS = ("error", "fail", "reject", "denied")

OUTCOME_SUCCESS = "Outcome: Success path - process completes successfully"
OUTCOME_ERROR = "Outcome: Error path - process handles failure condition"
OUTCOME_GENERIC = "Outcome: Process continues with specific logic for this condition"


def determine_branch_outcome(relations: Sequence[Relation], window: int = 2) -> str:
    """Summarise how a branch ends from its last *window* messages.

    Success keywords win over error keywords.  An empty branch has no
    outcome (``""``).
    """
    if not relations:
        return ""
    tail = list(relations)[-window:] if window > 0 else list(relations)
    if _mentions(tail, SUCCESS_KEYWORDS):
        return OUTCOME_SUCCESS
    if _mentions(tail, ERROR_KEYWORDS):
        return OUTCOME_ERROR
    return OUTCOME_GENERIC


# ─────────────────────────────────────────────────────────
# Message verbs
# ─────────────────────────────────────────────────────────


def format_message_type(arrow: str) -> str:
    """Verb phrase placed between sender and receiver for *arrow*."""
    if not arrow:
        return "sends to"
    if arrow.startswith("<<"):
        return "communicates bidirectionally with"

    is_error = "x" in arrow
    is_async = ")" in arrow
    if "--" in arrow:
        if is_error:
            return "returns error to"
        if is_async:
            return "sends async response to"
        return "responds to"
    if is_error:
        return "sends error to"
    if is_async:
        return "sends async message to"
    return "sends to"


# ─────────────────────────────────────────────────────────
# Naming
# ─────────────────────────────────────────────────────────

_LOGIN_KEYWORDS = ("login", "auth", "sign in")
_REGISTER_KEYWORDS = ("register", "sign up", "create account")
_CHECKOUT_KEYWORDS = ("payment", "checkout", "purchase")


def infer_title_from_content(model: DiagramModel) -> str:
    """A descriptive title for a sequence diagram without ``title``."""
    if model.title:
        return model.title

    messages = model.relations
    if _mentions(messages, ("secure", "encrypt", "key", "certificate")):
        return "Secure Communication Protocol"

    has_login = _mentions(messages, _LOGIN_KEYWORDS)
    has_registration = _mentions(messages, _REGISTER_KEYWORDS)
    if has_login and has_registration:
        return "User Authentication and Registration Process"
    if has_login:
        return "User Authentication Process"
    if has_registration:
        return "User Registration Process"
    if _mentions(messages, _CHECKOUT_KEYWORDS):
        return "Checkout Process"

    participants = [name.lower() for name in model.names_of_kind(KIND_PARTICIPANT)]
    has_api = any("api" in p or "service" in p for p in participants)
    has_database = any("database" in p or "db" in p for p in participants)
    if has_api and has_database:
        return "API and Database Interaction"
    if has_api:
        return "API Interaction Flow"
    if has_database:
        return "Database Transaction Process"

    return "Message Exchange Sequence"


# Checked in order after the login/registration pair
_FLOW_NAME_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("profile", "user data", "account info"), "Profile Management"),
    (("payment", "checkout", "purchase"), "Checkout Process"),
    (("search", "query", "find"), "Search Functionality"),
    (("query", "fetch", "get", "retrieve"), "Data Retrieval"),
    (("initialise", "setup", "establish"), "Initialisation and Setup"),
]


def _flow_participants(model: DiagramModel, relations: Sequence[Relation]) -> List[str]:
    """Distinct display names of every sender and receiver in *relations*."""
    names: List[str] = []
    ids = [r.source for r in relations] + [r.target for r in relations]
    for entity_id in ids:
        name = model.display_name(entity_id)
        if name and name not in names:
            names.append(name)
    return names


def infer_flow_name(model: DiagramModel, relations: Optional[Sequence[Relation]] = None) -> str:
    """Name a flow from its message text, then from who takes part."""
    if model.title:
        return model.title
    if relations is None:
        relations = model.relations

    if _mentions(relations, ("secure", "encrypt", "key exchange")):
        return "Secure Communication Setup"
    has_login = _mentions(relations, _LOGIN_KEYWORDS + ("credentials",))
    has_registration = _mentions(relations, _REGISTER_KEYWORDS)
    if has_login and has_registration:
        return "Authentication and Registration"
    if has_login:
        return "User Authentication"
    if has_registration:
        return "User Registration"
    for keywords, name in _FLOW_NAME_RULES:
        if _mentions(relations, keywords):
            return name

    names = [n.lower() for n in _flow_participants(model, relations)]
    if any("user" in n for n in names):
        return "User Interaction"
    if any("frontend" in n for n in names) and any("api" in n for n in names):
        return "Frontend-Backend Communication"
    if any("database" in n or "db" in n for n in names):
        return "Database Operations"
    return DEFAULT_FLOW_NAME


_FLOW_EPILOGUES: Dict[str, str] = {
    "User Authentication": (
        "The flow illustrates how user login credentials are validated "
        "and how the system responds based on their validity."
    ),
    "Profile Management": (
        "The flow shows how user profile data is requested and delivered "
        "between system components."
    ),
}

_CONDITIONAL_KINDS = (BLOCK_CONDITIONAL, BLOCK_OPTIONAL, BLOCK_CRITICAL)


def generate_flow_description(model: DiagramModel, flow_name: str, relations: Sequence[Relation]) -> str:
    """One paragraph of plain prose describing a flow."""
    suffix = "" if "process" in flow_name.lower() else " process"
    text = f"This flow illustrates the {flow_name.lower()}{suffix}"

    names = _flow_participants(model, relations)
    actor_names = set(model.names_of_kind(KIND_ACTOR))
    system_names = set(model.names_of_kind(KIND_PARTICIPANT))
    actors = [n for n in names if n in actor_names]
    systems = [n for n in names if n in system_names]
    if actors and systems:
        text += f" involving {format_list(actors)} interacting with {format_list(systems)}"
    elif actors or systems:
        text += f" involving {format_list(actors or systems)}"

    has_requests = any(not r.style.is_response for r in relations)
    has_responses = any(r.style.is_response for r in relations)
    if has_requests and has_responses:
        text += ". It shows both requests (solid arrows) and responses (dashed arrows)"
    elif has_requests:
        text += ". It primarily shows requests or commands"
    elif has_responses:
        text += ". It primarily shows responses or return messages"

    if any(_in_conditional(model, r) for r in relations):
        text += ". The flow includes conditional paths based on different criteria"
    if model.has_block(BLOCK_EARLY_EXIT):
        text += (
            ". This flow includes break condition(s) where the sequence will stop "
            "if specific criteria are met, preventing subsequent messages from being processed"
        )

    epilogue = _FLOW_EPILOGUES.get(flow_name)
    if epilogue:
        text += ". " + epilogue
    if not text.endswith("."):
        text += "."
    return text


def _in_conditional(model: DiagramModel, relation: Relation) -> bool:
    block = model.block_for(relation)
    return block is not None and block.kind in _CONDITIONAL_KINDS


# ─────────────────────────────────────────────────────────
# Developer comments
# ─────────────────────────────────────────────────────────

COMMENT_CATEGORIES = ("structure", "flow", "functionality", "other")

_COMMENT_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("structure", ("box", "group", "title")),
    ("flow", ("flow", "block", "note")),
    ("functionality", ("activation", "create", "destroy")),
]


def organise_comments(comments: Iterable[Comment]) -> Dict[str, List[Comment]]:
    """Bucket comments by the first category whose keyword they mention."""
    buckets: Dict[str, List[Comment]] = {name: [] for name in COMMENT_CATEGORIES}
    for comment in comments:
        content = comment.content.lower()
        for category, keywords in _COMMENT_RULES:
            if any(k in content for k in keywords):
                buckets[category].append(comment)
                break
        else:
            buckets["other"].append(comment)
    return buckets


# ─────────────────────────────────────────────────────────
# Logical flows
# ─────────────────────────────────────────────────────────


@dataclass
class LogicalFlow:
    """A named run of consecutive messages narrated as one timeline."""
    name: str
    description: str
    relations: List[Relation] = field(default_factory=list)


# (phase name, keywords that open it)
PHASES: List[Tuple[str, Tuple[str, ...]]] = [
    ("Authentication Phase", ("login", "authenticate", "credentials")),
    ("Password Reset Phase", ("forgot password", "reset password")),
    ("Payment Processing Phase", ("purchase", "payment", "order")),
    ("Order Tracking Phase", ("check status", "track order")),
]


def _make_flow(model: DiagramModel, name: str, relations: List[Relation]) -> LogicalFlow:
    return LogicalFlow(name=name, description=generate_flow_description(model, name, relations), relations=relations)


def _single_flow(model: DiagramModel) -> List[LogicalFlow]:
    name = model.title or infer_flow_name(model, model.relations)
    return [_make_flow(model, name, list(model.relations))]


def _snap_to_blocks(model: DiagramModel, messages: List[Relation], starts: List[Tuple[int, str]]) -> List[Tuple[int, str]]:
    """Move a phase start that falls inside a block back to the block's first message.

    A phase whose start lands on an earlier phase's start is dropped, so
    every block stays whole within one flow.
    """
    first_index: Dict[int, int] = {}
    for index, rel in enumerate(messages):
        block = model.top_level_block(rel)
        if block is not None:
            first_index.setdefault(block.block_id, index)

    snapped: List[Tuple[int, str]] = []
    for index, name in starts:
        block = model.top_level_block(messages[index])
        if block is not None:
            index = first_index[block.block_id]
        if snapped and index <= snapped[-1][0]:
            trace(f"phase {name!r} merged into {snapped[-1][1]!r}", "SYNTH")
            continue
        snapped.append((index, name))
    return snapped


def extract_logical_flows(model: DiagramModel, threshold: int = 15) -> List[LogicalFlow]:
    """Split the messages into named flows.

    A titled diagram, or one with fewer than *threshold* messages, is one
    flow.  Otherwise each phase opens at the first message mentioning one
    of its keywords and runs until the next phase opens; messages before
    the first phase form an "Initial Setup" flow.  A phase never opens
    inside a block; its start moves back to the block's first message.

    Returns:
        At least one flow when the diagram has messages, else ``[]``.
    """
    messages = list(model.relations)
    if not messages:
        return []
    if model.title or len(messages) < threshold:
        return _single_flow(model)

    starts: List[Tuple[int, str]] = []
    opened = set()
    for index, rel in enumerate(messages):
        text = rel.label.lower()
        if not text:
            continue
        for name, keywords in PHASES:
            if name not in opened and any(k in text for k in keywords):
                starts.append((index, name))
                opened.add(name)
                break

    starts = _snap_to_blocks(model, messages, starts)
    if not starts:
        return _single_flow(model)

    flows: List[LogicalFlow] = []
    if starts[0][0] > 0:
        flows.append(_make_flow(model, INITIAL_FLOW_NAME, messages[:starts[0][0]]))
    for i, (start, name) in enumerate(starts):
        end = starts[i + 1][0] if i + 1 < len(starts) else len(messages)
        flows.append(_make_flow(model, name, messages[start:end]))

    trace(f"logical flows: {[f.name for f in flows]}", "SYNTH")
    return flows
