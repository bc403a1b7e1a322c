"""
mermaid_describe/detection.py

Diagram-type classification and cheap whole-source heuristics.

``detect_diagram_type`` stands in for the host application's classifier:
the first header keyword found, in a fixed priority order, decides the
registry tag.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from mermaid_describe.debug_trace import trace

log = logging.getLogger(__name__)

DEFAULT_DIAGRAM_TYPE = "flowchart"

_INIT_BLOCK_RE = re.compile(r"^\s*%%?\{init:[\s\S]*?\}%%?\s*", re.MULTILINE)

# (pattern, tag), checked in order; first match wins
_TYPE_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^\s*quadrantChart(?:\s+|$)", re.I | re.M), "quadrantChart"),
    (re.compile(r"^\s*architecture-beta(?:\s+|$)", re.I | re.M), "architecture-beta"),
    (re.compile(r"^\s*gantt(?:\s+|$)", re.I | re.M), "gantt"),
    (re.compile(r"^\s*pie(?:\s+|$)", re.I | re.M), "pieChart"),
    (re.compile(r"^\s*sequenceDiagram(?:\s+|$)", re.I | re.M), "sequenceDiagram"),
    (re.compile(r"^\s*classDiagram(?:\s+|$)", re.I | re.M), "classDiagram"),
    (re.compile(r"^\s*stateDiagram(?:-v2)?(?:\s+|$)", re.I | re.M), "stateDiagram"),
    (re.compile(r"^\s*erDiagram(?:\s+|$)", re.I | re.M), "entityRelationshipDiagram"),
    (re.compile(r"^\s*journey(?:\s+|$)", re.I | re.M), "userJourney"),
    (re.compile(r"^\s*mindmap(?:\s+|$)", re.I | re.M), "mindmap"),
    (re.compile(r"^\s*timeline(?:\s+|$)", re.I | re.M), "timeline"),
    (re.compile(r"^\s*gitGraph(?:\s+|$)", re.I | re.M), "gitGraph"),
    (re.compile(r"^\s*sankey(?:-beta)?(?:\s+|$)", re.I | re.M), "sankey"),
    (re.compile(r"^\s*(?:flowchart|graph)\s+", re.I | re.M), "flowchart"),
]

_SUBGRAPH_RE = re.compile(r"subgraph\s+([^\n]+)")
_SUBGRAPH_TITLE_RE = re.compile(r"subgraph\s+([^\[\n]+)(?:\s*\[([^\]]+)\])?")

_ORIENTATION_RE = re.compile(r"(?:graph|flowchart)\s+(TB|TD|BT|LR|RL)\b", re.I)

ORIENTATION_PHRASES = {
    "TB": "top to bottom",
    "BT": "bottom to top",
    "LR": "left to right",
    "RL": "right to left",
}


def strip_init_directives(code: str) -> str:
    """Remove ``%%{init: ...}%%`` front matter and theme lines."""
    code = _INIT_BLOCK_RE.sub("", code.strip())
    lines = code.split("\n")
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or "%{init:" in stripped or "themeVariables" in stripped:
            continue
        return "\n".join(lines[i:])
    return ""


def detect_diagram_type(code: Optional[str], split_complex: bool = True) -> str:
    """Classify Mermaid source into a registry tag.

    Args:
        code: Diagram source text.
        split_complex: Return ``flowchartComplex`` for flowcharts that
            declare subgraphs.

    Returns:
        The registry tag; ``flowchart`` when nothing matches.
    """
    if not code:
        return DEFAULT_DIAGRAM_TYPE

    clean = strip_init_directives(code)
    for pattern, tag in _TYPE_RULES:
        if pattern.search(clean):
            if tag == "flowchart" and split_complex and has_subgraphs(clean):
                tag = "flowchartComplex"
            trace(f"detected diagram type {tag}", "DETECT")
            return tag

    log.debug("No diagram header found, defaulting to %s", DEFAULT_DIAGRAM_TYPE)
    return DEFAULT_DIAGRAM_TYPE


def detect_orientation(code: Optional[str]) -> Optional[str]:
    """``TB`` / ``BT`` / ``LR`` / ``RL`` from the header; ``TD`` reads as ``TB``."""
    if not code:
        return None
    m = _ORIENTATION_RE.search(code)
    if not m:
        return None
    value = m.group(1).upper()
    return "TB" if value == "TD" else value


def orientation_phrase(orientation: Optional[str]) -> Optional[str]:
    if not orientation:
        return None
    return ORIENTATION_PHRASES.get(orientation.upper())


_DECISION_SHAPE_PATTERNS = [
    re.compile(r"\{\{([^}]+)\}\}"),
    re.compile(r"\[\{([^}]+)\}\]"),
    re.compile(r"\[[^\]]*\?[^\]]*\]"),
]
_ANY_SHAPE_RE = re.compile(r"\[[^\]]+\]|\([^)]+\)|\{\{[^}]+\}\}|\[\{[^}]+\}\]")


def is_decision_diagram(code: Optional[str]) -> bool:
    """True when decision shapes make up more than 30% of shaped nodes."""
    if not code:
        return False
    decisions = sum(len(p.findall(code)) for p in _DECISION_SHAPE_PATTERNS)
    total = len(_ANY_SHAPE_RE.findall(code))
    return total > 0 and decisions / total > 0.3


def has_subgraphs(code: Optional[str]) -> bool:
    return bool(code) and _SUBGRAPH_RE.search(code) is not None


def count_subgraphs(code: Optional[str]) -> int:
    if not code:
        return 0
    return len(_SUBGRAPH_RE.findall(code))


def subgraph_titles(code: Optional[str]) -> List[str]:
    """Subgraph titles, preferring the bracketed label over the id."""
    titles: List[str] = []
    if not code:
        return titles
    for m in _SUBGRAPH_RE.finditer(code):
        tm = _SUBGRAPH_TITLE_RE.match(m.group(0))
        if not tm or not tm.group(1):
            continue
        title = (tm.group(2) or tm.group(1)).strip()
        titles.append(title)
    return titles
