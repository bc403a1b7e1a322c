"""
mermaid_describe/visual_tree.py

Read-only queries over a rendered Mermaid SVG.

The rendered tree is optional input.  Generators fall back to it for the
node count, the diagram title, actor names and, for timelines, the
section/period structure when the source text yields nothing.  Every
query accepts ``None`` and returns an empty result for it.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple, Union

from mermaid_describe.debug_trace import trace
from mermaid_describe.models import Section, TimePeriod, resolve_diagram_type

log = logging.getLogger(__name__)

_SVG_NS = "http://www.w3.org/2000/svg"

# Fallback class-name heuristics for detection (class -> inferred role)
_CLASS_HEURISTICS: Dict[str, str] = {
    "nodes": "flowchart-v2",
    "actor": "sequence",
    "timeline-node": "timeline",
    "journey-section": "journey",
    "pieCircle": "pie",
    "commit-bullets": "gitGraph",
    "architecture-services": "architecture",
}

VisualTree = Optional[ET.Element]


# ─────────────────────────────────────────────────────────
# Loading
# ─────────────────────────────────────────────────────────


def load_visual_tree(svg: Union[str, bytes, ET.Element, None]) -> VisualTree:
    """Return the root element for *svg*.

    Args:
        svg: SVG markup, an already parsed element, or ``None``.

    Returns:
        The root ``<svg>`` element, or ``None`` when *svg* is empty or
        cannot be parsed.
    """
    if svg is None:
        return None
    if isinstance(svg, ET.Element):
        return svg
    if isinstance(svg, bytes):
        svg = svg.decode("utf-8", errors="replace")
    if not svg.strip():
        return None
    try:
        return ET.fromstring(svg)
    except ET.ParseError as exc:
        log.warning("Ignoring unparseable SVG: %s", exc)
        return None


def detect_role(root: VisualTree) -> Optional[str]:
    """Registry tag for a rendered tree, from ``aria-roledescription`` or
    Mermaid-specific class names."""
    if root is None:
        return None

    role = root.get("aria-roledescription", "")
    tag = resolve_diagram_type(role)
    if tag:
        return tag

    for el in root.iter():
        for token in el.get("class", "").split():
            if token in _CLASS_HEURISTICS:
                return resolve_diagram_type(_CLASS_HEURISTICS[token])
    return None


# ─────────────────────────────────────────────────────────
# Element helpers
# ─────────────────────────────────────────────────────────


def _has_class(el: ET.Element, class_name: str) -> bool:
    return class_name in el.get("class", "").split()


def _local_tag(el: ET.Element) -> str:
    tag = el.tag if isinstance(el.tag, str) else ""
    return tag.rsplit("}", 1)[-1]


def find_by_class(root: VisualTree, class_name: str, tag: Optional[str] = None) -> List[ET.Element]:
    """All descendants of *root* whose class list contains *class_name*.

    Args:
        root: Tree to search (``None`` yields ``[]``).
        class_name: A single CSS class token.
        tag: Restrict to elements with this local tag name (``"g"``...).
    """
    if root is None:
        return []
    result = []
    for el in root.iter():
        if tag is not None and _local_tag(el) != tag:
            continue
        if _has_class(el, class_name):
            result.append(el)
    return result


def find_first_by_class(root: VisualTree, class_name: str) -> Optional[ET.Element]:
    found = find_by_class(root, class_name)
    return found[0] if found else None


def text_of(el: Optional[ET.Element]) -> str:
    """Joined, whitespace-normalised text content of *el*."""
    if el is None:
        return ""
    parts = list(el.itertext())
    return " ".join(p.strip() for p in parts if p.strip())


# ─────────────────────────────────────────────────────────
# Queries used by the generators
# ─────────────────────────────────────────────────────────


def count_nodes(root: VisualTree) -> int:
    """Number of ``.node`` elements (0 when absent)."""
    return len(find_by_class(root, "node"))


def extract_title(root: VisualTree) -> Optional[str]:
    """Diagram title: the ``<title>`` element, else the top-most ``<text>``."""
    if root is None:
        return None

    for el in root.iter(f"{{{_SVG_NS}}}title"):
        txt = text_of(el)
        if txt:
            return txt
    for el in root.iter("title"):
        txt = text_of(el)
        if txt:
            return txt

    texts: List[Tuple[float, ET.Element]] = []
    for el in root.iter():
        if _local_tag(el) != "text":
            continue
        try:
            y = float(el.get("y", "0") or "0")
        except ValueError:
            y = 0.0
        texts.append((y, el))
    if texts:
        texts.sort(key=lambda pair: pair[0])
        txt = text_of(texts[0][1])
        if txt:
            return txt
    return None


def extract_actor_names(root: VisualTree, limit: int = 5) -> List[str]:
    """Names of up to *limit* distinct ``.actor`` elements, with ``"and others"``
    appended when more exist."""
    names: List[str] = []
    for el in find_by_class(root, "actor"):
        txt = text_of(el)
        if txt and txt not in names:
            names.append(txt)
    if len(names) > limit:
        return names[:limit] + ["and others"]
    return names


def _periods_under(el: ET.Element) -> List[TimePeriod]:
    periods = []
    for group in find_by_class(el, "timeline-time-period"):
        label = find_first_by_class(group, "time-period-label")
        time = text_of(label) or "Unknown Period"
        events = [text_of(ev) for ev in find_by_class(group, "timeline-event")]
        periods.append(TimePeriod(time=time, events=[e for e in events if e]))
    return periods


def extract_timeline(root: VisualTree) -> Tuple[str, List[Section], List[TimePeriod]]:
    """Title, sections and top-level periods of a rendered timeline.

    Sections come from ``.timeline-section`` groups; when there are none
    the ``.timeline-time-period`` groups are returned as a flat list.
    """
    if root is None:
        return "", [], []

    title = text_of(find_first_by_class(root, "timelineTitle"))

    sections: List[Section] = []
    for sect_el in find_by_class(root, "timeline-section"):
        name = text_of(find_first_by_class(sect_el, "section-name")) or "Unnamed Section"
        sections.append(Section(name=name, periods=_periods_under(sect_el)))

    periods: List[TimePeriod] = [] if sections else _periods_under(root)
    trace(f"timeline from SVG: {len(sections)} sections, {len(periods)} periods", "SVG")
    return title, sections, periods
