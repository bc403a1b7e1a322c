"""
mermaid_describe/directives.py

Author supplied accessibility directives.

``accTitle: text`` replaces the synthesized short description and
``accDescr: text`` (or the multi-line ``accDescr { ... }`` form) replaces
the detailed one.  Overrides are applied after synthesis, so generators
never look at directives themselves; parsers only skip the lines
``directive_lines`` reports.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Set

from mermaid_describe.debug_trace import trace
from mermaid_describe.models import Description
from mermaid_describe.utils import escape

_ACC_TITLE_RE = re.compile(r"accTitle\s*:[ \t]*(.*?)(?:\n|$)")
_ACC_DESCR_RE = re.compile(r"accDescr\s*:[ \t]*(.*?)(?:\n|$)")
_ACC_DESCR_BLOCK_RE = re.compile(r"accDescr\s*\{([^}]*)\}", re.DOTALL)
_DIRECTIVE_LINE_RE = re.compile(r"^\s*acc(?:Title|Descr)\b")
_DESCR_BLOCK_OPEN_RE = re.compile(r"^\s*accDescr\s*\{")


@dataclass
class Directives:
    """Explicit title/description found in diagram source.

    Attributes:
        title: ``accTitle`` value, or None when absent or empty.
        description: ``accDescr`` value, or None when absent or empty.
    """
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.title is not None or self.description is not None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_directives(code: Optional[str]) -> Directives:
    """Extract ``accTitle`` / ``accDescr`` from *code*.

    The single-line ``accDescr:`` form wins over the block form when both
    are present.
    """
    result = Directives()
    if not code:
        return result

    m = _ACC_TITLE_RE.search(code)
    if m:
        result.title = _clean(m.group(1))

    m = _ACC_DESCR_RE.search(code)
    if m:
        result.description = _clean(m.group(1))

    if result.description is None:
        m = _ACC_DESCR_BLOCK_RE.search(code)
        if m:
            result.description = _clean(m.group(1))

    if result.present:
        trace(f"directives title={result.title!r} description={result.description is not None}", "DIRECTIVE")
    return result


def directive_lines(code: Optional[str]) -> Set[int]:
    """0-based indexes of the lines holding directives.

    Covers ``accTitle:`` / ``accDescr:`` lines and every line of an
    ``accDescr { ... }`` block, so parsers can skip them as content.
    """
    skipped: Set[int] = set()
    in_block = False
    for idx, raw in enumerate((code or "").split("\n")):
        if in_block:
            skipped.add(idx)
            in_block = "}" not in raw
            continue
        if _DIRECTIVE_LINE_RE.match(raw):
            skipped.add(idx)
            in_block = _DESCR_BLOCK_OPEN_RE.match(raw) is not None and "}" not in raw
    return skipped


def apply_directives(description: Description, code: Optional[str]) -> Description:
    """Return *description* with any directive values substituted.

    The title replaces ``short`` verbatim and ``short_html`` escaped; the
    description replaces ``detailed`` verbatim.
    """
    directives = parse_directives(code)
    if not directives.present:
        return description

    short, short_html, detailed = description.short, description.short_html, description.detailed
    if directives.title is not None:
        short = directives.title
        short_html = escape(directives.title)
    if directives.description is not None:
        detailed = directives.description
    return Description(short=short, short_html=short_html, detailed=detailed)
