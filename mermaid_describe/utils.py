"""
mermaid_describe/utils.py

Text helpers shared by the description generators: list joining, step
number words, pluralisation and Mermaid node-text cleanup.
"""

from __future__ import annotations

import html
import re
from typing import Iterable, List, Optional, Sequence


NUMBER_WORDS = (
    "zero", "one", "two", "three", "four",
    "five", "six", "seven", "eight", "nine",
)


def escape(text: Optional[str]) -> str:
    """HTML-escape user supplied text for inclusion in markup."""
    return html.escape(text or "", quote=True)


def format_list(items: Sequence[str]) -> str:
    """
    Join items into an English list with an Oxford comma.

    ``[]`` → ``""``, ``[a]`` → ``a``, ``[a, b]`` → ``a and b``,
    ``[a, b, c]`` → ``a, b, and c``.
    """
    items = list(items or [])
    if not items:
        return ""
    if len(items) == 1:
        return str(items[0])
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return ", ".join(str(i) for i in items[:-1]) + f", and {items[-1]}"


def format_step_number(step: int) -> str:
    """Numbers 0-9 as words, 10 and above as numerals."""
    if 0 <= step <= 9:
        return NUMBER_WORDS[step]
    return str(step)


def capitalize(text: str) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:]


def pluralize(singular: str) -> str:
    """Regular English plural of *singular*."""
    if singular.endswith("y") and not singular.endswith(("ay", "ey", "oy", "uy")):
        return singular[:-1] + "ies"
    if singular.endswith(("s", "x", "z", "ch", "sh")):
        return singular + "es"
    return singular + "s"


def format_count_noun(count: Optional[int], singular: str, plural: Optional[str] = None) -> str:
    """
    Format a count with the matching singular or plural noun.

    Args:
        count: The count.  ``None`` is treated as zero.
        singular: Singular form of the noun.
        plural: Plural form; derived from *singular* when omitted.

    Returns:
        e.g. ``"1 actor"``, ``"3 boxes"``, ``"1,200 entries"``.
    """
    if plural is None:
        plural = pluralize(singular)
    if count is None:
        return f"0 {plural}"
    noun = singular if count == 1 else plural
    return f"{count:,} {noun}"


# Bracket pairs stripped from node text, outermost shapes first
_NODE_SHAPE_PATTERNS = [
    (re.compile(r"^\[\[|\]\]$"), ""),       # subroutine
    (re.compile(r"^\[/?|/?\]$"), ""),       # process and I/O
    (re.compile(r"^\(\[|\]\)$"), ""),       # stadium
    (re.compile(r"^\(\(|\)\)$"), ""),       # circle
    (re.compile(r"^\(|\)$"), ""),           # rounded
    (re.compile(r"^\{\{|\}\}$"), ""),       # hexagon
    (re.compile(r"^\{|\}$"), ""),           # decision
    (re.compile(r'^"`|`"$'), ""),           # markdown string
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),  # bold
    (re.compile(r"\*(.*?)\*"), r"\1"),      # italic
    (re.compile(r":::\s*[\w\s]+"), ""),     # class styling
    (re.compile(r":::$"), ""),
]


def clean_node_text(text: Optional[str]) -> str:
    """Remove Mermaid shape brackets, markdown emphasis and ``:::class`` suffixes."""
    if not text:
        return ""
    for pattern, repl in _NODE_SHAPE_PATTERNS:
        text = pattern.sub(repl, text)
    return text


# Numbers in these contexts stay as digits
_TECHNICAL_PATTERNS = [
    re.compile(r"WCAG \d+\.\d+"),
    re.compile(r"Web \d+\.\d+"),
    re.compile(r"HTML\d+"),
    re.compile(r"CSS\d+"),
    re.compile(r"\d+(?:px|rem|em|%)"),
    re.compile(r"\d+:\d+"),
    re.compile(r"\d+/\d+/\d+"),
    re.compile(r"\d+-\d+-\d+"),
    re.compile(r"\d+\.\d+"),
]

_SINGLE_DIGIT = re.compile(
    r"""(\s|^|[,.;:"'(\[{])(step\s+)?(\d)(?=\s|$|[,.;:"')\]}])""",
    re.IGNORECASE,
)


def format_numbers_in_text(text: Optional[str]) -> Optional[str]:
    """
    Spell out standalone single digits in running prose.

    Text that already contains markup is returned unchanged.  Version
    numbers, measurements, times, dates and decimals are preserved.
    """
    if not text:
        return text
    if "<" in text and ">" in text:
        return text

    protected: List[str] = []

    def _protect(m: re.Match) -> str:
        protected.append(m.group(0))
        return f"\x00{len(protected) - 1}\x00"

    for pattern in _TECHNICAL_PATTERNS:
        text = pattern.sub(_protect, text)

    def _spell(m: re.Match) -> str:
        prefix, step, digit = m.group(1), m.group(2) or "", m.group(3)
        return f"{prefix}{step}{NUMBER_WORDS[int(digit)]}"

    text = _SINGLE_DIGIT.sub(_spell, text)

    return re.sub(r"\x00(\d+)\x00", lambda m: protected[int(m.group(1))], text)


def unique_sorted(values: Iterable[int]) -> List[int]:
    return sorted(set(values))
