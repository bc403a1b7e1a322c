"""
mermaid_describe/generators/common.py

Building blocks shared by the per-type description generators.

``ShortBuilder`` assembles the plain and HTML short forms from one
sequence of calls so the two variants can only differ in markup.
``create_section`` wraps detailed-description content in the standard
``<section>`` / ``<h4>`` frame.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from mermaid_describe.utils import escape


class ShortBuilder:
    """Accumulate a short description in plain and HTML form together.

    Example::

        b = ShortBuilder("A flowchart")
        b.text(" showing ").span("diagram-title", title)
        plain, html = b.build()
    """

    def __init__(self, opening: str = "", transform: Optional[Callable[[str], str]] = None):
        self._transform = transform
        self._plain: List[str] = []
        self._html: List[str] = []
        if opening:
            self.text(opening)

    def _prepare(self, value: str) -> str:
        return self._transform(value) if self._transform else value

    def text(self, value: str) -> "ShortBuilder":
        """Append literal text to both variants (escaped in HTML)."""
        value = self._prepare(value)
        self._plain.append(value)
        self._html.append(escape(value))
        return self

    def span(self, css_class: str, value: str, verbatim: bool = False) -> "ShortBuilder":
        """Append *value*, wrapped in ``<span class=...>`` in the HTML variant.

        ``verbatim`` skips the builder's transform, for author text such as
        a diagram title.
        """
        if not verbatim:
            value = self._prepare(value)
        self._plain.append(value)
        self._html.append(f'<span class="{css_class}">{escape(value)}</span>')
        return self

    def build(self) -> Tuple[str, str]:
        """Return ``(plain, html)``."""
        return "".join(self._plain), "".join(self._html)


def create_section(kind: str, diagram_type: str, title: str, content: str, role: Optional[str] = None) -> str:
    """Wrap *content* in a titled detailed-description section.

    Args:
        kind: Section kind (``overview``, ``flow``, ``explanation`` ...).
        diagram_type: Prefix for the section's class and heading id.
        title: Heading text (already safe for HTML).
        content: Inner HTML.
        role: Optional ARIA role.
    """
    role_attr = f' role="{role}"' if role else ""
    return (
        f'<section class="mermaid-section {diagram_type}-{kind}"{role_attr}>'
        f'<h4 class="mermaid-section-heading" id="{diagram_type}-{kind}-heading">{title}</h4>'
        f"{content}"
        f"</section>"
    )


def legend_list(entries: List[Tuple[bool, str]], css_class: str = "notation-list") -> str:
    """An ``<ul>`` of the legend entries whose condition holds; ``""`` if none do."""
    items = [f"<li>{html}</li>" for present, html in entries if present]
    if not items:
        return ""
    return f'<ul class="{css_class}">' + "".join(items) + "</ul>"
