"""
mermaid_describe/generators/__init__.py

Per-diagram-type description generators.

Every module exposes ``generate_short``, ``generate_short_html`` and
``generate_detailed`` taking ``(code, tree, settings)`` and returning a
string.  ``flowchart`` also carries the ``generate_complex_*`` trio used
for flowcharts with subgraphs.
"""

from mermaid_describe.generators import flowchart, journey, sequence, timeline

__all__ = ["flowchart", "journey", "sequence", "timeline"]
