"""
mermaid_describe/parsers/__init__.py

Per-diagram-type source parsers.  Each returns a ``DiagramModel``.
"""

from mermaid_describe.parsers.flowchart import parse_flowchart
from mermaid_describe.parsers.journey import parse_journey
from mermaid_describe.parsers.sequence import parse_sequence
from mermaid_describe.parsers.timeline import parse_timeline

__all__ = [
    "parse_flowchart",
    "parse_journey",
    "parse_sequence",
    "parse_timeline",
]
