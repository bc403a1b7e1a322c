"""
mermaid_describe

Accessible natural-language descriptions for Mermaid diagrams.

    from mermaid_describe import describe_diagram

    d = describe_diagram("flowchart TD\\n A[Start] --> B[Done]")
    d.short        # one-sentence summary
    d.short_html   # same summary with inline spans
    d.detailed     # sectioned HTML fragment
"""

from mermaid_describe.models import Description, DiagramModel
from mermaid_describe.parsers import parse_flowchart, parse_journey, parse_sequence, parse_timeline
from mermaid_describe.registry import (
    DescriptionGenerator,
    GeneratorRegistry,
    build_default_registry,
    describe_diagram,
)

__version__ = "0.1.0"

__all__ = [
    "Description",
    "DescriptionGenerator",
    "DiagramModel",
    "GeneratorRegistry",
    "build_default_registry",
    "describe_diagram",
    "parse_flowchart",
    "parse_journey",
    "parse_sequence",
    "parse_timeline",
]
