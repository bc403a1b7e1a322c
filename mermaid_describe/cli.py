"""
mermaid_describe/cli.py

Command-line wrapper around ``describe_diagram``.

    python -m mermaid_describe diagram.mmd
    python -m mermaid_describe - --format json < diagram.mmd
    mermaid-describe diagram.mmd --svg rendered.svg --type sequenceDiagram
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from mermaid_describe.debug_trace import configure_logging, enable_trace, trace
from mermaid_describe.registry import describe_diagram
from mermaid_describe.settings import get_settings

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mermaid-describe",
        description="Generate accessible descriptions for Mermaid diagrams",
    )
    parser.add_argument("file", help="Mermaid source file, or - for stdin")
    parser.add_argument("--type", dest="diagram_type", default=None,
                        help="Diagram type tag (default: detected from the source)")
    parser.add_argument("--svg", default=None, help="Rendered SVG of the diagram")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    parser.add_argument("--debug-trace", action="store_true", help="Write stage tracing to stderr")
    return parser


def _read(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _render_text(description) -> str:
    return "\n".join([
        f"Short: {description.short}",
        "",
        "Detailed:",
        description.detailed,
    ])


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI.

    Returns:
        0 on success, 1 when an input file cannot be read.
    """
    args = build_parser().parse_args(argv)

    settings = get_settings().settings
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    configure_logging(settings)
    if args.debug_trace:
        enable_trace(True)
        logging.getLogger("mermaid_describe.trace").setLevel(logging.DEBUG)

    try:
        code = _read(args.file)
        svg = _read(args.svg) if args.svg else None
    except OSError as exc:
        log.error("Cannot read input: %s", exc)
        print(f"mermaid-describe: {exc}", file=sys.stderr)
        return 1

    trace(f"describing {args.file}", "MAIN")
    description = describe_diagram(code, diagram_type=args.diagram_type, svg=svg, settings=settings)

    if args.format == "json":
        print(json.dumps(description.to_dict(), indent=2))
    else:
        print(_render_text(description))
    return 0
