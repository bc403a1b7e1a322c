"""
tests/test_cli.py

Command-line wrapper.
"""
from __future__ import annotations

import io
import json

from mermaid_describe.cli import build_parser, main

FLOW = "flowchart LR\n    A --> B\n"


def test_parser_defaults():
    args = build_parser().parse_args(["diagram.mmd"])
    assert (args.file, args.diagram_type, args.svg, args.format, args.debug_trace) == (
        "diagram.mmd", None, None, "text", False,
    )


def test_text_output(tmp_path, capsys):
    path = tmp_path / "d.mmd"
    path.write_text(FLOW, encoding="utf-8")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Short: A flowchart flowing left to right.")
    assert "Detailed:" in out


def test_json_output(tmp_path, capsys):
    path = tmp_path / "d.mmd"
    path.write_text(FLOW, encoding="utf-8")
    assert main([str(path), "--format", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert set(data) == {"short", "shortHTML", "detailed"}
    assert data["short"] == "A flowchart flowing left to right."


def test_stdin_and_explicit_type(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("gantt\n    title Plan\n"))
    assert main(["-", "--type", "gantt", "--format", "json"]) == 0
    assert json.loads(capsys.readouterr().out)["short"] == "Gantt diagram"


def test_svg_input(tmp_path, capsys):
    svg = tmp_path / "d.svg"
    svg.write_text('<svg xmlns="http://www.w3.org/2000/svg"><title>Approval</title></svg>', encoding="utf-8")
    src = tmp_path / "d.mmd"
    src.write_text(FLOW, encoding="utf-8")
    assert main([str(src), "--svg", str(svg), "--format", "json"]) == 0
    assert "Approval" in json.loads(capsys.readouterr().out)["short"]


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.mmd")]) == 1
    assert "mermaid-describe:" in capsys.readouterr().err
