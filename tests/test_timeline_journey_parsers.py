"""
tests/test_timeline_journey_parsers.py

Timeline and user journey parsers, including the rendered-SVG fallback
for timelines.
"""
from __future__ import annotations

from mermaid_describe.linearize import chronological_periods, chronological_tasks
from mermaid_describe.models import KIND_ACTOR
from mermaid_describe.parsers.journey import parse_journey
from mermaid_describe.parsers.timeline import parse_timeline
from mermaid_describe.visual_tree import load_visual_tree

HISTORY = """timeline
    title History of Social Media
    section Early days
        2002 : LinkedIn
        2004 : Facebook : Google
             : Orkut
    section Growth
        2005 : YouTube
"""

WORKING_DAY = """journey
    title My working day
    section Go to work
      Make tea: 5: Me
      Go upstairs: 3: Me
      Do work: 1: Me, Cat
    section Go home
      Go downstairs: 5: Me
      Sit down: 5: Me
"""


# ─────────────────────────────────────────────────────────
# Timeline
# ─────────────────────────────────────────────────────────


class TestTimelineParser:
    def test_title_and_sections(self):
        model = parse_timeline(HISTORY)
        assert model.title == "History of Social Media"
        assert [s.name for s in model.sections] == ["Early days", "Growth"]
        assert model.periods == []

    def test_colon_separated_and_continuation_events(self):
        model = parse_timeline(HISTORY)
        early = model.sections[0]
        assert [p.time for p in early.periods] == ["2002", "2004"]
        assert early.periods[1].events == ["Facebook", "Google", "Orkut"]

    def test_chronological_periods(self):
        periods = chronological_periods(parse_timeline(HISTORY))
        assert [p.time for p in periods] == ["2002", "2004", "2005"]
        assert sum(len(p.events) for p in periods) == 5

    def test_periods_without_sections(self):
        model = parse_timeline("timeline\n    1990 : Web\n    1993 : Mosaic")
        assert model.sections == []
        assert [(p.time, p.events) for p in model.periods] == [("1990", ["Web"]), ("1993", ["Mosaic"])]

    def test_continuation_before_first_section_period(self):
        model = parse_timeline("timeline\n    1990 : Web\n    section Later\n    : Mosaic")
        assert model.periods[0].events == ["Web", "Mosaic"]
        assert model.sections[0].periods == []

    def test_init_block_and_comments_ignored(self):
        code = '%%{init: {"theme": "forest"}}%%\ntimeline\n    %% note\n    2000 : Y2K'
        model = parse_timeline(code)
        assert [p.time for p in model.periods] == ["2000"]

    def test_rendered_tree_used_when_source_empty(self):
        tree = load_visual_tree(
            '<svg xmlns="http://www.w3.org/2000/svg">'
            '<text class="timelineTitle">Eras</text>'
            '<g class="timeline-section"><text class="section-name">Old</text>'
            '<g class="timeline-time-period"><text class="time-period-label">1900</text>'
            '<text class="timeline-event">Radio</text></g></g>'
            "</svg>"
        )
        model = parse_timeline("", tree)
        assert model.title == "Eras"
        assert [s.name for s in model.sections] == ["Old"]
        assert [(p.time, p.events) for p in model.sections[0].periods] == [("1900", ["Radio"])]

    def test_empty_everything(self):
        model = parse_timeline(None)
        assert (model.title, model.sections, model.periods) == ("", [], [])

    def test_directive_lines_are_not_periods(self):
        model = parse_timeline("timeline\n    accTitle: My history\n    2002 : LinkedIn")
        assert [(p.time, p.events) for p in model.periods] == [("2002", ["LinkedIn"])]

    def test_description_block_skipped(self):
        code = "timeline\n    accDescr {\n        Social : media\n    }\n    2004 : Facebook"
        model = parse_timeline(code)
        assert [(p.time, p.events) for p in model.periods] == [("2004", ["Facebook"])]


# ─────────────────────────────────────────────────────────
# User journey
# ─────────────────────────────────────────────────────────


class TestJourneyParser:
    def test_sections_and_tasks(self):
        model = parse_journey(WORKING_DAY)
        assert model.title == "My working day"
        assert [s.name for s in model.sections] == ["Go to work", "Go home"]
        assert [t.name for t in model.sections[0].tasks] == ["Make tea", "Go upstairs", "Do work"]

    def test_scores_and_range(self):
        model = parse_journey(WORKING_DAY)
        scores = [t.score for _, t in chronological_tasks(model)]
        assert scores == [5, 3, 1, 5, 5]
        assert (model.extras["min_score"], model.extras["max_score"]) == (1, 5)

    def test_actors_in_first_mention_order(self):
        model = parse_journey(WORKING_DAY)
        assert model.names_of_kind(KIND_ACTOR) == ["Me", "Cat"]
        assert model.sections[0].tasks[2].actors == ["Me", "Cat"]

    def test_task_outside_section_ignored(self):
        model = parse_journey("journey\n    Wake up: 3: Me\n    section Morning\n      Coffee: 4: Me")
        assert [t.name for s in model.sections for t in s.tasks] == ["Coffee"]

    def test_directive_lines_are_not_tasks(self):
        model = parse_journey("journey\n    section Morning\n    accTitle: Day: 3: Me\n      Coffee: 4: Me")
        assert [t.name for s in model.sections for t in s.tasks] == ["Coffee"]

    def test_no_tasks(self):
        model = parse_journey("journey\n    title Empty")
        assert model.sections == []
        assert (model.extras["min_score"], model.extras["max_score"]) == (0, 0)
