"""
mermaid_describe/settings.py

Persistent settings management for mermaid-describe.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/mermaid-describe/settings.toml
    - macOS: ~/Library/Application Support/mermaid-describe/settings.toml
    - Linux: ~/.config/mermaid-describe/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "mermaid-describe"

# BFS safety bound used when no settings object is supplied
DEFAULT_ITERATION_CAP = 1000

log = logging.getLogger(__name__)

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def current_settings() -> "DescribeSettings":
    """Shortcut for ``get_settings().settings``."""
    return get_settings().settings


# =============================================================================
# Engine Settings
# =============================================================================

@dataclass
class TraversalSettings:
    """Flowchart linearizer settings.

    Defaults:
        iteration_cap: 1000
    """
    iteration_cap: int = DEFAULT_ITERATION_CAP  # Default: 1000 queue pops


@dataclass
class FlowchartSettings:
    """Flowchart short-description thresholds.

    Defaults:
        moderate_threshold: 10
        complex_threshold: 20
    """
    moderate_threshold: int = 10   # Default: more than 10 nodes is "moderate"
    complex_threshold: int = 20    # Default: more than 20 nodes is "complex"


@dataclass
class SequenceSettings:
    """Sequence diagram narration settings.

    Defaults:
        logical_flow_threshold: 15
        flow_event_window: 3
        branch_outcome_window: 2
    """
    logical_flow_threshold: int = 15   # Default: split into phases at 15+ messages
    flow_event_window: int = 3         # Default: 3 lines either side of a flow
    branch_outcome_window: int = 2     # Default: inspect the last 2 messages


@dataclass
class JourneySettings:
    """User journey description settings.

    Defaults:
        max_listed_actors: 5
    """
    max_listed_actors: int = 5  # Default: name up to 5 actors, then count


@dataclass
class LoggingSettings:
    """Logging and trace settings.

    Defaults:
        level: "WARNING"
        debug_trace: False
        trace_categories: [] (all categories)
    """
    level: str = "WARNING"       # Default: "WARNING"
    debug_trace: bool = False    # Default: False
    trace_categories: List[str] = field(default_factory=list)


# =============================================================================
# Main Settings
# =============================================================================

@dataclass
class DescribeSettings:
    """Engine settings with default values.

    Attributes:
        traversal: Flowchart BFS settings.
        flowchart: Flowchart complexity thresholds.
        sequence: Sequence diagram narration settings.
        journey: User journey description settings.
        logging: Logging and trace settings.
    """
    traversal: TraversalSettings = field(default_factory=TraversalSettings)
    flowchart: FlowchartSettings = field(default_factory=FlowchartSettings)
    sequence: SequenceSettings = field(default_factory=SequenceSettings)
    journey: JourneySettings = field(default_factory=JourneySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# Settings Manager
# =============================================================================

def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """The ``[name]`` table of *data*; an absent or non-table value reads as empty."""
    value = data.get(name, {})
    if not isinstance(value, dict):
        log.warning("Ignoring settings section %r: expected a table, got %s", name, type(value).__name__)
        return {}
    return value


class SettingsManager:
    """Manages loading, saving, and accessing engine settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Explicit directory overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()

    def load(self) -> DescribeSettings:
        """Load settings from the TOML file.

        Returns:
            DescribeSettings instance with values from file or defaults if
            file doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return DescribeSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except Exception as exc:
            # If file is corrupted or invalid, return defaults
            log.warning("Ignoring unreadable settings file %s: %s", self.settings_file, exc)
            return DescribeSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> DescribeSettings:
        """Parse TOML data into DescribeSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            DescribeSettings instance populated from TOML data.
        """
        settings = DescribeSettings()

        traversal = _section(data, "traversal")
        settings.traversal.iteration_cap = int(traversal.get("iteration_cap", settings.traversal.iteration_cap))

        flowchart = _section(data, "flowchart")
        settings.flowchart.moderate_threshold = int(flowchart.get("moderate_threshold", settings.flowchart.moderate_threshold))
        settings.flowchart.complex_threshold = int(flowchart.get("complex_threshold", settings.flowchart.complex_threshold))

        sequence = _section(data, "sequence")
        settings.sequence.logical_flow_threshold = int(sequence.get("logical_flow_threshold", settings.sequence.logical_flow_threshold))
        settings.sequence.flow_event_window = int(sequence.get("flow_event_window", settings.sequence.flow_event_window))
        settings.sequence.branch_outcome_window = int(sequence.get("branch_outcome_window", settings.sequence.branch_outcome_window))

        journey = _section(data, "journey")
        settings.journey.max_listed_actors = int(journey.get("max_listed_actors", settings.journey.max_listed_actors))

        logging_section = _section(data, "logging")
        settings.logging.level = str(logging_section.get("level", settings.logging.level))
        settings.logging.debug_trace = bool(logging_section.get("debug_trace", settings.logging.debug_trace))
        settings.logging.trace_categories = list(logging_section.get("trace_categories", settings.logging.trace_categories))

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "traversal": {
                "iteration_cap": s.traversal.iteration_cap,
            },
            "flowchart": {
                "moderate_threshold": s.flowchart.moderate_threshold,
                "complex_threshold": s.flowchart.complex_threshold,
            },
            "sequence": {
                "logical_flow_threshold": s.sequence.logical_flow_threshold,
                "flow_event_window": s.sequence.flow_event_window,
                "branch_outcome_window": s.sequence.branch_outcome_window,
            },
            "journey": {
                "max_listed_actors": s.journey.max_listed_actors,
            },
            "logging": {
                "level": s.logging.level,
                "debug_trace": s.logging.debug_trace,
                "trace_categories": list(s.logging.trace_categories),
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
