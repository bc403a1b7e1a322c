"""
tests/conftest.py

Keep every test away from the user's real settings file.
"""
from __future__ import annotations

import pytest

from mermaid_describe import settings as settings_module
from mermaid_describe.settings import SettingsManager


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    manager = SettingsManager(settings_dir=tmp_path / "config")
    monkeypatch.setattr(settings_module, "_settings_manager", manager)
    return manager
