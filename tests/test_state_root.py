from __future__ import annotations

import importlib
from pathlib import Path
from types import ModuleType

import shelters.state as state


def _reload_state() -> ModuleType:
    return importlib.reload(state)


def test_default_state_root_matches_repo(monkeypatch):
    monkeypatch.delenv("SHELTERS_STATE_ROOT", raising=False)
    module = _reload_state()
    expected = Path(__file__).resolve().parents[1] / "state"
    assert module.default_repo_state() == expected
    assert module.STATE_ROOT == expected
    assert module.state_path("logs").parent == expected


def test_state_root_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("SHELTERS_STATE_ROOT", str(tmp_path))
    module = _reload_state()
    try:
        assert module.STATE_ROOT == tmp_path
        expected_file = module.state_path("config", "RaidableShelters.json")
        assert expected_file.parent.parent == tmp_path
    finally:
        monkeypatch.delenv("SHELTERS_STATE_ROOT", raising=False)
        _reload_state()
