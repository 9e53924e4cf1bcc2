"""Tests for config loading and runtime directories."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.policy_runtime import (
    DATA_DIR_ENV,
    ensure_runtime_dirs,
    load_effective_config,
    merge_dicts,
    resolve_data_dir,
)


def test_merge_dicts_is_recursive() -> None:
    merged = merge_dicts({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"c": 5}})
    assert merged == {"a": {"b": 1, "c": 5}, "d": 3}


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("launch:\n  wait_budget_seconds: 1.5\n")
    config = load_effective_config(tmp_path)
    assert config["launch"]["wait_budget_seconds"] == 1.5
    assert config["launch"]["stale_after_seconds"] == 10.0


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_effective_config(tmp_path)


def test_data_dir_resolution(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "env"))
    assert resolve_data_dir() == (tmp_path / "env").resolve()
    assert resolve_data_dir(tmp_path / "explicit") == (tmp_path / "explicit").resolve()
    monkeypatch.delenv(DATA_DIR_ENV)
    monkeypatch.setenv("HOME", str(tmp_path))
    assert resolve_data_dir() == (tmp_path / ".weblet").resolve()


def test_runtime_layout(tmp_path: Path) -> None:
    paths = ensure_runtime_dirs(tmp_path)
    for key in ("data_dir", "locks_dir", "sockets_dir", "icons_dir", "logs_dir"):
        assert paths[key].is_dir()
    assert paths["root"] == tmp_path
    assert paths["weblets_file"] == tmp_path / "weblets.json"
    assert paths["settings_file"] == tmp_path / "weblet.json"
