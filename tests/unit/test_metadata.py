"""Tests for project/metadata.py."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from rnship.core.exceptions import ConfigNotFoundError
from rnship.project.metadata import ConfigStore, read_json_object, write_json_atomic


def test_read_parses_metadata(project: Path) -> None:
    metadata = ConfigStore(project).read()
    assert metadata.id == "app1"
    assert metadata.name == "DemoApp"
    assert metadata.version == "1.0.0"
    assert metadata.ejected is False
    assert metadata.hermes_enabled is True


def test_read_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigNotFoundError, match="wm_rn_config.json"):
        ConfigStore(tmp_path).read()


def test_read_malformed_json_raises(tmp_path: Path) -> None:
    (tmp_path / "wm_rn_config.json").write_text("{not json")
    with pytest.raises(ConfigNotFoundError):
        ConfigStore(tmp_path).read()


def test_read_non_object_raises(tmp_path: Path) -> None:
    (tmp_path / "wm_rn_config.json").write_text("[1, 2]")
    with pytest.raises(ConfigNotFoundError, match="JSON object"):
        read_json_object(tmp_path / "wm_rn_config.json")


def test_read_missing_required_field_raises(tmp_path: Path) -> None:
    (tmp_path / "wm_rn_config.json").write_text(json.dumps({"name": "NoId"}))
    with pytest.raises(ConfigNotFoundError):
        ConfigStore(tmp_path).read()


def test_write_merges_and_keeps_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "wm_rn_config.json"
    path.write_text(json.dumps({"id": "a", "name": "A", "serverPath": "https://x"}))

    metadata = ConfigStore(tmp_path).write({"ejected": True})

    assert metadata.ejected is True
    stored = json.loads(path.read_text())
    assert stored == {"id": "a", "name": "A", "serverPath": "https://x", "ejected": True}


def test_write_json_atomic_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "app.json"
    write_json_atomic(target, {"expo": {"name": "x"}})
    write_json_atomic(target, {"expo": {"name": "y"}})
    assert json.loads(target.read_text()) == {"expo": {"name": "y"}}
    assert [p.name for p in tmp_path.iterdir()] == ["app.json"]
