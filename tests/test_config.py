"""Test configuration management."""

import json
from pathlib import Path

from photo_declutter.utils.config import Config


def test_defaults_written_on_first_use(tmp_path):
    config_file = tmp_path / "config.json"

    config = Config(config_file)

    assert config_file.exists()
    assert config.get("similarity.distance_threshold") == 10
    assert config.get("similarity.time_window_seconds") == 3600
    assert config.get("blur.threshold") == 100.0
    assert config.get("analysis.max_assets") is None


def test_user_file_merged_over_defaults(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"similarity": {"distance_threshold": 6}}), encoding="utf-8")

    config = Config(config_file)

    assert config.get("similarity.distance_threshold") == 6
    assert config.get("similarity.strategy") == "greedy"


def test_defaults_not_shared_between_instances(tmp_path):
    first = Config(tmp_path / "one.json")
    first.add_protected_folder("Archive")

    second = Config(tmp_path / "two.json")

    assert "Archive" not in second.get("protected_folders")


def test_invalid_file_uses_defaults(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json", encoding="utf-8")

    config = Config(config_file)

    assert config.get("categories.low_resolution_floor") == 1000


def test_set_and_get_nested(tmp_path):
    config = Config(tmp_path / "config.json")

    config.set("blur.threshold", 80.0)

    assert Config(tmp_path / "config.json").get("blur.threshold") == 80.0
    assert config.get("missing.key", "fallback") == "fallback"


def test_protected_folders(config):
    config.add_protected_folder("Archive")

    assert config.is_path_protected(Path("/photos/archive/2020/a.jpg"))
    assert not config.is_path_protected(Path("/photos/camera/a.jpg"))

    config.remove_protected_folder("Archive")
    assert not config.is_path_protected(Path("/photos/archive/2020/a.jpg"))


def test_staging_paths_next_to_config_file(tmp_path):
    config = Config(tmp_path / "config.json")

    assert config.get_staging_dir() == tmp_path / "staging"
    assert config.get_operations_log() == tmp_path / "operations.log"
