"""Test the command-line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from PIL import ExifTags, Image

from photo_declutter.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "settings" / "config.json"


@pytest.fixture
def library(tmp_path):
    """Two copies of one burst shot plus an unrelated photo a day later."""
    root = tmp_path / "library"
    root.mkdir()
    for name, taken in [
        ("IMG_0001.jpg", "2023:05:01 10:00:00"),
        ("IMG_0001 copy.jpg", "2023:05:01 10:00:00"),
        ("IMG_0002.jpg", "2023:05:02 10:00:00"),
    ]:
        exif = Image.Exif()
        exif[ExifTags.Base.DateTime] = taken
        Image.new("RGB", (48, 32), (90, 140, 200)).save(root / name, "JPEG", exif=exif)
    return root


def invoke(runner, config_file, *args):
    return runner.invoke(cli, ["--config", str(config_file), *args], obj={})


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_scan_writes_report(runner, config_file, library, tmp_path):
    output = tmp_path / "report.json"

    result = invoke(runner, config_file, "scan", "--path", str(library), "--output", str(output), "--no-progress")

    assert result.exit_code == 0, result.output
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["roots"] == [str(library.resolve())]
    duplicates = next(c for c in report["categories"] if c["type"] == "duplicates")
    assert len(duplicates["asset_ids"]) == 1
    assert len(report["similarity_groups"]) == 1
    assert "Smart Clean" in result.output


def test_scan_then_clean_then_undo(runner, config_file, library, tmp_path):
    output = tmp_path / "report.json"
    invoke(runner, config_file, "scan", "--path", str(library), "--output", str(output), "--no-progress")

    result = invoke(runner, config_file, "clean", "--input", str(output), "--category", "duplicates", "--yes")

    assert result.exit_code == 0, result.output
    assert len(list(library.glob("*.jpg"))) == 2

    listing = invoke(runner, config_file, "list-staging")
    assert "Operation ID" in listing.output

    staging = config_file.parent / "staging"
    operation_id = next(p.name for p in staging.iterdir() if p.is_dir())
    result = invoke(runner, config_file, "undo", operation_id)

    assert result.exit_code == 0, result.output
    assert len(list(library.glob("*.jpg"))) == 3


def test_clean_declined(runner, config_file, library, tmp_path):
    output = tmp_path / "report.json"
    invoke(runner, config_file, "scan", "--path", str(library), "--output", str(output), "--no-progress")

    result = runner.invoke(
        cli,
        ["--config", str(config_file), "clean", "--input", str(output), "--similar"],
        input="n\n",
        obj={},
    )

    assert result.exit_code == 0
    assert "No files were staged" in result.output
    assert len(list(library.glob("*.jpg"))) == 3


def test_clean_nothing_selected(runner, config_file, tmp_path):
    report = tmp_path / "report.json"
    report.write_text(json.dumps({"roots": [], "categories": []}), encoding="utf-8")

    result = invoke(runner, config_file, "clean", "--input", str(report), "--blurry", "--yes")

    assert result.exit_code == 0
    assert "Nothing selected" in result.output


def test_clean_rejected_delete_exits_nonzero(runner, config_file, library, tmp_path):
    report = tmp_path / "report.json"
    report.write_text(
        json.dumps(
            {
                "roots": [str(library.resolve())],
                "categories": [
                    {"type": "large_files", "asset_ids": [str(library.resolve() / "ghost.jpg")]}
                ],
            }
        ),
        encoding="utf-8",
    )

    result = invoke(runner, config_file, "clean", "--input", str(report), "--category", "large_files", "--yes")

    assert result.exit_code == 1


def test_confirm_delete_permanent(runner, config_file, library, tmp_path):
    output = tmp_path / "report.json"
    invoke(runner, config_file, "scan", "--path", str(library), "--output", str(output), "--no-progress")
    invoke(runner, config_file, "clean", "--input", str(output), "--category", "duplicates", "--yes")
    staging = config_file.parent / "staging"
    operation_id = next(p.name for p in staging.iterdir() if p.is_dir())

    result = invoke(runner, config_file, "confirm-delete", operation_id, "--permanent", "--confirm")

    assert result.exit_code == 0, result.output
    assert [p.name for p in (staging / operation_id).iterdir()] == ["operation.json"]


def test_confirm_delete_unknown_operation(runner, config_file):
    result = invoke(runner, config_file, "confirm-delete", "nope", "--confirm")
    assert result.exit_code == 1


def test_protect_and_unprotect(runner, config_file):
    result = invoke(runner, config_file, "protect", "--folder", "Archive")
    assert result.exit_code == 0
    saved = json.loads(config_file.read_text(encoding="utf-8"))
    assert "Archive" in saved["protected_folders"]

    result = invoke(runner, config_file, "unprotect", "--folder", "Archive")
    assert result.exit_code == 0
    saved = json.loads(config_file.read_text(encoding="utf-8"))
    assert "Archive" not in saved["protected_folders"]


def test_scan_requires_path(runner, config_file):
    result = invoke(runner, config_file, "scan")
    assert result.exit_code != 0


def test_verbose_flag(runner, config_file, library):
    result = runner.invoke(
        cli,
        ["--verbose", "--config", str(config_file), "scan", "--path", str(library), "--no-progress"],
        obj={},
    )
    assert result.exit_code == 0, result.output
