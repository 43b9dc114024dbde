# tests/test_cli.py
"""Tests for the path library command-line tool."""

import json

import numpy as np

from autonav.cli import frame_issues, main
from autonav.core.frame import OrientationFrame
from autonav.navigation.path import Path, PathLibrary, Waypoint


def write_library(tmp_path, *paths):
    library = PathLibrary()
    for path in paths:
        library.add(path)
    filepath = tmp_path / "paths.txt"
    library.save_file(str(filepath))
    return str(filepath)


def simple_path(name="run"):
    return Path(name, 15.0, [
        Waypoint(OrientationFrame.identity([0, 0, 0])),
        Waypoint(OrientationFrame.identity([10, 0, 0]), True, [1, 0, 0]),
    ])


class TestFrameIssues:

    def test_clean_frame(self):
        assert frame_issues(OrientationFrame.identity()) == []

    def test_bad_frame(self):
        frame = OrientationFrame(forward=np.array([2.0, 0.0, 0.0]), up=np.array([1.0, 0.0, 0.0]))
        issues = frame_issues(frame)
        assert "forward is not unit length" in issues
        assert "forward and up are not orthogonal" in issues


class TestCommands:

    def test_list(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path("a"), simple_path("b"))
        assert main(["list", filepath]) == 0

        out = capsys.readouterr().out
        assert "a: 2 waypoints, 1 docking, speed 15.00" in out
        assert "b: 2 waypoints" in out

    def test_list_empty(self, tmp_path, capsys):
        filepath = tmp_path / "empty.txt"
        filepath.write_text("")
        assert main(["list", str(filepath)]) == 0
        assert "No paths in" in capsys.readouterr().out

    def test_show(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        assert main(["show", filepath, "run"]) == 0
        assert capsys.readouterr().out.startswith("Path: run")

    def test_show_json(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        assert main(["show", filepath, "run", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["name"] == "run"
        assert payload["waypoints"][1]["is_docking"] is True

    def test_show_missing_path(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        assert main(["show", filepath, "nope"]) == 1
        assert "PathNotFoundError" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["list", str(tmp_path / "missing.txt")]) == 1
        assert "Cannot read" in capsys.readouterr().out

    def test_reverse(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        output = str(tmp_path / "out.txt")
        assert main(["reverse", filepath, "run", output, "--name", "back"]) == 0

        library = PathLibrary.load_file(output)
        assert library.names() == ["back"]
        assert np.allclose(library.get("back").waypoints[0].position, [10, 0, 0])
        assert "Wrote 'back'" in capsys.readouterr().out

    def test_reverse_default_name(self, tmp_path):
        filepath = write_library(tmp_path, simple_path())
        output = str(tmp_path / "out.txt")
        main(["reverse", filepath, "run", output])
        assert PathLibrary.load_file(output).names() == ["run_reversed"]

    def test_validate(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        assert main(["validate", filepath]) == 0
        assert "1 paths valid" in capsys.readouterr().out

    def test_validate_bad_frame(self, tmp_path, capsys):
        write_library(tmp_path, simple_path())
        text = (tmp_path / "paths.txt").read_text()
        text = text.replace("FWD:1.00000000,0.00000000,0.00000000", "FWD:3.00000000,0.00000000,0.00000000", 1)
        filepath = tmp_path / "bad.txt"
        filepath.write_text(text)

        assert main(["validate", str(filepath)]) == 1
        assert "BAD_FRAME" in capsys.readouterr().out

    def test_validate_no_paths(self, tmp_path, capsys):
        filepath = tmp_path / "empty.txt"
        filepath.write_text("garbage\n")
        assert main(["validate", str(filepath)]) == 1
        assert "NO_PATHS" in capsys.readouterr().out

    def test_validate_config(self, tmp_path, capsys):
        filepath = write_library(tmp_path, simple_path())
        config = tmp_path / "control.yaml"
        config.write_text("path:\n  approach_distance: 3\n")
        assert main(["validate", filepath, "--config", str(config)]) == 0

        bad = tmp_path / "control.json"
        bad.write_text('{"path": {"approach_distance": "far"}}')
        assert main(["validate", filepath, "--config", str(bad)]) == 1
        assert "ValidationError" in capsys.readouterr().out
