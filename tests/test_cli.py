"""Tests for the timingbutler CLI.

Local configuration is redirected into ``tmp_path`` through
TIMINGBUTLER_CONFIG_DIR so no test touches the real home directory.
"""

import json

import pysubs2
import pytest
from typer.testing import CliRunner

from timingbutler.cli import app

runner = CliRunner()

_SRT_CONTENT = (
    "1\n00:00:01,000 --> 00:00:02,000\nEarlier line\n\n"
    "2\n00:00:05,000 --> 00:00:06,000\nActive line\n\n"
)


@pytest.fixture(autouse=True)
def local_config_dir(tmp_path, monkeypatch):
    config_dir = tmp_path / "local-config"
    monkeypatch.setenv("TIMINGBUTLER_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "episode.srt"
    path.write_text(_SRT_CONTENT, encoding="utf-8")
    return path


@pytest.fixture
def keyframes(tmp_path):
    path = tmp_path / "keyframes.txt"
    path.write_text("# keyframe format v1\nfps 0\n0\n128\n", encoding="utf-8")
    return path


def _call(script, keyframes, *extra):
    return runner.invoke(
        app,
        ["call", str(script), "--line", "2", "--keyframes", str(keyframes), "--fps", "25", *extra],
    )


class TestCallValidation:
    def test_invalid_subtitle_extension(self, tmp_path, keyframes):
        result = runner.invoke(
            app, ["call", str(tmp_path / "subs.pdf"), "--line", "1", "--keyframes", str(keyframes), "--fps", "25"]
        )
        assert result.exit_code == 1
        assert "Unsupported subtitle format" in result.output

    def test_missing_subtitle(self, tmp_path, keyframes):
        result = runner.invoke(
            app, ["call", str(tmp_path / "missing.srt"), "--line", "1", "--keyframes", str(keyframes), "--fps", "25"]
        )
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_needs_video_or_keyframes_and_fps(self, script, keyframes):
        result = runner.invoke(app, ["call", str(script), "--line", "1", "--keyframes", str(keyframes)])
        assert result.exit_code == 1
        assert "Pass --video" in result.output

    def test_bad_fps(self, script, keyframes):
        result = runner.invoke(
            app, ["call", str(script), "--line", "1", "--keyframes", str(keyframes), "--fps", "fast"]
        )
        assert result.exit_code == 1
        assert "Invalid frame rate" in result.output

    def test_line_out_of_range(self, script, keyframes):
        result = runner.invoke(
            app, ["call", str(script), "--line", "3", "--keyframes", str(keyframes), "--fps", "25"]
        )
        assert result.exit_code == 1
        assert "out of range" in result.output

    def test_bad_keyframe_file(self, tmp_path, script):
        bad = tmp_path / "kf.txt"
        bad.write_text("zero\n", encoding="utf-8")
        result = _call(script, bad)
        assert result.exit_code == 1
        assert "Cannot use keyframes" in result.output


class TestCall:
    def test_retimes_and_saves(self, script, keyframes, local_config_dir):
        result = _call(script, keyframes)

        assert result.exit_code == 0, result.output
        assert "Line 2 retimed" in result.output
        assert "Active line" in result.output
        assert pysubs2.load(str(script))[1].start == 4880
        # Defaults written back to both scopes
        assert json.loads((local_config_dir / "config.json").read_text())["LeadIn"] == 120
        project = script.with_name("episode.srt.butler.json")
        assert json.loads(project.read_text())["LeadIn"] == -1

    def test_project_override_applies(self, script, keyframes):
        project = script.with_name("episode.srt.butler.json")
        project.write_text(json.dumps({"LeadIn": 200}), encoding="utf-8")

        result = _call(script, keyframes)

        assert result.exit_code == 0, result.output
        assert pysubs2.load(str(script))[1].start == 4800

    def test_dry_run_does_not_save(self, script, keyframes):
        result = _call(script, keyframes, "--dry-run")

        assert result.exit_code == 0, result.output
        assert pysubs2.load(str(script))[1].start == 5000

    def test_output_leaves_source_untouched(self, tmp_path, script, keyframes):
        out = tmp_path / "retimed.srt"
        result = _call(script, keyframes, "--output", str(out))

        assert result.exit_code == 0, result.output
        assert pysubs2.load(str(script))[1].start == 5000
        assert pysubs2.load(str(out))[1].start == 4880

    def test_aligned_line_reports_nothing_to_do(self, tmp_path, script):
        kf = tmp_path / "aligned.txt"
        kf.write_text("125\n150\n", encoding="utf-8")
        result = _call(script, kf)

        assert result.exit_code == 0, result.output
        assert "nothing to do" in result.output


class TestConfigCommands:
    def test_set_local(self, local_config_dir):
        result = runner.invoke(app, ["config", "set", "LeadIn", "80"])
        assert result.exit_code == 0, result.output
        assert "Local config saved" in result.output
        assert json.loads((local_config_dir / "config.json").read_text()) == {"LeadIn": 80}

    def test_set_local_rejects_fallthrough(self):
        result = runner.invoke(app, ["config", "set", "LeadIn", "--", "-1"])
        assert result.exit_code == 1

    def test_set_project_fallthrough(self, tmp_path):
        project = tmp_path / "ep.ass.butler.json"
        result = runner.invoke(
            app, ["config", "set", "LeadIn", "--scope", "project", "--project-config", str(project), "--", "-1"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(project.read_text()) == {"LeadIn": -1}

    def test_set_project_requires_path(self):
        result = runner.invoke(app, ["config", "set", "LeadIn", "80", "--scope", "project"])
        assert result.exit_code == 1

    def test_set_unknown_scope(self, local_config_dir):
        result = runner.invoke(app, ["config", "set", "LeadIn", "80", "--scope", "team"])
        assert result.exit_code == 2
        assert not (local_config_dir / "config.json").exists()

    def test_set_unknown_key(self):
        result = runner.invoke(app, ["config", "set", "SnapMiddle", "80"])
        assert result.exit_code == 1

    def test_show_writes_defaults(self, local_config_dir):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0, result.output
        assert json.loads((local_config_dir / "config.json").read_text())["SnapEndLater"] == 900
