"""Smoke tests for the ``sceneautotest`` command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sceneautotest.autotester import main
from sceneautotest.errors import ExplorationLimitExceeded


def _write_scene(tmp_path: Path, text: str, *, name: str = "intro") -> Path:
    path = tmp_path / f"{name}.txt"
    path.write_text(text, encoding="utf-8")
    return path


def test_main_prints_text_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_scene(tmp_path, "foo\n*goto baz\nbar\n*label baz\nbaz")

    exit_code = main([str(path)])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Scene Coverage: intro" in output
    assert "Lines covered: 4 / 5" in output
    assert "- line 3" in output


def test_main_emits_json_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_scene(tmp_path, "*finish")

    exit_code = main([str(path), "--json", "--next-scene", "chapter2"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["coverage"] == [1, 0]
    assert payload["unreachable"] == []
    assert payload["scene_exits"] == ["chapter2"]
    assert payload["complete"] is True


def test_main_reads_settings_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("SCENEAUTOTEST_NEXT_SCENE", "epilogue")
    path = _write_scene(tmp_path, "*finish")

    assert main([str(path), "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["scene_exits"] == ["epilogue"]


def test_main_reports_analysis_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_scene(tmp_path, "*goto nowhere")

    exit_code = main([str(path)])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "error:" in captured.err
    assert "nowhere" in captured.err


def test_main_reports_analysis_errors_as_json(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_scene(tmp_path, "*if a\n  x\n*elseif b\n  *finish")

    exit_code = main([str(path), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["error"]["kind"] == "fallthrough"
    assert payload["error"]["line"] == 0


def test_main_rejects_missing_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([str(tmp_path / "missing.txt")])

    assert exit_code == 2
    assert "cannot read" in capsys.readouterr().err


def test_main_rejects_invalid_budgets(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_scene(tmp_path, "foo")

    exit_code = main([str(path), "--max-steps", "0"])

    assert exit_code == 2
    assert "max_steps" in capsys.readouterr().err


def test_main_warns_when_budget_is_exhausted(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_scene(tmp_path, "a\nb\nc")

    with pytest.warns(ExplorationLimitExceeded):
        exit_code = main([str(path), "--max-steps", "1"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "exploration limit reached" in output
