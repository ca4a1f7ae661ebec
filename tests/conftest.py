"""Test configuration for the scene autotester project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from typing import Any, Callable

import pytest

from sceneautotest.control_flow import ControlFlow, resolve_control_flow
from sceneautotest.script_lines import SceneScript, parse_scene


def scene_text(*lines: str) -> str:
    """Join scene lines with newlines so tests read like the scene itself."""

    return "\n".join(lines)


@pytest.fixture()
def build_scene() -> Callable[..., tuple[SceneScript, ControlFlow]]:
    """Factory fixture returning a parsed scene and its resolved control flow."""

    def _factory(*lines: str, name: str = "scene") -> tuple[SceneScript, ControlFlow]:
        script = parse_scene(scene_text(*lines), name=name)
        return script, resolve_control_flow(script)

    return _factory


@pytest.fixture(autouse=True)
def _clear_autotest_environment(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Keep developer environment variables from leaking into settings."""

    for variable in (
        "SCENEAUTOTEST_MAX_STEPS",
        "SCENEAUTOTEST_MAX_PATHS",
        "SCENEAUTOTEST_PRUNE_INFEASIBLE",
        "SCENEAUTOTEST_NEXT_SCENE",
    ):
        monkeypatch.delenv(variable, raising=False)


__all__ = ["scene_text", "build_scene"]
