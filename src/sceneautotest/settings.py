"""Configuration helpers for running the autotester."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .explorer import (
    DEFAULT_MAX_PATHS,
    DEFAULT_MAX_STEPS,
    ExplorationOptions,
    StaticNavigator,
)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _parse_positive_int(value: str | None, *, name: str, default: int) -> int:
    if value is None:
        return default

    trimmed = value.strip()
    if not trimmed:
        return default

    try:
        parsed = int(trimmed)
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


def _parse_flag(value: str | None, *, name: str, default: bool) -> bool:
    if value is None:
        return default

    trimmed = value.strip().lower()
    if not trimmed:
        return default
    if trimmed in _TRUE_VALUES:
        return True
    if trimmed in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))}.")


@dataclass(frozen=True)
class AutotestSettings:
    """Settings shared by the CLI and the HTTP service.

    Values are read from environment variables so deployments can tune the
    exploration budgets without code changes. Empty strings are treated as if
    the variable was unset.
    """

    max_steps: int = DEFAULT_MAX_STEPS
    max_paths: int = DEFAULT_MAX_PATHS
    prune_infeasible: bool = False
    next_scene: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AutotestSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            max_steps=_parse_positive_int(
                source.get("SCENEAUTOTEST_MAX_STEPS"),
                name="SCENEAUTOTEST_MAX_STEPS",
                default=DEFAULT_MAX_STEPS,
            ),
            max_paths=_parse_positive_int(
                source.get("SCENEAUTOTEST_MAX_PATHS"),
                name="SCENEAUTOTEST_MAX_PATHS",
                default=DEFAULT_MAX_PATHS,
            ),
            prune_infeasible=_parse_flag(
                source.get("SCENEAUTOTEST_PRUNE_INFEASIBLE"),
                name="SCENEAUTOTEST_PRUNE_INFEASIBLE",
                default=False,
            ),
            next_scene=_normalise_string(
                source.get("SCENEAUTOTEST_NEXT_SCENE"), default=""
            ),
        )

    def to_options(self) -> ExplorationOptions:
        return ExplorationOptions(
            max_steps=self.max_steps,
            max_paths=self.max_paths,
            prune_infeasible=self.prune_infeasible,
        )

    def navigator(self) -> StaticNavigator:
        return StaticNavigator(self.next_scene)


__all__ = ["AutotestSettings"]
