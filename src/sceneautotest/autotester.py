"""Entry points for statically autotesting a scene script."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Sequence

from .control_flow import resolve_control_flow
from .coverage import CoverageReport
from .errors import AutotestError
from .explorer import ExplorationOptions, Navigator, PathExplorer
from .script_lines import SceneScript, parse_scene
from .settings import AutotestSettings

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisError:
    """Value-level description of why a scene could not be analysed."""

    kind: str
    message: str
    line: int | None = None

    @classmethod
    def from_exception(cls, exc: AutotestError) -> "AnalysisError":
        return cls(kind=exc.kind, message=str(exc), line=exc.line)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either a finished report or the error that prevented one."""

    report: CoverageReport | None = None
    error: AnalysisError | None = None

    def __post_init__(self) -> None:
        if (self.report is None) == (self.error is None):
            raise ValueError("An outcome needs exactly one of report or error.")

    @property
    def ok(self) -> bool:
        return self.error is None


def analyze_script(
    script: SceneScript,
    *,
    navigator: Navigator | None = None,
    options: ExplorationOptions | None = None,
) -> CoverageReport:
    """Resolve ``script``'s control flow and explore every path through it."""

    control_flow = resolve_control_flow(script)
    explorer = PathExplorer(script, control_flow, options=options, navigator=navigator)
    return explorer.explore()


def analyze(
    text: str,
    *,
    navigator: Navigator | None = None,
    options: ExplorationOptions | None = None,
    name: str = "scene",
) -> CoverageReport:
    """Parse and analyse scene ``text``.

    Raises:
        ParseError: When a line is malformed.
        DuplicateLabelError: When two labels share a name.
        UnresolvedGotoError: When a ``*goto`` names an unknown label.
        FallthroughError: When a branch chain can be left without ending.
    """

    script = parse_scene(text, name=name)
    return analyze_script(script, navigator=navigator, options=options)


def autotest(
    text: str,
    *,
    navigator: Navigator | None = None,
    options: ExplorationOptions | None = None,
) -> tuple[list[int], list[int]]:
    """Return the ``(coverage, unreachable)`` pair for ``text``."""

    return analyze(text, navigator=navigator, options=options).as_pair()


def try_analyze(
    text: str,
    *,
    navigator: Navigator | None = None,
    options: ExplorationOptions | None = None,
    name: str = "scene",
) -> AnalysisOutcome:
    """Like :func:`analyze` but reports analysis errors as values."""

    try:
        report = analyze(text, navigator=navigator, options=options, name=name)
    except AutotestError as exc:
        return AnalysisOutcome(error=AnalysisError.from_exception(exc))
    return AnalysisOutcome(report=report)


def analyze_file(
    path: str | Path,
    *,
    navigator: Navigator | None = None,
    options: ExplorationOptions | None = None,
) -> CoverageReport:
    """Read a scene from ``path`` and analyse it, naming it after the file."""

    scene_path = Path(path)
    text = scene_path.read_text(encoding="utf-8")
    return analyze(text, navigator=navigator, options=options, name=scene_path.stem)


def format_coverage_report(report: CoverageReport, *, name: str = "scene") -> str:
    """Return a human-friendly summary of ``report``."""

    source_lines = len(report.coverage) - 1
    lines = [
        f"Scene Coverage: {name}",
        "=" * len(f"Scene Coverage: {name}"),
        f"Lines covered: {report.covered_line_count} / {source_lines}",
        f"Paths explored: {report.paths_explored}",
        f"Steps taken: {report.steps}",
    ]

    if report.scene_exits:
        lines.append("Scene exits: " + ", ".join(report.scene_exits))

    if report.unreachable:
        lines.append("Unreachable lines detected:")
        lines.extend(f"- line {number}" for number in report.unreachable)
    else:
        lines.append("Every line is reachable.")

    if not report.complete:
        lines.append("Warning: exploration limit reached; coverage may be incomplete.")

    return "\n".join(lines)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report line coverage and unreachable lines for a scene script."
    )
    parser.add_argument("scene_file", type=Path, help="Path to the scene text file.")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the report as JSON instead of a text summary.",
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        default=None,
        help="Skip branches whose condition is decided by constant assignments.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Maximum number of line visits across all paths.",
    )
    parser.add_argument(
        "--max-paths",
        type=int,
        default=None,
        help="Maximum number of paths to explore.",
    )
    parser.add_argument(
        "--next-scene",
        default=None,
        help="Scene name reported for *finish directives.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log exploration details to stderr.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``python -m sceneautotest.autotester``."""

    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    overrides = {
        "max_steps": args.max_steps,
        "max_paths": args.max_paths,
        "prune_infeasible": args.prune,
        "next_scene": args.next_scene,
    }
    provided = {key: value for key, value in overrides.items() if value is not None}
    try:
        settings = replace(AutotestSettings.from_env(), **provided)
        options = settings.to_options()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        report = analyze_file(
            args.scene_file, navigator=settings.navigator(), options=options
        )
    except OSError as exc:
        print(f"error: cannot read {args.scene_file}: {exc}", file=sys.stderr)
        return 2
    except AutotestError as exc:
        LOG.debug("Analysis of %s failed", args.scene_file, exc_info=True)
        if args.json:
            print(json.dumps({"error": asdict(AnalysisError.from_exception(exc))}))
        else:
            print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        payload = asdict(report)
        print(json.dumps(payload))
    else:
        print(format_coverage_report(report, name=args.scene_file.stem))
    return 0


__all__ = [
    "AnalysisError",
    "AnalysisOutcome",
    "analyze",
    "analyze_script",
    "analyze_file",
    "autotest",
    "try_analyze",
    "format_coverage_report",
    "main",
]


if __name__ == "__main__":  # pragma: no cover - convenience CLI
    raise SystemExit(main())
