"""Static coverage and reachability analysis for branching scene scripts."""

from .autotester import (
    AnalysisError,
    AnalysisOutcome,
    analyze,
    analyze_file,
    analyze_script,
    autotest,
    format_coverage_report,
    try_analyze,
)
from .control_flow import ControlFlow, LabelTable, resolve_control_flow
from .coverage import CoverageAggregator, CoverageReport
from .errors import (
    AutotestError,
    CoverageInvariantError,
    DuplicateLabelError,
    ExplorationLimitExceeded,
    FallthroughError,
    ParseError,
    UnresolvedGotoError,
)
from .explorer import (
    Environment,
    ExplorationOptions,
    Navigator,
    PathExplorer,
    PathState,
    StaticNavigator,
)
from .script_lines import LineKind, LineVariant, SceneScript, ScriptLine, parse_scene
from .settings import AutotestSettings
from .validator import StructuralValidator

__all__ = [
    "LineKind",
    "LineVariant",
    "ScriptLine",
    "SceneScript",
    "parse_scene",
    "LabelTable",
    "ControlFlow",
    "resolve_control_flow",
    "StructuralValidator",
    "Environment",
    "PathState",
    "ExplorationOptions",
    "Navigator",
    "StaticNavigator",
    "PathExplorer",
    "CoverageAggregator",
    "CoverageReport",
    "AutotestSettings",
    "AnalysisError",
    "AnalysisOutcome",
    "analyze",
    "analyze_script",
    "analyze_file",
    "autotest",
    "try_analyze",
    "format_coverage_report",
    "AutotestError",
    "ParseError",
    "DuplicateLabelError",
    "UnresolvedGotoError",
    "FallthroughError",
    "CoverageInvariantError",
    "ExplorationLimitExceeded",
]
