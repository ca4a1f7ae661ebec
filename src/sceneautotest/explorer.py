"""Enumerate the control-flow paths of a scene and count line visits."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Protocol

from .control_flow import ControlFlow
from .coverage import CoverageAggregator, CoverageReport
from .errors import ExplorationLimitExceeded
from .expressions import Symbolic, evaluate_assignment, evaluate_condition
from .script_lines import LineKind, LineVariant, SceneScript, ScriptLine
from .validator import StructuralValidator

LOG = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 200_000
DEFAULT_MAX_PATHS = 20_000


class Navigator(Protocol):
    """Capability the analyser uses to name the scene ``*finish`` leads to."""

    def next_scene_name(self) -> str:
        ...


@dataclass(frozen=True)
class StaticNavigator:
    """Navigator that always reports the same follow-up scene."""

    scene_name: str = ""

    def next_scene_name(self) -> str:
        return self.scene_name


@dataclass(frozen=True)
class Environment:
    """Variable bindings along one hypothetical path.

    Instances are never mutated; :meth:`bind` returns a new environment so
    forked paths cannot observe each other's assignments.
    """

    bindings: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))

    def __contains__(self, name: object) -> bool:
        return name in self.bindings

    def get(self, name: str, default: Any = None) -> Any:
        return self.bindings.get(name, default)

    def bind(self, name: str, value: Any) -> "Environment":
        updated = dict(self.bindings)
        updated[name] = value
        return Environment(updated)

    def fingerprint(self) -> tuple[tuple[str, Any], ...]:
        """Return a hashable, order-independent view of the bindings."""

        return tuple(sorted(self.bindings.items(), key=lambda item: item[0]))


@dataclass(frozen=True)
class PathState:
    """A pending path: where it resumes and what it has seen so far."""

    line: int
    environment: Environment = field(default_factory=Environment)
    visited: frozenset[Hashable] = frozenset()


@dataclass(frozen=True)
class ExplorationOptions:
    """Knobs that bound or sharpen the exploration.

    Attributes:
        max_steps: Total line visits allowed across every path.
        max_paths: Total paths (the initial one plus every fork) allowed.
        prune_infeasible: When ``True``, conditions that evaluate to a
            definite value against the path's bindings only follow the
            feasible branch. By default both branches are always explored.
    """

    max_steps: int = DEFAULT_MAX_STEPS
    max_paths: int = DEFAULT_MAX_PATHS
    prune_infeasible: bool = False

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError("max_steps must be a positive integer")
        if self.max_paths < 1:
            raise ValueError("max_paths must be a positive integer")


class PathExplorer:
    """Depth-first, work-queue driven walk over every path of a scene.

    The explorer keeps an explicit stack of :class:`PathState` objects rather
    than recursing, so long or cyclic scenes cannot exhaust the call stack.
    Conditionals fork into a true and a false successor; the true side is
    always walked first, which keeps results reproducible.

    Every state a path enters is remembered across paths. A path that reaches
    a state some earlier path already walked counts that line once more and
    stops there, since everything downstream of the state has been explored.
    The work is therefore bounded by the number of forks plus the number of
    distinct states rather than by the number of branch combinations.
    """

    def __init__(
        self,
        script: SceneScript,
        control_flow: ControlFlow,
        *,
        options: ExplorationOptions | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self.script = script
        self.control_flow = control_flow
        self.options = options or ExplorationOptions()
        self.navigator = navigator
        self.validator = StructuralValidator(control_flow)
        self.coverage = CoverageAggregator(len(script))
        self.paths_explored = 0
        self.steps = 0
        self._stack: list[PathState] = []
        self._explored: set[Hashable] = set()
        self._exits: list[str] = []
        self._limit_reason: str | None = None

    def explore(self) -> CoverageReport:
        """Walk every path and return the accumulated coverage.

        Raises:
            FallthroughError: As soon as any path leaves a branch chain that
                does not permit falling through.
        """

        self._stack.append(PathState(line=0))
        while self._stack:
            if self.paths_explored >= self.options.max_paths:
                self._limit_reason = f"path budget of {self.options.max_paths} exhausted"
                break
            state = self._stack.pop()
            self.paths_explored += 1
            self._walk(state)
            if self._limit_reason is not None:
                break

        if self._limit_reason is not None:
            message = (
                f"Exploration of scene '{self.script.name}' stopped early: "
                f"{self._limit_reason}; coverage may be incomplete."
            )
            LOG.warning(message)
            warnings.warn(message, ExplorationLimitExceeded, stacklevel=2)

        LOG.info(
            "Explored %d path(s) in %d step(s) for scene '%s'",
            self.paths_explored,
            self.steps,
            self.script.name,
        )
        return self.coverage.finalize(
            self.script,
            complete=self._limit_reason is None,
            paths_explored=self.paths_explored,
            steps=self.steps,
            scene_exits=tuple(self._exits),
        )

    def _cycle_key(self, line: int, environment: Environment) -> Hashable:
        if self.options.prune_infeasible:
            return (line, environment.fingerprint())
        return line

    def _fork(self, line: int, environment: Environment, visited: set[Hashable]) -> None:
        self._stack.append(
            PathState(line=line, environment=environment, visited=frozenset(visited))
        )

    def _decide(self, condition: str, environment: Environment) -> bool | None:
        if not self.options.prune_infeasible:
            return None
        return evaluate_condition(condition, environment.bindings)

    def _walk(self, state: PathState) -> None:
        script = self.script
        control_flow = self.control_flow
        validator = self.validator
        end = script.end_index

        line = state.line
        environment = state.environment
        visited: set[Hashable] = set(state.visited)

        while line != end:
            key = self._cycle_key(line, environment)
            if key in visited:
                LOG.debug("Path re-entered line %d; cutting the cycle", line + 1)
                return
            if self.steps >= self.options.max_steps:
                self._limit_reason = f"step budget of {self.options.max_steps} exhausted"
                return

            self.coverage.record_visit(line)
            self.steps += 1
            if key in self._explored:
                LOG.debug("Path joined an explored state at line %d", line + 1)
                return
            self._explored.add(key)
            visited.add(key)

            current = script[line]
            kind = current.kind

            if kind in (LineKind.TEXT, LineKind.OTHER, LineKind.LABEL):
                line = validator.exit_target(line, line + 1)
            elif kind in (LineKind.SET, LineKind.TEMP):
                variable = current.operands[0]
                if len(current.operands) > 1:
                    value = evaluate_assignment(
                        variable, current.operands[1], environment.bindings
                    )
                else:
                    value = Symbolic("")
                environment = environment.bind(variable, value)
                line = validator.exit_target(line, line + 1)
            elif kind is LineKind.GOTO:
                line = control_flow.goto_target(line)
            elif kind in (LineKind.IF, LineKind.ELSEIF):
                branch = control_flow.branch_at(line)
                decision = self._decide(current.operands[0], environment)
                next_header = branch.chain.next_header(line)
                if decision is not True:
                    if next_header is not None:
                        false_target = next_header
                    else:
                        false_target = validator.exit_target(line, branch.chain.exit)
                    if decision is False:
                        line = false_target
                        continue
                    LOG.debug("Forking at line %d", line + 1)
                    self._fork(false_target, environment, visited)
                line = validator.exit_target(line, line + 1, own=branch)
            elif kind in (LineKind.ELSE, LineKind.OPTION):
                branch = control_flow.branch_at(line)
                line = validator.exit_target(line, line + 1, own=branch)
            elif kind is LineKind.CHOICE:
                options = [
                    header
                    for header in control_flow.chain_at(line).headers
                    if self._option_available(script[header], environment)
                ]
                if not options:
                    LOG.debug("No selectable option at line %d", line + 1)
                    return
                LOG.debug("Forking %d option(s) at line %d", len(options), line + 1)
                for option in reversed(options[1:]):
                    self._fork(option, environment, visited)
                line = options[0]
            elif kind is LineKind.FINISH:
                self._record_exit(current)
                return
            else:  # pragma: no cover - LineKind is exhaustive
                raise ValueError(f"Unsupported line kind: {kind}")

    def _option_available(self, option: ScriptLine, environment: Environment) -> bool:
        if len(option.operands) < 2:
            return True
        return self._decide(option.operands[1], environment) is not False

    def _record_exit(self, line: ScriptLine) -> None:
        if line.variant is LineVariant.GOTO_SCENE:
            self._exits.append(line.operands[0])
        elif line.variant is LineVariant.FINISH and self.navigator is not None:
            name = self.navigator.next_scene_name()
            if name:
                self._exits.append(name)


__all__ = [
    "DEFAULT_MAX_STEPS",
    "DEFAULT_MAX_PATHS",
    "Navigator",
    "StaticNavigator",
    "Environment",
    "PathState",
    "ExplorationOptions",
    "PathExplorer",
]
