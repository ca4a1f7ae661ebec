"""Per-line visit counters and the report built from them."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import CoverageInvariantError
from .script_lines import SceneScript


@dataclass(frozen=True)
class CoverageReport:
    """Result of exploring every path through a scene.

    ``coverage`` holds one count per script line, including the trailing
    end-of-scene sentinel (which is never counted). ``unreachable`` lists the
    1-based line numbers of non-blank lines that no path visited.
    """

    coverage: tuple[int, ...]
    unreachable: tuple[int, ...]
    complete: bool = True
    paths_explored: int = 0
    steps: int = 0
    scene_exits: tuple[str, ...] = field(default_factory=tuple)

    @property
    def uncovered_indices(self) -> tuple[int, ...]:
        """Return the 0-based indices behind ``unreachable``."""

        return tuple(number - 1 for number in self.unreachable)

    @property
    def covered_line_count(self) -> int:
        return sum(1 for count in self.coverage if count > 0)

    @property
    def fully_covered(self) -> bool:
        """Return ``True`` when every non-blank line was reached."""

        return not self.unreachable

    def as_pair(self) -> tuple[list[int], list[int]]:
        """Return ``(coverage, unreachable)`` as plain lists."""

        return list(self.coverage), list(self.unreachable)


class CoverageAggregator:
    """Accumulate visit counts for the lines of a single script."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        self._counts = [0] * size

    def __len__(self) -> int:
        return len(self._counts)

    def record_visit(self, line_index: int) -> None:
        """Count one visit to ``line_index``.

        Raises:
            CoverageInvariantError: If the index lies outside the script.
        """

        if not 0 <= line_index < len(self._counts):
            raise CoverageInvariantError(
                f"line index {line_index} is outside [0, {len(self._counts)})"
            )
        self._counts[line_index] += 1

    def count(self, line_index: int) -> int:
        return self._counts[line_index]

    def finalize(
        self,
        script: SceneScript,
        *,
        complete: bool = True,
        paths_explored: int = 0,
        steps: int = 0,
        scene_exits: tuple[str, ...] = (),
    ) -> CoverageReport:
        """Freeze the counters into a :class:`CoverageReport`."""

        if len(script) != len(self._counts):
            raise CoverageInvariantError(
                f"script has {len(script)} lines but {len(self._counts)} counters"
            )

        unreachable = tuple(
            line.index + 1
            for line in script.lines[: script.end_index]
            if self._counts[line.index] == 0 and not line.is_blank
        )
        return CoverageReport(
            coverage=tuple(self._counts),
            unreachable=unreachable,
            complete=complete,
            paths_explored=paths_explored,
            steps=steps,
            scene_exits=tuple(sorted(set(scene_exits))),
        )


__all__ = ["CoverageReport", "CoverageAggregator"]
