"""Exceptions raised while analysing a scene script."""

from __future__ import annotations


FALL_OUT_OF_IF = "Fall out of if statement"
FALL_OUT_OF_CHOICE = "It is illegal to fall out of a *choice statement"


class AutotestError(Exception):
    """Base class for errors that make a scene un-analysable."""

    kind = "error"

    @property
    def line(self) -> int | None:
        """Return the 0-based line index the error points at, if any."""

        return None


class ParseError(AutotestError):
    """Raised when a line cannot be classified or its operands are malformed."""

    kind = "parse"

    def __init__(self, line_index: int, message: str) -> None:
        super().__init__(f"line {line_index + 1}: {message}")
        self.line_index = line_index
        self.message = message

    @property
    def line(self) -> int | None:
        return self.line_index


class DuplicateLabelError(AutotestError):
    """Raised when two ``*label`` directives share a name."""

    kind = "duplicate_label"

    def __init__(
        self,
        label_name: str,
        *,
        first_line: int | None = None,
        second_line: int | None = None,
    ) -> None:
        super().__init__(f"Duplicate label '{label_name}'")
        self.label_name = label_name
        self.first_line = first_line
        self.second_line = second_line

    @property
    def line(self) -> int | None:
        return self.second_line


class UnresolvedGotoError(AutotestError):
    """Raised when a ``*goto`` names a label that does not exist."""

    kind = "unresolved_goto"

    def __init__(self, label_name: str, from_line: int) -> None:
        super().__init__(
            f"line {from_line + 1}: no label named '{label_name}' for *goto"
        )
        self.label_name = label_name
        self.from_line = from_line

    @property
    def line(self) -> int | None:
        return self.from_line


class FallthroughError(AutotestError):
    """Raised when execution can leave a branch chain without terminating."""

    kind = "fallthrough"

    def __init__(self, chain_start_line: int, message: str = FALL_OUT_OF_IF) -> None:
        super().__init__(message)
        self.chain_start_line = chain_start_line
        self.message = message

    @property
    def line(self) -> int | None:
        return self.chain_start_line


class CoverageInvariantError(RuntimeError):
    """Raised when the analyser tries to record a line outside the script."""


class ExplorationLimitExceeded(RuntimeWarning):
    """Warning emitted when the step or path budget cuts exploration short."""


__all__ = [
    "FALL_OUT_OF_IF",
    "FALL_OUT_OF_CHOICE",
    "AutotestError",
    "ParseError",
    "DuplicateLabelError",
    "UnresolvedGotoError",
    "FallthroughError",
    "CoverageInvariantError",
    "ExplorationLimitExceeded",
]
