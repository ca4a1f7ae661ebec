"""Typed representation of the lines that make up a scene script."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence

from .errors import ParseError


class LineKind(str, Enum):
    """Classification assigned to each line of a scene."""

    TEXT = "text"
    GOTO = "goto"
    LABEL = "label"
    IF = "if"
    ELSEIF = "elseif"
    ELSE = "else"
    TEMP = "temp"
    SET = "set"
    FINISH = "finish"
    CHOICE = "choice"
    OPTION = "option"
    OTHER = "other"
    END = "end"


class LineVariant(str, Enum):
    """Sub-kind for directives that share a :class:`LineKind`."""

    FINISH = "finish"
    ENDING = "ending"
    GOTO_SCENE = "goto_scene"
    CHOICE = "choice"
    FAKE_CHOICE = "fake_choice"


_DIRECTIVE_KINDS: dict[str, LineKind] = {
    "goto": LineKind.GOTO,
    "label": LineKind.LABEL,
    "if": LineKind.IF,
    "elseif": LineKind.ELSEIF,
    "elsif": LineKind.ELSEIF,
    "else": LineKind.ELSE,
    "temp": LineKind.TEMP,
    "set": LineKind.SET,
    "finish": LineKind.FINISH,
    "ending": LineKind.FINISH,
    "goto_scene": LineKind.FINISH,
    "choice": LineKind.CHOICE,
    "fake_choice": LineKind.CHOICE,
}

_DIRECTIVE_VARIANTS: dict[str, LineVariant] = {
    variant.value: variant for variant in LineVariant
}

_DIRECTIVE_PATTERN = re.compile(r"^\*([A-Za-z_][A-Za-z0-9_]*)(?:\s+(.*))?$")
_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_OPTION_MODIFIER_PATTERN = re.compile(
    r"\*(?:(?:disable_reuse|hide_reuse|allow_reuse)\b"
    r"|(?:if|selectable_if)\s*\((?P<condition>[^()]*(?:\([^()]*\)[^()]*)*)\))\s*",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ScriptLine:
    """One classified line of a scene.

    ``operands`` holds the already-split arguments of a directive. Conditions
    and assignment expressions are kept as raw text and never evaluated here.
    """

    index: int
    kind: LineKind
    operands: tuple[str, ...] = ()
    indent: int = 0
    text: str = ""
    directive: str | None = None
    variant: LineVariant | None = None

    @property
    def is_blank(self) -> bool:
        """Return ``True`` for whitespace-only text lines."""

        return self.kind is LineKind.TEXT and not self.text.strip()

    @property
    def is_fake_choice(self) -> bool:
        return self.variant is LineVariant.FAKE_CHOICE


@dataclass(frozen=True)
class SceneScript:
    """Immutable, line-indexed scene.

    The final entry is always an ``END`` sentinel that marks the point where
    execution runs off the bottom of the scene.
    """

    name: str
    lines: tuple[ScriptLine, ...]

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, index: int) -> ScriptLine:
        return self.lines[index]

    def __iter__(self) -> Iterator[ScriptLine]:
        return iter(self.lines)

    @property
    def end_index(self) -> int:
        """Return the index of the ``END`` sentinel."""

        return len(self.lines) - 1

    @property
    def source_line_count(self) -> int:
        """Return the number of lines that came from the scene text."""

        return len(self.lines) - 1


def _measure_indent(raw: str, index: int) -> tuple[int, str]:
    stripped = raw.lstrip(" \t")
    whitespace = raw[: len(raw) - len(stripped)]
    if " " in whitespace and "\t" in whitespace:
        raise ParseError(index, "mixed tabs and spaces in indentation")
    return len(whitespace), stripped


def _require_name(value: str, index: int, *, directive: str, what: str) -> str:
    if not _NAME_PATTERN.match(value):
        raise ParseError(index, f"*{directive} requires a valid {what}, got '{value}'")
    return value


def _parse_directive(
    index: int, indent: int, stripped: str, raw: str
) -> ScriptLine:
    match = _DIRECTIVE_PATTERN.match(stripped.rstrip())
    if match is None:
        if stripped.rstrip() == "*":
            raise ParseError(index, "empty directive")
        raise ParseError(index, f"malformed directive '{stripped.rstrip()}'")

    directive = match.group(1).lower()
    rest = (match.group(2) or "").strip()
    kind = _DIRECTIVE_KINDS.get(directive, LineKind.OTHER)
    tokens = rest.split()

    operands: tuple[str, ...]
    if kind in (LineKind.GOTO, LineKind.LABEL):
        if len(tokens) != 1:
            raise ParseError(index, f"*{directive} requires exactly one label name")
        operands = (tokens[0].lower(),)
    elif kind in (LineKind.IF, LineKind.ELSEIF):
        if not rest:
            raise ParseError(index, f"*{directive} requires a condition")
        operands = (rest,)
    elif kind is LineKind.ELSE:
        if rest:
            raise ParseError(index, "*else does not accept a condition")
        operands = ()
    elif kind is LineKind.SET:
        if len(tokens) < 2:
            raise ParseError(index, "*set requires a variable and a value")
        variable = _require_name(tokens[0], index, directive=directive, what="variable name")
        operands = (variable.lower(), rest[len(tokens[0]) :].strip())
    elif kind is LineKind.TEMP:
        if not tokens:
            raise ParseError(index, "*temp requires a variable name")
        variable = _require_name(tokens[0], index, directive=directive, what="variable name")
        value = rest[len(tokens[0]) :].strip()
        operands = (variable.lower(), value) if value else (variable.lower(),)
    elif kind is LineKind.FINISH:
        if directive == LineVariant.GOTO_SCENE.value:
            if not tokens:
                raise ParseError(index, "*goto_scene requires a scene name")
            operands = (tokens[0],)
        else:
            operands = ()
    elif kind is LineKind.CHOICE:
        operands = ()
    else:
        operands = (rest,) if rest else ()

    return ScriptLine(
        index=index,
        kind=kind,
        operands=operands,
        indent=indent,
        text=raw,
        directive=directive,
        variant=_DIRECTIVE_VARIANTS.get(directive),
    )


def _split_option_modifiers(stripped: str) -> tuple[list[str], str] | None:
    """Return the guard conditions and ``#text`` of a modified option line.

    ``*if (cond) #text``, ``*selectable_if (cond) #text`` and the reuse flags
    may precede an option, in any combination. ``None`` means the line is an
    ordinary directive.
    """

    head, marker, text = stripped.partition("#")
    if not marker:
        return None

    conditions: list[str] = []
    position = 0
    while position < len(head):
        match = _OPTION_MODIFIER_PATTERN.match(head, position)
        if match is None:
            return None
        if match.group("condition") is not None:
            conditions.append(match.group("condition").strip())
        position = match.end()
    return conditions, text


def _make_option(
    index: int, indent: int, raw: str, text: str, conditions: Sequence[str] = ()
) -> ScriptLine:
    option_text = text.strip()
    if not option_text:
        raise ParseError(index, "#option requires descriptive text")
    operands: tuple[str, ...] = (option_text,)
    if conditions:
        operands += (" and ".join(f"({condition})" for condition in conditions),)
    return ScriptLine(
        index=index,
        kind=LineKind.OPTION,
        operands=operands,
        indent=indent,
        text=raw,
    )


def parse_line(raw: str, index: int) -> ScriptLine:
    """Classify a single raw line of scene text.

    Option lines carry ``(text,)`` or, when guarded by ``*if``/
    ``*selectable_if`` modifiers, ``(text, condition)``.
    """

    indent, stripped = _measure_indent(raw, index)
    if stripped.startswith("*"):
        modified = _split_option_modifiers(stripped)
        if modified is not None:
            conditions, text = modified
            return _make_option(index, indent, raw, text, conditions)
        return _parse_directive(index, indent, stripped, raw)
    if stripped.startswith("#"):
        return _make_option(index, indent, raw, stripped[1:])

    return ScriptLine(
        index=index,
        kind=LineKind.TEXT,
        operands=(stripped.rstrip(),) if stripped.strip() else (),
        indent=indent,
        text=raw,
    )


def split_scene_text(text: str) -> Sequence[str]:
    """Split raw scene text into lines, tolerating Windows line endings."""

    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def parse_scene(text: str, *, name: str = "scene") -> SceneScript:
    """Parse ``text`` into a :class:`SceneScript`.

    Raises:
        TypeError: If ``text`` is not a string.
        ParseError: For the first malformed line; no partial script is built.
    """

    if not isinstance(text, str):
        raise TypeError(f"scene text must be a string, got {type(text)!r}")

    lines = [parse_line(raw, index) for index, raw in enumerate(split_scene_text(text))]
    lines.append(ScriptLine(index=len(lines), kind=LineKind.END))
    return SceneScript(name=name, lines=tuple(lines))


__all__ = [
    "LineKind",
    "LineVariant",
    "ScriptLine",
    "SceneScript",
    "parse_line",
    "parse_scene",
    "split_scene_text",
]
