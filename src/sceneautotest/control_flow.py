"""Label resolution and block structure for scene scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

from .errors import DuplicateLabelError, ParseError, UnresolvedGotoError
from .script_lines import LineKind, SceneScript, ScriptLine

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabelTable:
    """Read-only mapping from label name to the line that declares it."""

    entries: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def resolve(self, name: str) -> int:
        """Return the line index of ``name``; raises ``KeyError`` if missing."""

        return self.entries[name.lower()]


class ChainKind(str, Enum):
    IF = "if"
    CHOICE = "choice"
    FAKE_CHOICE = "fake_choice"


@dataclass(frozen=True)
class BranchChain:
    """A run of sibling branches that share a single exit line.

    For ``*if`` chains the headers are the ``*if``/``*elseif``/``*else`` lines;
    for choices they are the ``#option`` lines and ``start`` is the
    ``*choice`` line itself.
    """

    kind: ChainKind
    start: int
    headers: tuple[int, ...]
    exit: int
    has_else: bool = False

    @property
    def allows_fallthrough(self) -> bool:
        """Return ``True`` when a branch body may run into the chain exit."""

        if self.kind is ChainKind.IF:
            return self.has_else or len(self.headers) == 1
        return self.kind is ChainKind.FAKE_CHOICE

    def next_header(self, header: int) -> int | None:
        """Return the header following ``header`` in this chain, if any."""

        position = self.headers.index(header)
        if position + 1 < len(self.headers):
            return self.headers[position + 1]
        return None


@dataclass(frozen=True)
class Branch:
    """The body governed by a single branch header, ``[start, end)``."""

    header: int
    end: int
    chain: BranchChain

    @property
    def start(self) -> int:
        return self.header + 1


@dataclass(frozen=True)
class ControlFlow:
    """Everything the explorer needs to know about jumps and blocks."""

    labels: LabelTable
    goto_targets: Mapping[int, int]
    branches: Mapping[int, Branch]
    chains: Mapping[int, BranchChain]
    enclosing: tuple[tuple[Branch, ...], ...]

    def goto_target(self, line: int) -> int:
        return self.goto_targets[line]

    def branch_at(self, header: int) -> Branch:
        return self.branches[header]

    def chain_at(self, start: int) -> BranchChain:
        return self.chains[start]

    def enclosing_branches(self, line: int) -> tuple[Branch, ...]:
        """Return the branches whose body contains ``line``, innermost first."""

        return self.enclosing[line]


def build_label_table(script: SceneScript) -> LabelTable:
    """Collect every ``*label`` line; duplicates are fatal."""

    entries: dict[str, int] = {}
    for line in script:
        if line.kind is not LineKind.LABEL:
            continue
        name = line.operands[0]
        if name in entries:
            raise DuplicateLabelError(
                name, first_line=entries[name], second_line=line.index
            )
        entries[name] = line.index
    return LabelTable(entries)


def resolve_gotos(script: SceneScript, labels: LabelTable) -> dict[int, int]:
    """Map each ``*goto`` line to the index of its label."""

    targets: dict[int, int] = {}
    for line in script:
        if line.kind is not LineKind.GOTO:
            continue
        name = line.operands[0]
        if name not in labels:
            raise UnresolvedGotoError(name, line.index)
        targets[line.index] = labels.resolve(name)
    return targets


def _block_end(lines: Sequence[ScriptLine], header: int, limit: int) -> int:
    base_indent = lines[header].indent
    index = header + 1
    while index < limit:
        line = lines[index]
        if not line.is_blank and line.indent <= base_indent:
            break
        index += 1
    return index


def _collect_if_chain(
    lines: Sequence[ScriptLine], start: int, limit: int
) -> tuple[BranchChain, list[int]]:
    indent = lines[start].indent
    headers = [start]
    ends: list[int] = []
    has_else = False
    end = _block_end(lines, start, limit)
    ends.append(end)
    while end < limit:
        candidate = lines[end]
        if candidate.indent != indent or candidate.kind not in (
            LineKind.ELSEIF,
            LineKind.ELSE,
        ):
            break
        headers.append(end)
        end = _block_end(lines, end, limit)
        ends.append(end)
        if candidate.kind is LineKind.ELSE:
            has_else = True
            break

    chain = BranchChain(
        kind=ChainKind.IF,
        start=start,
        headers=tuple(headers),
        exit=end,
        has_else=has_else,
    )
    return chain, ends


def _collect_choice(
    lines: Sequence[ScriptLine], start: int, limit: int
) -> tuple[BranchChain, list[int]]:
    block_end = _block_end(lines, start, limit)
    body = [index for index in range(start + 1, block_end) if not lines[index].is_blank]
    if not body:
        raise ParseError(start, f"*{lines[start].directive} requires at least one #option")

    option_indent = lines[body[0]].indent
    headers: list[int] = []
    for index in body:
        line = lines[index]
        if line.indent < option_indent:
            raise ParseError(index, "inconsistent indentation inside *choice")
        if line.indent == option_indent:
            if line.kind is not LineKind.OPTION:
                raise ParseError(index, "expected an #option inside *choice")
            headers.append(index)

    ends = [_block_end(lines, header, block_end) for header in headers]
    kind = ChainKind.FAKE_CHOICE if lines[start].is_fake_choice else ChainKind.CHOICE
    chain = BranchChain(kind=kind, start=start, headers=tuple(headers), exit=block_end)
    return chain, ends


def build_block_structure(
    script: SceneScript,
) -> tuple[dict[int, Branch], dict[int, BranchChain], tuple[tuple[Branch, ...], ...]]:
    """Discover every ``*if`` chain and ``*choice`` block in ``script``."""

    lines = script.lines
    limit = script.end_index
    branches: dict[int, Branch] = {}
    chains: dict[int, BranchChain] = {}

    for line in lines[:limit]:
        if line.kind is LineKind.IF:
            chain, ends = _collect_if_chain(lines, line.index, limit)
        elif line.kind is LineKind.CHOICE:
            chain, ends = _collect_choice(lines, line.index, limit)
        elif line.kind in (LineKind.ELSEIF, LineKind.ELSE):
            if line.index not in branches:
                raise ParseError(
                    line.index, f"*{line.directive} without a matching *if"
                )
            continue
        elif line.kind is LineKind.OPTION:
            if line.index not in branches:
                raise ParseError(line.index, "#option outside of a *choice")
            continue
        else:
            continue

        chains[chain.start] = chain
        for header, end in zip(chain.headers, ends):
            branches[header] = Branch(header=header, end=end, chain=chain)

    containing: list[list[Branch]] = [[] for _ in lines]
    for branch in branches.values():
        for index in range(branch.start, branch.end):
            containing[index].append(branch)
    enclosing = tuple(
        tuple(sorted(found, key=lambda branch: branch.header, reverse=True))
        for found in containing
    )
    return branches, chains, enclosing


def resolve_control_flow(script: SceneScript) -> ControlFlow:
    """Build the label table, resolve every jump and map the block structure.

    Raises:
        DuplicateLabelError: When a label name is declared twice.
        UnresolvedGotoError: When a ``*goto`` names an unknown label.
        ParseError: When ``*elseif``/``*else``/``#option`` lines are orphaned
            or a ``*choice`` block is malformed.
    """

    labels = build_label_table(script)
    goto_targets = resolve_gotos(script, labels)
    LOG.debug(
        "Resolved %d label(s) and %d goto(s) in scene '%s'",
        len(labels),
        len(goto_targets),
        script.name,
    )
    branches, chains, enclosing = build_block_structure(script)
    return ControlFlow(
        labels=labels,
        goto_targets=MappingProxyType(goto_targets),
        branches=MappingProxyType(branches),
        chains=MappingProxyType(chains),
        enclosing=enclosing,
    )


__all__ = [
    "LabelTable",
    "ChainKind",
    "BranchChain",
    "Branch",
    "ControlFlow",
    "build_label_table",
    "resolve_gotos",
    "build_block_structure",
    "resolve_control_flow",
]
