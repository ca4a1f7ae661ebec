"""Detect branches whose body runs off the end without terminating."""

from __future__ import annotations

import logging

from .control_flow import Branch, ChainKind, ControlFlow
from .errors import FALL_OUT_OF_CHOICE, FALL_OUT_OF_IF, FallthroughError

LOG = logging.getLogger(__name__)


class StructuralValidator:
    """Route moves that leave branch bodies and reject illegal fall-throughs.

    The explorer asks the validator for the real successor whenever control
    advances sequentially. Leaving a body through its end means the branch
    neither jumped nor finished; depending on the chain that either continues
    at the chain exit or is an authoring error.
    """

    def __init__(self, control_flow: ControlFlow) -> None:
        self._control_flow = control_flow

    def exit_target(self, line: int, target: int, own: Branch | None = None) -> int:
        """Return where control lands when moving from ``line`` to ``target``.

        ``own`` is the branch headed by ``line`` when the move enters that
        branch's body; an empty body leaves it immediately.
        """

        candidates: tuple[Branch, ...] = self._control_flow.enclosing_branches(line)
        if own is not None:
            candidates = (own,) + candidates

        for branch in candidates:
            if target != branch.end:
                break
            target = self._leave(branch)
        return target

    def _leave(self, branch: Branch) -> int:
        chain = branch.chain
        if not chain.allows_fallthrough:
            message = FALL_OUT_OF_CHOICE if chain.kind is ChainKind.CHOICE else FALL_OUT_OF_IF
            LOG.debug(
                "Branch at line %d falls out of the chain starting at line %d",
                branch.header + 1,
                chain.start + 1,
            )
            raise FallthroughError(chain.start, message)
        return chain.exit


__all__ = ["StructuralValidator"]
