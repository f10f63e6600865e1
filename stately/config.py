"""Compiler configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CompilerConfig:
    """Immutable options for compiling a description.

    Attributes:
        require_reachable: Reject descriptions with states the starting state
            can never reach.
        allow_terminal: Accept states with no outgoing events. When False
            such a state is a malformed description.
        warn_unreachable: Log a warning for each unreachable state when
            ``require_reachable`` is off.
    """

    require_reachable: bool = False
    allow_terminal: bool = True
    warn_unreachable: bool = True
