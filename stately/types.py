"""Shared value types and errors for stately."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

Handler = Callable[..., Any]

# source state -> destination state -> event name -> handler
StateMap = dict[str, dict[str, dict[str, Handler]]]


class StateMachineError(Exception):
    """Base class for every error raised by stately itself."""


class MalformedDescriptionError(StateMachineError, ValueError):
    """Raised when a description or table cannot be compiled."""

    def __init__(self, message: str, state: str | None = None) -> None:
        self.state = state
        super().__init__(message)


class DuplicateEventError(MalformedDescriptionError):
    """Raised when one state declares an event in two destination buckets."""

    def __init__(self, state: str, event: str, destinations: tuple[str, str]) -> None:
        self.event = event
        self.destinations = destinations
        super().__init__(
            f"Event {event!r} in state {state!r} is declared for both "
            f"{destinations[0]!r} and {destinations[1]!r}",
            state,
        )


class InvalidEventError(StateMachineError):
    """Raised when the current state has no handler for the requested event."""

    def __init__(self, event: str, state: str) -> None:
        self.event = event
        self.state = state
        super().__init__(f"Event {event!r} is not valid in state {state!r}")


class ObserverError(StateMachineError):
    """Raised when transition observers fail after a transition was committed.

    The machine is already in ``transition.destination``. ``errors`` holds
    every observer exception in call order; the first is the ``__cause__``.
    """

    def __init__(self, transition: Transition, errors: list[Exception]) -> None:
        self.transition = transition
        self.errors = errors
        super().__init__(
            f"{len(errors)} observer(s) failed after {transition.source!r} "
            f"--{transition.event}--> {transition.destination!r}"
        )


@dataclass
class Description:
    """Declarative input to the compiler.

    Attributes:
        states: Source state -> destination state -> event name -> handler.
        starting_state: State a new machine starts in. Must be a key of ``states``.
        properties: State-independent attributes copied onto every instance.
            Plain functions become methods of the instance.
    """

    states: StateMap
    starting_state: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Transition:
    """One declared (source, event, destination) edge."""

    source: str
    event: str
    destination: str

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.destination


@dataclass(frozen=True)
class Diagram:
    """Abstract transition graph for an external renderer.

    ``edges`` maps source -> destination -> event names, in declaration order.
    Every declared state is a key of ``edges``.
    """

    starting_state: str
    edges: dict[str, dict[str, tuple[str, ...]]]

    @property
    def states(self) -> list[str]:
        return list(self.edges)

    def as_dict(self) -> dict[str, Any]:
        """Plain dict/list form, JSON-compatible."""
        return {
            "starting_state": self.starting_state,
            "edges": {
                source: {dest: list(events) for dest, events in dests.items()}
                for source, dests in self.edges.items()
            },
        }
