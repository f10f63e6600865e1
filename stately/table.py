"""StateTable and the description compiler."""
from __future__ import annotations

import keyword
import logging
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Collection, Mapping

from stately.config import CompilerConfig
from stately.types import (
    Description,
    DuplicateEventError,
    Handler,
    MalformedDescriptionError,
    Transition,
)
from stately.wrapper import destination_of, transitions_to

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class StateTable:
    """Compiled, read-only transition table shared by every machine built from it.

    ``handlers`` maps state -> event -> ready-to-call handler. ``transitions``
    keeps the declared (source, event, destination) triples as plain data,
    since a wrapped handler does not expose where it goes.
    """

    handlers: Mapping[str, Mapping[str, Handler]]
    transitions: tuple[Transition, ...]
    starting_state: str
    properties: Mapping[str, Any]

    @property
    def states(self) -> tuple[str, ...]:
        return tuple(self.handlers)

    @property
    def events(self) -> tuple[str, ...]:
        """Every event name in any state, ordered by first declaration."""
        return tuple(dict.fromkeys(t.event for t in self.transitions))

    def events_for(self, state: str) -> tuple[str, ...]:
        """Events valid in ``state``. Raises KeyError if not declared."""
        return tuple(self.handlers[state])

    def destination(self, state: str, event: str) -> str:
        """State reached by ``event`` from ``state``. Raises KeyError if undeclared."""
        for t in self.transitions:
            if t.source == state and t.event == event:
                return t.destination
        raise KeyError((state, event))

    @classmethod
    def from_handlers(
        cls,
        handlers: Mapping[str, Mapping[str, Handler]],
        starting_state: str,
        properties: Mapping[str, Any] | None = None,
        config: CompilerConfig | None = None,
    ) -> StateTable:
        """Build a table from hand-written per-state handlers.

        Handlers that change state must already be wrapped with
        ``transitions_to``; an unwrapped handler leaves the state as is.
        """
        _check_states(handlers, starting_state)
        compiled: dict[str, Mapping[str, Handler]] = {}
        transitions: list[Transition] = []
        for source, events in handlers.items():
            for event, handler in events.items():
                _check_handler(source, event, handler)
                declared = destination_of(handler)
                destination = source if declared is None else declared
                _check_destination(handlers, source, destination)
                transitions.append(Transition(source, event, destination))
            compiled[source] = MappingProxyType(dict(events))
        return _finish(compiled, transitions, starting_state, properties or {}, config)


def compile_description(
    description: Description, config: CompilerConfig | None = None,
) -> StateTable:
    """Validate ``description`` and compile it into a ``StateTable``.

    Every handler is wrapped to move the machine to its bucket's destination,
    self-transitions included. The table's ``starting_state`` is the
    description's.

    Raises ``MalformedDescriptionError`` for undeclared destinations, bad
    names or a bad starting state, and ``DuplicateEventError`` when a state
    declares one event in two destination buckets.
    """
    states = description.states
    _check_states(states, description.starting_state)
    compiled: dict[str, Mapping[str, Handler]] = {}
    transitions: list[Transition] = []
    for source, buckets in states.items():
        bucket_of: dict[str, str] = {}
        state_handlers: dict[str, Handler] = {}
        for destination, events in buckets.items():
            _check_destination(states, source, destination)
            for event, handler in events.items():
                if event in bucket_of:
                    raise DuplicateEventError(source, event, (bucket_of[event], destination))
                _check_handler(source, event, handler)
                declared = destination_of(handler)
                if declared is not None and declared != destination:
                    raise MalformedDescriptionError(
                        f"Handler for {event!r} in state {source!r} already transitions "
                        f"to {declared!r}, but is declared under {destination!r}",
                        source,
                    )
                bucket_of[event] = destination
                state_handlers[event] = (
                    handler if declared is not None else transitions_to(destination, handler)
                )
                transitions.append(Transition(source, event, destination))
        compiled[source] = MappingProxyType(state_handlers)
    return _finish(
        compiled, transitions, description.starting_state, description.properties, config,
    )


def _finish(
    handlers: dict[str, Mapping[str, Handler]],
    transitions: list[Transition],
    starting_state: str,
    properties: Mapping[str, Any],
    config: CompilerConfig | None,
) -> StateTable:
    config = config or CompilerConfig()
    check_properties(properties, {t.event for t in transitions})

    if not config.allow_terminal:
        for state, state_handlers in handlers.items():
            if not state_handlers:
                raise MalformedDescriptionError(
                    f"State {state!r} has no outgoing events", state
                )

    unreachable = _unreachable(handlers, transitions, starting_state)
    if unreachable:
        if config.require_reachable:
            raise MalformedDescriptionError(
                f"States not reachable from {starting_state!r}: {', '.join(unreachable)}",
                unreachable[0],
            )
        if config.warn_unreachable:
            for state in unreachable:
                logger.warning(
                    "State %r is not reachable from starting state %r", state, starting_state
                )

    table = StateTable(
        handlers=MappingProxyType(handlers),
        transitions=tuple(transitions),
        starting_state=starting_state,
        properties=MappingProxyType(dict(properties)),
    )
    logger.debug(
        "Compiled table with %d states and %d transitions, starting in %r",
        len(handlers), len(transitions), starting_state,
    )
    return table


def check_properties(properties: Mapping[str, Any], events: Collection[str]) -> None:
    """Raise ``MalformedDescriptionError`` if a property name is unusable."""
    for name in properties:
        _check_name(name, "Property")
        if name in events:
            raise MalformedDescriptionError(
                f"Property {name!r} has the same name as an event"
            )


def _unreachable(
    handlers: Mapping[str, Any], transitions: list[Transition], start: str,
) -> list[str]:
    neighbours: dict[str, list[str]] = {}
    for t in transitions:
        neighbours.setdefault(t.source, []).append(t.destination)
    seen = {start}
    frontier = deque([start])
    while frontier:
        state = frontier.popleft()
        for nxt in neighbours.get(state, ()):
            if nxt not in seen:
                seen.add(nxt)
                frontier.append(nxt)
    return [s for s in handlers if s not in seen]


def _check_states(states: Mapping[str, Any], starting_state: str) -> None:
    if not states:
        raise MalformedDescriptionError("Description declares no states")
    for state in states:
        if not isinstance(state, str) or not state:
            raise MalformedDescriptionError(f"State names must be non-empty strings, got {state!r}")
    if starting_state not in states:
        raise MalformedDescriptionError(
            f"Starting state {starting_state!r} is not a declared state", starting_state
        )


def _check_destination(states: Mapping[str, Any], source: str, destination: str) -> None:
    if destination not in states:
        raise MalformedDescriptionError(
            f"State {source!r} transitions to undeclared state {destination!r}", source
        )


def _check_handler(source: str, event: str, handler: Any) -> None:
    _check_name(event, "Event", source)
    if not callable(handler):
        raise MalformedDescriptionError(
            f"Handler for {event!r} in state {source!r} is not callable", source
        )


def _check_name(name: Any, kind: str, state: str | None = None) -> None:
    # Events and properties share the instance attribute namespace with
    # the machine's private fields.
    if (
        not isinstance(name, str)
        or not name.isidentifier()
        or keyword.iskeyword(name)
        or name.startswith("_")
    ):
        raise MalformedDescriptionError(
            f"{kind} name {name!r} must be a public Python identifier", state
        )
