"""Recover the declared transition graph from a compiled table."""
from __future__ import annotations

from typing import Union

from stately.machine import Machine, table_of
from stately.table import StateTable
from stately.types import Diagram, MalformedDescriptionError, Transition

TableLike = Union[StateTable, Machine]


def _table(source: TableLike) -> StateTable:
    if isinstance(source, Machine):
        return table_of(source)
    return source


def describe(source: TableLike, starting_state: str | None = None) -> Diagram:
    """Build a ``Diagram`` from a table, or from the table behind a machine.

    Only the table's retained transitions are read, so a machine's own
    current state never affects the result. ``starting_state`` overrides the
    table's and must be a declared state.
    """
    table = _table(source)
    start = table.starting_state if starting_state is None else starting_state
    if start not in table.handlers:
        raise MalformedDescriptionError(
            f"Starting state {start!r} is not a declared state", start
        )
    edges: dict[str, dict[str, list[str]]] = {state: {} for state in table.states}
    for t in table.transitions:
        edges[t.source].setdefault(t.destination, []).append(t.event)
    return Diagram(
        starting_state=start,
        edges={
            src: {dest: tuple(events) for dest, events in dests.items()}
            for src, dests in edges.items()
        },
    )


def transitions_of(source: TableLike) -> tuple[Transition, ...]:
    """Declared (source, event, destination) triples, in declaration order."""
    return _table(source).transitions


def terminal_states(source: TableLike) -> list[str]:
    """States with no outgoing events."""
    table = _table(source)
    return [state for state, handlers in table.handlers.items() if not handlers]
