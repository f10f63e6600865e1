"""Machine instances and the factory that creates them."""
from __future__ import annotations

import copy
import inspect
import logging
import types
import weakref
from typing import Any, Callable, Mapping

from stately.config import CompilerConfig
from stately.table import StateTable, check_properties, compile_description
from stately.types import (
    Description,
    InvalidEventError,
    MalformedDescriptionError,
    ObserverError,
    Transition,
)

logger = logging.getLogger(__name__)

TransitionCallback = Callable[["Machine", Transition], None]

# One generated subclass per table, carrying a method per event.
_machine_types: weakref.WeakKeyDictionary[StateTable, type[Machine]] = (
    weakref.WeakKeyDictionary()
)


class Machine:
    """A live object bound to a shared ``StateTable``.

    Every event of the table is a method. Calling one routes through the
    handler registered for (current state, event); events the current state
    does not declare raise ``InvalidEventError`` and change nothing.

    Private attributes hold the table, the current state and observers.
    Everything else on the instance comes from the declared properties.
    """

    def __init__(self, table: StateTable, state: str) -> None:
        self._table = table
        self._state = state
        self._observers: list[TransitionCallback] = []

    def __repr__(self) -> str:
        fields = [f"state={self._state!r}"]
        for name, value in vars(self).items():
            if not name.startswith("_") and not inspect.ismethod(value):
                fields.append(f"{name}={value!r}")
        return f"{type(self).__name__}({', '.join(fields)})"

    def _dispatch(self, event: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        source = self._state
        handler = self._table.handlers[source].get(event)
        if handler is None:
            raise InvalidEventError(event, source)
        result = handler(self, *args, **kwargs)
        transition = Transition(source, event, self._state)
        logger.debug("%s --%s--> %s", source, event, transition.destination)
        errors: list[Exception] = []
        for callback in list(self._observers):
            try:
                callback(self, transition)
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise ObserverError(transition, errors) from errors[0]
        return result


def _operation(event: str) -> Callable[..., Any]:
    def operation(self: Machine, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch(event, args, kwargs)

    operation.__name__ = event
    operation.__qualname__ = f"CompiledMachine.{event}"
    operation.__doc__ = f"Dispatch {event!r} to the handler for the current state."
    return operation


def _machine_type(table: StateTable) -> type[Machine]:
    cls = _machine_types.get(table)
    if cls is None:
        namespace = {event: _operation(event) for event in table.events}
        cls = type("CompiledMachine", (Machine,), namespace)
        _machine_types[table] = cls
    return cls


def create(
    table: StateTable,
    starting_state: str | None = None,
    properties: Mapping[str, Any] | None = None,
    on_transition: TransitionCallback | None = None,
) -> Machine:
    """Create a machine bound to ``table``.

    ``starting_state`` defaults to the table's. ``properties`` adds to or
    overrides the table's declared properties for this instance only.
    Values are deep-copied so instances never share mutable state; plain
    functions are bound as methods. ``on_transition(machine, transition)``
    runs after each successful dispatch.
    """
    state = table.starting_state if starting_state is None else starting_state
    if state not in table.handlers:
        raise MalformedDescriptionError(
            f"Starting state {state!r} is not a declared state", state
        )
    merged = dict(table.properties)
    if properties:
        check_properties(properties, table.events)
        merged.update(properties)

    machine = _machine_type(table)(table, state)
    for name, value in merged.items():
        if inspect.isfunction(value):
            value = types.MethodType(value, machine)
        else:
            value = copy.deepcopy(value)
        setattr(machine, name, value)
    if on_transition is not None:
        machine._observers.append(on_transition)
    return machine


def state_machine(
    description: Description,
    config: CompilerConfig | None = None,
    **kwargs: Any,
) -> Machine:
    """Compile ``description`` and create one machine from it.

    Keyword arguments are passed to ``create``.
    """
    return create(compile_description(description, config), **kwargs)


def observe(machine: Machine, callback: TransitionCallback) -> None:
    """Add a transition observer to ``machine``."""
    machine._observers.append(callback)


def unobserve(machine: Machine, callback: TransitionCallback) -> None:
    """Remove a transition observer. No-op if it is not registered."""
    try:
        machine._observers.remove(callback)
    except ValueError:
        pass


def state_of(machine: Machine) -> str:
    """Current state name of ``machine``."""
    return machine._state


def table_of(machine: Machine) -> StateTable:
    """Shared table ``machine`` dispatches through."""
    return machine._table


def can(machine: Machine, event: str) -> bool:
    """True if ``event`` is valid in the machine's current state."""
    return event in machine._table.handlers[machine._state]


def available_events(machine: Machine) -> tuple[str, ...]:
    """Events valid in the machine's current state."""
    return machine._table.events_for(machine._state)
