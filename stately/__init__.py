"""stately - Compile declarative transition descriptions into state machines."""
from __future__ import annotations

import logging

from stately.config import CompilerConfig
from stately.introspect import describe, terminal_states, transitions_of
from stately.machine import (
    Machine,
    available_events,
    can,
    create,
    observe,
    state_machine,
    state_of,
    table_of,
    unobserve,
)
from stately.table import StateTable, compile_description
from stately.types import (
    Description,
    Diagram,
    DuplicateEventError,
    InvalidEventError,
    MalformedDescriptionError,
    ObserverError,
    StateMachineError,
    Transition,
)
from stately.wrapper import destination_of, transitions_to

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CompilerConfig",
    "Description",
    "Diagram",
    "DuplicateEventError",
    "InvalidEventError",
    "Machine",
    "MalformedDescriptionError",
    "ObserverError",
    "StateMachineError",
    "StateTable",
    "Transition",
    "available_events",
    "can",
    "compile_description",
    "create",
    "describe",
    "destination_of",
    "observe",
    "state_machine",
    "state_of",
    "table_of",
    "terminal_states",
    "transitions_of",
    "transitions_to",
    "unobserve",
]
