"""The ``transitions_to`` handler wrapper."""
from __future__ import annotations

import functools
from typing import Any, Callable, overload

from stately.types import Handler, MalformedDescriptionError

_DESTINATION_ATTR = "__transitions_to__"


@overload
def transitions_to(destination: str) -> Callable[[Handler], Handler]: ...
@overload
def transitions_to(destination: str, handler: Handler) -> Handler: ...


def transitions_to(
    destination: str, handler: Handler | None = None,
) -> Handler | Callable[[Handler], Handler]:
    """Wrap ``handler`` so a successful call moves its machine to ``destination``.

    The wrapped function calls ``handler(machine, *args, **kwargs)`` and only
    then sets the machine's current state. If the handler raises, the state
    is left alone and the exception propagates.

    Called with one argument it returns a decorator::

        @transitions_to("held")
        def place_hold(account):
            ...
    """
    if not isinstance(destination, str):
        raise TypeError(f"Destination must be a state name, got {destination!r}")
    if not destination:
        raise MalformedDescriptionError("Destination state name must be non-empty")
    if handler is None:
        return lambda fn: transitions_to(destination, fn)
    if not callable(handler):
        raise TypeError(f"Handler for {destination!r} must be callable, got {handler!r}")

    @functools.wraps(handler)
    def wrapped(machine: Any, *args: Any, **kwargs: Any) -> Any:
        result = handler(machine, *args, **kwargs)
        machine._state = destination
        return result

    setattr(wrapped, _DESTINATION_ATTR, destination)
    return wrapped


def destination_of(handler: Handler) -> str | None:
    """Return the state a wrapped handler moves to, or None if unwrapped."""
    return getattr(handler, _DESTINATION_ATTR, None)
