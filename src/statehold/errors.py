"""Exception hierarchy for statehold."""

from __future__ import annotations


class StateError(Exception):
    """Base exception for all statehold errors."""


class InvalidDataError(StateError, TypeError):
    """A function, method or class was handed to set_data()."""


class ObserverDataError(StateError):
    """set_data() was called on an observable store.

    Observable stores watch a caller-owned object; mutate that object instead.
    """


class DuplicateNameError(StateError):
    """A store with this name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Store with the name "{name}" already exists. '
            "Please remove the store before re-creating it."
        )


class HandlerReplacementError(StateError):
    """An existing handler could not be removed before being replaced."""


class CallbackError(StateError):
    """A user-supplied action, loader, transformer or listener raised.

    The original exception is available as ``__cause__``.
    """
