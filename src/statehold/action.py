"""Actions and executables — the callbacks a store dispatches.

An Action is an inert descriptor: a name, a callback and what kind of handler
it is. An Executable binds parameters to an Action and runs it, turning any
exception raised by user code into a CallbackError so callers see one error
type regardless of which handler failed.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from statehold.errors import CallbackError


class ActionType(Enum):
    """Handler kinds.

    INLINE_ACTION is reserved for observable stores: the handler is a method
    of the observed object, looked up by name at execution time.
    """

    LOADER = "loader"
    TRANSFORMER = "transformer"
    LISTENER = "listener"
    ACTION = "action"
    INLINE_ACTION = "inline_action"


@dataclass(frozen=True)
class Action:
    """A named callback registered on a store."""

    name: str
    callback: Callable[..., Any] | None
    action_type: ActionType = ActionType.ACTION


def _message(action: Action, error: Exception) -> str:
    return str(error) or f"{action.name} failed with {type(error).__name__}"


class Executable:
    """An Action plus the parameters to call it with."""

    __slots__ = ("action", "params")

    def __init__(self, action: Action, params: Sequence[Any] = ()) -> None:
        self.action = action
        self.params = tuple(params)

    def call(self) -> Any:
        """Invoke the callback synchronously.

        Returns whatever the callback returns, which may be awaitable.
        """
        if self.action.callback is None:
            return None
        try:
            return self.action.callback(*self.params)
        except CallbackError:
            raise
        except Exception as error:
            raise CallbackError(_message(self.action, error)) from error

    async def settle(self, pending: Awaitable[Any]) -> Any:
        """Await a result returned by call(), converting errors the same way."""
        try:
            return await pending
        except CallbackError:
            raise
        except Exception as error:
            raise CallbackError(_message(self.action, error)) from error

    async def execute(self) -> Any:
        """Invoke the callback and await its result if needed."""
        result = self.call()
        if inspect.isawaitable(result):
            return await self.settle(result)
        return result

    def __repr__(self) -> str:
        return f"Executable({self.action.name!r}, {self.action.action_type.name}, params={self.params!r})"
