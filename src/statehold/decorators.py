"""Decorators that attach functions and methods to stores.

With a store (an instance, or a name resolved through a State) the function
is registered right away:

    @store_loader("users")
    async def load_users():
        ...

Without one, the function is only marked. ObservableStore.observable_store()
collects the marked methods of the object it observes and wires them up:

    class Payroll:
        @store_listener()
        def audit(self, change): ...

        @store_action()
        def raise_wages(self, amount): ...

Marked actions run inline: executing "raise_wages" calls the method on the
observed object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from statehold.action import ActionType
from statehold.state import default_state

if TYPE_CHECKING:
    from statehold.state import State

F = TypeVar("F", bound=Callable[..., Any])

# Attribute set on marked functions: (ActionType, handler name).
DECORATOR_KEY = "__statehold_handler__"


@dataclass(frozen=True)
class HandlerDefinition:
    type: ActionType
    callback: Callable[..., Any]


def _register(
    kind: ActionType,
    store: Any,
    name: str,
    fn: Callable[..., Any],
    state: State | None,
) -> None:
    if isinstance(store, str):
        registry = state if state is not None else default_state()
        adders = {
            ActionType.LISTENER: registry.add_listener,
            ActionType.ACTION: registry.add_action,
            ActionType.LOADER: registry.add_loader,
            ActionType.TRANSFORMER: registry.add_transformer,
        }
        adders[kind](store, name, fn)
        return
    creators = {
        ActionType.LISTENER: store.create_listener,
        ActionType.ACTION: store.create_action,
        ActionType.LOADER: getattr(store, "create_loader", None),
        ActionType.TRANSFORMER: getattr(store, "create_transformer", None),
    }
    create = creators[kind]
    if create is None:
        raise TypeError(f"{type(store).__name__} does not accept {kind.value} handlers")
    create(name, fn)


def _decorator(
    kind: ActionType,
    marked: ActionType | None,
    store: Any,
    name: str | None,
    state: State | None,
) -> Callable[[F], F]:
    if store is None and marked is None:
        raise TypeError(f"store_{kind.value} needs a store instance or name")

    def decorate(fn: F) -> F:
        handler_name = name or fn.__name__
        if store is None:
            setattr(fn, DECORATOR_KEY, (marked, handler_name))
        else:
            _register(kind, store, handler_name, fn, state)
        return fn

    return decorate


def store_listener(store: Any = None, *, name: str | None = None, state: State | None = None):
    """Register a listener, or mark a method as one when no store is given."""
    return _decorator(ActionType.LISTENER, ActionType.LISTENER, store, name, state)


def store_action(store: Any = None, *, name: str | None = None, state: State | None = None):
    """Register an action, or mark a method as an inline action when no store is given."""
    return _decorator(ActionType.ACTION, ActionType.INLINE_ACTION, store, name, state)


def store_loader(store: Any, *, name: str | None = None, state: State | None = None):
    return _decorator(ActionType.LOADER, None, store, name, state)


def store_transformer(store: Any, *, name: str | None = None, state: State | None = None):
    return _decorator(ActionType.TRANSFORMER, None, store, name, state)


def handler_definitions(target: Any) -> dict[str, HandlerDefinition]:
    """Marked methods of ``target``'s class, bound to ``target``, by handler name.

    Subclass definitions override base class ones with the same name.
    """
    definitions: dict[str, HandlerDefinition] = {}
    for klass in reversed(type(target).__mro__):
        for attr, value in vars(klass).items():
            marker = getattr(value, DECORATOR_KEY, None)
            if marker is None:
                continue
            kind, handler_name = marker
            definitions[handler_name] = HandlerDefinition(kind, getattr(target, attr))
    return definitions
