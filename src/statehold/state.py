"""State — the name-based registry of stores and observers.

A State resolves stores by name for call sites that never shared a reference.
It also remembers "unbound" handlers: a listener, action, loader or
transformer registered against a store name before that store exists is
recorded here and attached when the store is added.

Pass a State around explicitly, or use the process-wide default:

    state = default_state()          # created on first use
    set_default_state(State())       # replace it wholesale
    reset_default_state()            # drop every store and handler

The default is not thread safe; a State belongs to one event loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from statehold.action import Action, ActionType

if TYPE_CHECKING:
    from statehold.observer import ObservableStore
    from statehold.store import Store

logger = logging.getLogger("statehold.state")

_UNBOUND_KINDS = (
    ActionType.LISTENER,
    ActionType.ACTION,
    ActionType.LOADER,
    ActionType.TRANSFORMER,
)


class State:
    """Registry of stores, observers and unbound handlers."""

    def __init__(self) -> None:
        self._stores: dict[str, Store] = {}
        self._observers: dict[str, ObservableStore] = {}
        self._unbound: dict[ActionType, dict[str, list[Action]]] = {
            kind: {} for kind in _UNBOUND_KINDS
        }

    # --- Unbound handlers ---

    def _add_unbound(self, kind: ActionType, store: str, name: str, callback: Callable) -> bool:
        handlers = self._unbound[kind].setdefault(store, [])
        handlers[:] = [h for h in handlers if h.name != name]
        handlers.append(Action(name, callback, kind))

        existing = self._stores.get(store)
        if existing is None:
            return True
        return _bind(existing, handlers[-1])

    def add_listener(self, store: str, name: str, callback: Callable) -> bool:
        """Add a listener to a named store, now or once the store is added."""
        return self._add_unbound(ActionType.LISTENER, store, name, callback)

    def add_action(self, store: str, name: str, callback: Callable) -> bool:
        """Add an action to a named store, now or once the store is added."""
        return self._add_unbound(ActionType.ACTION, store, name, callback)

    def add_loader(self, store: str, name: str, callback: Callable) -> bool:
        """Add a loader to a named store, now or once the store is added."""
        return self._add_unbound(ActionType.LOADER, store, name, callback)

    def add_transformer(self, store: str, name: str, callback: Callable) -> bool:
        """Add a transformer to a named store, now or once the store is added.

        The transformer receives the store's current data as its first argument.
        """
        return self._add_unbound(ActionType.TRANSFORMER, store, name, callback)

    # --- Stores ---

    def add_store(self, store: Store) -> None:
        """Register a store and attach any handlers recorded for its name.

        The Store factories call this; a manually constructed store can be
        added here directly. Adding a name twice replaces the earlier store.
        """
        self._stores[store.name] = store
        for kind in _UNBOUND_KINDS:
            for handler in self._unbound[kind].get(store.name, ()):
                _bind(store, handler)

    def find_store(self, name: str) -> Store | None:
        return self._stores.get(name)

    def remove_store(self, name: str) -> bool:
        """Remove a store and the unbound handlers recorded for it."""
        try:
            self._stores.pop(name, None)
            for handlers in self._unbound.values():
                handlers.pop(name, None)
        except Exception:
            logger.exception("Failed to remove store %s", name)
            return False
        return True

    def clear_stores(self) -> bool:
        """Remove every store and every unbound handler."""
        self._stores = {}
        self._unbound = {kind: {} for kind in _UNBOUND_KINDS}
        return not self._stores and not any(self._unbound.values())

    # --- Observers ---

    def add_observer(self, observer: ObservableStore) -> None:
        self._observers[observer.name] = observer

    def find_observer(self, name: str) -> ObservableStore | None:
        return self._observers.get(name)

    def remove_observer(self, name: str) -> bool:
        self._observers.pop(name, None)
        return True

    def clear_observers(self) -> bool:
        self._observers = {}
        return True

    def clear(self) -> bool:
        """Drop all stores, observers and unbound handlers."""
        return self.clear_stores() and self.clear_observers()

    def __contains__(self, name: str) -> bool:
        return name in self._stores or name in self._observers

    def __repr__(self) -> str:
        return f"State(stores={sorted(self._stores)!r}, observers={sorted(self._observers)!r})"


def _bind(store: Any, handler: Action) -> bool:
    kind = handler.action_type
    if kind is ActionType.LISTENER:
        return store.create_listener(handler.name, handler.callback)
    if kind is ActionType.ACTION:
        return store.create_action(handler.name, handler.callback)
    if kind is ActionType.LOADER:
        return store.create_loader(handler.name, handler.callback)
    return store.create_transformer(handler.name, handler.callback)


# ─── Default instance ────────────────────────────────────────────────────────
_default: State | None = None


def default_state() -> State:
    """Return the process-wide State, creating it on first use."""
    global _default
    if _default is None:
        _default = State()
    return _default


def set_default_state(state: State) -> None:
    """Replace the process-wide State. Every store in the old one is forgotten."""
    global _default
    _default = state


def reset_default_state() -> bool:
    """Clear the process-wide State in place."""
    return default_state().clear()
