"""ObservableStore — a store that watches an object the caller keeps using.

The store never replaces the target. It rewrites it in place so that plain
attribute writes and list mutations run the same listener pipeline as
Store.set_data():

- each scalar attribute moves to a shadow key ``"@state__<name>"`` in the
  instance ``__dict__`` and the instance gets a private subclass with a
  property of the original name in front of it;
- each list attribute is replaced by an ObservedList holding the same items;
- dicts, tuples and nested objects are walked, not replaced.

Every write is its own change: the setter snapshots the whole target,
writes, notifies, then accepts the result as clean. Listener snapshots have
the shadow keys renamed back, so listeners only see public names.

    class Team:
        def __init__(self):
            self.name = "core"
            self.members = []

    team = Team()
    store = ObservableStore.observable_store(team, StoreOptions("team"))
    store.create_listener("log", print)
    team.name = "platform"        # one notification
    team.members.append("ada")    # one notification
"""

from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Callable, Self

from statehold.action import ActionType
from statehold.decorators import handler_definitions
from statehold.errors import ObserverDataError
from statehold.options import StoreOptions
from statehold.state import default_state
from statehold.store import BaseStore
from statehold.util import deep_clone, hashable_key, is_object, own_fields, shallow_clone

if TYPE_CHECKING:
    from datetime import datetime

    from statehold.state import State

logger = logging.getLogger("statehold.observer")

INJECT_PREFIX = "@state__"

# Class attribute on each private subclass; holds the owning store.
_STORE_ATTR = "__statehold_store__"


def _shadow(name: str) -> str:
    return INJECT_PREFIX + name


def _public(key: str) -> str:
    return key[len(INJECT_PREFIX):] if key.startswith(INJECT_PREFIX) else key


def _is_injected(target: Any) -> bool:
    return _STORE_ATTR in vars(type(target))


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (dict, list, tuple)) and not is_object(value)


def strip_injected_values(value: Any) -> Any:
    """Copy ``value`` with every shadow key renamed to its public name."""
    if isinstance(value, list):
        return [strip_injected_values(item) for item in value]
    if isinstance(value, tuple):
        return tuple(strip_injected_values(item) for item in value)
    if isinstance(value, dict):
        return {
            hashable_key(strip_injected_values(key)): strip_injected_values(item)
            for key, item in value.items()
        }
    if is_object(value):
        return SimpleNamespace(
            **{_public(key): strip_injected_values(item) for key, item in own_fields(value).items()}
        )
    return value


def _accessor(name: str) -> property:
    shadow = _shadow(name)

    def fget(obj: Any) -> Any:
        return obj.__dict__[shadow]

    def fset(obj: Any, value: Any) -> None:
        old = obj.__dict__[shadow]
        if old is value or old == value:
            return
        getattr(type(obj), _STORE_ATTR)._write(obj, shadow, value)

    return property(fget, fset)


class ObservedList(list):
    """A list that reports length-changing mutations to its store.

    In-place replacement of an item (``items[0] = x``) keeps the length and
    is not reported.
    """

    __slots__ = ("_observer",)

    def __init__(self, items: Any = (), observer: ObservableStore | None = None) -> None:
        super().__init__(items)
        self._observer = observer

    def _mutate(self, method: Callable[..., Any], *args: Any, removal: bool = False) -> Any:
        observer = self._observer
        if observer is None:
            return method(self, *args)
        before = len(self)
        snapshot = observer._baseline()
        result = method(self, *args)
        if len(self) != before:
            if not removal:
                observer._observe_items(self, set())
            observer._commit(snapshot)
        return result

    def append(self, item: Any) -> None:
        self._mutate(list.append, item)

    def extend(self, items: Any) -> None:
        self._mutate(list.extend, items)

    def insert(self, index: int, item: Any) -> None:
        self._mutate(list.insert, index, item)

    def pop(self, index: int = -1) -> Any:
        return self._mutate(list.pop, index, removal=True)

    def remove(self, item: Any) -> None:
        self._mutate(list.remove, item, removal=True)

    def clear(self) -> None:
        self._mutate(list.clear, removal=True)

    def __setitem__(self, index: Any, value: Any) -> None:
        self._mutate(list.__setitem__, index, value)

    def __delitem__(self, index: Any) -> None:
        self._mutate(list.__delitem__, index, removal=True)

    def __iadd__(self, items: Any) -> Self:
        return self._mutate(list.__iadd__, items)


class ObservableStore(BaseStore):
    """Store over a caller-owned object graph, updated by direct mutation."""

    @classmethod
    def observable_store(
        cls,
        target: Any,
        options: StoreOptions,
        *,
        state: State | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> Self:
        """Observe ``target`` and register the store as an observer.

        An observer already registered under the same name is replaced.
        Methods marked with store_listener/store_action are wired up.
        """
        state = state if state is not None else default_state()
        state.remove_observer(options.name)
        store = cls(options, clock=clock)
        state.add_observer(store)

        for name, definition in handler_definitions(target).items():
            if definition.type is ActionType.LISTENER:
                store.create_listener(name, definition.callback)
            else:
                inline = definition.type is ActionType.INLINE_ACTION
                store.create_action(name, definition.callback, inline=inline)

        store.inject_monitor_setters(target)
        store._data = target
        store._previous = deep_clone(target)
        return store

    def set_data(self, value: Any) -> None:
        raise ObserverDataError(
            f"Cannot set data on observable store {self._name!r}; mutate the observed object instead"
        )

    def get_data(self, clone: bool = False) -> Any:
        if clone:
            return strip_injected_values(deep_clone(self._data))
        return self._data

    def _snapshot(self, value: Any) -> Any:
        return strip_injected_values(shallow_clone(value))

    # --- Change recording ---

    def _baseline(self) -> Any:
        return deep_clone(self._data)

    def _commit(self, snapshot: Any) -> None:
        self._previous = snapshot
        self.execute_listeners()
        self.accept_dirty_data()

    def _write(self, obj: Any, shadow: str, value: Any) -> None:
        snapshot = self._baseline()
        obj.__dict__[shadow] = self._observe(value, set())
        self._commit(snapshot)

    # --- Injection ---

    def inject_monitor_setters(self, target: Any) -> None:
        """Rewrite ``target`` and everything reachable from it in place."""
        if not is_object(target):
            raise ObserverDataError(
                f"Observable store {self._name!r} needs an object with attributes, got {type(target).__name__}"
            )
        self._inject(target, set())

    def _observe(self, value: Any, seen: set[int]) -> Any:
        if isinstance(value, ObservedList):
            value._observer = self
            self._observe_items(value, seen)
            return value
        if isinstance(value, list):
            self._observe_items(value, seen)
            return ObservedList(value, self)
        if isinstance(value, tuple):
            for item in value:
                self._observe(item, seen)
        elif isinstance(value, dict):
            for key, item in value.items():
                self._observe(key, seen)
                observed = self._observe(item, seen)
                if observed is not item:
                    value[key] = observed
        elif is_object(value):
            self._inject(value, seen)
        return value

    def _observe_items(self, items: list, seen: set[int]) -> None:
        for index, item in enumerate(items):
            observed = self._observe(item, seen)
            if observed is not item:
                list.__setitem__(items, index, observed)

    def _inject(self, target: Any, seen: set[int]) -> None:
        if id(target) in seen:
            return
        seen.add(id(target))

        if _is_injected(target):
            setattr(type(target), _STORE_ATTR, self)
        else:
            scalars = [
                name
                for name, value in vars(target).items()
                if not callable(value) and not name.startswith(INJECT_PREFIX) and _is_scalar(value)
            ]
            if self._swap_class(target, scalars):
                fields = target.__dict__
                renamed = {(_shadow(k) if k in scalars else k): v for k, v in fields.items()}
                fields.clear()
                fields.update(renamed)

        fields = target.__dict__
        for name, value in list(fields.items()):
            if callable(value) or name.startswith(INJECT_PREFIX):
                continue
            observed = self._observe(value, seen)
            if observed is not value:
                fields[name] = observed

    def _swap_class(self, target: Any, scalars: list[str]) -> bool:
        cls = type(target)
        namespace: dict[str, Any] = {
            "__slots__": (),
            "__module__": cls.__module__,
            "__qualname__": cls.__qualname__,
            _STORE_ATTR: self,
        }
        for name in scalars:
            namespace[name] = _accessor(name)
        try:
            target.__class__ = type(cls)(cls.__name__, (cls,), namespace)
        except TypeError:
            logger.warning(
                "Cannot observe attributes of %s instance in store %s",
                cls.__name__,
                self._name,
            )
            return False
        return True
