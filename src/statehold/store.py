"""Stores — named data containers with actions, loaders and listeners.

BaseStore holds a value, the snapshot it had when listeners last saw it, and
the action/listener registries. Store adds loaders, transformers and cache
bookkeeping. GenericDataStore only narrows the types.

Every notification goes through one gate: listeners are called when the
current value no longer stringifies the same as the previous snapshot.

    store = Store.create_store(StoreOptions("users", is_cachable=True))
    store.create_loader("load", fetch_users)
    store.create_listener("render", lambda change: print(change.new_state))
    await store.execute("load")
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Generic, Self, TypeVar

from statehold.action import Action, ActionType, Executable
from statehold.errors import (
    CallbackError,
    DuplicateNameError,
    HandlerReplacementError,
    InvalidDataError,
)
from statehold.options import ChangeState, ExecutableOptions, StoreOptions
from statehold.persistence import cache_key, timeout_key
from statehold.state import default_state
from statehold.util import deep_clone, deep_equals, parse, shallow_clone, stringify

if TYPE_CHECKING:
    from statehold.state import State

logger = logging.getLogger("statehold.store")

T = TypeVar("T")

Clock = Callable[[], datetime]

# Persisted caches of stores that never expire in memory still expire on disk.
_PERSISTED_LIFETIME = timedelta(hours=24)

_NO_OP = Action("no-op", None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _is_function(value: Any) -> bool:
    return inspect.isroutine(value) or isinstance(value, (type, functools.partial))


class BaseStore:
    """A named value plus the actions and listeners registered against it."""

    def __init__(self, options: StoreOptions, *, clock: Clock | None = None) -> None:
        self._name = options.name
        self._clock: Clock = clock or _utcnow
        self._data: Any = None
        self._previous: Any = None
        self._last_store_time: datetime | None = None
        self._actions: list[Action] = []
        self._listeners: list[Action] = []
        self._pending_listeners: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def previous_data(self) -> Any:
        return self._previous

    @property
    def last_store_time(self) -> datetime | None:
        return self._last_store_time

    @property
    def actions(self) -> tuple[Action, ...]:
        return tuple(self._actions)

    @property
    def listeners(self) -> tuple[Action, ...]:
        return tuple(self._listeners)

    # --- Data ---

    def get_data(self, clone: bool = False) -> Any:
        """Current value, or a detached deep copy of it."""
        return deep_clone(self._data) if clone else self._data

    def set_data(self, value: Any) -> None:
        """Replace the value and notify listeners if it changed."""
        if _is_function(value):
            raise InvalidDataError("Functions cannot be stored")
        self._previous = deep_clone(self._data)
        self._data = value
        self._last_store_time = self._clock()
        self.execute_listeners()

    def is_dirty(self, shallow: bool = True) -> bool:
        if shallow:
            return stringify(self._data) != stringify(self._previous)
        return not deep_equals(self._data, self._previous)

    def accept_dirty_data(self) -> None:
        """Take the current value as the clean baseline without notifying."""
        self._previous = deep_clone(self._data)

    # --- Listeners ---

    def _snapshot(self, value: Any) -> Any:
        return shallow_clone(value)

    def execute_listeners(self) -> None:
        """Call every listener with before/after snapshots, if dirty.

        Listeners run synchronously and in registration order. One that
        returns an awaitable is left running on the event loop. A failing
        listener does not stop the others; the first error is raised once
        every listener has been called.
        """
        if not self.is_dirty():
            return
        change = ChangeState(self._snapshot(self._previous), self._snapshot(self._data))
        failure: CallbackError | None = None
        for listener in tuple(self._listeners):
            executable = Executable(listener, (change,))
            try:
                result = executable.call()
                if inspect.isawaitable(result):
                    self._schedule(executable, result)
            except CallbackError as error:
                if failure is None:
                    failure = error
        if failure is not None:
            raise failure

    def _schedule(self, executable: Executable, pending: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(executable.settle(pending))
            return
        task = loop.create_task(executable.settle(pending))
        self._pending_listeners.add(task)
        task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._pending_listeners.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Listener failed on store %s", self._name, exc_info=error)

    async def wait_listeners(self) -> None:
        """Wait for listeners that are still running in the background."""
        while self._pending_listeners:
            await asyncio.gather(*self._pending_listeners, return_exceptions=True)

    # --- Registries ---

    @staticmethod
    def _remove_event_handler(registry: list[Action], name: str) -> bool:
        for index, handler in enumerate(registry):
            if handler.name == name:
                del registry[index]
                break
        return not any(handler.name == name for handler in registry)

    def _replace(self, registry: list[Action], action: Action) -> None:
        if not self._remove_event_handler(registry, action.name):
            raise HandlerReplacementError(
                f"Could not remove {action.action_type.value} {action.name!r} from store {self._name!r}"
            )
        registry.append(action)

    def _upsert(self, registry: list[Action], action: Action) -> bool:
        try:
            self._replace(registry, action)
        except HandlerReplacementError:
            logger.exception("Failed to register %s on store %s", action.name, self._name)
            return False
        return True

    def create_listener(self, name: str, callback: Callable[[ChangeState], Any]) -> bool:
        return self._upsert(self._listeners, Action(name, callback, ActionType.LISTENER))

    def remove_listener(self, name: str) -> bool:
        return self._remove_event_handler(self._listeners, name)

    def create_action(self, name: str, callback: Callable[..., Any], inline: bool = False) -> bool:
        """Register an action. ``inline`` actions call the method of the
        same name on the current data instead of ``callback``."""
        action_type = ActionType.INLINE_ACTION if inline else ActionType.ACTION
        return self._upsert(self._actions, Action(name, callback, action_type))

    def remove_action(self, name: str) -> bool:
        return self._remove_event_handler(self._actions, name)

    # --- Execution ---

    def _find_event_handler(self, name: str) -> Action | None:
        return next((action for action in self._actions if action.name == name), None)

    def _prepare(self, name: str, args: tuple[Any, ...]) -> tuple[Action, tuple[Any, ...]]:
        action = self._find_event_handler(name)
        if action is None:
            logger.info("No action named %s on store %s", name, self._name)
            return _NO_OP, ()
        return action, args

    def execute(self, name: str, *args: Any) -> asyncio.Task:
        """Run the handler registered under ``name``.

        Resolution and loader bookkeeping happen before this returns; the
        callback itself runs in the returned task. Must be called with a
        running event loop.
        """
        loop = asyncio.get_running_loop()
        action, params = self._prepare(name, args)
        return loop.create_task(self._run(action, params))

    async def _run(self, action: Action, params: tuple[Any, ...]) -> Any:
        if action.action_type is ActionType.INLINE_ACTION:
            method = getattr(self._data, action.name, None)
            if not callable(method):
                method = action.callback
            if method is None:
                logger.warning("Store %s data has no method %s", self._name, action.name)
            action = Action(action.name, method, action.action_type)
        result = await Executable(action, params).execute()
        self._after_execute(action, result)
        return result

    def _after_execute(self, action: Action, result: Any) -> None:
        self.execute_listeners()

    async def chain(self, steps: Iterable[ExecutableOptions | Mapping[str, Any]]) -> list[Any]:
        """Execute steps one after another and return their results in order.

        A step with ``forward_result`` hands its result to the next step as
        that step's first parameter.
        """
        results: list[Any] = []
        carried: tuple[Any, ...] = ()
        for step in steps:
            options = ExecutableOptions.coerce(step)
            result = await self.execute(options.action, *carried, *options.params)
            results.append(result)
            carried = (result,) if options.forward_result else ()
        return results

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


class Store(BaseStore):
    """A store with loaders, transformers and an optional load cache."""

    def __init__(self, options: StoreOptions, *, clock: Clock | None = None) -> None:
        super().__init__(options, clock=clock)
        self._loaders: list[Action] = []
        self._transformers: list[Action] = []
        self._is_cachable = options.is_cachable
        self._cache_timeout_seconds = options.cache_timeout_seconds or -1
        self._persist_cache = options.persist_cache
        self._cache_prefix = options.cache_prefix
        self._storage = options.storage
        self._is_cached = False
        self._is_loading = False
        self._last_load_time: datetime | None = None
        self._load_task: asyncio.Task | None = None
        self._restore_cache()

    @classmethod
    def create_store(
        cls,
        options: StoreOptions,
        *,
        state: State | None = None,
        clock: Clock | None = None,
    ) -> Self:
        """Create a store and register it under ``options.name``.

        Raises DuplicateNameError when the name is taken.
        """
        state = state if state is not None else default_state()
        if state.find_store(options.name) is not None:
            raise DuplicateNameError(options.name)
        store = cls(options, clock=clock)
        state.add_store(store)
        return store

    @property
    def is_cachable(self) -> bool:
        return self._is_cachable

    @property
    def cache_timeout_seconds(self) -> int:
        return self._cache_timeout_seconds

    @property
    def persist_cache(self) -> bool:
        return self._persist_cache

    @property
    def cache_prefix(self) -> str:
        return self._cache_prefix

    @property
    def is_cached(self) -> bool:
        return self._is_cached

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_load_time(self) -> datetime | None:
        return self._last_load_time

    @property
    def loaders(self) -> tuple[Action, ...]:
        return tuple(self._loaders)

    @property
    def transformers(self) -> tuple[Action, ...]:
        return tuple(self._transformers)

    # --- Registries ---

    def create_loader(self, name: str, callback: Callable[..., Any]) -> bool:
        return self._upsert(self._loaders, Action(name, callback, ActionType.LOADER))

    def remove_loader(self, name: str) -> bool:
        return self._remove_event_handler(self._loaders, name)

    def create_transformer(self, name: str, callback: Callable[..., Any]) -> bool:
        """Register a transformer; it receives the current data first."""
        return self._upsert(self._transformers, Action(name, callback, ActionType.TRANSFORMER))

    def remove_transformer(self, name: str) -> bool:
        return self._remove_event_handler(self._transformers, name)

    # --- Cache ---

    def is_cache_stale(self) -> bool:
        if not self._is_cachable or not self._is_cached or self._last_store_time is None:
            return True
        if self._cache_timeout_seconds <= 0:
            return False
        expires = self._last_store_time + timedelta(seconds=self._cache_timeout_seconds)
        return self._clock() > expires

    def _persists(self) -> bool:
        return self._is_cachable and self._persist_cache and self._storage is not None

    def _restore_cache(self) -> None:
        if not self._persists():
            return
        try:
            raw = self._storage.get(cache_key(self._cache_prefix, self._name))
            if raw is None:
                return
            self._data = parse(raw)
            expires = self._storage.get(timeout_key(self._cache_prefix, self._name))
            if expires is not None:
                self._restore_timestamps(float(expires))
        except (OSError, ValueError, TypeError):
            logger.warning("Discarding unreadable cache for store %s", self._name, exc_info=True)
            self._data = None
            self._is_cached = False
            self._last_load_time = self._last_store_time = None
            self._purge_cache()
        self.accept_dirty_data()

    def _restore_timestamps(self, expires_ms: float) -> None:
        expiry = datetime.fromtimestamp(expires_ms / 1000, tz=timezone.utc)
        now = self._clock()
        if expiry <= now:
            return
        self._is_cached = True
        self._last_load_time = now
        if self._cache_timeout_seconds > 0:
            self._last_store_time = expiry - timedelta(seconds=self._cache_timeout_seconds)
        else:
            self._last_store_time = now

    def _purge_cache(self) -> None:
        try:
            self._storage.remove(cache_key(self._cache_prefix, self._name))
            self._storage.remove(timeout_key(self._cache_prefix, self._name))
        except OSError:
            logger.warning("Failed to purge cache for store %s", self._name, exc_info=True)

    def _write_cache(self, data: Any) -> None:
        if not self._persists():
            return
        if self._cache_timeout_seconds > 0:
            lifetime = timedelta(seconds=self._cache_timeout_seconds)
        else:
            lifetime = _PERSISTED_LIFETIME
        expiry = self._clock() + lifetime
        try:
            self._storage.set(cache_key(self._cache_prefix, self._name), stringify(data))
            self._storage.set(timeout_key(self._cache_prefix, self._name), str(_epoch_ms(expiry)))
        except (OSError, ValueError, TypeError):
            logger.warning("Failed to persist cache for store %s", self._name, exc_info=True)

    # --- Execution ---

    def _find_event_handler(self, name: str) -> Action | None:
        for registry in (self._actions, self._loaders, self._transformers):
            for action in registry:
                if action.name == name:
                    return action
        return None

    def execute(self, name: str, *args: Any) -> asyncio.Task:
        was_loading = self._is_loading
        task = super().execute(name, *args)
        if self._is_loading and not was_loading:
            # A task cancelled before its first step never reaches _run.
            self._load_task = task
            task.add_done_callback(self._release_load)
        return task

    def _release_load(self, task: asyncio.Task) -> None:
        if self._load_task is task:
            self._load_task = None
            self._is_loading = False

    def _prepare(self, name: str, args: tuple[Any, ...]) -> tuple[Action, tuple[Any, ...]]:
        action, params = super()._prepare(name, args)
        if action.action_type is ActionType.TRANSFORMER:
            return action, (self._data, *params)
        if action.action_type is ActionType.LOADER:
            if self._is_loading:
                logger.info("Skipping loader %s on store %s: a load is in flight", name, self._name)
                return Action("no-op", self.get_data), ()
            if not self.is_cache_stale():
                logger.info("Skipping loader %s on store %s: cache is fresh", name, self._name)
                return Action("no-op", self.get_data), ()
            self._is_loading = True
        return action, params

    async def _run(self, action: Action, params: tuple[Any, ...]) -> Any:
        if action.action_type is not ActionType.LOADER:
            return await super()._run(action, params)
        try:
            return await super()._run(action, params)
        finally:
            self._is_loading = False

    def _after_execute(self, action: Action, result: Any) -> None:
        if action.action_type is not ActionType.LOADER:
            super()._after_execute(action, result)
            return
        self._last_load_time = self._clock()
        if self._is_cachable:
            self._is_cached = True
            self._write_cache(result)
        try:
            self.set_data(result)
        finally:
            self.accept_dirty_data()


class GenericDataStore(Store, Generic[T]):
    """A Store whose data is typed as ``T``."""

    def get_data(self, clone: bool = False) -> T:
        return super().get_data(clone)

    def set_data(self, value: T) -> None:
        super().set_data(value)
