"""statehold: named reactive data stores with loaders, caching and mutation observation."""

from importlib.metadata import version as _version

__version__ = _version("statehold")

from statehold.action import Action, ActionType, Executable
from statehold.decorators import (
    HandlerDefinition,
    handler_definitions,
    store_action,
    store_listener,
    store_loader,
    store_transformer,
)
from statehold.errors import (
    CallbackError,
    DuplicateNameError,
    HandlerReplacementError,
    InvalidDataError,
    ObserverDataError,
    StateError,
)
from statehold.observer import ObservableStore, ObservedList, strip_injected_values
from statehold.options import ChangeState, ExecutableOptions, StoreOptions
from statehold.persistence import FileKV, MemoryKV, PersistentKV
from statehold.state import State, default_state, reset_default_state, set_default_state
from statehold.store import BaseStore, GenericDataStore, Store
# textual NOT auto-imported; opt-in only

__all__ = [
    "Action",
    "ActionType",
    "Executable",
    "BaseStore",
    "Store",
    "GenericDataStore",
    "ObservableStore",
    "ObservedList",
    "strip_injected_values",
    "StoreOptions",
    "ExecutableOptions",
    "ChangeState",
    "State",
    "default_state",
    "set_default_state",
    "reset_default_state",
    "PersistentKV",
    "MemoryKV",
    "FileKV",
    "store_listener",
    "store_action",
    "store_loader",
    "store_transformer",
    "HandlerDefinition",
    "handler_definitions",
    "StateError",
    "InvalidDataError",
    "ObserverDataError",
    "DuplicateNameError",
    "HandlerReplacementError",
    "CallbackError",
]
