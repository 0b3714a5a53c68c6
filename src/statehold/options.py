"""Store configuration and the small value types passed around by stores."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from statehold.persistence import PersistentKV


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclasses.dataclass(frozen=True)
class StoreOptions:
    """Options for creating a store.

    Parameters
    ----------
    name : str
        Store name, unique within a State.
    is_cachable : bool
        Treat loaded data as a cache: repeat loads are skipped until the
        cache goes stale.
    cache_timeout_seconds : int
        Lifetime of a cached load. Zero or less never invalidates.
    persist_cache : bool
        Write loaded data to ``storage`` and read it back on construction.
        Only takes effect for cachable stores with a storage backend.
    cache_prefix : str
        Prefix applied to the storage keys.
    storage : PersistentKV or None
        Key/value backend used when ``persist_cache`` is set.
    """

    name: str
    is_cachable: bool = False
    cache_timeout_seconds: int = -1
    persist_cache: bool = False
    cache_prefix: str = ""
    storage: PersistentKV | None = None

    @classmethod
    def from_env(cls, name: str, **overrides: Any) -> StoreOptions:
        """Create options from ``STATEHOLD_*`` environment variables.

        Reads ``STATEHOLD_CACHABLE``, ``STATEHOLD_CACHE_TIMEOUT``,
        ``STATEHOLD_PERSIST_CACHE`` and ``STATEHOLD_CACHE_PREFIX``.
        Explicit keyword arguments win over the environment.
        """
        env = os.environ
        values: dict[str, Any] = {
            "is_cachable": _env_bool(env.get("STATEHOLD_CACHABLE"), False),
            "cache_timeout_seconds": _env_int(env.get("STATEHOLD_CACHE_TIMEOUT"), -1),
            "persist_cache": _env_bool(env.get("STATEHOLD_PERSIST_CACHE"), False),
            "cache_prefix": env.get("STATEHOLD_CACHE_PREFIX", ""),
        }
        values.update(overrides)
        return cls(name=name, **values)


@dataclasses.dataclass(frozen=True)
class ExecutableOptions:
    """One step of a Store.chain() call.

    ``forward_result`` prepends this step's result to the next step's params.
    """

    action: str
    params: Sequence[Any] = ()
    forward_result: bool = False

    @classmethod
    def coerce(cls, step: ExecutableOptions | Mapping[str, Any]) -> ExecutableOptions:
        """Accept either an ExecutableOptions or a plain mapping with the same keys."""
        if isinstance(step, ExecutableOptions):
            return step
        return cls(
            action=step["action"],
            params=tuple(step.get("params") or ()),
            forward_result=bool(step.get("forward_result", False)),
        )


@dataclasses.dataclass(frozen=True)
class ChangeState:
    """Before/after snapshots handed to listeners.

    Snapshots are detached copies; mutating them never touches store data.
    """

    previous_state: Any
    new_state: Any
