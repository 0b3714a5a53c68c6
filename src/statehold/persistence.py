"""Key/value backends for persisted store caches.

A store with ``persist_cache`` writes its loaded data under
``{prefix}state-cache-{name}`` and the expiry (epoch milliseconds) under
``{prefix}state-cache-{name}-timeout``. Any object with get/set/remove works.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger("statehold.persistence")


@runtime_checkable
class PersistentKV(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


def cache_key(prefix: str, name: str) -> str:
    return f"{prefix}state-cache-{name}"


def timeout_key(prefix: str, name: str) -> str:
    return f"{cache_key(prefix, name)}-timeout"


class MemoryKV:
    """In-process backend. Useful for tests and short-lived caches."""

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries) if entries else {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class FileKV:
    """Backend holding every entry in one JSON document on disk.

    Writes go to a temporary file that replaces the document, so a crash
    never leaves a half-written file behind. A document that fails to parse
    is treated as empty.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            entries = json.loads(text)
        except ValueError:
            logger.warning("Ignoring corrupt cache document %s", self._path)
            return {}
        if not isinstance(entries, dict):
            logger.warning("Ignoring cache document %s: expected an object", self._path)
            return {}
        return entries

    def _write(self, entries: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entries, handle)
            os.replace(tmp, self._path)
        except BaseException:
            os.unlink(tmp)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        entries = self._read()
        entries[key] = value
        self._write(entries)

    def remove(self, key: str) -> None:
        entries = self._read()
        if entries.pop(key, None) is not None:
            self._write(entries)
