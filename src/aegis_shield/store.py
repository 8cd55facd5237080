"""Key-value stores for saving a placeholder mapping between scrub and restore.

Any object with ``get`` / ``set`` / ``remove`` in the shape below can be
used, e.g. a thin wrapper over a browser extension's local storage.
"""

from __future__ import annotations
import copy
from typing import Any, Iterable, Protocol, runtime_checkable


@runtime_checkable
class MappingStore(Protocol):
    """Opaque key-value persistence."""

    def get(self, keys: Iterable[str]) -> dict[str, Any]: ...

    def set(self, obj: dict[str, Any]) -> None: ...

    def remove(self, keys: Iterable[str]) -> None: ...


class MemoryStore:
    """Process-local store.  Values are deep-copied in and out."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    def set(self, obj: dict[str, Any]) -> None:
        for key, value in obj.items():
            self._data[key] = copy.deepcopy(value)

    def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    @property
    def size(self) -> int:
        return len(self._data)

    def dump(self) -> dict[str, Any]:
        """Return a copy of everything stored (for debugging)."""
        return copy.deepcopy(self._data)

    def clear(self) -> None:
        self._data.clear()
