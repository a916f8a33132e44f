"""Transactional key-value storage.

All persistent state (address mappings, balances, account info) lives in a
single ``Storage`` so that one ``transaction()`` covers every write made by an
operation. Writes inside a transaction go to an in-memory overlay; leaving the
block normally commits the overlay into its parent (or the backend, for the
outermost transaction) and raising discards it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

# (namespace, key); a None value in a change set is a deletion
StorageKey = tuple[str, bytes]
ChangeSet = dict[StorageKey, bytes | None]


class StorageBackend(Protocol):
    """Durable layer underneath the transactional overlays."""

    def get(self, namespace: str, key: bytes) -> bytes | None: ...

    def iter_namespace(self, namespace: str) -> Iterator[tuple[bytes, bytes]]: ...

    def apply(self, changes: Mapping[StorageKey, bytes | None]) -> None: ...


class MemoryBackend:
    """Dict-backed storage for tests and ephemeral nodes."""

    def __init__(self) -> None:
        self._items: dict[StorageKey, bytes] = {}

    def get(self, namespace: str, key: bytes) -> bytes | None:
        return self._items.get((namespace, key))

    def iter_namespace(self, namespace: str) -> Iterator[tuple[bytes, bytes]]:
        for (ns, key), value in list(self._items.items()):
            if ns == namespace:
                yield key, value

    def apply(self, changes: Mapping[StorageKey, bytes | None]) -> None:
        for storage_key, value in changes.items():
            if value is None:
                self._items.pop(storage_key, None)
            else:
                self._items[storage_key] = value

    def __len__(self) -> int:
        return len(self._items)


class Storage:
    """Key-value store with nested all-or-nothing transactions.

    Usage::

        storage = Storage()
        with storage.transaction():
            storage.set("Balances", key, value)
            raise SomeError  # nothing above is persisted
    """

    def __init__(self, backend: StorageBackend | None = None) -> None:
        self._backend: StorageBackend = backend if backend is not None else MemoryBackend()
        self._layers: list[ChangeSet] = []
        self._on_commit: list[list[Callable[[], None]]] = []

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open."""
        return bool(self._layers)

    # -- Reads --

    def get(self, namespace: str, key: bytes) -> bytes | None:
        """Return the current value, seeing uncommitted writes first."""
        storage_key = (namespace, key)
        for layer in reversed(self._layers):
            if storage_key in layer:
                return layer[storage_key]
        return self._backend.get(namespace, key)

    def contains(self, namespace: str, key: bytes) -> bool:
        return self.get(namespace, key) is not None

    def items(self, namespace: str) -> dict[bytes, bytes]:
        """Snapshot of every live entry in a namespace."""
        merged: dict[bytes, bytes | None] = dict(self._backend.iter_namespace(namespace))
        for layer in self._layers:
            for (ns, key), value in layer.items():
                if ns == namespace:
                    merged[key] = value
        return {key: value for key, value in merged.items() if value is not None}

    # -- Writes --

    def set(self, namespace: str, key: bytes, value: bytes) -> None:
        self._write(namespace, key, value)

    def delete(self, namespace: str, key: bytes) -> None:
        self._write(namespace, key, None)

    def _write(self, namespace: str, key: bytes, value: bytes | None) -> None:
        if self._layers:
            self._layers[-1][(namespace, key)] = value
        else:
            self._backend.apply({(namespace, key): value})

    # -- Transactions --

    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the outermost open transaction commits.

        Outside a transaction it runs immediately. It is dropped if any
        enclosing transaction rolls back.
        """
        if self._on_commit:
            self._on_commit[-1].append(callback)
        else:
            callback()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Open a (possibly nested) transaction around the block."""
        self._layers.append({})
        self._on_commit.append([])
        try:
            yield
        finally:
            changes = self._layers.pop()
            callbacks = self._on_commit.pop()

        if self._layers:
            self._layers[-1].update(changes)
            self._on_commit[-1].extend(callbacks)
            return
        if changes:
            self._backend.apply(changes)
        for callback in callbacks:
            callback()
