"""Tests for transactional key-value storage — datastore/storage.py, datastore/sql.py."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from evm_accounts.config.settings import DatabaseConfig, DatabaseEngine
from evm_accounts.datastore.sql import SQLBackend
from evm_accounts.datastore.storage import MemoryBackend, Storage

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

_NS = "Test.Map"


class TestStorageOutsideTransaction:
    def test_set_get_delete(self, storage: Storage) -> None:
        storage.set(_NS, b"k", b"v")
        assert storage.get(_NS, b"k") == b"v"
        assert storage.contains(_NS, b"k")
        storage.delete(_NS, b"k")
        assert storage.get(_NS, b"k") is None

    def test_writes_go_straight_to_backend(self) -> None:
        backend = MemoryBackend()
        storage = Storage(backend)
        storage.set(_NS, b"k", b"v")
        assert backend.get(_NS, b"k") == b"v"

    def test_namespaces_are_separate(self, storage: Storage) -> None:
        storage.set("A", b"k", b"1")
        storage.set("B", b"k", b"2")
        assert storage.get("A", b"k") == b"1"
        assert storage.items("A") == {b"k": b"1"}


class TestTransactions:
    def test_commit(self, storage: Storage) -> None:
        with storage.transaction():
            storage.set(_NS, b"k", b"v")
            assert storage.in_transaction
        assert not storage.in_transaction
        assert storage.get(_NS, b"k") == b"v"

    def test_uncommitted_writes_hidden_from_backend(self) -> None:
        backend = MemoryBackend()
        storage = Storage(backend)
        with storage.transaction():
            storage.set(_NS, b"k", b"v")
            assert storage.get(_NS, b"k") == b"v"
            assert backend.get(_NS, b"k") is None
        assert backend.get(_NS, b"k") == b"v"

    def test_rollback_on_error(self, storage: Storage) -> None:
        storage.set(_NS, b"keep", b"1")
        with pytest.raises(RuntimeError), storage.transaction():
            storage.set(_NS, b"new", b"2")
            storage.delete(_NS, b"keep")
            raise RuntimeError("abort")
        assert storage.get(_NS, b"keep") == b"1"
        assert storage.get(_NS, b"new") is None
        assert not storage.in_transaction

    def test_nested_inner_rollback_keeps_outer(self, storage: Storage) -> None:
        with storage.transaction():
            storage.set(_NS, b"outer", b"1")
            with pytest.raises(ValueError), storage.transaction():
                storage.set(_NS, b"inner", b"2")
                raise ValueError("inner")
            assert storage.get(_NS, b"inner") is None
        assert storage.get(_NS, b"outer") == b"1"
        assert storage.get(_NS, b"inner") is None

    def test_nested_commit_then_outer_rollback(self, storage: Storage) -> None:
        with pytest.raises(ValueError), storage.transaction():
            with storage.transaction():
                storage.set(_NS, b"inner", b"2")
            raise ValueError("outer")
        assert storage.get(_NS, b"inner") is None

    def test_delete_inside_transaction_shadows_backend(self, storage: Storage) -> None:
        storage.set(_NS, b"k", b"v")
        with storage.transaction():
            storage.delete(_NS, b"k")
            assert not storage.contains(_NS, b"k")
            assert storage.items(_NS) == {}
        assert storage.get(_NS, b"k") is None

    def test_items_merges_layers(self, storage: Storage) -> None:
        storage.set(_NS, b"a", b"1")
        with storage.transaction():
            storage.set(_NS, b"b", b"2")
            with storage.transaction():
                storage.set(_NS, b"a", b"3")
                assert storage.items(_NS) == {b"a": b"3", b"b": b"2"}


class TestOnCommit:
    def test_runs_immediately_outside_transaction(self, storage: Storage) -> None:
        calls: list[str] = []
        storage.on_commit(lambda: calls.append("done"))
        assert calls == ["done"]

    def test_deferred_until_outermost_commit(self, storage: Storage) -> None:
        calls: list[str] = []
        with storage.transaction():
            with storage.transaction():
                storage.set(_NS, b"k", b"v")
                storage.on_commit(lambda: calls.append("done"))
            assert calls == []
        assert calls == ["done"]

    def test_runs_after_changes_are_applied(self) -> None:
        backend = MemoryBackend()
        storage = Storage(backend)
        seen: list[bytes | None] = []
        with storage.transaction():
            storage.set(_NS, b"k", b"v")
            storage.on_commit(lambda: seen.append(backend.get(_NS, b"k")))
        assert seen == [b"v"]

    def test_dropped_on_rollback(self, storage: Storage) -> None:
        calls: list[str] = []
        with pytest.raises(ValueError), storage.transaction():
            storage.on_commit(lambda: calls.append("done"))
            raise ValueError("boom")
        assert calls == []

    def test_dropped_when_outer_rolls_back(self, storage: Storage) -> None:
        calls: list[str] = []
        with pytest.raises(ValueError), storage.transaction():
            with storage.transaction():
                storage.on_commit(lambda: calls.append("done"))
            raise ValueError("outer")
        assert calls == []

        with storage.transaction():
            pass
        assert calls == []


@pytest.fixture
def sql_backend(tmp_path: Path) -> Iterator[SQLBackend]:
    config = DatabaseConfig(
        engine=DatabaseEngine.SQLITE,
        dsn=f"sqlite:///{tmp_path / 'storage.db'}",
    )
    backend = SQLBackend(config)
    backend.open()
    yield backend
    backend.close()


class TestSQLBackend:
    def test_not_open(self) -> None:
        backend = SQLBackend(DatabaseConfig(dsn="sqlite:///:memory:"))
        assert not backend.is_open
        with pytest.raises(RuntimeError, match="not open"):
            backend.get(_NS, b"k")

    def test_commit_persists(self, sql_backend: SQLBackend) -> None:
        storage = Storage(sql_backend)
        with storage.transaction():
            storage.set(_NS, b"k", b"v")
        assert sql_backend.get(_NS, b"k") == b"v"

    def test_overwrite_and_delete(self, sql_backend: SQLBackend) -> None:
        storage = Storage(sql_backend)
        storage.set(_NS, b"k", b"1")
        storage.set(_NS, b"k", b"2")
        assert sql_backend.get(_NS, b"k") == b"2"
        storage.delete(_NS, b"k")
        assert sql_backend.get(_NS, b"k") is None

    def test_rollback_writes_nothing(self, sql_backend: SQLBackend) -> None:
        storage = Storage(sql_backend)
        with pytest.raises(RuntimeError), storage.transaction():
            storage.set(_NS, b"k", b"v")
            raise RuntimeError("abort")
        assert sql_backend.get(_NS, b"k") is None

    def test_iter_namespace(self, sql_backend: SQLBackend) -> None:
        storage = Storage(sql_backend)
        storage.set(_NS, b"a", b"1")
        storage.set(_NS, b"b", b"2")
        storage.set("Other", b"c", b"3")
        assert storage.items(_NS) == {b"a": b"1", b"b": b"2"}

    def test_in_memory_sqlite(self) -> None:
        backend = SQLBackend(DatabaseConfig(engine=DatabaseEngine.SQLITE, dsn="sqlite:///:memory:"))
        backend.open()
        try:
            Storage(backend).set(_NS, b"k", b"v")
            assert backend.get(_NS, b"k") == b"v"
        finally:
            backend.close()
