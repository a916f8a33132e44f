"""Tests for the balances ledger — runtime/balances.py (existential deposit 10)."""

from __future__ import annotations

import pytest

from evm_accounts.errors.definitions import (
    ErrExistentialDeposit,
    ErrInsufficientBalance,
    ErrKeepAlive,
)
from evm_accounts.errors.evm_errors import LedgerError
from evm_accounts.evm.address import AccountId
from evm_accounts.runtime.balances import AccountData, Balances
from evm_accounts.runtime.system import System


class TestAccountData:
    def test_encode_decode(self) -> None:
        data = AccountData(free=2**100, reserved=5)
        assert AccountData.decode(data.encode()) == data
        assert data.total == 2**100 + 5


class TestDeposit:
    def test_deposit_creates_account(
        self, balances: Balances, system: System, alice: AccountId
    ) -> None:
        balances.deposit_creating(alice, 100)
        assert balances.free_balance(alice) == 100
        assert system.is_explicit(alice)
        assert balances.total_issuance() == 100

    def test_deposit_below_existential(self, balances: Balances, alice: AccountId) -> None:
        with pytest.raises(LedgerError) as exc_info:
            balances.deposit_creating(alice, 5)
        assert exc_info.value is ErrExistentialDeposit
        assert balances.total_issuance() == 0


class TestReserve:
    def test_reserve_and_unreserve(self, balances: Balances, alice: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        balances.reserve(alice, 30)
        assert balances.free_balance(alice) == 70
        assert balances.reserved_balance(alice) == 30
        assert balances.unreserve(alice, 10) == 0
        assert balances.reserved_balance(alice) == 20

    def test_unreserve_more_than_reserved(self, balances: Balances, alice: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        balances.reserve(alice, 30)
        assert balances.unreserve(alice, 50) == 20
        assert balances.free_balance(alice) == 100
        assert balances.reserved_balance(alice) == 0

    def test_reserve_insufficient(self, balances: Balances, alice: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        with pytest.raises(LedgerError) as exc_info:
            balances.reserve(alice, 101)
        assert exc_info.value is ErrInsufficientBalance


class TestTransfer:
    def test_transfer(self, balances: Balances, alice: AccountId, bob: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        balances.transfer(alice, bob, 40, allow_death=False)
        assert balances.free_balance(alice) == 60
        assert balances.free_balance(bob) == 40

    def test_insufficient(self, balances: Balances, alice: AccountId, bob: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        with pytest.raises(LedgerError) as exc_info:
            balances.transfer(alice, bob, 101, allow_death=True)
        assert exc_info.value is ErrInsufficientBalance

    def test_keep_alive(self, balances: Balances, alice: AccountId, bob: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        with pytest.raises(LedgerError) as exc_info:
            balances.transfer(alice, bob, 95, allow_death=False)
        assert exc_info.value is ErrKeepAlive
        assert balances.free_balance(alice) == 100

    def test_new_destination_below_existential(
        self, balances: Balances, alice: AccountId, bob: AccountId
    ) -> None:
        balances.deposit_creating(alice, 100)
        with pytest.raises(LedgerError) as exc_info:
            balances.transfer(alice, bob, 5, allow_death=False)
        assert exc_info.value is ErrExistentialDeposit

    def test_allow_death_reaps_source(
        self, balances: Balances, system: System, alice: AccountId, bob: AccountId
    ) -> None:
        killed: list[AccountId] = []
        system.register_on_killed(killed.append)
        balances.deposit_creating(alice, 100)
        balances.transfer(alice, bob, 100, allow_death=True)
        assert not system.is_explicit(alice)
        assert killed == [alice]
        assert balances.free_balance(bob) == 100

    def test_dust_is_dropped(
        self, balances: Balances, system: System, alice: AccountId, bob: AccountId
    ) -> None:
        balances.deposit_creating(alice, 100)
        balances.transfer(alice, bob, 95, allow_death=True)
        assert balances.total_balance(alice) == 0
        assert not system.is_explicit(alice)
        assert balances.total_issuance() == 95

    def test_referenced_source_cannot_die(
        self, balances: Balances, system: System, alice: AccountId, bob: AccountId
    ) -> None:
        balances.deposit_creating(alice, 100)
        system.inc_consumers(alice)
        with pytest.raises(LedgerError) as exc_info:
            balances.transfer(alice, bob, 100, allow_death=True)
        assert exc_info.value is ErrKeepAlive

    def test_zero_and_self_transfer_noop(self, balances: Balances, alice: AccountId) -> None:
        balances.deposit_creating(alice, 100)
        balances.transfer(alice, alice, 50, allow_death=False)
        balances.transfer(alice, alice, 0, allow_death=False)
        assert balances.free_balance(alice) == 100


class TestKilledAccount:
    def test_kill_burns_balance(
        self, balances: Balances, system: System, alice: AccountId
    ) -> None:
        balances.deposit_creating(alice, 100)
        balances.reserve(alice, 20)
        system.kill_account(alice)
        assert balances.total_balance(alice) == 0
        assert balances.total_issuance() == 0
