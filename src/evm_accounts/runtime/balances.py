"""Balances ledger — free and reserved funds with an existential deposit.

Accounts come into existence when they first hold at least the existential
deposit and are reaped (their provider reference released) when a transfer
that allows death leaves them below it. Killing an account in the registry
burns whatever it still holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Self

from evm_accounts.errors.definitions import (
    ErrExistentialDeposit,
    ErrInsufficientBalance,
    ErrKeepAlive,
)

if TYPE_CHECKING:
    from evm_accounts.datastore.storage import Storage
    from evm_accounts.evm.address import AccountId
    from evm_accounts.runtime.system import System

logger = logging.getLogger(__name__)

ACCOUNT_NAMESPACE = "Balances.Account"
ISSUANCE_NAMESPACE = "Balances.TotalIssuance"
_ISSUANCE_KEY = b""

_BALANCE_SIZE = 16  # u128


def _encode_balance(value: int) -> bytes:
    return value.to_bytes(_BALANCE_SIZE, "little")


def _decode_balance(raw: bytes) -> int:
    return int.from_bytes(raw, "little")


@dataclass(frozen=True)
class AccountData:
    """Balance record for one account."""

    free: int = 0
    reserved: int = 0

    @property
    def total(self) -> int:
        return self.free + self.reserved

    def encode(self) -> bytes:
        return _encode_balance(self.free) + _encode_balance(self.reserved)

    @classmethod
    def decode(cls, raw: bytes) -> Self:
        return cls(
            free=_decode_balance(raw[:_BALANCE_SIZE]),
            reserved=_decode_balance(raw[_BALANCE_SIZE:]),
        )


class Balances:
    """Storage-backed ``Ledger``.

    Register :meth:`on_killed_account` with the ``System`` so that destroyed
    accounts lose their remaining funds.
    """

    def __init__(self, storage: Storage, system: System, *, existential_deposit: int = 1) -> None:
        self._storage = storage
        self._system = system
        self._existential_deposit = existential_deposit

    @property
    def existential_deposit(self) -> int:
        return self._existential_deposit

    # -- Queries --

    def account(self, who: AccountId) -> AccountData:
        raw = self._storage.get(ACCOUNT_NAMESPACE, who.data)
        return AccountData.decode(raw) if raw is not None else AccountData()

    def free_balance(self, who: AccountId) -> int:
        return self.account(who).free

    def reserved_balance(self, who: AccountId) -> int:
        return self.account(who).reserved

    def total_balance(self, who: AccountId) -> int:
        return self.account(who).total

    def total_issuance(self) -> int:
        raw = self._storage.get(ISSUANCE_NAMESPACE, _ISSUANCE_KEY)
        return _decode_balance(raw) if raw is not None else 0

    # -- Internal --

    def _set_issuance(self, value: int) -> None:
        self._storage.set(ISSUANCE_NAMESPACE, _ISSUANCE_KEY, _encode_balance(value))

    def _store(self, who: AccountId, data: AccountData) -> None:
        """Persist ``data``, creating or reaping the account as needed."""
        existed = self._storage.contains(ACCOUNT_NAMESPACE, who.data)
        if data.total == 0 or data.total < self._existential_deposit:
            self._storage.delete(ACCOUNT_NAMESPACE, who.data)
            if data.total:
                logger.debug("Dropping dust %d from reaped account %s", data.total, who)
                self._set_issuance(self.total_issuance() - data.total)
            if existed:
                self._system.dec_providers(who)
            return
        self._storage.set(ACCOUNT_NAMESPACE, who.data, data.encode())
        if not existed:
            self._system.inc_providers(who)

    # -- Mutations --

    def deposit_creating(self, who: AccountId, amount: int) -> None:
        """Mint ``amount`` into the free balance of ``who``.

        Raises:
            LedgerError: If a new account would start below the existential deposit.
        """
        if amount == 0:
            return
        data = self.account(who)
        if data.total == 0 and amount < self._existential_deposit:
            raise ErrExistentialDeposit
        self._set_issuance(self.total_issuance() + amount)
        self._store(who, replace(data, free=data.free + amount))

    def reserve(self, who: AccountId, amount: int) -> None:
        """Move ``amount`` from free to reserved.

        Raises:
            LedgerError: If the free balance is too low.
        """
        data = self.account(who)
        if data.free < amount:
            raise ErrInsufficientBalance
        self._store(who, AccountData(free=data.free - amount, reserved=data.reserved + amount))

    def unreserve(self, who: AccountId, amount: int) -> int:
        """Move up to ``amount`` from reserved back to free.

        Returns:
            The part of ``amount`` that was not reserved and so not moved.
        """
        data = self.account(who)
        actual = min(data.reserved, amount)
        if actual:
            self._store(who, AccountData(free=data.free + actual, reserved=data.reserved - actual))
        return amount - actual

    def transfer(
        self,
        source: AccountId,
        dest: AccountId,
        amount: int,
        *,
        allow_death: bool,
    ) -> None:
        """Move ``amount`` of free balance from ``source`` to ``dest``.

        All checks run before any write.

        Raises:
            LedgerError: ``ErrInsufficientBalance`` if the source lacks funds,
                ``ErrKeepAlive`` if the source would drop below the existential
                deposit when that is not allowed (or it is still referenced),
                ``ErrExistentialDeposit`` if a new destination would receive
                less than the existential deposit.
        """
        if amount == 0 or source == dest:
            return
        src = self.account(source)
        if src.free < amount:
            raise ErrInsufficientBalance
        new_src = replace(src, free=src.free - amount)
        if new_src.total < self._existential_deposit and (
            not allow_death or not self._system.allow_death(source)
        ):
            raise ErrKeepAlive

        dst = self.account(dest)
        if dst.total + amount < self._existential_deposit:
            raise ErrExistentialDeposit

        self._store(dest, replace(dst, free=dst.free + amount))
        self._store(source, new_src)

    def on_killed_account(self, who: AccountId) -> None:
        """Burn any balance left on an account the registry destroyed."""
        data = self.account(who)
        if data.total == 0:
            return
        logger.debug("Burning %d from killed account %s", data.total, who)
        self._storage.delete(ACCOUNT_NAMESPACE, who.data)
        self._set_issuance(self.total_issuance() - data.total)
