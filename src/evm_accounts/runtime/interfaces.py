"""Contracts for the collaborators the claim service depends on.

The claim and merge logic only talks to the ledger and the account
registry through these protocols, so a host can plug in its own
implementations. ``evm_accounts.runtime.balances`` and
``evm_accounts.runtime.system`` provide storage-backed reference ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from evm_accounts.evm.address import AccountId


class Ledger(Protocol):
    """Free/reserved balances and transfers."""

    def free_balance(self, who: AccountId) -> int: ...

    def reserved_balance(self, who: AccountId) -> int: ...

    def unreserve(self, who: AccountId, amount: int) -> int:
        """Move up to ``amount`` from reserved to free; return what could not be moved."""
        ...

    def transfer(self, source: AccountId, dest: AccountId, amount: int, *, allow_death: bool) -> None:
        """Move free balance, raising ``LedgerError`` on failure."""
        ...


class AccountRegistry(Protocol):
    """Account existence, reference counts, and sequence counters (nonces)."""

    def is_explicit(self, who: AccountId) -> bool: ...

    def allow_death(self, who: AccountId) -> bool: ...

    def account_nonce(self, who: AccountId) -> int: ...

    def set_nonce(self, who: AccountId, nonce: int) -> None: ...

    def kill_account(self, who: AccountId) -> None:
        """Destroy the account and fire every killed-account hook."""
        ...


class KilledAccountHook(Protocol):
    """Observer invoked whenever the registry destroys an account."""

    def __call__(self, who: AccountId) -> None: ...
