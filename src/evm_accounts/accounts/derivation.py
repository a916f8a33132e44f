"""Address ↔ account resolution used by the rest of the host.

``EvmAddressMapping`` turns any EVM address into a spendable account, claimed
or not. ``EvmAccountMapping`` goes the other way and only consults claims.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from evm_accounts.evm.address import EvmAddress, default_account_id

if TYPE_CHECKING:
    from evm_accounts.accounts.mapping import AddressMappingStore
    from evm_accounts.evm.address import AccountId


class EvmAddressMapping:
    """EVM address → native account."""

    def __init__(self, store: AddressMappingStore) -> None:
        self._store = store

    def into_account_id(self, address: EvmAddress) -> AccountId:
        """Return the claiming account, or the synthesized ``evm:`` fallback."""
        account = self._store.lookup_account(address)
        if account is not None:
            return account
        return default_account_id(address)


class EvmAccountMapping:
    """Native account → EVM address."""

    def __init__(self, store: AddressMappingStore) -> None:
        self._store = store

    def into_h160(self, account: AccountId) -> EvmAddress:
        """Return the claimed address, or the zero address if unclaimed."""
        address = self._store.lookup_address(account)
        return address if address is not None else EvmAddress.ZERO
