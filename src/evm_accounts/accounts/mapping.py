"""Two-way mapping between EVM addresses and native accounts.

Forward (``Accounts``: address → account) and reverse
(``EvmAddresses``: account → address) entries are only ever written
together, which keeps the table a bijection: no address maps to two
accounts and no account to two addresses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from evm_accounts.evm.address import AccountId, EvmAddress

if TYPE_CHECKING:
    from evm_accounts.datastore.storage import Storage

ACCOUNTS_NAMESPACE = "EvmAccounts.Accounts"
EVM_ADDRESSES_NAMESPACE = "EvmAccounts.EvmAddresses"


class AddressMappingStore:
    """Owner of both directions of the address table.

    No format validation happens here beyond the fixed-width value types.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    # -- Lookups --

    def lookup_account(self, address: EvmAddress) -> AccountId | None:
        raw = self._storage.get(ACCOUNTS_NAMESPACE, address.data)
        return AccountId(raw) if raw is not None else None

    def lookup_address(self, account: AccountId) -> EvmAddress | None:
        raw = self._storage.get(EVM_ADDRESSES_NAMESPACE, account.data)
        return EvmAddress(raw) if raw is not None else None

    def is_mapped(self, address: EvmAddress) -> bool:
        return self._storage.contains(ACCOUNTS_NAMESPACE, address.data)

    def pairs(self) -> dict[EvmAddress, AccountId]:
        """Snapshot of every forward entry."""
        return {
            EvmAddress(key): AccountId(value)
            for key, value in self._storage.items(ACCOUNTS_NAMESPACE).items()
        }

    def __len__(self) -> int:
        return len(self._storage.items(ACCOUNTS_NAMESPACE))

    # -- Mutations --

    def insert(self, address: EvmAddress, account: AccountId) -> None:
        """Bind ``address`` to ``account``.

        Any address previously bound to ``account`` and any account
        previously bound to ``address`` are unbound first.
        """
        self.remove_by_account(account)
        self.remove_by_address(address)
        self._storage.set(ACCOUNTS_NAMESPACE, address.data, account.data)
        self._storage.set(EVM_ADDRESSES_NAMESPACE, account.data, address.data)

    def remove_by_address(self, address: EvmAddress) -> None:
        account = self.lookup_account(address)
        self._storage.delete(ACCOUNTS_NAMESPACE, address.data)
        if account is not None:
            self._storage.delete(EVM_ADDRESSES_NAMESPACE, account.data)

    def remove_by_account(self, account: AccountId) -> None:
        address = self.lookup_address(account)
        self._storage.delete(EVM_ADDRESSES_NAMESPACE, account.data)
        if address is not None:
            self._storage.delete(ACCOUNTS_NAMESPACE, address.data)
