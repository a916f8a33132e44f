"""Claim service — bind an EVM address to a native account.

A claim proves control of the address's private key by a signature over the
caller's account id. If the address's fallback (``evm:``) account has already
been used, its funds and nonce are folded into the caller and it is killed.
The whole claim is one storage transaction: any failure leaves no trace.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from functools import partial
from dataclasses import dataclass
from typing import TYPE_CHECKING

from evm_accounts.accounts.derivation import EvmAccountMapping, EvmAddressMapping
from evm_accounts.accounts.mapping import AddressMappingStore
from evm_accounts.errors.definitions import (
    ErrBadSignature,
    ErrEthAddressHasMapped,
    ErrInvalidSignature,
    ErrNonZeroRefCount,
    ErrStillHasActiveReserved,
)
from evm_accounts.errors.evm_errors import EvmAccountsError
from evm_accounts.evm.signature import eth_recover
from evm_accounts.notifications.events import ClaimAccountEvent
from evm_accounts.utils.crypto import to_ascii_hex

if TYPE_CHECKING:
    from evm_accounts.datastore.storage import Storage
    from evm_accounts.evm.address import AccountId, EcdsaSignature, EvmAddress
    from evm_accounts.metrics.collector import ClaimMetrics
    from evm_accounts.notifications.service import NotificationService
    from evm_accounts.runtime.interfaces import AccountRegistry, Ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingMerge:
    """State of a live fallback account, read before anything is changed."""

    account_id: AccountId
    reserved: int
    free: int
    nonce: int


class EvmAccounts:
    """Claim entry point and owner of the address mapping.

    Register :meth:`on_killed_account` with the account registry so that
    mappings disappear together with their account.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        ledger: Ledger,
        registry: AccountRegistry,
        new_account_deposit: int,
        notifications: NotificationService | None = None,
        metrics: ClaimMetrics | None = None,
    ) -> None:
        self._storage = storage
        self._ledger = ledger
        self._registry = registry
        self._new_account_deposit = new_account_deposit
        self._notifications = notifications
        self._metrics = metrics

        self._store = AddressMappingStore(storage)
        self.address_mapping = EvmAddressMapping(self._store)
        self.account_mapping = EvmAccountMapping(self._store)

        if metrics is not None:
            metrics.watch_mapped_count(lambda: len(self._store))

    @property
    def new_account_deposit(self) -> int:
        """Largest reserved balance a fallback account may hold and still be merged."""
        return self._new_account_deposit

    @property
    def mapping(self) -> AddressMappingStore:
        return self._store

    def accounts(self, address: EvmAddress) -> AccountId | None:
        """Account that claimed ``address``, if any."""
        return self._store.lookup_account(address)

    def evm_addresses(self, account: AccountId) -> EvmAddress | None:
        """Address claimed by ``account``, if any."""
        return self._store.lookup_address(account)

    # -- Claim --

    def claim_account(
        self,
        who: AccountId,
        eth_address: EvmAddress,
        eth_signature: EcdsaSignature,
    ) -> None:
        """Claim ``eth_address`` for ``who``.

        The claim event and success metric are emitted when the outermost
        storage transaction commits, so a caller's enclosing transaction
        that rolls back leaves no trace either.

        Args:
            who: The (already authenticated) calling account.
            eth_address: The address being claimed.
            eth_signature: Signature by ``eth_address``'s key over the
                ASCII-hex encoding of ``who``.

        Raises:
            EvmAccountsError: ``ErrEthAddressHasMapped``, ``ErrBadSignature``,
                ``ErrInvalidSignature``, ``ErrNonZeroRefCount``,
                ``ErrStillHasActiveReserved``, or a ledger error from the
                merge transfer. Nothing is persisted when an error is raised.
        """
        tracker = self._metrics.track_claim() if self._metrics is not None else nullcontext()
        try:
            with tracker, self._storage.transaction():
                merged = self._claim(who, eth_address, eth_signature)
                self._storage.on_commit(partial(self._claimed, who, eth_address, merged=merged))
        except EvmAccountsError as err:
            logger.debug("Claim of %s by %s rejected: %s", eth_address, who, err.code)
            if self._metrics is not None:
                self._metrics.record_claim(err.code)
            raise

    def _claimed(self, who: AccountId, eth_address: EvmAddress, *, merged: bool) -> None:
        """Report a claim once its changes are durable."""
        logger.info("Account %s claimed %s", who, eth_address)
        if self._metrics is not None:
            self._metrics.record_claim("success")
            if merged:
                self._metrics.record_merge()
        if self._notifications is not None:
            self._notifications.notify(ClaimAccountEvent.create(who, eth_address))

    def _claim(self, who: AccountId, eth_address: EvmAddress, eth_signature: EcdsaSignature) -> bool:
        if self._store.is_mapped(eth_address):
            raise ErrEthAddressHasMapped

        address = eth_recover(eth_signature, to_ascii_hex(who.data))
        if address is None:
            raise ErrBadSignature
        if address != eth_address:
            raise ErrInvalidSignature

        nonce = 0
        pending = self._pending_merge(who, eth_address)
        if pending is not None:
            self._merge(who, pending)
            nonce = pending.nonce

        if self._registry.account_nonce(who) < nonce:
            self._registry.set_nonce(who, nonce)

        self._store.insert(eth_address, who)
        return pending is not None

    def _pending_merge(self, who: AccountId, eth_address: EvmAddress) -> PendingMerge | None:
        """Snapshot the fallback account if it is live and distinct from ``who``."""
        account_id = self.address_mapping.into_account_id(eth_address)
        if account_id == who or not self._registry.is_explicit(account_id):
            return None
        return PendingMerge(
            account_id=account_id,
            reserved=self._ledger.reserved_balance(account_id),
            free=self._ledger.free_balance(account_id),
            nonce=self._registry.account_nonce(account_id),
        )

    def _merge(self, who: AccountId, pending: PendingMerge) -> None:
        """Move everything the fallback account holds to ``who`` and kill it."""
        account_id = pending.account_id

        # Locks or other consumers keep the account alive after draining it
        if not self._registry.allow_death(account_id):
            raise ErrNonZeroRefCount

        # Anything above the deposit is held by some other business
        if pending.reserved > self._new_account_deposit:
            raise ErrStillHasActiveReserved

        if pending.reserved > 0:
            self._ledger.unreserve(account_id, pending.reserved)

        free = self._ledger.free_balance(account_id)
        if free > 0:
            self._ledger.transfer(account_id, who, free, allow_death=True)

        self._registry.kill_account(account_id)
        logger.info(
            "Merged fallback account %s into %s (free=%d reserved=%d nonce=%d)",
            account_id,
            who,
            pending.free,
            pending.reserved,
            pending.nonce,
        )

    # -- Lifecycle hook --

    def on_killed_account(self, who: AccountId) -> None:
        """Drop both directions of ``who``'s mapping.

        Any balance the account still held is not rescued here.
        """
        if self._store.lookup_address(who) is not None:
            logger.debug("Removing address mapping of killed account %s", who)
        self._store.remove_by_account(who)
