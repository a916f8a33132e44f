"""Account registry — existence, reference counts, nonces, kill hooks."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from evm_accounts.datastore.storage import Storage
    from evm_accounts.evm.address import AccountId
    from evm_accounts.runtime.interfaces import KilledAccountHook

logger = logging.getLogger(__name__)

ACCOUNT_NAMESPACE = "System.Account"

_INFO_FORMAT = "<III"


@dataclass(frozen=True)
class AccountInfo:
    """Per-account bookkeeping.

    Attributes:
        nonce: Number of transactions the account has sent.
        consumers: References that require the account to stay alive.
        providers: References that allow the account to exist (e.g. a balance).
    """

    nonce: int = 0
    consumers: int = 0
    providers: int = 0

    def encode(self) -> bytes:
        return struct.pack(_INFO_FORMAT, self.nonce, self.consumers, self.providers)

    @classmethod
    def decode(cls, raw: bytes) -> Self:
        nonce, consumers, providers = struct.unpack(_INFO_FORMAT, raw)
        return cls(nonce=nonce, consumers=consumers, providers=providers)


class System:
    """Storage-backed ``AccountRegistry``.

    An account exists ("is explicit") while it has an ``AccountInfo`` entry.
    Releasing the last provider kills it; killing removes the entry and
    notifies every hook registered with :meth:`register_on_killed`.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._on_killed: list[KilledAccountHook] = []

    def register_on_killed(self, hook: KilledAccountHook) -> None:
        """Register an observer for account destruction."""
        self._on_killed.append(hook)

    # -- Queries --

    def account(self, who: AccountId) -> AccountInfo:
        raw = self._storage.get(ACCOUNT_NAMESPACE, who.data)
        return AccountInfo.decode(raw) if raw is not None else AccountInfo()

    def is_explicit(self, who: AccountId) -> bool:
        """Whether the account currently exists."""
        return self._storage.contains(ACCOUNT_NAMESPACE, who.data)

    def allow_death(self, who: AccountId) -> bool:
        """Whether nothing holds a consumer reference on the account."""
        return self.account(who).consumers == 0

    def account_nonce(self, who: AccountId) -> int:
        return self.account(who).nonce

    # -- Mutations --

    def _put(self, who: AccountId, info: AccountInfo) -> None:
        self._storage.set(ACCOUNT_NAMESPACE, who.data, info.encode())

    def set_nonce(self, who: AccountId, nonce: int) -> None:
        self._put(who, replace(self.account(who), nonce=nonce))

    def inc_nonce(self, who: AccountId) -> None:
        info = self.account(who)
        self._put(who, replace(info, nonce=info.nonce + 1))

    def inc_providers(self, who: AccountId) -> None:
        info = self.account(who)
        if not self.is_explicit(who):
            logger.debug("New account %s", who)
        self._put(who, replace(info, providers=info.providers + 1))

    def dec_providers(self, who: AccountId) -> None:
        """Release a provider reference, killing the account on the last one."""
        info = self.account(who)
        if info.providers <= 1:
            self.kill_account(who)
            return
        self._put(who, replace(info, providers=info.providers - 1))

    def inc_consumers(self, who: AccountId) -> None:
        info = self.account(who)
        self._put(who, replace(info, consumers=info.consumers + 1))

    def dec_consumers(self, who: AccountId) -> None:
        info = self.account(who)
        self._put(who, replace(info, consumers=max(info.consumers - 1, 0)))

    def kill_account(self, who: AccountId) -> None:
        """Remove the account and notify killed-account hooks.

        Killing an account that does not exist is a no-op.
        """
        if not self.is_explicit(who):
            return
        self._storage.delete(ACCOUNT_NAMESPACE, who.data)
        logger.debug("Killed account %s", who)
        for hook in self._on_killed:
            hook(who)
