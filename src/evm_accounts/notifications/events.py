"""Event types emitted by the claim service.

- ``RawEvent`` — envelope with type string + JSON content
- ``ClaimAccountEvent`` — an account claimed an EVM address
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Self

if TYPE_CHECKING:
    from evm_accounts.evm.address import AccountId, EvmAddress


@dataclass(frozen=True)
class RawEvent:
    """Generic event envelope sent to subscribers."""

    type: str
    content: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        return asdict(self)


@dataclass(frozen=True)
class ClaimAccountEvent(RawEvent):
    """Mapping between a native account and an EVM address was claimed."""

    type: str = "claim_account"
    account_id: str = ""
    evm_address: str = ""

    @classmethod
    def create(cls, account_id: AccountId, evm_address: EvmAddress) -> Self:
        return cls(account_id=account_id.hex(), evm_address=evm_address.hex())
