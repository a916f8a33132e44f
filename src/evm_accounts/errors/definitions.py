"""All error definitions for account claiming and the reference ledger."""

from __future__ import annotations

from evm_accounts.errors.evm_errors import EvmAccountsError, LedgerError

# -- Claim -----------------------------------------------------------------

ErrEthAddressHasMapped = EvmAccountsError(
    "eth address has already been mapped", status_code=409, code="eth-address-has-mapped"
)
ErrBadSignature = EvmAccountsError("bad signature", status_code=400, code="bad-signature")
ErrInvalidSignature = EvmAccountsError(
    "signature does not match the claimed eth address",
    status_code=400,
    code="invalid-signature",
)

# -- Merge -----------------------------------------------------------------

ErrNonZeroRefCount = EvmAccountsError(
    "account ref count is not zero", status_code=409, code="non-zero-ref-count"
)
ErrStillHasActiveReserved = EvmAccountsError(
    "account still has active reserved balance",
    status_code=409,
    code="still-has-active-reserved",
)

# -- Ledger ----------------------------------------------------------------

ErrInsufficientBalance = LedgerError("insufficient balance", code="insufficient-balance")
ErrExistentialDeposit = LedgerError(
    "value too low to create account due to existential deposit",
    code="existential-deposit",
)
ErrKeepAlive = LedgerError(
    "transfer would kill the source account", code="keep-alive"
)
