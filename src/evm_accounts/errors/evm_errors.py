"""EvmAccountsError — base exception class for all evm-accounts errors."""

from __future__ import annotations


class EvmAccountsError(Exception):
    """Base error for all account-claim and ledger operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "evm-accounts-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class LedgerError(EvmAccountsError):
    """Error raised by the balances ledger."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 422,
        code: str = "ledger-error",
    ) -> None:
        super().__init__(message, status_code=status_code, code=code)
