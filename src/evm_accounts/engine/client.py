"""EvmAccountsEngine — composition root owning storage and all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from evm_accounts.config.settings import DatabaseEngine

if TYPE_CHECKING:
    from evm_accounts.accounts.service import EvmAccounts
    from evm_accounts.config.settings import AppConfig
    from evm_accounts.datastore.sql import SQLBackend
    from evm_accounts.datastore.storage import Storage
    from evm_accounts.metrics.collector import ClaimMetrics
    from evm_accounts.notifications.service import NotificationService
    from evm_accounts.runtime.balances import Balances
    from evm_accounts.runtime.system import System

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class EvmAccountsEngine:
    """Wires storage, the reference runtime, and the claim service together.

    Usage::

        engine = EvmAccountsEngine(AppConfig())
        engine.initialize()
        engine.evm_accounts.claim_account(who, address, signature)
        engine.close()
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._initialized = False

        self._sql_backend: SQLBackend | None = None
        self._storage: Storage | None = None
        self._system: System | None = None
        self._balances: Balances | None = None
        self._evm_accounts: EvmAccounts | None = None
        self._notifications: NotificationService | None = None
        self._metrics: ClaimMetrics | None = None

    def initialize(self) -> None:
        """Open storage and build every service.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from evm_accounts.accounts.service import EvmAccounts
        from evm_accounts.datastore.storage import Storage
        from evm_accounts.notifications.service import NotificationService
        from evm_accounts.runtime.balances import Balances
        from evm_accounts.runtime.system import System

        if self._config.db.engine == DatabaseEngine.MEMORY:
            self._storage = Storage()
        else:
            from evm_accounts.datastore.sql import SQLBackend

            self._sql_backend = SQLBackend(self._config.db)
            self._sql_backend.open()
            self._storage = Storage(self._sql_backend)

        if self._config.metrics.enabled:
            from evm_accounts.metrics.collector import ClaimMetrics

            self._metrics = ClaimMetrics()

        self._notifications = NotificationService()
        self._system = System(self._storage)
        self._balances = Balances(
            self._storage,
            self._system,
            existential_deposit=self._config.existential_deposit,
        )
        self._evm_accounts = EvmAccounts(
            self._storage,
            ledger=self._balances,
            registry=self._system,
            new_account_deposit=self._config.new_account_deposit,
            notifications=self._notifications,
            metrics=self._metrics,
        )

        # Balances burns leftovers first, then the mapping is dropped
        self._system.register_on_killed(self._balances.on_killed_account)
        self._system.register_on_killed(self._evm_accounts.on_killed_account)

        self._initialized = True
        logger.info("Engine initialized (storage=%s)", self._config.db.engine)

    def close(self) -> None:
        """Tear down services and release storage connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        self._evm_accounts = None
        self._balances = None
        self._system = None
        self._notifications = None
        self._metrics = None
        self._storage = None

        if self._sql_backend is not None:
            self._sql_backend.close()
            self._sql_backend = None

        self._initialized = False
        logger.info("Engine closed")

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def storage(self) -> Storage:
        """Get the transactional storage.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._storage is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._storage

    @property
    def system(self) -> System:
        """Get the account registry."""
        if self._system is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._system

    @property
    def balances(self) -> Balances:
        """Get the balances ledger."""
        if self._balances is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._balances

    @property
    def evm_accounts(self) -> EvmAccounts:
        """Get the claim service."""
        if self._evm_accounts is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._evm_accounts

    @property
    def notifications(self) -> NotificationService:
        """Get the event sink."""
        if self._notifications is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._notifications

    @property
    def metrics(self) -> ClaimMetrics | None:
        """Get the metrics, or None when disabled."""
        return self._metrics
