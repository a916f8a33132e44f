"""Shared test fixtures for the evm-accounts test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from evm_accounts.evm.address import AccountId

if TYPE_CHECKING:
    from collections.abc import Iterator

    from evm_accounts.engine.client import EvmAccountsEngine

# Well-known development keys (Hardhat accounts #0 and #1)
_ALICE_SECRET = bytes.fromhex("ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80")
_BOB_SECRET = bytes.fromhex("59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d")


@pytest.fixture
def app_config():
    """Provide a test AppConfig with in-memory storage."""
    from evm_accounts.config.settings import AppConfig, DatabaseConfig, DatabaseEngine

    return AppConfig(
        debug=True,
        new_account_deposit=100,
        existential_deposit=1,
        db=DatabaseConfig(engine=DatabaseEngine.MEMORY),
    )


@pytest.fixture
def engine(app_config) -> Iterator[EvmAccountsEngine]:
    """Provide an initialized engine wired to the reference runtime."""
    from evm_accounts.engine.client import EvmAccountsEngine

    eng = EvmAccountsEngine(app_config)
    eng.initialize()
    yield eng
    eng.close()


@pytest.fixture
def storage():
    """Provide an empty in-memory transactional storage."""
    from evm_accounts.datastore.storage import Storage

    return Storage()


@pytest.fixture
def system(storage):
    from evm_accounts.runtime.system import System

    return System(storage)


@pytest.fixture
def balances(storage, system):
    from evm_accounts.runtime.balances import Balances

    ledger = Balances(storage, system, existential_deposit=10)
    system.register_on_killed(ledger.on_killed_account)
    return ledger


@pytest.fixture
def alice_secret() -> bytes:
    return _ALICE_SECRET


@pytest.fixture
def bob_secret() -> bytes:
    return _BOB_SECRET


@pytest.fixture
def alice() -> AccountId:
    return AccountId(b"\x01" * 32)


@pytest.fixture
def bob() -> AccountId:
    return AccountId(b"\x02" * 32)
