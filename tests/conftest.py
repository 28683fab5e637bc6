"""
conftest.py - Shared pytest fixtures for ledger tests

Provides common fixtures used across unit and functional tests:
- Identity directories with verified holders
- Ledgers (empty, funded, with rule modules)
- Dividend distributors
"""

import pytest

from rwa_ledger import (
    IdentityDirectory,
    ComplianceEngine,
    CountryRestriction,
    MaxBalance,
    TransferLimit,
    DividendDistributor,
)

from tests.helpers import US, UK, CN, KP, make_ledger


# =============================================================================
# IDENTITY
# =============================================================================

@pytest.fixture
def identity():
    """Directory with alice (US), bob (UK), carol (CN) verified and mallory unverified."""
    directory = IdentityDirectory()
    directory.register("alice", US)
    directory.register("bob", UK)
    directory.register("carol", CN)
    directory.register("mallory", US, verified=False)
    return directory


# =============================================================================
# LEDGERS
# =============================================================================

@pytest.fixture
def engine():
    return ComplianceEngine()


@pytest.fixture
def ledger(identity, engine):
    """Empty ledger over the shared identity directory, no rule modules."""
    return make_ledger(identity, engine)


@pytest.fixture
def funded_ledger(ledger):
    """alice 1000, bob 500, carol 0."""
    ledger.mint("alice", 1000)
    ledger.mint("bob", 500)
    return ledger


@pytest.fixture
def country_module():
    return CountryRestriction(blocked=[KP])


@pytest.fixture
def max_balance_module():
    return MaxBalance(default_max=2000)


@pytest.fixture
def limit_module():
    return TransferLimit(daily=300, monthly=1000)


@pytest.fixture
def guarded_ledger(identity, engine, country_module, max_balance_module, limit_module):
    """Funded ledger with all three rule modules, in that order."""
    identity.register("kim", KP)
    engine.add_module(country_module)
    engine.add_module(max_balance_module)
    engine.add_module(limit_module)
    ledger = make_ledger(identity, engine)
    ledger.mint("alice", 1000)
    ledger.mint("bob", 500)
    return ledger


@pytest.fixture
def distributor(funded_ledger):
    return DividendDistributor(funded_ledger)
