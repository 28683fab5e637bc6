"""
test_compliance_scenarios.py - End-to-end issuer and holder workflows

Tests:
- Mint, over-spend, partial freeze
- Snapshot-bound dividend with double-claim protection
- Country restriction applied consistently to mints and transfers
- All rule modules together: order of evaluation and counters
- Lost-wallet recovery followed by normal activity
- Asset-backed issuance with a distribution per asset
"""

import pytest
from datetime import timedelta

from rwa_ledger import (
    IdentityDirectory, ComplianceEngine, CountryRestriction, MaxBalance,
    TransferLimit, DividendDistributor,
    AlreadyClaimed, AddressFrozen, ComplianceRejected, InsufficientUnfrozenBalance,
    COUNTRY_RESTRICTED, MAX_BALANCE_EXCEEDED, DAILY_LIMIT_EXCEEDED,
    investor_report, violation_report,
)

from tests.helpers import START, US, UK, CN, KP, make_ledger, balances


@pytest.fixture
def h_ledger():
    identity = IdentityDirectory()
    identity.register("H1", US)
    identity.register("H2", US)
    identity.register("H3", CN)
    return make_ledger(identity)


class TestIssuanceScenarios:

    def test_mint(self, h_ledger):
        h_ledger.mint("H1", 1000)
        assert h_ledger.balance_of("H1") == 1000
        assert h_ledger.total_supply() == 1000

    def test_over_spend(self, h_ledger):
        h_ledger.mint("H1", 1000)
        with pytest.raises(InsufficientUnfrozenBalance):
            h_ledger.transfer("H1", "H2", 1500)
        assert h_ledger.balance_of("H1") == 1000
        assert h_ledger.balance_of("H2") == 0

    def test_partial_freeze(self, h_ledger):
        h_ledger.mint("H1", 1000)
        h_ledger.freeze("H1", 600)
        with pytest.raises(InsufficientUnfrozenBalance):
            h_ledger.transfer("H1", "H2", 500)
        h_ledger.transfer("H1", "H2", 400)
        assert h_ledger.balance_of("H1") == 600
        assert h_ledger.frozen_of("H1") == 600
        assert h_ledger.available_balance_of("H1") == 0

    def test_snapshot_dividend(self, h_ledger):
        h_ledger.mint("H1", 600)
        h_ledger.mint("H2", 400)
        distributor = DividendDistributor(h_ledger)
        div_id = distributor.deposit_dividend(600)

        # Activity after the snapshot does not change entitlements
        h_ledger.transfer("H1", "H2", 300)

        assert distributor.claim("H1", div_id) == 360
        assert distributor.claim("H2", div_id) == 240
        with pytest.raises(AlreadyClaimed):
            distributor.claim("H1", div_id)
        assert distributor.residue(div_id) == 0

    def test_country_restriction_consistent(self, h_ledger):
        h_ledger.compliance.add_module(CountryRestriction(blocked=[CN]))
        h_ledger.mint("H1", 100)
        with pytest.raises(ComplianceRejected) as mint_exc:
            h_ledger.mint("H3", 10)
        with pytest.raises(ComplianceRejected) as transfer_exc:
            h_ledger.transfer("H1", "H3", 10)
        assert mint_exc.value.reason == transfer_exc.value.reason == COUNTRY_RESTRICTED
        assert h_ledger.balance_of("H3") == 0


class TestAllModules:

    def _build(self):
        identity = IdentityDirectory()
        identity.batch_register([("alice", US), ("bob", UK), ("kim", KP)])
        engine = ComplianceEngine()
        engine.add_module(CountryRestriction(blocked=[KP]))
        engine.add_module(MaxBalance(default_max=1000))
        limits = TransferLimit(daily=300, monthly=600)
        engine.add_module(limits)
        ledger = make_ledger(identity, engine)
        ledger.mint("alice", 1000)
        return ledger, limits

    def test_first_module_wins(self):
        ledger, _ = self._build()
        with pytest.raises(ComplianceRejected) as exc_info:
            ledger.transfer("alice", "kim", 100)
        assert exc_info.value.module == "CountryRestriction"

    def test_max_balance_on_mint(self):
        ledger, _ = self._build()
        with pytest.raises(ComplianceRejected) as exc_info:
            ledger.mint("alice", 1)
        assert exc_info.value.reason == MAX_BALANCE_EXCEEDED

    def test_limits_roll_over_with_ledger_time(self):
        ledger, limits = self._build()
        ledger.transfer("alice", "bob", 300)
        with pytest.raises(ComplianceRejected) as exc_info:
            ledger.transfer("alice", "bob", 1)
        assert exc_info.value.reason == DAILY_LIMIT_EXCEEDED

        ledger.advance_time(START + timedelta(days=1))
        ledger.transfer("alice", "bob", 300)
        assert limits.spent("alice", ledger.current_time) == (300, 600)
        assert limits.remaining("alice", ledger.current_time) == (0, 0)

    def test_rejected_transfer_does_not_consume_limit(self):
        ledger, limits = self._build()
        with pytest.raises(ComplianceRejected):
            ledger.transfer("alice", "kim", 100)
        assert limits.spent("alice", ledger.current_time) == (0, 0)
        assert [r['module'] for r in violation_report(ledger)] == ["CountryRestriction"]


class TestRecoveryWorkflow:

    def test_lost_wallet(self, funded_ledger, identity):
        identity.register("alice-new", US)
        funded_ledger.freeze("alice", 100)
        funded_ledger.recover("alice", "alice-new")

        with pytest.raises(AddressFrozen):
            funded_ledger.transfer("alice", "bob", 1)
        funded_ledger.transfer("alice-new", "bob", 900)
        assert balances(funded_ledger) == {"alice-new": 100, "bob": 1400}
        assert funded_ledger.frozen_of("alice-new") == 100
        assert funded_ledger.verify_invariants()['valid']

        rows = {r['holder']: r for r in investor_report(funded_ledger)}
        assert rows["alice"]['balance'] == 0


class TestAssetBackedDistribution:

    def test_dividend_per_asset(self, funded_ledger):
        funded_ledger.register_asset("PROP-1", "Warehouse")
        funded_ledger.transfer_with_asset("alice", "alice", 1000, "PROP-1")
        funded_ledger.transfer_with_asset("alice", "bob", 250, "PROP-1")

        distributor = DividendDistributor(funded_ledger)
        div_id = distributor.deposit_dividend(1500, reference="PROP-1")
        assert distributor.get_dividend_info(div_id).reference == "PROP-1"
        assert distributor.claim_all_pending("alice") == 750
        assert distributor.claim_all_pending("bob") == 750

        funded_ledger.burn_asset_tokens("bob", "PROP-1", 250)
        assert funded_ledger.get_asset_total_supply("PROP-1") == 750
        assert funded_ledger.verify_invariants()['valid']
