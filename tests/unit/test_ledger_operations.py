"""
test_ledger_operations.py - Unit tests for Ledger class operations

Tests:
- Ledger creation and configuration
- Mint, transfer, burn and their check order
- Partial freezes and whole-address freezes
- Recovery of lost holders
- Pause / unpause
- Time management, audit trail and rejection records
"""

import pytest
from datetime import timedelta

from rwa_ledger import (
    Ledger, Action, IdentityDirectory, ComplianceEngine, Decision,
    AddressFrozen, AlreadyBound, ComplianceRejected, ExceedsMaxSupply,
    IdentityNotVerified, InsufficientFrozenBalance, InsufficientUnfrozenBalance,
    NotPaused, Paused,
)

from tests.helpers import START, US, make_ledger, balances


class RejectAll:
    name = "RejectAll"

    def evaluate(self, view, intent):
        return Decision.reject(self.name, "NO")

    def notify(self, view, intent):
        raise AssertionError("notify must not follow a rejection")


class CountingModule:
    name = "Counting"

    def __init__(self):
        self.notified = []

    def evaluate(self, view, intent):
        return Decision.allow()

    def notify(self, view, intent):
        self.notified.append((intent.action, view.balance_of(intent.recipient or intent.sender)))


class TestLedgerCreation:

    def test_create_ledger_minimal(self):
        ledger = Ledger("test", verbose=False)
        assert ledger.name == "test"
        assert ledger.total_supply() == 0
        assert not ledger.paused

    def test_create_ledger_with_options(self):
        ledger = make_ledger(max_supply=1000)
        assert ledger.current_time == START
        assert ledger.max_supply == 1000
        assert ledger.verbose is False

    def test_engine_bound_to_ledger(self):
        engine = ComplianceEngine()
        make_ledger(engine=engine)
        assert engine.is_bound
        with pytest.raises(AlreadyBound):
            make_ledger(engine=engine)

    def test_verbose_prints(self, identity, capsys):
        ledger = Ledger("loud", identity, verbose=True)
        ledger.mint("alice", 10)
        with pytest.raises(IdentityNotVerified):
            ledger.mint("mallory", 10)
        out = capsys.readouterr().out
        assert "✓ APPLIED" in out
        assert "✗ REJECTED" in out


class TestMint:

    def test_mint(self, ledger):
        entry = ledger.mint("alice", 100)
        assert ledger.balance_of("alice") == 100
        assert ledger.total_supply() == 100
        assert entry.action == Action.MINT
        assert entry.recipient == "alice"

    def test_zero_mint_succeeds(self, ledger):
        ledger.mint("alice", 0)
        assert ledger.total_supply() == 0

    def test_mint_unverified(self, ledger):
        with pytest.raises(IdentityNotVerified) as exc_info:
            ledger.mint("mallory", 100)
        assert exc_info.value.holder == "mallory"
        assert ledger.total_supply() == 0

    def test_mint_unknown_holder(self, ledger):
        with pytest.raises(IdentityNotVerified):
            ledger.mint("ghost", 100)

    @pytest.mark.parametrize("amount", [-1, 1.0, True])
    def test_mint_bad_amount(self, ledger, amount):
        with pytest.raises(ValueError):
            ledger.mint("alice", amount)

    def test_mint_empty_holder(self, ledger):
        with pytest.raises(ValueError):
            ledger.mint("", 1)

    def test_max_supply(self, identity):
        ledger = make_ledger(identity, max_supply=1000)
        ledger.mint("alice", 1000)
        with pytest.raises(ExceedsMaxSupply) as exc_info:
            ledger.mint("bob", 1)
        assert exc_info.value.requested == 1001
        assert ledger.total_supply() == 1000

    def test_mint_compliance_rejected(self, ledger, engine):
        engine.add_module(RejectAll())
        with pytest.raises(ComplianceRejected) as exc_info:
            ledger.mint("alice", 1)
        assert exc_info.value.module == "RejectAll"
        assert exc_info.value.reason == "NO"

    def test_frozen_checked_before_identity(self, ledger):
        ledger.set_address_frozen("mallory", True)
        with pytest.raises(AddressFrozen):
            ledger.mint("mallory", 1)

    def test_notify_after_commit(self, ledger, engine):
        module = CountingModule()
        engine.add_module(module)
        ledger.mint("alice", 7)
        assert module.notified == [(Action.MINT, 7)]


class TestTransfer:

    def test_transfer(self, funded_ledger):
        funded_ledger.transfer("alice", "bob", 300)
        assert funded_ledger.balance_of("alice") == 700
        assert funded_ledger.balance_of("bob") == 800
        assert funded_ledger.total_supply() == 1500

    def test_transfer_to_new_holder(self, funded_ledger):
        funded_ledger.transfer("alice", "carol", 1)
        assert funded_ledger.holders() == ["alice", "bob", "carol"]

    def test_self_transfer_keeps_balance(self, funded_ledger):
        entry = funded_ledger.transfer("alice", "alice", 400)
        assert funded_ledger.balance_of("alice") == 1000
        assert entry.sender == entry.recipient == "alice"

    def test_insufficient_balance(self, funded_ledger):
        with pytest.raises(InsufficientUnfrozenBalance) as exc_info:
            funded_ledger.transfer("alice", "bob", 1001)
        assert exc_info.value.available == 1000
        assert balances(funded_ledger) == {"alice": 1000, "bob": 500}

    def test_unverified_recipient(self, funded_ledger):
        with pytest.raises(IdentityNotVerified) as exc_info:
            funded_ledger.transfer("alice", "mallory", 1)
        assert exc_info.value.holder == "mallory"

    def test_balance_checked_before_identity(self, funded_ledger):
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.transfer("alice", "mallory", 5000)

    def test_frozen_recipient_checked_before_balance(self, funded_ledger):
        funded_ledger.set_address_frozen("bob", True)
        with pytest.raises(AddressFrozen) as exc_info:
            funded_ledger.transfer("alice", "bob", 5000)
        assert exc_info.value.holder == "bob"

    def test_compliance_rejection_leaves_state(self, funded_ledger, engine):
        engine.add_module(RejectAll())
        with pytest.raises(ComplianceRejected):
            funded_ledger.transfer("alice", "bob", 10)
        assert balances(funded_ledger) == {"alice": 1000, "bob": 500}

    def test_removed_holder_cannot_transfer(self, funded_ledger, identity):
        identity.remove("bob")
        with pytest.raises(IdentityNotVerified):
            funded_ledger.transfer("bob", "alice", 1)


class TestBurn:

    def test_burn(self, funded_ledger):
        funded_ledger.burn("alice", 400)
        assert funded_ledger.balance_of("alice") == 600
        assert funded_ledger.total_supply() == 1100

    def test_burn_too_much(self, funded_ledger):
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.burn("bob", 501)

    def test_identity_checked_before_balance(self, funded_ledger, identity):
        identity.set_verified("bob", False)
        with pytest.raises(IdentityNotVerified):
            funded_ledger.burn("bob", 10_000)

    def test_burn_frozen_units(self, funded_ledger):
        funded_ledger.freeze("bob", 400)
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.burn("bob", 101)
        funded_ledger.burn("bob", 100)
        assert funded_ledger.balance_of("bob") == 400


class TestFreeze:

    def test_partial_freeze(self, funded_ledger):
        funded_ledger.freeze("alice", 600)
        assert funded_ledger.frozen_of("alice") == 600
        assert funded_ledger.available_balance_of("alice") == 400
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.transfer("alice", "bob", 401)
        funded_ledger.transfer("alice", "bob", 400)
        assert funded_ledger.balance_of("alice") == 600

    def test_freeze_more_than_balance(self, funded_ledger):
        funded_ledger.freeze("alice", 900)
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.freeze("alice", 101)
        assert funded_ledger.frozen_of("alice") == 900

    def test_unfreeze(self, funded_ledger):
        funded_ledger.freeze("alice", 300)
        funded_ledger.unfreeze("alice", 100)
        assert funded_ledger.frozen_of("alice") == 200
        with pytest.raises(InsufficientFrozenBalance) as exc_info:
            funded_ledger.unfreeze("alice", 201)
        assert exc_info.value.frozen == 200

    def test_freeze_logged(self, funded_ledger):
        funded_ledger.freeze("alice", 1)
        assert funded_ledger.transaction_log[-1].action == Action.FREEZE

    def test_address_freeze_blocks_both_directions(self, funded_ledger):
        funded_ledger.set_address_frozen("alice", True)
        assert funded_ledger.is_frozen("alice")
        with pytest.raises(AddressFrozen):
            funded_ledger.transfer("alice", "bob", 1)
        with pytest.raises(AddressFrozen):
            funded_ledger.transfer("bob", "alice", 1)
        funded_ledger.set_address_frozen("alice", False)
        funded_ledger.transfer("alice", "bob", 1)


class TestRecover:

    def test_recover_moves_everything(self, funded_ledger):
        funded_ledger.freeze("alice", 250)
        funded_ledger.recover("alice", "carol")
        assert funded_ledger.balance_of("alice") == 0
        assert funded_ledger.balance_of("carol") == 1000
        assert funded_ledger.frozen_of("carol") == 250
        assert funded_ledger.frozen_of("alice") == 0
        assert funded_ledger.is_recovered("alice")
        assert funded_ledger.total_supply() == 1500

    def test_recovered_holder_cannot_transact(self, funded_ledger):
        funded_ledger.recover("alice", "carol")
        with pytest.raises(AddressFrozen) as exc_info:
            funded_ledger.transfer("bob", "alice", 1)
        assert exc_info.value.reason == "recovered"
        with pytest.raises(AddressFrozen):
            funded_ledger.mint("alice", 1)

    def test_recovered_from_follows_chain(self, funded_ledger, identity):
        identity.register("dave", US)
        funded_ledger.recover("alice", "carol")
        funded_ledger.recover("carol", "dave")
        assert funded_ledger.recovered_from("carol") == ["alice"]
        assert funded_ledger.recovered_from("dave") == ["carol", "alice"]
        assert funded_ledger.recovered_from("bob") == []

    def test_recover_twice(self, funded_ledger):
        funded_ledger.recover("alice", "carol")
        with pytest.raises(AddressFrozen):
            funded_ledger.recover("alice", "bob")

    def test_recover_requires_verified_replacement(self, funded_ledger):
        with pytest.raises(IdentityNotVerified):
            funded_ledger.recover("alice", "mallory")
        assert funded_ledger.balance_of("alice") == 1000

    def test_recover_to_self(self, funded_ledger):
        with pytest.raises(ValueError):
            funded_ledger.recover("alice", "alice")

    def test_recover_moves_address_freeze(self, funded_ledger):
        funded_ledger.set_address_frozen("alice", True)
        funded_ledger.recover("alice", "carol")
        assert funded_ledger.is_frozen("carol")
        assert not funded_ledger.is_frozen("alice")

    def test_recover_bypasses_modules_but_notifies(self, funded_ledger, engine):
        module = CountingModule()
        module.evaluate = lambda view, intent: Decision.reject("Counting", "NO")
        engine.add_module(module)
        funded_ledger.recover("alice", "carol")
        assert module.notified == [(Action.TRANSFER, 1000)]


class TestPause:

    def test_pause_blocks_mutations(self, funded_ledger):
        funded_ledger.pause()
        assert funded_ledger.paused
        for call in (
            lambda: funded_ledger.mint("alice", 1),
            lambda: funded_ledger.transfer("alice", "bob", 1),
            lambda: funded_ledger.burn("alice", 1),
            lambda: funded_ledger.freeze("alice", 1),
            lambda: funded_ledger.unfreeze("alice", 0),
            lambda: funded_ledger.set_address_frozen("alice", True),
            lambda: funded_ledger.recover("alice", "carol"),
        ):
            with pytest.raises(Paused):
                call()
        assert balances(funded_ledger) == {"alice": 1000, "bob": 500}

    def test_pause_checked_first(self, funded_ledger):
        funded_ledger.pause()
        with pytest.raises(Paused):
            funded_ledger.transfer("alice", "mallory", 10**9)

    def test_double_pause(self, ledger):
        ledger.pause()
        with pytest.raises(Paused):
            ledger.pause()

    def test_unpause_when_not_paused(self, ledger):
        with pytest.raises(NotPaused):
            ledger.unpause()

    def test_unpause_resumes(self, funded_ledger):
        funded_ledger.pause()
        funded_ledger.unpause()
        funded_ledger.transfer("alice", "bob", 1)


class TestTimeAndAudit:

    def test_advance_time(self, ledger):
        ledger.advance_time(START + timedelta(days=1))
        assert ledger.current_time == START + timedelta(days=1)

    def test_time_cannot_go_backwards(self, ledger):
        with pytest.raises(ValueError):
            ledger.advance_time(START - timedelta(seconds=1))

    def test_transaction_log(self, funded_ledger):
        funded_ledger.advance_time(START + timedelta(hours=1))
        funded_ledger.transfer("alice", "bob", 5)
        log = funded_ledger.transaction_log
        assert [e.sequence_number for e in log] == [0, 1, 2]
        assert len({e.exec_id for e in log}) == 3
        assert log[-1].timestamp == START + timedelta(hours=1)
        assert log[-1].exec_id.startswith("exec:test:000000000002:")

    def test_rejections_recorded(self, funded_ledger):
        with pytest.raises(InsufficientUnfrozenBalance):
            funded_ledger.transfer("bob", "alice", 501)
        rejection = funded_ledger.rejections[-1]
        assert rejection.kind == "InsufficientUnfrozenBalance"
        assert rejection.action == Action.TRANSFER
        assert (rejection.sender, rejection.recipient, rejection.amount) == ("bob", "alice", 501)
        assert len(funded_ledger.transaction_log) == 2

    def test_compliance_rejection_records_module(self, funded_ledger, engine):
        engine.add_module(RejectAll())
        with pytest.raises(ComplianceRejected):
            funded_ledger.transfer("alice", "bob", 1)
        assert funded_ledger.rejections[-1].module == "RejectAll"

    def test_verify_invariants(self, funded_ledger):
        funded_ledger.freeze("bob", 100)
        result = funded_ledger.verify_invariants()
        assert result == {'valid': True, 'total_supply': 1500, 'violations': []}

    def test_verify_invariants_detects_corruption(self, funded_ledger):
        funded_ledger._balances["alice"] += 1
        result = funded_ledger.verify_invariants()
        assert not result['valid']
        assert result['violations'][0]['check'] == 'supply_conservation'

    def test_ledger_is_a_view(self, funded_ledger):
        from rwa_ledger import LedgerView
        assert isinstance(funded_ledger, LedgerView)
        assert funded_ledger.jurisdiction_of("alice") == US
