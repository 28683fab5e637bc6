#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Tokenized Property Fund Step by Step

This is a pedagogical demonstration of the compliance-gated ledger. Each
step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation   - Identities, the empty ledger, first issuance
  4-6:   Controls     - Rejections, partial freezes, rule modules
  7-8:   Distribution - Snapshots and dividend claims
  9-10:  Assets       - Tagging units to properties, lost-wallet recovery
  11:    Reporting    - Regulator-facing reports and the invariant check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from rwa_ledger import (
    Ledger, IdentityDirectory, ComplianceEngine,
    CountryRestriction, MaxBalance, TransferLimit,
    DividendDistributor,
    LedgerError,
    investor_report, jurisdictional_report, ownership_distribution,
    violation_report, export_report,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # ISO 3166 numeric jurisdictions
    us: int = 840
    uk: int = 826
    de: int = 276
    sanctioned: int = 408

    # Issuance
    alice_units: int = 600_000
    bob_units: int = 400_000

    # Rules
    max_holding: int = 750_000
    daily_limit: int = 100_000
    monthly_limit: int = 250_000

    # Distribution (smallest currency units)
    rent_income: int = 1_000_003


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def attempt(label: str, fn, *args):
    """Run an operation that may be refused and show the outcome."""
    print(f">>> {label}")
    try:
        fn(*args)
    except LedgerError as exc:
        print(f"    refused with {exc.kind}: {exc}")


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_identities() -> IdentityDirectory:
    step_header(1, "The Identity Directory",
        "Only verified holders with a jurisdiction may hold units.")

    print("""
    Every holder is registered with a jurisdiction code (ISO 3166 numeric)
    and a verification flag. The ledger asks the directory before every
    mint, transfer and burn.
    """)

    identity = IdentityDirectory()
    identity.batch_register([
        ("alice", CONFIG.us),
        ("bob", CONFIG.uk),
        ("dana", CONFIG.de),
        ("kim", CONFIG.sanctioned),
    ])
    identity.register("eve", CONFIG.us, verified=False)

    section_header("Directory")
    for holder in identity.list_holders():
        record = identity.get_record(holder)
        print(f"  {holder:<6} jurisdiction={record.jurisdiction}  verified={record.verified}")
    return identity


def step_02_empty_ledger(identity: IdentityDirectory) -> Ledger:
    step_header(2, "The Empty Ledger",
        "A ledger starts with zero supply and a bound compliance engine.")

    engine = ComplianceEngine()
    ledger = Ledger("property-fund", identity, engine,
                    initial_time=CONFIG.start_time, verbose=True)

    print(f"Ledger:        {ledger!r}")
    print(f"Engine:        {engine!r}")
    print(f"Current time:  {ledger.current_time}")
    print(f"Total supply:  {ledger.total_supply()}")
    return ledger


def step_03_issuance(ledger: Ledger) -> Ledger:
    step_header(3, "First Issuance",
        "Minting creates units; supply always equals the sum of balances.")

    ledger.mint("alice", CONFIG.alice_units)
    ledger.mint("bob", CONFIG.bob_units)

    section_header("Balances")
    for holder in ledger.holders():
        print(f"  {holder:<6} {ledger.balance_of(holder):>10,}")
    print(f"  supply {ledger.total_supply():>10,}")
    return ledger


# ============================================================================
# PHASE 2: CONTROLS
# ============================================================================

def step_04_rejections(ledger: Ledger) -> Ledger:
    step_header(4, "Rejected Operations",
        "A refused operation changes nothing and is recorded for auditors.")

    attempt('ledger.mint("eve", 1)', ledger.mint, "eve", 1)
    attempt('ledger.transfer("bob", "alice", 10**9)', ledger.transfer, "bob", "alice", 10**9)

    section_header("Rejection log")
    for rejection in ledger.rejections:
        print(f"  {rejection.action.value:<8} {rejection.kind}")
    return ledger


def step_05_freezes(ledger: Ledger) -> Ledger:
    step_header(5, "Partial Freezes",
        "Frozen units stay on the balance but cannot be moved.")

    ledger.freeze("alice", 500_000)
    print(f"alice balance={ledger.balance_of('alice'):,} "
          f"frozen={ledger.frozen_of('alice'):,} "
          f"available={ledger.available_balance_of('alice'):,}")
    attempt('ledger.transfer("alice", "bob", 200_000)', ledger.transfer, "alice", "bob", 200_000)
    ledger.unfreeze("alice", 500_000)
    return ledger


def step_06_rule_modules(ledger: Ledger) -> tuple:
    step_header(6, "Rule Modules",
        "Modules are asked in order; the first rejection wins.")

    limits = TransferLimit(daily=CONFIG.daily_limit, monthly=CONFIG.monthly_limit)
    ledger.compliance.add_module(CountryRestriction(blocked=[CONFIG.sanctioned]))
    ledger.compliance.add_module(MaxBalance(default_max=CONFIG.max_holding))
    ledger.compliance.add_module(limits)
    print(f"Engine: {ledger.compliance!r}")

    attempt('ledger.transfer("alice", "kim", 1_000)', ledger.transfer, "alice", "kim", 1_000)
    attempt('ledger.mint("alice", 200_000)', ledger.mint, "alice", 200_000)

    ledger.transfer("alice", "dana", 100_000)
    attempt('ledger.transfer("alice", "dana", 1)', ledger.transfer, "alice", "dana", 1)

    section_header("Next day")
    ledger.advance_time(ledger.current_time + timedelta(days=1))
    ledger.transfer("alice", "dana", 50_000)
    print(f"alice remaining (daily, monthly): {limits.remaining('alice', ledger.current_time)}")
    return ledger, limits


# ============================================================================
# PHASE 3: DISTRIBUTION
# ============================================================================

def step_07_deposit(ledger: Ledger) -> tuple:
    step_header(7, "Depositing Rent",
        "A deposit pins entitlements to a snapshot of balances.")

    distributor = DividendDistributor(ledger)
    div_id = distributor.deposit_dividend(CONFIG.rent_income, reference="Q1-RENT")
    event = distributor.get_dividend_info(div_id)
    print(f"dividend {div_id} on snapshot {event.snapshot_id}")
    for holder in ledger.holders():
        print(f"  {holder:<6} share={distributor.share_of(holder, div_id):>10,}")
    return distributor, div_id


def step_08_claims(ledger: Ledger, distributor: DividendDistributor, div_id: int):
    step_header(8, "Claiming",
        "Trading after the record date does not move entitlements.")

    ledger.transfer("bob", "dana", 50_000)
    for holder in ("alice", "bob", "dana"):
        distributor.claim(holder, div_id)
    attempt(f'distributor.claim("alice", {div_id})', distributor.claim, "alice", div_id)

    print(f"\nresidue left by integer division: {distributor.residue(div_id)}")
    print(f"bob withdraws {distributor.withdraw('bob'):,}")


# ============================================================================
# PHASE 4: ASSETS
# ============================================================================

def step_09_asset_tagging(ledger: Ledger) -> Ledger:
    step_header(9, "Asset Tagging",
        "Tags tie part of a balance to a specific property.")

    ledger.register_asset("WAREHOUSE-7", "Rotterdam warehouse")
    ledger.transfer_with_asset("bob", "bob", 200_000, "WAREHOUSE-7")
    ledger.transfer_with_asset("bob", "dana", 50_000, "WAREHOUSE-7")
    for holder in ("bob", "dana"):
        print(f"  {holder:<6} tagged={ledger.get_asset_balance(holder, 'WAREHOUSE-7'):,}")
    print(f"  asset supply={ledger.get_asset_total_supply('WAREHOUSE-7'):,}")

    ledger.burn_asset_tokens("dana", "WAREHOUSE-7", 10_000)
    print(f"  after partial sale: supply={ledger.total_supply():,}")
    return ledger


def step_10_recovery(ledger: Ledger) -> Ledger:
    step_header(10, "Lost-Wallet Recovery",
        "An agent moves everything to a new wallet and retires the old one.")

    ledger.identity.register("bob-new", CONFIG.uk)
    ledger.recover("bob", "bob-new")
    print(f"bob-new balance={ledger.balance_of('bob-new'):,} "
          f"tagged={ledger.get_asset_balance('bob-new', 'WAREHOUSE-7'):,}")
    attempt('ledger.transfer("bob", "alice", 1)', ledger.transfer, "bob", "alice", 1)
    return ledger


# ============================================================================
# PHASE 5: REPORTING
# ============================================================================

def step_11_reports(ledger: Ledger):
    step_header(11, "Reports",
        "Everything a regulator asks for, derived from the ledger state.")

    section_header("Investors")
    for row in investor_report(ledger):
        print(f"  {row['holder']:<8} {row['jurisdiction']:>4} {row['balance']:>10,}")

    section_header("Jurisdictions")
    print(export_report(jurisdictional_report(ledger)))

    section_header("Concentration")
    dist = ownership_distribution(ledger, top_n=2)
    print(f"  HHI={dist['hhi']:.1f}  Gini={dist['gini']:.3f}  top-2={dist['top_n_percentage']}%")

    section_header("Violations")
    print(f"  {len(violation_report(ledger))} refused attempts on record")

    section_header("Invariants")
    result = ledger.verify_invariants()
    print(f"  valid={result['valid']}  violations={result['violations']}")


def main():
    print("=" * 70)
    print("       COMPLIANCE-GATED LEDGER TUTORIAL")
    print("=" * 70)

    identity = step_01_identities()
    wait_for_enter()

    ledger = step_02_empty_ledger(identity)
    wait_for_enter()

    ledger = step_03_issuance(ledger)
    wait_for_enter()

    ledger = step_04_rejections(ledger)
    wait_for_enter()

    ledger = step_05_freezes(ledger)
    wait_for_enter()

    ledger, _ = step_06_rule_modules(ledger)
    wait_for_enter()

    distributor, div_id = step_07_deposit(ledger)
    wait_for_enter()

    step_08_claims(ledger, distributor, div_id)
    wait_for_enter()

    ledger = step_09_asset_tagging(ledger)
    wait_for_enter()

    ledger = step_10_recovery(ledger)
    wait_for_enter()

    step_11_reports(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See rwa_ledger/modules/*.py for the rule modules
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
