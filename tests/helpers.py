"""
helpers.py - Shared constants and builders for ledger tests
"""

from datetime import datetime

from rwa_ledger import Ledger, IdentityDirectory, ComplianceEngine


START = datetime(2025, 1, 1)

# ISO 3166 numeric codes
US = 840
UK = 826
CN = 156
KP = 408


def make_ledger(identity=None, engine=None, **kwargs) -> Ledger:
    """Create a quiet ledger starting at START."""
    kwargs.setdefault("initial_time", START)
    kwargs.setdefault("verbose", False)
    return Ledger(
        "test",
        identity if identity is not None else IdentityDirectory(),
        engine if engine is not None else ComplianceEngine(),
        **kwargs,
    )


def balances(ledger: Ledger) -> dict:
    """Every non-zero balance, by holder."""
    return {h: ledger.balance_of(h) for h in ledger.holders() if ledger.balance_of(h)}
