"""
strategies.py - Hypothesis strategies shared by the conformance suite

An operation is a tuple (kind, holder, other, amount). apply_operation()
runs it against a ledger and reports whether it was applied; refusals are
expected and swallowed only here, in test code.
"""

from hypothesis import strategies as st

from rwa_ledger import IdentityDirectory, LedgerError

from tests.helpers import US, UK, CN, make_ledger


HOLDERS = ["alice", "bob", "carol", "mallory"]
ASSETS = ["PROP-1", "PROP-2"]

OPERATION_KINDS = [
    "mint", "transfer", "burn", "freeze", "unfreeze",
    "tag", "asset_transfer", "asset_burn",
]


def fresh_ledger(**kwargs):
    """Ledger with three verified holders, one unverified, and two assets."""
    identity = IdentityDirectory()
    identity.register("alice", US)
    identity.register("bob", UK)
    identity.register("carol", CN)
    identity.register("mallory", US, verified=False)
    ledger = make_ledger(identity, **kwargs)
    for asset_id in ASSETS:
        ledger.register_asset(asset_id)
    return ledger


amounts = st.integers(min_value=0, max_value=2_000)

operations = st.tuples(
    st.sampled_from(OPERATION_KINDS),
    st.sampled_from(HOLDERS),
    st.sampled_from(HOLDERS),
    amounts,
    st.sampled_from(ASSETS),
)

operation_lists = st.lists(operations, max_size=40)


def apply_operation(ledger, op) -> bool:
    """Run one operation; True if applied, False if the ledger refused it."""
    kind, holder, other, amount, asset_id = op
    try:
        if kind == "mint":
            ledger.mint(holder, amount)
        elif kind == "transfer":
            ledger.transfer(holder, other, amount)
        elif kind == "burn":
            ledger.burn(holder, amount)
        elif kind == "freeze":
            ledger.freeze(holder, amount)
        elif kind == "unfreeze":
            ledger.unfreeze(holder, amount)
        elif kind == "tag":
            ledger.transfer_with_asset(holder, holder, amount, asset_id)
        elif kind == "asset_transfer":
            ledger.transfer_with_asset(holder, other, amount, asset_id)
        elif kind == "asset_burn":
            ledger.burn_asset_tokens(holder, asset_id, amount)
    except LedgerError:
        return False
    return True


def ledger_state(ledger) -> dict:
    """Everything an operation could change, for before/after comparison."""
    return {
        'balances': {h: ledger.balance_of(h) for h in HOLDERS},
        'frozen': {h: ledger.frozen_of(h) for h in HOLDERS},
        'supply': ledger.total_supply(),
        'tags': {(h, a): ledger.get_asset_balance(h, a) for h in HOLDERS for a in ASSETS},
        'asset_supply': {a: ledger.get_asset_total_supply(a) for a in ASSETS},
    }
