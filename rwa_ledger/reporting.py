"""
reporting.py - Regulatory reports over ledger state

Pure functions: every report reads a Ledger and returns plain rows (lists of
dicts) without mutating anything.

Reports:
- investor_report: identity and holdings per holder, paginated
- jurisdictional_report: holder count and holdings per jurisdiction
- ownership_distribution: concentration metrics (top-N share, HHI, Gini)
- violation_report: refused attempts inside a time window
- holder_statistics: activity totals for one holder
- export_report: canonical JSON text for any of the above

Percentages are Decimals rounded half-even to two places. Concentration
metrics are computed with numpy over holding fractions and are floats.
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Any, Dict, List, Optional
import json

import numpy as np

from .core import Action
from .ledger import Ledger


PERCENT_PLACES = Decimal("0.01")


def _percentage(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal("0.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(PERCENT_PLACES, rounding=ROUND_HALF_EVEN)


def _all_holders(ledger: Ledger) -> List[str]:
    """Registered holders in registration order, then unregistered balance holders."""
    registered = ledger.identity.list_holders()
    seen = set(registered)
    return registered + [h for h in ledger.holders() if h not in seen]


def investor_report(ledger: Ledger, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
    """
    One row per holder: holder, jurisdiction, verified, balance, frozen.

    Rows follow registration order; limit/offset paginate.
    """
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")
    rows = []
    for holder in _all_holders(ledger)[offset:offset + limit]:
        rows.append({
            'holder': holder,
            'jurisdiction': ledger.jurisdiction_of(holder),
            'verified': ledger.is_verified(holder),
            'balance': ledger.balance_of(holder),
            'frozen': ledger.frozen_of(holder),
        })
    return rows


def jurisdictional_report(ledger: Ledger) -> List[Dict[str, Any]]:
    """Holder count, holdings and share of supply per jurisdiction, ordered by code."""
    counts: Dict[int, int] = defaultdict(int)
    holdings: Dict[int, int] = defaultdict(int)
    for holder in _all_holders(ledger):
        jurisdiction = ledger.jurisdiction_of(holder)
        balance = ledger.balance_of(holder)
        if jurisdiction is None or balance == 0:
            continue
        counts[jurisdiction] += 1
        holdings[jurisdiction] += balance

    supply = ledger.total_supply()
    return [
        {
            'jurisdiction': code,
            'holder_count': counts[code],
            'total_holdings': holdings[code],
            'percentage': _percentage(holdings[code], supply),
        }
        for code in sorted(counts)
    ]


def ownership_distribution(ledger: Ledger, top_n: int = 10) -> Dict[str, Any]:
    """
    Concentration of ownership among current holders.

    Returns:
        Dict with keys:
        - 'total_supply': int
        - 'holder_count': int - Holders with a non-zero balance
        - 'top_n': int
        - 'top_n_percentage': Decimal - Share of supply held by the top_n largest
        - 'hhi': float - Herfindahl-Hirschman index, 0..10000
        - 'gini': float - Gini coefficient, 0 (equal) .. 1 (concentrated)
    """
    if top_n < 1:
        raise ValueError(f"top_n must be positive, got {top_n}")
    supply = ledger.total_supply()
    balances = sorted((b for b in (ledger.balance_of(h) for h in ledger.holders()) if b > 0), reverse=True)

    if supply == 0 or not balances:
        return {
            'total_supply': supply,
            'holder_count': 0,
            'top_n': top_n,
            'top_n_percentage': Decimal("0.00"),
            'hhi': 0.0,
            'gini': 0.0,
        }

    fractions = np.asarray(balances, dtype=float) / float(supply)
    hhi = float(np.sum((fractions * 100.0) ** 2))

    ascending = np.sort(fractions)
    n = len(ascending)
    cumulative = np.cumsum(ascending)
    gini = float((n + 1 - 2.0 * np.sum(cumulative) / cumulative[-1]) / n)

    return {
        'total_supply': supply,
        'holder_count': n,
        'top_n': top_n,
        'top_n_percentage': _percentage(sum(balances[:top_n]), supply),
        'hhi': hhi,
        'gini': max(gini, 0.0),
    }


def violation_report(
    ledger: Ledger,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Refused attempts with start <= timestamp <= end (either bound optional)."""
    rows = []
    for rejection in ledger.rejections:
        if start is not None and rejection.timestamp < start:
            continue
        if end is not None and rejection.timestamp > end:
            continue
        rows.append({
            'timestamp': rejection.timestamp,
            'action': rejection.action.value,
            'sender': rejection.sender,
            'recipient': rejection.recipient,
            'amount': rejection.amount,
            'kind': rejection.kind,
            'module': rejection.module,
            'asset_id': rejection.asset_id,
            'message': rejection.message,
        })
    return rows


def holder_statistics(ledger: Ledger, holder: str) -> Dict[str, Any]:
    """Counts and volumes of committed activity involving holder."""
    stats = {
        'holder': holder,
        'balance': ledger.balance_of(holder),
        'sent_count': 0,
        'sent_volume': 0,
        'received_count': 0,
        'received_volume': 0,
        'minted': 0,
        'burned': 0,
        'rejections': sum(1 for r in ledger.rejections if holder in (r.sender, r.recipient)),
    }
    for entry in ledger.transaction_log:
        if entry.action is Action.MINT and entry.recipient == holder:
            stats['minted'] += entry.amount
        elif entry.action in (Action.BURN, Action.ASSET_BURN) and entry.sender == holder:
            stats['burned'] += entry.amount
        elif entry.action in (Action.TRANSFER, Action.ASSET_TRANSFER, Action.RECOVER):
            if entry.sender == entry.recipient:
                continue
            if entry.sender == holder:
                stats['sent_count'] += 1
                stats['sent_volume'] += entry.amount
            elif entry.recipient == holder:
                stats['received_count'] += 1
                stats['received_volume'] += entry.amount
    return stats


def export_report(report: Any) -> str:
    """Render a report as canonical JSON (sorted keys; Decimals and datetimes as strings)."""
    def _default(value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        raise TypeError(f"Cannot export {type(value).__name__}")
    return json.dumps(report, sort_keys=True, indent=2, default=_default)
