"""
transfer_limit.py - Daily and monthly outgoing transfer allowances

Each sender has a daily and a monthly bucket measured on the ledger's logical
clock (DAY = 24h, MONTH = 30 days). A bucket's window opens with the first
transfer counted into it and lasts for the window length.

Rollover is lazy. There is no timer: evaluate() treats a bucket whose window
has fully elapsed as empty, and the next committed notify() physically
replaces it with a fresh window. evaluate() never changes state, so rejected
attempts do not consume allowance.

Only transfers are limited; mints and burns pass and are not counted.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from ..core import (
    DAY, MONTH,
    Action, Decision, LedgerView, TransferIntent,
    validate_amount, validate_holder,
)
from ..capabilities import Authorizer, Capability, requires


DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
MONTHLY_LIMIT_EXCEEDED = "MONTHLY_LIMIT_EXCEEDED"


@dataclass(frozen=True, slots=True)
class Limits:
    """Daily and monthly allowances, in smallest units."""
    daily: int
    monthly: int

    def __post_init__(self):
        validate_amount(self.daily, "daily limit")
        validate_amount(self.monthly, "monthly limit")


@dataclass(frozen=True, slots=True)
class Window:
    """Amount spent in a window that opened at `start`."""
    start: datetime
    spent: int


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def effective_spent(window: Optional[Window], now: datetime, length: timedelta) -> int:
    """Amount counted against the allowance at `now`; 0 once the window elapsed."""
    if window is None or now >= window.start + length:
        return 0
    return window.spent


def add_to_window(window: Optional[Window], now: datetime, length: timedelta, amount: int) -> Window:
    """Return the window after counting `amount` at `now`, opening a new one if elapsed."""
    if window is None or now >= window.start + length:
        return Window(now, amount)
    return Window(window.start, window.spent + amount)


# ============================================================================
# RULE MODULE
# ============================================================================

class TransferLimit:
    """
    Rule module limiting how much a sender may transfer per day and per month.

    Example:
        module = TransferLimit(daily=1_000, monthly=10_000)
        module.set_holder_limits("treasury", 1_000_000, 5_000_000)
    """

    def __init__(
        self,
        daily: int,
        monthly: int,
        name: str = "TransferLimit",
        authorizer: Optional[Authorizer] = None,
    ):
        self.name = name
        self.authorizer = authorizer
        self._default = Limits(daily, monthly)
        self._holder_limits: Dict[str, Limits] = {}
        self._daily: Dict[str, Window] = {}
        self._monthly: Dict[str, Window] = {}

    def limits_of(self, holder: str) -> Limits:
        return self._holder_limits.get(holder, self._default)

    @requires(Capability.COMPLIANCE_ADMIN)
    def set_default_limits(self, daily: int, monthly: int) -> None:
        self._default = Limits(daily, monthly)

    @requires(Capability.COMPLIANCE_ADMIN)
    def set_holder_limits(self, holder: str, daily: int, monthly: int) -> None:
        self._holder_limits[validate_holder(holder)] = Limits(daily, monthly)

    @requires(Capability.COMPLIANCE_ADMIN)
    def clear_holder_limits(self, holder: str) -> None:
        self._holder_limits.pop(holder, None)

    def spent(self, holder: str, now: datetime) -> Tuple[int, int]:
        """Return (daily, monthly) amounts counted for holder at time `now`."""
        return (
            effective_spent(self._daily.get(holder), now, DAY),
            effective_spent(self._monthly.get(holder), now, MONTH),
        )

    def remaining(self, holder: str, now: datetime) -> Tuple[int, int]:
        """Return the (daily, monthly) allowance still available at `now`."""
        limits = self.limits_of(holder)
        daily_spent, monthly_spent = self.spent(holder, now)
        return (
            max(limits.daily - daily_spent, 0),
            max(limits.monthly - monthly_spent, 0),
        )

    def evaluate(self, view: LedgerView, intent: TransferIntent) -> Decision:
        if intent.action is not Action.TRANSFER:
            return Decision.allow()
        limits = self.limits_of(intent.sender)
        daily_spent, monthly_spent = self.spent(intent.sender, intent.timestamp)
        if daily_spent + intent.amount > limits.daily:
            return Decision.reject(self.name, DAILY_LIMIT_EXCEEDED)
        if monthly_spent + intent.amount > limits.monthly:
            return Decision.reject(self.name, MONTHLY_LIMIT_EXCEEDED)
        return Decision.allow()

    def notify(self, view: LedgerView, intent: TransferIntent) -> None:
        if intent.action is not Action.TRANSFER:
            return
        sender, now = intent.sender, intent.timestamp
        self._daily[sender] = add_to_window(self._daily.get(sender), now, DAY, intent.amount)
        self._monthly[sender] = add_to_window(self._monthly.get(sender), now, MONTH, intent.amount)

    def __repr__(self) -> str:
        return (f"TransferLimit(daily={self._default.daily}, monthly={self._default.monthly}, "
                f"tracked={len(self._daily)})")
