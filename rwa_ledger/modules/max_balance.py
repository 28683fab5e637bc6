"""
max_balance.py - Cap the balance any single holder may reach

A default cap applies to every holder; per-holder caps override it. A
transfer or mint is rejected when the recipient's balance after the
operation would exceed its cap. Self-transfers leave the balance unchanged
and are never rejected by this module.
"""

from __future__ import annotations
from typing import Dict, Optional

from ..core import Action, Decision, LedgerView, TransferIntent, validate_amount, validate_holder
from ..capabilities import Authorizer, Capability, requires


MAX_BALANCE_EXCEEDED = "MAX_BALANCE_EXCEEDED"


class MaxBalance:
    """Rule module enforcing a maximum holding per holder."""

    def __init__(
        self,
        default_max: int,
        name: str = "MaxBalance",
        authorizer: Optional[Authorizer] = None,
    ):
        self.name = name
        self.authorizer = authorizer
        self._default_max = validate_amount(default_max, "default_max")
        self._holder_max: Dict[str, int] = {}

    @property
    def default_max(self) -> int:
        return self._default_max

    def max_balance_of(self, holder: str) -> int:
        return self._holder_max.get(holder, self._default_max)

    @requires(Capability.COMPLIANCE_ADMIN)
    def set_default_max_balance(self, amount: int) -> None:
        self._default_max = validate_amount(amount, "default_max")

    @requires(Capability.COMPLIANCE_ADMIN)
    def set_holder_max_balance(self, holder: str, amount: int) -> None:
        self._holder_max[validate_holder(holder)] = validate_amount(amount, "max_balance")

    @requires(Capability.COMPLIANCE_ADMIN)
    def clear_holder_max_balance(self, holder: str) -> None:
        self._holder_max.pop(holder, None)

    def evaluate(self, view: LedgerView, intent: TransferIntent) -> Decision:
        if intent.action is Action.BURN:
            return Decision.allow()
        if intent.action is Action.TRANSFER and intent.sender == intent.recipient:
            return Decision.allow()
        post_balance = view.balance_of(intent.recipient) + intent.amount
        if post_balance > self.max_balance_of(intent.recipient):
            return Decision.reject(self.name, MAX_BALANCE_EXCEEDED)
        return Decision.allow()

    def notify(self, view: LedgerView, intent: TransferIntent) -> None:
        pass

    def __repr__(self) -> str:
        return f"MaxBalance(default={self._default_max}, overrides={len(self._holder_max)})"
