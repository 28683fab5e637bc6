"""
compliance.py - Ordered evaluation of rule modules

The ComplianceEngine holds an ordered list of rule modules and answers
whether a proposed mint, burn or transfer may occur. Modules are asked in
registration order and the first rejection wins. After the ledger commits a
mutation it calls the matching notify_* method so stateful modules can update
their counters.

The engine is bound once to the ledger it guards; evaluation reads ledger
state through the LedgerView protocol only.
"""

from __future__ import annotations
from typing import List, Optional, Union

from .core import (
    Action, Decision, LedgerView, RuleModule, TransferIntent,
    AlreadyBound, AlreadyRegistered, ModuleNotFound, NotBound,
)
from .capabilities import Authorizer, Capability, requires


class ComplianceEngine:
    """
    Ordered collection of rule modules bound to a single ledger.

    An engine with no modules approves everything.
    """

    def __init__(self, authorizer: Optional[Authorizer] = None):
        self.authorizer = authorizer
        self._view: Optional[LedgerView] = None
        self._modules: List[RuleModule] = []

    # ------------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------------

    def bind(self, view: LedgerView) -> None:
        """Bind the engine to its ledger. Allowed exactly once."""
        if self._view is not None:
            raise AlreadyBound()
        self._view = view

    @property
    def is_bound(self) -> bool:
        return self._view is not None

    @property
    def modules(self) -> List[RuleModule]:
        return list(self._modules)

    @requires(Capability.COMPLIANCE_ADMIN)
    def add_module(self, module: RuleModule) -> None:
        if any(m is module for m in self._modules):
            raise AlreadyRegistered(module.name)
        self._modules.append(module)

    @requires(Capability.COMPLIANCE_ADMIN)
    def remove_module(self, module: Union[RuleModule, str]) -> RuleModule:
        """Remove a module, given either the instance or its name."""
        for i, m in enumerate(self._modules):
            if m is module or (isinstance(module, str) and m.name == module):
                return self._modules.pop(i)
        raise ModuleNotFound(module if isinstance(module, str) else module.name)

    # ------------------------------------------------------------------------
    # Evaluation (no side effects)
    # ------------------------------------------------------------------------

    def can_transfer(self, sender: str, recipient: str, amount: int) -> Decision:
        return self.evaluate(self._intent(Action.TRANSFER, sender, recipient, amount))

    def can_mint(self, recipient: str, amount: int) -> Decision:
        return self.evaluate(self._intent(Action.MINT, None, recipient, amount))

    def can_burn(self, holder: str, amount: int) -> Decision:
        return self.evaluate(self._intent(Action.BURN, holder, None, amount))

    def evaluate(self, intent: TransferIntent) -> Decision:
        """Ask each module in order; return the first rejection or an approval."""
        view = self._require_view()
        for module in self._modules:
            decision = module.evaluate(view, intent)
            if not decision.allowed:
                return decision
        return Decision.allow()

    # ------------------------------------------------------------------------
    # Notification (after a committed mutation)
    # ------------------------------------------------------------------------

    def notify_transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._notify(self._intent(Action.TRANSFER, sender, recipient, amount))

    def notify_mint(self, recipient: str, amount: int) -> None:
        self._notify(self._intent(Action.MINT, None, recipient, amount))

    def notify_burn(self, holder: str, amount: int) -> None:
        self._notify(self._intent(Action.BURN, holder, None, amount))

    def _notify(self, intent: TransferIntent) -> None:
        view = self._require_view()
        for module in self._modules:
            module.notify(view, intent)

    def _intent(self, action: Action, sender: Optional[str], recipient: Optional[str],
                amount: int) -> TransferIntent:
        view = self._require_view()
        return TransferIntent(action, sender, recipient, amount, view.current_time)

    def _require_view(self) -> LedgerView:
        if self._view is None:
            raise NotBound()
        return self._view

    def __repr__(self) -> str:
        names = ", ".join(m.name for m in self._modules)
        return f"ComplianceEngine([{names}], bound={self.is_bound})"
