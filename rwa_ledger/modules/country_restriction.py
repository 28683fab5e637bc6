"""
country_restriction.py - Block recipients from restricted jurisdictions

A transfer or mint is rejected when the recipient's jurisdiction is in the
blocked set. Burns have no recipient and always pass. The module keeps no
per-operation state, so notify() is a no-op.
"""

from __future__ import annotations
from typing import Iterable, Optional, Set

from ..core import Action, Decision, LedgerView, TransferIntent
from ..capabilities import Authorizer, Capability, requires
from ..identity import validate_jurisdiction


COUNTRY_RESTRICTED = "COUNTRY_RESTRICTED"


class CountryRestriction:
    """
    Rule module holding a set of blocked jurisdiction codes.

    Example:
        module = CountryRestriction(blocked=[408])
        engine.add_module(module)
        module.add_country_restriction(364)
    """

    def __init__(
        self,
        blocked: Iterable[int] = (),
        name: str = "CountryRestriction",
        authorizer: Optional[Authorizer] = None,
    ):
        self.name = name
        self.authorizer = authorizer
        self._blocked: Set[int] = {validate_jurisdiction(c) for c in blocked}

    @property
    def blocked(self) -> frozenset:
        return frozenset(self._blocked)

    def is_country_restricted(self, country: int) -> bool:
        return country in self._blocked

    @requires(Capability.COMPLIANCE_ADMIN)
    def add_country_restriction(self, country: int) -> None:
        self._blocked.add(validate_jurisdiction(country))

    @requires(Capability.COMPLIANCE_ADMIN)
    def remove_country_restriction(self, country: int) -> None:
        self._blocked.discard(country)

    @requires(Capability.COMPLIANCE_ADMIN)
    def batch_restrict_countries(self, countries: Iterable[int]) -> None:
        codes = [validate_jurisdiction(c) for c in countries]
        self._blocked.update(codes)

    @requires(Capability.COMPLIANCE_ADMIN)
    def batch_unrestrict_countries(self, countries: Iterable[int]) -> None:
        self._blocked.difference_update(countries)

    def evaluate(self, view: LedgerView, intent: TransferIntent) -> Decision:
        if intent.action is Action.BURN:
            return Decision.allow()
        jurisdiction = view.jurisdiction_of(intent.recipient)
        if jurisdiction is not None and jurisdiction in self._blocked:
            return Decision.reject(self.name, COUNTRY_RESTRICTED)
        return Decision.allow()

    def notify(self, view: LedgerView, intent: TransferIntent) -> None:
        pass

    def __repr__(self) -> str:
        return f"CountryRestriction(blocked={sorted(self._blocked)})"
