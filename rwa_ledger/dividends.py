"""
dividends.py - Pro-rata value distributions tied to snapshots

=== DIVIDEND MODEL ===

A DividendEvent has:
    dividend_id: int       - 1-based, in deposit order
    snapshot_id: int       - Snapshot whose balances define entitlements
    amount: int            - Value deposited, in smallest units
    claimed: frozenset     - Holders whose entitlement was paid out
    claimed_amount: int    - Sum paid out so far

On deposit:
    - Reuse the latest snapshot if nothing changed since it was taken,
      otherwise take a fresh one
    - Record the event

On claim:
    - The claimant must be verified and must not be a recovered (lost) holder
    - The claimant's parties are itself plus every lost holder recovered into
      it; each unclaimed party contributes
      amount * balance_at(party, snapshot) // supply_at(snapshot)
    - Mark the parties as claimed, THEN hand the value to the payout callable.
      A payout handler that re-enters claim() sees AlreadyClaimed.

Integer division leaves rounding dust undistributed. Once every holder at
the snapshot has been paid, the residue is smaller than the number of holders.

=== PURE FUNCTION ===

The entitlement arithmetic is ONE pure function:
    compute_dividend_share(amount, balance_at, supply_at) -> share

DividendDistributor is the orchestrator around it.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from .core import (
    MAX_CLAIMS_PER_CALL, MAX_EVENTS_SCANNED_PER_CALL,
    AddressFrozen, AlreadyClaimed, BelowMinimumAcceptable, IdentityNotVerified,
    InvalidDividendId, Paused,
    validate_amount, validate_holder,
)
from .capabilities import Authorizer, Capability, requires
from .ledger import Ledger


# payout(holder, amount): the external value transfer
Payout = Callable[[str, int], None]


@dataclass(frozen=True, slots=True)
class DividendEvent:
    """A deposited distribution and its claim state."""
    dividend_id: int
    snapshot_id: int
    amount: int
    deposited_at: datetime
    reference: Optional[str] = None
    claimed: FrozenSet[str] = frozenset()
    claimed_amount: int = 0

    @property
    def residue(self) -> int:
        return self.amount - self.claimed_amount


def compute_dividend_share(amount: int, balance_at: int, supply_at: int) -> int:
    """
    Pro-rata share of a distribution, rounded down.

    Args:
        amount: Total value distributed
        balance_at: Holder balance at the snapshot
        supply_at: Total supply at the snapshot

    Returns:
        amount * balance_at // supply_at (0 when supply_at is 0)
    """
    if supply_at == 0:
        return 0
    return amount * balance_at // supply_at


class DividendDistributor:
    """
    Deposits distributions against ledger snapshots and pays holder claims.

    Example:
        distributor = DividendDistributor(ledger)
        div_id = distributor.deposit_dividend(1_000_000, reference="PROPERTY-7")
        distributor.claim("alice", div_id)
        distributor.withdrawable_of("alice")
    """

    def __init__(
        self,
        ledger: Ledger,
        payout: Optional[Payout] = None,
        authorizer: Optional[Authorizer] = None,
    ):
        """
        Args:
            ledger: Ledger whose snapshots define entitlements
            payout: Callable receiving (holder, amount) for each claim
                    (default: credit the internal withdrawable map)
            authorizer: Optional authorizer(capability, operation) -> bool
        """
        self.ledger = ledger
        self.payout: Payout = payout if payout is not None else self._credit_withdrawable
        self.authorizer = authorizer
        self._events: List[DividendEvent] = []
        self._withdrawable: Dict[str, int] = {}
        # holder -> (next event index to scan, parties the index was computed for)
        self._cursors: Dict[str, Tuple[int, Tuple[str, ...]]] = {}

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    @property
    def dividend_count(self) -> int:
        return len(self._events)

    def get_dividend_info(self, dividend_id: int) -> DividendEvent:
        return self._event(dividend_id)

    def residue(self, dividend_id: int) -> int:
        """Deposited minus claimed for a dividend."""
        return self._event(dividend_id).residue

    def share_of(self, holder: str, dividend_id: int) -> int:
        """Full entitlement of a holder, claimed or not, including recovered holders."""
        event = self._event(dividend_id)
        return sum(self._party_share(event, p) for p in self._parties(holder))

    def pending_amount(self, holder: str, dividend_id: int) -> int:
        """Amount the holder could still claim (0 once claimed, 0 for a recovered holder)."""
        if self.ledger.is_recovered(holder):
            return 0
        return self._pending(self._event(dividend_id), self._parties(holder))

    def withdrawable_of(self, holder: str) -> int:
        return self._withdrawable.get(holder, 0)

    # ------------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------------

    @requires(Capability.CORPORATE_ACTIONS)
    def deposit_dividend(self, amount: int, reference: Optional[str] = None) -> int:
        """
        Record a distribution against the latest unchanged snapshot.

        Raises:
            Paused: If the ledger is paused
            ValueError: If amount is zero or the supply is zero
        """
        if self.ledger.paused:
            raise Paused()
        validate_amount(amount)
        if amount == 0:
            raise ValueError("No dividend amount")
        if self.ledger.total_supply() == 0:
            raise ValueError("Cannot distribute over a zero total supply")

        snapshots = self.ledger.snapshots
        if snapshots.has_changes_since_snapshot:
            snapshot_id = snapshots.snapshot()
        else:
            snapshot_id = snapshots.current_id

        event = DividendEvent(
            dividend_id=len(self._events) + 1,
            snapshot_id=snapshot_id,
            amount=amount,
            deposited_at=self.ledger.current_time,
            reference=reference,
        )
        self._events.append(event)
        if self.ledger.verbose:
            print(f"💰 DIVIDEND {event.dividend_id}: {amount} on snapshot {snapshot_id}"
                  + (f" [{reference}]" if reference else ""))
        return event.dividend_id

    @requires(Capability.HOLDER)
    def claim(self, holder: str, dividend_id: int, min_acceptable: int = 0) -> int:
        """
        Claim a holder's share of one dividend.

        Raises:
            Paused, InvalidDividendId, AddressFrozen, IdentityNotVerified,
            AlreadyClaimed, BelowMinimumAcceptable
        """
        validate_holder(holder)
        validate_amount(min_acceptable, "min_acceptable")
        if self.ledger.paused:
            raise Paused()
        self._event(dividend_id)
        self._check_claimant(holder)
        return self._claim(holder, dividend_id, min_acceptable)

    @requires(Capability.HOLDER)
    def claim_all_pending(self, holder: str) -> int:
        """
        Claim every unclaimed, non-zero share in dividend id order.

        At most MAX_CLAIMS_PER_CALL dividends are settled and at most
        MAX_EVENTS_SCANNED_PER_CALL events inspected per call; call again to
        continue. Returns the total amount paid.

        Raises:
            Paused, AddressFrozen, IdentityNotVerified
        """
        validate_holder(holder)
        if self.ledger.paused:
            raise Paused()
        self._check_claimant(holder)

        parties = tuple(self._parties(holder))
        index, seen = self._cursors.get(holder, (0, ()))
        if seen != parties:
            index = 0
        end = min(len(self._events), index + MAX_EVENTS_SCANNED_PER_CALL)

        total = 0
        claims = 0
        while index < end and claims < MAX_CLAIMS_PER_CALL:
            event = self._events[index]
            if self._pending(event, parties):
                total += self._claim(holder, event.dividend_id, 0)
                claims += 1
            index += 1
        self._cursors[holder] = (index, parties)
        return total

    @requires(Capability.HOLDER)
    def withdraw(self, holder: str) -> int:
        """Take out everything the default payout credited to holder."""
        validate_holder(holder)
        if self.ledger.paused:
            raise Paused()
        return self._withdrawable.pop(holder, 0)

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    def _check_claimant(self, holder: str) -> None:
        if self.ledger.is_recovered(holder):
            raise AddressFrozen(holder, "recovered")
        if not self.ledger.is_verified(holder):
            raise IdentityNotVerified(holder)

    def _parties(self, holder: str) -> List[str]:
        """The holder plus every lost holder whose entitlements it inherited."""
        return [holder] + self.ledger.recovered_from(holder)

    def _party_share(self, event: DividendEvent, party: str) -> int:
        return compute_dividend_share(
            event.amount,
            self.ledger.balance_of_at(party, event.snapshot_id),
            self.ledger.total_supply_at(event.snapshot_id),
        )

    def _pending(self, event: DividendEvent, parties) -> int:
        return sum(self._party_share(event, p) for p in parties if p not in event.claimed)

    def _claim(self, holder: str, dividend_id: int, min_acceptable: int) -> int:
        event = self._event(dividend_id)
        unclaimed = frozenset(p for p in self._parties(holder) if p not in event.claimed)
        if not unclaimed:
            raise AlreadyClaimed(holder, dividend_id)
        share = sum(self._party_share(event, p) for p in unclaimed)
        if share < min_acceptable:
            raise BelowMinimumAcceptable(share, min_acceptable)

        # Effects before interaction
        self._replace_event(dividend_id, lambda e: replace(
            e, claimed=e.claimed | unclaimed, claimed_amount=e.claimed_amount + share))
        try:
            self.payout(holder, share)
        except Exception:
            self._replace_event(dividend_id, lambda e: replace(
                e, claimed=e.claimed - unclaimed, claimed_amount=e.claimed_amount - share))
            raise

        if self.ledger.verbose:
            print(f"✓ CLAIMED: dividend {dividend_id} {share} → {holder}")
        return share

    def _credit_withdrawable(self, holder: str, amount: int) -> None:
        self._withdrawable[holder] = self._withdrawable.get(holder, 0) + amount

    def _replace_event(self, dividend_id: int, update: Callable[[DividendEvent], DividendEvent]) -> None:
        idx = dividend_id - 1
        self._events[idx] = update(self._events[idx])

    def _event(self, dividend_id: int) -> DividendEvent:
        if (isinstance(dividend_id, bool) or not isinstance(dividend_id, int)
                or not 1 <= dividend_id <= len(self._events)):
            raise InvalidDividendId(dividend_id)
        return self._events[dividend_id - 1]

    def __repr__(self) -> str:
        return f"DividendDistributor({len(self._events)} dividends, ledger={self.ledger.name!r})"
