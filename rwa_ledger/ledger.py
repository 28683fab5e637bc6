"""
ledger.py - Compliance-Gated Value Ledger

The Ledger class is the central state manager. It is the only class that
mutates balances, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements the LedgerView protocol for read-only access by rule modules
    - Validates every balance change (pause flag, freezes, identity, compliance)
      before touching state; nothing is mutated when a check fails
    - Writes snapshot checkpoints before balances so historical reads stay exact
    - Notifies the ComplianceEngine only after a change is fully committed
    - Records every committed operation in the transaction log and every
      refused attempt in the rejection list
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from .core import (
    # Types
    Action, Decision, LedgerEntry, Rejection,
    # Constants
    DEFAULT_LEDGER_EPOCH,
    # Exceptions
    LedgerError, AddressFrozen, ComplianceRejected, ExceedsMaxSupply,
    IdentityNotVerified, InsufficientAssetCapacity, InsufficientFrozenBalance,
    InsufficientUnfrozenBalance, NotPaused, Paused,
    # Validation
    validate_amount, validate_holder,
)
from .capabilities import Authorizer, Capability, requires
from .identity import IdentityDirectory
from .compliance import ComplianceEngine
from .snapshots import SnapshotStore
from .assets import AssetRecord, AssetSubledger


class Ledger:
    """
    Compliance-gated ledger of fungible units with an audit trail.

    Implements the LedgerView protocol, allowing the ledger to be handed to
    rule modules and reporting functions that only read.

    Check order (all checks run before any mutation):
        mint:     Paused, AddressFrozen, IdentityNotVerified, ExceedsMaxSupply,
                  ComplianceRejected
        transfer: Paused, AddressFrozen, InsufficientUnfrozenBalance,
                  IdentityNotVerified, InsufficientAssetCapacity,
                  ComplianceRejected
        burn:     Paused, AddressFrozen, IdentityNotVerified,
                  InsufficientUnfrozenBalance, InsufficientAssetCapacity,
                  ComplianceRejected

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Ledger instance.

    Example:
        identity = IdentityDirectory()
        identity.register("alice", 840)
        identity.register("bob", 826)
        ledger = Ledger("fund", identity, ComplianceEngine(), verbose=False)
        ledger.mint("alice", 1_000)
        ledger.transfer("alice", "bob", 250)
    """

    def __init__(
        self,
        name: str,
        identity: Optional[IdentityDirectory] = None,
        compliance: Optional[ComplianceEngine] = None,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        max_supply: Optional[int] = None,
        authorizer: Optional[Authorizer] = None,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier, used in execution ids
            identity: Identity directory consulted for verification
                      (default: an empty directory)
            compliance: Compliance engine; it is bound to this ledger
                        (default: an engine with no modules)
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print one line per applied or rejected operation
            max_supply: Optional cap on total supply
            authorizer: Optional authorizer(capability, operation) -> bool
        """
        self.name = name
        self.identity = identity if identity is not None else IdentityDirectory()
        self.compliance = compliance if compliance is not None else ComplianceEngine()
        self.verbose = verbose
        self.max_supply = validate_amount(max_supply, "max_supply") if max_supply is not None else None
        self.authorizer = authorizer

        # Insertion order doubles as first-seen order for holders()
        self._balances: Dict[str, int] = {}
        self._frozen: Dict[str, int] = {}
        self._address_frozen: Set[str] = set()
        self._recovered: Set[str] = set()
        # replacement -> lost holders recovered into it, in recovery order
        self._replacements: Dict[str, List[str]] = {}
        self._total_supply: int = 0
        self._paused: bool = False
        self._current_time: datetime = initial_time or DEFAULT_LEDGER_EPOCH

        self.transaction_log: List[LedgerEntry] = []
        self.rejections: List[Rejection] = []
        self._next_sequence: int = 0

        self.snapshots = SnapshotStore(self)
        self.assets = AssetSubledger()
        self.compliance.bind(self)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def frozen_of(self, holder: str) -> int:
        return self._frozen.get(holder, 0)

    def available_balance_of(self, holder: str) -> int:
        """Balance that may be moved: total balance minus the frozen amount."""
        return self.balance_of(holder) - self.frozen_of(holder)

    def total_supply(self) -> int:
        return self._total_supply

    def holders(self) -> List[str]:
        """Holders that have ever held a balance, in first-seen order."""
        return list(self._balances)

    def is_verified(self, holder: str) -> bool:
        return self.identity.is_verified(holder)

    def jurisdiction_of(self, holder: str) -> Optional[int]:
        return self.identity.jurisdiction_of(holder)

    def is_frozen(self, holder: str) -> bool:
        """True if the whole address is frozen."""
        return holder in self._address_frozen

    def is_recovered(self, holder: str) -> bool:
        return holder in self._recovered

    def recovered_from(self, holder: str) -> List[str]:
        """Holders recovered into `holder`, directly or through a chain of recoveries."""
        result = []
        pending = list(self._replacements.get(holder, []))
        while pending:
            lost = pending.pop(0)
            result.append(lost)
            pending.extend(self._replacements.get(lost, []))
        return result

    @property
    def paused(self) -> bool:
        return self._paused

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify that the accounting invariants hold.

        Checks:
        1. The sum of all balances equals total supply
        2. Every balance is non-negative
        3. 0 <= frozen <= balance for every holder
        4. Per holder, asset-tagged balances never exceed the general balance
        5. Every asset's supply equals the sum of its per-holder tags

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'total_supply': int - Current total supply
            - 'violations': List[Dict] - One entry per broken invariant

        Example:
            result = ledger.verify_invariants()
            assert result['valid'], f"Invariant violated: {result['violations']}"
        """
        violations = []

        balance_sum = sum(self._balances.values())
        if balance_sum != self._total_supply:
            violations.append({
                'check': 'supply_conservation',
                'expected': self._total_supply,
                'actual': balance_sum,
            })

        for holder, balance in self._balances.items():
            frozen = self.frozen_of(holder)
            if balance < 0:
                violations.append({'check': 'negative_balance', 'holder': holder, 'balance': balance})
            if not 0 <= frozen <= balance:
                violations.append({
                    'check': 'frozen_bound', 'holder': holder,
                    'frozen': frozen, 'balance': balance,
                })
            tagged = self.assets.tagged_total(holder)
            if tagged > balance:
                violations.append({
                    'check': 'asset_capacity', 'holder': holder,
                    'tagged': tagged, 'balance': balance,
                })

        for asset_id in self.assets.list_assets():
            tagged_sum = sum(self.assets.get_asset_balance(h, asset_id) for h in self._balances)
            supply = self.assets.get_asset_total_supply(asset_id)
            if tagged_sum != supply:
                violations.append({
                    'check': 'asset_supply', 'asset_id': asset_id,
                    'expected': supply, 'actual': tagged_sum,
                })

        return {
            'valid': len(violations) == 0,
            'total_supply': self._total_supply,
            'violations': violations,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # PAUSE
    # ========================================================================

    @requires(Capability.ADMIN)
    def pause(self) -> None:
        if self._paused:
            raise Paused()
        self._paused = True
        if self.verbose:
            print(f"⏸  PAUSED: {self.name}")

    @requires(Capability.ADMIN)
    def unpause(self) -> None:
        if not self._paused:
            raise NotPaused()
        self._paused = False
        if self.verbose:
            print(f"▶  UNPAUSED: {self.name}")

    # ========================================================================
    # BALANCE-CHANGING OPERATIONS (Mutating)
    # ========================================================================

    @requires(Capability.AGENT)
    def mint(self, holder: str, amount: int) -> LedgerEntry:
        """
        Issue new units to a holder.

        Raises:
            Paused, AddressFrozen, IdentityNotVerified, ExceedsMaxSupply,
            ComplianceRejected
        """
        validate_holder(holder)
        validate_amount(amount)
        try:
            self._check_not_paused()
            self._check_not_frozen(holder)
            self._check_verified(holder)
            self._check_max_supply(amount)
            self._check_compliance(self.compliance.can_mint(holder, amount))
        except LedgerError as exc:
            self._record_rejection(Action.MINT, None, holder, amount, exc)
            raise

        self._set_supply(self._total_supply + amount)
        self._set_balance(holder, self.balance_of(holder) + amount)
        entry = self._log(Action.MINT, None, holder, amount)
        self.compliance.notify_mint(holder, amount)
        return entry

    @requires(Capability.HOLDER)
    def transfer(self, sender: str, recipient: str, amount: int) -> LedgerEntry:
        """
        Move units between two holders.

        A self-transfer runs every check but leaves balances unchanged.

        Raises:
            Paused, AddressFrozen, InsufficientUnfrozenBalance,
            IdentityNotVerified, InsufficientAssetCapacity, ComplianceRejected
        """
        validate_holder(sender, "sender")
        validate_holder(recipient, "recipient")
        validate_amount(amount)
        try:
            self._validate_transfer(sender, recipient, amount)
        except LedgerError as exc:
            self._record_rejection(Action.TRANSFER, sender, recipient, amount, exc)
            raise

        self._move(sender, recipient, amount)
        entry = self._log(Action.TRANSFER, sender, recipient, amount)
        self.compliance.notify_transfer(sender, recipient, amount)
        return entry

    @requires(Capability.AGENT)
    def burn(self, holder: str, amount: int) -> LedgerEntry:
        """
        Destroy units held by a holder.

        Raises:
            Paused, AddressFrozen, IdentityNotVerified,
            InsufficientUnfrozenBalance, InsufficientAssetCapacity,
            ComplianceRejected
        """
        validate_holder(holder)
        validate_amount(amount)
        try:
            self._validate_burn(holder, amount)
        except LedgerError as exc:
            self._record_rejection(Action.BURN, holder, None, amount, exc)
            raise

        self._destroy(holder, amount)
        entry = self._log(Action.BURN, holder, None, amount)
        self.compliance.notify_burn(holder, amount)
        return entry

    # ========================================================================
    # FREEZES (Mutating)
    # ========================================================================

    @requires(Capability.AGENT)
    def freeze(self, holder: str, amount: int) -> LedgerEntry:
        """Freeze part of a holder's balance. Frozen units cannot be moved."""
        validate_holder(holder)
        validate_amount(amount)
        try:
            self._check_not_paused()
            available = self.available_balance_of(holder)
            if amount > available:
                raise InsufficientUnfrozenBalance(holder, amount, available)
        except LedgerError as exc:
            self._record_rejection(Action.FREEZE, holder, None, amount, exc)
            raise

        self._frozen[holder] = self.frozen_of(holder) + amount
        return self._log(Action.FREEZE, holder, None, amount)

    @requires(Capability.AGENT)
    def unfreeze(self, holder: str, amount: int) -> LedgerEntry:
        validate_holder(holder)
        validate_amount(amount)
        try:
            self._check_not_paused()
            frozen = self.frozen_of(holder)
            if amount > frozen:
                raise InsufficientFrozenBalance(holder, amount, frozen)
        except LedgerError as exc:
            self._record_rejection(Action.UNFREEZE, holder, None, amount, exc)
            raise

        remaining = self.frozen_of(holder) - amount
        if remaining:
            self._frozen[holder] = remaining
        else:
            self._frozen.pop(holder, None)
        return self._log(Action.UNFREEZE, holder, None, amount)

    @requires(Capability.AGENT)
    def set_address_frozen(self, holder: str, frozen: bool) -> None:
        """Freeze or unfreeze an address as a whole (it can neither send nor receive)."""
        validate_holder(holder)
        self._check_not_paused()
        if frozen:
            self._address_frozen.add(holder)
        else:
            self._address_frozen.discard(holder)
        if self.verbose:
            print(f"{'❄' if frozen else '☀'}  ADDRESS {'FROZEN' if frozen else 'UNFROZEN'}: {holder}")

    # ========================================================================
    # RECOVERY (Mutating)
    # ========================================================================

    @requires(Capability.AGENT)
    def recover(self, lost: str, replacement: str) -> LedgerEntry:
        """
        Move everything a lost holder owns to a replacement holder.

        Moves the full balance, the frozen amount, asset tags and the address
        freeze flag, then marks `lost` permanently non-transactable. Rule
        modules are not consulted (forced transfer) but are notified afterwards.

        Raises:
            ValueError: If lost and replacement are the same holder
            Paused, AddressFrozen, IdentityNotVerified
        """
        validate_holder(lost, "lost")
        validate_holder(replacement, "replacement")
        if lost == replacement:
            raise ValueError("Replacement must differ from the lost holder")
        amount = self.balance_of(lost)
        try:
            self._check_not_paused()
            if lost in self._recovered:
                raise AddressFrozen(lost, "recovered")
            if replacement in self._recovered:
                raise AddressFrozen(replacement, "recovered")
            self._check_verified(replacement)
        except LedgerError as exc:
            self._record_rejection(Action.RECOVER, lost, replacement, amount, exc)
            raise

        frozen = self.frozen_of(lost)
        self._move(lost, replacement, amount)
        if frozen:
            self._frozen[replacement] = self.frozen_of(replacement) + frozen
            del self._frozen[lost]
        self.assets.move_all(lost, replacement)
        if lost in self._address_frozen:
            self._address_frozen.discard(lost)
            self._address_frozen.add(replacement)
        self._recovered.add(lost)
        self._replacements.setdefault(replacement, []).append(lost)

        entry = self._log(Action.RECOVER, lost, replacement, amount)
        self.compliance.notify_transfer(lost, replacement, amount)
        return entry

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    @requires(Capability.CORPORATE_ACTIONS)
    def snapshot(self) -> int:
        """Take a snapshot and return its id."""
        snapshot_id = self.snapshots.snapshot()
        if self.verbose:
            print(f"📸 SNAPSHOT {snapshot_id} @ {self._current_time.isoformat()}")
        return snapshot_id

    def current_snapshot_id(self) -> int:
        return self.snapshots.current_id

    def balance_of_at(self, holder: str, snapshot_id: int) -> int:
        return self.snapshots.balance_of_at(holder, snapshot_id)

    def total_supply_at(self, snapshot_id: int) -> int:
        return self.snapshots.total_supply_at(snapshot_id)

    # ========================================================================
    # ASSET TAGGING
    # ========================================================================

    @requires(Capability.ASSET_MANAGER)
    def register_asset(self, asset_id: str, name: str = "") -> AssetRecord:
        record = self.assets.register_asset(asset_id, name)
        if self.verbose:
            print(f"📝 Registered asset: {asset_id}" + (f" ({name})" if name else ""))
        return record

    def get_asset_balance(self, holder: str, asset_id: str) -> int:
        return self.assets.get_asset_balance(holder, asset_id)

    def get_asset_total_supply(self, asset_id: str) -> int:
        return self.assets.get_asset_total_supply(asset_id)

    @requires(Capability.HOLDER)
    def transfer_with_asset(self, sender: str, recipient: str, amount: int, asset_id: str) -> LedgerEntry:
        """
        Transfer units and tag them for an asset at the recipient.

        The moved units are drawn first from the sender's own tag for asset_id,
        the remainder from its untagged balance. When recipient == sender no
        value moves: `amount` of the holder's untagged balance gets tagged.

        Raises:
            AssetNotRegistered: If asset_id is unknown
            Plus everything transfer() raises
        """
        validate_holder(sender, "sender")
        validate_holder(recipient, "recipient")
        validate_amount(amount)
        try:
            self._check_not_paused()
            self.assets.require(asset_id)
            if sender == recipient:
                self._check_not_frozen(sender)
                self._check_verified(sender)
                untagged = self.balance_of(sender) - self.assets.tagged_total(sender)
                if amount > untagged:
                    raise InsufficientAssetCapacity(sender, asset_id, amount, untagged)
            else:
                released = self.assets.released_by_transfer(sender, asset_id, amount)
                self._validate_transfer(sender, recipient, amount, released, asset_id)
        except LedgerError as exc:
            self._record_rejection(Action.ASSET_TRANSFER, sender, recipient, amount, exc, asset_id)
            raise

        if sender == recipient:
            self.assets.tag(sender, asset_id, amount)
            return self._log(Action.ASSET_TRANSFER, sender, recipient, amount, asset_id)

        self._move(sender, recipient, amount)
        self.assets.move_tagged(sender, recipient, asset_id, amount)
        entry = self._log(Action.ASSET_TRANSFER, sender, recipient, amount, asset_id)
        self.compliance.notify_transfer(sender, recipient, amount)
        return entry

    @requires(Capability.ASSET_MANAGER)
    def burn_asset_tokens(self, holder: str, asset_id: str, amount: int) -> LedgerEntry:
        """
        Burn units tagged for an asset.

        Tagged amount, asset supply, balance and total supply drop together.
        """
        validate_holder(holder)
        validate_amount(amount)
        try:
            self._check_not_paused()
            self.assets.require(asset_id)
            tagged = self.assets.get_asset_balance(holder, asset_id)
            if amount > tagged:
                raise InsufficientAssetCapacity(holder, asset_id, amount, tagged)
            self._validate_burn(holder, amount, released=amount)
        except LedgerError as exc:
            self._record_rejection(Action.ASSET_BURN, holder, None, amount, exc, asset_id)
            raise

        self.assets.untag(holder, asset_id, amount)
        self._destroy(holder, amount)
        entry = self._log(Action.ASSET_BURN, holder, None, amount, asset_id)
        self.compliance.notify_burn(holder, amount)
        return entry

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def _validate_transfer(self, sender: str, recipient: str, amount: int,
                           released: int = 0, asset_id: Optional[str] = None) -> None:
        self._check_not_paused()
        self._check_not_frozen(sender)
        self._check_not_frozen(recipient)
        available = self.available_balance_of(sender)
        if amount > available:
            raise InsufficientUnfrozenBalance(sender, amount, available)
        self._check_verified(sender)
        self._check_verified(recipient)
        if sender != recipient:
            self._check_asset_capacity(sender, amount, released, asset_id)
        self._check_compliance(self.compliance.can_transfer(sender, recipient, amount))

    def _validate_burn(self, holder: str, amount: int, released: int = 0) -> None:
        self._check_not_paused()
        self._check_not_frozen(holder)
        self._check_verified(holder)
        available = self.available_balance_of(holder)
        if amount > available:
            raise InsufficientUnfrozenBalance(holder, amount, available)
        self._check_asset_capacity(holder, amount, released, None)
        self._check_compliance(self.compliance.can_burn(holder, amount))

    def _check_not_paused(self) -> None:
        if self._paused:
            raise Paused()

    def _check_not_frozen(self, holder: str) -> None:
        if holder in self._recovered:
            raise AddressFrozen(holder, "recovered")
        if holder in self._address_frozen:
            raise AddressFrozen(holder)

    def _check_verified(self, holder: str) -> None:
        if not self.identity.is_verified(holder):
            raise IdentityNotVerified(holder)

    def _check_max_supply(self, amount: int) -> None:
        if self.max_supply is not None and self._total_supply + amount > self.max_supply:
            raise ExceedsMaxSupply(self._total_supply + amount, self.max_supply)

    def _check_asset_capacity(self, holder: str, amount: int, released: int,
                              asset_id: Optional[str]) -> None:
        """Tags left behind after debiting `amount` must fit in the remaining balance."""
        tagged_after = self.assets.tagged_total(holder) - released
        balance_after = self.balance_of(holder) - amount
        if tagged_after > balance_after:
            available = self.balance_of(holder) - tagged_after
            raise InsufficientAssetCapacity(holder, asset_id, amount, available)

    @staticmethod
    def _check_compliance(decision: Decision) -> None:
        if not decision.allowed:
            raise ComplianceRejected(decision.module, decision.reason)

    # ========================================================================
    # COMMIT HELPERS
    # ========================================================================

    def _set_balance(self, holder: str, new_balance: int) -> None:
        """Checkpoint the old value, then write the new one."""
        self.snapshots.update_balance(holder, self.balance_of(holder))
        self._balances[holder] = new_balance

    def _set_supply(self, new_supply: int) -> None:
        self.snapshots.update_supply(self._total_supply)
        self._total_supply = new_supply

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if sender == recipient:
            return
        self._set_balance(sender, self.balance_of(sender) - amount)
        self._set_balance(recipient, self.balance_of(recipient) + amount)

    def _destroy(self, holder: str, amount: int) -> None:
        self._set_supply(self._total_supply - amount)
        self._set_balance(holder, self.balance_of(holder) - amount)

    # ========================================================================
    # AUDIT TRAIL
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{timestamp_micros}
        """
        micros = int((self._current_time - DEFAULT_LEDGER_EPOCH).total_seconds() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def _log(self, action: Action, sender: Optional[str], recipient: Optional[str],
             amount: int, asset_id: Optional[str] = None) -> LedgerEntry:
        sequence = self._next_sequence
        self._next_sequence += 1
        entry = LedgerEntry(
            sequence_number=sequence,
            exec_id=self._generate_exec_id(sequence),
            action=action,
            sender=sender,
            recipient=recipient,
            amount=amount,
            timestamp=self._current_time,
            asset_id=asset_id,
        )
        # Always log - audit trail is mandatory
        self.transaction_log.append(entry)
        if self.verbose:
            print(f"✓ APPLIED: {entry!r}")
        return entry

    def _record_rejection(self, action: Action, sender: Optional[str], recipient: Optional[str],
                          amount: int, exc: LedgerError, asset_id: Optional[str] = None) -> None:
        rejection = Rejection(
            action=action,
            sender=sender,
            recipient=recipient,
            amount=amount,
            timestamp=self._current_time,
            kind=exc.kind,
            message=str(exc),
            module=getattr(exc, 'module', None),
            asset_id=asset_id,
        )
        self.rejections.append(rejection)
        if self.verbose:
            print(f"✗ REJECTED: {action.value} {amount} {sender}→{recipient}: {exc}")

    def __repr__(self) -> str:
        return (f"Ledger({self.name!r}, supply={self._total_supply}, "
                f"holders={len(self._balances)}, paused={self._paused})")
