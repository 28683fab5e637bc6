"""
Core types for the compliance-gated ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access, RuleModule for policies
2. Immutable data structures: TransferIntent, Decision, LedgerEntry, Rejection
3. Exceptions: LedgerError and the domain-specific error kinds
4. Type aliases and constants
5. Argument validation helpers shared by every entry point

Amounts are plain ints expressed in the smallest unit of the token. Nothing
in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Default logical start time for a ledger.
DEFAULT_LEDGER_EPOCH = datetime(1970, 1, 1)

# Transfer-limit windows, measured on the ledger's logical clock.
DAY = timedelta(days=1)
MONTH = timedelta(days=30)

# Upper bound on dividend events settled by a single claim_all_pending() call.
MAX_CLAIMS_PER_CALL = 25

# Upper bound on dividend events inspected by a single claim_all_pending() call.
MAX_EVENTS_SCANNED_PER_CALL = 100

# Jurisdictions are ISO 3166-1 numeric country codes.
MAX_JURISDICTION_CODE = 999


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Quantity in the smallest unit of the token.
Amount = int

# Mapping from holder ID to amount.
Balances = Dict[str, int]


# ============================================================================
# ENUMS
# ============================================================================

class Action(Enum):
    """
    Kind of operation recorded in the transaction log.

    The first three are the balance-changing actions rule modules are asked
    about; the rest are administrative actions that only appear in the log.
    """
    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"
    RECOVER = "recover"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    ASSET_TRANSFER = "asset_transfer"
    ASSET_BURN = "asset_burn"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""

    @property
    def kind(self) -> str:
        """Stable name of the error kind, for callers rendering a diagnosis."""
        return type(self).__name__


class IdentityNotVerified(LedgerError):
    """Raised when a party to an operation is not a verified holder."""

    def __init__(self, holder: str):
        self.holder = holder
        super().__init__(f"Identity not verified: {holder}")


class AddressFrozen(LedgerError):
    """Raised when a holder is frozen as a whole or was retired by recovery."""

    def __init__(self, holder: str, reason: str = "address frozen"):
        self.holder = holder
        self.reason = reason
        super().__init__(f"Address frozen: {holder} ({reason})")


class InsufficientUnfrozenBalance(LedgerError):
    """Raised when an amount exceeds the holder's balance net of frozen units."""

    def __init__(self, holder: str, requested: int, available: int):
        self.holder = holder
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient unfrozen balance for {holder}: "
            f"requested {requested}, available {available}"
        )


class InsufficientFrozenBalance(LedgerError):
    """Raised when unfreezing more than is currently frozen."""

    def __init__(self, holder: str, requested: int, frozen: int):
        self.holder = holder
        self.requested = requested
        self.frozen = frozen
        super().__init__(
            f"Cannot unfreeze {requested} for {holder}: only {frozen} frozen"
        )


class ComplianceRejected(LedgerError):
    """Raised when a rule module refuses an operation."""

    def __init__(self, module: Optional[str], reason: str):
        self.module = module
        self.reason = reason
        super().__init__(f"Compliance not followed: {module}: {reason}")


class InvalidSnapshotId(LedgerError):
    """Raised for a snapshot id that is zero, negative or not yet allocated."""

    def __init__(self, snapshot_id: int, current_id: int):
        self.snapshot_id = snapshot_id
        self.current_id = current_id
        super().__init__(
            f"Invalid snapshot id {snapshot_id} (current id is {current_id})"
        )


class InvalidDividendId(LedgerError):
    """Raised when claiming or querying a dividend that does not exist."""

    def __init__(self, dividend_id: int):
        self.dividend_id = dividend_id
        super().__init__(f"Invalid dividend index: {dividend_id}")


class AlreadyClaimed(LedgerError):
    """Raised when a holder claims the same dividend twice."""

    def __init__(self, holder: str, dividend_id: int):
        self.holder = holder
        self.dividend_id = dividend_id
        super().__init__(f"Already claimed: dividend {dividend_id} by {holder}")


class BelowMinimumAcceptable(LedgerError):
    """Raised when a dividend share is smaller than the caller will accept."""

    def __init__(self, share: int, minimum: int):
        self.share = share
        self.minimum = minimum
        super().__init__(f"Dividend share {share} below minimum acceptable {minimum}")


class ExceedsMaxSupply(LedgerError):
    """Raised when minting would push total supply over the configured cap."""

    def __init__(self, requested: int, max_supply: int):
        self.requested = requested
        self.max_supply = max_supply
        super().__init__(
            f"Minting would raise supply to {requested}, above max {max_supply}"
        )


class Paused(LedgerError):
    """Raised by every mutating entry point while the ledger is paused."""

    def __init__(self, message: str = "Pausable: paused"):
        super().__init__(message)


class NotPaused(LedgerError):
    """Raised when unpausing a ledger that is not paused."""

    def __init__(self, message: str = "Pausable: not paused"):
        super().__init__(message)


class AlreadyRegistered(LedgerError):
    """Raised when registering a holder, asset or module a second time."""

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Already registered: {key}")


class AlreadyBound(LedgerError):
    """Raised when binding a compliance engine that is already bound."""

    def __init__(self, message: str = "Compliance engine already bound"):
        super().__init__(message)


class NotBound(LedgerError):
    """Raised when evaluating a compliance engine that has no ledger."""

    def __init__(self, message: str = "Compliance engine is not bound to a ledger"):
        super().__init__(message)


class ModuleNotFound(LedgerError):
    """Raised when removing a rule module that is not in the engine."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Module not found: {module_name}")


class Unauthorized(LedgerError):
    """Raised when the external authorizer refuses an operation."""

    def __init__(self, capability: Any, operation: str):
        self.capability = capability
        self.operation = operation
        super().__init__(f"Not authorized: {operation} requires {capability}")


class HolderNotRegistered(LedgerError):
    """Raised when an identity operation names an unknown holder."""

    def __init__(self, holder: str):
        self.holder = holder
        super().__init__(f"Holder not registered: {holder}")


class HolderRemoved(LedgerError):
    """Raised when re-verifying a holder that was removed from the directory."""

    def __init__(self, holder: str):
        self.holder = holder
        super().__init__(f"Holder was removed and cannot be re-verified: {holder}")


class InsufficientAssetCapacity(LedgerError):
    """Raised when asset-tagged balances would exceed the general balance."""

    def __init__(self, holder: str, asset_id: Optional[str], requested: int, available: int):
        self.holder = holder
        self.asset_id = asset_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient asset capacity for {holder} ({asset_id}): "
            f"requested {requested}, available {available}"
        )


class AssetNotRegistered(LedgerError):
    """Raised when tagging or burning against an unknown asset."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset not registered: {asset_id}")


# ============================================================================
# ARGUMENT VALIDATION
# ============================================================================

def validate_amount(amount: int, label: str = "amount") -> int:
    """
    Check that an amount is a non-negative int.

    bool is rejected even though it subclasses int.

    Raises:
        ValueError: If the amount is not an int or is negative.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{label} must be an int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{label} must be non-negative, got {amount}")
    return amount


def validate_holder(holder: str, label: str = "holder") -> str:
    """Check that a holder ID is a non-blank string."""
    if not isinstance(holder, str) or not holder.strip():
        raise ValueError(f"{label} cannot be empty")
    return holder


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransferIntent:
    """
    A proposed balance change, as presented to rule modules.

    Attributes:
        action: MINT, BURN or TRANSFER.
        sender: Holder debited (None for mints).
        recipient: Holder credited (None for burns).
        amount: Quantity in smallest units.
        timestamp: Ledger logical time of the attempt.
    """
    action: Action
    sender: Optional[str]
    recipient: Optional[str]
    amount: int
    timestamp: datetime

    def __post_init__(self):
        if self.action not in (Action.MINT, Action.BURN, Action.TRANSFER):
            raise ValueError(f"Rule modules are not consulted for {self.action.value}")
        if self.action is not Action.MINT and not self.sender:
            raise ValueError(f"{self.action.value} intent requires a sender")
        if self.action is not Action.BURN and not self.recipient:
            raise ValueError(f"{self.action.value} intent requires a recipient")
        validate_amount(self.amount)

    def __repr__(self) -> str:
        return f"Intent({self.action.value} {self.amount}: {self.sender}→{self.recipient})"


@dataclass(frozen=True, slots=True)
class Decision:
    """
    Outcome of evaluating an intent.

    Attributes:
        allowed: True if the operation may proceed.
        module: Name of the rejecting module (None when allowed).
        reason: Reason code of the rejection ("" when allowed).
    """
    allowed: bool
    module: Optional[str] = None
    reason: str = ""

    @classmethod
    def allow(cls) -> Decision:
        return cls(True)

    @classmethod
    def reject(cls, module: str, reason: str) -> Decision:
        return cls(False, module, reason)

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """
    An executed, immutable record of a committed operation.

    The transaction log of LedgerEntry records is the audit trail.

    Attributes:
        sequence_number: Monotonic position within the ledger.
        exec_id: Unique execution identifier (ledger + sequence + time).
        action: What was done.
        sender: Holder debited, if any.
        recipient: Holder credited, if any.
        amount: Quantity in smallest units.
        timestamp: Ledger logical time of the commit.
        asset_id: Asset tag involved, for asset-tagged operations.
    """
    sequence_number: int
    exec_id: str
    action: Action
    sender: Optional[str]
    recipient: Optional[str]
    amount: int
    timestamp: datetime
    asset_id: Optional[str] = None

    def __repr__(self) -> str:
        asset = f" [{self.asset_id}]" if self.asset_id else ""
        return (
            f"LedgerEntry(#{self.sequence_number} {self.action.value} {self.amount}"
            f"{asset}: {self.sender}→{self.recipient} @ {self.timestamp.isoformat()})"
        )


@dataclass(frozen=True, slots=True)
class Rejection:
    """
    Record of a refused balance-changing attempt.

    Rejections are kept apart from ledger state; they feed the compliance
    violation report and never influence balances.
    """
    action: Action
    sender: Optional[str]
    recipient: Optional[str]
    amount: int
    timestamp: datetime
    kind: str
    message: str
    module: Optional[str] = None
    asset_id: Optional[str] = None


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Rule modules and reporting functions receive a LedgerView so that they
    can read balances and identity attributes without being able to change
    them. The Ledger class implements this protocol and also provides the
    mutating operations.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def balance_of(self, holder: str) -> int:
        """Return the holder's balance (0 for unknown holders)."""
        ...

    def frozen_of(self, holder: str) -> int:
        """Return the holder's partially frozen amount."""
        ...

    def total_supply(self) -> int:
        """Return the current total supply."""
        ...

    def holders(self) -> List[str]:
        """Return holders that have ever held a balance, in first-seen order."""
        ...

    def is_verified(self, holder: str) -> bool:
        """Return whether the holder is currently verified."""
        ...

    def jurisdiction_of(self, holder: str) -> Optional[int]:
        """Return the holder's jurisdiction code, or None if unknown."""
        ...


@runtime_checkable
class RuleModule(Protocol):
    """
    Protocol for pluggable compliance policies.

    evaluate() must not change module state; notify() is called once the
    ledger has committed the mutation the intent describes.
    """

    name: str

    def evaluate(self, view: LedgerView, intent: TransferIntent) -> Decision:
        ...

    def notify(self, view: LedgerView, intent: TransferIntent) -> None:
        ...
