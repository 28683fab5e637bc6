"""
identity.py - Identity directory for holder verification

Maps each holder to a HolderRecord: whether it is currently verified and the
ISO 3166 numeric jurisdiction it belongs to. Cryptographic verification of
identity claims is delegated to an external ClaimVerifier; the directory only
stores the outcome.

Records are immutable. Re-verification and jurisdiction changes replace the
record; removal marks it permanently unverified but keeps it for the audit.
No operation in this module touches balances.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from .core import (
    MAX_JURISDICTION_CODE,
    AlreadyRegistered, HolderNotRegistered, HolderRemoved,
    validate_holder,
)
from .capabilities import Authorizer, Capability, requires


@dataclass(frozen=True, slots=True)
class HolderRecord:
    """
    Identity attributes of a single holder.

    Attributes:
        holder: Holder identifier.
        verified: True if the holder may currently transact.
        jurisdiction: ISO 3166 numeric country code (0..999).
        removed: True once the holder was removed; a removed holder can
            never be verified again.
    """
    holder: str
    verified: bool
    jurisdiction: int
    removed: bool = False

    def __post_init__(self):
        validate_holder(self.holder)
        validate_jurisdiction(self.jurisdiction)
        if self.removed and self.verified:
            raise ValueError(f"Removed holder {self.holder} cannot be verified")


@runtime_checkable
class ClaimVerifier(Protocol):
    """
    External verifier of identity claims.

    verify() returns (verified, jurisdiction) for a holder.
    """

    def verify(self, holder: str) -> Tuple[bool, int]:
        ...


def validate_jurisdiction(jurisdiction: int) -> int:
    """Check that a jurisdiction is an ISO 3166 numeric code."""
    if isinstance(jurisdiction, bool) or not isinstance(jurisdiction, int):
        raise ValueError(f"Jurisdiction must be an int, got {type(jurisdiction).__name__}")
    if not 0 <= jurisdiction <= MAX_JURISDICTION_CODE:
        raise ValueError(f"Invalid jurisdiction code: {jurisdiction}")
    return jurisdiction


class IdentityDirectory:
    """
    Registry of holders and their verification status.

    Example:
        directory = IdentityDirectory()
        directory.register("alice", 840)
        directory.is_verified("alice")   # True
        directory.remove("alice")
        directory.is_verified("alice")   # False, permanently
    """

    def __init__(self, authorizer: Optional[Authorizer] = None):
        self.authorizer = authorizer
        # Insertion order doubles as registration order for reporting
        self._records: Dict[str, HolderRecord] = {}

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def is_verified(self, holder: str) -> bool:
        record = self._records.get(holder)
        return record is not None and record.verified

    def jurisdiction_of(self, holder: str) -> Optional[int]:
        record = self._records.get(holder)
        return record.jurisdiction if record is not None else None

    def get_record(self, holder: str) -> Optional[HolderRecord]:
        return self._records.get(holder)

    def is_registered(self, holder: str) -> bool:
        return holder in self._records

    def list_holders(self) -> List[str]:
        """Return holder IDs in registration order, removed holders included."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, holder: str) -> bool:
        return holder in self._records

    # ------------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------------

    @requires(Capability.AGENT)
    def register(self, holder: str, jurisdiction: int, verified: bool = True) -> HolderRecord:
        """
        Register a new holder.

        Raises:
            AlreadyRegistered: If the holder already has a record.
            ValueError: If the holder ID or jurisdiction is malformed.
        """
        record = HolderRecord(holder, bool(verified), jurisdiction)
        if holder in self._records:
            raise AlreadyRegistered(holder)
        self._records[holder] = record
        return record

    @requires(Capability.AGENT)
    def batch_register(self, entries: Iterable[Tuple[str, int]]) -> List[HolderRecord]:
        """
        Register several (holder, jurisdiction) pairs as verified holders.

        All entries are validated first; nothing is registered unless every
        entry is acceptable (no duplicates, no existing holders).
        """
        records = [HolderRecord(holder, True, jurisdiction) for holder, jurisdiction in entries]
        seen = set()
        for record in records:
            if record.holder in self._records or record.holder in seen:
                raise AlreadyRegistered(record.holder)
            seen.add(record.holder)
        for record in records:
            self._records[record.holder] = record
        return records

    @requires(Capability.AGENT)
    def remove(self, holder: str) -> HolderRecord:
        """Permanently mark a holder as unverified. The record is kept."""
        record = self._require(holder)
        record = replace(record, verified=False, removed=True)
        self._records[holder] = record
        return record

    @requires(Capability.AGENT)
    def set_verified(self, holder: str, verified: bool) -> HolderRecord:
        """
        Change a holder's verification status.

        Raises:
            HolderNotRegistered: If the holder is unknown.
            HolderRemoved: If re-verifying a removed holder.
        """
        record = self._require(holder)
        if verified and record.removed:
            raise HolderRemoved(holder)
        record = replace(record, verified=bool(verified))
        self._records[holder] = record
        return record

    @requires(Capability.AGENT)
    def update_jurisdiction(self, holder: str, jurisdiction: int) -> HolderRecord:
        record = self._require(holder)
        record = replace(record, jurisdiction=validate_jurisdiction(jurisdiction))
        self._records[holder] = record
        return record

    @requires(Capability.AGENT)
    def refresh(self, holder: str, verifier: ClaimVerifier) -> HolderRecord:
        """
        Re-check a holder's claims with an external verifier and store the result.

        Unknown holders that the verifier accepts are registered. A removed
        holder stays removed whatever the verifier says.
        """
        verified, jurisdiction = verifier.verify(holder)
        validate_jurisdiction(jurisdiction)
        record = self._records.get(holder)
        if record is None:
            record = HolderRecord(validate_holder(holder), bool(verified), jurisdiction)
        elif record.removed:
            record = replace(record, jurisdiction=jurisdiction)
        else:
            record = replace(record, verified=bool(verified), jurisdiction=jurisdiction)
        self._records[holder] = record
        return record

    def _require(self, holder: str) -> HolderRecord:
        record = self._records.get(holder)
        if record is None:
            raise HolderNotRegistered(holder)
        return record

    def __repr__(self) -> str:
        verified = sum(1 for r in self._records.values() if r.verified)
        return f"IdentityDirectory({len(self._records)} holders, {verified} verified)"
