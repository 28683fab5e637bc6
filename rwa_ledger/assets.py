"""
assets.py - Per-asset tagging of general ledger balances

A single fungible token can represent several underlying assets. The
AssetSubledger records how much of each holder's general balance is earmarked
("tagged") for each registered asset. Tags never create value: for every
holder the sum of its tags stays at or below its general balance, and every
asset's total supply equals the sum of its per-holder tags.

The subledger only keeps the books. The Ledger validates each operation
(including asset capacity) before it calls the mutators here.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, List

from .core import AlreadyRegistered, AssetNotRegistered, validate_holder


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """A registered asset and the number of units currently tagged to it."""
    asset_id: str
    total_supply: int = 0
    name: str = ""

    def __post_init__(self):
        validate_holder(self.asset_id, "asset_id")


class AssetSubledger:
    """Tag bookkeeping: holder -> asset_id -> tagged amount."""

    def __init__(self):
        self._assets: Dict[str, AssetRecord] = {}
        self._tags: Dict[str, Dict[str, int]] = {}

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def is_registered(self, asset_id: str) -> bool:
        return asset_id in self._assets

    def get_asset(self, asset_id: str) -> AssetRecord:
        self.require(asset_id)
        return self._assets[asset_id]

    def list_assets(self) -> List[str]:
        return list(self._assets)

    def get_asset_balance(self, holder: str, asset_id: str) -> int:
        return self._tags.get(holder, {}).get(asset_id, 0)

    def get_asset_total_supply(self, asset_id: str) -> int:
        return self.get_asset(asset_id).total_supply

    def tagged_total(self, holder: str) -> int:
        return sum(self._tags.get(holder, {}).values())

    def assets_of(self, holder: str) -> Dict[str, int]:
        return {a: q for a, q in self._tags.get(holder, {}).items() if q}

    def require(self, asset_id: str) -> None:
        if asset_id not in self._assets:
            raise AssetNotRegistered(asset_id)

    # ------------------------------------------------------------------------
    # Mutation (called by the Ledger after validation)
    # ------------------------------------------------------------------------

    def register_asset(self, asset_id: str, name: str = "") -> AssetRecord:
        record = AssetRecord(asset_id, 0, name)
        if asset_id in self._assets:
            raise AlreadyRegistered(asset_id)
        self._assets[asset_id] = record
        return record

    def released_by_transfer(self, sender: str, asset_id: str, amount: int) -> int:
        """Units of a transfer drawn from the sender's own tag; the rest comes untagged."""
        return min(self.get_asset_balance(sender, asset_id), amount)

    def move_tagged(self, sender: str, recipient: str, asset_id: str, amount: int) -> int:
        """
        Tag `amount` for asset_id at recipient, drawing first from the sender's tag.

        Returns the amount released from the sender's tag. The asset's supply
        grows by the part that was untagged at the sender.
        """
        released = self.released_by_transfer(sender, asset_id, amount)
        self._adjust(sender, asset_id, -released)
        self._adjust(recipient, asset_id, amount)
        self._adjust_supply(asset_id, amount - released)
        return released

    def tag(self, holder: str, asset_id: str, amount: int) -> None:
        """Tag part of a holder's untagged balance."""
        self._adjust(holder, asset_id, amount)
        self._adjust_supply(asset_id, amount)

    def untag(self, holder: str, asset_id: str, amount: int) -> None:
        """Release tagged units (the general balance is handled by the ledger)."""
        self._adjust(holder, asset_id, -amount)
        self._adjust_supply(asset_id, -amount)

    def move_all(self, source: str, dest: str) -> Dict[str, int]:
        """Move every tag held by source to dest; asset supplies are unchanged."""
        moved = self._tags.pop(source, {})
        for asset_id, amount in moved.items():
            self._adjust(dest, asset_id, amount)
        return moved

    def _adjust(self, holder: str, asset_id: str, delta: int) -> None:
        if delta == 0:
            return
        tags = self._tags.setdefault(holder, {})
        new_amount = tags.get(asset_id, 0) + delta
        if new_amount < 0:
            raise ValueError(f"Tag for {holder}/{asset_id} would go negative: {new_amount}")
        if new_amount:
            tags[asset_id] = new_amount
        else:
            tags.pop(asset_id, None)

    def _adjust_supply(self, asset_id: str, delta: int) -> None:
        record = self._assets[asset_id]
        self._assets[asset_id] = replace(record, total_supply=record.total_supply + delta)

    def __repr__(self) -> str:
        return f"AssetSubledger({len(self._assets)} assets, {len(self._tags)} holders)"
