"""
snapshots.py - Point-in-time balances and total supply

Taking a snapshot is O(1): it only allocates the next id. Values are
checkpointed lazily. Before the first change to a holder's balance (or to the
total supply) after snapshot S, the store appends (S, value_before_change).
Checkpoint lists are append-only and ordered by id.

A checkpoint tagged S holds the value that was live for every snapshot taken
since the previous checkpoint, up to and including S. Looking up snapshot
`id` therefore returns the earliest checkpoint with tag >= id; if there is
none, nothing changed since `id` and the live value is returned. Lookup uses
binary search.
"""

from __future__ import annotations
from bisect import bisect_left
from typing import Dict, List

from .core import InvalidSnapshotId, LedgerView


class Checkpoints:
    """Append-only (snapshot_id, value) series kept as parallel lists for bisect."""

    __slots__ = ('ids', 'values')

    def __init__(self):
        self.ids: List[int] = []
        self.values: List[int] = []

    def record(self, snapshot_id: int, value: int) -> None:
        """Append a checkpoint unless one already exists for snapshot_id."""
        if self.ids and self.ids[-1] >= snapshot_id:
            return
        self.ids.append(snapshot_id)
        self.values.append(value)

    def value_at(self, snapshot_id: int, live_value: int) -> int:
        idx = bisect_left(self.ids, snapshot_id)
        if idx == len(self.ids):
            return live_value
        return self.values[idx]

    def __len__(self) -> int:
        return len(self.ids)

    def __repr__(self) -> str:
        return f"Checkpoints({list(zip(self.ids, self.values))})"


class SnapshotStore:
    """
    Snapshot ids plus lazy checkpoints for every holder and the total supply.

    The owning ledger must call update_balance()/update_supply() with the
    pre-change value before it mutates anything; the store reads live values
    back through the LedgerView it was created with.
    """

    def __init__(self, view: LedgerView):
        self._view = view
        self._current_id = 0
        self._balances: Dict[str, Checkpoints] = {}
        self._supply = Checkpoints()
        self._changed_since_snapshot = False

    @property
    def current_id(self) -> int:
        return self._current_id

    @property
    def has_changes_since_snapshot(self) -> bool:
        """True if no snapshot exists yet or a tracked value changed since the latest."""
        return self._current_id == 0 or self._changed_since_snapshot

    def snapshot(self) -> int:
        """Allocate and return the next snapshot id."""
        self._current_id += 1
        self._changed_since_snapshot = False
        return self._current_id

    def update_balance(self, holder: str, value_before: int) -> None:
        if self._current_id == 0:
            return
        self._balances.setdefault(holder, Checkpoints()).record(self._current_id, value_before)
        self._changed_since_snapshot = True

    def update_supply(self, value_before: int) -> None:
        if self._current_id == 0:
            return
        self._supply.record(self._current_id, value_before)
        self._changed_since_snapshot = True

    def balance_of_at(self, holder: str, snapshot_id: int) -> int:
        self._validate(snapshot_id)
        checkpoints = self._balances.get(holder)
        live = self._view.balance_of(holder)
        if checkpoints is None:
            return live
        return checkpoints.value_at(snapshot_id, live)

    def total_supply_at(self, snapshot_id: int) -> int:
        self._validate(snapshot_id)
        return self._supply.value_at(snapshot_id, self._view.total_supply())

    def holders_at(self, snapshot_id: int) -> List[str]:
        """Holders with a non-zero balance at snapshot_id, in first-seen order."""
        self._validate(snapshot_id)
        candidates = dict.fromkeys(list(self._view.holders()) + list(self._balances))
        return [h for h in candidates if self.balance_of_at(h, snapshot_id) > 0]

    def _validate(self, snapshot_id: int) -> None:
        if isinstance(snapshot_id, bool) or not isinstance(snapshot_id, int):
            raise InvalidSnapshotId(snapshot_id, self._current_id)
        if not 1 <= snapshot_id <= self._current_id:
            raise InvalidSnapshotId(snapshot_id, self._current_id)

    def __repr__(self) -> str:
        return f"SnapshotStore(current_id={self._current_id}, tracked={len(self._balances)})"
