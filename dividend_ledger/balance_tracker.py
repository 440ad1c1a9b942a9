"""
balance_tracker.py - Sampling oracle for externally held value

Records successive balance observations per address and reports what an
address earned between samples. Used to verify withdrawals from the outside;
the ledger never reads it.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class BalanceSource(Protocol):
    """Anything that can report an address's current external balance."""

    def balance_of(self, address: str) -> int:
        ...


class BalanceTracker:
    """
    Per-address history of balance samples.

    Example:
        tracker = BalanceTracker(book)
        tracker.push_multiple(["alice", "bob"])
        ...  # withdrawals happen
        tracker.push_multiple(["alice", "bob"])
        tracker.total_earned("alice")
    """

    def __init__(self, source: BalanceSource):
        self.source = source
        self.samples: Dict[str, List[int]] = {}

    def push(self, address: str) -> int:
        """Sample the address's current balance and return it."""
        balance = self.source.balance_of(address)
        self.samples.setdefault(address, []).append(balance)
        return balance

    def push_multiple(self, addresses: Iterable[str]) -> None:
        for address in addresses:
            self.push(address)

    def total_earned(self, address: str) -> Optional[int]:
        """Last sample minus first sample."""
        history = self.samples.get(address)
        if history is None:
            return None
        if len(history) <= 1:
            return 0
        return history[-1] - history[0]

    def last_earned(self, address: str) -> Optional[int]:
        """Last sample minus the one before it."""
        history = self.samples.get(address)
        if history is None:
            return None
        if len(history) <= 1:
            return 0
        return history[-1] - history[-2]

    def __repr__(self):
        total = sum(len(h) for h in self.samples.values())
        return f"BalanceTracker({len(self.samples)} addresses, {total} samples)"
