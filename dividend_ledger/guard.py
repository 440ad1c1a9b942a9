"""
guard.py - Re-entrancy latch for withdrawals

A two-state machine, IDLE and BUSY. A withdrawal holds the guard for its whole
duration, including the outgoing payment where recipient code may run. Any
withdrawal entered while the guard is BUSY is a re-entrant call and fails.
"""

from __future__ import annotations
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from .core import LedgerState, ReentrantCall


class GuardState(Enum):
    IDLE = "idle"
    BUSY = "busy"


class WithdrawalGuard:
    """
    Scoped IDLE -> BUSY -> IDLE latch.

    The state is mirrored into LedgerState.reentrancy_busy so snapshots and
    audits see it. reentered records that a re-entrant acquire was refused
    while the current holder was BUSY, even if the caller swallowed the error.

    Example:
        guard = WithdrawalGuard(state)
        with guard.acquire():
            pay_out()
    """

    def __init__(self, state: LedgerState):
        self.state = state
        self._status = GuardState.IDLE
        self.reentered = False

    @property
    def status(self) -> GuardState:
        return self._status

    @property
    def busy(self) -> bool:
        return self._status is GuardState.BUSY

    @contextmanager
    def acquire(self) -> Iterator[None]:
        """
        Hold the guard for the duration of the block.

        Released on every exit path, including exceptions.

        Raises:
            ReentrantCall: If the guard is already held
        """
        if self._status is GuardState.BUSY:
            self.reentered = True
            raise ReentrantCall("ReentrancyGuard: reentrant call")
        self._status = GuardState.BUSY
        self.reentered = False
        self.state.reentrancy_busy = True
        try:
            yield
        finally:
            self._status = GuardState.IDLE
            self.state.reentrancy_busy = False
