"""
conftest.py - Shared pytest fixtures for dividend ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Value books and deployed ledgers (empty, with 60/40 holders, funded)
- Hostile recipients (a recipient rejecting value, a re-entrant attacker)
- Balance trackers for observing withdrawals from the outside
"""

import pytest
from decimal import Decimal

from dividend_ledger import (
    LedgerService, ValueBook, BalanceTracker, deploy,
    ONE_SHARE,
)


OWNER = "owner"
ALICE = "alice"
BOB = "bob"
OSCAR = "oscar"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def to_units(amount) -> int:
    """Convert a human amount (1.5) to base units at 18 decimals."""
    return int(Decimal(str(amount)) * ONE_SHARE)


def send_value(book: ValueBook, sender: str, ledger: LedgerService, amount: int) -> None:
    """Fund sender and transfer amount to the ledger (a deposit)."""
    book.credit(sender, amount)
    book.transfer(sender, ledger.address, amount)


class NonReceivable:
    """Receive hook that refuses every incoming payment."""

    def __init__(self, address: str):
        self.address = address

    def __call__(self, sender: str, amount: int) -> None:
        raise RuntimeError(f"{self.address} cannot receive value")

    def invoke_withdraw(self, ledger: LedgerService) -> int:
        return ledger.withdraw(self.address)


class ReentrancyAttacker:
    """Receive hook that calls withdraw() again while being paid."""

    def __init__(self, address: str, ledger: LedgerService):
        self.address = address
        self.ledger = ledger
        self.inner_errors = []

    def __call__(self, sender: str, amount: int) -> None:
        if sender != self.ledger.address:
            return
        try:
            self.ledger.withdraw(self.address)
        except Exception as exc:
            self.inner_errors.append(exc)
            raise

    def invoke_withdraw(self) -> int:
        return self.ledger.withdraw(self.address)


class SwallowingAttacker(ReentrancyAttacker):
    """Re-entrant hook that hides the refused inner withdraw and accepts the payment."""

    def __call__(self, sender: str, amount: int) -> None:
        if sender != self.ledger.address:
            return
        try:
            self.ledger.withdraw(self.address)
        except Exception as exc:
            self.inner_errors.append(exc)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def ether():
    """Amount conversion helper: ether(0.6) -> base units."""
    return to_units


@pytest.fixture
def book():
    """Empty value book."""
    return ValueBook()


@pytest.fixture
def ledger(book):
    """Ledger deployed on the book with no shares minted."""
    return deploy(book, OWNER, name="Dividend Token", symbol="DTK", verbose=False)


@pytest.fixture
def deposit(book, ledger):
    """Callable sending value from the owner into the ledger."""
    def _deposit(amount: int, sender: str = OWNER) -> None:
        send_value(book, sender, ledger, amount)
    return _deposit


@pytest.fixture
def holders_ledger(ledger):
    """Ledger with alice holding 60 shares and bob 40."""
    ledger.mint(OWNER, ALICE, to_units(60))
    ledger.mint(OWNER, BOB, to_units(40))
    return ledger


@pytest.fixture
def funded_ledger(holders_ledger, deposit):
    """60/40 ledger that received one unit of value, still locked."""
    deposit(to_units(1))
    return holders_ledger


@pytest.fixture
def tracker(book):
    """Balance tracker reading the book."""
    return BalanceTracker(book)


# =============================================================================
# HOSTILE RECIPIENTS
# =============================================================================

@pytest.fixture
def non_receivable(book):
    hook = NonReceivable("non_receivable")
    book.register_receiver(hook.address, hook)
    return hook


@pytest.fixture
def attacker(book, ledger):
    hook = ReentrancyAttacker("attacker", ledger)
    book.register_receiver(hook.address, hook)
    return hook


@pytest.fixture
def swallowing_attacker(book, ledger):
    hook = SwallowingAttacker("swallower", ledger)
    book.register_receiver(hook.address, hook)
    return hook
