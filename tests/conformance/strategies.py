"""
Shared hypothesis strategies and drivers for the conformance suite.

Operations are plain tuples so hypothesis can shrink them:
    ("mint", to, amount)
    ("transfer", source, dest, amount)
    ("deposit", amount)
    ("withdraw", holder)
    ("toggle",)
    ("sweep",)
"""

from typing import List

from hypothesis import strategies as st

from dividend_ledger import LedgerService, LedgerError, ValueBook, deploy, ONE_SHARE


OWNER = "owner"
HOLDERS = ["alice", "bob", "carol", "dave"]

holder = st.sampled_from(HOLDERS)

# Up to the whole default cap, with small values over-represented
share_amount = st.one_of(
    st.integers(min_value=0, max_value=1000),
    st.integers(min_value=0, max_value=100 * ONE_SHARE),
)

deposit_amount = st.one_of(
    st.integers(min_value=1, max_value=1000),
    st.integers(min_value=1, max_value=10 * ONE_SHARE),
)


def ledger_operation(sweeps: bool = False):
    choices = [
        st.tuples(st.just("mint"), holder, share_amount),
        st.tuples(st.just("transfer"), holder, holder, share_amount),
        st.tuples(st.just("deposit"), deposit_amount),
        st.tuples(st.just("withdraw"), holder),
        st.tuples(st.just("toggle")),
    ]
    if sweeps:
        choices.append(st.tuples(st.just("sweep")))
    return st.one_of(*choices)


def operations(max_size: int = 40, sweeps: bool = False):
    return st.lists(ledger_operation(sweeps), max_size=max_size)


class Driver:
    """Applies operations to a freshly deployed ledger and records flows."""

    def __init__(self, **kwargs):
        self.book = ValueBook()
        self.ledger: LedgerService = deploy(self.book, OWNER, verbose=False, **kwargs)
        self.deposited = 0
        self.deposits = 0
        self.paid = 0
        self.swept = 0
        self.rejected: List[tuple] = []

    def apply(self, op: tuple) -> None:
        """Apply one operation; expected rejections are recorded, not raised."""
        ledger = self.ledger
        kind = op[0]
        try:
            if kind == "mint":
                ledger.mint(OWNER, op[1], op[2])
            elif kind == "transfer":
                ledger.transfer(op[1], op[2], op[3])
            elif kind == "deposit":
                self.book.credit(OWNER, op[1])
                self.book.transfer(OWNER, ledger.address, op[1])
                self.deposited += op[1]
                self.deposits += 1
            elif kind == "withdraw":
                self.paid += ledger.withdraw(op[1])
            elif kind == "toggle":
                ledger.toggle_lock(OWNER)
            elif kind == "sweep":
                self.swept += ledger.emergency_withdraw(OWNER)
            else:
                raise ValueError(f"Unknown operation: {kind}")
        except LedgerError:
            self.rejected.append(op)

    def run(self, ops) -> "Driver":
        for op in ops:
            self.apply(op)
        return self

    def total_withdrawable(self) -> int:
        return sum(self.ledger.withdrawable_of(h) for h in self.ledger.holders())
