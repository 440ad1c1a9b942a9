"""
shares.py - Capped share ledger

Share balances, total supply and the mint cap. Every change to a balance is
reported to the ProfitAccumulator in the same call, so dividend entitlement is
never gained or lost retroactively:

    mint      -> new shares are seeded with debt at the current accumulator
    transfer  -> debt moves together with the shares

Owner gating is the service's concern; this module only enforces quantities.
"""

from __future__ import annotations
from typing import Set

from .core import LedgerState, InsufficientShares, InsufficientAllowance, InvariantViolation
from .fixed_point import require_amount, check_mint_cap
from .profit import ProfitAccumulator


class ShareLedger:
    """
    Per-account share balances with a fixed supply cap.

    Example:
        state = LedgerState(share_cap=100)
        shares = ShareLedger(state, ProfitAccumulator(state))
        shares.mint("alice", 60)
        shares.transfer("alice", "bob", 20)
    """

    def __init__(self, state: LedgerState, profits: ProfitAccumulator):
        self.state = state
        self.profits = profits

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def share_cap(self) -> int:
        return self.state.share_cap

    def balance_of(self, address: str) -> int:
        acct = self.state.get_account(address)
        return acct.shares if acct else 0

    def total_supply(self) -> int:
        return self.state.total_shares

    def holders(self) -> Set[str]:
        return set(self.state.accounts)

    def allowance(self, holder: str, spender: str) -> int:
        acct = self.state.get_account(holder)
        return acct.allowances.get(spender, 0) if acct else 0

    def computed_supply(self) -> int:
        """Sum of all balances, sorted for a deterministic accumulation order."""
        return sum(self.state.accounts[a].shares for a in sorted(self.state.accounts))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def mint(self, to: str, amount: int) -> None:
        """
        Create amount new shares for an address.

        Raises:
            CapExceeded: If total supply would exceed the share cap
        """
        require_amount(amount)
        new_total = check_mint_cap(self.state.total_shares, amount, self.state.share_cap)
        acct = self.state.account(to)
        self.profits.on_mint(acct, amount)
        acct.shares += amount
        self.state.total_shares = new_total

    def transfer(self, source: str, dest: str, amount: int) -> None:
        """
        Move shares between addresses, carrying their payout debt along.

        Raises:
            InsufficientShares: If source holds fewer than amount shares
        """
        require_amount(amount)
        src = self.state.get_account(source)
        held = src.shares if src else 0
        if held < amount:
            raise InsufficientShares(
                f"transfer amount exceeds balance: {source} holds {held}, needs {amount}"
            )
        src = self.state.account(source)
        dst = self.state.account(dest)
        self.profits.on_transfer(src, dst, amount)
        src.shares -= amount
        dst.shares += amount

    def approve(self, holder: str, spender: str, amount: int) -> None:
        require_amount(amount)
        if not spender or not spender.strip():
            raise ValueError("Spender address cannot be empty")
        self.state.account(holder).allowances[spender] = amount

    def transfer_from(self, spender: str, source: str, dest: str, amount: int) -> None:
        """
        Move shares on behalf of source, consuming spender's allowance.

        Raises:
            InsufficientAllowance: If the allowance is smaller than amount
            InsufficientShares: If source holds fewer than amount shares
        """
        require_amount(amount)
        allowed = self.allowance(source, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"insufficient allowance: {spender} may move {allowed} of {source}'s shares, needs {amount}"
            )
        self.transfer(source, dest, amount)
        self.state.account(source).allowances[spender] = allowed - amount

    def check_supply(self) -> None:
        """
        Raises:
            InvariantViolation: If total_shares drifted from the sum of balances
                                or exceeds the cap
        """
        actual = self.computed_supply()
        if actual != self.state.total_shares:
            raise InvariantViolation(
                f"total_shares drift: recorded {self.state.total_shares}, balances sum to {actual}"
            )
        if self.state.total_shares > self.state.share_cap:
            raise InvariantViolation(
                f"total_shares {self.state.total_shares} above cap {self.state.share_cap}"
            )
