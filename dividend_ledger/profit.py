"""
profit.py - Profit-per-share accumulator and payout debt

=== DISTRIBUTION MODEL ===

Deposits are never pushed to holders. Each deposit raises one global number:

    profit_per_share += value * scale_factor // total_shares

An account's scaled entitlement is shares * profit_per_share. Its payout_debt
records the part of that entitlement it must not receive: value accrued before
its shares existed, or value it already withdrew. What it can withdraw is

    (shares * profit_per_share - payout_debt) // scale_factor

Debt is kept in scaled units so mint and transfer adjustments are exact:

    mint:      debt += amount * profit_per_share
    transfer:  source.debt -= amount * profit_per_share
               dest.debt   += amount * profit_per_share
    settle:    debt += paid * scale_factor

A mint or transfer therefore leaves every withdrawable amount unchanged; only
a later deposit moves it. The only rounding loss is the remainder of each
deposit's division by total_shares, which stays in custody.

Because debt is not truncated at each step, a payout can differ by up to
1 base unit from schemes that divide by scale_factor on every mint and settle.
"""

from __future__ import annotations

from .core import Account, LedgerState, InvariantViolation, NothingToDistribute
from .fixed_point import checked_add, checked_mul, per_share_delta, scaled_entitlement


class ProfitAccumulator:
    """
    Owns profit_per_share and the per-account payout debt.

    Operates on the shared LedgerState by reference; holds no state of its own.
    """

    def __init__(self, state: LedgerState):
        self.state = state

    @property
    def profit_per_share(self) -> int:
        return self.state.profit_per_share

    def on_deposit(self, value: int) -> int:
        """
        Distribute value over the current shares.

        Returns:
            The scaled per-share delta that was added.

        Raises:
            NothingToDistribute: If no shares exist
        """
        total = self.state.total_shares
        if total == 0:
            raise NothingToDistribute("No tokens minted")
        delta = per_share_delta(value, self.state.scale_factor, total)
        self.state.profit_per_share = checked_add(self.state.profit_per_share, delta)
        return delta

    def on_mint(self, account: Account, amount: int) -> None:
        account.payout_debt += scaled_entitlement(amount, self.state.profit_per_share)

    def on_transfer(self, source: Account, dest: Account, amount: int) -> None:
        delta = scaled_entitlement(amount, self.state.profit_per_share)
        source.payout_debt -= delta
        dest.payout_debt += delta

    def scaled_withdrawable(self, account: Account) -> int:
        """
        Outstanding entitlement in scaled units.

        Raises:
            InvariantViolation: If the result is negative
        """
        outstanding = scaled_entitlement(account.shares, self.state.profit_per_share) - account.payout_debt
        if outstanding < 0:
            raise InvariantViolation(
                f"negative entitlement for {account.address}: {outstanding}"
            )
        return outstanding

    def withdrawable_of(self, account: Account) -> int:
        """Whole units the account could withdraw now."""
        return self.scaled_withdrawable(account) // self.state.scale_factor

    def settle(self, account: Account) -> int:
        """
        Mark the account's outstanding entitlement as paid.

        The sub-unit remainder stays on the account and is paid once later
        deposits lift it over a whole unit.

        Returns:
            The amount that was outstanding before the update.
        """
        amount = self.withdrawable_of(account)
        account.payout_debt += checked_mul(amount, self.state.scale_factor)
        return amount
