"""
test_attacks.py - Hostile recipients and withdrawal subtleties

A recipient's receive hook runs while the ledger is paying it. These tests
check that nothing it does can move value out twice or leave a withdrawal
half applied:
- A re-entrant withdraw() from inside the payment, re-raised or swallowed
- A recipient that refuses value
- A withdrawal larger than what is left after an emergency sweep
"""

import pytest

from dividend_ledger import (
    PaymentFailed, ReentrantCall, Withdrawal, GuardState,
)


@pytest.fixture
def open_ledger(ledger, ether):
    """Ledger with alice as sole holder of 10 shares."""
    ledger.mint("owner", "alice", ether(10))
    return ledger


class TestReentrancy:

    @pytest.fixture
    def attacked(self, book, ledger, attacker, deposit, ether):
        ledger.mint("owner", "alice", ether(10))
        ledger.mint("owner", attacker.address, ether(10))
        deposit(ether(1))
        ledger.toggle_lock("owner")
        return ledger

    def test_resistant_to_reentrancy(self, attacked, attacker):
        """The nested withdraw is refused and the outer one fails as a whole."""
        with pytest.raises(PaymentFailed, match="DToken: Could not withdraw eth"):
            attacker.invoke_withdraw()

        assert len(attacker.inner_errors) == 1
        assert isinstance(attacker.inner_errors[0], ReentrantCall)

    def test_no_partial_settlement_retained(self, book, attacked, attacker, ether):
        """Debt, custody and the guard are exactly as before the attempt."""
        debt_before = attacked.state.accounts[attacker.address].payout_debt

        with pytest.raises(PaymentFailed):
            attacker.invoke_withdraw()

        assert attacked.state.accounts[attacker.address].payout_debt == debt_before
        assert attacked.withdrawable_of(attacker.address) == ether(0.5)
        assert attacked.reserved_value == ether(1)
        assert book.balance_of(attacked.address) == ether(1)
        assert book.balance_of(attacker.address) == 0
        assert attacked.guard.status is GuardState.IDLE

    def test_no_notification_for_failed_withdrawal(self, attacked, attacker):
        with pytest.raises(PaymentFailed):
            attacker.invoke_withdraw()
        assert not any(isinstance(n, Withdrawal) for n in attacked.notifications)

    def test_other_holders_unaffected(self, book, attacked, attacker, ether):
        with pytest.raises(PaymentFailed):
            attacker.invoke_withdraw()
        assert attacked.withdraw("alice") == ether(0.5)
        assert book.balance_of("alice") == ether(0.5)


class TestNonReceivable:

    @pytest.fixture
    def stuck(self, ledger, non_receivable, deposit, ether):
        ledger.mint("owner", non_receivable.address, ether(10))
        deposit(ether(1))
        ledger.toggle_lock("owner")
        return ledger

    def test_failed_payment_reverts(self, book, stuck, non_receivable, ether):
        """Neither side's balance moves when the recipient refuses value."""
        assert book.balance_of(non_receivable.address) == 0

        with pytest.raises(PaymentFailed, match="DToken: Could not withdraw eth"):
            non_receivable.invoke_withdraw(stuck)

        assert book.balance_of(non_receivable.address) == 0
        assert book.balance_of(stuck.address) == ether(1)
        assert stuck.withdrawable_of(non_receivable.address) == ether(1)

    def test_can_retry_after_failure(self, stuck, non_receivable):
        """A failed withdrawal does not wedge the guard."""
        for _ in range(2):
            with pytest.raises(PaymentFailed):
                non_receivable.invoke_withdraw(stuck)
        assert not stuck.guard.busy
        assert stuck.verify_invariants()['valid']


class TestCustodyShortfall:

    def test_withdraw_after_sweep(self, book, open_ledger, deposit, ether):
        """Entitlements survive a sweep but cannot be paid from empty custody."""
        deposit(ether(1))
        open_ledger.emergency_withdraw("owner")
        open_ledger.toggle_lock("owner")

        with pytest.raises(PaymentFailed, match="in custody"):
            open_ledger.withdraw("alice")

        assert open_ledger.withdrawable_of("alice") == ether(1)
        assert book.balance_of("alice") == 0



class TestSwallowedReentrancy:
    """The recipient catches the refused inner withdraw and lets its payment succeed."""

    @pytest.fixture
    def attacked(self, ledger, swallowing_attacker, deposit, ether):
        ledger.mint("owner", swallowing_attacker.address, ether(10))
        deposit(ether(1))
        ledger.toggle_lock("owner")
        return ledger

    def test_outer_withdraw_still_fails(self, attacked, swallowing_attacker):
        """Hiding the ReentrantCall does not let the outer payment commit."""
        with pytest.raises(PaymentFailed, match="DToken: Could not withdraw eth"):
            swallowing_attacker.invoke_withdraw()

        assert len(swallowing_attacker.inner_errors) == 1
        assert isinstance(swallowing_attacker.inner_errors[0], ReentrantCall)

    def test_settlement_and_custody_rolled_back(self, book, attacked, swallowing_attacker, ether):
        address = swallowing_attacker.address
        debt_before = attacked.state.accounts[address].payout_debt

        with pytest.raises(PaymentFailed):
            swallowing_attacker.invoke_withdraw()

        assert attacked.state.accounts[address].payout_debt == debt_before
        assert attacked.withdrawable_of(address) == ether(1)
        assert attacked.reserved_value == ether(1)
        assert book.balance_of(attacked.address) == ether(1)
        assert book.balance_of(address) == 0
        assert not any(isinstance(n, Withdrawal) for n in attacked.notifications)

    def test_honest_withdraw_afterwards(self, attacked, book, deposit, ether):
        """The refused attempt does not taint the next withdrawal."""
        with pytest.raises(PaymentFailed):
            attacked.withdraw("swallower")

        attacked.mint("owner", "alice", ether(10))
        deposit(ether(2))

        assert attacked.withdraw("alice") == ether(1)
        assert book.balance_of("alice") == ether(1)
