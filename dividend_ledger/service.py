"""
service.py - Dividend ledger façade

LedgerService composes the share ledger, the profit accumulator and the
withdrawal guard around one LedgerState. It is the only entry point that
mutates state, so every change is gated, audited and reversible.

Key responsibilities:
    - Owner gating for mint, emergency_withdraw and toggle_lock
    - Executes each operation atomically (snapshot, run, audit, commit or restore)
    - Routes inbound value to the accumulator as a deposit
    - Pays withdrawals through a PaymentChannel under the re-entrancy guard
    - Emits notifications only for committed operations
    - Halts permanently on an invariant violation
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple, Type

from .core import (
    # State
    LedgerState,
    # Constants
    SCALE_FACTOR, DEFAULT_SHARE_CAP, TOKEN_DECIMALS,
    # Exceptions
    NotOwner, WithdrawalsLocked, NoShares, ReentrantCall, PaymentFailed, InvariantViolation,
    # Notifications
    Notification, FundsReceived, SharesMinted, SharesTransferred, ApprovalSet,
    Withdrawal, EmergencyWithdrawal, LockToggled,
)
from .fixed_point import checked_add, require_amount
from .guard import WithdrawalGuard
from .profit import ProfitAccumulator
from .shares import ShareLedger
from .value_book import Confirm, PaymentChannel, ValueBook


Listener = Callable[[Notification], None]


class LedgerService:
    """
    Share-based value-distribution ledger.

    Implements the LedgerView protocol for read-only access.

    Design Principles:
        - Pull model: deposits only raise profit_per_share; holders withdraw.
        - All-or-nothing: a failed operation, including a failed payment,
          leaves no trace in state or notifications.
        - Always audits (unless audit=False): invariants are checked after
          every mutation, before commit.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own instance.

    Example:
        book = ValueBook()
        ledger = deploy(book, owner="owner", verbose=False)
        ledger.mint("owner", "alice", 60 * ONE_SHARE)
        book.credit("owner", ONE_SHARE)
        book.transfer("owner", ledger.address, ONE_SHARE)   # deposit
        ledger.toggle_lock("owner")
        ledger.withdraw("alice")
    """

    def __init__(
        self,
        owner: str,
        name: str = "Dividend Token",
        symbol: str = "DTK",
        share_cap: int = DEFAULT_SHARE_CAP,
        scale_factor: int = SCALE_FACTOR,
        payments: Optional[PaymentChannel] = None,
        address: str = "dtoken",
        verbose: bool = True,
        audit: bool = True,
    ):
        """
        Create a ledger.

        Args:
            owner: Address allowed to mint, sweep and toggle the lock
            name: Token name
            symbol: Token symbol
            share_cap: Maximum total shares ever in existence
            scale_factor: Fixed-point magnitude of profit_per_share
            payments: Channel used to pay out withdrawals and sweeps
            address: This ledger's own address on the value book
            verbose: Print one line per applied or rejected operation (default: True)
            audit: Check all invariants after every mutation (default: True)
        """
        if not owner or not owner.strip():
            raise ValueError("Owner address cannot be empty")
        self._owner = owner
        self.name = name
        self.symbol = symbol
        self.decimals = TOKEN_DECIMALS
        self.address = address
        self.payments = payments
        self.verbose = verbose
        self.audit = audit

        self.state = LedgerState(share_cap=share_cap, scale_factor=scale_factor)
        self.profits = ProfitAccumulator(self.state)
        self.shares = ShareLedger(self.state, self.profits)
        self.guard = WithdrawalGuard(self.state)

        self.notifications: List[Notification] = []
        self._listeners: List[Listener] = []
        self._pending: List[Tuple[Type[Notification], Dict[str, Any]]] = []
        self._next_sequence: int = 0
        self._depth: int = 0
        self._halted: Optional[str] = None

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only)
    # ========================================================================

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def locked(self) -> bool:
        return self.state.locked_for_withdrawal

    @property
    def halted(self) -> bool:
        return self._halted is not None

    @property
    def share_cap(self) -> int:
        return self.state.share_cap

    @property
    def profit_per_share(self) -> int:
        return self.state.profit_per_share

    @property
    def reserved_value(self) -> int:
        return self.state.reserved_value

    def balance_of(self, address: str) -> int:
        return self.shares.balance_of(address)

    def total_supply(self) -> int:
        return self.shares.total_supply()

    def allowance(self, holder: str, spender: str) -> int:
        return self.shares.allowance(holder, spender)

    def holders(self) -> Set[str]:
        return self.shares.holders()

    def withdrawable_of(self, address: str) -> int:
        """Value the address would receive from withdraw() right now (0 if unknown)."""
        acct = self.state.get_account(address)
        if acct is None:
            return 0
        return self.profits.withdrawable_of(acct)

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check every accounting invariant without raising.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all invariants hold
            - 'total_shares': recorded supply
            - 'computed_supply': sum of balances
            - 'total_withdrawable': sum of every account's withdrawable amount
            - 'reserved_value': value in custody
            - 'discrepancies': List[str] describing each violation

        Example:
            result = ledger.verify_invariants()
            assert result['valid'], result['discrepancies']
        """
        state = self.state
        discrepancies: List[str] = []

        computed = self.shares.computed_supply()
        try:
            self.shares.check_supply()
        except InvariantViolation as exc:
            discrepancies.append(str(exc))

        total_withdrawable = 0
        for address in sorted(state.accounts):
            try:
                outstanding = self.profits.scaled_withdrawable(state.accounts[address])
            except InvariantViolation as exc:
                discrepancies.append(str(exc))
                continue
            total_withdrawable += outstanding // state.scale_factor

        if total_withdrawable > state.reserved_value + state.swept_value:
            discrepancies.append(
                f"withdrawable {total_withdrawable} exceeds custody "
                f"{state.reserved_value} (+{state.swept_value} swept)"
            )

        return {
            'valid': not discrepancies,
            'total_shares': state.total_shares,
            'computed_supply': computed,
            'total_withdrawable': total_withdrawable,
            'reserved_value': state.reserved_value,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def subscribe(self, listener: Listener) -> None:
        """Register a callback invoked with each notification after commit."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _emit(self, kind: Type[Notification], **fields: Any) -> None:
        self._pending.append((kind, fields))

    def _flush(self) -> None:
        pending, self._pending = self._pending, []
        committed = []
        for kind, fields in pending:
            note = kind(sequence=self._next_sequence, **fields)
            self._next_sequence += 1
            self.notifications.append(note)
            committed.append(note)
        for note in committed:
            for listener in list(self._listeners):
                listener(note)

    # ========================================================================
    # TRANSACTION EXECUTION
    # ========================================================================

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

    def _audit(self, before: LedgerState) -> None:
        if self.state.profit_per_share < before.profit_per_share:
            raise InvariantViolation(
                f"profit_per_share decreased: {before.profit_per_share} -> {self.state.profit_per_share}"
            )
        result = self.verify_invariants()
        if not result['valid']:
            raise InvariantViolation("; ".join(result['discrepancies']))

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """
        Run a block as one atomic operation.

        On any exception the state snapshot is restored and the block's
        notifications are discarded. Calls made while a payment is in flight
        nest inside the outer transaction and commit or roll back with it.
        Notifications are published only when the outermost block commits.

        Raises:
            InvariantViolation: If the ledger is halted, or the audit fails
                                (which halts the ledger)
        """
        if self._halted is not None:
            raise InvariantViolation(f"ledger halted: {self._halted}")

        snapshot = self.state.clone()
        mark = len(self._pending)
        self._depth += 1
        try:
            yield
            if self.audit:
                self._audit(snapshot)
        except InvariantViolation as exc:
            self.state.restore(snapshot)
            del self._pending[mark:]
            self._halted = str(exc)
            self._log(f"✗ HALTED: {operation}: {exc}")
            raise
        except Exception as exc:
            self.state.restore(snapshot)
            del self._pending[mark:]
            self._log(f"✗ REJECTED: {operation}: {exc}")
            raise
        finally:
            self._depth -= 1

        self._log(f"✓ APPLIED: {operation}")
        if self._depth == 0:
            self._flush()

    def _only_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise NotOwner("Ownable: caller is not the owner")

    def _refuse_if_reentered(self) -> None:
        if self.guard.reentered:
            raise ReentrantCall("re-entrant withdrawal during payment")

    def _pay(self, recipient: str, amount: int, failure: str, confirm: Optional[Confirm] = None) -> None:
        if self.payments is None:
            raise PaymentFailed(f"{failure}: no payment channel configured")
        try:
            self.payments.pay(recipient, amount, confirm)
        except Exception as exc:
            raise PaymentFailed(f"{failure}: {exc}") from exc

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def deposit(self, sender: str, amount: int) -> int:
        """
        Accept inbound value and distribute it over the current shares.

        Returns:
            The scaled per-share delta applied.

        Raises:
            NothingToDistribute: If no shares exist
        """
        with self._transaction(f"deposit {amount} from {sender}"):
            require_amount(amount)
            delta = self.profits.on_deposit(amount)
            self.state.reserved_value = checked_add(self.state.reserved_value, amount)
            self._emit(FundsReceived, sender=sender, amount=amount, per_share_delta=delta)
        return delta

    def receive(self, sender: str, amount: int) -> None:
        """Receive hook for a ValueBook: every inbound transfer is a deposit."""
        self.deposit(sender, amount)

    def mint(self, caller: str, to: str, amount: int) -> None:
        """
        Raises:
            NotOwner: If caller is not the owner
            CapExceeded: If the mint would pass the share cap
        """
        with self._transaction(f"mint {amount} to {to}"):
            self._only_owner(caller)
            self.shares.mint(to, amount)
            self._emit(SharesMinted, to=to, amount=amount)

    def transfer(self, source: str, dest: str, amount: int) -> None:
        """
        Raises:
            InsufficientShares: If source holds fewer than amount shares
        """
        with self._transaction(f"transfer {amount} {source}->{dest}"):
            self.shares.transfer(source, dest, amount)
            self._emit(SharesTransferred, source=source, dest=dest, amount=amount)

    def approve(self, holder: str, spender: str, amount: int) -> None:
        with self._transaction(f"approve {spender} for {amount} of {holder}"):
            self.shares.approve(holder, spender, amount)
            self._emit(ApprovalSet, holder=holder, spender=spender, amount=amount)

    def transfer_from(self, spender: str, source: str, dest: str, amount: int) -> None:
        """
        Raises:
            InsufficientAllowance: If spender may not move amount of source's shares
            InsufficientShares: If source holds fewer than amount shares
        """
        with self._transaction(f"transfer_from {amount} {source}->{dest} by {spender}"):
            self.shares.transfer_from(spender, source, dest, amount)
            self._emit(SharesTransferred, source=source, dest=dest, amount=amount)

    def withdraw(self, caller: str) -> int:
        """
        Pay the caller everything accrued to their shares so far.

        Settlement and the custody reduction are applied before the payment;
        if the payment fails they are rolled back with the rest of the operation.

        Returns:
            The amount paid (0 when nothing accrued since the last withdrawal).

        Raises:
            ReentrantCall: If entered while another withdrawal is paying out
            WithdrawalsLocked: If the ledger is locked
            NoShares: If the caller holds no shares
            PaymentFailed: If the payment failed, including a re-entrant
                           withdrawal attempted by the recipient
        """
        with self._transaction(f"withdraw {caller}"):
            with self.guard.acquire():
                if self.state.locked_for_withdrawal:
                    raise WithdrawalsLocked("contract is currently locked")
                acct = self.state.get_account(caller)
                if acct is None or acct.shares == 0:
                    raise NoShares("DToken: caller possess no shares")

                amount = self.profits.settle(acct)
                if amount > self.state.reserved_value:
                    raise PaymentFailed(
                        f"DToken: Could not withdraw eth: {amount} owed, "
                        f"{self.state.reserved_value} in custody"
                    )
                self.state.reserved_value -= amount
                self._emit(Withdrawal, account=caller, amount=amount)
                self._pay(caller, amount, "DToken: Could not withdraw eth", self._refuse_if_reentered)
                # channels that ignore confirm
                if self.guard.reentered:
                    raise PaymentFailed("DToken: Could not withdraw eth: re-entrant withdrawal during payment")
        return amount

    def emergency_withdraw(self, caller: str) -> int:
        """
        Sweep all custodied value to the owner.

        Ignores the lock and every account's entitlement; debts and
        profit_per_share are left as they are.

        Returns:
            The amount swept.

        Raises:
            NotOwner: If caller is not the owner
            PaymentFailed: If the owner could not be paid
        """
        with self._transaction(f"emergency_withdraw by {caller}"):
            self._only_owner(caller)
            amount = self.state.reserved_value
            self.state.reserved_value = 0
            self.state.swept_value = checked_add(self.state.swept_value, amount)
            self._emit(EmergencyWithdrawal, owner=caller, amount=amount)
            self._pay(self._owner, amount, "emergency sweep failed")
        return amount

    def toggle_lock(self, caller: str) -> bool:
        """
        Flip the withdrawal lock.

        Returns:
            The new lock state (True = locked).

        Raises:
            NotOwner: If caller is not the owner
        """
        with self._transaction(f"toggle_lock by {caller}"):
            self._only_owner(caller)
            self.state.locked_for_withdrawal = not self.state.locked_for_withdrawal
            self._emit(LockToggled, locked=self.state.locked_for_withdrawal)
        return self.state.locked_for_withdrawal

    def __repr__(self) -> str:
        return (
            f"LedgerService({self.symbol}: supply={self.state.total_shares}/{self.state.share_cap}, "
            f"custody={self.state.reserved_value}, locked={self.state.locked_for_withdrawal})"
        )


def deploy(book: ValueBook, owner: str, address: str = "dtoken", **kwargs: Any) -> LedgerService:
    """
    Create a ledger living at address on a ValueBook.

    Payments go out of address, and every transfer into address is routed
    to LedgerService.receive as a deposit.

    Args:
        book: Value book holding the ledger's custody
        owner: Owner address
        address: The ledger's address on the book
        **kwargs: Passed through to LedgerService

    Returns:
        The wired LedgerService
    """
    service = LedgerService(owner, payments=book.channel(address), address=address, **kwargs)
    book.register_receiver(address, service.receive)
    return service
