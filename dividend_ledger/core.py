"""
Core types for the dividend ledger.

This module provides the foundational data structures shared by every component:
1. Constants: scale factor, default share cap, integer bounds
2. Exceptions: LedgerError and domain-specific error types
3. Mutable state: Account and LedgerState (the single owned state object)
4. Notifications: immutable records emitted by the service on commit
5. Protocols: LedgerView for read-only access to ledger state

Amounts are plain Python ints throughout. Fractions of a unit never exist;
the scale factor only gives the profit-per-share accumulator sub-unit resolution.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Set, runtime_checkable
import copy


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point magnitude of the profit-per-share accumulator.
# A deposit of 1 unit over 100 shares raises profit_per_share by 10**9 / 100.
SCALE_FACTOR = 10 ** 9

# Shares carry 18 decimals, so one whole share is 10**18 base units.
TOKEN_DECIMALS = 18
ONE_SHARE = 10 ** TOKEN_DECIMALS

# Maximum number of shares that can ever be minted (100 whole shares).
DEFAULT_SHARE_CAP = 100 * ONE_SHARE

# Every stored quantity must fit an unsigned 256-bit word.
UINT256_MAX = 2 ** 256 - 1


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class NotOwner(LedgerError):
    """Raised when a non-owner calls an owner-only operation."""
    pass


class CapExceeded(LedgerError):
    """Raised when a mint would push total shares above the share cap."""
    pass


class InsufficientShares(LedgerError):
    """Raised when a transfer moves more shares than the source holds."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when a delegated transfer exceeds the spender's allowance."""
    pass


class NothingToDistribute(LedgerError):
    """Raised when value is deposited while no shares exist."""
    pass


class WithdrawalsLocked(LedgerError):
    """Raised when a withdrawal is attempted while the ledger is locked."""
    pass


class NoShares(LedgerError):
    """Raised when an account holding no shares attempts to withdraw."""
    pass


class ReentrantCall(LedgerError):
    """Raised when a withdrawal is entered while another one is in flight."""
    pass


class PaymentFailed(LedgerError):
    """Raised when the outgoing value payment of a withdrawal fails."""
    pass


class TransferFailed(LedgerError):
    """Raised when the value book cannot move value between addresses."""
    pass


class ArithmeticOverflow(LedgerError):
    """Raised when an integer result leaves the unsigned 256-bit range."""
    pass


class InvariantViolation(LedgerError):
    """
    Raised when an internal accounting invariant is broken.

    Not user-recoverable: the service halts and refuses further mutations.
    """
    pass


# ============================================================================
# LEDGER STATE
# ============================================================================

@dataclass(slots=True)
class Account:
    """
    Per-address bookkeeping.

    Attributes:
        address: Identity of the holder.
        shares: Share balance in base units.
        payout_debt: Entitlement already accounted for, in scaled units
                     (shares x profit_per_share, before division by the scale factor).
                     Signed: a seller's debt goes negative when shares leave.
        allowances: Spender -> shares the spender may move on this account's behalf.
    """
    address: str
    shares: int = 0
    payout_debt: int = 0
    allowances: Dict[str, int] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Account({self.address}: shares={self.shares}, debt={self.payout_debt})"


@dataclass(slots=True)
class LedgerState:
    """
    The single mutable state object of a ledger.

    Owned by the service and handed by reference to every component.
    Nothing else in the package holds accounting state.

    Attributes:
        share_cap: Upper bound on total_shares, fixed at construction.
        scale_factor: Fixed-point magnitude of profit_per_share.
        total_shares: Sum of all account share balances.
        profit_per_share: Cumulative distributed value per share, scaled.
        locked_for_withdrawal: Withdrawals are refused while True.
        reentrancy_busy: True only while a withdrawal payment is in flight.
        reserved_value: Value currently held in custody by the ledger.
        swept_value: Cumulative value removed by emergency sweeps.
        accounts: Address -> Account, created lazily.
    """
    share_cap: int
    scale_factor: int = SCALE_FACTOR
    total_shares: int = 0
    profit_per_share: int = 0
    locked_for_withdrawal: bool = True
    reentrancy_busy: bool = False
    reserved_value: int = 0
    swept_value: int = 0
    accounts: Dict[str, Account] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.share_cap, int) or self.share_cap < 0:
            raise ValueError(f"share_cap must be a non-negative int, got {self.share_cap!r}")
        if not isinstance(self.scale_factor, int) or self.scale_factor <= 0:
            raise ValueError(f"scale_factor must be a positive int, got {self.scale_factor!r}")

    def get_account(self, address: str) -> Optional[Account]:
        """Return the account for an address, or None if it was never created."""
        return self.accounts.get(address)

    def account(self, address: str) -> Account:
        """Return the account for an address, creating it on first use."""
        if not address or not address.strip():
            raise ValueError("Account address cannot be empty")
        acct = self.accounts.get(address)
        if acct is None:
            acct = Account(address)
            self.accounts[address] = acct
        return acct

    def clone(self) -> LedgerState:
        """
        Create a deep copy of this state.

        The copy is fully independent and is used as a rollback snapshot.
        """
        return LedgerState(
            share_cap=self.share_cap,
            scale_factor=self.scale_factor,
            total_shares=self.total_shares,
            profit_per_share=self.profit_per_share,
            locked_for_withdrawal=self.locked_for_withdrawal,
            reentrancy_busy=self.reentrancy_busy,
            reserved_value=self.reserved_value,
            swept_value=self.swept_value,
            accounts=copy.deepcopy(self.accounts),
        )

    def restore(self, snapshot: LedgerState) -> None:
        """
        Overwrite this state in place with the contents of a snapshot.

        Components keep their reference to this object, so restoring in place
        rolls all of them back at once.
        """
        self.share_cap = snapshot.share_cap
        self.scale_factor = snapshot.scale_factor
        self.total_shares = snapshot.total_shares
        self.profit_per_share = snapshot.profit_per_share
        self.locked_for_withdrawal = snapshot.locked_for_withdrawal
        self.reentrancy_busy = snapshot.reentrancy_busy
        self.reserved_value = snapshot.reserved_value
        self.swept_value = snapshot.swept_value
        self.accounts = copy.deepcopy(snapshot.accounts)


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Notification:
    """Base record for everything the service emits. sequence is assigned on commit."""
    sequence: int


@dataclass(frozen=True, slots=True)
class FundsReceived(Notification):
    """A deposit was accepted. per_share_delta is the scaled accumulator increase."""
    sender: str
    amount: int
    per_share_delta: int


@dataclass(frozen=True, slots=True)
class SharesMinted(Notification):
    to: str
    amount: int


@dataclass(frozen=True, slots=True)
class SharesTransferred(Notification):
    source: str
    dest: str
    amount: int


@dataclass(frozen=True, slots=True)
class ApprovalSet(Notification):
    holder: str
    spender: str
    amount: int


@dataclass(frozen=True, slots=True)
class Withdrawal(Notification):
    account: str
    amount: int


@dataclass(frozen=True, slots=True)
class EmergencyWithdrawal(Notification):
    owner: str
    amount: int


@dataclass(frozen=True, slots=True)
class LockToggled(Notification):
    locked: bool


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Functions accepting a LedgerView declare their read-only intent.
    LedgerService implements this protocol but also provides mutation methods.
    """

    @property
    def profit_per_share(self) -> int:
        ...

    @property
    def reserved_value(self) -> int:
        ...

    def balance_of(self, address: str) -> int:
        """Return the share balance of an address (0 if unknown)."""
        ...

    def total_supply(self) -> int:
        ...

    def withdrawable_of(self, address: str) -> int:
        """Return the value an address could withdraw right now."""
        ...

    def holders(self) -> Set[str]:
        """Return the set of addresses that have an account."""
        ...
