"""
dividend_ledger - Share-Based Value Distribution Ledger

Holders of capped, mintable shares withdraw their exact pro-rata part of every
value deposit made while they held those shares, across mints, transfers and
repeated withdrawals.

Usage:
    from dividend_ledger import ValueBook, deploy, BalanceTracker, ONE_SHARE

    book = ValueBook()
    ledger = deploy(book, owner="owner")
    ledger.mint("owner", "alice", 60 * ONE_SHARE)
    ledger.mint("owner", "bob", 40 * ONE_SHARE)

    # Any value sent to the ledger's address is a deposit
    book.credit("owner", ONE_SHARE)
    book.transfer("owner", ledger.address, ONE_SHARE)

    # Holders pull their part once withdrawals are unlocked
    ledger.toggle_lock("owner")
    ledger.withdraw("alice")   # 0.6 * ONE_SHARE
"""

# Core types
from .core import (
    Account,
    LedgerState,
    LedgerView,
    Notification,
    FundsReceived,
    SharesMinted,
    SharesTransferred,
    ApprovalSet,
    Withdrawal,
    EmergencyWithdrawal,
    LockToggled,
    LedgerError,
    NotOwner,
    CapExceeded,
    InsufficientShares,
    InsufficientAllowance,
    NothingToDistribute,
    WithdrawalsLocked,
    NoShares,
    ReentrantCall,
    PaymentFailed,
    TransferFailed,
    ArithmeticOverflow,
    InvariantViolation,
    SCALE_FACTOR,
    TOKEN_DECIMALS,
    ONE_SHARE,
    DEFAULT_SHARE_CAP,
    UINT256_MAX,
)

# Fixed-point arithmetic
from .fixed_point import (
    checked_add,
    checked_sub,
    checked_mul,
    mul_div,
    check_mint_cap,
    per_share_delta,
    scaled_entitlement,
    require_amount,
)

# Components
from .shares import ShareLedger
from .profit import ProfitAccumulator
from .guard import WithdrawalGuard, GuardState

# Façade
from .service import LedgerService, deploy

# External collaborators
from .value_book import PaymentChannel, ValueBook, CustodyChannel
from .balance_tracker import BalanceSource, BalanceTracker

__all__ = [
    # Core
    'Account', 'LedgerState', 'LedgerView',
    'Notification', 'FundsReceived', 'SharesMinted', 'SharesTransferred', 'ApprovalSet',
    'Withdrawal', 'EmergencyWithdrawal', 'LockToggled',
    'LedgerError', 'NotOwner', 'CapExceeded', 'InsufficientShares', 'InsufficientAllowance',
    'NothingToDistribute', 'WithdrawalsLocked', 'NoShares', 'ReentrantCall',
    'PaymentFailed', 'TransferFailed', 'ArithmeticOverflow', 'InvariantViolation',
    'SCALE_FACTOR', 'TOKEN_DECIMALS', 'ONE_SHARE', 'DEFAULT_SHARE_CAP', 'UINT256_MAX',
    # Fixed-point
    'checked_add', 'checked_sub', 'checked_mul', 'mul_div', 'check_mint_cap',
    'per_share_delta', 'scaled_entitlement', 'require_amount',
    # Components
    'ShareLedger', 'ProfitAccumulator', 'WithdrawalGuard', 'GuardState',
    # Façade
    'LedgerService', 'deploy',
    # External collaborators
    'PaymentChannel', 'ValueBook', 'CustodyChannel',
    'BalanceSource', 'BalanceTracker',
]

__version__ = '1.0.0'
