"""
fixed_point.py - Checked integer arithmetic for the profit accumulator

All ledger quantities are ints bounded to the unsigned 256-bit range.
Python ints never overflow on their own, so every primitive here checks the
bound explicitly and raises ArithmeticOverflow instead of wrapping.

Scaled values:
    profit_per_share is kept multiplied by the scale factor, so a per-share
    profit of 0.01 units is stored as 0.01 * scale_factor. Converting back to
    whole units always multiplies first and divides last (mul_div), which keeps
    truncation to a single floor per conversion.
"""

from __future__ import annotations

from .core import UINT256_MAX, ArithmeticOverflow, CapExceeded


def require_amount(value: int, what: str = "amount") -> int:
    """
    Validate a caller-supplied quantity.

    Raises:
        ValueError: If value is not an int (bool excluded) or is negative
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{what} must be non-negative, got {value}")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{what} {value} exceeds UINT256_MAX")
    return value


def _bounded(result: int, op: str) -> int:
    if result < 0 or result > UINT256_MAX:
        raise ArithmeticOverflow(f"{op} result {result} outside uint256 range")
    return result


def checked_add(a: int, b: int) -> int:
    return _bounded(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _bounded(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _bounded(a * b, "mul")


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute floor(a * b / denominator) with the product range-checked.

    Raises:
        ArithmeticOverflow: If a * b leaves the uint256 range
        ZeroDivisionError: If denominator is 0
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return checked_mul(a, b) // denominator


def check_mint_cap(total: int, amount: int, cap: int) -> int:
    """
    Return the supply after minting amount, or raise if it would pass the cap.

    Raises:
        CapExceeded: If total + amount > cap
    """
    new_total = checked_add(total, amount)
    if new_total > cap:
        raise CapExceeded(f"amount surpasses max supply: {total} + {amount} > {cap}")
    return new_total


def per_share_delta(value: int, scale_factor: int, total_shares: int) -> int:
    """Scaled profit-per-share increase for distributing value over total_shares."""
    return mul_div(value, scale_factor, total_shares)


def scaled_entitlement(shares: int, profit_per_share: int) -> int:
    """Entitlement of shares at an accumulator value, in scaled units."""
    return checked_mul(shares, profit_per_share)
