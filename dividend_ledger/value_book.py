"""
value_book.py - External value held outside the ledger

The ledger custodies value but never moves it itself; it asks a PaymentChannel
to pay. ValueBook is the in-memory implementation: a map of address balances
where any address may register a receive hook. The hook runs after value lands
and may execute arbitrary code, including calls back into the ledger. A hook
that raises rejects the incoming value, and the move is reverted.

Classes:
- PaymentChannel: Protocol the ledger pays through
- ValueBook: Address balances with receive hooks
- CustodyChannel: PaymentChannel paying out of one ValueBook address
"""

from __future__ import annotations
from typing import Callable, Dict, Optional, Protocol, runtime_checkable

from .core import TransferFailed
from .fixed_point import require_amount


# Hook signature: (sender, amount) -> None; raise to reject the value.
ReceiveHook = Callable[[str, int], None]

# Runs after the recipient's hook; raise to revert the move.
Confirm = Callable[[], None]


@runtime_checkable
class PaymentChannel(Protocol):
    """
    Outgoing value transfer used by the ledger.

    pay() must raise if the recipient did not end up with the value, and must
    revert the payment if confirm raises.
    """

    def pay(self, recipient: str, amount: int, confirm: Optional[Confirm] = None) -> None:
        ...


class ValueBook:
    """
    Balances of external value per address.

    Example:
        book = ValueBook()
        book.credit("owner", 10 * ONE_SHARE)
        book.transfer("owner", "alice", ONE_SHARE)
        book.balance_of("alice")
    """

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self._receivers: Dict[str, ReceiveHook] = {}

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def credit(self, address: str, amount: int) -> None:
        """Create value at an address out of nothing (funding for simulations)."""
        require_amount(amount)
        self.balances[address] = self.balance_of(address) + amount

    def register_receiver(self, address: str, hook: ReceiveHook) -> None:
        """
        Attach a receive hook to an address.

        Raises:
            ValueError: If the address already has a hook
        """
        if address in self._receivers:
            raise ValueError(f"Receiver already registered for {address}")
        self._receivers[address] = hook

    def has_receiver(self, address: str) -> bool:
        return address in self._receivers

    def transfer(
        self, sender: str, recipient: str, amount: int, confirm: Optional[Confirm] = None
    ) -> None:
        """
        Move value, notify the recipient's hook, then run confirm.

        The move is reverted if the hook or confirm raises.

        Raises:
            TransferFailed: If the sender lacks funds or the recipient rejects the value
        """
        require_amount(amount)
        available = self.balance_of(sender)
        if available < amount:
            raise TransferFailed(
                f"insufficient funds: {sender} holds {available}, needs {amount}"
            )
        self.balances[sender] = available - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

        hook = self._receivers.get(recipient)
        try:
            if hook is not None:
                hook(sender, amount)
            if confirm is not None:
                confirm()
        except Exception as exc:
            self.balances[recipient] -= amount
            self.balances[sender] += amount
            raise TransferFailed(f"{recipient} rejected {amount} from {sender}: {exc}") from exc

    def channel(self, address: str) -> CustodyChannel:
        """Return a PaymentChannel that pays out of address."""
        return CustodyChannel(self, address)

    def __repr__(self):
        return f"ValueBook({len(self.balances)} addresses, {len(self._receivers)} receivers)"


class CustodyChannel:
    """PaymentChannel backed by one address of a ValueBook."""

    def __init__(self, book: ValueBook, address: str):
        self.book = book
        self.address = address

    def pay(self, recipient: str, amount: int, confirm: Optional[Confirm] = None) -> None:
        self.book.transfer(self.address, recipient, amount, confirm)

    def __repr__(self):
        return f"CustodyChannel({self.address})"
