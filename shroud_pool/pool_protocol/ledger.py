"""
Ledger boundary: value held by the pool, payouts, and the event log.

The hosting ledger owns native value movement. The pool only asks it to
accept attached value, to pay a fixed amount to a validated recipient, and
to publish events.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from .exceptions import TransferError
from .types import (
    PoolEvent,
    event_from_dict,
    format_recipient,
    to_recipient,
)

logger = logging.getLogger(__name__)

TransferHook = Callable[[bytes, int], None]


class Ledger(Protocol):
    def receive(self, amount: int) -> None:
        ...

    def transfer(self, recipient: bytes, amount: int) -> None:
        ...

    def emit(self, event: PoolEvent) -> None:
        ...


class InMemoryLedger:
    """
    Reference ledger with balance bookkeeping.

    ``on_transfer`` runs after the payout is booked, standing in for code the
    recipient gets to execute during a transfer.
    """

    def __init__(
        self,
        pool_balance: int = 0,
        on_transfer: Optional[TransferHook] = None,
    ) -> None:
        self.pool_balance = pool_balance
        self.balances: Dict[bytes, int] = {}
        self.events: List[PoolEvent] = []
        self.on_transfer = on_transfer

    def receive(self, amount: int) -> None:
        if amount < 0:
            raise TransferError("cannot receive a negative amount")
        self.pool_balance += amount

    def transfer(self, recipient: bytes, amount: int) -> None:
        if amount > self.pool_balance:
            raise TransferError(
                f"pool balance {self.pool_balance} cannot cover {amount}"
            )
        self.pool_balance -= amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        logger.debug("Paid %d to %s", amount, format_recipient(recipient))
        if self.on_transfer is None:
            return
        try:
            self.on_transfer(recipient, amount)
        except BaseException:
            self.balances[recipient] -= amount
            self.pool_balance += amount
            raise

    def emit(self, event: PoolEvent) -> None:
        self.events.append(event)

    def balance_of(self, recipient: bytes) -> int:
        return self.balances.get(recipient, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_balance": self.pool_balance,
            "balances": {
                format_recipient(k): v for k, v in sorted(self.balances.items())
            },
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryLedger":
        ledger = cls(pool_balance=int(data.get("pool_balance", 0)))
        for key, value in data.get("balances", {}).items():
            ledger.balances[to_recipient(key)] = int(value)
        ledger.events = [event_from_dict(e) for e in data.get("events", [])]
        return ledger
