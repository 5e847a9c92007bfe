"""In-process cash ledger used by the standalone server and tests."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class Wallet:
    """A plain cash balance that satisfies the CashLedger protocol."""

    def __init__(self, balance: float = 0.0) -> None:
        if balance < 0:
            raise ValueError(f"Starting balance must be >= 0, got {balance}")
        self._balance = float(balance)

    @property
    def balance(self) -> float:
        return self._balance

    def debit(self, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"Debit amount must be >= 0, got {amount}")
        if amount > self._balance:
            raise ValueError(f"Cannot debit {amount:.2f} from balance {self._balance:.2f}")
        self._balance -= amount
        logger.debug("Debited %.2f, balance %.2f", amount, self._balance)

    def credit(self, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be >= 0, got {amount}")
        self._balance += amount
        logger.debug("Credited %.2f, balance %.2f", amount, self._balance)
