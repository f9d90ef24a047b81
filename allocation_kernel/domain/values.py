"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    ``Money`` pairs a Decimal amount with an ISO 4217 currency code.  Bulk
    pricing packages carry their price as Money; the amount is never a float.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - ValueError on construction with a non-numeric amount or a malformed
      currency code.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always a Decimal (never float)
        - currency is a three-letter upper-case code
    """

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        amount = self.amount
        if isinstance(amount, float):
            raise ValueError("Money amount must not be a float; pass a str or Decimal")
        if not isinstance(amount, Decimal):
            try:
                amount = Decimal(str(amount))
            except InvalidOperation as exc:
                raise ValueError(f"Invalid money amount: {self.amount!r}") from exc
        if not amount.is_finite():
            raise ValueError(f"Money amount must be finite: {amount}")

        code = self.currency.upper().strip() if self.currency else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid ISO 4217 currency code: {self.currency}")

        # Override frozen to set normalized values
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(cls, amount: Any, currency: str) -> Money:
        return cls(amount=amount, currency=currency)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount}"
