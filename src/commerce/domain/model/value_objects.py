"""Immutable value types used by every aggregate: money, quantities,
order numbers and postal addresses.  Each one validates on construction.
"""

from __future__ import annotations

import secrets
import time
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from commerce.domain.exceptions import InvalidAmount, InvalidQuantity, ValidationError

DEFAULT_CURRENCY = "VND"
CENT = Decimal("0.01")


def generate_id() -> str:
    """Opaque identifier for new aggregates and child entities."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Money:
    """Non-negative Decimal amount in one currency, quantized to cents
    (half-up) on construction.  Mixing currencies raises ValidationError.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise InvalidAmount(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if not self.amount.is_finite():
            raise InvalidAmount(f"Money amount must be finite, got {self.amount}")
        if self.amount < Decimal("0"):
            raise InvalidAmount(f"Money amount cannot be negative, got {self.amount}")
        object.__setattr__(
            self, "amount", self.amount.quantize(CENT, rounding=ROUND_HALF_UP)
        )

    # --- Arithmetic ------------------------------------------------------------

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + self._amount_of(other), self.currency)

    def __sub__(self, other: Money) -> Money:
        result = self.amount - self._amount_of(other)
        if result < 0:
            raise InvalidAmount("Money subtraction would result in a negative amount")
        return Money(result, self.currency)

    def __mul__(self, factor: int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, int):
            return NotImplemented
        return Money(self.amount * factor, self.currency)

    def percent(self, rate: Decimal) -> Money:
        """Return ``rate`` percent of this amount, rounded half-up to cents."""
        return Money(self.amount * rate / Decimal("100"), self.currency)

    def __lt__(self, other: Money) -> bool:
        return self.amount < self._amount_of(other)

    def __le__(self, other: Money) -> bool:
        return self.amount <= self._amount_of(other)

    def __gt__(self, other: Money) -> bool:
        return self.amount > self._amount_of(other)

    def __ge__(self, other: Money) -> bool:
        return self.amount >= self._amount_of(other)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    def __str__(self) -> str:
        return f"{self.amount:,.2f} {self.currency}"

    def _amount_of(self, other: Money) -> Decimal:
        if self.currency != other.currency:
            raise ValidationError(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )
        return other.amount

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def of(amount: str | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Parse user input (``"150000"``, ``150000``) into Money."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise InvalidAmount(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(Decimal("0"), currency)


@dataclass(frozen=True)
class Quantity:
    """Number of units on an order line; always a positive int."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise InvalidQuantity(
                f"Quantity must be a whole number, not {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise InvalidQuantity("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrderNumber:
    """Human-readable order reference, e.g. ``ORD-1718000000000-3FA2``."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError("Order number must not be blank")

    @staticmethod
    def generate() -> OrderNumber:
        millis = int(time.time() * 1000)
        return OrderNumber(f"ORD-{millis}-{secrets.token_hex(2).upper()}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Address:
    """Postal address captured on the order at checkout time."""

    full_name: str
    address_line1: str
    city: str
    phone_number: str | None = None
    address_line2: str | None = None
    ward: str | None = None
    district: str | None = None
    country: str = "Vietnam"
    postal_code: str | None = None

    @property
    def full_address(self) -> str:
        parts = [
            self.address_line1,
            self.address_line2,
            self.ward,
            self.district,
            self.city,
            self.country,
        ]
        return ", ".join(p for p in parts if p)

    def __str__(self) -> str:
        return self.full_address
