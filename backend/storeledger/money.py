# Overview: Value types for currency, stock quantities and tax rates.

"""
Money is integer cents, quantities are whole units, tax is basis points.

Authoritative storage is always integral (cents / units / bps); nothing in
the ledger ever holds a float. Rounding happens in exactly one place,
``TaxRate.of``, and is ROUND_HALF_UP to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .errors import InsufficientStockError, NonPositiveQuantityError, ValidationError

MAX_TAX_BPS = 10_000

# $9,999,999.99 per piece keeps every aggregate inside a 64-bit column
MAX_PRICE_CENTS = 999_999_999


@dataclass(frozen=True, order=True)
class Money:
    cents: int = 0

    def __post_init__(self):
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise ValidationError("Money must be an integer number of cents")

    def __add__(self, other: "Money") -> "Money":
        return Money(self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.cents - other.cents)

    def __mul__(self, units: int) -> "Money":
        return Money(self.cents * int(units))

    __rmul__ = __mul__

    def __neg__(self) -> "Money":
        return Money(-self.cents)

    @classmethod
    def price(cls, cents: int) -> "Money":
        """A selling price: strictly positive."""
        money = cls(cents)
        if money.cents <= 0:
            raise ValidationError("price_cents must be > 0")
        if money.cents > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")
        return money

    @classmethod
    def cost(cls, cents: int) -> "Money":
        """A cost basis: zero or more."""
        money = cls(cents)
        if money.cents < 0:
            raise ValidationError("capital_cents must be >= 0")
        return money


@dataclass(frozen=True, order=True)
class Quantity:
    units: int = 0

    def __post_init__(self):
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise ValidationError("Quantity must be a whole number of units")
        if self.units < 0:
            raise InsufficientStockError(
                "Stock cannot go negative",
                details={"remain_quantity": self.units},
            )

    @classmethod
    def positive(cls, units: int, field: str = "total_sold_out") -> "Quantity":
        if isinstance(units, bool) or not isinstance(units, int):
            raise ValidationError(f"{field} must be an integer")
        if units <= 0:
            raise NonPositiveQuantityError(f"{field} must be > 0")
        return cls(units)

    def __add__(self, other: "Quantity") -> "Quantity":
        return Quantity(self.units + other.units)

    def __sub__(self, other: "Quantity") -> "Quantity":
        return Quantity(self.units - other.units)


@dataclass(frozen=True)
class TaxRate:
    bps: int = 0

    def __post_init__(self):
        if isinstance(self.bps, bool) or not isinstance(self.bps, int):
            raise ValidationError("tax_bps must be an integer")
        if not 0 <= self.bps <= MAX_TAX_BPS:
            raise ValidationError("tax_bps must be between 0 and 10000 (0-100%)")

    @property
    def percent(self) -> Decimal:
        return Decimal(self.bps) / 100

    def of(self, amount: Money) -> Money:
        """Tax owed on ``amount``, rounded half-up to the cent."""
        raw = Decimal(amount.cents) * self.bps / MAX_TAX_BPS
        return Money(int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def net_of(self, amount: Money) -> Money:
        return amount - self.of(amount)
