# Overview: Aggregate recalculation engine; the only writer of product sales aggregates.

"""
Recalculation Engine

A product's derived figures are a pure function of its static facts and its
full sold ledger:

    ledger sorted by (sold_on, id)
    cumulative_sold += entry.total_sold_out
    entry.net_profit = net(cumulative_sold * price) - capital

    sold_out      = cumulative_sold
    remain        = quantity - cumulative_sold
    gross_income  = cumulative_sold * price
    income        = gross_income - tax(gross_income)
    gross_profit  = gross_income - capital
    profit        = income - capital

Every mutation replays the whole ledger. A back-dated insert shifts the
cumulative net profit of every later entry, so appending is never enough.

recalculate() and baseline() touch no database state; apply_recalculation()
copies a result onto ORM rows inside the caller's unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from ..money import Money, Quantity, TaxRate


@dataclass(frozen=True)
class ProductStatics:
    price: Money
    capital: Money
    quantity: Quantity
    tax: TaxRate

    @classmethod
    def of(cls, product) -> "ProductStatics":
        return cls(
            price=Money(product.price_cents),
            capital=Money(product.capital_cents or 0),
            quantity=Quantity(product.quantity),
            tax=TaxRate(product.tax_bps or 0),
        )


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    sold_on: date
    total_sold_out: int

    @classmethod
    def of(cls, sold) -> "LedgerEntry":
        return cls(id=sold.id, sold_on=sold.sold_on, total_sold_out=sold.total_sold_out)


@dataclass(frozen=True)
class ProductAggregates:
    sold_out_quantity: int
    remain_quantity: int
    gross_income_cents: int
    income_cents: int
    gross_profit_cents: int
    profit_cents: int

    def to_dict(self) -> dict:
        return {
            "sold_out_quantity": self.sold_out_quantity,
            "remain_quantity": self.remain_quantity,
            "gross_income_cents": self.gross_income_cents,
            "income_cents": self.income_cents,
            "gross_profit_cents": self.gross_profit_cents,
            "profit_cents": self.profit_cents,
        }


@dataclass(frozen=True)
class Recalculation:
    aggregates: ProductAggregates
    # sold id -> cumulative net profit through that entry
    net_profits: dict[int, int] = field(default_factory=dict)
    # sold id -> gross takings of that entry alone
    incomes: dict[int, int] = field(default_factory=dict)


def ordered(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return sorted(entries, key=lambda e: (e.sold_on, e.id))


def _net_profit(statics: ProductStatics, units: int) -> Money:
    gross = statics.price * units
    return statics.tax.net_of(gross) - statics.capital


def recalculate(statics: ProductStatics, entries: Iterable[LedgerEntry]) -> Recalculation:
    cumulative = 0
    net_profits: dict[int, int] = {}
    incomes: dict[int, int] = {}

    for entry in ordered(entries):
        cumulative += entry.total_sold_out
        net_profits[entry.id] = _net_profit(statics, cumulative).cents
        incomes[entry.id] = (statics.price * entry.total_sold_out).cents

    remain = statics.quantity - Quantity(cumulative)
    gross_income = statics.price * cumulative
    income = statics.tax.net_of(gross_income)

    aggregates = ProductAggregates(
        sold_out_quantity=cumulative,
        remain_quantity=remain.units,
        gross_income_cents=gross_income.cents,
        income_cents=income.cents,
        gross_profit_cents=(gross_income - statics.capital).cents,
        profit_cents=(income - statics.capital).cents,
    )
    return Recalculation(aggregates=aggregates, net_profits=net_profits, incomes=incomes)


def baseline(statics: ProductStatics) -> ProductAggregates:
    """Aggregates of a product nothing has been sold of yet."""
    return recalculate(statics, []).aggregates


def apply_recalculation(product, solds) -> Recalculation:
    """
    Replay ``solds`` (the product's complete ledger, already flushed) and
    write the results onto ``product`` and each sold row.
    """
    solds = list(solds)
    result = recalculate(ProductStatics.of(product), [LedgerEntry.of(s) for s in solds])

    for sold in solds:
        sold.net_profit_cents = result.net_profits[sold.id]
        sold.income_cents = result.incomes[sold.id]

    agg = result.aggregates
    product.sold_out_quantity = agg.sold_out_quantity
    product.remain_quantity = agg.remain_quantity
    product.gross_income_cents = agg.gross_income_cents
    product.income_cents = agg.income_cents
    product.gross_profit_cents = agg.gross_profit_cents
    product.profit_cents = agg.profit_cents
    return result
