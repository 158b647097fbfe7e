"""Usage: regime-specific tax arithmetic for one invoice item.

Regimes are mutually exclusive and checked in a fixed precedence order
(see ``select_regime``). Each handler is a pure function of its input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Callable

from fbr_engine.core.config import settings
from fbr_engine.services.catalog import SaleCategory

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TaxRegime(str, Enum):
    EXEMPT = "exempt"
    ZERO_RATED = "zero_rated"
    FIXED_PER_UNIT = "fixed_per_unit"
    FIXED_HYBRID = "fixed_hybrid"
    RETAIL_PRICE = "retail_price"
    SPLIT_RATE = "split_rate"
    STANDARD = "standard"


@dataclass(frozen=True)
class TaxInput:
    gross_amount: Decimal
    attributed_discount: Decimal
    quantity: Decimal
    category: SaleCategory
    declared_rate: Decimal
    retail_price: Decimal | None = None
    fixed_rate: Decimal | None = None
    fixed_unit: str = ""


@dataclass(frozen=True)
class TaxComputation:
    regime: TaxRegime
    net_amount: Decimal
    display_tax_rate: Decimal
    primary_tax_amount: Decimal
    secondary_tax_amount: Decimal
    rate_label: str
    total_value: Decimal
    retail_price_total: Decimal = ZERO


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_rate(rate: Decimal) -> str:
    """Render a percentage without trailing zeros: 18.00 -> '18%', 0.50 -> '0.5%'."""

    normalized = rate.normalize()
    return f"{normalized:f}%"


def compute_net_amount(gross_amount: Decimal, attributed_discount: Decimal) -> Decimal:
    net = gross_amount - attributed_discount
    if net < 0:
        logger.warning(
            "Discount %s exceeds gross amount %s; net amount floored at 0",
            attributed_discount,
            gross_amount,
        )
        return ZERO
    return money(net)


def select_regime(category: SaleCategory, declared_rate: Decimal, standard_rate: Decimal) -> TaxRegime:
    if category is SaleCategory.EXEMPT:
        return TaxRegime.EXEMPT
    if category is SaleCategory.ZERO_RATED:
        return TaxRegime.ZERO_RATED
    if category is SaleCategory.FIXED_PER_UNIT:
        return TaxRegime.FIXED_PER_UNIT
    if category is SaleCategory.FIXED_HYBRID:
        return TaxRegime.FIXED_HYBRID
    if category is SaleCategory.RETAIL_PRICE:
        return TaxRegime.RETAIL_PRICE
    if declared_rate > standard_rate:
        return TaxRegime.SPLIT_RATE
    return TaxRegime.STANDARD


def _exempt(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    return TaxComputation(
        regime=TaxRegime.EXEMPT,
        net_amount=net,
        display_tax_rate=ZERO,
        primary_tax_amount=ZERO,
        secondary_tax_amount=ZERO,
        rate_label="Exempt",
        total_value=net,
    )


def _zero_rated(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    return TaxComputation(
        regime=TaxRegime.ZERO_RATED,
        net_amount=net,
        display_tax_rate=ZERO,
        primary_tax_amount=ZERO,
        secondary_tax_amount=ZERO,
        rate_label="0%",
        total_value=net,
    )


def _fixed_component(tax_input: TaxInput) -> tuple[Decimal, Decimal]:
    fixed_rate = tax_input.fixed_rate
    if fixed_rate is None:
        logger.warning("Fixed-rate category without a configured fixed rate; using 0")
        fixed_rate = ZERO
    return fixed_rate, money(fixed_rate * tax_input.quantity)


def _fixed_per_unit(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    fixed_rate, fixed_total = _fixed_component(tax_input)
    return TaxComputation(
        regime=TaxRegime.FIXED_PER_UNIT,
        net_amount=net,
        display_tax_rate=ZERO,
        primary_tax_amount=fixed_total,
        secondary_tax_amount=ZERO,
        rate_label=f"Rs.{fixed_rate.normalize():f}",
        total_value=money(net + fixed_total),
        retail_price_total=fixed_total,
    )


def _fixed_hybrid(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    fixed_rate, fixed_total = _fixed_component(tax_input)
    tax = money(fixed_total + net * standard_rate / HUNDRED)
    unit = tax_input.fixed_unit or "unit"
    return TaxComputation(
        regime=TaxRegime.FIXED_HYBRID,
        net_amount=net,
        display_tax_rate=standard_rate,
        primary_tax_amount=tax,
        secondary_tax_amount=ZERO,
        rate_label=f"{format_rate(standard_rate)} along with rupees {fixed_rate.normalize():f} per {unit}",
        total_value=money(net + tax),
        retail_price_total=fixed_total,
    )


def _retail_price(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    retail_price = tax_input.retail_price
    if retail_price is None or retail_price <= 0:
        logger.warning("Retail-price category without a retail price; tax base is 0")
        retail_price = ZERO
    retail_total = money(retail_price * tax_input.quantity)
    tax = money(retail_total * tax_input.declared_rate / HUNDRED)
    # Transaction value is not the tax base here.
    return TaxComputation(
        regime=TaxRegime.RETAIL_PRICE,
        net_amount=ZERO,
        display_tax_rate=tax_input.declared_rate,
        primary_tax_amount=tax,
        secondary_tax_amount=ZERO,
        rate_label=format_rate(tax_input.declared_rate),
        total_value=money(retail_total + tax),
        retail_price_total=retail_total,
    )


def _split_rate(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    primary = money(net * standard_rate / HUNDRED)
    further = money(net * (tax_input.declared_rate - standard_rate) / HUNDRED)
    return TaxComputation(
        regime=TaxRegime.SPLIT_RATE,
        net_amount=net,
        display_tax_rate=standard_rate,
        primary_tax_amount=primary,
        secondary_tax_amount=further,
        rate_label=format_rate(standard_rate),
        total_value=money(net + primary + further),
    )


def _standard(tax_input: TaxInput, net: Decimal, standard_rate: Decimal) -> TaxComputation:
    primary = money(net * tax_input.declared_rate / HUNDRED)
    return TaxComputation(
        regime=TaxRegime.STANDARD,
        net_amount=net,
        display_tax_rate=tax_input.declared_rate,
        primary_tax_amount=primary,
        secondary_tax_amount=ZERO,
        rate_label=format_rate(tax_input.declared_rate),
        total_value=money(net + primary),
    )


RegimeHandler = Callable[[TaxInput, Decimal, Decimal], TaxComputation]

REGIME_HANDLERS: dict[TaxRegime, RegimeHandler] = {
    TaxRegime.EXEMPT: _exempt,
    TaxRegime.ZERO_RATED: _zero_rated,
    TaxRegime.FIXED_PER_UNIT: _fixed_per_unit,
    TaxRegime.FIXED_HYBRID: _fixed_hybrid,
    TaxRegime.RETAIL_PRICE: _retail_price,
    TaxRegime.SPLIT_RATE: _split_rate,
    TaxRegime.STANDARD: _standard,
}


class TaxCalculator:
    def __init__(self, *, standard_rate: Decimal | None = None) -> None:
        self.standard_rate = settings.standard_tax_rate if standard_rate is None else standard_rate

    def calculate(self, tax_input: TaxInput) -> TaxComputation:
        net = compute_net_amount(tax_input.gross_amount, tax_input.attributed_discount)
        regime = select_regime(tax_input.category, tax_input.declared_rate, self.standard_rate)
        result = REGIME_HANDLERS[regime](tax_input, net, self.standard_rate)
        logger.debug(
            "Tax regime=%s net=%s rate=%s primary=%s further=%s total=%s",
            regime.value,
            result.net_amount,
            result.rate_label,
            result.primary_tax_amount,
            result.secondary_tax_amount,
            result.total_value,
        )
        return result
