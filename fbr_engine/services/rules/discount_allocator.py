"""Usage: attribute discount lines to the item lines they apply to.

For each discount line the allocator looks backward for the nearest subtotal.
Items between that subtotal and the discount take the discount themselves;
when the discount directly follows the subtotal, it covers the items that
subtotal summarizes (those after the previous subtotal). Without a subtotal
it covers the nearest preceding item only. No item is ever discounted
beyond its own amount. The amount is split proportionally to the items'
absolute amounts, rounded to cents, with the rounding residual placed on the
largest item so the allocated total equals the (clamped) discount exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from fbr_engine.services.rules.line_classifier import LineContext

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class AllocationSummary:
    processed: int
    applied: int
    skipped: int
    total_allocated: Decimal


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate_discounts(contexts: Sequence[LineContext]) -> AllocationSummary:
    """Accumulate every discount line onto ``attributed_discount`` of its items."""

    processed = applied = skipped = 0
    total_allocated = Decimal("0")

    for position, context in enumerate(contexts):
        if not context.is_discount:
            continue
        processed += 1
        discount_amount = quantize_money(abs(context.amount))

        targets = find_discount_range(contexts, position)
        if not targets:
            logger.warning(
                "Discount at line %d (%s) has no preceding item; skipped",
                context.index,
                discount_amount,
            )
            skipped += 1
            continue

        logger.debug(
            "Discount at line %d: %s over lines %s",
            context.index,
            describe_discount(discount_amount, targets),
            [target.index for target in targets],
        )
        allocated = distribute_discount(targets, discount_amount)
        if allocated is None:
            skipped += 1
            continue
        applied += 1
        total_allocated += allocated

    if processed:
        logger.info(
            "Discounts processed=%d applied=%d skipped=%d total=%s",
            processed,
            applied,
            skipped,
            total_allocated,
        )
    return AllocationSummary(
        processed=processed,
        applied=applied,
        skipped=skipped,
        total_allocated=total_allocated,
    )


def find_discount_range(contexts: Sequence[LineContext], discount_position: int) -> list[LineContext]:
    """Return the item contexts a discount at ``discount_position`` applies to."""

    subtotal_position = _previous_subtotal(contexts, discount_position)
    if subtotal_position is not None:
        trailing = [context for context in contexts[subtotal_position + 1 : discount_position] if context.is_item]
        if trailing:
            return trailing

        range_start = _previous_subtotal(contexts, subtotal_position)
        start = 0 if range_start is None else range_start + 1
        group = [context for context in contexts[start:subtotal_position] if context.is_item]
        if group:
            return group
        logger.warning(
            "Subtotal at line %d summarizes no items; falling back to the preceding item",
            contexts[subtotal_position].index,
        )

    for position in range(discount_position - 1, -1, -1):
        if contexts[position].is_item:
            return [contexts[position]]
    return []


def distribute_discount(items: Sequence[LineContext], discount_amount: Decimal) -> Decimal | None:
    """Split ``discount_amount`` over ``items``; returns the allocated total or None when skipped.

    Each share is capped so an item's accumulated discount never exceeds its amount.
    """

    if not items:
        return None
    if discount_amount <= 0:
        logger.warning("Ignoring non-positive discount amount %s", discount_amount)
        return None

    amounts = [abs(item.amount) for item in items]
    range_total = sum(amounts, Decimal("0"))
    if range_total <= 0:
        logger.warning(
            "Discount range %s has non-positive total %s; skipped",
            [item.index for item in items],
            range_total,
        )
        return None

    if discount_amount > range_total:
        logger.warning(
            "Discount %s exceeds range total %s; clamping to the range total",
            discount_amount,
            range_total,
        )
        discount_amount = quantize_money(range_total)

    shares = [quantize_money(discount_amount * amount / range_total) for amount in amounts]
    residual = discount_amount - sum(shares, Decimal("0"))
    if residual:
        largest = max(range(len(amounts)), key=lambda idx: amounts[idx])
        shares[largest] += residual
        logger.debug("Rounding residual %s added to line %d", residual, items[largest].index)

    allocated = Decimal("0")
    for item, amount, share in zip(items, amounts, shares):
        remaining = max(amount - item.attributed_discount, Decimal("0"))
        if share > remaining:
            logger.warning(
                "Line %d: accumulated discount would exceed item amount %s; capping share %s at %s",
                item.index,
                amount,
                share,
                remaining,
            )
            share = remaining
        item.attributed_discount += share
        allocated += share
    return allocated


def describe_discount(discount_amount: Decimal, items: Sequence[LineContext]) -> str:
    total = sum((abs(item.amount) for item in items), Decimal("0"))
    if total == 0:
        return "Unknown Discount"
    percentage = discount_amount / total * 100
    rounded = percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if abs(percentage - rounded) < Decimal("0.1"):
        return f"~{rounded}% Discount"
    return f"Fixed {quantize_money(discount_amount)} Discount"


def _previous_subtotal(contexts: Sequence[LineContext], position: int) -> int | None:
    for candidate in range(position - 1, -1, -1):
        if contexts[candidate].is_subtotal:
            return candidate
    return None
