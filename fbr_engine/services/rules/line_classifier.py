"""Usage: label raw ledger lines as items, discounts or subtotals."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable

from fbr_engine.schemas.ledger import RawLedgerLine

logger = logging.getLogger(__name__)

DISCOUNT_MARKERS: tuple[str, ...] = ("discount",)
SUBTOTAL_MARKERS: tuple[str, ...] = ("subtotal", "sub-total")


class LineLabel(str, Enum):
    ITEM = "item"
    DISCOUNT = "discount"
    SUBTOTAL = "subtotal"


@dataclass
class LineContext:
    index: int
    amount: Decimal
    item_reference: str
    label: LineLabel
    line: RawLedgerLine
    attributed_discount: Decimal = Decimal("0")

    @property
    def is_item(self) -> bool:
        return self.label is LineLabel.ITEM

    @property
    def is_discount(self) -> bool:
        return self.label is LineLabel.DISCOUNT

    @property
    def is_subtotal(self) -> bool:
        return self.label is LineLabel.SUBTOTAL


def classify_line(line: RawLedgerLine) -> LineLabel:
    """Classify one line from its own fields only."""

    if line.amount < 0 or _has_marker(line, DISCOUNT_MARKERS):
        return LineLabel.DISCOUNT
    if _has_marker(line, SUBTOTAL_MARKERS):
        return LineLabel.SUBTOTAL
    if _looks_like_computed_subtotal(line):
        return LineLabel.SUBTOTAL
    return LineLabel.ITEM


def is_excluded(line: RawLedgerLine) -> bool:
    """Item lines with neither an item reference nor a declared type carry nothing billable."""

    return not _reference(line) and not line.item_type


def classify_document(lines: Iterable[RawLedgerLine]) -> list[LineContext]:
    contexts: list[LineContext] = []
    for line in sorted(lines, key=lambda item: item.sequence_index):
        label = classify_line(line)
        if label is LineLabel.ITEM and is_excluded(line):
            logger.warning(
                "Excluding line %d without item reference or type: desc=%r amount=%s",
                line.sequence_index,
                line.description,
                line.amount,
            )
            continue
        if label is LineLabel.SUBTOTAL and not _has_marker(line, SUBTOTAL_MARKERS):
            logger.warning(
                "Line %d treated as subtotal by heuristic (no reference, no quantity, amount=%s)",
                line.sequence_index,
                line.amount,
            )
        if label is LineLabel.DISCOUNT and line.amount > 0:
            logger.warning(
                "Line %d carries a discount marker but a positive amount %s",
                line.sequence_index,
                line.amount,
            )
        logger.debug(
            "Line %d: type=%r desc=%r ref=%s amount=%s label=%s",
            line.sequence_index,
            line.item_type,
            line.description,
            "HAS_ID" if _reference(line) else "EMPTY",
            line.amount,
            label.value,
        )
        contexts.append(
            LineContext(
                index=line.sequence_index,
                amount=line.amount,
                item_reference=_reference(line),
                label=label,
                line=line,
            )
        )
    return contexts


def _has_marker(line: RawLedgerLine, markers: tuple[str, ...]) -> bool:
    for text in (line.item_type, line.description):
        lowered = text.casefold()
        if lowered and any(marker in lowered for marker in markers):
            return True
    return False


def _looks_like_computed_subtotal(line: RawLedgerLine) -> bool:
    quantity_missing = line.quantity is None or line.quantity == 0
    return not _reference(line) and quantity_missing and line.amount > 0


def _reference(line: RawLedgerLine) -> str:
    reference = line.item_reference.strip()
    return "" if reference == "0" else reference
