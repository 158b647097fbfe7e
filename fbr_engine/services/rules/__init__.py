"""Usage: ledger line classification and discount allocation helpers."""

from fbr_engine.services.rules.discount_allocator import AllocationSummary, allocate_discounts
from fbr_engine.services.rules.line_classifier import LineContext, LineLabel, classify_document, classify_line

__all__ = [
    "AllocationSummary",
    "LineContext",
    "LineLabel",
    "allocate_discounts",
    "classify_document",
    "classify_line",
]
