"""Usage: report item conditions the tax authority rejects at submission."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from fbr_engine.core.config import settings
from fbr_engine.schemas.invoice import InvoiceItem
from fbr_engine.services.catalog import SaleCategory, ScenarioCatalog, get_catalog


def validate_items(
    items: Sequence[InvoiceItem],
    *,
    catalog: ScenarioCatalog | None = None,
    standard_rate: Decimal | None = None,
) -> list[str]:
    catalog = catalog or get_catalog()
    standard_rate = settings.standard_tax_rate if standard_rate is None else standard_rate
    errors: list[str] = []

    if not items:
        return ["missing_required:items"]

    for idx, item in enumerate(items):
        path = f"items[{idx}]"
        definition = catalog.by_code(item.scenario_code)
        retail_based = definition is not None and definition.category is SaleCategory.RETAIL_PRICE

        if item.quantity <= 0:
            errors.append(f"min_failed:{path}.quantity")
        if item.net_amount <= 0 and not retail_based:
            errors.append(f"min_failed:{path}.net_amount")
        if item.total_value <= 0:
            errors.append(f"min_failed:{path}.total_value")
        if not item.sale_type.strip():
            errors.append(f"missing_required:{path}.sale_type")

        has_schedule = bool(item.schedule_reference)
        has_serial = bool(item.reference_serial)
        waived = definition is not None and definition.reference_exempt_in_validation
        if item.display_tax_rate != standard_rate and not waived and item.requires_reference:
            if not has_schedule:
                errors.append(f"missing_required:{path}.schedule_reference")
            if not has_serial:
                errors.append(f"missing_required:{path}.reference_serial")
        if has_schedule != has_serial:
            errors.append(f"pair_incomplete:{path}.reference")

    return errors
