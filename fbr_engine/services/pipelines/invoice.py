"""Usage: ledger document normalization pipeline (classify -> allocate -> tax -> references)."""

from __future__ import annotations

import logging
import time
from decimal import Decimal

from fbr_engine.schemas.invoice import InvoiceItem, NormalizedInvoice
from fbr_engine.schemas.ledger import LedgerDocument, parse_decimal_like
from fbr_engine.services.catalog import ScenarioCatalog, get_catalog
from fbr_engine.services.rules.discount_allocator import allocate_discounts, quantize_money
from fbr_engine.services.rules.line_classifier import LineContext, classify_document
from fbr_engine.services.rules.submission_rules import validate_items
from fbr_engine.services.sro.base import BaseSroLookupClient
from fbr_engine.services.sro.enrichment import enrich_items
from fbr_engine.services.tax.calculator import TaxCalculator, TaxInput
from fbr_engine.services.tax.resolver import TaxResolver

logger = logging.getLogger(__name__)

HS_CODE_FIELDS = ("HS Code",)
SALE_TYPE_FIELDS = ("Sale Type",)
RETAIL_PRICE_FIELDS = ("Retail Price", "Residential")
SCHEDULE_FIELDS = ("SRO Schedule No",)
SERIAL_FIELDS = ("SRO Item Serial No",)


class InvoiceNormalizationPipeline:
    """Pipeline turning raw ledger lines into finalized invoice items."""

    def __init__(
        self,
        lookup_client: BaseSroLookupClient | None = None,
        *,
        catalog: ScenarioCatalog | None = None,
        resolver: TaxResolver | None = None,
        calculator: TaxCalculator | None = None,
    ) -> None:
        self.lookup_client = lookup_client
        self.catalog = catalog or get_catalog()
        self.resolver = resolver or TaxResolver(self.catalog)
        self.calculator = calculator or TaxCalculator(standard_rate=self.resolver.standard_rate)

    async def run(self, document: LedgerDocument) -> NormalizedInvoice:
        start_time = time.perf_counter()
        logger.info(
            "Normalizing document %s (%d lines)",
            document.document_number,
            len(document.lines),
        )

        items = self.build_items(document)
        finalized = await enrich_items(
            self.lookup_client,
            items,
            tax_rates=[document.tax_rate] * len(items),
            province_code=document.province_code,
            document_date=document.document_date,
        )

        scenario_code = self.resolver.document_scenario([item.scenario_code for item in finalized])
        errors = validate_items(finalized, catalog=self.catalog, standard_rate=self.resolver.standard_rate)
        if errors:
            logger.warning("Document %s has submission findings: %s", document.document_number, errors)

        logger.info(
            "Document %s normalized: items=%d scenario=%s in %.4fs",
            document.document_number,
            len(finalized),
            scenario_code,
            time.perf_counter() - start_time,
        )
        return NormalizedInvoice(
            document_number=document.document_number,
            scenario_code=scenario_code,
            items=finalized,
            errors=errors,
        )

    def build_items(self, document: LedgerDocument) -> list[InvoiceItem]:
        """Classification, discount allocation and tax computation; no I/O."""

        contexts = classify_document(document.lines)
        allocate_discounts(contexts)
        return [self._build_item(context, document) for context in contexts if context.is_item]

    def _build_item(self, context: LineContext, document: LedgerDocument) -> InvoiceItem:
        line = context.line
        details = document.item_details.get(context.item_reference) if context.item_reference else None

        sale_type = _first_field(line, SALE_TYPE_FIELDS) or (details.sale_type if details else None) or (
            document.default_sale_type or ""
        )
        hs_code = _first_field(line, HS_CODE_FIELDS) or (details.hs_code if details else None) or ""
        retail_price = _parse_optional(_first_field(line, RETAIL_PRICE_FIELDS))
        if retail_price is None and details is not None:
            retail_price = details.retail_price

        quantity = abs(line.quantity) if line.quantity else Decimal("1")
        gross_amount = quantize_money(context.amount)

        resolution = self.resolver.resolve(sale_type, document.buyer_registration_status, document.tax_rate)
        definition = resolution.definition
        tax = self.calculator.calculate(
            TaxInput(
                gross_amount=gross_amount,
                attributed_discount=context.attributed_discount,
                quantity=quantity,
                category=definition.category,
                declared_rate=document.tax_rate,
                retail_price=retail_price,
                fixed_rate=definition.fixed_rate,
                fixed_unit=definition.fixed_unit,
            )
        )

        return InvoiceItem(
            line_index=context.index,
            name=line.description or line.item_type,
            hs_code=hs_code,
            quantity=quantity,
            unit_of_measure=line.unit_of_measure,
            unit_price=quantize_money(gross_amount / quantity),
            gross_amount=gross_amount,
            net_amount=tax.net_amount,
            display_tax_rate=tax.display_tax_rate,
            rate_label=tax.rate_label,
            primary_tax_amount=tax.primary_tax_amount,
            secondary_tax_amount=tax.secondary_tax_amount,
            total_value=tax.total_value,
            retail_price_total=tax.retail_price_total,
            discount_amount=quantize_money(context.attributed_discount),
            sale_type=definition.fbr_sale_type,
            scenario_code=resolution.scenario_code,
            requires_reference=resolution.requires_reference,
            schedule_reference=_first_field(line, SCHEDULE_FIELDS),
            reference_serial=_first_field(line, SERIAL_FIELDS),
        )


def _first_field(line, names: tuple[str, ...]) -> str:
    for name in names:
        value = line.custom_field(name)
        if value:
            return value
    return ""


def _parse_optional(value: str) -> Decimal | None:
    try:
        return parse_decimal_like(value, allow_none=True)
    except ValueError:
        logger.warning("Ignoring unparsable retail price %r", value)
        return None
