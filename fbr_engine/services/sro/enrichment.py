"""Usage: populate schedule references per item and enforce the pairing invariant.

Each item is enriched independently; results never depend on the order in
which lookups complete. The guard is applied exactly once per item after
its enrichment finished or failed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from fbr_engine.core.config import settings
from fbr_engine.schemas.invoice import InvoiceItem
from fbr_engine.schemas.sro import SroItem, SroSchedule
from fbr_engine.services.sro.base import BaseSroLookupClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferencePair:
    schedule_reference: str = ""
    reference_serial: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.schedule_reference) and bool(self.reference_serial)

    @property
    def is_empty(self) -> bool:
        return not self.schedule_reference and not self.reference_serial


def apply_reference_guard(item: InvoiceItem, pair: ReferencePair | None = None) -> InvoiceItem:
    """Return ``item`` with a reference pair that is either complete or empty."""

    if pair is None:
        pair = ReferencePair(item.schedule_reference or "", item.reference_serial or "")

    if not item.requires_reference:
        if not pair.is_empty:
            logger.debug("Clearing stale reference on line %d (not required)", item.line_index)
        pair = ReferencePair()
    elif not pair.is_complete and not pair.is_empty:
        logger.warning(
            "Line %d (%s): half-filled reference schedule=%r serial=%r; clearing both",
            item.line_index,
            item.name,
            pair.schedule_reference,
            pair.reference_serial,
        )
        pair = ReferencePair()
    elif pair.is_empty:
        logger.info("Line %d (%s): reference required but unavailable", item.line_index, item.name)

    return item.model_copy(
        update={
            "schedule_reference": pair.schedule_reference,
            "reference_serial": pair.reference_serial,
        }
    )


def first_usable(candidates: Iterable[SroSchedule | SroItem]) -> SroSchedule | SroItem | None:
    for candidate in candidates:
        description = candidate.description.strip()
        if description and description != "0":
            return candidate
    return None


async def lookup_reference(
    client: BaseSroLookupClient,
    item: InvoiceItem,
    *,
    tax_rate: Decimal,
    province_code: int | None,
    document_date: date,
) -> ReferencePair:
    schedules = await client.fetch_schedules(
        item.scenario_code,
        tax_rate,
        province_code,
        document_date,
        rate_label=item.rate_label,
    )
    schedule = first_usable(schedules)
    if schedule is None:
        return ReferencePair()

    serials = await client.fetch_serials(schedule.sro_id, document_date)
    serial = first_usable(serials)
    return ReferencePair(
        schedule_reference=schedule.description,
        reference_serial=serial.description if serial is not None else "",
    )


async def enrich_item(
    client: BaseSroLookupClient | None,
    item: InvoiceItem,
    *,
    tax_rate: Decimal,
    province_code: int | None,
    document_date: date,
    timeout: float | None = None,
) -> InvoiceItem:
    prefilled = ReferencePair(item.schedule_reference or "", item.reference_serial or "")
    if client is None or not item.requires_reference:
        return apply_reference_guard(item, prefilled)

    try:
        pair = await asyncio.wait_for(
            lookup_reference(
                client,
                item,
                tax_rate=tax_rate,
                province_code=province_code,
                document_date=document_date,
            ),
            timeout=timeout if timeout is not None else settings.sro_lookup_timeout,
        )
    except Exception:
        logger.warning(
            "Reference lookup failed for line %d (%s, %s)",
            item.line_index,
            item.name,
            item.scenario_code,
            exc_info=True,
        )
        pair = ReferencePair()

    if not pair.is_complete and prefilled.is_complete:
        logger.info("Line %d: keeping prefilled reference %s", item.line_index, prefilled.schedule_reference)
        pair = prefilled
    return apply_reference_guard(item, pair)


async def enrich_items(
    client: BaseSroLookupClient | None,
    items: Sequence[InvoiceItem],
    *,
    tax_rates: Sequence[Decimal],
    province_code: int | None,
    document_date: date,
    concurrency: int | None = None,
    timeout: float | None = None,
) -> list[InvoiceItem]:
    """Enrich and guard every item; output order matches ``items``."""

    if len(tax_rates) != len(items):
        raise ValueError("tax_rates must align with items")

    semaphore = asyncio.Semaphore(concurrency or settings.sro_lookup_concurrency)

    async def _run(item: InvoiceItem, tax_rate: Decimal) -> InvoiceItem:
        async with semaphore:
            return await enrich_item(
                client,
                item,
                tax_rate=tax_rate,
                province_code=province_code,
                document_date=document_date,
                timeout=timeout,
            )

    finalized = await asyncio.gather(*(_run(item, rate) for item, rate in zip(items, tax_rates)))
    complete = sum(1 for item in finalized if item.has_reference_pair)
    required = sum(1 for item in finalized if item.requires_reference)
    logger.info("Reference enrichment finished: %d/%d required items referenced", complete, required)
    return list(finalized)
