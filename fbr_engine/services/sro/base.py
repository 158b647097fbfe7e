from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from fbr_engine.schemas.sro import SroItem, SroSchedule


@runtime_checkable
class BaseSroLookupClient(Protocol):
    async def fetch_schedules(
        self,
        scenario_code: str,
        tax_rate: Decimal,
        province_code: int | None,
        document_date: date,
        *,
        rate_label: str | None = None,
    ) -> list[SroSchedule]:
        """Return candidate regulatory schedules for a scenario and rate."""
        ...

    async def fetch_serials(self, schedule_id: int, document_date: date) -> list[SroItem]:
        """Return candidate serial numbers within a schedule."""
        ...
