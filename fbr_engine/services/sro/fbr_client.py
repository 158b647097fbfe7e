from __future__ import annotations

import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Hashable

import httpx

from fbr_engine.core.config import settings
from fbr_engine.schemas.sro import SaleTypeRate, SroItem, SroSchedule, TransactionType
from fbr_engine.services.catalog import ScenarioCatalog, get_catalog, normalize_label
from fbr_engine.services.sro.base import BaseSroLookupClient

logger = logging.getLogger(__name__)

RATE_TOLERANCE = Decimal("0.01")


def format_lookup_date(value: date) -> str:
    """Rate and schedule endpoints expect dates like 05-Jan2025."""

    return value.strftime("%d-%b%Y")


def parse_rate_text(text: str | None) -> Decimal | None:
    """'18%' -> 18, 'Exempt' -> 0, '18% along with ...' -> 18, 'Rs.200' -> None."""

    if not text or not text.strip():
        return Decimal("0")
    cleaned = text.strip()
    lowered = cleaned.lower()
    if lowered == "exempt":
        return Decimal("0")
    if lowered.startswith("rs.") or lowered.startswith("rs "):
        return None
    if "along with" in lowered:
        cleaned = cleaned[: lowered.index("along with")]
    try:
        return Decimal(cleaned.replace("%", "").strip())
    except ArithmeticError:
        return Decimal("0")


class FbrSroClient(BaseSroLookupClient):
    """Tax-authority reference data client (transaction types, rates, schedules, serials)."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        catalog: ScenarioCatalog | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.fbr_base_url).rstrip("/")
        self.token = settings.fbr_token if token is None else token
        self.catalog = catalog or get_catalog()
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.fbr_timeout)
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._transaction_types: list[TransactionType] | None = None
        self._rate_cache: dict[str, list[SaleTypeRate]] = {}
        self._schedule_cache: dict[tuple[int, str, int | None], list[SroSchedule]] = {}

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_schedules(
        self,
        scenario_code: str,
        tax_rate: Decimal,
        province_code: int | None,
        document_date: date,
        *,
        rate_label: str | None = None,
    ) -> list[SroSchedule]:
        definition = self.catalog.by_code(scenario_code) or self.catalog.default
        transaction_type = await self._transaction_type_for(definition.fbr_sale_type)
        if transaction_type is None:
            logger.info("No transaction type for sale type '%s'", definition.fbr_sale_type)
            return []

        date_str = format_lookup_date(document_date)
        rates = await self._rates(date_str, transaction_type.transaction_type_id, province_code)
        rate = self._match_rate(rates, tax_rate, rate_label)
        if rate is None:
            logger.info(
                "No rate matching %s for transaction type %d",
                rate_label or tax_rate,
                transaction_type.transaction_type_id,
            )
            return []
        return await self._schedules(rate.rate_id, date_str, province_code)

    async def fetch_serials(self, schedule_id: int, document_date: date) -> list[SroItem]:
        payload = await self._get(
            "/pdi/v2/SROItem",
            params={"date": document_date.isoformat(), "sro_id": schedule_id},
        )
        return [SroItem.model_validate(_upper_keys(row)) for row in _as_rows(payload)]

    async def _transaction_type_for(self, fbr_sale_type: str) -> TransactionType | None:
        async with self._key_lock("transtypecode"):
            if self._transaction_types is None:
                payload = await self._get("/pdi/v1/transtypecode")
                self._transaction_types = [
                    TransactionType.model_validate(_upper_keys(row)) for row in _as_rows(payload)
                ]
                logger.info("Loaded %d transaction types", len(self._transaction_types))
            transaction_types = self._transaction_types

        key = normalize_label(fbr_sale_type)
        for transaction_type in transaction_types:
            if normalize_label(transaction_type.description) == key:
                return transaction_type
        return None

    async def _rates(self, date_str: str, transaction_type_id: int, province_code: int | None) -> list[SaleTypeRate]:
        cache_key = f"{date_str}_{transaction_type_id}_{province_code}"
        async with self._key_lock(("rates", cache_key)):
            if cache_key in self._rate_cache:
                return self._rate_cache[cache_key]
            params: dict[str, Any] = {"date": date_str, "transTypeId": transaction_type_id}
            if province_code is not None:
                params["originationSupplier"] = province_code
            payload = await self._get("/pdi/v2/SaleTypeToRate", params=params)
            rates = [SaleTypeRate.model_validate(_upper_keys(row)) for row in _as_rows(payload)]
            self._rate_cache[cache_key] = rates
            return rates

    async def _schedules(self, rate_id: int, date_str: str, province_code: int | None) -> list[SroSchedule]:
        cache_key = (rate_id, date_str, province_code)
        async with self._key_lock(("schedules", cache_key)):
            if cache_key in self._schedule_cache:
                return self._schedule_cache[cache_key]
            params: dict[str, Any] = {"rate_id": rate_id, "date": date_str}
            if province_code is not None:
                params["origination_supplier_csv"] = province_code
            payload = await self._get("/pdi/v1/SroSchedule", params=params)
            schedules = [SroSchedule.model_validate(_upper_keys(row)) for row in _as_rows(payload)]
            self._schedule_cache[cache_key] = schedules
            return schedules

    def _key_lock(self, key: Hashable) -> asyncio.Lock:
        """One lock per cache entry: same-key callers share a fetch, other keys run freely."""

        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _match_rate(
        self,
        rates: list[SaleTypeRate],
        tax_rate: Decimal,
        rate_label: str | None,
    ) -> SaleTypeRate | None:
        numeric = parse_rate_text(rate_label) if rate_label else tax_rate
        for rate in rates:
            if numeric is None:
                if rate_label and rate.description.strip().lower() == rate_label.strip().lower():
                    return rate
            elif abs(rate.value - numeric) < RATE_TOLERANCE:
                return rate
        return None

    async def _get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = await self._client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()


def _as_rows(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        return [payload]
    raise ValueError(f"Unexpected lookup response: {type(payload).__name__}")


def _upper_keys(row: dict[str, Any]) -> dict[str, Any]:
    return {str(key).upper(): value for key, value in row.items()}
