import asyncio
from datetime import date
from decimal import Decimal

import httpx
import pytest

from fbr_engine.schemas.invoice import InvoiceItem
from fbr_engine.services.catalog import load_scenario_catalog
from fbr_engine.services.sro.enrichment import enrich_items
from fbr_engine.services.sro.fbr_client import FbrSroClient, format_lookup_date, parse_rate_text


class FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("GET", "http://test")
            response = httpx.Response(self.status_code, request=request)
            raise httpx.HTTPStatusError("error", request=request, response=response)

    def json(self):
        return self._payload


class FakeHttpClient:
    def __init__(self, routes: dict, status_code: int = 200) -> None:
        self.routes = routes
        self.status_code = status_code
        self.calls: list[dict] = []

    async def get(self, url: str, params: dict | None = None, headers: dict | None = None) -> FakeResponse:
        self.calls.append({"url": url, "params": params, "headers": headers})
        for suffix, payload in self.routes.items():
            if url.endswith(suffix):
                return FakeResponse(payload, self.status_code)
        return FakeResponse([], self.status_code)

    async def aclose(self) -> None:
        return None


ROUTES = {
    "/pdi/v1/transtypecode": [
        {"transactioN_TYPE_ID": 75, "transactioN_DESC": "Goods at standard rate (default)"},
        {"transactioN_TYPE_ID": 18, "transactioN_DESC": "Services"},
    ],
    "/pdi/v2/SaleTypeToRate": [
        {"ratE_ID": 280, "ratE_DESC": "18%", "ratE_VALUE": 18},
        {"ratE_ID": 734, "ratE_DESC": "5%", "ratE_VALUE": 5},
        {"ratE_ID": 901, "ratE_DESC": "Rs.200", "ratE_VALUE": 0},
    ],
    "/pdi/v1/SroSchedule": [
        {"srO_ID": 389, "serNo": 1, "srO_DESC": "EIGHTH SCHEDULE"},
    ],
    "/pdi/v2/SROItem": [
        {"srO_ITEM_ID": 17853, "srO_ITEM_DESC": "81"},
    ],
}


def _client(routes: dict = ROUTES, status_code: int = 200, token: str = "TOKEN") -> tuple[FbrSroClient, FakeHttpClient]:
    http_client = FakeHttpClient(routes, status_code)
    client = FbrSroClient(
        base_url="https://gw.example/",
        token=token,
        catalog=load_scenario_catalog(),
        http_client=http_client,
    )
    return client, http_client


@pytest.mark.asyncio
async def test_fetch_schedules_walks_lookup_chain() -> None:
    client, http_client = _client()

    schedules = await client.fetch_schedules("SN019", Decimal("5"), 7, date(2025, 1, 5), rate_label="5%")

    assert [schedule.sro_id for schedule in schedules] == [389]
    assert schedules[0].description == "EIGHTH SCHEDULE"
    urls = [call["url"] for call in http_client.calls]
    assert urls == [
        "https://gw.example/pdi/v1/transtypecode",
        "https://gw.example/pdi/v2/SaleTypeToRate",
        "https://gw.example/pdi/v1/SroSchedule",
    ]
    assert http_client.calls[1]["params"] == {"date": "05-Jan2025", "transTypeId": 18, "originationSupplier": 7}
    assert http_client.calls[2]["params"] == {"rate_id": 734, "date": "05-Jan2025", "origination_supplier_csv": 7}
    assert http_client.calls[0]["headers"]["Authorization"] == "Bearer TOKEN"


@pytest.mark.asyncio
async def test_lookups_are_cached() -> None:
    client, http_client = _client()

    await client.fetch_schedules("SN019", Decimal("5"), 7, date(2025, 1, 5), rate_label="5%")
    await client.fetch_schedules("SN019", Decimal("5"), 7, date(2025, 1, 5), rate_label="5%")

    assert len(http_client.calls) == 3


@pytest.mark.asyncio
async def test_rupee_labels_match_rate_description() -> None:
    routes = dict(ROUTES)
    routes["/pdi/v1/transtypecode"] = [{"TRANSACTION_TYPE_ID": 3, "TRANSACTION_DESC": "CNG Sales"}]
    client, http_client = _client(routes)

    schedules = await client.fetch_schedules("SN023", Decimal("18"), None, date(2025, 1, 5), rate_label="Rs.200")

    assert schedules
    assert http_client.calls[-1]["params"] == {"rate_id": 901, "date": "05-Jan2025"}


@pytest.mark.asyncio
async def test_unmatched_rate_returns_no_schedules() -> None:
    client, http_client = _client()

    schedules = await client.fetch_schedules("SN019", Decimal("12"), 7, date(2025, 1, 5), rate_label="12%")

    assert schedules == []
    assert len(http_client.calls) == 2


@pytest.mark.asyncio
async def test_unknown_transaction_type_returns_no_schedules() -> None:
    client, http_client = _client()

    schedules = await client.fetch_schedules("SN012", Decimal("18"), 7, date(2025, 1, 5))

    assert schedules == []
    assert len(http_client.calls) == 1


@pytest.mark.asyncio
async def test_fetch_serials_uses_iso_date() -> None:
    client, http_client = _client()

    serials = await client.fetch_serials(389, date(2025, 1, 5))

    assert [serial.description for serial in serials] == ["81"]
    assert http_client.calls[0]["params"] == {"date": "2025-01-05", "sro_id": 389}


@pytest.mark.asyncio
async def test_http_errors_propagate() -> None:
    client, _ = _client(status_code=500)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_serials(389, date(2025, 1, 5))


def test_client_without_token_is_disabled() -> None:
    client, _ = _client(token="")

    assert client.enabled is False


def test_rate_text_parsing() -> None:
    assert parse_rate_text("18%") == Decimal("18")
    assert parse_rate_text("0.5%") == Decimal("0.5")
    assert parse_rate_text("Exempt") == Decimal("0")
    assert parse_rate_text("18% along with rupees 60 per kilogram") == Decimal("18")
    assert parse_rate_text("Rs.200") is None
    assert parse_rate_text("") == Decimal("0")


def test_lookup_date_format() -> None:
    assert format_lookup_date(date(2025, 1, 5)) == "05-Jan2025"


class SlowRateHttpClient(FakeHttpClient):
    """Rates for one transaction type hang; every other route answers at once."""

    def __init__(self, routes: dict, slow_transaction_type: int) -> None:
        super().__init__(routes)
        self.slow_transaction_type = slow_transaction_type

    async def get(self, url: str, params: dict | None = None, headers: dict | None = None) -> FakeResponse:
        if params and params.get("transTypeId") == self.slow_transaction_type:
            await asyncio.sleep(5)
        return await super().get(url, params=params, headers=headers)


def _reference_item(idx: int, scenario_code: str, rate_label: str) -> InvoiceItem:
    return InvoiceItem(
        line_index=idx,
        name=f"Item {idx}",
        quantity=Decimal("1"),
        unit_price=Decimal("100"),
        gross_amount=Decimal("100"),
        net_amount=Decimal("100"),
        display_tax_rate=Decimal("5"),
        rate_label=rate_label,
        primary_tax_amount=Decimal("5"),
        total_value=Decimal("105"),
        sale_type="Services",
        scenario_code=scenario_code,
        requires_reference=True,
    )


@pytest.mark.asyncio
async def test_hanging_lookup_does_not_block_other_items() -> None:
    http_client = SlowRateHttpClient(ROUTES, slow_transaction_type=75)
    client = FbrSroClient(token="TOKEN", catalog=load_scenario_catalog(), http_client=http_client)

    slow, fast = await enrich_items(
        client,
        [_reference_item(0, "SN001", "5%"), _reference_item(1, "SN019", "5%")],
        tax_rates=[Decimal("5"), Decimal("5")],
        province_code=7,
        document_date=date(2025, 1, 5),
        timeout=0.5,
    )

    assert (fast.schedule_reference, fast.reference_serial) == ("EIGHTH SCHEDULE", "81")
    assert (slow.schedule_reference, slow.reference_serial) == ("", "")
