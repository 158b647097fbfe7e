from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fbr_engine.schemas.ledger import BuyerRegistrationStatus, LedgerDocument, RawLedgerLine, parse_decimal_like


def test_raw_line_parses_currency_strings() -> None:
    line = RawLedgerLine(sequence_index=0, item_reference=None, amount="PKR 1,000.00", quantity="")

    assert line.amount == Decimal("1000.00")
    assert line.quantity is None
    assert line.item_reference == ""


def test_raw_line_requires_amount() -> None:
    with pytest.raises(ValidationError):
        RawLedgerLine(sequence_index=0, amount=None)
    with pytest.raises(ValidationError):
        RawLedgerLine(sequence_index=0, amount="n/a")


def test_custom_field_lookup_is_case_insensitive() -> None:
    line = RawLedgerLine(
        sequence_index=0,
        amount="10",
        custom_fields={"hs code": " 8471.3010 ", "Sale Type": "  "},
    )

    assert line.custom_field("HS Code") == "8471.3010"
    assert line.custom_field("Sale Type") == ""
    assert line.custom_field("Retail Price") == ""


def test_document_defaults_and_buyer_status() -> None:
    document = LedgerDocument(
        document_number="INV-1",
        document_date=date(2025, 1, 5),
        buyer_registration_status="unregistered",
        tax_rate=None,
    )

    assert document.buyer_registration_status is BuyerRegistrationStatus.UNREGISTERED
    assert document.tax_rate == Decimal("18")
    assert document.lines == []


def test_unknown_buyer_status_is_rejected() -> None:
    with pytest.raises(ValidationError):
        LedgerDocument(
            document_number="INV-1",
            document_date=date(2025, 1, 5),
            buyer_registration_status="sometimes",
        )


def test_rupee_prefixed_amounts_keep_their_magnitude() -> None:
    assert parse_decimal_like("Rs. 1,500", allow_none=False) == Decimal("1500")
    assert parse_decimal_like("Rs.200", allow_none=False) == Decimal("200")
    assert parse_decimal_like("Rs 1,500/-", allow_none=False) == Decimal("1500")
    assert parse_decimal_like("-Rs. 300.50", allow_none=False) == Decimal("-300.50")
    assert parse_decimal_like("1,000.00 PKR", allow_none=False) == Decimal("1000.00")
