from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NUMERIC_CLEAN_RE = re.compile(r"[^\d\.-]")
# Currency prefix such as "Rs." or "PKR", optionally after a sign
_CURRENCY_PREFIX_RE = re.compile(r"^(-?)\s*[A-Za-z]+\.?\s*")
_TRAILING_DASH_RE = re.compile(r"/-\s*$")


def parse_decimal_like(value: Decimal | float | str | None, *, allow_none: bool) -> Decimal | None:
    """Normalize currency/number strings like 'PKR 1,000.00' or 'Rs. 1,500/-' into Decimals."""

    if value is None:
        if allow_none:
            return None
        raise ValueError("Value is required and cannot be null")

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    value_str = str(value).strip()
    if not value_str:
        if allow_none:
            return None
        raise ValueError("Value is required and cannot be empty")

    value_str = _TRAILING_DASH_RE.sub("", _CURRENCY_PREFIX_RE.sub(r"\1", value_str))
    cleaned = _NUMERIC_CLEAN_RE.sub("", value_str)
    if cleaned in {"", ".", "-", "-.", ".-"}:
        if allow_none:
            return None
        raise ValueError(f"Cannot parse numeric value from: {value}")

    try:
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric format: {value}") from exc


class BuyerRegistrationStatus(str, Enum):
    REGISTERED = "Registered"
    UNREGISTERED = "Unregistered"


class RawLedgerLine(BaseModel):
    """One line of a source sales document as read from the accounting system."""

    model_config = ConfigDict(frozen=True)

    sequence_index: int = Field(..., ge=0, description="Stable position within the document.")
    item_reference: str = Field(default="", description="Accounting item list id; may be empty.")
    item_type: str = Field(default="", description="Declared item type / full name; may be empty.")
    description: str = Field(default="", description="Free-text line description.")
    quantity: Optional[Decimal] = Field(default=None, description="Line quantity when present.")
    unit_of_measure: str = Field(default="", description="Unit of measure as entered.")
    amount: Decimal = Field(..., description="Signed line amount; negative for discounts.")
    custom_fields: dict[str, str] = Field(
        default_factory=dict,
        description="Line-level custom fields (HS Code, Sale Type, Retail Price, ...).",
    )

    @field_validator("item_reference", "item_type", "description", "unit_of_measure", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Decimal | float | str | None) -> Decimal | None:
        return parse_decimal_like(value, allow_none=True)

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Decimal | float | str | None) -> Decimal:
        parsed = parse_decimal_like(value, allow_none=False)
        if parsed is None:
            raise ValueError("Amount is required")
        return parsed

    def custom_field(self, name: str) -> str:
        """Return a custom field value by case-insensitive name, or ''."""

        key = name.strip().casefold()
        for field_name, field_value in self.custom_fields.items():
            if field_name.strip().casefold() == key and field_value and field_value.strip():
                return field_value.strip()
        return ""


class ItemDetails(BaseModel):
    """Auxiliary item data resolved by the accounting connector."""

    hs_code: Optional[str] = Field(default=None, description="Declared HS code.")
    sale_type: Optional[str] = Field(default=None, description="Declared sale-type label.")
    retail_price: Optional[Decimal] = Field(default=None, description="Notified retail price per unit.")

    @field_validator("retail_price", mode="before")
    @classmethod
    def _parse_retail_price(cls, value: Decimal | float | str | None) -> Decimal | None:
        return parse_decimal_like(value, allow_none=True)


class LedgerDocument(BaseModel):
    """A complete sales document handed over by the accounting connector."""

    document_number: str = Field(..., description="Invoice or credit memo number.")
    document_date: date = Field(..., description="Document date.")
    buyer_registration_status: BuyerRegistrationStatus = Field(
        default=BuyerRegistrationStatus.REGISTERED,
        description="Buyer registration status with the tax authority.",
    )
    province_code: Optional[int] = Field(default=None, description="Seller province code for lookups.")
    tax_rate: Decimal = Field(default=Decimal("18"), ge=0, description="Document-level nominal tax rate (percent).")
    default_sale_type: Optional[str] = Field(default=None, description="Sale type used when an item declares none.")
    lines: list[RawLedgerLine] = Field(default_factory=list, description="Ledger lines in document order.")
    item_details: dict[str, ItemDetails] = Field(
        default_factory=dict,
        description="Auxiliary item data keyed by item reference.",
    )

    @field_validator("buyer_registration_status", mode="before")
    @classmethod
    def _parse_buyer_status(cls, value: str | BuyerRegistrationStatus | None) -> BuyerRegistrationStatus:
        if value is None or isinstance(value, BuyerRegistrationStatus):
            return value or BuyerRegistrationStatus.REGISTERED
        lowered = str(value).strip().lower()
        if lowered == "unregistered":
            return BuyerRegistrationStatus.UNREGISTERED
        if lowered in {"registered", ""}:
            return BuyerRegistrationStatus.REGISTERED
        raise ValueError(f"Unknown buyer registration status: {value}")

    @field_validator("tax_rate", mode="before")
    @classmethod
    def _parse_tax_rate(cls, value: Decimal | float | str | None) -> Decimal:
        parsed = parse_decimal_like(value, allow_none=True)
        return Decimal("18") if parsed is None else parsed
