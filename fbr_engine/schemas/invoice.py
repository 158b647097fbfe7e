from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class InvoiceItem(BaseModel):
    """Finalized invoice line ready for the submission/persistence layers."""

    line_index: int = Field(..., description="Sequence index of the source ledger line.")
    name: str = Field(..., description="Product description.")
    hs_code: str = Field(default="", description="Harmonized System code.")
    quantity: Decimal = Field(..., gt=0, description="Quantity (absent/zero source quantity reported as 1).")
    unit_of_measure: str = Field(default="", description="Unit of measure.")
    unit_price: Decimal = Field(..., description="Gross amount divided by quantity.")
    gross_amount: Decimal = Field(..., description="Line amount before discount.")
    net_amount: Decimal = Field(..., ge=0, description="Value excluding sales tax, after discount.")
    display_tax_rate: Decimal = Field(..., ge=0, description="Rate shown on the item (percent).")
    rate_label: str = Field(..., description="Authority-facing rate text, e.g. '18%', 'Exempt'.")
    primary_tax_amount: Decimal = Field(..., ge=0, description="Sales tax applicable.")
    secondary_tax_amount: Decimal = Field(default=Decimal("0"), ge=0, description="Further tax above the standard rate.")
    total_value: Decimal = Field(..., description="Value including all taxes.")
    retail_price_total: Decimal = Field(default=Decimal("0"), description="Fixed/notified value or retail price total.")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="Discount attributed to the item.")
    sale_type: str = Field(..., description="Authority sale-type text.")
    scenario_code: str = Field(..., description="Resolved scenario code (SNxxx).")
    requires_reference: bool = Field(default=False, description="Whether a schedule reference is mandatory.")
    schedule_reference: Optional[str] = Field(default="", description="SRO schedule number.")
    reference_serial: Optional[str] = Field(default="", description="SRO item serial number.")

    @field_validator("schedule_reference", "reference_serial", mode="before")
    @classmethod
    def _normalize_reference(cls, value: str | None) -> str:
        return "" if value is None else str(value).strip()

    @property
    def has_reference_pair(self) -> bool:
        return bool(self.schedule_reference) and bool(self.reference_serial)


class NormalizedInvoice(BaseModel):
    """Engine output for one ledger document."""

    document_number: str = Field(..., description="Source document number.")
    scenario_code: str = Field(..., description="Document-level scenario code.")
    items: list[InvoiceItem] = Field(default_factory=list, description="Finalized invoice items.")
    errors: list[str] = Field(
        default_factory=list,
        description="Submission validation findings; informational, never raised.",
    )


class NormalizationResponse(BaseModel):
    """Standard envelope for normalization results."""

    success: bool = Field(..., description="True when no validation findings were reported.")
    data: NormalizedInvoice = Field(..., description="Normalized invoice payload.")
    message: str = Field(..., description="Human-readable status message.")
