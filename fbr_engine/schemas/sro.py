from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionType(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transaction_type_id: int = Field(..., alias="TRANSACTION_TYPE_ID")
    description: str = Field(default="", alias="TRANSACTION_DESC")


class SaleTypeRate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rate_id: int = Field(..., alias="RATE_ID")
    description: str = Field(default="", alias="RATE_DESC")
    value: Decimal = Field(default=Decimal("0"), alias="RATE_VALUE")


class SroSchedule(BaseModel):
    """Candidate regulatory schedule returned by the authority."""

    model_config = ConfigDict(populate_by_name=True)

    sro_id: int = Field(..., alias="SRO_ID")
    serial_number: int | None = Field(default=None, alias="SERNO")
    description: str = Field(default="", alias="SRO_DESC")

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return "" if value is None else str(value).strip()


class SroItem(BaseModel):
    """Candidate serial number within a schedule."""

    model_config = ConfigDict(populate_by_name=True)

    sro_item_id: int = Field(..., alias="SRO_ITEM_ID")
    description: str = Field(default="", alias="SRO_ITEM_DESC")

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return "" if value is None else str(value).strip()
