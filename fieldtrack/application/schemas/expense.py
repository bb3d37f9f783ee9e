"""Pydantic DTOs for the Expense feature."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, field_validator

_CENT = Decimal("0.01")


def parse_amount(value) -> Decimal:
    """Parse a user-entered amount; a comma is accepted as decimal separator.

    The result is rounded to two decimals and must be greater than zero.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            raise ValueError("Amount is required")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError("Amount must be a number") from None
    else:
        raise ValueError("Amount must be a number")
    if not amount.is_finite():
        raise ValueError("Amount must be a number")
    if amount <= 0:
        raise ValueError("Amount must be greater than zero")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


class ExpenseCreate(BaseModel):
    """Schema for creating a new expense from form input.

    ``company_id`` and ``created_by`` are filled in by the service after
    input validation.
    """

    model_config = ConfigDict(extra="forbid")

    project_id: int = Field(..., gt=0)
    amount: Decimal
    company_id: int | None = None
    task_id: int | None = None
    currency: str = Field("TRY", min_length=3, max_length=3)
    description: str | None = None
    spent_at: date = Field(default_factory=date.today)
    created_by: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return parse_amount(value)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("spent_at", mode="before")
    @classmethod
    def _blank_date(cls, value):
        if isinstance(value, str) and not value.strip():
            return date.today()
        return value


class ExpenseUpdate(BaseModel):
    """Schema for editing an expense — all fields optional."""

    model_config = ConfigDict(extra="forbid")

    amount: Decimal | None = None
    description: str | None = None
    spent_at: date | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return None if value is None else parse_amount(value)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value
