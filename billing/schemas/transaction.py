# billing/schemas/transaction.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from billing.models.transaction import TransactionType

# ==================== Transaction Schemas ====================


class TransactionFilter(BaseModel):
    """Optional filters for listing transactions; set fields are AND-ed."""

    type: Optional[TransactionType] = Field(None, description="deposit or payment")
    course_code: Optional[str] = Field(None, description="Course code")
    skip_expired: bool = Field(False, description="Hide rentals that already ended")


class TransactionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    type: TransactionType
    course_code: Optional[str] = None
    amount: Decimal
    expires_at: Optional[datetime] = None

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal):
        return float(amount)


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class DepositResponse(BaseModel):
    success: bool = True
    transaction_id: int
    amount: Decimal
    balance: Decimal

    @field_serializer("amount", "balance")
    def serialize_money(self, value: Decimal):
        return float(value)


@dataclass(frozen=True)
class ExpiringRental:
    email: str
    course_code: str
    course_name: str
    expires_at: datetime


@dataclass(frozen=True)
class PeriodTotal:
    email: str
    course_code: str
    course_name: str
    course_type: str
    transactions_count: int
    total_amount: Decimal
