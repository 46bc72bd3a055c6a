# billing/schemas/payment.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from billing.models.course import CourseType


class PaymentOutcome(BaseModel):
    """Result of paying for a course, including idempotent repeats."""

    success: bool = True
    course_type: CourseType
    amount: Decimal = Field(Decimal("0"), description="Amount charged by this call")
    expires_at: Optional[datetime] = None
    charged: bool = Field(False, description="False when the course was already held")
    balance: Decimal
    transaction_id: Optional[int] = None

    @field_serializer("amount", "balance")
    def serialize_money(self, value: Decimal):
        return float(value)
