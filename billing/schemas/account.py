# billing/schemas/account.py
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer


class CredentialsRequest(BaseModel):
    username: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=6, max_length=128)


class AuthResponse(BaseModel):
    token: str
    roles: List[str]


class CurrentAccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    roles: List[str]
    balance: Decimal

    @field_serializer("balance")
    def serialize_balance(self, balance: Decimal):
        return float(balance)
