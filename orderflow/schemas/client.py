from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    business_name: str | None = Field(default=None, max_length=255)
    return_policy_enabled: bool = True
    payment_delay_orders: int = Field(default=1, ge=0)
    max_debt_limit: Decimal = Field(default=Decimal("1000"), ge=0)


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    business_name: str | None = Field(default=None, max_length=255)
    return_policy_enabled: bool | None = None
    payment_delay_orders: int | None = Field(default=None, ge=0)
    max_debt_limit: Decimal | None = Field(default=None, ge=0)


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    business_name: str | None
    return_policy_enabled: bool
    payment_delay_orders: int
    max_debt_limit: Decimal
    last_settled_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ClientBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_id: UUID
    current_balance: Decimal
    total_debt: Decimal
    total_credit: Decimal
    last_payment_date: datetime | None
    last_order_date: datetime | None


class ReturnPolicyResponse(BaseModel):
    policy_enabled: bool
    payment_delay_orders: int
    max_debt_limit: Decimal


class AdjustmentCreate(BaseModel):
    amount: Decimal
    description: str = Field(..., min_length=1)
    recorded_by: str | None = None
