from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.order_payment_record import PaymentStatus
from orderflow.models.payment_transaction import TransactionType


class OrderPaymentRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    client_id: UUID
    order_total: Decimal
    amount_paid: Decimal
    amount_remaining: Decimal
    returns_credit: Decimal
    payment_status: PaymentStatus
    payment_method: str | None
    payment_reference: str | None
    payment_date: datetime | None
    due_date: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class PaymentApply(BaseModel):
    amount: Decimal
    method: str | None = Field(default=None, max_length=50)
    reference: str | None = Field(default=None, max_length=255)
    note: str | None = None
    recorded_by: str | None = None


class PaymentMethodChoice(BaseModel):
    method: str = Field(..., min_length=1, max_length=50)


class WaiveRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    recorded_by: str | None = None


class ReversalRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    recorded_by: str | None = None


class PaymentTransactionCreate(BaseModel):
    client_id: UUID
    transaction_type: TransactionType
    amount: Decimal
    related_order_id: UUID | None = None
    related_settlement_id: UUID | None = None
    related_return_id: UUID | None = None
    reverses_transaction_id: UUID | None = None
    payment_method: str | None = None
    reference_number: str | None = None
    description: str = ""
    recorded_by: str | None = None


class PaymentTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    transaction_type: TransactionType
    amount: Decimal
    related_order_id: UUID | None
    related_settlement_id: UUID | None
    related_return_id: UUID | None
    reverses_transaction_id: UUID | None
    payment_method: str | None
    reference_number: str | None
    description: str
    recorded_by: str | None
    created_at: datetime
