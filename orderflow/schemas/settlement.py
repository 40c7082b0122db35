from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.settlement_allocation import AllocationType
from orderflow.models.settlement_session import PaymentType, SettlementStatus, SettlementType
from orderflow.schemas.payment import OrderPaymentRecordResponse


class SettlementOptions(BaseModel):
    """How a settlement should be carried out.

    ``order_ids`` restricts allocation to an explicit subset; when omitted all
    of the client's unpaid or partially paid orders are eligible.
    """

    order_ids: list[UUID] | None = None
    payment_type: PaymentType = PaymentType.FULL_PAYMENT
    settlement_type: SettlementType = SettlementType.ROUTINE_COLLECTION
    payment_reference: str | None = Field(default=None, max_length=255)
    driver_id: str | None = Field(default=None, max_length=255)
    origin_order_id: UUID | None = None
    notes: str | None = None
    recorded_by: str | None = None

    @property
    def defers_payment(self) -> bool:
        return self.payment_type in (PaymentType.NO_PAYMENT, PaymentType.DEBT_ONLY)


class SettlementRequest(BaseModel):
    client_id: UUID
    amount_collected: Decimal
    payment_method: str | None = Field(default=None, max_length=50)
    options: SettlementOptions = Field(default_factory=SettlementOptions)


class DeliverySettlementRequest(BaseModel):
    amount_collected: Decimal
    payment_method: str | None = Field(default=None, max_length=50)
    actor_id: str = Field(..., min_length=1, max_length=255)
    actor_role: str = Field(default="delivery", max_length=50)
    options: SettlementOptions = Field(default_factory=SettlementOptions)


class SettlementStatusCorrection(BaseModel):
    settlement_status: SettlementStatus
    note: str | None = None


class SettlementAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    allocation_type: AllocationType
    amount: Decimal
    created_at: datetime


class SettlementSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    origin_order_id: UUID | None
    driver_id: str | None
    settlement_type: SettlementType
    payment_type: PaymentType
    orders_to_collect: list[str]
    total_collectible: Decimal
    amount_collected: Decimal
    credit_amount: Decimal
    payment_method: str
    payment_reference: str | None
    settlement_status: SettlementStatus
    notes: str | None
    recorded_by: str | None
    settlement_date: datetime
    created_at: datetime


class SettlementDetailResponse(SettlementSessionResponse):
    allocations: list[SettlementAllocationResponse] = Field(default_factory=list)


class CollectionPlanResponse(BaseModel):
    should_collect: bool
    orders_to_collect: list[OrderPaymentRecordResponse]
    total_amount: Decimal
    reason: str
