from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.order_return import ItemCondition, ReturnType


class ReturnLineItemCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity_returned: int = Field(..., gt=0)
    # Defaults to the price the product was sold at on the original order
    unit_price: Decimal | None = Field(default=None, ge=0)
    condition: ItemCondition = ItemCondition.GOOD
    restockable: bool | None = None
    notes: str | None = None


class OrderReturnCreate(BaseModel):
    return_type: ReturnType
    items: list[ReturnLineItemCreate] = Field(..., min_length=1)
    processed_by: str | None = None
    notes: str | None = None


class ReturnLineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_name: str
    quantity_returned: int
    unit_price: Decimal
    credit_amount: Decimal
    condition: ItemCondition
    restockable: bool
    notes: str | None


class OrderReturnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    client_id: UUID
    return_type: ReturnType
    total_credit: Decimal
    processed_by: str | None
    notes: str | None
    credit_applied_at: datetime | None
    created_at: datetime
    items: list[ReturnLineItemResponse] = Field(default_factory=list)


class AdjustedTotalResponse(BaseModel):
    order_id: UUID
    order_total: Decimal
    returns_credit: Decimal
    adjusted_total: Decimal
