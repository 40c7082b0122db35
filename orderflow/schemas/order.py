from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.order import WorkflowStage
from orderflow.models.production_task import TaskPriority, TaskStatus


class OrderItemCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)


class OrderCreate(BaseModel):
    client_id: UUID
    items: list[OrderItemCreate] = Field(..., min_length=1)
    order_date: datetime | None = None
    due_date: datetime | None = None
    notes: str | None = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_name: str
    quantity: int
    delivered_quantity: int
    unit_price: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    client_id: UUID
    order_date: datetime
    total: Decimal
    stage: WorkflowStage
    assigned_driver_id: str | None
    production_notes: str | None
    delivery_notes: str | None
    production_started_at: datetime | None
    production_completed_at: datetime | None
    delivery_started_at: datetime | None
    delivery_completed_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class OrderDetailResponse(OrderResponse):
    items: list[OrderItemResponse] = Field(default_factory=list)


class DeliveredItem(BaseModel):
    item_id: UUID
    delivered_quantity: int = Field(..., ge=0)


class DeliveredItemsUpdate(BaseModel):
    items: list[DeliveredItem] = Field(..., min_length=1)
    reason: str | None = None


class StageTransitionRequest(BaseModel):
    target_stage: WorkflowStage
    actor_id: str = Field(..., min_length=1, max_length=255)
    actor_role: str = Field(..., min_length=1, max_length=50)
    note: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AllowedTransitionsResponse(BaseModel):
    stage: WorkflowStage
    allowed: list[WorkflowStage]


class ProductionTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    product_name: str
    quantity: int
    priority: TaskPriority
    estimated_minutes: int
    status: TaskStatus
    completed_at: datetime | None
    created_at: datetime
