from orderflow.models.client import Client
from orderflow.models.client_balance import ClientBalance
from orderflow.models.idempotency_record import IdempotencyRecord
from orderflow.models.order import Order, OrderItem, WorkflowStage
from orderflow.models.order_payment_record import OrderPaymentRecord, PaymentStatus
from orderflow.models.order_return import ItemCondition, OrderReturn, ReturnLineItem, ReturnType
from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.models.production_task import ProductionTask, TaskPriority, TaskStatus
from orderflow.models.settlement_allocation import AllocationType, SettlementAllocation
from orderflow.models.settlement_session import (
    PaymentType,
    SettlementSession,
    SettlementStatus,
    SettlementType,
)
from orderflow.models.workflow_event import WorkflowEvent

__all__ = [
    "AllocationType",
    "Client",
    "ClientBalance",
    "IdempotencyRecord",
    "ItemCondition",
    "Order",
    "OrderItem",
    "OrderPaymentRecord",
    "OrderReturn",
    "PaymentStatus",
    "PaymentTransaction",
    "PaymentType",
    "ProductionTask",
    "ReturnLineItem",
    "ReturnType",
    "SettlementAllocation",
    "SettlementSession",
    "SettlementStatus",
    "SettlementType",
    "TaskPriority",
    "TaskStatus",
    "TransactionType",
    "WorkflowEvent",
    "WorkflowStage",
]
