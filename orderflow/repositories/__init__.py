from orderflow.repositories.client_balance_repository import ClientBalanceRepository
from orderflow.repositories.client_repository import ClientRepository
from orderflow.repositories.idempotency_repository import IdempotencyRepository
from orderflow.repositories.order_item_repository import OrderItemRepository
from orderflow.repositories.order_payment_record_repository import OrderPaymentRecordRepository
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.order_return_repository import OrderReturnRepository
from orderflow.repositories.payment_transaction_repository import PaymentTransactionRepository
from orderflow.repositories.production_task_repository import ProductionTaskRepository
from orderflow.repositories.settlement_allocation_repository import SettlementAllocationRepository
from orderflow.repositories.settlement_session_repository import SettlementSessionRepository
from orderflow.repositories.workflow_event_repository import WorkflowEventRepository

__all__ = [
    "ClientBalanceRepository",
    "ClientRepository",
    "IdempotencyRepository",
    "OrderItemRepository",
    "OrderPaymentRecordRepository",
    "OrderRepository",
    "OrderReturnRepository",
    "PaymentTransactionRepository",
    "ProductionTaskRepository",
    "SettlementAllocationRepository",
    "SettlementSessionRepository",
    "WorkflowEventRepository",
]
