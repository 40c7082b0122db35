from orderflow.schemas.client import (
    AdjustmentCreate,
    ClientBalanceResponse,
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    ReturnPolicyResponse,
)
from orderflow.schemas.order import (
    AllowedTransitionsResponse,
    DeliveredItem,
    DeliveredItemsUpdate,
    OrderCreate,
    OrderDetailResponse,
    OrderItemCreate,
    OrderItemResponse,
    OrderResponse,
    ProductionTaskResponse,
    StageTransitionRequest,
)
from orderflow.schemas.order_return import (
    AdjustedTotalResponse,
    OrderReturnCreate,
    OrderReturnResponse,
    ReturnLineItemCreate,
    ReturnLineItemResponse,
)
from orderflow.schemas.payment import (
    OrderPaymentRecordResponse,
    PaymentApply,
    PaymentMethodChoice,
    PaymentTransactionCreate,
    PaymentTransactionResponse,
    ReversalRequest,
    WaiveRequest,
)
from orderflow.schemas.payment_sheet import ClientPaymentSheet
from orderflow.schemas.settlement import (
    CollectionPlanResponse,
    DeliverySettlementRequest,
    SettlementAllocationResponse,
    SettlementDetailResponse,
    SettlementOptions,
    SettlementRequest,
    SettlementSessionResponse,
    SettlementStatusCorrection,
)
from orderflow.schemas.workflow_event import WorkflowEventResponse

__all__ = [
    "AdjustedTotalResponse",
    "AdjustmentCreate",
    "AllowedTransitionsResponse",
    "ClientBalanceResponse",
    "ClientCreate",
    "ClientPaymentSheet",
    "ClientResponse",
    "ClientUpdate",
    "CollectionPlanResponse",
    "DeliveredItem",
    "DeliveredItemsUpdate",
    "DeliverySettlementRequest",
    "OrderCreate",
    "OrderDetailResponse",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderPaymentRecordResponse",
    "OrderResponse",
    "OrderReturnCreate",
    "OrderReturnResponse",
    "PaymentApply",
    "PaymentMethodChoice",
    "PaymentTransactionCreate",
    "PaymentTransactionResponse",
    "ProductionTaskResponse",
    "ReturnLineItemCreate",
    "ReturnLineItemResponse",
    "ReturnPolicyResponse",
    "ReversalRequest",
    "SettlementAllocationResponse",
    "SettlementDetailResponse",
    "SettlementOptions",
    "SettlementRequest",
    "SettlementSessionResponse",
    "SettlementStatusCorrection",
    "StageTransitionRequest",
    "WaiveRequest",
    "WorkflowEventResponse",
]
