"""Order API endpoints: placement, workflow, payments, returns and settlement."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from orderflow.core.database import get_db
from orderflow.core.dependencies import get_idempotency_key, get_notifier
from orderflow.models.order import Order, WorkflowStage
from orderflow.models.order_payment_record import OrderPaymentRecord
from orderflow.models.order_return import OrderReturn
from orderflow.models.production_task import ProductionTask
from orderflow.models.settlement_session import SettlementSession
from orderflow.models.workflow_event import WorkflowEvent
from orderflow.schemas.order import (
    AllowedTransitionsResponse,
    DeliveredItemsUpdate,
    OrderCreate,
    OrderDetailResponse,
    OrderItemResponse,
    OrderResponse,
    ProductionTaskResponse,
    StageTransitionRequest,
)
from orderflow.schemas.order_return import (
    AdjustedTotalResponse,
    OrderReturnCreate,
    OrderReturnResponse,
    ReturnLineItemResponse,
)
from orderflow.schemas.payment import (
    OrderPaymentRecordResponse,
    PaymentApply,
    PaymentMethodChoice,
    WaiveRequest,
)
from orderflow.schemas.settlement import (
    CollectionPlanResponse,
    DeliverySettlementRequest,
    SettlementAllocationResponse,
    SettlementDetailResponse,
    SettlementSessionResponse,
)
from orderflow.schemas.workflow_event import WorkflowEventResponse
from orderflow.services.notification_service import ChangeNotifier
from orderflow.services.order_service import OrderService
from orderflow.services.payment_ledger import PaymentLedger
from orderflow.services.production_task_service import ProductionTaskService
from orderflow.services.returns_service import ReturnsService
from orderflow.services.settlement_service import SettlementService
from orderflow.services.stage_machine import StageMachine, allowed_transitions

router = APIRouter()


def order_detail(service: OrderService, order: Order) -> OrderDetailResponse:
    items = [OrderItemResponse.model_validate(i) for i in service.get_items(order.id)]  # type: ignore[arg-type]
    return OrderDetailResponse(**OrderResponse.model_validate(order).model_dump(), items=items)


def return_detail(service: ReturnsService, order_return: OrderReturn) -> OrderReturnResponse:
    lines = service.get_line_items(order_return.id)  # type: ignore[arg-type]
    base = OrderReturnResponse.model_validate(order_return).model_dump(exclude={"items"})
    return OrderReturnResponse(**base, items=[ReturnLineItemResponse.model_validate(li) for li in lines])


def settlement_detail(service: SettlementService, session: SettlementSession) -> SettlementDetailResponse:
    allocations = service.get_allocations(session.id)  # type: ignore[arg-type]
    return SettlementDetailResponse(
        **SettlementSessionResponse.model_validate(session).model_dump(),
        allocations=[SettlementAllocationResponse.model_validate(a) for a in allocations],
    )


@router.post(
    "/",
    response_model=OrderDetailResponse,
    status_code=201,
    summary="Place order",
    responses={
        404: {"description": "Client not found"},
        422: {"description": "Validation error"},
    },
)
async def place_order(data: OrderCreate, db: Session = Depends(get_db)) -> OrderDetailResponse:
    """Place an order with its lines; it starts at ``order_placed``."""
    service = OrderService(db)
    return order_detail(service, service.place_order(data))


@router.get("/", response_model=list[OrderResponse], summary="List orders")
async def list_orders(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    client_id: UUID | None = None,
    stage: WorkflowStage | None = None,
    db: Session = Depends(get_db),
) -> list[Order]:
    """List orders, newest first, optionally filtered by client and stage."""
    service = OrderService(db)
    response.headers["X-Total-Count"] = str(service.count_orders(client_id=client_id, stage=stage))
    return service.list_orders(skip=skip, limit=limit, client_id=client_id, stage=stage)


@router.get(
    "/{order_id}",
    response_model=OrderDetailResponse,
    summary="Get order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(order_id: UUID, db: Session = Depends(get_db)) -> OrderDetailResponse:
    service = OrderService(db)
    return order_detail(service, service.get_order(order_id))


@router.post(
    "/{order_id}/transitions",
    response_model=OrderResponse,
    summary="Move order to another stage",
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Transition not allowed or concurrent update"},
    },
)
async def transition_order(
    order_id: UUID,
    data: StageTransitionRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> Order:
    return StageMachine(db, notifier=notifier).transition(
        order_id,
        data.target_stage,
        actor_id=data.actor_id,
        actor_role=data.actor_role,
        note=data.note,
        metadata=data.metadata,
    )


@router.get(
    "/{order_id}/transitions/allowed",
    response_model=AllowedTransitionsResponse,
    summary="List allowed next stages",
    responses={404: {"description": "Order not found"}},
)
async def get_allowed_transitions(
    order_id: UUID, db: Session = Depends(get_db)
) -> AllowedTransitionsResponse:
    order = OrderService(db).get_order(order_id)
    stage = WorkflowStage(order.stage)
    return AllowedTransitionsResponse(stage=stage, allowed=allowed_transitions(stage))


@router.get(
    "/{order_id}/events",
    response_model=list[WorkflowEventResponse],
    summary="List workflow events of an order",
    responses={404: {"description": "Order not found"}},
)
async def list_order_events(order_id: UUID, db: Session = Depends(get_db)) -> list[WorkflowEvent]:
    return StageMachine(db).get_events(order_id)


@router.get(
    "/{order_id}/production_tasks",
    response_model=list[ProductionTaskResponse],
    summary="List production tasks of an order",
    responses={404: {"description": "Order not found"}},
)
async def list_production_tasks(order_id: UUID, db: Session = Depends(get_db)) -> list[ProductionTask]:
    OrderService(db).get_order(order_id)
    return ProductionTaskService(db).get_tasks(order_id)


@router.get(
    "/{order_id}/payment",
    response_model=OrderPaymentRecordResponse,
    summary="Get order payment record",
    responses={404: {"description": "Payment record not found"}},
)
async def get_payment_record(order_id: UUID, db: Session = Depends(get_db)) -> OrderPaymentRecord:
    return PaymentLedger(db).get_record(order_id)


@router.post(
    "/{order_id}/payments",
    response_model=OrderPaymentRecordResponse,
    summary="Apply payment to order",
    responses={
        400: {"description": "Negative or malformed amount"},
        404: {"description": "Payment record not found"},
        409: {"description": "Concurrent update or idempotency key reused"},
    },
)
async def apply_payment(
    order_id: UUID,
    data: PaymentApply,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> OrderPaymentRecord:
    """Apply a payment to a single order. Send ``Idempotency-Key`` to make retries safe."""
    return PaymentLedger(db, notifier=notifier).apply_payment(
        order_id,
        data.amount,
        method=data.method,
        reference=data.reference,
        note=data.note,
        recorded_by=data.recorded_by,
        idempotency_key=idempotency_key,
    )


@router.post(
    "/{order_id}/payment_method",
    response_model=OrderPaymentRecordResponse,
    summary="Choose payment method",
    responses={404: {"description": "Payment record not found"}},
)
async def choose_payment_method(
    order_id: UUID, data: PaymentMethodChoice, db: Session = Depends(get_db)
) -> OrderPaymentRecord:
    return PaymentLedger(db).choose_payment_method(order_id, data.method)


@router.post(
    "/{order_id}/waive",
    response_model=OrderPaymentRecordResponse,
    summary="Waive order",
    responses={
        400: {"description": "Nothing outstanding to waive"},
        404: {"description": "Payment record not found"},
    },
)
async def waive_order(
    order_id: UUID, data: WaiveRequest, db: Session = Depends(get_db)
) -> OrderPaymentRecord:
    return PaymentLedger(db).waive_order(order_id, data.reason, recorded_by=data.recorded_by)


@router.put(
    "/{order_id}/delivered_items",
    response_model=OrderDetailResponse,
    summary="Adjust delivered quantities",
    responses={
        400: {"description": "Unknown line or quantity out of range"},
        404: {"description": "Order not found"},
        409: {"description": "Order is not out for delivery or delivered"},
    },
)
async def adjust_delivered_items(
    order_id: UUID, data: DeliveredItemsUpdate, db: Session = Depends(get_db)
) -> OrderDetailResponse:
    service = OrderService(db)
    return order_detail(service, service.adjust_delivered_items(order_id, data))


@router.post(
    "/{order_id}/returns",
    response_model=OrderReturnResponse,
    status_code=201,
    summary="Record return",
    responses={
        400: {"description": "More items returned than delivered"},
        404: {"description": "Order not found"},
    },
)
async def record_return(
    order_id: UUID, data: OrderReturnCreate, db: Session = Depends(get_db)
) -> OrderReturnResponse:
    """Record returned items; the credit is applied at the next settlement."""
    service = ReturnsService(db)
    return return_detail(service, service.record_return(order_id, data))


@router.get(
    "/{order_id}/returns",
    response_model=list[OrderReturnResponse],
    summary="List returns of an order",
    responses={404: {"description": "Order not found"}},
)
async def list_returns(order_id: UUID, db: Session = Depends(get_db)) -> list[OrderReturnResponse]:
    service = ReturnsService(db)
    return [return_detail(service, r) for r in service.get_returns(order_id)]


@router.get(
    "/{order_id}/adjusted_total",
    response_model=AdjustedTotalResponse,
    summary="Get order total after returns",
    responses={404: {"description": "Order not found"}},
)
async def get_adjusted_total(order_id: UUID, db: Session = Depends(get_db)) -> AdjustedTotalResponse:
    total, credit, adjusted = ReturnsService(db).adjusted_total(order_id)
    return AdjustedTotalResponse(
        order_id=order_id, order_total=total, returns_credit=credit, adjusted_total=adjusted
    )


@router.get(
    "/{order_id}/collection_plan",
    response_model=CollectionPlanResponse,
    summary="Preview what to collect on delivery",
    responses={404: {"description": "Order not found"}},
)
async def get_collection_plan(order_id: UUID, db: Session = Depends(get_db)) -> CollectionPlanResponse:
    plan = SettlementService(db).collection_plan(order_id)
    return CollectionPlanResponse(
        should_collect=plan.should_collect,
        orders_to_collect=[OrderPaymentRecordResponse.model_validate(r) for r in plan.orders_to_collect],
        total_amount=plan.total_amount,
        reason=plan.reason,
    )


@router.post(
    "/{order_id}/settle",
    response_model=SettlementDetailResponse,
    status_code=201,
    summary="Settle delivered order",
    responses={
        400: {"description": "Negative amount or no eligible orders"},
        404: {"description": "Order not found"},
        409: {"description": "Order not delivered, concurrent update or idempotency key reused"},
    },
)
async def settle_delivery(
    order_id: UUID,
    data: DeliverySettlementRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> SettlementDetailResponse:
    """Settle collected money and move the order to ``settlement`` atomically."""
    service = SettlementService(db, notifier=notifier)
    session = service.settle_delivery(
        order_id,
        data.amount_collected,
        data.payment_method,
        actor_id=data.actor_id,
        actor_role=data.actor_role,
        options=data.options,
        idempotency_key=idempotency_key,
    )
    return settlement_detail(service, session)
