"""Order workflow stage machine.

Stages move along a fixed adjacency table. Each accepted transition updates
the order's stage, stamps the stage timestamp and appends a ``WorkflowEvent``
in a single transaction. The order row carries a version column, so two
conflicting transitions on the same order cannot both commit.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.database import unit_of_work
from orderflow.core.errors import InvalidTransition, NotFound
from orderflow.models.order import Order, WorkflowStage
from orderflow.models.shared import utc_now
from orderflow.models.workflow_event import WorkflowEvent
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.workflow_event_repository import WorkflowEventRepository
from orderflow.services.notification_service import ORDER_STAGE_CHANGED, ChangeNotifier
from orderflow.services.production_task_service import ProductionTaskService

logger = logging.getLogger(__name__)

S = WorkflowStage

STAGE_TRANSITIONS: dict[WorkflowStage, frozenset[WorkflowStage]] = {
    S.ORDER_PLACED: frozenset({S.PRODUCTION_QUEUE}),
    S.PRODUCTION_QUEUE: frozenset({S.IN_PRODUCTION, S.ORDER_PLACED}),
    S.IN_PRODUCTION: frozenset({S.QUALITY_CHECK, S.PRODUCTION_QUEUE}),
    S.QUALITY_CHECK: frozenset({S.READY_FOR_DELIVERY, S.IN_PRODUCTION}),
    S.READY_FOR_DELIVERY: frozenset({S.OUT_FOR_DELIVERY, S.QUALITY_CHECK}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.READY_FOR_DELIVERY}),
    S.DELIVERED: frozenset({S.SETTLEMENT}),
    S.SETTLEMENT: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
}

# Timestamp column stamped when an order enters the stage
STAGE_TIMESTAMPS: dict[WorkflowStage, str] = {
    S.IN_PRODUCTION: "production_started_at",
    S.READY_FOR_DELIVERY: "production_completed_at",
    S.OUT_FOR_DELIVERY: "delivery_started_at",
    S.DELIVERED: "delivery_completed_at",
    S.COMPLETED: "completed_at",
}

DELIVERY_STAGES = frozenset({S.OUT_FOR_DELIVERY, S.DELIVERED, S.SETTLEMENT, S.COMPLETED})


def allowed_transitions(stage: WorkflowStage | str) -> list[WorkflowStage]:
    """Stages reachable in one step, in workflow order."""
    current = WorkflowStage(stage)
    targets = STAGE_TRANSITIONS[current]
    return [s for s in WorkflowStage if s in targets]


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class StageMachine:
    """Validates and applies workflow-stage transitions."""

    def __init__(
        self,
        db: Session,
        notifier: ChangeNotifier | None = None,
        task_service: ProductionTaskService | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.task_service = task_service or ProductionTaskService(db)
        self.order_repo = OrderRepository(db)
        self.event_repo = WorkflowEventRepository(db)

    def transition(
        self,
        order_id: UUID,
        target_stage: WorkflowStage | str,
        actor_id: str,
        actor_role: str,
        note: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Order:
        """Move an order to ``target_stage`` and record who did it.

        Raises:
            NotFound: the order does not exist.
            InvalidTransition: the target is not reachable from the current stage.
            StorageConflict: another transition on the same order won the race.
        """
        with unit_of_work(self.db):
            order = self.order_repo.get_for_update(order_id)
            if not order:
                raise NotFound(f"Order {order_id} not found")
            event = self.apply_transition(order, target_stage, actor_id, actor_role, note, metadata)

        self.after_commit(order, event)
        return order

    def apply_transition(
        self,
        order: Order,
        target_stage: WorkflowStage | str,
        actor_id: str,
        actor_role: str,
        note: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowEvent:
        """Apply a transition inside the caller's transaction. Does not commit."""
        try:
            target = WorkflowStage(target_stage)
        except ValueError:
            raise InvalidTransition(f"Unknown stage '{target_stage}'") from None

        current = WorkflowStage(order.stage)
        if target not in STAGE_TRANSITIONS[current]:
            raise InvalidTransition(
                f"Cannot move order {order.order_number} from {current.value} to {target.value}"
            )

        metadata = dict(metadata or {})
        order.stage = target.value  # type: ignore[assignment]

        column = STAGE_TIMESTAMPS.get(target)
        if column:
            setattr(order, column, utc_now())

        if target == S.OUT_FOR_DELIVERY and metadata.get("driver_id"):
            order.assigned_driver_id = str(metadata["driver_id"])  # type: ignore[assignment]

        if note:
            if target in DELIVERY_STAGES:
                order.delivery_notes = _append_note(order.delivery_notes, note)  # type: ignore[assignment,arg-type]
            else:
                order.production_notes = _append_note(order.production_notes, note)  # type: ignore[assignment,arg-type]

        event = self.event_repo.create(
            order_id=order.id,  # type: ignore[arg-type]
            stage=target.value,
            previous_stage=current.value,
            actor_id=actor_id,
            actor_role=actor_role,
            note=note,
            metadata=metadata,
        )
        self.db.flush()
        return event

    def after_commit(self, order: Order, event: WorkflowEvent) -> None:
        """Run best-effort follow-ups once a transition is durable."""
        stage = WorkflowStage(event.stage)
        logger.info(
            "Order %s moved %s -> %s by %s (%s)",
            order.order_number,
            event.previous_stage,
            event.stage,
            event.actor_id,
            event.actor_role,
        )

        try:
            self.task_service.on_stage_entered(order.id, stage)  # type: ignore[arg-type]
        except Exception:
            self.db.rollback()
            logger.warning(
                "Production task update failed for order %s entering %s",
                order.id,
                stage.value,
                exc_info=True,
            )

        if self.notifier is not None:
            self.notifier.publish(
                ORDER_STAGE_CHANGED,
                {
                    "order_id": str(order.id),
                    "client_id": str(order.client_id),
                    "stage": event.stage,
                    "previous_stage": event.previous_stage,
                    "event_id": str(event.id),
                },
            )

    def get_events(self, order_id: UUID) -> list[WorkflowEvent]:
        if not self.order_repo.get_by_id(order_id):
            raise NotFound(f"Order {order_id} not found")
        return self.event_repo.get_by_order_id(order_id)
