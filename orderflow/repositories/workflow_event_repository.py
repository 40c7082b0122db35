"""Repository for WorkflowEvent rows. Insert and query only."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.models.workflow_event import WorkflowEvent


class WorkflowEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        order_id: UUID,
        stage: str,
        previous_stage: str,
        actor_id: str,
        actor_role: str,
        note: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowEvent:
        event = WorkflowEvent(
            order_id=order_id,
            stage=stage,
            previous_stage=previous_stage,
            actor_id=actor_id,
            actor_role=actor_role,
            note=note,
            metadata_=metadata or {},
        )
        self.db.add(event)
        self.db.flush()
        return event

    def get_by_order_id(self, order_id: UUID) -> list[WorkflowEvent]:
        return (
            self.db.query(WorkflowEvent)
            .filter(WorkflowEvent.order_id == order_id)
            .order_by(WorkflowEvent.created_at.asc())
            .all()
        )

    def get_since(self, since: datetime | None = None, limit: int = 100) -> list[WorkflowEvent]:
        """Change feed: events strictly newer than ``since``, oldest first."""
        query = self.db.query(WorkflowEvent)
        if since is not None:
            if since.tzinfo is not None:
                since = since.astimezone(UTC)
            query = query.filter(WorkflowEvent.created_at > since)
        return query.order_by(WorkflowEvent.created_at.asc()).limit(limit).all()
