"""Workflow event change feed."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from orderflow.core.database import get_db
from orderflow.models.workflow_event import WorkflowEvent
from orderflow.repositories.workflow_event_repository import WorkflowEventRepository
from orderflow.schemas.workflow_event import WorkflowEventResponse

router = APIRouter()


@router.get("/", response_model=list[WorkflowEventResponse], summary="Workflow change feed")
async def list_workflow_events(
    since: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[WorkflowEvent]:
    """Events recorded after ``since``, oldest first. Poll with the last seen timestamp."""
    return WorkflowEventRepository(db).get_since(since, limit=limit)
