"""FastAPI dependencies shared by the routers."""

from fastapi import Header, Request

from orderflow.services.notification_service import ChangeNotifier


def get_notifier(request: Request) -> ChangeNotifier:
    """The application's change notifier."""
    return request.app.state.notifier  # type: ignore[no-any-return]


def get_idempotency_key(
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> str | None:
    return idempotency_key
