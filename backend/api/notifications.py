"""
backend/api/notifications.py
Polled notification inbox.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.core.auth import get_current_user_id
from backend.core.logging import get_request_id
from backend.features.notifications.service import notification_service
from backend.models.notification import MarkNotificationsRequest, NotificationType

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


def _ok(data):
    return {"data": data, "request_id": get_request_id()}


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    user_id: str = Depends(get_current_user_id),
):
    result = notification_service.list_notifications(
        user_id, page=page, limit=limit, unread_only=unread_only, notification_type=type
    )
    return _ok(result.model_dump(mode="json"))


@router.put("/read")
def mark_many_as_read(body: MarkNotificationsRequest, user_id: str = Depends(get_current_user_id)):
    marked = notification_service.mark_many_as_read(user_id, body.notification_ids)
    return _ok({"marked": marked})


@router.put("/read-all")
def mark_all_as_read(user_id: str = Depends(get_current_user_id)):
    return _ok({"marked": notification_service.mark_all_as_read(user_id)})


@router.put("/{notification_id}/read")
def mark_as_read(notification_id: str, user_id: str = Depends(get_current_user_id)):
    notification = notification_service.mark_as_read(user_id, notification_id)
    return _ok(notification.model_dump(mode="json"))
