"""
In-app notifications (polled, no push).

notify() is the NotificationSink used by the goal services: it never raises,
a failed write is logged and dropped so the calling operation is unaffected.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from backend.core.errors import NotFoundError
from backend.core.logging import log_event
from backend.features.notifications.store import NotificationStore
from backend.models.notification import Notification, NotificationPage, NotificationType

_TITLES = {
    NotificationType.GROUP_INVITE: "New group goal invitation",
    NotificationType.INVITE_ACCEPTED: "Invitation accepted",
    NotificationType.SUBSCRIPTION: "New subscriber",
    NotificationType.MESSAGE: "New message",
}


def _message_for(notification_type: NotificationType, payload: Dict[str, Any]) -> str:
    goal_name = payload.get("goal_name", "a goal")
    if notification_type == NotificationType.GROUP_INVITE:
        return f"You were invited to join \"{goal_name}\""
    if notification_type == NotificationType.INVITE_ACCEPTED:
        return f"{payload.get('accepted_user_id', 'Someone')} joined \"{goal_name}\""
    return str(payload.get("message", ""))


class NotificationService:
    def __init__(self, store: Optional[NotificationStore] = None):
        self.store = store or NotificationStore()

    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        payload: Optional[Dict[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[Notification]:
        payload = payload or {}
        try:
            notification = Notification(
                id=str(uuid.uuid4()),
                user_id=user_id,
                type=notification_type,
                title=payload.get("title") or _TITLES[notification_type],
                message=(payload.get("message") or _message_for(notification_type, payload))[:1024],
                metadata={k: v for k, v in payload.items() if k not in ("title", "message")},
                created_at=now or datetime.now(timezone.utc),
            )
            return self.store.insert(notification)
        except Exception as exc:
            log_event(
                "warning",
                "notification.dispatch_failed",
                user_id=user_id,
                event_type=notification_type.value,
                extra={"reason": exc},
            )
            return None

    def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationPage:
        def matches(doc: dict) -> bool:
            if unread_only and doc["read"]:
                return False
            if notification_type is not None and doc["type"] != notification_type.value:
                return False
            return True

        skip = (page - 1) * limit
        items = self.store.find_for_user(user_id, matches, skip=skip, limit=limit)
        total = self.store.count_for_user(user_id, matches)
        return NotificationPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            has_next_page=skip + len(items) < total,
        )

    def mark_as_read(self, user_id: str, notification_id: str, *, now: Optional[datetime] = None) -> Notification:
        notification = self.store.find(notification_id)
        if not notification or notification.user_id != user_id or notification.read:
            raise NotFoundError("Notification not found or already read")
        return self.store.update_fields(
            notification_id,
            {"read": True, "read_at": (now or datetime.now(timezone.utc)).isoformat()},
        )

    def mark_many_as_read(self, user_id: str, notification_ids: Iterable[str], *, now: Optional[datetime] = None) -> int:
        """Mark the caller's unread notifications among ids; unknown ids are skipped."""
        read_at = (now or datetime.now(timezone.utc)).isoformat()
        marked = 0
        for notification_id in set(notification_ids):
            notification = self.store.find(notification_id)
            if not notification or notification.user_id != user_id or notification.read:
                continue
            self.store.update_fields(notification_id, {"read": True, "read_at": read_at})
            marked += 1
        return marked

    def mark_all_as_read(self, user_id: str, *, now: Optional[datetime] = None) -> int:
        unread = self.store.find_for_user(user_id, lambda doc: not doc["read"])
        return self.mark_many_as_read(user_id, [n.id for n in unread], now=now)


notification_service = NotificationService()
