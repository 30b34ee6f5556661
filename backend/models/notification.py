"""
backend/models/notification.py
Polled in-app notifications (invitations, acceptances).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    GROUP_INVITE = "group_invite"
    INVITE_ACCEPTED = "invite_accepted"
    SUBSCRIPTION = "subscription"
    MESSAGE = "message"


class Notification(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str = Field(max_length=255)
    message: str = Field(max_length=1024)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationPage(BaseModel):
    items: List[Notification]
    total: int
    page: int
    limit: int
    has_next_page: bool


class MarkNotificationsRequest(BaseModel):
    notification_ids: List[str] = Field(min_length=1)
