"""Pydantic schemas for notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from kinship.domain.base import CamelModel


class NotificationOut(CamelModel):
	notification_id: UUID
	user_id: UUID
	notification_type: str
	content: str
	is_read: bool
	notification_metadata: Dict[str, Any]
	created_at: datetime


class UnreadCount(CamelModel):
	count: int


class MarkedRead(CamelModel):
	updated: int
