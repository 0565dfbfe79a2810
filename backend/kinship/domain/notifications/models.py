"""Domain models for notifications."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

NOTIFICATION_TYPES = frozenset(
	{
		"account_activity",
		"friend_request",
		"post_interaction",
		"mention",
		"group_activity",
		"event_reminder",
		"follow",
		"content_update",
		"achievement",
		"system_alert",
		"moderation_alert",
		"other",
	}
)


def _load_metadata(raw: Any) -> Dict[str, Any]:
	if raw is None:
		return {}
	if isinstance(raw, str):
		return json.loads(raw)
	return dict(raw)


@dataclass(slots=True)
class Notification:
	notification_id: str
	user_id: str
	notification_type: str
	content: str
	is_read: bool
	created_at: datetime
	updated_at: Optional[datetime] = None
	metadata: Dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_record(cls, record: Any) -> "Notification":
		return cls(
			notification_id=str(record["notification_id"]),
			user_id=str(record["user_id"]),
			notification_type=record["notification_type"],
			content=record["content"],
			is_read=bool(record["is_read"]),
			created_at=record["created_at"],
			updated_at=record.get("updated_at"),
			metadata=_load_metadata(record.get("notification_metadata")),
		)

	def to_dict(self) -> dict:
		return {
			"notificationId": self.notification_id,
			"userId": self.user_id,
			"notificationType": self.notification_type,
			"content": self.content,
			"isRead": self.is_read,
			"notificationMetadata": self.metadata,
			"createdAt": self.created_at.isoformat(),
		}
