"""Domain models for follows and friendships."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

FRIEND_STATUSES = ("pending", "accepted", "rejected")
# Status values accepted by a status change; "none" removes the pair.
FRIEND_TRANSITIONS = frozenset({"accepted", "rejected", "none"})


@dataclass(slots=True)
class Friendship:
	friend_id: str
	sender_id: str
	receiver_id: str
	friend_status: str
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Friendship":
		return cls(
			friend_id=str(record["friend_id"]),
			sender_id=str(record["sender_id"]),
			receiver_id=str(record["receiver_id"]),
			friend_status=record["friend_status"],
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)

	def other(self, user_id: str) -> str:
		return self.receiver_id if user_id == self.sender_id else self.sender_id


@dataclass(slots=True)
class Follow:
	follow_id: str
	follower_id: str
	followed_id: str
	created_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Follow":
		return cls(
			follow_id=str(record["follow_id"]),
			follower_id=str(record["follower_id"]),
			followed_id=str(record["followed_id"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class UserCard:
	"""A related user as shown in follower and friend lists."""

	id: str
	username: str
	full_name: Optional[str]
	avatar_url: Optional[str]
	created_at: datetime
	cursor_id: str

	@classmethod
	def from_record(cls, record: Any) -> "UserCard":
		return cls(
			id=str(record["user_id"]),
			username=record["username"],
			full_name=record.get("full_name"),
			avatar_url=record.get("avatar_url"),
			created_at=record["created_at"],
			cursor_id=str(record["cursor_id"]),
		)
