"""Domain models for one-to-one conversations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple


@dataclass(slots=True)
class Conversation:
	conversation_id: str
	user_1_id: str
	user_2_id: str
	created_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Conversation":
		return cls(
			conversation_id=str(record["conversation_id"]),
			user_1_id=str(record["user_1_id"]),
			user_2_id=str(record["user_2_id"]),
			created_at=record["created_at"],
		)

	def participants(self) -> Tuple[str, str]:
		return (self.user_1_id, self.user_2_id)

	def has_participant(self, user_id: str) -> bool:
		return user_id in self.participants()

	def other(self, user_id: str) -> str:
		return self.user_2_id if user_id == self.user_1_id else self.user_1_id

	def to_dict(self) -> dict:
		return {
			"conversationId": self.conversation_id,
			"user1Id": self.user_1_id,
			"user2Id": self.user_2_id,
			"createdAt": self.created_at.isoformat(),
		}


def ordered_pair(user_one: str, user_two: str) -> Tuple[str, str]:
	"""Canonical participant order so a pair maps to one conversation row."""
	first, second = sorted((str(user_one), str(user_two)))
	return first, second


@dataclass(slots=True)
class SenderSnapshot:
	user_id: str
	username: str
	avatar_url: Optional[str] = None

	def to_dict(self) -> dict:
		return {"userId": self.user_id, "username": self.username, "avatarUrl": self.avatar_url}


@dataclass(slots=True)
class ConversationMessage:
	conversation_id: str
	message_id: str
	sender: SenderSnapshot
	message_content: str
	created_at: datetime
	file_id: Optional[str] = None

	@classmethod
	def from_record(cls, record: Any) -> "ConversationMessage":
		return cls(
			conversation_id=str(record["conversation_id"]),
			message_id=str(record["message_id"]),
			sender=SenderSnapshot(
				user_id=str(record["sender_id"]),
				username=record["username"],
				avatar_url=record.get("avatar_url"),
			),
			message_content=record["message_content"],
			file_id=record.get("file_id"),
			created_at=record["created_at"],
		)

	def to_dict(self) -> dict:
		return {
			"conversationId": self.conversation_id,
			"messageId": self.message_id,
			"sender": self.sender.to_dict(),
			"messageContent": self.message_content,
			"fileId": self.file_id,
			"createdAt": self.created_at.isoformat(),
		}
