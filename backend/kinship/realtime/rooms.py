"""Ephemeral chat rooms.

Room state lives in process memory only. Every mutation is synchronous; the
caller performs any I/O (attachment deletion, publishing) after the state
change has been applied.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

import ulid


@dataclass(frozen=True, slots=True)
class Participant:
	participant_id: str
	user_id: str
	username: str
	avatar_url: Optional[str] = None

	def to_dict(self) -> dict:
		return {
			"participantId": self.participant_id,
			"userId": self.user_id,
			"username": self.username,
			"avatarUrl": self.avatar_url,
		}


@dataclass(frozen=True, slots=True)
class RoomMessage:
	message_id: str
	sender: Participant
	text: str
	created_at: datetime
	attachment: Optional[str] = None

	@classmethod
	def create(cls, sender: Participant, text: str, attachment: Optional[str] = None) -> "RoomMessage":
		return cls(
			message_id=ulid.new().str,
			sender=sender,
			text=text,
			attachment=attachment,
			created_at=datetime.now(timezone.utc),
		)

	def to_dict(self) -> dict:
		return {
			"messageId": self.message_id,
			"sender": self.sender.to_dict(),
			"text": self.text,
			"attachment": self.attachment,
			"createdAt": self.created_at.isoformat(),
		}


@dataclass(frozen=True, slots=True)
class RoomSnapshot:
	participants: Tuple[Participant, ...]
	messages: Tuple[RoomMessage, ...]


@dataclass(frozen=True, slots=True)
class Departure:
	"""Result of removing a participant.

	``purged`` holds the history dropped because the room became empty.
	"""

	participant: Optional[Participant]
	remaining: int
	purged: Tuple[RoomMessage, ...] = ()

	@property
	def emptied(self) -> bool:
		return self.participant is not None and self.remaining == 0


def attachments_of(messages: Iterable[RoomMessage]) -> Set[str]:
	return {message.attachment for message in messages if message.attachment}


class RoomStore:
	"""Participants and bounded message history of one room."""

	def __init__(self, key: str, *, history_limit: Optional[int] = None) -> None:
		self.key = key
		self.history_limit = history_limit
		self._participants: Dict[str, Participant] = {}
		self._messages: Deque[RoomMessage] = deque()

	@property
	def participant_count(self) -> int:
		return len(self._participants)

	def participant(self, participant_id: str) -> Optional[Participant]:
		return self._participants.get(participant_id)

	def add_participant(self, participant: Participant) -> bool:
		"""Add a participant; returns False when the id is already present."""
		if participant.participant_id in self._participants:
			return False
		self._participants[participant.participant_id] = participant
		return True

	def remove_participant(self, participant_id: str) -> Departure:
		removed = self._participants.pop(participant_id, None)
		remaining = len(self._participants)
		if removed is None or remaining:
			return Departure(participant=removed, remaining=remaining)
		purged = tuple(self._messages)
		self._messages.clear()
		return Departure(participant=removed, remaining=0, purged=purged)

	def append_message(self, message: RoomMessage) -> List[RoomMessage]:
		"""Append to history and return whatever the history bound evicted."""
		self._messages.append(message)
		evicted: List[RoomMessage] = []
		if self.history_limit is not None and self.history_limit > 0:
			while len(self._messages) > self.history_limit:
				evicted.append(self._messages.popleft())
		return evicted

	def referenced_attachments(self) -> Set[str]:
		return attachments_of(self._messages)

	def snapshot(self) -> RoomSnapshot:
		return RoomSnapshot(participants=tuple(self._participants.values()), messages=tuple(self._messages))


class RoomDirectory:
	"""Room stores indexed by room key, created on first use."""

	def __init__(self, *, history_limit: Optional[int] = None) -> None:
		self._history_limit = history_limit
		self._rooms: Dict[str, RoomStore] = {}

	def get(self, key: str) -> RoomStore:
		room = self._rooms.get(key)
		if room is None:
			room = RoomStore(key=key, history_limit=self._history_limit)
			self._rooms[key] = room
		return room

	def discard_if_empty(self, key: str) -> bool:
		room = self._rooms.get(key)
		if room is None or room.participant_count or room.snapshot().messages:
			return False
		del self._rooms[key]
		return True

	def referenced_attachments(self, key: str) -> Set[str]:
		"""Attachments in the live history of ``key``; empty when no such room exists."""
		room = self._rooms.get(key)
		return room.referenced_attachments() if room is not None else set()
