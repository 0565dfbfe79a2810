"""Pydantic schemas for conversation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from kinship.domain.base import CamelModel
from kinship.realtime.events import ConversationMessageIn  # noqa: F401


class ConversationOut(CamelModel):
	conversation_id: UUID
	user_1_id: UUID
	user_2_id: UUID
	created_at: datetime


class SenderOut(CamelModel):
	user_id: UUID
	username: str
	avatar_url: Optional[str] = None


class ConversationMessageOut(CamelModel):
	conversation_id: UUID
	message_id: UUID
	sender: SenderOut
	message_content: str
	file_id: Optional[str] = None
	created_at: datetime
