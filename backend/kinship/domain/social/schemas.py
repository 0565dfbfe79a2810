"""Pydantic schemas for follows and friendships."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from kinship.domain.base import CamelModel


class UserCardOut(CamelModel):
	id: UUID
	username: str
	full_name: Optional[str] = None
	avatar_url: Optional[str] = None
	created_at: datetime
	cursor_id: UUID


class FollowOut(CamelModel):
	follow_id: UUID
	follower_id: UUID
	followed_id: UUID
	created_at: datetime


class FriendshipOut(CamelModel):
	friend_id: UUID
	sender_id: UUID
	receiver_id: UUID
	friend_status: Literal["pending", "accepted", "rejected"]
	created_at: datetime
	updated_at: datetime


class FriendshipStatusOut(CamelModel):
	status: Literal["pending", "accepted", "rejected", "none"]
