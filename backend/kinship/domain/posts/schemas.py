"""Pydantic schemas for posts, reactions and comments."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from kinship.domain.base import CamelModel, CursorPage


class PostCreate(CamelModel):
	post_title: str = Field(min_length=1, max_length=256)
	post_content: str = Field(min_length=1, max_length=20000)


class PostCreated(CamelModel):
	post_id: UUID


class PostOut(CamelModel):
	post_id: UUID
	author_id: UUID
	author_username: str
	author_avatar_url: Optional[str] = None
	post_title: str
	post_content: str
	like_count: int = 0
	dislike_count: int = 0
	comment_count: int = 0
	my_reaction: Optional[Literal["like", "dislike"]] = None
	created_at: datetime


class ReactionOut(CamelModel):
	post_id: UUID
	type: Optional[Literal["like", "dislike"]] = None


class CommentCreate(CamelModel):
	comment_content: str = Field(min_length=1, max_length=5000)
	parent_comment_id: Optional[UUID] = None


class CommentOut(CamelModel):
	comment_id: UUID
	post_id: UUID
	user_id: UUID
	username: str
	avatar_url: Optional[str] = None
	parent_comment_id: Optional[UUID] = None
	comment_content: str
	created_at: datetime


class CommentPage(CursorPage):
	parent_comment_id: Optional[UUID] = None
