"""Domain models for posts, reactions and comments."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

REACTION_TYPES = ("like", "dislike")


@dataclass(slots=True)
class Post:
	post_id: str
	author_id: str
	author_username: str
	author_avatar_url: Optional[str]
	post_title: str
	post_content: str
	like_count: int
	dislike_count: int
	comment_count: int
	my_reaction: Optional[str]
	created_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Post":
		return cls(
			post_id=str(record["post_id"]),
			author_id=str(record["author_id"]),
			author_username=record["username"],
			author_avatar_url=record["avatar_url"],
			post_title=record["post_title"],
			post_content=record["post_content"],
			like_count=int(record["like_count"] or 0),
			dislike_count=int(record["dislike_count"] or 0),
			comment_count=int(record["comment_count"] or 0),
			my_reaction=record["my_reaction"],
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class Reaction:
	like_id: str
	post_id: str
	user_id: str
	type: str
	author_id: str

	@classmethod
	def from_record(cls, record: Any) -> "Reaction":
		return cls(
			like_id=str(record["like_id"]),
			post_id=str(record["post_id"]),
			user_id=str(record["user_id"]),
			type=record["type"],
			author_id=str(record["author_id"]),
		)


@dataclass(slots=True)
class Comment:
	comment_id: str
	post_id: str
	user_id: str
	username: str
	avatar_url: Optional[str]
	parent_comment_id: Optional[str]
	comment_content: str
	created_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Comment":
		parent = record["parent_comment_id"]
		return cls(
			comment_id=str(record["comment_id"]),
			post_id=str(record["post_id"]),
			user_id=str(record["user_id"]),
			username=record["username"],
			avatar_url=record["avatar_url"],
			parent_comment_id=str(parent) if parent else None,
			comment_content=record["comment_content"],
			created_at=record["created_at"],
		)
