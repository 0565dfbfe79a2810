"""Domain models for accounts and profiles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(slots=True)
class User:
	user_id: str
	username: str
	email: str
	is_admin: bool
	created_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "User":
		return cls(
			user_id=str(record["user_id"]),
			username=record["username"],
			email=record["email"],
			is_admin=bool(record["is_admin"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class Credentials:
	user: User
	password_hash: str


@dataclass(slots=True)
class Profile:
	user_id: str
	username: str
	full_name: Optional[str]
	bio: Optional[str]
	avatar_url: Optional[str]
	updated_at: datetime

	@classmethod
	def from_record(cls, record: Any) -> "Profile":
		return cls(
			user_id=str(record["user_id"]),
			username=record["username"],
			full_name=record["full_name"],
			bio=record["bio"],
			avatar_url=record["avatar_url"],
			updated_at=record["updated_at"],
		)


@dataclass(slots=True)
class UserSummary:
	"""A search hit: the account and the public part of its profile."""

	user_id: str
	username: str
	created_at: datetime
	full_name: Optional[str]
	avatar_url: Optional[str]

	@classmethod
	def from_record(cls, record: Any) -> "UserSummary":
		return cls(
			user_id=str(record["user_id"]),
			username=record["username"],
			created_at=record["created_at"],
			full_name=record["full_name"],
			avatar_url=record["avatar_url"],
		)
