"""Pydantic schemas for auth and profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from kinship.domain.base import CamelModel, Cursor


class RegisterRequest(CamelModel):
	username: str = Field(min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_.]+$")
	email: EmailStr
	password: str = Field(min_length=8, max_length=256)


class LoginRequest(CamelModel):
	email: EmailStr
	password: str = Field(min_length=8, max_length=256)


class UserOut(CamelModel):
	user_id: UUID
	username: str
	email: str
	is_admin: bool = False
	created_at: datetime


class LoginResponse(CamelModel):
	user: UserOut
	access_token: str
	token_type: str = "bearer"
	expires_in: int


class ProfileOut(CamelModel):
	user_id: UUID
	username: str
	full_name: Optional[str] = None
	bio: Optional[str] = None
	avatar_url: Optional[str] = None
	updated_at: datetime


class ProfileUpdate(CamelModel):
	full_name: Optional[str] = Field(default=None, max_length=256)
	bio: Optional[str] = Field(default=None, max_length=2000)
	avatar_url: Optional[str] = Field(default=None, max_length=256)


class UserSearchRequest(CamelModel):
	search_term: str = Field(min_length=1, max_length=100)
	cursor: Optional[Cursor] = None


class UserSearchProfileOut(CamelModel):
	full_name: Optional[str] = None
	avatar_url: Optional[str] = None


class UserSearchOut(CamelModel):
	id: UUID
	username: str
	created_at: datetime
	profile: UserSearchProfileOut
