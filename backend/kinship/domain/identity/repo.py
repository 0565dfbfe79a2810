"""Postgres access for users and profiles."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import asyncpg

from kinship.domain.base import PAGE_SIZE, Cursor
from kinship.domain.identity.models import Credentials, Profile, User, UserSummary
from kinship.infra.postgres import get_pool
from kinship.realtime.errors import Conflict, NotFound

_PROFILE_SELECT = """
	SELECT u.user_id, u.username, p.full_name, p.bio, p.avatar_url, p.updated_at
	FROM users u
	JOIN profiles p ON p.user_id = u.user_id
	WHERE u.user_id = $1
"""

_PROFILE_FIELDS = ("full_name", "bio", "avatar_url")


class IdentityRepository:
	async def create_user(self, username: str, email: str, password_hash: str) -> User:
		"""Insert the account and its empty profile in one transaction."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO users (username, email, password_hash)
						VALUES ($1, $2, $3)
						RETURNING user_id, username, email, is_admin, created_at
						""",
						username,
						email.lower(),
						password_hash,
					)
				except asyncpg.UniqueViolationError:
					raise Conflict("account_exists") from None
				await conn.execute("INSERT INTO profiles (user_id) VALUES ($1)", row["user_id"])
		return User.from_record(row)

	async def get_credentials(self, email: str) -> Optional[Credentials]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"SELECT user_id, username, email, is_admin, created_at, password_hash FROM users WHERE email = $1",
				email.lower(),
			)
		if row is None:
			return None
		return Credentials(user=User.from_record(row), password_hash=row["password_hash"])

	async def set_password_hash(self, user_id: str, password_hash: str) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"UPDATE users SET password_hash = $2, updated_at = NOW() WHERE user_id = $1",
				user_id,
				password_hash,
			)

	async def get_profile(self, user_id: str) -> Optional[Profile]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(_PROFILE_SELECT, user_id)
		return Profile.from_record(row) if row else None

	async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Profile:
		fields = [name for name in _PROFILE_FIELDS if name in changes]
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				if fields:
					assignments = ", ".join(f"{name} = ${idx}" for idx, name in enumerate(fields, start=2))
					status = await conn.execute(
						f"UPDATE profiles SET {assignments}, updated_at = NOW() WHERE user_id = $1",
						user_id,
						*(changes[name] for name in fields),
					)
					if status.endswith(" 0"):
						raise NotFound("profile_not_found")
				row = await conn.fetchrow(_PROFILE_SELECT, user_id)
		if row is None:
			raise NotFound("profile_not_found")
		return Profile.from_record(row)

	async def search_users(self, term: str, cursor: Optional[Cursor] = None) -> List[UserSummary]:
		"""Case-insensitive substring match on username or email, oldest account first."""
		pattern = "%" + _escape_like(term) + "%"
		clause = ""
		params: list = [pattern]
		if cursor is not None:
			clause = " AND (u.created_at, u.user_id) > ($2, $3)"
			params.extend([cursor.created_at, cursor.id])
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT u.user_id, u.username, u.created_at, p.full_name, p.avatar_url
				FROM users u
				LEFT JOIN profiles p ON p.user_id = u.user_id
				WHERE (u.username ILIKE $1 ESCAPE '\\' OR u.email ILIKE $1 ESCAPE '\\'){clause}
				ORDER BY u.created_at ASC, u.user_id ASC
				LIMIT {PAGE_SIZE}
				""",
				*params,
			)
		return [UserSummary.from_record(r) for r in rows]


def _escape_like(term: str) -> str:
	return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
