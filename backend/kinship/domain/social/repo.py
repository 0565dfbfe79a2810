"""Postgres access for follows and friendships."""

from __future__ import annotations

from typing import List, Optional

import asyncpg

from kinship.domain.base import PAGE_SIZE, Cursor
from kinship.domain.social.models import Follow, Friendship, UserCard
from kinship.infra.postgres import get_pool
from kinship.realtime.errors import Conflict, NotFound

_CARD_COLUMNS = "u.user_id, u.username, p.full_name, p.avatar_url"


def _keyset(alias: str, id_column: str, cursor: Optional[Cursor], first_param: int) -> tuple[str, list]:
	if cursor is None:
		return "", []
	clause = f" AND ({alias}.created_at, {alias}.{id_column}) < (${first_param}, ${first_param + 1})"
	return clause, [cursor.created_at, cursor.id]


class FollowRepository:
	async def follow(self, follower_id: str, followed_id: str) -> Follow:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO follows (follower_id, followed_id)
						VALUES ($1, $2)
						RETURNING *
						""",
						follower_id,
						followed_id,
					)
				except asyncpg.UniqueViolationError:
					raise Conflict("already_following") from None
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("user_not_found") from None
		return Follow.from_record(row)

	async def unfollow(self, follower_id: str, followed_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"DELETE FROM follows WHERE follower_id = $1 AND followed_id = $2 RETURNING follow_id",
					follower_id,
					followed_id,
				)
		return row is not None

	async def _list(self, user_id: str, cursor: Optional[Cursor], *, match: str, join: str) -> List[UserCard]:
		clause, params = _keyset("f", "follow_id", cursor, 2)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_CARD_COLUMNS}, f.created_at, f.follow_id AS cursor_id
				FROM follows f
				JOIN users u ON u.user_id = f.{join}
				LEFT JOIN profiles p ON p.user_id = u.user_id
				WHERE f.{match} = $1{clause}
				ORDER BY f.created_at DESC, f.follow_id DESC
				LIMIT {PAGE_SIZE}
				""",
				user_id,
				*params,
			)
		return [UserCard.from_record(r) for r in rows]

	async def followers(self, user_id: str, cursor: Optional[Cursor] = None) -> List[UserCard]:
		return await self._list(user_id, cursor, match="followed_id", join="follower_id")

	async def following(self, user_id: str, cursor: Optional[Cursor] = None) -> List[UserCard]:
		return await self._list(user_id, cursor, match="follower_id", join="followed_id")


class FriendRepository:
	async def create_request(self, sender_id: str, receiver_id: str) -> Friendship:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				existing = await conn.fetchval(
					"""
					SELECT friend_status FROM friends
					WHERE (sender_id = $1 AND receiver_id = $2) OR (sender_id = $2 AND receiver_id = $1)
					FOR UPDATE
					""",
					sender_id,
					receiver_id,
				)
				if existing is not None:
					raise Conflict("already_friends" if existing == "accepted" else "already_requested")
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO friends (sender_id, receiver_id)
						VALUES ($1, $2)
						RETURNING *
						""",
						sender_id,
						receiver_id,
					)
				except asyncpg.UniqueViolationError:
					raise Conflict("already_requested") from None
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("user_not_found") from None
		return Friendship.from_record(row)

	async def respond(self, receiver_id: str, sender_id: str, status: str) -> Optional[Friendship]:
		"""Accept or reject a pending request that ``sender_id`` sent to ``receiver_id``."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					UPDATE friends SET friend_status = $3, updated_at = NOW()
					WHERE sender_id = $2 AND receiver_id = $1 AND friend_status = 'pending'
					RETURNING *
					""",
					receiver_id,
					sender_id,
					status,
				)
		return Friendship.from_record(row) if row else None

	async def delete_pair(self, user_id: str, other_id: str) -> Optional[Friendship]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					DELETE FROM friends
					WHERE (sender_id = $1 AND receiver_id = $2) OR (sender_id = $2 AND receiver_id = $1)
					RETURNING *
					""",
					user_id,
					other_id,
				)
		return Friendship.from_record(row) if row else None

	async def status(self, user_id: str, other_id: str) -> str:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT friend_status FROM friends
				WHERE (sender_id = $1 AND receiver_id = $2) OR (sender_id = $2 AND receiver_id = $1)
				""",
				user_id,
				other_id,
			)
		return value or "none"

	async def _list(self, where: str, join: str, user_id: str, cursor: Optional[Cursor]) -> List[UserCard]:
		clause, params = _keyset("f", "friend_id", cursor, 2)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_CARD_COLUMNS}, f.created_at, f.friend_id AS cursor_id
				FROM friends f
				JOIN users u ON u.user_id = {join}
				LEFT JOIN profiles p ON p.user_id = u.user_id
				WHERE {where}{clause}
				ORDER BY f.created_at DESC, f.friend_id DESC
				LIMIT {PAGE_SIZE}
				""",
				user_id,
				*params,
			)
		return [UserCard.from_record(r) for r in rows]

	async def incoming(self, user_id: str, cursor: Optional[Cursor] = None) -> List[UserCard]:
		return await self._list("f.receiver_id = $1 AND f.friend_status = 'pending'", "f.sender_id", user_id, cursor)

	async def outgoing(self, user_id: str, cursor: Optional[Cursor] = None) -> List[UserCard]:
		return await self._list("f.sender_id = $1 AND f.friend_status = 'pending'", "f.receiver_id", user_id, cursor)

	async def friends(self, user_id: str, cursor: Optional[Cursor] = None) -> List[UserCard]:
		return await self._list(
			"(f.sender_id = $1 OR f.receiver_id = $1) AND f.friend_status = 'accepted'",
			"CASE WHEN f.sender_id = $1 THEN f.receiver_id ELSE f.sender_id END",
			user_id,
			cursor,
		)
