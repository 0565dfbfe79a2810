"""Postgres access for conversations and their messages."""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

import asyncpg

from kinship.domain.base import PAGE_SIZE, Cursor
from kinship.domain.chat.models import Conversation, ConversationMessage, ordered_pair
from kinship.infra.auth import AuthenticatedUser
from kinship.infra.postgres import get_pool
from kinship.realtime.errors import NotFound


class ConversationRepository:
	async def get(self, conversation_id: str) -> Optional[Conversation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM conversations WHERE conversation_id = $1", conversation_id)
		return Conversation.from_record(row) if row else None

	async def get_or_create(self, user_one: str, user_two: str) -> Conversation:
		first, second = ordered_pair(user_one, user_two)
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO conversations (user_1_id, user_2_id)
						VALUES ($1, $2)
						ON CONFLICT (user_1_id, user_2_id) DO UPDATE SET updated_at = conversations.updated_at
						RETURNING *
						""",
						first,
						second,
					)
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("user_not_found") from None
		return Conversation.from_record(row)

	async def insert_message(
		self,
		conversation_id: str,
		sender: AuthenticatedUser,
		content: str,
		file_id: Optional[str] = None,
	) -> ConversationMessage:
		"""Insert a message and read the sender's avatar in the same transaction."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					INSERT INTO messages (conversation_id, sender_id, message_content, file_id)
					VALUES ($1, $2, $3, $4)
					RETURNING message_id, conversation_id, sender_id, message_content, file_id, created_at
					""",
					conversation_id,
					sender.id,
					content,
					file_id,
				)
				avatar_url = await conn.fetchval("SELECT avatar_url FROM profiles WHERE user_id = $1", sender.id)
		record = dict(row)
		record["username"] = sender.username
		record["avatar_url"] = avatar_url
		return ConversationMessage.from_record(record)

	async def list_messages(self, conversation_id: str, cursor: Optional[Cursor] = None) -> List[ConversationMessage]:
		"""Return one page of history, newest page first, oldest message first within it."""
		clause = ""
		params: list = [conversation_id]
		if cursor is not None:
			clause = " AND (m.created_at, m.message_id) < ($2, $3)"
			params.extend([cursor.created_at, cursor.id])
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT m.message_id, m.conversation_id, m.sender_id, m.message_content, m.file_id,
					m.created_at, u.username, p.avatar_url
				FROM messages m
				JOIN users u ON u.user_id = m.sender_id
				LEFT JOIN profiles p ON p.user_id = m.sender_id
				WHERE m.conversation_id = $1{clause}
				ORDER BY m.created_at DESC, m.message_id DESC
				LIMIT {PAGE_SIZE}
				""",
				*params,
			)
		return [ConversationMessage.from_record(r) for r in reversed(rows)]

	async def referenced_files(self, keys: Sequence[str]) -> Set[str]:
		"""Return the subset of ``keys`` still attached to a saved message."""
		if not keys:
			return set()
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT DISTINCT file_id FROM messages WHERE file_id = ANY($1::text[])",
				list(keys),
			)
		return {row["file_id"] for row in rows}
