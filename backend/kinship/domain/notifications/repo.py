"""Postgres access for notifications."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import asyncpg

from kinship.domain.base import PAGE_SIZE, Cursor
from kinship.domain.notifications.models import Notification
from kinship.infra.postgres import get_pool
from kinship.realtime.errors import NotFound


class NotificationRepository:
	async def create(self, user_id: str, kind: str, content: str, metadata: Dict[str, Any]) -> Notification:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO notifications (user_id, notification_type, content, notification_metadata)
						VALUES ($1, $2, $3, $4::jsonb)
						RETURNING *
						""",
						user_id,
						kind,
						content,
						json.dumps(metadata),
					)
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("user_not_found") from None
		return Notification.from_record(row)

	async def list_for_user(self, user_id: str, cursor: Optional[Cursor] = None) -> List[Notification]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if cursor is None:
				rows = await conn.fetch(
					"""
					SELECT * FROM notifications
					WHERE user_id = $1
					ORDER BY created_at DESC, notification_id DESC
					LIMIT $2
					""",
					user_id,
					PAGE_SIZE,
				)
			else:
				rows = await conn.fetch(
					"""
					SELECT * FROM notifications
					WHERE user_id = $1 AND (created_at, notification_id) < ($2, $3)
					ORDER BY created_at DESC, notification_id DESC
					LIMIT $4
					""",
					user_id,
					cursor.created_at,
					cursor.id,
					PAGE_SIZE,
				)
		return [Notification.from_record(r) for r in rows]

	async def unread_count(self, user_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			count = await conn.fetchval(
				"SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND is_read = FALSE",
				user_id,
			)
		return int(count or 0)

	async def mark_read(self, user_id: str, notification_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					UPDATE notifications SET is_read = TRUE, updated_at = NOW()
					WHERE notification_id = $1 AND user_id = $2
					RETURNING notification_id
					""",
					notification_id,
					user_id,
				)
		return row is not None

	async def mark_all_read(self, user_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				rows = await conn.fetch(
					"""
					UPDATE notifications SET is_read = TRUE, updated_at = NOW()
					WHERE user_id = $1 AND is_read = FALSE
					RETURNING notification_id
					""",
					user_id,
				)
		return len(rows)
