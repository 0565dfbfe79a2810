"""Postgres access for posts, reactions and comments."""

from __future__ import annotations

from typing import List, Optional

import asyncpg

from kinship.domain.base import PAGE_SIZE, Cursor
from kinship.domain.posts.models import Comment, Post, Reaction
from kinship.infra.postgres import get_pool
from kinship.realtime.errors import NotFound

# $1 is always the viewer id (may be NULL); filters start at $2.
_POST_SELECT = """
	SELECT p.post_id, p.author_id, p.post_title, p.post_content, p.created_at,
		u.username, pr.avatar_url,
		(SELECT COUNT(*) FROM likes l WHERE l.post_id = p.post_id AND l.type = 'like') AS like_count,
		(SELECT COUNT(*) FROM likes l WHERE l.post_id = p.post_id AND l.type = 'dislike') AS dislike_count,
		(SELECT COUNT(*) FROM comments c WHERE c.post_id = p.post_id) AS comment_count,
		(SELECT l.type::text FROM likes l WHERE l.post_id = p.post_id AND l.user_id = $1) AS my_reaction
	FROM posts p
	JOIN users u ON u.user_id = p.author_id
	LEFT JOIN profiles pr ON pr.user_id = p.author_id
"""


class PostRepository:
	async def create(self, author_id: str, title: str, content: str) -> str:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				post_id = await conn.fetchval(
					"""
					INSERT INTO posts (author_id, post_title, post_content)
					VALUES ($1, $2, $3)
					RETURNING post_id
					""",
					author_id,
					title,
					content,
				)
		return str(post_id)

	async def get(self, post_id: str, *, viewer_id: Optional[str] = None) -> Optional[Post]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"{_POST_SELECT} WHERE p.post_id = $2", viewer_id, post_id)
		return Post.from_record(row) if row else None

	async def _page(self, where: str, args: list, cursor: Optional[Cursor], viewer_id: Optional[str]) -> List[Post]:
		params: list = [viewer_id, *args]
		clause = where
		if cursor is not None:
			first = len(params) + 1
			clause += f" AND (p.created_at, p.post_id) < (${first}, ${first + 1})"
			params.extend([cursor.created_at, cursor.id])
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"{_POST_SELECT} WHERE {clause} ORDER BY p.created_at DESC, p.post_id DESC LIMIT {PAGE_SIZE}",
				*params,
			)
		return [Post.from_record(r) for r in rows]

	async def by_author(self, author_id: str, cursor: Optional[Cursor] = None, *, viewer_id: Optional[str] = None) -> List[Post]:
		return await self._page("p.author_id = $2", [author_id], cursor, viewer_id)

	async def following_feed(self, user_id: str, cursor: Optional[Cursor] = None) -> List[Post]:
		return await self._page(
			"p.author_id IN (SELECT followed_id FROM follows WHERE follower_id = $2)",
			[user_id],
			cursor,
			user_id,
		)

	async def react(self, post_id: str, user_id: str, kind: str) -> Reaction:
		"""Set the caller's reaction on a post, replacing any previous one."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO likes (post_id, user_id, type)
						VALUES ($1, $2, $3)
						ON CONFLICT (user_id, post_id) DO UPDATE SET type = EXCLUDED.type, updated_at = NOW()
						RETURNING like_id, post_id, user_id, type::text AS type,
							(SELECT author_id FROM posts WHERE post_id = $1) AS author_id
						""",
						post_id,
						user_id,
						kind,
					)
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("post_not_found") from None
		return Reaction.from_record(row)

	async def remove_reaction(self, post_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"DELETE FROM likes WHERE post_id = $1 AND user_id = $2 RETURNING like_id",
					post_id,
					user_id,
				)
		return row is not None

	async def author_of(self, post_id: str) -> Optional[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			author_id = await conn.fetchval("SELECT author_id FROM posts WHERE post_id = $1", post_id)
		return str(author_id) if author_id else None

	async def add_comment(
		self,
		post_id: str,
		user_id: str,
		content: str,
		parent_comment_id: Optional[str] = None,
	) -> Comment:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				if parent_comment_id is not None:
					parent_post = await conn.fetchval(
						"SELECT post_id FROM comments WHERE comment_id = $1",
						parent_comment_id,
					)
					if parent_post is None or str(parent_post) != str(post_id):
						raise NotFound("parent_comment_not_found")
				try:
					row = await conn.fetchrow(
						"""
						WITH inserted AS (
							INSERT INTO comments (post_id, user_id, parent_comment_id, comment_content)
							VALUES ($1, $2, $3, $4)
							RETURNING *
						)
						SELECT i.*, u.username, p.avatar_url
						FROM inserted i
						JOIN users u ON u.user_id = i.user_id
						LEFT JOIN profiles p ON p.user_id = i.user_id
						""",
						post_id,
						user_id,
						parent_comment_id,
						content,
					)
				except asyncpg.ForeignKeyViolationError:
					raise NotFound("post_not_found") from None
		return Comment.from_record(row)

	async def list_comments(
		self,
		post_id: str,
		cursor: Optional[Cursor] = None,
		*,
		parent_comment_id: Optional[str] = None,
	) -> List[Comment]:
		params: list = [post_id]
		if parent_comment_id is None:
			clause = "c.parent_comment_id IS NULL"
		else:
			params.append(parent_comment_id)
			clause = "c.parent_comment_id = $2"
		if cursor is not None:
			first = len(params) + 1
			clause += f" AND (c.created_at, c.comment_id) < (${first}, ${first + 1})"
			params.extend([cursor.created_at, cursor.id])
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT c.*, u.username, p.avatar_url
				FROM comments c
				JOIN users u ON u.user_id = c.user_id
				LEFT JOIN profiles p ON p.user_id = c.user_id
				WHERE c.post_id = $1 AND {clause}
				ORDER BY c.created_at DESC, c.comment_id DESC
				LIMIT {PAGE_SIZE}
				""",
				*params,
			)
		return [Comment.from_record(r) for r in rows]
