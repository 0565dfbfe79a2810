"""Posts, reactions and comments."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from kinship.api.deps import get_gateway, get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.base import CursorPage
from kinship.domain.posts.schemas import (
	CommentCreate,
	CommentOut,
	CommentPage,
	PostCreate,
	PostCreated,
	PostOut,
	ReactionOut,
)
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from kinship.realtime.gateway import EventGateway

router = APIRouter(tags=["posts"])


def _posts_out(posts) -> List[PostOut]:
	return [PostOut.model_validate(post, from_attributes=True) for post in posts]


@router.post("/posts", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
async def create_post(
	payload: PostCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> PostCreated:
	post_id = await store.posts.create(auth_user.id, payload.post_title, payload.post_content)
	return PostCreated(post_id=post_id)


@router.post("/posts/following", response_model=List[PostOut])
async def following_feed(
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[PostOut]:
	return _posts_out(await store.posts.following_feed(auth_user.id, page.cursor if page else None))


@router.post("/posts/all-posts-from-user/{user_id}", response_model=List[PostOut])
async def posts_from_user(
	user_id: UUID,
	page: CursorPage | None = None,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	store: Store = Depends(get_store),
) -> List[PostOut]:
	posts = await store.posts.by_author(
		str(user_id),
		page.cursor if page else None,
		viewer_id=viewer.id if viewer else None,
	)
	return _posts_out(posts)


@router.get("/posts/{post_id}", response_model=PostOut)
async def get_post(
	post_id: UUID,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	store: Store = Depends(get_store),
) -> PostOut:
	post = await store.posts.get(str(post_id), viewer_id=viewer.id if viewer else None)
	if post is None:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="post_not_found")
	return PostOut.model_validate(post, from_attributes=True)


async def _react(
	post_id: UUID,
	kind: str,
	auth_user: AuthenticatedUser,
	store: Store,
	gateway: EventGateway,
) -> ReactionOut:
	try:
		reaction = await store.posts.react(str(post_id), auth_user.id, kind)
		if reaction.author_id != auth_user.id:
			await gateway.publish_notification(
				"post_interaction",
				f"{auth_user.username} {kind}d your post",
				reaction.author_id,
				{"postId": reaction.post_id, "userId": auth_user.id, "reaction": kind},
			)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return ReactionOut(post_id=reaction.post_id, type=reaction.type)


@router.post("/like/{post_id}/like", response_model=ReactionOut)
async def like_post(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
	gateway: EventGateway = Depends(get_gateway),
) -> ReactionOut:
	return await _react(post_id, "like", auth_user, store, gateway)


@router.post("/like/{post_id}/dislike", response_model=ReactionOut)
async def dislike_post(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
	gateway: EventGateway = Depends(get_gateway),
) -> ReactionOut:
	return await _react(post_id, "dislike", auth_user, store, gateway)


@router.delete("/like/{post_id}", response_model=ReactionOut)
async def remove_reaction(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> ReactionOut:
	if not await store.posts.remove_reaction(str(post_id), auth_user.id):
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="reaction_not_found")
	return ReactionOut(post_id=post_id, type=None)


@router.post("/comments/{post_id}", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def create_comment(
	post_id: UUID,
	payload: CommentCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
	gateway: EventGateway = Depends(get_gateway),
) -> CommentOut:
	parent = str(payload.parent_comment_id) if payload.parent_comment_id else None
	try:
		comment = await store.posts.add_comment(str(post_id), auth_user.id, payload.comment_content, parent)
		author_id = await store.posts.author_of(comment.post_id)
		if author_id and author_id != auth_user.id:
			await gateway.publish_notification(
				"post_interaction",
				f"{auth_user.username} commented on your post",
				author_id,
				{"postId": comment.post_id, "commentId": comment.comment_id, "userId": auth_user.id},
			)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return CommentOut.model_validate(comment, from_attributes=True)


@router.post("/comments/{post_id}/list", response_model=List[CommentOut])
async def list_comments(
	post_id: UUID,
	page: CommentPage | None = None,
	store: Store = Depends(get_store),
) -> List[CommentOut]:
	parent = str(page.parent_comment_id) if page and page.parent_comment_id else None
	comments = await store.posts.list_comments(str(post_id), page.cursor if page else None, parent_comment_id=parent)
	return [CommentOut.model_validate(c, from_attributes=True) for c in comments]
