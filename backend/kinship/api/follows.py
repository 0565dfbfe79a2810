"""Follow graph endpoints."""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from redis.exceptions import RedisError

from kinship.api.deps import get_gateway, get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.base import CursorPage
from kinship.domain.social import audit
from kinship.domain.social.schemas import FollowOut, UserCardOut
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user
from kinship.obs import metrics as obs_metrics
from kinship.realtime.gateway import EventGateway

router = APIRouter(prefix="/follow", tags=["follow"])
LOGGER = logging.getLogger(__name__)


async def _audit(event: str, follower_id: str, followed_id: str) -> None:
	try:
		await audit.log_follow_event(event, {"follower_id": follower_id, "followed_id": followed_id})
	except RedisError:
		LOGGER.warning("follow audit write failed", extra={"event": event}, exc_info=True)


@router.post("/{followed_id}", response_model=FollowOut, status_code=status.HTTP_201_CREATED)
async def follow(
	followed_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
	gateway: EventGateway = Depends(get_gateway),
) -> FollowOut:
	target = str(followed_id)
	if target == auth_user.id:
		raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="self_follow")
	try:
		created = await store.follows.follow(auth_user.id, target)
		await gateway.publish_notification(
			"follow",
			f"{auth_user.username} followed you",
			target,
			{"userId": auth_user.id},
		)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	obs_metrics.inc_follow_event("follow")
	await _audit("follow", auth_user.id, target)
	return FollowOut(
		follow_id=created.follow_id,
		follower_id=created.follower_id,
		followed_id=created.followed_id,
		created_at=created.created_at,
	)


@router.delete("/{followed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow(
	followed_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> None:
	removed = await store.follows.unfollow(auth_user.id, str(followed_id))
	if not removed:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="not_following")
	obs_metrics.inc_follow_event("unfollow")
	await _audit("unfollow", auth_user.id, str(followed_id))


@router.post("/followers/{user_id}", response_model=List[UserCardOut])
async def followers(
	user_id: UUID,
	page: CursorPage | None = None,
	_: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserCardOut]:
	cursor = page.cursor if page else None
	cards = await store.follows.followers(str(user_id), cursor)
	return [UserCardOut.model_validate(card, from_attributes=True) for card in cards]


@router.post("/following/{user_id}", response_model=List[UserCardOut])
async def following(
	user_id: UUID,
	page: CursorPage | None = None,
	_: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserCardOut]:
	cursor = page.cursor if page else None
	cards = await store.follows.following(str(user_id), cursor)
	return [UserCardOut.model_validate(card, from_attributes=True) for card in cards]
