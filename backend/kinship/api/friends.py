"""Friendship endpoints; every state change goes through the event gateway."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from kinship.api.deps import get_gateway, get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.base import CursorPage
from kinship.domain.social.models import Friendship
from kinship.domain.social.schemas import FriendshipOut, FriendshipStatusOut, UserCardOut
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user
from kinship.realtime.gateway import EventGateway

router = APIRouter(prefix="/friend", tags=["friend"])


def _friendship_out(friendship: Friendship) -> FriendshipOut:
	return FriendshipOut(
		friend_id=friendship.friend_id,
		sender_id=friendship.sender_id,
		receiver_id=friendship.receiver_id,
		friend_status=friendship.friend_status,
		created_at=friendship.created_at,
		updated_at=friendship.updated_at,
	)


async def _change(gateway: EventGateway, auth_user: AuthenticatedUser, target: UUID, new_status: str) -> Friendship:
	try:
		return await gateway.change_friend_status(auth_user, str(target), new_status)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None


@router.post("/send-friend-request/{user_id}", response_model=FriendshipOut, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	gateway: EventGateway = Depends(get_gateway),
) -> FriendshipOut:
	try:
		friendship = await gateway.send_friend_request(auth_user, str(user_id))
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return _friendship_out(friendship)


@router.patch("/accept-friend-request/{user_id}", response_model=FriendshipOut)
async def accept_friend_request(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	gateway: EventGateway = Depends(get_gateway),
) -> FriendshipOut:
	return _friendship_out(await _change(gateway, auth_user, user_id, "accepted"))


@router.patch("/reject-friend-request/{user_id}", response_model=FriendshipOut)
async def reject_friend_request(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	gateway: EventGateway = Depends(get_gateway),
) -> FriendshipOut:
	return _friendship_out(await _change(gateway, auth_user, user_id, "rejected"))


@router.delete("/delete-request-sent/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request_sent(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	gateway: EventGateway = Depends(get_gateway),
) -> None:
	await _change(gateway, auth_user, user_id, "none")


@router.get("/friendship-status/{user_id}", response_model=FriendshipStatusOut)
async def friendship_status(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> FriendshipStatusOut:
	return FriendshipStatusOut(status=await store.friends.status(auth_user.id, str(user_id)))


@router.post("/friend-request", response_model=List[UserCardOut])
async def incoming_requests(
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserCardOut]:
	cards = await store.friends.incoming(auth_user.id, page.cursor if page else None)
	return [UserCardOut.model_validate(card, from_attributes=True) for card in cards]


@router.post("/request-sent", response_model=List[UserCardOut])
async def outgoing_requests(
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserCardOut]:
	cards = await store.friends.outgoing(auth_user.id, page.cursor if page else None)
	return [UserCardOut.model_validate(card, from_attributes=True) for card in cards]


@router.post("/friend-list", response_model=List[UserCardOut])
async def friend_list(
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserCardOut]:
	cards = await store.friends.friends(auth_user.id, page.cursor if page else None)
	return [UserCardOut.model_validate(card, from_attributes=True) for card in cards]
