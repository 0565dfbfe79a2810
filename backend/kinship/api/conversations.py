"""Conversation and message endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from kinship.api.deps import get_gateway, get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.base import CursorPage
from kinship.domain.chat.models import ConversationMessage
from kinship.domain.chat.schemas import ConversationMessageIn, ConversationMessageOut, ConversationOut
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user
from kinship.realtime.gateway import EventGateway

router = APIRouter(tags=["conversation"])


def _message_out(message: ConversationMessage) -> ConversationMessageOut:
	return ConversationMessageOut.model_validate(message.to_dict())


@router.post("/conversation/{user_id}", response_model=ConversationOut)
async def get_or_create_conversation(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> ConversationOut:
	other = str(user_id)
	if other == auth_user.id:
		raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="self_conversation")
	try:
		conversation = await store.conversations.get_or_create(auth_user.id, other)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return ConversationOut.model_validate(conversation.to_dict())


@router.post("/messages/{conversation_id}", response_model=List[ConversationMessageOut])
async def list_messages(
	conversation_id: UUID,
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[ConversationMessageOut]:
	conversation = await store.conversations.get(str(conversation_id))
	if conversation is None:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="conversation_not_found")
	if not conversation.has_participant(auth_user.id):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="not_a_participant")
	messages = await store.conversations.list_messages(conversation.conversation_id, page.cursor if page else None)
	return [_message_out(m) for m in messages]


@router.post("/messages", response_model=ConversationMessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
	payload: ConversationMessageIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	gateway: EventGateway = Depends(get_gateway),
) -> ConversationMessageOut:
	try:
		message = await gateway.send_conversation_message(auth_user, payload)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return _message_out(message)
