"""Outbound event kinds and inbound socket payload validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional
from uuid import UUID

from pydantic import Field, ValidationError

from kinship.domain.base import CamelModel
from kinship.realtime.errors import ValidationFailed
from kinship.settings import settings

NOTIFICATION = "notification"
FRIEND = "friend"
CONVERSATION_MESSAGE = "conversation_message"
USERS_ADD = "USERS_ADD"
USERS_SET = "USERS_SET"
USER_REMOVE = "USER_REMOVE"
MESSAGE_ADD = "MESSAGE_ADD"
MESSAGES_SET = "MESSAGES_SET"
ERROR = "error"

CENTRAL_ACTIONS = frozenset({CONVERSATION_MESSAGE})


@dataclass(frozen=True, slots=True)
class OutboundEvent:
	kind: str
	body: Any


def error_event(reason: str, *, action: Optional[str] = None) -> OutboundEvent:
	body: dict[str, Any] = {"reason": reason}
	if action:
		body["action"] = action
	return OutboundEvent(ERROR, body)


class ConversationMessageIn(CamelModel):
	conversation_id: UUID
	receiver_id: UUID
	message_content: str = Field(min_length=1, max_length=5000)
	file_id: Optional[str] = Field(default=None, max_length=64)


class GlobalChatMessageIn(CamelModel):
	type: Literal["MESSAGE_ADD"]
	text: str = ""
	attachment: Optional[str] = Field(default=None, max_length=64)


def parse_conversation_message(raw: Any) -> ConversationMessageIn:
	try:
		return ConversationMessageIn.model_validate(raw)
	except ValidationError:
		raise ValidationFailed("invalid_conversation_message") from None


def parse_central(raw: Any) -> tuple[str, Any]:
	"""Split a central namespace message into its action and validated payload."""
	if not isinstance(raw, Mapping):
		raise ValidationFailed("invalid_payload")
	action = raw.get("action")
	if action not in CENTRAL_ACTIONS:
		raise ValidationFailed("unknown_action")
	return action, parse_conversation_message(raw)


def parse_global_chat(raw: Any) -> GlobalChatMessageIn:
	try:
		message = GlobalChatMessageIn.model_validate(raw)
	except ValidationError:
		raise ValidationFailed("invalid_chat_message") from None
	text = message.text.strip()
	if not text and not message.attachment:
		raise ValidationFailed("empty_message")
	if len(text) > settings.global_chat_text_max_len:
		raise ValidationFailed("message_too_long")
	return message.model_copy(update={"text": text})
