"""Event gateway.

Every socket message and every REST side effect that has to reach live
clients goes through here: validate, commit the durable mutation, then
publish. A failed mutation raises before anything is published.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Iterable, Mapping, Optional, TypeVar

import asyncpg
from redis.exceptions import RedisError

from kinship.domain.chat.models import ConversationMessage
from kinship.domain.chat.repo import ConversationRepository
from kinship.domain.identity.repo import IdentityRepository
from kinship.domain.notifications.models import NOTIFICATION_TYPES, Notification
from kinship.domain.notifications.repo import NotificationRepository
from kinship.domain.social import audit
from kinship.domain.social.models import FRIEND_TRANSITIONS, Friendship
from kinship.domain.social.repo import FriendRepository
from kinship.infra import rate_limit
from kinship.infra.auth import AuthenticatedUser
from kinship.infra.rate_limit import RateLimitExceeded
from kinship.infra.storage import InvalidAttachment, LocalAttachmentStorage, is_valid_key
from kinship.obs import metrics as obs_metrics
from kinship.realtime import events, topics
from kinship.realtime.errors import Forbidden, MutationFailed, NotFound, RealtimeError, ValidationFailed
from kinship.realtime.events import ConversationMessageIn, OutboundEvent
from kinship.realtime.registry import Connection, ConnectionRegistry
from kinship.realtime.rooms import Departure, Participant, RoomDirectory, RoomMessage, RoomStore, attachments_of
from kinship.settings import settings

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class EventGateway:
	def __init__(
		self,
		registry: ConnectionRegistry,
		*,
		notifications: NotificationRepository,
		friends: FriendRepository,
		conversations: ConversationRepository,
		identity: IdentityRepository,
		rooms: RoomDirectory,
		storage: LocalAttachmentStorage,
		chat_room: str = topics.GLOBAL_CHAT,
	) -> None:
		self.registry = registry
		self.rooms = rooms
		self._notifications = notifications
		self._friends = friends
		self._conversations = conversations
		self._identity = identity
		self._storage = storage
		self._chat_room = chat_room

	@property
	def chat_room(self) -> RoomStore:
		return self.rooms.get(self._chat_room)

	async def _store(self, operation: Awaitable[T], *, action: str) -> T:
		try:
			return await operation
		except RealtimeError:
			raise
		except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
			LOGGER.exception("durable mutation failed", extra={"action": action})
			raise MutationFailed(f"{action}_failed") from exc

	# Connection lifecycle

	def open_central(self, connection: Connection) -> None:
		"""Register a central connection and subscribe it to its own topics."""
		self.registry.register(connection)
		self.registry.subscribe(connection, topics.CENTRAL)
		for topic in topics.private_topics(connection.user.id):
			self.registry.subscribe(connection, topic)
		LOGGER.info(
			"realtime connection opened",
			extra={"connection_id": connection.id, "user_id": connection.user.id, "namespace": connection.namespace},
		)

	def disconnect(self, connection: Connection) -> None:
		self.registry.unsubscribe_all(connection)
		LOGGER.info(
			"realtime connection closed",
			extra={"connection_id": connection.id, "user_id": connection.user.id, "namespace": connection.namespace},
		)

	# Notifications

	async def publish_notification(
		self,
		kind: str,
		content: str,
		target_user_id: str,
		metadata: Optional[Mapping[str, Any]] = None,
	) -> Notification:
		"""Persist a notification and push it to the recipient's notification topic."""
		if kind not in NOTIFICATION_TYPES:
			raise ValidationFailed("invalid_notification_type")
		content = (content or "").strip()
		if not content:
			raise ValidationFailed("empty_content")
		target_user_id = str(target_user_id)
		notification = await self._store(
			self._notifications.create(target_user_id, kind, content, dict(metadata or {})),
			action="notification_insert",
		)
		obs_metrics.inc_notification_created(kind)
		await self.registry.publish(
			topics.notification_topic(target_user_id),
			OutboundEvent(events.NOTIFICATION, notification.to_dict()),
		)
		return notification

	# Friendships

	async def send_friend_request(self, actor: AuthenticatedUser, target_id: str) -> Friendship:
		target_id = str(target_id)
		if target_id == actor.id:
			raise ValidationFailed("self_request")
		if not await rate_limit.allow("friend_request", actor.id, limit=settings.friend_requests_per_minute):
			obs_metrics.inc_rate_limited("friend_request")
			raise RateLimitExceeded()
		friendship = await self._store(self._friends.create_request(actor.id, target_id), action="friend_request")
		obs_metrics.inc_friend_event(friendship.friend_status)
		await self._publish_friend(actor.id, target_id, friendship.friend_id, friendship.friend_status, friendship.updated_at)
		await self.publish_notification(
			"friend_request",
			f"{actor.username} sent you a friend request",
			target_id,
			{"friendId": friendship.friend_id, "userId": actor.id},
		)
		await self._audit("request_sent", actor.id, target_id, friendship.friend_id)
		return friendship

	async def change_friend_status(self, actor: AuthenticatedUser, target_id: str, status: str) -> Friendship:
		"""Apply accept, reject or removal ("none") to the pair and notify the other party."""
		if status not in FRIEND_TRANSITIONS:
			raise ValidationFailed("invalid_friend_status")
		target_id = str(target_id)
		if status == "none":
			friendship = await self._store(self._friends.delete_pair(actor.id, target_id), action="friend_delete")
			updated_at = datetime.now(timezone.utc)
		else:
			friendship = await self._store(self._friends.respond(actor.id, target_id, status), action="friend_update")
			updated_at = friendship.updated_at if friendship else None
		if friendship is None:
			raise NotFound("friend_request_not_found")
		obs_metrics.inc_friend_event(status)
		await self._publish_friend(actor.id, target_id, friendship.friend_id, status, updated_at)
		if status != "none" and actor.id != target_id:
			await self.publish_notification(
				"friend_request",
				f"{actor.username} {status} your friend request",
				target_id,
				{"friendId": friendship.friend_id, "userId": actor.id, "friendStatus": status},
			)
		await self._audit(f"status_{status}", actor.id, target_id, friendship.friend_id)
		return friendship

	async def _publish_friend(
		self,
		actor_id: str,
		target_id: str,
		friend_id: str,
		status: str,
		updated_at: Optional[datetime],
	) -> int:
		if actor_id == target_id:
			return 0
		body = {
			"friendId": friend_id,
			"friendStatus": status,
			"userId": actor_id,
			"targetId": target_id,
			"updatedAt": updated_at.isoformat() if updated_at else None,
		}
		return await self.registry.publish(topics.friend_topic(target_id), OutboundEvent(events.FRIEND, body))

	async def _audit(self, event: str, actor_id: str, target_id: str, friend_id: str) -> None:
		try:
			await audit.log_friend_event(event, {"actor_id": actor_id, "target_id": target_id, "friend_id": friend_id})
		except RedisError:
			LOGGER.warning("friend audit write failed", extra={"event": event}, exc_info=True)

	# Conversations

	async def send_conversation_message(self, actor: AuthenticatedUser, payload: ConversationMessageIn) -> ConversationMessage:
		conversation = await self._store(
			self._conversations.get(str(payload.conversation_id)),
			action="conversation_lookup",
		)
		if conversation is None:
			raise NotFound("conversation_not_found")
		if not conversation.has_participant(actor.id):
			raise Forbidden("not_a_participant")
		receiver_id = str(payload.receiver_id)
		if conversation.other(actor.id) != receiver_id:
			raise ValidationFailed("receiver_mismatch")
		if payload.file_id and not is_valid_key(payload.file_id):
			raise ValidationFailed("invalid_attachment")
		message = await self._store(
			self._conversations.insert_message(
				conversation.conversation_id,
				actor,
				payload.message_content,
				payload.file_id,
			),
			action="message_insert",
		)
		obs_metrics.inc_conversation_message()
		event = OutboundEvent(events.CONVERSATION_MESSAGE, message.to_dict())
		await self.registry.publish(topics.conversation_topic(actor.id), event)
		if receiver_id != actor.id:
			await self.registry.publish(topics.conversation_topic(receiver_id), event)
		return message

	async def handle_central_message(self, connection: Connection, raw: Any) -> Optional[ConversationMessage]:
		"""Dispatch one inbound central message; bad payloads are dropped."""
		try:
			action, payload = events.parse_central(raw)
		except ValidationFailed as exc:
			obs_metrics.inc_inbound_dropped("central", exc.reason)
			LOGGER.debug("dropped central message", extra={"connection_id": connection.id, "reason": exc.reason})
			return None
		try:
			return await self.send_conversation_message(connection.user, payload)
		except RealtimeError as exc:
			LOGGER.info(
				"central action rejected",
				extra={"connection_id": connection.id, "action": action, "reason": exc.reason},
			)
			await self.registry.send(connection, events.error_event(exc.reason, action=action))
			return None

	# Global chat

	async def join_global_chat(self, connection: Connection) -> Optional[Participant]:
		"""Add the connection to the room; returns None when it closed during the profile lookup."""
		profile = await self._store(self._identity.get_profile(connection.user.id), action="profile_lookup")
		if not connection.open:
			LOGGER.info("global chat join abandoned", extra={"connection_id": connection.id})
			return None
		participant = Participant(
			participant_id=connection.id,
			user_id=connection.user.id,
			username=connection.user.username,
			avatar_url=profile.avatar_url if profile else None,
		)
		room = self.chat_room
		added = room.add_participant(participant)
		snapshot = room.snapshot()
		self.registry.register(connection)
		self.registry.subscribe(connection, self._chat_room)
		obs_metrics.set_global_chat_participants(room.participant_count)
		if added:
			await self.registry.publish(self._chat_room, OutboundEvent(events.USERS_ADD, participant.to_dict()))
		await self.registry.send(
			connection,
			OutboundEvent(events.USERS_SET, [p.to_dict() for p in snapshot.participants]),
		)
		await self.registry.send(
			connection,
			OutboundEvent(events.MESSAGES_SET, [m.to_dict() for m in snapshot.messages]),
		)
		return participant

	async def broadcast_global_chat(self, connection: Connection, raw: Any) -> Optional[RoomMessage]:
		try:
			message_in = events.parse_global_chat(raw)
		except ValidationFailed as exc:
			obs_metrics.inc_inbound_dropped("global-chat", exc.reason)
			LOGGER.debug("dropped chat message", extra={"connection_id": connection.id, "reason": exc.reason})
			return None
		room = self.chat_room
		sender = room.participant(connection.id)
		if sender is None:
			obs_metrics.inc_inbound_dropped("global-chat", "not_joined")
			return None
		if message_in.attachment and not self._storage.exists(message_in.attachment):
			await self.registry.send(connection, events.error_event("invalid_attachment", action=events.MESSAGE_ADD))
			return None
		if not await rate_limit.allow(
			"global_chat",
			connection.user.id,
			limit=settings.global_chat_messages_per_minute,
		):
			obs_metrics.inc_rate_limited("global_chat")
			await self.registry.send(connection, events.error_event("rate_limited", action=events.MESSAGE_ADD))
			return None

		message = RoomMessage.create(sender, message_in.text, message_in.attachment)
		evicted = room.append_message(message)
		obs_metrics.inc_global_chat_message()
		event = OutboundEvent(events.MESSAGE_ADD, message.to_dict())
		await self.registry.publish(self._chat_room, event, exclude=connection)
		await self.registry.send(connection, event)
		if evicted:
			await self._delete_unreferenced(evicted, room)
		return message

	async def leave_global_chat(self, connection: Connection) -> Departure:
		room = self.chat_room
		departure = room.remove_participant(connection.id)
		obs_metrics.set_global_chat_participants(room.participant_count)
		if departure.participant is None:
			return departure
		if departure.remaining:
			body = {"participantId": departure.participant.participant_id, "userId": departure.participant.user_id}
			await self.registry.publish(self._chat_room, OutboundEvent(events.USER_REMOVE, body), exclude=connection)
		else:
			obs_metrics.inc_global_chat_purge()
			LOGGER.info("global chat emptied", extra={"purged_messages": len(departure.purged)})
			self.rooms.discard_if_empty(room.key)
			await self._delete_unreferenced(departure.purged, room)
		return departure

	async def _delete_unreferenced(self, messages: Iterable[RoomMessage], room: RoomStore) -> None:
		"""Delete attachments no longer referenced by room history or by saved conversation messages."""
		keys = attachments_of(messages) - room.referenced_attachments()
		if not keys:
			return
		try:
			in_use = await self._conversations.referenced_files(sorted(keys))
		except (asyncpg.PostgresError, asyncpg.InterfaceError):
			LOGGER.warning("attachment reference lookup failed", extra={"keys": len(keys)}, exc_info=True)
			obs_metrics.inc_attachment_deleted("error", len(keys))
			return
		if keys & in_use:
			obs_metrics.inc_attachment_deleted("kept", len(keys & in_use))
		# History may have changed while the lookup was in flight.
		keys -= in_use | self.rooms.referenced_attachments(room.key)
		for key in sorted(keys):
			try:
				deleted = await self._storage.delete(key)
			except (OSError, InvalidAttachment):
				obs_metrics.inc_attachment_deleted("error")
				LOGGER.warning("attachment cleanup failed", extra={"key": key}, exc_info=True)
				continue
			obs_metrics.inc_attachment_deleted("deleted" if deleted else "missing")
