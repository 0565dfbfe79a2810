import uuid

import pytest

from kinship.domain.chat.schemas import ConversationMessageIn
from kinship.domain.social.audit import FRIEND_STREAM
from kinship.infra.auth import AuthenticatedUser
from kinship.infra.rate_limit import RateLimitExceeded
from kinship.realtime import events, topics
from kinship.realtime.errors import Forbidden, MutationFailed, NotFound, ValidationFailed
from kinship.settings import settings

U1 = "00000000-0000-0000-0000-000000000001"
U2 = "00000000-0000-0000-0000-000000000002"
U3 = "00000000-0000-0000-0000-000000000003"


def _user(user_id: str) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id, username=f"user{user_id[-1]}")


def _central(gateway, make_connection, user_id):
	conn, inbox = make_connection(user_id, username=f"user{user_id[-1]}")
	gateway.open_central(conn)
	return conn, inbox


def _chat(gateway, make_connection, user_id, sid):
	return make_connection(user_id, sid, username=f"user{user_id[-1]}", namespace="/global-chat")


def test_open_central_subscribes_to_own_topics(gateway, make_connection):
	conn, _ = _central(gateway, make_connection, U1)

	assert gateway.registry.topics_of(conn) == frozenset({topics.CENTRAL, *topics.private_topics(U1)})
	gateway.disconnect(conn)
	assert gateway.registry.topics_of(conn) == frozenset()


# Notifications


@pytest.mark.asyncio
async def test_publish_notification_persists_then_delivers(gateway, make_connection, fake_store):
	_, target_inbox = _central(gateway, make_connection, U2)
	_, other_inbox = _central(gateway, make_connection, U3)

	notification = await gateway.publish_notification("system_alert", "maintenance tonight", U2, {"level": "info"})

	assert fake_store.notifications.rows == [notification]
	assert target_inbox.kinds() == [events.NOTIFICATION]
	assert target_inbox.events[0].body == notification.to_dict()
	assert other_inbox.events == []


@pytest.mark.asyncio
async def test_publish_notification_rejects_unknown_type(gateway, fake_store):
	with pytest.raises(ValidationFailed) as excinfo:
		await gateway.publish_notification("party", "hi", U2)
	assert excinfo.value.reason == "invalid_notification_type"
	assert fake_store.notifications.rows == []


@pytest.mark.asyncio
async def test_failed_insert_publishes_nothing(gateway, make_connection, fake_store):
	_, inbox = _central(gateway, make_connection, U2)
	fake_store.notifications.fail = True

	with pytest.raises(MutationFailed) as excinfo:
		await gateway.publish_notification("system_alert", "hello", U2)

	assert excinfo.value.reason == "notification_insert_failed"
	assert inbox.events == []


# Friendships


@pytest.mark.asyncio
async def test_friend_request_end_to_end(gateway, make_connection, fake_store, fake_redis):
	_, u1_inbox = _central(gateway, make_connection, U1)
	_, u2_inbox = _central(gateway, make_connection, U2)

	friendship = await gateway.send_friend_request(_user(U1), U2)

	assert friendship.friend_status == "pending"
	assert await fake_store.friends.status(U1, U2) == "pending"
	friend_events = u2_inbox.of(events.FRIEND)
	assert len(friend_events) == 1
	body = friend_events[0].body
	assert body["friendId"] == friendship.friend_id
	assert body["friendStatus"] == "pending"
	assert body["userId"] == U1
	assert u2_inbox.of(events.NOTIFICATION)[0].body["notificationType"] == "friend_request"
	assert u1_inbox.events == []
	entries = await fake_redis.xrange(FRIEND_STREAM)
	assert entries[0][1]["event"] == "request_sent"


@pytest.mark.asyncio
async def test_friend_request_to_self_is_rejected(gateway):
	with pytest.raises(ValidationFailed) as excinfo:
		await gateway.send_friend_request(_user(U1), U1)
	assert excinfo.value.reason == "self_request"


@pytest.mark.asyncio
async def test_friend_request_rate_limited(gateway, monkeypatch):
	monkeypatch.setattr(settings, "friend_requests_per_minute", 1)
	await gateway.send_friend_request(_user(U1), U2)

	with pytest.raises(RateLimitExceeded):
		await gateway.send_friend_request(_user(U1), U3)


@pytest.mark.asyncio
async def test_status_change_publishes_only_to_the_target(gateway, make_connection):
	await gateway.send_friend_request(_user(U1), U2)
	_, u1_inbox = _central(gateway, make_connection, U1)
	_, u2_inbox = _central(gateway, make_connection, U2)

	friendship = await gateway.change_friend_status(_user(U2), U1, "accepted")

	assert friendship.friend_status == "accepted"
	assert u2_inbox.events == []
	friend_events = u1_inbox.of(events.FRIEND)
	assert len(friend_events) == 1
	assert friend_events[0].body["friendStatus"] == "accepted"
	assert friend_events[0].body["userId"] == U2
	assert friend_events[0].body["targetId"] == U1
	assert u1_inbox.of(events.NOTIFICATION)[0].body["notificationMetadata"]["friendStatus"] == "accepted"


@pytest.mark.asyncio
async def test_only_the_receiver_can_accept(gateway):
	await gateway.send_friend_request(_user(U1), U2)

	with pytest.raises(NotFound):
		await gateway.change_friend_status(_user(U1), U2, "accepted")


@pytest.mark.asyncio
async def test_status_none_removes_the_pair(gateway, make_connection, fake_store):
	await gateway.send_friend_request(_user(U1), U2)
	_, u2_inbox = _central(gateway, make_connection, U2)

	await gateway.change_friend_status(_user(U1), U2, "none")

	assert await fake_store.friends.status(U1, U2) == "none"
	assert [e.body["friendStatus"] for e in u2_inbox.of(events.FRIEND)] == ["none"]
	assert u2_inbox.of(events.NOTIFICATION) == []


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(gateway):
	with pytest.raises(ValidationFailed):
		await gateway.change_friend_status(_user(U1), U2, "blocked")


# Conversations


def _message(conversation_id: str, receiver_id: str, **extra) -> ConversationMessageIn:
	return ConversationMessageIn(
		conversation_id=conversation_id,
		receiver_id=receiver_id,
		message_content="hello",
		**extra,
	)


@pytest.mark.asyncio
async def test_conversation_message_reaches_both_parties_once(gateway, make_connection, fake_store):
	conversation = fake_store.conversations.add(U1, U2)
	_, u1_inbox = _central(gateway, make_connection, U1)
	_, u2_inbox = _central(gateway, make_connection, U2)
	_, u3_inbox = _central(gateway, make_connection, U3)

	message = await gateway.send_conversation_message(_user(U1), _message(conversation.conversation_id, U2))

	assert fake_store.conversations.messages == [message]
	for inbox in (u1_inbox, u2_inbox):
		copies = inbox.of(events.CONVERSATION_MESSAGE)
		assert len(copies) == 1
		assert copies[0].body == message.to_dict()
	assert u3_inbox.events == []


@pytest.mark.asyncio
async def test_conversation_message_checks_membership(gateway, fake_store):
	conversation = fake_store.conversations.add(U1, U2)

	with pytest.raises(Forbidden):
		await gateway.send_conversation_message(_user(U3), _message(conversation.conversation_id, U1))
	with pytest.raises(ValidationFailed) as excinfo:
		await gateway.send_conversation_message(_user(U1), _message(conversation.conversation_id, U3))
	assert excinfo.value.reason == "receiver_mismatch"
	with pytest.raises(NotFound):
		await gateway.send_conversation_message(_user(U1), _message(str(uuid.uuid4()), U2))
	with pytest.raises(ValidationFailed) as excinfo:
		await gateway.send_conversation_message(
			_user(U1), _message(conversation.conversation_id, U2, file_id="../../etc/passwd")
		)
	assert excinfo.value.reason == "invalid_attachment"
	assert fake_store.conversations.messages == []


@pytest.mark.asyncio
async def test_central_message_failure_answers_sender_only(gateway, make_connection, fake_store):
	conversation = fake_store.conversations.add(U1, U2)
	conn, u1_inbox = _central(gateway, make_connection, U1)
	_, u2_inbox = _central(gateway, make_connection, U2)
	fake_store.conversations.fail = True

	raw = {
		"action": "conversation_message",
		"conversationId": conversation.conversation_id,
		"receiverId": U2,
		"messageContent": "hello",
	}
	result = await gateway.handle_central_message(conn, raw)

	assert result is None
	assert u1_inbox.kinds() == [events.ERROR]
	assert u1_inbox.events[0].body == {"reason": "message_insert_failed", "action": "conversation_message"}
	assert u2_inbox.events == []
	assert conn.open


@pytest.mark.asyncio
async def test_central_message_drops_malformed_payloads(gateway, make_connection):
	conn, inbox = _central(gateway, make_connection, U1)

	assert await gateway.handle_central_message(conn, {"action": "unknown"}) is None
	assert await gateway.handle_central_message(conn, ["not", "a", "dict"]) is None
	assert inbox.events == []


# Global chat


@pytest.mark.asyncio
async def test_global_chat_end_to_end(gateway, make_connection):
	first, first_inbox = _chat(gateway, make_connection, U1, "sid-1")
	second, second_inbox = _chat(gateway, make_connection, U2, "sid-2")

	await gateway.join_global_chat(first)
	users_set = first_inbox.of(events.USERS_SET)[0].body
	assert [p["participantId"] for p in users_set] == ["sid-1"]
	assert first_inbox.of(events.MESSAGES_SET)[0].body == []

	await gateway.join_global_chat(second)
	added = first_inbox.of(events.USERS_ADD)
	assert [e.body["participantId"] for e in added][-1] == "sid-2"
	assert [p["participantId"] for p in second_inbox.of(events.USERS_SET)[0].body] == ["sid-1", "sid-2"]

	await gateway.broadcast_global_chat(first, {"type": "MESSAGE_ADD", "text": "hi all"})
	assert [e.body["text"] for e in second_inbox.of(events.MESSAGE_ADD)] == ["hi all"]
	assert [e.body["text"] for e in first_inbox.of(events.MESSAGE_ADD)] == ["hi all"]

	await gateway.leave_global_chat(first)
	gateway.disconnect(first)
	removed = second_inbox.of(events.USER_REMOVE)
	assert removed[0].body == {"participantId": "sid-1", "userId": U1}
	await gateway.leave_global_chat(second)
	gateway.disconnect(second)

	third, third_inbox = _chat(gateway, make_connection, U3, "sid-3")
	await gateway.join_global_chat(third)
	assert [p["participantId"] for p in third_inbox.of(events.USERS_SET)[0].body] == ["sid-3"]
	assert third_inbox.of(events.MESSAGES_SET)[0].body == []


@pytest.mark.asyncio
async def test_last_leave_deletes_every_attachment(gateway, make_connection, fake_storage):
	conn, _ = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)
	key_one = await fake_storage.save(b"one", "image/png")
	key_two = await fake_storage.save(b"two", "image/png")
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": key_one})
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "look", "attachment": key_two})

	departure = await gateway.leave_global_chat(conn)

	assert departure.emptied
	assert sorted(fake_storage.deleted) == sorted([key_one, key_two])
	assert fake_storage.files == {}
	assert gateway.chat_room.snapshot().messages == ()


@pytest.mark.asyncio
async def test_evicted_history_attachments_are_deleted(gateway, make_connection, fake_storage):
	conn, _ = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)
	key = await fake_storage.save(b"old", "image/png")
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": key})
	for i in range(3):
		await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": f"m{i}"})

	assert fake_storage.deleted == [key]
	assert len(gateway.chat_room.snapshot().messages) == 3


@pytest.mark.asyncio
async def test_broadcast_rejects_unknown_attachment(gateway, make_connection):
	conn, inbox = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)

	result = await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": "missing.png"})

	assert result is None
	assert inbox.of(events.ERROR)[0].body == {"reason": "invalid_attachment", "action": events.MESSAGE_ADD}
	assert gateway.chat_room.snapshot().messages == ()


@pytest.mark.asyncio
async def test_broadcast_rate_limit_answers_sender(gateway, make_connection, monkeypatch):
	monkeypatch.setattr(settings, "global_chat_messages_per_minute", 1)
	conn, inbox = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)

	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "one"})
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "two"})

	assert [e.body["text"] for e in inbox.of(events.MESSAGE_ADD)] == ["one"]
	assert inbox.of(events.ERROR)[0].body["reason"] == "rate_limited"


@pytest.mark.asyncio
async def test_broadcast_from_non_participant_is_dropped(gateway, make_connection):
	conn, inbox = _chat(gateway, make_connection, U1, "sid-1")

	assert await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "hi"}) is None
	assert inbox.events == []


@pytest.mark.asyncio
async def test_join_is_abandoned_when_the_connection_closes_first(gateway, make_connection, fake_store, monkeypatch):
	conn, inbox = _chat(gateway, make_connection, U1, "sid-1")
	original = fake_store.identity.get_profile

	async def _profile_after_close(user_id):
		gateway.disconnect(conn)
		return await original(user_id)

	monkeypatch.setattr(fake_store.identity, "get_profile", _profile_after_close)

	assert await gateway.join_global_chat(conn) is None
	assert gateway.chat_room.participant_count == 0
	assert gateway.registry.connection("sid-1") is None
	assert inbox.events == []


@pytest.mark.asyncio
async def test_purge_keeps_files_saved_in_conversations(gateway, make_connection, fake_store, fake_storage):
	conversation = fake_store.conversations.add(U1, U2)
	shared = await fake_storage.save(b"shared", "image/png")
	chat_only = await fake_storage.save(b"chat", "image/png")
	await gateway.send_conversation_message(_user(U1), _message(conversation.conversation_id, U2, file_id=shared))
	conn, _ = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": shared})
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": chat_only})

	await gateway.leave_global_chat(conn)

	assert fake_storage.deleted == [chat_only]
	assert shared in fake_storage.files


@pytest.mark.asyncio
async def test_purge_deletes_nothing_when_reference_lookup_fails(gateway, make_connection, fake_store, fake_storage):
	conn, _ = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)
	key = await fake_storage.save(b"one", "image/png")
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "", "attachment": key})
	fake_store.conversations.fail = True

	departure = await gateway.leave_global_chat(conn)

	assert departure.emptied
	assert fake_storage.deleted == []
	assert key in fake_storage.files


@pytest.mark.asyncio
async def test_emptied_room_is_discarded(gateway, make_connection):
	conn, _ = _chat(gateway, make_connection, U1, "sid-1")
	await gateway.join_global_chat(conn)
	room = gateway.chat_room
	await gateway.broadcast_global_chat(conn, {"type": "MESSAGE_ADD", "text": "bye"})

	await gateway.leave_global_chat(conn)

	assert gateway.chat_room is not room
	assert gateway.chat_room.snapshot().messages == ()
