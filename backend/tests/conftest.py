import os
import sys
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import asyncpg
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

os.environ.setdefault("SECRET_KEY", "kinship-test-secret-key-0123456789abcdef")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="kinship-files-"))
os.environ.setdefault("OBS_ADMIN_TOKEN", "ops-token")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from kinship.api import deps
from kinship.domain.chat.models import Conversation, ConversationMessage, SenderSnapshot, ordered_pair
from kinship.domain.identity.models import Credentials, Profile, User, UserSummary
from kinship.domain.notifications.models import Notification
from kinship.domain.social.models import Friendship
from kinship.domain.store import Store
from kinship.infra import postgres
from kinship.infra.auth import AuthenticatedUser, issue_access_token
from kinship.main import app
from kinship.realtime.errors import Conflict, NotFound
from kinship.realtime.events import OutboundEvent
from kinship.realtime.gateway import EventGateway
from kinship.realtime.registry import Connection, ConnectionRegistry
from kinship.realtime.rooms import RoomDirectory


def _now() -> datetime:
	return datetime.now(timezone.utc)


class FakeNotifications:
	def __init__(self) -> None:
		self.rows: List[Notification] = []
		self.fail = False

	async def create(self, user_id, kind, content, metadata):
		if self.fail:
			raise asyncpg.InterfaceError("connection is closed")
		row = Notification(
			notification_id=str(uuid.uuid4()),
			user_id=user_id,
			notification_type=kind,
			content=content,
			is_read=False,
			created_at=_now(),
			metadata=dict(metadata),
		)
		self.rows.append(row)
		return row

	async def list_for_user(self, user_id, cursor=None):
		return [row for row in reversed(self.rows) if row.user_id == user_id]

	async def unread_count(self, user_id):
		return sum(1 for row in self.rows if row.user_id == user_id and not row.is_read)

	async def mark_read(self, user_id, notification_id):
		for row in self.rows:
			if row.notification_id == notification_id and row.user_id == user_id:
				row.is_read = True
				return True
		return False

	async def mark_all_read(self, user_id):
		updated = 0
		for row in self.rows:
			if row.user_id == user_id and not row.is_read:
				row.is_read = True
				updated += 1
		return updated


class FakeFriends:
	def __init__(self) -> None:
		self.pairs: Dict[frozenset, Friendship] = {}

	async def create_request(self, sender_id, receiver_id):
		key = frozenset((sender_id, receiver_id))
		if key in self.pairs:
			raise Conflict("already_requested")
		now = _now()
		row = Friendship(str(uuid.uuid4()), sender_id, receiver_id, "pending", now, now)
		self.pairs[key] = row
		return row

	async def respond(self, receiver_id, sender_id, status):
		row = self.pairs.get(frozenset((sender_id, receiver_id)))
		if row is None or row.sender_id != sender_id or row.friend_status != "pending":
			return None
		row.friend_status = status
		row.updated_at = _now()
		return row

	async def delete_pair(self, user_id, other_id):
		return self.pairs.pop(frozenset((user_id, other_id)), None)

	async def status(self, user_id, other_id):
		row = self.pairs.get(frozenset((user_id, other_id)))
		return row.friend_status if row else "none"

	async def incoming(self, user_id, cursor=None):
		return []

	async def outgoing(self, user_id, cursor=None):
		return []

	async def friends(self, user_id, cursor=None):
		return []


class FakeConversations:
	def __init__(self) -> None:
		self.conversations: Dict[str, Conversation] = {}
		self.messages: List[ConversationMessage] = []
		self.fail = False

	def add(self, user_one: str, user_two: str) -> Conversation:
		first, second = ordered_pair(user_one, user_two)
		conversation = Conversation(str(uuid.uuid4()), first, second, _now())
		self.conversations[conversation.conversation_id] = conversation
		return conversation

	async def get(self, conversation_id):
		return self.conversations.get(conversation_id)

	async def get_or_create(self, user_one, user_two):
		pair = ordered_pair(user_one, user_two)
		for conversation in self.conversations.values():
			if conversation.participants() == pair:
				return conversation
		return self.add(user_one, user_two)

	async def insert_message(self, conversation_id, sender, content, file_id=None):
		if self.fail:
			raise asyncpg.InterfaceError("connection is closed")
		message = ConversationMessage(
			conversation_id=conversation_id,
			message_id=str(uuid.uuid4()),
			sender=SenderSnapshot(sender.id, sender.username, None),
			message_content=content,
			created_at=_now(),
			file_id=file_id,
		)
		self.messages.append(message)
		return message

	async def list_messages(self, conversation_id, cursor=None):
		return [m for m in self.messages if m.conversation_id == conversation_id]

	async def referenced_files(self, keys):
		if self.fail:
			raise asyncpg.InterfaceError("connection is closed")
		return {m.file_id for m in self.messages if m.file_id in keys}


class FakeIdentity:
	def __init__(self) -> None:
		self.users: Dict[str, User] = {}
		self.hashes: Dict[str, str] = {}
		self.profiles: Dict[str, Profile] = {}

	async def create_user(self, username, email, password_hash):
		if any(u.email == email.lower() or u.username == username for u in self.users.values()):
			raise Conflict("account_exists")
		user = User(str(uuid.uuid4()), username, email.lower(), False, _now())
		self.users[user.user_id] = user
		self.hashes[user.user_id] = password_hash
		self.profiles[user.user_id] = Profile(user.user_id, username, None, None, None, _now())
		return user

	async def get_credentials(self, email):
		for user in self.users.values():
			if user.email == email.lower():
				return Credentials(user=user, password_hash=self.hashes[user.user_id])
		return None

	async def set_password_hash(self, user_id, password_hash):
		self.hashes[user_id] = password_hash

	async def get_profile(self, user_id):
		return self.profiles.get(user_id)

	async def search_users(self, term, cursor=None):
		needle = term.lower()
		hits = [
			u
			for u in sorted(self.users.values(), key=lambda u: (u.created_at, u.user_id))
			if needle in u.username.lower() or needle in u.email
		]
		if cursor is not None:
			hits = [u for u in hits if (u.created_at, u.user_id) > (cursor.created_at, str(cursor.id))]
		return [
			UserSummary(
				u.user_id,
				u.username,
				u.created_at,
				self.profiles[u.user_id].full_name,
				self.profiles[u.user_id].avatar_url,
			)
			for u in hits[:10]
		]

	async def update_profile(self, user_id, changes):
		profile = self.profiles.get(user_id)
		if profile is None:
			raise NotFound("profile_not_found")
		for name, value in changes.items():
			setattr(profile, name, value)
		return profile


class FakeStorage:
	def __init__(self) -> None:
		self.files: Dict[str, bytes] = {}
		self.deleted: List[str] = []

	def exists(self, key: str) -> bool:
		return key in self.files

	async def save(self, content: bytes, content_type: str) -> str:
		key = f"{len(self.files):026d}.png"
		self.files[key] = content
		return key

	async def delete(self, key: str) -> bool:
		self.deleted.append(key)
		return self.files.pop(key, None) is not None


class Inbox:
	"""Connection sender that records every delivered event."""

	def __init__(self) -> None:
		self.events: List[OutboundEvent] = []

	async def __call__(self, event: OutboundEvent) -> None:
		self.events.append(event)

	def kinds(self) -> List[str]:
		return [event.kind for event in self.events]

	def of(self, kind: str) -> List[OutboundEvent]:
		return [event for event in self.events if event.kind == kind]


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from kinship.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture
def fake_store() -> Store:
	return Store(
		identity=FakeIdentity(),
		follows=AsyncMock(),
		friends=FakeFriends(),
		conversations=FakeConversations(),
		notifications=FakeNotifications(),
		posts=AsyncMock(),
	)


@pytest.fixture
def fake_storage() -> FakeStorage:
	return FakeStorage()


@pytest.fixture
def gateway(fake_store, fake_storage) -> EventGateway:
	return EventGateway(
		ConnectionRegistry(send_timeout=0.5),
		notifications=fake_store.notifications,
		friends=fake_store.friends,
		conversations=fake_store.conversations,
		identity=fake_store.identity,
		rooms=RoomDirectory(history_limit=3),
		storage=fake_storage,
	)


@pytest.fixture
def make_connection():
	"""Build a connection for ``user_id`` whose deliveries land in the returned inbox."""

	def _make(user_id: str, sid: Optional[str] = None, *, username: Optional[str] = None, namespace: str = "/central"):
		inbox = Inbox()
		user = AuthenticatedUser(id=user_id, username=username or f"user-{user_id[-4:]}")
		connection = Connection(sid or f"sid-{uuid.uuid4().hex[:8]}", user, inbox, namespace=namespace)
		return connection, inbox

	return _make


@pytest.fixture
def auth_headers():
	def _headers(user_id: str, username: str = "tester") -> dict:
		return {"Authorization": f"Bearer {issue_access_token(user_id, username)}"}

	return _headers


@pytest_asyncio.fixture
async def api_client(fake_store, fake_storage, gateway):
	app.dependency_overrides[deps.get_store] = lambda: fake_store
	app.dependency_overrides[deps.get_storage] = lambda: fake_storage
	app.dependency_overrides[deps.get_gateway] = lambda: gateway
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.clear()
