"""Socket.IO namespaces for the central channel group and the global chat room."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import socketio

from kinship.infra.auth import resolve_handshake
from kinship.obs import metrics as obs_metrics
from kinship.realtime.errors import MutationFailed, Unauthenticated
from kinship.realtime.events import OutboundEvent
from kinship.realtime.gateway import EventGateway
from kinship.realtime.registry import Connection

LOGGER = logging.getLogger(__name__)


class _GatewayNamespace(socketio.AsyncNamespace):
	"""Authenticates the handshake and binds each sid to a registry connection."""

	def __init__(self, namespace: str, gateway: EventGateway) -> None:
		super().__init__(namespace)
		self.gateway = gateway
		self._sessions: Dict[str, Connection] = {}

	def session(self, sid: str) -> Optional[Connection]:
		return self._sessions.get(sid)

	def _connection(self, sid: str, environ: dict, auth: Optional[dict]) -> Connection:
		try:
			user = resolve_handshake(environ, auth)
		except Unauthenticated as exc:
			obs_metrics.socket_rejected(self.namespace, exc.reason)
			raise socketio.exceptions.ConnectionRefusedError("unauthorized") from None

		async def _send(event: OutboundEvent) -> None:
			await self.emit(event.kind, event.body, to=sid)

		connection = Connection(sid, user, _send, namespace=self.namespace)
		self._sessions[sid] = connection
		obs_metrics.socket_connected(self.namespace)
		return connection

	def _release(self, sid: str) -> Optional[Connection]:
		connection = self._sessions.pop(sid, None)
		if connection is not None:
			obs_metrics.socket_disconnected(self.namespace)
		return connection


class CentralNamespace(_GatewayNamespace):
	"""Notifications, conversation messages and friend events for one user."""

	def __init__(self, gateway: EventGateway, namespace: str = "/central") -> None:
		super().__init__(namespace, gateway)

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		connection = self._connection(sid, environ, auth)
		self.gateway.open_central(connection)

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		connection = self._release(sid)
		if connection is not None:
			self.gateway.disconnect(connection)

	async def on_message(self, sid: str, data: Any = None) -> None:
		obs_metrics.socket_event(self.namespace, "message")
		connection = self.session(sid)
		if connection is None:
			return
		await self.gateway.handle_central_message(connection, data)


class GlobalChatNamespace(_GatewayNamespace):
	"""Ephemeral group chat: roster and bounded history kept in memory."""

	def __init__(self, gateway: EventGateway, namespace: str = "/global-chat") -> None:
		super().__init__(namespace, gateway)

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		connection = self._connection(sid, environ, auth)
		try:
			await self.gateway.join_global_chat(connection)
		except MutationFailed:
			self._abandon(sid, connection)
			raise socketio.exceptions.ConnectionRefusedError("unavailable") from None
		except Exception:
			self._abandon(sid, connection)
			raise

	def _abandon(self, sid: str, connection: Connection) -> None:
		self._release(sid)
		self.gateway.disconnect(connection)

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		connection = self._release(sid)
		if connection is None:
			return
		try:
			await self.gateway.leave_global_chat(connection)
		finally:
			self.gateway.disconnect(connection)

	async def on_message(self, sid: str, data: Any = None) -> None:
		obs_metrics.socket_event(self.namespace, "message")
		connection = self.session(sid)
		if connection is None:
			return
		await self.gateway.broadcast_global_chat(connection, data)
