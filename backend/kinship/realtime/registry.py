"""Connection registry: live sockets, their topics and publish fan-out.

Index mutations are plain synchronous code so they cannot interleave with
another task. Publishing snapshots the subscriber set before the first await
and then delivers concurrently; a closed, failing or slow connection is skipped
without affecting the others, and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Set

from kinship.infra.auth import AuthenticatedUser
from kinship.obs import metrics as obs_metrics
from kinship.realtime import topics
from kinship.realtime.errors import TopicForbidden
from kinship.realtime.events import OutboundEvent
from kinship.settings import settings

LOGGER = logging.getLogger(__name__)

Sender = Callable[[OutboundEvent], Awaitable[None]]


class Connection:
	"""One live socket session bound to a single verified identity."""

	__slots__ = ("id", "user", "namespace", "topics", "open", "_sender")

	def __init__(self, connection_id: str, user: AuthenticatedUser, sender: Sender, *, namespace: str = "/") -> None:
		self.id = connection_id
		self.user = user
		self.namespace = namespace
		self.topics: Set[str] = set()
		self.open = True
		self._sender = sender

	async def deliver(self, event: OutboundEvent) -> None:
		await self._sender(event)

	def __repr__(self) -> str:
		return f"Connection(id={self.id!r}, user={self.user.id!r}, open={self.open})"


class ConnectionRegistry:
	def __init__(self, *, send_timeout: Optional[float] = None) -> None:
		self._connections: Dict[str, Connection] = {}
		self._topics: Dict[str, Set[str]] = {}
		self._send_timeout = settings.ws_send_timeout_seconds if send_timeout is None else send_timeout

	def register(self, connection: Connection) -> bool:
		"""Index a live connection; a connection that already closed is refused."""
		if not connection.open:
			return False
		self._connections[connection.id] = connection
		return True

	def connection(self, connection_id: str) -> Optional[Connection]:
		return self._connections.get(connection_id)

	def subscribe(self, connection: Connection, topic: str) -> bool:
		"""Add the connection to a topic; returns False when it was already there."""
		owner = topics.private_owner(topic)
		if owner is not None and owner != connection.user.id:
			raise TopicForbidden()
		if not connection.open:
			return False
		self._connections.setdefault(connection.id, connection)
		members = self._topics.setdefault(topic, set())
		if connection.id in members:
			return False
		members.add(connection.id)
		connection.topics.add(topic)
		obs_metrics.set_topic_count(len(self._topics))
		return True

	def unsubscribe_all(self, connection: Connection) -> None:
		connection.open = False
		for topic in connection.topics:
			members = self._topics.get(topic)
			if members is None:
				continue
			members.discard(connection.id)
			if not members:
				del self._topics[topic]
		connection.topics.clear()
		if self._connections.get(connection.id) is connection:
			del self._connections[connection.id]
		obs_metrics.set_topic_count(len(self._topics))

	def subscribers(self, topic: str) -> List[Connection]:
		result: List[Connection] = []
		for connection_id in self._topics.get(topic, ()):
			connection = self._connections.get(connection_id)
			if connection is not None and connection.open:
				result.append(connection)
		return result

	def topics_of(self, connection: Connection) -> FrozenSet[str]:
		return frozenset(connection.topics)

	def __len__(self) -> int:
		return len(self._connections)

	async def publish(self, topic: str, event: OutboundEvent, *, exclude: Optional[Connection] = None) -> int:
		"""Deliver ``event`` to every open subscriber of ``topic``.

		Returns the number of successful deliveries.
		"""
		targets = [conn for conn in self.subscribers(topic) if exclude is None or conn.id != exclude.id]
		obs_metrics.inc_publish(event.kind)
		if not targets:
			return 0
		results = await asyncio.gather(*(self._deliver(conn, event) for conn in targets))
		return sum(1 for ok in results if ok)

	async def send(self, connection: Connection, event: OutboundEvent) -> bool:
		return await self._deliver(connection, event)

	async def _deliver(self, connection: Connection, event: OutboundEvent) -> bool:
		if not connection.open:
			obs_metrics.inc_delivery_failure("closed")
			return False
		try:
			await asyncio.wait_for(connection.deliver(event), timeout=self._send_timeout)
		except asyncio.TimeoutError:
			obs_metrics.inc_delivery_failure("timeout")
			LOGGER.debug("delivery timed out", extra={"connection_id": connection.id, "kind": event.kind})
			return False
		except Exception:
			obs_metrics.inc_delivery_failure("error")
			LOGGER.debug("delivery failed", extra={"connection_id": connection.id, "kind": event.kind}, exc_info=True)
			return False
		obs_metrics.inc_delivery(event.kind)
		return True
