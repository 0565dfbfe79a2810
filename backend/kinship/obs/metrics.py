"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"kinship_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"kinship_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"kinship_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"kinship_socketio_events_total",
	"Socket.IO events received per namespace",
	["namespace", "event"],
)

SOCKET_HANDSHAKE_REJECTS = Counter(
	"kinship_socketio_handshake_rejects_total",
	"Socket.IO handshakes refused by the identity resolver",
	["namespace", "reason"],
)

REALTIME_PUBLISHES = Counter(
	"kinship_realtime_publishes_total",
	"Outbound events published to a topic",
	["kind"],
)

REALTIME_DELIVERIES = Counter(
	"kinship_realtime_deliveries_total",
	"Outbound events delivered to a single connection",
	["kind"],
)

REALTIME_DELIVERY_FAILURES = Counter(
	"kinship_realtime_delivery_failures_total",
	"Deliveries skipped or dropped because the connection was gone or slow",
	["reason"],
)

REALTIME_TOPICS = Gauge(
	"kinship_realtime_topics",
	"Topics with at least one subscriber",
)

REALTIME_INBOUND_DROPPED = Counter(
	"kinship_realtime_inbound_dropped_total",
	"Inbound socket payloads dropped before any mutation",
	["namespace", "reason"],
)

NOTIFICATIONS_CREATED = Counter(
	"kinship_notifications_created_total",
	"Notifications persisted",
	["type"],
)

FRIEND_EVENTS = Counter(
	"kinship_friend_events_total",
	"Friendship state changes",
	["status"],
)

FOLLOW_EVENTS = Counter(
	"kinship_follow_events_total",
	"Follow graph changes",
	["action"],
)

CONVERSATION_MESSAGES = Counter(
	"kinship_conversation_messages_total",
	"Conversation messages persisted and published",
)

GLOBAL_CHAT_MESSAGES = Counter(
	"kinship_global_chat_messages_total",
	"Global chat messages accepted",
)

GLOBAL_CHAT_PARTICIPANTS = Gauge(
	"kinship_global_chat_participants",
	"Participants currently in the global chat room",
)

GLOBAL_CHAT_PURGES = Counter(
	"kinship_global_chat_purges_total",
	"Times the global chat room emptied and its history was purged",
)

ATTACHMENTS_DELETED = Counter(
	"kinship_attachments_deleted_total",
	"Uploaded attachments deleted by room cleanup",
	["result"],
)

RATE_LIMITED = Counter(
	"kinship_rate_limited_total",
	"Actions rejected by rate limiting",
	["kind"],
)

IDENTITY_EVENTS = Counter(
	"kinship_identity_events_total",
	"Registration and login outcomes",
	["action", "result"],
)

REDIS_UP = Gauge("kinship_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("kinship_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("kinship_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("kinship_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def socket_rejected(namespace: str, reason: str) -> None:
	SOCKET_HANDSHAKE_REJECTS.labels(namespace=namespace, reason=reason).inc()


def inc_publish(kind: str) -> None:
	REALTIME_PUBLISHES.labels(kind=kind).inc()


def inc_delivery(kind: str) -> None:
	REALTIME_DELIVERIES.labels(kind=kind).inc()


def inc_delivery_failure(reason: str) -> None:
	REALTIME_DELIVERY_FAILURES.labels(reason=reason).inc()


def set_topic_count(count: int) -> None:
	REALTIME_TOPICS.set(count)


def inc_inbound_dropped(namespace: str, reason: str) -> None:
	REALTIME_INBOUND_DROPPED.labels(namespace=namespace, reason=reason).inc()


def inc_notification_created(kind: str) -> None:
	NOTIFICATIONS_CREATED.labels(type=kind).inc()


def inc_friend_event(status: str) -> None:
	FRIEND_EVENTS.labels(status=status).inc()


def inc_follow_event(action: str) -> None:
	FOLLOW_EVENTS.labels(action=action).inc()


def inc_conversation_message() -> None:
	CONVERSATION_MESSAGES.inc()


def inc_global_chat_message() -> None:
	GLOBAL_CHAT_MESSAGES.inc()


def set_global_chat_participants(count: int) -> None:
	GLOBAL_CHAT_PARTICIPANTS.set(count)


def inc_global_chat_purge() -> None:
	GLOBAL_CHAT_PURGES.inc()


def inc_attachment_deleted(result: str, amount: int = 1) -> None:
	ATTACHMENTS_DELETED.labels(result=result).inc(amount)


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()


def inc_identity_event(action: str, result: str) -> None:
	IDENTITY_EVENTS.labels(action=action, result=result).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
