"""Error taxonomy shared by the gateway, the repositories and the routers."""

from __future__ import annotations


class RealtimeError(Exception):
	"""Base class carrying a machine readable ``reason`` code."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class Unauthenticated(RealtimeError):
	reason = "unauthenticated"


class ValidationFailed(RealtimeError):
	reason = "invalid_payload"


class TopicForbidden(RealtimeError):
	reason = "topic_forbidden"


class MutationFailed(RealtimeError):
	"""The durable mutation did not commit; nothing was published."""

	reason = "mutation_failed"


class NotFound(MutationFailed):
	reason = "not_found"


class Forbidden(MutationFailed):
	reason = "forbidden"


class Conflict(MutationFailed):
	reason = "conflict"
