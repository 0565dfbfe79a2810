"""Topic naming.

Topics are pure routing keys derived from a purpose and, for private topics,
the owning user's id.
"""

from __future__ import annotations

from typing import Optional, Tuple

CENTRAL = "central"
GLOBAL_CHAT = "global-chat"

NOTIFICATION_PREFIX = "private-notification"
CONVERSATION_PREFIX = "private-conversation"
FRIEND_PREFIX = "private-friend"

_PRIVATE_PREFIXES = frozenset({NOTIFICATION_PREFIX, CONVERSATION_PREFIX, FRIEND_PREFIX})


def notification_topic(user_id: str) -> str:
	return f"{NOTIFICATION_PREFIX}:{user_id}"


def conversation_topic(user_id: str) -> str:
	return f"{CONVERSATION_PREFIX}:{user_id}"


def friend_topic(user_id: str) -> str:
	return f"{FRIEND_PREFIX}:{user_id}"


def private_topics(user_id: str) -> Tuple[str, str, str]:
	return (notification_topic(user_id), conversation_topic(user_id), friend_topic(user_id))


def private_owner(topic: str) -> Optional[str]:
	"""Return the user id a private topic belongs to, or None for shared topics."""
	prefix, sep, subject = topic.partition(":")
	if sep and prefix in _PRIVATE_PREFIXES:
		return subject
	return None
