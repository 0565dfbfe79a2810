"""Audit helpers for friendships and follows."""

from __future__ import annotations

from typing import Dict

from kinship.infra.redis import redis_client

FRIEND_STREAM = "x:friendships.events"
FOLLOW_STREAM = "x:follows.events"


async def log_friend_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	await redis_client.xadd(FRIEND_STREAM, payload)


async def log_follow_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	await redis_client.xadd(FOLLOW_STREAM, payload)
