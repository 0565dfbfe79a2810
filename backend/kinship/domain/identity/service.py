"""Registration and login."""

from __future__ import annotations

import logging

from kinship.domain.identity.models import User
from kinship.domain.identity.repo import IdentityRepository
from kinship.domain.identity.schemas import LoginRequest, RegisterRequest
from kinship.infra import password as password_helper
from kinship.infra.auth import issue_access_token
from kinship.obs import metrics as obs_metrics
from kinship.realtime.errors import Unauthenticated

LOGGER = logging.getLogger(__name__)


async def register(repo: IdentityRepository, payload: RegisterRequest) -> User:
	password_hash = password_helper.hash_password(payload.password)
	user = await repo.create_user(payload.username, payload.email, password_hash)
	obs_metrics.inc_identity_event("register", "ok")
	LOGGER.info("account registered", extra={"user_id": user.user_id})
	return user


async def login(repo: IdentityRepository, payload: LoginRequest) -> tuple[User, str]:
	"""Verify the password and mint an access token."""
	credentials = await repo.get_credentials(payload.email)
	if credentials is None or not password_helper.verify_password(credentials.password_hash, payload.password):
		obs_metrics.inc_identity_event("login", "rejected")
		raise Unauthenticated("invalid_credentials")
	user = credentials.user
	if password_helper.check_needs_rehash(credentials.password_hash):
		await repo.set_password_hash(user.user_id, password_helper.hash_password(payload.password))
	obs_metrics.inc_identity_event("login", "ok")
	return user, issue_access_token(user.user_id, user.username, is_admin=user.is_admin)
