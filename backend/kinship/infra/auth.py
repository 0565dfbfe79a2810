"""Identity resolution for REST endpoints and socket handshakes.

Every caller is authenticated the same way: a signed access JWT taken from the
Socket.IO auth payload, an ``Authorization: Bearer`` header or the login
cookie. A missing or invalid credential is rejected before any identity is
resolved; there are no header-based fallbacks.
"""

from __future__ import annotations

from dataclasses import dataclass
from http.cookies import SimpleCookie
from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from kinship.infra import jwt as jwt_helper
from kinship.obs import logging as obs_logging
from kinship.realtime.errors import Unauthenticated
from kinship.settings import settings


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
	id: str
	username: str
	roles: Tuple[str, ...] = ()

	def has_role(self, role: str) -> bool:
		return role in self.roles


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: Optional[str]) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return the verified identity."""
	token = (token or "").strip()
	if not token:
		raise Unauthenticated("missing_token")
	try:
		payload = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise Unauthenticated("invalid_token") from None

	roles_claim = payload.get("roles") or ()
	if isinstance(roles_claim, str):
		roles = tuple(part.strip() for part in roles_claim.split(",") if part.strip())
	else:
		roles = tuple(str(r).strip() for r in roles_claim if str(r).strip())
	return AuthenticatedUser(
		id=str(payload["sub"]),
		username=str(payload["username"]),
		roles=roles,
	)


def issue_access_token(user_id: str, username: str, *, is_admin: bool = False) -> str:
	claims: dict[str, object] = {"sub": user_id, "username": username}
	if is_admin:
		claims["roles"] = ["admin"]
	return jwt_helper.encode_access(claims)


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _cookie(scope: dict, name: str) -> Optional[str]:
	raw = _header(scope, "cookie")
	if not raw:
		return None
	jar = SimpleCookie()
	jar.load(raw)
	morsel = jar.get(name)
	return morsel.value if morsel else None


def token_from_handshake(environ: dict, auth: Optional[dict] = None) -> Optional[str]:
	"""Pick the credential out of a Socket.IO connect call."""
	scope = environ.get("asgi.scope", environ)
	auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
	token = auth_payload.get("token") if isinstance(auth_payload, dict) else None
	if token:
		return str(token)
	header = _header(scope, "authorization")
	if header and header.lower().startswith("bearer "):
		return header.split(" ", 1)[1]
	return _cookie(scope, settings.auth_cookie_name)


def resolve_handshake(environ: dict, auth: Optional[dict] = None) -> AuthenticatedUser:
	return verify_access_jwt(token_from_handshake(environ, auth))


async def get_current_user(
	request: Request,
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user from a bearer token or the auth cookie."""
	token: Optional[str] = None
	if credentials and credentials.scheme.lower() == "bearer":
		token = credentials.credentials
	else:
		token = request.cookies.get(settings.auth_cookie_name)
	try:
		user = verify_access_jwt(token)
	except Unauthenticated as exc:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.reason) from None
	obs_logging.bind_context(user_id=user.id)
	return user


async def get_optional_user(
	request: Request,
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Like ``get_current_user`` but anonymous callers get ``None``; a bad credential is still rejected."""
	if credentials is None and not request.cookies.get(settings.auth_cookie_name):
		return None
	return await get_current_user(request, credentials)
