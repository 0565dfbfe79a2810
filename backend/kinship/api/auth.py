"""Account registration, login and logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from kinship.api.deps import get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.identity import service
from kinship.domain.identity.models import User
from kinship.domain.identity.schemas import LoginRequest, LoginResponse, RegisterRequest, UserOut
from kinship.domain.store import Store
from kinship.infra.cookies import clear_auth_cookie, set_auth_cookie
from kinship.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user: User) -> UserOut:
	return UserOut(
		user_id=user.user_id,
		username=user.username,
		email=user.email,
		is_admin=user.is_admin,
		created_at=user.created_at,
	)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, store: Store = Depends(get_store)) -> UserOut:
	try:
		user = await service.register(store.identity, payload)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return _user_out(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, response: Response, store: Store = Depends(get_store)) -> LoginResponse:
	try:
		user, token = await service.login(store.identity, payload)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	set_auth_cookie(response, token)
	return LoginResponse(user=_user_out(user), access_token=token, expires_in=settings.access_ttl_minutes * 60)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout() -> Response:
	response = Response(status_code=status.HTTP_204_NO_CONTENT)
	clear_auth_cookie(response)
	return response
