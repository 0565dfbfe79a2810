"""User directory search."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from kinship.api.deps import get_store
from kinship.domain.identity.models import UserSummary
from kinship.domain.identity.schemas import UserSearchOut, UserSearchProfileOut, UserSearchRequest
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/user", tags=["user"])


def _search_out(user: UserSummary) -> UserSearchOut:
	return UserSearchOut(
		id=user.user_id,
		username=user.username,
		created_at=user.created_at,
		profile=UserSearchProfileOut(full_name=user.full_name, avatar_url=user.avatar_url),
	)


@router.post("/search", response_model=List[UserSearchOut])
async def search_users(
	payload: UserSearchRequest,
	_: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[UserSearchOut]:
	users = await store.identity.search_users(payload.search_term.strip(), payload.cursor)
	return [_search_out(user) for user in users]
