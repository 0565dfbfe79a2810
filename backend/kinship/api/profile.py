"""Profile read and update endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from kinship.api.deps import get_gateway, get_store
from kinship.api.errors import KNOWN_ERRORS, map_error
from kinship.domain.identity.models import Profile
from kinship.domain.identity.schemas import ProfileOut, ProfileUpdate
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user
from kinship.infra.storage import is_valid_key
from kinship.realtime.gateway import EventGateway

router = APIRouter(prefix="/profile", tags=["profile"])


def _profile_out(profile: Profile) -> ProfileOut:
	return ProfileOut(
		user_id=profile.user_id,
		username=profile.username,
		full_name=profile.full_name,
		bio=profile.bio,
		avatar_url=profile.avatar_url,
		updated_at=profile.updated_at,
	)


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(user_id: UUID, store: Store = Depends(get_store)) -> ProfileOut:
	profile = await store.identity.get_profile(str(user_id))
	if profile is None:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="profile_not_found")
	return _profile_out(profile)


@router.patch("", response_model=ProfileOut)
async def update_profile(
	payload: ProfileUpdate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
	gateway: EventGateway = Depends(get_gateway),
) -> ProfileOut:
	changes = payload.model_dump(exclude_unset=True)
	avatar = changes.get("avatar_url")
	if avatar and not is_valid_key(avatar):
		raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="invalid_avatar")
	try:
		profile = await store.identity.update_profile(auth_user.id, changes)
		await gateway.publish_notification(
			"account_activity",
			"Your profile was updated",
			auth_user.id,
			{"fields": sorted(changes)},
		)
	except KNOWN_ERRORS as exc:
		raise map_error(exc) from None
	return _profile_out(profile)
