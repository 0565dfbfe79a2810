"""Notification inbox endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from kinship.api.deps import get_store
from kinship.domain.base import CursorPage
from kinship.domain.notifications.schemas import MarkedRead, NotificationOut, UnreadCount
from kinship.domain.store import Store
from kinship.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/notification", tags=["notification"])


@router.post("", response_model=List[NotificationOut])
async def list_notifications(
	page: CursorPage | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> List[NotificationOut]:
	rows = await store.notifications.list_for_user(auth_user.id, page.cursor if page else None)
	return [NotificationOut.model_validate(n.to_dict()) for n in rows]


@router.get("/notification-unread-count", response_model=UnreadCount)
async def unread_count(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> UnreadCount:
	return UnreadCount(count=await store.notifications.unread_count(auth_user.id))


@router.patch("/mark-as-read/{notification_id}", response_model=MarkedRead)
async def mark_as_read(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> MarkedRead:
	if not await store.notifications.mark_read(auth_user.id, str(notification_id)):
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="notification_not_found")
	return MarkedRead(updated=1)


@router.patch("/mark-all-as-read", response_model=MarkedRead)
async def mark_all_as_read(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	store: Store = Depends(get_store),
) -> MarkedRead:
	return MarkedRead(updated=await store.notifications.mark_all_read(auth_user.id))
