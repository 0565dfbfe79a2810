"""Attachment upload endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from kinship.api.deps import get_storage
from kinship.domain.base import CamelModel
from kinship.infra.auth import AuthenticatedUser, get_current_user
from kinship.infra.storage import InvalidAttachment, LocalAttachmentStorage
from kinship.settings import settings

router = APIRouter(prefix="/utils", tags=["utils"])


class UploadOut(CamelModel):
	key: str
	url: str


@router.post("/upload-image", response_model=UploadOut, status_code=status.HTTP_201_CREATED)
async def upload_image(
	file: UploadFile = File(...),
	_: AuthenticatedUser = Depends(get_current_user),
	storage: LocalAttachmentStorage = Depends(get_storage),
) -> UploadOut:
	# One byte past the limit is enough to reject an oversize upload.
	content = await file.read(settings.upload_max_bytes + 1)
	try:
		key = await storage.save(content, file.content_type or "")
	except InvalidAttachment as exc:
		raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason) from None
	return UploadOut(key=key, url=f"/files/{key}")
