"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kinship.obs import health
from kinship.settings import settings

router = APIRouter(prefix="", tags=["ops"])


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_admin(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	token = settings.obs_admin_token
	if not token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	provided = _resolve_token(X_Admin_Token, authorization)
	if provided != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def require_metrics_access(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	await require_admin(X_Admin_Token=X_Admin_Token, authorization=authorization)


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> Response:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
