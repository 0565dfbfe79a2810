import pytest

from kinship.obs import health
from kinship.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	resp = await api_client.get("/health/live")

	assert resp.status_code == 200
	assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_degraded_postgres(api_client, monkeypatch):
	async def _down(timeout: float = 0.3):
		return {"ok": False, "error": "unreachable"}

	monkeypatch.setattr(health, "_postgres_status", _down)

	resp = await api_client.get("/health/ready")

	assert resp.status_code == 503
	assert resp.json()["checks"]["redis"]["ok"] is True
	assert resp.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "ops-token")

	denied = await api_client.get("/metrics", headers={"X-Admin-Token": "wrong"})
	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-token"})

	assert denied.status_code == 403
	assert allowed.status_code == 200
	assert "kinship_" in allowed.text


@pytest.mark.asyncio
async def test_metrics_fail_closed_without_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", None)

	resp = await api_client.get("/metrics")

	assert resp.status_code == 403
	assert resp.json()["detail"] == "admin_token_not_configured"
