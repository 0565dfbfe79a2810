import pytest

from kinship.settings import settings

REGISTER = {"username": "ada_l", "email": "Ada@example.com", "password": "correct-horse-battery"}


@pytest.mark.asyncio
async def test_register_then_login_sets_cookie(api_client, fake_store):
	resp = await api_client.post("/auth/register", json=REGISTER)
	assert resp.status_code == 201
	body = resp.json()
	assert body["username"] == "ada_l"
	assert body["email"] == "ada@example.com"
	assert "password" not in body and "passwordHash" not in body
	assert await fake_store.identity.get_profile(body["userId"]) is not None

	resp = await api_client.post("/auth/login", json={"email": "ada@example.com", "password": "correct-horse-battery"})
	assert resp.status_code == 200
	login = resp.json()
	assert login["user"]["userId"] == body["userId"]
	assert login["tokenType"] == "bearer"
	assert resp.cookies.get(settings.auth_cookie_name) == login["accessToken"]

	me = await api_client.get(f"/profile/{body['userId']}", headers={"Authorization": f"Bearer {login['accessToken']}"})
	assert me.status_code == 200
	assert me.json()["username"] == "ada_l"


@pytest.mark.asyncio
async def test_register_duplicate_is_conflict(api_client):
	assert (await api_client.post("/auth/register", json=REGISTER)).status_code == 201

	resp = await api_client.post("/auth/register", json=REGISTER)

	assert resp.status_code == 409
	assert resp.json()["detail"] == "account_exists"
	assert "request_id" in resp.json()


@pytest.mark.asyncio
async def test_login_with_wrong_password_is_unauthorized(api_client):
	await api_client.post("/auth/register", json=REGISTER)

	resp = await api_client.post("/auth/login", json={"email": REGISTER["email"], "password": "wrong-password"})

	assert resp.status_code == 401
	assert resp.json()["detail"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_login_for_unknown_email_looks_identical(api_client):
	resp = await api_client.post("/auth/login", json={"email": "nobody@example.com", "password": "whatever-123"})

	assert resp.status_code == 401
	assert resp.json()["detail"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_register_validates_payload(api_client):
	resp = await api_client.post("/auth/register", json={"username": "a", "email": "nope", "password": "short"})

	assert resp.status_code == 422
	assert resp.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_logout_clears_cookie(api_client):
	resp = await api_client.post("/auth/logout")

	assert resp.status_code == 204
	assert settings.auth_cookie_name in resp.headers.get("set-cookie", "")


@pytest.mark.asyncio
async def test_protected_route_rejects_missing_and_bad_tokens(api_client):
	resp = await api_client.get("/notification/notification-unread-count")
	assert resp.status_code == 401
	assert resp.json()["detail"] == "missing_token"

	resp = await api_client.get(
		"/notification/notification-unread-count",
		headers={"Authorization": "Bearer forged.token.value"},
	)
	assert resp.status_code == 401
	assert resp.json()["detail"] == "invalid_token"
