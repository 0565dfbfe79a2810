import pytest

from kinship.realtime import events

U1 = "00000000-0000-0000-0000-000000000001"
U2 = "00000000-0000-0000-0000-000000000002"


@pytest.mark.asyncio
async def test_send_and_accept_friend_request(api_client, auth_headers, gateway, make_connection):
	u1_conn, u1_inbox = make_connection(U1)
	u2_conn, u2_inbox = make_connection(U2)
	gateway.open_central(u1_conn)
	gateway.open_central(u2_conn)

	resp = await api_client.post(f"/friend/send-friend-request/{U2}", headers=auth_headers(U1, "user1"))
	assert resp.status_code == 201
	assert resp.json()["friendStatus"] == "pending"
	assert [e.body["friendStatus"] for e in u2_inbox.of(events.FRIEND)] == ["pending"]

	status_resp = await api_client.get(f"/friend/friendship-status/{U1}", headers=auth_headers(U2, "user2"))
	assert status_resp.json() == {"status": "pending"}

	resp = await api_client.patch(f"/friend/accept-friend-request/{U1}", headers=auth_headers(U2, "user2"))
	assert resp.status_code == 200
	assert resp.json()["friendStatus"] == "accepted"
	assert [e.body["friendStatus"] for e in u1_inbox.of(events.FRIEND)] == ["accepted"]


@pytest.mark.asyncio
async def test_duplicate_request_is_conflict(api_client, auth_headers):
	await api_client.post(f"/friend/send-friend-request/{U2}", headers=auth_headers(U1))

	resp = await api_client.post(f"/friend/send-friend-request/{U1}", headers=auth_headers(U2))

	assert resp.status_code == 409


@pytest.mark.asyncio
async def test_self_request_is_bad_request(api_client, auth_headers):
	resp = await api_client.post(f"/friend/send-friend-request/{U1}", headers=auth_headers(U1))

	assert resp.status_code == 400
	assert resp.json()["detail"] == "self_request"


@pytest.mark.asyncio
async def test_sender_cannot_accept_own_request(api_client, auth_headers):
	await api_client.post(f"/friend/send-friend-request/{U2}", headers=auth_headers(U1))

	resp = await api_client.patch(f"/friend/accept-friend-request/{U2}", headers=auth_headers(U1))

	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_request_sent(api_client, auth_headers):
	await api_client.post(f"/friend/send-friend-request/{U2}", headers=auth_headers(U1))

	resp = await api_client.delete(f"/friend/delete-request-sent/{U2}", headers=auth_headers(U1))
	assert resp.status_code == 204

	status_resp = await api_client.get(f"/friend/friendship-status/{U2}", headers=auth_headers(U1))
	assert status_resp.json() == {"status": "none"}


@pytest.mark.asyncio
async def test_lists_require_auth(api_client, auth_headers):
	assert (await api_client.post("/friend/friend-list")).status_code == 401
	resp = await api_client.post("/friend/friend-list", headers=auth_headers(U1), json={"cursor": None})
	assert resp.status_code == 200
	assert resp.json() == []
