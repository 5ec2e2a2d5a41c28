"""Integration tests for the rooms API over ASGI."""

from liar_game.models.user import Role, Tier


class TestRoomEndpoints:
    async def test_guest_can_list_rooms(self, client):
        response = await client.get("/api/rooms")
        assert response.status_code == 200
        assert response.json() == []

    async def test_guest_cannot_create_room(self, client):
        response = await client.post("/api/rooms", json={"name": "Guest room"})
        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "AUTH_002"
        assert body["details"] == {"required_tier": "member", "actual": "guest"}

    async def test_invalid_token_resolves_to_guest(self, client):
        response = await client.post(
            "/api/rooms", json={"name": "Room"}, headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 403
        assert response.json()["details"]["actual"] == "guest"

    async def test_member_creates_room(self, client, make_user, auth_headers):
        user = await make_user(tier=Tier.MEMBER)
        response = await client.post(
            "/api/rooms", json={"name": "<i>Liar</i> night"}, headers=auth_headers(user)
        )
        assert response.status_code == 201
        body = response.json()
        assert len(body["room_code"]) == 6
        assert body["name"] == "Liar night"
        assert body["status"] == "waiting"
        assert body["current_players"] == 1
        assert body["max_players"] == 6
        assert body["host_id"] == user.id

    async def test_list_rooms_search(self, client, make_user, auth_headers):
        user = await make_user()
        for name in ("Night owls", "Morning crew"):
            await client.post("/api/rooms", json={"name": name}, headers=auth_headers(user))

        response = await client.get("/api/rooms", params={"q": "OWL"})
        assert response.status_code == 200
        assert [room["name"] for room in response.json()] == ["Night owls"]

    async def test_token_without_local_user_cannot_create(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/rooms", json={"name": "Ghost"}, headers=auth_headers(user, user_id=999))
        assert response.status_code == 401
        assert response.json()["details"] == {"reason": "no_local_user"}
        assert (await client.get("/api/rooms")).json() == []

    async def test_numeric_subject_without_user_id_cannot_join(self, client, make_user, auth_headers):
        host = await make_user()
        created = (await client.post("/api/rooms", json={"name": "Open"}, headers=auth_headers(host))).json()

        # sub sayisal ve mevcut bir kullaniciya denk geliyor, ama user_id claim'i yok
        headers = auth_headers(host, sub=str(host.id), user_id=None)
        response = await client.post(f"/api/rooms/{created['room_code']}/join", headers=headers)
        assert response.status_code == 401
        assert response.json()["details"] == {"reason": "no_local_user"}

    async def test_invalid_room_name_is_422(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/rooms", json={"name": "<b></b>"}, headers=auth_headers(user))
        assert response.status_code == 422
        assert response.json()["details"] == {"field": "name", "reason": "must not be empty"}

    async def test_join_leave_and_room_detail(self, client, make_user, auth_headers):
        host = await make_user()
        player = await make_user(username="bob")
        created = (await client.post("/api/rooms", json={"name": "Detail"}, headers=auth_headers(host))).json()

        joined = await client.post(
            f"/api/rooms/{created['room_code'].lower()}/join", headers=auth_headers(player)
        )
        assert joined.status_code == 200
        assert joined.json()["is_host"] is False

        duplicate = await client.post(f"/api/rooms/{created['room_code']}/join", headers=auth_headers(player))
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "ROOM_004"

        detail = await client.get(f"/api/rooms/{created['room_code']}")
        assert detail.status_code == 200
        body = detail.json()
        assert body["current_players"] == 2
        assert [(p["user_id"], p["is_host"]) for p in body["players"]] == [(host.id, True), (player.id, False)]
        assert body["players"][1]["username"] == "bob"

        left = await client.post(f"/api/rooms/{created['id']}/leave", headers=auth_headers(host))
        assert left.status_code == 200
        assert left.json()["host_id"] == player.id

    async def test_guest_cannot_join(self, client, make_user, auth_headers):
        host = await make_user()
        created = (await client.post("/api/rooms", json={"name": "Closed"}, headers=auth_headers(host))).json()
        response = await client.post(f"/api/rooms/{created['room_code']}/join")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_unknown_room_is_404(self, client):
        response = await client.get("/api/rooms/NOPE00")
        assert response.status_code == 404
        assert response.json()["details"] == {"entity": "Room"}

    async def test_only_host_or_admin_controls_status(self, client, make_user, auth_headers):
        host = await make_user()
        other = await make_user()
        admin = await make_user(role=Role.ADMIN)
        created = (await client.post("/api/rooms", json={"name": "Control"}, headers=auth_headers(host))).json()
        room_id = created["id"]

        denied = await client.post(f"/api/rooms/{room_id}/start", headers=auth_headers(other))
        assert denied.status_code == 403

        skipped = await client.post(f"/api/rooms/{room_id}/finish", headers=auth_headers(host))
        assert skipped.status_code == 409
        assert skipped.json()["details"] == {"current": "waiting", "attempted": "finished"}

        started = await client.post(f"/api/rooms/{room_id}/start", headers=auth_headers(host))
        assert started.status_code == 200
        assert started.json()["status"] == "playing"

        finished = await client.post(
            f"/api/rooms/{room_id}/status", json={"status": "finished"}, headers=auth_headers(admin)
        )
        assert finished.status_code == 200
        assert finished.json()["status"] == "finished"

    async def test_rate_limit(self, client, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        for i in range(10):
            response = await client.post("/api/rooms", json={"name": f"Room {i}"}, headers=headers)
            assert response.status_code == 201
            assert response.headers["X-RateLimit-Limit"] == "10"
            assert response.headers["X-RateLimit-Remaining"] == str(9 - i)

        limited = await client.post("/api/rooms", json={"name": "One too many"}, headers=headers)
        assert limited.status_code == 429
        assert limited.json()["error"] == "GEN_002"
        assert limited.headers["Retry-After"] == "60"

        # Limit kullanici bazli
        other = await make_user()
        response = await client.post("/api/rooms", json={"name": "Other"}, headers=auth_headers(other))
        assert response.status_code == 201
