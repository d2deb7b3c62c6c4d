"""Tests for the HTTP API."""


async def put_profile(client, user_id, **fields):
    response = await client.put(f"/api/profiles/{user_id}", json=fields)
    assert response.status_code == 200
    return response.json()


async def resolve(client, a, b, context="none", subject=""):
    response = await client.post(
        "/api/conversations/resolve",
        json={"participant_a": a, "participant_b": b, "context": context, "subject": subject},
    )
    assert response.status_code == 200
    return response.json()["conversation_id"]


class TestConversationRoutes:
    """Tests for /api/conversations."""

    async def test_resolve_is_symmetric(self, api_client):
        assert await resolve(api_client, "u1", "u2") == await resolve(api_client, "u2", "u1")

    async def test_resolve_self_is_bad_request(self, api_client):
        """Test that validation errors map to 400 with the error class name."""
        response = await api_client.post(
            "/api/conversations/resolve",
            json={"participant_a": "u1", "participant_b": "u1"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "SelfConversationError"

    async def test_resolve_invalid_context(self, api_client):
        response = await api_client.post(
            "/api/conversations/resolve",
            json={"participant_a": "u1", "participant_b": "u2", "context": "bogus"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidContextError"

    async def test_get_and_list(self, api_client):
        conversation_id = await resolve(api_client, "u1", "u2", "listing:5", "Loft")

        response = await api_client.get(f"/api/conversations/{conversation_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["context"] == "listing:5"
        assert body["subject"] == "Loft"
        assert {body["participant_a"], body["participant_b"]} == {"u1", "u2"}

        listed = (await api_client.get("/api/conversations", params={"user_id": "u2"})).json()
        assert [c["id"] for c in listed] == [conversation_id]

    async def test_find(self, api_client):
        params = {"participant_a": "u2", "participant_b": "u1", "context": "admin_support"}
        assert (await api_client.get("/api/conversations/find", params=params)).json() is None

        conversation_id = await resolve(api_client, "u1", "u2", "admin_support")
        found = (await api_client.get("/api/conversations/find", params=params)).json()
        assert found["id"] == conversation_id

    async def test_unknown_conversation_is_404(self, api_client):
        response = await api_client.get("/api/conversations/missing")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "ConversationNotFoundError"

    async def test_send_and_list_messages(self, api_client):
        conversation_id = await resolve(api_client, "u1", "u2")
        url = f"/api/conversations/{conversation_id}/messages"

        first = await api_client.post(url, json={"sender_id": "u1", "content": " Hi "})
        assert first.status_code == 200
        assert first.json()["content"] == "Hi"
        second = await api_client.post(url, json={"sender_id": "u2", "content": "Hello"})

        messages = (await api_client.get(url)).json()
        assert [m["content"] for m in messages] == ["Hi", "Hello"]

        newer = (
            await api_client.get(url, params={"after": first.json()["created_at"]})
        ).json()
        assert [m["id"] for m in newer] == [second.json()["id"]]

    async def test_send_errors(self, api_client):
        conversation_id = await resolve(api_client, "u1", "u2")
        url = f"/api/conversations/{conversation_id}/messages"

        empty = await api_client.post(url, json={"sender_id": "u1", "content": "  "})
        assert empty.status_code == 400
        assert empty.json()["detail"]["error"] == "EmptyMessageError"

        outsider = await api_client.post(url, json={"sender_id": "u3", "content": "hi"})
        assert outsider.status_code == 403
        assert outsider.json()["detail"]["error"] == "NotAParticipantError"


class TestAttachmentRoutes:
    """Tests for /api/attachments."""

    async def test_upload_then_download(self, api_client):
        data = b"\x89PNG image bytes"
        response = await api_client.post(
            "/api/attachments",
            params={"uploader_id": "u1", "file_name": "porch.png", "profile": "chat_image"},
            content=data,
            headers={"Content-Type": "image/png"},
        )
        assert response.status_code == 200
        reference = response.json()
        assert reference["mime_type"] == "image/png"
        assert reference["size_bytes"] == len(data)

        url = (
            await api_client.get("/api/attachments/url", params={"path": reference["storage_path"]})
        ).json()["url"]
        assert url.startswith("http://test/api/attachments/content?path=")

        content = await api_client.get(
            "/api/attachments/content", params={"path": reference["storage_path"]}
        )
        assert content.status_code == 200
        assert content.content == data
        assert content.headers["content-type"] == "image/png"

    async def test_wrong_type_is_415(self, api_client):
        response = await api_client.post(
            "/api/attachments",
            params={"uploader_id": "u1", "file_name": "notes.txt", "profile": "chat_image"},
            content=b"text",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 415
        assert response.json()["detail"]["error"] == "UnsupportedTypeError"

    async def test_too_large_is_413(self, api_client):
        response = await api_client.post(
            "/api/attachments",
            params={"uploader_id": "u1", "file_name": "a.png", "profile": "chat_image"},
            content=b"x" * (5 * 1024 * 1024 + 1),
            headers={"Content-Type": "image/png"},
        )
        assert response.status_code == 413

    async def test_streamed_upload_stops_at_limit(self, api_client):
        """Test that a body without Content-Length is cut off once over the limit."""

        async def chunks():
            for _ in range(6):
                yield b"x" * (1024 * 1024)

        response = await api_client.post(
            "/api/attachments",
            params={"uploader_id": "u1", "file_name": "a.png", "profile": "chat_image"},
            content=chunks(),
            headers={"Content-Type": "image/png"},
        )
        assert response.status_code == 413
        assert response.json()["detail"]["error"] == "FileTooLargeError"

    async def test_unsafe_path_is_rejected(self, api_client):
        response = await api_client.get(
            "/api/attachments/content", params={"path": "../secrets"}
        )
        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "AttachmentServiceError"


class TestUnreadRoutes:
    """Tests for /api/users/{id}/unread and read markers."""

    async def test_unread_flow(self, api_client):
        first = await resolve(api_client, "u1", "u2")
        second = await resolve(api_client, "u1", "u3")
        await api_client.post(
            f"/api/conversations/{first}/messages", json={"sender_id": "u2", "content": "a"}
        )
        await api_client.post(
            f"/api/conversations/{second}/messages", json={"sender_id": "u3", "content": "b"}
        )

        unread = (await api_client.get("/api/users/u1/unread")).json()
        assert unread == {
            "user_id": "u1",
            "unread_count": 2,
            "by_conversation": {first: 1, second: 1},
        }

        response = await api_client.post(f"/api/users/u1/conversations/{first}/read")
        assert response.json() == {"status": "ok"}
        assert (await api_client.get("/api/users/u1/unread")).json()["unread_count"] == 1

        await api_client.post("/api/users/u1/read")
        assert (await api_client.get("/api/users/u1/unread")).json()["unread_count"] == 0

    async def test_mark_conversation_read_outsider(self, api_client):
        conversation_id = await resolve(api_client, "u1", "u2")
        response = await api_client.post(f"/api/users/u3/conversations/{conversation_id}/read")
        assert response.status_code == 403


class TestProfileAndSupportRoutes:
    """Tests for /api/profiles and /api/support."""

    async def test_profile_round_trip(self, api_client):
        await put_profile(api_client, "u1", full_name="Alice", email="alice@example.com")
        body = (await api_client.get("/api/profiles/u1")).json()
        assert body == {
            "id": "u1",
            "role": "regular",
            "full_name": "Alice",
            "email": "alice@example.com",
        }

    async def test_missing_profile(self, api_client):
        response = await api_client.get("/api/profiles/ghost")
        assert response.status_code == 404

    async def test_no_support_agent(self, api_client):
        response = await api_client.get("/api/support/agent")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "SupportTargetNotFoundError"

    async def test_support_conversation(self, api_client):
        await put_profile(api_client, "staff", role="admin", email="support@example.com")

        agent = (await api_client.get("/api/support/agent")).json()
        assert agent["id"] == "staff"

        response = await api_client.post("/api/support/conversations", json={"user_id": "u1"})
        conversation_id = response.json()["conversation_id"]
        again = await api_client.post("/api/support/conversations", json={"user_id": "u1"})
        assert again.json()["conversation_id"] == conversation_id

        conversation = (await api_client.get(f"/api/conversations/{conversation_id}")).json()
        assert conversation["context"] == "admin_support"
        assert conversation["subject"] == "General Support"


class TestAdminRoutes:
    """Tests for /api/admin moderation routes."""

    async def test_admin_lists_every_conversation(self, api_client):
        await put_profile(api_client, "staff", role="admin")
        first = await resolve(api_client, "u1", "u2")
        second = await resolve(api_client, "u3", "u4")

        response = await api_client.get("/api/admin/conversations", params={"admin_id": "staff"})

        assert response.status_code == 200
        assert {c["id"] for c in response.json()} == {first, second}

    async def test_regular_user_cannot_list_everything(self, api_client):
        await put_profile(api_client, "u1")
        await resolve(api_client, "u1", "u2")

        response = await api_client.get("/api/admin/conversations", params={"admin_id": "u1"})

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "NotAnAdminError"

    async def test_request_conversation(self, api_client):
        await put_profile(api_client, "staff", role="admin")
        body = {"admin_id": "staff", "user_id": "u1", "request_id": "r7"}

        first = await api_client.post("/api/admin/request-conversations", json=body)
        again = await api_client.post("/api/admin/request-conversations", json=body)

        conversation_id = first.json()["conversation_id"]
        assert again.json()["conversation_id"] == conversation_id
        conversation = (await api_client.get(f"/api/conversations/{conversation_id}")).json()
        assert conversation["context"] == "request:r7"
        assert conversation["subject"] == "Property Request Support"

    async def test_request_conversation_needs_admin(self, api_client):
        response = await api_client.post(
            "/api/admin/request-conversations",
            json={"admin_id": "u2", "user_id": "u1", "request_id": "r7"},
        )
        assert response.status_code == 403


class TestObservabilityAndControl:
    """Tests for trace events and reset."""

    async def test_trace_events_recorded(self, api_client):
        conversation_id = await resolve(api_client, "u1", "u2")
        await api_client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"sender_id": "u1", "content": "hi"},
        )

        events = (await api_client.get("/api/trace-events")).json()
        assert {e["event_type"] for e in events} >= {"conversation_created", "message_appended"}

        filtered = (
            await api_client.get("/api/trace-events", params={"event_type": "message_appended"})
        ).json()
        assert len(filtered) == 1
        assert filtered[0]["actor"] == "u1"
        assert filtered[0]["data"]["source"] == "message_store"

    async def test_reset(self, api_client):
        await resolve(api_client, "u1", "u2")

        response = await api_client.post("/api/control/reset")

        assert response.json() == {"status": "ok"}
        assert (await api_client.get("/api/conversations", params={"user_id": "u1"})).json() == []
