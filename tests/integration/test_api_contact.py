"""Integration tests for the contact form, help assistant and Calendly webhook."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from voiceverse.database import get_session
from voiceverse.assistant import FALLBACK_REPLY, GREETING
from voiceverse.database.repositories import (
    AssistantChatRepository,
    CalendlyEventRepository,
    ContactMessageRepository,
)


FORM = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "subject": "Partnership idea",
    "message": "We would love to feature VoiceVerse in our podcast.",
}


@pytest.fixture
def mailer(app, config):
    app.state.config = config.model_copy(update={"contact_email": "team@voiceverse.test"})
    app.state.email.send_contact_notification = AsyncMock(return_value=True)
    return app.state.email


class TestContactForm:
    @pytest.mark.asyncio
    async def test_submit(self, client: AsyncClient, mailer):
        response = await client.post("/api/contact/submit", data={**FORM, "priority": "high", "type": "business"})

        assert response.status_code == 201
        contact = response.json()["data"]
        assert contact["priority"] == "HIGH"
        assert contact["type"] == "BUSINESS"
        assert contact["status"] == "NEW"
        assert contact["attachments"] == 0

        mailer.send_contact_notification.assert_awaited_once()
        assert mailer.send_contact_notification.await_args.args[0] == "team@voiceverse.test"

        async with get_session() as session:
            stored = await ContactMessageRepository(session).get_by_id(contact["id"])
        assert stored.subject == "Partnership idea"

    @pytest.mark.asyncio
    async def test_no_notification_without_recipient(self, client: AsyncClient, app):
        app.state.email.send_contact_notification = AsyncMock(return_value=True)

        response = await client.post("/api/contact/submit", data=FORM)

        assert response.status_code == 201
        assert response.json()["data"]["priority"] == "MEDIUM"
        app.state.email.send_contact_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reports_every_invalid_field(self, client: AsyncClient):
        response = await client.post(
            "/api/contact/submit",
            data={**FORM, "name": "A", "message": "Too short"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Name must be at least 2 characters"
        assert {e["field"] for e in error["details"]["errors"]} == {"name", "message"}

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/contact/submit", data={**FORM, "email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Please provide a valid email address"

    @pytest.mark.asyncio
    async def test_attachments(self, client: AsyncClient, mailer):
        response = await client.post(
            "/api/contact/submit",
            data=FORM,
            files=[
                ("attachments", ("notes.txt", b"call me maybe", "text/plain")),
                ("attachments", ("logo.png", b"\x89PNG\r\n\x1a\n", "image/png")),
            ],
        )

        assert response.status_code == 201
        assert response.json()["data"]["attachments"] == 2

        files = mailer.send_contact_notification.await_args.args[2]
        assert [f["originalName"] for f in files] == ["notes.txt", "logo.png"]
        assert all(f["path"].startswith("contact/") for f in files)

    @pytest.mark.asyncio
    async def test_rejects_attachment_type(self, client: AsyncClient):
        response = await client.post(
            "/api/contact/submit",
            data=FORM,
            files=[("attachments", ("run.exe", b"MZ", "application/x-msdownload"))],
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VAL_2005"


class TestAssistantChat:
    @pytest.mark.asyncio
    async def test_init_greets(self, client: AsyncClient):
        response = await client.post("/api/contact/ai/init")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["sessionId"].startswith("session_")
        assert [m["role"] for m in data["messages"]] == ["assistant"]
        assert data["messages"][0]["content"] == GREETING

    @pytest.mark.asyncio
    async def test_init_links_signed_in_user(self, client: AsyncClient, auth_headers, test_user):
        response = await client.post("/api/contact/ai/init", headers=auth_headers)

        async with get_session() as session:
            chat = await AssistantChatRepository(session).get_by_session(response.json()["data"]["sessionId"])
        assert chat.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_keyword_reply_is_stored(self, client: AsyncClient):
        session_id = (await client.post("/api/contact/ai/init")).json()["data"]["sessionId"]

        response = await client.post(
            "/api/contact/ai/message",
            json={"sessionId": session_id, "message": "I forgot my password"},
        )

        assert response.status_code == 200
        messages = response.json()["data"]["messages"]
        assert [m["role"] for m in messages] == ["assistant", "user", "assistant"]
        assert messages[1]["content"] == "I forgot my password"
        assert "Forgot Password" in messages[2]["content"]

        async with get_session() as session:
            chat = await AssistantChatRepository(session).get_by_session(session_id)
        assert len(chat.messages) == 3

    @pytest.mark.asyncio
    async def test_unknown_question_gets_fallback(self, client: AsyncClient):
        session_id = (await client.post("/api/contact/ai/init")).json()["data"]["sessionId"]

        response = await client.post(
            "/api/contact/ai/message",
            json={"sessionId": session_id, "message": "xyzzy"},
        )

        assert response.json()["data"]["messages"][-1]["content"] == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_requires_session_and_message(self, client: AsyncClient):
        response = await client.post("/api/contact/ai/message", json={"sessionId": "session_1"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Session ID and message are required"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient):
        response = await client.post(
            "/api/contact/ai/message",
            json={"sessionId": "session_missing", "message": "hello"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Chat session not found"


def calendly_event(event_type: str = "invitee.created", name: str = "VoiceVerse Video Call") -> dict:
    return {
        "event": {
            "type": event_type,
            "event_type": {"name": name},
            "uri": "https://api.calendly.com/scheduled_events/ABC",
            "start_time": "2026-11-02T15:00:00+02:00",
            "end_time": "2026-11-02T15:30:00+02:00",
            "invitee": {"name": "Grace Hopper", "email": "grace@example.com"},
            "status": "active",
            "questions_and_answers": [{"question": "Topic?", "answer": "Dubbing"}],
        }
    }


@pytest.fixture
def meeting_mailer(app, config):
    app.state.config = config.model_copy(update={"admin_email": "admin@voiceverse.test"})
    app.state.email.send_meeting_confirmation = AsyncMock(return_value=True)
    app.state.email.send_meeting_notification = AsyncMock(return_value=True)
    return app.state.email


class TestCalendlyWebhook:
    @pytest.mark.asyncio
    async def test_booking_is_stored_and_confirmed(self, client: AsyncClient, meeting_mailer):
        response = await client.post("/api/contact/calendly-webhook", json=calendly_event())

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["eventType"] == "video_call"

        async with get_session() as session:
            event = await CalendlyEventRepository(session).get_by_id(data["id"])
        assert event.invitee_email == "grace@example.com"
        assert event.start_time.hour == 13
        assert event.start_time.tzinfo is None
        assert "Dubbing" in event.notes

        meeting_mailer.send_meeting_confirmation.assert_awaited_once()
        assert meeting_mailer.send_meeting_confirmation.await_args.args[0] == "grace@example.com"
        meeting_mailer.send_meeting_notification.assert_awaited_once()
        assert meeting_mailer.send_meeting_notification.await_args.args[0] == "admin@voiceverse.test"

    @pytest.mark.asyncio
    async def test_demo_classification(self, client: AsyncClient, meeting_mailer):
        response = await client.post(
            "/api/contact/calendly-webhook",
            json=calendly_event(name="Product Demo"),
        )

        assert response.json()["data"]["eventType"] == "demo"

    @pytest.mark.asyncio
    async def test_other_events_are_ignored(self, client: AsyncClient, meeting_mailer):
        response = await client.post(
            "/api/contact/calendly-webhook",
            json=calendly_event(event_type="invitee.canceled"),
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        meeting_mailer.send_meeting_confirmation.assert_not_awaited()

        async with get_session() as session:
            assert await CalendlyEventRepository(session).count() == 0
