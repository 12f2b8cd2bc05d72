"""
Tests for the owner API (/api/bots) and its Google ID token auth.
"""

import datetime as dt
from unittest.mock import patch

from convobot.models.domain import ChatMessage, ChatSession

from tests.factories import OWNER_ID


class TestAuth:

    def test_missing_header_is_forbidden(self, client):
        response = client.get("/api/bots")
        assert response.status_code == 403
        assert response.json() == {"error": "Not authenticated: Authorization header missing"}

    def test_invalid_token_is_unauthorized(self, client):
        with patch("convobot.api.auth.id_token.verify_oauth2_token", side_effect=ValueError("bad token")):
            response = client.get("/api/bots", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_malformed_header_uses_error_body(self, client):
        response = client.get("/api/bots", headers={"Authorization": "Token abc"})
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid authorization header format"}

    def test_valid_token_scopes_to_subject(self, client, add_bot):
        add_bot(bot_id="mine", owner_id="google-sub-1")
        add_bot(bot_id="theirs", owner_id="google-sub-2")
        with patch("convobot.api.auth.id_token.verify_oauth2_token", return_value={"sub": "google-sub-1"}):
            response = client.get("/api/bots", headers={"Authorization": "Bearer good"})
        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == ["mine"]


class TestBotCrud:

    def test_create_and_fetch(self, owner_client):
        response = owner_client.post(
            "/api/bots",
            json={"botName": "Helper", "businessName": "Acme Corp", "conversationGoals": "book a demo"},
        )
        assert response.status_code == 201
        bot = response.json()
        assert bot["userId"] == OWNER_ID
        assert bot["isActive"] is True

        fetched = owner_client.get(f"/api/bots/{bot['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["conversationGoals"] == "book a demo"

    def test_create_requires_name(self, owner_client):
        response = owner_client.post("/api/bots", json={"businessName": "Acme Corp"})
        assert response.status_code == 400
        assert "botName" in response.json()["error"]

    def test_create_rejects_owner_fields(self, owner_client):
        response = owner_client.post("/api/bots", json={"botName": "Helper", "userId": "someone-else"})
        assert response.status_code == 400

    def test_patch_partial_update(self, owner_client, add_bot):
        add_bot()
        response = owner_client.patch("/api/bots/bot-1", json={"welcomeMessage": "Howdy!", "theme": {"primaryColor": "#111111"}})

        assert response.status_code == 200
        body = response.json()
        assert body["welcomeMessage"] == "Howdy!"
        assert body["businessName"] == "Acme Corp"
        assert body["theme"]["primaryColor"] == "#111111"
        assert body["theme"]["borderRadius"] == "12px"

    def test_patch_unknown_field_rejected(self, owner_client, add_bot):
        add_bot()
        response = owner_client.patch("/api/bots/bot-1", json={"isAdmin": True})
        assert response.status_code == 400

    def test_other_owners_bot_is_not_found(self, owner_client, add_bot):
        add_bot(owner_id="someone-else")
        assert owner_client.get("/api/bots/bot-1").status_code == 404
        assert owner_client.patch("/api/bots/bot-1", json={"brandTone": "x"}).status_code == 404
        assert owner_client.delete("/api/bots/bot-1").status_code == 404

    def test_delete(self, owner_client, add_bot):
        add_bot()
        assert owner_client.delete("/api/bots/bot-1").status_code == 204
        assert owner_client.get("/api/bots/bot-1").json() == {"error": "Bot not found"}


class TestAnalyticsAndTranscripts:

    def test_analytics(self, owner_client, add_bot, conversations):
        add_bot()
        now = dt.datetime.now(dt.timezone.utc)
        conversations.create_session(ChatSession(botId="bot-1", sessionId="s1", startTime=now - dt.timedelta(hours=1), converted=True))
        conversations.create_session(ChatSession(botId="bot-1", sessionId="s2", startTime=now - dt.timedelta(hours=2)))
        for sender in ("user", "bot", "user"):
            conversations.save_message(
                ChatMessage(botId="bot-1", sessionId="s1", message="hi", sender=sender, timestamp=now - dt.timedelta(minutes=5))
            )

        response = owner_client.get("/api/bots/bot-1/analytics", params={"days": 7})

        assert response.status_code == 200
        body = response.json()
        assert body["totalSessions"] == 2
        assert body["conversions"] == 1
        assert body["conversionRate"] == 50.0
        assert body["totalMessages"] == 3
        assert body["averageMessagesPerSession"] == 1.5

    def test_analytics_days_bounds(self, owner_client, add_bot):
        add_bot()
        assert owner_client.get("/api/bots/bot-1/analytics", params={"days": 0}).status_code == 400
        assert owner_client.get("/api/bots/bot-1/analytics", params={"days": 366}).status_code == 400

    def test_session_transcript(self, owner_client, add_bot, conversations):
        add_bot()
        start = dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=10)
        for i, sender in enumerate(("user", "bot")):
            conversations.save_message(
                ChatMessage(botId="bot-1", sessionId="s1", message=f"m{i}", sender=sender, timestamp=start + dt.timedelta(minutes=i))
            )

        response = owner_client.get("/api/bots/bot-1/sessions/s1/messages")

        assert response.status_code == 200
        assert [(m["sender"], m["message"]) for m in response.json()] == [("user", "m0"), ("bot", "m1")]

    def test_transcript_requires_ownership(self, owner_client, add_bot):
        add_bot(owner_id="someone-else")
        assert owner_client.get("/api/bots/bot-1/sessions/s1/messages").status_code == 404
