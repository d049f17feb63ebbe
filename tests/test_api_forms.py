"""
Tests for dolo/api/forms.py - contact, quiz, and private build endpoints.
"""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from dolo.models.submissions import ContactSubmission, PrivateBuildApplication, QuizResult

CONTACT = {"name": "Ann", "email": "ann@example.com", "message": "Need a site", "company": "Acme"}
QUIZ = {
    "email": "ann@example.com",
    "plan": "Pro",
    "description": "A bigger site",
    "link": "https://dolo.test/start?plan=pro",
    "consent": True,
}
PRIVATE_BUILD = {
    "name": "Ann",
    "email": "ann@example.com",
    "project_type": "Web app",
    "budget": "$10k+",
    "timeline": "3 months",
    "vision": "Something custom",
}


class TestContact:
    @pytest.mark.asyncio
    async def test_saves_submission(self, client, db):
        resp = await client.post("/api/contact", json=CONTACT)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert len(data["request_id"]) == 8
        assert data["details"]["email_sent"] is False

        row = (await db.execute(select(ContactSubmission))).scalar_one()
        assert data["details"]["submission_id"] == str(row.id)
        assert row.company == "Acme"
        assert row.source == "contact-form"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        resp = await client.post("/api/contact", json={"name": "Ann", "email": "ann@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing required fields"
        assert "request_id" in resp.json()

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        resp = await client.post("/api/contact", json={**CONTACT, "email": "not-an-email"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid email format"

    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        resp = await client.post("/api/contact", content="{oops", headers={"content-type": "application/json"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_database_failure_uses_fallback_id(self, client, app):
        with patch(
            "dolo.services.submissions.insert_contact_submission",
            new_callable=AsyncMock,
            side_effect=RuntimeError("relation does not exist"),
        ):
            resp = await client.post("/api/contact", json=CONTACT)

        assert resp.status_code == 200
        data = resp.json()
        assert data["details"]["submission_id"] == f"fallback_{data['request_id']}"
        entry = app.state.error_monitor.get_recent(1)[0]
        assert entry.component == "Database:contact_submissions"
        assert entry.metadata == {"request_id": data["request_id"]}

    @pytest.mark.asyncio
    async def test_sends_admin_notification(self, client, email_configured, mock_send_email):
        resp = await client.post("/api/contact", json=CONTACT)
        assert resp.json()["details"]["email_sent"] is True
        to, subject, _, _ = mock_send_email.call_args.args
        assert to == email_configured.admin_email
        assert subject == "New Contact Form Submission from Ann"

    @pytest.mark.asyncio
    async def test_email_failure_is_logged_not_fatal(self, client, app, email_configured):
        with patch(
            "dolo.services.email._send_via_sendgrid",
            new_callable=AsyncMock,
            side_effect=RuntimeError("401 Unauthorized"),
        ):
            resp = await client.post("/api/contact", json=CONTACT)

        assert resp.status_code == 200
        assert resp.json()["details"]["email_sent"] is False
        entry = app.state.error_monitor.get_recent(1)[0]
        assert entry.component == "Email:contact-notification"
        assert entry.error == "401 Unauthorized"


class TestQuiz:
    @pytest.mark.asyncio
    async def test_saves_result_without_email_service(self, client, db):
        resp = await client.post("/api/quiz-email", json=QUIZ)
        assert resp.status_code == 200
        data = resp.json()
        assert data["email_sent"] is False
        assert data["message"] == "Quiz result saved (email service not available)"

        row = (await db.execute(select(QuizResult))).scalar_one()
        assert data["quiz_result_id"] == str(row.id)
        assert row.consent is True

    @pytest.mark.asyncio
    async def test_sends_recommendation(self, client, email_configured, mock_send_email):
        resp = await client.post("/api/quiz-email", json=QUIZ)
        assert resp.json()["email_sent"] is True
        assert mock_send_email.call_args.args[0] == "ann@example.com"

    @pytest.mark.asyncio
    async def test_missing_field(self, client):
        resp = await client.post("/api/quiz-email", json={**QUIZ, "link": ""})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "link is required"

    @pytest.mark.asyncio
    async def test_consent_required(self, client):
        resp = await client.post("/api/quiz-email", json={**QUIZ, "consent": False})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Consent is required"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        resp = await client.post("/api/quiz-email", json={**QUIZ, "email": "nope"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid email format"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [("plan", 5), ("description", ["a"]), ("link", {"href": "x"})])
    async def test_non_string_field_rejected(self, client, app, db, field, value):
        resp = await client.post("/api/quiz-email", json={**QUIZ, field: value})
        assert resp.status_code == 400
        assert resp.json()["detail"] == f"{field} must be a string"
        assert app.state.error_monitor.get_by_component("Database:quiz_results") == []
        assert (await db.execute(select(QuizResult))).scalars().all() == []


class TestPrivateBuild:
    @pytest.mark.asyncio
    async def test_saves_application(self, client, db):
        resp = await client.post("/api/private-build", json={**PRIVATE_BUILD, "referral_source": "  "})
        assert resp.status_code == 200
        data = resp.json()
        assert data["emails_sent"] == {"admin": False, "applicant": False}

        row = (await db.execute(select(PrivateBuildApplication))).scalar_one()
        assert data["application_id"] == str(row.id)
        assert row.status == "pending"
        assert row.referral_source is None

    @pytest.mark.asyncio
    async def test_sends_both_emails(self, client, email_configured, mock_send_email):
        resp = await client.post("/api/private-build", json=PRIVATE_BUILD)
        assert resp.json()["emails_sent"] == {"admin": True, "applicant": True}
        recipients = [c.args[0] for c in mock_send_email.call_args_list]
        assert recipients == [email_configured.admin_email, "ann@example.com"]

    @pytest.mark.asyncio
    async def test_missing_vision(self, client):
        payload = {k: v for k, v in PRIVATE_BUILD.items() if k != "vision"}
        resp = await client.post("/api/private-build", json=payload)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "vision is required"

    @pytest.mark.asyncio
    async def test_non_string_budget_rejected(self, client, db):
        resp = await client.post("/api/private-build", json={**PRIVATE_BUILD, "budget": 10000})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "budget must be a string"
        assert (await db.execute(select(PrivateBuildApplication))).scalars().all() == []
