"""
Tests for dolo/api/checkout.py - checkout, start form, and session summary.
Billing service calls are mocked.
"""
from unittest.mock import AsyncMock, patch

import pytest

SESSION_OK = {"session_id": "cs_1", "url": "https://checkout.stripe.test/cs_1", "customer_id": "cus_1", "error": None}
SESSION_FAIL = {"session_id": None, "url": None, "customer_id": None, "error": "stripe down"}


@pytest.fixture
def mock_create_session():
    with patch("dolo.services.billing.create_checkout_session", new_callable=AsyncMock) as mock:
        mock.return_value = SESSION_OK
        yield mock


class TestPlans:
    @pytest.mark.asyncio
    async def test_lists_plans(self, client):
        resp = await client.get("/api/checkout/plans")
        slugs = [p["slug"] for p in resp.json()["plans"]]
        assert slugs == ["essential", "pro", "premier", "private-build"]


class TestCreateCheckout:
    @pytest.mark.asyncio
    async def test_creates_session(self, client, mock_create_session, settings):
        resp = await client.post("/api/checkout", json={
            "plan": "pro",
            "customer_data": {"name": "Ann", "email": "ann@example.com"},
            "options": {"rush_delivery": True, "add_ons": ["maintenance"]},
        })
        assert resp.status_code == 200
        assert resp.json() == {"session_id": "cs_1", "url": "https://checkout.stripe.test/cs_1"}

        kwargs = mock_create_session.call_args.kwargs
        assert kwargs["rush_delivery"] is True
        assert kwargs["add_ons"] == ["maintenance"]
        assert kwargs["success_url"].endswith("/success?session_id={CHECKOUT_SESSION_ID}")
        assert kwargs["cancel_url"] == settings.app_base_url.rstrip("/") + "/pricing"

    @pytest.mark.asyncio
    async def test_missing_customer(self, client, mock_create_session):
        resp = await client.post("/api/checkout", json={"plan": "pro"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing required fields"
        mock_create_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_plan(self, client, mock_create_session):
        resp = await client.post("/api/checkout", json={
            "plan": "gold",
            "customer_data": {"name": "Ann", "email": "ann@example.com"},
        })
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid plan"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("options,detail", [
        ("rush", "options must be an object"),
        ({"add_ons": "maintenance"}, "add_ons must be a list of names"),
        ({"add_ons": [{"name": "maintenance"}]}, "add_ons must be a list of names"),
    ])
    async def test_malformed_options_rejected(self, client, mock_create_session, options, detail):
        resp = await client.post("/api/checkout", json={
            "plan": "pro",
            "customer_data": {"name": "Ann", "email": "ann@example.com"},
            "options": options,
        })
        assert resp.status_code == 400
        assert resp.json()["detail"] == detail
        mock_create_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_string_customer_email_rejected(self, client, mock_create_session):
        resp = await client.post("/api/checkout", json={
            "plan": "pro",
            "customer_data": {"name": "Ann", "email": ["ann@example.com"]},
        })
        assert resp.status_code == 400
        mock_create_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_stripe_failure_logged(self, client, app, mock_create_session):
        mock_create_session.return_value = SESSION_FAIL
        resp = await client.post("/api/checkout", json={
            "plan": "pro",
            "customer_data": {"name": "Ann", "email": "ann@example.com"},
        })
        assert resp.status_code == 500
        entry = app.state.error_monitor.get_recent(1)[0]
        assert entry.component == "Form:checkout"
        assert entry.metadata == {"plan": "pro"}


class TestStartForm:
    @pytest.mark.asyncio
    async def test_returns_redirect(self, client, mock_create_session):
        resp = await client.post("/api/start", json={
            "name": " Ann ",
            "email": "ann@example.com",
            "selected_plan": "essential",
            "add_ons": {"maintenance": True, "privacy": True, "accessibility": False},
            "yearly_maintenance": True,
            "target_audience": " locals ",
        })
        assert resp.status_code == 200
        assert resp.json() == {"redirect_url": "https://checkout.stripe.test/cs_1"}

        kwargs = mock_create_session.call_args.kwargs
        assert kwargs["customer"] == {"name": "Ann", "email": "ann@example.com"}
        assert kwargs["add_ons"] == ["maintenance", "privacy"]
        assert kwargs["project_details"]["yearly_maintenance"] is True
        assert kwargs["project_details"]["target_audience"] == "locals"

    @pytest.mark.asyncio
    async def test_plan_required(self, client, mock_create_session):
        resp = await client.post("/api/start", json={"name": "Ann", "email": "ann@example.com"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Plan selection is required"

    @pytest.mark.asyncio
    async def test_name_required(self, client, mock_create_session):
        resp = await client.post("/api/start", json={"email": "ann@example.com", "selected_plan": "pro"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "name is required"

    @pytest.mark.asyncio
    async def test_add_ons_list_rejected(self, client, mock_create_session):
        resp = await client.post("/api/start", json={
            "name": "Ann", "email": "ann@example.com", "selected_plan": "pro",
            "add_ons": ["maintenance"],
        })
        assert resp.status_code == 400
        assert resp.json()["detail"] == "add_ons must be an object"
        mock_create_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_object_website_purpose_ignored(self, client, mock_create_session):
        resp = await client.post("/api/start", json={
            "name": "Ann", "email": "ann@example.com", "selected_plan": "pro",
            "website_purpose": "leads",
        })
        assert resp.status_code == 200
        purpose = mock_create_session.call_args.kwargs["project_details"]["website_purpose"]
        assert purpose == {"generate_leads": False, "provide_information": False, "other": False}

    @pytest.mark.asyncio
    async def test_missing_url_is_failure(self, client, app, mock_create_session):
        mock_create_session.return_value = {**SESSION_OK, "url": None}
        resp = await client.post("/api/start", json={
            "name": "Ann", "email": "ann@example.com", "selected_plan": "pro",
        })
        assert resp.status_code == 500
        assert app.state.error_monitor.get_recent(1)[0].component == "Form:start"


class TestSessionSummary:
    @pytest.mark.asyncio
    async def test_requires_session_id(self, client):
        resp = await client.get("/api/checkout/session")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_returns_summary(self, client):
        summary = {"customer_email": "a@b.com", "customer_name": "A", "amount_total": 100, "plan": "pro", "rush_delivery": False}
        with patch(
            "dolo.services.billing.get_session_summary",
            new_callable=AsyncMock,
            return_value={"summary": summary, "error": None},
        ):
            resp = await client.get("/api/checkout/session", params={"session_id": "cs_1"})
        assert resp.status_code == 200
        assert resp.json() == summary

    @pytest.mark.asyncio
    async def test_stripe_error(self, client):
        resp = await client.get("/api/checkout/session", params={"session_id": "cs_1"})
        assert resp.status_code == 500
