"""
Tests for the onboarding HTTP endpoints.

The flow dependency is overridden to build each request's flow on a shared
in-memory store, mirroring how the real dependency rebuilds it per request.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from marketplace.services.http import APIError
from marketplace.services.identity import UserProfile
from marketplace.web.app import app
from onboarding.api import get_current_user, get_flow
from onboarding.flow import OnboardingFlow
from onboarding.persistence import MemoryStateStore


@pytest.fixture
def slots():
    return {}


@pytest.fixture
def client(slots, mock_analysts, mock_identity):
    def build_flow():
        return OnboardingFlow(MemoryStateStore("analyst-1", slots=slots), mock_analysts, mock_identity)

    app.dependency_overrides[get_flow] = build_flow
    yield TestClient(app)
    app.dependency_overrides.clear()


def complete_profile(client, profile_data):
    response = client.post("/api/onboarding/profile", json=profile_data)
    assert response.status_code == 200
    return response


def complete_pricing(client):
    state = client.post("/api/onboarding/pricing/open").json()
    tier_id = state["form_data"]["pricing_tiers"][0]["id"]
    client.patch(f"/api/onboarding/pricing/tiers/{tier_id}", json={"name": "Basic", "monthlyPrice": "699"})
    client.put(f"/api/onboarding/pricing/tiers/{tier_id}/features/0", json={"text": "Daily calls"})
    response = client.post("/api/onboarding/pricing")
    assert response.status_code == 200
    return tier_id


def reach_submit(client, profile_data):
    complete_profile(client, profile_data)
    tier_id = complete_pricing(client)
    client.post(
        "/api/onboarding/credentials/certificate",
        files={"certificate": ("cert.pdf", b"%PDF-1.7", "application/pdf")},
    )
    client.post("/api/onboarding/credentials", json={"sebi_number": "INA000001234"})
    return tier_id


class TestStateEndpoints:

    def test_options_need_no_auth(self, client):
        response = client.get("/api/onboarding/options")
        assert response.status_code == 200
        assert "Equity" in response.json()["specializations"]

    def test_initial_state(self, client):
        data = client.get("/api/onboarding/state").json()
        assert data["current_step"] == 1
        assert data["progress"]["total"] == 4
        assert data["submission"] is None

    def test_draft_save(self, client):
        data = client.patch("/api/onboarding/form", json={"display_name": "Pri"}).json()
        assert data["form_data"]["display_name"] == "Pri"
        assert data["current_step"] == 1

    def test_malformed_draft(self, client):
        response = client.patch("/api/onboarding/form", json={"specializations": 5})
        assert response.status_code == 400

    def test_draft_with_null_fields(self, client):
        response = client.patch(
            "/api/onboarding/form",
            json={"display_name": None, "bio": None, "sebi_number": None, "languages": None},
        )
        assert response.status_code == 200

        state = client.get("/api/onboarding/state")
        assert state.status_code == 200
        assert state.json()["form_data"]["display_name"] == ""
        assert state.json()["form_data"]["languages"] == []

    @pytest.mark.parametrize("partial", [
        {"pricing_tiers": [{"name": f"Tier {i}", "monthlyPrice": "699"} for i in range(9)]},
        {"pricing_tiers": []},
        {"sebi_certificate_url": "https://files.test/forged.pdf"},
        {"display_name": "Pri", "profile_photo_url": "https://files.test/p.png"},
    ])
    def test_draft_cannot_set_tiers_or_uploads(self, client, partial):
        response = client.patch("/api/onboarding/form", json=partial)
        assert response.status_code == 400

        form = client.get("/api/onboarding/state").json()["form_data"]
        assert form["pricing_tiers"] == []
        assert form["sebi_certificate_url"] == ""
        assert form["display_name"] == ""

    def test_goto_is_gated(self, client):
        response = client.post("/api/onboarding/goto/3")
        assert response.status_code == 400
        assert "display_name" in response.json()["detail"]["errors"]

    def test_goto_out_of_range_is_ignored(self, client):
        response = client.post("/api/onboarding/goto/9")
        assert response.status_code == 200
        assert response.json()["current_step"] == 1

    def test_abandon(self, client, slots, profile_data):
        complete_profile(client, profile_data)
        data = client.delete("/api/onboarding").json()
        assert data["current_step"] == 1
        assert slots == {}


class TestProfileEndpoints:

    def test_invalid_profile(self, client, profile_data):
        response = client.post("/api/onboarding/profile", json={**profile_data, "bio": "short"})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"] == "Please fix the errors before continuing"
        assert "bio" in detail["errors"]

    def test_valid_profile_advances(self, client, profile_data):
        data = complete_profile(client, profile_data).json()
        assert data["current_step"] == 2
        assert {"level": "success", "message": "Profile information saved!"} in data["notices"]

    def test_back(self, client, profile_data):
        complete_profile(client, profile_data)
        assert client.post("/api/onboarding/prev").json()["current_step"] == 1

    def test_photo_upload(self, client):
        response = client.post(
            "/api/onboarding/profile/photo",
            files={"photo": ("me.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["form_data"]["profile_photo_url"] == "https://files.test/photo.png"

    def test_photo_wrong_type(self, client, mock_analysts):
        response = client.post(
            "/api/onboarding/profile/photo",
            files={"photo": ("me.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        mock_analysts.upload_profile_photo.assert_not_called()


class TestPricingEndpoints:

    def test_tier_lifecycle(self, client):
        state = client.post("/api/onboarding/pricing/open").json()
        first_id = state["form_data"]["pricing_tiers"][0]["id"]

        state = client.post("/api/onboarding/pricing/tiers").json()
        assert len(state["form_data"]["pricing_tiers"]) == 2

        state = client.patch(f"/api/onboarding/pricing/tiers/{first_id}", json={"yearlyPrice": "6999"}).json()
        assert state["monthly_equivalents"][first_id] == "₹583/month"

        state = client.post(f"/api/onboarding/pricing/tiers/{first_id}/toggle").json()
        assert state["form_data"]["pricing_tiers"][0]["isActive"] is False

        assert client.delete(f"/api/onboarding/pricing/tiers/{first_id}").status_code == 200

    def test_sixth_tier_rejected(self, client):
        client.post("/api/onboarding/pricing/open")
        for _ in range(4):
            client.post("/api/onboarding/pricing/tiers")
        response = client.post("/api/onboarding/pricing/tiers")
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "You can create a maximum of 5 tiers"

    def test_unknown_tier(self, client):
        assert client.post("/api/onboarding/pricing/tiers/missing/toggle").status_code == 404

    def test_feature_endpoints(self, client):
        state = client.post("/api/onboarding/pricing/open").json()
        tier_id = state["form_data"]["pricing_tiers"][0]["id"]

        client.post(f"/api/onboarding/pricing/tiers/{tier_id}/features")
        state = client.put(f"/api/onboarding/pricing/tiers/{tier_id}/features/1", json={"text": "Webinars"}).json()
        assert state["form_data"]["pricing_tiers"][0]["features"] == ["", "Webinars"]

        state = client.delete(f"/api/onboarding/pricing/tiers/{tier_id}/features/0").json()
        assert state["form_data"]["pricing_tiers"][0]["features"] == ["Webinars"]

        assert client.put(f"/api/onboarding/pricing/tiers/{tier_id}/features/7", json={"text": "x"}).status_code == 404

    def test_deep_validation_on_submit(self, client, profile_data):
        complete_profile(client, profile_data)
        client.post("/api/onboarding/pricing/open")
        response = client.post("/api/onboarding/pricing")
        assert response.status_code == 400
        assert "tier_0_name" in response.json()["detail"]["errors"]


class TestCredentialsAndSubmit:

    def test_full_submission(self, client, slots, profile_data, mock_analysts):
        complete_profile(client, profile_data)
        complete_pricing(client)
        client.post(
            "/api/onboarding/credentials/certificate",
            files={"certificate": ("cert.pdf", b"%PDF-1.7", "application/pdf")},
        )
        response = client.post("/api/onboarding/credentials", json={"sebi_number": "INA000001234"})

        assert response.status_code == 200
        data = response.json()
        assert data["submission"]["status"] == "succeeded"
        assert data["submission"]["summary"]["pricing"] == "1 tier"
        assert data["current_step"] == 1
        mock_analysts.setup_profile.assert_awaited_once()
        assert slots == {}

    def test_failed_submission_then_retry(self, client, profile_data, mock_analysts):
        mock_analysts.setup_profile.side_effect = [APIError("Service unavailable", status=503), {"success": True}]
        complete_profile(client, profile_data)
        complete_pricing(client)
        client.post(
            "/api/onboarding/credentials/certificate",
            files={"certificate": ("cert.pdf", b"%PDF-1.7", "application/pdf")},
        )

        data = client.post("/api/onboarding/credentials", json={"sebi_number": "INA000001234"}).json()
        assert data["submission"]["status"] == "failed"
        assert data["submission"]["can_retry"] is True
        assert data["current_step"] == 4

        retried = client.post("/api/onboarding/submit")
        assert retried.status_code == 200
        assert retried.json()["current_step"] == 1

    def test_jump_back_to_submit_retries(self, client, profile_data, mock_analysts):
        mock_analysts.setup_profile.side_effect = [APIError("Service unavailable", status=503), {"success": True}]
        reach_submit(client, profile_data)

        assert client.post("/api/onboarding/goto/3").json()["current_step"] == 3
        response = client.post("/api/onboarding/goto/4")

        assert response.status_code == 200
        assert response.json()["submission"]["status"] == "succeeded"
        assert response.json()["current_step"] == 1
        assert mock_analysts.setup_profile.await_count == 2

    def test_jump_to_submit_needs_complete_tiers(self, client, profile_data, mock_analysts):
        mock_analysts.setup_profile.side_effect = APIError("Service unavailable", status=503)
        tier_id = reach_submit(client, profile_data)

        client.post("/api/onboarding/goto/2")
        client.patch(f"/api/onboarding/pricing/tiers/{tier_id}", json={"name": ""})
        response = client.post("/api/onboarding/goto/4")

        assert response.status_code == 400
        assert "tier_0_name" in response.json()["detail"]["errors"]
        assert client.get("/api/onboarding/state").json()["current_step"] == 2
        mock_analysts.setup_profile.assert_awaited_once()

    def test_submit_before_final_step(self, client):
        assert client.post("/api/onboarding/submit").status_code == 400

    def test_submit_failure_is_bad_gateway(self, client, slots, profile_data, mock_analysts):
        mock_analysts.setup_profile.side_effect = APIError("Service unavailable", status=503)
        complete_profile(client, profile_data)
        complete_pricing(client)
        client.post(
            "/api/onboarding/credentials/certificate",
            files={"certificate": ("cert.pdf", b"%PDF-1.7", "application/pdf")},
        )
        client.post("/api/onboarding/credentials", json={"sebi_number": "INA000001234"})

        response = client.post("/api/onboarding/submit")
        assert response.status_code == 502
        assert response.json()["detail"]["message"] == "Service unavailable"


class TestAuth:

    @pytest.fixture
    def auth_client(self):
        app.dependency_overrides.clear()
        return TestClient(app)

    def _identity(self, user_type="analyst", error=None):
        identity = MagicMock()
        identity.get_current_user = AsyncMock(
            side_effect=error,
            return_value=UserProfile(id="u1", user_type=user_type),
        )
        return identity

    def test_missing_token(self, auth_client):
        assert auth_client.get("/api/onboarding/state").status_code == 401

    def test_identity_failure(self, auth_client):
        with patch("onboarding.api.IdentityService", return_value=self._identity(error=APIError("expired"))):
            response = auth_client.get("/api/onboarding/state", headers={"Authorization": "Bearer t"})
        assert response.status_code == 401

    def test_traders_are_forbidden(self, auth_client):
        with patch("onboarding.api.IdentityService", return_value=self._identity("trader")):
            response = auth_client.get("/api/onboarding/state", headers={"Authorization": "Bearer t"})
        assert response.status_code == 403

    def test_analyst_gets_state(self, auth_client):
        with patch("onboarding.api.IdentityService", return_value=self._identity()):
            response = auth_client.get("/api/onboarding/state", headers={"Authorization": "Bearer t"})
        assert response.status_code == 200
        assert response.json()["current_step"] == 1

    def test_current_user_override(self, client):
        # get_flow depends on get_current_user; overriding the flow skips auth entirely
        assert get_current_user not in app.dependency_overrides
        assert client.get("/api/onboarding/state").status_code == 200
