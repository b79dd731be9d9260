import pytest
from httpx import AsyncClient

from app.core.config import settings
from tests.conftest import get_auth_headers
from tests.fixtures.onboarding_fixtures import OWNER_ID, locations_json


@pytest.mark.integration
class TestRegisterAPI:
    """Test the registration draft endpoints."""

    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/register")
        assert response.status_code == 401
        assert response.json() == {"detail": "Missing authentication token."}

    async def test_rejects_unknown_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/register", headers=get_auth_headers("not-a-session")
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authentication token."

    async def test_dev_bypass_token(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "DEV_BYPASS_AUTH", True)
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")

        response = await client.get("/api/v1/register", headers=get_auth_headers("dev"))

        assert response.status_code == 200
        assert response.json() == {"ok": True, "uid": "dev_uid", "business": None}

    async def test_save_and_read_draft(self, client: AsyncClient, authenticated):
        response = await client.post(
            "/api/v1/register",
            data={
                "businessName": "Sharma Batteries",
                "email": "Owner@Sharma.in",
                "businessCategory": "Battery Shop",
                "shopType": "local shop",
                "brands": ["exide", "amaron"],
            },
        )
        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "draft", "message": "Draft saved."}

        response = await client.get("/api/v1/register")
        assert response.status_code == 200
        data = response.json()
        assert data["uid"] == OWNER_ID
        business = data["business"]
        assert business["businessName"] == "Sharma Batteries"
        assert business["email"] == "owner@sharma.in"
        assert business["brands"] == ["exide", "amaron"]
        assert business["vehicleTypes"] == []
        assert business["website"] == ""
        assert business["businessLogo"] is None
        assert business["status"] == "draft"

    async def test_validation_error(self, client: AsyncClient, authenticated):
        response = await client.post(
            "/api/v1/register",
            data={"businessCategory": "Battery Shop", "shopType": "authorised shop"},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Please select exactly one brand."}

    async def test_malformed_locations(self, client: AsyncClient, authenticated):
        response = await client.post(
            "/api/v1/register", data={"businessLocations": "[{broken"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid business locations."

    async def test_malformed_form_body(self, client: AsyncClient, authenticated):
        response = await client.post(
            "/api/v1/register",
            content=b"not a multipart body",
            headers={"Content-Type": "multipart/form-data"},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid form data."}

    async def test_upload_files_and_locations(
        self, client: AsyncClient, authenticated, media_root
    ):
        response = await client.post(
            "/api/v1/register",
            data={
                "businessLocations": locations_json("loc_a", "loc_b"),
                "primaryBusinessLocationId": "loc_b",
                "shopImageLocationId": "loc_b",
            },
            files={
                "businessLogo": ("logo.png", b"png-bytes", "image/png"),
                "shopImage": ("shop front.jpg", b"jpg-bytes", "image/jpeg"),
            },
        )
        assert response.status_code == 200

        business = (await client.get("/api/v1/register")).json()["business"]
        assert business["businessLogo"]["contentType"] == "image/png"
        assert business["primaryLocationId"] == "loc_b"
        locations = business["businessLocations"]
        assert [loc["id"] for loc in locations] == ["loc_a", "loc_b"]
        assert [loc["isPrimary"] for loc in locations] == [False, True]
        assert locations[1]["shopImage"]["name"] == "shop front.jpg"
        assert locations[1]["shopImage"]["path"].endswith("_shop_front.jpg")
        assert locations[0]["shopImage"] is None
        assert locations[0]["businessHours"]["days"][0]["open"] == "09:00"

    async def test_file_too_large(self, client: AsyncClient, authenticated, monkeypatch):
        monkeypatch.setattr(settings, "MAX_IMAGE_UPLOAD_SIZE", 1024 * 1024)
        response = await client.post(
            "/api/v1/register",
            files={"businessLogo": ("logo.png", b"x" * (1024 * 1024 + 1), "image/png")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Business logo must be under 1MB."

    async def test_submit(self, client: AsyncClient, authenticated, seeded_brands):
        response = await client.post(
            "/api/v1/register",
            data={
                "status": "submitted",
                "businessName": "Sharma Batteries",
                "businessDescription": "Batteries for cars and bikes",
                "businessType": "both",
                "email": "owner@sharma.in",
                "businessCategory": "Battery Shop",
                "shopType": "authorised shop",
                "brands": "exide",
                "name": "Ravi Sharma",
                "contactNo": "+91 98765 43210",
                "businessLocations": locations_json("loc_a"),
                "primaryBusinessLocationId": "loc_a",
            },
        )
        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "status": "submitted",
            "message": "Business submitted.",
        }

    async def test_submit_incomplete(self, client: AsyncClient, authenticated):
        response = await client.post(
            "/api/v1/register", data={"status": "submitted", "businessName": "A"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Business description is required."
