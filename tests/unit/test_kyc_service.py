from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    DocumentStoreError,
    OnboardingValidationError,
    StatusConflictError,
)
from app.schemas.media import UploadedFile
from app.services.business import BUSINESS_COLLECTION
from app.services.document_store import DocumentStore
from app.services.kyc import KYC_COLLECTION, KycService
from app.services.locations import LOCATIONS_COLLECTION, location_document_id
from tests.fixtures.onboarding_fixtures import (
    OWNER_ID,
    complete_business,
    seed_locations,
    video,
)


@pytest.mark.unit
class TestKycService:
    @pytest.fixture
    def service(self):
        return KycService()

    @pytest.fixture
    def store(self, db: AsyncSession) -> DocumentStore:
        return DocumentStore(db)

    def proof_videos(self, *location_ids):
        return {location_id: video(f"{location_id}.mp4") for location_id in location_ids}

    async def test_get_kyc_missing(self, service, db):
        assert await service.get_kyc(db, OWNER_ID) is None

    async def test_selfie_required(self, service, db):
        with pytest.raises(OnboardingValidationError, match="Self video is required."):
            await service.submit_kyc(db, OWNER_ID, "script", None, {})

    async def test_selfie_must_be_video(self, service, db):
        selfie = UploadedFile("selfie.jpg", "image/jpeg", b"x")
        with pytest.raises(OnboardingValidationError, match="Self video must be a video."):
            await service.submit_kyc(db, OWNER_ID, "script", selfie, {})

    async def test_business_required(self, service, db):
        with pytest.raises(OnboardingValidationError, match="Business profile is missing."):
            await service.submit_kyc(db, OWNER_ID, "script", video(), {})

    @pytest.mark.parametrize(
        "status, message",
        [
            ("verified", "Business is already verified."),
            ("pending", "Business is already under review."),
        ],
    )
    async def test_status_conflicts(self, service, db, store, status, message):
        await store.set_document(BUSINESS_COLLECTION, OWNER_ID, complete_business(status=status))
        with pytest.raises(StatusConflictError, match=message) as exc_info:
            await service.submit_kyc(db, OWNER_ID, "script", video(), {})
        assert exc_info.value.status_code == 409

    async def test_rejected_business(self, service, db, store):
        await store.set_document(
            BUSINESS_COLLECTION, OWNER_ID, complete_business(status="rejected")
        )
        with pytest.raises(OnboardingValidationError, match="resubmit from registration"):
            await service.submit_kyc(db, OWNER_ID, "script", video(), {})

    async def test_location_required(self, service, db, store):
        await store.set_document(
            BUSINESS_COLLECTION, OWNER_ID, complete_business(status="submitted")
        )
        with pytest.raises(
            OnboardingValidationError, match="Please add at least one business location."
        ):
            await service.submit_kyc(db, OWNER_ID, "script", video(), {})

    async def test_every_location_needs_proof_video(self, service, db, seeded_business):
        with pytest.raises(
            OnboardingValidationError,
            match="Please upload shop proof video for each location.",
        ):
            await service.submit_kyc(
                db, OWNER_ID, "script", video(), self.proof_videos("loc_a")
            )

    async def test_proof_video_too_large(
        self, service, db, seeded_business, media_root, monkeypatch
    ):
        monkeypatch.setattr(settings, "MAX_VIDEO_UPLOAD_SIZE", 1024 * 1024)
        videos = self.proof_videos("loc_a")
        videos["loc_b"] = video(size=1024 * 1024 + 1)
        with pytest.raises(
            OnboardingValidationError, match="Shop proof video must be under 1MB."
        ):
            await service.submit_kyc(db, OWNER_ID, "script", video(), videos)
        assert not media_root.exists()

    async def test_draft_business_must_pass_submission_checks(
        self, service, db, store, seeded_business
    ):
        await store.set_document(
            BUSINESS_COLLECTION, OWNER_ID, {"businessName": ""}, merge=True
        )
        with pytest.raises(OnboardingValidationError, match="Business name is required."):
            await service.submit_kyc(
                db, OWNER_ID, "script", video(), self.proof_videos("loc_a", "loc_b")
            )

    async def test_submit_from_draft(self, service, db, store, seeded_business, media_root):
        response = await service.submit_kyc(
            db,
            OWNER_ID,
            "I am Ravi Sharma",
            video("selfie.mp4"),
            self.proof_videos("loc_a", "loc_b"),
        )

        assert response.ok is True
        assert response.message == "KYC submitted."
        assert response.status == "submitted"

        business = await store.get_document(BUSINESS_COLLECTION, OWNER_ID)
        assert business["status"] == "submitted"

        kyc = await service.get_kyc(db, OWNER_ID)
        assert kyc["status"] == "pending"
        assert kyc["scriptText"] == "I am Ravi Sharma"
        assert kyc["selfieVideo"]["path"].startswith("kyc/selfie/owner_1/")
        assert kyc["createdAt"] == kyc["updatedAt"]
        assert (media_root / kyc["selfieVideo"]["path"]).exists()

        location = await store.get_document(
            LOCATIONS_COLLECTION, location_document_id(OWNER_ID, "loc_b")
        )
        assert location["verificationStatus"] == "pending"
        assert location["verificationVideo"]["path"].startswith(
            "kyc/location/loc_b/owner_1/"
        )
        assert location["fullAddress"] == "loc_b MG Road, Bengaluru"

    async def test_submit_from_submitted_moves_to_pending(
        self, service, db, store, seeded_business
    ):
        await store.set_document(
            BUSINESS_COLLECTION, OWNER_ID, {"status": "submitted"}, merge=True
        )

        response = await service.submit_kyc(
            db, OWNER_ID, "script", video(), self.proof_videos("loc_a", "loc_b")
        )

        assert response.status == "pending"
        business = await store.get_document(BUSINESS_COLLECTION, OWNER_ID)
        assert business["status"] == "pending"

    async def test_online_business_needs_no_proof_videos(self, service, db, store):
        await store.set_document(
            BUSINESS_COLLECTION,
            OWNER_ID,
            complete_business(status="submitted", businessType="online"),
        )
        await seed_locations(db, ["loc_a"], primary_id="loc_a")

        response = await service.submit_kyc(db, OWNER_ID, "script", video(), {})

        assert response.status == "pending"
        location = await store.get_document(
            LOCATIONS_COLLECTION, location_document_id(OWNER_ID, "loc_a")
        )
        assert location["verificationStatus"] == "pending"
        assert "verificationVideo" not in location

    async def test_stored_location_id_cannot_escape_media_root(
        self, service, db, store, media_root
    ):
        unsafe_id = "../../../escaped"
        await store.set_document(
            BUSINESS_COLLECTION,
            OWNER_ID,
            complete_business(status="submitted", primaryLocationId=unsafe_id),
        )
        await seed_locations(db, [unsafe_id], primary_id=unsafe_id)

        await service.submit_kyc(
            db, OWNER_ID, "script", video(), {unsafe_id: video("proof.mp4")}
        )

        location = await store.get_document(
            LOCATIONS_COLLECTION, location_document_id(OWNER_ID, unsafe_id)
        )
        path = location["verificationVideo"]["path"]
        assert path.startswith("kyc/location/.._.._.._escaped/owner_1/")
        assert (media_root / path).exists()
        assert not (media_root.parent / "escaped").exists()

    async def test_failed_batch_changes_nothing(self, service, db, store, seeded_business):
        await store.set_document(
            BUSINESS_COLLECTION, OWNER_ID, {"status": "submitted"}, merge=True
        )

        with patch.object(db, "commit", AsyncMock(side_effect=RuntimeError("boom"))):
            with pytest.raises(DocumentStoreError):
                await service.submit_kyc(
                    db, OWNER_ID, "script", video(), self.proof_videos("loc_a", "loc_b")
                )

        business = await store.get_document(BUSINESS_COLLECTION, OWNER_ID)
        assert business["status"] == "submitted"
        assert await store.get_document(KYC_COLLECTION, OWNER_ID) is None
