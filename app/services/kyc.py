from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import OnboardingValidationError
from app.schemas.business import BusinessStatus
from app.schemas.kyc import KycStatus, KycSubmitResponse
from app.schemas.media import MediaKind, StoredMedia, UploadedFile
from app.services.brands import BrandCatalog
from app.services.business import BUSINESS_COLLECTION
from app.services.document_store import DocumentStore
from app.services.draft import utc_now
from app.services.locations import LOCATIONS_COLLECTION, LocationReconciler, stored_location_id
from app.services.media import MediaIngestionService, media_service, safe_object_name
from app.services.status import kyc_next_status
from app.services.validation import OFFLINE_BUSINESS_TYPES, check_file, validate_submission

logger = structlog.get_logger(__name__)

KYC_COLLECTION = "businessKyc"


def _video_document(stored: StoredMedia) -> dict[str, Any]:
    return {
        "url": stored.url,
        "path": stored.path,
        "name": stored.name,
        "type": stored.content_type,
        "size": stored.size,
    }


class KycService:
    """Owner identity and shop-proof video verification."""

    def __init__(self, media: Optional[MediaIngestionService] = None):
        self.media = media or media_service

    async def get_kyc(self, db: AsyncSession, owner_id: str) -> Optional[dict[str, Any]]:
        return await DocumentStore(db).get_document(KYC_COLLECTION, owner_id)

    async def submit_kyc(
        self,
        db: AsyncSession,
        owner_id: str,
        script_text: str,
        selfie_video: Optional[UploadedFile],
        location_videos: dict[str, UploadedFile],
    ) -> KycSubmitResponse:
        """Store KYC videos and move the business into moderation.

        Every check runs before the first upload, and all document writes
        land in one batch.
        """
        if selfie_video is None:
            raise OnboardingValidationError("Self video is required.")
        reason = check_file("Self video", MediaKind.VIDEO, selfie_video)
        if reason:
            raise OnboardingValidationError(reason)

        store = DocumentStore(db)
        business = await store.get_document(BUSINESS_COLLECTION, owner_id)
        if business is None:
            raise OnboardingValidationError("Business profile is missing.")

        current_status = business.get("status")
        next_status = kyc_next_status(current_status)

        locations = await LocationReconciler(store).existing_locations(owner_id)
        if not locations:
            raise OnboardingValidationError("Please add at least one business location.")
        location_ids = [stored_location_id(doc) for doc in locations]

        needs_shop_proof = business.get("businessType") in OFFLINE_BUSINESS_TYPES
        if needs_shop_proof:
            for location_id in location_ids:
                video = location_videos.get(location_id)
                if video is None:
                    raise OnboardingValidationError(
                        "Please upload shop proof video for each location."
                    )
                reason = check_file("Shop proof video", MediaKind.VIDEO, video)
                if reason:
                    raise OnboardingValidationError(reason)

        if next_status == BusinessStatus.SUBMITTED:
            result = await validate_submission(business, location_ids, BrandCatalog(store))
            result.raise_for_invalid()

        selfie = await self.media.ingest(
            selfie_video, MediaKind.VIDEO, owner_id, "kyc/selfie", label="Self video"
        )
        proof_videos: dict[str, StoredMedia] = {}
        if needs_shop_proof:
            for location_id in location_ids:
                proof_videos[location_id] = await self.media.ingest(
                    location_videos[location_id],
                    MediaKind.VIDEO,
                    owner_id,
                    f"kyc/location/{safe_object_name(location_id, 'location')}",
                    label="Shop proof video",
                )

        now = utc_now()
        existing_kyc = await store.get_document(KYC_COLLECTION, owner_id)
        kyc_fields = {
            "businessId": owner_id,
            "scriptText": script_text,
            "status": KycStatus.PENDING.value,
            "selfieVideo": _video_document(selfie),
            "updatedAt": now,
        }
        if existing_kyc is None:
            kyc_fields["createdAt"] = now

        batch = store.batch()
        batch.set(KYC_COLLECTION, owner_id, kyc_fields, merge=True)
        for doc in locations:
            location_id = stored_location_id(doc)
            update: dict[str, Any] = {
                "verificationStatus": KycStatus.PENDING.value,
                "updatedAt": now,
            }
            if location_id in proof_videos:
                update["verificationVideo"] = _video_document(proof_videos[location_id])
            batch.set(LOCATIONS_COLLECTION, doc.id, update, merge=True)
        batch.set(
            BUSINESS_COLLECTION,
            owner_id,
            {"status": next_status.value, "updatedAt": now},
            merge=True,
        )
        await batch.commit()

        logger.info(
            "KYC submitted",
            owner_id=owner_id,
            previous_status=current_status,
            status=next_status.value,
            locations=len(locations),
        )
        return KycSubmitResponse(status=next_status)


kyc_service = KycService()
