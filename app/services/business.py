from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.business import (
    BusinessDraftOut,
    BusinessDraftPatch,
    BusinessStatus,
    DraftWriteResponse,
)
from app.schemas.location import BusinessLocationOut
from app.schemas.media import DraftUploads, MediaKind
from app.services.brands import BrandCatalog
from app.services.document_store import DocumentStore, StoredDocument
from app.services.draft import merge_draft, persisted_fields, utc_now
from app.services.locations import LocationReconciler, stored_location_id
from app.services.media import MediaIngestionService, media_service
from app.services.status import parse_status
from app.services.validation import (
    category_profile,
    category_view,
    check_category_update,
    touches_category,
    validate_submission,
    validate_update,
)

logger = structlog.get_logger(__name__)

BUSINESS_COLLECTION = "business"


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _media(value: Any) -> Optional[dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _location_out(doc: StoredDocument) -> BusinessLocationOut:
    data = doc.data
    return BusinessLocationOut(
        id=stored_location_id(doc),
        full_address=_text(data.get("fullAddress")),
        landmark=_text(data.get("landmark")),
        city=_text(data.get("city")),
        state=_text(data.get("state")),
        pincode=_text(data.get("pincode")),
        geo=_media(data.get("geo")),
        contact_number=_text(data.get("contactNumber")),
        business_hours=_media(data.get("businessHours")),
        shop_image=_media(data.get("shopImage")),
        is_primary=data.get("isPrimary") is True,
        verification_status=_text(data.get("verificationStatus")),
    )


def normalize_business(
    data: dict[str, Any], locations: list[StoredDocument]
) -> BusinessDraftOut:
    """Shape a stored business document for clients; never returns nulls for text."""
    ordered = sorted(
        locations,
        key=lambda doc: (
            doc.data.get("position") if isinstance(doc.data.get("position"), int) else 0,
            doc.id,
        ),
    )
    return BusinessDraftOut(
        status=parse_status(data.get("status")) or BusinessStatus.DRAFT,
        business_name=_text(data.get("businessName")),
        business_description=_text(data.get("businessDescription")),
        business_category=_text(data.get("businessCategory")),
        other_category_name=_text(data.get("otherCategoryName")),
        vehicle_types=_text_list(data.get("vehicleTypes")),
        shop_type=_text(data.get("shopType")),
        brands=_text_list(data.get("brands")),
        suggested_brand_name=_text(data.get("suggestedBrandName")),
        suggested_brand_logo=_text(data.get("suggestedBrandLogo")),
        business_type=_text(data.get("businessType")),
        email=_text(data.get("email")),
        website=_text(data.get("website")),
        gst_number=_text(data.get("gstNumber")),
        gst_document=_media(data.get("gstDocument")),
        business_role=_text(data.get("businessRole")),
        name=_text(data.get("name")),
        contact_no=_text(data.get("contactNo")),
        whatsapp_no=_text(data.get("whatsappNo")),
        business_logo=_media(data.get("businessLogo")),
        business_locations=[_location_out(doc) for doc in ordered],
        primary_location_id=_text(data.get("primaryLocationId")),
        primary_shop_image=_media(data.get("primaryShopImage")),
        created_at=_text(data.get("createdAt")),
        updated_at=_text(data.get("updatedAt")),
    )


def denormalized_business_fields(document: dict[str, Any]) -> dict[str, Any]:
    """Business fields copied onto each location document."""
    logo = document.get("businessLogo")
    return {
        "businessName": _text(document.get("businessName")),
        "businessLogoUrl": _text(logo.get("url")) if isinstance(logo, dict) else "",
        "businessCategory": _text(document.get("businessCategory")),
    }


class BusinessOnboardingService:
    """Service layer for the business registration draft."""

    def __init__(self, media: Optional[MediaIngestionService] = None):
        self.media = media or media_service

    async def get_draft(
        self, db: AsyncSession, owner_id: str
    ) -> Optional[BusinessDraftOut]:
        """Get the owner's normalised draft, or None when none exists."""
        store = DocumentStore(db)
        data = await store.get_document(BUSINESS_COLLECTION, owner_id)
        if data is None:
            logger.info("Business draft not found", owner_id=owner_id)
            return None

        locations = await LocationReconciler(store).existing_locations(owner_id)
        return normalize_business(data, locations)

    async def _store_uploads(
        self, owner_id: str, patch: BusinessDraftPatch, uploads: DraftUploads
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if uploads.business_logo is not None:
            stored = await self.media.ingest(
                uploads.business_logo,
                MediaKind.IMAGE,
                owner_id,
                "business/logo",
                label="Business logo",
            )
            fields["businessLogo"] = stored.to_document()
        if uploads.gst_document is not None:
            stored = await self.media.ingest(
                uploads.gst_document,
                MediaKind.DOCUMENT,
                owner_id,
                "business/gst",
                label="GST document",
            )
            fields["gstDocument"] = stored.to_document()
        if uploads.shop_image is not None:
            stored = await self.media.ingest(
                uploads.shop_image,
                MediaKind.IMAGE,
                owner_id,
                "business/shop",
                label="Shop image",
            )
            fields["primaryShopImage"] = {
                **stored.to_document(),
                "locationId": patch.shop_image_location_id,
            }
        return fields

    async def save_draft(
        self,
        db: AsyncSession,
        owner_id: str,
        patch: BusinessDraftPatch,
        uploads: Optional[DraftUploads] = None,
    ) -> DraftWriteResponse:
        """Apply a partial update from any onboarding step."""
        uploads = uploads or DraftUploads()
        validate_update(patch, uploads).raise_for_invalid()

        store = DocumentStore(db)
        reconciler = LocationReconciler(store)

        doc_patch = patch.document_fields()
        if patch.has_locations:
            doc_patch["primaryLocationId"] = patch.primary_location_id or ""

        previous = await store.get_document(BUSINESS_COLLECTION, owner_id)
        check_category_update(previous, doc_patch).raise_for_invalid()
        if touches_category(doc_patch):
            profile = category_profile(category_view(previous, doc_patch))
            if profile is not None:
                doc_patch.update(profile.document_fields())
        previous_status = parse_status(previous.get("status")) if previous else None
        now = utc_now()

        preview = merge_draft(previous, doc_patch, patch.status, owner_id, now=now)
        submitting = preview["status"] == BusinessStatus.SUBMITTED.value and (
            previous_status in (None, BusinessStatus.DRAFT)
        )
        if submitting:
            if patch.has_locations:
                location_ids = [loc.id for loc in patch.business_locations or []]
            else:
                location_ids = [
                    stored_location_id(doc)
                    for doc in await reconciler.existing_locations(owner_id)
                ]
            result = await validate_submission(
                preview, location_ids, BrandCatalog(store)
            )
            result.raise_for_invalid()

        # Files go to storage only once every check has passed
        doc_patch.update(await self._store_uploads(owner_id, patch, uploads))

        document = merge_draft(previous, doc_patch, patch.status, owner_id, now=now)
        await store.set_document(
            BUSINESS_COLLECTION,
            owner_id,
            persisted_fields(document, doc_patch, is_new=previous is None),
            merge=True,
        )
        logger.info(
            "Business draft saved",
            owner_id=owner_id,
            status=document["status"],
            updated_fields=sorted(doc_patch),
        )

        if patch.has_locations:
            await reconciler.reconcile(
                owner_id,
                patch.business_locations or [],
                patch.primary_location_id or "",
                primary_image=doc_patch.get("primaryShopImage"),
                business_fields=denormalized_business_fields(document),
                now=now,
            )

        return DraftWriteResponse(
            status=document["status"],
            message="Business submitted." if submitting else "Draft saved.",
        )


business_service = BusinessOnboardingService()
