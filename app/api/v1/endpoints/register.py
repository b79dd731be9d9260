import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_owner
from app.api.deps.database import get_db
from app.api.deps.forms import read_form
from app.core.exceptions import OnboardingError
from app.schemas.business import (
    BusinessDraftEnvelope,
    BusinessDraftPatch,
    DraftWriteResponse,
)
from app.schemas.media import DraftUploads
from app.services.business import business_service
from app.services.media import read_upload

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=BusinessDraftEnvelope)
async def get_registration(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    """Get the caller's business draft, or ``business: null`` if none exists."""
    try:
        business = await business_service.get_draft(db, owner_id)
    except OnboardingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Failed to load business draft", owner_id=owner_id, exc_info=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load business.",
        )
    return BusinessDraftEnvelope(uid=owner_id, business=business)


@router.post("", response_model=DraftWriteResponse)
async def save_registration(
    request: Request,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    """Save a partial update from any onboarding step as multipart form data."""
    try:
        form = await read_form(request)
        patch = BusinessDraftPatch.from_form(form)
        uploads = DraftUploads(
            business_logo=await read_upload(form.get("businessLogo")),
            gst_document=await read_upload(form.get("gstDocument")),
            shop_image=await read_upload(form.get("shopImage")),
        )
        return await business_service.save_draft(db, owner_id, patch, uploads)
    except OnboardingError as e:
        logger.info(
            "Business draft rejected", owner_id=owner_id, reason=e.message
        )
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Failed to save business draft", owner_id=owner_id, exc_info=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save business.",
        )
