import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_owner
from app.api.deps.database import get_db
from app.api.deps.forms import read_form
from app.core.exceptions import OnboardingError
from app.schemas.kyc import KycEnvelope, KycSubmitResponse
from app.services.kyc import kyc_service
from app.services.media import read_upload

logger = structlog.get_logger(__name__)

router = APIRouter()

LOCATION_VIDEO_PREFIX = "locationVideo_"


@router.get("", response_model=KycEnvelope)
async def get_kyc(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    try:
        kyc = await kyc_service.get_kyc(db, owner_id)
    except OnboardingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return KycEnvelope(kyc=kyc)


@router.post("", response_model=KycSubmitResponse)
async def submit_kyc(
    request: Request,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    """Submit the selfie video and one shop proof video per location.

    Proof videos are sent as ``locationVideo_<locationId>`` form fields.
    """
    try:
        form = await read_form(request)
        script_text = form.get("scriptText")
        location_videos = {}
        for key, value in form.multi_items():
            if not key.startswith(LOCATION_VIDEO_PREFIX):
                continue
            upload = await read_upload(value)
            if upload is not None:
                location_videos[key[len(LOCATION_VIDEO_PREFIX):]] = upload

        return await kyc_service.submit_kyc(
            db,
            owner_id,
            script_text=script_text.strip() if isinstance(script_text, str) else "",
            selfie_video=await read_upload(form.get("selfieVideo")),
            location_videos=location_videos,
        )
    except OnboardingError as e:
        logger.info("KYC submission rejected", owner_id=owner_id, reason=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Failed to submit KYC", owner_id=owner_id, exc_info=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit KYC.",
        )
