from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_owner
from app.api.deps.database import get_db
from app.core.exceptions import OnboardingError
from app.schemas.brand import BrandListResponse, BrandSource
from app.services.brands import BrandCatalog
from app.services.document_store import DocumentStore

router = APIRouter()


@router.get("", response_model=BrandListResponse, response_model_exclude_none=True)
async def list_brands(
    source: str = Query(BrandSource.BRANDS.value, description="brands or vehicleBrands"),
    category: str = Query("", description="Only brands in this category"),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    """List active brands for the onboarding pickers."""
    catalog = BrandCatalog(DocumentStore(db))
    try:
        brands = await catalog.list_brands(source, category.strip())
    except OnboardingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return BrandListResponse(brands=brands)
