from typing import Any, Optional

import structlog

from app.core.config import settings
from app.core.exceptions import OnboardingValidationError
from app.core.redis import redis_cache
from app.schemas.brand import BrandOut, BrandReference, BrandSource
from app.services.document_store import DocumentStore
from app.services.validation import VEHICLE_TYPES

logger = structlog.get_logger(__name__)

BRANDS_COLLECTION = "brands"
VEHICLE_BRANDS_COLLECTION = "vehicleBrands"
ACTIVE_BRAND_STATUS = "ACTIVE"


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _vehicle_type(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value in VEHICLE_TYPES else None


def _brand_out(doc_id: str, data: dict[str, Any]) -> BrandOut:
    return BrandOut(
        id=doc_id,
        name=_text(data.get("name")),
        logo_url=_text(data.get("logoUrl")) or None,
        category=_text(data.get("category")) or None,
        status=_text(data.get("status")) or None,
    )


def _vehicle_brand_out(doc_id: str, data: dict[str, Any]) -> BrandOut:
    return BrandOut(
        id=doc_id,
        name=_text(data.get("name")),
        logo_url=_text(data.get("logoUrl")) or None,
        vehicle_type=_vehicle_type(data.get("vehicleType"))
        or _vehicle_type(data.get("category")),
    )


class BrandCatalog:
    """Read-only view over the brand and vehicle-brand catalogs."""

    def __init__(self, store: DocumentStore, cache=redis_cache):
        self.store = store
        self.cache = cache

    async def lookup_brands(self, brand_ids: list[str]) -> dict[str, BrandReference]:
        """Bulk lookup; ids not in the catalog are absent from the result."""
        docs = await self.store.get_documents(BRANDS_COLLECTION, brand_ids)
        return {
            doc_id: BrandReference(
                id=doc_id, active=_text(data.get("status")) == ACTIVE_BRAND_STATUS
            )
            for doc_id, data in docs.items()
        }

    async def lookup_brand(self, brand_id: str) -> Optional[BrandReference]:
        found = await self.lookup_brands([brand_id])
        return found.get(brand_id)

    async def list_brands(self, source: str, category: str = "") -> list[BrandOut]:
        """Active brands for a source, optionally filtered by category."""
        try:
            brand_source = BrandSource(source)
        except ValueError:
            raise OnboardingValidationError("Invalid source.")

        cache_key = f"brands:{brand_source.value}:{category}"
        cached = await self.cache.get_json(cache_key)
        if cached is not None:
            return [BrandOut.model_validate(item) for item in cached]

        if brand_source == BrandSource.BRANDS:
            docs = await self.store.query_where(
                BRANDS_COLLECTION, "status", ACTIVE_BRAND_STATUS
            )
            brands = [_brand_out(doc.id, doc.data) for doc in docs]
            if category:
                brands = [b for b in brands if b.category == category]
        else:
            docs = await self.store.query_where(
                VEHICLE_BRANDS_COLLECTION, "isActive", True
            )
            brands = [_vehicle_brand_out(doc.id, doc.data) for doc in docs]

        brands = [b for b in brands if b.id and b.name]

        await self.cache.set_json(
            cache_key,
            [b.model_dump() for b in brands],
            ttl=settings.BRAND_CACHE_TTL_SECONDS,
        )
        logger.info(
            "Brands loaded", source=brand_source.value, category=category, count=len(brands)
        )
        return brands
