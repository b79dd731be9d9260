import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BrandSource(str, enum.Enum):
    BRANDS = "brands"
    VEHICLE_BRANDS = "vehicleBrands"


class BrandReference(BaseModel):
    """Catalog entry as seen by validation: exists, and whether it is active."""

    id: str
    active: bool


class BrandOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    logo_url: Optional[str] = Field(None, description="Brand logo URL")
    category: Optional[str] = Field(None, description="Shop category the brand belongs to")
    vehicle_type: Optional[str] = Field(None, description="Vehicle type for vehicle brands")
    status: Optional[str] = None


class BrandListResponse(BaseModel):
    ok: bool = True
    brands: list[BrandOut] = Field(default_factory=list)
