import enum
import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from app.core.exceptions import OnboardingValidationError
from app.schemas.location import BusinessLocationIn, BusinessLocationOut


class BusinessStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class BusinessType(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    BOTH = "both"


class ShopType(str, enum.Enum):
    AUTHORISED = "authorised shop"
    LOCAL = "local shop"


class BusinessRole(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    EMPLOYEE = "employee"


# Form keys that carry a repeated value
LIST_FIELDS = ("vehicleTypes", "brands")

# Form keys that never map straight onto the business document
NON_DOCUMENT_FIELDS = {
    "status",
    "business_locations",
    "primary_location_id",
    "shop_image_location_id",
}


class BusinessDraftPatch(BaseModel):
    """Sparse update to a business draft.

    Only keys the client actually sent end up in ``model_fields_set``;
    an omitted key leaves the stored value alone while a key sent with an
    empty value clears it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Optional[str] = None

    # Basic info
    business_name: Optional[str] = None
    business_description: Optional[str] = None
    business_type: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    gst_number: Optional[str] = None

    # Category and brands
    business_category: Optional[str] = None
    other_category_name: Optional[str] = None
    vehicle_types: Optional[list[str]] = None
    shop_type: Optional[str] = None
    brands: Optional[list[str]] = None
    suggested_brand_name: Optional[str] = None
    suggested_brand_logo: Optional[str] = None

    # Contact person
    business_role: Optional[str] = None
    name: Optional[str] = None
    contact_no: Optional[str] = None
    whatsapp_no: Optional[str] = None

    # Locations
    business_locations: Optional[list[BusinessLocationIn]] = None
    primary_location_id: Optional[str] = Field(
        None, alias="primaryBusinessLocationId"
    )
    shop_image_location_id: Optional[str] = None

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v):
        return v.lower() if v else v

    @field_validator("gst_number", mode="after")
    @classmethod
    def upper_gst(cls, v):
        return v.upper() if v else v

    def has(self, field_name: str) -> bool:
        return field_name in self.model_fields_set

    @property
    def has_locations(self) -> bool:
        return self.has("business_locations")

    def document_fields(self) -> dict[str, Any]:
        """Present fields that are written straight onto the business document."""
        return self.model_dump(
            by_alias=True, exclude_unset=True, exclude=NON_DOCUMENT_FIELDS
        )

    @classmethod
    def from_form(cls, form) -> "BusinessDraftPatch":
        """Build a patch from multipart form data, keeping key presence."""
        values: dict[str, Any] = {}

        for name, info in cls.model_fields.items():
            key = info.alias or name
            if key not in form or key == "businessLocations":
                continue

            if key in LIST_FIELDS:
                values[key] = [
                    str(item).strip()
                    for item in form.getlist(key)
                    if isinstance(item, str) and item.strip()
                ]
                continue

            raw = form.get(key)
            if isinstance(raw, str):
                values[key] = raw.strip()

        if "businessLocations" in form:
            values["businessLocations"] = parse_locations(form.get("businessLocations"))

        return cls.model_validate(values)


def parse_locations(raw: Any) -> list[BusinessLocationIn]:
    """Parse the JSON location list; entries without an id are skipped."""
    if not isinstance(raw, str) or not raw.strip():
        return []

    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        raise OnboardingValidationError("Invalid business locations.")

    if not isinstance(items, list):
        raise OnboardingValidationError("Invalid business locations.")

    locations = []
    for item in items:
        if not isinstance(item, dict):
            continue
        loc_id = item.get("id")
        if not isinstance(loc_id, str) or not loc_id.strip():
            continue
        try:
            locations.append(BusinessLocationIn.model_validate(item))
        except ValidationError:
            raise OnboardingValidationError("Invalid business locations.")
    return locations


class BusinessDraftOut(BaseModel):
    """Normalised business draft; unset text is "" and unset lists are []."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: BusinessStatus = BusinessStatus.DRAFT
    business_name: str = ""
    business_description: str = ""
    business_category: str = ""
    other_category_name: str = ""
    vehicle_types: list[str] = Field(default_factory=list)
    shop_type: str = ""
    brands: list[str] = Field(default_factory=list)
    suggested_brand_name: str = ""
    suggested_brand_logo: str = ""
    business_type: str = ""
    email: str = ""
    website: str = ""
    gst_number: str = ""
    gst_document: Optional[dict[str, Any]] = None
    business_role: str = ""
    name: str = ""
    contact_no: str = ""
    whatsapp_no: str = ""
    business_logo: Optional[dict[str, Any]] = None
    business_locations: list[BusinessLocationOut] = Field(default_factory=list)
    primary_location_id: str = ""
    primary_shop_image: Optional[dict[str, Any]] = None
    created_at: str = ""
    updated_at: str = ""


class BusinessDraftEnvelope(BaseModel):
    ok: bool = True
    uid: str
    business: Optional[BusinessDraftOut] = None


class DraftWriteResponse(BaseModel):
    ok: bool = True
    status: BusinessStatus
    message: str
