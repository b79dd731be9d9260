"""Validation rules for business onboarding.

Every rule is a small function returning ``None`` when it passes or the
caller-facing message when it fails. Rules run in a fixed order and the
first failure is reported, so callers get exactly one message.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from app.core.config import settings
from app.core.exceptions import OnboardingValidationError
from app.schemas.business import BusinessRole, BusinessType, ShopType
from app.schemas.location import BusinessHours, BusinessLocationIn
from app.schemas.media import DraftUploads, MediaKind, UploadedFile
from app.utils.validation import (
    WEEKDAYS,
    minutes_of_day,
    validate_email_format,
    validate_gst_number,
    validate_phone_number,
    validate_time_of_day,
    validate_timezone,
    validate_url_format,
)

BUSINESS_CATEGORIES = (
    "Battery Shop",
    "Key Maker Shop",
    "Lubricants Shop",
    "Machanic Shop",
    "Puncture Shop",
    "Spare parts shop",
    "Towing Van",
    "Tyre Shop",
    "Others",
)

VEHICLE_CATEGORIES = frozenset(
    {"Key Maker Shop", "Puncture Shop", "Towing Van", "Others"}
)

VEHICLE_TYPES = (
    "two-wheeler",
    "four-wheeler",
    "two-wheeler electric",
    "four-wheeler electric",
)

OTHERS_CATEGORY = "Others"
LOCAL_SHOP_BRAND_LIMIT = 5

# Location ids become document keys and object folders
LOCATION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")

BUSINESS_TYPES = tuple(t.value for t in BusinessType)
SHOP_TYPES = tuple(t.value for t in ShopType)
BUSINESS_ROLES = tuple(r.value for r in BusinessRole)
OFFLINE_BUSINESS_TYPES = frozenset({BusinessType.OFFLINE.value, BusinessType.BOTH.value})


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass: valid, or invalid with one reason."""

    reason: Optional[str] = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def invalid(cls, reason: str) -> "ValidationResult":
        return cls(reason=reason)

    @property
    def is_valid(self) -> bool:
        return self.reason is None

    def raise_for_invalid(self) -> None:
        if self.reason is not None:
            raise OnboardingValidationError(self.reason)


Rule = Callable[[], Optional[str]]


def first_failure(rules: Iterable[Rule]) -> ValidationResult:
    for rule in rules:
        reason = rule()
        if reason:
            return ValidationResult.invalid(reason)
    return ValidationResult.valid()


# ---------------------------------------------------------------------------
# Category profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VehicleCategoryProfile:
    """Categories served by vehicle type (no shop type, no brands)."""

    category: str
    vehicle_types: tuple[str, ...]
    other_category_name: str = ""

    def document_fields(self) -> dict[str, Any]:
        return {
            "businessCategory": self.category,
            "otherCategoryName": self.other_category_name,
            "vehicleTypes": list(self.vehicle_types),
            "shopType": "",
            "brands": [],
            "suggestedBrandName": "",
            "suggestedBrandLogo": "",
        }


@dataclass(frozen=True)
class ShopCategoryProfile:
    """Categories served by shop type and brands."""

    category: str
    shop_type: str
    brands: tuple[str, ...]

    def document_fields(self) -> dict[str, Any]:
        return {
            "businessCategory": self.category,
            "otherCategoryName": "",
            "vehicleTypes": [],
            "shopType": self.shop_type,
            "brands": list(self.brands),
        }


CategoryProfile = Union[VehicleCategoryProfile, ShopCategoryProfile]


def is_vehicle_category(category: str) -> bool:
    return category in VEHICLE_CATEGORIES


def category_profile(fields: Mapping[str, Any]) -> Optional[CategoryProfile]:
    """Tag a validated field set with its category branch.

    Returns None when the fields carry no category.
    """
    category = fields.get("businessCategory") or ""
    if not category:
        return None

    if is_vehicle_category(category):
        return VehicleCategoryProfile(
            category=category,
            vehicle_types=tuple(fields.get("vehicleTypes") or ()),
            other_category_name=(
                fields.get("otherCategoryName") or ""
                if category == OTHERS_CATEGORY
                else ""
            ),
        )
    return ShopCategoryProfile(
        category=category,
        shop_type=fields.get("shopType") or "",
        brands=tuple(fields.get("brands") or ()),
    )


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


def _check_business_type(fields: Mapping[str, Any]) -> Optional[str]:
    value = fields.get("businessType")
    if value and value not in BUSINESS_TYPES:
        return "Business type must be online, offline, or both."
    return None


def _check_contact_formats(fields: Mapping[str, Any]) -> Optional[str]:
    if not validate_email_format(fields.get("email") or ""):
        return "Please enter a valid email."
    if not validate_url_format(fields.get("website") or ""):
        return "Please provide a valid website URL."

    role = fields.get("businessRole")
    if role and role not in BUSINESS_ROLES:
        return "Business role must be owner, manager, or employee."

    if not validate_gst_number(fields.get("gstNumber") or ""):
        return "Please enter a valid GST number."
    if not validate_phone_number(fields.get("contactNo") or ""):
        return "Please enter a valid contact number."
    if not validate_phone_number(fields.get("whatsappNo") or ""):
        return "Please enter a valid WhatsApp number."
    return None


def _has_suggested_brand(fields: Mapping[str, Any]) -> bool:
    return bool(fields.get("suggestedBrandName")) and bool(
        fields.get("suggestedBrandLogo")
    )


def _check_suggested_brand(fields: Mapping[str, Any]) -> Optional[str]:
    name = fields.get("suggestedBrandName") or ""
    logo = fields.get("suggestedBrandLogo") or ""
    if bool(name) != bool(logo):
        return "Please provide both suggested brand name and logo URL."
    if logo and not validate_url_format(logo):
        return "Suggested brand logo URL is invalid."
    return None


def _check_vehicle_branch(fields: Mapping[str, Any]) -> Optional[str]:
    vehicle_types = fields.get("vehicleTypes") or []
    if not vehicle_types:
        return "Please select at least one vehicle type."
    for vehicle_type in vehicle_types:
        if vehicle_type not in VEHICLE_TYPES:
            return "Invalid vehicle type."
    if fields.get("shopType") or fields.get("brands"):
        return "Shop type and brands do not apply to this category."
    if fields.get("suggestedBrandName") or fields.get("suggestedBrandLogo"):
        return "Suggested brands do not apply to this category."
    return None


def _check_shop_branch(fields: Mapping[str, Any]) -> Optional[str]:
    shop_type = fields.get("shopType") or ""
    if not shop_type:
        return "Please select your shop type."
    if shop_type not in SHOP_TYPES:
        return "Invalid shop type."
    if fields.get("vehicleTypes"):
        return "Vehicle types do not apply to this category."

    brands = list(fields.get("brands") or [])
    if len(set(brands)) != len(brands):
        return "Each brand can be selected only once."

    suggested = _has_suggested_brand(fields)
    if shop_type == ShopType.AUTHORISED.value:
        if not suggested and len(brands) != 1:
            return "Please select exactly one brand."
    else:
        if not brands and not suggested:
            return "Please select at least one brand."
        if len(brands) > LOCAL_SHOP_BRAND_LIMIT:
            return f"You can select up to {LOCAL_SHOP_BRAND_LIMIT} brands."

    return _check_suggested_brand(fields)


def _check_category(fields: Mapping[str, Any]) -> Optional[str]:
    category = fields.get("businessCategory")
    if not category:
        # Pair edits without a category step are still checked
        return _check_suggested_brand(fields)

    if category not in BUSINESS_CATEGORIES:
        return "Invalid business category."
    if category == OTHERS_CATEGORY and not fields.get("otherCategoryName"):
        return "Please enter category name."
    if is_vehicle_category(category):
        return _check_vehicle_branch(fields)
    return _check_shop_branch(fields)


CATEGORY_FIELDS = (
    "businessCategory",
    "otherCategoryName",
    "vehicleTypes",
    "shopType",
    "brands",
    "suggestedBrandName",
    "suggestedBrandLogo",
)


def touches_category(fields: Mapping[str, Any]) -> bool:
    return any(key in fields for key in CATEGORY_FIELDS)


def category_view(
    previous: Optional[Mapping[str, Any]], fields: Mapping[str, Any]
) -> dict[str, Any]:
    """Category fields as they will be stored after applying ``fields``.

    A patch that names a category replaces the whole branch; otherwise the
    patch is laid over the stored branch.
    """
    view: dict[str, Any] = {}
    if "businessCategory" not in fields and previous:
        view.update({k: previous[k] for k in CATEGORY_FIELDS if k in previous})
    view.update({k: fields[k] for k in CATEGORY_FIELDS if k in fields})
    return view


def check_category_update(
    previous: Optional[Mapping[str, Any]], fields: Mapping[str, Any]
) -> ValidationResult:
    """Category rules against the stored branch merged with a sparse patch."""
    if not touches_category(fields):
        return ValidationResult.valid()
    view = category_view(previous, fields)
    return first_failure([lambda: _check_category(view)])


def field_rules(fields: Mapping[str, Any]) -> list[Rule]:
    return [
        lambda: _check_business_type(fields),
        lambda: _check_contact_formats(fields),
        lambda: _check_category(fields),
    ]


# ---------------------------------------------------------------------------
# File rules
# ---------------------------------------------------------------------------


def max_upload_size(kind: MediaKind) -> int:
    if kind == MediaKind.VIDEO:
        return settings.MAX_VIDEO_UPLOAD_SIZE
    if kind == MediaKind.DOCUMENT:
        return settings.MAX_DOCUMENT_UPLOAD_SIZE
    return settings.MAX_IMAGE_UPLOAD_SIZE


def accepts_content_type(kind: MediaKind, content_type: str) -> bool:
    content_type = (content_type or "").lower()
    if kind == MediaKind.VIDEO:
        return content_type.startswith("video/")
    if kind == MediaKind.DOCUMENT:
        return content_type == "application/pdf" or content_type.startswith("image/")
    return content_type.startswith("image/")


_TYPE_NOUNS = {
    MediaKind.IMAGE: "an image",
    MediaKind.DOCUMENT: "a PDF or an image",
    MediaKind.VIDEO: "a video",
}


def check_file_size(label: str, kind: MediaKind, size: int) -> Optional[str]:
    limit = max_upload_size(kind)
    if size > limit:
        return f"{label} must be under {limit // (1024 * 1024)}MB."
    return None


def check_file_type(label: str, kind: MediaKind, content_type: str) -> Optional[str]:
    if not accepts_content_type(kind, content_type):
        return f"{label} must be {_TYPE_NOUNS[kind]}."
    return None


def check_file(label: str, kind: MediaKind, upload: Optional[UploadedFile]) -> Optional[str]:
    if upload is None:
        return None
    return check_file_size(label, kind, upload.size) or check_file_type(
        label, kind, upload.content_type
    )


def file_rules(uploads: DraftUploads, shop_image_location_id: str) -> list[Rule]:
    def shop_image_target():
        if uploads.shop_image is not None and not shop_image_location_id:
            return "Shop image location is missing."
        return None

    return [
        lambda: check_file("Business logo", MediaKind.IMAGE, uploads.business_logo),
        lambda: check_file("GST document", MediaKind.DOCUMENT, uploads.gst_document),
        lambda: check_file("Shop image", MediaKind.IMAGE, uploads.shop_image),
        shop_image_target,
    ]


# ---------------------------------------------------------------------------
# Location rules
# ---------------------------------------------------------------------------


def _check_business_hours(hours: Optional[BusinessHours]) -> Optional[str]:
    if hours is None:
        return None
    if not validate_timezone(hours.timezone):
        return "Invalid business hours timezone."

    seen = set()
    for entry in hours.days:
        if entry.day not in WEEKDAYS:
            return "Invalid business hours day."
        if entry.day in seen:
            return "Business hours list a day more than once."
        seen.add(entry.day)
        if entry.closed:
            continue
        if not validate_time_of_day(entry.open) or not validate_time_of_day(entry.close):
            return "Business hours must use HH:MM times."
        if minutes_of_day(entry.open) >= minutes_of_day(entry.close):
            return "Opening time must be before closing time."
    return None


def _check_location(location: BusinessLocationIn) -> Optional[str]:
    if not LOCATION_ID_PATTERN.fullmatch(location.id):
        return "Invalid location id."
    if not location.full_address:
        return "Please enter address for each location."
    if location.geo is None:
        return "Please pin each location on the map."
    if not (-90 <= location.geo.latitude <= 90) or not (
        -180 <= location.geo.longitude <= 180
    ):
        return "Location coordinates are invalid."
    if not validate_phone_number(location.contact_number):
        return "Please enter a valid contact number for each location."
    return _check_business_hours(location.business_hours)


def check_locations(
    locations: list[BusinessLocationIn], primary_location_id: str
) -> Optional[str]:
    if not locations:
        return "Please add at least one business location."

    ids = [loc.id for loc in locations]
    if len(set(ids)) != len(ids):
        return "Each location must have a unique id."

    for location in locations:
        reason = _check_location(location)
        if reason:
            return reason

    if not primary_location_id:
        return "Please select a primary location."
    if primary_location_id not in ids:
        return "Primary location is invalid."
    return None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_update(patch, uploads: Optional[DraftUploads] = None) -> ValidationResult:
    """Validate a sparse draft update (rules 1-5, 7, 8; no catalog lookups)."""
    uploads = uploads or DraftUploads()
    fields = patch.model_dump(
        by_alias=True, exclude_unset=True, exclude={"business_locations"}
    )

    rules = field_rules(fields)
    rules += file_rules(uploads, patch.shop_image_location_id or "")
    if patch.has_locations:
        rules.append(
            lambda: check_locations(
                patch.business_locations or [], patch.primary_location_id or ""
            )
        )
    return first_failure(rules)


_REQUIRED_ON_SUBMIT = (
    ("businessName", "Business name is required."),
    ("businessDescription", "Business description is required."),
    ("businessCategory", "Please select a business category."),
    ("businessType", "Please select a business type."),
    ("email", "Email is required."),
    ("name", "Name is required."),
    ("contactNo", "Contact number is required."),
)


def _check_required(document: Mapping[str, Any]) -> Optional[str]:
    for key, message in _REQUIRED_ON_SUBMIT:
        if not document.get(key):
            return message
    return None


def _check_submission_locations(
    document: Mapping[str, Any], location_ids: list[str]
) -> Optional[str]:
    if document.get("businessType") not in OFFLINE_BUSINESS_TYPES:
        return None
    if not location_ids:
        return "Please add at least one business location."
    primary = document.get("primaryLocationId") or ""
    if not primary or primary not in location_ids:
        return "Please select a primary location."
    return None


def check_submission(
    document: Mapping[str, Any], location_ids: list[str]
) -> ValidationResult:
    """Completeness and consistency of a merged document (synchronous part)."""
    rules: list[Rule] = [lambda: _check_required(document)]
    rules += field_rules(document)
    rules.append(lambda: _check_submission_locations(document, location_ids))
    return first_failure(rules)


async def check_brands_active(brand_ids: list[str], catalog) -> ValidationResult:
    """Rule 6: every brand id resolves to an active catalog entry."""
    if not brand_ids:
        return ValidationResult.valid()

    found = await catalog.lookup_brands(brand_ids)
    for brand_id in brand_ids:
        reference = found.get(brand_id)
        if reference is None:
            return ValidationResult.invalid("Invalid brand selection.")
        if not reference.active:
            return ValidationResult.invalid("Selected brand is no longer available.")
    return ValidationResult.valid()


async def validate_submission(
    document: Mapping[str, Any], location_ids: list[str], catalog
) -> ValidationResult:
    """Full submit-path validation of a merged document."""
    result = check_submission(document, location_ids)
    if not result.is_valid:
        return result

    profile = category_profile(document)
    if isinstance(profile, ShopCategoryProfile):
        return await check_brands_active(list(profile.brands), catalog)
    return ValidationResult.valid()
