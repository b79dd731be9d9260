from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    if v is None:
        return ""
    return v


class GeoPoint(_CamelModel):
    """Latitude/longitude pair; range checks happen in the rule engine."""

    latitude: float
    longitude: float


class DaySchedule(_CamelModel):
    day: str = Field(..., description="Lower-case weekday name, e.g. monday")
    open: str = Field("", description="Opening time, HH:MM")
    close: str = Field("", description="Closing time, HH:MM")
    closed: bool = Field(False, description="Shop is closed all day")

    @field_validator("day", "open", "close", mode="before")
    @classmethod
    def strip_text(cls, v):
        v = _strip(v)
        return v.lower() if isinstance(v, str) else v


class BusinessHours(_CamelModel):
    """Weekly opening schedule for one location."""

    timezone: str = Field("Asia/Kolkata", description="IANA timezone name")
    days: list[DaySchedule] = Field(default_factory=list)


class BusinessLocationIn(_CamelModel):
    """One entry of the client-supplied location list."""

    id: str = Field(..., min_length=1)
    full_address: str = ""
    landmark: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    geo: Optional[GeoPoint] = None
    contact_number: str = ""
    business_hours: Optional[BusinessHours] = None

    @field_validator(
        "id",
        "full_address",
        "landmark",
        "city",
        "state",
        "pincode",
        "contact_number",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    def to_document_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


class BusinessLocationOut(_CamelModel):
    id: str = ""
    full_address: str = ""
    landmark: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    geo: Optional[GeoPoint] = None
    contact_number: str = ""
    business_hours: Optional[BusinessHours] = None
    shop_image: Optional[dict[str, Any]] = None
    is_primary: bool = False
    verification_status: str = ""
