import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MediaKind(str, enum.Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"


@dataclass
class UploadedFile:
    """An uploaded file fully read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class DraftUploads:
    """Files that may accompany a draft write."""

    business_logo: Optional[UploadedFile] = None
    gst_document: Optional[UploadedFile] = None
    shop_image: Optional[UploadedFile] = None

    def __bool__(self) -> bool:
        return any((self.business_logo, self.gst_document, self.shop_image))


class StoredMedia(BaseModel):
    """Reference to an object held by the object store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    path: str = Field(..., description="Object path inside the store")
    url: str = Field(..., description="Public URL of the object")
    name: str = Field("", description="Original file name")
    content_type: str = Field("", description="MIME type of the stored bytes")
    size: int = Field(0, ge=0, description="Size in bytes")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class StoredObject(BaseModel):
    """What the object store returns for a successful write."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    path: str
    public_url: str
    cache_control: Optional[str] = None
