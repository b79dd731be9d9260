import enum
from typing import Any, Optional

from pydantic import BaseModel

from app.schemas.business import BusinessStatus


class KycStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class KycEnvelope(BaseModel):
    ok: bool = True
    kyc: Optional[dict[str, Any]] = None


class KycSubmitResponse(BaseModel):
    ok: bool = True
    message: str = "KYC submitted."
    status: BusinessStatus
