from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthError
from app.services.auth import auth_service

logger = structlog.get_logger(__name__)

# HTTP Bearer token extractor; a missing header is reported as 401, not 403
security = HTTPBearer(auto_error=False)


async def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Get the authenticated owner id from the bearer token."""
    token = credentials.credentials if credentials else None
    try:
        uid = await auth_service.verify_token(token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    structlog.contextvars.bind_contextvars(owner_id=uid)
    return uid
