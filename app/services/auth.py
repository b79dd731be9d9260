import asyncio
from typing import Optional

import structlog
from descope import AuthException, DescopeClient

from app.core.config import settings
from app.core.exceptions import AuthError

logger = structlog.get_logger(__name__)

DEV_BYPASS_TOKEN = "dev"

# Initialize Descope client (only if configured)
descope_client = None
if settings.DESCOPE_PROJECT_ID:
    try:
        descope_client = DescopeClient(
            project_id=settings.DESCOPE_PROJECT_ID,
            management_key=settings.DESCOPE_MANAGEMENT_KEY,
        )
        logger.info(
            "Descope client initialized",
            project_id=settings.DESCOPE_PROJECT_ID[:4] + "***",
        )
    except Exception as e:
        logger.error("Failed to initialize Descope client", error=str(e))
        descope_client = None


class AuthService:
    """Resolves a bearer token to the owner's user id."""

    def __init__(self, client: Optional[DescopeClient] = None):
        self._client = client

    @property
    def client(self) -> Optional[DescopeClient]:
        return self._client if self._client is not None else descope_client

    def _bypass_allowed(self) -> bool:
        return settings.DEV_BYPASS_AUTH and not settings.is_production

    async def verify_token(self, token: Optional[str]) -> str:
        """
        Validate a session token and return the user id it names.

        Args:
            token: Raw bearer token, without the ``Bearer`` prefix

        Returns:
            str: The authenticated owner id

        Raises:
            AuthError: If the token is missing or fails validation
        """
        token = (token or "").strip()
        if not token:
            raise AuthError("Missing authentication token.")

        if token == DEV_BYPASS_TOKEN and self._bypass_allowed():
            logger.warning("Using development auth bypass", uid=settings.DEV_BYPASS_UID)
            return settings.DEV_BYPASS_UID

        client = self.client
        if client is None:
            logger.error("Descope not configured, rejecting token")
            raise AuthError("Invalid authentication token.")

        try:
            claims = await asyncio.to_thread(client.validate_session, token)
        except AuthException as e:
            logger.info("Descope rejected session token", error=str(e))
            raise AuthError("Invalid authentication token.")
        except Exception as e:
            logger.error("Unexpected authentication error", error=str(e))
            raise AuthError("Invalid authentication token.")

        uid = None
        if isinstance(claims, dict):
            uid = claims.get("sub") or claims.get("userId")
        if not isinstance(uid, str) or not uid:
            logger.error("No user ID found in session token")
            raise AuthError("Invalid authentication token.")

        return uid


auth_service = AuthService()
