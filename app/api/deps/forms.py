from fastapi import Request
from starlette.datastructures import FormData
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.core.exceptions import OnboardingValidationError


async def read_form(request: Request) -> FormData:
    """Parse the request body as form data; a malformed body is a validation error."""
    try:
        return await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        raise OnboardingValidationError("Invalid form data.") from e
