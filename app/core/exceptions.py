from fastapi import status


class OnboardingError(Exception):
    """Base class for errors that carry a caller-visible message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthError(OnboardingError):
    """Missing or invalid bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class OnboardingValidationError(OnboardingError):
    """A validation rule failed; the message names the first failing rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class MediaError(OnboardingError):
    status_code = status.HTTP_400_BAD_REQUEST


class MediaTooLargeError(MediaError):
    pass


class MediaTypeError(MediaError):
    pass


class StoreUnavailableError(MediaError):
    """The object store rejected or failed a write."""

    status_code = status.HTTP_502_BAD_GATEWAY


class StatusConflictError(OnboardingError):
    status_code = status.HTTP_409_CONFLICT


class InvalidStatusTransitionError(OnboardingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str, actor: str):
        self.current = current
        self.target = target
        self.actor = actor
        super().__init__(
            f"Cannot move business from {current} to {target} as {actor}."
        )


class DocumentStoreError(OnboardingError):
    """A document read or write failed; batches leave no partial state."""
