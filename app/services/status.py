"""Business status state machine.

    draft -> submitted -> pending -> verified | rejected
             submitted ----------> verified | rejected
    rejected -> draft   (owner resubmits)
"""

import enum
from typing import Any, Optional

import structlog

from app.core.exceptions import (
    InvalidStatusTransitionError,
    OnboardingValidationError,
    StatusConflictError,
)
from app.schemas.business import BusinessStatus

logger = structlog.get_logger(__name__)


class Actor(str, enum.Enum):
    OWNER = "owner"
    MODERATOR = "moderator"


ALLOWED_TRANSITIONS: dict[tuple[BusinessStatus, BusinessStatus], Actor] = {
    (BusinessStatus.DRAFT, BusinessStatus.SUBMITTED): Actor.OWNER,
    (BusinessStatus.SUBMITTED, BusinessStatus.PENDING): Actor.OWNER,
    (BusinessStatus.REJECTED, BusinessStatus.DRAFT): Actor.OWNER,
    (BusinessStatus.SUBMITTED, BusinessStatus.VERIFIED): Actor.MODERATOR,
    (BusinessStatus.SUBMITTED, BusinessStatus.REJECTED): Actor.MODERATOR,
    (BusinessStatus.PENDING, BusinessStatus.VERIFIED): Actor.MODERATOR,
    (BusinessStatus.PENDING, BusinessStatus.REJECTED): Actor.MODERATOR,
}


def parse_status(value: Any) -> Optional[BusinessStatus]:
    """Return the status for a stored value, or None when it is not one."""
    try:
        return BusinessStatus(value)
    except (ValueError, TypeError):
        return None


def resolve_next_status(existing: Any, requested: Any) -> BusinessStatus:
    """Status written by an owner update.

    Once a business has left draft, ordinary edits keep its status; the only
    owner move out of a locked status is rejected -> draft.
    """
    current = parse_status(existing)
    wants_submit = requested == BusinessStatus.SUBMITTED.value

    if current is None:
        return BusinessStatus.SUBMITTED if wants_submit else BusinessStatus.DRAFT
    if current == BusinessStatus.REJECTED and requested == BusinessStatus.DRAFT.value:
        return BusinessStatus.DRAFT
    if current != BusinessStatus.DRAFT:
        return current
    return BusinessStatus.SUBMITTED if wants_submit else BusinessStatus.DRAFT


def is_allowed(current: BusinessStatus, target: BusinessStatus, actor: Actor) -> bool:
    return ALLOWED_TRANSITIONS.get((current, target)) == actor


def check_transition(current: Any, target: BusinessStatus, actor: Actor) -> BusinessStatus:
    """Raise unless ``actor`` may move a business from ``current`` to ``target``."""
    parsed = parse_status(current) or BusinessStatus.DRAFT
    if not is_allowed(parsed, target, actor):
        logger.warning(
            "Rejected status transition",
            current=parsed.value,
            target=target.value,
            actor=actor.value,
        )
        raise InvalidStatusTransitionError(parsed.value, target.value, actor.value)
    return target


def kyc_next_status(existing: Any) -> BusinessStatus:
    """Status a business moves to when its owner submits KYC.

    draft -> submitted, submitted -> pending; everything else is refused.
    """
    current = parse_status(existing) or BusinessStatus.DRAFT

    if current == BusinessStatus.VERIFIED:
        raise StatusConflictError("Business is already verified.")
    if current == BusinessStatus.PENDING:
        raise StatusConflictError("Business is already under review.")
    if current == BusinessStatus.REJECTED:
        raise OnboardingValidationError(
            "Business is rejected. Please resubmit from registration."
        )

    target = (
        BusinessStatus.SUBMITTED
        if current == BusinessStatus.DRAFT
        else BusinessStatus.PENDING
    )
    return check_transition(current, target, Actor.OWNER)
