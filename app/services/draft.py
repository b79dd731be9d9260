import copy
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from app.services.status import resolve_next_status

# Keys the merge engine writes on every update, whatever the patch holds
ALWAYS_WRITTEN = ("userId", "status", "updatedAt")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def merge_draft(
    previous: Optional[Mapping[str, Any]],
    patch: Mapping[str, Any],
    requested_status: Optional[str],
    owner_id: str,
    now: Optional[str] = None,
) -> dict[str, Any]:
    """Compute the next business document from a sparse patch.

    Keys missing from ``patch`` keep their previous value; keys present
    overwrite it, empty values included. ``createdAt`` is stamped only for a
    new document and ``status`` follows the sticky status rule.
    """
    now = now or utc_now()
    document = copy.deepcopy(dict(previous)) if previous is not None else {}

    for key, value in patch.items():
        document[key] = copy.deepcopy(value)

    if previous is None:
        document["createdAt"] = now
    document["updatedAt"] = now
    document["userId"] = owner_id

    existing_status = previous.get("status") if previous is not None else None
    document["status"] = resolve_next_status(existing_status, requested_status).value
    return document


def persisted_fields(
    document: Mapping[str, Any], patch: Mapping[str, Any], is_new: bool
) -> dict[str, Any]:
    """The subset of a merged document that an update actually writes."""
    keys = list(patch) + list(ALWAYS_WRITTEN)
    if is_new:
        keys.append("createdAt")
    return {key: document[key] for key in keys}
