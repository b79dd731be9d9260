from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from app.schemas.location import BusinessLocationIn
from app.services.document_store import DocumentStore, StoredDocument
from app.services.draft import utc_now

logger = structlog.get_logger(__name__)

LOCATIONS_COLLECTION = "businessLocations"


def location_document_id(owner_id: str, location_id: str) -> str:
    """Location documents are namespaced by owner so client ids never collide."""
    return f"{owner_id}:{location_id}"


def stored_location_id(doc: StoredDocument) -> str:
    location_id = doc.data.get("id")
    if isinstance(location_id, str) and location_id:
        return location_id
    return doc.id.split(":", 1)[-1]


@dataclass
class LocationUpsert:
    location_id: str
    doc_id: str
    fields: dict[str, Any]
    created: bool


@dataclass
class LocationDelete:
    location_id: str
    doc_id: str


@dataclass
class BatchPlan:
    """Writes needed to make the stored locations match the incoming list."""

    primary_id: str
    upserts: list[LocationUpsert] = field(default_factory=list)
    deletes: list[LocationDelete] = field(default_factory=list)

    @property
    def creates(self) -> list[LocationUpsert]:
        return [u for u in self.upserts if u.created]

    @property
    def updates(self) -> list[LocationUpsert]:
        return [u for u in self.upserts if not u.created]

    def __len__(self) -> int:
        return len(self.upserts) + len(self.deletes)


def plan_reconciliation(
    owner_id: str,
    existing: list[StoredDocument],
    incoming: list[BusinessLocationIn],
    primary_id: str,
    primary_image: Optional[dict[str, Any]] = None,
    business_fields: Optional[dict[str, Any]] = None,
    now: Optional[str] = None,
) -> BatchPlan:
    """Diff incoming locations against stored ones.

    Stored ids missing from ``incoming`` are deleted, every incoming
    location is upserted, and only the location whose id equals
    ``primary_id`` is flagged primary.
    """
    now = now or utc_now()
    business_fields = business_fields or {}

    existing_doc_ids = {stored_location_id(doc): doc.id for doc in existing}
    incoming_ids = {loc.id for loc in incoming}

    plan = BatchPlan(primary_id=primary_id)

    for location_id, doc_id in existing_doc_ids.items():
        if location_id not in incoming_ids:
            plan.deletes.append(LocationDelete(location_id=location_id, doc_id=doc_id))

    attach_image = (
        primary_image is not None and primary_image.get("locationId") == primary_id
    )
    if primary_image is not None and not attach_image:
        logger.warning(
            "Shop image is not for the primary location, not attached",
            owner_id=owner_id,
            image_location_id=primary_image.get("locationId"),
            primary_id=primary_id,
        )

    for position, location in enumerate(incoming):
        created = location.id not in existing_doc_ids
        fields = {
            **location.to_document_fields(),
            **business_fields,
            "id": location.id,
            "businessId": owner_id,
            "isPrimary": location.id == primary_id,
            "position": position,
            "updatedAt": now,
        }
        if created:
            fields["createdAt"] = now
        if attach_image and location.id == primary_id:
            fields["shopImage"] = dict(primary_image)

        plan.upserts.append(
            LocationUpsert(
                location_id=location.id,
                doc_id=existing_doc_ids.get(location.id)
                or location_document_id(owner_id, location.id),
                fields=fields,
                created=created,
            )
        )

    return plan


class LocationReconciler:
    """Brings an owner's location documents in line with a full replacement list."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def existing_locations(self, owner_id: str) -> list[StoredDocument]:
        return await self.store.query_where(LOCATIONS_COLLECTION, "businessId", owner_id)

    async def reconcile(
        self,
        owner_id: str,
        incoming: list[BusinessLocationIn],
        primary_id: str,
        primary_image: Optional[dict[str, Any]] = None,
        business_fields: Optional[dict[str, Any]] = None,
        now: Optional[str] = None,
    ) -> BatchPlan:
        existing = await self.existing_locations(owner_id)
        plan = plan_reconciliation(
            owner_id,
            existing,
            incoming,
            primary_id,
            primary_image=primary_image,
            business_fields=business_fields,
            now=now,
        )

        batch = self.store.batch()
        for upsert in plan.upserts:
            batch.set(LOCATIONS_COLLECTION, upsert.doc_id, upsert.fields, merge=True)
        for delete in plan.deletes:
            batch.delete(LOCATIONS_COLLECTION, delete.doc_id)
        await batch.commit()

        logger.info(
            "Locations reconciled",
            owner_id=owner_id,
            created=len(plan.creates),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            primary_id=primary_id,
        )
        return plan
